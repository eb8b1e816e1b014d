"""
GRC Access Account Security - Public API
========================================
"""

from grc_access.account_security.service import (
    AccountSecurityService,
    LoginAttemptResult,
)

__all__ = [
    "AccountSecurityService",
    "LoginAttemptResult",
]
