"""
GRC Access Audit - Public API
=============================
Append-only audit log of every access-control mutation.

Models are imported lazily by callers (Django app registry must be ready),
so only the pure helpers are re-exported here.
"""

from grc_access.audit.actions import AuditAction

__all__ = [
    "AuditAction",
]
