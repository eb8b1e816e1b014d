"""
GRC Access Identity Store - Errors
==================================
Domain rejections raised by the role/assignment service. All are
ValueError subclasses: the caller sent a request the store refuses.
"""


class IdentityNotFoundError(ValueError):
    """Referenced user or role does not exist."""


class SystemRoleError(ValueError):
    """System roles can be assigned but never edited or deleted."""

    def __init__(self, role_name: str, operation: str):
        self.role_name = role_name
        self.operation = operation
        super().__init__(f"System role '{role_name}' cannot be {operation}.")


class RoleInUseError(ValueError):
    """Role is still referenced by assignments and cannot be deleted."""
