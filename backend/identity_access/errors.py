"""
Error taxonomy for access control and account management.

Each error carries a stable snake_case `code`, the HTTP status the web adapter
maps it to, and a human-readable message for the single user notification.
"""

from __future__ import annotations

from typing import Optional


class AccessError(Exception):
    status_code = 500
    default_code = "operation_failed"

    def __init__(self, message: str = "", *, code: Optional[str] = None):
        super().__init__(message or self.default_code)
        self.code = code or self.default_code
        self.message = message or self.default_code


class Unauthorized(AccessError):
    """No verified caller (missing, invalid or expired session token)."""

    status_code = 401
    default_code = "unauthorized"


class Forbidden(AccessError):
    """Verified caller without sufficient privilege."""

    status_code = 403
    default_code = "forbidden"


class InvalidInput(AccessError):
    status_code = 400
    default_code = "invalid_input"


class NotFound(AccessError):
    status_code = 404
    default_code = "not_found"


class StoreUnavailable(AccessError):
    """The durable backing store failed; callers must not assume defaults."""

    status_code = 500
    default_code = "store_unavailable"


class OperationFailed(AccessError):
    """The identity system rejected an operation (e.g. duplicate email)."""

    status_code = 400
    default_code = "operation_failed"


class RoleAssignmentFailed(AccessError):
    """Account was created but its initial role could not be applied.

    The account exists with the platform default role; `account_id` lets the
    caller repair it with `update_roles`.
    """

    status_code = 500
    default_code = "role_assignment_failed"

    def __init__(self, message: str = "", *, account_id: str, code: Optional[str] = None):
        super().__init__(message, code=code)
        self.account_id = account_id


class RolesCleared(StoreUnavailable):
    """Role replacement deleted the old set but failed to insert the new one.

    The account is left without roles until `update_roles` is retried.
    """

    default_code = "roles_cleared"

    def __init__(self, message: str = "", *, account_id: str, code: Optional[str] = None):
        super().__init__(message, code=code)
        self.account_id = account_id


__all__ = [
    "AccessError",
    "Unauthorized",
    "Forbidden",
    "InvalidInput",
    "NotFound",
    "StoreUnavailable",
    "OperationFailed",
    "RoleAssignmentFailed",
    "RolesCleared",
]
