"""
Access policy: may this caller perform this action?

Why:
    Authorization must never trust role or user-id fields sent by a client.
    The evaluator takes the verified caller (resolved from the session token)
    and reads the caller's roles from the Role Store on every call, so a role
    change applies to the very next check.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional
import logging

from .domain import Caller, Role, normalize_account_id
from .errors import Forbidden, Unauthorized
from .ports import RoleStoreProtocol

logger = logging.getLogger("edutrack.identity_access")


class Action(str, Enum):
    CREATE_ACCOUNT = "create_account"
    DELETE_ACCOUNT = "delete_account"
    UPDATE_ROLES = "update_roles"
    VIEW_HIERARCHY = "view_hierarchy"
    VIEW_ADMIN_CONSOLE = "view_admin_console"


# Any one of the listed roles satisfies the action.
RULES: dict[Action, frozenset[Role]] = {
    Action.CREATE_ACCOUNT: frozenset({Role.ADMIN}),
    Action.DELETE_ACCOUNT: frozenset({Role.ADMIN}),
    Action.UPDATE_ROLES: frozenset({Role.ADMIN}),
    Action.VIEW_HIERARCHY: frozenset({Role.ADMIN, Role.DIRECTOR}),
    Action.VIEW_ADMIN_CONSOLE: frozenset({Role.ADMIN}),
}


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[str] = None
    # Unauthorized (no verified caller) or Forbidden (insufficient privilege)
    error: Optional[type] = None

    @classmethod
    def allow(cls) -> "Decision":
        return cls(allowed=True)

    @classmethod
    def unauthorized(cls, reason: str = "unauthenticated") -> "Decision":
        return cls(allowed=False, reason=reason, error=Unauthorized)

    @classmethod
    def forbidden(cls, reason: str) -> "Decision":
        return cls(allowed=False, reason=reason, error=Forbidden)


_MESSAGES = {
    "unauthenticated": "Unauthorized",
    "admin_required": "Forbidden: Admin access required",
    "admin_or_director_required": "Forbidden: Admin or director access required",
    "self_deletion": "Forbidden: You cannot delete your own account",
}


class AccessPolicy:
    def __init__(self, role_store: RoleStoreProtocol) -> None:
        self._roles = role_store

    def authorize(self, caller: Optional[Caller], action: Action, *, target_id: Optional[str] = None) -> Decision:
        """Evaluate the rule table for `action`.

        `StoreUnavailable` from the Role Store propagates; an unreadable role
        set is never treated as "no roles".
        """
        if caller is None or not caller.id:
            return Decision.unauthorized()
        required = RULES[action]
        held = self._roles.get_roles(caller.id)
        if not (held & required):
            reason = "admin_required" if required == {Role.ADMIN} else "admin_or_director_required"
            logger.warning("Denied %s for %s: %s", action.value, caller.id, reason)
            return Decision.forbidden(reason)
        if (
            action is Action.DELETE_ACCOUNT
            and target_id is not None
            and normalize_account_id(target_id) == normalize_account_id(caller.id)
        ):
            logger.warning("Denied %s for %s: self_deletion", action.value, caller.id)
            return Decision.forbidden("self_deletion")
        return Decision.allow()

    def require(self, caller: Optional[Caller], action: Action, *, target_id: Optional[str] = None) -> Caller:
        """Raise `Unauthorized`/`Forbidden` unless the action is allowed."""
        decision = self.authorize(caller, action, target_id=target_id)
        if caller is None:
            raise Unauthorized(_MESSAGES["unauthenticated"], code="unauthenticated")
        if not decision.allowed:
            reason = decision.reason or "forbidden"
            error_cls = decision.error or Forbidden
            raise error_cls(_MESSAGES.get(reason, reason), code=reason)
        return caller


__all__ = ["Action", "Decision", "AccessPolicy", "RULES"]
