"""
Privileged account operations: create, delete, replace roles.

Why:
    These operations run with service-role privilege against the identity
    platform and the Role Store. Each one first asks the access policy with
    the verified caller, so the elevated client is only reached by admins.

Consistency:
    - create: account creation and initial-role replacement are two steps in
      two systems. A failure in the second step raises `RoleAssignmentFailed`
      (the account exists with the default role).
    - update_roles: full replacement, not a merge. Transactional on Postgres;
      on the REST store a failure after the delete raises `RolesCleared`.
    - delete: irreversible; classes/students referencing the account keep
      their (now dangling) references.
"""
from __future__ import annotations

from typing import Iterable, Optional
import logging

from .domain import DEFAULT_ROLE, Account, Caller, Role, normalize_account_id, parse_role, parse_roles
from .errors import InvalidInput, NotFound, RoleAssignmentFailed, StoreUnavailable
from .policy import AccessPolicy, Action
from .ports import DirectoryProtocol, IdentityProviderProtocol, RoleStoreProtocol

logger = logging.getLogger("edutrack.identity_access")


class PrivilegedAccountOperator:
    def __init__(
        self,
        *,
        identity: IdentityProviderProtocol,
        role_store: RoleStoreProtocol,
        directory: DirectoryProtocol,
        policy: AccessPolicy,
    ) -> None:
        self._identity = identity
        self._roles = role_store
        self._directory = directory
        self._policy = policy

    def create_account(
        self,
        caller: Optional[Caller],
        *,
        email: Optional[str],
        password: Optional[str],
        display_name: Optional[str] = None,
        initial_role: Optional[str] = None,
    ) -> Account:
        actor = self._policy.require(caller, Action.CREATE_ACCOUNT)
        email = (email or "").strip()
        if not email or not password:
            raise InvalidInput("Email and password required", code="email_and_password_required")
        role: Optional[Role] = None
        if initial_role:
            try:
                role = parse_role(initial_role)
            except ValueError as exc:
                raise InvalidInput(f"Invalid role: {initial_role}", code="invalid_role") from exc

        account = self._identity.create_user(
            email=email,
            password=password,
            full_name=(display_name or "").strip() or email,
        )
        logger.info("Account %s created by %s", account.id, actor.id)

        if role is not None and role is not DEFAULT_ROLE:
            try:
                self._roles.set_roles(account.id, {role})
            except StoreUnavailable as exc:
                logger.error("Initial role %s not applied to %s: %s", role.value, account.id, exc.code)
                raise RoleAssignmentFailed(
                    f"Account created, but assigning role '{role.value}' failed: {exc.message}",
                    account_id=account.id,
                ) from exc
        return account

    def delete_account(self, caller: Optional[Caller], *, account_id: Optional[str]) -> None:
        target = normalize_account_id(account_id)
        actor = self._policy.require(caller, Action.DELETE_ACCOUNT, target_id=target or None)
        if not target:
            raise InvalidInput("User ID required", code="user_id_required")
        self._identity.delete_user(target)
        logger.info("Account %s deleted by %s", target, actor.id)

    def update_roles(
        self,
        caller: Optional[Caller],
        *,
        account_id: Optional[str],
        roles: Optional[Iterable[object]],
    ) -> set[Role]:
        actor = self._policy.require(caller, Action.UPDATE_ROLES)
        target = normalize_account_id(account_id)
        if not target or roles is None or isinstance(roles, (str, bytes)):
            raise InvalidInput("User ID and roles required", code="user_id_and_roles_required")
        try:
            new_roles = parse_roles(roles)
        except ValueError as exc:
            raise InvalidInput("Invalid role in roles", code="invalid_role") from exc
        if self._directory.get_account(target) is None:
            raise NotFound("User not found", code="user_not_found")
        self._roles.set_roles(target, new_roles)
        logger.info(
            "Roles of %s replaced by %s: %s",
            target,
            actor.id,
            ",".join(sorted(r.value for r in new_roles)) or "-",
        )
        return new_roles


__all__ = ["PrivilegedAccountOperator"]
