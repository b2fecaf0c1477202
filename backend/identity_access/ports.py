"""
Ports consumed by the access-control core.

Keep these small and framework-agnostic so tests can supply simple fakes.
Implementations live in `stores` (in-memory), `stores_db` (psycopg) and
`stores_supabase` / `admin_client` (hosted platform).
"""
from __future__ import annotations

from typing import Dict, List, Optional, Protocol, Sequence

from .domain import Account, Caller, Role, SchoolClass


class RoleStoreProtocol(Protocol):
    """Durable mapping account id → set of roles.

    Implementations raise `StoreUnavailable` when the backing store fails.
    """

    def get_roles(self, account_id: str) -> set[Role]: ...

    def set_roles(self, account_id: str, roles: set[Role]) -> None: ...

    def has_role(self, account_id: str, role: Role) -> bool: ...

    def roles_for_accounts(self, account_ids: Sequence[str]) -> Dict[str, set[Role]]: ...

    def account_ids_with_role(self, role: Role) -> List[str]: ...


class DirectoryProtocol(Protocol):
    """Read access to profiles, classes and students.

    All `*_ids` filters must return an empty result for an empty input.
    """

    def list_accounts(self) -> List[Account]: ...

    def get_account(self, account_id: str) -> Optional[Account]: ...

    def list_accounts_by_ids(self, account_ids: Sequence[str]) -> List[Account]: ...

    def list_accounts_managed_by(self, manager_ids: Sequence[str]) -> List[Account]: ...

    def list_classes_for_staff(self, staff_ids: Sequence[str]) -> List[SchoolClass]: ...

    def count_students_by_class(self, class_ids: Sequence[str]) -> Dict[str, int]: ...


class IdentityProviderProtocol(Protocol):
    """Authoritative account store (privileged) and session verifier."""

    def create_user(self, *, email: str, password: str, full_name: str) -> Account: ...

    def delete_user(self, account_id: str) -> None: ...

    def verify_session(self, token: str) -> Caller: ...


__all__ = ["RoleStoreProtocol", "DirectoryProtocol", "IdentityProviderProtocol"]
