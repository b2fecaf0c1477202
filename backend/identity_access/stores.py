"""
In-memory stores for development and tests: roles, directory, identity.

Why: Run the access-control core without a hosted platform. For production,
use the psycopg-backed stores (`stores_db`) or the hosted platform adapters
(`stores_supabase`, `admin_client`).

Security: Session tokens are opaque random strings mapped server-side to an
account id. Passwords are accepted but never stored.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence
import secrets
import threading
import time
import uuid

from .domain import DEFAULT_ROLE, Account, Caller, Role, SchoolClass
from .errors import NotFound, OperationFailed, Unauthorized


def _now() -> int:
    return int(time.time())


class InMemoryRoleStore:
    def __init__(self) -> None:
        self._data: Dict[str, frozenset[Role]] = {}
        self._lock = threading.Lock()

    def get_roles(self, account_id: str) -> set[Role]:
        return set(self._data.get(account_id, frozenset()))

    def set_roles(self, account_id: str, roles: set[Role]) -> None:
        # Replace the whole set in one assignment; readers see old or new, never a mix.
        new = frozenset(roles)
        with self._lock:
            if new:
                self._data[account_id] = new
            else:
                self._data.pop(account_id, None)

    def has_role(self, account_id: str, role: Role) -> bool:
        return role in self._data.get(account_id, frozenset())

    def roles_for_accounts(self, account_ids: Sequence[str]) -> Dict[str, set[Role]]:
        return {aid: self.get_roles(aid) for aid in account_ids}

    def account_ids_with_role(self, role: Role) -> List[str]:
        return sorted(aid for aid, roles in self._data.items() if role in roles)

    def drop(self, account_id: str) -> None:
        with self._lock:
            self._data.pop(account_id, None)


class InMemoryDirectory:
    def __init__(self) -> None:
        self.accounts: Dict[str, Account] = {}
        self.classes: Dict[str, SchoolClass] = {}
        # students[student_id] = class_id (or None)
        self.students: Dict[str, Optional[str]] = {}

    # --- Mutators (seeding, identity provider) ---------------------------------
    def add_account(self, account: Account) -> Account:
        self.accounts[account.id] = account
        return account

    def remove_account(self, account_id: str) -> None:
        # Classes and students that reference the account are left as they are.
        self.accounts.pop(account_id, None)

    def set_manager(self, account_id: str, manager_id: Optional[str]) -> None:
        acc = self.accounts.get(account_id)
        if acc is None:
            raise KeyError(account_id)
        self.accounts[account_id] = replace(acc, managed_by=manager_id)

    def add_class(self, cls: SchoolClass) -> SchoolClass:
        self.classes[cls.id] = cls
        return cls

    def add_student(self, student_id: str, class_id: Optional[str]) -> None:
        self.students[student_id] = class_id

    # --- Queries -----------------------------------------------------------------
    def list_accounts(self) -> List[Account]:
        return sorted(self.accounts.values(), key=lambda a: a.email)

    def get_account(self, account_id: str) -> Optional[Account]:
        return self.accounts.get(account_id)

    def list_accounts_by_ids(self, account_ids: Sequence[str]) -> List[Account]:
        wanted = set(account_ids)
        if not wanted:
            return []
        return [a for a in self.list_accounts() if a.id in wanted]

    def list_accounts_managed_by(self, manager_ids: Sequence[str]) -> List[Account]:
        managers = set(manager_ids)
        if not managers:
            return []
        return [a for a in self.list_accounts() if a.managed_by in managers]

    def list_classes_for_staff(self, staff_ids: Sequence[str]) -> List[SchoolClass]:
        staff = set(staff_ids)
        if not staff:
            return []
        out = [
            c
            for c in self.classes.values()
            if c.created_by in staff or c.managed_by in staff or c.teacher_id in staff
        ]
        return sorted(out, key=lambda c: c.name)

    def count_students_by_class(self, class_ids: Sequence[str]) -> Dict[str, int]:
        wanted = set(class_ids)
        counts: Dict[str, int] = {cid: 0 for cid in wanted}
        for class_id in self.students.values():
            if class_id in wanted:
                counts[class_id] += 1
        return counts


@dataclass
class SessionRecord:
    token: str
    account_id: str
    email: str
    expires_at: Optional[int] = None


class InMemoryIdentity:
    """Identity provider double: accounts live in the directory.

    Mirrors the hosted platform: every new account receives `DEFAULT_ROLE`
    (the signup trigger), and deleting an account drops its role rows.
    """

    def __init__(self, directory: InMemoryDirectory, role_store: InMemoryRoleStore) -> None:
        self._directory = directory
        self._roles = role_store
        self._sessions: Dict[str, SessionRecord] = {}

    def create_user(self, *, email: str, password: str, full_name: str) -> Account:
        email_l = email.strip().lower()
        if any(a.email.lower() == email_l for a in self._directory.accounts.values()):
            raise OperationFailed(
                "A user with this email address has already been registered", code="email_exists"
            )
        account = Account(id=str(uuid.uuid4()), email=email.strip(), full_name=full_name or None)
        self._directory.add_account(account)
        self._roles.set_roles(account.id, {DEFAULT_ROLE})
        return account

    def delete_user(self, account_id: str) -> None:
        if self._directory.get_account(account_id) is None:
            raise NotFound("User not found", code="user_not_found")
        self._directory.remove_account(account_id)
        self._roles.drop(account_id)
        for token in [t for t, rec in self._sessions.items() if rec.account_id == account_id]:
            self._sessions.pop(token, None)

    def issue_session(self, account_id: str, *, ttl_seconds: int = 3600) -> SessionRecord:
        account = self._directory.get_account(account_id)
        if account is None:
            raise NotFound("User not found", code="user_not_found")
        token = secrets.token_urlsafe(24)
        rec = SessionRecord(token=token, account_id=account.id, email=account.email, expires_at=_now() + ttl_seconds)
        self._sessions[token] = rec
        return rec

    def verify_session(self, token: str) -> Caller:
        rec = self._sessions.get(token)
        if not rec:
            raise Unauthorized("Unauthorized", code="invalid_session")
        if rec.expires_at and rec.expires_at < _now():
            self._sessions.pop(token, None)
            raise Unauthorized("Unauthorized", code="session_expired")
        return Caller(id=rec.account_id, email=rec.email)


__all__ = ["InMemoryRoleStore", "InMemoryDirectory", "InMemoryIdentity", "SessionRecord"]
