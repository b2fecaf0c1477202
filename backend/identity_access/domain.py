"""
Identity domain: role labels, their privilege order, and account records.

Why:
- Centralize allowed roles to avoid drift between tools and web layer.
- Make the "highest role wins" rule explicit instead of comparing strings ad hoc.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional
import uuid


class Role(str, Enum):
    """Role labels ordered by privilege (see `rank`).

    Only admin, director and coordinator carry elevated visibility; the
    remaining labels share the lowest rank.
    """

    ADMIN = "admin"
    DIRECTOR = "director"
    COORDINATOR = "coordinator"
    TEACHER = "teacher"
    PARENT = "parent"
    STUDENT = "student"

    @property
    def rank(self) -> int:
        return _RANK[self]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Role):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Role):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Role):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Role):
            return NotImplemented
        return self.rank >= other.rank


_RANK = {
    Role.ADMIN: 3,
    Role.DIRECTOR: 2,
    Role.COORDINATOR: 1,
    Role.TEACHER: 0,
    Role.PARENT: 0,
    Role.STUDENT: 0,
}

# Immutable to prevent accidental mutation.
ALLOWED_ROLES = frozenset(r.value for r in Role)

# Role the identity platform assigns to every new account (signup trigger).
DEFAULT_ROLE = Role.PARENT

# Roles that grant visibility beyond the caller's own record, highest first.
HIERARCHY_ROLES = (Role.ADMIN, Role.DIRECTOR, Role.COORDINATOR)

# Roles that may open management dashboards.
MANAGER_ROLES = frozenset({Role.ADMIN, Role.DIRECTOR, Role.COORDINATOR})


def parse_role(label: object) -> Role:
    """Map a raw label to a `Role`; raises ValueError("invalid_role")."""
    if not isinstance(label, str):
        raise ValueError("invalid_role")
    try:
        return Role(label.strip().lower())
    except ValueError as exc:
        raise ValueError("invalid_role") from exc


def normalize_account_id(value: Optional[str]) -> str:
    """Canonical form of an account id for identity comparisons.

    UUIDs are case-insensitive, so `ABC-...` and `abc-...` name the same
    account; other ids are stripped and lower-cased.
    """
    raw = (value or "").strip()
    try:
        return str(uuid.UUID(raw))
    except ValueError:
        return raw.lower()


def parse_roles(labels: Iterable[object]) -> set[Role]:
    return {parse_role(label) for label in labels}


def highest_hierarchy_role(roles: Iterable[Role]) -> Optional[Role]:
    """Return the highest elevated role held, or None for default visibility."""
    held = set(roles)
    for role in HIERARCHY_ROLES:
        if role in held:
            return role
    return None


def sorted_labels(roles: Iterable[Role]) -> list[str]:
    """Stable output order: most privileged first, then alphabetical."""
    return [r.value for r in sorted(set(roles), key=lambda r: (-r.rank, r.value))]


@dataclass(frozen=True)
class Account:
    id: str
    email: str
    full_name: Optional[str] = None
    managed_by: Optional[str] = None

    @property
    def display_name(self) -> str:
        return (self.full_name or "").strip() or self.email


@dataclass(frozen=True)
class SchoolClass:
    id: str
    name: str
    created_by: str
    teacher_id: Optional[str] = None
    coordinator_id: Optional[str] = None
    managed_by: Optional[str] = None


@dataclass(frozen=True)
class Caller:
    """Verified identity of the requester, resolved from a session token.

    Carries no roles; roles are read from the Role Store at
    decision time.
    """

    id: str
    email: str = ""


__all__ = [
    "Role",
    "ALLOWED_ROLES",
    "DEFAULT_ROLE",
    "HIERARCHY_ROLES",
    "MANAGER_ROLES",
    "parse_role",
    "parse_roles",
    "normalize_account_id",
    "highest_hierarchy_role",
    "sorted_labels",
    "Account",
    "SchoolClass",
    "Caller",
]
