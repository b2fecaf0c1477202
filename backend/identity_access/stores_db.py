"""
Postgres-backed Role Store and Directory (psycopg3).

Why: Role checks must hit the authoritative `public.user_roles` table on every
decision. Talking to Postgres directly lets `set_roles` replace a role set
inside one transaction, so no reader ever observes a partial or empty set.

Security:
- Intended for a service-level connection (the access service reads every
  account's roles). Never hand this DSN to clients.
- Each call opens a short-lived connection; no state is kept between requests.

Note: This module uses psycopg3. It is imported only when enabled via
`ACCESS_BACKEND=db`. Tests use the in-memory stores or a fake psycopg.
"""
from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple
import logging
import os

try:
    import psycopg
    HAVE_PSYCOPG = True
except Exception:  # pragma: no cover - optional dependency in dev
    psycopg = None  # type: ignore
    HAVE_PSYCOPG = False

from .domain import Account, Role, SchoolClass, parse_role
from .errors import StoreUnavailable

logger = logging.getLogger("edutrack.identity_access")


def _dsn() -> str:
    for candidate in (os.getenv("ACCESS_DATABASE_URL"), os.getenv("DATABASE_URL"), os.getenv("SUPABASE_DB_URL")):
        if candidate:
            return candidate
    raise RuntimeError("No database DSN provided (set DATABASE_URL)")


class _PsycopgStore:
    def __init__(self, dsn: str | None = None) -> None:
        if not HAVE_PSYCOPG:
            raise RuntimeError("psycopg3 is required for the database-backed stores")
        self._dsn = dsn or _dsn()

    def _fetchall(self, sql: str, params: tuple) -> List[Tuple]:
        try:
            with psycopg.connect(self._dsn) as conn:
                with conn.cursor() as cur:
                    cur.execute(sql, params)
                    return list(cur.fetchall() or [])
        except psycopg.Error as exc:
            logger.warning("Database read failed: %s", exc.__class__.__name__)
            raise StoreUnavailable("Database unavailable") from exc


def _roles_from_rows(rows: Sequence[Tuple], *, account_id: str) -> set[Role]:
    roles: set[Role] = set()
    for row in rows:
        try:
            roles.add(parse_role(row[0]))
        except ValueError:
            logger.warning("Ignoring unknown role label for account %s", account_id)
    return roles


class DBRoleStore(_PsycopgStore):
    """Role Store over `public.user_roles (user_id, role)`."""

    def get_roles(self, account_id: str) -> set[Role]:
        rows = self._fetchall(
            "select role::text from public.user_roles where user_id::text = %s",
            (account_id,),
        )
        return _roles_from_rows(rows, account_id=account_id)

    def set_roles(self, account_id: str, roles: set[Role]) -> None:
        """Replace the role set in a single transaction (delete + insert)."""
        values = [(account_id, r.value) for r in sorted(roles, key=lambda r: r.value)]
        try:
            with psycopg.connect(self._dsn) as conn:
                with conn.transaction():
                    with conn.cursor() as cur:
                        cur.execute("delete from public.user_roles where user_id::text = %s", (account_id,))
                        if values:
                            cur.executemany(
                                "insert into public.user_roles (user_id, role) values (%s::uuid, %s::app_role)",
                                values,
                            )
        except psycopg.Error as exc:
            logger.warning("Role replacement rolled back for %s: %s", account_id, exc.__class__.__name__)
            raise StoreUnavailable("Database unavailable") from exc

    def has_role(self, account_id: str, role: Role) -> bool:
        return role in self.get_roles(account_id)

    def roles_for_accounts(self, account_ids: Sequence[str]) -> Dict[str, set[Role]]:
        ids = list(dict.fromkeys(account_ids))
        if not ids:
            return {}
        rows = self._fetchall(
            "select user_id::text, role::text from public.user_roles where user_id::text = any(%s)",
            (ids,),
        )
        out: Dict[str, set[Role]] = {aid: set() for aid in ids}
        for user_id, label in rows:
            try:
                out.setdefault(user_id, set()).add(parse_role(label))
            except ValueError:
                logger.warning("Ignoring unknown role label for account %s", user_id)
        return out

    def account_ids_with_role(self, role: Role) -> List[str]:
        rows = self._fetchall(
            "select user_id::text from public.user_roles where role::text = %s order by 1",
            (role.value,),
        )
        return [str(r[0]) for r in rows]


_PROFILE_COLUMNS_SQL = "id::text, email, full_name, managed_by::text"
_CLASS_COLUMNS_SQL = "id::text, name, created_by::text, teacher_id::text, coordinator_id::text, managed_by::text"


def _account_row_to_obj(row: Tuple) -> Account:
    return Account(id=row[0], email=row[1] or "", full_name=row[2], managed_by=row[3])


def _class_row_to_obj(row: Tuple) -> SchoolClass:
    return SchoolClass(
        id=row[0],
        name=row[1] or "",
        created_by=row[2] or "",
        teacher_id=row[3],
        coordinator_id=row[4],
        managed_by=row[5],
    )


class DBDirectory(_PsycopgStore):
    """Directory over `public.profiles`, `public.classes` and `public.students`."""

    def list_accounts(self) -> List[Account]:
        rows = self._fetchall(f"select {_PROFILE_COLUMNS_SQL} from public.profiles order by email", ())
        return [_account_row_to_obj(r) for r in rows]

    def get_account(self, account_id: str) -> Optional[Account]:
        rows = self._fetchall(
            f"select {_PROFILE_COLUMNS_SQL} from public.profiles where id::text = %s",
            (account_id,),
        )
        return _account_row_to_obj(rows[0]) if rows else None

    def list_accounts_by_ids(self, account_ids: Sequence[str]) -> List[Account]:
        ids = list(dict.fromkeys(account_ids))
        if not ids:
            return []
        rows = self._fetchall(
            f"select {_PROFILE_COLUMNS_SQL} from public.profiles where id::text = any(%s) order by email",
            (ids,),
        )
        return [_account_row_to_obj(r) for r in rows]

    def list_accounts_managed_by(self, manager_ids: Sequence[str]) -> List[Account]:
        ids = list(dict.fromkeys(manager_ids))
        if not ids:
            return []
        rows = self._fetchall(
            f"select {_PROFILE_COLUMNS_SQL} from public.profiles where managed_by::text = any(%s) order by email",
            (ids,),
        )
        return [_account_row_to_obj(r) for r in rows]

    def list_classes_for_staff(self, staff_ids: Sequence[str]) -> List[SchoolClass]:
        ids = list(dict.fromkeys(staff_ids))
        if not ids:
            return []
        rows = self._fetchall(
            f"select {_CLASS_COLUMNS_SQL} from public.classes "
            "where created_by::text = any(%s) or managed_by::text = any(%s) or teacher_id::text = any(%s) "
            "order by name",
            (ids, ids, ids),
        )
        return [_class_row_to_obj(r) for r in rows]

    def count_students_by_class(self, class_ids: Sequence[str]) -> Dict[str, int]:
        ids = list(dict.fromkeys(class_ids))
        if not ids:
            return {}
        rows = self._fetchall(
            "select class_id::text, count(*) from public.students where class_id::text = any(%s) group by class_id",
            (ids,),
        )
        counts = {cid: 0 for cid in ids}
        for class_id, n in rows:
            counts[class_id] = int(n)
        return counts


__all__ = ["DBRoleStore", "DBDirectory", "HAVE_PSYCOPG"]
