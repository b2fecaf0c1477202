"""
Role Store and Directory over the hosted platform's REST interface.

The adapter is duck-typed to avoid a hard dependency during testing. The
client is expected to expose `.table(name)` returning a query builder with
`select/insert/delete/eq/in_/or_/order/execute` (as `supabase.create_client`
does). `execute()` returns an object (or dict) carrying `data`.

Security:
- The caller must initialize the client with the Service Role key; the access
  service reads roles of every account.

Consistency:
- The REST interface has no multi-statement transactions. `set_roles` deletes
  the old set and inserts the new one; when the insert fails the account is
  left without roles and `RolesCleared` is raised. Retrying `set_roles` with
  the intended set repairs it.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence
import logging

from .domain import Account, Role, SchoolClass, parse_role
from .errors import RolesCleared, StoreUnavailable

logger = logging.getLogger("edutrack.identity_access")


def _rows(res: Any) -> List[dict]:
    data = res.get("data") if isinstance(res, dict) else getattr(res, "data", None)
    if data is None:
        return []
    if isinstance(data, dict):
        return [data]
    return [r for r in data if isinstance(r, dict)]


def _error_message(exc: Exception) -> str:
    msg = getattr(exc, "message", None)
    return str(msg or exc or exc.__class__.__name__)


def _in_list(ids: Sequence[str]) -> str:
    return ",".join(ids)


class _SupabaseTables:
    def __init__(self, client: Any) -> None:
        self._client = client

    def _table(self, name: str) -> Any:
        table = getattr(self._client, "table", None)
        if table is None:
            raise RuntimeError("invalid_supabase_client")
        return table(name)

    def _run(self, query: Any) -> List[dict]:
        try:
            return _rows(query.execute())
        except Exception as exc:
            logger.warning("Platform query failed: %s", exc.__class__.__name__)
            raise StoreUnavailable(_error_message(exc)) from exc


class SupabaseRoleStore(_SupabaseTables):
    def get_roles(self, account_id: str) -> set[Role]:
        rows = self._run(self._table("user_roles").select("role").eq("user_id", account_id))
        roles: set[Role] = set()
        for r in rows:
            try:
                roles.add(parse_role(r.get("role")))
            except ValueError:
                logger.warning("Ignoring unknown role label for account %s", account_id)
        return roles

    def set_roles(self, account_id: str, roles: set[Role]) -> None:
        self._run(self._table("user_roles").delete().eq("user_id", account_id))
        if not roles:
            return
        payload = [{"user_id": account_id, "role": r.value} for r in sorted(roles, key=lambda r: r.value)]
        try:
            self._table("user_roles").insert(payload).execute()
        except Exception as exc:
            logger.error("Role insert failed after delete for %s; account has no roles", account_id)
            raise RolesCleared(_error_message(exc), account_id=account_id) from exc

    def has_role(self, account_id: str, role: Role) -> bool:
        return role in self.get_roles(account_id)

    def roles_for_accounts(self, account_ids: Sequence[str]) -> Dict[str, set[Role]]:
        ids = list(dict.fromkeys(account_ids))
        if not ids:
            return {}
        rows = self._run(self._table("user_roles").select("user_id, role").in_("user_id", ids))
        out: Dict[str, set[Role]] = {aid: set() for aid in ids}
        for r in rows:
            uid = str(r.get("user_id") or "")
            try:
                out.setdefault(uid, set()).add(parse_role(r.get("role")))
            except ValueError:
                logger.warning("Ignoring unknown role label for account %s", uid)
        return out

    def account_ids_with_role(self, role: Role) -> List[str]:
        rows = self._run(self._table("user_roles").select("user_id").eq("role", role.value))
        return sorted({str(r.get("user_id")) for r in rows if r.get("user_id")})


def _account(row: dict) -> Account:
    return Account(
        id=str(row.get("id") or ""),
        email=str(row.get("email") or ""),
        full_name=row.get("full_name"),
        managed_by=row.get("managed_by"),
    )


def _school_class(row: dict) -> SchoolClass:
    return SchoolClass(
        id=str(row.get("id") or ""),
        name=str(row.get("name") or ""),
        created_by=str(row.get("created_by") or ""),
        teacher_id=row.get("teacher_id"),
        coordinator_id=row.get("coordinator_id"),
        managed_by=row.get("managed_by"),
    )


_PROFILE_COLUMNS = "id, email, full_name, managed_by"
_CLASS_COLUMNS = "id, name, created_by, teacher_id, coordinator_id, managed_by"


class SupabaseDirectory(_SupabaseTables):
    def list_accounts(self) -> List[Account]:
        rows = self._run(self._table("profiles").select(_PROFILE_COLUMNS).order("email"))
        return [_account(r) for r in rows]

    def get_account(self, account_id: str) -> Optional[Account]:
        rows = self._run(self._table("profiles").select(_PROFILE_COLUMNS).eq("id", account_id))
        return _account(rows[0]) if rows else None

    def list_accounts_by_ids(self, account_ids: Sequence[str]) -> List[Account]:
        ids = list(dict.fromkeys(account_ids))
        if not ids:
            return []
        rows = self._run(self._table("profiles").select(_PROFILE_COLUMNS).in_("id", ids).order("email"))
        return [_account(r) for r in rows]

    def list_accounts_managed_by(self, manager_ids: Sequence[str]) -> List[Account]:
        ids = list(dict.fromkeys(manager_ids))
        if not ids:
            return []
        rows = self._run(self._table("profiles").select(_PROFILE_COLUMNS).in_("managed_by", ids).order("email"))
        return [_account(r) for r in rows]

    def list_classes_for_staff(self, staff_ids: Sequence[str]) -> List[SchoolClass]:
        ids = list(dict.fromkeys(staff_ids))
        if not ids:
            # `in.()` would be rejected or, worse, rewritten into a match-all filter.
            return []
        joined = _in_list(ids)
        flt = f"created_by.in.({joined}),managed_by.in.({joined}),teacher_id.in.({joined})"
        rows = self._run(self._table("classes").select(_CLASS_COLUMNS).or_(flt).order("name"))
        return [_school_class(r) for r in rows]

    def count_students_by_class(self, class_ids: Sequence[str]) -> Dict[str, int]:
        ids = list(dict.fromkeys(class_ids))
        if not ids:
            return {}
        rows = self._run(self._table("students").select("id, class_id").in_("class_id", ids))
        counts = {cid: 0 for cid in ids}
        for r in rows:
            cid = r.get("class_id")
            if cid in counts:
                counts[cid] += 1
        return counts


__all__ = ["SupabaseRoleStore", "SupabaseDirectory"]
