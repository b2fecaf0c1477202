"""
Platform auth admin client for account provisioning and session lookup.

Design:
- Framework-agnostic, callable from web adapters and the account operator.
- Duck-typed over a supabase client created with the Service Role key:
  `client.auth.admin.create_user(...)`, `client.auth.admin.delete_user(id)`
  and `client.auth.get_user(jwt)`.
- Platform errors are translated into the access-control error taxonomy.

Security:
- Do not log credentials or tokens.
- The Service Role key bypasses row-level security; this client must only be
  reached after the access policy allowed the operation.
"""

from __future__ import annotations

from typing import Any, Optional
import logging

from .domain import Account, Caller
from .errors import NotFound, OperationFailed, Unauthorized
from .tokens import AccessTokenVerificationError, caller_from_claims, verify_access_token

logger = logging.getLogger("edutrack.identity_access")


def _get(obj: Any, key: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


def _message(exc: Exception) -> str:
    return str(getattr(exc, "message", None) or exc or exc.__class__.__name__)


def _status(exc: Exception) -> Optional[int]:
    status = getattr(exc, "status", None) or getattr(exc, "status_code", None)
    try:
        return int(status) if status is not None else None
    except (TypeError, ValueError):
        return None


class SupabaseAuthAdmin:
    def __init__(self, client: Any, *, jwt_secret: str | None = None) -> None:
        self._client = client
        self._jwt_secret = (jwt_secret or "").strip() or None

    def create_user(self, *, email: str, password: str, full_name: str) -> Account:
        attrs = {
            "email": email,
            "password": password,
            "email_confirm": True,
            "user_metadata": {"full_name": full_name or email},
        }
        try:
            res = self._client.auth.admin.create_user(attrs)
        except Exception as exc:
            logger.warning("Account creation rejected: %s", exc.__class__.__name__)
            raise OperationFailed(_message(exc), code="user_create_failed") from exc
        user = _get(res, "user") or res
        user_id = _get(user, "id")
        if not user_id:
            raise OperationFailed("Account creation returned no user id", code="user_id_missing")
        return Account(id=str(user_id), email=str(_get(user, "email") or email), full_name=full_name or None)

    def delete_user(self, account_id: str) -> None:
        try:
            self._client.auth.admin.delete_user(account_id)
        except Exception as exc:
            if _status(exc) == 404:
                raise NotFound(_message(exc), code="user_not_found") from exc
            logger.warning("Account deletion rejected: %s", exc.__class__.__name__)
            raise OperationFailed(_message(exc), code="user_delete_failed") from exc

    def verify_session(self, token: str) -> Caller:
        """Resolve a bearer token to the verified caller.

        Uses local HS256 verification when a JWT secret is configured and the
        auth service otherwise.
        """
        if not token:
            raise Unauthorized("Unauthorized", code="missing_token")
        if self._jwt_secret:
            try:
                claims = verify_access_token(token=token, secret=self._jwt_secret)
            except AccessTokenVerificationError as exc:
                raise Unauthorized("Unauthorized", code=exc.code) from exc
            return caller_from_claims(claims)
        try:
            res = self._client.auth.get_user(token)
        except Exception as exc:
            raise Unauthorized("Unauthorized", code="invalid_session") from exc
        user = _get(res, "user")
        user_id = _get(user, "id") if user is not None else None
        if not user_id:
            raise Unauthorized("Unauthorized", code="invalid_session")
        return Caller(id=str(user_id), email=str(_get(user, "email") or ""))


__all__ = ["SupabaseAuthAdmin"]
