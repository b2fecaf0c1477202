"""
Admin user management RPC: create, delete, replace roles.

Why:
    The Admin Console calls one endpoint with an `action` discriminator. Every
    action runs with the service-role client, so the verified caller must be
    an admin before anything touches the identity platform or the Role Store.

Contract:
    POST /functions/v1/admin-manage-users
      { action: "create" | "delete" | "update_roles",
        email?, password?, full_name?, role?, user_id?, roles? }
    Success: { success: true, ... }. Errors: { error, code } with the status of
    the raised `AccessError`; unexpected failures become 500.
"""
from __future__ import annotations

import logging
from typing import Any, List, Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ValidationError

from identity_access.errors import AccessError, InvalidInput, RoleAssignmentFailed, RolesCleared
from identity_access.policy import Action
from identity_access.domain import sorted_labels

try:
    import wiring  # type: ignore
    from auth_utils import cors_headers  # type: ignore
except ImportError:  # pragma: no cover - package layout
    from backend.web import wiring  # type: ignore
    from backend.web.auth_utils import cors_headers  # type: ignore


logger = logging.getLogger("edutrack.web.admin_users")

admin_users_router = APIRouter(tags=["Admin"])

ENDPOINT = "/functions/v1/admin-manage-users"


class ManageUsersRequest(BaseModel):
    action: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    full_name: Optional[str] = None
    role: Optional[str] = None
    user_id: Optional[str] = None
    roles: Optional[List[Any]] = None


def _headers() -> dict:
    headers = cors_headers()
    headers["Cache-Control"] = "private, no-store"
    return headers


def _json(payload: dict, status_code: int = 200) -> JSONResponse:
    return JSONResponse(payload, status_code=status_code, headers=_headers())


def _error_response(exc: AccessError) -> JSONResponse:
    body: dict = {"error": exc.message, "code": exc.code}
    if isinstance(exc, (RoleAssignmentFailed, RolesCleared)):
        body["user_id"] = exc.account_id
    return _json(body, exc.status_code)


async def _read_payload(request: Request) -> ManageUsersRequest:
    try:
        raw = await request.json()
    except ValueError as exc:
        raise InvalidInput("Malformed JSON body", code="invalid_json") from exc
    if not isinstance(raw, dict):
        raise InvalidInput("JSON object expected", code="invalid_json")
    try:
        return ManageUsersRequest.model_validate(raw)
    except ValidationError as exc:
        raise InvalidInput("Malformed request body", code="invalid_payload") from exc


@admin_users_router.options(ENDPOINT)
async def admin_manage_users_preflight():
    return Response(content="ok", status_code=200, headers=cors_headers())


@admin_users_router.post(ENDPOINT)
async def admin_manage_users(request: Request):
    """Dispatch an admin action for the verified caller.

    Order of checks: verified caller (401), admin gate (403), body (400),
    action. Each operation re-evaluates its own rule before executing.
    """
    caller = getattr(request.state, "caller", None)
    services = wiring.get_services()
    try:
        services.policy.require(caller, Action.VIEW_ADMIN_CONSOLE)
        payload = await _read_payload(request)
        action = (payload.action or "").strip()
        operator = services.operator

        if action == "create":
            account = operator.create_account(
                caller,
                email=payload.email,
                password=payload.password,
                display_name=payload.full_name,
                initial_role=payload.role,
            )
            return _json({"success": True, "user": {"id": account.id, "email": account.email}})

        if action == "delete":
            operator.delete_account(caller, account_id=payload.user_id)
            return _json({"success": True})

        if action == "update_roles":
            roles = operator.update_roles(caller, account_id=payload.user_id, roles=payload.roles)
            return _json({"success": True, "roles": sorted_labels(roles)})

        raise InvalidInput("Invalid action", code="invalid_action")
    except AccessError as exc:
        if exc.status_code >= 500:
            logger.error("admin-manage-users failed: %s (%s)", exc.code, exc.__class__.__name__)
        return _error_response(exc)
    except Exception as exc:
        logger.exception("admin-manage-users unexpected failure: %s", exc.__class__.__name__)
        return _json({"error": "Internal server error", "code": "internal_error"}, 500)
