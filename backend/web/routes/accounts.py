"""
Account views for the signed-in caller: profile, visible accounts, hierarchy.

Why:
    The dashboard and Admin Console render navigation and tables from these
    endpoints. Roles are read from the Role Store on every request; nothing is
    cached per process.

Security:
    The caller comes from the verified session on `request.state.caller`
    (see main.resolve_caller). Responses are private and never cached.
"""
from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from identity_access.domain import MANAGER_ROLES, Role, sorted_labels
from identity_access.errors import AccessError
from identity_access.policy import Action

try:
    import wiring  # type: ignore
except ImportError:  # pragma: no cover - package layout
    from backend.web import wiring  # type: ignore


accounts_router = APIRouter(tags=["Accounts"])


def _private_response(payload, status_code: int = 200) -> JSONResponse:
    return JSONResponse(payload, status_code=status_code, headers={"Cache-Control": "private, no-store"})


def _error(exc: AccessError) -> JSONResponse:
    return _private_response({"error": exc.message, "code": exc.code}, exc.status_code)


@accounts_router.get("/api/me")
async def get_me(request: Request):
    """Profile, current roles and capability flags of the caller."""
    caller = request.state.caller
    services = wiring.get_services()
    try:
        roles = services.role_store.get_roles(caller.id)
        profile = services.directory.get_account(caller.id)
    except AccessError as exc:
        return _error(exc)
    return _private_response(
        {
            "id": caller.id,
            "email": profile.email if profile else caller.email,
            "full_name": profile.full_name if profile else None,
            "roles": sorted_labels(roles),
            "is_admin": Role.ADMIN in roles,
            "is_director": Role.DIRECTOR in roles,
            "is_teacher": Role.TEACHER in roles,
            "is_parent": Role.PARENT in roles,
            "can_manage": bool(roles & MANAGER_ROLES),
        }
    )


@accounts_router.get("/api/accounts")
async def list_visible_accounts(request: Request):
    """Accounts the caller may see, ordered by email, with their roles."""
    caller = request.state.caller
    services = wiring.get_services()
    try:
        services.policy.require(caller, Action.VIEW_ADMIN_CONSOLE)
        items = services.resolver.visible_profiles(caller)
    except AccessError as exc:
        return _error(exc)
    return _private_response([item.to_dict() for item in items])


@accounts_router.get("/api/hierarchy")
async def get_hierarchy(request: Request):
    caller = request.state.caller
    services = wiring.get_services()
    try:
        services.policy.require(caller, Action.VIEW_HIERARCHY)
        tree = services.resolver.organization_tree()
    except AccessError as exc:
        return _error(exc)
    return _private_response([node.to_dict() for node in tree])
