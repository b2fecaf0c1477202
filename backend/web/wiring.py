"""
Wiring of the access-control collaborators (stores, identity, policy).

Why:
    Routes need one consistent set of collaborators per process. This module
    builds them from the environment (`ACCESS_BACKEND`) and lets tests swap in
    their own set via `set_services`.

Backends:
    - memory: in-memory stores and identity (dev/tests only)
    - db: psycopg Role Store/Directory; platform auth for accounts and sessions
    - supabase: everything through the platform client (REST)

Security:
    Requires SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY for `db`/`supabase`.
    Only server-side clients are created; no secrets reach responses.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional
import logging
import os

from identity_access.hierarchy import HierarchyResolver
from identity_access.operator import PrivilegedAccountOperator
from identity_access.policy import AccessPolicy
from identity_access.ports import DirectoryProtocol, IdentityProviderProtocol, RoleStoreProtocol
from identity_access.stores import InMemoryDirectory, InMemoryIdentity, InMemoryRoleStore

try:
    import config as _cfg  # type: ignore
except ImportError:  # pragma: no cover - package layout
    from backend.web import config as _cfg  # type: ignore

logger = logging.getLogger("edutrack.web")


@dataclass
class Services:
    role_store: RoleStoreProtocol
    directory: DirectoryProtocol
    identity: IdentityProviderProtocol
    policy: AccessPolicy
    resolver: HierarchyResolver
    operator: PrivilegedAccountOperator


def assemble(*, role_store: RoleStoreProtocol, directory: DirectoryProtocol, identity: IdentityProviderProtocol) -> Services:
    policy = AccessPolicy(role_store)
    return Services(
        role_store=role_store,
        directory=directory,
        identity=identity,
        policy=policy,
        resolver=HierarchyResolver(role_store, directory),
        operator=PrivilegedAccountOperator(
            identity=identity, role_store=role_store, directory=directory, policy=policy
        ),
    )


def build_memory_services() -> Services:
    roles = InMemoryRoleStore()
    directory = InMemoryDirectory()
    return assemble(role_store=roles, directory=directory, identity=InMemoryIdentity(directory, roles))


def _platform_client() -> Any:
    url = (os.getenv("SUPABASE_URL") or "").strip()
    key = (os.getenv("SUPABASE_SERVICE_ROLE_KEY") or "").strip()
    if not url or not key:
        raise RuntimeError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required")
    # Lazy import keeps the optional dependency out of memory-backed runs.
    from supabase import create_client  # type: ignore

    return create_client(url, key)


def build_services(backend: Optional[str] = None) -> Services:
    """Build collaborators for the configured backend.

    Outside production a failing backend degrades to the in-memory stores with
    a warning; in production the error propagates and startup aborts.
    """
    backend = (backend or _cfg.access_backend()).lower()
    if backend == "memory":
        return build_memory_services()
    try:
        from identity_access.admin_client import SupabaseAuthAdmin

        client = _platform_client()
        identity = SupabaseAuthAdmin(client, jwt_secret=os.getenv("SUPABASE_JWT_SECRET"))
        if backend == "db":
            from identity_access.stores_db import DBDirectory, DBRoleStore

            services = assemble(role_store=DBRoleStore(), directory=DBDirectory(), identity=identity)
        elif backend == "supabase":
            from identity_access.stores_supabase import SupabaseDirectory, SupabaseRoleStore

            services = assemble(
                role_store=SupabaseRoleStore(client),
                directory=SupabaseDirectory(client),
                identity=identity,
            )
        else:
            raise RuntimeError(f"unknown ACCESS_BACKEND '{backend}'")
    except Exception as exc:
        if _cfg.is_prod_like():
            raise
        logger.warning("Access backend '%s' unavailable (%s: %s); using in-memory stores", backend, exc.__class__.__name__, exc)
        return build_memory_services()
    logger.info("Access backend '%s' wired", backend)
    return services


_SERVICES: Optional[Services] = None


def get_services() -> Services:
    global _SERVICES
    if _SERVICES is None:
        _SERVICES = build_services()
    return _SERVICES


def set_services(services: Optional[Services]) -> None:
    """Allow tests to swap the collaborators (None rebuilds lazily)."""
    global _SERVICES
    _SERVICES = services


__all__ = ["Services", "assemble", "build_services", "build_memory_services", "get_services", "set_services"]
