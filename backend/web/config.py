"""
Configuration and startup security checks for EduTrack.

Why: The access service holds the platform's Service Role key, which bypasses
row-level security. A misconfigured production deployment must refuse to
start instead of running with dummy keys or in-memory role data.

Permissions: The caller needs no special privileges. The function simply reads
environment variables and raises `SystemExit` on fatal misconfiguration.
"""
from __future__ import annotations

import os


def is_prod_like(env: str | None = None) -> bool:
    env_l = (env if env is not None else os.getenv("EDUTRACK_ENV", "dev") or "").lower()
    return env_l in {"prod", "production", "stage", "staging"}


def access_backend() -> str:
    return (os.getenv("ACCESS_BACKEND") or "memory").strip().lower()


def ensure_secure_config_on_startup() -> None:
    """Fail fast on insecure production configuration.

    Checks (prod/staging only; development remains permissive):
    - SUPABASE_SERVICE_ROLE_KEY is set and not a known dummy placeholder.
    - SUPABASE_URL uses https.
    - DATABASE_URL does not disable TLS.
    - ACCESS_BACKEND is not the in-memory store.
    """

    if not is_prod_like():
        return  # dev/test remain permissive

    # 1) Service Role key
    srole = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "").strip()
    if not srole or srole.upper() == "DUMMY_DO_NOT_USE":
        raise SystemExit(
            "Refusing to start: SUPABASE_SERVICE_ROLE_KEY is unset or a dummy placeholder in production."
        )

    # 2) Platform endpoint must use HTTPS
    url = (os.getenv("SUPABASE_URL", "") or "").strip().lower()
    if not url:
        raise SystemExit("Refusing to start: SUPABASE_URL is unset in production.")
    if url.startswith("http://"):
        raise SystemExit("Refusing to start: SUPABASE_URL must use https in production (got http).")

    # 3) Postgres TLS: basic guard to avoid explicit disable
    dsn = os.getenv("DATABASE_URL", "")
    if "sslmode=disable" in dsn:
        raise SystemExit(
            "Refusing to start: DATABASE_URL contains sslmode=disable in production. Use sslmode=require or verify TLS."
        )

    # 4) Roles must come from a durable store
    backend = access_backend()
    if backend == "memory":
        raise SystemExit(
            "Refusing to start: ACCESS_BACKEND=memory is not allowed in production/staging. Use 'db' or 'supabase'."
        )
    if backend not in {"db", "supabase"}:
        raise SystemExit(f"Refusing to start: unknown ACCESS_BACKEND '{backend}'.")
