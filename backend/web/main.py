"EduTrack access service"
from __future__ import annotations

import logging
import os
import sys as _sys

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from identity_access.errors import AccessError

try:
    from auth_utils import bearer_token  # type: ignore
except ImportError:  # pragma: no cover - package layout
    from backend.web.auth_utils import bearer_token  # type: ignore

# Ensure imports consistently reference the same module instance.
if __name__ == "main":
    _sys.modules.setdefault("backend.web.main", _sys.modules[__name__])
elif __name__ == "backend.web.main":
    _sys.modules["main"] = _sys.modules[__name__]


def _should_load_dotenv() -> bool:
    """Decide if we should load a local .env file.

    - Never load under pytest to avoid contaminating test env.
    - Allow explicit opt-out/opt-in via EDUTRACK_ENABLE_DOTENV (default true
      outside pytest).
    """
    if "pytest" in _sys.modules or os.getenv("PYTEST_CURRENT_TEST"):
        return False
    flag = (os.getenv("EDUTRACK_ENABLE_DOTENV", "true") or "").strip().lower()
    return flag in ("1", "true", "yes")


from dotenv import load_dotenv

if _should_load_dotenv():
    load_dotenv()

# Minimal production safety checks (fail-fast on insecure config)
# Support both "flat" (Docker image) and package (repo test) layouts.
try:
    import config as _cfg  # type: ignore
except ImportError:  # pragma: no cover
    from backend.web import config as _cfg  # type: ignore
_cfg.ensure_secure_config_on_startup()

try:
    import wiring  # type: ignore
except ImportError:  # pragma: no cover
    from backend.web import wiring  # type: ignore

logger = logging.getLogger("edutrack.web")

app = FastAPI(title="EduTrack", description="Role and hierarchy access control", version="0.1.0")

from routes.accounts import accounts_router
from routes.admin_users import admin_users_router


def _is_public_path(path: str) -> bool:
    return path in ("/health", "/favicon.ico")


@app.middleware("http")
async def resolve_caller(request: Request, call_next):
    """Resolve the bearer token to a verified caller on `request.state.caller`.

    The caller carries identity only; roles are read per check. `/api/*`
    requires a verified caller here, the RPC endpoint answers 401 itself so
    its response keeps the CORS headers.
    """
    request.state.caller = None
    path = request.url.path
    if request.method == "OPTIONS" or _is_public_path(path):
        return await call_next(request)

    token = bearer_token(request.headers.get("authorization"))
    if token:
        try:
            request.state.caller = wiring.get_services().identity.verify_session(token)
        except AccessError as exc:
            logger.info("Session rejected: %s", exc.code)
        except Exception as exc:
            logger.warning("Session verification failed: %s", exc.__class__.__name__)

    if request.state.caller is None and path.startswith("/api/"):
        headers = {"Cache-Control": "private, no-store"}
        return JSONResponse({"error": "unauthenticated"}, status_code=401, headers=headers)
    return await call_next(request)


# --- Security Headers Middleware ----------------------------------------------

@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    # JSON-only service: nothing may be framed, scripted or embedded.
    response.headers.setdefault("Content-Security-Policy", "default-src 'none'; frame-ancestors 'none'")
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
    response.headers.setdefault("Permissions-Policy", "geolocation=(), microphone=(), camera=()")
    # HSTS: always on (dev = prod)
    response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
    return response


@app.get("/health")
async def health():
    return {"status": "healthy"}


app.include_router(admin_users_router)
app.include_router(accounts_router)
