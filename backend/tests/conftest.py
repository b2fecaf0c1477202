"""
Pytest configuration for backend tests.

Why: Force AnyIO to use the asyncio backend to avoid sandbox restrictions
that can affect the Trio backend (e.g., socketpair permission errors), and
give every test a fresh in-memory set of access collaborators.
"""
import os
import sys
from pathlib import Path

import pytest

# Module import runs the startup guard; tests always start in dev.
os.environ["EDUTRACK_ENV"] = "dev"
os.environ.pop("ACCESS_BACKEND", None)

# Ensure modules in backend/ and backend/web are importable across tests
REPO_ROOT = Path(__file__).resolve().parents[2]
BACKEND_DIR = REPO_ROOT / "backend"
WEB_DIR = BACKEND_DIR / "web"
TESTS_DIR = BACKEND_DIR / "tests"
for p in (str(REPO_ROOT), str(BACKEND_DIR), str(WEB_DIR), str(TESTS_DIR)):
    if p not in sys.path:
        sys.path.insert(0, p)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _clean_access_env(monkeypatch: pytest.MonkeyPatch):
    """Drop deployment settings that would change wiring or the config guard."""
    monkeypatch.setenv("EDUTRACK_ENV", "dev")
    for name in (
        "ACCESS_BACKEND",
        "SUPABASE_URL",
        "SUPABASE_SERVICE_ROLE_KEY",
        "SUPABASE_JWT_SECRET",
        "DATABASE_URL",
        "ACCESS_DATABASE_URL",
        "SUPABASE_DB_URL",
        "CORS_ALLOW_ORIGIN",
    ):
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def services():
    """Fresh in-memory collaborators wired into the app for one test."""
    import wiring  # type: ignore

    svc = wiring.build_memory_services()
    wiring.set_services(svc)
    yield svc
    wiring.set_services(None)
