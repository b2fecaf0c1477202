"""Packaging sanity checks for import paths.

Ensures the access modules are importable under the package layout used by
the CLI (`python -m backend.tools...`) as well as the flat layout of the web
app.
"""
from importlib import import_module


def test_import_backend_grant_roles_cli():
    mod = import_module("backend.tools.grant_roles")
    assert hasattr(mod, "cli")


def test_import_flat_identity_access_policy():
    mod = import_module("identity_access.policy")
    assert hasattr(mod, "AccessPolicy")
