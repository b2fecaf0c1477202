"""
Platform auth admin adapter: error translation and session lookup.
"""
from __future__ import annotations

import time

import pytest
from jose import jwt

from identity_access.admin_client import SupabaseAuthAdmin
from identity_access.errors import NotFound, OperationFailed, Unauthorized
from utils.fake_supabase import FakeSupabaseClient


def test_create_user_confirms_email_and_defaults_full_name():
    client = FakeSupabaseClient()
    account = SupabaseAuthAdmin(client).create_user(email="a@x.com", password="secret1", full_name="")
    (attrs,) = client.created
    assert attrs["email_confirm"] is True
    assert attrs["user_metadata"] == {"full_name": "a@x.com"}
    assert account.email == "a@x.com"
    assert account.id


def test_create_user_rejection_becomes_operation_failed():
    client = FakeSupabaseClient()
    client.create_error = "A user with this email address has already been registered"
    with pytest.raises(OperationFailed) as exc:
        SupabaseAuthAdmin(client).create_user(email="a@x.com", password="secret1", full_name="A")
    assert exc.value.status_code == 400
    assert "already been registered" in exc.value.message


def test_delete_unknown_user_is_not_found():
    client = FakeSupabaseClient()
    client.missing_users.add("ghost")
    with pytest.raises(NotFound):
        SupabaseAuthAdmin(client).delete_user("ghost")


def test_delete_other_failure_is_operation_failed():
    client = FakeSupabaseClient()
    client.delete_error = "boom"
    with pytest.raises(OperationFailed):
        SupabaseAuthAdmin(client).delete_user("u1")


def test_verify_session_via_auth_service():
    client = FakeSupabaseClient()
    client.sessions["tok"] = ("u1", "u1@x.com")
    admin = SupabaseAuthAdmin(client)
    caller = admin.verify_session("tok")
    assert (caller.id, caller.email) == ("u1", "u1@x.com")
    with pytest.raises(Unauthorized):
        admin.verify_session("nope")
    with pytest.raises(Unauthorized):
        admin.verify_session("")


def test_verify_session_locally_when_secret_configured():
    secret = "local-jwt-secret-0123456789abcdef"
    now = int(time.time())
    token = jwt.encode({"sub": "u9", "aud": "authenticated", "iat": now, "exp": now + 60}, secret, algorithm="HS256")
    client = FakeSupabaseClient()
    admin = SupabaseAuthAdmin(client, jwt_secret=secret)
    assert admin.verify_session(token).id == "u9"
    with pytest.raises(Unauthorized) as exc:
        admin.verify_session(token + "x")
    assert exc.value.code == "invalid_access_token"
