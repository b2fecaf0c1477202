"""
Access-token verification (HS256 only, audience and expiry enforced).
"""
from __future__ import annotations

import time

import pytest
from jose import jwt

from identity_access import tokens as tokens_mod
from identity_access.tokens import AccessTokenVerificationError, caller_from_claims, verify_access_token

SECRET = "test-secret-with-enough-entropy-0123456789"


def _token(*, secret: str = SECRET, algorithm: str = "HS256", **overrides) -> str:
    now = int(time.time())
    claims = {"sub": "user-1", "email": "u@x.com", "aud": "authenticated", "iat": now, "exp": now + 300}
    claims.update(overrides)
    claims = {k: v for k, v in claims.items() if v is not None}
    return jwt.encode(claims, secret, algorithm=algorithm)


def test_valid_token_yields_caller_without_roles():
    claims = verify_access_token(token=_token(role="admin"), secret=SECRET)
    caller = caller_from_claims(claims)
    assert caller.id == "user-1"
    assert caller.email == "u@x.com"
    assert not hasattr(caller, "roles")


def test_wrong_secret_is_rejected():
    with pytest.raises(AccessTokenVerificationError) as exc:
        verify_access_token(token=_token(secret="another-secret-0123456789abcdef"), secret=SECRET)
    assert exc.value.code == "invalid_access_token"


def test_other_algorithms_are_rejected():
    with pytest.raises(AccessTokenVerificationError):
        verify_access_token(token=_token(algorithm="HS512"), secret=SECRET)


def test_wrong_audience_is_rejected():
    with pytest.raises(AccessTokenVerificationError):
        verify_access_token(token=_token(aud="anon"), secret=SECRET)


def test_expired_token_is_rejected():
    past = int(time.time()) - 120
    with pytest.raises(AccessTokenVerificationError) as exc:
        verify_access_token(token=_token(iat=past - 60, exp=past), secret=SECRET)
    assert exc.value.code == "token_expired"


def test_missing_exp_or_sub_is_rejected():
    with pytest.raises(AccessTokenVerificationError):
        verify_access_token(token=_token(exp=None), secret=SECRET)
    with pytest.raises(AccessTokenVerificationError) as exc:
        verify_access_token(token=_token(sub=None), secret=SECRET)
    assert exc.value.code == "missing_sub"


def test_empty_token_or_secret_is_rejected():
    with pytest.raises(AccessTokenVerificationError) as exc:
        verify_access_token(token="", secret=SECRET)
    assert exc.value.code == "missing_token"


def test_decode_is_pinned_to_hs256(monkeypatch: pytest.MonkeyPatch):
    seen = {}

    def fake_decode(token, key, algorithms=None, audience=None, options=None):
        seen["algorithms"] = algorithms
        return {"sub": "user-1", "exp": time.time() + 60}

    monkeypatch.setattr(tokens_mod.jwt, "decode", fake_decode)
    verify_access_token(token="x.y.z", secret=SECRET)
    assert seen["algorithms"] == ["HS256"]
