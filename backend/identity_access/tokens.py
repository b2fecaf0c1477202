"""
Session token verification for platform-issued access tokens.

Why: Resolving a bearer token to a verified caller is the first step of every
authorization decision. When the project's JWT secret is configured the token
is validated locally (signature, audience, expiry) instead of a network round
trip to the auth service.

Security: Only HS256 is accepted; the `alg` header of the token is ignored so
a forged `none`/RS256 token cannot downgrade verification. Claims other than
`sub` and `email` are not trusted for authorization (roles are never read from
the token).
"""
from __future__ import annotations

from typing import Dict
import time

from jose import jwt
from jose.exceptions import JOSEError

from .domain import Caller


class AccessTokenVerificationError(Exception):
    """Raised when the access token fails verification."""

    def __init__(self, code: str):
        super().__init__(code)
        self.code = code


DEFAULT_AUDIENCE = "authenticated"
MAX_CLOCK_SKEW_SECONDS = 5  # Allow minimal skew between servers


def verify_access_token(*, token: str, secret: str, audience: str = DEFAULT_AUDIENCE) -> Dict[str, object]:
    """Validate an access token with the shared secret and return its claims.

    Raises
    ------
    AccessTokenVerificationError:
        When the token is malformed, wrongly signed, for another audience,
        expired, or lacks a subject.
    """
    if not token or not secret:
        raise AccessTokenVerificationError("missing_token")
    try:
        claims = jwt.decode(
            token,
            secret,
            algorithms=["HS256"],
            audience=audience,
            options={
                "verify_signature": True,
                "verify_aud": True,
                "verify_exp": False,
                "verify_iat": False,
                "verify_nbf": False,
            },
        )
    except JOSEError as exc:
        raise AccessTokenVerificationError("invalid_access_token") from exc

    _validate_temporal_claims(claims)
    sub = claims.get("sub")
    if not isinstance(sub, str) or not sub:
        raise AccessTokenVerificationError("missing_sub")
    return claims


def caller_from_claims(claims: Dict[str, object]) -> Caller:
    email = claims.get("email")
    return Caller(id=str(claims["sub"]), email=email if isinstance(email, str) else "")


def _validate_temporal_claims(claims: Dict[str, object]) -> None:
    now = time.time()
    exp = claims.get("exp")
    if not isinstance(exp, (int, float)):
        raise AccessTokenVerificationError("invalid_access_token")
    if exp + MAX_CLOCK_SKEW_SECONDS < now:
        raise AccessTokenVerificationError("token_expired")

    iat = claims.get("iat")
    if isinstance(iat, (int, float)) and iat - MAX_CLOCK_SKEW_SECONDS > now:
        raise AccessTokenVerificationError("invalid_access_token")

    nbf = claims.get("nbf")
    if isinstance(nbf, (int, float)) and nbf - MAX_CLOCK_SKEW_SECONDS > now:
        raise AccessTokenVerificationError("invalid_access_token")


__all__ = [
    "AccessTokenVerificationError",
    "verify_access_token",
    "caller_from_claims",
    "DEFAULT_AUDIENCE",
]
