"""
Shared authentication utilities for the web adapters.

Why:
    Avoid duplicating bearer-token parsing and CORS header policy across the
    middleware and the RPC endpoint.

Design:
    The helpers are pure: they accept raw header values or environment strings
    and return plain values. Callers decide where those come from.
"""

from __future__ import annotations

import os


def bearer_token(authorization: str | None) -> str | None:
    """Extract the token from an `Authorization: Bearer <token>` header.

    Returns None for a missing header, another scheme, or an empty token.
    """
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    token = token.strip()
    return token or None


def cors_headers() -> dict:
    """Permissive CORS headers for browser clients calling the RPC endpoint."""
    origin = (os.getenv("CORS_ALLOW_ORIGIN") or "*").strip() or "*"
    headers = {
        "Access-Control-Allow-Origin": origin,
        "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
        "Access-Control-Allow-Methods": "POST, OPTIONS",
    }
    if origin != "*":
        headers["Vary"] = "Origin"
    return headers
