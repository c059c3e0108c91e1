"""auth.py — Cognito bearer-token authentication and the admin gate.

Reads ``Authorization: Bearer <token>``, validates the RS256 access token
against the Cognito User Pool JWKS (cached module-level), and checks
``token_use`` / ``client_id`` / issuer / expiry.

Two policies are configurable (see ``config``):
    AUTH_UNCONFIGURED_POLICY   what to do when no user pool is configured.
                               ``allow`` authenticates every bearer as a
                               development user and is a default-open risk.
    ADMIN_EMPTY_GROUPS_POLICY  ``allow`` treats a token without a
                               ``cognito:groups`` claim as admin (legacy
                               behavior); ``deny`` requires one of
                               ADMIN_GROUPS.
"""
from __future__ import annotations

import json
import time
import urllib.request
from typing import Any, Dict, Optional

import jwt
from jwt.algorithms import RSAAlgorithm

from .config import (
    ADMIN_EMPTY_GROUPS_POLICY,
    ADMIN_GROUPS,
    AUTH_UNCONFIGURED_POLICY,
    COGNITO_CLIENT_ID,
    COGNITO_USER_POOL_ID,
    logger,
)
from .errors import AuthenticationError, AuthorizationError

__all__ = [
    "UnverifiedClaims",
    "_JWKS_TTL",
    "_extract_token",
    "_get_jwks",
    "_verify_token",
    "authenticate",
    "is_admin",
    "require_admin",
    "user_info",
]


class UnverifiedClaims(dict):
    """Placeholder claims for a request let through without verification.

    Only returned by ``authenticate`` when Cognito is unconfigured and
    ``AUTH_UNCONFIGURED_POLICY`` is ``allow``.
    """


# ---------------------------------------------------------------------------
# JWKS cache
# ---------------------------------------------------------------------------

_jwks_cache: Dict[str, Any] = {}
_jwks_fetched_at: float = 0.0
_JWKS_TTL = 3600.0


def _issuer() -> str:
    region = COGNITO_USER_POOL_ID.split("_")[0]
    return f"https://cognito-idp.{region}.amazonaws.com/{COGNITO_USER_POOL_ID}"


def _get_jwks() -> Dict[str, Any]:
    """Fetch (and cache) Cognito User Pool JWKS."""
    global _jwks_cache, _jwks_fetched_at
    now = time.time()
    if _jwks_cache and (now - _jwks_fetched_at) < _JWKS_TTL:
        return _jwks_cache

    if not COGNITO_USER_POOL_ID:
        raise ValueError("COGNITO_USER_POOL_ID not set")

    with urllib.request.urlopen(f"{_issuer()}/.well-known/jwks.json", timeout=5) as resp:
        data = json.loads(resp.read())

    new_cache: Dict[str, Any] = {}
    for key_data in data.get("keys", []):
        new_cache[key_data["kid"]] = RSAAlgorithm.from_jwk(json.dumps(key_data))

    _jwks_cache = new_cache
    _jwks_fetched_at = now
    return _jwks_cache


# ---------------------------------------------------------------------------
# Token handling
# ---------------------------------------------------------------------------


def _extract_token(event: Dict[str, Any]) -> Optional[str]:
    """Return the bearer token, ``""`` for a malformed header, None when absent."""
    headers = event.get("headers") or {}
    auth_header = headers.get("authorization") or headers.get("Authorization")
    if not auth_header:
        return None
    parts = auth_header.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        return ""
    return parts[1]


def _verify_token(token: str) -> Dict[str, Any]:
    """Verify a Cognito access token (RS256). Returns decoded claims dict."""
    if not COGNITO_CLIENT_ID:
        raise ValueError("COGNITO_CLIENT_ID not set")

    try:
        header = jwt.get_unverified_header(token)
    except jwt.PyJWTError as exc:
        raise ValueError(f"Invalid token header: {exc}") from exc

    alg = header.get("alg", "RS256")
    if alg != "RS256":
        raise ValueError(f"Unexpected token algorithm: {alg}")

    key = _get_jwks().get(header.get("kid"))
    if key is None:
        raise ValueError("Token key ID not found in JWKS")

    try:
        claims = jwt.decode(
            token,
            key,
            algorithms=["RS256"],
            issuer=_issuer(),
            # Access tokens carry client_id instead of aud.
            options={"verify_exp": True, "verify_aud": False, "require": ["exp", "iss"]},
        )
    except jwt.ExpiredSignatureError:
        raise ValueError("Token expired")
    except jwt.InvalidIssuerError:
        raise ValueError("Token issuer mismatch")
    except jwt.PyJWTError as exc:
        raise ValueError(f"Token validation failed: {exc}") from exc

    if claims.get("token_use") != "access":
        raise ValueError("Token is not an access token")
    if claims.get("client_id") != COGNITO_CLIENT_ID:
        raise ValueError("Token client mismatch")
    return claims


def authenticate(event: Dict[str, Any]) -> Dict[str, Any]:
    """Return verified claims or raise ``AuthenticationError``."""
    token = _extract_token(event)
    if token is None:
        raise AuthenticationError("Missing Authorization header")
    if not token:
        raise AuthenticationError("Invalid Authorization header format")

    if not COGNITO_USER_POOL_ID:
        if AUTH_UNCONFIGURED_POLICY == "allow":
            logger.warning("Cognito not configured, allowing request without verification (default-open)")
            return UnverifiedClaims({"sub": "unverified", "cognito:username": "unverified"})
        logger.error("Cognito not configured; rejecting request (AUTH_UNCONFIGURED_POLICY=deny)")
        raise AuthenticationError("Authentication is not configured")

    try:
        return _verify_token(token)
    except ValueError as exc:
        logger.warning("auth failed: %s", exc)
        raise AuthenticationError("Invalid or expired token") from exc


# ---------------------------------------------------------------------------
# Admin gate
# ---------------------------------------------------------------------------


def is_admin(claims: Dict[str, Any]) -> bool:
    if isinstance(claims, UnverifiedClaims):
        return True
    groups = claims.get("cognito:groups") or []
    if isinstance(groups, str):
        groups = [groups]
    if not groups:
        if ADMIN_EMPTY_GROUPS_POLICY == "allow":
            logger.warning("admin granted to %s without group membership (legacy policy)", claims.get("sub"))
            return True
        return False
    return any(group in ADMIN_GROUPS for group in groups)


def require_admin(event: Dict[str, Any]) -> Dict[str, Any]:
    claims = authenticate(event)
    if not is_admin(claims):
        raise AuthorizationError("Admin access required")
    return claims


def user_info(claims: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "sub": claims.get("sub"),
        "email": claims.get("email"),
        "username": claims.get("cognito:username") or claims.get("username"),
        "groups": list(claims.get("cognito:groups") or []),
    }
