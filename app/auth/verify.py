"""
verify.py
---------
Bearer-token verification against the Supabase JWKS endpoint.

Routes depend on ``auth_dependency`` and read the caller's user id from the
``sub`` claim of the returned payload.
"""

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import PyJWKClient

from app.config import settings

SUPABASE_AUDIENCE = "authenticated"
ALLOWED_ALGORITHMS = ["ES256", "RS256"]

_security = HTTPBearer()
_jwk_client: PyJWKClient | None = None


def _get_jwk_client() -> PyJWKClient:
    global _jwk_client
    if _jwk_client is None:
        _jwk_client = PyJWKClient(settings.jwks_url(), cache_keys=True)
    return _jwk_client


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def verify_jwt(token: str) -> dict:
    """Decode and validate a Supabase access token, returning its claims."""
    try:
        signing_key = _get_jwk_client().get_signing_key_from_jwt(token)
        return jwt.decode(
            token,
            signing_key.key,
            algorithms=ALLOWED_ALGORITHMS,
            audience=SUPABASE_AUDIENCE,
            options={"verify_exp": True, "require": ["exp", "sub"]},
        )
    except jwt.PyJWKClientError as e:
        raise _unauthorized(f"Signing key unavailable: {e}") from e
    except jwt.InvalidTokenError as e:
        raise _unauthorized(f"Invalid authentication token: {e}") from e


def auth_dependency(credentials: HTTPAuthorizationCredentials = Depends(_security)) -> dict:
    return verify_jwt(credentials.credentials)
