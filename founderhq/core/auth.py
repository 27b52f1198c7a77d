"""
Auth utilities for the FounderHQ API.

Validates bearer JWTs issued by the hosted auth provider and extracts the
user id from the `sub` claim. Every protected route resolves the caller here
before any entitlement logic runs.
"""
from fastapi import Request
from typing import Optional
import jwt
import logging

from founderhq.core.config import settings
from founderhq.core.errors import UnauthorizedError

logger = logging.getLogger("founderhq")


def verify_jwt(token: str, secret: Optional[str] = None, audience: Optional[str] = None) -> str:
    """
    Verify a bearer JWT and extract user_id.

    Args:
        token: JWT from the Authorization header
        secret: HS256 shared secret (defaults to AUTH_JWT_SECRET)
        audience: expected `aud` claim (defaults to AUTH_JWT_AUDIENCE)

    Returns:
        user_id from the token's `sub` claim

    Raises:
        UnauthorizedError: invalid, expired or unverifiable token
    """
    key = secret or settings.AUTH_JWT_SECRET
    if not key:
        logger.error("[auth] AUTH_JWT_SECRET not configured; rejecting token")
        raise UnauthorizedError("Authentication is not configured")

    aud = audience if audience is not None else settings.AUTH_JWT_AUDIENCE
    options = {"verify_signature": True, "verify_exp": True, "verify_aud": bool(aud)}

    try:
        payload = jwt.decode(
            token,
            key,
            algorithms=["HS256"],
            audience=aud or None,
            options=options,
        )
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Token expired")
    except jwt.InvalidTokenError as e:
        logger.debug(f"[auth] invalid token: {e}")
        raise UnauthorizedError("Invalid token")

    user_id = payload.get("sub")
    if not user_id or not isinstance(user_id, str):
        raise UnauthorizedError("Token has no subject")
    return user_id


def extract_bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise UnauthorizedError("Missing Authorization header")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise UnauthorizedError("Malformed Authorization header")
    return token.strip()


async def get_current_user_id(request: Request) -> str:
    """
    FastAPI dependency resolving the authenticated user id.

    Raises:
        UnauthorizedError (401): missing or malformed bearer token
    """
    token = extract_bearer_token(request.headers.get("Authorization"))
    user_id = verify_jwt(token)
    request.state.user_id = user_id
    return user_id
