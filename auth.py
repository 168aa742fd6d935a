"""
Caller identity resolution and the dependencies that expose it to routes.

Three resolvers are available, picked by AUTH_MODE:
- none: trusts an X-User-Id header or userId query parameter (placeholder only)
- token: verified JWT in the Authorization: Bearer header
- session: verified JWT in the auth_token cookie
"""

import logging
from typing import Optional

from fastapi import Depends, Request

from auth_utils import decode_jwt
from config.settings import AUTH_MODE_NONE, AUTH_MODE_SESSION, AUTH_MODE_TOKEN
from utils.errors import AuthenticationError

logger = logging.getLogger(__name__)


class IdentityResolver:
    """Resolves the calling user's id from a request."""

    # Whether the resolved id is proven (signed) rather than claimed
    verified = False

    def resolve(self, request: Request) -> Optional[str]:
        raise NotImplementedError


class NoAuthResolver(IdentityResolver):
    """
    Development placeholder: the caller names itself.
    Not a security boundary.
    """

    def __init__(self, default_user_id: Optional[str] = None):
        self.default_user_id = default_user_id

    def resolve(self, request: Request) -> Optional[str]:
        user_id = request.headers.get("x-user-id") or request.query_params.get("userId")
        return (user_id or "").strip() or self.default_user_id


class _JWTResolver(IdentityResolver):
    verified = True

    def __init__(self, secret_key: str):
        if not secret_key:
            raise ValueError("JWT_SECRET_KEY is required for token or session auth")
        self.secret_key = secret_key

    def _extract_token(self, request: Request) -> Optional[str]:
        raise NotImplementedError

    def resolve(self, request: Request) -> Optional[str]:
        token = self._extract_token(request)
        if not token:
            return None
        payload = decode_jwt(token, self.secret_key)
        if not payload:
            raise AuthenticationError("Invalid or expired token")
        user_id = payload.get("sub")
        if not user_id:
            raise AuthenticationError("Invalid token payload")
        return str(user_id)


class TokenResolver(_JWTResolver):
    """JWT carried as ``Authorization: Bearer <token>``."""

    def _extract_token(self, request: Request) -> Optional[str]:
        authorization = request.headers.get("authorization")
        if authorization and authorization.startswith("Bearer "):
            return authorization[len("Bearer "):].strip() or None
        return None


class SessionResolver(_JWTResolver):
    """JWT carried in the httpOnly ``auth_token`` cookie."""

    def _extract_token(self, request: Request) -> Optional[str]:
        return request.cookies.get("auth_token") or None


def build_identity_resolver(auth_mode: str, jwt_secret_key: Optional[str] = None,
                            default_user_id: Optional[str] = None) -> IdentityResolver:
    mode = (auth_mode or AUTH_MODE_NONE).lower()
    if mode == AUTH_MODE_TOKEN:
        return TokenResolver(jwt_secret_key)
    if mode == AUTH_MODE_SESSION:
        return SessionResolver(jwt_secret_key)
    if mode != AUTH_MODE_NONE:
        raise ValueError(f"Unknown AUTH_MODE: {auth_mode}")
    logger.warning("AUTH_MODE=none: caller identity is taken from the request unverified")
    return NoAuthResolver(default_user_id)


def get_identity_resolver(request: Request) -> IdentityResolver:
    return request.app.state.identity_resolver


async def get_optional_user_id(
    request: Request,
    resolver: IdentityResolver = Depends(get_identity_resolver),
) -> Optional[str]:
    return resolver.resolve(request)


async def get_current_user_id(user_id: Optional[str] = Depends(get_optional_user_id)) -> str:
    """Dependency for routes that must know who is calling."""
    if not user_id:
        raise AuthenticationError("Missing authentication")
    return user_id


def effective_user_id(resolver: IdentityResolver, caller_id: Optional[str],
                      claimed_id: Optional[str]) -> Optional[str]:
    """
    Pick the user id for routes whose body also names a user.
    A claimed id is only honoured when the resolver cannot prove identity.
    """
    if resolver.verified:
        return caller_id
    return claimed_id or caller_id
