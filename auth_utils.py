"""
Authentication utilities: JWT token management
"""

import jwt
from datetime import datetime, timedelta, timezone
from typing import Optional

# JWT configuration
ALGORITHM = "HS256"
TOKEN_LIFETIME = timedelta(days=7)


def create_jwt(user_id: str, secret_key: str, lifetime: timedelta = TOKEN_LIFETIME) -> str:
    """Create a JWT token for a user"""
    if not secret_key:
        raise ValueError("JWT_SECRET_KEY is not set. Cannot create JWT token.")

    payload = {
        "sub": user_id,
        "exp": datetime.now(timezone.utc) + lifetime,
    }
    return jwt.encode(payload, secret_key, algorithm=ALGORITHM)


def decode_jwt(token: str, secret_key: str) -> Optional[dict]:
    """Decode a JWT token. Returns None if invalid."""
    if not secret_key:
        raise ValueError("JWT_SECRET_KEY is not set. Cannot decode JWT token.")

    try:
        return jwt.decode(token, secret_key, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None
