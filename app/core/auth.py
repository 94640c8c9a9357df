# app/core/auth.py
import uuid
from dataclasses import dataclass
from typing import Any

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError

from app.core.config import get_settings
from app.core.errors import Unauthorized

settings = get_settings()

# HTTP Bearer scheme:
# - auto_error=False => missing Authorization header is reported through
#   our own Unauthorized error so the body keeps the {error, code} shape.
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthContext:
    """Identity of the merchant user behind a request."""

    user_id: uuid.UUID
    business_id: uuid.UUID
    role: str


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and verify a dashboard access token (JWT).

    Verification:
      - signature (JWT_ALG using JWT_SECRET)
      - expiration time (exp), when present

    Raises:
        Unauthorized: if token is invalid/expired.
    """
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALG],
        )
    except JWTError:
        raise Unauthorized("Invalid or expired token")


def context_from_token(token: str) -> AuthContext:
    """
    Build an AuthContext from a raw JWT.

    Tokens must carry `sub` (user id) and `businessId` (tenant id).

    Raises:
        Unauthorized: if claims are missing or malformed.
    """
    payload = decode_access_token(token)
    sub = payload.get("sub")
    business_id = payload.get("businessId")

    if not sub or not business_id:
        raise Unauthorized("Token missing sub/businessId")

    try:
        return AuthContext(
            user_id=uuid.UUID(str(sub)),
            business_id=uuid.UUID(str(business_id)),
            role=str(payload.get("role") or "OWNER"),
        )
    except ValueError:
        raise Unauthorized("Invalid identifiers in token")


def require_merchant(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> AuthContext:
    """
    Enforce an authenticated merchant user (owner, staff or dispatcher).

    Returns:
        The AuthContext scoped to the token's business.

    Raises:
        Unauthorized: if the header is missing or the token is invalid.
    """
    if credentials is None:
        raise Unauthorized()
    return context_from_token(credentials.credentials)
