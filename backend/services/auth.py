"""
Authentication Service for Pro Profiles Core

Implements:
- JWT access token issue / decode (python-jose)
- Role model for the three profile actors

Users are registered and logged in by the external identity service, which
signs access tokens with the secret shared with this service. Requests are
only authenticated here, never logged in. `create_access_token` mints tokens
in the same format for internal callers and the test suite. The token carries
the acting professional's id so owner paths never have to look it up.

Roles:
- professional: Owns and edits their own profile
- client: Reviews projects of professionals they hired
- admin: Verifies background checks
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
import logging
from enum import Enum

from jose import JWTError, jwt
from pydantic import BaseModel

from config import get_settings

logger = logging.getLogger(__name__)


# ==================== ENUMS ====================

class UserRole(str, Enum):
    professional = "professional"
    client = "client"
    admin = "admin"


# ==================== MODELS ====================

class TokenData(BaseModel):
    """Data extracted from JWT token"""
    user_id: str
    role: str
    professional_id: Optional[int] = None
    exp: Optional[datetime] = None
    token_type: str = "access"


class AuthUser(BaseModel):
    """Authenticated user context"""
    id: str
    role: str
    professional_id: Optional[int] = None


# ==================== JWT UTILITIES ====================

def create_access_token(
    user_id: str,
    role: str,
    professional_id: Optional[int] = None,
    expires_delta: Optional[timedelta] = None
) -> str:
    """Create a JWT access token in the identity service's claim format"""
    settings = get_settings()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES))

    to_encode = {
        "sub": user_id,
        "role": role,
        "type": "access",
        "exp": expire,
        "iat": now
    }
    if professional_id is not None:
        to_encode["professional_id"] = professional_id

    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Optional[TokenData]:
    """Decode and validate a JWT token"""
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT decode error: {e}")
        return None

    user_id = payload.get("sub")
    role = payload.get("role")
    if not user_id or not role:
        return None

    professional_id = payload.get("professional_id")
    exp = payload.get("exp")
    try:
        return TokenData(
            user_id=str(user_id),
            role=role,
            professional_id=int(professional_id) if professional_id is not None else None,
            token_type=payload.get("type", "access"),
            exp=datetime.fromtimestamp(exp, tz=timezone.utc) if exp else None
        )
    except (TypeError, ValueError) as e:
        logger.warning(f"Malformed token claims: {e}")
        return None
