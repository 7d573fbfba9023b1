"""
Authentication Middleware and Dependencies

Provides:
- get_current_user_required: Extract and validate user from JWT token
- RoleChecker: Dependency for role validation
- get_acting_professional_id: Resolve the professional an owner path acts for
"""

from typing import List
import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from services.auth import decode_token, AuthUser, UserRole
from logging_config import set_request_context
from sentry_integration import set_user

logger = logging.getLogger(__name__)

# Security scheme
security = HTTPBearer(auto_error=False)


# ==================== DEPENDENCIES ====================

def _authenticate(credentials: HTTPAuthorizationCredentials) -> AuthUser:
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"}
        )

    token_data = decode_token(credentials.credentials)

    if not token_data:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"}
        )

    if token_data.token_type != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type",
            headers={"WWW-Authenticate": "Bearer"}
        )

    user = AuthUser(
        id=token_data.user_id,
        role=token_data.role,
        professional_id=token_data.professional_id
    )
    set_request_context(user_id=user.id)
    set_user(user.id, user.role)
    return user


async def get_current_user_required(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> AuthUser:
    """
    Extract current user from JWT token.
    Raises 401 if no token or invalid token.
    """
    return _authenticate(credentials)


class RoleChecker:
    """
    Dependency class for role-based access control.

    Usage:
        @router.post("/verify")
        async def verify(user: AuthUser = Depends(RoleChecker(["admin"]))):
            ...
    """

    def __init__(self, allowed_roles: List[str]):
        self.allowed_roles = allowed_roles

    async def __call__(
        self,
        credentials: HTTPAuthorizationCredentials = Depends(security)
    ) -> AuthUser:
        user = _authenticate(credentials)

        if user.role not in self.allowed_roles:
            logger.warning(f"Role {user.role} denied; required {self.allowed_roles}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required roles: {self.allowed_roles}"
            )

        return user


# Convenience role checkers
require_admin = RoleChecker([UserRole.admin.value])
require_client = RoleChecker([UserRole.client.value])
require_professional = RoleChecker([UserRole.professional.value])


async def get_acting_professional_id(
    user: AuthUser = Depends(require_professional)
) -> int:
    """The professional every owner path acts on, taken from the token"""
    if user.professional_id is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Token is not bound to a professional profile"
        )
    return user.professional_id
