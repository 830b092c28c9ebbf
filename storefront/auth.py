"""
Authentication and authorization utilities for the Storefront service.

Validates JWT tokens issued by the identity provider and exposes FastAPI
dependencies for the Customer, CustomerService and StoreOwner roles.
"""
import logging
from jose import JWTError, jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel

from .config import SECRET_KEY, ALGORITHM
from .models import UserRole

logger = logging.getLogger(__name__)

# Security scheme for JWT bearer tokens
security = HTTPBearer()

STAFF_ROLES = (UserRole.STORE_OWNER.value, UserRole.CUSTOMER_SERVICE.value)


class CurrentUser(BaseModel):
    """Current authenticated user information."""
    id: int
    email: str
    role: str
    token: str

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    @property
    def is_store_owner(self) -> bool:
        return self.role == UserRole.STORE_OWNER.value


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> CurrentUser:
    """
    FastAPI dependency to get the current authenticated user from JWT token.

    Args:
        credentials: HTTP Authorization credentials (injected)

    Returns:
        Current authenticated user information

    Raises:
        HTTPException: 401 if token is invalid
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        token = credentials.credentials
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        user_id_str: str = payload.get("sub")
        email: str = payload.get("email")
        role: str = payload.get("role")

        if user_id_str is None or email is None or role is None:
            raise credentials_exception

        user_id = int(user_id_str)
        return CurrentUser(id=user_id, email=email, role=role, token=token)
    except (JWTError, ValueError) as e:
        logger.error(f"JWT validation error: {e}")
        raise credentials_exception


def require_staff(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    """
    FastAPI dependency to require a store staff role.

    Raises:
        HTTPException: 403 if user is a customer
    """
    if not current_user.is_staff:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Staff privileges required"
        )
    return current_user


def require_store_owner(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    """
    FastAPI dependency to require the store owner role.

    Args:
        current_user: Current authenticated user (injected)

    Returns:
        Current user if they own the store

    Raises:
        HTTPException: 403 if user is not the store owner
    """
    if not current_user.is_store_owner:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Store owner privileges required"
        )
    return current_user
