"""
Authentication for the admin back office
Bearer tokens issued by the shared AuthService; every admin route requires
the admin role.
"""

from typing import Optional, Tuple

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from services.registry import get_services
from utils.config import Config
from utils.errors import AuthorizationError, LoginRequiredError
from utils.models import User

ACCESS_TOKEN_EXPIRE_MINUTES = Config.SESSION_TTL_MINUTES

security = HTTPBearer(auto_error=False)


def authenticate_user(username: str, password: str) -> Optional[Tuple[str, User]]:
    """Returns (token, user) for valid admin credentials, otherwise None"""
    try:
        token, user = get_services().auth.login(username, password)
    except AuthorizationError:
        return None
    if not user.is_admin:
        get_services().auth.logout(token)
        return None
    return token, user


def verify_token(credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)) -> User:
    """Dependency: the admin user behind the bearer token"""
    token = credentials.credentials if credentials else None
    try:
        return get_services().auth.require_admin(token)
    except LoginRequiredError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except AuthorizationError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator role required",
        )
