from typing import Callable

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from workorbit.core.database import get_db
from workorbit.core.enums import UserRole, UserStatus
from workorbit.core.exceptions import (
    AuthenticationError,
    InsufficientPermissionsError,
    ResourceInactiveError
)
from workorbit.core.security import get_user_id_from_token
from workorbit.auth.service import AuthService
from workorbit.auth.models import User

# Security scheme
security = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """Get current authenticated user."""
    if credentials is None:
        raise AuthenticationError("Not authenticated")

    user_id = get_user_id_from_token(credentials.credentials)

    user = AuthService(db).get_user_by_id(user_id)
    if not user:
        raise AuthenticationError("User not found")

    if UserStatus(user.status) is UserStatus.INACTIVE:
        raise ResourceInactiveError("User", str(user.id))

    return user


def require_roles(*roles: UserRole) -> Callable[..., User]:
    """Dependency factory admitting only users holding one of ``roles``."""
    allowed = {UserRole(role) for role in roles}

    def dependency(current_user: User = Depends(get_current_user)) -> User:
        if UserRole(current_user.role) not in allowed:
            raise InsufficientPermissionsError(
                detail="Not enough permissions",
                error_data={
                    "required_roles": sorted(role.value for role in allowed),
                    "user_role": UserRole(current_user.role).value
                }
            )
        return current_user

    return dependency


get_current_approver = require_roles(UserRole.ADMIN, UserRole.HR)
