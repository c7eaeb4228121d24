import logging
from typing import Annotated, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..database import SessionDep
from ..exceptions import AppError, AuthenticationError
from ..users.models import User, UserRole
from . import permissions
from . import service as auth_service

logger = logging.getLogger(__name__)

# auto_error=False so a missing header reaches us and gets the envelope error
bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    db: SessionDep,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> User:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Access token is required")
    return await auth_service.resolve_user(db, credentials.credentials)


async def get_optional_user(
    db: SessionDep,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[User]:
    """Like get_current_user, but any failure just means an anonymous caller."""
    if credentials is None or not credentials.credentials:
        return None
    try:
        return await auth_service.resolve_user(db, credentials.credentials)
    except AppError as e:
        logger.debug(f"Optional authentication ignored: {e.message}")
        return None


CurrentUser = Annotated[User, Depends(get_current_user)]
OptionalUser = Annotated[Optional[User], Depends(get_optional_user)]


def require_roles(*roles: UserRole):
    """
    Dependency factory: the caller must be authenticated and hold one of `roles`.
    Raises 403 otherwise.
    """
    async def _checker(current_user: CurrentUser) -> User:
        permissions.ensure_role(current_user, roles)
        return current_user

    return _checker


require_admin = require_roles(UserRole.ADMIN)
require_staff = require_roles(UserRole.ADMIN, UserRole.EDITOR)

AdminUser = Annotated[User, Depends(require_admin)]
StaffUser = Annotated[User, Depends(require_staff)]
