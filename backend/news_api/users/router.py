import logging
from typing import Optional

from fastapi import APIRouter, Depends, status

from ..auth import permissions
from ..auth.dependencies import AdminUser, CurrentUser, StaffUser
from ..database import SessionDep
from ..dependencies import path_id
from ..exceptions import NotFoundError
from ..models import respond
from ..pagination import ListParams, list_params
from . import service as user_service
from .models import UserRole
from .schema import AdminUserCreate, PasswordReset, UserList, UserPublic, UserResult, UserUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


def _user_result(user: dict) -> UserResult:
    return UserResult(user=UserPublic.model_validate(user))


@router.get("")
async def list_users(
    db: SessionDep,
    _staff: StaffUser,
    params: ListParams = Depends(list_params),
    role: Optional[UserRole] = None,
    is_active: Optional[bool] = None,
):
    page = await user_service.list_users(db, params, {"role": role, "is_active": is_active})
    return respond(UserList(users=page.items, pagination=page.pagination))


@router.get("/{id}")
async def get_user(db: SessionDep, _staff: StaffUser, user_id: int = Depends(path_id())):
    user = await user_service.get_user_by_id(db, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return respond(_user_result(user))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_user(body: AdminUserCreate, db: SessionDep, admin: AdminUser):
    user = await user_service.create_user(db, body, role=body.role)
    logger.info(f"New user created by admin: {user['email']}")
    return respond(_user_result(user), message="User created successfully", status_code=status.HTTP_201_CREATED)


@router.put("/{id}")
async def update_user(
    body: UserUpdate,
    db: SessionDep,
    current_user: CurrentUser,
    user_id: int = Depends(path_id()),
):
    permissions.ensure_can_update_user(current_user, user_id)
    if await user_service.get_user_by_id(db, user_id) is None:
        raise NotFoundError("User not found")

    changes = permissions.restrict_user_update(current_user, user_id, body.model_dump(exclude_unset=True))
    user = await user_service.update_user(db, user_id, changes)
    logger.info(f"User updated: {user['email']} by {current_user.email}")
    return respond(_user_result(user), message="User updated successfully")


@router.delete("/{id}")
async def delete_user(db: SessionDep, admin: AdminUser, user_id: int = Depends(path_id())):
    permissions.ensure_not_self(admin, user_id, "You cannot delete your own account")
    user = await user_service.get_user_by_id(db, user_id)
    if user is None:
        raise NotFoundError("User not found")

    if not await user_service.delete_user(db, user_id):
        raise NotFoundError("User not found")
    logger.info(f"User deleted: {user['email']} by {admin.email}")
    return respond(message="User deleted successfully")


@router.patch("/{id}/toggle-status")
async def toggle_user_status(db: SessionDep, admin: AdminUser, user_id: int = Depends(path_id())):
    permissions.ensure_not_self(admin, user_id, "You cannot change your own status")
    user = await user_service.toggle_user_status(db, user_id)
    state = "activated" if user["is_active"] else "deactivated"
    logger.info(f"User status changed: {user['email']} ({state}) by {admin.email}")
    return respond(_user_result(user), message=f"User {state} successfully")


@router.put("/{id}/reset-password")
async def reset_password(
    body: PasswordReset,
    db: SessionDep,
    admin: AdminUser,
    user_id: int = Depends(path_id()),
):
    await user_service.set_password(db, user_id, body.new_password)
    logger.info(f"Password reset for user id {user_id} by admin: {admin.email}")
    return respond(message="Password reset successfully")
