"""
Authorization policy.

Pure functions of the caller, the target (or its owner id) and the operation.
They never touch the database; routers fetch what they need and ask here.
"""
from typing import Any, Dict, Iterable, Optional

from ..exceptions import PermissionDeniedError, ValidationError
from ..news.models import NewsStatus
from ..users.models import User, UserRole

STAFF_ROLES = (UserRole.ADMIN, UserRole.EDITOR)


def has_role(user: Optional[User], roles: Iterable[UserRole]) -> bool:
    if user is None:
        return False
    return user.role in tuple(roles)


def ensure_role(user: Optional[User], roles: Iterable[UserRole]) -> None:
    if not has_role(user, roles):
        raise PermissionDeniedError()


def is_admin(user: Optional[User]) -> bool:
    return has_role(user, (UserRole.ADMIN,))


def is_staff(user: Optional[User]) -> bool:
    return has_role(user, STAFF_ROLES)


def can_manage_news(user: Optional[User], author_id: int) -> bool:
    if user is None:
        return False
    return is_staff(user) or user.id == author_id


def ensure_can_manage_news(user: Optional[User], author_id: int, action: str = "edit") -> None:
    if not can_manage_news(user, author_id):
        raise PermissionDeniedError(f"Access denied - you can only {action} your own articles")


def can_view_news(user: Optional[User], status: Any, author_id: int) -> bool:
    # drafts and archived articles stay private to their author and staff
    if status == NewsStatus.PUBLISHED:
        return True
    return can_manage_news(user, author_id)


def ensure_not_self(user: User, target_id: int, message: str) -> None:
    if user.id == target_id:
        raise ValidationError(message)


def ensure_can_update_user(user: User, target_id: int) -> None:
    if not (is_staff(user) or user.id == target_id):
        raise PermissionDeniedError()


def restrict_user_update(user: User, target_id: int, changes: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply the self-update rules: a non-admin's own role is dropped, and an
    attempt to change one's own active status is rejected outright.
    """
    allowed = dict(changes)
    if user.id != target_id:
        return allowed
    if "is_active" in allowed:
        raise ValidationError("You cannot change your own status")
    if not is_admin(user):
        allowed.pop("role", None)
    return allowed
