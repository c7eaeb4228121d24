import logging
from typing import Any, Dict, Mapping, Optional

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth import service as auth_service
from ..exceptions import ConflictError, NoFieldsToUpdateError, NotFoundError, ValidationError
from ..pagination import ListParams, ListSpec, Page, paginate
from .models import User as UserModel, UserRole
from .schema import UserCreate

logger = logging.getLogger(__name__)

# every column except the password hash
USER_COLUMNS = (
    UserModel.id,
    UserModel.username,
    UserModel.email,
    UserModel.first_name,
    UserModel.last_name,
    UserModel.role,
    UserModel.is_active,
    UserModel.created_at,
    UserModel.updated_at,
)

UPDATABLE_FIELDS = frozenset({"username", "email", "first_name", "last_name", "role", "is_active"})
NULLABLE_FIELDS = frozenset({"first_name", "last_name"})

USER_LIST_SPEC = ListSpec(
    sort_fields={
        "id": UserModel.id,
        "username": UserModel.username,
        "email": UserModel.email,
        "first_name": UserModel.first_name,
        "last_name": UserModel.last_name,
        "role": UserModel.role,
        "created_at": UserModel.created_at,
    },
    default_sort="created_at",
    id_column=UserModel.id,
    filter_fields={"role": UserModel.role, "is_active": UserModel.is_active},
    search_columns=(UserModel.username, UserModel.email, UserModel.first_name, UserModel.last_name),
)


def _public_select():
    return select(*USER_COLUMNS)


async def check_exists(
    db: AsyncSession,
    email: Optional[str] = None,
    username: Optional[str] = None,
    exclude_id: Optional[int] = None,
) -> Optional[str]:
    """
    Return the name of the first natural key already taken ("email" before
    "username"), or None when both are free.
    """
    conditions = []
    if email:
        conditions.append(UserModel.email == email)
    if username:
        conditions.append(UserModel.username == username)
    if not conditions:
        return None

    stmt = select(UserModel.email, UserModel.username).where(or_(*conditions))
    if exclude_id is not None:
        stmt = stmt.where(UserModel.id != exclude_id)
    rows = (await db.execute(stmt)).all()

    if email and any(row.email == email for row in rows):
        return "email"
    if username and any(row.username == username for row in rows):
        return "username"
    return None


async def _commit_or_conflict(db: AsyncSession, message: str) -> None:
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.warning(f"User write rejected by a unique constraint: {e.orig}")
        raise ConflictError(message)


async def create_user(db: AsyncSession, data: UserCreate, role: UserRole = UserRole.USER) -> Dict[str, Any]:
    taken = await check_exists(db, email=data.email, username=data.username)
    if taken:
        raise ConflictError(f"User with this {taken} already exists", field=taken)

    db_user = UserModel(
        username=data.username,
        email=data.email,
        password=auth_service.hash_password(data.password),
        first_name=data.first_name,
        last_name=data.last_name,
        role=role,
        is_active=True,
    )
    db.add(db_user)
    await _commit_or_conflict(db, "User with this email or username already exists")
    return await get_user_by_id(db, db_user.id)


async def get_user_by_id(db: AsyncSession, user_id: int) -> Optional[Dict[str, Any]]:
    result = await db.execute(_public_select().where(UserModel.id == user_id))
    row = result.mappings().first()
    return dict(row) if row else None


async def get_user_credentials_by_email(db: AsyncSession, email: str) -> Optional[UserModel]:
    """Full ORM row, password hash included. Only for credential checks."""
    result = await db.execute(select(UserModel).where(UserModel.email == email))
    return result.scalar_one_or_none()


async def list_users(db: AsyncSession, params: ListParams, filters: Optional[Mapping[str, Any]] = None) -> Page:
    return await paginate(db, _public_select(), USER_LIST_SPEC, params, filters)


async def update_user(db: AsyncSession, user_id: int, changes: Mapping[str, Any]) -> Dict[str, Any]:
    db_user = await db.get(UserModel, user_id)
    if db_user is None:
        raise NotFoundError("User not found")

    update_data = {
        field: value
        for field, value in changes.items()
        if field in UPDATABLE_FIELDS and (value is not None or field in NULLABLE_FIELDS)
    }
    if not update_data:
        raise NoFieldsToUpdateError()

    if "email" in update_data or "username" in update_data:
        taken = await check_exists(
            db,
            email=update_data.get("email"),
            username=update_data.get("username"),
            exclude_id=user_id,
        )
        if taken:
            raise ConflictError(f"Another user with this {taken} already exists", field=taken)

    for field, value in update_data.items():
        setattr(db_user, field, value)
    db_user.updated_at = func.now()
    await _commit_or_conflict(db, "Another user with this email or username already exists")
    return await get_user_by_id(db, user_id)


async def set_password(db: AsyncSession, user_id: int, new_password: str) -> None:
    db_user = await db.get(UserModel, user_id)
    if db_user is None:
        raise NotFoundError("User not found")
    db_user.password = auth_service.hash_password(new_password)
    db_user.updated_at = func.now()
    await db.commit()


async def change_password(db: AsyncSession, user_id: int, current_password: str, new_password: str) -> None:
    db_user = await db.get(UserModel, user_id)
    if db_user is None:
        raise NotFoundError("User not found")
    if not auth_service.verify_password(current_password, db_user.password):
        raise ValidationError("Current password is incorrect")
    await set_password(db, user_id, new_password)


async def delete_user(db: AsyncSession, user_id: int) -> bool:
    """Delete a user; their news go with them (ON DELETE CASCADE)."""
    result = await db.execute(delete(UserModel).where(UserModel.id == user_id))
    await db.commit()
    return result.rowcount > 0


async def toggle_user_status(db: AsyncSession, user_id: int) -> Dict[str, Any]:
    db_user = await db.get(UserModel, user_id)
    if db_user is None:
        raise NotFoundError("User not found")
    db_user.is_active = not db_user.is_active
    db_user.updated_at = func.now()
    await db.commit()
    return await get_user_by_id(db, user_id)
