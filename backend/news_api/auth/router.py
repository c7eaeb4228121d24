import logging

from fastapi import APIRouter, status

from ..database import SessionDep
from ..models import respond
from ..users import service as user_service
from ..users.schema import PasswordChange, ProfileUpdate
from . import service as auth_service
from .dependencies import CurrentUser
from .schema import (
    AuthUser,
    AuthUserResult,
    LoginRequest,
    LoginResult,
    ProfileResult,
    ProfileUser,
    RegisterRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, db: SessionDep):
    user = await user_service.create_user(db, body)
    logger.info(f"New user registered: {user['email']}")
    return respond(
        AuthUserResult(user=AuthUser.model_validate(user)),
        message="User registered successfully",
        status_code=status.HTTP_201_CREATED,
    )


@router.post("/login")
async def login(body: LoginRequest, db: SessionDep):
    user = await auth_service.authenticate_user(db, body.email, body.password)
    token = auth_service.create_access_token(user)
    logger.info(f"User logged in: {user.email}")
    return respond(
        LoginResult(token=token, user=AuthUser.model_validate(user)),
        message="Login successful",
    )


@router.get("/profile")
async def get_profile(current_user: CurrentUser):
    return respond(ProfileResult(user=ProfileUser.model_validate(current_user)))


@router.put("/profile")
async def update_profile(body: ProfileUpdate, db: SessionDep, current_user: CurrentUser):
    user = await user_service.update_user(db, current_user.id, body.model_dump(exclude_unset=True))
    logger.info(f"User profile updated: {user['email']}")
    return respond(
        AuthUserResult(user=AuthUser.model_validate(user)),
        message="Profile updated successfully",
    )


@router.put("/change-password")
async def change_password(body: PasswordChange, db: SessionDep, current_user: CurrentUser):
    await user_service.change_password(db, current_user.id, body.current_password, body.new_password)
    logger.info(f"Password changed for user: {current_user.email}")
    return respond(message="Password changed successfully")


@router.post("/logout")
async def logout(current_user: CurrentUser):
    # tokens are stateless; the client drops its copy
    logger.info(f"User logged out: {current_user.email}")
    return respond(message="Logout successful")
