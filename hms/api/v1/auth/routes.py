from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from hms.api.deps import Principal, get_current_user, require_permission
from hms.api.v1.schemas import SuccessResponse
from hms.api.v1.auth.schemas import (
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    ProfileUpdate,
    PasswordChangeRequest,
    UserResponse
)
from hms.core.permissions import Permissions
from hms.domain.users.service import AuthenticationService, UserService
from hms.infrastructure.database import get_db

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/login", response_model=SuccessResponse[LoginResponse], status_code=status.HTTP_200_OK)
async def login(
    login_data: LoginRequest,
    db: AsyncSession = Depends(get_db)
):
    """Authenticate user and return an access token"""
    auth_service = AuthenticationService(db)
    user, token = await auth_service.authenticate_user(login_data)
    return SuccessResponse(
        message="Login successful",
        data=LoginResponse(user=UserResponse.model_validate(user), token=token)
    )


@router.post("/register", response_model=SuccessResponse[UserResponse], status_code=status.HTTP_201_CREATED)
async def register(
    user_data: RegisterRequest,
    current_user: Principal = Depends(require_permission(Permissions.AUTH_REGISTER)),
    db: AsyncSession = Depends(get_db)
):
    """Create a staff account with its role profile"""
    auth_service = AuthenticationService(db)
    user = await auth_service.register_user(user_data)
    return SuccessResponse(
        message="User registered successfully",
        data=UserResponse.model_validate(user)
    )


@router.post("/logout", response_model=SuccessResponse, status_code=status.HTTP_200_OK)
async def logout(current_user: Principal = Depends(get_current_user)):
    """Tokens are stateless; the client discards its copy"""
    return SuccessResponse(message="Logged out successfully")


@router.get("/me", response_model=SuccessResponse[UserResponse], status_code=status.HTTP_200_OK)
async def get_me(
    current_user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get current user information"""
    user_service = UserService(db)
    user = await user_service.get_user_by_id(current_user.id)
    return SuccessResponse(data=UserResponse.model_validate(user))


@router.get("/profile", response_model=SuccessResponse[UserResponse], status_code=status.HTTP_200_OK)
async def get_profile(
    current_user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    user_service = UserService(db)
    user = await user_service.get_user_by_id(current_user.id)
    return SuccessResponse(data=UserResponse.model_validate(user))


@router.put("/profile", response_model=SuccessResponse[UserResponse], status_code=status.HTTP_200_OK)
async def update_profile(
    profile_data: ProfileUpdate,
    current_user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Update own name and phone"""
    user_service = UserService(db)
    user = await user_service.update_own_profile(current_user.id, profile_data)
    return SuccessResponse(
        message="Profile updated successfully",
        data=UserResponse.model_validate(user)
    )


@router.put("/change-password", response_model=SuccessResponse, status_code=status.HTTP_200_OK)
async def change_password(
    password_data: PasswordChangeRequest,
    current_user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Change user password"""
    auth_service = AuthenticationService(db)
    await auth_service.change_password(current_user.id, password_data)
    return SuccessResponse(message="Password changed successfully")
