from typing import Optional, List, Tuple
import uuid

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hms.domain.users.models import User, Doctor, UserRole
from hms.domain.users.repository import (
    UserRepository,
    DoctorRepository,
    ReceptionistRepository,
    LabStaffRepository
)
from hms.core.security import verify_password, get_password_hash, create_access_token
from hms.core.exceptions import (
    ConflictError,
    NotFoundError,
    InvalidCredentialError,
    AccountInactiveError,
    ValidationError
)
from hms.infrastructure.database import unit_of_work
from hms.api.v1.auth.schemas import (
    RegisterRequest,
    DoctorRegister,
    ReceptionistRegister,
    LabStaffRegister,
    LoginRequest,
    ProfileUpdate,
    PasswordChangeRequest
)
from hms.api.v1.admin.schemas import UserUpdate

PROFILE_FIELDS = {
    UserRole.DOCTOR: {"specialization", "qualification", "experience", "consultation_fee"},
    UserRole.RECEPTIONIST: {"shift"},
    UserRole.LAB_STAFF: {"department"},
    UserRole.ADMIN: set(),
}


class AuthenticationService:
    """Service layer for authentication operations"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.user_repo = UserRepository(db)
        self.doctor_repo = DoctorRepository(db)
        self.receptionist_repo = ReceptionistRepository(db)
        self.lab_staff_repo = LabStaffRepository(db)

    async def register_user(self, user_data: RegisterRequest) -> User:
        """Create a user and its role profile in one transaction"""
        if await self.user_repo.get_by_email(user_data.email):
            raise ConflictError(message="User with this email already exists")

        account_fields = {"email", "password", "first_name", "last_name", "phone", "role"}

        async with unit_of_work(self.db):
            user = await self.user_repo.create({
                "email": user_data.email,
                "password_hash": get_password_hash(user_data.password),
                "first_name": user_data.first_name,
                "last_name": user_data.last_name,
                "phone": user_data.phone,
                "role": UserRole(user_data.role),
                "is_active": True,
            })

            profile_data = user_data.model_dump(exclude=account_fields)
            if isinstance(user_data, DoctorRegister):
                await self.doctor_repo.create({"user_id": user.id, **profile_data})
            elif isinstance(user_data, ReceptionistRegister):
                await self.receptionist_repo.create({"user_id": user.id, **profile_data})
            elif isinstance(user_data, LabStaffRegister):
                await self.lab_staff_repo.create({"user_id": user.id, **profile_data})

        logger.info(f"Registered {user.role.value} account {user.id}")
        return await self.user_repo.get_by_id(user.id)

    async def authenticate_user(self, login_data: LoginRequest) -> Tuple[User, str]:
        """Verify credentials and issue a fresh access token"""
        user = await self.user_repo.get_by_email(login_data.email)

        if not user or not verify_password(login_data.password, user.password_hash):
            logger.warning("Failed login attempt")
            raise InvalidCredentialError(message="Invalid email or password")

        if not user.is_active:
            raise AccountInactiveError()

        token = create_access_token(str(user.id), {"role": user.role.value})
        return user, token

    async def change_password(self, user_id: uuid.UUID, password_data: PasswordChangeRequest) -> None:
        """Change user password"""
        user = await self.user_repo.get_by_id(user_id)
        if not user:
            raise NotFoundError(message="User not found")

        if not verify_password(password_data.current_password, user.password_hash):
            raise InvalidCredentialError(message="Current password is incorrect")

        async with unit_of_work(self.db):
            await self.user_repo.update(user, {"password_hash": get_password_hash(password_data.new_password)})

        logger.info(f"Password changed for user {user_id}")


class UserService:
    """Service layer for user and profile management"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.user_repo = UserRepository(db)
        self.doctor_repo = DoctorRepository(db)

    async def get_user_by_id(self, user_id: uuid.UUID) -> User:
        user = await self.user_repo.get_by_id(user_id)
        if not user:
            raise NotFoundError(message="User not found")
        return user

    async def get_users(
        self,
        skip: int = 0,
        limit: int = 10,
        role: Optional[UserRole] = None,
        is_active: Optional[bool] = None,
        search: Optional[str] = None
    ) -> Tuple[List[User], int]:
        users = await self.user_repo.get_all(skip=skip, limit=limit, role=role, is_active=is_active, search=search)
        total = await self.user_repo.count(role=role, is_active=is_active, search=search)
        return users, total

    async def update_own_profile(self, user_id: uuid.UUID, profile_data: ProfileUpdate) -> User:
        user = await self.get_user_by_id(user_id)
        update_data = profile_data.model_dump(exclude_unset=True, exclude_none=True)

        async with unit_of_work(self.db):
            await self.user_repo.update(user, update_data)

        return await self.user_repo.get_by_id(user_id)

    async def update_user(self, user_id: uuid.UUID, user_data: UserUpdate) -> User:
        """Admin update of account fields and the fields of the user's own profile"""
        user = await self.get_user_by_id(user_id)
        update_data = user_data.model_dump(exclude_unset=True, exclude_none=True)

        all_profile_fields = set().union(*PROFILE_FIELDS.values())
        profile_data = {k: update_data.pop(k) for k in list(update_data) if k in all_profile_fields}

        foreign = set(profile_data) - PROFILE_FIELDS[user.role]
        if foreign:
            raise ValidationError(
                message=f"Fields not applicable to role {user.role.value}",
                errors=[{"field": field, "message": "Not applicable to this role"} for field in sorted(foreign)]
            )

        if "email" in update_data and update_data["email"] != user.email:
            if await self.user_repo.get_by_email(update_data["email"]):
                raise ConflictError(message="User with this email already exists")

        async with unit_of_work(self.db):
            await self.user_repo.update(user, update_data)
            if profile_data and user.profile is not None:
                for field, value in profile_data.items():
                    setattr(user.profile, field, value)
                await self.db.flush()

        return await self.user_repo.get_by_id(user_id)

    async def toggle_status(self, user_id: uuid.UUID, acting_user_id: uuid.UUID) -> User:
        """Flip is_active based on the row as it is now"""
        if user_id == acting_user_id:
            raise ValidationError(message="You cannot change the status of your own account")

        async with unit_of_work(self.db):
            user = await self.user_repo.get_by_id(user_id)
            if not user:
                raise NotFoundError(message="User not found")
            await self.user_repo.update(user, {"is_active": not user.is_active})

        logger.info(f"User {user_id} is_active set to {user.is_active}")
        return await self.user_repo.get_by_id(user_id)

    async def delete_user(self, user_id: uuid.UUID, acting_user_id: uuid.UUID) -> None:
        if user_id == acting_user_id:
            raise ValidationError(message="You cannot delete your own account")

        user = await self.get_user_by_id(user_id)
        try:
            async with unit_of_work(self.db):
                await self.user_repo.delete(user)
        except IntegrityError:
            raise ConflictError(
                message="User is referenced by clinical records; deactivate the account instead",
                error_code="REFERENCE_VIOLATION"
            )

        logger.info(f"Deleted user {user_id}")

    async def get_doctors(
        self,
        skip: int = 0,
        limit: int = 10,
        specialization: Optional[str] = None
    ) -> Tuple[List[Doctor], int]:
        doctors = await self.doctor_repo.get_all(skip=skip, limit=limit, specialization=specialization)
        total = await self.doctor_repo.count(specialization=specialization)
        return doctors, total
