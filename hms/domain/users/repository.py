from typing import Optional, List
import uuid

from sqlalchemy import select, or_, func
from sqlalchemy.orm import selectinload

from hms.domain.users.models import User, Doctor, Receptionist, LabStaff, UserRole
from hms.infrastructure.repository import BaseRepository

# Projection: a user together with whichever profile its role carries
USER_WITH_PROFILE = (
    selectinload(User.doctor_profile),
    selectinload(User.receptionist_profile),
    selectinload(User.lab_staff_profile),
)


class UserRepository(BaseRepository[User]):
    """Repository for user data access operations"""

    model = User

    async def get_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        """Get user by ID with the role profile embedded"""
        return await self.get(user_id, USER_WITH_PROFILE)

    async def get_by_email(self, email: str) -> Optional[User]:
        """Get user by email"""
        result = await self.db.execute(
            select(User)
            .options(*USER_WITH_PROFILE)
            .where(User.email == email.lower())
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    def _filtered(
        self,
        role: Optional[UserRole] = None,
        is_active: Optional[bool] = None,
        search: Optional[str] = None
    ):
        query = select(User)

        if role:
            query = query.where(User.role == role)

        if is_active is not None:
            query = query.where(User.is_active == is_active)

        if search:
            pattern = f"%{search.lower()}%"
            query = query.where(
                or_(
                    func.lower(User.first_name).like(pattern),
                    func.lower(User.last_name).like(pattern),
                    func.lower(User.email).like(pattern)
                )
            )

        return query

    async def get_all(
        self,
        skip: int = 0,
        limit: int = 10,
        role: Optional[UserRole] = None,
        is_active: Optional[bool] = None,
        search: Optional[str] = None
    ) -> List[User]:
        """Get all users with filtering and pagination"""
        query = (
            self._filtered(role, is_active, search)
            .options(*USER_WITH_PROFILE)
            .order_by(User.created_at.desc())
        )
        return await self.fetch(query, skip, limit)

    async def count(
        self,
        role: Optional[UserRole] = None,
        is_active: Optional[bool] = None,
        search: Optional[str] = None
    ) -> int:
        """Count users with optional filters"""
        return await self.count_query(self._filtered(role, is_active, search))


class DoctorRepository(BaseRepository[Doctor]):
    """Repository for doctor profiles"""

    model = Doctor

    async def get_by_id(self, doctor_id: uuid.UUID) -> Optional[Doctor]:
        return await self.get(doctor_id, (selectinload(Doctor.user),))

    async def get_by_user_id(self, user_id: uuid.UUID) -> Optional[Doctor]:
        result = await self.db.execute(
            select(Doctor).options(selectinload(Doctor.user)).where(Doctor.user_id == user_id)
        )
        return result.scalar_one_or_none()

    def _filtered(self, specialization: Optional[str] = None):
        query = select(Doctor)
        if specialization:
            query = query.where(func.lower(Doctor.specialization).like(f"%{specialization.lower()}%"))
        return query

    async def get_all(self, skip: int = 0, limit: int = 10, specialization: Optional[str] = None) -> List[Doctor]:
        query = (
            self._filtered(specialization)
            .options(selectinload(Doctor.user))
            .order_by(Doctor.created_at.desc())
        )
        return await self.fetch(query, skip, limit)

    async def count(self, specialization: Optional[str] = None) -> int:
        return await self.count_query(self._filtered(specialization))


class ReceptionistRepository(BaseRepository[Receptionist]):
    model = Receptionist

    async def get_by_user_id(self, user_id: uuid.UUID) -> Optional[Receptionist]:
        result = await self.db.execute(select(Receptionist).where(Receptionist.user_id == user_id))
        return result.scalar_one_or_none()


class LabStaffRepository(BaseRepository[LabStaff]):
    model = LabStaff

    async def get_by_user_id(self, user_id: uuid.UUID) -> Optional[LabStaff]:
        result = await self.db.execute(select(LabStaff).where(LabStaff.user_id == user_id))
        return result.scalar_one_or_none()
