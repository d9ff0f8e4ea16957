from typing import Optional, List
import uuid

from sqlalchemy import select, or_, func
from sqlalchemy.orm import selectinload

from hms.domain.patients.models import Patient, MedicalRecord, Gender
from hms.domain.users.models import Doctor, Receptionist
from hms.infrastructure.repository import BaseRepository

# Projection for patient detail and list rows
PATIENT_WITH_STAFF = (
    selectinload(Patient.receptionist).selectinload(Receptionist.user),
    selectinload(Patient.assigned_doctor).selectinload(Doctor.user),
)


class PatientRepository(BaseRepository[Patient]):
    """Repository for patient data access operations"""

    model = Patient

    async def get_by_id(self, patient_id: uuid.UUID, include_deleted: bool = True) -> Optional[Patient]:
        """Get patient by ID; soft-deleted rows stay readable for audit"""
        patient = await self.get(patient_id, PATIENT_WITH_STAFF)
        if patient and patient.is_deleted and not include_deleted:
            return None
        return patient

    async def get_by_email(self, email: str) -> Optional[Patient]:
        result = await self.db.execute(select(Patient).where(Patient.email == email.lower()))
        return result.scalar_one_or_none()

    def _filtered(
        self,
        search: Optional[str] = None,
        gender: Optional[Gender] = None,
        assigned_doctor_id: Optional[uuid.UUID] = None,
        include_deleted: bool = False
    ):
        query = select(Patient)

        if not include_deleted:
            query = query.where(Patient.is_deleted == False)  # noqa: E712

        if search:
            pattern = f"%{search.lower()}%"
            query = query.where(
                or_(
                    func.lower(Patient.first_name).like(pattern),
                    func.lower(Patient.last_name).like(pattern),
                    func.lower(Patient.email).like(pattern),
                    Patient.phone.like(f"%{search}%")
                )
            )

        if gender:
            query = query.where(Patient.gender == gender)

        if assigned_doctor_id:
            query = query.where(Patient.assigned_doctor_id == assigned_doctor_id)

        return query

    async def get_all(
        self,
        skip: int = 0,
        limit: Optional[int] = 10,
        search: Optional[str] = None,
        gender: Optional[Gender] = None,
        assigned_doctor_id: Optional[uuid.UUID] = None
    ) -> List[Patient]:
        """Get non-deleted patients with search, filtering and pagination"""
        query = (
            self._filtered(search, gender, assigned_doctor_id)
            .options(*PATIENT_WITH_STAFF)
            .order_by(Patient.created_at.desc())
        )
        return await self.fetch(query, skip, limit)

    async def count(
        self,
        search: Optional[str] = None,
        gender: Optional[Gender] = None,
        assigned_doctor_id: Optional[uuid.UUID] = None
    ) -> int:
        return await self.count_query(self._filtered(search, gender, assigned_doctor_id))


class MedicalRecordRepository(BaseRepository[MedicalRecord]):
    """Repository for medical history entries"""

    model = MedicalRecord

    async def get_by_patient(self, patient_id: uuid.UUID, limit: Optional[int] = None) -> List[MedicalRecord]:
        query = (
            select(MedicalRecord)
            .where(MedicalRecord.patient_id == patient_id)
            .order_by(MedicalRecord.record_date.desc())
        )
        return await self.fetch(query, 0, limit)
