from typing import Optional, List, Tuple, Dict, Any
from datetime import datetime
import uuid

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from hms.domain.patients.models import Patient, MedicalRecord, Gender
from hms.domain.patients.repository import PatientRepository, MedicalRecordRepository
from hms.domain.users.repository import DoctorRepository, ReceptionistRepository
from hms.domain.appointments.repository import AppointmentRepository
from hms.domain.lab.repository import LabReportRepository
from hms.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    InvalidTargetError
)
from hms.infrastructure.database import unit_of_work
from hms.api.v1.patients.schemas import (
    PatientCreate,
    PatientUpdate,
    MedicalRecordCreate
)

RECENT_RECORDS_LIMIT = 5


class PatientService:
    """Service layer for patient operations"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.patient_repo = PatientRepository(db)
        self.medical_record_repo = MedicalRecordRepository(db)
        self.doctor_repo = DoctorRepository(db)
        self.receptionist_repo = ReceptionistRepository(db)
        self.appointment_repo = AppointmentRepository(db)
        self.lab_report_repo = LabReportRepository(db)

    async def create_patient(self, patient_data: PatientCreate, acting_user_id: uuid.UUID) -> Patient:
        """Register a patient on behalf of the acting receptionist"""
        receptionist = await self.receptionist_repo.get_by_user_id(acting_user_id)
        if not receptionist:
            raise AuthorizationError(message="Receptionist profile not found")

        if patient_data.email and await self.patient_repo.get_by_email(patient_data.email):
            raise ConflictError(message="Patient with this email already exists")

        async with unit_of_work(self.db):
            patient = await self.patient_repo.create({
                **patient_data.model_dump(),
                "registered_by": receptionist.id,
                "is_deleted": False
            })

        logger.info(f"Patient {patient.id} registered by receptionist {receptionist.id}")
        return await self.patient_repo.get_by_id(patient.id)

    async def get_patient(self, patient_id: uuid.UUID) -> Patient:
        patient = await self.patient_repo.get_by_id(patient_id)
        if not patient:
            raise NotFoundError(message="Patient not found")
        return patient

    async def get_patient_detail(self, patient_id: uuid.UUID) -> Dict[str, Any]:
        """Patient plus the most recent appointments, medical records and lab reports"""
        patient = await self.get_patient(patient_id)
        return {
            "patient": patient,
            "recent_appointments": await self.appointment_repo.get_recent_for_patient(patient_id, RECENT_RECORDS_LIMIT),
            "medical_records": await self.medical_record_repo.get_by_patient(patient_id, RECENT_RECORDS_LIMIT),
            "lab_reports": await self.lab_report_repo.get_recent_for_patient(patient_id, RECENT_RECORDS_LIMIT),
        }

    async def get_patients(
        self,
        skip: int = 0,
        limit: int = 10,
        search: Optional[str] = None,
        gender: Optional[Gender] = None,
        assigned_doctor_id: Optional[uuid.UUID] = None
    ) -> Tuple[List[Patient], int]:
        patients = await self.patient_repo.get_all(
            skip=skip, limit=limit, search=search, gender=gender, assigned_doctor_id=assigned_doctor_id
        )
        total = await self.patient_repo.count(search=search, gender=gender, assigned_doctor_id=assigned_doctor_id)
        return patients, total

    async def _get_active_patient(self, patient_id: uuid.UUID) -> Patient:
        patient = await self.patient_repo.get_by_id(patient_id, include_deleted=False)
        if not patient:
            raise NotFoundError(message="Patient not found")
        return patient

    async def update_patient(self, patient_id: uuid.UUID, patient_data: PatientUpdate) -> Patient:
        patient = await self._get_active_patient(patient_id)
        update_data = patient_data.model_dump(exclude_unset=True)

        for required in ("first_name", "last_name", "phone", "date_of_birth", "gender"):
            if required in update_data and update_data[required] is None:
                update_data.pop(required)

        new_email = update_data.get("email")
        if new_email and new_email != patient.email:
            if await self.patient_repo.get_by_email(new_email):
                raise ConflictError(message="Patient with this email already exists")

        async with unit_of_work(self.db):
            await self.patient_repo.update(patient, update_data)

        return await self.patient_repo.get_by_id(patient_id)

    async def delete_patient(self, patient_id: uuid.UUID) -> None:
        """Soft delete: the row stays for audit and by-id reads"""
        patient = await self._get_active_patient(patient_id)

        async with unit_of_work(self.db):
            await self.patient_repo.update(patient, {"is_deleted": True, "deleted_at": datetime.utcnow()})

        logger.info(f"Patient {patient_id} soft-deleted")

    async def get_medical_history(self, patient_id: uuid.UUID) -> List[MedicalRecord]:
        await self.get_patient(patient_id)
        return await self.medical_record_repo.get_by_patient(patient_id)

    async def add_medical_record(self, patient_id: uuid.UUID, record_data: MedicalRecordCreate) -> MedicalRecord:
        await self._get_active_patient(patient_id)

        async with unit_of_work(self.db):
            record = await self.medical_record_repo.create({
                "patient_id": patient_id,
                **record_data.model_dump()
            })

        return record

    async def assign_doctor(self, patient_id: uuid.UUID, doctor_id: uuid.UUID) -> Patient:
        """Assign or reassign the patient's doctor; the doctor must be active"""
        patient = await self._get_active_patient(patient_id)

        doctor = await self.doctor_repo.get_by_id(doctor_id)
        if not doctor:
            raise NotFoundError(message="Doctor not found")

        if not doctor.user.is_active:
            raise InvalidTargetError(message="Cannot assign an inactive doctor")

        async with unit_of_work(self.db):
            await self.patient_repo.update(patient, {"assigned_doctor_id": doctor.id})

        logger.info(f"Patient {patient_id} assigned to doctor {doctor.id}")
        return await self.patient_repo.get_by_id(patient_id)
