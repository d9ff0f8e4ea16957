from typing import Optional, List, Tuple, Dict, Any
from datetime import date
import uuid

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from hms.domain.appointments.repository import AppointmentRepository
from hms.domain.lab.models import LabReport, LabReportStatus
from hms.domain.lab.repository import LabReportRepository
from hms.domain.patients.models import Patient
from hms.domain.patients.repository import PatientRepository
from hms.domain.treatments.models import Treatment
from hms.domain.treatments.repository import TreatmentRepository
from hms.domain.users.models import Doctor
from hms.domain.users.repository import DoctorRepository
from hms.core.exceptions import AuthorizationError, NotFoundError
from hms.infrastructure.database import unit_of_work
from hms.api.v1.doctor.schemas import TreatmentCreate, TreatmentUpdate


class DoctorWorkspaceService:
    """Service layer behind the doctor workspace: dashboard, treatments and lab results"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.doctor_repo = DoctorRepository(db)
        self.patient_repo = PatientRepository(db)
        self.appointment_repo = AppointmentRepository(db)
        self.treatment_repo = TreatmentRepository(db)
        self.lab_report_repo = LabReportRepository(db)

    async def _get_acting_doctor(self, acting_user_id: uuid.UUID) -> Doctor:
        doctor = await self.doctor_repo.get_by_user_id(acting_user_id)
        if not doctor:
            raise AuthorizationError(message="Doctor profile not found")
        return doctor

    async def _get_patient(self, patient_id: uuid.UUID) -> Patient:
        patient = await self.patient_repo.get_by_id(patient_id)
        if not patient:
            raise NotFoundError(message="Patient not found")
        return patient

    async def _get_active_patient(self, patient_id: uuid.UUID) -> Patient:
        patient = await self.patient_repo.get_by_id(patient_id, include_deleted=False)
        if not patient:
            raise NotFoundError(message="Patient not found")
        return patient

    async def get_dashboard(self, acting_user_id: uuid.UUID) -> Dict[str, Any]:
        doctor = await self._get_acting_doctor(acting_user_id)
        doctor = await self.doctor_repo.get_by_id(doctor.id)

        assigned_patients = await self.patient_repo.get_all(skip=0, limit=None, assigned_doctor_id=doctor.id)
        today_appointments = await self.appointment_repo.get_active_for_doctor_on(doctor.id, date.today())

        return {
            "doctor": doctor,
            "statistics": {
                "total_patients": len(assigned_patients),
                "total_appointments": await self.appointment_repo.count(doctor_id=doctor.id),
                "pending_lab_reports": await self.lab_report_repo.count_pending_for_doctor(doctor.id),
                "today_appointments": len(today_appointments),
            },
            "assigned_patients": assigned_patients,
            "today_appointments": today_appointments,
        }

    async def create_treatment(
        self,
        patient_id: uuid.UUID,
        treatment_data: TreatmentCreate,
        acting_user_id: uuid.UUID
    ) -> Treatment:
        doctor = await self._get_acting_doctor(acting_user_id)
        patient = await self._get_active_patient(patient_id)

        data = treatment_data.model_dump(exclude={"medications"})
        if data.get("treatment_date") is None:
            data.pop("treatment_date", None)

        async with unit_of_work(self.db):
            treatment = await self.treatment_repo.create_with_medications(
                {**data, "patient_id": patient.id, "doctor_id": doctor.id},
                [medication.model_dump() for medication in treatment_data.medications]
            )

        logger.info(f"Treatment {treatment.id} recorded for patient {patient.id} by doctor {doctor.id}")
        return await self.treatment_repo.get_by_id(treatment.id)

    async def get_treatments(
        self,
        patient_id: uuid.UUID,
        skip: int = 0,
        limit: int = 10,
        search: Optional[str] = None
    ) -> Tuple[List[Treatment], int]:
        await self._get_patient(patient_id)
        treatments = await self.treatment_repo.get_for_patient(patient_id, skip=skip, limit=limit, search=search)
        total = await self.treatment_repo.count_for_patient(patient_id, search=search)
        return treatments, total

    async def update_treatment(
        self,
        patient_id: uuid.UUID,
        treatment_id: uuid.UUID,
        treatment_data: TreatmentUpdate,
        acting_user_id: uuid.UUID
    ) -> Treatment:
        """Only the authoring doctor may change a treatment record"""
        doctor = await self._get_acting_doctor(acting_user_id)

        treatment = await self.treatment_repo.get_by_id(treatment_id)
        if not treatment or treatment.patient_id != patient_id:
            raise NotFoundError(message="Treatment not found")

        if treatment.doctor_id != doctor.id:
            raise AuthorizationError(message="You can only update your own treatment records")

        update_data = treatment_data.model_dump(exclude_unset=True, exclude={"medications"})
        for required in ("diagnosis", "treatment"):
            if required in update_data and update_data[required] is None:
                update_data.pop(required)

        async with unit_of_work(self.db):
            await self.treatment_repo.update(treatment, update_data)
            if treatment_data.medications is not None:
                await self.treatment_repo.replace_medications(
                    treatment, [medication.model_dump() for medication in treatment_data.medications]
                )

        return await self.treatment_repo.get_by_id(treatment_id)

    async def get_lab_results(
        self,
        patient_id: uuid.UUID,
        skip: int = 0,
        limit: int = 10,
        status: Optional[LabReportStatus] = None,
        test_type: Optional[str] = None
    ) -> Tuple[List[LabReport], int]:
        await self._get_patient(patient_id)
        reports = await self.lab_report_repo.get_all(
            skip=skip, limit=limit, status=status, patient_id=patient_id, test_type=test_type
        )
        total = await self.lab_report_repo.count(status=status, patient_id=patient_id, test_type=test_type)
        return reports, total
