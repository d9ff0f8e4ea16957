from typing import Optional, List, Tuple
import uuid

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from hms.domain.appointments.models import AppointmentStatus
from hms.domain.appointments.repository import AppointmentRepository
from hms.domain.prescriptions.models import Prescription
from hms.domain.prescriptions.repository import PrescriptionRepository
from hms.domain.users.models import Doctor
from hms.domain.users.repository import DoctorRepository
from hms.core.exceptions import AuthorizationError, ConflictError, NotFoundError, InvalidTargetError
from hms.infrastructure.database import unit_of_work
from hms.api.v1.prescriptions.schemas import PrescriptionCreate, PrescriptionUpdate


class PrescriptionService:
    """Service layer for prescriptions"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.prescription_repo = PrescriptionRepository(db)
        self.appointment_repo = AppointmentRepository(db)
        self.doctor_repo = DoctorRepository(db)

    async def _get_acting_doctor(self, acting_user_id: uuid.UUID) -> Doctor:
        doctor = await self.doctor_repo.get_by_user_id(acting_user_id)
        if not doctor:
            raise AuthorizationError(message="Doctor profile not found")
        return doctor

    async def create_prescription(self, prescription_data: PrescriptionCreate, acting_user_id: uuid.UUID) -> Prescription:
        """
        Write the prescription for an appointment and complete the appointment.

        Both writes share one transaction, so a failure leaves neither the
        prescription nor the status change behind.
        """
        doctor = await self._get_acting_doctor(acting_user_id)

        appointment = await self.appointment_repo.get_by_id(prescription_data.appointment_id)
        if not appointment:
            raise NotFoundError(message="Appointment not found")

        if appointment.doctor_id != doctor.id:
            raise AuthorizationError(message="You can only write prescriptions for your own appointments")

        if await self.prescription_repo.get_by_appointment(appointment.id):
            raise ConflictError(message="Prescription already exists for this appointment")

        if appointment.status == AppointmentStatus.CANCELLED:
            raise InvalidTargetError(message="Cannot write a prescription for a cancelled appointment")

        if prescription_data.patient_id and prescription_data.patient_id != appointment.patient_id:
            raise InvalidTargetError(message="Patient does not match the appointment")

        medicines = [medicine.model_dump() for medicine in prescription_data.medicines]

        async with unit_of_work(self.db):
            prescription = await self.prescription_repo.create_with_medicines(
                {
                    "appointment_id": appointment.id,
                    "patient_id": appointment.patient_id,
                    "doctor_id": doctor.id,
                    "diagnosis": prescription_data.diagnosis,
                    "instructions": prescription_data.instructions,
                    "follow_up_date": prescription_data.follow_up_date,
                },
                medicines
            )
            await self.appointment_repo.update(appointment, {"status": AppointmentStatus.COMPLETED})

        logger.info(f"Prescription {prescription.id} created; appointment {appointment.id} completed")
        return await self.prescription_repo.get_by_id(prescription.id)

    async def get_prescription(self, prescription_id: uuid.UUID) -> Prescription:
        prescription = await self.prescription_repo.get_by_id(prescription_id)
        if not prescription:
            raise NotFoundError(message="Prescription not found")
        return prescription

    async def get_prescriptions(
        self,
        skip: int = 0,
        limit: int = 10,
        patient_id: Optional[uuid.UUID] = None,
        doctor_id: Optional[uuid.UUID] = None
    ) -> Tuple[List[Prescription], int]:
        prescriptions = await self.prescription_repo.get_all(
            skip=skip, limit=limit, patient_id=patient_id, doctor_id=doctor_id
        )
        total = await self.prescription_repo.count(patient_id=patient_id, doctor_id=doctor_id)
        return prescriptions, total

    async def get_doctor_prescriptions(
        self,
        acting_user_id: uuid.UUID,
        skip: int = 0,
        limit: int = 10,
        patient_id: Optional[uuid.UUID] = None
    ) -> Tuple[List[Prescription], int]:
        doctor = await self._get_acting_doctor(acting_user_id)
        return await self.get_prescriptions(skip=skip, limit=limit, patient_id=patient_id, doctor_id=doctor.id)

    async def update_prescription(
        self,
        prescription_id: uuid.UUID,
        prescription_data: PrescriptionUpdate,
        acting_user_id: uuid.UUID
    ) -> Prescription:
        """Only the authoring doctor may change a prescription"""
        doctor = await self._get_acting_doctor(acting_user_id)
        prescription = await self.get_prescription(prescription_id)

        if prescription.doctor_id != doctor.id:
            raise AuthorizationError(message="You can only update your own prescriptions")

        update_data = prescription_data.model_dump(exclude_unset=True, exclude={"medicines"})
        if update_data.get("diagnosis") is None:
            update_data.pop("diagnosis", None)

        async with unit_of_work(self.db):
            await self.prescription_repo.update(prescription, update_data)
            if prescription_data.medicines is not None:
                await self.prescription_repo.replace_medicines(
                    prescription, [medicine.model_dump() for medicine in prescription_data.medicines]
                )

        return await self.prescription_repo.get_by_id(prescription_id)
