from typing import Optional, List, Tuple
from datetime import date
import uuid

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from hms.domain.appointments.models import Appointment, AppointmentStatus, can_transition
from hms.domain.appointments.repository import AppointmentRepository
from hms.domain.patients.repository import PatientRepository
from hms.domain.users.repository import DoctorRepository, ReceptionistRepository
from hms.core.exceptions import AuthorizationError, NotFoundError, InvalidTargetError
from hms.infrastructure.database import unit_of_work
from hms.api.v1.appointments.schemas import AppointmentCreate, AppointmentUpdate


def check_transition(current: AppointmentStatus, target: AppointmentStatus) -> None:
    """Raise unless the appointment lifecycle allows current -> target"""
    if not can_transition(current, target):
        raise InvalidTargetError(
            message=f"Cannot change appointment status from {current.value} to {target.value}",
            details={"current_status": current.value, "requested_status": target.value}
        )


class AppointmentService:
    """Service layer for appointment operations"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.appointment_repo = AppointmentRepository(db)
        self.patient_repo = PatientRepository(db)
        self.doctor_repo = DoctorRepository(db)
        self.receptionist_repo = ReceptionistRepository(db)

    async def create_appointment(self, appointment_data: AppointmentCreate, acting_user_id: uuid.UUID) -> Appointment:
        """Book an appointment for an existing patient with an active doctor"""
        receptionist = await self.receptionist_repo.get_by_user_id(acting_user_id)
        if not receptionist:
            raise AuthorizationError(message="Receptionist profile not found")

        patient = await self.patient_repo.get_by_id(appointment_data.patient_id, include_deleted=False)
        if not patient:
            raise NotFoundError(message="Patient not found")

        doctor = await self.doctor_repo.get_by_id(appointment_data.doctor_id)
        if not doctor:
            raise NotFoundError(message="Doctor not found")

        if not doctor.user.is_active:
            raise InvalidTargetError(message="Doctor is not active")

        async with unit_of_work(self.db):
            appointment = await self.appointment_repo.create({
                **appointment_data.model_dump(),
                "receptionist_id": receptionist.id,
                "status": AppointmentStatus.SCHEDULED
            })

        logger.info(f"Appointment {appointment.id} scheduled with doctor {doctor.id}")
        return await self.appointment_repo.get_by_id(appointment.id)

    async def get_appointment(self, appointment_id: uuid.UUID, with_prescription: bool = False) -> Appointment:
        appointment = await self.appointment_repo.get_by_id(appointment_id, with_prescription=with_prescription)
        if not appointment:
            raise NotFoundError(message="Appointment not found")
        return appointment

    async def get_appointments(
        self,
        skip: int = 0,
        limit: int = 10,
        status: Optional[AppointmentStatus] = None,
        doctor_id: Optional[uuid.UUID] = None,
        patient_id: Optional[uuid.UUID] = None,
        appointment_date: Optional[date] = None,
        with_prescription: bool = False
    ) -> Tuple[List[Appointment], int]:
        appointments = await self.appointment_repo.get_all(
            skip=skip,
            limit=limit,
            status=status,
            doctor_id=doctor_id,
            patient_id=patient_id,
            appointment_date=appointment_date,
            with_prescription=with_prescription
        )
        total = await self.appointment_repo.count(
            status=status, doctor_id=doctor_id, patient_id=patient_id, appointment_date=appointment_date
        )
        return appointments, total

    async def get_doctor_appointments(
        self,
        acting_user_id: uuid.UUID,
        skip: int = 0,
        limit: int = 10,
        status: Optional[AppointmentStatus] = None,
        appointment_date: Optional[date] = None
    ) -> Tuple[List[Appointment], int]:
        """Appointments of the authenticated doctor, each with its prescription"""
        doctor = await self.doctor_repo.get_by_user_id(acting_user_id)
        if not doctor:
            raise AuthorizationError(message="Doctor profile not found")

        return await self.get_appointments(
            skip=skip,
            limit=limit,
            status=status,
            doctor_id=doctor.id,
            appointment_date=appointment_date,
            with_prescription=True
        )

    async def update_appointment(self, appointment_id: uuid.UUID, appointment_data: AppointmentUpdate) -> Appointment:
        appointment = await self.get_appointment(appointment_id)
        update_data = appointment_data.model_dump(exclude_unset=True)

        for required in ("appointment_date", "appointment_time", "status"):
            if required in update_data and update_data[required] is None:
                update_data.pop(required)

        new_status = update_data.get("status")
        if new_status is not None:
            if new_status == appointment.status:
                update_data.pop("status")
            else:
                check_transition(appointment.status, new_status)

        async with unit_of_work(self.db):
            previous_status = appointment.status
            await self.appointment_repo.update(appointment, update_data)

        if appointment.status != previous_status:
            logger.info(f"Appointment {appointment_id} moved {previous_status.value} -> {appointment.status.value}")
        return await self.appointment_repo.get_by_id(appointment_id)

    async def cancel_appointment(self, appointment_id: uuid.UUID) -> Appointment:
        """Cancel from any non-terminal state"""
        appointment = await self.get_appointment(appointment_id)
        check_transition(appointment.status, AppointmentStatus.CANCELLED)

        async with unit_of_work(self.db):
            await self.appointment_repo.update(appointment, {"status": AppointmentStatus.CANCELLED})

        logger.info(f"Appointment {appointment_id} cancelled")
        return await self.appointment_repo.get_by_id(appointment_id)
