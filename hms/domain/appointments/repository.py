from typing import Optional, List
from datetime import date
import uuid

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from hms.domain.appointments.models import Appointment, AppointmentStatus
from hms.domain.prescriptions.models import Prescription
from hms.domain.users.models import Doctor, Receptionist
from hms.infrastructure.repository import BaseRepository

# Projection for appointment rows: names of everyone involved
APPOINTMENT_DETAIL = (
    selectinload(Appointment.patient),
    selectinload(Appointment.doctor).selectinload(Doctor.user),
    selectinload(Appointment.receptionist).selectinload(Receptionist.user),
)

# Appointment rows that also carry their prescription
APPOINTMENT_WITH_PRESCRIPTION = APPOINTMENT_DETAIL + (
    selectinload(Appointment.prescription).selectinload(Prescription.medicines),
)


class AppointmentRepository(BaseRepository[Appointment]):
    """Repository for appointment data access operations"""

    model = Appointment

    async def get_by_id(self, appointment_id: uuid.UUID, with_prescription: bool = False) -> Optional[Appointment]:
        options = APPOINTMENT_WITH_PRESCRIPTION if with_prescription else APPOINTMENT_DETAIL
        return await self.get(appointment_id, options)

    def _filtered(
        self,
        status: Optional[AppointmentStatus] = None,
        doctor_id: Optional[uuid.UUID] = None,
        patient_id: Optional[uuid.UUID] = None,
        appointment_date: Optional[date] = None
    ):
        query = select(Appointment)

        if status:
            query = query.where(Appointment.status == status)

        if doctor_id:
            query = query.where(Appointment.doctor_id == doctor_id)

        if patient_id:
            query = query.where(Appointment.patient_id == patient_id)

        if appointment_date:
            query = query.where(Appointment.appointment_date == appointment_date)

        return query

    async def get_all(
        self,
        skip: int = 0,
        limit: Optional[int] = 10,
        status: Optional[AppointmentStatus] = None,
        doctor_id: Optional[uuid.UUID] = None,
        patient_id: Optional[uuid.UUID] = None,
        appointment_date: Optional[date] = None,
        with_prescription: bool = False
    ) -> List[Appointment]:
        """Get appointments with filters, newest date and time first"""
        options = APPOINTMENT_WITH_PRESCRIPTION if with_prescription else APPOINTMENT_DETAIL
        query = (
            self._filtered(status, doctor_id, patient_id, appointment_date)
            .options(*options)
            .order_by(Appointment.appointment_date.desc(), Appointment.appointment_time.desc())
        )
        return await self.fetch(query, skip, limit)

    async def count(
        self,
        status: Optional[AppointmentStatus] = None,
        doctor_id: Optional[uuid.UUID] = None,
        patient_id: Optional[uuid.UUID] = None,
        appointment_date: Optional[date] = None
    ) -> int:
        return await self.count_query(self._filtered(status, doctor_id, patient_id, appointment_date))

    async def get_recent_for_patient(self, patient_id: uuid.UUID, limit: int = 5) -> List[Appointment]:
        query = (
            select(Appointment)
            .where(Appointment.patient_id == patient_id)
            .order_by(Appointment.appointment_date.desc(), Appointment.created_at.desc())
        )
        return await self.fetch(query, 0, limit)

    async def get_active_for_doctor_on(self, doctor_id: uuid.UUID, day: date) -> List[Appointment]:
        """SCHEDULED and IN_PROGRESS appointments of one doctor on one day"""
        query = (
            select(Appointment)
            .options(selectinload(Appointment.patient))
            .where(
                Appointment.doctor_id == doctor_id,
                Appointment.appointment_date == day,
                Appointment.status.in_([AppointmentStatus.SCHEDULED, AppointmentStatus.IN_PROGRESS])
            )
            .order_by(Appointment.appointment_time.asc())
        )
        return await self.fetch(query)
