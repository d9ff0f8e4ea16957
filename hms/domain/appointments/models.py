from datetime import datetime
from typing import Dict, FrozenSet
import uuid
import enum

from sqlalchemy import Column, String, Date, DateTime, ForeignKey, Enum, Text, Uuid
from sqlalchemy.orm import relationship
from hms.infrastructure.database import Base


class AppointmentStatus(str, enum.Enum):
    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


APPOINTMENT_TRANSITIONS: Dict[AppointmentStatus, FrozenSet[AppointmentStatus]] = {
    AppointmentStatus.SCHEDULED: frozenset({
        AppointmentStatus.IN_PROGRESS,
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
    }),
    AppointmentStatus.IN_PROGRESS: frozenset({
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
    }),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
}


def can_transition(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    return target in APPOINTMENT_TRANSITIONS[current]


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    patient_id = Column(Uuid, ForeignKey("patients.id"), nullable=False, index=True)
    doctor_id = Column(Uuid, ForeignKey("doctors.id"), nullable=False, index=True)
    receptionist_id = Column(Uuid, ForeignKey("receptionists.id"), nullable=False)

    appointment_date = Column(Date, nullable=False, index=True)
    appointment_time = Column(String(20), nullable=False)
    status = Column(Enum(AppointmentStatus, name="appointment_status"), nullable=False, default=AppointmentStatus.SCHEDULED, index=True)
    reason = Column(Text)
    notes = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    patient = relationship("Patient")
    doctor = relationship("Doctor")
    receptionist = relationship("Receptionist")
    prescription = relationship("Prescription", back_populates="appointment", uselist=False)
