from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional
from datetime import date, datetime
import re
import uuid

from hms.api.v1.schemas import DoctorSummary, PatientSummary, UserSummary
from hms.api.v1.prescriptions.schemas import PrescriptionBrief
from hms.domain.appointments.models import AppointmentStatus

TIME_PATTERN = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d) ?([AaPp][Mm])?$")


def _check_time(v: Optional[str]) -> Optional[str]:
    """Normalize to zero-padded 24-hour HH:MM so stored times sort correctly"""
    if v is None:
        return v
    match = TIME_PATTERN.match(v.strip())
    if not match:
        raise ValueError("Appointment time must look like HH:MM")

    hour, minute, meridiem = int(match.group(1)), match.group(2), match.group(3)
    if meridiem:
        if not 1 <= hour <= 12:
            raise ValueError("Hour must be between 1 and 12 when AM/PM is given")
        hour = hour % 12 + (12 if meridiem.lower() == "pm" else 0)
    return f"{hour:02d}:{minute}"


class AppointmentCreate(BaseModel):
    """Schema for booking an appointment"""
    patient_id: uuid.UUID
    doctor_id: uuid.UUID
    appointment_date: date
    appointment_time: str = Field(..., min_length=1, max_length=20)
    reason: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("appointment_time")
    @classmethod
    def validate_time(cls, v: str) -> str:
        return _check_time(v)


class AppointmentUpdate(BaseModel):
    """Partial update; a status change must follow the appointment lifecycle"""
    appointment_date: Optional[date] = None
    appointment_time: Optional[str] = Field(None, min_length=1, max_length=20)
    status: Optional[AppointmentStatus] = None
    reason: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("appointment_time")
    @classmethod
    def validate_time(cls, v: Optional[str]) -> Optional[str]:
        return _check_time(v)


class ReceptionistBrief(BaseModel):
    id: uuid.UUID
    user: UserSummary

    model_config = ConfigDict(from_attributes=True)


class AppointmentResponse(BaseModel):
    id: uuid.UUID
    patient_id: uuid.UUID
    doctor_id: uuid.UUID
    receptionist_id: uuid.UUID
    appointment_date: date
    appointment_time: str
    status: AppointmentStatus
    reason: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    patient: Optional[PatientSummary] = None
    doctor: Optional[DoctorSummary] = None
    receptionist: Optional[ReceptionistBrief] = None

    model_config = ConfigDict(from_attributes=True)


class AppointmentWithPrescriptionResponse(AppointmentResponse):
    prescription: Optional[PrescriptionBrief] = None
