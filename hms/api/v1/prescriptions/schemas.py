from pydantic import BaseModel, Field, ConfigDict
from typing import List, Optional
from datetime import date, datetime
import uuid

from hms.api.v1.schemas import DoctorSummary, PatientSummary
from hms.domain.appointments.models import AppointmentStatus


class MedicineItem(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    dosage: str = Field(..., min_length=1, max_length=100)
    frequency: str = Field(..., min_length=1, max_length=100)
    duration: str = Field(..., min_length=1, max_length=100)

    model_config = ConfigDict(from_attributes=True)


class PrescriptionCreate(BaseModel):
    appointment_id: uuid.UUID
    patient_id: Optional[uuid.UUID] = None
    diagnosis: str = Field(..., min_length=1)
    medicines: List[MedicineItem] = Field(..., min_length=1)
    instructions: Optional[str] = None
    follow_up_date: Optional[date] = None


class PrescriptionUpdate(BaseModel):
    diagnosis: Optional[str] = Field(None, min_length=1)
    medicines: Optional[List[MedicineItem]] = Field(None, min_length=1)
    instructions: Optional[str] = None
    follow_up_date: Optional[date] = None


class PrescriptionBrief(BaseModel):
    """Prescription as embedded in an appointment"""
    id: uuid.UUID
    diagnosis: str
    medicines: List[MedicineItem]
    instructions: Optional[str] = None
    follow_up_date: Optional[date] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AppointmentRef(BaseModel):
    id: uuid.UUID
    appointment_date: date
    appointment_time: str
    status: AppointmentStatus

    model_config = ConfigDict(from_attributes=True)


class PrescriptionResponse(BaseModel):
    id: uuid.UUID
    appointment_id: uuid.UUID
    patient_id: uuid.UUID
    doctor_id: uuid.UUID
    diagnosis: str
    medicines: List[MedicineItem]
    instructions: Optional[str] = None
    follow_up_date: Optional[date] = None
    created_at: datetime
    updated_at: datetime
    patient: Optional[PatientSummary] = None
    doctor: Optional[DoctorSummary] = None
    appointment: Optional[AppointmentRef] = None

    model_config = ConfigDict(from_attributes=True)
