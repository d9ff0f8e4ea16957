from pydantic import BaseModel, Field, ConfigDict
from typing import List, Optional
from datetime import date, datetime
import uuid

from hms.api.v1.schemas import DoctorSummary, PatientSummary
from hms.domain.appointments.models import AppointmentStatus


class MedicationItem(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    dosage: Optional[str] = Field(None, max_length=100)
    frequency: Optional[str] = Field(None, max_length=100)
    duration: Optional[str] = Field(None, max_length=100)

    model_config = ConfigDict(from_attributes=True)


class TreatmentCreate(BaseModel):
    diagnosis: str = Field(..., min_length=1)
    treatment: str = Field(..., min_length=1)
    medications: List[MedicationItem] = []
    notes: Optional[str] = None
    follow_up_date: Optional[date] = None
    treatment_date: Optional[datetime] = None


class TreatmentUpdate(BaseModel):
    diagnosis: Optional[str] = Field(None, min_length=1)
    treatment: Optional[str] = Field(None, min_length=1)
    medications: Optional[List[MedicationItem]] = None
    notes: Optional[str] = None
    follow_up_date: Optional[date] = None


class TreatmentResponse(BaseModel):
    id: uuid.UUID
    patient_id: uuid.UUID
    doctor_id: uuid.UUID
    diagnosis: str
    treatment: str
    medications: List[MedicationItem]
    notes: Optional[str] = None
    follow_up_date: Optional[date] = None
    treatment_date: datetime
    created_at: datetime
    updated_at: datetime
    doctor: Optional[DoctorSummary] = None

    model_config = ConfigDict(from_attributes=True)


class TodayAppointment(BaseModel):
    id: uuid.UUID
    appointment_date: date
    appointment_time: str
    status: AppointmentStatus
    reason: Optional[str] = None
    patient: PatientSummary

    model_config = ConfigDict(from_attributes=True)


class DoctorStatistics(BaseModel):
    total_patients: int
    total_appointments: int
    pending_lab_reports: int
    today_appointments: int


class DoctorDashboard(BaseModel):
    """Landing data for the doctor workspace"""
    doctor: DoctorSummary
    statistics: DoctorStatistics
    assigned_patients: List[PatientSummary]
    today_appointments: List[TodayAppointment]
