from pydantic import BaseModel, EmailStr, Field, ConfigDict, field_validator
from typing import List, Optional
from datetime import date, datetime
import uuid

from hms.api.v1.schemas import UserSummary, DoctorSummary
from hms.domain.patients.models import Gender
from hms.domain.appointments.models import AppointmentStatus
from hms.domain.lab.models import LabReportStatus


class PatientBase(BaseModel):
    """Base patient schema with demographic fields"""
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: str = Field(..., min_length=5, max_length=30)
    date_of_birth: date
    gender: Gender
    address: Optional[str] = None
    blood_group: Optional[str] = Field(None, max_length=10)
    emergency_contact: Optional[str] = Field(None, max_length=255)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: Optional[str]) -> Optional[str]:
        return v.lower() if v else None

    @field_validator("date_of_birth")
    @classmethod
    def validate_date_of_birth(cls, v: date) -> date:
        if v > date.today():
            raise ValueError("Date of birth cannot be in the future")
        return v


class PatientCreate(PatientBase):
    """Schema for registering a patient"""
    pass


class PatientUpdate(BaseModel):
    """Schema for updating demographic fields"""
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, min_length=5, max_length=30)
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None
    address: Optional[str] = None
    blood_group: Optional[str] = Field(None, max_length=10)
    emergency_contact: Optional[str] = Field(None, max_length=255)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: Optional[str]) -> Optional[str]:
        return v.lower() if v else None

    @field_validator("date_of_birth")
    @classmethod
    def validate_date_of_birth(cls, v: Optional[date]) -> Optional[date]:
        if v and v > date.today():
            raise ValueError("Date of birth cannot be in the future")
        return v


class AssignDoctorRequest(BaseModel):
    doctor_id: uuid.UUID


class MedicalRecordCreate(BaseModel):
    record_type: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1)
    record_date: datetime


class MedicalRecordResponse(BaseModel):
    id: uuid.UUID
    patient_id: uuid.UUID
    record_type: str
    description: str
    record_date: datetime
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReceptionistSummary(BaseModel):
    id: uuid.UUID
    shift: Optional[str] = None
    user: UserSummary

    model_config = ConfigDict(from_attributes=True)


class PatientResponse(BaseModel):
    """Patient row with the registering receptionist and assigned doctor"""
    id: uuid.UUID
    first_name: str
    last_name: str
    email: Optional[str] = None
    phone: str
    date_of_birth: date
    gender: Gender
    address: Optional[str] = None
    blood_group: Optional[str] = None
    emergency_contact: Optional[str] = None
    registered_by: uuid.UUID
    assigned_doctor_id: Optional[uuid.UUID] = None
    is_deleted: bool
    deleted_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    receptionist: Optional[ReceptionistSummary] = None
    assigned_doctor: Optional[DoctorSummary] = None

    model_config = ConfigDict(from_attributes=True)


class AppointmentBrief(BaseModel):
    id: uuid.UUID
    doctor_id: uuid.UUID
    appointment_date: date
    appointment_time: str
    status: AppointmentStatus
    reason: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class LabReportBrief(BaseModel):
    id: uuid.UUID
    test_name: str
    test_type: str
    status: LabReportStatus
    report_date: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PatientDetailResponse(PatientResponse):
    """Patient with the five most recent related records of each kind"""
    recent_appointments: List[AppointmentBrief] = []
    medical_records: List[MedicalRecordResponse] = []
    lab_reports: List[LabReportBrief] = []
