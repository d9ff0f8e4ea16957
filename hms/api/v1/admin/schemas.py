from pydantic import BaseModel, EmailStr, Field, ConfigDict, field_validator
from typing import Any, Dict, List, Optional
import uuid
import enum


class UserUpdate(BaseModel):
    """Admin update of a user account and its role profile"""
    model_config = ConfigDict(extra="forbid")

    email: Optional[EmailStr] = None
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    is_active: Optional[bool] = None

    # Doctor profile
    specialization: Optional[str] = Field(None, min_length=1, max_length=150)
    qualification: Optional[str] = Field(None, min_length=1, max_length=255)
    experience: Optional[int] = Field(None, ge=0)
    consultation_fee: Optional[float] = Field(None, ge=0)

    # Receptionist profile
    shift: Optional[str] = Field(None, max_length=50)

    # Lab staff profile
    department: Optional[str] = Field(None, max_length=100)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: Optional[str]) -> Optional[str]:
        return v.lower() if v else v


class DoctorUser(BaseModel):
    id: uuid.UUID
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class DoctorListItem(BaseModel):
    id: uuid.UUID
    specialization: str
    qualification: str
    experience: int
    consultation_fee: float
    user: DoctorUser

    model_config = ConfigDict(from_attributes=True)


class DashboardStats(BaseModel):
    total_patients: int
    total_doctors: int
    total_appointments: int
    today_appointments: int
    pending_lab_reports: int
    completed_appointments: int


class ReportType(str, enum.Enum):
    SUMMARY = "summary"
    PATIENTS = "patients"
    REVENUE = "revenue"
    APPOINTMENTS = "appointments"
    LAB_REPORTS = "lab-reports"


class ReportMetadata(BaseModel):
    generated_at: str
    generated_by: str
    date_range: Dict[str, str]


class ReportData(BaseModel):
    """Data a PDF renderer consumes for one canned report"""
    title: str
    type: ReportType
    statistics: Optional[Dict[str, Any]] = None
    data: Optional[List[Dict[str, Any]]] = None
    summary: Optional[Dict[str, Any]] = None
    metadata: ReportMetadata
