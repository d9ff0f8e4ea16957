from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import datetime
import uuid

from hms.api.v1.schemas import PatientSummary, UserSummary
from hms.domain.lab.models import LabReportStatus


class LabReportCreate(BaseModel):
    """Schema for ordering a lab test"""
    patient_id: uuid.UUID
    test_name: str = Field(..., min_length=1, max_length=200)
    test_type: str = Field(..., min_length=1, max_length=100)
    remarks: Optional[str] = None


class LabStaffSummary(BaseModel):
    id: uuid.UUID
    department: Optional[str] = None
    user: UserSummary

    model_config = ConfigDict(from_attributes=True)


class LabReportResponse(BaseModel):
    id: uuid.UUID
    patient_id: uuid.UUID
    test_name: str
    test_type: str
    status: LabReportStatus
    results: Optional[str] = None
    remarks: Optional[str] = None
    file_url: Optional[str] = None
    file_name: Optional[str] = None
    conducted_by: Optional[uuid.UUID] = None
    report_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    patient: Optional[PatientSummary] = None
    lab_staff: Optional[LabStaffSummary] = None

    model_config = ConfigDict(from_attributes=True)


class DownloadLink(BaseModel):
    """Short-lived link to a stored report file"""
    url: str
    file_name: Optional[str] = None
    expires_in: int
