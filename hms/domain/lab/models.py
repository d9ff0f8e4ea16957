from datetime import datetime
from typing import Dict, FrozenSet
import uuid
import enum

from sqlalchemy import Column, String, DateTime, ForeignKey, Enum, Text, Uuid
from sqlalchemy.orm import relationship
from hms.infrastructure.database import Base


class LabReportStatus(str, enum.Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


# One-directional: nothing returns to PENDING
LAB_REPORT_TRANSITIONS: Dict[LabReportStatus, FrozenSet[LabReportStatus]] = {
    LabReportStatus.PENDING: frozenset({LabReportStatus.IN_PROGRESS, LabReportStatus.COMPLETED}),
    LabReportStatus.IN_PROGRESS: frozenset({LabReportStatus.COMPLETED}),
    LabReportStatus.COMPLETED: frozenset(),
}


def can_transition(current: LabReportStatus, target: LabReportStatus) -> bool:
    return target in LAB_REPORT_TRANSITIONS[current]


class LabReport(Base):
    __tablename__ = "lab_reports"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    patient_id = Column(Uuid, ForeignKey("patients.id"), nullable=False, index=True)
    test_name = Column(String(200), nullable=False)
    test_type = Column(String(100), nullable=False, index=True)
    status = Column(Enum(LabReportStatus, name="lab_report_status"), nullable=False, default=LabReportStatus.PENDING, index=True)
    results = Column(Text)
    remarks = Column(Text)

    file_url = Column(String(500))
    file_name = Column(String(255))
    file_key = Column(String(500))

    conducted_by = Column(Uuid, ForeignKey("lab_staff.id"), index=True)
    report_date = Column(DateTime)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    patient = relationship("Patient")
    lab_staff = relationship("LabStaff")
