from datetime import datetime
import uuid
import enum

from sqlalchemy import Column, String, Boolean, Date, DateTime, ForeignKey, Enum, Text, Uuid
from sqlalchemy.orm import relationship
from hms.infrastructure.database import Base


class Gender(str, enum.Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"
    OTHER = "OTHER"


class Patient(Base):
    """Patient registered at the front desk; soft-deleted only"""
    __tablename__ = "patients"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    first_name = Column(String(100), nullable=False, index=True)
    last_name = Column(String(100), nullable=False, index=True)
    email = Column(String(255), unique=True, index=True)
    phone = Column(String(30), nullable=False, index=True)
    date_of_birth = Column(Date, nullable=False)
    gender = Column(Enum(Gender, name="gender"), nullable=False)
    address = Column(Text)
    blood_group = Column(String(10))
    emergency_contact = Column(String(255))

    registered_by = Column(Uuid, ForeignKey("receptionists.id"), nullable=False)
    assigned_doctor_id = Column(Uuid, ForeignKey("doctors.id"), index=True)

    is_deleted = Column(Boolean, nullable=False, default=False, index=True)
    deleted_at = Column(DateTime)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    receptionist = relationship("Receptionist")
    assigned_doctor = relationship("Doctor")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class MedicalRecord(Base):
    __tablename__ = "medical_records"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    patient_id = Column(Uuid, ForeignKey("patients.id"), nullable=False, index=True)
    record_type = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    record_date = Column(DateTime, nullable=False, default=datetime.utcnow)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
