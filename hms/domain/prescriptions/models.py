from datetime import datetime
import uuid

from sqlalchemy import Column, String, Integer, Date, DateTime, ForeignKey, Text, Uuid
from sqlalchemy.orm import relationship
from hms.infrastructure.database import Base


class Prescription(Base):
    """Prescription written by the doctor of exactly one appointment"""
    __tablename__ = "prescriptions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    appointment_id = Column(Uuid, ForeignKey("appointments.id"), unique=True, nullable=False)
    patient_id = Column(Uuid, ForeignKey("patients.id"), nullable=False, index=True)
    doctor_id = Column(Uuid, ForeignKey("doctors.id"), nullable=False, index=True)

    diagnosis = Column(Text, nullable=False)
    instructions = Column(Text)
    follow_up_date = Column(Date)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    appointment = relationship("Appointment", back_populates="prescription")
    patient = relationship("Patient")
    doctor = relationship("Doctor")
    medicines = relationship(
        "PrescriptionMedicine",
        back_populates="prescription",
        cascade="all, delete-orphan",
        order_by="PrescriptionMedicine.position"
    )


class PrescriptionMedicine(Base):
    __tablename__ = "prescription_medicines"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    prescription_id = Column(Uuid, ForeignKey("prescriptions.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    name = Column(String(200), nullable=False)
    dosage = Column(String(100), nullable=False)
    frequency = Column(String(100), nullable=False)
    duration = Column(String(100), nullable=False)

    prescription = relationship("Prescription", back_populates="medicines")
