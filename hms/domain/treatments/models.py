from datetime import datetime
import uuid

from sqlalchemy import Column, String, Integer, Date, DateTime, ForeignKey, Text, Uuid
from sqlalchemy.orm import relationship
from hms.infrastructure.database import Base


class Treatment(Base):
    """Treatment note authored by a doctor for a patient"""
    __tablename__ = "treatments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    patient_id = Column(Uuid, ForeignKey("patients.id"), nullable=False, index=True)
    doctor_id = Column(Uuid, ForeignKey("doctors.id"), nullable=False, index=True)

    diagnosis = Column(Text, nullable=False)
    treatment = Column(Text, nullable=False)
    notes = Column(Text)
    follow_up_date = Column(Date)
    treatment_date = Column(DateTime, nullable=False, default=datetime.utcnow)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    patient = relationship("Patient")
    doctor = relationship("Doctor")
    medications = relationship(
        "TreatmentMedication",
        back_populates="treatment_record",
        cascade="all, delete-orphan",
        order_by="TreatmentMedication.position"
    )


class TreatmentMedication(Base):
    __tablename__ = "treatment_medications"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    treatment_id = Column(Uuid, ForeignKey("treatments.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    name = Column(String(200), nullable=False)
    dosage = Column(String(100))
    frequency = Column(String(100))
    duration = Column(String(100))

    treatment_record = relationship("Treatment", back_populates="medications")
