from datetime import datetime
import uuid
import enum

from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Enum, Integer, Float, Uuid
from sqlalchemy.orm import relationship
from hms.infrastructure.database import Base


class UserRole(str, enum.Enum):
    """User roles in the hospital management system"""
    ADMIN = "ADMIN"
    DOCTOR = "DOCTOR"
    RECEPTIONIST = "RECEPTIONIST"
    LAB_STAFF = "LAB_STAFF"


# Roles that carry exactly one extension profile
PROFILE_ROLES = {UserRole.DOCTOR, UserRole.RECEPTIONIST, UserRole.LAB_STAFF}


class User(Base):
    """Account used to sign in to the API"""
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)

    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    phone = Column(String(30))

    role = Column(Enum(UserRole, name="user_role"), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    doctor_profile = relationship("Doctor", back_populates="user", uselist=False, cascade="all, delete-orphan")
    receptionist_profile = relationship("Receptionist", back_populates="user", uselist=False, cascade="all, delete-orphan")
    lab_staff_profile = relationship("LabStaff", back_populates="user", uselist=False, cascade="all, delete-orphan")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def profile(self):
        """The role-specific extension record, None for admins"""
        if self.role == UserRole.DOCTOR:
            return self.doctor_profile
        if self.role == UserRole.RECEPTIONIST:
            return self.receptionist_profile
        if self.role == UserRole.LAB_STAFF:
            return self.lab_staff_profile
        return None


class Doctor(Base):
    __tablename__ = "doctors"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    specialization = Column(String(150), nullable=False, index=True)
    qualification = Column(String(255), nullable=False)
    experience = Column(Integer, nullable=False, default=0)
    consultation_fee = Column(Float, nullable=False, default=0)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="doctor_profile")


class Receptionist(Base):
    __tablename__ = "receptionists"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    shift = Column(String(50))

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="receptionist_profile")


class LabStaff(Base):
    __tablename__ = "lab_staff"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    department = Column(String(100))

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="lab_staff_profile")
