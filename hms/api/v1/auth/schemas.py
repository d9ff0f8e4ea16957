from pydantic import BaseModel, EmailStr, Field, ConfigDict, field_validator
from typing import Annotated, Literal, Optional, Union
from datetime import datetime
import uuid

from hms.domain.users.models import UserRole


class LoginRequest(BaseModel):
    """Login request schema"""
    email: EmailStr
    password: str = Field(..., min_length=1)


class RegisterBase(BaseModel):
    """Fields shared by every registration variant"""
    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str = Field(..., min_length=6, max_length=72)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("first_name", "last_name")
    @classmethod
    def strip_names(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()


class AdminRegister(RegisterBase):
    role: Literal["ADMIN"]


class DoctorRegister(RegisterBase):
    role: Literal["DOCTOR"]
    specialization: str = Field(..., min_length=1, max_length=150)
    qualification: str = Field(..., min_length=1, max_length=255)
    experience: int = Field(0, ge=0)
    consultation_fee: float = Field(0, ge=0)


class ReceptionistRegister(RegisterBase):
    role: Literal["RECEPTIONIST"]
    shift: Optional[str] = Field(None, max_length=50)


class LabStaffRegister(RegisterBase):
    role: Literal["LAB_STAFF"]
    department: Optional[str] = Field(None, max_length=100)


# The role value selects which profile fields are accepted
RegisterRequest = Annotated[
    Union[AdminRegister, DoctorRegister, ReceptionistRegister, LabStaffRegister],
    Field(discriminator="role")
]


class ProfileUpdate(BaseModel):
    """Fields a user may change on their own account"""
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)


class PasswordChangeRequest(BaseModel):
    """Password change request schema"""
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, max_length=72)


class DoctorProfileResponse(BaseModel):
    id: uuid.UUID
    specialization: str
    qualification: str
    experience: int
    consultation_fee: float

    model_config = ConfigDict(from_attributes=True)


class ReceptionistProfileResponse(BaseModel):
    id: uuid.UUID
    shift: Optional[str]

    model_config = ConfigDict(from_attributes=True)


class LabStaffProfileResponse(BaseModel):
    id: uuid.UUID
    department: Optional[str]

    model_config = ConfigDict(from_attributes=True)


class UserResponse(BaseModel):
    """User response schema with the role profile embedded"""
    id: uuid.UUID
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    role: UserRole
    is_active: bool
    created_at: datetime
    updated_at: datetime
    profile: Optional[Union[DoctorProfileResponse, ReceptionistProfileResponse, LabStaffProfileResponse]] = None

    model_config = ConfigDict(from_attributes=True)


class LoginResponse(BaseModel):
    user: UserResponse
    token: str
