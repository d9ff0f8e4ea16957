import uuid
from typing import Generic, List, Optional, TypeVar
from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class PaginationMeta(BaseModel):
    """Paging metadata returned with every list"""
    model_config = ConfigDict(populate_by_name=True)

    total: int
    page: int
    limit: int
    total_pages: int = Field(alias="totalPages")
    has_next: bool = Field(alias="hasNext")
    has_prev: bool = Field(alias="hasPrev")


class SuccessResponse(BaseModel, Generic[T]):
    """Standard success envelope"""
    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None


class PaginatedResponse(BaseModel, Generic[T]):
    """Success envelope for list endpoints"""
    success: bool = True
    message: Optional[str] = None
    data: List[T]
    pagination: PaginationMeta


class UserSummary(BaseModel):
    """Name and contact fields of a user, embedded in other records"""
    id: uuid.UUID
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class DoctorSummary(BaseModel):
    id: uuid.UUID
    specialization: str
    user: UserSummary

    model_config = ConfigDict(from_attributes=True)


class PatientSummary(BaseModel):
    id: uuid.UUID
    first_name: str
    last_name: str
    phone: str
    email: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
