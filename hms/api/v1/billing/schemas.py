from pydantic import BaseModel, Field, ConfigDict
from typing import List, Optional
from datetime import datetime
import uuid

from hms.api.v1.schemas import PatientSummary
from hms.domain.billing.models import BillingStatus


class BillingItemIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    price: float = Field(..., ge=0)
    quantity: int = Field(1, ge=1)


class BillingItemResponse(BillingItemIn):
    amount: float

    model_config = ConfigDict(from_attributes=True)


class BillingCreate(BaseModel):
    """Schema for raising an invoice; the total defaults to the sum of the lines"""
    patient_id: uuid.UUID
    services: List[BillingItemIn] = Field(..., min_length=1)
    total_amount: Optional[float] = Field(None, ge=0)
    paid_amount: float = Field(0.0, ge=0)
    payment_method: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None


class BillingUpdate(BaseModel):
    services: Optional[List[BillingItemIn]] = Field(None, min_length=1)
    total_amount: Optional[float] = Field(None, ge=0)
    paid_amount: Optional[float] = Field(None, ge=0)
    status: Optional[BillingStatus] = None
    payment_method: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None


class BillingResponse(BaseModel):
    id: uuid.UUID
    patient_id: uuid.UUID
    invoice_number: str
    services: List[BillingItemResponse]
    total_amount: float
    paid_amount: float
    balance: float
    status: BillingStatus
    payment_method: Optional[str] = None
    notes: Optional[str] = None
    billing_date: datetime
    created_at: datetime
    updated_at: datetime
    patient: Optional[PatientSummary] = None

    model_config = ConfigDict(from_attributes=True)


class InvoicePatient(BaseModel):
    name: str
    email: Optional[str] = None
    phone: str
    address: Optional[str] = None


class InvoiceData(BaseModel):
    """Everything a renderer needs to print an invoice"""
    invoice_number: str
    billing_date: datetime
    patient: InvoicePatient
    services: List[BillingItemResponse]
    total_amount: float
    paid_amount: float
    balance: float
    status: BillingStatus
    payment_method: Optional[str] = None
    notes: Optional[str] = None
