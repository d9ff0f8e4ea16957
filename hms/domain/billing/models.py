from datetime import datetime
import uuid
import enum

from sqlalchemy import Column, String, Integer, Float, DateTime, ForeignKey, Enum, Text, Uuid
from sqlalchemy.orm import relationship
from hms.infrastructure.database import Base


class BillingStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


def derive_status(total_amount: float, paid_amount: float) -> BillingStatus:
    """PAID exactly when the paid amount covers the total"""
    return BillingStatus.PAID if paid_amount >= total_amount else BillingStatus.PENDING


class Billing(Base):
    __tablename__ = "billings"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    patient_id = Column(Uuid, ForeignKey("patients.id"), nullable=False, index=True)
    invoice_number = Column(String(50), unique=True, nullable=False, index=True)

    total_amount = Column(Float, nullable=False)
    paid_amount = Column(Float, nullable=False, default=0.0)
    status = Column(Enum(BillingStatus, name="billing_status"), nullable=False, default=BillingStatus.PENDING, index=True)
    payment_method = Column(String(50))
    notes = Column(Text)
    billing_date = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    patient = relationship("Patient")
    services = relationship(
        "BillingItem",
        back_populates="billing",
        cascade="all, delete-orphan",
        order_by="BillingItem.position"
    )

    @property
    def balance(self) -> float:
        return round((self.total_amount or 0.0) - (self.paid_amount or 0.0), 2)


class BillingItem(Base):
    """One billed service line"""
    __tablename__ = "billing_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    billing_id = Column(Uuid, ForeignKey("billings.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    name = Column(String(200), nullable=False)
    price = Column(Float, nullable=False)
    quantity = Column(Integer, nullable=False, default=1)

    billing = relationship("Billing", back_populates="services")

    @property
    def amount(self) -> float:
        return round(self.price * self.quantity, 2)
