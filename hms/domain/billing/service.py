from typing import Optional, List, Tuple, Dict, Any
from datetime import date, datetime
import secrets
import uuid

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hms.domain.billing.models import Billing, BillingStatus, derive_status
from hms.domain.billing.repository import BillingRepository
from hms.domain.patients.repository import PatientRepository
from hms.core.exceptions import ConflictError, NotFoundError, InvalidTargetError
from hms.infrastructure.database import unit_of_work
from hms.api.v1.billing.schemas import BillingCreate, BillingUpdate

INVOICE_NUMBER_ATTEMPTS = 5

# Optional invoice fields an explicit null clears
CLEARABLE_FIELDS = {"payment_method", "notes"}


def generate_invoice_number(today: Optional[date] = None) -> str:
    """INV-YYYYMMDD-XXXXXXXX with an upper-case hex suffix"""
    today = today or datetime.utcnow().date()
    return f"INV-{today:%Y%m%d}-{secrets.token_hex(4).upper()}"


def items_total(items: List[Dict[str, Any]]) -> float:
    return round(sum(item["price"] * item["quantity"] for item in items), 2)


class BillingService:
    """Service layer for invoices"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.billing_repo = BillingRepository(db)
        self.patient_repo = PatientRepository(db)

    async def _unused_invoice_number(self) -> str:
        invoice_number = generate_invoice_number()
        while await self.billing_repo.get_by_invoice_number(invoice_number):
            invoice_number = generate_invoice_number()
        return invoice_number

    async def create_billing(self, billing_data: BillingCreate) -> Billing:
        """
        Raise an invoice for a patient.

        The invoice number is checked against existing rows first. Two
        concurrent requests can still pick the same number, so a unique
        constraint failure on insert is retried with a fresh number.
        """
        patient = await self.patient_repo.get_by_id(billing_data.patient_id)
        if not patient:
            raise NotFoundError(message="Patient not found")
        patient_id = patient.id

        items = [item.model_dump() for item in billing_data.services]
        total_amount = billing_data.total_amount
        if total_amount is None:
            total_amount = items_total(items)
        paid_amount = billing_data.paid_amount

        for attempt in range(1, INVOICE_NUMBER_ATTEMPTS + 1):
            invoice_number = await self._unused_invoice_number()
            try:
                async with unit_of_work(self.db):
                    billing = await self.billing_repo.create_with_items(
                        {
                            "patient_id": patient_id,
                            "invoice_number": invoice_number,
                            "total_amount": total_amount,
                            "paid_amount": paid_amount,
                            "status": derive_status(total_amount, paid_amount),
                            "payment_method": billing_data.payment_method,
                            "notes": billing_data.notes,
                        },
                        items
                    )
            except IntegrityError:
                logger.warning(f"Invoice number {invoice_number} collided (attempt {attempt})")
                continue

            logger.info(f"Invoice {invoice_number} raised for patient {patient_id}")
            return await self.billing_repo.get_by_id(billing.id)

        raise ConflictError(
            message="Could not allocate a unique invoice number",
            error_code="INVOICE_NUMBER_EXHAUSTED"
        )

    async def get_billing(self, billing_id: uuid.UUID) -> Billing:
        billing = await self.billing_repo.get_by_id(billing_id)
        if not billing:
            raise NotFoundError(message="Invoice not found")
        return billing

    async def get_billings(
        self,
        skip: int = 0,
        limit: int = 10,
        patient_id: Optional[uuid.UUID] = None,
        status: Optional[BillingStatus] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> Tuple[List[Billing], int]:
        billings = await self.billing_repo.get_all(
            skip=skip, limit=limit, patient_id=patient_id, status=status,
            start_date=start_date, end_date=end_date
        )
        total = await self.billing_repo.count(
            patient_id=patient_id, status=status, start_date=start_date, end_date=end_date
        )
        return billings, total

    async def update_billing(self, billing_id: uuid.UUID, billing_data: BillingUpdate) -> Billing:
        """
        Apply payment or line changes and re-derive the status.

        PAID and PENDING follow the amounts; the only status a caller may set
        on its own is CANCELLED, after which the invoice is frozen.
        """
        billing = await self.get_billing(billing_id)
        if billing.status == BillingStatus.CANCELLED:
            raise InvalidTargetError(message="A cancelled invoice cannot be changed")

        update_data = billing_data.model_dump(exclude_unset=True, exclude={"services"})
        update_data = {
            key: value for key, value in update_data.items()
            if value is not None or key in CLEARABLE_FIELDS
        }
        items = [item.model_dump() for item in billing_data.services] if billing_data.services else None

        if items is not None and "total_amount" not in update_data:
            update_data["total_amount"] = items_total(items)

        total_amount = update_data.get("total_amount", billing.total_amount)
        paid_amount = update_data.get("paid_amount", billing.paid_amount)
        derived = derive_status(total_amount, paid_amount)

        requested = update_data.pop("status", None)
        if requested == BillingStatus.CANCELLED:
            update_data["status"] = BillingStatus.CANCELLED
        elif requested is not None and requested != derived:
            raise InvalidTargetError(
                message=f"Invoice status {requested.value} does not match the amounts",
                details={"derived_status": derived.value, "requested_status": requested.value}
            )
        else:
            update_data["status"] = derived

        async with unit_of_work(self.db):
            await self.billing_repo.update(billing, update_data)
            if items is not None:
                await self.billing_repo.replace_items(billing, items)

        if billing.status != BillingStatus.PENDING:
            logger.info(f"Invoice {billing.invoice_number} is now {billing.status.value}")
        return await self.billing_repo.get_by_id(billing_id)

    async def get_invoice_data(self, billing_id: uuid.UUID) -> Dict[str, Any]:
        billing = await self.get_billing(billing_id)
        patient = billing.patient
        return {
            "invoice_number": billing.invoice_number,
            "billing_date": billing.billing_date,
            "patient": {
                "name": patient.full_name,
                "email": patient.email,
                "phone": patient.phone,
                "address": patient.address,
            },
            "services": billing.services,
            "total_amount": billing.total_amount,
            "paid_amount": billing.paid_amount,
            "balance": billing.balance,
            "status": billing.status,
            "payment_method": billing.payment_method,
            "notes": billing.notes,
        }

    async def delete_billing(self, billing_id: uuid.UUID) -> None:
        billing = await self.get_billing(billing_id)
        async with unit_of_work(self.db):
            await self.billing_repo.delete(billing)
        logger.info(f"Invoice {billing_id} deleted")
