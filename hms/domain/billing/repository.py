from typing import Optional, List
from datetime import date, datetime, time, timedelta
import uuid

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from hms.domain.billing.models import Billing, BillingItem, BillingStatus
from hms.infrastructure.repository import BaseRepository

BILLING_DETAIL = (
    selectinload(Billing.services),
    selectinload(Billing.patient),
)


class BillingRepository(BaseRepository[Billing]):
    """Repository for invoices and their service lines"""

    model = Billing

    async def create_with_items(self, data: dict, items: List[dict]) -> Billing:
        billing = Billing(**data)
        billing.services = [BillingItem(position=index, **item) for index, item in enumerate(items)]
        return await self.add(billing)

    async def replace_items(self, billing: Billing, items: List[dict]) -> None:
        billing.services = [BillingItem(position=index, **item) for index, item in enumerate(items)]
        await self.db.flush()

    async def get_by_id(self, billing_id: uuid.UUID) -> Optional[Billing]:
        return await self.get(billing_id, BILLING_DETAIL)

    async def get_by_invoice_number(self, invoice_number: str) -> Optional[Billing]:
        result = await self.db.execute(select(Billing).where(Billing.invoice_number == invoice_number))
        return result.scalar_one_or_none()

    def _filtered(
        self,
        patient_id: Optional[uuid.UUID] = None,
        status: Optional[BillingStatus] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ):
        query = select(Billing)

        if patient_id:
            query = query.where(Billing.patient_id == patient_id)

        if status:
            query = query.where(Billing.status == status)

        if start_date:
            query = query.where(Billing.billing_date >= datetime.combine(start_date, time.min))

        # end date covers the whole day
        if end_date:
            query = query.where(Billing.billing_date < datetime.combine(end_date + timedelta(days=1), time.min))

        return query

    async def get_all(
        self,
        skip: int = 0,
        limit: Optional[int] = 10,
        patient_id: Optional[uuid.UUID] = None,
        status: Optional[BillingStatus] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> List[Billing]:
        query = (
            self._filtered(patient_id, status, start_date, end_date)
            .options(*BILLING_DETAIL)
            .order_by(Billing.created_at.desc())
        )
        return await self.fetch(query, skip, limit)

    async def count(
        self,
        patient_id: Optional[uuid.UUID] = None,
        status: Optional[BillingStatus] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> int:
        return await self.count_query(self._filtered(patient_id, status, start_date, end_date))
