from typing import Any, List, Optional, Tuple
from datetime import date, datetime, time, timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hms.domain.appointments.models import Appointment
from hms.domain.appointments.repository import APPOINTMENT_DETAIL
from hms.domain.billing.models import Billing
from hms.domain.billing.repository import BILLING_DETAIL
from hms.domain.lab.models import LabReport
from hms.domain.lab.repository import LAB_REPORT_DETAIL
from hms.domain.patients.models import Patient
from hms.domain.patients.repository import PATIENT_WITH_STAFF
from hms.domain.treatments.models import Treatment
from hms.domain.users.models import Doctor, User


class DateWindow:
    """Inclusive calendar-day window applied to creation timestamps"""

    def __init__(self, start_date: Optional[date] = None, end_date: Optional[date] = None):
        self.start_date = start_date
        self.end_date = end_date

    def apply(self, query, column):
        if self.start_date:
            query = query.where(column >= datetime.combine(self.start_date, time.min))
        if self.end_date:
            query = query.where(column < datetime.combine(self.end_date + timedelta(days=1), time.min))
        return query


class ReportsRepository:
    """Aggregate queries behind the admin dashboard and reports"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _scalar(self, query) -> Any:
        result = await self.db.execute(query)
        return result.scalar_one()

    async def _rows(self, query) -> List[Tuple]:
        result = await self.db.execute(query)
        return list(result.all())

    async def count_patients(self, window: Optional[DateWindow] = None) -> int:
        query = select(func.count(Patient.id)).where(Patient.is_deleted == False)  # noqa: E712
        if window:
            query = window.apply(query, Patient.created_at)
        return await self._scalar(query)

    async def patients_by_gender(self) -> List[Tuple]:
        query = (
            select(Patient.gender, func.count(Patient.id))
            .where(Patient.is_deleted == False)  # noqa: E712
            .group_by(Patient.gender)
        )
        return await self._rows(query)

    async def count_doctors(self) -> int:
        return await self._scalar(select(func.count(Doctor.id)))

    async def doctors_by_specialization(self) -> List[Tuple]:
        query = select(Doctor.specialization, func.count(Doctor.id)).group_by(Doctor.specialization)
        return await self._rows(query)

    async def count_appointments(
        self,
        window: Optional[DateWindow] = None,
        status=None,
        appointment_date: Optional[date] = None
    ) -> int:
        query = select(func.count(Appointment.id))
        if window:
            query = window.apply(query, Appointment.created_at)
        if status:
            query = query.where(Appointment.status == status)
        if appointment_date:
            query = query.where(Appointment.appointment_date == appointment_date)
        return await self._scalar(query)

    async def appointments_by_status(self, window: DateWindow) -> List[Tuple]:
        query = window.apply(
            select(Appointment.status, func.count(Appointment.id)), Appointment.created_at
        ).group_by(Appointment.status)
        return await self._rows(query)

    async def count_lab_reports(self, window: Optional[DateWindow] = None, status=None) -> int:
        query = select(func.count(LabReport.id))
        if window:
            query = window.apply(query, LabReport.created_at)
        if status:
            query = query.where(LabReport.status == status)
        return await self._scalar(query)

    async def lab_reports_by_status(self, window: DateWindow) -> List[Tuple]:
        query = window.apply(
            select(LabReport.status, func.count(LabReport.id)), LabReport.created_at
        ).group_by(LabReport.status)
        return await self._rows(query)

    async def sum_billing(self, column, window: DateWindow, status=None) -> float:
        query = window.apply(select(func.coalesce(func.sum(column), 0.0)), Billing.created_at)
        if status:
            query = query.where(Billing.status == status)
        return float(await self._scalar(query))

    async def count_billings(self, window: DateWindow) -> int:
        return await self._scalar(window.apply(select(func.count(Billing.id)), Billing.created_at))

    async def billing_by_status(self, window: DateWindow) -> List[Tuple]:
        query = window.apply(
            select(
                Billing.status,
                func.count(Billing.id),
                func.coalesce(func.sum(Billing.total_amount), 0.0),
                func.coalesce(func.sum(Billing.paid_amount), 0.0)
            ),
            Billing.created_at
        ).group_by(Billing.status)
        return await self._rows(query)

    async def count_treatments(self, window: DateWindow) -> int:
        return await self._scalar(window.apply(select(func.count(Treatment.id)), Treatment.created_at))

    async def count_active_users(self) -> int:
        return await self._scalar(select(func.count(User.id)).where(User.is_active == True))  # noqa: E712

    async def users_by_role(self) -> List[Tuple]:
        return await self._rows(select(User.role, func.count(User.id)).group_by(User.role))

    async def _listing(self, query) -> List[Any]:
        result = await self.db.execute(query.execution_options(populate_existing=True))
        return list(result.scalars().unique().all())

    async def list_patients(self, window: DateWindow) -> List[Patient]:
        query = window.apply(
            select(Patient).where(Patient.is_deleted == False),  # noqa: E712
            Patient.created_at
        ).options(*PATIENT_WITH_STAFF).order_by(Patient.created_at.desc())
        return await self._listing(query)

    async def list_billings(self, window: DateWindow) -> List[Billing]:
        query = window.apply(select(Billing), Billing.created_at).options(*BILLING_DETAIL).order_by(
            Billing.created_at.desc()
        )
        return await self._listing(query)

    async def list_appointments(self, window: DateWindow) -> List[Appointment]:
        query = window.apply(select(Appointment), Appointment.created_at).options(*APPOINTMENT_DETAIL).order_by(
            Appointment.appointment_date.desc()
        )
        return await self._listing(query)

    async def list_lab_reports(self, window: DateWindow) -> List[LabReport]:
        query = window.apply(select(LabReport), LabReport.created_at).options(*LAB_REPORT_DETAIL).order_by(
            LabReport.created_at.desc()
        )
        return await self._listing(query)
