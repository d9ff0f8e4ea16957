from typing import Optional, List
import uuid

from sqlalchemy import func, select
from sqlalchemy.orm import selectinload

from hms.domain.lab.models import LabReport, LabReportStatus
from hms.domain.patients.models import Patient
from hms.domain.users.models import LabStaff
from hms.infrastructure.repository import BaseRepository

LAB_REPORT_DETAIL = (
    selectinload(LabReport.patient),
    selectinload(LabReport.lab_staff).selectinload(LabStaff.user),
)


class LabReportRepository(BaseRepository[LabReport]):
    """Repository for lab report data access operations"""

    model = LabReport

    async def get_by_id(self, report_id: uuid.UUID) -> Optional[LabReport]:
        return await self.get(report_id, LAB_REPORT_DETAIL)

    def _filtered(
        self,
        status: Optional[LabReportStatus] = None,
        patient_id: Optional[uuid.UUID] = None,
        test_type: Optional[str] = None,
        conducted_by: Optional[uuid.UUID] = None
    ):
        query = select(LabReport)

        if status:
            query = query.where(LabReport.status == status)

        if patient_id:
            query = query.where(LabReport.patient_id == patient_id)

        if test_type:
            query = query.where(func.lower(LabReport.test_type).like(f"%{test_type.lower()}%"))

        if conducted_by:
            query = query.where(LabReport.conducted_by == conducted_by)

        return query

    async def get_all(
        self,
        skip: int = 0,
        limit: Optional[int] = 10,
        status: Optional[LabReportStatus] = None,
        patient_id: Optional[uuid.UUID] = None,
        test_type: Optional[str] = None,
        conducted_by: Optional[uuid.UUID] = None,
        oldest_first: bool = False
    ) -> List[LabReport]:
        ordering = LabReport.created_at.asc() if oldest_first else LabReport.created_at.desc()
        query = (
            self._filtered(status, patient_id, test_type, conducted_by)
            .options(*LAB_REPORT_DETAIL)
            .order_by(ordering)
        )
        return await self.fetch(query, skip, limit)

    async def count(
        self,
        status: Optional[LabReportStatus] = None,
        patient_id: Optional[uuid.UUID] = None,
        test_type: Optional[str] = None,
        conducted_by: Optional[uuid.UUID] = None
    ) -> int:
        return await self.count_query(self._filtered(status, patient_id, test_type, conducted_by))

    async def get_recent_for_patient(self, patient_id: uuid.UUID, limit: int = 5) -> List[LabReport]:
        query = (
            select(LabReport)
            .where(LabReport.patient_id == patient_id)
            .order_by(LabReport.created_at.desc())
        )
        return await self.fetch(query, 0, limit)

    async def count_pending_for_doctor(self, doctor_id: uuid.UUID) -> int:
        """PENDING reports of the non-deleted patients assigned to a doctor"""
        query = (
            select(LabReport)
            .join(Patient, LabReport.patient_id == Patient.id)
            .where(
                Patient.assigned_doctor_id == doctor_id,
                Patient.is_deleted == False,  # noqa: E712
                LabReport.status == LabReportStatus.PENDING
            )
        )
        return await self.count_query(query)
