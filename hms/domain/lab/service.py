from typing import Optional, List, Tuple, Dict, Any
from datetime import datetime
import uuid

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from hms.domain.lab.models import LabReport, LabReportStatus, can_transition
from hms.domain.lab.repository import LabReportRepository
from hms.domain.patients.repository import PatientRepository
from hms.domain.users.models import LabStaff
from hms.domain.users.repository import LabStaffRepository
from hms.core.config import settings
from hms.core.exceptions import AuthorizationError, NotFoundError, InvalidTargetError
from hms.infrastructure.database import unit_of_work
from hms.services.cloudinary_service import CloudinaryStorage, validate_upload
from hms.api.v1.lab_reports.schemas import LabReportCreate

# Statuses that record who conducted the test
CONDUCTED_STATUSES = (LabReportStatus.IN_PROGRESS, LabReportStatus.COMPLETED)


def check_transition(current: LabReportStatus, target: LabReportStatus) -> None:
    if not can_transition(current, target):
        raise InvalidTargetError(
            message=f"Cannot change lab report status from {current.value} to {target.value}",
            details={"current_status": current.value, "requested_status": target.value}
        )


class LabReportService:
    """Service layer for lab report operations"""

    def __init__(self, db: AsyncSession, storage: CloudinaryStorage):
        self.db = db
        self.storage = storage
        self.lab_report_repo = LabReportRepository(db)
        self.patient_repo = PatientRepository(db)
        self.lab_staff_repo = LabStaffRepository(db)

    async def _get_acting_lab_staff(self, acting_user_id: uuid.UUID) -> LabStaff:
        lab_staff = await self.lab_staff_repo.get_by_user_id(acting_user_id)
        if not lab_staff:
            raise AuthorizationError(message="Lab staff profile not found")
        return lab_staff

    async def create_lab_report(self, report_data: LabReportCreate) -> LabReport:
        """Order a test for an existing patient"""
        patient = await self.patient_repo.get_by_id(report_data.patient_id, include_deleted=False)
        if not patient:
            raise NotFoundError(message="Patient not found")

        async with unit_of_work(self.db):
            report = await self.lab_report_repo.create({
                **report_data.model_dump(),
                "status": LabReportStatus.PENDING
            })

        logger.info(f"Lab report {report.id} ({report.test_name}) ordered for patient {patient.id}")
        return await self.lab_report_repo.get_by_id(report.id)

    async def get_lab_report(self, report_id: uuid.UUID) -> LabReport:
        report = await self.lab_report_repo.get_by_id(report_id)
        if not report:
            raise NotFoundError(message="Lab report not found")
        return report

    async def get_lab_reports(
        self,
        skip: int = 0,
        limit: int = 10,
        status: Optional[LabReportStatus] = None,
        patient_id: Optional[uuid.UUID] = None,
        test_type: Optional[str] = None
    ) -> Tuple[List[LabReport], int]:
        reports = await self.lab_report_repo.get_all(
            skip=skip, limit=limit, status=status, patient_id=patient_id, test_type=test_type
        )
        total = await self.lab_report_repo.count(status=status, patient_id=patient_id, test_type=test_type)
        return reports, total

    async def get_pending_reports(self, skip: int = 0, limit: int = 10) -> Tuple[List[LabReport], int]:
        """PENDING work queue, oldest first"""
        reports = await self.lab_report_repo.get_all(
            skip=skip, limit=limit, status=LabReportStatus.PENDING, oldest_first=True
        )
        total = await self.lab_report_repo.count(status=LabReportStatus.PENDING)
        return reports, total

    async def get_my_reports(
        self,
        acting_user_id: uuid.UUID,
        skip: int = 0,
        limit: int = 10,
        status: Optional[LabReportStatus] = None
    ) -> Tuple[List[LabReport], int]:
        lab_staff = await self._get_acting_lab_staff(acting_user_id)
        reports = await self.lab_report_repo.get_all(
            skip=skip, limit=limit, status=status, conducted_by=lab_staff.id
        )
        total = await self.lab_report_repo.count(status=status, conducted_by=lab_staff.id)
        return reports, total

    async def update_lab_report(
        self,
        report_id: uuid.UUID,
        update_data: Dict[str, Any],
        acting_user_id: uuid.UUID,
        file_content: Optional[bytes] = None,
        file_name: Optional[str] = None
    ) -> LabReport:
        """
        Record progress on a test.

        A move to IN_PROGRESS or COMPLETED stamps the acting lab staff member
        as the one who conducted it. An attached file is validated before it
        is sent to storage.
        """
        report = await self.get_lab_report(report_id)
        update_data = {key: value for key, value in update_data.items() if value is not None}

        new_status = update_data.get("status")
        if new_status is not None:
            if new_status == report.status:
                update_data.pop("status")
            else:
                check_transition(report.status, new_status)
                if new_status in CONDUCTED_STATUSES:
                    lab_staff = await self._get_acting_lab_staff(acting_user_id)
                    update_data["conducted_by"] = lab_staff.id

        if file_content is not None:
            validate_upload(file_name, len(file_content))
            stored = await self.storage.upload(file_content, file_name)
            update_data.update(file_url=stored.url, file_name=stored.file_name, file_key=stored.key)

        async with unit_of_work(self.db):
            await self.lab_report_repo.update(report, update_data)

        return await self.lab_report_repo.get_by_id(report_id)

    async def upload_report_file(
        self,
        report_id: uuid.UUID,
        file_content: bytes,
        file_name: str,
        acting_user_id: uuid.UUID
    ) -> LabReport:
        """Attach the result file and complete the report"""
        report = await self.get_lab_report(report_id)
        validate_upload(file_name, len(file_content))

        if report.status != LabReportStatus.COMPLETED:
            check_transition(report.status, LabReportStatus.COMPLETED)
        lab_staff = await self._get_acting_lab_staff(acting_user_id)

        stored = await self.storage.upload(file_content, file_name)

        async with unit_of_work(self.db):
            await self.lab_report_repo.update(report, {
                "file_url": stored.url,
                "file_name": stored.file_name,
                "file_key": stored.key,
                "status": LabReportStatus.COMPLETED,
                "conducted_by": lab_staff.id,
                "report_date": datetime.utcnow()
            })

        logger.info(f"Lab report {report_id} completed with file {file_name}")
        return await self.lab_report_repo.get_by_id(report_id)

    async def get_download_link(self, report_id: uuid.UUID) -> Dict[str, Any]:
        report = await self.get_lab_report(report_id)
        if not report.file_key:
            raise NotFoundError(message="No file uploaded for this lab report")

        expires_in = settings.DOWNLOAD_URL_EXPIRE_SECONDS
        url = await self.storage.signed_url(report.file_key, report.file_name, expires_in)
        return {"url": url, "file_name": report.file_name, "expires_in": expires_in}

    async def delete_lab_report(self, report_id: uuid.UUID) -> None:
        report = await self.get_lab_report(report_id)
        async with unit_of_work(self.db):
            await self.lab_report_repo.delete(report)
        logger.info(f"Lab report {report_id} deleted")
