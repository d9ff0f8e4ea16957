from fastapi import APIRouter, Depends, Query, Form, File, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from datetime import datetime
import uuid

from hms.api.deps import Principal, get_current_user, get_storage, require_permission
from hms.api.v1.schemas import SuccessResponse, PaginatedResponse
from hms.api.v1.lab_reports.schemas import LabReportCreate, LabReportResponse, DownloadLink
from hms.core.pagination import PageParams, paginate
from hms.core.permissions import Permissions
from hms.domain.lab.models import LabReportStatus
from hms.domain.lab.service import LabReportService
from hms.infrastructure.database import get_db
from hms.services.cloudinary_service import CloudinaryStorage, read_upload

router = APIRouter(prefix="/lab-reports", tags=["Lab Reports"])


@router.post("", response_model=SuccessResponse[LabReportResponse], status_code=status.HTTP_201_CREATED)
async def create_lab_report(
    report_data: LabReportCreate,
    current_user: Principal = Depends(require_permission(Permissions.LAB_REPORTS_CREATE)),
    db: AsyncSession = Depends(get_db),
    storage: CloudinaryStorage = Depends(get_storage)
):
    """Order a lab test for a patient"""
    lab_service = LabReportService(db, storage)
    report = await lab_service.create_lab_report(report_data)
    return SuccessResponse(
        message="Lab report created successfully",
        data=LabReportResponse.model_validate(report)
    )


@router.get("", response_model=PaginatedResponse[LabReportResponse])
async def get_lab_reports(
    page: PageParams = Depends(),
    status: Optional[LabReportStatus] = Query(None),
    patient_id: Optional[uuid.UUID] = Query(None),
    test_type: Optional[str] = Query(None),
    current_user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: CloudinaryStorage = Depends(get_storage)
):
    lab_service = LabReportService(db, storage)
    reports, total = await lab_service.get_lab_reports(
        skip=page.skip, limit=page.limit, status=status, patient_id=patient_id, test_type=test_type
    )
    return PaginatedResponse(
        data=[LabReportResponse.model_validate(r) for r in reports],
        pagination=paginate(total, page.page, page.limit)
    )


@router.get("/pending", response_model=PaginatedResponse[LabReportResponse])
async def get_pending_lab_reports(
    page: PageParams = Depends(),
    current_user: Principal = Depends(require_permission(Permissions.LAB_REPORTS_READ_PENDING)),
    db: AsyncSession = Depends(get_db),
    storage: CloudinaryStorage = Depends(get_storage)
):
    """Pending tests, oldest first"""
    lab_service = LabReportService(db, storage)
    reports, total = await lab_service.get_pending_reports(skip=page.skip, limit=page.limit)
    return PaginatedResponse(
        data=[LabReportResponse.model_validate(r) for r in reports],
        pagination=paginate(total, page.page, page.limit)
    )


@router.get("/lab-staff/my-reports", response_model=PaginatedResponse[LabReportResponse])
async def get_my_lab_reports(
    page: PageParams = Depends(),
    status: Optional[LabReportStatus] = Query(None),
    current_user: Principal = Depends(require_permission(Permissions.LAB_REPORTS_READ_OWN)),
    db: AsyncSession = Depends(get_db),
    storage: CloudinaryStorage = Depends(get_storage)
):
    """Reports conducted by the authenticated lab staff member"""
    lab_service = LabReportService(db, storage)
    reports, total = await lab_service.get_my_reports(
        current_user.id, skip=page.skip, limit=page.limit, status=status
    )
    return PaginatedResponse(
        data=[LabReportResponse.model_validate(r) for r in reports],
        pagination=paginate(total, page.page, page.limit)
    )


@router.get("/{report_id}", response_model=SuccessResponse[LabReportResponse])
async def get_lab_report(
    report_id: uuid.UUID,
    current_user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: CloudinaryStorage = Depends(get_storage)
):
    lab_service = LabReportService(db, storage)
    report = await lab_service.get_lab_report(report_id)
    return SuccessResponse(data=LabReportResponse.model_validate(report))


@router.put("/{report_id}", response_model=SuccessResponse[LabReportResponse])
async def update_lab_report(
    report_id: uuid.UUID,
    status: Optional[LabReportStatus] = Form(None),
    results: Optional[str] = Form(None),
    remarks: Optional[str] = Form(None),
    report_date: Optional[datetime] = Form(None),
    file: Optional[UploadFile] = File(None),
    current_user: Principal = Depends(require_permission(Permissions.LAB_REPORTS_UPDATE)),
    db: AsyncSession = Depends(get_db),
    storage: CloudinaryStorage = Depends(get_storage)
):
    """
    Update results and status from a multipart form.

    An optional file is stored alongside the report.
    """
    lab_service = LabReportService(db, storage)
    file_content = await read_upload(file) if file is not None else None
    report = await lab_service.update_lab_report(
        report_id,
        {"status": status, "results": results, "remarks": remarks, "report_date": report_date},
        current_user.id,
        file_content=file_content,
        file_name=file.filename if file is not None else None
    )
    return SuccessResponse(
        message="Lab report updated successfully",
        data=LabReportResponse.model_validate(report)
    )


@router.post("/{report_id}/upload", response_model=SuccessResponse[LabReportResponse])
async def upload_lab_report_file(
    report_id: uuid.UUID,
    file: UploadFile = File(...),
    current_user: Principal = Depends(require_permission(Permissions.LAB_REPORTS_UPLOAD)),
    db: AsyncSession = Depends(get_db),
    storage: CloudinaryStorage = Depends(get_storage)
):
    """Upload the result file and complete the report"""
    lab_service = LabReportService(db, storage)
    content = await read_upload(file)
    report = await lab_service.upload_report_file(report_id, content, file.filename, current_user.id)
    return SuccessResponse(
        message="File uploaded successfully",
        data=LabReportResponse.model_validate(report)
    )


@router.get("/{report_id}/download", response_model=SuccessResponse[DownloadLink])
async def download_lab_report_file(
    report_id: uuid.UUID,
    current_user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: CloudinaryStorage = Depends(get_storage)
):
    """Signed, short-lived link to the report file"""
    lab_service = LabReportService(db, storage)
    link = await lab_service.get_download_link(report_id)
    return SuccessResponse(data=DownloadLink(**link))


@router.delete("/{report_id}", response_model=SuccessResponse)
async def delete_lab_report(
    report_id: uuid.UUID,
    current_user: Principal = Depends(require_permission(Permissions.LAB_REPORTS_DELETE)),
    db: AsyncSession = Depends(get_db),
    storage: CloudinaryStorage = Depends(get_storage)
):
    lab_service = LabReportService(db, storage)
    await lab_service.delete_lab_report(report_id)
    return SuccessResponse(message="Lab report deleted successfully")
