from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import uuid

from hms.api.deps import Principal, require_permission
from hms.api.v1.schemas import SuccessResponse, PaginatedResponse
from hms.api.v1.doctor.schemas import DoctorDashboard, TreatmentCreate, TreatmentUpdate, TreatmentResponse
from hms.api.v1.lab_reports.schemas import LabReportResponse
from hms.core.pagination import PageParams, paginate
from hms.core.permissions import Permissions
from hms.domain.doctors.service import DoctorWorkspaceService
from hms.domain.lab.models import LabReportStatus
from hms.infrastructure.database import get_db

router = APIRouter(prefix="/doctor", tags=["Doctor Workspace"])

doctor_only = require_permission(Permissions.DOCTOR_WORKSPACE)


@router.get("/dashboard", response_model=SuccessResponse[DoctorDashboard])
async def get_dashboard(
    current_user: Principal = Depends(doctor_only),
    db: AsyncSession = Depends(get_db)
):
    """Assigned patients, today's queue and headline counts"""
    workspace = DoctorWorkspaceService(db)
    dashboard = await workspace.get_dashboard(current_user.id)
    return SuccessResponse(data=DoctorDashboard.model_validate(dashboard, from_attributes=True))


@router.post(
    "/patients/{patient_id}/treatments",
    response_model=SuccessResponse[TreatmentResponse],
    status_code=status.HTTP_201_CREATED
)
async def add_treatment(
    patient_id: uuid.UUID,
    treatment_data: TreatmentCreate,
    current_user: Principal = Depends(doctor_only),
    db: AsyncSession = Depends(get_db)
):
    workspace = DoctorWorkspaceService(db)
    treatment = await workspace.create_treatment(patient_id, treatment_data, current_user.id)
    return SuccessResponse(
        message="Treatment record added successfully",
        data=TreatmentResponse.model_validate(treatment)
    )


@router.get("/patients/{patient_id}/treatments", response_model=PaginatedResponse[TreatmentResponse])
async def get_treatments(
    patient_id: uuid.UUID,
    page: PageParams = Depends(),
    search: Optional[str] = Query(None),
    current_user: Principal = Depends(doctor_only),
    db: AsyncSession = Depends(get_db)
):
    """Treatment history of a patient"""
    workspace = DoctorWorkspaceService(db)
    treatments, total = await workspace.get_treatments(patient_id, skip=page.skip, limit=page.limit, search=search)
    return PaginatedResponse(
        data=[TreatmentResponse.model_validate(t) for t in treatments],
        pagination=paginate(total, page.page, page.limit)
    )


@router.put("/patients/{patient_id}/treatments/{treatment_id}", response_model=SuccessResponse[TreatmentResponse])
async def update_treatment(
    patient_id: uuid.UUID,
    treatment_id: uuid.UUID,
    treatment_data: TreatmentUpdate,
    current_user: Principal = Depends(doctor_only),
    db: AsyncSession = Depends(get_db)
):
    workspace = DoctorWorkspaceService(db)
    treatment = await workspace.update_treatment(patient_id, treatment_id, treatment_data, current_user.id)
    return SuccessResponse(
        message="Treatment record updated successfully",
        data=TreatmentResponse.model_validate(treatment)
    )


@router.get("/patients/{patient_id}/lab-results", response_model=PaginatedResponse[LabReportResponse])
async def get_lab_results(
    patient_id: uuid.UUID,
    page: PageParams = Depends(),
    status: Optional[LabReportStatus] = Query(None),
    test_type: Optional[str] = Query(None),
    current_user: Principal = Depends(doctor_only),
    db: AsyncSession = Depends(get_db)
):
    """Lab reports of a patient"""
    workspace = DoctorWorkspaceService(db)
    reports, total = await workspace.get_lab_results(
        patient_id, skip=page.skip, limit=page.limit, status=status, test_type=test_type
    )
    return PaginatedResponse(
        data=[LabReportResponse.model_validate(r) for r in reports],
        pagination=paginate(total, page.page, page.limit)
    )
