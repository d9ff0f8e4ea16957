from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import uuid

from hms.api.deps import Principal, get_current_user, require_permission
from hms.api.v1.schemas import SuccessResponse, PaginatedResponse
from hms.api.v1.prescriptions.schemas import PrescriptionCreate, PrescriptionUpdate, PrescriptionResponse
from hms.core.pagination import PageParams, paginate
from hms.core.permissions import Permissions
from hms.domain.prescriptions.service import PrescriptionService
from hms.infrastructure.database import get_db

router = APIRouter(prefix="/prescriptions", tags=["Prescriptions"])


@router.post("", response_model=SuccessResponse[PrescriptionResponse], status_code=status.HTTP_201_CREATED)
async def create_prescription(
    prescription_data: PrescriptionCreate,
    current_user: Principal = Depends(require_permission(Permissions.PRESCRIPTIONS_CREATE)),
    db: AsyncSession = Depends(get_db)
):
    """Write a prescription and complete its appointment"""
    prescription_service = PrescriptionService(db)
    prescription = await prescription_service.create_prescription(prescription_data, current_user.id)
    return SuccessResponse(
        message="Prescription created successfully",
        data=PrescriptionResponse.model_validate(prescription)
    )


@router.get("", response_model=PaginatedResponse[PrescriptionResponse])
async def get_prescriptions(
    page: PageParams = Depends(),
    patient_id: Optional[uuid.UUID] = Query(None),
    doctor_id: Optional[uuid.UUID] = Query(None),
    current_user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """List prescriptions"""
    prescription_service = PrescriptionService(db)
    prescriptions, total = await prescription_service.get_prescriptions(
        skip=page.skip, limit=page.limit, patient_id=patient_id, doctor_id=doctor_id
    )
    return PaginatedResponse(
        data=[PrescriptionResponse.model_validate(p) for p in prescriptions],
        pagination=paginate(total, page.page, page.limit)
    )


@router.get("/doctor/my-prescriptions", response_model=PaginatedResponse[PrescriptionResponse])
async def get_my_prescriptions(
    page: PageParams = Depends(),
    patient_id: Optional[uuid.UUID] = Query(None),
    current_user: Principal = Depends(require_permission(Permissions.PRESCRIPTIONS_READ_OWN)),
    db: AsyncSession = Depends(get_db)
):
    """Prescriptions written by the authenticated doctor"""
    prescription_service = PrescriptionService(db)
    prescriptions, total = await prescription_service.get_doctor_prescriptions(
        current_user.id, skip=page.skip, limit=page.limit, patient_id=patient_id
    )
    return PaginatedResponse(
        data=[PrescriptionResponse.model_validate(p) for p in prescriptions],
        pagination=paginate(total, page.page, page.limit)
    )


@router.get("/{prescription_id}", response_model=SuccessResponse[PrescriptionResponse])
async def get_prescription(
    prescription_id: uuid.UUID,
    current_user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    prescription_service = PrescriptionService(db)
    prescription = await prescription_service.get_prescription(prescription_id)
    return SuccessResponse(data=PrescriptionResponse.model_validate(prescription))


@router.put("/{prescription_id}", response_model=SuccessResponse[PrescriptionResponse])
async def update_prescription(
    prescription_id: uuid.UUID,
    prescription_data: PrescriptionUpdate,
    current_user: Principal = Depends(require_permission(Permissions.PRESCRIPTIONS_UPDATE)),
    db: AsyncSession = Depends(get_db)
):
    """Update a prescription written by the authenticated doctor"""
    prescription_service = PrescriptionService(db)
    prescription = await prescription_service.update_prescription(prescription_id, prescription_data, current_user.id)
    return SuccessResponse(
        message="Prescription updated successfully",
        data=PrescriptionResponse.model_validate(prescription)
    )
