from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from datetime import date
import uuid

from hms.api.deps import Principal, get_current_user, require_permission
from hms.api.v1.schemas import SuccessResponse, PaginatedResponse
from hms.api.v1.appointments.schemas import (
    AppointmentCreate,
    AppointmentUpdate,
    AppointmentResponse,
    AppointmentWithPrescriptionResponse
)
from hms.core.pagination import PageParams, paginate
from hms.core.permissions import Permissions
from hms.domain.appointments.models import AppointmentStatus
from hms.domain.appointments.service import AppointmentService
from hms.infrastructure.database import get_db

router = APIRouter(prefix="/appointments", tags=["Appointments"])


@router.post("", response_model=SuccessResponse[AppointmentResponse], status_code=status.HTTP_201_CREATED)
async def create_appointment(
    appointment_data: AppointmentCreate,
    current_user: Principal = Depends(require_permission(Permissions.APPOINTMENTS_CREATE)),
    db: AsyncSession = Depends(get_db)
):
    """Schedule a new appointment"""
    appointment_service = AppointmentService(db)
    appointment = await appointment_service.create_appointment(appointment_data, current_user.id)
    return SuccessResponse(
        message="Appointment created successfully",
        data=AppointmentResponse.model_validate(appointment)
    )


@router.get("", response_model=PaginatedResponse[AppointmentResponse])
async def get_appointments(
    page: PageParams = Depends(),
    status: Optional[AppointmentStatus] = Query(None),
    doctor_id: Optional[uuid.UUID] = Query(None),
    patient_id: Optional[uuid.UUID] = Query(None),
    appointment_date: Optional[date] = Query(None, alias="date"),
    current_user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """List appointments with filters"""
    appointment_service = AppointmentService(db)
    appointments, total = await appointment_service.get_appointments(
        skip=page.skip,
        limit=page.limit,
        status=status,
        doctor_id=doctor_id,
        patient_id=patient_id,
        appointment_date=appointment_date
    )
    return PaginatedResponse(
        data=[AppointmentResponse.model_validate(a) for a in appointments],
        pagination=paginate(total, page.page, page.limit)
    )


@router.get("/doctor/my-appointments", response_model=PaginatedResponse[AppointmentWithPrescriptionResponse])
async def get_my_appointments(
    page: PageParams = Depends(),
    status: Optional[AppointmentStatus] = Query(None),
    appointment_date: Optional[date] = Query(None, alias="date"),
    current_user: Principal = Depends(require_permission(Permissions.APPOINTMENTS_READ_OWN)),
    db: AsyncSession = Depends(get_db)
):
    """Appointments of the authenticated doctor"""
    appointment_service = AppointmentService(db)
    appointments, total = await appointment_service.get_doctor_appointments(
        current_user.id,
        skip=page.skip,
        limit=page.limit,
        status=status,
        appointment_date=appointment_date
    )
    return PaginatedResponse(
        data=[AppointmentWithPrescriptionResponse.model_validate(a) for a in appointments],
        pagination=paginate(total, page.page, page.limit)
    )


@router.get("/{appointment_id}", response_model=SuccessResponse[AppointmentWithPrescriptionResponse])
async def get_appointment(
    appointment_id: uuid.UUID,
    current_user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get an appointment with its prescription"""
    appointment_service = AppointmentService(db)
    appointment = await appointment_service.get_appointment(appointment_id, with_prescription=True)
    return SuccessResponse(data=AppointmentWithPrescriptionResponse.model_validate(appointment))


@router.put("/{appointment_id}", response_model=SuccessResponse[AppointmentResponse])
async def update_appointment(
    appointment_id: uuid.UUID,
    appointment_data: AppointmentUpdate,
    current_user: Principal = Depends(require_permission(Permissions.APPOINTMENTS_UPDATE)),
    db: AsyncSession = Depends(get_db)
):
    """Update appointment fields or move it along its lifecycle"""
    appointment_service = AppointmentService(db)
    appointment = await appointment_service.update_appointment(appointment_id, appointment_data)
    return SuccessResponse(
        message="Appointment updated successfully",
        data=AppointmentResponse.model_validate(appointment)
    )


@router.patch("/{appointment_id}/cancel", response_model=SuccessResponse[AppointmentResponse])
async def cancel_appointment(
    appointment_id: uuid.UUID,
    current_user: Principal = Depends(require_permission(Permissions.APPOINTMENTS_CANCEL)),
    db: AsyncSession = Depends(get_db)
):
    """Cancel a scheduled or in-progress appointment"""
    appointment_service = AppointmentService(db)
    appointment = await appointment_service.cancel_appointment(appointment_id)
    return SuccessResponse(
        message="Appointment cancelled successfully",
        data=AppointmentResponse.model_validate(appointment)
    )
