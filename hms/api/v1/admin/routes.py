from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, Dict, Optional
from datetime import date
import uuid

from hms.api.deps import Principal, require_permission
from hms.api.v1.schemas import SuccessResponse, PaginatedResponse
from hms.api.v1.auth.schemas import UserResponse
from hms.api.v1.admin.schemas import UserUpdate, DoctorListItem, DashboardStats, ReportData
from hms.core.pagination import PageParams, paginate
from hms.core.permissions import Permissions
from hms.domain.reports.service import ReportService
from hms.domain.users.models import UserRole
from hms.domain.users.service import UserService
from hms.infrastructure.database import get_db

router = APIRouter(prefix="/admin", tags=["Admin"])

manage_users = require_permission(Permissions.ADMIN_USERS)
view_reports = require_permission(Permissions.ADMIN_REPORTS)


@router.get("/users", response_model=PaginatedResponse[UserResponse])
async def get_users(
    page: PageParams = Depends(),
    role: Optional[UserRole] = Query(None),
    is_active: Optional[bool] = Query(None),
    search: Optional[str] = Query(None),
    current_user: Principal = Depends(manage_users),
    db: AsyncSession = Depends(get_db)
):
    """List staff accounts"""
    user_service = UserService(db)
    users, total = await user_service.get_users(
        skip=page.skip, limit=page.limit, role=role, is_active=is_active, search=search
    )
    return PaginatedResponse(
        data=[UserResponse.model_validate(u) for u in users],
        pagination=paginate(total, page.page, page.limit)
    )


@router.get("/users/{user_id}", response_model=SuccessResponse[UserResponse])
async def get_user(
    user_id: uuid.UUID,
    current_user: Principal = Depends(manage_users),
    db: AsyncSession = Depends(get_db)
):
    user_service = UserService(db)
    user = await user_service.get_user_by_id(user_id)
    return SuccessResponse(data=UserResponse.model_validate(user))


@router.put("/users/{user_id}", response_model=SuccessResponse[UserResponse])
async def update_user(
    user_id: uuid.UUID,
    user_data: UserUpdate,
    current_user: Principal = Depends(manage_users),
    db: AsyncSession = Depends(get_db)
):
    """Update account fields and the fields of the user's role profile"""
    user_service = UserService(db)
    user = await user_service.update_user(user_id, user_data)
    return SuccessResponse(
        message="User updated successfully",
        data=UserResponse.model_validate(user)
    )


@router.delete("/users/{user_id}", response_model=SuccessResponse)
async def delete_user(
    user_id: uuid.UUID,
    current_user: Principal = Depends(manage_users),
    db: AsyncSession = Depends(get_db)
):
    user_service = UserService(db)
    await user_service.delete_user(user_id, current_user.id)
    return SuccessResponse(message="User deleted successfully")


@router.patch("/users/{user_id}/toggle-status", response_model=SuccessResponse[UserResponse])
async def toggle_user_status(
    user_id: uuid.UUID,
    current_user: Principal = Depends(manage_users),
    db: AsyncSession = Depends(get_db)
):
    """Activate or deactivate an account"""
    user_service = UserService(db)
    user = await user_service.toggle_status(user_id, current_user.id)
    state = "activated" if user.is_active else "deactivated"
    return SuccessResponse(
        message=f"User {state} successfully",
        data=UserResponse.model_validate(user)
    )


@router.get("/doctors", response_model=PaginatedResponse[DoctorListItem])
async def get_doctors(
    page: PageParams = Depends(),
    specialization: Optional[str] = Query(None),
    current_user: Principal = Depends(require_permission(Permissions.ADMIN_DOCTORS)),
    db: AsyncSession = Depends(get_db)
):
    user_service = UserService(db)
    doctors, total = await user_service.get_doctors(skip=page.skip, limit=page.limit, specialization=specialization)
    return PaginatedResponse(
        data=[DoctorListItem.model_validate(d) for d in doctors],
        pagination=paginate(total, page.page, page.limit)
    )


@router.get("/dashboard/stats", response_model=SuccessResponse[DashboardStats])
async def get_dashboard_stats(
    current_user: Principal = Depends(view_reports),
    db: AsyncSession = Depends(get_db)
):
    report_service = ReportService(db)
    stats = await report_service.get_dashboard_stats()
    return SuccessResponse(data=DashboardStats(**stats))


@router.get("/reports/summary", response_model=SuccessResponse[Dict[str, Any]])
async def get_hospital_summary(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    current_user: Principal = Depends(view_reports),
    db: AsyncSession = Depends(get_db)
):
    """Hospital-wide statistics over an optional creation-date range"""
    report_service = ReportService(db)
    summary = await report_service.get_hospital_summary(start_date, end_date)
    return SuccessResponse(data=summary)


@router.get("/reports/pdf", response_model=SuccessResponse[ReportData])
async def get_report_data(
    report_type: str = Query("summary"),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    current_user: Principal = Depends(view_reports),
    db: AsyncSession = Depends(get_db)
):
    """Data for a printable report; rendering happens client-side"""
    report_service = ReportService(db)
    report = await report_service.get_report_data(report_type, current_user.name, start_date, end_date)
    return SuccessResponse(
        message="Report data generated",
        data=ReportData(**report)
    )
