from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from datetime import date
import uuid

from hms.api.deps import Principal, get_current_user, require_permission
from hms.api.v1.schemas import SuccessResponse, PaginatedResponse
from hms.api.v1.billing.schemas import BillingCreate, BillingUpdate, BillingResponse, InvoiceData
from hms.core.pagination import PageParams, paginate
from hms.core.permissions import Permissions
from hms.domain.billing.models import BillingStatus
from hms.domain.billing.service import BillingService
from hms.infrastructure.database import get_db

router = APIRouter(prefix="/billing", tags=["Billing"])


@router.post("", response_model=SuccessResponse[BillingResponse], status_code=status.HTTP_201_CREATED)
async def create_billing(
    billing_data: BillingCreate,
    current_user: Principal = Depends(require_permission(Permissions.BILLING_CREATE)),
    db: AsyncSession = Depends(get_db)
):
    """Raise a new invoice"""
    billing_service = BillingService(db)
    billing = await billing_service.create_billing(billing_data)
    return SuccessResponse(
        message="Invoice created successfully",
        data=BillingResponse.model_validate(billing)
    )


@router.get("", response_model=PaginatedResponse[BillingResponse])
async def get_billings(
    page: PageParams = Depends(),
    patient_id: Optional[uuid.UUID] = Query(None),
    status: Optional[BillingStatus] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    current_user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """List invoices, filtered by patient, status and billing date"""
    billing_service = BillingService(db)
    billings, total = await billing_service.get_billings(
        skip=page.skip,
        limit=page.limit,
        patient_id=patient_id,
        status=status,
        start_date=start_date,
        end_date=end_date
    )
    return PaginatedResponse(
        data=[BillingResponse.model_validate(b) for b in billings],
        pagination=paginate(total, page.page, page.limit)
    )


@router.get("/{billing_id}", response_model=SuccessResponse[BillingResponse])
async def get_billing(
    billing_id: uuid.UUID,
    current_user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    billing_service = BillingService(db)
    billing = await billing_service.get_billing(billing_id)
    return SuccessResponse(data=BillingResponse.model_validate(billing))


@router.get("/{billing_id}/pdf", response_model=SuccessResponse[InvoiceData])
async def get_invoice_data(
    billing_id: uuid.UUID,
    current_user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Invoice data for a PDF renderer"""
    billing_service = BillingService(db)
    invoice = await billing_service.get_invoice_data(billing_id)
    return SuccessResponse(
        message="Invoice data retrieved",
        data=InvoiceData.model_validate(invoice, from_attributes=True)
    )


@router.put("/{billing_id}", response_model=SuccessResponse[BillingResponse])
async def update_billing(
    billing_id: uuid.UUID,
    billing_data: BillingUpdate,
    current_user: Principal = Depends(require_permission(Permissions.BILLING_UPDATE)),
    db: AsyncSession = Depends(get_db)
):
    """Record a payment or change invoice lines"""
    billing_service = BillingService(db)
    billing = await billing_service.update_billing(billing_id, billing_data)
    return SuccessResponse(
        message="Invoice updated successfully",
        data=BillingResponse.model_validate(billing)
    )


@router.delete("/{billing_id}", response_model=SuccessResponse)
async def delete_billing(
    billing_id: uuid.UUID,
    current_user: Principal = Depends(require_permission(Permissions.BILLING_DELETE)),
    db: AsyncSession = Depends(get_db)
):
    billing_service = BillingService(db)
    await billing_service.delete_billing(billing_id)
    return SuccessResponse(message="Invoice deleted successfully")
