from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
import uuid

from hms.api.deps import Principal, get_current_user, require_permission
from hms.api.v1.schemas import SuccessResponse, PaginatedResponse
from hms.api.v1.patients.schemas import (
    PatientCreate,
    PatientUpdate,
    PatientResponse,
    PatientDetailResponse,
    AssignDoctorRequest,
    MedicalRecordCreate,
    MedicalRecordResponse
)
from hms.core.pagination import PageParams, paginate
from hms.core.permissions import Permissions
from hms.domain.patients.models import Gender
from hms.domain.patients.service import PatientService
from hms.infrastructure.database import get_db

router = APIRouter(prefix="/patients", tags=["Patients"])


@router.post("", response_model=SuccessResponse[PatientResponse], status_code=status.HTTP_201_CREATED)
async def create_patient(
    patient_data: PatientCreate,
    current_user: Principal = Depends(require_permission(Permissions.PATIENTS_CREATE)),
    db: AsyncSession = Depends(get_db)
):
    """Register a new patient"""
    patient_service = PatientService(db)
    patient = await patient_service.create_patient(patient_data, current_user.id)
    return SuccessResponse(message="Patient registered successfully", data=PatientResponse.model_validate(patient))


@router.get("", response_model=PaginatedResponse[PatientResponse])
async def get_patients(
    page: PageParams = Depends(),
    search: Optional[str] = Query(None, description="Search by name, phone or email"),
    gender: Optional[Gender] = Query(None),
    assigned_doctor_id: Optional[uuid.UUID] = Query(None),
    current_user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """List patients that have not been deleted"""
    patient_service = PatientService(db)
    patients, total = await patient_service.get_patients(
        skip=page.skip,
        limit=page.limit,
        search=search,
        gender=gender,
        assigned_doctor_id=assigned_doctor_id
    )
    return PaginatedResponse(
        data=[PatientResponse.model_validate(p) for p in patients],
        pagination=paginate(total, page.page, page.limit)
    )


@router.get("/{patient_id}", response_model=SuccessResponse[PatientDetailResponse])
async def get_patient(
    patient_id: uuid.UUID,
    current_user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get a patient with recent appointments, medical records and lab reports"""
    patient_service = PatientService(db)
    detail = await patient_service.get_patient_detail(patient_id)
    patient_data = PatientResponse.model_validate(detail.pop("patient")).model_dump()
    return SuccessResponse(data=PatientDetailResponse.model_validate({**patient_data, **detail}))


@router.put("/{patient_id}", response_model=SuccessResponse[PatientResponse])
async def update_patient(
    patient_id: uuid.UUID,
    patient_data: PatientUpdate,
    current_user: Principal = Depends(require_permission(Permissions.PATIENTS_UPDATE)),
    db: AsyncSession = Depends(get_db)
):
    """Update patient demographics"""
    patient_service = PatientService(db)
    patient = await patient_service.update_patient(patient_id, patient_data)
    return SuccessResponse(message="Patient updated successfully", data=PatientResponse.model_validate(patient))


@router.delete("/{patient_id}", response_model=SuccessResponse)
async def delete_patient(
    patient_id: uuid.UUID,
    current_user: Principal = Depends(require_permission(Permissions.PATIENTS_DELETE)),
    db: AsyncSession = Depends(get_db)
):
    """Soft delete a patient"""
    patient_service = PatientService(db)
    await patient_service.delete_patient(patient_id)
    return SuccessResponse(message="Patient deleted successfully")


@router.get("/{patient_id}/medical-history", response_model=SuccessResponse[List[MedicalRecordResponse]])
async def get_medical_history(
    patient_id: uuid.UUID,
    current_user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """All medical records of a patient, newest first"""
    patient_service = PatientService(db)
    records = await patient_service.get_medical_history(patient_id)
    return SuccessResponse(data=[MedicalRecordResponse.model_validate(r) for r in records])


@router.post(
    "/{patient_id}/medical-records",
    response_model=SuccessResponse[MedicalRecordResponse],
    status_code=status.HTTP_201_CREATED
)
async def add_medical_record(
    patient_id: uuid.UUID,
    record_data: MedicalRecordCreate,
    current_user: Principal = Depends(require_permission(Permissions.PATIENTS_ADD_MEDICAL_RECORD)),
    db: AsyncSession = Depends(get_db)
):
    """Add a medical record to a patient"""
    patient_service = PatientService(db)
    record = await patient_service.add_medical_record(patient_id, record_data)
    return SuccessResponse(message="Medical record added successfully", data=MedicalRecordResponse.model_validate(record))


@router.post("/{patient_id}/assign-doctor", response_model=SuccessResponse[PatientResponse])
async def assign_doctor(
    patient_id: uuid.UUID,
    assignment: AssignDoctorRequest,
    current_user: Principal = Depends(require_permission(Permissions.PATIENTS_ASSIGN_DOCTOR)),
    db: AsyncSession = Depends(get_db)
):
    """Assign or reassign the patient's doctor"""
    patient_service = PatientService(db)
    patient = await patient_service.assign_doctor(patient_id, assignment.doctor_id)
    return SuccessResponse(message="Doctor assigned successfully", data=PatientResponse.model_validate(patient))
