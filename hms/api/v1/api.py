from fastapi import APIRouter

from hms.api.v1.auth.routes import router as auth_router
from hms.api.v1.admin.routes import router as admin_router
from hms.api.v1.patients.routes import router as patients_router
from hms.api.v1.appointments.routes import router as appointments_router
from hms.api.v1.prescriptions.routes import router as prescriptions_router
from hms.api.v1.lab_reports.routes import router as lab_reports_router
from hms.api.v1.billing.routes import router as billing_router
from hms.api.v1.doctor.routes import router as doctor_router

api_router = APIRouter()
api_router.include_router(auth_router)
api_router.include_router(admin_router)
api_router.include_router(patients_router)
api_router.include_router(appointments_router)
api_router.include_router(prescriptions_router)
api_router.include_router(lab_reports_router)
api_router.include_router(billing_router)
api_router.include_router(doctor_router)
