from hms.domain.users.models import User, Doctor, Receptionist, LabStaff, UserRole
from hms.domain.patients.models import Patient, MedicalRecord, Gender
from hms.domain.appointments.models import Appointment, AppointmentStatus
from hms.domain.prescriptions.models import Prescription, PrescriptionMedicine
from hms.domain.treatments.models import Treatment, TreatmentMedication
from hms.domain.lab.models import LabReport, LabReportStatus
from hms.domain.billing.models import Billing, BillingItem, BillingStatus

__all__ = [
    "User", "Doctor", "Receptionist", "LabStaff", "UserRole",
    "Patient", "MedicalRecord", "Gender",
    "Appointment", "AppointmentStatus",
    "Prescription", "PrescriptionMedicine",
    "Treatment", "TreatmentMedication",
    "LabReport", "LabReportStatus",
    "Billing", "BillingItem", "BillingStatus",
]
