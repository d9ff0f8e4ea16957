from typing import Dict, FrozenSet, Iterable

from hms.domain.users.models import UserRole


class Permissions:
    """Operation names guarded by the role policy"""

    # Authentication
    AUTH_REGISTER = "auth:register"

    # Administration
    ADMIN_USERS = "admin:users"
    ADMIN_DOCTORS = "admin:doctors"
    ADMIN_REPORTS = "admin:reports"

    # Patients
    PATIENTS_CREATE = "patients:create"
    PATIENTS_UPDATE = "patients:update"
    PATIENTS_DELETE = "patients:delete"
    PATIENTS_ASSIGN_DOCTOR = "patients:assign_doctor"
    PATIENTS_ADD_MEDICAL_RECORD = "patients:add_medical_record"

    # Appointments
    APPOINTMENTS_CREATE = "appointments:create"
    APPOINTMENTS_UPDATE = "appointments:update"
    APPOINTMENTS_CANCEL = "appointments:cancel"
    APPOINTMENTS_READ_OWN = "appointments:read_own"

    # Prescriptions
    PRESCRIPTIONS_CREATE = "prescriptions:create"
    PRESCRIPTIONS_UPDATE = "prescriptions:update"
    PRESCRIPTIONS_READ_OWN = "prescriptions:read_own"

    # Lab reports
    LAB_REPORTS_CREATE = "lab_reports:create"
    LAB_REPORTS_UPDATE = "lab_reports:update"
    LAB_REPORTS_UPLOAD = "lab_reports:upload"
    LAB_REPORTS_READ_PENDING = "lab_reports:read_pending"
    LAB_REPORTS_READ_OWN = "lab_reports:read_own"
    LAB_REPORTS_DELETE = "lab_reports:delete"

    # Billing
    BILLING_CREATE = "billing:create"
    BILLING_UPDATE = "billing:update"
    BILLING_DELETE = "billing:delete"

    # Doctor workspace
    DOCTOR_WORKSPACE = "doctor:workspace"


def _roles(*roles: UserRole) -> FrozenSet[UserRole]:
    return frozenset(roles)


ADMIN_ONLY = _roles(UserRole.ADMIN)
FRONT_DESK = _roles(UserRole.RECEPTIONIST, UserRole.ADMIN)
LAB_DESK = _roles(UserRole.LAB_STAFF, UserRole.ADMIN)
DOCTOR_ONLY = _roles(UserRole.DOCTOR)

ROLE_POLICY: Dict[str, FrozenSet[UserRole]] = {
    Permissions.AUTH_REGISTER: ADMIN_ONLY,

    Permissions.ADMIN_USERS: ADMIN_ONLY,
    Permissions.ADMIN_DOCTORS: ADMIN_ONLY,
    Permissions.ADMIN_REPORTS: ADMIN_ONLY,

    Permissions.PATIENTS_CREATE: FRONT_DESK,
    Permissions.PATIENTS_UPDATE: FRONT_DESK,
    Permissions.PATIENTS_DELETE: ADMIN_ONLY,
    Permissions.PATIENTS_ASSIGN_DOCTOR: FRONT_DESK,
    Permissions.PATIENTS_ADD_MEDICAL_RECORD: _roles(UserRole.DOCTOR, UserRole.ADMIN),

    Permissions.APPOINTMENTS_CREATE: FRONT_DESK,
    Permissions.APPOINTMENTS_UPDATE: _roles(UserRole.RECEPTIONIST, UserRole.DOCTOR, UserRole.ADMIN),
    Permissions.APPOINTMENTS_CANCEL: FRONT_DESK,
    Permissions.APPOINTMENTS_READ_OWN: DOCTOR_ONLY,

    Permissions.PRESCRIPTIONS_CREATE: DOCTOR_ONLY,
    Permissions.PRESCRIPTIONS_UPDATE: DOCTOR_ONLY,
    Permissions.PRESCRIPTIONS_READ_OWN: DOCTOR_ONLY,

    Permissions.LAB_REPORTS_CREATE: _roles(UserRole.RECEPTIONIST, UserRole.DOCTOR, UserRole.ADMIN),
    Permissions.LAB_REPORTS_UPDATE: LAB_DESK,
    Permissions.LAB_REPORTS_UPLOAD: LAB_DESK,
    Permissions.LAB_REPORTS_READ_PENDING: LAB_DESK,
    Permissions.LAB_REPORTS_READ_OWN: _roles(UserRole.LAB_STAFF),
    Permissions.LAB_REPORTS_DELETE: ADMIN_ONLY,

    Permissions.BILLING_CREATE: FRONT_DESK,
    Permissions.BILLING_UPDATE: FRONT_DESK,
    Permissions.BILLING_DELETE: ADMIN_ONLY,

    Permissions.DOCTOR_WORKSPACE: DOCTOR_ONLY,
}


def allowed_roles(operation: str) -> FrozenSet[UserRole]:
    """Roles allowed to invoke an operation; unknown operations allow nobody"""
    return ROLE_POLICY.get(operation, frozenset())


def is_allowed(operation: str, role: UserRole) -> bool:
    """Check the role policy for a single operation"""
    return role in allowed_roles(operation)


def role_names(roles: Iterable[UserRole]) -> list:
    return sorted(role.value for role in roles)
