import pytest

from hms.core.permissions import Permissions, ROLE_POLICY, allowed_roles, is_allowed, role_names
from hms.domain.appointments.models import AppointmentStatus, can_transition as appointment_can_transition
from hms.domain.billing.models import BillingStatus, derive_status
from hms.domain.lab.models import LabReportStatus, can_transition as lab_can_transition
from hms.domain.users.models import UserRole


@pytest.mark.unit
class TestRolePolicy:
    """Test the operation-to-role policy table."""

    @pytest.mark.parametrize("operation,role,expected", [
        (Permissions.AUTH_REGISTER, UserRole.ADMIN, True),
        (Permissions.AUTH_REGISTER, UserRole.RECEPTIONIST, False),
        (Permissions.PATIENTS_CREATE, UserRole.RECEPTIONIST, True),
        (Permissions.PATIENTS_CREATE, UserRole.DOCTOR, False),
        (Permissions.PATIENTS_DELETE, UserRole.RECEPTIONIST, False),
        (Permissions.PATIENTS_ADD_MEDICAL_RECORD, UserRole.DOCTOR, True),
        (Permissions.APPOINTMENTS_UPDATE, UserRole.DOCTOR, True),
        (Permissions.APPOINTMENTS_READ_OWN, UserRole.ADMIN, False),
        (Permissions.PRESCRIPTIONS_CREATE, UserRole.DOCTOR, True),
        (Permissions.PRESCRIPTIONS_CREATE, UserRole.ADMIN, False),
        (Permissions.LAB_REPORTS_CREATE, UserRole.LAB_STAFF, False),
        (Permissions.LAB_REPORTS_UPLOAD, UserRole.LAB_STAFF, True),
        (Permissions.LAB_REPORTS_READ_OWN, UserRole.ADMIN, False),
        (Permissions.BILLING_DELETE, UserRole.RECEPTIONIST, False),
        (Permissions.DOCTOR_WORKSPACE, UserRole.DOCTOR, True),
        (Permissions.DOCTOR_WORKSPACE, UserRole.ADMIN, False),
    ])
    def test_is_allowed(self, operation: str, role: UserRole, expected: bool) -> None:
        assert is_allowed(operation, role) is expected

    def test_unknown_operation_allows_nobody(self) -> None:
        assert allowed_roles("no:such_operation") == frozenset()
        for role in UserRole:
            assert not is_allowed("no:such_operation", role)

    def test_every_permission_has_a_policy(self) -> None:
        declared = {
            value for name, value in vars(Permissions).items()
            if not name.startswith("_") and isinstance(value, str)
        }
        assert declared == set(ROLE_POLICY)

    def test_role_names_sorted(self) -> None:
        assert role_names({UserRole.RECEPTIONIST, UserRole.ADMIN}) == ["ADMIN", "RECEPTIONIST"]


@pytest.mark.unit
class TestStateMachines:
    """Test appointment and lab report lifecycles and billing status derivation."""

    def test_appointment_transitions(self) -> None:
        assert appointment_can_transition(AppointmentStatus.SCHEDULED, AppointmentStatus.IN_PROGRESS)
        assert appointment_can_transition(AppointmentStatus.SCHEDULED, AppointmentStatus.COMPLETED)
        assert appointment_can_transition(AppointmentStatus.IN_PROGRESS, AppointmentStatus.CANCELLED)
        assert not appointment_can_transition(AppointmentStatus.IN_PROGRESS, AppointmentStatus.SCHEDULED)
        assert not appointment_can_transition(AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED)
        assert not appointment_can_transition(AppointmentStatus.CANCELLED, AppointmentStatus.SCHEDULED)

    def test_lab_report_transitions(self) -> None:
        assert lab_can_transition(LabReportStatus.PENDING, LabReportStatus.IN_PROGRESS)
        assert lab_can_transition(LabReportStatus.PENDING, LabReportStatus.COMPLETED)
        assert lab_can_transition(LabReportStatus.IN_PROGRESS, LabReportStatus.COMPLETED)
        assert not lab_can_transition(LabReportStatus.COMPLETED, LabReportStatus.PENDING)
        assert not lab_can_transition(LabReportStatus.IN_PROGRESS, LabReportStatus.PENDING)

    @pytest.mark.parametrize("total,paid,expected", [
        (100.0, 0.0, BillingStatus.PENDING),
        (100.0, 99.99, BillingStatus.PENDING),
        (100.0, 100.0, BillingStatus.PAID),
        (100.0, 150.0, BillingStatus.PAID),
        (0.0, 0.0, BillingStatus.PAID),
    ])
    def test_derive_billing_status(self, total: float, paid: float, expected: BillingStatus) -> None:
        assert derive_status(total, paid) == expected
