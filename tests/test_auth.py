import pytest
from httpx import AsyncClient

from hms.core.exceptions import CredentialExpiredError, DatabaseError, InvalidCredentialError
from hms.core.security import create_access_token, decode_token, get_password_hash, verify_password
from hms.domain.users.models import UserRole
from hms.domain.users.repository import DoctorRepository

PASSWORD = "password123"


@pytest.mark.auth
@pytest.mark.unit
class TestSecurity:
    """Test password hashing and token handling."""

    def test_password_hashing(self) -> None:
        hashed = get_password_hash("s3cret-pass")
        assert hashed != "s3cret-pass"
        assert verify_password("s3cret-pass", hashed)
        assert not verify_password("wrong-pass", hashed)

    def test_token_round_trip(self) -> None:
        token = create_access_token("user-1", {"role": "DOCTOR"})
        payload = decode_token(token)
        assert payload["sub"] == "user-1"
        assert payload["role"] == "DOCTOR"
        assert payload["token_type"] == "access"

    def test_garbage_token_rejected(self) -> None:
        with pytest.raises(InvalidCredentialError):
            decode_token("not-a-jwt")

    def test_expired_token_rejected(self, monkeypatch) -> None:
        monkeypatch.setattr("hms.core.security.settings.ACCESS_TOKEN_EXPIRE_MINUTES", -1)
        token = create_access_token("user-1", {"role": "ADMIN"})

        with pytest.raises(CredentialExpiredError):
            decode_token(token)


@pytest.mark.auth
@pytest.mark.integration
class TestAuthentication:
    """Test authentication endpoints and functionality."""

    async def test_login_success(self, client: AsyncClient, receptionist) -> None:
        response = await client.post(
            "/api/v1/auth/login", json={"email": receptionist.email, "password": PASSWORD}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["data"]["token"]
        assert data["data"]["user"]["role"] == "RECEPTIONIST"
        assert data["data"]["user"]["profile"]["shift"] == "Morning"

    async def test_login_wrong_password(self, client: AsyncClient, receptionist) -> None:
        response = await client.post(
            "/api/v1/auth/login", json={"email": receptionist.email, "password": "wrong-password"}
        )

        assert response.status_code == 401
        assert response.json() == {
            "success": False,
            "message": "Invalid email or password",
            "error_code": "INVALID_CREDENTIAL"
        }

    async def test_login_unknown_email(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/v1/auth/login", json={"email": "nobody@hospital.test", "password": PASSWORD}
        )
        assert response.status_code == 401
        assert response.json()["success"] is False

    async def test_login_inactive_account(self, client: AsyncClient, account_factory) -> None:
        inactive = await account_factory(UserRole.RECEPTIONIST, "inactive@hospital.test", is_active=False)
        response = await client.post("/api/v1/auth/login", json={"email": inactive.email, "password": PASSWORD})
        assert response.status_code == 403

    async def test_login_then_forbidden_operation(
        self,
        client: AsyncClient,
        receptionist,
        sample_patient_data: dict
    ) -> None:
        """A receptionist token can register patients but cannot write prescriptions."""
        login = await client.post("/api/v1/auth/login", json={"email": receptionist.email, "password": PASSWORD})
        headers = {"Authorization": f"Bearer {login.json()['data']['token']}"}

        created = await client.post("/api/v1/patients", json=sample_patient_data, headers=headers)
        assert created.status_code == 201

        response = await client.post(
            "/api/v1/prescriptions",
            json={
                "appointment_id": created.json()["data"]["id"],
                "diagnosis": "Flu",
                "medicines": [{"name": "Paracetamol", "dosage": "500mg", "frequency": "TID", "duration": "5 days"}]
            },
            headers=headers
        )
        assert response.status_code == 403
        assert response.json()["message"] == "Access denied. Insufficient permissions."

    async def test_missing_token(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/auth/me")
        assert response.status_code == 401
        assert response.json()["message"] == "Access denied. No token provided."

    async def test_invalid_token(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer garbage"})
        assert response.status_code == 401

    async def test_get_me(self, client: AsyncClient, doctor) -> None:
        response = await client.get("/api/v1/auth/me", headers=doctor.headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["email"] == doctor.email
        assert data["profile"]["specialization"] == "Cardiology"
        assert "password_hash" not in data

    async def test_logout(self, client: AsyncClient, doctor) -> None:
        response = await client.post("/api/v1/auth/logout", headers=doctor.headers)
        assert response.status_code == 200
        assert response.json()["success"] is True

    async def test_update_own_profile(self, client: AsyncClient, doctor) -> None:
        response = await client.put(
            "/api/v1/auth/profile", json={"first_name": "Gregory", "phone": "+15559990000"}, headers=doctor.headers
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["first_name"] == "Gregory"
        assert data["phone"] == "+15559990000"
        assert data["last_name"] == "Tester"

    async def test_change_password(self, client: AsyncClient, lab_staff) -> None:
        response = await client.put(
            "/api/v1/auth/change-password",
            json={"current_password": PASSWORD, "new_password": "brand-new-pass"},
            headers=lab_staff.headers
        )
        assert response.status_code == 200

        old_login = await client.post("/api/v1/auth/login", json={"email": lab_staff.email, "password": PASSWORD})
        assert old_login.status_code == 401

        new_login = await client.post(
            "/api/v1/auth/login", json={"email": lab_staff.email, "password": "brand-new-pass"}
        )
        assert new_login.status_code == 200

    async def test_change_password_wrong_current(self, client: AsyncClient, lab_staff) -> None:
        response = await client.put(
            "/api/v1/auth/change-password",
            json={"current_password": "not-it", "new_password": "brand-new-pass"},
            headers=lab_staff.headers
        )
        assert response.status_code == 401


@pytest.mark.auth
@pytest.mark.integration
class TestRegistration:
    """Test staff registration with role profiles."""

    async def test_register_doctor_round_trip(self, client: AsyncClient, admin) -> None:
        payload = {
            "email": "New.Doctor@Hospital.test",
            "password": "doctorpass",
            "first_name": "Meredith",
            "last_name": "Grey",
            "role": "DOCTOR",
            "specialization": "Surgery",
            "qualification": "MD, FACS",
            "experience": 8,
            "consultation_fee": 250.0
        }
        response = await client.post("/api/v1/auth/register", json=payload, headers=admin.headers)

        assert response.status_code == 201, response.text
        data = response.json()["data"]
        assert data["email"] == "new.doctor@hospital.test"
        assert data["role"] == "DOCTOR"
        assert data["profile"]["specialization"] == "Surgery"
        assert data["profile"]["experience"] == 8

        login = await client.post(
            "/api/v1/auth/login", json={"email": "new.doctor@hospital.test", "password": "doctorpass"}
        )
        me = await client.get(
            "/api/v1/auth/me", headers={"Authorization": f"Bearer {login.json()['data']['token']}"}
        )
        assert me.json()["data"]["profile"]["qualification"] == "MD, FACS"

    async def test_register_admin_has_no_profile(self, client: AsyncClient, admin) -> None:
        payload = {
            "email": "second.admin@hospital.test",
            "password": "adminpass",
            "first_name": "Second",
            "last_name": "Admin",
            "role": "ADMIN"
        }
        response = await client.post("/api/v1/auth/register", json=payload, headers=admin.headers)

        assert response.status_code == 201
        assert response.json()["data"]["profile"] is None

    async def test_register_rejects_fields_of_other_roles(self, client: AsyncClient, admin) -> None:
        payload = {
            "email": "lab2@hospital.test",
            "password": "labpass1",
            "first_name": "Lab",
            "last_name": "Two",
            "role": "LAB_STAFF",
            "specialization": "Cardiology"
        }
        response = await client.post("/api/v1/auth/register", json=payload, headers=admin.headers)

        assert response.status_code == 400
        assert response.json()["message"] == "Validation failed"

    async def test_register_doctor_requires_profile_fields(self, client: AsyncClient, admin) -> None:
        payload = {
            "email": "doc3@hospital.test",
            "password": "docpass1",
            "first_name": "Doc",
            "last_name": "Three",
            "role": "DOCTOR"
        }
        response = await client.post("/api/v1/auth/register", json=payload, headers=admin.headers)
        assert response.status_code == 400

    async def test_register_duplicate_email(self, client: AsyncClient, admin, doctor) -> None:
        payload = {
            "email": doctor.email,
            "password": "password1",
            "first_name": "Dup",
            "last_name": "Licate",
            "role": "RECEPTIONIST"
        }
        response = await client.post("/api/v1/auth/register", json=payload, headers=admin.headers)
        assert response.status_code == 400
        assert "already exists" in response.json()["message"]

    async def test_register_requires_admin(self, client: AsyncClient, receptionist) -> None:
        payload = {
            "email": "sneaky@hospital.test",
            "password": "password1",
            "first_name": "Sneaky",
            "last_name": "User",
            "role": "ADMIN"
        }
        response = await client.post("/api/v1/auth/register", json=payload, headers=receptionist.headers)
        assert response.status_code == 403

    async def test_failed_profile_leaves_no_account(self, client: AsyncClient, admin, monkeypatch) -> None:
        async def failing_create(self, data):
            raise DatabaseError()

        monkeypatch.setattr(DoctorRepository, "create", failing_create)
        payload = {
            "email": "half.made@hospital.test",
            "password": "doctorpass",
            "first_name": "Half",
            "last_name": "Made",
            "role": "DOCTOR",
            "specialization": "Surgery",
            "qualification": "MD"
        }

        response = await client.post("/api/v1/auth/register", json=payload, headers=admin.headers)

        assert response.status_code == 500
        assert response.json()["error_code"] == "DATABASE_ERROR"

        users = await client.get(
            "/api/v1/admin/users", params={"search": "half.made"}, headers=admin.headers
        )
        assert users.json()["pagination"]["total"] == 0

        monkeypatch.undo()
        retry = await client.post("/api/v1/auth/register", json=payload, headers=admin.headers)
        assert retry.status_code == 201


@pytest.mark.integration
class TestHealth:
    async def test_health_is_public(self, client: AsyncClient) -> None:
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.json()["environment"] == "testing"
