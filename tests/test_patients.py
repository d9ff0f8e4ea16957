import pytest
from httpx import AsyncClient
from uuid import uuid4

from hms.domain.users.models import UserRole


@pytest.mark.patients
@pytest.mark.integration
class TestPatientManagement:
    """Test patient management endpoints and functionality."""

    async def test_create_patient_success(self, client: AsyncClient, receptionist, sample_patient_data: dict) -> None:
        response = await client.post("/api/v1/patients", json=sample_patient_data, headers=receptionist.headers)

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["first_name"] == sample_patient_data["first_name"]
        assert data["gender"] == "MALE"
        assert data["registered_by"] == str(receptionist.profile_id)
        assert data["receptionist"]["user"]["email"] == receptionist.email
        assert data["is_deleted"] is False

    async def test_create_patient_requires_receptionist_profile(
        self,
        client: AsyncClient,
        admin,
        sample_patient_data: dict
    ) -> None:
        """ADMIN passes the role gate but has no receptionist profile."""
        response = await client.post("/api/v1/patients", json=sample_patient_data, headers=admin.headers)
        assert response.status_code == 403

    async def test_create_patient_validation_error(self, client: AsyncClient, receptionist) -> None:
        invalid_data = {
            "first_name": "",
            "last_name": "Doe",
            "phone": "+15551234567",
            "date_of_birth": "2999-01-01",
            "gender": "INVALID_GENDER"
        }
        response = await client.post("/api/v1/patients", json=invalid_data, headers=receptionist.headers)

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Validation failed"
        fields = {error["field"] for error in body["errors"]}
        assert {"first_name", "date_of_birth", "gender"} <= fields

    async def test_create_patient_duplicate_email(
        self,
        client: AsyncClient,
        receptionist,
        patient: dict,
        sample_patient_data: dict
    ) -> None:
        duplicate = {**sample_patient_data, "first_name": "Jim", "email": "JOHN.DOE@example.com"}
        response = await client.post("/api/v1/patients", json=duplicate, headers=receptionist.headers)

        assert response.status_code == 400
        assert "already exists" in response.json()["message"]

    async def test_create_patient_without_email(self, client: AsyncClient, receptionist, sample_patient_data: dict) -> None:
        data = {**sample_patient_data}
        data.pop("email")
        first = await client.post("/api/v1/patients", json=data, headers=receptionist.headers)
        second = await client.post("/api/v1/patients", json=data, headers=receptionist.headers)

        assert first.status_code == 201
        assert second.status_code == 201

    async def test_doctor_cannot_create_patient(self, client: AsyncClient, doctor, sample_patient_data: dict) -> None:
        response = await client.post("/api/v1/patients", json=sample_patient_data, headers=doctor.headers)
        assert response.status_code == 403

    async def test_get_patient_detail(self, client: AsyncClient, doctor, patient: dict, appointment: dict) -> None:
        response = await client.get(f"/api/v1/patients/{patient['id']}", headers=doctor.headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["id"] == patient["id"]
        assert [a["id"] for a in data["recent_appointments"]] == [appointment["id"]]
        assert data["medical_records"] == []
        assert data["lab_reports"] == []

    async def test_get_patient_not_found(self, client: AsyncClient, doctor) -> None:
        response = await client.get(f"/api/v1/patients/{uuid4()}", headers=doctor.headers)

        assert response.status_code == 404
        assert response.json()["success"] is False

    async def test_list_patients_with_search(self, client: AsyncClient, receptionist, sample_patient_data: dict) -> None:
        for i, name in enumerate(["Alice", "Bob", "Alicia"]):
            data = {**sample_patient_data, "first_name": name, "email": f"patient{i}@example.com"}
            await client.post("/api/v1/patients", json=data, headers=receptionist.headers)

        response = await client.get(
            "/api/v1/patients", params={"search": "ALIC", "limit": 1}, headers=receptionist.headers
        )

        assert response.status_code == 200
        body = response.json()
        assert len(body["data"]) == 1
        assert body["pagination"] == {
            "total": 2,
            "page": 1,
            "limit": 1,
            "totalPages": 2,
            "hasNext": True,
            "hasPrev": False
        }

    async def test_list_patients_limit_capped(self, client: AsyncClient, receptionist) -> None:
        response = await client.get("/api/v1/patients", params={"limit": 500}, headers=receptionist.headers)
        assert response.status_code == 400

    async def test_update_patient(self, client: AsyncClient, receptionist, patient: dict) -> None:
        response = await client.put(
            f"/api/v1/patients/{patient['id']}",
            json={"address": "742 Evergreen Terrace", "blood_group": "A-"},
            headers=receptionist.headers
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["address"] == "742 Evergreen Terrace"
        assert data["blood_group"] == "A-"
        assert data["first_name"] == patient["first_name"]


@pytest.mark.patients
@pytest.mark.integration
class TestPatientLifecycle:
    """Test soft delete, doctor assignment and medical history."""

    async def test_soft_delete_hides_from_list_but_not_by_id(
        self,
        client: AsyncClient,
        admin,
        receptionist,
        patient: dict
    ) -> None:
        response = await client.delete(f"/api/v1/patients/{patient['id']}", headers=admin.headers)
        assert response.status_code == 200

        listing = await client.get("/api/v1/patients", headers=receptionist.headers)
        assert patient["id"] not in [p["id"] for p in listing.json()["data"]]

        detail = await client.get(f"/api/v1/patients/{patient['id']}", headers=receptionist.headers)
        assert detail.status_code == 200
        assert detail.json()["data"]["is_deleted"] is True
        assert detail.json()["data"]["deleted_at"] is not None

    async def test_deleted_patient_not_updatable(self, client: AsyncClient, admin, receptionist, patient: dict) -> None:
        await client.delete(f"/api/v1/patients/{patient['id']}", headers=admin.headers)

        response = await client.put(
            f"/api/v1/patients/{patient['id']}", json={"address": "Nowhere"}, headers=receptionist.headers
        )
        assert response.status_code == 404

    async def test_receptionist_cannot_delete(self, client: AsyncClient, receptionist, patient: dict) -> None:
        response = await client.delete(f"/api/v1/patients/{patient['id']}", headers=receptionist.headers)
        assert response.status_code == 403

    async def test_assign_doctor(self, client: AsyncClient, receptionist, doctor, patient: dict) -> None:
        response = await client.post(
            f"/api/v1/patients/{patient['id']}/assign-doctor",
            json={"doctor_id": str(doctor.profile_id)},
            headers=receptionist.headers
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["assigned_doctor_id"] == str(doctor.profile_id)
        assert data["assigned_doctor"]["specialization"] == "Cardiology"

    async def test_assign_inactive_doctor(self, client: AsyncClient, receptionist, account_factory, patient: dict) -> None:
        inactive = await account_factory(UserRole.DOCTOR, "retired@hospital.test", is_active=False)

        response = await client.post(
            f"/api/v1/patients/{patient['id']}/assign-doctor",
            json={"doctor_id": str(inactive.profile_id)},
            headers=receptionist.headers
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_TARGET"

    async def test_assign_unknown_doctor(self, client: AsyncClient, receptionist, patient: dict) -> None:
        response = await client.post(
            f"/api/v1/patients/{patient['id']}/assign-doctor",
            json={"doctor_id": str(uuid4())},
            headers=receptionist.headers
        )
        assert response.status_code == 404

    async def test_medical_history_newest_first(self, client: AsyncClient, doctor, patient: dict) -> None:
        for record_date, record_type in [("2023-01-10T09:00:00", "Allergy"), ("2024-06-01T09:00:00", "Surgery")]:
            created = await client.post(
                f"/api/v1/patients/{patient['id']}/medical-records",
                json={"record_type": record_type, "description": f"{record_type} note", "record_date": record_date},
                headers=doctor.headers
            )
            assert created.status_code == 201

        response = await client.get(f"/api/v1/patients/{patient['id']}/medical-history", headers=doctor.headers)

        assert response.status_code == 200
        assert [r["record_type"] for r in response.json()["data"]] == ["Surgery", "Allergy"]

    async def test_receptionist_cannot_add_medical_record(self, client: AsyncClient, receptionist, patient: dict) -> None:
        response = await client.post(
            f"/api/v1/patients/{patient['id']}/medical-records",
            json={"record_type": "Note", "description": "x", "record_date": "2024-01-01T00:00:00"},
            headers=receptionist.headers
        )
        assert response.status_code == 403
