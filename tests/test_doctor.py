import pytest
from httpx import AsyncClient
from uuid import uuid4


async def assign(client: AsyncClient, receptionist, patient: dict, doctor) -> None:
    response = await client.post(
        f"/api/v1/patients/{patient['id']}/assign-doctor",
        json={"doctor_id": str(doctor.profile_id)},
        headers=receptionist.headers
    )
    assert response.status_code == 200, response.text


def treatment_payload(**overrides) -> dict:
    payload = {
        "diagnosis": "Hypertension",
        "treatment": "Lifestyle changes and medication",
        "medications": [{"name": "Amlodipine", "dosage": "5mg", "frequency": "Once daily"}],
        "notes": "Recheck blood pressure in two weeks"
    }
    payload.update(overrides)
    return payload


@pytest.mark.doctor
@pytest.mark.integration
class TestDoctorDashboard:
    """Test the doctor landing page."""

    async def test_dashboard(
        self,
        client: AsyncClient,
        receptionist,
        doctor,
        patient: dict,
        appointment: dict,
        lab_report: dict
    ) -> None:
        await assign(client, receptionist, patient, doctor)

        response = await client.get("/api/v1/doctor/dashboard", headers=doctor.headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["doctor"]["id"] == str(doctor.profile_id)
        assert data["statistics"] == {
            "total_patients": 1,
            "total_appointments": 1,
            "pending_lab_reports": 1,
            "today_appointments": 1
        }
        assert [p["id"] for p in data["assigned_patients"]] == [patient["id"]]
        assert data["today_appointments"][0]["patient"]["first_name"] == "John"

    async def test_cancelled_appointments_not_listed_today(
        self,
        client: AsyncClient,
        receptionist,
        doctor,
        appointment: dict
    ) -> None:
        await client.patch(f"/api/v1/appointments/{appointment['id']}/cancel", headers=receptionist.headers)

        response = await client.get("/api/v1/doctor/dashboard", headers=doctor.headers)

        data = response.json()["data"]
        assert data["today_appointments"] == []
        assert data["statistics"]["total_appointments"] == 1

    async def test_dashboard_doctor_only(self, client: AsyncClient, admin) -> None:
        response = await client.get("/api/v1/doctor/dashboard", headers=admin.headers)
        assert response.status_code == 403


@pytest.mark.doctor
@pytest.mark.integration
class TestTreatments:
    """Test treatment records kept by doctors."""

    async def test_add_treatment(self, client: AsyncClient, doctor, patient: dict) -> None:
        response = await client.post(
            f"/api/v1/doctor/patients/{patient['id']}/treatments", json=treatment_payload(), headers=doctor.headers
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["doctor_id"] == str(doctor.profile_id)
        assert data["medications"] == [
            {"name": "Amlodipine", "dosage": "5mg", "frequency": "Once daily", "duration": None}
        ]
        assert data["treatment_date"] is not None

    async def test_add_treatment_unknown_patient(self, client: AsyncClient, doctor) -> None:
        response = await client.post(
            f"/api/v1/doctor/patients/{uuid4()}/treatments", json=treatment_payload(), headers=doctor.headers
        )
        assert response.status_code == 404

    async def test_list_newest_first_with_search(self, client: AsyncClient, doctor, patient: dict) -> None:
        url = f"/api/v1/doctor/patients/{patient['id']}/treatments"
        await client.post(url, json=treatment_payload(treatment_date="2024-01-05T10:00:00"), headers=doctor.headers)
        await client.post(
            url,
            json=treatment_payload(
                diagnosis="Migraine", treatment="Rest", notes=None, treatment_date="2024-03-01T10:00:00"
            ),
            headers=doctor.headers
        )

        everything = await client.get(url, headers=doctor.headers)
        assert [t["diagnosis"] for t in everything.json()["data"]] == ["Migraine", "Hypertension"]

        searched = await client.get(url, params={"search": "PRESSURE"}, headers=doctor.headers)
        assert [t["diagnosis"] for t in searched.json()["data"]] == ["Hypertension"]

    async def test_author_updates_treatment(self, client: AsyncClient, doctor, patient: dict) -> None:
        url = f"/api/v1/doctor/patients/{patient['id']}/treatments"
        created = (await client.post(url, json=treatment_payload(), headers=doctor.headers)).json()["data"]

        response = await client.put(
            f"{url}/{created['id']}",
            json={"notes": "Responding well", "medications": []},
            headers=doctor.headers
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["notes"] == "Responding well"
        assert data["medications"] == []
        assert data["diagnosis"] == "Hypertension"

    async def test_other_doctor_cannot_update(self, client: AsyncClient, doctor, other_doctor, patient: dict) -> None:
        url = f"/api/v1/doctor/patients/{patient['id']}/treatments"
        created = (await client.post(url, json=treatment_payload(), headers=doctor.headers)).json()["data"]

        response = await client.put(f"{url}/{created['id']}", json={"notes": "x"}, headers=other_doctor.headers)
        assert response.status_code == 403

    async def test_update_through_wrong_patient(
        self,
        client: AsyncClient,
        receptionist,
        doctor,
        patient: dict,
        sample_patient_data: dict
    ) -> None:
        url = f"/api/v1/doctor/patients/{patient['id']}/treatments"
        created = (await client.post(url, json=treatment_payload(), headers=doctor.headers)).json()["data"]
        other = await client.post(
            "/api/v1/patients",
            json={**sample_patient_data, "email": "someone.else@example.com"},
            headers=receptionist.headers
        )

        response = await client.put(
            f"/api/v1/doctor/patients/{other.json()['data']['id']}/treatments/{created['id']}",
            json={"notes": "x"},
            headers=doctor.headers
        )
        assert response.status_code == 404

    async def test_receptionist_cannot_add(self, client: AsyncClient, receptionist, patient: dict) -> None:
        response = await client.post(
            f"/api/v1/doctor/patients/{patient['id']}/treatments",
            json=treatment_payload(),
            headers=receptionist.headers
        )
        assert response.status_code == 403


@pytest.mark.doctor
@pytest.mark.integration
class TestLabResults:
    """Test the doctor's view of a patient's lab results."""

    async def test_lab_results_filtered(
        self,
        client: AsyncClient,
        doctor,
        lab_staff,
        patient: dict,
        lab_report: dict
    ) -> None:
        await client.put(
            f"/api/v1/lab-reports/{lab_report['id']}", data={"status": "COMPLETED"}, headers=lab_staff.headers
        )
        await client.post(
            "/api/v1/lab-reports",
            json={"patient_id": patient["id"], "test_name": "MRI", "test_type": "Imaging"},
            headers=doctor.headers
        )
        url = f"/api/v1/doctor/patients/{patient['id']}/lab-results"

        everything = await client.get(url, headers=doctor.headers)
        assert everything.json()["pagination"]["total"] == 2

        completed = await client.get(url, params={"status": "COMPLETED"}, headers=doctor.headers)
        assert [r["id"] for r in completed.json()["data"]] == [lab_report["id"]]

        imaging = await client.get(url, params={"test_type": "Imaging"}, headers=doctor.headers)
        assert [r["test_name"] for r in imaging.json()["data"]] == ["MRI"]
