import re
from datetime import datetime, timedelta

import pytest
from httpx import AsyncClient
from uuid import uuid4

from hms.domain.billing import service as billing_service
from hms.domain.billing.repository import BillingRepository

INVOICE_NUMBER = re.compile(r"^INV-\d{8}-[0-9A-F]{8}$")

CONSULTATION = {"name": "Consultation", "price": 150.0, "quantity": 1}
BLOOD_TEST = {"name": "Blood test", "price": 25.5, "quantity": 2}


async def raise_invoice(client: AsyncClient, headers: dict, patient: dict, **overrides) -> dict:
    payload = {"patient_id": patient["id"], "services": [CONSULTATION, BLOOD_TEST], "payment_method": "card"}
    payload.update(overrides)
    response = await client.post("/api/v1/billing", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


@pytest.mark.billing
@pytest.mark.integration
class TestInvoiceCreation:
    """Test raising invoices."""

    async def test_total_defaults_to_sum_of_lines(self, client: AsyncClient, receptionist, patient: dict) -> None:
        invoice = await raise_invoice(client, receptionist.headers, patient)

        assert invoice["total_amount"] == 201.0
        assert invoice["paid_amount"] == 0.0
        assert invoice["balance"] == 201.0
        assert invoice["status"] == "PENDING"
        assert [line["amount"] for line in invoice["services"]] == [150.0, 51.0]

    async def test_invoice_number_format(self, client: AsyncClient, receptionist, patient: dict) -> None:
        first = await raise_invoice(client, receptionist.headers, patient)
        second = await raise_invoice(client, receptionist.headers, patient)

        today = datetime.utcnow().strftime("%Y%m%d")
        for invoice in (first, second):
            assert INVOICE_NUMBER.match(invoice["invoice_number"])
            assert invoice["invoice_number"][4:12] == today
        assert first["invoice_number"] != second["invoice_number"]

    async def test_fully_paid_on_creation(self, client: AsyncClient, receptionist, patient: dict) -> None:
        invoice = await raise_invoice(client, receptionist.headers, patient, total_amount=100.0, paid_amount=100.0)

        assert invoice["total_amount"] == 100.0
        assert invoice["status"] == "PAID"
        assert invoice["balance"] == 0.0

    async def test_services_required(self, client: AsyncClient, receptionist, patient: dict) -> None:
        response = await client.post(
            "/api/v1/billing", json={"patient_id": patient["id"], "services": []}, headers=receptionist.headers
        )
        assert response.status_code == 400

    async def test_negative_price_rejected(self, client: AsyncClient, receptionist, patient: dict) -> None:
        response = await client.post(
            "/api/v1/billing",
            json={"patient_id": patient["id"], "services": [{"name": "Refund", "price": -5}]},
            headers=receptionist.headers
        )
        assert response.status_code == 400

    async def test_unknown_patient(self, client: AsyncClient, receptionist) -> None:
        response = await client.post(
            "/api/v1/billing",
            json={"patient_id": str(uuid4()), "services": [CONSULTATION]},
            headers=receptionist.headers
        )
        assert response.status_code == 404

    async def test_doctor_cannot_bill(self, client: AsyncClient, doctor, patient: dict) -> None:
        response = await client.post(
            "/api/v1/billing", json={"patient_id": patient["id"], "services": [CONSULTATION]}, headers=doctor.headers
        )
        assert response.status_code == 403

    async def test_colliding_invoice_number_retried(
        self,
        client: AsyncClient,
        receptionist,
        patient: dict,
        monkeypatch
    ) -> None:
        existing = await raise_invoice(client, receptionist.headers, patient)
        numbers = iter([existing["invoice_number"], existing["invoice_number"], "INV-20300101-0000BEEF"])

        async def never_found(self, invoice_number):
            return None

        monkeypatch.setattr(BillingRepository, "get_by_invoice_number", never_found)
        monkeypatch.setattr(billing_service, "generate_invoice_number", lambda today=None: next(numbers))

        invoice = await raise_invoice(client, receptionist.headers, patient)

        assert invoice["invoice_number"] == "INV-20300101-0000BEEF"
        listing = await client.get(
            "/api/v1/billing", params={"patient_id": patient["id"]}, headers=receptionist.headers
        )
        assert listing.json()["pagination"]["total"] == 2

    async def test_invoice_numbers_exhausted(self, client: AsyncClient, receptionist, patient: dict, monkeypatch) -> None:
        existing = await raise_invoice(client, receptionist.headers, patient)

        async def never_found(self, invoice_number):
            return None

        monkeypatch.setattr(BillingRepository, "get_by_invoice_number", never_found)
        monkeypatch.setattr(billing_service, "generate_invoice_number", lambda today=None: existing["invoice_number"])

        response = await client.post(
            "/api/v1/billing", json={"patient_id": patient["id"], "services": [CONSULTATION]}, headers=receptionist.headers
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVOICE_NUMBER_EXHAUSTED"


@pytest.mark.billing
@pytest.mark.integration
class TestInvoicePayments:
    """Test payment updates and the derived status."""

    async def test_payment_marks_paid(self, client: AsyncClient, receptionist, patient: dict) -> None:
        invoice = await raise_invoice(client, receptionist.headers, patient)
        url = f"/api/v1/billing/{invoice['id']}"

        partial = await client.put(url, json={"paid_amount": 100.0}, headers=receptionist.headers)
        assert partial.json()["data"]["status"] == "PENDING"
        assert partial.json()["data"]["balance"] == 101.0

        full = await client.put(url, json={"paid_amount": 201.0}, headers=receptionist.headers)
        assert full.status_code == 200
        assert full.json()["data"]["status"] == "PAID"
        assert full.json()["data"]["balance"] == 0.0

    async def test_mismatched_status_rejected(self, client: AsyncClient, receptionist, patient: dict) -> None:
        invoice = await raise_invoice(client, receptionist.headers, patient)

        response = await client.put(
            f"/api/v1/billing/{invoice['id']}", json={"status": "PAID"}, headers=receptionist.headers
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_TARGET"

    async def test_new_lines_recompute_total(self, client: AsyncClient, receptionist, patient: dict) -> None:
        invoice = await raise_invoice(client, receptionist.headers, patient, paid_amount=150.0)

        response = await client.put(
            f"/api/v1/billing/{invoice['id']}", json={"services": [CONSULTATION]}, headers=receptionist.headers
        )

        data = response.json()["data"]
        assert data["total_amount"] == 150.0
        assert len(data["services"]) == 1
        assert data["status"] == "PAID"

    async def test_cancelled_invoice_is_frozen(self, client: AsyncClient, receptionist, patient: dict) -> None:
        invoice = await raise_invoice(client, receptionist.headers, patient)
        url = f"/api/v1/billing/{invoice['id']}"

        cancelled = await client.put(url, json={"status": "CANCELLED"}, headers=receptionist.headers)
        assert cancelled.json()["data"]["status"] == "CANCELLED"

        response = await client.put(url, json={"paid_amount": 201.0}, headers=receptionist.headers)
        assert response.status_code == 400

    async def test_invoice_data(self, client: AsyncClient, receptionist, patient: dict) -> None:
        invoice = await raise_invoice(client, receptionist.headers, patient, paid_amount=1.0)

        response = await client.get(f"/api/v1/billing/{invoice['id']}/pdf", headers=receptionist.headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["invoice_number"] == invoice["invoice_number"]
        assert data["patient"]["name"] == "John Doe"
        assert data["balance"] == 200.0
        assert len(data["services"]) == 2

    async def test_explicit_null_clears_optional_fields(self, client: AsyncClient, receptionist, patient: dict) -> None:
        invoice = await raise_invoice(client, receptionist.headers, patient, notes="Bring insurance card")
        url = f"/api/v1/billing/{invoice['id']}"

        response = await client.put(url, json={"payment_method": None, "notes": None}, headers=receptionist.headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["payment_method"] is None
        assert data["notes"] is None
        assert data["total_amount"] == 201.0

        untouched = await client.put(url, json={"total_amount": None}, headers=receptionist.headers)
        assert untouched.json()["data"]["total_amount"] == 201.0


@pytest.mark.billing
@pytest.mark.integration
class TestInvoiceListing:
    """Test listing, filtering and deleting invoices."""

    async def test_filter_by_status_and_patient(self, client: AsyncClient, receptionist, patient: dict) -> None:
        await raise_invoice(client, receptionist.headers, patient)
        paid = await raise_invoice(client, receptionist.headers, patient, total_amount=10.0, paid_amount=10.0)

        response = await client.get(
            "/api/v1/billing",
            params={"status": "PAID", "patient_id": patient["id"]},
            headers=receptionist.headers
        )

        assert [b["id"] for b in response.json()["data"]] == [paid["id"]]

    async def test_date_range_includes_whole_end_day(self, client: AsyncClient, receptionist, patient: dict) -> None:
        await raise_invoice(client, receptionist.headers, patient)
        today = datetime.utcnow().date()

        same_day = await client.get(
            "/api/v1/billing",
            params={"start_date": today.isoformat(), "end_date": today.isoformat()},
            headers=receptionist.headers
        )
        assert same_day.json()["pagination"]["total"] == 1

        yesterday = (today - timedelta(days=1)).isoformat()
        before = await client.get(
            "/api/v1/billing",
            params={"start_date": yesterday, "end_date": yesterday},
            headers=receptionist.headers
        )
        assert before.json()["pagination"]["total"] == 0

    async def test_admin_deletes(self, client: AsyncClient, admin, receptionist, patient: dict) -> None:
        invoice = await raise_invoice(client, receptionist.headers, patient)

        forbidden = await client.delete(f"/api/v1/billing/{invoice['id']}", headers=receptionist.headers)
        assert forbidden.status_code == 403

        deleted = await client.delete(f"/api/v1/billing/{invoice['id']}", headers=admin.headers)
        assert deleted.status_code == 200

        missing = await client.get(f"/api/v1/billing/{invoice['id']}", headers=admin.headers)
        assert missing.status_code == 404
