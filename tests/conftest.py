import os

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-hms")
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENVIRONMENT"] = "testing"

import email_validator

# Fixture accounts use the reserved .test domain; this is email-validator's
# documented switch for permitting it under test.
email_validator.TEST_ENVIRONMENT = True

from dataclasses import dataclass, field
from datetime import date
from typing import AsyncGenerator, Dict, List, Optional
import uuid

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from hms.main import app
from hms.api.deps import get_storage
from hms.core.security import create_access_token, get_password_hash
from hms.domain.users.models import User, UserRole, Doctor, Receptionist, LabStaff
from hms.infrastructure.database import Base, enable_sqlite_foreign_keys, get_db
from hms.services.cloudinary_service import StoredFile

import hms.domain  # noqa: F401

PASSWORD = "password123"


@dataclass
class Account:
    """A seeded staff member and the headers that authenticate as them"""
    user_id: uuid.UUID
    email: str
    role: UserRole
    profile_id: Optional[uuid.UUID]
    headers: Dict[str, str]


@dataclass
class FakeStorage:
    """In-memory stand-in for the object store"""
    uploads: List[StoredFile] = field(default_factory=list)

    async def upload(self, content: bytes, file_name: str, folder: str = None) -> StoredFile:
        stored = StoredFile(
            url=f"https://storage.test/{folder or 'lab-reports'}/{file_name}",
            key=f"raw:lab-reports/{file_name}",
            file_name=file_name
        )
        self.uploads.append(stored)
        return stored

    async def signed_url(self, key: str, file_name: str, expires_in: int = None) -> str:
        return f"https://storage.test/signed/{key}?expires_in={expires_in}"


@pytest.fixture(scope="function")
async def engine(tmp_path):
    """A fresh SQLite file database per test"""
    test_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    enable_sqlite_foreign_keys(test_engine)

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine
    await test_engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture(scope="function")
def fake_storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture(scope="function")
async def client(session_factory, fake_storage) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with database and storage overrides."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: fake_storage

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def create_account(
    session_factory,
    role: UserRole,
    email: str,
    is_active: bool = True,
    **profile
) -> Account:
    """Insert a user with its role profile and mint a token for it"""
    async with session_factory() as session:
        user = User(
            email=email,
            password_hash=get_password_hash(PASSWORD),
            first_name=role.value.title(),
            last_name="Tester",
            phone="+15550001111",
            role=role,
            is_active=is_active
        )
        session.add(user)
        await session.flush()

        profile_row = None
        if role == UserRole.DOCTOR:
            profile_row = Doctor(
                user_id=user.id,
                specialization=profile.get("specialization", "Cardiology"),
                qualification=profile.get("qualification", "MD"),
                experience=profile.get("experience", 5),
                consultation_fee=profile.get("consultation_fee", 100.0)
            )
        elif role == UserRole.RECEPTIONIST:
            profile_row = Receptionist(user_id=user.id, shift=profile.get("shift", "Morning"))
        elif role == UserRole.LAB_STAFF:
            profile_row = LabStaff(user_id=user.id, department=profile.get("department", "Pathology"))

        if profile_row is not None:
            session.add(profile_row)
            await session.flush()

        await session.commit()

        token = create_access_token(str(user.id), {"role": role.value})
        return Account(
            user_id=user.id,
            email=email,
            role=role,
            profile_id=profile_row.id if profile_row is not None else None,
            headers={"Authorization": f"Bearer {token}"}
        )


@pytest.fixture(scope="function")
def account_factory(session_factory):
    """Seed extra staff members inside a test"""

    async def make(role: UserRole, email: str, is_active: bool = True, **profile) -> Account:
        return await create_account(session_factory, role, email, is_active=is_active, **profile)

    return make


@pytest.fixture(scope="function")
async def admin(session_factory) -> Account:
    return await create_account(session_factory, UserRole.ADMIN, "admin@hospital.test")


@pytest.fixture(scope="function")
async def receptionist(session_factory) -> Account:
    return await create_account(session_factory, UserRole.RECEPTIONIST, "reception@hospital.test")


@pytest.fixture(scope="function")
async def doctor(session_factory) -> Account:
    return await create_account(session_factory, UserRole.DOCTOR, "doctor@hospital.test")


@pytest.fixture(scope="function")
async def other_doctor(session_factory) -> Account:
    return await create_account(
        session_factory, UserRole.DOCTOR, "doctor2@hospital.test", specialization="Neurology"
    )


@pytest.fixture(scope="function")
async def lab_staff(session_factory) -> Account:
    return await create_account(session_factory, UserRole.LAB_STAFF, "lab@hospital.test")


@pytest.fixture(scope="function")
def sample_patient_data() -> dict:
    """Sample patient data for testing."""
    return {
        "first_name": "John",
        "last_name": "Doe",
        "email": "john.doe@example.com",
        "phone": "+15551234567",
        "date_of_birth": "1990-01-01",
        "gender": "MALE",
        "address": "123 Main St",
        "blood_group": "O+",
        "emergency_contact": "Jane Doe +15557654321"
    }


@pytest.fixture(scope="function")
async def patient(client: AsyncClient, receptionist: Account, sample_patient_data: dict) -> dict:
    response = await client.post("/api/v1/patients", json=sample_patient_data, headers=receptionist.headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


@pytest.fixture(scope="function")
async def appointment(client: AsyncClient, receptionist: Account, doctor: Account, patient: dict) -> dict:
    payload = {
        "patient_id": patient["id"],
        "doctor_id": str(doctor.profile_id),
        "appointment_date": date.today().isoformat(),
        "appointment_time": "10:30",
        "reason": "Chest pain"
    }
    response = await client.post("/api/v1/appointments", json=payload, headers=receptionist.headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


@pytest.fixture(scope="function")
async def lab_report(client: AsyncClient, receptionist: Account, patient: dict) -> dict:
    payload = {"patient_id": patient["id"], "test_name": "Complete Blood Count", "test_type": "Blood"}
    response = await client.post("/api/v1/lab-reports", json=payload, headers=receptionist.headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "auth: mark test as authentication related")
    config.addinivalue_line("markers", "admin: mark test as admin related")
    config.addinivalue_line("markers", "patients: mark test as patient management related")
    config.addinivalue_line("markers", "appointments: mark test as appointment related")
    config.addinivalue_line("markers", "prescriptions: mark test as prescription related")
    config.addinivalue_line("markers", "lab: mark test as lab report related")
    config.addinivalue_line("markers", "billing: mark test as billing related")
    config.addinivalue_line("markers", "doctor: mark test as doctor workspace related")
