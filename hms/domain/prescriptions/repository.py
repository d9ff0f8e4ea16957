from typing import Optional, List
import uuid

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from hms.domain.prescriptions.models import Prescription, PrescriptionMedicine
from hms.domain.users.models import Doctor
from hms.infrastructure.repository import BaseRepository

PRESCRIPTION_DETAIL = (
    selectinload(Prescription.medicines),
    selectinload(Prescription.patient),
    selectinload(Prescription.doctor).selectinload(Doctor.user),
    selectinload(Prescription.appointment),
)


class PrescriptionRepository(BaseRepository[Prescription]):
    """Repository for prescriptions and their medicine lines"""

    model = Prescription

    async def create_with_medicines(self, data: dict, medicines: List[dict]) -> Prescription:
        prescription = Prescription(**data)
        prescription.medicines = [
            PrescriptionMedicine(position=index, **medicine) for index, medicine in enumerate(medicines)
        ]
        return await self.add(prescription)

    async def replace_medicines(self, prescription: Prescription, medicines: List[dict]) -> None:
        prescription.medicines = [
            PrescriptionMedicine(position=index, **medicine) for index, medicine in enumerate(medicines)
        ]
        await self.db.flush()

    async def get_by_id(self, prescription_id: uuid.UUID) -> Optional[Prescription]:
        return await self.get(prescription_id, PRESCRIPTION_DETAIL)

    async def get_by_appointment(self, appointment_id: uuid.UUID) -> Optional[Prescription]:
        result = await self.db.execute(
            select(Prescription).where(Prescription.appointment_id == appointment_id)
        )
        return result.scalar_one_or_none()

    def _filtered(self, patient_id: Optional[uuid.UUID] = None, doctor_id: Optional[uuid.UUID] = None):
        query = select(Prescription)

        if patient_id:
            query = query.where(Prescription.patient_id == patient_id)

        if doctor_id:
            query = query.where(Prescription.doctor_id == doctor_id)

        return query

    async def get_all(
        self,
        skip: int = 0,
        limit: Optional[int] = 10,
        patient_id: Optional[uuid.UUID] = None,
        doctor_id: Optional[uuid.UUID] = None
    ) -> List[Prescription]:
        query = (
            self._filtered(patient_id, doctor_id)
            .options(*PRESCRIPTION_DETAIL)
            .order_by(Prescription.created_at.desc())
        )
        return await self.fetch(query, skip, limit)

    async def count(self, patient_id: Optional[uuid.UUID] = None, doctor_id: Optional[uuid.UUID] = None) -> int:
        return await self.count_query(self._filtered(patient_id, doctor_id))
