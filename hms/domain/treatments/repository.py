from typing import Optional, List
import uuid

from sqlalchemy import select, or_, func
from sqlalchemy.orm import selectinload

from hms.domain.treatments.models import Treatment, TreatmentMedication
from hms.domain.users.models import Doctor
from hms.infrastructure.repository import BaseRepository

TREATMENT_DETAIL = (
    selectinload(Treatment.medications),
    selectinload(Treatment.patient),
    selectinload(Treatment.doctor).selectinload(Doctor.user),
)


class TreatmentRepository(BaseRepository[Treatment]):
    """Repository for treatment records and their medication lines"""

    model = Treatment

    async def create_with_medications(self, data: dict, medications: List[dict]) -> Treatment:
        treatment = Treatment(**data)
        treatment.medications = [
            TreatmentMedication(position=index, **medication) for index, medication in enumerate(medications)
        ]
        return await self.add(treatment)

    async def replace_medications(self, treatment: Treatment, medications: List[dict]) -> None:
        treatment.medications = [
            TreatmentMedication(position=index, **medication) for index, medication in enumerate(medications)
        ]
        await self.db.flush()

    async def get_by_id(self, treatment_id: uuid.UUID) -> Optional[Treatment]:
        return await self.get(treatment_id, TREATMENT_DETAIL)

    def _filtered(self, patient_id: uuid.UUID, search: Optional[str] = None):
        query = select(Treatment).where(Treatment.patient_id == patient_id)

        if search:
            pattern = f"%{search.lower()}%"
            query = query.where(
                or_(
                    func.lower(Treatment.diagnosis).like(pattern),
                    func.lower(Treatment.treatment).like(pattern),
                    func.lower(Treatment.notes).like(pattern)
                )
            )

        return query

    async def get_for_patient(
        self,
        patient_id: uuid.UUID,
        skip: int = 0,
        limit: Optional[int] = 10,
        search: Optional[str] = None
    ) -> List[Treatment]:
        query = (
            self._filtered(patient_id, search)
            .options(*TREATMENT_DETAIL)
            .order_by(Treatment.treatment_date.desc())
        )
        return await self.fetch(query, skip, limit)

    async def count_for_patient(self, patient_id: uuid.UUID, search: Optional[str] = None) -> int:
        return await self.count_query(self._filtered(patient_id, search))
