from datetime import datetime
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from app.modules.patients.models import Patient

class PatientAuthRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_by_cpf(self, cpf: str) -> Patient | None:
        res = await self.session.execute(select(Patient).where(Patient.cpf == cpf))
        return res.scalar_one_or_none()

    async def reset_pin_state(self, patient_id: int) -> None:
        await self.session.execute(
            update(Patient)
            .where(Patient.id == patient_id)
            .values(pin_attempts=0, pin_blocked_until=None)
        )
        await self.session.commit()

    async def record_failed_attempt(self, patient_id: int, attempts: int, blocked_until: datetime | None) -> None:
        await self.session.execute(
            update(Patient)
            .where(Patient.id == patient_id)
            .values(pin_attempts=attempts, pin_blocked_until=blocked_until)
        )
        await self.session.commit()


class PatientRepository:
    """Onboarding-side writes used by operational scripts."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **data) -> Patient:
        obj = Patient(**data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def get(self, patient_id: int) -> Patient | None:
        return await self.session.get(Patient, patient_id)

    async def set_pin_hash(self, patient: Patient, pin_hash: str) -> Patient:
        patient.pin_hash = pin_hash
        patient.pin_attempts = 0
        patient.pin_blocked_until = None
        await self.session.flush()
        return patient
