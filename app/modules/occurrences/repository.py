from datetime import datetime
from typing import Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from app.modules.occurrences.models import Occurrence, OccurrenceSource

class OccurrenceRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self,
                     patient_id: int,
                     professional_id: int,
                     kind: str,
                     intensity: int,
                     source: OccurrenceSource,
                     notes: str | None = None) -> Occurrence:
        obj = Occurrence(
            patient_id=patient_id,
            professional_id=professional_id,
            kind=kind,
            intensity=intensity,
            source=source,
            notes=notes,
        )
        self.session.add(obj)
        await self.session.commit()
        return obj

    async def list_by_patient(self,
                              patient_id: int,
                              start: datetime | None = None,
                              end: datetime | None = None,
                              kind: str | None = None) -> Sequence[Occurrence]:
        q = select(Occurrence).where(Occurrence.patient_id == patient_id)
        if start:
            q = q.where(Occurrence.created_at >= start)
        if end:
            q = q.where(Occurrence.created_at <= end)
        if kind:
            q = q.where(Occurrence.kind == kind)
        q = q.order_by(Occurrence.created_at.desc(), Occurrence.id.desc())
        res = await self.session.execute(q)
        return res.scalars().all()
