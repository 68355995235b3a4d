from datetime import datetime
from typing import Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, and_
from app.modules.alerts.models import Alert, AlertSeverity, AlertStatus

DEFAULT_LIMIT = 20

def clamp_limit(limit: int | None) -> int:
    if not limit:
        return DEFAULT_LIMIT
    return max(1, min(limit, 100))

class AlertRepository:
    """SQL adapter for alerts; also serves as the escalation sink."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self,
                     patient_id: int,
                     kind: str,
                     severity: AlertSeverity,
                     status: AlertStatus | None = None,
                     details: str | None = None,
                     created_at: datetime | None = None) -> Alert:
        obj = Alert(
            patient_id=patient_id,
            kind=kind,
            severity=severity,
            status=status or AlertStatus.open,
            details=details,
        )
        if created_at is not None:
            obj.created_at = created_at
        self.session.add(obj)
        await self.session.commit()
        return obj

    async def find_by_id(self, alert_id: int) -> Alert | None:
        return await self.session.get(Alert, alert_id)

    async def list(self,
                   status: AlertStatus | None = None,
                   severity: AlertSeverity | None = None,
                   patient_id: int | None = None,
                   limit: int | None = None,
                   offset: int = 0) -> tuple[Sequence[Alert], int]:
        cond = []
        if status:
            cond.append(Alert.status == status)
        if severity:
            cond.append(Alert.severity == severity)
        if patient_id:
            cond.append(Alert.patient_id == patient_id)

        q = select(Alert)
        count_q = select(func.count()).select_from(Alert)
        if cond:
            q = q.where(and_(*cond))
            count_q = count_q.where(and_(*cond))
        q = q.order_by(Alert.created_at.desc(), Alert.id.desc()).limit(clamp_limit(limit)).offset(offset or 0)

        res = await self.session.execute(q)
        total = (await self.session.execute(count_q)).scalar_one()
        return res.scalars().all(), int(total)

    async def update(self, alert_id: int, **data) -> Alert | None:
        obj = await self.find_by_id(alert_id)
        if not obj:
            return None
        for k, v in data.items():
            setattr(obj, k, v)
        await self.session.commit()
        return obj
