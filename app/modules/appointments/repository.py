from datetime import datetime
from typing import Sequence
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, and_
from app.core.errors import AppointmentConflictError
from app.modules.appointments.models import Appointment, AppointmentStatus
from app.modules.appointments.schemas import AppointmentListFilters

DEFAULT_LIMIT = 20
SLOT_INDEX = "appointment_professional_slot_uq"
UPCOMING_DEFAULT_LIMIT = 3
UPCOMING_STATUSES = (AppointmentStatus.scheduled, AppointmentStatus.confirmed)

def clamp_limit(limit: int | None) -> int:
    if not limit:
        return DEFAULT_LIMIT
    return max(1, min(limit, 100))

def _is_slot_violation(exc: IntegrityError) -> bool:
    return SLOT_INDEX in str(exc.orig)

class AppointmentRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_by_id(self, appt_id: int) -> Appointment | None:
        return await self.session.get(Appointment, appt_id)

    async def list(self, filters: AppointmentListFilters) -> tuple[Sequence[Appointment], int]:
        cond = []
        if filters.patient_id:
            cond.append(Appointment.patient_id == filters.patient_id)
        if filters.professional_id:
            cond.append(Appointment.professional_id == filters.professional_id)
        if filters.status:
            cond.append(Appointment.status == filters.status)
        if filters.start:
            cond.append(Appointment.starts_at >= filters.start)
        if filters.end:
            cond.append(Appointment.starts_at <= filters.end)
        where = and_(*cond) if cond else None

        q = select(Appointment)
        count_q = select(func.count()).select_from(Appointment)
        if where is not None:
            q = q.where(where)
            count_q = count_q.where(where)
        q = q.order_by(Appointment.starts_at.desc()).limit(clamp_limit(filters.limit)).offset(filters.offset or 0)

        res = await self.session.execute(q)
        total = (await self.session.execute(count_q)).scalar_one()
        return res.scalars().all(), int(total)

    async def create(self, **data) -> Appointment:
        obj = Appointment(**data)
        self.session.add(obj)
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            if _is_slot_violation(e):
                raise AppointmentConflictError() from e
            raise
        return obj

    async def update(self, appt_id: int, **data) -> Appointment | None:
        obj = await self.find_by_id(appt_id)
        if not obj:
            return None
        for k, v in data.items():
            setattr(obj, k, v)
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            if _is_slot_violation(e):
                raise AppointmentConflictError() from e
            raise
        return obj

    async def update_status(self, appt_id: int, status: AppointmentStatus, notes: str | None = None) -> None:
        obj = await self.find_by_id(appt_id)
        if not obj:
            return
        obj.status = status
        if notes is not None:
            obj.notes = notes
        try:
            await self.session.commit()
        except IntegrityError as e:
            # reviving a canceled row into an occupied slot
            await self.session.rollback()
            if _is_slot_violation(e):
                raise AppointmentConflictError() from e
            raise

    async def has_conflict(self, professional_id: int, starts_at: datetime, exclude_id: int | None = None) -> bool:
        cond = [
            Appointment.professional_id == professional_id,
            Appointment.starts_at == starts_at,
            Appointment.status != AppointmentStatus.canceled,
        ]
        if exclude_id:
            cond.append(Appointment.id != exclude_id)
        res = await self.session.execute(select(Appointment.id).where(and_(*cond)).limit(1))
        return res.scalar_one_or_none() is not None

    async def list_upcoming_for_patient(self, patient_id: int, now: datetime, limit: int | None = None) -> Sequence[Appointment]:
        q = select(Appointment).where(
            Appointment.patient_id == patient_id,
            Appointment.starts_at >= now,
            Appointment.status.in_(UPCOMING_STATUSES),
        ).order_by(Appointment.starts_at.asc()).limit(limit or UPCOMING_DEFAULT_LIMIT)
        res = await self.session.execute(q)
        return res.scalars().all()

    async def find_next_for_patient(self, patient_id: int, now: datetime) -> Appointment | None:
        upcoming = await self.list_upcoming_for_patient(patient_id, now, limit=1)
        return upcoming[0] if upcoming else None
