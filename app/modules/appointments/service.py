import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol, Sequence
from app.core.errors import AppointmentNotFoundError, AppointmentConflictError
from app.modules.appointments.models import Appointment, AppointmentStatus
from app.modules.appointments.schemas import (
    AppointmentListFilters, AppointmentCreate, AppointmentUpdate,
)
from app.platform.ports.audit import AuditPort

logger = logging.getLogger(__name__)

class AppointmentRepositoryPort(Protocol):
    async def find_by_id(self, appt_id: int) -> Appointment | None: ...
    async def list(self, filters: AppointmentListFilters) -> tuple[Sequence[Appointment], int]: ...
    async def create(self, **data) -> Appointment: ...
    async def update(self, appt_id: int, **data) -> Appointment | None: ...
    async def update_status(self, appt_id: int, status: AppointmentStatus, notes: str | None = None) -> None: ...
    async def has_conflict(self, professional_id: int, starts_at: datetime, exclude_id: int | None = None) -> bool: ...

@dataclass
class AppointmentListResult:
    data: Sequence[Appointment]
    total: int

def normalize_notes(value: str | None) -> str | None:
    if value is None:
        return None
    trimmed = value.strip()
    return trimmed or None

def normalize_starts_at(value: datetime) -> datetime:
    """Slots are compared at second precision in UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).replace(microsecond=0)

class AppointmentService:
    """
    Appointment lifecycle: create, edit, cancel, status transitions and the
    patient-facing confirm/decline flow.

    Two non-canceled appointments of the same professional may not share the
    exact same `starts_at`. The check here gives a precise error early; the
    store's partial unique index is the final guard under concurrency.
    Transitions out of terminal states are not refused here.
    """

    def __init__(self, appointments: AppointmentRepositoryPort, audit: AuditPort):
        self.appts = appointments
        self.audit = audit

    async def _get_or_raise(self, appt_id: int) -> Appointment:
        obj = await self.appts.find_by_id(appt_id)
        if not obj:
            raise AppointmentNotFoundError()
        return obj

    async def _get_owned(self, appt_id: int, patient_id: int) -> Appointment:
        obj = await self.appts.find_by_id(appt_id)
        # another patient's appointment is indistinguishable from a missing one
        if not obj or obj.patient_id != patient_id:
            raise AppointmentNotFoundError()
        return obj

    async def list_appointments(self, filters: AppointmentListFilters) -> AppointmentListResult:
        data, total = await self.appts.list(filters)
        return AppointmentListResult(data=data, total=total)

    async def get_appointment(self, appt_id: int) -> Appointment:
        return await self._get_or_raise(appt_id)

    async def create_appointment(self, payload: AppointmentCreate, professional_id: int) -> Appointment:
        starts_at = normalize_starts_at(payload.starts_at)
        if await self.appts.has_conflict(payload.professional_id, starts_at):
            logger.warning(f"Slot conflict for professional {payload.professional_id} at {starts_at.isoformat()}")
            raise AppointmentConflictError()
        obj = await self.appts.create(
            patient_id=payload.patient_id,
            professional_id=payload.professional_id,
            starts_at=starts_at,
            type=payload.type,
            notes=normalize_notes(payload.notes),
        )
        await self.audit.record("APPOINTMENT_CREATED", obj.id, {
            "patientId": obj.patient_id,
            "professionalId": professional_id,
            "startsAt": obj.starts_at,
            "type": obj.type,
        })
        logger.info(f"Appointment {obj.id} created for patient {obj.patient_id}")
        return obj

    async def update_appointment(self, appt_id: int, payload: AppointmentUpdate, professional_id: int) -> Appointment:
        existing = await self._get_or_raise(appt_id)

        changes: dict = {}
        if payload.starts_at is not None:
            starts_at = normalize_starts_at(payload.starts_at)
            if starts_at != normalize_starts_at(existing.starts_at):
                changes["starts_at"] = starts_at
        if payload.type is not None and payload.type != existing.type:
            changes["type"] = payload.type
        if "notes" in payload.model_fields_set:
            notes = normalize_notes(payload.notes)
            if notes != existing.notes:
                changes["notes"] = notes

        if not changes:
            return existing

        if "starts_at" in changes:
            if await self.appts.has_conflict(existing.professional_id, changes["starts_at"], exclude_id=appt_id):
                logger.warning(f"Reschedule conflict for appointment {appt_id} at {changes['starts_at'].isoformat()}")
                raise AppointmentConflictError()

        updated = await self.appts.update(appt_id, **changes)
        if not updated:
            raise AppointmentNotFoundError()
        await self.audit.record("APPOINTMENT_UPDATED", appt_id, {
            "professionalId": professional_id,
            "patientId": existing.patient_id,
            "changes": [{"starts_at": "startsAt"}.get(k, k) for k in changes],
        })
        return updated

    async def cancel_appointment(self, appt_id: int, professional_id: int, reason: str | None = None) -> None:
        existing = await self._get_or_raise(appt_id)
        notes = normalize_notes(reason)
        await self.appts.update_status(appt_id, AppointmentStatus.canceled, notes or existing.notes)
        await self.audit.record("APPOINTMENT_CANCELED", appt_id, {
            "professionalId": professional_id,
            "patientId": existing.patient_id,
            "reason": notes,
        })
        logger.info(f"Appointment {appt_id} canceled by professional {professional_id}")

    async def update_appointment_status(self,
                                        appt_id: int,
                                        status: AppointmentStatus,
                                        professional_id: int,
                                        notes: str | None = None) -> None:
        existing = await self._get_or_raise(appt_id)
        normalized = normalize_notes(notes)
        await self.appts.update_status(appt_id, status, normalized or existing.notes)
        await self.audit.record("APPOINTMENT_STATUS_UPDATED", appt_id, {
            "professionalId": professional_id,
            "patientId": existing.patient_id,
            "status": status,
        })

    async def confirm_attendance(self, appt_id: int, patient_id: int) -> AppointmentStatus:
        appointment = await self._get_owned(appt_id, patient_id)
        if appointment.status in (AppointmentStatus.confirmed, AppointmentStatus.completed):
            return appointment.status
        await self.appts.update_status(appt_id, AppointmentStatus.confirmed)
        await self.audit.record("APPOINTMENT_CONFIRMED", appt_id, {"patientId": patient_id})
        return AppointmentStatus.confirmed

    async def decline_appointment(self, appt_id: int, patient_id: int, reason: str | None = None) -> None:
        appointment = await self._get_owned(appt_id, patient_id)
        notes = normalize_notes(reason)
        # a decline is recorded as an anticipated absence
        await self.appts.update_status(appt_id, AppointmentStatus.no_show, notes or appointment.notes)
        await self.audit.record("APPOINTMENT_DECLINED", appt_id, {
            "patientId": patient_id,
            "professionalId": appointment.professional_id,
            "reason": notes,
        })
