"""
Shared fakes and fixtures.
Repositories and ports are replaced with in-memory doubles so the engines and
routers run without Postgres or Redis.
"""

import itertools
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from app.core.security import hash_pin
from app.modules.alerts.models import AlertStatus
from app.modules.appointments.models import AppointmentStatus
from app.modules.patients.models import PatientStage, PatientStatus
from app.platform.ports.sessions import IssuedSession


T0 = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


class Clock:
    def __init__(self, start: datetime = T0):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current = self.current + timedelta(**kwargs)


class FakeAudit:
    def __init__(self):
        self.entries: list[tuple[str, int, dict]] = []

    async def record(self, action, entity_id, details):
        self.entries.append((action, entity_id, details))

    def actions(self) -> list[str]:
        return [a for a, _, _ in self.entries]


class FakeSessionIssuer:
    def __init__(self, clock=None):
        self.clock = clock or Clock()
        self.created: list[int] = []

    async def create(self, patient_id):
        self.created.append(patient_id)
        return IssuedSession(token=f"token-{patient_id}-{len(self.created)}",
                             expires_at=self.clock() + timedelta(hours=12))


class FakePatientAuthRepository:
    def __init__(self, *patients):
        self.by_cpf = {p.cpf: p for p in patients}
        self.failed_calls: list[tuple[int, int, datetime | None]] = []
        self.reset_calls: list[int] = []

    def _by_id(self, patient_id):
        return next(p for p in self.by_cpf.values() if p.id == patient_id)

    async def find_by_cpf(self, cpf):
        return self.by_cpf.get(cpf)

    async def get(self, patient_id):
        return next((p for p in self.by_cpf.values() if p.id == patient_id), None)

    async def reset_pin_state(self, patient_id):
        self.reset_calls.append(patient_id)
        p = self._by_id(patient_id)
        p.pin_attempts = 0
        p.pin_blocked_until = None

    async def record_failed_attempt(self, patient_id, attempts, blocked_until):
        self.failed_calls.append((patient_id, attempts, blocked_until))
        p = self._by_id(patient_id)
        p.pin_attempts = attempts
        p.pin_blocked_until = blocked_until


class FakeAppointmentRepository:
    def __init__(self):
        self.rows: dict[int, SimpleNamespace] = {}
        self._ids = itertools.count(1)
        self.status_writes: list[tuple[int, AppointmentStatus, str | None]] = []
        self.update_calls: list[tuple[int, dict]] = []

    def add(self, **data) -> SimpleNamespace:
        row = SimpleNamespace(
            id=next(self._ids),
            status=data.pop("status", AppointmentStatus.scheduled),
            notes=data.pop("notes", None),
            created_at=T0,
            updated_at=T0,
            **data,
        )
        self.rows[row.id] = row
        return row

    async def find_by_id(self, appt_id):
        return self.rows.get(appt_id)

    async def list(self, filters):
        rows = [r for r in self.rows.values()
                if (not filters.patient_id or r.patient_id == filters.patient_id)
                and (not filters.professional_id or r.professional_id == filters.professional_id)
                and (not filters.status or r.status == filters.status)
                and (not filters.start or r.starts_at >= filters.start)
                and (not filters.end or r.starts_at <= filters.end)]
        rows.sort(key=lambda r: r.starts_at, reverse=True)
        limit = filters.limit or 20
        return rows[filters.offset:filters.offset + limit], len(rows)

    async def create(self, **data):
        return self.add(**data)

    async def update(self, appt_id, **data):
        self.update_calls.append((appt_id, data))
        row = self.rows.get(appt_id)
        if row is None:
            return None
        for k, v in data.items():
            setattr(row, k, v)
        return row

    async def update_status(self, appt_id, status, notes=None):
        self.status_writes.append((appt_id, status, notes))
        row = self.rows.get(appt_id)
        if row is None:
            return
        row.status = status
        if notes is not None:
            row.notes = notes

    async def has_conflict(self, professional_id, starts_at, exclude_id=None):
        return any(
            r.professional_id == professional_id
            and r.starts_at == starts_at
            and r.status != AppointmentStatus.canceled
            and r.id != exclude_id
            for r in self.rows.values()
        )

    async def list_upcoming_for_patient(self, patient_id, now, limit=None):
        upcoming = [r for r in self.rows.values()
                    if r.patient_id == patient_id
                    and r.starts_at >= now
                    and r.status in (AppointmentStatus.scheduled, AppointmentStatus.confirmed)]
        return sorted(upcoming, key=lambda r: r.starts_at)[:limit or 3]

    async def find_next_for_patient(self, patient_id, now):
        upcoming = await self.list_upcoming_for_patient(patient_id, now, limit=1)
        return upcoming[0] if upcoming else None


class FakeOccurrenceRepository:
    def __init__(self, clock=None):
        self.clock = clock or Clock()
        self.rows: list[SimpleNamespace] = []
        self._ids = itertools.count(1)

    async def create(self, patient_id, professional_id, kind, intensity, source, notes=None):
        row = SimpleNamespace(
            id=next(self._ids), patient_id=patient_id, professional_id=professional_id,
            kind=kind, intensity=intensity, source=source, notes=notes, created_at=self.clock(),
        )
        self.rows.append(row)
        return row

    async def list_by_patient(self, patient_id, start=None, end=None, kind=None):
        rows = [r for r in self.rows
                if r.patient_id == patient_id
                and (start is None or r.created_at >= start)
                and (end is None or r.created_at <= end)
                and (kind is None or r.kind == kind)]
        return sorted(rows, key=lambda r: r.created_at, reverse=True)


class FakeAlertRepository:
    def __init__(self):
        self.rows: dict[int, SimpleNamespace] = {}
        self._ids = itertools.count(1)
        self.update_calls: list[tuple[int, dict]] = []

    async def create(self, patient_id, kind, severity, status=None, details=None, created_at=None):
        row = SimpleNamespace(
            id=next(self._ids), patient_id=patient_id, kind=kind, severity=severity,
            status=status or AlertStatus.open, details=details, created_at=created_at or T0,
            resolved_at=None, resolved_by=None,
        )
        self.rows[row.id] = row
        return row

    async def find_by_id(self, alert_id):
        return self.rows.get(alert_id)

    async def list(self, status=None, severity=None, patient_id=None, limit=None, offset=0):
        rows = [r for r in self.rows.values()
                if (status is None or r.status == status)
                and (severity is None or r.severity == severity)
                and (patient_id is None or r.patient_id == patient_id)]
        rows.sort(key=lambda r: r.created_at, reverse=True)
        return rows[offset:offset + (limit or 20)], len(rows)

    async def update(self, alert_id, **data):
        self.update_calls.append((alert_id, data))
        row = self.rows.get(alert_id)
        if row is None:
            return None
        for k, v in data.items():
            setattr(row, k, v)
        return row


@pytest.fixture(scope="session")
def pin_1234_hash() -> str:
    return hash_pin("1234")


def make_patient(pin_hash: str, patient_id: int = 1, cpf: str = "11111111111", **overrides) -> SimpleNamespace:
    data = dict(id=patient_id, cpf=cpf, full_name="Maria Silva", pin_hash=pin_hash,
                pin_attempts=0, pin_blocked_until=None, stage=PatientStage.in_treatment,
                status=PatientStatus.active, phone="11999990000")
    data.update(overrides)
    return SimpleNamespace(**data)


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def audit() -> FakeAudit:
    return FakeAudit()
