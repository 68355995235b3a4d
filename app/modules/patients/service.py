import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Protocol, Sequence
from app.core.errors import PatientNotFoundError, InvalidPinError, PatientPinBlockedError
from app.core.security import verify_pin
from app.modules.patients.models import Patient
from app.platform.ports.audit import AuditPort
from app.platform.ports.sessions import SessionIssuerPort

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3
BLOCK_MINUTES = 15

def _now() -> datetime:
    return datetime.now(timezone.utc)

def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)

class PatientAuthRepositoryPort(Protocol):
    async def find_by_cpf(self, cpf: str) -> Patient | None: ...
    async def reset_pin_state(self, patient_id: int) -> None: ...
    async def record_failed_attempt(self, patient_id: int, attempts: int, blocked_until: datetime | None) -> None: ...

@dataclass
class PatientLoginResult:
    token: str
    expires_at: datetime
    patient: Patient

class PatientAuthService:
    """
    CPF + PIN login with progressive lockout.

    The locked state is derived from `pin_blocked_until`; nothing else is persisted.
    A lockout that has elapsed is not cleared on its own: the next attempt is
    evaluated against the stored counter, so a wrong PIN right after expiry
    re-locks and a correct one resets the counter.
    """

    def __init__(self,
                 patients: PatientAuthRepositoryPort,
                 audit: AuditPort,
                 sessions: SessionIssuerPort,
                 *,
                 max_attempts: int = MAX_ATTEMPTS,
                 block_minutes: int = BLOCK_MINUTES,
                 verify: Callable[[str, str], bool] = verify_pin,
                 now: Callable[[], datetime] = _now):
        self.patients = patients
        self.audit = audit
        self.sessions = sessions
        self.max_attempts = max_attempts
        self.block_minutes = block_minutes
        self._verify = verify
        self._now = now

    async def login_with_pin(self,
                             cpf: str,
                             pin: str,
                             ip: str | None = None,
                             user_agent: str | None = None) -> PatientLoginResult:
        patient = await self.patients.find_by_cpf(cpf)
        if patient is None:
            raise PatientNotFoundError()

        now = self._now()
        if patient.pin_blocked_until and _as_utc(patient.pin_blocked_until) > now:
            # no hash comparison while locked
            raise PatientPinBlockedError(blocked_until=patient.pin_blocked_until)

        # argon2 is CPU-bound; keep it off the event loop
        is_valid = await asyncio.to_thread(self._verify, pin, patient.pin_hash)
        if not is_valid:
            attempts = (patient.pin_attempts or 0) + 1
            should_block = attempts >= self.max_attempts
            blocked_until = now + timedelta(minutes=self.block_minutes) if should_block else None
            await self.patients.record_failed_attempt(patient.id, attempts, blocked_until)
            await self.audit.record("PATIENT_PIN_FAILED", patient.id, {
                "attempts": attempts,
                "blockedUntil": blocked_until,
                "ip": ip,
                "userAgent": user_agent,
            })
            if should_block:
                logger.warning(f"Patient {patient.id} PIN locked until {blocked_until.isoformat()} after {attempts} failed attempts")
                raise PatientPinBlockedError(blocked_until=blocked_until)
            logger.info(f"Patient {patient.id} failed PIN attempt {attempts}/{self.max_attempts}")
            raise InvalidPinError()

        await self.patients.reset_pin_state(patient.id)
        session = await self.sessions.create(patient.id)
        await self.audit.record("PATIENT_SESSION_CREATED", patient.id, {
            "ip": ip,
            "userAgent": user_agent,
            "expiresAt": session.expires_at,
        })
        logger.info(f"Patient {patient.id} session created, expires {session.expires_at.isoformat()}")
        return PatientLoginResult(token=session.token, expires_at=session.expires_at, patient=patient)


class PatientLookupPort(Protocol):
    async def get(self, patient_id: int) -> Patient | None: ...

class UpcomingAppointmentsPort(Protocol):
    async def list_upcoming_for_patient(self, patient_id: int, now: datetime,
                                        limit: int | None = None) -> Sequence[Any]: ...

MOBILE_VIEW_APPOINTMENTS = 3

@dataclass
class MobileView:
    patient: Patient
    next_appointments: Sequence[Any]

class PatientPortalService:
    """Read side of the patient app: own profile and upcoming appointments."""

    def __init__(self,
                 patients: PatientLookupPort,
                 appointments: UpcomingAppointmentsPort,
                 now: Callable[[], datetime] = _now):
        self.patients = patients
        self.appointments = appointments
        self._now = now

    async def get_mobile_view(self, patient_id: int) -> MobileView:
        patient = await self.patients.get(patient_id)
        if patient is None:
            raise PatientNotFoundError()
        upcoming = await self.appointments.list_upcoming_for_patient(
            patient_id, self._now(), limit=MOBILE_VIEW_APPOINTMENTS)
        return MobileView(patient=patient, next_appointments=upcoming)

    async def list_upcoming_appointments(self, patient_id: int, limit: int | None = None) -> Sequence[Any]:
        return await self.appointments.list_upcoming_for_patient(patient_id, self._now(), limit=limit)
