import logging
import math
from datetime import datetime, timezone
from typing import Protocol, Sequence
from app.core.errors import ProfessionalNotFoundError
from app.modules.alerts.models import AlertSeverity, AlertStatus
from app.modules.occurrences.models import Occurrence, OccurrenceSource
from app.modules.occurrences.schemas import OccurrenceCreate
from app.platform.ports.alerts import AlertPort
from app.platform.ports.audit import AuditPort

logger = logging.getLogger(__name__)

PATIENT_SYMPTOM_ALERT_KIND = "sintoma_paciente"
UNNAMED_SYMPTOM = "Sintoma sem descrição"

class OccurrenceRepositoryPort(Protocol):
    async def create(self, patient_id: int, professional_id: int, kind: str, intensity: int,
                     source: OccurrenceSource, notes: str | None = None) -> Occurrence: ...
    async def list_by_patient(self, patient_id: int, start: datetime | None = None,
                              end: datetime | None = None, kind: str | None = None) -> Sequence[Occurrence]: ...

class NextAppointmentLookup(Protocol):
    async def find_next_for_patient(self, patient_id: int, now: datetime): ...

def severity_for_intensity(intensity: float) -> AlertSeverity:
    if not math.isfinite(intensity):
        return AlertSeverity.low
    if intensity >= 8:
        return AlertSeverity.high
    if intensity >= 4:
        return AlertSeverity.medium
    return AlertSeverity.low

def clamp_intensity(intensity: float) -> int:
    if not math.isfinite(intensity):
        return 0
    # half-up, so 8.5 displays as 9
    return max(0, min(math.floor(intensity + 0.5), 10))

def build_symptom_alert_details(kind: str, intensity: float, notes: str | None = None) -> str:
    symptom = kind.strip() or UNNAMED_SYMPTOM
    parts = [f'Paciente relatou "{symptom}" com intensidade {clamp_intensity(intensity)}/10.']
    safe_notes = notes.strip() if notes else ""
    if safe_notes:
        parts.append(f"Observações: {safe_notes}.")
    return " ".join(parts)

def _trim_or_none(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None

class OccurrenceService:
    """
    Records symptom reports. A patient-sourced report produces exactly one open
    alert whose severity follows the reported intensity and whose `created_at`
    is the occurrence's own timestamp.
    """

    def __init__(self, occurrences: OccurrenceRepositoryPort, audit: AuditPort, alerts: AlertPort | None = None):
        self.occurrences = occurrences
        self.audit = audit
        self.alerts = alerts

    async def list_patient_occurrences(self,
                                       patient_id: int,
                                       start: datetime | None = None,
                                       end: datetime | None = None,
                                       kind: str | None = None) -> Sequence[Occurrence]:
        return await self.occurrences.list_by_patient(patient_id, start=start, end=end, kind=_trim_or_none(kind))

    async def create_occurrence(self, patient_id: int, payload: OccurrenceCreate, professional_id: int) -> Occurrence:
        notes = _trim_or_none(payload.notes)
        occurrence = await self.occurrences.create(
            patient_id=patient_id,
            professional_id=professional_id,
            kind=payload.kind.strip(),
            intensity=payload.intensity,
            source=payload.source,
            notes=notes,
        )
        await self.audit.record("OCCURRENCE_CREATED", occurrence.id, {
            "patientId": patient_id,
            "professionalId": professional_id,
            "kind": occurrence.kind,
            "intensity": occurrence.intensity,
            "source": occurrence.source,
        })

        if self.alerts is not None and payload.source == OccurrenceSource.patient:
            severity = severity_for_intensity(payload.intensity)
            await self.alerts.create(
                patient_id=patient_id,
                kind=PATIENT_SYMPTOM_ALERT_KIND,
                severity=severity,
                status=AlertStatus.open,
                details=build_symptom_alert_details(occurrence.kind, payload.intensity, notes or occurrence.notes),
                created_at=occurrence.created_at,
            )
            logger.info(f"Escalated occurrence {occurrence.id} of patient {patient_id} as {severity.value} alert")

        return occurrence

async def resolve_reporting_professional(appointments: NextAppointmentLookup,
                                         patient_id: int,
                                         fallback_professional_id: int | None = None,
                                         now: datetime | None = None) -> int:
    """Owner of a patient self-report: professional of the next upcoming appointment, else the fallback."""
    upcoming = await appointments.find_next_for_patient(patient_id, now or datetime.now(timezone.utc))
    if upcoming is not None:
        return upcoming.professional_id
    if fallback_professional_id:
        return fallback_professional_id
    raise ProfessionalNotFoundError()
