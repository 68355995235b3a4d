import logging
from datetime import datetime, timezone
from typing import Callable, Protocol, Sequence
from app.core.errors import AlertNotFoundError
from app.modules.alerts.models import Alert, AlertSeverity, AlertStatus
from app.modules.alerts.schemas import AlertUpdate
from app.platform.ports.audit import AuditPort

logger = logging.getLogger(__name__)

def _now() -> datetime:
    return datetime.now(timezone.utc)

class AlertRepositoryPort(Protocol):
    async def find_by_id(self, alert_id: int) -> Alert | None: ...
    async def list(self, status: AlertStatus | None = None, severity: AlertSeverity | None = None,
                   patient_id: int | None = None, limit: int | None = None,
                   offset: int = 0) -> tuple[Sequence[Alert], int]: ...
    async def update(self, alert_id: int, **data) -> Alert | None: ...

class AlertService:
    def __init__(self, alerts: AlertRepositoryPort, audit: AuditPort, now: Callable[[], datetime] = _now):
        self.alerts = alerts
        self.audit = audit
        self.now = now

    async def list_alerts(self,
                          status: AlertStatus | None = None,
                          severity: AlertSeverity | None = None,
                          patient_id: int | None = None,
                          limit: int | None = None,
                          offset: int = 0) -> tuple[Sequence[Alert], int]:
        return await self.alerts.list(status=status, severity=severity, patient_id=patient_id,
                                      limit=limit, offset=offset)

    async def get_alert(self, alert_id: int) -> Alert:
        obj = await self.alerts.find_by_id(alert_id)
        if not obj:
            raise AlertNotFoundError()
        return obj

    async def update_alert(self, alert_id: int, payload: AlertUpdate, professional_id: int) -> Alert:
        """
        Apply a triage update. Reopening clears the resolution stamp; any other
        status stamps `resolved_by` with the acting professional and
        `resolved_at` with the supplied time or now.
        """
        existing = await self.get_alert(alert_id)
        provided = payload.model_fields_set

        changes: dict = {}
        if payload.status is not None:
            changes["status"] = payload.status
            if payload.status == AlertStatus.open:
                changes["resolved_at"] = None
                changes["resolved_by"] = None
            else:
                changes["resolved_by"] = professional_id
                changes["resolved_at"] = payload.resolved_at or self.now()
        if "details" in provided:
            changes["details"] = payload.details
        # a bare resolution time only corrects an already resolved alert
        if ("resolved_at" in provided and payload.status is None
                and payload.resolved_at is not None and existing.status != AlertStatus.open):
            changes["resolved_at"] = payload.resolved_at

        if not changes:
            return existing

        updated = await self.alerts.update(alert_id, **changes)
        if not updated:
            raise AlertNotFoundError()
        await self.audit.record("ALERT_UPDATED", alert_id, {
            "professionalId": professional_id,
            "patientId": existing.patient_id,
            "changes": sorted(changes),
            "status": updated.status,
        })
        logger.info(f"Alert {alert_id} updated by professional {professional_id}")
        return updated
