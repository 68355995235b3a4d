from datetime import datetime
from pydantic import BaseModel, Field
from app.modules.alerts.models import AlertSeverity, AlertStatus

class AlertUpdate(BaseModel):
    status: AlertStatus | None = None
    details: str | None = Field(default=None, max_length=2000)
    resolved_at: datetime | None = None

class AlertOut(BaseModel):
    id: int
    patient_id: int
    kind: str
    severity: AlertSeverity
    status: AlertStatus
    details: str | None = None
    created_at: datetime
    resolved_at: datetime | None = None
    resolved_by: int | None = None

    class Config:
        from_attributes = True

class AlertPage(BaseModel):
    data: list[AlertOut]
    total: int
