from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.db import get_session
from app.core.errors import AlertNotFoundError
from app.core.security import Principal, require_professional
from app.modules.alerts.models import AlertSeverity, AlertStatus
from app.modules.alerts.repository import AlertRepository
from app.modules.alerts.schemas import AlertUpdate, AlertOut, AlertPage
from app.modules.alerts.service import AlertService
from app.modules.audit.service import AuditRecorder
from app.platform.rate_limit import client_ip

router = APIRouter()

def svc(request: Request,
        session: AsyncSession = Depends(get_session),
        principal: Principal = Depends(require_professional)) -> AlertService:
    audit = AuditRecorder(session, "alert", actor_id=principal.user_id,
                          ip=client_ip(request), user_agent=request.headers.get("user-agent"))
    return AlertService(AlertRepository(session), audit)

def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND,
                         detail={"code": AlertNotFoundError.code, "message": "Alert not found"})

@router.get("/alerts", response_model=AlertPage)
async def list_alerts(
    alert_status: AlertStatus | None = Query(default=None, alias="status"),
    severity: AlertSeverity | None = None,
    patient_id: int | None = Query(default=None, ge=1),
    limit: int | None = Query(default=None, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    service: AlertService = Depends(svc),
):
    data, total = await service.list_alerts(status=alert_status, severity=severity, patient_id=patient_id,
                                            limit=limit, offset=offset)
    return AlertPage(data=[AlertOut.model_validate(a) for a in data], total=total)

@router.get("/alerts/{alert_id}", response_model=AlertOut)
async def get_alert(alert_id: int, service: AlertService = Depends(svc)):
    try:
        return await service.get_alert(alert_id)
    except AlertNotFoundError:
        raise _not_found()

@router.patch("/alerts/{alert_id}", response_model=AlertOut)
async def update_alert(
    alert_id: int,
    payload: AlertUpdate,
    principal: Principal = Depends(require_professional),
    service: AlertService = Depends(svc),
):
    try:
        return await service.update_alert(alert_id, payload, principal.user_id)
    except AlertNotFoundError:
        raise _not_found()
