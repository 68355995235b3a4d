import logging
from datetime import date, datetime, time, timezone
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_session
from app.core.errors import DomainError, AppointmentNotFoundError, AppointmentConflictError
from app.core.security import Principal, require_professional
from app.modules.appointments.models import AppointmentStatus
from app.modules.appointments.repository import AppointmentRepository
from app.modules.appointments.schemas import (
    AppointmentListFilters, AppointmentCreate, AppointmentUpdate, AppointmentStatusChange,
    AppointmentDecline, AppointmentOut, AppointmentPage, AttendanceConfirmOut,
)
from app.modules.appointments.service import AppointmentService
from app.modules.audit.service import AuditRecorder
from app.modules.patients.sessions import PatientSession, require_patient
from app.platform.rate_limit import client_ip

router = APIRouter()
logger = logging.getLogger(__name__)

def svc(request: Request, session: AsyncSession = Depends(get_session)) -> AppointmentService:
    return AppointmentService(
        AppointmentRepository(session),
        AuditRecorder(session, "appointment", ip=client_ip(request), user_agent=request.headers.get("user-agent")),
    )

def _to_http(e: DomainError) -> HTTPException:
    if isinstance(e, AppointmentConflictError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"code": e.code, "message": "Professional already has an appointment at this time"},
        )
    if isinstance(e, AppointmentNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail={"code": e.code, "message": "Appointment not found"})
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"code": e.code, "message": str(e)})

# ---- Staff ----

@router.get("/appointments", response_model=AppointmentPage)
async def list_appointments(
    day: date | None = Query(default=None, description="Shortcut for start/end covering one UTC day"),
    start: datetime | None = None,
    end: datetime | None = None,
    patient_id: int | None = Query(default=None, ge=1),
    professional_id: int | None = Query(default=None, ge=1),
    appointment_status: AppointmentStatus | None = Query(default=None, alias="status"),
    limit: int | None = Query(default=None, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    _: Principal = Depends(require_professional),
    service: AppointmentService = Depends(svc),
):
    if day is not None:
        start = datetime.combine(day, time.min, tzinfo=timezone.utc)
        end = datetime.combine(day, time.max, tzinfo=timezone.utc)
    filters = AppointmentListFilters(
        start=start, end=end, patient_id=patient_id, professional_id=professional_id,
        status=appointment_status, limit=limit, offset=offset,
    )
    result = await service.list_appointments(filters)
    return AppointmentPage(data=[AppointmentOut.model_validate(a) for a in result.data], total=result.total)

@router.get("/appointments/{appointment_id}", response_model=AppointmentOut)
async def get_appointment(
    appointment_id: int,
    _: Principal = Depends(require_professional),
    service: AppointmentService = Depends(svc),
):
    try:
        return await service.get_appointment(appointment_id)
    except DomainError as e:
        raise _to_http(e)

@router.post("/appointments", response_model=AppointmentOut, status_code=status.HTTP_201_CREATED)
async def create_appointment(
    payload: AppointmentCreate,
    principal: Principal = Depends(require_professional),
    service: AppointmentService = Depends(svc),
):
    try:
        return await service.create_appointment(payload, principal.user_id)
    except DomainError as e:
        raise _to_http(e)

@router.put("/appointments/{appointment_id}", response_model=AppointmentOut)
async def update_appointment(
    appointment_id: int,
    payload: AppointmentUpdate,
    principal: Principal = Depends(require_professional),
    service: AppointmentService = Depends(svc),
):
    try:
        return await service.update_appointment(appointment_id, payload, principal.user_id)
    except DomainError as e:
        raise _to_http(e)

@router.delete("/appointments/{appointment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_appointment(
    appointment_id: int,
    reason: str | None = Query(default=None, max_length=500),
    principal: Principal = Depends(require_professional),
    service: AppointmentService = Depends(svc),
):
    try:
        await service.cancel_appointment(appointment_id, principal.user_id, reason)
    except DomainError as e:
        raise _to_http(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@router.post("/appointments/{appointment_id}/status", status_code=status.HTTP_204_NO_CONTENT)
async def change_appointment_status(
    appointment_id: int,
    payload: AppointmentStatusChange,
    principal: Principal = Depends(require_professional),
    service: AppointmentService = Depends(svc),
):
    try:
        await service.update_appointment_status(appointment_id, payload.status, principal.user_id, payload.notes)
    except DomainError as e:
        raise _to_http(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

# ---- Patient ----

@router.post("/appointments/{appointment_id}/confirm", response_model=AttendanceConfirmOut)
async def confirm_attendance(
    appointment_id: int,
    patient: PatientSession = Depends(require_patient),
    service: AppointmentService = Depends(svc),
):
    try:
        result = await service.confirm_attendance(appointment_id, patient.patient_id)
    except DomainError as e:
        raise _to_http(e)
    return AttendanceConfirmOut(status=result)

@router.post("/appointments/{appointment_id}/decline", status_code=status.HTTP_204_NO_CONTENT)
async def decline_appointment(
    appointment_id: int,
    payload: AppointmentDecline | None = None,
    patient: PatientSession = Depends(require_patient),
    service: AppointmentService = Depends(svc),
):
    try:
        await service.decline_appointment(appointment_id, patient.patient_id, payload.reason if payload else None)
    except DomainError as e:
        raise _to_http(e)
    logger.info(f"Patient {patient.patient_id} declined appointment {appointment_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
