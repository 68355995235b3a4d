from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.config import settings
from app.core.db import get_session
from app.core.errors import ProfessionalNotFoundError
from app.core.security import Principal, require_professional
from app.modules.alerts.repository import AlertRepository
from app.modules.appointments.repository import AppointmentRepository
from app.modules.audit.service import AuditRecorder
from app.modules.occurrences.models import OccurrenceSource
from app.modules.occurrences.repository import OccurrenceRepository
from app.modules.occurrences.schemas import OccurrenceCreate, PatientOccurrenceCreate, OccurrenceOut
from app.modules.occurrences.service import OccurrenceService, resolve_reporting_professional
from app.modules.patients.sessions import PatientSession, require_patient
from app.platform.rate_limit import client_ip

router = APIRouter()

def svc(request: Request, session: AsyncSession = Depends(get_session)) -> OccurrenceService:
    return OccurrenceService(
        OccurrenceRepository(session),
        AuditRecorder(session, "occurrence", ip=client_ip(request), user_agent=request.headers.get("user-agent")),
        alerts=AlertRepository(session),
    )

def appointments_repo(session: AsyncSession = Depends(get_session)) -> AppointmentRepository:
    return AppointmentRepository(session)

# declared before /{patient_id} so "me" is never parsed as an id
@router.post("/patients/me/occurrences", response_model=OccurrenceOut, status_code=status.HTTP_201_CREATED)
async def report_own_occurrence(
    payload: PatientOccurrenceCreate,
    patient: PatientSession = Depends(require_patient),
    appointments: AppointmentRepository = Depends(appointments_repo),
    service: OccurrenceService = Depends(svc),
):
    try:
        professional_id = await resolve_reporting_professional(
            appointments,
            patient.patient_id,
            settings.PATIENT_OCCURRENCE_FALLBACK_PROFESSIONAL_ID,
        )
    except ProfessionalNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"code": e.code, "message": "No professional available to receive this report"},
        )
    data = OccurrenceCreate(
        kind=payload.kind,
        intensity=payload.intensity,
        source=OccurrenceSource.patient,
        notes=payload.notes,
    )
    return await service.create_occurrence(patient.patient_id, data, professional_id)

@router.get("/patients/{patient_id}/occurrences", response_model=list[OccurrenceOut])
async def list_occurrences(
    patient_id: int,
    start: datetime | None = None,
    end: datetime | None = None,
    kind: str | None = Query(default=None, max_length=191),
    _: Principal = Depends(require_professional),
    service: OccurrenceService = Depends(svc),
):
    return await service.list_patient_occurrences(patient_id, start=start, end=end, kind=kind)

@router.post("/patients/{patient_id}/occurrences", response_model=OccurrenceOut, status_code=status.HTTP_201_CREATED)
async def create_occurrence(
    patient_id: int,
    payload: OccurrenceCreate,
    principal: Principal = Depends(require_professional),
    service: OccurrenceService = Depends(svc),
):
    return await service.create_occurrence(patient_id, payload, principal.user_id)
