import logging
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.config import settings
from app.core.db import get_session
from app.core.errors import PatientNotFoundError, InvalidPinError, PatientPinBlockedError
from app.modules.appointments.repository import AppointmentRepository
from app.modules.audit.service import AuditRecorder
from app.modules.patients.repository import PatientAuthRepository, PatientRepository
from app.modules.appointments.schemas import AppointmentOut
from app.modules.patients.schemas import PatientPinLogin, PatientOut, PatientMobileView, PatientAppointmentsOut
from app.modules.patients.service import PatientAuthService, PatientPortalService
from app.modules.patients.sessions import (
    PatientSession, set_session_cookie, clear_session_cookie, read_patient_session, require_patient,
)
from app.platform.provider_registry import registry
from app.platform.rate_limit import RateLimiter, client_ip

router = APIRouter()
me_router = APIRouter()
logger = logging.getLogger(__name__)

patient_login_rate_limit = RateLimiter(
    max_requests=settings.PATIENT_LOGIN_RATE_LIMIT_MAX,
    window_seconds=settings.PATIENT_LOGIN_RATE_LIMIT_WINDOW_SECONDS,
    scope="patient-pin",
)

def svc(request: Request, session: AsyncSession = Depends(get_session)) -> PatientAuthService:
    return PatientAuthService(
        patients=PatientAuthRepository(session),
        audit=AuditRecorder(session, "patient", ip=client_ip(request), user_agent=request.headers.get("user-agent")),
        sessions=registry.session_issuer(),
        max_attempts=settings.PIN_MAX_ATTEMPTS,
        block_minutes=settings.PIN_BLOCK_MINUTES,
    )

@router.post("/patient-pin", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(patient_login_rate_limit)])
async def login_patient_pin(
    payload: PatientPinLogin,
    request: Request,
    service: PatientAuthService = Depends(svc),
):
    try:
        result = await service.login_with_pin(
            payload.cpf,
            payload.pin,
            ip=client_ip(request),
            user_agent=request.headers.get("user-agent"),
        )
    except (PatientNotFoundError, InvalidPinError):
        # never reveal whether the CPF exists
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "INVALID_CREDENTIALS", "message": "CPF ou PIN inválidos"},
        )
    except PatientPinBlockedError:
        raise HTTPException(
            status_code=status.HTTP_423_LOCKED,
            detail={"code": "ACCOUNT_LOCKED", "message": "Paciente bloqueado temporariamente. Tente novamente mais tarde."},
        )

    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    set_session_cookie(response, result.token, result.expires_at)
    return response

@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(request: Request, session: AsyncSession = Depends(get_session)):
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    patient_session = read_patient_session(request)
    if request.cookies.get(settings.PATIENT_SESSION_COOKIE):
        clear_session_cookie(response)
    if patient_session is not None:
        audit = AuditRecorder(session, "patient", ip=client_ip(request), user_agent=request.headers.get("user-agent"))
        try:
            await audit.record("PATIENT_SESSION_ENDED", patient_session.patient_id, {"sessionId": patient_session.session_id})
        except Exception as e:
            # best-effort telemetry; logout itself must succeed
            logger.warning(f"Failed to audit logout for patient {patient_session.patient_id}: {e}")
    return response

# ---- Patient app ----

def portal_svc(session: AsyncSession = Depends(get_session)) -> PatientPortalService:
    return PatientPortalService(PatientRepository(session), AppointmentRepository(session))

@me_router.get("/patients/me", response_model=PatientMobileView)
async def get_own_profile(
    patient: PatientSession = Depends(require_patient),
    service: PatientPortalService = Depends(portal_svc),
):
    try:
        view = await service.get_mobile_view(patient.patient_id)
    except PatientNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND,
                            detail={"code": e.code, "message": "Paciente não encontrado"})
    return PatientMobileView(
        patient=PatientOut.model_validate(view.patient),
        next_appointments=[AppointmentOut.model_validate(a) for a in view.next_appointments],
    )

@me_router.get("/patients/me/appointments", response_model=PatientAppointmentsOut)
async def list_own_appointments(
    limit: int | None = Query(default=None, ge=1, le=50),
    patient: PatientSession = Depends(require_patient),
    service: PatientPortalService = Depends(portal_svc),
):
    rows = await service.list_upcoming_appointments(patient.patient_id, limit)
    return PatientAppointmentsOut(data=[AppointmentOut.model_validate(a) for a in rows])
