import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from fastapi import HTTPException, Request, Response, status
from jose import jwt, JWTError
from app.core.config import settings
from app.platform.ports.sessions import IssuedSession, SessionIssuerPort
from app.platform.provider_registry import registry

ALGORITHM = "HS256"

@dataclass(frozen=True)
class PatientSession:
    patient_id: int
    session_id: str
    expires_at: datetime

class PatientSessionIssuer(SessionIssuerPort):
    """Signs patient sessions as short HS256 JWTs carried in an HttpOnly cookie."""

    def __init__(self, secret: str | None = None, ttl_seconds: int | None = None):
        self.secret = secret or settings.PATIENT_SESSION_SECRET
        self.ttl_seconds = ttl_seconds or settings.PATIENT_SESSION_TTL_SECONDS

    async def create(self, patient_id: int) -> IssuedSession:
        issued_at = datetime.now(timezone.utc).replace(microsecond=0)
        expires_at = issued_at + timedelta(seconds=self.ttl_seconds)
        claims = {
            "patientId": patient_id,
            "sessionId": str(uuid.uuid4()),
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        token = jwt.encode(claims, self.secret, algorithm=ALGORITHM)
        return IssuedSession(token=token, expires_at=expires_at)

    def verify(self, token: str) -> PatientSession | None:
        try:
            payload = jwt.decode(token, self.secret, algorithms=[ALGORITHM])
        except JWTError:
            return None
        try:
            patient_id = int(payload.get("patientId"))
        except (TypeError, ValueError):
            return None
        session_id = payload.get("sessionId")
        exp = payload.get("exp")
        if patient_id <= 0 or not isinstance(session_id, str) or not isinstance(exp, (int, float)):
            return None
        return PatientSession(
            patient_id=patient_id,
            session_id=session_id,
            expires_at=datetime.fromtimestamp(exp, tz=timezone.utc),
        )

def set_session_cookie(response: Response, token: str, expires_at: datetime) -> None:
    response.set_cookie(
        settings.PATIENT_SESSION_COOKIE,
        token,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="strict",
        path="/",
        expires=expires_at,
    )

def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(settings.PATIENT_SESSION_COOKIE, path="/")

def read_patient_session(request: Request) -> PatientSession | None:
    token = request.cookies.get(settings.PATIENT_SESSION_COOKIE)
    if not token:
        return None
    session = registry.session_issuer().verify(token)
    if session is None or session.expires_at <= datetime.now(timezone.utc):
        return None
    return session

async def require_patient(request: Request) -> PatientSession:
    session = read_patient_session(request)
    if session is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="UNAUTHENTICATED")
    return session
