from fastapi import APIRouter
from app.modules.patients.router import router as auth_router, me_router as patient_app_router
from app.modules.appointments.router import router as appointments_router
from app.modules.occurrences.router import router as occurrences_router
from app.modules.alerts.router import router as alerts_router
from app.modules.audit.router import router as audit_router

api_router = APIRouter()
api_router.include_router(auth_router, prefix="/auth", tags=["auth"])
api_router.include_router(patient_app_router, tags=["patients"])
api_router.include_router(appointments_router, tags=["appointments"])
api_router.include_router(occurrences_router, tags=["occurrences"])
api_router.include_router(alerts_router, tags=["alerts"])
api_router.include_router(audit_router, tags=["audit"])

@api_router.get("/health", tags=["health"])
async def health():
    return {"status": "ok"}
