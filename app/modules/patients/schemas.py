from datetime import datetime
from pydantic import BaseModel, Field
from app.modules.appointments.schemas import AppointmentOut
from app.modules.patients.models import PatientStage, PatientStatus

class PatientPinLogin(BaseModel):
    cpf: str = Field(..., pattern=r"^\d{11}$")
    pin: str = Field(..., pattern=r"^\d{4,6}$")

class PatientOut(BaseModel):
    # credential columns are never exposed
    id: int
    full_name: str
    cpf: str
    birth_date: datetime | None = None
    phone: str | None = None
    emergency_phone: str | None = None
    tumor_type: str | None = None
    clinical_unit: str | None = None
    stage: PatientStage
    status: PatientStatus

    class Config:
        from_attributes = True

class PatientMobileView(BaseModel):
    patient: PatientOut
    next_appointments: list[AppointmentOut]

class PatientAppointmentsOut(BaseModel):
    data: list[AppointmentOut]
