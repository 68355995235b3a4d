from datetime import datetime
from pydantic import BaseModel, Field
from app.modules.appointments.models import AppointmentType, AppointmentStatus

# ---- Appointments ----

class AppointmentListFilters(BaseModel):
    start: datetime | None = None
    end: datetime | None = None
    patient_id: int | None = None
    professional_id: int | None = None
    status: AppointmentStatus | None = None
    limit: int | None = Field(default=None, ge=1, le=100)
    offset: int = Field(default=0, ge=0)

class AppointmentCreate(BaseModel):
    patient_id: int = Field(..., ge=1)
    professional_id: int = Field(..., ge=1)
    starts_at: datetime
    type: AppointmentType
    notes: str | None = None

class AppointmentUpdate(BaseModel):
    # allow updating a subset of fields; an explicit `notes: null` clears them
    starts_at: datetime | None = None
    type: AppointmentType | None = None
    notes: str | None = None

class AppointmentStatusChange(BaseModel):
    status: AppointmentStatus
    notes: str | None = None

class AppointmentDecline(BaseModel):
    reason: str | None = Field(default=None, max_length=500)

class AppointmentOut(BaseModel):
    id: int
    patient_id: int
    professional_id: int
    starts_at: datetime
    type: AppointmentType
    status: AppointmentStatus
    notes: str | None = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class AppointmentPage(BaseModel):
    data: list[AppointmentOut]
    total: int

class AttendanceConfirmOut(BaseModel):
    status: AppointmentStatus
