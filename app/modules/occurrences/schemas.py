from datetime import datetime
from pydantic import BaseModel, Field
from app.modules.occurrences.models import OccurrenceSource

class OccurrenceCreate(BaseModel):
    kind: str = Field(..., min_length=1, max_length=191)
    intensity: int = Field(..., ge=0, le=10)
    source: OccurrenceSource = OccurrenceSource.professional
    notes: str | None = Field(default=None, max_length=2000)

    class Config:
        str_strip_whitespace = True

class PatientOccurrenceCreate(BaseModel):
    # source is always `patient` for self-reports
    kind: str = Field(..., min_length=1, max_length=191)
    intensity: int = Field(..., ge=0, le=10)
    notes: str | None = Field(default=None, max_length=2000)

    class Config:
        str_strip_whitespace = True

class OccurrenceOut(BaseModel):
    id: int
    patient_id: int
    professional_id: int
    kind: str
    intensity: int
    source: OccurrenceSource
    notes: str | None = None
    created_at: datetime

    class Config:
        from_attributes = True
