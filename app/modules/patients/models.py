import enum
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, CHAR, Integer, TIMESTAMP, Enum as SQLAlchemyEnum, Index
from app.core.base import Base, TimestampedMixin

class PatientStage(str, enum.Enum):
    pre_triage = "pre_triage"
    in_treatment = "in_treatment"
    post_treatment = "post_treatment"

class PatientStatus(str, enum.Enum):
    active = "active"
    inactive = "inactive"
    at_risk = "at_risk"

class Patient(Base, TimestampedMixin):
    __table_args__ = (
        Index("patient_stage_idx", "stage"),
        Index("patient_status_idx", "status"),
    )

    full_name: Mapped[str] = mapped_column(String(191))
    cpf: Mapped[str] = mapped_column(CHAR(11), unique=True, index=True)
    birth_date: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    emergency_phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    tumor_type: Mapped[str | None] = mapped_column(String(191), nullable=True)
    clinical_unit: Mapped[str | None] = mapped_column(String(191), nullable=True)
    stage: Mapped[PatientStage] = mapped_column(
        SQLAlchemyEnum(PatientStage, name="patient_stage"), default=PatientStage.pre_triage
    )
    status: Mapped[PatientStatus] = mapped_column(
        SQLAlchemyEnum(PatientStatus, name="patient_status"), default=PatientStatus.active
    )

    # PIN credential; never compared in plaintext
    pin_hash: Mapped[str] = mapped_column(String(191))
    pin_attempts: Mapped[int] = mapped_column(Integer, default=0)
    pin_blocked_until: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
