import enum
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import BigInteger, TIMESTAMP, Text, ForeignKey, Index, Enum as SQLAlchemyEnum, text
from app.core.base import Base, TimestampedMixin

class AppointmentType(str, enum.Enum):
    triage = "triage"
    treatment = "treatment"
    return_ = "return"

class AppointmentStatus(str, enum.Enum):
    scheduled = "scheduled"
    confirmed = "confirmed"
    completed = "completed"
    no_show = "no_show"
    canceled = "canceled"

class Appointment(Base, TimestampedMixin):
    __table_args__ = (
        Index("appointment_patient_time_idx", "patient_id", "starts_at"),
        Index("appointment_professional_time_idx", "professional_id", "starts_at"),
        # authoritative double-booking guard; canceled rows free the slot
        Index(
            "appointment_professional_slot_uq",
            "professional_id",
            "starts_at",
            unique=True,
            postgresql_where=text("status <> 'canceled'"),
        ),
    )

    patient_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("patient.id", ondelete="CASCADE"))
    professional_id: Mapped[int] = mapped_column(BigInteger)  # staff user id from the identity provider
    starts_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True))
    type: Mapped[AppointmentType] = mapped_column(
        SQLAlchemyEnum(AppointmentType, name="appointment_type", values_callable=lambda e: [m.value for m in e])
    )
    status: Mapped[AppointmentStatus] = mapped_column(
        SQLAlchemyEnum(AppointmentStatus, name="appointment_status"), default=AppointmentStatus.scheduled
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
