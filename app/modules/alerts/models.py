import enum
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import BigInteger, String, Text, TIMESTAMP, ForeignKey, Index, Enum as SQLAlchemyEnum
from app.core.base import Base, TimestampedMixin

class AlertSeverity(str, enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"

class AlertStatus(str, enum.Enum):
    open = "open"
    acknowledged = "acknowledged"
    closed = "closed"

class Alert(Base, TimestampedMixin):
    __table_args__ = (
        Index("alert_patient_status_idx", "patient_id", "status"),
    )

    patient_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("patient.id", ondelete="CASCADE"))
    kind: Mapped[str] = mapped_column(String(64))
    severity: Mapped[AlertSeverity] = mapped_column(
        SQLAlchemyEnum(AlertSeverity, name="alert_severity"), default=AlertSeverity.medium
    )
    status: Mapped[AlertStatus] = mapped_column(
        SQLAlchemyEnum(AlertStatus, name="alert_status"), default=AlertStatus.open
    )
    details: Mapped[str | None] = mapped_column(Text, nullable=True)
    # both set iff status is not open
    resolved_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    resolved_by: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
