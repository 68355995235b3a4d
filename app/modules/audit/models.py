from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, BigInteger, JSON, Index
from app.core.base import Base, TimestampedMixin

class AuditLog(Base, TimestampedMixin):
    __table_args__ = (
        Index("auditlog_action_idx", "action"),
        Index("auditlog_entity_idx", "entity", "entity_id"),
    )

    # who
    user_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    # what happened
    action: Mapped[str] = mapped_column(String(128))  # APPOINTMENT_CREATED | PATIENT_PIN_FAILED | ...
    entity: Mapped[str] = mapped_column(String(128))  # patient | appointment | occurrence | alert
    entity_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    details: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(255), nullable=True)
