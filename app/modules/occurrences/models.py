import enum
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import BigInteger, SmallInteger, String, Text, ForeignKey, Index, Enum as SQLAlchemyEnum
from app.core.base import Base, TimestampedMixin

class OccurrenceSource(str, enum.Enum):
    patient = "patient"
    professional = "professional"

class Occurrence(Base, TimestampedMixin):
    """Symptom or clinical report. Rows are never updated after insert."""

    __table_args__ = (
        Index("occurrence_patient_created_idx", "patient_id", "created_at"),
    )

    patient_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("patient.id", ondelete="CASCADE"))
    professional_id: Mapped[int] = mapped_column(BigInteger)
    kind: Mapped[str] = mapped_column(String(191))
    intensity: Mapped[int] = mapped_column(SmallInteger)
    source: Mapped[OccurrenceSource] = mapped_column(SQLAlchemyEnum(OccurrenceSource, name="occurrence_source"))
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
