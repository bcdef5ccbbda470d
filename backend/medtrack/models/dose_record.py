from datetime import datetime
from enum import StrEnum

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from medtrack.models.base import Base, TimestampMixin


class RecordedByType(StrEnum):
    patient = "patient"
    caregiver = "caregiver"


class DoseRecord(Base, TimestampMixin):
    """A scheduled dose marked as taken.

    The (patient, medication, scheduled_at) triple is the natural key of a
    dose instance; the unique constraint makes concurrent creates converge.
    """

    __tablename__ = "dose_records"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    patient_id: Mapped[int] = mapped_column(
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
    )
    medication_id: Mapped[int] = mapped_column(
        ForeignKey("medications.id", ondelete="RESTRICT"),
        nullable=False,
    )
    scheduled_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    taken_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    recorded_by_type: Mapped[str] = mapped_column(
        String(16), nullable=False, comment="patient|caregiver"
    )
    recorded_by_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    recording_group_id: Mapped[str | None] = mapped_column(
        String(36),
        nullable=True,
        index=True,
        comment="Shared by all records created in one bulk slot operation",
    )

    __table_args__ = (
        UniqueConstraint(
            "patient_id",
            "medication_id",
            "scheduled_at",
            name="uq_dose_records_patient_medication_scheduled",
        ),
        Index("ix_dose_records_patient_scheduled", "patient_id", "scheduled_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<DoseRecord(id={self.id}, patient_id={self.patient_id}, "
            f"medication_id={self.medication_id}, scheduled_at={self.scheduled_at})>"
        )


class DoseRecordEvent(Base, TimestampMixin):
    """Append-only audit entry written after each dose record creation."""

    __tablename__ = "dose_record_events"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    patient_id: Mapped[int] = mapped_column(
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    scheduled_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    taken_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    within_time: Mapped[bool] = mapped_column(Boolean, nullable=False)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    medication_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    is_prn: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class PrnDoseRecord(Base, TimestampMixin):
    """Ad hoc intake of an as-needed medication."""

    __tablename__ = "prn_dose_records"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    patient_id: Mapped[int] = mapped_column(
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
    )
    medication_id: Mapped[int] = mapped_column(
        ForeignKey("medications.id", ondelete="RESTRICT"),
        nullable=False,
    )
    taken_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    quantity_taken: Mapped[int] = mapped_column(Integer, nullable=False)
    actor_type: Mapped[str] = mapped_column(String(16), nullable=False)

    __table_args__ = (
        Index("ix_prn_dose_records_patient_taken", "patient_id", "taken_at"),
    )
