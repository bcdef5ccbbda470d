from datetime import date, datetime
from enum import StrEnum
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Date, DateTime, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from medtrack.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from medtrack.models.patient import Patient
    from medtrack.models.regimen import Regimen


class InventoryAlertState(StrEnum):
    NONE = "NONE"
    LOW = "LOW"
    OUT = "OUT"


class InventoryAdjustmentReason(StrEnum):
    TAKEN_CREATE = "TAKEN_CREATE"
    TAKEN_DELETE = "TAKEN_DELETE"
    MANUAL_ADJUST = "MANUAL_ADJUST"
    REFILL = "REFILL"


class InventoryActorType(StrEnum):
    PATIENT = "PATIENT"
    CAREGIVER = "CAREGIVER"
    SYSTEM = "SYSTEM"


class Medication(Base, TimestampMixin):
    """Medication prescribed to a patient, with optional pill inventory tracking."""

    __tablename__ = "medications"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    patient_id: Mapped[int] = mapped_column(
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    dosage_text: Mapped[str] = mapped_column(String(100), nullable=False)
    dose_count_per_intake: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1, comment="Units taken per administration"
    )
    dosage_strength_value: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    dosage_strength_unit: Mapped[str] = mapped_column(String(20), nullable=False, default="mg")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_archived: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_prn: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False, comment="Taken as needed, not scheduled"
    )

    inventory_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    inventory_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    inventory_low_threshold: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    inventory_updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    inventory_last_alert_state: Mapped[str | None] = mapped_column(
        String(8), nullable=True, comment="NONE|LOW|OUT"
    )

    patient: Mapped["Patient"] = relationship(back_populates="medications")
    regimens: Mapped[list["Regimen"]] = relationship(
        back_populates="medication", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_medications_patient_archived", "patient_id", "is_archived"),
    )

    @property
    def is_schedulable(self) -> bool:
        """Whether regimens of this medication produce dose instances."""
        return bool(self.is_active) and not self.is_archived

    def __repr__(self) -> str:
        return (
            f"<Medication(id={self.id}, name='{self.name}', active={self.is_active})>"
        )


class MedicationInventoryAdjustment(Base, TimestampMixin):
    """Audit row for every change applied to a medication's inventory."""

    __tablename__ = "medication_inventory_adjustments"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    patient_id: Mapped[int] = mapped_column(
        ForeignKey("patients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    medication_id: Mapped[int] = mapped_column(
        ForeignKey("medications.id", ondelete="CASCADE"), nullable=False, index=True
    )
    delta: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(String(20), nullable=False)
    actor_type: Mapped[str] = mapped_column(String(16), nullable=False)
    actor_id: Mapped[str | None] = mapped_column(String(64), nullable=True)


class InventoryAlertEvent(Base, TimestampMixin):
    """Emitted when a medication's inventory enters the LOW or OUT state."""

    __tablename__ = "inventory_alert_events"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    patient_id: Mapped[int] = mapped_column(
        ForeignKey("patients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    medication_id: Mapped[int] = mapped_column(
        ForeignKey("medications.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[str] = mapped_column(String(8), nullable=False, comment="LOW|OUT")
    remaining: Mapped[int] = mapped_column(Integer, nullable=False)
    threshold: Mapped[int] = mapped_column(Integer, nullable=False)
    patient_display_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    medication_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
