from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import JSON, Boolean, Date, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from medtrack.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from medtrack.models.medication import Medication
    from medtrack.models.patient import Patient


class Regimen(Base, TimestampMixin):
    """Recurring intake pattern for one medication in one timezone."""

    __tablename__ = "regimens"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    patient_id: Mapped[int] = mapped_column(
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    medication_id: Mapped[int] = mapped_column(
        ForeignKey("medications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    timezone: Mapped[str] = mapped_column(String(64), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(
        Date, nullable=True, comment="Exclusive; local midnight in the regimen timezone"
    )
    times: Mapped[list[str]] = mapped_column(
        JSON, nullable=False, default=list, comment="HH:MM local times"
    )
    days_of_week: Mapped[list[str]] = mapped_column(
        JSON, nullable=False, default=list, comment="SUN..SAT; empty means every day"
    )
    enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    patient: Mapped["Patient"] = relationship(back_populates="regimens")
    medication: Mapped["Medication"] = relationship(back_populates="regimens")

    __table_args__ = (
        Index("ix_regimens_patient_medication", "patient_id", "medication_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Regimen(id={self.id}, medication_id={self.medication_id}, "
            f"times={self.times}, tz='{self.timezone}')>"
        )
