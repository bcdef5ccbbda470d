from enum import StrEnum
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from medtrack.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from medtrack.models.medication import Medication
    from medtrack.models.regimen import Regimen


class LinkStatus(StrEnum):
    active = "active"
    revoked = "revoked"


class Patient(Base, TimestampMixin):
    """Patient whose intake is tracked; owned by the creating caregiver."""

    __tablename__ = "patients"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    timezone: Mapped[str | None] = mapped_column(
        String(64), nullable=True, comment="IANA zone; falls back to the service default"
    )

    medications: Mapped[list["Medication"]] = relationship(
        back_populates="patient", cascade="all, delete-orphan"
    )
    regimens: Mapped[list["Regimen"]] = relationship(
        back_populates="patient", cascade="all, delete-orphan"
    )
    caregiver_links: Mapped[list["CaregiverPatientLink"]] = relationship(
        back_populates="patient", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Patient(id={self.id}, name='{self.display_name}')>"


class CaregiverPatientLink(Base, TimestampMixin):
    """Grants a caregiver account access to a patient and its notifications."""

    __tablename__ = "caregiver_patient_links"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    caregiver_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    patient_id: Mapped[int] = mapped_column(
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=LinkStatus.active,
        comment="active|revoked",
    )

    patient: Mapped["Patient"] = relationship(back_populates="caregiver_links")

    __table_args__ = (
        UniqueConstraint(
            "caregiver_id",
            "patient_id",
            name="uq_caregiver_patient_links_caregiver_patient",
        ),
        Index("ix_caregiver_patient_links_patient_status", "patient_id", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<CaregiverPatientLink(caregiver_id={self.caregiver_id}, "
            f"patient_id={self.patient_id}, status={self.status})>"
        )
