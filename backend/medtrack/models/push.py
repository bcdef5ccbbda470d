"""Caregiver push devices and per-device delivery dedup entries."""

from enum import StrEnum

from sqlalchemy import Boolean, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from medtrack.models.base import Base, TimestampMixin


class PushPlatform(StrEnum):
    ios = "ios"
    android = "android"


class PushDevice(Base, TimestampMixin):
    """A device registered by a caregiver to receive dose notifications."""

    __tablename__ = "push_devices"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    caregiver_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    token: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    platform: Mapped[str] = mapped_column(String(16), nullable=False, default=PushPlatform.ios)
    is_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<PushDevice(id={self.id}, caregiver_id={self.caregiver_id})>"


class PushDelivery(Base, TimestampMixin):
    """Marks that one logical event was sent to one device."""

    __tablename__ = "push_deliveries"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    event_key: Mapped[str] = mapped_column(String(128), nullable=False)
    push_device_id: Mapped[int] = mapped_column(
        ForeignKey("push_devices.id", ondelete="CASCADE"),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint(
            "event_key",
            "push_device_id",
            name="uq_push_deliveries_event_device",
        ),
    )
