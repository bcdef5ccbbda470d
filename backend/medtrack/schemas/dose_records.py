import re
from datetime import date, datetime

from pydantic import Field, field_serializer, field_validator

from medtrack.schemas.base import CamelModel
from medtrack.services.schedule.slots import SLOT_TIME_PATTERN
from medtrack.services.schedule.types import Slot, SlotStatus
from medtrack.services.schedule.zoned_time import format_instant

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_date_string(value: str) -> date:
    """Parse a strict ``YYYY-MM-DD`` calendar date."""
    if not DATE_PATTERN.match(value):
        raise ValueError("date must be YYYY-MM-DD")
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise ValueError("date is not a valid calendar date") from exc


class DoseRecordKeyRequest(CamelModel):
    medication_id: int = Field(..., ge=1)
    scheduled_at: datetime

    @field_validator("scheduled_at")
    @classmethod
    def require_timezone(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            raise ValueError("scheduledAt must include a UTC offset")
        return value


class DoseRecordResponse(CamelModel):
    id: int
    patient_id: int
    medication_id: int
    scheduled_at: datetime
    taken_at: datetime
    recorded_by_type: str
    recorded_by_id: str | None = None
    recording_group_id: str | None = None

    @field_serializer("scheduled_at", "taken_at")
    def serialize_instant(self, value: datetime) -> str:
        return format_instant(value)


class SlotBulkRecordRequest(CamelModel):
    """Record every outstanding dose of ``slot`` on local calendar ``date``."""

    date: str
    slot: Slot
    morning_time: str | None = None
    noon_time: str | None = None
    evening_time: str | None = None
    bedtime_time: str | None = None

    @field_validator("date")
    @classmethod
    def validate_date(cls, value: str) -> str:
        parse_date_string(value)
        return value

    @field_validator("morning_time", "noon_time", "evening_time", "bedtime_time")
    @classmethod
    def validate_slot_time(cls, value: str | None) -> str | None:
        if value is not None and not SLOT_TIME_PATTERN.match(value):
            raise ValueError("slot times must be in HH:MM format")
        return value

    @property
    def local_date(self) -> date:
        return parse_date_string(self.date)

    def custom_slot_times(self) -> dict[Slot, str] | None:
        overrides = {
            Slot.morning: self.morning_time,
            Slot.noon: self.noon_time,
            Slot.evening: self.evening_time,
            Slot.bedtime: self.bedtime_time,
        }
        given = {slot: time for slot, time in overrides.items() if time is not None}
        return given or None


class SlotBulkRecordResponse(CamelModel):
    updated_count: int
    remaining_count: int
    total_pills: int
    med_count: int
    slot_time: str
    slot_summary: dict[Slot, SlotStatus]
    recording_group_id: str | None = None
