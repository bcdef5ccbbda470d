from datetime import date

from pydantic import Field, field_validator, model_validator

from medtrack.schemas.base import CamelModel
from medtrack.services.schedule.errors import InvalidTimezoneError
from medtrack.services.schedule.slots import SLOT_TIME_PATTERN
from medtrack.services.schedule.zoned_time import Weekday, get_zone


class RegimenCreate(CamelModel):
    """Recurring intake pattern; validated so generation never meets bad data."""

    timezone: str = Field(default="Asia/Tokyo", max_length=64)
    start_date: date
    end_date: date | None = None
    times: list[str] = Field(..., min_length=1)
    days_of_week: list[Weekday] = Field(default_factory=list)
    enabled: bool = True

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        try:
            get_zone(value)
        except InvalidTimezoneError as exc:
            raise ValueError(str(exc)) from exc
        return value.strip()

    @field_validator("times")
    @classmethod
    def validate_times(cls, value: list[str]) -> list[str]:
        invalid = [time for time in value if not SLOT_TIME_PATTERN.match(time)]
        if invalid:
            raise ValueError(f"times must be HH:MM, got {', '.join(invalid)}")
        if len(set(value)) != len(value):
            raise ValueError("times must not contain duplicates")
        return value

    @field_validator("days_of_week")
    @classmethod
    def validate_days_of_week(cls, value: list[Weekday]) -> list[Weekday]:
        if len(set(value)) != len(value):
            raise ValueError("daysOfWeek must not contain duplicates")
        return value

    @model_validator(mode="after")
    def validate_date_range(self) -> "RegimenCreate":
        if self.end_date is not None and self.start_date > self.end_date:
            raise ValueError("startDate must be on or before endDate")
        return self


class RegimenResponse(CamelModel):
    id: int
    patient_id: int
    medication_id: int
    timezone: str
    start_date: date
    end_date: date | None = None
    times: list[str]
    days_of_week: list[str]
    enabled: bool
