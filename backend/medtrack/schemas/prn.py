from datetime import datetime

from pydantic import Field, field_serializer

from medtrack.schemas.base import CamelModel
from medtrack.services.schedule.zoned_time import format_instant


class PrnDoseRecordCreate(CamelModel):
    medication_id: int = Field(..., ge=1)
    taken_at: datetime | None = None
    quantity_taken: int | None = Field(default=None, ge=1)


class PrnDoseRecordResponse(CamelModel):
    id: int
    patient_id: int
    medication_id: int
    taken_at: datetime
    quantity_taken: int
    actor_type: str
    created_at: datetime | None = None

    @field_serializer("taken_at")
    def serialize_taken_at(self, value: datetime) -> str:
        return format_instant(value)


class PrnHistoryItemResponse(CamelModel):
    id: int
    medication_id: int
    medication_name: str | None = None
    taken_at: datetime
    quantity_taken: int
    actor_type: str

    @field_serializer("taken_at")
    def serialize_taken_at(self, value: datetime) -> str:
        return format_instant(value)
