from datetime import date, datetime

from pydantic import field_serializer

from medtrack.schemas.base import CamelModel
from medtrack.schemas.prn import PrnHistoryItemResponse
from medtrack.services.schedule.types import DoseStatus, Slot, SlotStatus
from medtrack.services.schedule.zoned_time import format_instant


class DayHistoryDoseResponse(CamelModel):
    medication_id: int
    medication_name: str
    dosage_text: str
    dose_count_per_intake: int
    scheduled_at: datetime
    slot: Slot
    effective_status: DoseStatus

    @field_serializer("scheduled_at")
    def serialize_scheduled_at(self, value: datetime) -> str:
        return format_instant(value)


class DayHistoryResponse(CamelModel):
    date: date
    doses: list[DayHistoryDoseResponse]
    slot_summary: dict[Slot, SlotStatus]
    prn_items: list[PrnHistoryItemResponse]


class MonthHistoryDayResponse(CamelModel):
    date: date
    slot_summary: dict[Slot, SlotStatus]


class MonthHistoryResponse(CamelModel):
    year: int
    month: int
    days: list[MonthHistoryDayResponse]
    prn_count_by_day: dict[str, int]
