"""Pydantic schemas for API request/response validation."""

from medtrack.schemas.dose_records import (
    DoseRecordKeyRequest,
    DoseRecordResponse,
    SlotBulkRecordRequest,
    SlotBulkRecordResponse,
    parse_date_string,
)
from medtrack.schemas.history import (
    DayHistoryDoseResponse,
    DayHistoryResponse,
    MonthHistoryDayResponse,
    MonthHistoryResponse,
)
from medtrack.schemas.inventory import InventoryAdjustRequest, InventoryItemResponse
from medtrack.schemas.prn import (
    PrnDoseRecordCreate,
    PrnDoseRecordResponse,
    PrnHistoryItemResponse,
)
from medtrack.schemas.regimen import RegimenCreate, RegimenResponse
from medtrack.schemas.schedule import (
    MedicationSnapshotResponse,
    ScheduleDoseResponse,
    ScheduleResponse,
    TodayScheduleResponse,
)

__all__ = [
    "DoseRecordKeyRequest",
    "DoseRecordResponse",
    "SlotBulkRecordRequest",
    "SlotBulkRecordResponse",
    "parse_date_string",
    "DayHistoryDoseResponse",
    "DayHistoryResponse",
    "MonthHistoryDayResponse",
    "MonthHistoryResponse",
    "InventoryAdjustRequest",
    "InventoryItemResponse",
    "PrnDoseRecordCreate",
    "PrnDoseRecordResponse",
    "PrnHistoryItemResponse",
    "RegimenCreate",
    "RegimenResponse",
    "MedicationSnapshotResponse",
    "ScheduleDoseResponse",
    "ScheduleResponse",
    "TodayScheduleResponse",
]
