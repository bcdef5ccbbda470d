"""Dose record persistence, recording workflows and their side effects."""

from medtrack.services.dose_records.bulk import BulkSlotRecorder, SlotBulkRecordResult
from medtrack.services.dose_records.events import (
    DoseEventSink,
    DoseRecordEventCreate,
    InMemoryDoseEventSink,
    SQLDoseEventSink,
)
from medtrack.services.dose_records.prn import (
    PrnCreateError,
    PrnCreateResult,
    PrnDoseRecordService,
    PrnHistory,
)
from medtrack.services.dose_records.recorder import DoseRecordService
from medtrack.services.dose_records.repository import (
    DoseRecordCreate,
    DoseRepository,
    InMemoryDoseRepository,
    PrnDoseRecordCreate,
    SQLDoseRepository,
)
from medtrack.services.dose_records.side_effects import DoseRecordSideEffects, is_within_time

__all__ = [
    "BulkSlotRecorder",
    "SlotBulkRecordResult",
    "DoseEventSink",
    "DoseRecordEventCreate",
    "InMemoryDoseEventSink",
    "SQLDoseEventSink",
    "PrnCreateError",
    "PrnCreateResult",
    "PrnDoseRecordService",
    "PrnHistory",
    "DoseRecordService",
    "DoseRecordCreate",
    "DoseRepository",
    "InMemoryDoseRepository",
    "PrnDoseRecordCreate",
    "SQLDoseRepository",
    "DoseRecordSideEffects",
    "is_within_time",
]
