"""Recurring schedule expansion, dose status and time-of-day slots."""

from medtrack.services.schedule.errors import InvalidTimezoneError, ScheduleConfigurationError
from medtrack.services.schedule.generator import generate_schedule
from medtrack.services.schedule.service import ScheduleService, resolve_patient_timezone
from medtrack.services.schedule.slots import (
    build_slot_summary,
    group_doses_by_local_date,
    parse_slot_times,
    resolve_slot,
)
from medtrack.services.schedule.status import apply_status, resolve_status
from medtrack.services.schedule.types import (
    DoseInstance,
    DoseKey,
    DoseStatus,
    MedicationSnapshot,
    Slot,
    SlotStatus,
    StatusedDose,
)

__all__ = [
    "InvalidTimezoneError",
    "ScheduleConfigurationError",
    "generate_schedule",
    "ScheduleService",
    "resolve_patient_timezone",
    "build_slot_summary",
    "group_doses_by_local_date",
    "parse_slot_times",
    "resolve_slot",
    "apply_status",
    "resolve_status",
    "DoseInstance",
    "DoseKey",
    "DoseStatus",
    "MedicationSnapshot",
    "Slot",
    "SlotStatus",
    "StatusedDose",
]
