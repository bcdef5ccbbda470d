"""Time-of-day slot classification and per-slot status aggregation."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Protocol, TypeVar

from medtrack.constants import DEFAULT_SLOT_TIMES, SLOT_HOUR_RANGES
from medtrack.services.schedule.types import DoseStatus, Slot, SlotStatus
from medtrack.services.schedule.zoned_time import local_date_key, local_time_string

SLOT_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

SlotTimes = Mapping[Slot, str]


class _Scheduled(Protocol):
    scheduled_at: datetime


class _StatusedLike(_Scheduled, Protocol):
    effective_status: DoseStatus


T = TypeVar("T", bound=_Scheduled)


def effective_slot_times(custom_slot_times: SlotTimes | None = None) -> dict[Slot, str]:
    times = {Slot(slot): time for slot, time in DEFAULT_SLOT_TIMES.items()}
    if custom_slot_times:
        times.update(custom_slot_times)
    return times


def resolve_slot_by_hour(hour: int) -> Slot:
    for slot_name, (first_hour, last_hour) in SLOT_HOUR_RANGES.items():
        if first_hour <= hour <= last_hour:
            return Slot(slot_name)
    return Slot.bedtime


def resolve_slot(
    scheduled_at: datetime,
    time_zone: str,
    custom_slot_times: SlotTimes | None = None,
) -> Slot | None:
    """Slot of a dose: exact configured time first, hour range otherwise."""
    local_time = local_time_string(scheduled_at, time_zone)
    for slot, slot_time in effective_slot_times(custom_slot_times).items():
        if slot_time == local_time:
            return slot
    hour_text = local_time.split(":", 1)[0]
    if not hour_text.isdigit():
        return None
    return resolve_slot_by_hour(int(hour_text))


def fold_slot_status(current: SlotStatus, incoming: DoseStatus) -> SlotStatus:
    """Combine one dose into a slot with precedence missed > pending > taken > none."""
    match incoming:
        case DoseStatus.missed:
            return SlotStatus.missed
        case DoseStatus.pending:
            return current if current == SlotStatus.missed else SlotStatus.pending
        case DoseStatus.taken:
            return SlotStatus.taken if current == SlotStatus.none else current
    raise ValueError(f"Unknown dose status: {incoming!r}")


def empty_slot_summary() -> dict[Slot, SlotStatus]:
    return {slot: SlotStatus.none for slot in Slot}


def build_slot_summary(
    doses: Iterable[_StatusedLike],
    time_zone: str,
    custom_slot_times: SlotTimes | None = None,
) -> dict[Slot, SlotStatus]:
    summary = empty_slot_summary()
    for dose in doses:
        slot = resolve_slot(dose.scheduled_at, time_zone, custom_slot_times)
        if slot is None:
            continue
        summary[slot] = fold_slot_status(summary[slot], dose.effective_status)
    return summary


def parse_slot_times(params: Mapping[str, str | None]) -> tuple[dict[Slot, str] | None, list[str]]:
    """Read ``morningTime``-style overrides from query parameters.

    Returns the overrides (``None`` when none were given) and validation errors.
    """
    overrides: dict[Slot, str] = {}
    errors: list[str] = []
    for slot in Slot:
        value = params.get(f"{slot.value}Time")
        if value is None:
            continue
        if not SLOT_TIME_PATTERN.match(value):
            errors.append(f"{slot.value}Time must be in HH:MM format")
            continue
        overrides[slot] = value
    return (overrides or None), errors


def group_doses_by_local_date(doses: Iterable[T], time_zone: str) -> dict[str, list[T]]:
    grouped: dict[str, list[T]] = {}
    for dose in doses:
        grouped.setdefault(local_date_key(dose.scheduled_at, time_zone), []).append(dose)
    return grouped
