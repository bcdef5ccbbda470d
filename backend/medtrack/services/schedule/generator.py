"""Expansion of recurring regimens into concrete dose instances."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime

from medtrack.services.schedule.types import (
    DoseInstance,
    MedicationLike,
    MedicationSnapshot,
    RegimenLike,
)
from medtrack.services.schedule.zoned_time import (
    get_zone,
    get_zoned_parts,
    local_weekday,
    make_instant,
    start_of_local_date,
    start_of_local_day,
    start_of_next_local_day,
    truncate_to_local_minute,
)


def parse_time(value: str) -> tuple[int, int]:
    hour, minute = value.split(":")
    return int(hour), int(minute)


def normalize_times(times: Iterable[str]) -> list[str]:
    """Deduplicate and sort ``HH:MM`` strings so expansion order is stable."""
    return sorted(set(times))


def intersect_window(
    from_: datetime,
    to: datetime,
    start: datetime,
    end: datetime | None,
) -> tuple[datetime, datetime] | None:
    window_start = max(from_, start)
    window_end = end if end is not None and end < to else to
    if window_end <= window_start:
        return None
    return window_start, window_end


def expand_regimen(
    regimen: RegimenLike,
    medication: MedicationLike,
    from_: datetime,
    to: datetime,
) -> list[DoseInstance]:
    """Dose instances of one regimen inside ``[from_, to)``, in time order.

    Raises:
        InvalidTimezoneError: If the regimen timezone is blank or unknown.
    """
    time_zone = regimen.timezone
    get_zone(time_zone)

    times = normalize_times(regimen.times or [])
    if not times:
        return []

    window = intersect_window(
        truncate_to_local_minute(from_, time_zone),
        truncate_to_local_minute(to, time_zone),
        start_of_local_date(regimen.start_date, time_zone),
        start_of_local_date(regimen.end_date, time_zone) if regimen.end_date else None,
    )
    if window is None:
        return []
    window_start, window_end = window

    days_of_week = set(regimen.days_of_week or [])
    parsed_times = [parse_time(time) for time in times]
    snapshot = MedicationSnapshot.from_medication(medication)

    doses: list[DoseInstance] = []
    cursor = start_of_local_day(window_start, time_zone)
    while cursor < window_end:
        if not days_of_week or local_weekday(cursor, time_zone) in days_of_week:
            day = get_zoned_parts(cursor, time_zone)
            for hour, minute in parsed_times:
                scheduled_at = make_instant(
                    day.year, day.month, day.day, hour, minute, time_zone
                )
                # Partial first/last days: keep only instants inside the window.
                if window_start <= scheduled_at < window_end:
                    doses.append(
                        DoseInstance(
                            patient_id=regimen.patient_id,
                            medication_id=regimen.medication_id,
                            scheduled_at=scheduled_at,
                            medication_snapshot=snapshot,
                        )
                    )
        cursor = start_of_next_local_day(cursor, time_zone)
    return doses


def generate_schedule(
    medications: Sequence[MedicationLike],
    regimens: Sequence[RegimenLike],
    from_: datetime,
    to: datetime,
) -> list[DoseInstance]:
    """Expand regimens into dose instances over ``[from_, to)``.

    Pure and deterministic: regimens of missing, archived or inactive
    medications and disabled regimens are skipped, and the output is stably
    sorted by scheduled instant (ties keep input order).

    Raises:
        InvalidTimezoneError: If any expanded regimen has a blank or unknown
            timezone.
    """
    medication_map = {medication.id: medication for medication in medications}
    doses: list[DoseInstance] = []

    for regimen in regimens:
        medication = medication_map.get(regimen.medication_id)
        if (
            medication is None
            or medication.is_archived
            or not medication.is_active
            or not regimen.enabled
        ):
            continue
        doses.extend(expand_regimen(regimen, medication, from_, to))

    return sorted(doses, key=lambda dose: dose.scheduled_at)
