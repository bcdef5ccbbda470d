"""Day and month adherence history built from the statused schedule."""

from __future__ import annotations

from calendar import monthrange
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from medtrack.services.dose_records.prn import PrnDoseRecordService, PrnHistoryItem
from medtrack.services.schedule.service import ScheduleService
from medtrack.services.schedule.slots import (
    SlotTimes,
    build_slot_summary,
    group_doses_by_local_date,
    resolve_slot,
)
from medtrack.services.schedule.types import DoseStatus, Slot, SlotStatus
from medtrack.services.schedule.zoned_time import start_of_local_date

SLOT_ORDER = list(Slot)


@dataclass(frozen=True)
class DayHistoryDose:
    medication_id: int
    medication_name: str
    dosage_text: str
    dose_count_per_intake: int
    scheduled_at: datetime
    slot: Slot
    effective_status: DoseStatus


@dataclass(frozen=True)
class DayHistory:
    date: date
    doses: list[DayHistoryDose]
    slot_summary: dict[Slot, SlotStatus]
    prn_items: list[PrnHistoryItem]


@dataclass(frozen=True)
class MonthHistoryDay:
    date: date
    slot_summary: dict[Slot, SlotStatus]


@dataclass(frozen=True)
class MonthHistory:
    year: int
    month: int
    days: list[MonthHistoryDay]
    prn_count_by_day: dict[str, int]


def get_month_range(year: int, month: int, time_zone: str) -> tuple[datetime, datetime]:
    first = date(year, month, 1)
    next_first = first + timedelta(days=monthrange(year, month)[1])
    return start_of_local_date(first, time_zone), start_of_local_date(next_first, time_zone)


class HistoryService:
    def __init__(self, schedule: ScheduleService, prn: PrnDoseRecordService):
        self.schedule = schedule
        self.prn = prn

    async def get_day(
        self,
        patient_id: int,
        day: date,
        now: datetime,
        custom_slot_times: SlotTimes | None = None,
    ) -> DayHistory:
        time_zone = await self.schedule.get_timezone(patient_id)
        _, doses = await self.schedule.get_day_schedule(patient_id, day, now, time_zone)
        from_ = start_of_local_date(day, time_zone)
        prn = await self.prn.list_prn_history(
            patient_id, from_, start_of_local_date(day + timedelta(days=1), time_zone), time_zone
        )

        items = []
        for dose in doses:
            slot = resolve_slot(dose.scheduled_at, time_zone, custom_slot_times)
            if slot is None:
                continue
            items.append(
                DayHistoryDose(
                    medication_id=dose.medication_id,
                    medication_name=dose.medication_snapshot.name,
                    dosage_text=dose.medication_snapshot.dosage_text,
                    dose_count_per_intake=dose.medication_snapshot.dose_count_per_intake,
                    scheduled_at=dose.scheduled_at,
                    slot=slot,
                    effective_status=dose.effective_status,
                )
            )
        items.sort(key=lambda item: (SLOT_ORDER.index(item.slot), item.medication_name))

        return DayHistory(
            date=day,
            doses=items,
            slot_summary=build_slot_summary(doses, time_zone, custom_slot_times),
            prn_items=prn.items,
        )

    async def get_month(
        self,
        patient_id: int,
        year: int,
        month: int,
        now: datetime,
        custom_slot_times: SlotTimes | None = None,
    ) -> MonthHistory:
        time_zone = await self.schedule.get_timezone(patient_id)
        from_, to = get_month_range(year, month, time_zone)
        doses = await self.schedule.get_schedule_with_status(patient_id, from_, to, now)
        grouped = group_doses_by_local_date(doses, time_zone)
        prn = await self.prn.list_prn_history(patient_id, from_, to, time_zone)

        days = []
        for offset in range(monthrange(year, month)[1]):
            day = date(year, month, 1) + timedelta(days=offset)
            days.append(
                MonthHistoryDay(
                    date=day,
                    slot_summary=build_slot_summary(
                        grouped.get(day.isoformat(), []), time_zone, custom_slot_times
                    ),
                )
            )
        return MonthHistory(
            year=year, month=month, days=days, prn_count_by_day=prn.count_by_day
        )
