"""Repository-backed schedule queries."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import date, datetime

from medtrack.models import Medication, Patient, Regimen
from medtrack.services.schedule.errors import InvalidTimezoneError
from medtrack.services.schedule.generator import generate_schedule
from medtrack.services.schedule.status import apply_status
from medtrack.services.schedule.types import DoseInstance, StatusedDose
from medtrack.services.schedule.zoned_time import get_day_range, get_zone

logger = logging.getLogger("medtrack.schedule")


def resolve_patient_timezone(patient: Patient | None, default_timezone: str) -> str:
    """Patient timezone when set and valid, the service default otherwise."""
    candidate = patient.timezone if patient is not None else None
    if candidate:
        try:
            get_zone(candidate)
            return candidate
        except InvalidTimezoneError:
            logger.warning(
                "Patient %s has invalid timezone %r; using %s",
                patient.id,
                candidate,
                default_timezone,
            )
    return default_timezone


def generate_isolated(
    medications: Sequence[Medication],
    regimens: Sequence[Regimen],
    from_: datetime,
    to: datetime,
) -> list[DoseInstance]:
    """Generate per regimen so one misconfigured regimen cannot hide the rest."""
    doses: list[DoseInstance] = []
    for regimen in regimens:
        try:
            doses.extend(generate_schedule(medications, [regimen], from_, to))
        except InvalidTimezoneError as exc:
            logger.error(
                "Skipping regimen %s of patient %s: %s",
                regimen.id,
                regimen.patient_id,
                exc,
            )
    return sorted(doses, key=lambda dose: dose.scheduled_at)


class ScheduleService:
    """Loads a patient's regimens and expands them into statused doses."""

    def __init__(self, repository, default_timezone: str):
        self.repository = repository
        self.default_timezone = default_timezone

    async def get_timezone(self, patient_id: int) -> str:
        patient = await self.repository.get_patient(patient_id)
        return resolve_patient_timezone(patient, self.default_timezone)

    async def get_schedule(
        self, patient_id: int, from_: datetime, to: datetime
    ) -> list[DoseInstance]:
        medications = await self.repository.list_medications(patient_id)
        regimens = await self.repository.list_regimens(patient_id)
        return generate_isolated(medications, regimens, from_, to)

    async def get_schedule_with_status(
        self, patient_id: int, from_: datetime, to: datetime, now: datetime
    ) -> list[StatusedDose]:
        doses = await self.get_schedule(patient_id, from_, to)
        records = await self.repository.list_dose_records_in_range(patient_id, from_, to)
        return apply_status(doses, records, now)

    async def get_day_schedule(
        self, patient_id: int, day: date, now: datetime, time_zone: str | None = None
    ) -> tuple[str, list[StatusedDose]]:
        """Statused doses of one local calendar day, with the zone used."""
        time_zone = time_zone or await self.get_timezone(patient_id)
        from_, to = get_day_range(day, time_zone)
        return time_zone, await self.get_schedule_with_status(patient_id, from_, to, now)
