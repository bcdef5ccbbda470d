"""API Routes for MedTrack."""

from medtrack.api import (
    dose_records,
    health,
    history,
    inventory,
    prn,
    regimens,
    schedule,
)

__all__ = [
    "dose_records",
    "health",
    "history",
    "inventory",
    "prn",
    "regimens",
    "schedule",
]
