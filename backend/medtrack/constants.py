"""Application-wide scheduling policy constants."""

from datetime import timedelta

# A dose without a record becomes "missed" once this much time has passed
# after its scheduled instant. Fixed policy, not configurable per medication.
DOSE_MISSED_WINDOW = timedelta(minutes=60)

# Bulk slot recording is accepted from 30 min before to 60 min after the
# slot's first scheduled dose.
RECORDING_WINDOW_BEFORE = timedelta(minutes=30)
RECORDING_WINDOW_AFTER = timedelta(minutes=60)

DEFAULT_SLOT_TIMES = {
    "morning": "08:00",
    "noon": "12:00",
    "evening": "19:00",
    "bedtime": "22:00",
}

# Inclusive hour ranges used when a local time matches no slot exactly.
# Everything outside them (21-23 and 0-3) is bedtime.
SLOT_HOUR_RANGES = {
    "morning": (4, 10),
    "noon": (11, 15),
    "evening": (16, 20),
}

EMPTY_SLOT_TIME = "00:00"
