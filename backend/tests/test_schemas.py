from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from medtrack.schemas import (
    DoseRecordKeyRequest,
    InventoryAdjustRequest,
    RegimenCreate,
    SlotBulkRecordRequest,
    parse_date_string,
)
from medtrack.services.schedule import Slot


def test_regimen_create_accepts_camel_case():
    payload = RegimenCreate.model_validate(
        {
            "timezone": "Asia/Tokyo",
            "startDate": "2026-01-01",
            "times": ["08:00", "20:00"],
            "daysOfWeek": ["MON", "THU"],
        }
    )

    assert payload.days_of_week == ["MON", "THU"]
    assert payload.enabled is True


@pytest.mark.parametrize(
    "overrides",
    [
        {"timezone": "Mars/Olympus"},
        {"timezone": "   "},
        {"times": []},
        {"times": ["8:00"]},
        {"times": ["24:00"]},
        {"times": ["08:00", "08:00"]},
        {"daysOfWeek": ["MON", "MON"]},
        {"daysOfWeek": ["MONDAY"]},
        {"endDate": "2025-12-31"},
    ],
)
def test_regimen_create_rejects_invalid(overrides):
    body = {"timezone": "Asia/Tokyo", "startDate": "2026-01-01", "times": ["08:00"]}
    body.update(overrides)

    with pytest.raises(ValidationError):
        RegimenCreate.model_validate(body)


def test_dose_record_key_requires_offset():
    with pytest.raises(ValidationError):
        DoseRecordKeyRequest.model_validate(
            {"medicationId": 1, "scheduledAt": "2026-02-02T08:00:00"}
        )

    key = DoseRecordKeyRequest.model_validate(
        {"medicationId": 1, "scheduledAt": "2026-02-01T23:00:00.000Z"}
    )
    assert key.scheduled_at == datetime(2026, 2, 1, 23, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "body",
    [
        {"reason": "REFILL", "delta": 10},
        {"reason": "MANUAL_ADJUST", "delta": -3},
        {"reason": "MANUAL_ADJUST", "absoluteQuantity": 0},
    ],
)
def test_inventory_adjust_valid(body):
    InventoryAdjustRequest.model_validate(body)


@pytest.mark.parametrize(
    "body",
    [
        {"reason": "TAKEN_CREATE", "delta": -1},
        {"reason": "REFILL", "delta": 0},
        {"reason": "REFILL", "absoluteQuantity": 10},
        {"reason": "MANUAL_ADJUST"},
        {"reason": "MANUAL_ADJUST", "delta": 1, "absoluteQuantity": 1},
        {"reason": "MANUAL_ADJUST", "absoluteQuantity": -1},
    ],
)
def test_inventory_adjust_invalid(body):
    with pytest.raises(ValidationError):
        InventoryAdjustRequest.model_validate(body)


def test_slot_bulk_request_overrides():
    payload = SlotBulkRecordRequest.model_validate(
        {"date": "2026-02-02", "slot": "morning", "morningTime": "07:30"}
    )

    assert payload.slot == Slot.morning
    assert payload.custom_slot_times() == {Slot.morning: "07:30"}
    assert SlotBulkRecordRequest(date="2026-02-02", slot="noon").custom_slot_times() is None


@pytest.mark.parametrize(
    "body",
    [
        {"date": "2026-2-2", "slot": "morning"},
        {"date": "2026-02-30", "slot": "morning"},
        {"date": "2026-02-02", "slot": "lunch"},
        {"date": "2026-02-02", "slot": "morning", "noonTime": "noon"},
    ],
)
def test_slot_bulk_request_invalid(body):
    with pytest.raises(ValidationError):
        SlotBulkRecordRequest.model_validate(body)


def test_parse_date_string():
    assert parse_date_string("2026-02-02").isoformat() == "2026-02-02"
    with pytest.raises(ValueError):
        parse_date_string("2026-02-02T00:00")
