import asyncio
from datetime import datetime, timezone

import pytest

from factories import make_device, make_medication, make_patient
from medtrack.models import InventoryAdjustmentReason, RecordedByType
from medtrack.services.dose_records import DoseRecordService
from medtrack.services.schedule import DoseKey

SCHEDULED = datetime(2026, 2, 1, 23, 0, tzinfo=timezone.utc)


@pytest.fixture()
def service(repository, side_effects):
    return DoseRecordService(repository, side_effects)


@pytest.fixture()
def medication(repository):
    make_patient(repository)
    repository.link_caregiver("cg-1", 1)
    return make_medication(
        repository,
        dose_count_per_intake=2,
        inventory_enabled=True,
        inventory_quantity=10,
        inventory_low_threshold=3,
    )


@pytest.mark.anyio
async def test_create_is_idempotent(service, repository, medication, event_sink, inventory_ledger, now):
    key = DoseKey(1, medication.id, SCHEDULED)

    first = await service.create_dose_record(key, RecordedByType.patient, None, now)
    second = await service.create_dose_record(key, RecordedByType.patient, None, now)

    assert first.id == second.id
    assert len(repository.dose_records) == 1
    assert len(event_sink.events) == 1
    assert [adj.delta for adj in inventory_ledger.adjustments] == [-2]
    assert medication.inventory_quantity == 8


@pytest.mark.anyio
async def test_concurrent_creates_converge(service, repository, medication, event_sink, now):
    key = DoseKey(1, medication.id, SCHEDULED)

    records = await asyncio.gather(
        *[service.create_dose_record(key, RecordedByType.patient, None, now) for _ in range(5)]
    )

    assert len({record.id for record in records}) == 1
    assert len(event_sink.events) == 1


@pytest.mark.anyio
async def test_create_writes_event_with_within_time(service, medication, event_sink, now):
    await service.create_dose_record(
        DoseKey(1, medication.id, SCHEDULED), RecordedByType.caregiver, "cg-1", now
    )

    event = event_sink.events[0]
    assert event.within_time is True
    assert event.display_name == "Hanako"
    assert event.medication_name == "Amlodipine"
    assert event.is_prn is False


@pytest.mark.anyio
async def test_create_pushes_once_per_device_keyed_by_event(
    service, medication, push_store, push_transport, now
):
    make_device(push_store, "cg-1", "token-a")
    make_device(push_store, "cg-1", "token-b")

    await service.create_dose_record(
        DoseKey(1, medication.id, SCHEDULED), RecordedByType.patient, None, now
    )

    assert sorted(token for token, _ in push_transport.sent) == ["token-a", "token-b"]
    assert {key for key, _ in push_store.deliveries} == {"doseTaken:1"}


@pytest.mark.anyio
async def test_side_effect_failure_does_not_fail_create(
    service, repository, medication, event_sink, monkeypatch, now
):
    async def _broken(_payload):
        raise RuntimeError("event store down")

    monkeypatch.setattr(event_sink, "create_dose_record_event", _broken)

    record = await service.create_dose_record(
        DoseKey(1, medication.id, SCHEDULED), RecordedByType.patient, None, now
    )

    assert record.id is not None
    assert len(repository.dose_records) == 1
    assert medication.inventory_quantity == 8


@pytest.mark.anyio
async def test_delete_missing_returns_none(service, medication, inventory_ledger):
    assert await service.delete_dose_record(DoseKey(1, medication.id, SCHEDULED)) is None
    assert inventory_ledger.adjustments == []


@pytest.mark.anyio
async def test_delete_restores_inventory(service, repository, medication, inventory_ledger, now):
    key = DoseKey(1, medication.id, SCHEDULED)
    await service.create_dose_record(key, RecordedByType.patient, None, now)

    deleted = await service.delete_dose_record(key)

    assert deleted is not None
    assert repository.dose_records == {}
    assert medication.inventory_quantity == 10
    assert [adj.reason for adj in inventory_ledger.adjustments] == [
        InventoryAdjustmentReason.TAKEN_CREATE,
        InventoryAdjustmentReason.TAKEN_DELETE,
    ]
