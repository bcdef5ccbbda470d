import time
from datetime import date, datetime, timezone

import pytest

from factories import make_medication, make_regimen
from medtrack.services.dose_records import InMemoryDoseRepository
from medtrack.services.schedule.errors import InvalidTimezoneError
from medtrack.services.schedule.generator import generate_schedule, intersect_window, normalize_times
from medtrack.services.schedule.zoned_time import format_instant

UTC = timezone.utc


@pytest.fixture()
def repo():
    return InMemoryDoseRepository()


def _keys(doses):
    return [str(dose.key) for dose in doses]


def test_expands_daily_times_in_regimen_timezone(repo):
    medication = make_medication(repo)
    regimen = make_regimen(repo, medication, times=["20:00", "08:00"])

    doses = generate_schedule(
        [medication],
        [regimen],
        datetime(2026, 2, 1, 15, tzinfo=UTC),
        datetime(2026, 2, 3, 15, tzinfo=UTC),
    )

    assert [format_instant(dose.scheduled_at) for dose in doses] == [
        "2026-02-01T23:00:00.000Z",
        "2026-02-02T11:00:00.000Z",
        "2026-02-02T23:00:00.000Z",
        "2026-02-03T11:00:00.000Z",
    ]
    assert doses[0].medication_snapshot.name == "Amlodipine"
    assert _keys(doses)[0] == f"1:{medication.id}:2026-02-01T23:00:00.000Z"


def test_generation_is_deterministic(repo):
    medication = make_medication(repo)
    regimen = make_regimen(repo, medication, times=["08:00", "12:00", "19:00"])
    from_, to = datetime(2026, 2, 1, tzinfo=UTC), datetime(2026, 2, 8, tzinfo=UTC)

    first = generate_schedule([medication], [regimen], from_, to)
    second = generate_schedule([medication], [regimen], from_, to)

    assert _keys(first) == _keys(second)


def test_days_of_week_filter_uses_local_weekday(repo):
    medication = make_medication(repo)
    # 08:00 Tokyo on Monday is still Sunday in UTC.
    regimen = make_regimen(repo, medication, days_of_week=["MON"])

    doses = generate_schedule(
        [medication],
        [regimen],
        datetime(2026, 1, 31, 15, tzinfo=UTC),
        datetime(2026, 2, 7, 15, tzinfo=UTC),
    )

    assert [format_instant(dose.scheduled_at) for dose in doses] == ["2026-02-01T23:00:00.000Z"]


def test_regimen_bounds_are_local_midnights_and_end_is_exclusive(repo):
    medication = make_medication(repo)
    regimen = make_regimen(
        repo,
        medication,
        start_date=date(2026, 2, 3),
        end_date=date(2026, 2, 5),
    )

    doses = generate_schedule(
        [medication],
        [regimen],
        datetime(2026, 2, 1, tzinfo=UTC),
        datetime(2026, 2, 10, tzinfo=UTC),
    )

    assert [format_instant(dose.scheduled_at) for dose in doses] == [
        "2026-02-02T23:00:00.000Z",
        "2026-02-03T23:00:00.000Z",
    ]


def test_window_is_half_open(repo):
    medication = make_medication(repo)
    regimen = make_regimen(repo, medication)
    scheduled = datetime(2026, 2, 1, 23, tzinfo=UTC)

    starts_at = generate_schedule([medication], [regimen], scheduled, datetime(2026, 2, 2, 1, tzinfo=UTC))
    ends_at = generate_schedule([medication], [regimen], datetime(2026, 2, 1, 20, tzinfo=UTC), scheduled)

    assert len(starts_at) == 1
    assert ends_at == []


def test_skips_archived_inactive_missing_and_disabled(repo):
    active = make_medication(repo, name="Active")
    archived = make_medication(repo, name="Archived", is_archived=True)
    inactive = make_medication(repo, name="Inactive", is_active=False)
    regimens = [
        make_regimen(repo, active),
        make_regimen(repo, active, times=["12:00"], enabled=False),
        make_regimen(repo, archived),
        make_regimen(repo, inactive),
    ]
    orphan = make_regimen(repo, active)
    orphan.medication_id = 999
    regimens.append(orphan)

    doses = generate_schedule(
        [active, archived, inactive],
        regimens,
        datetime(2026, 2, 1, 15, tzinfo=UTC),
        datetime(2026, 2, 2, 15, tzinfo=UTC),
    )

    assert [dose.medication_snapshot.name for dose in doses] == ["Active"]


def test_empty_times_produce_nothing(repo):
    medication = make_medication(repo)
    regimen = make_regimen(repo, medication, times=[])

    assert generate_schedule(
        [medication], [regimen], datetime(2026, 2, 1, tzinfo=UTC), datetime(2026, 2, 2, tzinfo=UTC)
    ) == []


def test_blank_timezone_raises(repo):
    medication = make_medication(repo)
    regimen = make_regimen(repo, medication, timezone=" ")

    with pytest.raises(InvalidTimezoneError):
        generate_schedule(
            [medication],
            [regimen],
            datetime(2026, 2, 1, tzinfo=UTC),
            datetime(2026, 2, 2, tzinfo=UTC),
        )


def test_ties_keep_input_order(repo):
    first = make_medication(repo, name="First")
    second = make_medication(repo, name="Second")
    regimens = [make_regimen(repo, second), make_regimen(repo, first)]

    doses = generate_schedule(
        [first, second],
        regimens,
        datetime(2026, 2, 1, 15, tzinfo=UTC),
        datetime(2026, 2, 2, 15, tzinfo=UTC),
    )

    assert [dose.medication_snapshot.name for dose in doses] == ["Second", "First"]


def test_normalize_times_sorts_and_deduplicates():
    assert normalize_times(["20:00", "08:00", "20:00"]) == ["08:00", "20:00"]


def test_intersect_window_handles_open_end():
    from_, to = datetime(2026, 2, 1, tzinfo=UTC), datetime(2026, 2, 2, tzinfo=UTC)

    assert intersect_window(from_, to, datetime(2026, 1, 1, tzinfo=UTC), None) == (from_, to)
    assert intersect_window(from_, to, datetime(2026, 3, 1, tzinfo=UTC), None) is None


def test_fifty_regimens_for_a_week_in_tokyo_is_fast(repo):
    medications = [make_medication(repo, name=f"Med {index}") for index in range(50)]
    regimens = [
        make_regimen(repo, medication, times=["08:00", "12:00", "19:00", "22:00"])
        for medication in medications
    ]

    started = time.perf_counter()
    doses = generate_schedule(
        medications,
        regimens,
        datetime(2026, 1, 31, 15, tzinfo=UTC),
        datetime(2026, 2, 7, 15, tzinfo=UTC),
    )
    elapsed = time.perf_counter() - started

    assert len(doses) == 50 * 4 * 7
    assert elapsed < 2.0
