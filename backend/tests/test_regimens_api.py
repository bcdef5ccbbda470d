import pytest

from factories import auth_header, seed_morning_patient

PATIENT = auth_header()
CAREGIVER = auth_header(role="caregiver", subject="cg-1")


@pytest.fixture()
def medications(repository):
    return seed_morning_patient(repository)


def test_create_and_list_regimens(client, medications):
    _, _, loxonin = medications
    url = f"/api/v1/patients/1/medications/{loxonin.id}/regimens"

    created = client.post(
        url,
        json={
            "startDate": "2026-02-01",
            "times": ["21:00", "09:00"],
            "daysOfWeek": ["MON", "FRI"],
        },
        headers=CAREGIVER,
    )
    listed = client.get(url, headers=CAREGIVER)

    assert created.status_code == 201
    body = created.json()
    assert body["times"] == ["09:00", "21:00"]
    assert body["daysOfWeek"] == ["MON", "FRI"]
    assert body["timezone"] == "Asia/Tokyo"
    assert [regimen["id"] for regimen in listed.json()] == [body["id"]]


def test_new_regimen_appears_in_schedule(client, medications):
    amlodipine, _, _ = medications
    client.post(
        f"/api/v1/patients/1/medications/{amlodipine.id}/regimens",
        json={"startDate": "2026-02-01", "times": ["22:00"]},
        headers=CAREGIVER,
    )

    today = client.get("/api/v1/patients/1/today", headers=CAREGIVER).json()

    assert today["slotSummary"]["bedtime"] == "pending"


def test_patient_cannot_manage_regimens(client, medications):
    amlodipine, _, _ = medications

    response = client.get(
        f"/api/v1/patients/1/medications/{amlodipine.id}/regimens", headers=PATIENT
    )

    assert response.status_code == 403


def test_invalid_timezone_is_rejected(client, medications):
    amlodipine, _, _ = medications

    response = client.post(
        f"/api/v1/patients/1/medications/{amlodipine.id}/regimens",
        json={"timezone": "Mars/Olympus", "startDate": "2026-02-01", "times": ["08:00"]},
        headers=CAREGIVER,
    )

    assert response.status_code == 422


def test_unknown_medication(client, medications):
    response = client.post(
        "/api/v1/patients/1/medications/999/regimens",
        json={"startDate": "2026-02-01", "times": ["08:00"]},
        headers=CAREGIVER,
    )

    assert response.status_code == 404
