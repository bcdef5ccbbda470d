import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from jose import jwt

from factories import make_device
from medtrack.config import Settings
from medtrack.services.notifications import (
    ApnsPushTransport,
    LoggingPushTransport,
    ProviderTokenCache,
    PushDispatcher,
    build_dose_taken_message,
    build_push_transport,
    dose_taken_event_key,
)


@pytest.fixture(scope="module")
def es256_key():
    key = ec.generate_private_key(ec.SECP256R1())
    return key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode()


def make_apns(es256_key, handler, token_cache=None):
    client = httpx.AsyncClient(
        base_url="https://apns.test", transport=httpx.MockTransport(handler)
    )
    return ApnsPushTransport(
        key_id="KEY123",
        team_id="TEAM456",
        bundle_id="jp.example.medtrack",
        private_key=es256_key,
        token_cache=token_cache or ProviderTokenCache(),
        client=client,
    )


class FailingTransport:
    async def send(self, device, message):
        raise ConnectionError("socket closed")


def test_event_keys():
    assert dose_taken_event_key(recording_group_id="abc") == "doseTaken:abc"
    assert dose_taken_event_key(prn_record_id=7) == "doseTaken:prn:7"
    assert dose_taken_event_key(dose_event_id=42) == "doseTaken:42"
    with pytest.raises(ValueError):
        dose_taken_event_key()


def test_message_bodies():
    single = build_dose_taken_message(1, "Hanako", medication_name="Aspirin")
    prn = build_dose_taken_message(1, "Hanako", medication_name="Loxonin", is_prn=True)
    bulk = build_dose_taken_message(1, "Hanako", medication_count=3)

    assert single.body == "Hanako took Aspirin"
    assert prn.body == "Hanako took Loxonin (as needed)"
    assert bulk.body == "Hanako took 3 medications"
    assert single.to_apns_payload()["aps"]["thread-id"] == "patient-1"
    assert single.to_apns_payload()["patientId"] == "1"


@pytest.mark.anyio
async def test_dispatch_is_once_per_device_and_key(push_store, push_transport):
    make_device(push_store, "cg-1", "token-a")
    make_device(push_store, "cg-2", "token-b")
    dispatcher = PushDispatcher(push_store, push_transport)
    message = build_dose_taken_message(1, "Hanako")

    first = await dispatcher.notify(["cg-1", "cg-2"], "doseTaken:1", message)
    second = await dispatcher.notify(["cg-1", "cg-2"], "doseTaken:1", message)

    assert first == 2
    assert second == 0
    assert len(push_transport.sent) == 2


@pytest.mark.anyio
async def test_dispatch_skips_disabled_and_unlinked_devices(push_store, push_transport):
    make_device(push_store, "cg-1", "token-a")
    disabled = make_device(push_store, "cg-1", "token-b")
    disabled.is_enabled = False
    make_device(push_store, "cg-9", "token-c")

    sent = await PushDispatcher(push_store, push_transport).notify(
        ["cg-1"], "doseTaken:1", build_dose_taken_message(1, "Hanako")
    )

    assert sent == 1
    assert [token for token, _ in push_transport.sent] == ["token-a"]


@pytest.mark.anyio
async def test_dispatch_without_caregivers_sends_nothing(push_store, push_transport):
    make_device(push_store, "cg-1", "token-a")

    sent = await PushDispatcher(push_store, push_transport).notify(
        [], "doseTaken:1", build_dose_taken_message(1, "Hanako")
    )

    assert sent == 0
    assert push_transport.sent == []


@pytest.mark.anyio
async def test_transport_errors_are_contained(push_store):
    make_device(push_store, "cg-1", "token-a")

    sent = await PushDispatcher(push_store, FailingTransport()).notify(
        ["cg-1"], "doseTaken:1", build_dose_taken_message(1, "Hanako")
    )

    assert sent == 0


@pytest.mark.anyio
async def test_apns_send_posts_to_device_path(es256_key, push_store):
    captured = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200)

    transport = make_apns(es256_key, handler)
    device = make_device(push_store, "cg-1", "abcdef")
    message = build_dose_taken_message(1, "Hanako", medication_name="Aspirin")

    result = await transport.send(device, message)
    await transport.aclose()

    assert result.success is True
    request = captured[0]
    assert request.url.path == "/3/device/abcdef"
    assert request.headers["apns-topic"] == "jp.example.medtrack"
    assert request.headers["apns-push-type"] == "alert"
    assert request.headers["apns-collapse-id"] == "dose-1"
    token = request.headers["authorization"].removeprefix("bearer ")
    assert jwt.get_unverified_header(token)["kid"] == "KEY123"
    assert jwt.get_unverified_claims(token)["iss"] == "TEAM456"


def test_provider_token_is_cached_until_ttl(es256_key):
    transport = make_apns(es256_key, lambda request: httpx.Response(200))

    first = transport.provider_token(now=1_000_000)
    again = transport.provider_token(now=1_000_000 + 60)
    renewed = transport.provider_token(now=1_000_000 + 50 * 60 + 1)

    assert first == again
    assert renewed != first


@pytest.mark.anyio
async def test_expired_provider_token_clears_cache(es256_key, push_store):
    cache = ProviderTokenCache()

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, json={"reason": "ExpiredProviderToken"})

    transport = make_apns(es256_key, handler, token_cache=cache)
    device = make_device(push_store, "cg-1", "abcdef")

    result = await transport.send(device, build_dose_taken_message(1, "Hanako"))
    await transport.aclose()

    assert result.success is False
    assert result.status_code == 403
    assert result.reason == "ExpiredProviderToken"
    assert cache.get(0) is None


@pytest.mark.anyio
async def test_apns_connection_error(es256_key, push_store):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    transport = make_apns(es256_key, handler)
    device = make_device(push_store, "cg-1", "abcdef")

    result = await transport.send(device, build_dose_taken_message(1, "Hanako"))
    await transport.aclose()

    assert result.success is False
    assert result.reason == "connection_error"


def test_push_disabled_uses_logging_transport():
    settings = Settings(push_enabled=False)

    assert isinstance(build_push_transport(settings), LoggingPushTransport)


@pytest.mark.anyio
async def test_logging_transport_keeps_no_messages(push_store):
    transport = LoggingPushTransport()
    device = make_device(push_store, "cg-1", "abcdef")

    results = [
        await transport.send(device, build_dose_taken_message(n, "Hanako"))
        for n in range(1, 1001)
    ]

    assert vars(transport) == {}
    assert all(result.success and result.reason == "logged" for result in results)
