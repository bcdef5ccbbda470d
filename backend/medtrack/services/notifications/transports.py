"""Push transports: APNs over HTTPS and a logging stand-in for local runs."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

import httpx
from jose import jwt

from medtrack.config import Settings
from medtrack.models import PushDevice

logger = logging.getLogger("medtrack.push")


@dataclass(frozen=True)
class PushMessage:
    title: str
    body: str
    thread_id: str | None = None
    collapse_id: str | None = None
    data: dict[str, Any] = field(default_factory=dict)

    def to_apns_payload(self) -> dict[str, Any]:
        aps: dict[str, Any] = {
            "alert": {"title": self.title, "body": self.body},
            "sound": "default",
        }
        if self.thread_id:
            aps["thread-id"] = self.thread_id
        return {"aps": aps, **self.data}


@dataclass(frozen=True)
class PushSendResult:
    token: str
    success: bool
    status_code: int | None = None
    reason: str | None = None


class PushTransport(Protocol):
    async def send(self, device: PushDevice, message: PushMessage) -> PushSendResult:
        ...


class LoggingPushTransport:
    """Logs messages instead of delivering them (push disabled).

    Stateless: one instance is shared for the life of the process.
    """

    async def send(self, device: PushDevice, message: PushMessage) -> PushSendResult:
        logger.info(
            "Push disabled; would send %r to device %s", message.title, device.id
        )
        return PushSendResult(token=device.token, success=True, reason="logged")


class ProviderTokenCache:
    """Holds the current APNs provider token until it expires."""

    def __init__(self):
        self.token: str | None = None
        self.expires_at: float = 0.0

    def get(self, now: float) -> Optional[str]:
        if self.token is not None and now < self.expires_at:
            return self.token
        return None

    def store(self, token: str, now: float, ttl_seconds: int) -> None:
        self.token = token
        self.expires_at = now + ttl_seconds

    def clear(self) -> None:
        self.token = None
        self.expires_at = 0.0


class ApnsPushTransport:
    """Token-authenticated APNs provider API client."""

    def __init__(
        self,
        *,
        key_id: str,
        team_id: str,
        bundle_id: str,
        private_key: str,
        token_cache: ProviderTokenCache,
        host: str = "https://api.push.apple.com",
        token_ttl_seconds: int = 50 * 60,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.key_id = key_id
        self.team_id = team_id
        self.bundle_id = bundle_id
        self.private_key = private_key
        self.token_cache = token_cache
        self.token_ttl_seconds = token_ttl_seconds
        self.client = client or httpx.AsyncClient(base_url=host, timeout=timeout)

    @classmethod
    def from_settings(
        cls, settings: Settings, token_cache: ProviderTokenCache
    ) -> "ApnsPushTransport":
        private_key = settings.apns_private_key_path.read_text(encoding="utf-8")
        return cls(
            key_id=settings.apns_key_id,
            team_id=settings.apns_team_id,
            bundle_id=settings.apns_bundle_id,
            private_key=private_key,
            token_cache=token_cache,
            host=settings.apns_host,
            token_ttl_seconds=settings.apns_token_ttl_seconds,
            timeout=settings.push_request_timeout_seconds,
        )

    def provider_token(self, now: float | None = None) -> str:
        now = time.time() if now is None else now
        cached = self.token_cache.get(now)
        if cached:
            return cached
        token = jwt.encode(
            {"iss": self.team_id, "iat": int(now)},
            self.private_key,
            algorithm="ES256",
            headers={"kid": self.key_id},
        )
        self.token_cache.store(token, now, self.token_ttl_seconds)
        return token

    async def send(self, device: PushDevice, message: PushMessage) -> PushSendResult:
        headers = {
            "authorization": f"bearer {self.provider_token()}",
            "apns-topic": self.bundle_id,
            "apns-priority": "10",
            "apns-push-type": "alert",
        }
        if message.collapse_id:
            headers["apns-collapse-id"] = message.collapse_id

        try:
            response = await self.client.post(
                f"/3/device/{device.token}",
                json=message.to_apns_payload(),
                headers=headers,
            )
        except httpx.HTTPError as exc:
            logger.error("APNs request failed for device %s: %s", device.id, exc)
            return PushSendResult(token=device.token, success=False, reason="connection_error")

        if response.status_code == 200:
            return PushSendResult(token=device.token, success=True, status_code=200)

        reason = None
        try:
            reason = response.json().get("reason")
        except ValueError:
            reason = response.text or None
        if response.status_code == 403 and reason == "ExpiredProviderToken":
            self.token_cache.clear()
        logger.warning(
            "APNs rejected device %s: %s %s", device.id, response.status_code, reason
        )
        return PushSendResult(
            token=device.token,
            success=False,
            status_code=response.status_code,
            reason=reason,
        )

    async def aclose(self) -> None:
        await self.client.aclose()


def build_push_transport(
    settings: Settings, token_cache: ProviderTokenCache | None = None
) -> PushTransport:
    if not settings.push_enabled:
        return LoggingPushTransport()
    return ApnsPushTransport.from_settings(settings, token_cache or ProviderTokenCache())
