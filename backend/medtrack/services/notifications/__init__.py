"""Caregiver push notifications."""

from medtrack.services.notifications.push import (
    InMemoryPushDeliveryStore,
    PushDeliveryStore,
    PushDispatcher,
    SQLPushDeliveryStore,
    build_dose_taken_message,
    dose_taken_event_key,
)
from medtrack.services.notifications.transports import (
    ApnsPushTransport,
    LoggingPushTransport,
    ProviderTokenCache,
    PushMessage,
    PushSendResult,
    PushTransport,
    build_push_transport,
)

__all__ = [
    "InMemoryPushDeliveryStore",
    "PushDeliveryStore",
    "PushDispatcher",
    "SQLPushDeliveryStore",
    "build_dose_taken_message",
    "dose_taken_event_key",
    "ApnsPushTransport",
    "LoggingPushTransport",
    "ProviderTokenCache",
    "PushMessage",
    "PushSendResult",
    "PushTransport",
    "build_push_transport",
]
