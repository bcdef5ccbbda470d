"""Caregiver push fan-out with exactly-once delivery per device and event."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from medtrack.models import PushDelivery, PushDevice
from medtrack.services.notifications.transports import PushMessage, PushTransport

logger = logging.getLogger("medtrack.push")


def dose_taken_event_key(
    *,
    recording_group_id: str | None = None,
    prn_record_id: int | None = None,
    dose_event_id: int | None = None,
) -> str:
    """Dedup key of a dose-taken notification, most specific source first."""
    if recording_group_id:
        return f"doseTaken:{recording_group_id}"
    if prn_record_id is not None:
        return f"doseTaken:prn:{prn_record_id}"
    if dose_event_id is not None:
        return f"doseTaken:{dose_event_id}"
    raise ValueError("A dose-taken event key needs a group, PRN record or event id")


def build_dose_taken_message(
    patient_id: int,
    display_name: str,
    medication_name: str | None = None,
    is_prn: bool = False,
    medication_count: int = 1,
) -> PushMessage:
    if medication_count > 1:
        body = f"{display_name} took {medication_count} medications"
    elif medication_name and is_prn:
        body = f"{display_name} took {medication_name} (as needed)"
    elif medication_name:
        body = f"{display_name} took {medication_name}"
    else:
        body = f"{display_name} took their medication"
    return PushMessage(
        title="Dose recorded",
        body=body,
        thread_id=f"patient-{patient_id}",
        collapse_id=f"dose-{patient_id}",
        data={"type": "dose_record", "patientId": str(patient_id)},
    )


class PushDeliveryStore(Protocol):
    async def list_enabled_devices(self, caregiver_ids: Sequence[str]) -> list[PushDevice]:
        ...

    async def try_insert_delivery(self, event_key: str, push_device_id: int) -> bool:
        """Insert-or-ignore; True only when this call created the entry."""
        ...


class SQLPushDeliveryStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_enabled_devices(self, caregiver_ids: Sequence[str]) -> list[PushDevice]:
        if not caregiver_ids:
            return []
        result = await self.db.execute(
            select(PushDevice)
            .where(
                PushDevice.caregiver_id.in_(list(caregiver_ids)),
                PushDevice.is_enabled.is_(True),
            )
            .order_by(PushDevice.id)
        )
        return list(result.scalars().all())

    async def try_insert_delivery(self, event_key: str, push_device_id: int) -> bool:
        stmt = (
            pg_insert(PushDelivery)
            .values(event_key=event_key, push_device_id=push_device_id)
            .on_conflict_do_nothing(constraint="uq_push_deliveries_event_device")
            .returning(PushDelivery.id)
        )
        async with self.db.begin_nested():
            inserted_id = (await self.db.execute(stmt)).scalar_one_or_none()
        return inserted_id is not None


class InMemoryPushDeliveryStore:
    def __init__(self):
        self.devices: list[PushDevice] = []
        self.deliveries: set[tuple[str, int]] = set()

    def add_device(self, device: PushDevice) -> PushDevice:
        if device.id is None:
            device.id = len(self.devices) + 1
        self.devices.append(device)
        return device

    async def list_enabled_devices(self, caregiver_ids: Sequence[str]) -> list[PushDevice]:
        wanted = set(caregiver_ids)
        return [
            device
            for device in self.devices
            if device.caregiver_id in wanted and device.is_enabled
        ]

    async def try_insert_delivery(self, event_key: str, push_device_id: int) -> bool:
        entry = (event_key, push_device_id)
        if entry in self.deliveries:
            return False
        self.deliveries.add(entry)
        return True


class PushDispatcher:
    """Sends one message per caregiver device, at most once per event key."""

    def __init__(self, store: PushDeliveryStore, transport: PushTransport):
        self.store = store
        self.transport = transport

    async def notify(
        self,
        caregiver_ids: Sequence[str],
        event_key: str,
        message: PushMessage,
    ) -> int:
        """Deliver ``message``; returns the number of successful sends. Never raises."""
        if not caregiver_ids:
            return 0
        try:
            devices = await self.store.list_enabled_devices(caregiver_ids)
        except Exception:
            logger.exception("Failed to load push devices for %s", event_key)
            return 0

        sent = attempted = 0
        for device in devices:
            try:
                if not await self.store.try_insert_delivery(event_key, device.id):
                    logger.debug("Push %s already delivered to device %s", event_key, device.id)
                    continue
                attempted += 1
                result = await self.transport.send(device, message)
            except Exception:
                logger.exception("Push %s to device %s failed", event_key, device.id)
                continue
            if result.success:
                sent += 1

        if sent < attempted:
            logger.warning("Push %s: %d/%d devices sent", event_key, sent, attempted)
        return sent
