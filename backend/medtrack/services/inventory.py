"""Medication pill inventory: state, adjustments and low/out alerts."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from medtrack.models import (
    InventoryActorType,
    InventoryAdjustmentReason,
    InventoryAlertEvent,
    InventoryAlertState,
    Medication,
    MedicationInventoryAdjustment,
)

logger = logging.getLogger("medtrack.inventory")


def compute_inventory_state(quantity: int, threshold: int) -> InventoryAlertState:
    if quantity == 0:
        return InventoryAlertState.OUT
    if quantity < threshold:
        return InventoryAlertState.LOW
    return InventoryAlertState.NONE


@dataclass(frozen=True)
class InventoryItem:
    medication_id: int
    name: str
    inventory_enabled: bool
    inventory_quantity: int
    inventory_low_threshold: int
    low: bool
    out: bool


def build_inventory_item(medication: Medication) -> InventoryItem:
    state = (
        compute_inventory_state(
            medication.inventory_quantity, medication.inventory_low_threshold
        )
        if medication.inventory_enabled
        else InventoryAlertState.NONE
    )
    return InventoryItem(
        medication_id=medication.id,
        name=medication.name,
        inventory_enabled=medication.inventory_enabled,
        inventory_quantity=medication.inventory_quantity,
        inventory_low_threshold=medication.inventory_low_threshold,
        low=state == InventoryAlertState.LOW,
        out=state == InventoryAlertState.OUT,
    )


@dataclass(frozen=True)
class InventoryChange:
    delta: int
    next_quantity: int
    next_state: InventoryAlertState
    emit_alert: bool


def plan_inventory_change(
    medication: Medication,
    delta: int | None = None,
    absolute_quantity: int | None = None,
) -> InventoryChange:
    """Work out the next quantity and whether an alert must be raised.

    An alert is raised only when the state moves into LOW or OUT from a
    different state; staying LOW across several intakes raises nothing.
    """
    if absolute_quantity is not None:
        delta = absolute_quantity - medication.inventory_quantity
    delta = delta or 0
    next_quantity = max(0, medication.inventory_quantity + delta)
    next_state = (
        compute_inventory_state(next_quantity, medication.inventory_low_threshold)
        if medication.inventory_enabled
        else InventoryAlertState.NONE
    )
    previous_state = medication.inventory_last_alert_state or InventoryAlertState.NONE
    emit_alert = (
        bool(medication.inventory_enabled)
        and next_state != previous_state
        and next_state != InventoryAlertState.NONE
    )
    return InventoryChange(
        delta=delta,
        next_quantity=next_quantity,
        next_state=next_state,
        emit_alert=emit_alert,
    )


def apply_inventory_change(medication: Medication, change: InventoryChange, now: datetime) -> None:
    medication.inventory_quantity = change.next_quantity
    medication.inventory_updated_at = now
    medication.inventory_last_alert_state = change.next_state.value


class InventoryLedger(Protocol):
    async def write(
        self,
        medication: Medication,
        change: InventoryChange,
        adjustment: MedicationInventoryAdjustment,
        alert: Optional[InventoryAlertEvent],
        now: datetime,
    ) -> None:
        """Apply ``change`` to the medication and persist the audit rows atomically."""
        ...


class SQLInventoryLedger:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def write(
        self,
        medication: Medication,
        change: InventoryChange,
        adjustment: MedicationInventoryAdjustment,
        alert: Optional[InventoryAlertEvent],
        now: datetime,
    ) -> None:
        async with self.db.begin_nested():
            apply_inventory_change(medication, change, now)
            self.db.add(adjustment)
            if alert is not None:
                self.db.add(alert)


class InMemoryInventoryLedger:
    def __init__(self):
        self.adjustments: list[MedicationInventoryAdjustment] = []
        self.alerts: list[InventoryAlertEvent] = []

    async def write(
        self,
        medication: Medication,
        change: InventoryChange,
        adjustment: MedicationInventoryAdjustment,
        alert: Optional[InventoryAlertEvent],
        now: datetime,
    ) -> None:
        apply_inventory_change(medication, change, now)
        self.adjustments.append(adjustment)
        if alert is not None:
            self.alerts.append(alert)


class InventoryService:
    """Reads and adjusts medication inventory for a patient."""

    def __init__(self, repository, ledger: InventoryLedger):
        self.repository = repository
        self.ledger = ledger

    async def list_inventory(self, patient_id: int) -> list[InventoryItem]:
        medications = await self.repository.list_medications(
            patient_id, include_archived=False
        )
        return [build_inventory_item(medication) for medication in medications]

    async def adjust(
        self,
        patient_id: int,
        medication_id: int,
        reason: InventoryAdjustmentReason,
        actor_type: InventoryActorType,
        actor_id: str | None = None,
        delta: int | None = None,
        absolute_quantity: int | None = None,
        now: datetime | None = None,
    ) -> Optional[InventoryItem]:
        """Change the quantity by ``delta`` or set it to ``absolute_quantity``.

        Returns None when the medication does not belong to the patient.
        """
        medication = await self.repository.get_medication(patient_id, medication_id)
        if medication is None:
            return None

        now = now or datetime.now(timezone.utc)
        change = plan_inventory_change(medication, delta, absolute_quantity)
        adjustment = MedicationInventoryAdjustment(
            patient_id=patient_id,
            medication_id=medication_id,
            delta=change.delta,
            reason=reason.value,
            actor_type=actor_type.value,
            actor_id=actor_id,
        )
        alert = None
        if change.emit_alert:
            patient = await self.repository.get_patient(patient_id)
            alert = InventoryAlertEvent(
                patient_id=patient_id,
                medication_id=medication_id,
                type=change.next_state.value,
                remaining=change.next_quantity,
                threshold=medication.inventory_low_threshold,
                patient_display_name=patient.display_name if patient else None,
                medication_name=medication.name,
            )
            logger.info(
                "Inventory %s for medication %s of patient %s (remaining=%d)",
                change.next_state.value,
                medication_id,
                patient_id,
                change.next_quantity,
            )

        await self.ledger.write(medication, change, adjustment, alert, now)
        return build_inventory_item(medication)

    async def apply_delta(
        self,
        patient_id: int,
        medication_id: int,
        delta: int,
        reason: InventoryAdjustmentReason,
    ) -> None:
        """System-initiated adjustment; no-op unless inventory tracking is on."""
        medication = await self.repository.get_medication(patient_id, medication_id)
        if medication is None or not medication.inventory_enabled:
            return
        await self.adjust(
            patient_id,
            medication_id,
            reason=reason,
            actor_type=InventoryActorType.SYSTEM,
            delta=delta,
        )
