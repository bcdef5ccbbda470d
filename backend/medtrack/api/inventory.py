from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status

from medtrack.api.deps import (
    Actor,
    get_authorized_patient_id,
    get_inventory_service,
    get_now,
    require_caregiver,
)
from medtrack.models import InventoryActorType
from medtrack.schemas.inventory import InventoryAdjustRequest, InventoryItemResponse
from medtrack.services.inventory import InventoryService

router = APIRouter(prefix="/patients/{patient_id}", tags=["Inventory"])


@router.get("/inventory", response_model=list[InventoryItemResponse])
async def list_inventory(
    patient_id: int = Depends(get_authorized_patient_id),
    service: InventoryService = Depends(get_inventory_service),
):
    items = await service.list_inventory(patient_id)
    return [InventoryItemResponse.model_validate(item) for item in items]


@router.post(
    "/medications/{medication_id}/inventory/adjust",
    response_model=InventoryItemResponse,
)
async def adjust_inventory(
    medication_id: int,
    payload: InventoryAdjustRequest,
    patient_id: int = Depends(get_authorized_patient_id),
    actor: Actor = Depends(require_caregiver),
    service: InventoryService = Depends(get_inventory_service),
    now: datetime = Depends(get_now),
):
    """Refill or correct a medication's pill count (caregivers only)."""
    item = await service.adjust(
        patient_id,
        medication_id,
        reason=payload.reason,
        actor_type=InventoryActorType.CAREGIVER,
        actor_id=actor.subject,
        delta=payload.delta,
        absolute_quantity=payload.absolute_quantity,
        now=now,
    )
    if item is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Medication not found")
    return InventoryItemResponse.model_validate(item)
