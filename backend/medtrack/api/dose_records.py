from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status

from medtrack.api.deps import (
    Actor,
    ActorRole,
    get_authorized_patient_id,
    get_bulk_recorder,
    get_current_actor,
    get_dose_record_service,
    get_now,
)
from medtrack.schemas.dose_records import (
    DoseRecordKeyRequest,
    DoseRecordResponse,
    SlotBulkRecordRequest,
    SlotBulkRecordResponse,
)
from medtrack.services.dose_records import BulkSlotRecorder, DoseRecordService
from medtrack.services.schedule import DoseKey

router = APIRouter(prefix="/patients/{patient_id}/dose-records", tags=["Dose Records"])


@router.post("", response_model=DoseRecordResponse)
async def create_dose_record(
    payload: DoseRecordKeyRequest,
    patient_id: int = Depends(get_authorized_patient_id),
    actor: Actor = Depends(get_current_actor),
    service: DoseRecordService = Depends(get_dose_record_service),
    now: datetime = Depends(get_now),
):
    """Mark a scheduled dose as taken. Repeating the call is harmless."""
    record = await service.create_dose_record(
        DoseKey(patient_id, payload.medication_id, payload.scheduled_at),
        recorded_by_type=actor.recorded_by_type,
        recorded_by_id=actor.subject if actor.role == ActorRole.caregiver else None,
        now=now,
    )
    return DoseRecordResponse.model_validate(record)


@router.delete("", response_model=DoseRecordResponse)
async def delete_dose_record(
    payload: DoseRecordKeyRequest,
    patient_id: int = Depends(get_authorized_patient_id),
    service: DoseRecordService = Depends(get_dose_record_service),
):
    record = await service.delete_dose_record(
        DoseKey(patient_id, payload.medication_id, payload.scheduled_at)
    )
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Dose record not found")
    return DoseRecordResponse.model_validate(record)


@router.post("/slot", response_model=SlotBulkRecordResponse)
async def record_slot(
    payload: SlotBulkRecordRequest,
    patient_id: int = Depends(get_authorized_patient_id),
    actor: Actor = Depends(get_current_actor),
    recorder: BulkSlotRecorder = Depends(get_bulk_recorder),
    now: datetime = Depends(get_now),
):
    """Record every pending or missed dose of one slot at once (patients only)."""
    if actor.role != ActorRole.patient:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Patient access required")
    result = await recorder.record_slot(
        patient_id,
        payload.local_date,
        payload.slot,
        now,
        custom_slot_times=payload.custom_slot_times(),
    )
    return SlotBulkRecordResponse.model_validate(result)
