from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status

from medtrack.api.deps import (
    Actor,
    get_authorized_patient_id,
    get_current_actor,
    get_now,
    get_prn_service,
)
from medtrack.schemas.prn import PrnDoseRecordCreate, PrnDoseRecordResponse
from medtrack.services.dose_records import PrnCreateError, PrnDoseRecordService

router = APIRouter(prefix="/patients/{patient_id}/prn-dose-records", tags=["PRN Dose Records"])


@router.post("", response_model=PrnDoseRecordResponse, status_code=201)
async def create_prn_dose_record(
    payload: PrnDoseRecordCreate,
    patient_id: int = Depends(get_authorized_patient_id),
    actor: Actor = Depends(get_current_actor),
    service: PrnDoseRecordService = Depends(get_prn_service),
    now: datetime = Depends(get_now),
):
    """Record an as-needed intake."""
    result = await service.create_prn_record(
        patient_id,
        payload.medication_id,
        actor_type=actor.recorded_by_type,
        now=now,
        taken_at=payload.taken_at,
        quantity_taken=payload.quantity_taken,
    )
    if result.error == PrnCreateError.not_found:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Medication not found")
    if result.error == PrnCreateError.not_prn:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Medication must be PRN",
        )
    return PrnDoseRecordResponse.model_validate(result.record)


@router.delete("/{prn_record_id}", response_model=PrnDoseRecordResponse)
async def delete_prn_dose_record(
    prn_record_id: int,
    patient_id: int = Depends(get_authorized_patient_id),
    service: PrnDoseRecordService = Depends(get_prn_service),
):
    record = await service.delete_prn_record(patient_id, prn_record_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="PRN record not found")
    return PrnDoseRecordResponse.model_validate(record)
