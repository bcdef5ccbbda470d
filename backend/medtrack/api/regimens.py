from fastapi import APIRouter, Depends, HTTPException, status

from medtrack.api.deps import get_authorized_patient_id, get_repository, require_caregiver
from medtrack.models import Regimen
from medtrack.schemas.regimen import RegimenCreate, RegimenResponse
from medtrack.services.dose_records import DoseRepository

router = APIRouter(
    prefix="/patients/{patient_id}/medications/{medication_id}/regimens",
    tags=["Regimens"],
    dependencies=[Depends(require_caregiver)],
)


@router.get("", response_model=list[RegimenResponse])
async def list_regimens(
    medication_id: int,
    patient_id: int = Depends(get_authorized_patient_id),
    repository: DoseRepository = Depends(get_repository),
):
    regimens = await repository.list_regimens(patient_id)
    return [
        RegimenResponse.model_validate(regimen)
        for regimen in regimens
        if regimen.medication_id == medication_id
    ]


@router.post("", response_model=RegimenResponse, status_code=201)
async def create_regimen(
    medication_id: int,
    payload: RegimenCreate,
    patient_id: int = Depends(get_authorized_patient_id),
    repository: DoseRepository = Depends(get_repository),
):
    """Add a recurring intake pattern to a medication."""
    medication = await repository.get_medication(patient_id, medication_id)
    if medication is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Medication not found")
    regimen = await repository.create_regimen(
        Regimen(
            patient_id=patient_id,
            medication_id=medication_id,
            timezone=payload.timezone,
            start_date=payload.start_date,
            end_date=payload.end_date,
            times=sorted(payload.times),
            days_of_week=[day.value for day in payload.days_of_week],
            enabled=payload.enabled,
        )
    )
    return RegimenResponse.model_validate(regimen)
