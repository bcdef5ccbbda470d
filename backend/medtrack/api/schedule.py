from datetime import date, datetime, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from medtrack.api.deps import (
    Actor,
    ActorRole,
    get_authorized_patient_id,
    get_current_actor,
    get_now,
    get_schedule_service,
)
from medtrack.config import settings
from medtrack.schemas.schedule import ScheduleDoseResponse, ScheduleResponse, TodayScheduleResponse
from medtrack.services.schedule import ScheduleService, build_slot_summary, parse_slot_times
from medtrack.services.schedule.zoned_time import ensure_utc, local_date_key

router = APIRouter(tags=["Schedule"])


def validate_range(from_: datetime, to: datetime) -> tuple[datetime, datetime]:
    from_, to = ensure_utc(from_), ensure_utc(to)
    if to <= from_:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="'to' must be after 'from'",
        )
    if to - from_ > timedelta(days=settings.schedule_max_range_days):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Range must not exceed {settings.schedule_max_range_days} days",
        )
    return from_, to


async def _schedule_response(
    service: ScheduleService,
    patient_id: int,
    from_: datetime,
    to: datetime,
    now: datetime,
) -> ScheduleResponse:
    from_, to = validate_range(from_, to)
    doses = await service.get_schedule_with_status(patient_id, from_, to, now)
    return ScheduleResponse(
        patient_id=patient_id,
        timezone=await service.get_timezone(patient_id),
        doses=[ScheduleDoseResponse.from_dose(dose) for dose in doses],
    )


@router.get("/schedule", response_model=ScheduleResponse)
async def get_own_schedule(
    from_: datetime = Query(..., alias="from"),
    to: datetime = Query(...),
    actor: Actor = Depends(get_current_actor),
    service: ScheduleService = Depends(get_schedule_service),
    now: datetime = Depends(get_now),
):
    """Schedule with status for the signed-in patient."""
    if actor.role != ActorRole.patient or actor.patient_id is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Patient access required")
    return await _schedule_response(service, actor.patient_id, from_, to, now)


@router.get("/patients/{patient_id}/schedule", response_model=ScheduleResponse)
async def get_patient_schedule(
    from_: datetime = Query(..., alias="from"),
    to: datetime = Query(...),
    patient_id: int = Depends(get_authorized_patient_id),
    service: ScheduleService = Depends(get_schedule_service),
    now: datetime = Depends(get_now),
):
    return await _schedule_response(service, patient_id, from_, to, now)


@router.get("/patients/{patient_id}/today", response_model=TodayScheduleResponse)
async def get_patient_today(
    request: Request,
    patient_id: int = Depends(get_authorized_patient_id),
    service: ScheduleService = Depends(get_schedule_service),
    now: datetime = Depends(get_now),
):
    """Today's doses in the patient's timezone with the per-slot summary.

    Accepts optional ``morningTime``/``noonTime``/``eveningTime``/``bedtimeTime``
    query overrides for slot classification.
    """
    custom_slot_times, errors = parse_slot_times(request.query_params)
    if errors:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=errors)

    time_zone = await service.get_timezone(patient_id)
    today = local_date_key(now, time_zone)
    _, doses = await service.get_day_schedule(
        patient_id, date.fromisoformat(today), now, time_zone
    )
    return TodayScheduleResponse(
        patient_id=patient_id,
        timezone=time_zone,
        date=today,
        doses=[ScheduleDoseResponse.from_dose(dose) for dose in doses],
        slot_summary=build_slot_summary(doses, time_zone, custom_slot_times),
    )
