from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from medtrack.api.deps import get_authorized_patient_id, get_history_service, get_now, parse_date_query
from medtrack.schemas.history import (
    DayHistoryDoseResponse,
    DayHistoryResponse,
    MonthHistoryDayResponse,
    MonthHistoryResponse,
)
from medtrack.schemas.prn import PrnHistoryItemResponse
from medtrack.services.history import HistoryService
from medtrack.services.schedule import parse_slot_times

router = APIRouter(prefix="/patients/{patient_id}/history", tags=["History"])


def _slot_times(request: Request):
    custom_slot_times, errors = parse_slot_times(request.query_params)
    if errors:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=errors)
    return custom_slot_times


@router.get("/day", response_model=DayHistoryResponse)
async def get_day_history(
    request: Request,
    date: str = Query(..., description="Local calendar date, YYYY-MM-DD"),
    patient_id: int = Depends(get_authorized_patient_id),
    service: HistoryService = Depends(get_history_service),
    now: datetime = Depends(get_now),
):
    day = parse_date_query(date)
    history = await service.get_day(patient_id, day, now, _slot_times(request))
    return DayHistoryResponse(
        date=history.date,
        doses=[DayHistoryDoseResponse.model_validate(dose) for dose in history.doses],
        slot_summary=history.slot_summary,
        prn_items=[PrnHistoryItemResponse.model_validate(item) for item in history.prn_items],
    )


@router.get("/month", response_model=MonthHistoryResponse)
async def get_month_history(
    request: Request,
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(..., ge=1, le=12),
    patient_id: int = Depends(get_authorized_patient_id),
    service: HistoryService = Depends(get_history_service),
    now: datetime = Depends(get_now),
):
    history = await service.get_month(patient_id, year, month, now, _slot_times(request))
    return MonthHistoryResponse(
        year=history.year,
        month=history.month,
        days=[MonthHistoryDayResponse.model_validate(day) for day in history.days],
        prn_count_by_day=history.prn_count_by_day,
    )
