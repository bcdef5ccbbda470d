"""Shared API dependencies."""

from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import StrEnum
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from medtrack.config import settings
from medtrack.database import get_db
from medtrack.models import RecordedByType
from medtrack.schemas.dose_records import parse_date_string
from medtrack.services.dose_records import (
    BulkSlotRecorder,
    DoseEventSink,
    DoseRecordService,
    DoseRecordSideEffects,
    DoseRepository,
    PrnDoseRecordService,
    SQLDoseEventSink,
    SQLDoseRepository,
)
from medtrack.services.history import HistoryService
from medtrack.services.inventory import InventoryLedger, InventoryService, SQLInventoryLedger
from medtrack.services.notifications import (
    PushDeliveryStore,
    PushDispatcher,
    PushTransport,
    SQLPushDeliveryStore,
    build_push_transport,
)
from medtrack.services.schedule import ScheduleService

security = HTTPBearer()


class ActorRole(StrEnum):
    patient = "patient"
    caregiver = "caregiver"


@dataclass(frozen=True)
class Actor:
    role: ActorRole
    subject: str
    patient_id: int | None = None

    @property
    def recorded_by_type(self) -> RecordedByType:
        if self.role == ActorRole.caregiver:
            return RecordedByType.caregiver
        return RecordedByType.patient


def get_now() -> datetime:
    """Request-scoped clock; every rule in one request sees the same instant."""
    return datetime.now(timezone.utc)


def parse_date_query(value: str) -> date:
    try:
        return parse_date_string(value)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
        ) from exc


async def get_current_actor(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> Actor:
    """Resolve the patient or caregiver identified by the bearer JWT."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
        subject: str | None = payload.get("sub")
        role = ActorRole(payload.get("role"))
        patient_id = payload.get("patient_id")
    except (JWTError, ValueError):
        raise credentials_exception

    if subject is None:
        raise credentials_exception
    if role == ActorRole.patient:
        if patient_id is None:
            raise credentials_exception
        return Actor(role=role, subject=subject, patient_id=int(patient_id))
    return Actor(role=role, subject=subject)


def get_repository(db: Annotated[AsyncSession, Depends(get_db)]) -> DoseRepository:
    return SQLDoseRepository(db)


def get_event_sink(db: Annotated[AsyncSession, Depends(get_db)]) -> DoseEventSink:
    return SQLDoseEventSink(db)


def get_inventory_ledger(db: Annotated[AsyncSession, Depends(get_db)]) -> InventoryLedger:
    return SQLInventoryLedger(db)


def get_push_store(db: Annotated[AsyncSession, Depends(get_db)]) -> PushDeliveryStore:
    return SQLPushDeliveryStore(db)


@lru_cache
def get_push_transport() -> PushTransport:
    """Process-wide transport so the APNs provider token is reused."""
    return build_push_transport(settings)


async def get_authorized_patient_id(
    patient_id: int,
    actor: Annotated[Actor, Depends(get_current_actor)],
    repository: Annotated[DoseRepository, Depends(get_repository)],
) -> int:
    """Patient id the actor may act on: itself, or a patient linked to the caregiver."""
    patient = await repository.get_patient(patient_id)
    if not patient:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Patient not found")
    if actor.role == ActorRole.patient:
        if actor.patient_id != patient_id:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
        return patient_id
    caregiver_ids = await repository.list_linked_caregiver_ids(patient_id)
    if actor.subject not in caregiver_ids:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Caregiver is not linked to this patient",
        )
    return patient_id


async def require_caregiver(
    actor: Annotated[Actor, Depends(get_current_actor)],
) -> Actor:
    if actor.role != ActorRole.caregiver:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Caregiver access required")
    return actor


def get_schedule_service(
    repository: Annotated[DoseRepository, Depends(get_repository)],
) -> ScheduleService:
    return ScheduleService(repository, settings.default_timezone)


def get_inventory_service(
    repository: Annotated[DoseRepository, Depends(get_repository)],
    ledger: Annotated[InventoryLedger, Depends(get_inventory_ledger)],
) -> InventoryService:
    return InventoryService(repository, ledger)


def get_side_effects(
    repository: Annotated[DoseRepository, Depends(get_repository)],
    events: Annotated[DoseEventSink, Depends(get_event_sink)],
    inventory: Annotated[InventoryService, Depends(get_inventory_service)],
    store: Annotated[PushDeliveryStore, Depends(get_push_store)],
    transport: Annotated[PushTransport, Depends(get_push_transport)],
) -> DoseRecordSideEffects:
    return DoseRecordSideEffects(repository, events, inventory, PushDispatcher(store, transport))


def get_dose_record_service(
    repository: Annotated[DoseRepository, Depends(get_repository)],
    side_effects: Annotated[DoseRecordSideEffects, Depends(get_side_effects)],
) -> DoseRecordService:
    return DoseRecordService(repository, side_effects)


def get_bulk_recorder(
    repository: Annotated[DoseRepository, Depends(get_repository)],
    schedule: Annotated[ScheduleService, Depends(get_schedule_service)],
    side_effects: Annotated[DoseRecordSideEffects, Depends(get_side_effects)],
) -> BulkSlotRecorder:
    return BulkSlotRecorder(schedule, repository, side_effects)


def get_prn_service(
    repository: Annotated[DoseRepository, Depends(get_repository)],
    side_effects: Annotated[DoseRecordSideEffects, Depends(get_side_effects)],
) -> PrnDoseRecordService:
    return PrnDoseRecordService(repository, side_effects)


def get_history_service(
    schedule: Annotated[ScheduleService, Depends(get_schedule_service)],
    prn: Annotated[PrnDoseRecordService, Depends(get_prn_service)],
) -> HistoryService:
    return HistoryService(schedule, prn)
