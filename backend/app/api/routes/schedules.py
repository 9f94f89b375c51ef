from fastapi import APIRouter, Depends, Query, status

from app.api.deps import get_store
from app.core.exceptions import ResourceNotFoundError
from app.schemas.calendar import BaseScheduleCreate, BaseScheduleOut, PractitionerCreate, PractitionerOut
from app.services.calendar_store import SqlAlchemyCalendarStore

router = APIRouter()


@router.get("/practitioners", response_model=list[PractitionerOut])
def list_practitioners(store: SqlAlchemyCalendarStore = Depends(get_store)) -> list[PractitionerOut]:
    return store.list_practitioners()


@router.post("/practitioners", response_model=PractitionerOut, status_code=status.HTTP_201_CREATED)
def create_practitioner(
    payload: PractitionerCreate,
    store: SqlAlchemyCalendarStore = Depends(get_store),
) -> PractitionerOut:
    return store.create_practitioner(payload.name)


@router.get("/base-schedules", response_model=list[BaseScheduleOut])
def list_base_schedules(
    practitioner_id: str | None = Query(default=None),
    location_id: str | None = Query(default=None),
    day_of_week: int | None = Query(default=None, ge=0, le=6),
    store: SqlAlchemyCalendarStore = Depends(get_store),
) -> list[BaseScheduleOut]:
    schedules = store.list_base_schedules()
    if practitioner_id:
        schedules = [item for item in schedules if item.practitioner_id == practitioner_id]
    if location_id:
        schedules = [item for item in schedules if item.location_id == location_id]
    if day_of_week is not None:
        schedules = [item for item in schedules if item.day_of_week == day_of_week]
    return schedules


@router.post("/base-schedules", response_model=BaseScheduleOut, status_code=status.HTTP_201_CREATED)
def create_base_schedule(
    payload: BaseScheduleCreate,
    store: SqlAlchemyCalendarStore = Depends(get_store),
) -> BaseScheduleOut:
    if payload.practitioner_id not in store.practitioner_names():
        raise ResourceNotFoundError("Practitioner", payload.practitioner_id)
    data = payload.model_dump()
    return store.create_base_schedule(**data)
