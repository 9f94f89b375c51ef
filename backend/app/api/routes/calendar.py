from fastapi import APIRouter, Depends

from app.api.deps import get_store
from app.schemas.calendar import CalendarDayOut, CalendarDayRequest, PlacementOut, PlacementRequest
from app.services.calendar_store import SqlAlchemyCalendarStore
from app.services.calendar_view import build_calendar_day, resolve_placement

router = APIRouter()


@router.post("/day", response_model=CalendarDayOut)
def calendar_day(
    payload: CalendarDayRequest,
    store: SqlAlchemyCalendarStore = Depends(get_store),
) -> CalendarDayOut:
    return build_calendar_day(store, payload)


@router.post("/placement", response_model=PlacementOut)
def calendar_placement(
    payload: PlacementRequest,
    store: SqlAlchemyCalendarStore = Depends(get_store),
) -> PlacementOut:
    return resolve_placement(store, payload)
