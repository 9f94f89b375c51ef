from fastapi import APIRouter, Depends, Query, status

from app.api.deps import build_projector, get_store
from app.schemas.simulation import AppointmentChanges, AppointmentCreate, AppointmentUpdateRequest, WriteResult
from app.services.calendar_store import SqlAlchemyCalendarStore
from app.services.simulation import SimulationProjector

router = APIRouter()


@router.post("/", response_model=WriteResult, status_code=status.HTTP_201_CREATED)
def create_appointment(
    payload: AppointmentCreate,
    store: SqlAlchemyCalendarStore = Depends(get_store),
) -> WriteResult:
    outcome = build_projector(store, payload.context).create_appointment(
        **payload.model_dump(exclude={"context"}),
    )
    return WriteResult.model_validate(outcome)


@router.patch("/{appointment_id}", response_model=WriteResult)
def update_appointment(
    appointment_id: str,
    payload: AppointmentUpdateRequest,
    store: SqlAlchemyCalendarStore = Depends(get_store),
) -> WriteResult:
    changes = AppointmentChanges(**payload.model_dump(exclude_unset=True, exclude={"context"}))
    outcome = build_projector(store, payload.context).update_appointment(appointment_id, changes)
    return WriteResult.model_validate(outcome)


@router.delete("/{appointment_id}", response_model=WriteResult)
def delete_appointment(
    appointment_id: str,
    simulated: bool = Query(default=False),
    store: SqlAlchemyCalendarStore = Depends(get_store),
) -> WriteResult:
    outcome = SimulationProjector(store, simulation_active=simulated).delete_appointment(appointment_id)
    return WriteResult.model_validate(outcome)
