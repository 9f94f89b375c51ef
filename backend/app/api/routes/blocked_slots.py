from fastapi import APIRouter, Depends, Query, status

from app.api.deps import build_projector, get_store
from app.schemas.simulation import BlockedSlotChanges, BlockedSlotCreate, BlockedSlotUpdateRequest, WriteResult
from app.services.calendar_store import SqlAlchemyCalendarStore
from app.services.simulation import SimulationProjector

router = APIRouter()


@router.post("/", response_model=WriteResult, status_code=status.HTTP_201_CREATED)
def create_blocked_slot(
    payload: BlockedSlotCreate,
    store: SqlAlchemyCalendarStore = Depends(get_store),
) -> WriteResult:
    projector = build_projector(store, payload.context)
    outcome = projector.create_blocked_slot(**payload.model_dump(exclude={"context"}))
    return WriteResult.model_validate(outcome)


@router.patch("/{blocked_slot_id}", response_model=WriteResult)
def update_blocked_slot(
    blocked_slot_id: str,
    payload: BlockedSlotUpdateRequest,
    store: SqlAlchemyCalendarStore = Depends(get_store),
) -> WriteResult:
    projector = build_projector(store, payload.context)
    changes = BlockedSlotChanges(**payload.model_dump(exclude_unset=True, exclude={"context"}))
    return WriteResult.model_validate(projector.update_blocked_slot(blocked_slot_id, changes))


@router.delete("/{blocked_slot_id}", response_model=WriteResult)
def delete_blocked_slot(
    blocked_slot_id: str,
    simulated: bool = Query(default=False),
    store: SqlAlchemyCalendarStore = Depends(get_store),
) -> WriteResult:
    outcome = SimulationProjector(store, simulation_active=simulated).delete_blocked_slot(blocked_slot_id)
    return WriteResult.model_validate(outcome)
