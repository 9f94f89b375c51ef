from fastapi import APIRouter, Depends

from app.api.deps import get_store
from app.schemas.simulation import SimulationResetOut
from app.services.calendar_store import SqlAlchemyCalendarStore
from app.services.simulation import SimulationProjector

router = APIRouter()


@router.post("/reset", response_model=SimulationResetOut)
def reset_simulation(store: SqlAlchemyCalendarStore = Depends(get_store)) -> SimulationResetOut:
    appointments, blocked_slots = SimulationProjector(store, simulation_active=True).reset_simulation()
    return SimulationResetOut(appointments_deleted=appointments, blocked_slots_deleted=blocked_slots)
