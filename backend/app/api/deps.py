from collections.abc import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from app.db.session import SessionLocal
from app.schemas.simulation import ProjectionContext
from app.services.calendar_store import SqlAlchemyCalendarStore
from app.services.simulation import SimulationProjector


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_store(db: Session = Depends(get_db)) -> SqlAlchemyCalendarStore:
    return SqlAlchemyCalendarStore(db)


def build_projector(store: SqlAlchemyCalendarStore, context: ProjectionContext) -> SimulationProjector:
    return SimulationProjector(
        store,
        simulated_context=context.simulated_context,
        practice_id=context.practice_id,
        location_id=context.location_id,
    )
