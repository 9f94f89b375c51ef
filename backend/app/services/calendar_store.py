from __future__ import annotations

from datetime import date, datetime, time, timedelta
import logging

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import MissingContextError, PersistenceFailureError, ResourceNotFoundError, SchedulerError
from app.models.appointment import Appointment
from app.models.base_schedule import BaseSchedule
from app.models.blocked_slot import BlockedSlot
from app.models.practitioner import Practitioner

logger = logging.getLogger(__name__)


def _day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


class SqlAlchemyCalendarStore:
    """Reads and writes calendar records for one database session."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def _commit(self, operation: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Calendar store failed to %s", operation)
            raise PersistenceFailureError(operation, str(exc.__class__.__name__)) from exc

    # Reads

    def practitioner_names(self) -> dict[str, str]:
        rows = self.db.execute(select(Practitioner.id, Practitioner.name)).all()
        return {row.id: row.name for row in rows}

    def list_practitioners(self) -> list[Practitioner]:
        return list(self.db.execute(select(Practitioner).order_by(Practitioner.name)).scalars())

    def list_base_schedules(self) -> list[BaseSchedule]:
        return list(self.db.execute(select(BaseSchedule).order_by(BaseSchedule.start_time, BaseSchedule.created_at)).scalars())

    def list_appointments(self, day: date, location_id: str | None, *, include_simulation: bool) -> list[Appointment]:
        day_start, day_end = _day_bounds(day)
        query = select(Appointment).where(Appointment.start >= day_start, Appointment.start < day_end)
        if location_id:
            query = query.where(Appointment.location_id == location_id)
        if not include_simulation:
            query = query.where(Appointment.is_simulation.is_(False))
        return list(self.db.execute(query.order_by(Appointment.start)).scalars())

    def list_blocked_slots(self, day: date, location_id: str | None, *, include_simulation: bool) -> list[BlockedSlot]:
        day_start, day_end = _day_bounds(day)
        query = select(BlockedSlot).where(BlockedSlot.start >= day_start, BlockedSlot.start < day_end)
        if location_id:
            query = query.where(BlockedSlot.location_id == location_id)
        if not include_simulation:
            query = query.where(BlockedSlot.is_simulation.is_(False))
        return list(self.db.execute(query.order_by(BlockedSlot.start)).scalars())

    def get_appointment(self, appointment_id: str) -> Appointment:
        appointment = self.db.get(Appointment, appointment_id)
        if appointment is None:
            raise ResourceNotFoundError("Appointment", appointment_id)
        return appointment

    def get_blocked_slot(self, blocked_slot_id: str) -> BlockedSlot:
        blocked_slot = self.db.get(BlockedSlot, blocked_slot_id)
        if blocked_slot is None:
            raise ResourceNotFoundError("Blocked slot", blocked_slot_id)
        return blocked_slot

    def find_appointment_replacement(self, appointment_id: str) -> Appointment | None:
        return self.db.execute(
            select(Appointment).where(
                Appointment.is_simulation.is_(True),
                Appointment.replaces_appointment_id == appointment_id,
            )
        ).scalars().first()

    def find_blocked_slot_replacement(self, blocked_slot_id: str) -> BlockedSlot | None:
        return self.db.execute(
            select(BlockedSlot).where(
                BlockedSlot.is_simulation.is_(True),
                BlockedSlot.replaces_blocked_slot_id == blocked_slot_id,
            )
        ).scalars().first()

    def replaced_appointment_ids(self) -> set[str]:
        rows = self.db.execute(
            select(Appointment.replaces_appointment_id).where(
                Appointment.is_simulation.is_(True),
                Appointment.replaces_appointment_id.is_not(None),
            )
        ).scalars()
        return set(rows)

    def replaced_blocked_slot_ids(self) -> set[str]:
        rows = self.db.execute(
            select(BlockedSlot.replaces_blocked_slot_id).where(
                BlockedSlot.is_simulation.is_(True),
                BlockedSlot.replaces_blocked_slot_id.is_not(None),
            )
        ).scalars()
        return set(rows)

    # Writes

    def create_practitioner(self, name: str) -> Practitioner:
        practitioner = Practitioner(name=name)
        self.db.add(practitioner)
        self._commit("create practitioner")
        self.db.refresh(practitioner)
        return practitioner

    def create_base_schedule(self, **fields) -> BaseSchedule:
        schedule = BaseSchedule(**fields)
        self.db.add(schedule)
        self._commit("create base schedule")
        self.db.refresh(schedule)
        return schedule

    def create_appointment(self, **fields) -> Appointment:
        is_simulation = bool(fields.get("is_simulation"))
        if fields.get("replaces_appointment_id") and not is_simulation:
            raise SchedulerError("Only simulated appointments can replace existing appointments.")
        if not is_simulation and not fields.get("patient_id"):
            raise MissingContextError("patient", "A real appointment needs a patient")
        appointment = Appointment(**fields)
        self.db.add(appointment)
        self._commit("create appointment")
        self.db.refresh(appointment)
        return appointment

    def update_appointment(self, appointment_id: str, **fields) -> Appointment:
        appointment = self.get_appointment(appointment_id)
        for key, value in fields.items():
            setattr(appointment, key, value)
        self._commit("update appointment")
        self.db.refresh(appointment)
        return appointment

    def delete_appointment(self, appointment_id: str) -> None:
        appointment = self.get_appointment(appointment_id)
        self.db.delete(appointment)
        self._commit("delete appointment")

    def create_blocked_slot(self, **fields) -> BlockedSlot:
        if fields.get("replaces_blocked_slot_id") and not fields.get("is_simulation"):
            raise SchedulerError("replaces_blocked_slot_id can only be used with is_simulation=True")
        blocked_slot = BlockedSlot(**fields)
        self.db.add(blocked_slot)
        self._commit("create blocked slot")
        self.db.refresh(blocked_slot)
        return blocked_slot

    def update_blocked_slot(self, blocked_slot_id: str, **fields) -> BlockedSlot:
        blocked_slot = self.get_blocked_slot(blocked_slot_id)
        for key, value in fields.items():
            setattr(blocked_slot, key, value)
        self._commit("update blocked slot")
        self.db.refresh(blocked_slot)
        return blocked_slot

    def delete_blocked_slot(self, blocked_slot_id: str) -> None:
        blocked_slot = self.get_blocked_slot(blocked_slot_id)
        self.db.delete(blocked_slot)
        self._commit("delete blocked slot")

    def delete_simulation_records(self) -> tuple[int, int]:
        appointments = self.db.execute(delete(Appointment).where(Appointment.is_simulation.is_(True))).rowcount
        blocked_slots = self.db.execute(delete(BlockedSlot).where(BlockedSlot.is_simulation.is_(True))).rowcount
        self._commit("reset simulation")
        return appointments or 0, blocked_slots or 0
