"""Routing of calendar writes between real records and simulation shadows.

Without a simulated context every write hits the real record. Inside one,
simulation-owned records are edited in place, while the first edit of a real
record forks it: a simulation copy is created with a back-reference to the
original, and the original is hidden from the simulated view by
``combine_for_simulation_scope``. Later edits of the same item go to the fork.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Any, Protocol, TypeVar

from app.core.exceptions import MissingContextError, SchedulerError
from app.models.appointment import Appointment, FixedResource
from app.models.blocked_slot import BlockedSlot
from app.schemas.calendar import SimulatedContext
from app.schemas.simulation import AppointmentChanges, BlockedSlotChanges
from app.services.resources import practitioner_id_of, resource_ref

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT")


class CalendarStore(Protocol):
    def get_appointment(self, appointment_id: str) -> Appointment: ...
    def find_appointment_replacement(self, appointment_id: str) -> Appointment | None: ...
    def create_appointment(self, **fields: Any) -> Appointment: ...
    def update_appointment(self, appointment_id: str, **fields: Any) -> Appointment: ...
    def delete_appointment(self, appointment_id: str) -> None: ...
    def get_blocked_slot(self, blocked_slot_id: str) -> BlockedSlot: ...
    def find_blocked_slot_replacement(self, blocked_slot_id: str) -> BlockedSlot | None: ...
    def create_blocked_slot(self, **fields: Any) -> BlockedSlot: ...
    def update_blocked_slot(self, blocked_slot_id: str, **fields: Any) -> BlockedSlot: ...
    def delete_blocked_slot(self, blocked_slot_id: str) -> None: ...
    def delete_simulation_records(self) -> tuple[int, int]: ...


@dataclass(frozen=True)
class WriteOutcome:
    id: str
    forked: bool = False
    replaces_id: str | None = None


def resolve_first_present(field: str, *candidates: str | None) -> str:
    """Return the first non-empty candidate in precedence order."""
    for candidate in candidates:
        if candidate:
            return candidate
    raise MissingContextError(field)


def combine_for_simulation_scope(
    records: Iterable[RecordT],
    replaces_attr: str,
    replaced_elsewhere: Iterable[str] = (),
) -> list[RecordT]:
    """Simulation records plus the real records none of them replaces.

    ``replaced_elsewhere`` holds ids replaced by forks outside ``records``, such as
    a fork moved to another day or location.
    """
    records = list(records)
    simulation_records = [record for record in records if record.is_simulation is True]
    replaced_ids = {getattr(record, replaces_attr) for record in simulation_records if getattr(record, replaces_attr)}
    replaced_ids.update(replaced_elsewhere)
    real_records = [
        record for record in records if record.is_simulation is not True and record.id not in replaced_ids
    ]
    return sorted([*real_records, *simulation_records], key=lambda record: record.start)


def _column_fields(column: str) -> dict[str, str | None]:
    ref = resource_ref(column)
    practitioner_id = practitioner_id_of(ref)
    if practitioner_id is not None:
        return {"practitioner_id": practitioner_id, "resource": None}
    return {"practitioner_id": None, "resource": ref.value}


def _require_practitioner_column(column: str) -> None:
    if isinstance(resource_ref(column), FixedResource):
        raise SchedulerError(
            "Blocked slots can only be placed in practitioner columns",
            details={"column": column},
        )


class SimulationProjector:
    def __init__(
        self,
        store: CalendarStore,
        *,
        simulated_context: SimulatedContext | None = None,
        practice_id: str | None = None,
        location_id: str | None = None,
        simulation_active: bool | None = None,
    ) -> None:
        self.store = store
        self.simulated_context = simulated_context
        self.practice_id = practice_id
        self.location_id = location_id
        self.in_simulation = simulated_context is not None if simulation_active is None else simulation_active
        # original id -> forked id, for the lifetime of this projector
        self.redirects: dict[str, str] = {}

    @property
    def _context_location_id(self) -> str | None:
        return self.simulated_context.location_id if self.simulated_context else None

    @property
    def _context_appointment_type(self) -> str | None:
        return self.simulated_context.appointment_type if self.simulated_context else None

    def _redirected(self, record_id: str) -> str:
        seen: set[str] = set()
        while record_id in self.redirects and record_id not in seen:
            seen.add(record_id)
            record_id = self.redirects[record_id]
        return record_id

    # Appointments

    def _resolve_appointment(self, appointment_id: str) -> Appointment:
        appointment = self.store.get_appointment(self._redirected(appointment_id))
        if self.in_simulation and not appointment.is_simulation:
            replacement = self.store.find_appointment_replacement(appointment.id)
            if replacement is not None:
                self.redirects[appointment.id] = replacement.id
                return replacement
        return appointment

    def create_appointment(
        self,
        *,
        title: str,
        start: datetime,
        end: datetime,
        column: str,
        location_id: str | None = None,
        appointment_type_id: str | None = None,
        patient_id: str | None = None,
    ) -> WriteOutcome:
        location = resolve_first_present("location", location_id, self._context_location_id, self.location_id)
        practice = resolve_first_present("practice", self.practice_id)
        if self.in_simulation:
            appointment_type = appointment_type_id or self._context_appointment_type
        else:
            appointment_type = resolve_first_present("appointment_type", appointment_type_id)
        appointment = self.store.create_appointment(
            title=title,
            start=start,
            end=end,
            location_id=location,
            practice_id=practice,
            appointment_type_id=appointment_type,
            patient_id=patient_id,
            is_simulation=self.in_simulation,
            **_column_fields(column),
        )
        return WriteOutcome(id=appointment.id)

    def update_appointment(self, appointment_id: str, changes: AppointmentChanges) -> WriteOutcome:
        appointment = self._resolve_appointment(appointment_id)
        fields = changes.model_dump(exclude_unset=True, exclude_none=True, exclude={"column"})
        if changes.column is not None:
            fields.update(_column_fields(changes.column))
        self._check_time_order(
            fields.get("start", appointment.start),
            fields.get("end", appointment.end),
        )

        if not self.in_simulation or appointment.is_simulation:
            updated = self.store.update_appointment(appointment.id, **fields)
            return WriteOutcome(id=updated.id, replaces_id=updated.replaces_appointment_id)
        return self._fork_appointment(appointment, fields)

    def _fork_appointment(self, original: Appointment, overrides: dict[str, Any]) -> WriteOutcome:
        location = resolve_first_present(
            "location",
            overrides.get("location_id"),
            self._context_location_id,
            original.location_id,
            self.location_id,
        )
        practice = resolve_first_present("practice", self.practice_id, original.practice_id)
        fork = self.store.create_appointment(
            title=overrides.get("title", original.title),
            start=overrides.get("start", original.start),
            end=overrides.get("end", original.end),
            practitioner_id=overrides.get("practitioner_id", original.practitioner_id),
            resource=overrides.get("resource", original.resource),
            location_id=location,
            practice_id=practice,
            appointment_type_id=original.appointment_type_id,
            patient_id=original.patient_id,
            is_simulation=True,
            replaces_appointment_id=original.id,
        )
        self.redirects[original.id] = fork.id
        logger.info("Forked appointment %s into simulation copy %s", original.id, fork.id)
        return WriteOutcome(id=fork.id, forked=True, replaces_id=original.id)

    def delete_appointment(self, appointment_id: str) -> WriteOutcome:
        appointment = self._resolve_appointment(appointment_id)
        if self.in_simulation and not appointment.is_simulation:
            raise SchedulerError(
                "Real appointments cannot be deleted from a simulation",
                details={"appointment_id": appointment.id},
            )
        self.store.delete_appointment(appointment.id)
        return WriteOutcome(id=appointment.id, replaces_id=appointment.replaces_appointment_id)

    # Blocked slots

    def _resolve_blocked_slot(self, blocked_slot_id: str) -> BlockedSlot:
        blocked_slot = self.store.get_blocked_slot(self._redirected(blocked_slot_id))
        if self.in_simulation and not blocked_slot.is_simulation:
            replacement = self.store.find_blocked_slot_replacement(blocked_slot.id)
            if replacement is not None:
                self.redirects[blocked_slot.id] = replacement.id
                return replacement
        return blocked_slot

    def create_blocked_slot(
        self,
        *,
        title: str,
        start: datetime,
        end: datetime,
        practitioner_id: str,
        location_id: str | None = None,
    ) -> WriteOutcome:
        _require_practitioner_column(practitioner_id)
        blocked_slot = self.store.create_blocked_slot(
            title=title,
            start=start,
            end=end,
            practitioner_id=practitioner_id,
            location_id=resolve_first_present("location", location_id, self._context_location_id, self.location_id),
            practice_id=resolve_first_present("practice", self.practice_id),
            is_simulation=self.in_simulation,
        )
        return WriteOutcome(id=blocked_slot.id)

    def update_blocked_slot(self, blocked_slot_id: str, changes: BlockedSlotChanges) -> WriteOutcome:
        blocked_slot = self._resolve_blocked_slot(blocked_slot_id)
        fields = changes.model_dump(exclude_unset=True, exclude_none=True)
        if "practitioner_id" in fields:
            _require_practitioner_column(fields["practitioner_id"])
        self._check_time_order(
            fields.get("start", blocked_slot.start),
            fields.get("end", blocked_slot.end),
        )

        if not self.in_simulation or blocked_slot.is_simulation:
            updated = self.store.update_blocked_slot(blocked_slot.id, **fields)
            return WriteOutcome(id=updated.id, replaces_id=updated.replaces_blocked_slot_id)

        location = resolve_first_present(
            "location", self._context_location_id, blocked_slot.location_id, self.location_id
        )
        practice = resolve_first_present("practice", self.practice_id, blocked_slot.practice_id)
        fork = self.store.create_blocked_slot(
            title=fields.get("title", blocked_slot.title),
            start=fields.get("start", blocked_slot.start),
            end=fields.get("end", blocked_slot.end),
            practitioner_id=fields.get("practitioner_id", blocked_slot.practitioner_id),
            location_id=location,
            practice_id=practice,
            is_simulation=True,
            replaces_blocked_slot_id=blocked_slot.id,
        )
        self.redirects[blocked_slot.id] = fork.id
        logger.info("Forked blocked slot %s into simulation copy %s", blocked_slot.id, fork.id)
        return WriteOutcome(id=fork.id, forked=True, replaces_id=blocked_slot.id)

    def delete_blocked_slot(self, blocked_slot_id: str) -> WriteOutcome:
        blocked_slot = self._resolve_blocked_slot(blocked_slot_id)
        if self.in_simulation and not blocked_slot.is_simulation:
            raise SchedulerError(
                "Real blocked slots cannot be deleted from a simulation",
                details={"blocked_slot_id": blocked_slot.id},
            )
        self.store.delete_blocked_slot(blocked_slot.id)
        return WriteOutcome(id=blocked_slot.id, replaces_id=blocked_slot.replaces_blocked_slot_id)

    def reset_simulation(self) -> tuple[int, int]:
        appointments, blocked_slots = self.store.delete_simulation_records()
        self.redirects.clear()
        logger.info("Simulation reset removed %d appointments and %d blocked slots", appointments, blocked_slots)
        return appointments, blocked_slots

    @staticmethod
    def _check_time_order(start: datetime, end: datetime) -> None:
        if end <= start:
            raise SchedulerError("End time must be after start time")
