from datetime import date, datetime

import pytest
from sqlalchemy.exc import OperationalError

from app.core.exceptions import MissingContextError, PersistenceFailureError, ResourceNotFoundError, SchedulerError
from app.schemas.calendar import SimulatedContext, SimulatedPatient
from app.schemas.simulation import AppointmentChanges, BlockedSlotChanges
from app.services.simulation import SimulationProjector, combine_for_simulation_scope, resolve_first_present

DAY = date(2026, 3, 3)


def at(hour, minute=0):
    return datetime(2026, 3, 3, hour, minute)


@pytest.fixture
def context():
    return SimulatedContext(appointment_type="type-1", patient=SimulatedPatient(is_new=True))


@pytest.fixture
def real_appointment(store):
    return store.create_appointment(
        title="Check-up",
        start=at(9),
        end=at(9, 30),
        practitioner_id="p1",
        resource=None,
        location_id="loc-1",
        practice_id="practice-1",
        appointment_type_id="type-1",
        patient_id="patient-1",
        is_simulation=False,
    )


@pytest.fixture
def real_blocked_slot(store):
    return store.create_blocked_slot(
        title="Team meeting",
        start=at(11),
        end=at(11, 15),
        practitioner_id="p1",
        location_id="loc-1",
        practice_id="practice-1",
        is_simulation=False,
    )


def simulation(store, context):
    return SimulationProjector(store, simulated_context=context, practice_id="practice-1", location_id="loc-1")


def test_resolve_first_present_uses_precedence():
    assert resolve_first_present("location", None, "", "loc-2", "loc-3") == "loc-2"
    with pytest.raises(MissingContextError) as exc_info:
        resolve_first_present("location", None, None)
    assert exc_info.value.field == "location"
    assert exc_info.value.status_code == 422


def test_real_update_writes_in_place(store, real_appointment):
    projector = SimulationProjector(store, practice_id="practice-1", location_id="loc-1")
    outcome = projector.update_appointment(real_appointment.id, AppointmentChanges(start=at(10), end=at(10, 30)))

    assert outcome.id == real_appointment.id
    assert outcome.forked is False
    assert store.get_appointment(real_appointment.id).start == at(10)


def test_first_simulated_edit_forks_the_real_appointment(store, context, real_appointment):
    outcome = simulation(store, context).update_appointment(
        real_appointment.id,
        AppointmentChanges(start=at(10), end=at(10, 30)),
    )

    assert outcome.forked is True
    assert outcome.replaces_id == real_appointment.id
    assert outcome.id != real_appointment.id

    original = store.get_appointment(real_appointment.id)
    fork = store.get_appointment(outcome.id)
    assert original.start == at(9)
    assert original.is_simulation is False
    assert fork.is_simulation is True
    assert fork.start == at(10)
    assert fork.title == "Check-up"
    assert fork.patient_id == "patient-1"
    assert fork.practitioner_id == "p1"


def test_later_edits_go_to_the_fork(store, context, real_appointment):
    projector = simulation(store, context)
    first = projector.update_appointment(real_appointment.id, AppointmentChanges(start=at(10), end=at(10, 30)))
    second = projector.update_appointment(real_appointment.id, AppointmentChanges(title="Follow-up"))
    third = simulation(store, context).update_appointment(real_appointment.id, AppointmentChanges(column="ekg"))

    assert second.id == first.id
    assert second.forked is False
    assert third.id == first.id

    fork = store.get_appointment(first.id)
    assert fork.title == "Follow-up"
    assert fork.resource == "ekg"
    assert fork.practitioner_id is None
    assert store.get_appointment(real_appointment.id).title == "Check-up"


def test_simulation_scope_hides_replaced_records(store, context, real_appointment):
    other = store.create_appointment(
        title="Vaccination",
        start=at(8),
        end=at(8, 15),
        practitioner_id="p2",
        location_id="loc-1",
        practice_id="practice-1",
        appointment_type_id="type-2",
        patient_id="patient-2",
        is_simulation=False,
    )
    outcome = simulation(store, context).update_appointment(
        real_appointment.id,
        AppointmentChanges(start=at(12), end=at(12, 30)),
    )

    records = store.list_appointments(DAY, "loc-1", include_simulation=True)
    visible = combine_for_simulation_scope(records, "replaces_appointment_id")

    assert [record.id for record in visible] == [other.id, outcome.id]
    assert [record.id for record in store.list_appointments(DAY, "loc-1", include_simulation=False)] == [
        other.id,
        real_appointment.id,
    ]


def test_update_rejects_inverted_range(store, context, real_appointment):
    with pytest.raises(SchedulerError):
        simulation(store, context).update_appointment(real_appointment.id, AppointmentChanges(start=at(10)))


def test_update_of_missing_appointment(store):
    with pytest.raises(ResourceNotFoundError):
        SimulationProjector(store).update_appointment("missing", AppointmentChanges(title="x"))


def test_simulated_create_does_not_need_patient(store, context):
    outcome = simulation(store, context).create_appointment(
        title="Trial booking",
        start=at(14),
        end=at(14, 20),
        column="p1",
    )
    created = store.get_appointment(outcome.id)
    assert created.is_simulation is True
    assert created.appointment_type_id == "type-1"
    assert created.location_id == "loc-1"
    assert created.patient_id is None


def test_simulated_location_takes_precedence(store):
    context = SimulatedContext(appointment_type="type-1", location_id="loc-2", patient=SimulatedPatient(is_new=False))
    outcome = simulation(store, context).create_appointment(title="Trial", start=at(9), end=at(9, 10), column="labor")
    created = store.get_appointment(outcome.id)
    assert created.location_id == "loc-2"
    assert created.resource == "labor"


def test_real_create_requires_full_context(store):
    projector = SimulationProjector(store, location_id="loc-1")
    with pytest.raises(MissingContextError) as exc_info:
        projector.create_appointment(title="Check-up", start=at(9), end=at(9, 30), column="p1")
    assert exc_info.value.field == "practice"

    projector = SimulationProjector(store, practice_id="practice-1", location_id="loc-1")
    with pytest.raises(MissingContextError) as exc_info:
        projector.create_appointment(title="Check-up", start=at(9), end=at(9, 30), column="p1")
    assert exc_info.value.field == "appointment_type"

    with pytest.raises(MissingContextError) as exc_info:
        projector.create_appointment(
            title="Check-up",
            start=at(9),
            end=at(9, 30),
            column="p1",
            appointment_type_id="type-1",
        )
    assert exc_info.value.field == "patient"


def test_store_refuses_real_replacement(store, real_appointment):
    with pytest.raises(SchedulerError):
        store.create_appointment(
            title="Copy",
            start=at(9),
            end=at(9, 30),
            location_id="loc-1",
            practice_id="practice-1",
            patient_id="patient-1",
            is_simulation=False,
            replaces_appointment_id=real_appointment.id,
        )


def test_simulated_delete_of_real_record_is_refused(store, real_appointment):
    projector = SimulationProjector(store, simulation_active=True)
    with pytest.raises(SchedulerError):
        projector.delete_appointment(real_appointment.id)
    assert store.get_appointment(real_appointment.id).id == real_appointment.id


def test_simulated_delete_removes_fork_only(store, context, real_appointment):
    fork = simulation(store, context).update_appointment(real_appointment.id, AppointmentChanges(title="Moved"))

    outcome = SimulationProjector(store, simulation_active=True).delete_appointment(real_appointment.id)

    assert outcome.id == fork.id
    assert outcome.replaces_id == real_appointment.id
    with pytest.raises(ResourceNotFoundError):
        store.get_appointment(fork.id)
    assert store.get_appointment(real_appointment.id).title == "Check-up"


def test_blocked_slot_fork_and_update(store, context, real_blocked_slot):
    projector = simulation(store, context)
    forked = projector.update_blocked_slot(real_blocked_slot.id, BlockedSlotChanges(start=at(11, 30), end=at(12)))
    again = projector.update_blocked_slot(real_blocked_slot.id, BlockedSlotChanges(title="Moved meeting"))

    assert forked.forked is True
    assert forked.replaces_id == real_blocked_slot.id
    assert again.id == forked.id

    fork = store.get_blocked_slot(forked.id)
    assert fork.is_simulation is True
    assert fork.title == "Moved meeting"
    assert fork.start == at(11, 30)
    assert store.get_blocked_slot(real_blocked_slot.id).start == at(11)

    visible = combine_for_simulation_scope(
        store.list_blocked_slots(DAY, "loc-1", include_simulation=True),
        "replaces_blocked_slot_id",
    )
    assert [record.id for record in visible] == [fork.id]


def test_blocked_slots_need_a_practitioner_column(store, context):
    with pytest.raises(SchedulerError):
        simulation(store, context).create_blocked_slot(title="Cleaning", start=at(9), end=at(9, 30), practitioner_id="ekg")


def test_reset_removes_only_simulation_records(store, context, real_appointment, real_blocked_slot):
    projector = simulation(store, context)
    projector.update_appointment(real_appointment.id, AppointmentChanges(title="Moved"))
    projector.update_blocked_slot(real_blocked_slot.id, BlockedSlotChanges(title="Moved"))
    projector.create_appointment(title="Trial", start=at(15), end=at(15, 30), column="p2")

    assert projector.reset_simulation() == (2, 1)
    assert projector.redirects == {}
    assert [record.id for record in store.list_appointments(DAY, None, include_simulation=True)] == [
        real_appointment.id
    ]
    assert store.get_blocked_slot(real_blocked_slot.id).title == "Team meeting"


def test_failed_commit_is_rolled_back(store, monkeypatch):
    def failing_commit():
        raise OperationalError("COMMIT", {}, Exception("database is locked"))

    monkeypatch.setattr(store.db, "commit", failing_commit)

    with pytest.raises(PersistenceFailureError) as exc_info:
        store.create_practitioner("Dr. Weber")
    assert exc_info.value.status_code == 503
    assert exc_info.value.message == "Could not create practitioner: OperationalError"


def test_fork_moved_to_another_day_still_hides_original(store, context, real_appointment, real_blocked_slot):
    projector = simulation(store, context)
    projector.update_appointment(
        real_appointment.id,
        AppointmentChanges(start=datetime(2026, 3, 4, 9), end=datetime(2026, 3, 4, 9, 30)),
    )
    projector.update_blocked_slot(
        real_blocked_slot.id,
        BlockedSlotChanges(start=datetime(2026, 3, 4, 11), end=datetime(2026, 3, 4, 11, 15)),
    )

    appointments = combine_for_simulation_scope(
        store.list_appointments(DAY, "loc-1", include_simulation=True),
        "replaces_appointment_id",
        store.replaced_appointment_ids(),
    )
    blocked_slots = combine_for_simulation_scope(
        store.list_blocked_slots(DAY, "loc-1", include_simulation=True),
        "replaces_blocked_slot_id",
        store.replaced_blocked_slot_ids(),
    )

    assert appointments == []
    assert blocked_slots == []
    assert store.replaced_appointment_ids() == {real_appointment.id}


@pytest.mark.parametrize("simulated", [False, True])
def test_blocked_slot_cannot_move_into_fixed_resource_column(store, context, real_blocked_slot, simulated):
    projector = simulation(store, context) if simulated else SimulationProjector(store, practice_id="practice-1")

    with pytest.raises(SchedulerError) as exc_info:
        projector.update_blocked_slot(real_blocked_slot.id, BlockedSlotChanges(practitioner_id="ekg"))

    assert exc_info.value.details == {"column": "ekg"}
    assert store.get_blocked_slot(real_blocked_slot.id).practitioner_id == "p1"
    assert store.replaced_blocked_slot_ids() == set()
