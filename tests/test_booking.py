"""Tests for assignment booking and lifecycle."""

import threading
from datetime import datetime, timezone

import pytest

from groundops.domain.builders import parse_datetime
from groundops.domain.models import (
    AssignmentStatus,
    Operation,
    ShiftType,
    StaffMember,
    Station,
    UserRole,
)
from groundops.errors import (
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ValidationFailedError,
)
from groundops.notifications import InMemoryNotifier
from groundops.scheduling.booking import AssignmentBooker, can_transition
from groundops.store.memory import (
    InMemoryAssignmentLedger,
    InMemoryOperationCatalog,
    InMemoryStaffDirectory,
)
from groundops.store.sqlite import SqliteAssignmentLedger
from groundops.validation.validator import ScheduleValidator

NOW = datetime(2024, 3, 1, 12, 0)


def at(hour: int, minute: int = 0) -> datetime:
    return datetime(2024, 3, 4, hour, minute)


def make_booker(ledger, notifier=None, clock=lambda: NOW):
    station = Station(id=1, name="Terminal 1")
    staff = [
        StaffMember(
            id=1,
            name="Alice",
            station_id=1,
            available_shifts=frozenset({ShiftType.MORNING}),
        ),
        StaffMember(id=2, name="Sam", role=UserRole.SUPERVISOR, station_id=1),
    ]
    operation = Operation(id=1, flight_number="GO1", scheduled_time=at(8), station=station)
    validator = ScheduleValidator(
        InMemoryStaffDirectory(staff), InMemoryOperationCatalog([operation]), ledger
    )
    return AssignmentBooker(validator, notifier=notifier, clock=clock)


class TestAssignmentBooker:
    """Tests for AssignmentBooker.book."""

    @pytest.fixture
    def ledger(self):
        return InMemoryAssignmentLedger()

    @pytest.fixture
    def notifier(self):
        return InMemoryNotifier()

    @pytest.fixture
    def booker(self, ledger, notifier):
        return make_booker(ledger, notifier)

    def test_book_saves_and_notifies(self, booker, ledger, notifier):
        assignment = booker.book(1, 1, at(8), at(12), function="ramp agent", cost=80.0)

        assert assignment.id is not None
        assert assignment.status == AssignmentStatus.SCHEDULED
        assert ledger.get(assignment.id) == assignment
        assert [n.title for n in notifier.for_staff(1)] == ["New assignment"]
        assert "GO1" in notifier.sent[0].message

    def test_book_rejects_past_start(self, booker, ledger):
        with pytest.raises(ValidationFailedError) as exc_info:
            booker.book(1, 1, datetime(2024, 2, 28, 8), datetime(2024, 2, 28, 12))

        assert exc_info.value.errors == ["Start time cannot be in the past"]
        assert ledger.list_all() == []

    def test_book_with_utc_timestamps(self, ledger):
        booker = make_booker(ledger, clock=datetime.now)

        assignment = booker.book(
            2, 1, parse_datetime("2099-01-05T08:00:00Z"), parse_datetime("2099-01-05T10:00:00Z")
        )

        assert ledger.get(assignment.id).start_time == datetime(2099, 1, 5, 8, tzinfo=timezone.utc)

    def test_book_rejects_past_utc_start(self, booker, ledger):
        with pytest.raises(ValidationFailedError) as exc_info:
            booker.book(
                2, 1, parse_datetime("2024-02-28T08:00:00Z"), parse_datetime("2024-02-28T10:00:00Z")
            )

        assert exc_info.value.errors == ["Start time cannot be in the past"]
        assert ledger.list_all() == []

    def test_book_reports_every_error(self, booker):
        with pytest.raises(ValidationFailedError) as exc_info:
            booker.book(1, 1, at(12), at(8))

        assert exc_info.value.errors == ["Start time must be before end time"]

    def test_no_overlapping_bookings(self, booker, ledger):
        booker.book(1, 1, at(8), at(11))

        with pytest.raises(ValidationFailedError):
            booker.book(1, 1, at(10), at(12))

        active = [a for a in ledger.list_for_staff(1) if a.is_active]
        assert len(active) == 1

    def test_permission_required(self, booker):
        employee = StaffMember(id=5, name="E")

        with pytest.raises(PermissionDeniedError):
            booker.book(1, 1, at(8), at(12), requested_by=employee)

    def test_supervisor_may_book(self, booker):
        supervisor = StaffMember(id=2, name="Sam", role=UserRole.SUPERVISOR)

        assert booker.book(1, 1, at(8), at(12), requested_by=supervisor).id is not None

    @pytest.mark.parametrize("ledger_factory", [InMemoryAssignmentLedger, SqliteAssignmentLedger])
    def test_concurrent_bookings_for_same_staff(self, ledger_factory):
        """Only one of several simultaneous overlapping bookings lands."""
        ledger = ledger_factory()
        booker = make_booker(ledger)
        barrier = threading.Barrier(4)
        outcomes = []

        def attempt(offset):
            barrier.wait()
            try:
                booker.book(1, 1, at(8, offset), at(10, offset))
                outcomes.append("booked")
            except ValidationFailedError:
                outcomes.append("rejected")

        threads = [threading.Thread(target=attempt, args=(i * 5,)) for i in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert outcomes.count("booked") == 1
        assert outcomes.count("rejected") == 3
        assert len(ledger.list_for_staff(1)) == 1


class TestAssignmentLifecycle:
    """Tests for status transitions and completion."""

    @pytest.fixture
    def booker(self):
        return make_booker(InMemoryAssignmentLedger())

    @pytest.fixture
    def assignment(self, booker):
        return booker.book(1, 1, at(8), at(10))

    def test_transition_table(self):
        assert can_transition(AssignmentStatus.SCHEDULED, AssignmentStatus.CONFIRMED)
        assert can_transition(AssignmentStatus.CONFIRMED, AssignmentStatus.IN_PROGRESS)
        assert can_transition(AssignmentStatus.IN_PROGRESS, AssignmentStatus.COMPLETED)
        assert can_transition(AssignmentStatus.SCHEDULED, AssignmentStatus.CANCELLED)
        assert not can_transition(AssignmentStatus.SCHEDULED, AssignmentStatus.COMPLETED)
        assert not can_transition(AssignmentStatus.COMPLETED, AssignmentStatus.CANCELLED)
        assert not can_transition(AssignmentStatus.CANCELLED, AssignmentStatus.SCHEDULED)

    def test_full_lifecycle(self, booker, assignment):
        booker.transition(assignment.id, AssignmentStatus.CONFIRMED)
        booker.transition(assignment.id, AssignmentStatus.IN_PROGRESS)
        done = booker.record_completion(assignment.id, at(8), at(10, 30))

        assert done.status == AssignmentStatus.COMPLETED
        assert done.actual_start_time == at(8)
        assert done.actual_end_time == at(10, 30)
        assert done.overtime_hours == 0.5

    def test_no_overtime_when_early(self, booker, assignment):
        booker.transition(assignment.id, AssignmentStatus.CONFIRMED)
        booker.transition(assignment.id, AssignmentStatus.IN_PROGRESS)

        done = booker.record_completion(assignment.id, at(8), at(9, 20))

        assert done.overtime_hours == 0.0

    def test_overtime_rounded(self, booker, assignment):
        booker.transition(assignment.id, AssignmentStatus.CONFIRMED)
        booker.transition(assignment.id, AssignmentStatus.IN_PROGRESS)

        done = booker.record_completion(assignment.id, at(8), at(10, 10))

        assert done.overtime_hours == 0.17

    def test_cannot_complete_unstarted(self, booker, assignment):
        with pytest.raises(InvalidTransitionError):
            booker.record_completion(assignment.id, at(8), at(10))

    def test_invalid_transition(self, booker, assignment):
        booker.transition(assignment.id, AssignmentStatus.CANCELLED)

        with pytest.raises(InvalidTransitionError) as exc_info:
            booker.transition(assignment.id, AssignmentStatus.CONFIRMED)

        assert exc_info.value.current == AssignmentStatus.CANCELLED

    def test_transition_unknown_assignment(self, booker):
        with pytest.raises(NotFoundError):
            booker.transition(404, AssignmentStatus.CONFIRMED)

    def test_completion_requires_ordered_times(self, booker, assignment):
        with pytest.raises(ValueError):
            booker.record_completion(assignment.id, at(10), at(8))

    def test_employee_cannot_transition(self, booker, assignment):
        with pytest.raises(PermissionDeniedError):
            booker.transition(
                assignment.id, AssignmentStatus.CONFIRMED, requested_by=StaffMember(id=9, name="E")
            )
