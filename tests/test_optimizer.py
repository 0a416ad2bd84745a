"""Tests for the staffing optimizer."""

from contextlib import contextmanager
from datetime import datetime

import pytest

from groundops.domain.models import (
    Assignment,
    AssignmentStatus,
    FlightType,
    Operation,
    OperationType,
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
from groundops.notifications import InMemoryNotifier, Notifier
from groundops.scheduling.optimizer import StaffingOptimizer
from groundops.store.memory import (
    InMemoryAssignmentLedger,
    InMemoryOperationCatalog,
    InMemoryStaffDirectory,
)
from groundops.store.sqlite import SqliteAssignmentLedger
from groundops.validation.validator import ScheduleValidator

MORNING = frozenset({ShiftType.MORNING})
DAY_SHIFTS = frozenset({ShiftType.MORNING, ShiftType.AFTERNOON})


def at(hour: int) -> datetime:
    return datetime(2024, 3, 4, hour)


class FailingReplacementLedger(InMemoryAssignmentLedger):
    """Fails to persist replacement assignments."""

    def save(self, assignment):
        if assignment.is_replacement:
            raise RuntimeError("disk full")
        return super().save(assignment)


class FailingReplacementSqliteLedger(SqliteAssignmentLedger):
    """SQLite ledger that fails to persist replacement assignments."""

    def save(self, assignment):
        if assignment.is_replacement:
            raise RuntimeError("disk full")
        return super().save(assignment)


class RacingLedger(InMemoryAssignmentLedger):
    """Books a rival assignment right before the next write transaction opens."""

    def __init__(self, assignments=(), rival=None):
        super().__init__(assignments)
        self.rival = rival

    @contextmanager
    def transaction(self):
        if self.rival is not None:
            rival, self.rival = self.rival, None
            self.save(rival)
        with super().transaction():
            yield self


class RivalReplacementLedger(InMemoryAssignmentLedger):
    """Lets another request replace an assignment right before the next transaction."""

    def __init__(self, assignments=(), replaced_id=None, rival=None):
        super().__init__(assignments)
        self.replaced_id = replaced_id
        self.rival = rival

    @contextmanager
    def transaction(self):
        if self.rival is not None:
            rival, self.rival = self.rival, None
            with super().transaction():
                self.cancel(self.replaced_id, "Replaced by the rival request")
                self.save(rival)
        with super().transaction():
            yield self


class BrokenNotifier(Notifier):
    def notify(self, staff_id, title, message, data=None):
        raise ConnectionError("push gateway down")


def make_optimizer(directory, catalog, ledger, notifier=None):
    validator = ScheduleValidator(directory, catalog, ledger)
    return StaffingOptimizer(validator, notifier=notifier)


class TestStaffingOptimizer:
    """Tests for StaffingOptimizer."""

    @pytest.fixture
    def station(self):
        return Station(
            id=1,
            name="Terminal 1",
            minimum_staff=3,
            required_certifications=frozenset({"ramp_safety"}),
        )

    @pytest.fixture
    def staff(self):
        """Staff around station 1.

        Eligible for the morning flight: 1, 2, 3 (nothing recorded) and 6
        (unassigned). The rest are filtered out for role, station,
        certifications, shifts or activity.
        """
        ramp = frozenset({"ramp_safety"})
        return [
            StaffMember(
                id=1,
                name="Alice",
                station_id=1,
                certifications=ramp,
                skills=frozenset({"customs_handling", "departure_procedures"}),
                available_shifts=MORNING,
            ),
            StaffMember(
                id=2,
                name="Bob",
                station_id=1,
                certifications=frozenset({"ramp_safety", "hazmat"}),
                skills=frozenset({"baggage_loading"}),
                available_shifts=DAY_SHIFTS,
            ),
            StaffMember(id=3, name="Carol", station_id=1),
            StaffMember(
                id=4,
                name="Dan",
                role=UserRole.SUPERVISOR,
                station_id=1,
                certifications=ramp,
                available_shifts=DAY_SHIFTS,
            ),
            StaffMember(id=5, name="Eve", station_id=2, certifications=ramp),
            StaffMember(
                id=6,
                name="Finn",
                certifications=ramp,
                skills=frozenset({"crowd_management"}),
                available_shifts=MORNING,
            ),
            StaffMember(id=7, name="Gina", station_id=1, certifications=frozenset()),
            StaffMember(
                id=8,
                name="Hugo",
                station_id=1,
                certifications=ramp,
                available_shifts=frozenset({ShiftType.NIGHT}),
            ),
            StaffMember(id=9, name="Ivy", station_id=1, certifications=ramp, is_active=False),
        ]

    @pytest.fixture
    def operations(self, station):
        return [
            Operation(
                id=1,
                flight_number="GO101",
                scheduled_time=at(8),
                station=station,
                passenger_count=220,
                flight_type=FlightType.INTERNATIONAL,
                operation_type=OperationType.DEPARTURE,
                estimated_duration=2,
            ),
            Operation(
                id=2,
                flight_number="GO202",
                scheduled_time=at(8),
                station=station,
                passenger_count=40,
            ),
        ]

    @pytest.fixture
    def directory(self, staff):
        return InMemoryStaffDirectory(staff)

    @pytest.fixture
    def catalog(self, operations):
        return InMemoryOperationCatalog(operations)

    @pytest.fixture
    def original(self):
        return Assignment(
            staff_id=1,
            operation_id=1,
            function="ramp agent",
            start_time=at(8),
            end_time=at(10),
            cost=120.0,
            status=AssignmentStatus.CONFIRMED,
        )

    @pytest.fixture
    def ledger(self):
        return InMemoryAssignmentLedger()

    @pytest.fixture
    def notifier(self):
        return InMemoryNotifier()

    @pytest.fixture
    def optimizer(self, directory, catalog, ledger, notifier):
        return make_optimizer(directory, catalog, ledger, notifier)

    # find_available_staff

    def test_find_available_staff_filters(self, optimizer):
        staff = optimizer.find_available_staff(1)

        assert [s.id for s in staff] == [1, 2, 3, 6]

    def test_required_skills_filter(self, optimizer):
        """Carol has no recorded skills, so she is not eliminated."""
        staff = optimizer.find_available_staff(1, ["customs_handling"])

        assert [s.id for s in staff] == [1, 3]

    def test_exclude_ids(self, optimizer):
        staff = optimizer.find_available_staff(1, exclude_ids=[1, 3])

        assert [s.id for s in staff] == [2, 6]

    def test_conflicts_only_checked_with_duration(self, optimizer, ledger):
        ledger.save(Assignment(staff_id=2, operation_id=2, start_time=at(9), end_time=at(10)))

        with_window = optimizer.find_available_staff(1)
        without_window = optimizer.find_available_staff(2)

        assert 2 not in [s.id for s in with_window]
        assert 2 in [s.id for s in without_window]

    def test_station_without_certifications(self, optimizer, station):
        station.required_certifications = frozenset()

        ids = [s.id for s in optimizer.find_available_staff(1)]

        assert 7 in ids
        assert 5 not in ids

    def test_unknown_operation(self, optimizer):
        with pytest.raises(NotFoundError):
            optimizer.find_available_staff(99)

    # get_optimal_staffing

    def test_optimal_staffing_for_large_flight(self, optimizer):
        """220 passengers at a station with minimum 3 needs 5, recommends 6."""
        plan = optimizer.get_optimal_staffing(1)

        assert plan.base_staff == 5
        assert plan.minimum_staff == 5
        assert plan.recommended_staff == 6
        assert "crowd_management" in plan.skills_needed
        assert plan.skills_needed == [
            "customs_handling",
            "international_procedures",
            "large_aircraft_handling",
            "crowd_management",
            "departure_procedures",
            "baggage_loading",
        ]

    def test_optimal_staffing_available_staff_need_all_skills(self, optimizer):
        plan = optimizer.get_optimal_staffing(1)

        assert [s.id for s in plan.available_staff] == [3]

    def test_optimal_staffing_small_flight_uses_station_minimum(self, optimizer):
        plan = optimizer.get_optimal_staffing(2)

        assert plan.base_staff == 1
        assert plan.minimum_staff == 3
        assert plan.recommended_staff == 4
        assert plan.skills_needed == ["arrival_procedures", "baggage_unloading"]

    # Ranking

    def test_rank_by_score(self, optimizer, directory):
        ranked = optimizer.rank_staff(directory.get(i) for i in (1, 2, 3, 6))

        assert [s.id for s in ranked] == [2, 1, 6, 3]
        assert [optimizer.recommendation_score(s) for s in ranked] == [6, 5, 4, 1]

    def test_rank_ties_go_to_lower_id(self, optimizer):
        first = StaffMember(id=12, name="Twelve", skills=frozenset({"a"}))
        second = StaffMember(id=11, name="Eleven", skills=frozenset({"b"}))

        ranked = optimizer.rank_staff([first, second])

        assert [s.id for s in ranked] == [11, 12]

    def test_supervisor_outranks_employee(self, optimizer):
        employee = StaffMember(id=1, name="E")
        supervisor = StaffMember(id=2, name="S", role=UserRole.SUPERVISOR)

        assert optimizer.rank_staff([employee, supervisor])[0] is supervisor

    # optimize_staffing

    def test_optimize_reports_shortage(self, optimizer):
        optimization = optimizer.optimize_staffing(1)

        assert optimization.available == 4
        assert optimization.required == 5
        assert optimization.shortage == 1
        assert not optimization.minimum_staff_met
        assert [r.staff.id for r in optimization.recommended_assignments] == [2, 1, 6, 3]
        assert optimization.uncovered_skills == [
            "international_procedures",
            "large_aircraft_handling",
        ]
        assert optimization.suggestions[0].startswith("Short 1 staff")
        assert "international_procedures" in optimization.suggestions[-1]

    def test_optimize_without_shortage(self, optimizer):
        optimization = optimizer.optimize_staffing(2)

        assert optimization.minimum_staff_met
        assert optimization.shortage == 0
        assert len(optimization.recommended_assignments) == 4
        assert optimization.solver_status in ("OPTIMAL", "FEASIBLE")

    # create_replacement

    def test_replacement_happy_path(self, directory, catalog, notifier, original):
        ledger = InMemoryAssignmentLedger([original])
        optimizer = make_optimizer(directory, catalog, ledger, notifier)

        replacement = optimizer.create_replacement(1, 2, "Called in sick")

        cancelled = ledger.get(1)
        assert cancelled.status == AssignmentStatus.CANCELLED
        assert "Replaced by staff 2" in cancelled.notes
        assert "Called in sick" in cancelled.notes

        assert replacement.id is not None
        assert replacement.staff_id == 2
        assert replacement.is_replacement
        assert replacement.replacement_for_staff_id == 1
        assert replacement.status == AssignmentStatus.SCHEDULED
        assert (replacement.start_time, replacement.end_time) == (at(8), at(10))
        assert replacement.function == "ramp agent"
        assert replacement.cost == 120.0
        assert ledger.get(replacement.id) == replacement

        sent = notifier.for_staff(2)
        assert len(sent) == 1
        assert sent[0].title == "New assignment"
        assert sent[0].data["assignment_id"] == replacement.id

    def test_replacement_records_requester(self, directory, catalog, original):
        ledger = InMemoryAssignmentLedger([original])
        optimizer = make_optimizer(directory, catalog, ledger)

        optimizer.create_replacement(1, 2, "Swap", requested_by=directory.get(4))

        assert "requested by staff 4" in ledger.get(1).notes

    def test_replacement_rejected_leaves_original(self, directory, catalog, notifier, original):
        ledger = InMemoryAssignmentLedger([original])
        optimizer = make_optimizer(directory, catalog, ledger, notifier)

        with pytest.raises(ValidationFailedError) as exc_info:
            optimizer.create_replacement(1, 7, "Sick")

        assert exc_info.value.errors == ["Missing required certifications: ramp_safety"]
        assert str(exc_info.value).startswith("Cannot create replacement:")
        assert ledger.get(1).status == AssignmentStatus.CONFIRMED
        assert ledger.get(1).notes is None
        assert ledger.list_for_staff(7) == []
        assert notifier.sent == []

    def test_replacement_with_overlap_rejected(self, directory, catalog, original):
        busy = Assignment(staff_id=2, operation_id=2, start_time=at(9), end_time=at(11))
        ledger = InMemoryAssignmentLedger([original, busy])
        optimizer = make_optimizer(directory, catalog, ledger)

        with pytest.raises(ValidationFailedError) as exc_info:
            optimizer.create_replacement(1, 2, "Sick")

        assert "Staff member is already assigned in that window" in exc_info.value.errors
        assert ledger.get(1).status == AssignmentStatus.CONFIRMED

    def test_replacement_warnings_do_not_block(self, directory, catalog, original):
        directory.get(2).max_weekly_hours = 1
        ledger = InMemoryAssignmentLedger([original])
        optimizer = make_optimizer(directory, catalog, ledger)

        replacement = optimizer.create_replacement(1, 2, "Sick")

        assert replacement.staff_id == 2

    def test_replacement_is_atomic(self, directory, catalog, notifier, original):
        """A failed insert must not leave the original cancelled."""
        ledger = FailingReplacementLedger([original])
        optimizer = make_optimizer(directory, catalog, ledger, notifier)

        with pytest.raises(RuntimeError):
            optimizer.create_replacement(1, 2, "Sick")

        restored = ledger.get(1)
        assert restored.status == AssignmentStatus.CONFIRMED
        assert restored.notes is None
        assert ledger.list_for_staff(2) == []
        assert notifier.sent == []

    def test_replacement_is_atomic_in_sqlite(self, directory, catalog, original):
        ledger = FailingReplacementSqliteLedger()
        saved = ledger.save(original)
        optimizer = make_optimizer(directory, catalog, ledger)

        with pytest.raises(RuntimeError):
            optimizer.create_replacement(saved.id, 2, "Sick")

        assert ledger.get(saved.id).status == AssignmentStatus.CONFIRMED
        assert ledger.list_for_staff(2) == []
        ledger.close()

    def test_replacement_rechecks_overlap_under_lock(self, directory, catalog, original):
        """A rival booking landing after validation is caught inside the transaction."""
        rival = Assignment(staff_id=2, operation_id=2, start_time=at(9), end_time=at(10))
        ledger = RacingLedger([original], rival=rival)
        optimizer = make_optimizer(directory, catalog, ledger)

        with pytest.raises(ValidationFailedError):
            optimizer.create_replacement(1, 2, "Sick")

        assert ledger.get(1).status == AssignmentStatus.CONFIRMED
        assert [a.is_replacement for a in ledger.list_for_staff(2)] == [False]

    def test_concurrent_replacement_of_same_assignment(self, directory, catalog, original):
        """Only one of two requests replacing the same assignment lands."""
        rival = original.copy(
            staff_id=3,
            status=AssignmentStatus.SCHEDULED,
            is_replacement=True,
            replacement_for_staff_id=1,
        )
        ledger = RivalReplacementLedger([original], replaced_id=1, rival=rival)
        optimizer = make_optimizer(directory, catalog, ledger)

        with pytest.raises(InvalidTransitionError):
            optimizer.create_replacement(1, 2, "Sick")

        replacements = [a for a in ledger.list_all() if a.is_replacement]
        assert [a.staff_id for a in replacements] == [3]
        assert ledger.get(1).notes == "Replaced by the rival request"
        assert ledger.list_for_staff(2) == []

    def test_notification_failure_keeps_replacement(self, directory, catalog, original):
        ledger = InMemoryAssignmentLedger([original])
        optimizer = make_optimizer(directory, catalog, ledger, BrokenNotifier())

        replacement = optimizer.create_replacement(1, 2, "Sick")

        assert ledger.get(replacement.id) is not None
        assert ledger.get(1).status == AssignmentStatus.CANCELLED

    def test_replacement_missing_original(self, optimizer):
        with pytest.raises(NotFoundError):
            optimizer.create_replacement(404, 2, "Sick")

    def test_replacement_requires_permission(self, directory, catalog, original):
        ledger = InMemoryAssignmentLedger([original])
        optimizer = make_optimizer(directory, catalog, ledger)

        with pytest.raises(PermissionDeniedError):
            optimizer.create_replacement(1, 2, "Sick", requested_by=directory.get(3))

        assert ledger.get(1).status == AssignmentStatus.CONFIRMED

    def test_cannot_replace_finished_assignment(self, directory, catalog, original):
        original.status = AssignmentStatus.COMPLETED
        ledger = InMemoryAssignmentLedger([original])
        optimizer = make_optimizer(directory, catalog, ledger)

        with pytest.raises(InvalidTransitionError):
            optimizer.create_replacement(1, 2, "Sick")
