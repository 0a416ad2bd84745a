"""Guarded creation and lifecycle changes of assignments."""

import logging
from datetime import datetime
from typing import Callable, Optional

from groundops.domain.models import Assignment, AssignmentStatus, StaffMember, hours_between
from groundops.domain.permissions import Permission, has_permission
from groundops.errors import (
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ValidationFailedError,
)
from groundops.notifications import Notifier, notify_new_assignment
from groundops.validation.validator import ScheduleValidator

logger = logging.getLogger(__name__)

_S = AssignmentStatus

# Allowed next statuses for each status; terminal statuses have none.
TRANSITIONS: dict[AssignmentStatus, frozenset[AssignmentStatus]] = {
    _S.SCHEDULED: frozenset({_S.CONFIRMED, _S.ABSENT, _S.CANCELLED}),
    _S.CONFIRMED: frozenset({_S.IN_PROGRESS, _S.ABSENT, _S.CANCELLED}),
    _S.IN_PROGRESS: frozenset({_S.COMPLETED, _S.ABSENT, _S.CANCELLED}),
    _S.COMPLETED: frozenset(),
    _S.ABSENT: frozenset(),
    _S.CANCELLED: frozenset(),
}


def can_transition(current: AssignmentStatus, target: AssignmentStatus) -> bool:
    return target in TRANSITIONS[current]


class AssignmentBooker:
    """Creates assignments and moves them through their lifecycle.

    Every write runs the full validator first and repeats the overlap check
    under the staff member's lock inside a ledger transaction, so two
    concurrent bookings for the same person cannot both land.
    """

    def __init__(
        self,
        validator: ScheduleValidator,
        notifier: Optional[Notifier] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.validator = validator
        self.notifier = notifier
        self.clock = clock

    @property
    def ledger(self):
        return self.validator.ledger

    def _now_like(self, moment: datetime) -> datetime:
        """Current time, aware or naive to match ``moment``.

        Naive values are local time on both sides.
        """
        now = self.clock()
        if moment.tzinfo is not None and now.tzinfo is None:
            return now.astimezone()
        if moment.tzinfo is None and now.tzinfo is not None:
            return now.astimezone().replace(tzinfo=None)
        return now

    def _require(self, requested_by: Optional[StaffMember], permission: Permission) -> None:
        if requested_by is not None and not has_permission(requested_by.role, permission):
            raise PermissionDeniedError(requested_by.role, permission)

    def book(
        self,
        staff_id: int,
        operation_id: int,
        start_time: datetime,
        end_time: datetime,
        function: str = "",
        cost: float = 0.0,
        requested_by: Optional[StaffMember] = None,
        notes: Optional[str] = None,
    ) -> Assignment:
        """Create a SCHEDULED assignment after validating it.

        Raises:
            PermissionDeniedError: If ``requested_by`` may not create assignments.
            ValidationFailedError: With every blocking reason, if rejected.
        """
        self._require(requested_by, Permission.CREATE_ASSIGNMENT)

        if start_time < self._now_like(start_time):
            raise ValidationFailedError(["Start time cannot be in the past"])

        validation = self.validator.validate(staff_id, operation_id, start_time, end_time)
        if not validation.is_valid:
            logger.warning(
                "Booking staff %s on operation %s rejected: %s",
                staff_id,
                operation_id,
                validation.error_messages,
            )
            raise ValidationFailedError(validation.error_messages)
        for warning in validation.warnings:
            logger.info("Booking staff %s on operation %s: %s", staff_id, operation_id, warning)

        assignment = Assignment(
            staff_id=staff_id,
            operation_id=operation_id,
            start_time=start_time,
            end_time=end_time,
            function=function,
            cost=cost,
            notes=notes,
        )
        with self.ledger.staff_lock(staff_id), self.ledger.transaction():
            recheck = self.validator.validate_overlap_only(staff_id, start_time, end_time)
            if not recheck.is_valid:
                raise ValidationFailedError(recheck.error_messages)
            saved = self.ledger.save(assignment)

        logger.info("Booked %r", saved)
        notify_new_assignment(
            self.notifier, saved, self.validator.catalog.get(operation_id)
        )
        return saved

    def _get(self, assignment_id: int) -> Assignment:
        assignment = self.ledger.get(assignment_id)
        if assignment is None:
            raise NotFoundError("Assignment", assignment_id)
        return assignment

    def transition(
        self,
        assignment_id: int,
        status: AssignmentStatus,
        requested_by: Optional[StaffMember] = None,
    ) -> Assignment:
        """Move an assignment to ``status`` if the lifecycle allows it.

        Raises:
            NotFoundError: If the assignment does not exist.
            PermissionDeniedError: If ``requested_by`` may not update assignments.
            InvalidTransitionError: If the move is not allowed.
        """
        self._require(requested_by, Permission.UPDATE_ASSIGNMENT)
        with self.ledger.transaction():
            assignment = self._get(assignment_id)
            if not can_transition(assignment.status, status):
                raise InvalidTransitionError(assignment_id, assignment.status, status)
            saved = self.ledger.save(assignment.copy(status=status))
        logger.info("Assignment %s: %s -> %s", assignment_id, assignment.status.value, status.value)
        return saved

    def record_completion(
        self,
        assignment_id: int,
        actual_start: datetime,
        actual_end: datetime,
        requested_by: Optional[StaffMember] = None,
    ) -> Assignment:
        """Record actual times, mark COMPLETED and compute overtime.

        Overtime is the actual length beyond the scheduled length, never
        negative, rounded to 2 decimals.

        Raises:
            ValueError: If ``actual_start`` is not before ``actual_end``.
            InvalidTransitionError: If the assignment cannot be completed.
        """
        if actual_start >= actual_end:
            raise ValueError("Actual start must be before actual end")
        self._require(requested_by, Permission.UPDATE_ASSIGNMENT)

        with self.ledger.transaction():
            assignment = self._get(assignment_id)
            if not can_transition(assignment.status, AssignmentStatus.COMPLETED):
                raise InvalidTransitionError(
                    assignment_id, assignment.status, AssignmentStatus.COMPLETED
                )
            overtime = max(0.0, hours_between(actual_start, actual_end) - assignment.duration_hours)
            saved = self.ledger.save(
                assignment.copy(
                    status=AssignmentStatus.COMPLETED,
                    actual_start_time=actual_start,
                    actual_end_time=actual_end,
                    overtime_hours=round(overtime, 2),
                )
            )

        if saved.overtime_hours:
            logger.info("Assignment %s completed with %.2fh overtime", assignment_id, saved.overtime_hours)
        return saved
