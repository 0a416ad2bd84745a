"""Staffing heuristics built on top of the schedule validator.

The optimizer answers three questions for a manager:

- Who could work this operation? (:meth:`StaffingOptimizer.find_available_staff`)
- How many people does it need, with which skills?
  (:meth:`StaffingOptimizer.get_optimal_staffing`)
- Which crew should we pick? (:meth:`StaffingOptimizer.optimize_staffing`)

It also swaps an assigned staff member for a replacement
(:meth:`StaffingOptimizer.create_replacement`), cancelling the original and
creating the replacement as one unit.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from groundops.domain.models import (
    Assignment,
    AssignmentStatus,
    Operation,
    StaffMember,
    UserRole,
)
from groundops.domain.permissions import Permission, has_permission
from groundops.domain.policies import (
    DefaultRecommendationPolicy,
    DefaultStaffingPolicy,
    RecommendationPolicy,
    StaffingPolicy,
)
from groundops.errors import (
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ValidationFailedError,
)
from groundops.notifications import Notifier, notify_new_assignment
from groundops.scheduling.crew_solver import CrewSelector, CrewSolverConfig, CrewSolverResult
from groundops.validation.validator import ScheduleValidator

logger = logging.getLogger(__name__)


@dataclass
class StaffingPlan:
    """Staffing requirements for one operation.

    Attributes:
        operation_id: The operation planned for.
        base_staff: Staff needed for the passenger volume alone.
        minimum_staff: Staff required (never below the station minimum).
        recommended_staff: Minimum plus contingency.
        skills_needed: Skills the operation calls for.
        available_staff: Eligible staff with every needed skill, best first.
    """

    operation_id: int
    base_staff: int
    minimum_staff: int
    recommended_staff: int
    skills_needed: list[str] = field(default_factory=list)
    available_staff: list[StaffMember] = field(default_factory=list)


@dataclass
class RecommendedStaff:
    """A staff member proposed for a crew, with their recommendation score."""

    staff: StaffMember
    score: int


@dataclass
class StaffingOptimization:
    """Outcome of crew optimization for one operation."""

    plan: StaffingPlan
    operation: Operation
    available: int
    required: int
    shortage: int
    recommended_assignments: list[RecommendedStaff] = field(default_factory=list)
    uncovered_skills: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)
    solver_status: str = ""

    @property
    def minimum_staff_met(self) -> bool:
        return self.shortage == 0


class StaffingOptimizer:
    """Finds, ranks and selects staff for operations.

    Example:
        >>> optimizer = StaffingOptimizer(validator, notifier=notifier)
        >>> plan = optimizer.get_optimal_staffing(42)
        >>> plan.minimum_staff, plan.recommended_staff
        (5, 6)
    """

    def __init__(
        self,
        validator: ScheduleValidator,
        staffing_policy: Optional[StaffingPolicy] = None,
        recommendation_policy: Optional[RecommendationPolicy] = None,
        notifier: Optional[Notifier] = None,
        solver_config: Optional[CrewSolverConfig] = None,
    ):
        self.validator = validator
        self.staffing_policy = staffing_policy or DefaultStaffingPolicy()
        self.recommendation_policy = recommendation_policy or DefaultRecommendationPolicy()
        self.notifier = notifier
        self.crew_selector = CrewSelector(
            score=self.recommendation_score,
            config=solver_config,
        )

    @property
    def directory(self):
        return self.validator.directory

    @property
    def catalog(self):
        return self.validator.catalog

    @property
    def ledger(self):
        return self.validator.ledger

    def _get_operation(self, operation_id: int) -> Operation:
        operation = self.catalog.get(operation_id)
        if operation is None:
            raise NotFoundError("Operation", operation_id)
        return operation

    def _candidate_pool(self, operation: Operation) -> list[StaffMember]:
        """Staff of the operation's station plus unassigned staff, by id."""
        pool = {s.id: s for s in self.directory.list_by_station(operation.station_id)}
        for staff in self.directory.list_by_station(None):
            pool.setdefault(staff.id, staff)
        return [pool[k] for k in sorted(pool)]

    def find_available_staff(
        self,
        operation_id: int,
        required_skills: Iterable[str] = (),
        exclude_ids: Iterable[int] = (),
    ) -> list[StaffMember]:
        """Find frontline staff who could work an operation.

        A candidate must be active, available, an employee, not excluded,
        hold every required skill and every station certification, work the
        operation's shift window and, when the operation has a duration
        estimate, have no conflicting assignment in that window.

        A requirement is only checked when it is non-empty, and staff whose
        skills, certifications or shifts were never recorded are not
        eliminated by that check.

        Raises:
            NotFoundError: If the operation does not exist.
        """
        operation = self._get_operation(operation_id)
        excluded = set(exclude_ids)
        skills = frozenset(required_skills)
        certifications = operation.station.required_certifications
        shift = self.validator.shift_for(operation.scheduled_time)
        window = operation.window()

        available = []
        for staff in self._candidate_pool(operation):
            if not staff.is_schedulable or staff.role != UserRole.EMPLOYEE:
                continue
            if staff.id in excluded:
                continue
            if skills and staff.skills is not None and not skills <= staff.skills:
                continue
            if (
                certifications
                and staff.certifications is not None
                and not certifications <= staff.certifications
            ):
                continue
            if staff.available_shifts is not None and shift not in staff.available_shifts:
                continue
            if window and self.validator.find_conflicts(staff.id, *window):
                continue
            available.append(staff)

        logger.debug(
            "Operation %s: %d available staff for skills %s",
            operation_id,
            len(available),
            sorted(skills),
        )
        return available

    def recommendation_score(self, staff: StaffMember) -> int:
        return self.recommendation_policy.score(staff)

    def rank_staff(self, staff: Iterable[StaffMember]) -> list[StaffMember]:
        """Sort by recommendation score, highest first; ties go to the lower id."""
        return sorted(staff, key=lambda s: (-self.recommendation_score(s), s.id))

    def get_optimal_staffing(self, operation_id: int) -> StaffingPlan:
        """Compute staffing levels and needed skills for an operation.

        Raises:
            NotFoundError: If the operation does not exist.
        """
        operation = self._get_operation(operation_id)
        policy = self.staffing_policy

        base_staff = policy.base_staff(operation.passenger_count)
        minimum_staff = policy.minimum_staff(operation.station, operation.passenger_count)
        recommended_staff = policy.recommended_staff(minimum_staff)
        skills_needed = policy.skills_needed(operation)

        available = self.find_available_staff(operation_id, skills_needed)

        return StaffingPlan(
            operation_id=operation_id,
            base_staff=base_staff,
            minimum_staff=minimum_staff,
            recommended_staff=recommended_staff,
            skills_needed=skills_needed,
            available_staff=self.rank_staff(available),
        )

    def optimize_staffing(self, operation_id: int) -> StaffingOptimization:
        """Pick a crew for an operation and report any shortfall.

        The pool is every eligible staff member regardless of skills; the
        crew (up to the recommended size) is chosen to cover as many needed
        skills as possible and then to maximise recommendation scores.
        """
        operation = self._get_operation(operation_id)
        plan = self.get_optimal_staffing(operation_id)
        pool = self.rank_staff(self.find_available_staff(operation_id))

        crew: CrewSolverResult = self.crew_selector.select(
            pool, plan.skills_needed, plan.recommended_staff
        )

        available = len(pool)
        shortage = max(0, plan.minimum_staff - available)

        suggestions = []
        if shortage:
            suggestions.append(
                f"Short {shortage} staff for the minimum of {plan.minimum_staff}; "
                "consider staff from other stations or overtime"
            )
        elif available < plan.recommended_staff:
            suggestions.append(
                f"Only {available} staff available; {plan.recommended_staff} "
                "recommended including contingency"
            )
        if crew.uncovered_skills:
            suggestions.append(
                f"No available staff covers: {', '.join(crew.uncovered_skills)}"
            )

        ranked_crew = self.rank_staff(crew.selected)
        return StaffingOptimization(
            plan=plan,
            operation=operation,
            available=available,
            required=plan.minimum_staff,
            shortage=shortage,
            recommended_assignments=[
                RecommendedStaff(staff=s, score=self.recommendation_score(s))
                for s in ranked_crew
            ],
            uncovered_skills=crew.uncovered_skills,
            suggestions=suggestions,
            solver_status=crew.status,
        )

    def create_replacement(
        self,
        original_assignment_id: int,
        replacement_staff_id: int,
        reason: str,
        requested_by: Optional[StaffMember] = None,
    ) -> Assignment:
        """Replace the staff member on an assignment.

        The replacement is validated for the original's operation and window
        first; on any blocking error nothing is changed. Cancelling the
        original and saving the replacement happen in one ledger
        transaction, under the replacement staff member's lock, with the
        overlap check and the original's status repeated inside it.

        Raises:
            NotFoundError: If the original assignment does not exist.
            PermissionDeniedError: If ``requested_by`` may not update assignments.
            InvalidTransitionError: If the original is already finished or cancelled.
            ValidationFailedError: If the replacement is not valid.
        """
        if requested_by is not None and not has_permission(
            requested_by.role, Permission.UPDATE_ASSIGNMENT
        ):
            raise PermissionDeniedError(requested_by.role, Permission.UPDATE_ASSIGNMENT)

        original = self.ledger.get(original_assignment_id)
        if original is None:
            raise NotFoundError("Assignment", original_assignment_id)
        if original.status.is_terminal:
            raise InvalidTransitionError(original.id, original.status, AssignmentStatus.CANCELLED)

        validation = self.validator.validate(
            replacement_staff_id,
            original.operation_id,
            original.start_time,
            original.end_time,
        )
        if not validation.is_valid:
            logger.warning(
                "Replacement of assignment %s by staff %s rejected: %s",
                original.id,
                replacement_staff_id,
                validation.error_messages,
            )
            raise ValidationFailedError(validation.error_messages, "Cannot create replacement")

        requester = f"staff {requested_by.id}" if requested_by is not None else "system"
        replacement = Assignment(
            staff_id=replacement_staff_id,
            operation_id=original.operation_id,
            function=original.function,
            start_time=original.start_time,
            end_time=original.end_time,
            cost=original.cost,
            is_replacement=True,
            replacement_for_staff_id=original.staff_id,
            notes=f"Replacement for staff {original.staff_id}. Reason: {reason}",
        )

        with self.ledger.staff_lock(replacement_staff_id), self.ledger.transaction():
            recheck = self.validator.validate_overlap_only(
                replacement_staff_id, original.start_time, original.end_time
            )
            if not recheck.is_valid:
                raise ValidationFailedError(recheck.error_messages, "Cannot create replacement")
            current = self.ledger.get(original.id)
            if current is None:
                raise NotFoundError("Assignment", original.id)
            if current.status.is_terminal:
                raise InvalidTransitionError(
                    original.id, current.status, AssignmentStatus.CANCELLED
                )
            self.ledger.cancel(
                original.id,
                f"Replaced by staff {replacement_staff_id} (requested by {requester}). "
                f"Reason: {reason}",
            )
            saved = self.ledger.save(replacement)

        logger.info(
            "Assignment %s replaced: staff %s -> %s (new assignment %s)",
            original.id,
            original.staff_id,
            replacement_staff_id,
            saved.id,
        )
        notify_new_assignment(self.notifier, saved, self.catalog.get(saved.operation_id))
        return saved
