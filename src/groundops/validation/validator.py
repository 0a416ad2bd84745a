"""Validation of candidate assignments.

This module is the single source of truth for whether a staff member may be
placed on an operation for a time window. Blocking problems are reported as
errors, advisory ones as warnings; warnings never make a candidate invalid.

Validation fails closed: if a check cannot be completed because of an
unexpected fault, the result carries one internal error instead of a
partial (and possibly falsely valid) answer.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional

from groundops.domain.models import (
    ACTIVE_STATUSES,
    Assignment,
    AssignmentStatus,
    Operation,
    ShiftType,
    StaffMember,
    hours_between,
    week_bounds,
)
from groundops.domain.policies import DefaultShiftWindowPolicy, ShiftWindowPolicy
from groundops.store.base import AssignmentLedger, OperationCatalog, StaffDirectory

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal error while validating the assignment; it was not approved"


class ValidationErrorType(Enum):
    """Types of validation errors."""

    STAFF_NOT_FOUND = "staff_not_found"
    OPERATION_NOT_FOUND = "operation_not_found"
    INVALID_TIME_RANGE = "invalid_time_range"
    MAX_DAILY_HOURS_EXCEEDED = "max_daily_hours_exceeded"
    OVERLAPPING_ASSIGNMENT = "overlapping_assignment"
    MISSING_CERTIFICATIONS = "missing_certifications"
    INTERNAL_ERROR = "internal_error"


@dataclass
class ValidationError:
    """A single blocking validation error."""

    error_type: ValidationErrorType
    message: str
    staff_id: Optional[int] = None
    details: dict = field(default_factory=dict)

    def __str__(self) -> str:
        parts = [f"[{self.error_type.value}]"]
        if self.staff_id is not None:
            parts.append(f"Staff {self.staff_id}:")
        parts.append(self.message)
        return " ".join(parts)


@dataclass
class ValidationResult:
    """Result of validating a candidate assignment."""

    is_valid: bool
    errors: list[ValidationError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def add_error(self, error: ValidationError) -> None:
        """Add an error and mark as invalid."""
        self.errors.append(error)
        self.is_valid = False

    def add_warning(self, warning: str) -> None:
        """Add a warning (doesn't affect validity)."""
        self.warnings.append(warning)

    @property
    def error_messages(self) -> list[str]:
        """Plain error messages, suitable for showing to a user."""
        return [e.message for e in self.errors]

    def has_error(self, error_type: ValidationErrorType) -> bool:
        return any(e.error_type == error_type for e in self.errors)


class ScheduleValidator:
    """Validates candidate assignments against all staffing rules.

    Checks, in order:
    1. Staff exists and is active (short-circuits).
    2. Operation exists (short-circuits).
    3. Start is before end.
    4. Duration does not exceed the staff member's daily cap.
    5. No overlapping active assignment.
    6. Weekly hours stay within the cap (warning only).
    7. Start falls in one of the staff member's shift windows (warning only).
    8. Staff member holds every certification the station requires.

    Example:
        >>> validator = ScheduleValidator(directory, catalog, ledger)
        >>> result = validator.validate(7, 42, start, end)
        >>> if not result.is_valid:
        ...     for error in result.errors:
        ...         print(error)
    """

    def __init__(
        self,
        directory: StaffDirectory,
        catalog: OperationCatalog,
        ledger: AssignmentLedger,
        shift_policy: Optional[ShiftWindowPolicy] = None,
        overlap_statuses: Iterable[AssignmentStatus] = ACTIVE_STATUSES,
    ):
        self.directory = directory
        self.catalog = catalog
        self.ledger = ledger
        self.shift_policy = shift_policy or DefaultShiftWindowPolicy()
        self.overlap_statuses = frozenset(overlap_statuses)

    def validate(
        self,
        staff_id: int,
        operation_id: int,
        start_time: datetime,
        end_time: datetime,
    ) -> ValidationResult:
        """Validate placing a staff member on an operation for a window.

        Args:
            staff_id: Candidate staff member.
            operation_id: Operation to staff.
            start_time: Start of the window.
            end_time: End of the window.

        Returns:
            ValidationResult with is_valid flag, errors and warnings.
        """
        result = ValidationResult(is_valid=True)
        try:
            self._run_checks(staff_id, operation_id, start_time, end_time, result)
        except Exception:
            logger.exception(
                "Validation of staff %s for operation %s failed internally",
                staff_id,
                operation_id,
            )
            result = ValidationResult(is_valid=False)
            result.add_error(
                ValidationError(
                    error_type=ValidationErrorType.INTERNAL_ERROR,
                    message=INTERNAL_ERROR_MESSAGE,
                    staff_id=staff_id,
                )
            )

        logger.debug(
            "Validated staff %s for operation %s: valid=%s errors=%d warnings=%d",
            staff_id,
            operation_id,
            result.is_valid,
            len(result.errors),
            len(result.warnings),
        )
        return result

    def _run_checks(
        self,
        staff_id: int,
        operation_id: int,
        start_time: datetime,
        end_time: datetime,
        result: ValidationResult,
    ) -> None:
        staff = self.directory.get(staff_id)
        if staff is None or not staff.is_active:
            result.add_error(
                ValidationError(
                    error_type=ValidationErrorType.STAFF_NOT_FOUND,
                    message="Staff member not found or inactive",
                    staff_id=staff_id,
                )
            )
            return

        operation = self.catalog.get(operation_id)
        if operation is None:
            result.add_error(
                ValidationError(
                    error_type=ValidationErrorType.OPERATION_NOT_FOUND,
                    message="Operation not found",
                    staff_id=staff_id,
                    details={"operation_id": operation_id},
                )
            )
            return

        # Check the window itself
        if start_time >= end_time:
            result.add_error(
                ValidationError(
                    error_type=ValidationErrorType.INVALID_TIME_RANGE,
                    message="Start time must be before end time",
                    staff_id=staff_id,
                )
            )

        duration = hours_between(start_time, end_time)
        if duration > staff.max_daily_hours:
            result.add_error(
                ValidationError(
                    error_type=ValidationErrorType.MAX_DAILY_HOURS_EXCEEDED,
                    message=(
                        f"Duration {duration:g}h exceeds maximum daily hours "
                        f"({staff.max_daily_hours:g}h)"
                    ),
                    staff_id=staff_id,
                    details={"duration_hours": duration, "max_daily_hours": staff.max_daily_hours},
                )
            )

        self._check_overlap(staff_id, start_time, end_time, result)

        weekly = self.weekly_completed_hours(staff_id, start_time)
        if weekly + duration > staff.max_weekly_hours:
            result.add_warning(
                f"Assignment would exceed maximum weekly hours ({staff.max_weekly_hours:g}h): "
                f"{weekly:g}h completed this week + {duration:g}h"
            )

        shift = self.shift_for(start_time)
        if not staff.works_shift(shift):
            result.add_warning(f"Staff member is not available for {shift.value} shifts")

        self._check_certifications(staff, operation, result)

    def _check_overlap(
        self,
        staff_id: int,
        start_time: datetime,
        end_time: datetime,
        result: ValidationResult,
    ) -> None:
        conflicts = self.find_conflicts(staff_id, start_time, end_time)
        if conflicts:
            result.add_error(
                ValidationError(
                    error_type=ValidationErrorType.OVERLAPPING_ASSIGNMENT,
                    message="Staff member is already assigned in that window",
                    staff_id=staff_id,
                    details={"conflicting_assignment_ids": [a.id for a in conflicts]},
                )
            )

    def _check_certifications(
        self,
        staff: StaffMember,
        operation: Operation,
        result: ValidationResult,
    ) -> None:
        required = operation.station.required_certifications
        if not required:
            return
        missing = staff.missing_certifications(required)
        if missing:
            result.add_error(
                ValidationError(
                    error_type=ValidationErrorType.MISSING_CERTIFICATIONS,
                    message=f"Missing required certifications: {', '.join(sorted(missing))}",
                    staff_id=staff.id,
                    details={"missing": sorted(missing)},
                )
            )

    def validate_overlap_only(
        self,
        staff_id: int,
        start_time: datetime,
        end_time: datetime,
    ) -> ValidationResult:
        """Run only the overlap check.

        Used to re-validate inside the transaction that performs the insert.
        Unlike :meth:`validate`, storage errors propagate so the enclosing
        transaction rolls back.
        """
        result = ValidationResult(is_valid=True)
        self._check_overlap(staff_id, start_time, end_time, result)
        return result

    def find_conflicts(
        self,
        staff_id: int,
        start_time: datetime,
        end_time: datetime,
    ) -> list[Assignment]:
        """Active assignments of a staff member that intersect the window."""
        return self.ledger.find_overlapping(
            staff_id, start_time, end_time, self.overlap_statuses
        )

    def weekly_completed_hours(self, staff_id: int, reference: datetime) -> float:
        """Hours of COMPLETED work in the Sunday-start week containing ``reference``."""
        week_start, week_end = week_bounds(reference)
        return self.ledger.sum_completed_hours(staff_id, week_start, week_end)

    def shift_for(self, moment: datetime) -> ShiftType:
        return self.shift_policy.shift_for(moment)
