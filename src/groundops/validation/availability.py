"""Batch availability checks for candidate pools.

Stricter than :class:`ScheduleValidator`: a shift mismatch or a weekly-hour
overflow disqualifies a candidate here instead of producing a warning. This
is what replacement searches use, where there is no manager override.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable

from groundops.domain.models import Assignment, hours_between
from groundops.validation.validator import ScheduleValidator

logger = logging.getLogger(__name__)


@dataclass
class AvailabilityResult:
    """Availability of one staff member for a window."""

    staff_id: int
    is_available: bool
    conflicting_assignments: list[Assignment] = field(default_factory=list)
    reasons: list[str] = field(default_factory=list)


class AvailabilityChecker:
    """Checks a list of staff members against a time window.

    Each staff member is checked independently, reading only their own
    assignments, so results do not depend on the order of ``staff_ids``.
    """

    def __init__(self, validator: ScheduleValidator):
        self.validator = validator

    @property
    def directory(self):
        return self.validator.directory

    def check_availability(
        self,
        staff_ids: Iterable[int],
        start_time: datetime,
        end_time: datetime,
    ) -> list[AvailabilityResult]:
        """Check every staff member in ``staff_ids`` for the window.

        Returns:
            One AvailabilityResult per id, in input order.
        """
        return [self.check_one(staff_id, start_time, end_time) for staff_id in staff_ids]

    def check_one(
        self,
        staff_id: int,
        start_time: datetime,
        end_time: datetime,
    ) -> AvailabilityResult:
        staff = self.directory.get(staff_id)
        if staff is None or not staff.is_schedulable:
            return AvailabilityResult(
                staff_id=staff_id,
                is_available=False,
                reasons=["Staff member not found, inactive or unavailable"],
            )

        reasons: list[str] = []

        conflicts = self.validator.find_conflicts(staff_id, start_time, end_time)
        if conflicts:
            reasons.append("Has conflicting assignments")

        shift = self.validator.shift_for(start_time)
        if not staff.works_shift(shift):
            reasons.append(f"Not available for {shift.value} shift")

        duration = hours_between(start_time, end_time)
        weekly = self.validator.weekly_completed_hours(staff_id, start_time)
        if weekly + duration > staff.max_weekly_hours:
            reasons.append("Would exceed maximum weekly hours")

        return AvailabilityResult(
            staff_id=staff_id,
            is_available=not reasons,
            conflicting_assignments=conflicts,
            reasons=reasons,
        )

    def available_ids(
        self,
        staff_ids: Iterable[int],
        start_time: datetime,
        end_time: datetime,
    ) -> list[int]:
        """Ids from ``staff_ids`` that passed every check, in input order."""
        results = self.check_availability(staff_ids, start_time, end_time)
        available = [r.staff_id for r in results if r.is_available]
        logger.debug("%d of %d staff available", len(available), len(results))
        return available
