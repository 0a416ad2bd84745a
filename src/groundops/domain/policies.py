"""Policy definitions for staffing rules.

This module contains configurable policies that define business rules for
shift windows, staffing levels and staff recommendation. Policies are kept
separate from the validator and optimizer to allow independent testing and
easy modification.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime

from groundops.domain.models import (
    FlightType,
    Operation,
    OperationType,
    ShiftType,
    StaffMember,
    Station,
    UserRole,
)


def _ceil_div(numerator: int, denominator: int) -> int:
    """Integer ceiling division."""
    return -(-numerator // denominator)


def _in_circular_range(hour: int, start: int, end: int) -> bool:
    """Check ``hour`` against ``[start, end)`` on a 24-hour clock."""
    if start <= end:
        return start <= hour < end
    return hour >= start or hour < end


class ShiftWindowPolicy(ABC):
    """Abstract base class for mapping times to shift buckets."""

    @abstractmethod
    def shift_for(self, moment: datetime) -> ShiftType:
        """Get the shift bucket a moment falls in, by local hour."""
        pass


class StaffingPolicy(ABC):
    """Abstract base class for staffing level policies."""

    @abstractmethod
    def base_staff(self, passenger_count: int) -> int:
        """Staff needed for the passenger volume alone."""
        pass

    @abstractmethod
    def minimum_staff(self, station: Station, passenger_count: int) -> int:
        """Minimum staff for an operation at a station."""
        pass

    @abstractmethod
    def recommended_staff(self, minimum_staff: int) -> int:
        """Recommended staff including contingency."""
        pass

    @abstractmethod
    def skills_needed(self, operation: Operation) -> list[str]:
        """Skills an operation calls for, in a stable order."""
        pass


class RecommendationPolicy(ABC):
    """Abstract base class for ranking candidate staff."""

    @abstractmethod
    def score(self, staff: StaffMember) -> int:
        """Recommendation score; higher is better."""
        pass


@dataclass
class DefaultShiftWindowPolicy(ShiftWindowPolicy):
    """Default shift window policy.

    Buckets by start hour:
    - MORNING:   06:00 - 14:00
    - AFTERNOON: 14:00 - 22:00
    - NIGHT:     22:00 - 02:00 (wraps past midnight)
    - DAWN:      02:00 - 06:00

    Aware datetimes are converted to local time first; naive ones are
    taken as local already.
    """

    morning_start: int = 6
    afternoon_start: int = 14
    night_start: int = 22
    dawn_start: int = 2

    def shift_for(self, moment: datetime) -> ShiftType:
        if moment.tzinfo is not None:
            moment = moment.astimezone()
        hour = moment.hour
        if _in_circular_range(hour, self.morning_start, self.afternoon_start):
            return ShiftType.MORNING
        if _in_circular_range(hour, self.afternoon_start, self.night_start):
            return ShiftType.AFTERNOON
        if _in_circular_range(hour, self.night_start, self.dawn_start):
            return ShiftType.NIGHT
        return ShiftType.DAWN


@dataclass
class DefaultStaffingPolicy(StaffingPolicy):
    """Default staffing policy.

    - One staff member per 50 passengers (rounded up).
    - Never below the station's minimum.
    - 20% contingency on top of the minimum (rounded up).
    - Flights above 200 passengers need crowd handling skills.

    Percentages are applied in integer arithmetic so that, for example,
    5 staff with 20% contingency is exactly 6.
    """

    passengers_per_staff: int = 50
    contingency_percent: int = 20
    large_flight_threshold: int = 200

    international_skills: tuple[str, ...] = ("customs_handling", "international_procedures")
    large_flight_skills: tuple[str, ...] = ("large_aircraft_handling", "crowd_management")
    departure_skills: tuple[str, ...] = ("departure_procedures", "baggage_loading")
    arrival_skills: tuple[str, ...] = ("arrival_procedures", "baggage_unloading")

    def base_staff(self, passenger_count: int) -> int:
        return _ceil_div(max(0, passenger_count), self.passengers_per_staff)

    def minimum_staff(self, station: Station, passenger_count: int) -> int:
        return max(station.minimum_staff, self.base_staff(passenger_count))

    def recommended_staff(self, minimum_staff: int) -> int:
        return _ceil_div(minimum_staff * (100 + self.contingency_percent), 100)

    def skills_needed(self, operation: Operation) -> list[str]:
        skills: list[str] = []

        if operation.flight_type == FlightType.INTERNATIONAL:
            skills.extend(self.international_skills)

        if operation.passenger_count > self.large_flight_threshold:
            skills.extend(self.large_flight_skills)

        if operation.operation_type == OperationType.DEPARTURE:
            skills.extend(self.departure_skills)
        else:
            skills.extend(self.arrival_skills)

        return skills


@dataclass
class DefaultRecommendationPolicy(RecommendationPolicy):
    """Default recommendation scoring.

    score = role weight + 2 per certification + 1 per skill.
    Supervisor-tier roles weigh more than frontline employees.
    """

    role_weights: dict[UserRole, int] = field(
        default_factory=lambda: {
            UserRole.EMPLOYEE: 1,
            UserRole.SUPERVISOR: 3,
            UserRole.MANAGER: 3,
        }
    )
    certification_weight: int = 2
    skill_weight: int = 1

    def score(self, staff: StaffMember) -> int:
        role_weight = self.role_weights.get(staff.role, 0)
        certifications = len(staff.certifications or ())
        skills = len(staff.skills or ())
        return (
            role_weight
            + self.certification_weight * certifications
            + self.skill_weight * skills
        )
