"""Domain models for the ground-operations staffing core.

This module contains the data structures shared by the validator, the
availability checker and the staffing optimizer: staff members, stations,
operations, assignments and the shift-window buckets used to match staff
availability to operation timing.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional


class UserRole(Enum):
    """Roles a user can hold in the system."""

    EMPLOYEE = "employee"  # Frontline ground worker
    SUPERVISOR = "supervisor"
    MANAGER = "manager"  # Station manager
    PRESIDENT = "president"  # Read-only oversight of all stations
    ADMIN = "admin"  # Technical administrator


class EmployeeCategory(Enum):
    """Work areas an employee can be qualified for."""

    BAGGAGE = "baggage"
    FUEL = "fuel"
    RAMP = "ramp"
    CARGO = "cargo"
    CLEANING = "cleaning"
    SECURITY = "security"
    MAINTENANCE = "maintenance"
    OPERATIONS = "operations"
    CUSTOMER_SERVICE = "customer_service"
    CATERING = "catering"
    PUSHBACK = "pushback"


class ShiftType(Enum):
    """Hour-of-day buckets used to match availability to operation timing.

    MORNING   06:00 - 14:00
    AFTERNOON 14:00 - 22:00
    NIGHT     22:00 - 02:00 (wraps past midnight)
    DAWN      02:00 - 06:00
    """

    MORNING = "morning"
    AFTERNOON = "afternoon"
    NIGHT = "night"
    DAWN = "dawn"


class AssignmentStatus(Enum):
    """Lifecycle status of an assignment."""

    SCHEDULED = "SCHEDULED"
    CONFIRMED = "CONFIRMED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    ABSENT = "ABSENT"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


# Statuses that occupy a staff member's time window.
ACTIVE_STATUSES = frozenset(
    {
        AssignmentStatus.SCHEDULED,
        AssignmentStatus.CONFIRMED,
        AssignmentStatus.IN_PROGRESS,
    }
)

TERMINAL_STATUSES = frozenset(
    {
        AssignmentStatus.COMPLETED,
        AssignmentStatus.ABSENT,
        AssignmentStatus.CANCELLED,
    }
)


class FlightType(Enum):
    """Kind of flight an operation serves."""

    DOMESTIC = "domestic"
    INTERNATIONAL = "international"
    CARGO = "cargo"
    PRIVATE = "private"


class OperationType(Enum):
    """Direction of a ground operation."""

    ARRIVAL = "arrival"
    DEPARTURE = "departure"


class OperationStatus(Enum):
    """Status of a flight operation."""

    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


def hours_between(start: datetime, end: datetime) -> float:
    """Signed length of ``[start, end)`` in hours."""
    return (end - start).total_seconds() / 3600


def intervals_overlap(
    start_a: datetime,
    end_a: datetime,
    start_b: datetime,
    end_b: datetime,
) -> bool:
    """Half-open interval intersection: ``[s1, e1)`` meets ``[s2, e2)``."""
    return start_a < end_b and end_a > start_b


def week_bounds(reference: datetime) -> tuple[datetime, datetime]:
    """Get the Sunday-start week containing ``reference``.

    Returns:
        Tuple of (Sunday 00:00:00, Saturday 23:59:59.999999).
    """
    # datetime.weekday() is Monday=0 .. Sunday=6
    days_since_sunday = (reference.weekday() + 1) % 7
    week_start = (reference - timedelta(days=days_since_sunday)).replace(
        hour=0, minute=0, second=0, microsecond=0
    )
    week_end = week_start + timedelta(days=7) - timedelta(microseconds=1)
    return week_start, week_end


@dataclass
class Station:
    """A station (terminal, platform, cargo area...) that hosts operations.

    Attributes:
        id: Unique identifier.
        name: Display name.
        code: Short unique station code.
        minimum_staff: Minimum staff any operation here needs.
        maximum_staff: Maximum staff the station can hold.
        required_certifications: Certifications every assigned staff must hold.
        is_active: Whether the station is in service.
    """

    id: int
    name: str
    code: Optional[str] = None
    minimum_staff: int = 1
    maximum_staff: int = 10
    required_certifications: frozenset[str] = field(default_factory=frozenset)
    is_active: bool = True


@dataclass
class StaffMember:
    """A staff member who can be placed on operations.

    ``certifications``, ``skills`` and ``available_shifts`` are ``None`` when
    the data was never recorded for this person, which is distinct from an
    empty set (recorded as having none).

    Attributes:
        id: Unique identifier.
        name: Display name.
        role: System role.
        is_active: False once deactivated; staff are never deleted.
        is_available: Current availability toggle.
        station_id: Station the staff member belongs to, or None if unassigned.
        certifications: Certifications held.
        skills: Special skills.
        available_shifts: Shift buckets the staff member can work.
        categories: Work areas.
        max_weekly_hours: Weekly hour cap.
        max_daily_hours: Cap on a single assignment's length.
        supervisor_id: Direct supervisor, if any.
    """

    id: int
    name: str
    role: UserRole = UserRole.EMPLOYEE
    is_active: bool = True
    is_available: bool = True
    station_id: Optional[int] = None
    certifications: Optional[frozenset[str]] = None
    skills: Optional[frozenset[str]] = None
    available_shifts: Optional[frozenset[ShiftType]] = None
    categories: frozenset[EmployeeCategory] = field(default_factory=frozenset)
    max_weekly_hours: float = 40.0
    max_daily_hours: float = 8.0
    supervisor_id: Optional[int] = None

    @property
    def is_schedulable(self) -> bool:
        """Active and currently toggled available."""
        return self.is_active and self.is_available

    def missing_certifications(self, required: frozenset[str]) -> set[str]:
        """Certifications in ``required`` this staff member does not hold."""
        return set(required) - set(self.certifications or ())

    def works_shift(self, shift: ShiftType) -> bool:
        return shift in (self.available_shifts or ())


@dataclass
class Operation:
    """A flight or ground operation that needs staffing.

    Attributes:
        id: Unique identifier.
        flight_number: Flight designator.
        scheduled_time: Scheduled start of the operation.
        station: Resolved station, carrying staffing requirements.
        passenger_count: Expected passengers.
        flight_type: Domestic, international, cargo or private.
        operation_type: Arrival or departure.
        estimated_duration: Expected length in hours, if known.
        status: Operation status.
        name: Optional descriptive name.
    """

    id: int
    flight_number: str
    scheduled_time: datetime
    station: Station
    passenger_count: int = 0
    flight_type: FlightType = FlightType.DOMESTIC
    operation_type: OperationType = OperationType.ARRIVAL
    estimated_duration: Optional[float] = None
    status: OperationStatus = OperationStatus.SCHEDULED
    name: str = ""

    @property
    def station_id(self) -> int:
        return self.station.id

    def window(self) -> Optional[tuple[datetime, datetime]]:
        """The operation's working window, or None without a duration estimate."""
        if not self.estimated_duration:
            return None
        end = self.scheduled_time + timedelta(hours=self.estimated_duration)
        return self.scheduled_time, end


@dataclass
class Assignment:
    """A staff member placed on an operation for a time window.

    Attributes:
        id: Unique identifier (None until saved).
        staff_id: Assigned staff member.
        operation_id: Operation being staffed.
        function: Function performed (e.g. "baggage supervisor").
        start_time: Start of the window (inclusive).
        end_time: End of the window (exclusive).
        cost: Cost of the assignment.
        status: Lifecycle status.
        is_replacement: True if created to substitute a cancelled assignment.
        replacement_for_staff_id: Staff member being replaced.
        notes: Free-text audit notes.
        actual_start_time: Recorded clock-in time.
        actual_end_time: Recorded clock-out time.
        overtime_hours: Hours worked beyond the scheduled window.
    """

    staff_id: int
    operation_id: int
    start_time: datetime
    end_time: datetime
    function: str = ""
    cost: float = 0.0
    status: AssignmentStatus = AssignmentStatus.SCHEDULED
    is_replacement: bool = False
    replacement_for_staff_id: Optional[int] = None
    notes: Optional[str] = None
    actual_start_time: Optional[datetime] = None
    actual_end_time: Optional[datetime] = None
    overtime_hours: Optional[float] = None
    id: Optional[int] = None

    @property
    def duration_hours(self) -> float:
        return hours_between(self.start_time, self.end_time)

    @property
    def is_active(self) -> bool:
        """Whether this assignment still occupies the staff member's time."""
        return self.status in ACTIVE_STATUSES

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return intervals_overlap(self.start_time, self.end_time, start, end)

    def copy(self, **changes) -> "Assignment":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def __repr__(self) -> str:
        return (
            f"Assignment(id={self.id}, staff={self.staff_id}, op={self.operation_id}, "
            f"{self.start_time:%Y-%m-%d %H:%M}-{self.end_time:%H:%M}, {self.status.value})"
        )
