"""Domain models and business rules for ground-operations staffing."""

from groundops.domain.builders import (
    build_assignment,
    build_operation,
    build_staff_member,
    build_station,
    parse_datetime,
)
from groundops.domain.models import (
    ACTIVE_STATUSES,
    Assignment,
    AssignmentStatus,
    EmployeeCategory,
    FlightType,
    Operation,
    OperationStatus,
    OperationType,
    ShiftType,
    StaffMember,
    Station,
    UserRole,
    hours_between,
    intervals_overlap,
    week_bounds,
)
from groundops.domain.permissions import (
    Permission,
    can_access,
    has_permission,
    permissions_for,
)
from groundops.domain.policies import (
    DefaultRecommendationPolicy,
    DefaultShiftWindowPolicy,
    DefaultStaffingPolicy,
    RecommendationPolicy,
    ShiftWindowPolicy,
    StaffingPolicy,
)

__all__ = [
    # Models
    "ACTIVE_STATUSES",
    "Assignment",
    "AssignmentStatus",
    "EmployeeCategory",
    "FlightType",
    "Operation",
    "OperationStatus",
    "OperationType",
    "ShiftType",
    "StaffMember",
    "Station",
    "UserRole",
    "hours_between",
    "intervals_overlap",
    "week_bounds",
    # Builders
    "build_assignment",
    "build_operation",
    "build_staff_member",
    "build_station",
    "parse_datetime",
    # Permissions
    "Permission",
    "can_access",
    "has_permission",
    "permissions_for",
    # Policies
    "DefaultRecommendationPolicy",
    "DefaultShiftWindowPolicy",
    "DefaultStaffingPolicy",
    "RecommendationPolicy",
    "ShiftWindowPolicy",
    "StaffingPolicy",
]
