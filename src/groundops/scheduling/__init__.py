"""Staffing optimization, crew selection and assignment booking."""

from groundops.scheduling.booking import TRANSITIONS, AssignmentBooker, can_transition
from groundops.scheduling.crew_solver import CrewSelector, CrewSolverConfig, CrewSolverResult
from groundops.scheduling.optimizer import (
    RecommendedStaff,
    StaffingOptimization,
    StaffingOptimizer,
    StaffingPlan,
)

__all__ = [
    # Optimizer
    "StaffingOptimizer",
    "StaffingPlan",
    "StaffingOptimization",
    "RecommendedStaff",
    # Crew selection
    "CrewSelector",
    "CrewSolverConfig",
    "CrewSolverResult",
    # Booking
    "AssignmentBooker",
    "TRANSITIONS",
    "can_transition",
]
