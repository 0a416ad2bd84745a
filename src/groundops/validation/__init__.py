"""Validation module for candidate assignments and staff availability."""

from groundops.validation.availability import AvailabilityChecker, AvailabilityResult
from groundops.validation.validator import (
    ScheduleValidator,
    ValidationError,
    ValidationErrorType,
    ValidationResult,
)

__all__ = [
    "AvailabilityChecker",
    "AvailabilityResult",
    "ScheduleValidator",
    "ValidationError",
    "ValidationErrorType",
    "ValidationResult",
]
