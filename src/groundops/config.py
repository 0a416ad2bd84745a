"""Configuration for the staffing core.

All tunables live on the policy and solver dataclasses; this module groups
them into one object that can be loaded from JSON, for example::

    {
        "staffing": {"passengers_per_staff": 40, "contingency_percent": 25},
        "recommendation": {"role_weights": {"employee": 1, "supervisor": 4}},
        "shift_windows": {"morning_start": 5},
        "solver": {"time_limit_seconds": 5},
        "overlap_statuses": ["SCHEDULED", "CONFIRMED", "IN_PROGRESS"]
    }

Every section and key is optional; omitted values keep their defaults.
"""

import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Optional, Union

from groundops.domain.models import ACTIVE_STATUSES, AssignmentStatus, UserRole
from groundops.domain.policies import (
    DefaultRecommendationPolicy,
    DefaultShiftWindowPolicy,
    DefaultStaffingPolicy,
)
from groundops.errors import ConfigError
from groundops.notifications import Notifier
from groundops.scheduling.booking import AssignmentBooker
from groundops.scheduling.crew_solver import CrewSolverConfig
from groundops.scheduling.optimizer import StaffingOptimizer
from groundops.store.base import AssignmentLedger, OperationCatalog, StaffDirectory
from groundops.validation.validator import ScheduleValidator

_SECTIONS = ("staffing", "recommendation", "shift_windows", "solver", "overlap_statuses")


@dataclass
class GroundOpsConfig:
    """Policies and solver settings used to build the staffing services."""

    staffing: DefaultStaffingPolicy = field(default_factory=DefaultStaffingPolicy)
    recommendation: DefaultRecommendationPolicy = field(
        default_factory=DefaultRecommendationPolicy
    )
    shift_windows: DefaultShiftWindowPolicy = field(default_factory=DefaultShiftWindowPolicy)
    solver: CrewSolverConfig = field(default_factory=CrewSolverConfig)
    overlap_statuses: frozenset[AssignmentStatus] = ACTIVE_STATUSES

    def __post_init__(self):
        self._check()

    def _check(self) -> None:
        if self.staffing.passengers_per_staff <= 0:
            raise ConfigError("staffing.passengers_per_staff must be positive")
        if self.staffing.contingency_percent < 0:
            raise ConfigError("staffing.contingency_percent must not be negative")
        for name in ("morning_start", "afternoon_start", "night_start", "dawn_start"):
            hour = getattr(self.shift_windows, name)
            if not 0 <= hour <= 23:
                raise ConfigError(f"shift_windows.{name} must be an hour between 0 and 23")
        if self.solver.time_limit_seconds <= 0:
            raise ConfigError("solver.time_limit_seconds must be positive")
        if not self.overlap_statuses:
            raise ConfigError("overlap_statuses must not be empty")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GroundOpsConfig":
        """Build a configuration from a plain dict.

        Raises:
            ConfigError: On unknown sections or keys, or invalid values.
        """
        if not isinstance(data, dict):
            raise ConfigError("Configuration must be a JSON object")
        unknown = set(data) - set(_SECTIONS)
        if unknown:
            raise ConfigError(f"Unknown configuration sections: {', '.join(sorted(unknown))}")

        staffing = _build_section(DefaultStaffingPolicy, data.get("staffing"), "staffing")
        recommendation_values = dict(data.get("recommendation") or {})
        if "role_weights" in recommendation_values:
            recommendation_values["role_weights"] = _parse_role_weights(
                recommendation_values["role_weights"]
            )
        recommendation = _build_section(
            DefaultRecommendationPolicy, recommendation_values, "recommendation"
        )
        shift_windows = _build_section(
            DefaultShiftWindowPolicy, data.get("shift_windows"), "shift_windows"
        )
        solver = _build_section(CrewSolverConfig, data.get("solver"), "solver")

        overlap_statuses = ACTIVE_STATUSES
        if data.get("overlap_statuses") is not None:
            overlap_statuses = _parse_statuses(data["overlap_statuses"])

        return cls(
            staffing=staffing,
            recommendation=recommendation,
            shift_windows=shift_windows,
            solver=solver,
            overlap_statuses=overlap_statuses,
        )

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "GroundOpsConfig":
        """Load a configuration from a JSON file.

        Raises:
            ConfigError: If the file cannot be read or parsed, or is invalid.
        """
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except OSError as e:
            raise ConfigError(f"Cannot read configuration file {path}: {e}") from e
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in configuration file {path}: {e}") from e
        return cls.from_dict(data)

    def create_validator(
        self,
        directory: StaffDirectory,
        catalog: OperationCatalog,
        ledger: AssignmentLedger,
    ) -> ScheduleValidator:
        return ScheduleValidator(
            directory,
            catalog,
            ledger,
            shift_policy=self.shift_windows,
            overlap_statuses=self.overlap_statuses,
        )

    def create_optimizer(
        self,
        validator: ScheduleValidator,
        notifier: Optional[Notifier] = None,
    ) -> StaffingOptimizer:
        return StaffingOptimizer(
            validator,
            staffing_policy=self.staffing,
            recommendation_policy=self.recommendation,
            notifier=notifier,
            solver_config=self.solver,
        )

    def create_booker(
        self,
        validator: ScheduleValidator,
        notifier: Optional[Notifier] = None,
    ) -> AssignmentBooker:
        return AssignmentBooker(validator, notifier=notifier)


def _build_section(cls, values: Optional[dict[str, Any]], section: str):
    if values is None:
        return cls()
    if not isinstance(values, dict):
        raise ConfigError(f"Section '{section}' must be an object")

    known = {f.name: f for f in fields(cls)}
    unknown = set(values) - set(known)
    if unknown:
        raise ConfigError(f"Unknown keys in '{section}': {', '.join(sorted(unknown))}")

    kwargs = {}
    for key, value in values.items():
        default = getattr(cls(), key)
        if isinstance(default, tuple):
            if not isinstance(value, (list, tuple)):
                raise ConfigError(f"{section}.{key} must be a list")
            value = tuple(str(v) for v in value)
        elif isinstance(default, bool):
            if not isinstance(value, bool):
                raise ConfigError(f"{section}.{key} must be true or false")
        elif isinstance(default, (int, float)) and not isinstance(default, bool):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigError(f"{section}.{key} must be a number")
            if isinstance(default, int) and not isinstance(value, int):
                raise ConfigError(f"{section}.{key} must be an integer")
        kwargs[key] = value
    return cls(**kwargs)


def _parse_role_weights(values: Any) -> dict[UserRole, int]:
    if not isinstance(values, dict):
        raise ConfigError("recommendation.role_weights must be an object")
    weights = {}
    for name, weight in values.items():
        try:
            role = UserRole(str(name).lower())
        except ValueError as e:
            raise ConfigError(f"Unknown role in recommendation.role_weights: {name}") from e
        if isinstance(weight, bool) or not isinstance(weight, int):
            raise ConfigError(f"recommendation.role_weights.{name} must be an integer")
        weights[role] = weight
    return weights


def _parse_statuses(values: Any) -> frozenset[AssignmentStatus]:
    if not isinstance(values, (list, tuple)):
        raise ConfigError("overlap_statuses must be a list")
    statuses = set()
    for name in values:
        try:
            statuses.add(AssignmentStatus(str(name).upper()))
        except ValueError as e:
            raise ConfigError(f"Unknown assignment status in overlap_statuses: {name}") from e
    return frozenset(statuses)
