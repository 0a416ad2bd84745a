"""Tests for configuration loading."""

import json

import pytest

from groundops.config import GroundOpsConfig
from groundops.domain.models import ACTIVE_STATUSES, AssignmentStatus, UserRole
from groundops.errors import ConfigError
from groundops.store.memory import (
    InMemoryAssignmentLedger,
    InMemoryOperationCatalog,
    InMemoryStaffDirectory,
)


class TestGroundOpsConfig:
    """Tests for GroundOpsConfig."""

    def test_defaults(self):
        config = GroundOpsConfig.from_dict({})

        assert config.staffing.passengers_per_staff == 50
        assert config.staffing.contingency_percent == 20
        assert config.solver.use_solver is True
        assert config.overlap_statuses == ACTIVE_STATUSES

    def test_overrides(self):
        config = GroundOpsConfig.from_dict(
            {
                "staffing": {
                    "passengers_per_staff": 40,
                    "arrival_skills": ["arrival_procedures"],
                },
                "recommendation": {"role_weights": {"employee": 2, "SUPERVISOR": 5}},
                "shift_windows": {"morning_start": 5},
                "solver": {"time_limit_seconds": 2, "use_solver": False},
                "overlap_statuses": ["scheduled", "CONFIRMED"],
            }
        )

        assert config.staffing.passengers_per_staff == 40
        assert config.staffing.arrival_skills == ("arrival_procedures",)
        assert config.recommendation.role_weights == {
            UserRole.EMPLOYEE: 2,
            UserRole.SUPERVISOR: 5,
        }
        assert config.shift_windows.morning_start == 5
        assert config.solver.time_limit_seconds == 2
        assert config.solver.use_solver is False
        assert config.overlap_statuses == frozenset(
            {AssignmentStatus.SCHEDULED, AssignmentStatus.CONFIRMED}
        )

    @pytest.mark.parametrize(
        "data",
        [
            {"reporting": {}},
            {"staffing": {"passengers_per_seat": 10}},
            {"staffing": {"passengers_per_staff": 0}},
            {"staffing": {"passengers_per_staff": "fifty"}},
            {"staffing": {"contingency_percent": 12.5}},
            {"staffing": []},
            {"shift_windows": {"night_start": 24}},
            {"solver": {"use_solver": "yes"}},
            {"solver": {"time_limit_seconds": 0}},
            {"recommendation": {"role_weights": {"pilot": 1}}},
            {"overlap_statuses": ["WAITING"]},
            {"overlap_statuses": []},
        ],
    )
    def test_invalid_values(self, data):
        with pytest.raises(ConfigError):
            GroundOpsConfig.from_dict(data)

    def test_not_an_object(self):
        with pytest.raises(ConfigError):
            GroundOpsConfig.from_dict(["staffing"])

    def test_from_file(self, tmp_path):
        path = tmp_path / "groundops.json"
        path.write_text(json.dumps({"staffing": {"contingency_percent": 50}}))

        config = GroundOpsConfig.from_file(path)

        assert config.staffing.recommended_staff(4) == 6

    def test_from_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            GroundOpsConfig.from_file(tmp_path / "missing.json")

    def test_from_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")

        with pytest.raises(ConfigError):
            GroundOpsConfig.from_file(path)

    def test_services_share_policies(self):
        config = GroundOpsConfig.from_dict({"overlap_statuses": ["CONFIRMED"]})
        validator = config.create_validator(
            InMemoryStaffDirectory(), InMemoryOperationCatalog(), InMemoryAssignmentLedger()
        )
        optimizer = config.create_optimizer(validator)

        assert validator.overlap_statuses == frozenset({AssignmentStatus.CONFIRMED})
        assert validator.shift_policy is config.shift_windows
        assert optimizer.staffing_policy is config.staffing
        assert optimizer.crew_selector.config is config.solver
