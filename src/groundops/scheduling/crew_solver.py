"""OR-Tools CP-SAT crew selection.

Given the eligible candidates for an operation, the skills it calls for and
a team size, pick the crew that covers as many needed skills as possible
and, among those, has the best recommendation scores. A greedy selector is
used as a fallback when the solver returns no feasible solution in time.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from ortools.sat.python import cp_model

from groundops.domain.models import StaffMember

logger = logging.getLogger(__name__)


@dataclass
class CrewSolverConfig:
    """Configuration for crew selection.

    Attributes:
        time_limit_seconds: Maximum solver runtime.
        num_workers: Number of parallel workers (0 = auto).
        use_solver: If False, always use the greedy selector.
    """

    time_limit_seconds: float = 10.0
    num_workers: int = 0
    use_solver: bool = True


@dataclass
class CrewSolverResult:
    """Result of a crew selection.

    Attributes:
        selected: Chosen staff, best first.
        covered_skills: Needed skills the crew covers.
        uncovered_skills: Needed skills nobody in the crew has.
        status: Solver status (OPTIMAL, FEASIBLE, GREEDY, ...).
        objective_value: Final objective value (0 for greedy).
        solve_time_seconds: Time taken to solve.
    """

    selected: list[StaffMember]
    covered_skills: list[str] = field(default_factory=list)
    uncovered_skills: list[str] = field(default_factory=list)
    status: str = "UNKNOWN"
    objective_value: int = 0
    solve_time_seconds: float = 0.0

    @property
    def is_optimal(self) -> bool:
        return self.status == "OPTIMAL"

    @property
    def is_feasible(self) -> bool:
        return self.status in ("OPTIMAL", "FEASIBLE", "GREEDY")


def _staff_skills(staff: StaffMember) -> frozenset[str]:
    return staff.skills or frozenset()


class CrewSelector:
    """Selects a crew from ranked candidates.

    Candidates must already be ranked best first; their position is used to
    break ties between equal scores so results are reproducible.
    """

    def __init__(
        self,
        score: Callable[[StaffMember], int],
        config: Optional[CrewSolverConfig] = None,
    ):
        self.score = score
        self.config = config or CrewSolverConfig()

    def _values(self, candidates: Sequence[StaffMember]) -> list[int]:
        """Per-candidate value: score first, then rank as a tie-break."""
        n = len(candidates)
        return [self.score(s) * n + (n - rank) for rank, s in enumerate(candidates)]

    def select(
        self,
        candidates: Sequence[StaffMember],
        skills_needed: Sequence[str],
        team_size: int,
    ) -> CrewSolverResult:
        """Select a crew, falling back to greedy selection when needed."""
        if team_size <= 0 or not candidates:
            return self._result([], skills_needed, "GREEDY")

        if self.config.use_solver:
            result = self.solve(candidates, skills_needed, team_size)
            if result.is_feasible:
                return result
            logger.warning("CP-SAT crew selection returned %s; using greedy", result.status)

        return self.greedy(candidates, skills_needed, team_size)

    def solve(
        self,
        candidates: Sequence[StaffMember],
        skills_needed: Sequence[str],
        team_size: int,
    ) -> CrewSolverResult:
        """Solve crew selection with CP-SAT."""
        model = cp_model.CpModel()
        values = self._values(candidates)

        # Decision variables: x[i] = 1 if candidate i is on the crew
        x = [model.NewBoolVar(f"x_{s.id}") for s in candidates]

        # Constraint: crew size
        model.Add(sum(x) <= min(team_size, len(candidates)))

        # covered[k] can only be 1 if somebody selected has skill k
        covered: dict[str, cp_model.IntVar] = {}
        for skill in dict.fromkeys(skills_needed):
            holders = [x[i] for i, s in enumerate(candidates) if skill in _staff_skills(s)]
            if not holders:
                continue
            covered[skill] = model.NewBoolVar(f"covered_{skill}")
            model.Add(covered[skill] <= sum(holders))

        # Skill coverage dominates any combination of member values
        coverage_weight = sum(values) + 1
        model.Maximize(
            coverage_weight * sum(covered.values())
            + sum(v * var for v, var in zip(values, x))
        )

        solver = cp_model.CpSolver()
        solver.parameters.max_time_in_seconds = self.config.time_limit_seconds
        if self.config.num_workers > 0:
            solver.parameters.num_workers = self.config.num_workers

        status = solver.Solve(model)

        status_map = {
            cp_model.OPTIMAL: "OPTIMAL",
            cp_model.FEASIBLE: "FEASIBLE",
            cp_model.INFEASIBLE: "INFEASIBLE",
            cp_model.MODEL_INVALID: "MODEL_INVALID",
            cp_model.UNKNOWN: "UNKNOWN",
        }
        status_str = status_map.get(status, "UNKNOWN")

        if status not in (cp_model.OPTIMAL, cp_model.FEASIBLE):
            return CrewSolverResult(
                selected=[],
                status=status_str,
                solve_time_seconds=solver.WallTime(),
            )

        selected = [s for i, s in enumerate(candidates) if solver.Value(x[i]) == 1]
        result = self._result(selected, skills_needed, status_str)
        result.objective_value = int(solver.ObjectiveValue())
        result.solve_time_seconds = solver.WallTime()
        return result

    def greedy(
        self,
        candidates: Sequence[StaffMember],
        skills_needed: Sequence[str],
        team_size: int,
    ) -> CrewSolverResult:
        """Pick members one by one: most new skills first, then best value."""
        values = self._values(candidates)
        remaining = list(range(len(candidates)))
        uncovered = set(skills_needed)
        chosen: list[int] = []

        while remaining and len(chosen) < team_size:
            best = max(
                remaining,
                key=lambda i: (len(uncovered & _staff_skills(candidates[i])), values[i]),
            )
            chosen.append(best)
            remaining.remove(best)
            uncovered -= _staff_skills(candidates[best])

        selected = [candidates[i] for i in sorted(chosen)]
        return self._result(selected, skills_needed, "GREEDY")

    def _result(
        self,
        selected: list[StaffMember],
        skills_needed: Sequence[str],
        status: str,
    ) -> CrewSolverResult:
        crew_skills: set[str] = set()
        for staff in selected:
            crew_skills |= _staff_skills(staff)
        needed = list(dict.fromkeys(skills_needed))
        return CrewSolverResult(
            selected=selected,
            covered_skills=[k for k in needed if k in crew_skills],
            uncovered_skills=[k for k in needed if k not in crew_skills],
            status=status,
        )
