"""In-memory implementations of the store capabilities.

Used by the CLI (loaded from a JSON snapshot) and by tests. The ledger keeps
copies of every record so callers cannot mutate stored state behind its back,
and snapshots its contents on entering a transaction so a failure inside the
block restores the previous state.
"""

import logging
import threading
from collections import defaultdict
from contextlib import contextmanager
from datetime import datetime
from typing import Iterable, Iterator, Optional

from groundops.domain.models import (
    ACTIVE_STATUSES,
    Assignment,
    AssignmentStatus,
    Operation,
    StaffMember,
)
from groundops.errors import NotFoundError
from groundops.store.base import (
    AssignmentLedger,
    OperationCatalog,
    StaffDirectory,
    append_note,
)

logger = logging.getLogger(__name__)


class InMemoryStaffDirectory(StaffDirectory):
    """Staff directory backed by a dict."""

    def __init__(self, staff: Iterable[StaffMember] = ()):
        self._staff: dict[int, StaffMember] = {s.id: s for s in staff}

    def add(self, staff: StaffMember) -> None:
        self._staff[staff.id] = staff

    def set_available(self, staff_id: int, is_available: bool) -> StaffMember:
        """Toggle a staff member's availability flag."""
        staff = self._staff.get(staff_id)
        if staff is None:
            raise NotFoundError("Staff member", staff_id)
        staff.is_available = is_available
        return staff

    def get(self, staff_id: int) -> Optional[StaffMember]:
        return self._staff.get(staff_id)

    def list_by_station(self, station_id: Optional[int]) -> list[StaffMember]:
        return [s for s in self._staff.values() if s.station_id == station_id]

    def list_all(self) -> list[StaffMember]:
        return list(self._staff.values())


class InMemoryOperationCatalog(OperationCatalog):
    """Operation catalog backed by a dict."""

    def __init__(self, operations: Iterable[Operation] = ()):
        self._operations: dict[int, Operation] = {o.id: o for o in operations}

    def add(self, operation: Operation) -> None:
        self._operations[operation.id] = operation

    def get(self, operation_id: int) -> Optional[Operation]:
        return self._operations.get(operation_id)

    def list_all(self) -> list[Operation]:
        return list(self._operations.values())


class InMemoryAssignmentLedger(AssignmentLedger):
    """Assignment ledger backed by a dict, with snapshot-based transactions."""

    def __init__(self, assignments: Iterable[Assignment] = ()):
        self._assignments: dict[int, Assignment] = {}
        self._next_id = 1
        self._lock = threading.RLock()
        self._staff_locks: dict[int, threading.Lock] = defaultdict(threading.Lock)
        self._staff_locks_guard = threading.Lock()
        self._depth = 0
        for assignment in assignments:
            self.save(assignment)

    def get(self, assignment_id: int) -> Optional[Assignment]:
        with self._lock:
            stored = self._assignments.get(assignment_id)
            return stored.copy() if stored else None

    def find_overlapping(
        self,
        staff_id: int,
        start: datetime,
        end: datetime,
        statuses: Iterable[AssignmentStatus] = ACTIVE_STATUSES,
    ) -> list[Assignment]:
        wanted = set(statuses)
        with self._lock:
            return [
                a.copy()
                for a in self._assignments.values()
                if a.staff_id == staff_id and a.status in wanted and a.overlaps(start, end)
            ]

    def sum_completed_hours(
        self,
        staff_id: int,
        week_start: datetime,
        week_end: datetime,
    ) -> float:
        with self._lock:
            return sum(
                a.duration_hours
                for a in self._assignments.values()
                if a.staff_id == staff_id
                and a.status == AssignmentStatus.COMPLETED
                and week_start <= a.start_time <= week_end
            )

    def list_for_staff(self, staff_id: int) -> list[Assignment]:
        with self._lock:
            found = [a.copy() for a in self._assignments.values() if a.staff_id == staff_id]
        return sorted(found, key=lambda a: a.start_time)

    def list_all(self) -> list[Assignment]:
        with self._lock:
            return sorted((a.copy() for a in self._assignments.values()), key=lambda a: a.start_time)

    def save(self, assignment: Assignment) -> Assignment:
        with self._lock:
            if assignment.id is None:
                stored = assignment.copy(id=self._next_id)
            else:
                stored = assignment.copy()
            self._assignments[stored.id] = stored
            self._next_id = max(self._next_id, stored.id + 1)
            return stored.copy()

    def cancel(self, assignment_id: int, note: str) -> Assignment:
        with self._lock:
            stored = self._assignments.get(assignment_id)
            if stored is None:
                raise NotFoundError("Assignment", assignment_id)
            stored.status = AssignmentStatus.CANCELLED
            stored.notes = append_note(stored.notes, note)
            return stored.copy()

    @contextmanager
    def transaction(self) -> Iterator["InMemoryAssignmentLedger"]:
        with self._lock:
            if self._depth > 0:
                # Nested blocks join the outer transaction.
                self._depth += 1
                try:
                    yield self
                finally:
                    self._depth -= 1
                return

            snapshot = {k: v.copy() for k, v in self._assignments.items()}
            next_id = self._next_id
            self._depth = 1
            try:
                yield self
            except BaseException:
                self._assignments = snapshot
                self._next_id = next_id
                logger.warning("Ledger transaction rolled back")
                raise
            finally:
                self._depth = 0

    @contextmanager
    def staff_lock(self, staff_id: int) -> Iterator[None]:
        with self._staff_locks_guard:
            lock = self._staff_locks[staff_id]
        with lock:
            yield
