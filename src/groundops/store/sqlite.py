"""SQLite-backed assignment ledger.

Assignments live in a single ``assignments`` table. Datetimes are stored as
ISO 8601 text, so range comparisons are correct as long as every stored
value uses the same representation (all naive, or all with the same offset).

Writes made inside :meth:`SqliteAssignmentLedger.transaction` run in one
``BEGIN IMMEDIATE`` transaction: the database write lock is taken up front,
so an overlap re-check and the following insert cannot interleave with
another writer, even one in a different process.
"""

import logging
import sqlite3
import threading
from collections import defaultdict
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterable, Iterator, Optional, Union

from groundops.domain.models import (
    ACTIVE_STATUSES,
    Assignment,
    AssignmentStatus,
)
from groundops.errors import NotFoundError
from groundops.store.base import AssignmentLedger, append_note

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS assignments (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    staff_id INTEGER NOT NULL,
    operation_id INTEGER NOT NULL,
    function TEXT NOT NULL DEFAULT '',
    start_time TEXT NOT NULL,
    end_time TEXT NOT NULL,
    cost REAL NOT NULL DEFAULT 0,
    status TEXT NOT NULL,
    is_replacement INTEGER NOT NULL DEFAULT 0,
    replacement_for_staff_id INTEGER,
    notes TEXT,
    actual_start_time TEXT,
    actual_end_time TEXT,
    overtime_hours REAL
)
"""

_INDEX = "CREATE INDEX IF NOT EXISTS idx_assignments_staff ON assignments (staff_id, status)"

_COLUMNS = (
    "staff_id",
    "operation_id",
    "function",
    "start_time",
    "end_time",
    "cost",
    "status",
    "is_replacement",
    "replacement_for_staff_id",
    "notes",
    "actual_start_time",
    "actual_end_time",
    "overtime_hours",
)


def _to_text(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _from_text(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value is not None else None


class SqliteAssignmentLedger(AssignmentLedger):
    """Assignment ledger stored in an SQLite database.

    Example:
        >>> ledger = SqliteAssignmentLedger("assignments.db")
        >>> with ledger.staff_lock(7), ledger.transaction():
        ...     ledger.save(assignment)
    """

    def __init__(self, db_path: Union[str, Path] = ":memory:"):
        self.db_path = str(db_path)
        # Autocommit mode; transactions are opened explicitly.
        self.conn = sqlite3.connect(
            self.db_path, isolation_level=None, check_same_thread=False
        )
        self.conn.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        self._staff_locks: dict[int, threading.Lock] = defaultdict(threading.Lock)
        self._staff_locks_guard = threading.Lock()
        self._depth = 0
        self._create_tables()

    def _create_tables(self) -> None:
        with self._lock:
            self.conn.execute(_SCHEMA)
            self.conn.execute(_INDEX)

    def close(self) -> None:
        with self._lock:
            self.conn.close()

    def _row_to_assignment(self, row: sqlite3.Row) -> Assignment:
        return Assignment(
            id=row["id"],
            staff_id=row["staff_id"],
            operation_id=row["operation_id"],
            function=row["function"],
            start_time=_from_text(row["start_time"]),
            end_time=_from_text(row["end_time"]),
            cost=row["cost"],
            status=AssignmentStatus(row["status"]),
            is_replacement=bool(row["is_replacement"]),
            replacement_for_staff_id=row["replacement_for_staff_id"],
            notes=row["notes"],
            actual_start_time=_from_text(row["actual_start_time"]),
            actual_end_time=_from_text(row["actual_end_time"]),
            overtime_hours=row["overtime_hours"],
        )

    def _values(self, assignment: Assignment) -> tuple:
        return (
            assignment.staff_id,
            assignment.operation_id,
            assignment.function,
            _to_text(assignment.start_time),
            _to_text(assignment.end_time),
            assignment.cost,
            assignment.status.value,
            int(assignment.is_replacement),
            assignment.replacement_for_staff_id,
            assignment.notes,
            _to_text(assignment.actual_start_time),
            _to_text(assignment.actual_end_time),
            assignment.overtime_hours,
        )

    def get(self, assignment_id: int) -> Optional[Assignment]:
        with self._lock:
            row = self.conn.execute(
                "SELECT * FROM assignments WHERE id = ?", (assignment_id,)
            ).fetchone()
        return self._row_to_assignment(row) if row else None

    def find_overlapping(
        self,
        staff_id: int,
        start: datetime,
        end: datetime,
        statuses: Iterable[AssignmentStatus] = ACTIVE_STATUSES,
    ) -> list[Assignment]:
        status_values = [s.value for s in statuses]
        if not status_values:
            return []
        placeholders = ", ".join("?" for _ in status_values)
        query = (
            "SELECT * FROM assignments WHERE staff_id = ? "
            f"AND status IN ({placeholders}) "
            "AND start_time < ? AND end_time > ? ORDER BY start_time"
        )
        with self._lock:
            rows = self.conn.execute(
                query, (staff_id, *status_values, _to_text(end), _to_text(start))
            ).fetchall()
        return [self._row_to_assignment(r) for r in rows]

    def sum_completed_hours(
        self,
        staff_id: int,
        week_start: datetime,
        week_end: datetime,
    ) -> float:
        with self._lock:
            rows = self.conn.execute(
                "SELECT start_time, end_time FROM assignments "
                "WHERE staff_id = ? AND status = ? AND start_time BETWEEN ? AND ?",
                (
                    staff_id,
                    AssignmentStatus.COMPLETED.value,
                    _to_text(week_start),
                    _to_text(week_end),
                ),
            ).fetchall()
        return sum(
            (_from_text(r["end_time"]) - _from_text(r["start_time"])).total_seconds() / 3600
            for r in rows
        )

    def list_for_staff(self, staff_id: int) -> list[Assignment]:
        with self._lock:
            rows = self.conn.execute(
                "SELECT * FROM assignments WHERE staff_id = ? ORDER BY start_time",
                (staff_id,),
            ).fetchall()
        return [self._row_to_assignment(r) for r in rows]

    def save(self, assignment: Assignment) -> Assignment:
        with self._lock:
            if assignment.id is None:
                columns = ", ".join(_COLUMNS)
                placeholders = ", ".join("?" for _ in _COLUMNS)
                cursor = self.conn.execute(
                    f"INSERT INTO assignments ({columns}) VALUES ({placeholders})",
                    self._values(assignment),
                )
                return assignment.copy(id=cursor.lastrowid)

            assignments = ", ".join(f"{c} = ?" for c in _COLUMNS)
            cursor = self.conn.execute(
                f"UPDATE assignments SET {assignments} WHERE id = ?",
                (*self._values(assignment), assignment.id),
            )
            if cursor.rowcount == 0:
                columns = ", ".join(("id",) + _COLUMNS)
                placeholders = ", ".join("?" for _ in range(len(_COLUMNS) + 1))
                self.conn.execute(
                    f"INSERT INTO assignments ({columns}) VALUES ({placeholders})",
                    (assignment.id, *self._values(assignment)),
                )
            return assignment.copy()

    def cancel(self, assignment_id: int, note: str) -> Assignment:
        with self._lock:
            existing = self.get(assignment_id)
            if existing is None:
                raise NotFoundError("Assignment", assignment_id)
            existing.status = AssignmentStatus.CANCELLED
            existing.notes = append_note(existing.notes, note)
            self.conn.execute(
                "UPDATE assignments SET status = ?, notes = ? WHERE id = ?",
                (existing.status.value, existing.notes, assignment_id),
            )
            return existing

    @contextmanager
    def transaction(self) -> Iterator["SqliteAssignmentLedger"]:
        with self._lock:
            if self._depth > 0:
                self._depth += 1
                try:
                    yield self
                finally:
                    self._depth -= 1
                return

            self.conn.execute("BEGIN IMMEDIATE")
            self._depth = 1
            try:
                yield self
            except BaseException:
                self.conn.execute("ROLLBACK")
                logger.warning("Ledger transaction rolled back")
                raise
            else:
                self.conn.execute("COMMIT")
            finally:
                self._depth = 0

    @contextmanager
    def staff_lock(self, staff_id: int) -> Iterator[None]:
        with self._staff_locks_guard:
            lock = self._staff_locks[staff_id]
        with lock:
            yield
