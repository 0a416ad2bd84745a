"""Abstract read/write capabilities the staffing core depends on.

The core never talks to a database directly. It reads staff, operations and
assignments through these interfaces and writes through the ledger, which
also provides the transaction and per-staff locking used to make
check-then-insert sequences atomic.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import datetime
from typing import Iterable, Optional

from groundops.domain.models import (
    ACTIVE_STATUSES,
    Assignment,
    AssignmentStatus,
    Operation,
    StaffMember,
)


class StaffDirectory(ABC):
    """Read-only view over staff records."""

    @abstractmethod
    def get(self, staff_id: int) -> Optional[StaffMember]:
        """Get a staff member by id, or None."""
        pass

    @abstractmethod
    def list_by_station(self, station_id: Optional[int]) -> list[StaffMember]:
        """Staff belonging to a station (``None`` lists unassigned staff)."""
        pass

    @abstractmethod
    def list_all(self) -> list[StaffMember]:
        pass


class OperationCatalog(ABC):
    """Read-only view over operations, with station requirements resolved."""

    @abstractmethod
    def get(self, operation_id: int) -> Optional[Operation]:
        pass


class AssignmentLedger(ABC):
    """The set of assignments with their windows and lifecycle status."""

    @abstractmethod
    def get(self, assignment_id: int) -> Optional[Assignment]:
        pass

    @abstractmethod
    def find_overlapping(
        self,
        staff_id: int,
        start: datetime,
        end: datetime,
        statuses: Iterable[AssignmentStatus] = ACTIVE_STATUSES,
    ) -> list[Assignment]:
        """Assignments of a staff member in ``statuses`` that intersect ``[start, end)``."""
        pass

    @abstractmethod
    def sum_completed_hours(
        self,
        staff_id: int,
        week_start: datetime,
        week_end: datetime,
    ) -> float:
        """Total hours of COMPLETED assignments starting within the bounds (inclusive)."""
        pass

    @abstractmethod
    def list_for_staff(self, staff_id: int) -> list[Assignment]:
        pass

    @abstractmethod
    def save(self, assignment: Assignment) -> Assignment:
        """Insert (id is None) or update an assignment; returns the stored record."""
        pass

    @abstractmethod
    def cancel(self, assignment_id: int, note: str) -> Assignment:
        """Mark an assignment CANCELLED and append an audit note.

        Raises:
            NotFoundError: If the assignment does not exist.
        """
        pass

    @abstractmethod
    def transaction(self) -> AbstractContextManager:
        """Group writes so they all land or none do.

        Leaving the block with an exception rolls back every write made
        inside it.
        """
        pass

    @abstractmethod
    def staff_lock(self, staff_id: int) -> AbstractContextManager:
        """Exclusive lock serialising writes for one staff member."""
        pass


def append_note(existing: Optional[str], note: str) -> str:
    """Append an audit line to an assignment's notes."""
    if not existing:
        return note
    return f"{existing}\n{note}"
