"""Storage capabilities and their implementations."""

from groundops.store.base import (
    AssignmentLedger,
    OperationCatalog,
    StaffDirectory,
)
from groundops.store.memory import (
    InMemoryAssignmentLedger,
    InMemoryOperationCatalog,
    InMemoryStaffDirectory,
)
from groundops.store.sqlite import SqliteAssignmentLedger

__all__ = [
    # Interfaces
    "AssignmentLedger",
    "OperationCatalog",
    "StaffDirectory",
    # Implementations
    "InMemoryAssignmentLedger",
    "InMemoryOperationCatalog",
    "InMemoryStaffDirectory",
    "SqliteAssignmentLedger",
]
