"""Output generation for staffing results (PDF)."""

from groundops.output.pdf_generator import StaffingSheetGenerator

__all__ = [
    "StaffingSheetGenerator",
]
