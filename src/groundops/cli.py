"""Command-line interface for the ground-operations staffing core."""

import argparse
import json
import logging
import sys
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Optional

from groundops.config import GroundOpsConfig
from groundops.domain.builders import (
    build_assignment,
    build_operation,
    build_staff_member,
    build_station,
    parse_datetime,
)
from groundops.domain.models import Assignment
from groundops.errors import GroundOpsError
from groundops.notifications import InMemoryNotifier
from groundops.output.pdf_generator import StaffingSheetGenerator
from groundops.scheduling.optimizer import StaffingOptimization
from groundops.store.memory import (
    InMemoryAssignmentLedger,
    InMemoryOperationCatalog,
    InMemoryStaffDirectory,
)
from groundops.validation.availability import AvailabilityChecker

logger = logging.getLogger(__name__)


class Workspace:
    """In-memory stores and services built from a JSON snapshot.

    A snapshot is an object with ``stations``, ``staff``, ``operations`` and
    ``assignments`` lists of records (see :mod:`groundops.domain.builders`).
    """

    def __init__(self, snapshot: dict[str, Any], config: Optional[GroundOpsConfig] = None):
        self.config = config or GroundOpsConfig()
        stations = {s.id: s for s in map(build_station, snapshot.get("stations", []))}
        self.directory = InMemoryStaffDirectory(
            build_staff_member(r) for r in snapshot.get("staff", [])
        )
        self.catalog = InMemoryOperationCatalog(
            build_operation(r, stations) for r in snapshot.get("operations", [])
        )
        self.ledger = InMemoryAssignmentLedger(
            build_assignment(r) for r in snapshot.get("assignments", [])
        )
        self.notifier = InMemoryNotifier()

        self.validator = self.config.create_validator(self.directory, self.catalog, self.ledger)
        self.checker = AvailabilityChecker(self.validator)
        self.optimizer = self.config.create_optimizer(self.validator, self.notifier)
        self.booker = self.config.create_booker(self.validator, self.notifier)

    @classmethod
    def from_file(
        cls,
        path: str,
        config: Optional[GroundOpsConfig] = None,
    ) -> "Workspace":
        with open(path, encoding="utf-8") as f:
            return cls(json.load(f), config)

    def assignment_records(self) -> list[dict[str, Any]]:
        return [assignment_to_record(a) for a in self.ledger.list_all()]


def assignment_to_record(assignment: Assignment) -> dict[str, Any]:
    """Serialize an assignment to a snapshot record."""

    def iso(value: Optional[datetime]) -> Optional[str]:
        return value.isoformat() if value else None

    return {
        "id": assignment.id,
        "staff_id": assignment.staff_id,
        "operation_id": assignment.operation_id,
        "function": assignment.function,
        "start_time": iso(assignment.start_time),
        "end_time": iso(assignment.end_time),
        "cost": assignment.cost,
        "status": assignment.status.value,
        "is_replacement": assignment.is_replacement,
        "replacement_for_staff_id": assignment.replacement_for_staff_id,
        "notes": assignment.notes,
        "actual_start_time": iso(assignment.actual_start_time),
        "actual_end_time": iso(assignment.actual_end_time),
        "overtime_hours": assignment.overtime_hours,
    }


def create_sample_snapshot(reference: Optional[datetime] = None) -> dict[str, Any]:
    """Create a sample snapshot: one station, eight staff, one large flight.

    Args:
        reference: Scheduled time of the sample flight. Defaults to 08:00
            tomorrow.
    """
    if reference is None:
        reference = (datetime.now() + timedelta(days=1)).replace(
            hour=8, minute=0, second=0, microsecond=0
        )

    names = ["Alice", "Bob", "Carol", "David", "Eve", "Frank", "Grace", "Henry"]
    skill_sets = [
        ["customs_handling", "international_procedures", "departure_procedures"],
        ["baggage_loading", "departure_procedures"],
        ["crowd_management", "large_aircraft_handling"],
        ["customs_handling"],
        ["baggage_loading"],
        ["international_procedures", "crowd_management"],
        [],
        ["baggage_loading", "large_aircraft_handling"],
    ]

    staff = []
    for i, name in enumerate(names):
        staff.append(
            {
                "id": i + 1,
                "name": name,
                "role": "employee",
                "station_id": 1,
                "certifications": ["ramp_safety"] + (["hazmat"] if i % 3 == 0 else []),
                "skills": skill_sets[i],
                "available_shifts": ["morning", "afternoon"] if i % 4 else ["morning"],
                "category": "baggage" if i % 2 else "ramp",
            }
        )
    staff.append(
        {
            "id": 100,
            "name": "Sam Supervisor",
            "role": "supervisor",
            "station_id": 1,
            "certifications": ["ramp_safety"],
        }
    )

    return {
        "stations": [
            {
                "id": 1,
                "name": "Terminal 1",
                "code": "T1",
                "minimum_staff": 3,
                "required_certifications": ["ramp_safety"],
            }
        ],
        "staff": staff,
        "operations": [
            {
                "id": 1,
                "flight_number": "GO101",
                "scheduled_time": reference.isoformat(),
                "station_id": 1,
                "passenger_count": 220,
                "flight_type": "international",
                "operation_type": "departure",
                "estimated_duration": 2,
            }
        ],
        "assignments": [
            {
                "id": 1,
                "staff_id": 7,
                "operation_id": 1,
                "function": "ramp agent",
                "start_time": reference.isoformat(),
                "end_time": (reference + timedelta(hours=2)).isoformat(),
                "status": "CONFIRMED",
            }
        ],
    }


def print_optimization(optimization: StaffingOptimization) -> None:
    plan = optimization.plan
    operation = optimization.operation
    print(f"Operation {operation.id} ({operation.flight_number}) at {operation.scheduled_time}")
    print(f"  Base staff: {plan.base_staff}")
    print(f"  Minimum staff: {plan.minimum_staff}")
    print(f"  Recommended staff: {plan.recommended_staff}")
    print(f"  Skills needed: {', '.join(plan.skills_needed) or '-'}")
    print(
        f"  Available: {optimization.available}, required: {optimization.required}, "
        f"shortage: {optimization.shortage}"
    )
    print(f"\n  Proposed crew ({optimization.solver_status}):")
    for recommended in optimization.recommended_assignments:
        staff = recommended.staff
        print(f"    - {staff.name} (id {staff.id}, score {recommended.score})")
    if optimization.uncovered_skills:
        print(f"  Uncovered skills: {', '.join(optimization.uncovered_skills)}")
    for suggestion in optimization.suggestions:
        print(f"  Suggestion: {suggestion}")


def run_demo(output_path: Optional[str] = None, config: Optional[GroundOpsConfig] = None) -> None:
    """Run the staffing flow on sample data."""
    workspace = Workspace(create_sample_snapshot(), config)
    operation = workspace.catalog.get(1)
    start, end = operation.window()

    print(f"Validating staff 1 for {operation.flight_number}...")
    result = workspace.validator.validate(1, operation.id, start, end)
    print(f"  Valid: {result.is_valid}")
    for error in result.errors:
        print(f"    Error: {error}")
    for warning in result.warnings:
        print(f"    Warning: {warning}")

    print()
    optimization = workspace.optimizer.optimize_staffing(operation.id)
    print_optimization(optimization)

    print("\nReplacing staff 7 on assignment 1...")
    candidates = workspace.optimizer.find_available_staff(operation.id, exclude_ids=[7])
    if candidates:
        replacement = workspace.optimizer.create_replacement(
            1,
            candidates[0].id,
            "Called in sick",
            requested_by=workspace.directory.get(100),
        )
        print(f"  Created {replacement!r}")
        for notification in workspace.notifier.sent:
            print(f"  Notified staff {notification.staff_id}: {notification.message}")
    else:
        print("  No replacement available")

    if output_path:
        print(f"\nGenerating PDF: {output_path}")
        StaffingSheetGenerator().generate(optimization, output_path)
        print("  PDF created successfully!")


def _id_list(value: str) -> list[int]:
    return [int(v) for v in value.split(",") if v.strip()]


def _name_list(value: str) -> list[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


def _add_snapshot(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("snapshot", type=str, help="JSON snapshot file")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Ground Ops - Airport Staffing Tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s demo                                   Run demo on sample data
  %(prog)s demo --output sheet.pdf                Also write a staffing sheet

  %(prog)s validate data.json --staff 3 --operation 1 \\
      --start 2024-03-04T08:00 --end 2024-03-04T12:00
  %(prog)s availability data.json --staff 1,2,3 \\
      --start 2024-03-04T08:00 --end 2024-03-04T12:00
  %(prog)s available-staff data.json --operation 1 --skills baggage_loading
  %(prog)s optimal-staffing data.json --operation 1
  %(prog)s optimize data.json --operation 1 --pdf sheet.pdf
  %(prog)s replace data.json --assignment 5 --staff 9 --reason "Sick"
        """,
    )
    parser.add_argument("--config", type=str, help="JSON configuration file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Demo command
    demo_parser = subparsers.add_parser("demo", help="Run the staffing flow on sample data")
    demo_parser.add_argument("--output", "-o", type=str, help="Output PDF file path")

    # Validate command
    validate_parser = subparsers.add_parser(
        "validate", help="Validate placing a staff member on an operation"
    )
    _add_snapshot(validate_parser)
    validate_parser.add_argument("--staff", type=int, required=True, help="Staff member id")
    validate_parser.add_argument("--operation", type=int, required=True, help="Operation id")
    validate_parser.add_argument("--start", type=str, required=True, help="ISO start time")
    validate_parser.add_argument("--end", type=str, required=True, help="ISO end time")

    # Availability command
    availability_parser = subparsers.add_parser(
        "availability", help="Check staff availability for a window"
    )
    _add_snapshot(availability_parser)
    availability_parser.add_argument(
        "--staff", type=_id_list, required=True, help="Comma-separated staff ids"
    )
    availability_parser.add_argument("--start", type=str, required=True, help="ISO start time")
    availability_parser.add_argument("--end", type=str, required=True, help="ISO end time")

    # Available staff command
    available_parser = subparsers.add_parser(
        "available-staff", help="List staff who could work an operation"
    )
    _add_snapshot(available_parser)
    available_parser.add_argument("--operation", type=int, required=True, help="Operation id")
    available_parser.add_argument(
        "--skills", type=_name_list, default=[], help="Comma-separated required skills"
    )
    available_parser.add_argument(
        "--exclude", type=_id_list, default=[], help="Comma-separated staff ids to exclude"
    )

    # Optimal staffing command
    staffing_parser = subparsers.add_parser(
        "optimal-staffing", help="Show staffing levels and skills for an operation"
    )
    _add_snapshot(staffing_parser)
    staffing_parser.add_argument("--operation", type=int, required=True, help="Operation id")

    # Optimize command
    optimize_parser = subparsers.add_parser(
        "optimize", help="Select a crew for an operation"
    )
    _add_snapshot(optimize_parser)
    optimize_parser.add_argument("--operation", type=int, required=True, help="Operation id")
    optimize_parser.add_argument("--pdf", type=str, help="Write a staffing sheet PDF")

    # Replace command
    replace_parser = subparsers.add_parser(
        "replace", help="Replace the staff member on an assignment"
    )
    _add_snapshot(replace_parser)
    replace_parser.add_argument("--assignment", type=int, required=True, help="Assignment id")
    replace_parser.add_argument("--staff", type=int, required=True, help="Replacement staff id")
    replace_parser.add_argument("--reason", type=str, required=True, help="Reason for the change")
    replace_parser.add_argument("--requested-by", type=int, help="Requesting staff id")
    replace_parser.add_argument(
        "--output", "-o", type=str, help="Write the updated assignments as JSON"
    )

    return parser


def _run_command(args: argparse.Namespace, config: GroundOpsConfig) -> int:
    workspace = Workspace.from_file(args.snapshot, config)

    if args.command == "validate":
        result = workspace.validator.validate(
            args.staff, args.operation, parse_datetime(args.start), parse_datetime(args.end)
        )
        print(f"Valid: {result.is_valid}")
        for error in result.errors:
            print(f"  Error: {error}")
        for warning in result.warnings:
            print(f"  Warning: {warning}")
        return 0 if result.is_valid else 2

    if args.command == "availability":
        results = workspace.checker.check_availability(
            args.staff, parse_datetime(args.start), parse_datetime(args.end)
        )
        for result in results:
            status = "available" if result.is_available else "unavailable"
            reasons = f" ({'; '.join(result.reasons)})" if result.reasons else ""
            print(f"Staff {result.staff_id}: {status}{reasons}")
        return 0

    if args.command == "available-staff":
        staff = workspace.optimizer.find_available_staff(
            args.operation, args.skills, args.exclude
        )
        print(f"{len(staff)} available staff for operation {args.operation}")
        for member in staff:
            print(f"  - {member.name} (id {member.id})")
        return 0

    if args.command == "optimal-staffing":
        plan = workspace.optimizer.get_optimal_staffing(args.operation)
        print(f"Operation {plan.operation_id}")
        print(f"  Minimum staff: {plan.minimum_staff}")
        print(f"  Recommended staff: {plan.recommended_staff}")
        print(f"  Skills needed: {', '.join(plan.skills_needed) or '-'}")
        print(f"  Available with all skills: {len(plan.available_staff)}")
        for member in plan.available_staff:
            score = workspace.optimizer.recommendation_score(member)
            print(f"    - {member.name} (id {member.id}, score {score})")
        return 0

    if args.command == "optimize":
        optimization = workspace.optimizer.optimize_staffing(args.operation)
        print_optimization(optimization)
        if args.pdf:
            StaffingSheetGenerator().generate(optimization, args.pdf)
            print(f"\nStaffing sheet written to {args.pdf}")
        return 0

    if args.command == "replace":
        requested_by = None
        if args.requested_by is not None:
            requested_by = workspace.directory.get(args.requested_by)
            if requested_by is None:
                print(f"Error: staff member {args.requested_by} not found", file=sys.stderr)
                return 1
        replacement = workspace.optimizer.create_replacement(
            args.assignment, args.staff, args.reason, requested_by=requested_by
        )
        print(f"Created {replacement!r}")
        if args.output:
            Path(args.output).write_text(
                json.dumps({"assignments": workspace.assignment_records()}, indent=2),
                encoding="utf-8",
            )
            print(f"Assignments written to {args.output}")
        return 0

    return 1


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for CLI."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = GroundOpsConfig.from_file(args.config) if args.config else GroundOpsConfig()

        if args.command == "demo":
            run_demo(args.output, config)
            return 0
        if args.command is None:
            parser.print_help()
            return 1
        return _run_command(args, config)
    except GroundOpsError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except (OSError, KeyError, ValueError) as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
