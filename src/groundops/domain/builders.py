"""Typed builders that turn raw records into domain objects.

Records arrive as plain dicts (JSON snapshots, service-layer payloads). Each
builder reads an explicit list of fields with a documented default or
coercion, instead of spreading arbitrary keys onto the model:

- Set-valued fields accept a list, a set or a comma-separated string.
- A missing set-valued field on a staff record stays ``None`` ("not
  recorded"); an explicit empty list becomes an empty set.
- A single ``category`` is folded into ``categories``.
- Shift names are case-insensitive.
- ``None`` hour caps fall back to 40 weekly / 8 daily.
- Datetimes are ISO 8601 strings (a trailing ``Z`` is accepted) or datetimes.
- Unknown enum values raise ``ValueError``.
"""

from datetime import datetime
from typing import Any, Mapping, Optional, TypeVar

from groundops.domain.models import (
    Assignment,
    AssignmentStatus,
    EmployeeCategory,
    FlightType,
    Operation,
    OperationStatus,
    OperationType,
    ShiftType,
    StaffMember,
    Station,
    UserRole,
)

DEFAULT_MAX_WEEKLY_HOURS = 40.0
DEFAULT_MAX_DAILY_HOURS = 8.0

E = TypeVar("E")


def parse_datetime(value: Any) -> datetime:
    """Parse an ISO 8601 string (or pass through a datetime)."""
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Expected ISO datetime string, got {value!r}")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def _optional_datetime(value: Any) -> Optional[datetime]:
    return None if value is None else parse_datetime(value)


def _string_set(value: Any) -> frozenset[str]:
    if value is None:
        return frozenset()
    if isinstance(value, str):
        items = value.split(",")
    else:
        items = list(value)
    return frozenset(str(item).strip() for item in items if str(item).strip())


def _optional_string_set(record: Mapping[str, Any], key: str) -> Optional[frozenset[str]]:
    if key not in record or record[key] is None:
        return None
    return _string_set(record[key])


def _enum(enum_cls: type[E], value: Any, default: Optional[E] = None) -> E:
    """Coerce a value (enum, value string or name string) into ``enum_cls``."""
    if value is None:
        if default is None:
            raise ValueError(f"Missing value for {enum_cls.__name__}")
        return default
    if isinstance(value, enum_cls):
        return value
    text = str(value).strip()
    for member in enum_cls:  # type: ignore[attr-defined]
        if text.lower() in (str(member.value).lower(), member.name.lower()):
            return member
    raise ValueError(f"Unknown {enum_cls.__name__}: {value!r}")


def _shift_set(record: Mapping[str, Any]) -> Optional[frozenset[ShiftType]]:
    names = _optional_string_set(record, "available_shifts")
    if names is None:
        return None
    return frozenset(_enum(ShiftType, name) for name in names)


def _categories(record: Mapping[str, Any]) -> frozenset[EmployeeCategory]:
    names = set(_string_set(record.get("categories")))
    if record.get("category"):
        names.add(str(record["category"]))
    return frozenset(_enum(EmployeeCategory, name) for name in names)


def _float_or(value: Any, default: float) -> float:
    return default if value is None else float(value)


def _optional_int(value: Any) -> Optional[int]:
    return None if value is None else int(value)


def build_station(record: Mapping[str, Any]) -> Station:
    """Build a Station.

    Fields: id (required), name (default "Station <id>"), code, minimum_staff
    (default 1), maximum_staff (default 10), required_certifications
    (default none), is_active (default True).
    """
    station_id = int(record["id"])
    return Station(
        id=station_id,
        name=record.get("name") or f"Station {station_id}",
        code=record.get("code"),
        minimum_staff=int(record.get("minimum_staff", 1)),
        maximum_staff=int(record.get("maximum_staff", 10)),
        required_certifications=_string_set(record.get("required_certifications")),
        is_active=bool(record.get("is_active", True)),
    )


def build_staff_member(record: Mapping[str, Any]) -> StaffMember:
    """Build a StaffMember.

    Fields: id (required), name (default "Staff <id>"), role (default
    employee), is_active / is_available (default True), station_id,
    supervisor_id, certifications, skills, available_shifts (missing means
    not recorded), categories / category, max_weekly_hours (40),
    max_daily_hours (8).
    """
    staff_id = int(record["id"])
    return StaffMember(
        id=staff_id,
        name=record.get("name") or f"Staff {staff_id}",
        role=_enum(UserRole, record.get("role"), UserRole.EMPLOYEE),
        is_active=bool(record.get("is_active", True)),
        is_available=bool(record.get("is_available", True)),
        station_id=_optional_int(record.get("station_id")),
        certifications=_optional_string_set(record, "certifications"),
        skills=_optional_string_set(record, "skills"),
        available_shifts=_shift_set(record),
        categories=_categories(record),
        max_weekly_hours=_float_or(record.get("max_weekly_hours"), DEFAULT_MAX_WEEKLY_HOURS),
        max_daily_hours=_float_or(record.get("max_daily_hours"), DEFAULT_MAX_DAILY_HOURS),
        supervisor_id=_optional_int(record.get("supervisor_id")),
    )


def build_operation(
    record: Mapping[str, Any],
    stations: Mapping[int, Station],
) -> Operation:
    """Build an Operation, resolving its station.

    Fields: id, flight_number, scheduled_time, station_id (all required),
    passenger_count (0), flight_type (domestic), operation_type (arrival),
    estimated_duration (hours, optional), status (scheduled), name.

    Raises:
        KeyError: If the station id is not in ``stations``.
    """
    station_id = int(record["station_id"])
    if station_id not in stations:
        raise KeyError(f"Operation {record['id']} references unknown station {station_id}")
    duration = record.get("estimated_duration")
    return Operation(
        id=int(record["id"]),
        flight_number=str(record["flight_number"]),
        scheduled_time=parse_datetime(record["scheduled_time"]),
        station=stations[station_id],
        passenger_count=int(record.get("passenger_count", 0)),
        flight_type=_enum(FlightType, record.get("flight_type"), FlightType.DOMESTIC),
        operation_type=_enum(OperationType, record.get("operation_type"), OperationType.ARRIVAL),
        estimated_duration=None if duration is None else float(duration),
        status=_enum(OperationStatus, record.get("status"), OperationStatus.SCHEDULED),
        name=record.get("name") or "",
    )


def build_assignment(record: Mapping[str, Any]) -> Assignment:
    """Build an Assignment.

    Fields: staff_id, operation_id, start_time, end_time (required), id,
    function (""), cost (0.0), status (scheduled), is_replacement (False),
    replacement_for_staff_id, notes, actual_start_time, actual_end_time,
    overtime_hours.
    """
    overtime = record.get("overtime_hours")
    return Assignment(
        id=_optional_int(record.get("id")),
        staff_id=int(record["staff_id"]),
        operation_id=int(record["operation_id"]),
        start_time=parse_datetime(record["start_time"]),
        end_time=parse_datetime(record["end_time"]),
        function=record.get("function") or "",
        cost=float(record.get("cost", 0.0)),
        status=_enum(AssignmentStatus, record.get("status"), AssignmentStatus.SCHEDULED),
        is_replacement=bool(record.get("is_replacement", False)),
        replacement_for_staff_id=_optional_int(record.get("replacement_for_staff_id")),
        notes=record.get("notes"),
        actual_start_time=_optional_datetime(record.get("actual_start_time")),
        actual_end_time=_optional_datetime(record.get("actual_end_time")),
        overtime_hours=None if overtime is None else float(overtime),
    )
