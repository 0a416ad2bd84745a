"""Role to permission lookup.

The mapping is static configuration: a role's capabilities never change at
runtime, so lookups are pure functions over a frozen table.
"""

from enum import Enum
from typing import Iterable

from groundops.domain.models import UserRole


class Permission(Enum):
    """Capabilities that can be granted to a role."""

    CREATE_USER = "create_user"
    READ_USER = "read_user"
    UPDATE_USER = "update_user"
    DELETE_USER = "delete_user"

    CREATE_OPERATION = "create_operation"
    READ_OPERATION = "read_operation"
    UPDATE_OPERATION = "update_operation"
    DELETE_OPERATION = "delete_operation"

    CREATE_ASSIGNMENT = "create_assignment"
    READ_ASSIGNMENT = "read_assignment"
    UPDATE_ASSIGNMENT = "update_assignment"
    DELETE_ASSIGNMENT = "delete_assignment"

    CREATE_NOTIFICATION = "create_notification"
    READ_NOTIFICATION = "read_notification"
    UPDATE_NOTIFICATION = "update_notification"
    DELETE_NOTIFICATION = "delete_notification"

    VIEW_REPORTS = "view_reports"
    EXPORT_REPORTS = "export_reports"

    VIEW_DASHBOARD = "view_dashboard"
    VIEW_ADMIN_DASHBOARD = "view_admin_dashboard"

    SYSTEM_ADMIN = "system_admin"
    BACKUP_SYSTEM = "backup_system"


_P = Permission

_ROLE_PERMISSIONS: dict[UserRole, frozenset[Permission]] = {
    UserRole.EMPLOYEE: frozenset(
        {
            _P.READ_USER,
            _P.READ_OPERATION,
            _P.READ_ASSIGNMENT,
            _P.READ_NOTIFICATION,
            _P.VIEW_DASHBOARD,
        }
    ),
    UserRole.SUPERVISOR: frozenset(
        {
            _P.READ_USER,
            _P.UPDATE_USER,
            _P.READ_OPERATION,
            _P.UPDATE_OPERATION,
            _P.CREATE_ASSIGNMENT,
            _P.READ_ASSIGNMENT,
            _P.UPDATE_ASSIGNMENT,
            _P.CREATE_NOTIFICATION,
            _P.READ_NOTIFICATION,
            _P.UPDATE_NOTIFICATION,
            _P.VIEW_DASHBOARD,
            _P.VIEW_REPORTS,
        }
    ),
    UserRole.MANAGER: frozenset(
        {
            _P.CREATE_USER,
            _P.READ_USER,
            _P.UPDATE_USER,
            _P.CREATE_OPERATION,
            _P.READ_OPERATION,
            _P.UPDATE_OPERATION,
            _P.DELETE_OPERATION,
            _P.CREATE_ASSIGNMENT,
            _P.READ_ASSIGNMENT,
            _P.UPDATE_ASSIGNMENT,
            _P.DELETE_ASSIGNMENT,
            _P.CREATE_NOTIFICATION,
            _P.READ_NOTIFICATION,
            _P.UPDATE_NOTIFICATION,
            _P.DELETE_NOTIFICATION,
            _P.VIEW_DASHBOARD,
            _P.VIEW_ADMIN_DASHBOARD,
            _P.VIEW_REPORTS,
            _P.EXPORT_REPORTS,
        }
    ),
    # Read-only oversight: no create, update or delete.
    UserRole.PRESIDENT: frozenset(
        {
            _P.READ_USER,
            _P.READ_OPERATION,
            _P.READ_ASSIGNMENT,
            _P.READ_NOTIFICATION,
            _P.VIEW_DASHBOARD,
            _P.VIEW_ADMIN_DASHBOARD,
            _P.VIEW_REPORTS,
            _P.EXPORT_REPORTS,
        }
    ),
    UserRole.ADMIN: frozenset(Permission),
}


def permissions_for(role: UserRole) -> frozenset[Permission]:
    """Get every permission granted to a role."""
    return _ROLE_PERMISSIONS.get(role, frozenset())


def has_permission(role: UserRole, permission: Permission) -> bool:
    return permission in permissions_for(role)


def can_access(role: UserRole, required: Iterable[Permission]) -> bool:
    """Check that a role holds all of ``required``."""
    return permissions_for(role).issuperset(required)
