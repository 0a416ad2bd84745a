"""Exception types raised by the staffing core.

Validation failures of a single candidate are *results*, not exceptions
(see :class:`groundops.validation.validator.ValidationResult`). The types here
cover the cases a caller must handle distinctly: missing records, rejected
writes, denied permissions and bad configuration.
"""

from typing import Iterable, Optional


class GroundOpsError(Exception):
    """Base class for all staffing core errors."""


class NotFoundError(GroundOpsError):
    """A referenced staff member, operation or assignment does not exist."""

    def __init__(self, kind: str, identifier: object):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} {identifier} not found")


class ValidationFailedError(GroundOpsError):
    """A write was rejected because of blocking rule violations.

    Carries every reason so callers can show all problems at once.
    """

    def __init__(self, errors: Iterable[str], action: str = "Assignment rejected"):
        self.errors = [str(e) for e in errors]
        super().__init__(f"{action}: {', '.join(self.errors)}")


class PermissionDeniedError(GroundOpsError):
    """The requesting user's role lacks the permission for an action."""

    def __init__(self, role: object, permission: object):
        self.role = role
        self.permission = permission
        role_name = getattr(role, "value", role)
        permission_name = getattr(permission, "value", permission)
        super().__init__(f"Role {role_name} lacks permission {permission_name}")


class InvalidTransitionError(GroundOpsError):
    """An assignment status change does not follow the lifecycle."""

    def __init__(self, assignment_id: Optional[int], current: object, target: object):
        self.assignment_id = assignment_id
        self.current = current
        self.target = target
        super().__init__(
            f"Assignment {assignment_id} cannot move from "
            f"{getattr(current, 'value', current)} to {getattr(target, 'value', target)}"
        )


class ConfigError(GroundOpsError):
    """Configuration could not be loaded or is invalid."""
