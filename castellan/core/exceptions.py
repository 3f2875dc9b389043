"""Exception hierarchy for castellan.

Every failure carries a stable ``code`` and a ``details`` mapping so callers
(for example an HTTP layer) can map errors without parsing messages.

    AuthorizationError
    ├── ValidationError
    │   ├── UnregisteredPermission
    │   ├── IneligibleActorOrScope
    │   ├── RoleConstraintViolation
    │   └── RoleAlreadyExists
    └── NotFound
        └── RoleNotFound

Read-side queries never raise for "not granted"; absence of a grant is a
plain ``False``.
"""

from typing import Any, Optional


class AuthorizationError(Exception):
    """Base exception for all castellan errors."""

    code: str = "AUTHORIZATION_ERROR"

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(AuthorizationError):
    """A mutation was rejected before anything was written."""

    code = "VALIDATION_ERROR"


class UnregisteredPermission(ValidationError):
    """Raised when an operation references a handle missing from the catalog."""

    code = "UNREGISTERED_PERMISSION"

    def __init__(self, handle: str):
        super().__init__(f"Permission '{handle}' is not registered.", handle=handle)
        self.handle = handle


class IneligibleActorOrScope(ValidationError):
    """Raised when a permission's actor/scope restrictions exclude the target."""

    code = "INELIGIBLE_ACTOR_OR_SCOPE"

    def __init__(self, handle: str, actor_type: Optional[str], scope_type: Optional[str]):
        super().__init__(
            f"Permission '{handle}' is not allowed for actor type '{actor_type}' "
            f"and scope type '{scope_type}'.",
            handle=handle,
            actor_type=actor_type,
            scope_type=scope_type,
        )
        self.handle = handle
        self.actor_type = actor_type
        self.scope_type = scope_type


class RoleConstraintViolation(ValidationError):
    """Raised when an assignment does not satisfy the role's constraints."""

    code = "ROLE_CONSTRAINT_VIOLATION"

    def __init__(self, role_handle: str, reason: str):
        super().__init__(f"Role '{role_handle}': {reason}", role=role_handle, reason=reason)
        self.role_handle = role_handle
        self.reason = reason


class RoleAlreadyExists(ValidationError):
    """Raised when creating a role whose unique key is already taken."""

    code = "ROLE_ALREADY_EXISTS"

    def __init__(self, handle: str):
        super().__init__(f"Role '{handle}' already exists for this actor, scope and tenant.", handle=handle)
        self.handle = handle


class NotFound(AuthorizationError):
    """A referenced record does not exist."""

    code = "NOT_FOUND"


class RoleNotFound(NotFound):
    code = "ROLE_NOT_FOUND"

    def __init__(self, role_id: Any):
        super().__init__(f"Role {role_id} not found", role_id=role_id)
        self.role_id = role_id
