"""Immutable request values for chained permission and role operations.

Each chained call returns a new request, so a partially configured request
can be shared and reused safely::

    can_edit = authz.permissions("edit-post")
    can_edit.for_actor(alice).on(post).check()
    can_edit.for_actor(bob).check()          # unaffected by the line above

    authz.roles(editor).for_actor(alice).on(blog).assign()
"""

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Optional, Tuple

if TYPE_CHECKING:
    from castellan.services.authorization import AuthorizationService


@dataclass(frozen=True)
class PermissionRequest:
    """A set of permission handles, optionally bound to an actor and scope."""
    service: "AuthorizationService"
    handles: Tuple[str, ...]
    actor: Any = None
    scope: Any = None

    def for_actor(self, actor: Any) -> "PermissionRequest":
        return replace(self, actor=actor)

    def on(self, scope: Any) -> "PermissionRequest":
        return replace(self, scope=scope)

    def check(self) -> bool:
        """True if any of the handles is satisfied (falls back to the current actor)."""
        return self.service.check(list(self.handles), self.actor, self.scope)

    def check_all(self) -> bool:
        """True if every handle is satisfied (falls back to the current actor)."""
        return self.service.check_all(list(self.handles), self.actor, self.scope)

    def allow(self) -> bool:
        """Grant the handles directly. Returns False when no actor is set."""
        if self.actor is None:
            return False
        self.service.allow(self.actor, list(self.handles), self.scope)
        return True

    def deny(self) -> bool:
        """Revoke the handles. Returns False when no actor is set."""
        if self.actor is None:
            return False
        self.service.deny(self.actor, list(self.handles), self.scope)
        return True


@dataclass(frozen=True)
class RoleRequest:
    """A set of roles for one actor.

    Roles are instances or ids; ``check()`` and ``remove()`` also accept handles.
    """
    service: "AuthorizationService"
    roles: Tuple[Any, ...]
    actor: Any = None
    scope: Any = None
    tenant_ref: Any = None

    def for_actor(self, actor: Any) -> "RoleRequest":
        return replace(self, actor=actor)

    def on(self, scope: Optional[Any] = None) -> "RoleRequest":
        return replace(self, scope=scope)

    def tenant(self, tenant: Optional[Any] = None) -> "RoleRequest":
        return replace(self, tenant_ref=tenant)

    def assign(self) -> bool:
        if self.actor is None:
            return False
        self.service.assign_roles(self.actor, list(self.roles), self.scope, tenant=self.tenant_ref)
        return True

    def remove(self) -> bool:
        if self.actor is None:
            return False
        self.service.remove_roles(self.actor, list(self.roles), self.scope)
        return True

    def check(self) -> bool:
        """True if the actor holds any of the roles for exactly this scope."""
        if self.actor is None or not self.roles:
            return False
        return self.service.has_role(self.actor, list(self.roles), self.scope)
