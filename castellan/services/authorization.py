"""Authorization service: the public entry points.

Resolves application objects (users, posts, accounts...) into references
through a :class:`TypeRegistry` and delegates to the stores, the resolver and
the reconciler.

Usage::

    types = TypeRegistry()
    types.register("user", User)
    types.register("post", Post)

    catalog = PermissionCatalog(types)
    catalog.register("manage-posts", "Manage Posts", actor_types=[User])
    catalog.register("view-post", "View Post")
    catalog.implies("manage-posts", "view-post")

    authz = AuthorizationService(db, catalog, current_actor=lambda: request.state.actor)
    authz.allow(alice, "manage-posts")
    authz.check("view-post", alice)                 # True, implied
    authz.permissions("view-post").on(post).check() # uses the current actor
"""

import logging
from typing import Any, Callable, Iterable, List, Optional, Union

from sqlalchemy.orm import Session

from castellan.core.rbac.catalog import HandleLike, PermissionCatalog, handle_values
from castellan.core.rbac.requests import PermissionRequest, RoleRequest
from castellan.core.references import Reference, TypeRegistry
from castellan.db.models import ActorPermission, ActorRole, Role
from .assignments import AssignmentStore
from .grants import GrantStore
from .reconciler import Reconciler, SyncResult
from .resolver import Authorizer
from .roles import RoleLike, RoleStore

logger = logging.getLogger(__name__)

Handles = Union[HandleLike, Iterable[HandleLike]]


class AuthorizationService:
    """
    High-level service for permission and role decisions and mutations.

    Handles:
    - check / check_all decisions (direct, role-derived and implied)
    - direct grants (allow / deny)
    - role assignments (assign_role / remove_role)
    - reconciliation (sync_permissions / sync_roles)
    """

    def __init__(
        self,
        db: Session,
        catalog: PermissionCatalog,
        *,
        types: Optional[TypeRegistry] = None,
        current_actor: Optional[Callable[[], Any]] = None,
    ):
        """
        Initialize the authorization service.

        Args:
            db: Database session
            catalog: Permission catalog
            types: Morph map for actor/scope/tenant objects (defaults to the catalog's)
            current_actor: Returns the current principal for actor-less checks
        """
        self.db = db
        self.catalog = catalog
        self.types = types or catalog.types
        self.current_actor = current_actor

        self.role_store = RoleStore(db)
        self.grants = GrantStore(db, catalog)
        self.assignments = AssignmentStore(db, self.role_store)
        self.authorizer = Authorizer(db, catalog)
        self.reconciler = Reconciler(db, self.grants, self.assignments)

    # ── Decisions ───────────────────────────────────────

    def check(self, permissions: Handles, actor: Any = None, scope: Any = None) -> bool:
        """True if the actor satisfies at least one of the permissions."""
        return self.authorizer.check(self._actor_or_current(actor), permissions, self._ref(scope))

    def check_all(self, permissions: Handles, actor: Any = None, scope: Any = None) -> bool:
        """True if the actor satisfies every one of the permissions."""
        return self.authorizer.check_all(self._actor_or_current(actor), permissions, self._ref(scope))

    def effective_permissions(self, actor: Any, scope: Any = None) -> frozenset:
        return self.authorizer.effective_permissions(self._ref(actor), self._ref(scope))

    # ── Direct grants ───────────────────────────────────

    def allow(self, actor: Any, permissions: Handles, scope: Any = None) -> List[ActorPermission]:
        """Grant permissions directly.

        Every handle is validated before the first one is written.
        """
        actor_ref, scope_ref = self._ref(actor), self._ref(scope)
        values = handle_values(permissions)
        for handle in values:
            self.grants.validate(actor_ref, handle, scope_ref)
        return [self.grants.grant(actor_ref, handle, scope_ref) for handle in values]

    def deny(self, actor: Any, permissions: Handles, scope: Any = None) -> int:
        return self.grants.revoke(self._ref(actor), permissions, self._ref(scope))

    def has_permission(self, actor: Any, permission: HandleLike, scope: Any = None) -> bool:
        """Direct grants only; roles and implication are not considered."""
        return self.has_permissions(actor, permission, scope)

    def has_permissions(self, actor: Any, permissions: Handles, scope: Any = None) -> bool:
        return self.grants.has(self._ref(actor), permissions, self._ref(scope))

    # ── Roles ───────────────────────────────────────────

    def create_role(
        self,
        handle: str,
        *,
        name: Optional[str] = None,
        actor_type: Any = None,
        scope_type: Any = None,
        tenant: Any = None,
        translations: Optional[dict] = None,
        permissions: Optional[Handles] = None,
    ) -> Role:
        """Create a role, resolving type constraints and tenant through the morph map."""
        role = self.role_store.create_role(
            handle,
            name=name,
            actor_type=self.types.tag_for(actor_type) if actor_type is not None else None,
            scope_type=self.types.tag_for(scope_type) if scope_type is not None else None,
            tenant=self._ref(tenant),
            translations=translations,
        )
        if permissions:
            self.role_store.add_permission(role, permissions)
        return role

    def delete_role(self, role: RoleLike) -> None:
        self.role_store.delete_role(role)

    def assign_role(self, actor: Any, role: RoleLike, scope: Any = None, *, tenant: Any = None) -> ActorRole:
        return self.assignments.assign(self._ref(actor), role, self._ref(scope), tenant=self._ref(tenant))

    def assign_roles(
        self,
        actor: Any,
        roles: Iterable[RoleLike],
        scope: Any = None,
        *,
        tenant: Any = None,
    ) -> List[ActorRole]:
        """Assign several roles; all are validated before any is written."""
        actor_ref, scope_ref, tenant_ref = self._ref(actor), self._ref(scope), self._ref(tenant)
        resolved = [
            self.assignments.validate(actor_ref, role, scope_ref, tenant=tenant_ref)
            for role in roles
        ]
        return [
            self.assignments.assign(actor_ref, role, scope_ref, tenant=tenant_ref)
            for role in resolved
        ]

    def remove_role(self, actor: Any, role: Union[RoleLike, str], scope: Any = None) -> int:
        return self.assignments.remove(self._ref(actor), role, self._ref(scope))

    def remove_roles(self, actor: Any, roles: Iterable[Union[RoleLike, str]], scope: Any = None) -> int:
        """Remove several roles; every role is resolved before any row is deleted."""
        return self.assignments.remove_many(self._ref(actor), roles, self._ref(scope))

    def has_role(self, actor: Any, roles: Any, scope: Any = None) -> bool:
        return self.assignments.has_role(self._ref(actor), roles, self._ref(scope))

    def roles_of(self, actor: Any, scope: Any = None) -> List[Role]:
        return self.assignments.list_roles(self._ref(actor), self._ref(scope))

    def has_role_permissions(self, actor: Any, permissions: Handles, scope: Any = None) -> bool:
        """True if the actor's roles alone grant every permission.

        Direct grants and implication are not considered.
        """
        return self.authorizer.has_role_permissions(self._ref(actor), permissions, self._ref(scope))

    def has_any_role_permissions(self, actor: Any, permissions: Handles, scope: Any = None) -> bool:
        """True if the actor's roles alone grant at least one permission."""
        return self.authorizer.has_role_permissions(
            self._ref(actor), permissions, self._ref(scope), require_all=False
        )

    # ── Reconciliation ──────────────────────────────────

    def sync_permissions(self, actor: Any, permissions: Handles, scope: Any = None) -> SyncResult:
        return self.reconciler.sync_permissions(self._ref(actor), permissions, self._ref(scope))

    def sync_roles(self, actor: Any, roles: Any, scope: Any = None, *, tenant: Any = None) -> SyncResult:
        return self.reconciler.sync_roles(self._ref(actor), roles, self._ref(scope), tenant=self._ref(tenant))

    # ── Request builders ────────────────────────────────

    def permissions(self, *handles: Handles) -> PermissionRequest:
        values: List[str] = []
        for group in handles:
            values.extend(h for h in handle_values(group) if h not in values)
        return PermissionRequest(service=self, handles=tuple(values))

    def roles(self, *roles: Any) -> RoleRequest:
        flat = []
        for group in roles:
            flat.extend([group] if isinstance(group, (Role, int, str)) else list(group))
        return RoleRequest(service=self, roles=tuple(flat))

    # ── Internals ───────────────────────────────────────

    def _ref(self, obj: Any) -> Optional[Reference]:
        return self.types.reference(obj)

    def _actor_or_current(self, actor: Any) -> Optional[Reference]:
        if actor is None and self.current_actor is not None:
            actor = self.current_actor()
        return self._ref(actor)
