"""Authorization resolver.

Combines direct grants, role grants and the catalog's implication graph into
one decision:

    granted   = direct grants for (actor, scope)
              ∪ permissions of roles assigned to (actor, scope)
    satisfied = required ∈ granted, or required ∈ implied_by(g) for some granted g

``check`` needs one required permission to be satisfied, ``check_all`` needs
every one. Only the granted side is expanded through implication.
"""

import logging
from typing import FrozenSet, Iterable, Optional, Union

from sqlalchemy import and_, select, union
from sqlalchemy.orm import Session

from castellan.core.rbac.catalog import HandleLike, PermissionCatalog, handle_values
from castellan.core.rbac.checker import PermissionChecker
from castellan.core.references import Reference
from castellan.db.models import ActorPermission, ActorRole, RolePermission
from .scoping import actor_filter, scope_filter

logger = logging.getLogger(__name__)


class Authorizer:
    """Answers permission questions for an actor on an optional scope."""

    def __init__(self, db: Session, catalog: PermissionCatalog):
        self.db = db
        self.catalog = catalog

    def granted_permissions(self, actor: Reference, scope: Optional[Reference] = None) -> FrozenSet[str]:
        """Direct grants plus role grants for exactly this scope (no implication)."""
        direct = select(ActorPermission.permission).where(
            and_(actor_filter(ActorPermission, actor), scope_filter(ActorPermission, scope))
        )

        # One statement, so both sources come from the same snapshot
        return frozenset(self.db.execute(union(direct, self._via_roles(actor, scope))).scalars())

    def role_permissions(self, actor: Reference, scope: Optional[Reference] = None) -> FrozenSet[str]:
        """Permissions held through roles assigned for exactly this scope."""
        return frozenset(self.db.execute(self._via_roles(actor, scope)).scalars())

    def has_role_permissions(
        self,
        actor: Optional[Reference],
        permissions: Union[HandleLike, Iterable[HandleLike]],
        scope: Optional[Reference] = None,
        *,
        require_all: bool = True,
    ) -> bool:
        """Check permissions against role grants alone.

        Direct grants and implication are not considered.
        """
        required = handle_values(permissions)
        if actor is None or not required:
            return False

        held = self.role_permissions(actor, scope)
        if require_all:
            return all(p in held for p in required)
        return any(p in held for p in required)

    def effective_permissions(self, actor: Reference, scope: Optional[Reference] = None) -> FrozenSet[str]:
        """Granted permissions expanded through the implication graph."""
        return self.catalog.expand(self.granted_permissions(actor, scope))

    def checker(self, actor: Reference, scope: Optional[Reference] = None) -> PermissionChecker:
        return PermissionChecker(self.granted_permissions(actor, scope), self.catalog)

    def check(
        self,
        actor: Optional[Reference],
        permissions: Union[HandleLike, Iterable[HandleLike]],
        scope: Optional[Reference] = None,
    ) -> bool:
        """True if at least one of the required permissions is satisfied."""
        required = handle_values(permissions)
        if actor is None or not required:
            return False

        allowed = self.checker(actor, scope).has_any_permission(required)
        logger.debug(f"check {required} for {actor} on {scope}: {allowed}")
        return allowed

    def check_all(
        self,
        actor: Optional[Reference],
        permissions: Union[HandleLike, Iterable[HandleLike]],
        scope: Optional[Reference] = None,
    ) -> bool:
        """True if every required permission is satisfied."""
        required = handle_values(permissions)
        if actor is None or not required:
            return False

        allowed = self.checker(actor, scope).has_all_permissions(required)
        logger.debug(f"check_all {required} for {actor} on {scope}: {allowed}")
        return allowed

    def _via_roles(self, actor: Reference, scope: Optional[Reference]):
        return (
            select(RolePermission.permission)
            .join(ActorRole, ActorRole.role_id == RolePermission.role_id)
            .where(and_(actor_filter(ActorRole, actor), scope_filter(ActorRole, scope)))
        )
