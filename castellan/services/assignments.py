"""Actor -> role assignments, optionally scoped.

Assignments are validated against the role's constraints before they are
written:

- ``role.actor_type`` (if set) must equal the actor's type
- ``role.scope_type`` (if set) must equal the scope's type, when a scope is given
- when a tenant context is given, the role must belong to exactly that tenant
"""

import logging
from typing import Iterable, List, Optional, Set, Union

from sqlalchemy import and_, delete, or_, select
from sqlalchemy.orm import Session

from castellan.core.exceptions import RoleConstraintViolation, RoleNotFound
from castellan.core.references import Reference
from castellan.db.models import ActorRole, Role
from .roles import RoleLike, RoleStore
from .scoping import actor_filter, scope_filter, scope_values

logger = logging.getLogger(__name__)


class AssignmentStore:
    """Reads and writes ``actor_role`` rows."""

    def __init__(self, db: Session, roles: Optional[RoleStore] = None):
        self.db = db
        self.roles = roles or RoleStore(db)

    def validate(
        self,
        actor: Reference,
        role: RoleLike,
        scope: Optional[Reference] = None,
        *,
        tenant: Optional[Reference] = None,
    ) -> Role:
        """Check the role's constraints for this actor, scope and tenant.

        Returns:
            The resolved Role

        Raises:
            RoleNotFound: If the role id does not exist
            RoleConstraintViolation: If any constraint is not met
        """
        role = self.roles.get_role(role)

        if role.actor_type is not None and role.actor_type != actor.type:
            raise RoleConstraintViolation(
                role.handle, f"actor type '{actor.type}' is not allowed (expects '{role.actor_type}')"
            )

        if scope is not None and role.scope_type is not None and role.scope_type != scope.type:
            raise RoleConstraintViolation(
                role.handle, f"scope type '{scope.type}' is not allowed (expects '{role.scope_type}')"
            )

        if tenant is not None and role.tenant != tenant:
            raise RoleConstraintViolation(role.handle, f"does not belong to tenant '{tenant}'")

        return role

    def assign(
        self,
        actor: Reference,
        role: RoleLike,
        scope: Optional[Reference] = None,
        *,
        tenant: Optional[Reference] = None,
    ) -> ActorRole:
        """Assign a role. Re-assigning the identical tuple is a no-op."""
        try:
            role = self.validate(actor, role, scope, tenant=tenant)
        except RoleConstraintViolation:
            logger.warning(f"Rejected assignment of role {role} to {actor}")
            raise

        existing = self._find(actor, role.id, scope)
        if existing:
            return existing

        assignment = ActorRole(
            actor_type=actor.type,
            actor_id=actor.id,
            role_id=role.id,
            **scope_values(scope),
        )
        self.db.add(assignment)
        self.db.flush()

        logger.info(f"Assigned role {role.handle} to {actor}" + (f" on {scope}" if scope else ""))
        return assignment

    def remove(self, actor: Reference, role: Union[RoleLike, str], scope: Optional[Reference] = None) -> int:
        """Remove an exact-scope assignment. Returns the number of rows removed.

        A handle removes every assigned role with that handle.

        Raises:
            RoleNotFound: If the id or handle matches no role
            TypeError: If ``role`` is not a Role, an id or a handle
        """
        return self._remove_ids(actor, self._resolve_ids(role), scope)

    def remove_many(
        self,
        actor: Reference,
        roles: Iterable[Union[RoleLike, str]],
        scope: Optional[Reference] = None,
    ) -> int:
        role_ids: List[int] = []
        for role in roles:
            role_ids.extend(self._resolve_ids(role))
        return self._remove_ids(actor, role_ids, scope)

    def list_roles(self, actor: Reference, scope: Optional[Reference] = None) -> List[Role]:
        return list(
            self.db.execute(
                select(Role)
                .join(ActorRole, ActorRole.role_id == Role.id)
                .where(and_(actor_filter(ActorRole, actor), scope_filter(ActorRole, scope)))
                .order_by(Role.id)
            ).scalars()
        )

    def role_ids(self, actor: Reference, scope: Optional[Reference] = None) -> Set[int]:
        rows = self.db.execute(
            select(ActorRole.role_id).where(
                and_(actor_filter(ActorRole, actor), scope_filter(ActorRole, scope))
            )
        ).scalars()
        return set(rows)

    def has_role(
        self,
        actor: Reference,
        roles: Union[RoleLike, str, Iterable[Union[RoleLike, str]]],
        scope: Optional[Reference] = None,
    ) -> bool:
        """True if any of the roles (instances, ids or handles) is assigned for exactly this scope."""
        if isinstance(roles, (Role, int, str)):
            roles = [roles]

        ids, handles = [], []
        for role in roles:
            if isinstance(role, Role):
                ids.append(role.id)
            elif isinstance(role, int):
                ids.append(role)
            else:
                handles.append(role)

        if not ids and not handles:
            return False

        match = []
        if ids:
            match.append(Role.id.in_(ids))
        if handles:
            match.append(Role.handle.in_(handles))

        found = self.db.execute(
            select(ActorRole.id)
            .join(Role, ActorRole.role_id == Role.id)
            .where(
                and_(
                    actor_filter(ActorRole, actor),
                    scope_filter(ActorRole, scope),
                    or_(*match),
                )
            )
            .limit(1)
        ).first()
        return found is not None

    def _resolve_ids(self, role: Union[RoleLike, str]) -> List[int]:
        if isinstance(role, str):
            ids = list(self.db.execute(select(Role.id).where(Role.handle == role)).scalars())
            if not ids:
                raise RoleNotFound(role)
            return ids
        return [self.roles.get_role(role).id]

    def _find(self, actor: Reference, role_id: int, scope: Optional[Reference]) -> Optional[ActorRole]:
        return self.db.execute(
            select(ActorRole).where(
                and_(
                    actor_filter(ActorRole, actor),
                    scope_filter(ActorRole, scope),
                    ActorRole.role_id == role_id,
                )
            )
        ).scalars().first()

    def _remove_ids(self, actor: Reference, role_ids: List[int], scope: Optional[Reference]) -> int:
        if not role_ids:
            return 0

        result = self.db.execute(
            delete(ActorRole).where(
                and_(
                    actor_filter(ActorRole, actor),
                    scope_filter(ActorRole, scope),
                    ActorRole.role_id.in_(role_ids),
                )
            )
        )
        self.db.flush()

        if result.rowcount:
            logger.info(f"Removed roles {sorted(role_ids)} from {actor}" + (f" on {scope}" if scope else ""))
        return result.rowcount
