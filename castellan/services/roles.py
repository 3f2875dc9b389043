"""Role definitions and their permission grants.

Eligibility of a role for a given actor/scope/tenant is checked when the
role is assigned (see :mod:`castellan.services.assignments`), not here.
"""

import logging
from typing import Dict, Iterable, List, Optional, Set, Union

from sqlalchemy import and_, delete, select
from sqlalchemy.orm import Session

from castellan.core.exceptions import RoleAlreadyExists, RoleNotFound
from castellan.core.rbac.catalog import HandleLike, handle_values
from castellan.core.references import Reference
from castellan.db.models import ActorRole, Role, RolePermission

logger = logging.getLogger(__name__)

RoleLike = Union[Role, int]


def _nullable_eq(column, value):
    return column.is_(None) if value is None else column == value


class RoleStore:
    """Creates, edits and deletes roles."""

    def __init__(self, db: Session):
        self.db = db

    def create_role(
        self,
        handle: str,
        *,
        name: Optional[str] = None,
        actor_type: Optional[str] = None,
        scope_type: Optional[str] = None,
        tenant: Optional[Reference] = None,
        translations: Optional[Dict[str, Dict[str, str]]] = None,
    ) -> Role:
        """
        Create a role.

        Args:
            handle: Role handle, unique per actor type, scope type and tenant
            name: Display name
            actor_type: Only actors of this type may be assigned the role
            scope_type: Only scopes of this type may be used when assigning
            tenant: Owner of the role
            translations: ``{field: {locale: text}}``

        Raises:
            RoleAlreadyExists: If the unique key is already taken
        """
        if self.find_role(handle, actor_type=actor_type, scope_type=scope_type, tenant=tenant):
            raise RoleAlreadyExists(handle)

        role = Role(
            handle=handle,
            name=name,
            actor_type=actor_type,
            scope_type=scope_type,
            tenant_type=tenant.type if tenant else None,
            tenant_id=tenant.id if tenant else None,
            translations=translations,
        )
        self.db.add(role)
        self.db.flush()

        logger.info(f"Created role {handle} ({role.id})")
        return role

    def get_role(self, role: RoleLike) -> Role:
        """Return the role for an instance or id, raising RoleNotFound.

        Handles are ambiguous across tenants and types; use :meth:`find_role`.
        """
        if isinstance(role, Role):
            return role
        if not isinstance(role, int) or isinstance(role, bool):
            raise TypeError(f"Expected a Role or a role id, got {type(role).__name__}")
        found = self.db.get(Role, role)
        if found is None:
            raise RoleNotFound(role)
        return found

    def find_role(
        self,
        handle: str,
        *,
        actor_type: Optional[str] = None,
        scope_type: Optional[str] = None,
        tenant: Optional[Reference] = None,
    ) -> Optional[Role]:
        return self.db.execute(
            select(Role).where(
                and_(
                    Role.handle == handle,
                    _nullable_eq(Role.actor_type, actor_type),
                    _nullable_eq(Role.scope_type, scope_type),
                    _nullable_eq(Role.tenant_type, tenant.type if tenant else None),
                    _nullable_eq(Role.tenant_id, tenant.id if tenant else None),
                )
            )
        ).scalars().first()

    def roles_for_tenant(self, tenant: Reference) -> List[Role]:
        """All roles owned by a tenant."""
        return list(
            self.db.execute(
                select(Role)
                .where(and_(Role.tenant_type == tenant.type, Role.tenant_id == tenant.id))
                .order_by(Role.id)
            ).scalars()
        )

    def add_permission(self, role: RoleLike, handles: Union[HandleLike, Iterable[HandleLike]]) -> Set[str]:
        """Grant handles to a role. Re-adding an existing handle is a no-op.

        Returns:
            The handles that were actually added
        """
        role = self.get_role(role)
        current = self.permissions_of(role)

        added = set()
        for handle in handle_values(handles):
            if handle in current:
                continue
            self.db.add(RolePermission(role_id=role.id, permission=handle))
            added.add(handle)

        if added:
            self.db.flush()
            self.db.expire(role, ["permissions"])
            logger.info(f"Added {', '.join(sorted(added))} to role {role.handle}")
        return added

    def remove_permission(self, role: RoleLike, handles: Union[HandleLike, Iterable[HandleLike]]) -> int:
        role = self.get_role(role)
        values = handle_values(handles)
        if not values:
            return 0

        result = self.db.execute(
            delete(RolePermission).where(
                and_(RolePermission.role_id == role.id, RolePermission.permission.in_(values))
            )
        )
        self.db.flush()
        self.db.expire(role, ["permissions"])

        if result.rowcount:
            logger.info(f"Removed {', '.join(values)} from role {role.handle}")
        return result.rowcount

    def permissions_of(self, role: RoleLike) -> Set[str]:
        role_id = role.id if isinstance(role, Role) else role
        rows = self.db.execute(
            select(RolePermission.permission).where(RolePermission.role_id == role_id)
        ).scalars()
        return set(rows)

    def delete_role(self, role: RoleLike) -> None:
        """Delete a role together with its permission grants and assignments.

        Dependents go first, then the role, inside one savepoint.
        """
        role = self.get_role(role)
        role_id, handle = role.id, role.handle

        with self.db.begin_nested():
            self.db.execute(delete(RolePermission).where(RolePermission.role_id == role_id))
            self.db.execute(delete(ActorRole).where(ActorRole.role_id == role_id))
            self.db.delete(role)

        logger.info(f"Deleted role {handle} ({role_id})")
