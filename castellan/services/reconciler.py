"""Reconciliation of an actor's permissions or roles against a desired set.

Each sync computes the minimal diff against the current state for one exact
scope, validates every addition up front, and applies removals and additions
inside a savepoint. A failure rolls the savepoint back and re-raises, so the
store never holds half of a sync.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional, Set, Union

from sqlalchemy.orm import Session

from castellan.core.rbac.catalog import HandleLike, handle_values
from castellan.core.references import Reference
from castellan.db.models import Role
from .assignments import AssignmentStore
from .grants import GrantStore
from .roles import RoleLike

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """What a sync changed."""
    added: Set = field(default_factory=set)
    removed: Set = field(default_factory=set)

    @property
    def changed(self) -> bool:
        return bool(self.added or self.removed)


class Reconciler:
    def __init__(self, db: Session, grants: GrantStore, assignments: AssignmentStore):
        self.db = db
        self.grants = grants
        self.assignments = assignments

    def sync_permissions(
        self,
        actor: Reference,
        desired: Union[HandleLike, Iterable[HandleLike]],
        scope: Optional[Reference] = None,
    ) -> SyncResult:
        """Make the actor's direct grants on ``scope`` equal ``desired``.

        Raises:
            UnregisteredPermission: If a desired handle is not registered
            IneligibleActorOrScope: If a desired handle is not eligible
        """
        wanted = handle_values(desired)
        current = self.grants.list_for(actor, scope)

        to_remove = current - set(wanted)
        to_add = [h for h in wanted if h not in current]

        for handle in to_add:
            self.grants.validate(actor, handle, scope)

        if not to_remove and not to_add:
            return SyncResult()

        with self.db.begin_nested():
            self.grants.revoke(actor, sorted(to_remove), scope)
            for handle in to_add:
                self.grants.grant(actor, handle, scope)

        logger.info(
            f"Synced permissions for {actor}" + (f" on {scope}" if scope else "")
            + f": +{len(to_add)} -{len(to_remove)}"
        )
        return SyncResult(added=set(to_add), removed=to_remove)

    def sync_roles(
        self,
        actor: Reference,
        desired: Union[RoleLike, Iterable[RoleLike]],
        scope: Optional[Reference] = None,
        *,
        tenant: Optional[Reference] = None,
    ) -> SyncResult:
        """Make the actor's role assignments on ``scope`` equal ``desired``.

        Raises:
            RoleNotFound: If a desired role id does not exist
            RoleConstraintViolation: If a desired role cannot be assigned here
        """
        desired = [desired] if isinstance(desired, (Role, int)) else list(desired)

        wanted = []
        for role in desired:
            resolved = self.assignments.roles.get_role(role)
            if resolved not in wanted:
                wanted.append(resolved)

        wanted_ids = {role.id for role in wanted}
        current = self.assignments.role_ids(actor, scope)

        to_remove = current - wanted_ids
        to_add = [role for role in wanted if role.id not in current]

        for role in to_add:
            self.assignments.validate(actor, role, scope, tenant=tenant)

        if not to_remove and not to_add:
            return SyncResult()

        with self.db.begin_nested():
            self.assignments.remove_many(actor, to_remove, scope)
            for role in to_add:
                self.assignments.assign(actor, role, scope, tenant=tenant)

        logger.info(
            f"Synced roles for {actor}" + (f" on {scope}" if scope else "")
            + f": +{len(to_add)} -{len(to_remove)}"
        )
        return SyncResult(added={role.id for role in to_add}, removed=to_remove)
