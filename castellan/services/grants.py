"""Direct actor -> permission grants.

Every grant is validated against the catalog before it is written: the
handle must be registered and eligible for the actor type and scope type.
"""

import logging
from typing import Iterable, List, Optional, Set, Union

from sqlalchemy import and_, delete, select
from sqlalchemy.orm import Session

from castellan.core.exceptions import IneligibleActorOrScope, UnregisteredPermission
from castellan.core.rbac.catalog import HandleLike, PermissionCatalog, handle_value, handle_values
from castellan.core.references import Reference
from castellan.db.models import ActorPermission
from .scoping import actor_filter, scope_filter, scope_values

logger = logging.getLogger(__name__)


class GrantStore:
    """Reads and writes ``actor_permissions`` rows."""

    def __init__(self, db: Session, catalog: PermissionCatalog):
        self.db = db
        self.catalog = catalog

    def validate(self, actor: Reference, handle: HandleLike, scope: Optional[Reference] = None) -> str:
        """Check that ``handle`` may be granted to ``actor`` on ``scope``.

        Returns:
            The normalized handle

        Raises:
            UnregisteredPermission: If the handle is not in the catalog
            IneligibleActorOrScope: If the handle's restrictions exclude the target
        """
        handle = handle_value(handle)
        scope_type = scope.type if scope else None

        if not self.catalog.exists(handle):
            logger.warning(f"Rejected grant of unregistered permission {handle} to {actor}")
            raise UnregisteredPermission(handle)

        if not self.catalog.is_allowed_for(handle, actor.type, scope_type):
            logger.warning(f"Rejected grant of {handle} to {actor} on {scope}")
            raise IneligibleActorOrScope(handle, actor.type, scope_type)

        return handle

    def grant(self, actor: Reference, handle: HandleLike, scope: Optional[Reference] = None) -> ActorPermission:
        """Grant a permission. Granting an existing tuple is a no-op."""
        handle = self.validate(actor, handle, scope)

        existing = self._find(actor, handle, scope)
        if existing:
            return existing

        grant = ActorPermission(
            actor_type=actor.type,
            actor_id=actor.id,
            permission=handle,
            **scope_values(scope),
        )
        self.db.add(grant)
        self.db.flush()

        logger.info(f"Granted {handle} to {actor}" + (f" on {scope}" if scope else ""))
        return grant

    def revoke(
        self,
        actor: Reference,
        handles: Union[HandleLike, Iterable[HandleLike]],
        scope: Optional[Reference] = None,
    ) -> int:
        """Revoke exact-scope grants. Returns the number of rows removed."""
        values = handle_values(handles)
        if not values:
            return 0

        result = self.db.execute(
            delete(ActorPermission).where(
                and_(
                    actor_filter(ActorPermission, actor),
                    scope_filter(ActorPermission, scope),
                    ActorPermission.permission.in_(values),
                )
            )
        )
        self.db.flush()

        if result.rowcount:
            logger.info(f"Revoked {', '.join(values)} from {actor}" + (f" on {scope}" if scope else ""))
        return result.rowcount

    def has(
        self,
        actor: Reference,
        handles: Union[HandleLike, Iterable[HandleLike]],
        scope: Optional[Reference] = None,
    ) -> bool:
        """True only if every handle has a direct grant for exactly this scope."""
        values = set(handle_values(handles))
        if not values:
            return False
        return values <= self.list_for(actor, scope)

    def list_for(self, actor: Reference, scope: Optional[Reference] = None) -> Set[str]:
        rows = self.db.execute(
            select(ActorPermission.permission).where(
                and_(actor_filter(ActorPermission, actor), scope_filter(ActorPermission, scope))
            )
        ).scalars()
        return set(rows)

    def grants_for(self, actor: Reference) -> List[ActorPermission]:
        """All direct grants of an actor across every scope."""
        return list(
            self.db.execute(
                select(ActorPermission)
                .where(actor_filter(ActorPermission, actor))
                .order_by(ActorPermission.id)
            ).scalars()
        )

    def _find(self, actor: Reference, handle: str, scope: Optional[Reference]) -> Optional[ActorPermission]:
        return self.db.execute(
            select(ActorPermission).where(
                and_(
                    actor_filter(ActorPermission, actor),
                    scope_filter(ActorPermission, scope),
                    ActorPermission.permission == handle,
                )
            )
        ).scalars().first()
