"""Query criteria shared by the grant and assignment stores."""

from typing import Optional

from sqlalchemy import and_

from castellan.core.references import Reference


def actor_filter(model, actor: Reference):
    return and_(model.actor_type == actor.type, model.actor_id == actor.id)


def scope_filter(model, scope: Optional[Reference]):
    """Exact scope match. ``None`` matches only rows with no scope."""
    if scope is None:
        return and_(model.scope_type.is_(None), model.scope_id.is_(None))
    return and_(model.scope_type == scope.type, model.scope_id == scope.id)


def scope_values(scope: Optional[Reference]) -> dict:
    if scope is None:
        return {"scope_type": None, "scope_id": None}
    return {"scope_type": scope.type, "scope_id": scope.id}
