from typing import Optional

from sqlalchemy import Column, Integer, String, DateTime, UniqueConstraint

from castellan.core.references import Reference
from castellan.db.base import Base, utcnow


class ActorPermission(Base):
    """Direct grant of a permission handle to an actor, optionally scoped."""
    __tablename__ = "actor_permissions"
    __table_args__ = (
        UniqueConstraint(
            "actor_type", "actor_id", "scope_type", "scope_id", "permission",
            name="uq_actor_permissions_actor_type",
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    actor_type = Column(String(80), nullable=False)
    actor_id = Column(String(64), nullable=False)
    scope_type = Column(String(80), nullable=True)
    scope_id = Column(String(64), nullable=True)
    permission = Column(String(160), nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    @property
    def actor(self) -> Reference:
        return Reference(self.actor_type, self.actor_id)

    @property
    def scope(self) -> Optional[Reference]:
        if self.scope_type is None:
            return None
        return Reference(self.scope_type, self.scope_id)

    def __repr__(self) -> str:
        return f"<ActorPermission {self.actor_type}#{self.actor_id} {self.permission}>"
