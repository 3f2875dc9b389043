from typing import Optional

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from castellan.core.references import Reference
from castellan.db.base import Base, utcnow


class ActorRole(Base):
    """
    Assignment of a role to an actor, optionally scoped.

    Both scope columns NULL means "no scope", which is distinct from every
    concrete scope.
    """
    __tablename__ = "actor_role"
    __table_args__ = (
        UniqueConstraint(
            "actor_type", "actor_id", "role_id", "scope_type", "scope_id",
            name="uq_actor_role_actor_type",
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    actor_type = Column(String(80), nullable=False)
    actor_id = Column(String(64), nullable=False)
    role_id = Column(Integer, ForeignKey("roles.id", ondelete="CASCADE"), nullable=False, index=True)
    scope_type = Column(String(80), nullable=True)
    scope_id = Column(String(64), nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    role = relationship("Role", back_populates="assignments")

    @property
    def actor(self) -> Reference:
        return Reference(self.actor_type, self.actor_id)

    @property
    def scope(self) -> Optional[Reference]:
        if self.scope_type is None:
            return None
        return Reference(self.scope_type, self.scope_id)

    def __repr__(self) -> str:
        return f"<ActorRole {self.actor_type}#{self.actor_id} role={self.role_id}>"
