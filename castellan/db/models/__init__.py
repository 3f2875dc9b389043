"""Database models for castellan."""

from castellan.db.models.role import Role, RolePermission
from castellan.db.models.actor_role import ActorRole
from castellan.db.models.actor_permission import ActorPermission

__all__ = [
    "Role",
    "RolePermission",
    "ActorRole",
    "ActorPermission",
]
