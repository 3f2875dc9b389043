"""Role and role permission models.

A role is a named bundle of permission handles. It may be owned by a tenant
(``tenant_type``/``tenant_id``) and may restrict which actor type and scope
type it can be assigned to.
"""

from typing import Optional

from sqlalchemy import Column, Integer, String, DateTime, JSON, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from castellan.core.config import get_settings
from castellan.core.references import Reference
from castellan.db.base import Base, utcnow


class Role(Base):
    __tablename__ = "roles"
    __table_args__ = (
        UniqueConstraint(
            "handle", "actor_type", "scope_type", "tenant_type", "tenant_id",
            name="uq_roles_handle",
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_type = Column(String(80), nullable=True)
    tenant_id = Column(String(64), nullable=True)
    actor_type = Column(String(80), nullable=True)
    scope_type = Column(String(80), nullable=True)
    handle = Column(String(160), nullable=False, index=True)
    name = Column(String(255), nullable=True)
    translations = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Dependents are removed explicitly by RoleStore.delete_role
    permissions = relationship("RolePermission", back_populates="role", passive_deletes="all")
    assignments = relationship("ActorRole", back_populates="role", passive_deletes="all")

    @property
    def tenant(self) -> Optional[Reference]:
        if self.tenant_type is None:
            return None
        return Reference(self.tenant_type, self.tenant_id)

    @property
    def permission_handles(self) -> set:
        return {rp.permission for rp in self.permissions}

    def get_translation(self, field: str, locale: Optional[str] = None, default=None):
        """Get a translation for a field.

        Lookup order: requested locale (or the configured one), the fallback
        locale, the plain column value, then ``default``.
        """
        settings = get_settings()
        locale = locale or settings.locale
        values = (self.translations or {}).get(field) or {}

        if values.get(locale):
            return values[locale]
        if values.get(settings.fallback_locale):
            return values[settings.fallback_locale]

        value = getattr(self, field, None)
        if value is not None:
            return value
        return default

    def set_translation(self, field: str, locale: str, value: str) -> None:
        translations = dict(self.translations or {})
        field_values = dict(translations.get(field) or {})
        field_values[locale] = value
        translations[field] = field_values
        # Reassign so the JSON column is flagged dirty
        self.translations = translations

    def display_name(self, locale: Optional[str] = None) -> Optional[str]:
        return self.get_translation("name", locale, default=self.handle)

    def __repr__(self) -> str:
        return f"<Role {self.handle} ({self.id})>"


class RolePermission(Base):
    __tablename__ = "role_permissions"
    __table_args__ = (
        UniqueConstraint("role_id", "permission", name="uq_role_permissions_role_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    role_id = Column(Integer, ForeignKey("roles.id", ondelete="CASCADE"), nullable=False, index=True)
    permission = Column(String(160), nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    role = relationship("Role", back_populates="permissions")

    def __repr__(self) -> str:
        return f"<RolePermission role={self.role_id} {self.permission}>"
