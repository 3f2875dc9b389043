"""Initial schema: roles, role_permissions, actor_role, actor_permissions

Revision ID: 0001
Revises: None
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP")),
    ]


def upgrade() -> None:
    """Create all authorization tables."""

    # --- roles (no FK deps) ---
    op.create_table(
        "roles",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("tenant_type", sa.String(80), nullable=True),
        sa.Column("tenant_id", sa.String(64), nullable=True),
        sa.Column("actor_type", sa.String(80), nullable=True),
        sa.Column("scope_type", sa.String(80), nullable=True),
        sa.Column("handle", sa.String(160), nullable=False),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("translations", sa.JSON(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_roles"),
        sa.UniqueConstraint(
            "handle", "actor_type", "scope_type", "tenant_type", "tenant_id",
            name="uq_roles_handle",
        ),
    )
    op.create_index("ix_roles_handle", "roles", ["handle"])

    # --- role_permissions (FK -> roles) ---
    op.create_table(
        "role_permissions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("role_id", sa.Integer(), nullable=False),
        sa.Column("permission", sa.String(160), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_role_permissions"),
        sa.ForeignKeyConstraint(
            ["role_id"],
            ["roles.id"],
            name="fk_role_permissions_role_id_roles",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint("role_id", "permission", name="uq_role_permissions_role_id"),
    )
    op.create_index("ix_role_permissions_role_id", "role_permissions", ["role_id"])

    # --- actor_role (FK -> roles) ---
    op.create_table(
        "actor_role",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("actor_type", sa.String(80), nullable=False),
        sa.Column("actor_id", sa.String(64), nullable=False),
        sa.Column("role_id", sa.Integer(), nullable=False),
        sa.Column("scope_type", sa.String(80), nullable=True),
        sa.Column("scope_id", sa.String(64), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_actor_role"),
        sa.ForeignKeyConstraint(
            ["role_id"],
            ["roles.id"],
            name="fk_actor_role_role_id_roles",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint(
            "actor_type", "actor_id", "role_id", "scope_type", "scope_id",
            name="uq_actor_role_actor_type",
        ),
    )
    op.create_index("ix_actor_role_role_id", "actor_role", ["role_id"])

    # --- actor_permissions (no FK deps) ---
    op.create_table(
        "actor_permissions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("actor_type", sa.String(80), nullable=False),
        sa.Column("actor_id", sa.String(64), nullable=False),
        sa.Column("scope_type", sa.String(80), nullable=True),
        sa.Column("scope_id", sa.String(64), nullable=True),
        sa.Column("permission", sa.String(160), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_actor_permissions"),
        sa.UniqueConstraint(
            "actor_type", "actor_id", "scope_type", "scope_id", "permission",
            name="uq_actor_permissions_actor_type",
        ),
    )


def downgrade() -> None:
    """Drop all authorization tables in reverse dependency order."""
    op.drop_table("actor_permissions")
    op.drop_index("ix_actor_role_role_id", table_name="actor_role")
    op.drop_table("actor_role")
    op.drop_index("ix_role_permissions_role_id", table_name="role_permissions")
    op.drop_table("role_permissions")
    op.drop_index("ix_roles_handle", table_name="roles")
    op.drop_table("roles")
