"""Tests for RoleStore."""

import pytest
from sqlalchemy import func, select

from castellan.core.exceptions import RoleAlreadyExists, RoleNotFound
from castellan.core.references import Reference
from castellan.db.models import ActorRole, Role, RolePermission
from castellan.services.roles import RoleStore
from tests.factories import create_assignment, create_role


ACME = Reference("account", "1")
GLOBEX = Reference("account", "2")


@pytest.fixture
def roles(db_session):
    return RoleStore(db_session)


def _count(db_session, model) -> int:
    return db_session.execute(select(func.count(model.id))).scalar_one()


class TestCreateRole:
    def test_create_role(self, roles):
        role = roles.create_role("editor", name="Editor", actor_type="user", scope_type="blog")
        assert role.id is not None
        assert role.handle == "editor"
        assert role.actor_type == "user"
        assert role.scope_type == "blog"
        assert role.tenant is None

    def test_create_tenant_role(self, roles):
        role = roles.create_role("editor", tenant=ACME)
        assert role.tenant == ACME
        assert role.tenant_type == "account"
        assert role.tenant_id == "1"

    def test_duplicate_key_rejected(self, roles):
        roles.create_role("editor")
        with pytest.raises(RoleAlreadyExists):
            roles.create_role("editor")

    def test_same_handle_in_other_tenant(self, roles):
        first = roles.create_role("editor", tenant=ACME)
        second = roles.create_role("editor", tenant=GLOBEX)
        global_role = roles.create_role("editor")
        assert len({first.id, second.id, global_role.id}) == 3

    def test_find_role(self, roles):
        created = roles.create_role("editor", tenant=ACME)
        assert roles.find_role("editor", tenant=ACME) is created
        assert roles.find_role("editor") is None
        assert roles.find_role("editor", tenant=GLOBEX) is None

    def test_roles_for_tenant(self, roles):
        a = roles.create_role("editor", tenant=ACME)
        b = roles.create_role("viewer", tenant=ACME)
        roles.create_role("editor", tenant=GLOBEX)
        assert roles.roles_for_tenant(ACME) == [a, b]


class TestGetRole:
    def test_by_instance_and_id(self, roles, db_session):
        role = create_role(db_session)
        assert roles.get_role(role) is role
        assert roles.get_role(role.id) is role

    def test_unknown_id(self, roles):
        with pytest.raises(RoleNotFound) as exc:
            roles.get_role(9999)
        assert exc.value.role_id == 9999


class TestRolePermissions:
    def test_add_permission(self, roles, db_session):
        role = create_role(db_session)
        added = roles.add_permission(role, ["edit-post", "view-post"])
        assert added == {"edit-post", "view-post"}
        assert roles.permissions_of(role) == {"edit-post", "view-post"}
        assert role.permission_handles == {"edit-post", "view-post"}

    def test_add_permission_is_idempotent(self, roles, db_session):
        role = create_role(db_session, permissions=["edit-post"])
        assert roles.add_permission(role.id, "edit-post") == set()
        assert _count(db_session, RolePermission) == 1

    def test_remove_permission(self, roles, db_session):
        role = create_role(db_session, permissions=["edit-post", "view-post"])
        assert roles.remove_permission(role, "edit-post") == 1
        assert roles.permissions_of(role) == {"view-post"}
        assert role.permission_handles == {"view-post"}
        assert roles.remove_permission(role, []) == 0


class TestDeleteRole:
    def test_delete_removes_dependents(self, roles, db_session):
        role = create_role(db_session, permissions=["edit-post", "view-post"])
        other = create_role(db_session, permissions=["view-post"])
        create_assignment(db_session, role=role)
        create_assignment(db_session, role=other)

        roles.delete_role(role.id)

        assert db_session.get(Role, other.id) is other
        assert _count(db_session, Role) == 1
        assert _count(db_session, RolePermission) == 1
        assert _count(db_session, ActorRole) == 1

    def test_delete_unknown(self, roles):
        with pytest.raises(RoleNotFound):
            roles.delete_role(404)

    def test_handle_is_rejected(self, roles, db_session):
        create_role(db_session, handle="editor")
        with pytest.raises(TypeError):
            roles.get_role("editor")
