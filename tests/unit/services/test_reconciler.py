"""Tests for permission and role reconciliation."""

import pytest

from castellan.core.exceptions import (
    IneligibleActorOrScope,
    RoleConstraintViolation,
    RoleNotFound,
    UnregisteredPermission,
)
from castellan.core.references import Reference
from castellan.services.assignments import AssignmentStore
from castellan.services.grants import GrantStore
from castellan.services.reconciler import Reconciler, SyncResult
from tests.factories import create_grant, create_role


ALICE = Reference("user", "1")
POST_1 = Reference("post", "1")
ACME = Reference("account", "1")


@pytest.fixture
def grants(db_session, blog_catalog):
    blog_catalog.register("call-api", actor_types=["client"])
    return GrantStore(db_session, blog_catalog)


@pytest.fixture
def assignments(db_session):
    return AssignmentStore(db_session)


@pytest.fixture
def reconciler(db_session, grants, assignments):
    return Reconciler(db_session, grants, assignments)


class TestSyncResult:
    def test_changed(self):
        assert not SyncResult().changed
        assert SyncResult(added={"a"}).changed
        assert SyncResult(removed={1}).changed


class TestSyncPermissions:
    @pytest.mark.parametrize(
        "start, desired",
        [
            ([], ["view-post"]),
            (["view-post", "edit-post"], []),
            (["view-post", "edit-post"], ["edit-post", "publish-post"]),
            (["manage-posts"], ["manage-posts"]),
        ],
    )
    def test_converges(self, reconciler, grants, db_session, start, desired):
        for handle in start:
            create_grant(db_session, actor=ALICE, permission=handle, scope=POST_1)

        result = reconciler.sync_permissions(ALICE, desired, POST_1)

        assert grants.list_for(ALICE, POST_1) == set(desired)
        assert result.added == set(desired) - set(start)
        assert result.removed == set(start) - set(desired)

        again = reconciler.sync_permissions(ALICE, desired, POST_1)
        assert not again.changed
        assert grants.list_for(ALICE, POST_1) == set(desired)

    def test_other_scopes_untouched(self, reconciler, grants, db_session):
        create_grant(db_session, actor=ALICE, permission="view-post")
        reconciler.sync_permissions(ALICE, ["edit-post"], POST_1)
        assert grants.list_for(ALICE) == {"view-post"}

    def test_unregistered_addition_changes_nothing(self, reconciler, grants, db_session):
        create_grant(db_session, actor=ALICE, permission="view-post")
        with pytest.raises(UnregisteredPermission):
            reconciler.sync_permissions(ALICE, ["edit-post", "ghost"])
        assert grants.list_for(ALICE) == {"view-post"}

    def test_ineligible_addition_changes_nothing(self, reconciler, grants, db_session):
        create_grant(db_session, actor=ALICE, permission="view-post")
        with pytest.raises(IneligibleActorOrScope):
            reconciler.sync_permissions(ALICE, ["call-api"])
        assert grants.list_for(ALICE) == {"view-post"}

    def test_failure_mid_sync_rolls_back(self, reconciler, grants, db_session, monkeypatch):
        create_grant(db_session, actor=ALICE, permission="view-post")

        def broken_grant(*args, **kwargs):
            raise RuntimeError("write failed")

        monkeypatch.setattr(grants, "grant", broken_grant)
        with pytest.raises(RuntimeError):
            reconciler.sync_permissions(ALICE, ["edit-post"])

        assert grants.list_for(ALICE) == {"view-post"}


class TestSyncRoles:
    def test_converges(self, reconciler, assignments, db_session):
        editor = create_role(db_session, handle="editor")
        viewer = create_role(db_session, handle="viewer")
        admin = create_role(db_session, handle="admin")
        assignments.assign(ALICE, editor)
        assignments.assign(ALICE, viewer)

        result = reconciler.sync_roles(ALICE, [viewer, admin.id])

        assert assignments.role_ids(ALICE) == {viewer.id, admin.id}
        assert result.added == {admin.id}
        assert result.removed == {editor.id}
        assert not reconciler.sync_roles(ALICE, [admin, viewer]).changed

    def test_single_role(self, reconciler, assignments, db_session):
        editor = create_role(db_session)
        reconciler.sync_roles(ALICE, editor, POST_1)
        assert assignments.role_ids(ALICE, POST_1) == {editor.id}

    def test_empty_desired_removes_all(self, reconciler, assignments, db_session):
        editor = create_role(db_session)
        assignments.assign(ALICE, editor)
        result = reconciler.sync_roles(ALICE, [])
        assert result.removed == {editor.id}
        assert assignments.role_ids(ALICE) == set()

    def test_unknown_role_changes_nothing(self, reconciler, assignments, db_session):
        editor = create_role(db_session)
        assignments.assign(ALICE, editor)
        with pytest.raises(RoleNotFound):
            reconciler.sync_roles(ALICE, [999])
        assert assignments.role_ids(ALICE) == {editor.id}

    def test_constraint_violation_changes_nothing(self, reconciler, assignments, db_session):
        editor = create_role(db_session)
        tenant_role = create_role(db_session, tenant=Reference("account", "2"))
        assignments.assign(ALICE, editor, tenant=None)
        with pytest.raises(RoleConstraintViolation):
            reconciler.sync_roles(ALICE, [tenant_role], tenant=ACME)
        assert assignments.role_ids(ALICE) == {editor.id}

    def test_desired_from_generator(self, reconciler, assignments, db_session):
        editor = create_role(db_session, handle="editor")
        viewer = create_role(db_session, handle="viewer")

        result = reconciler.sync_roles(ALICE, (r.id for r in [editor, viewer]))

        assert result.added == {editor.id, viewer.id}
        assert assignments.role_ids(ALICE) == {editor.id, viewer.id}

    def test_desired_from_mapping_keys(self, reconciler, assignments, db_session):
        editor = create_role(db_session, handle="editor")
        reconciler.sync_roles(ALICE, {editor.id: "editor"}.keys())
        assert assignments.role_ids(ALICE) == {editor.id}
