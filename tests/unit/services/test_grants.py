"""Tests for direct permission grants."""

import pytest
from sqlalchemy import func, select

from castellan.core.exceptions import IneligibleActorOrScope, UnregisteredPermission
from castellan.core.references import Reference
from castellan.db.models import ActorPermission
from castellan.services.grants import GrantStore
from tests.factories import create_grant


ALICE = Reference("user", "1")
API_CLIENT = Reference("client", "9")
POST_1 = Reference("post", "1")
POST_2 = Reference("post", "2")


@pytest.fixture
def grants(db_session, blog_catalog):
    blog_catalog.register("call-api", actor_types=["client"])
    blog_catalog.register("edit-own-post", scope_types=["post"])
    return GrantStore(db_session, blog_catalog)


def _count(db_session) -> int:
    return db_session.execute(select(func.count(ActorPermission.id))).scalar_one()


class TestGrant:
    """Test writing grants."""

    def test_grant_writes_row(self, grants, db_session):
        grant = grants.grant(ALICE, "view-post")
        assert grant.id is not None
        assert grant.actor == ALICE
        assert grant.scope is None
        assert _count(db_session) == 1

    def test_grant_is_idempotent(self, grants, db_session):
        first = grants.grant(ALICE, "view-post", POST_1)
        second = grants.grant(ALICE, "view-post", POST_1)
        assert first.id == second.id
        assert _count(db_session) == 1

    def test_unscoped_grant_is_idempotent(self, grants, db_session):
        grants.grant(ALICE, "view-post")
        grants.grant(ALICE, "view-post")
        assert _count(db_session) == 1

    def test_unregistered_permission(self, grants, db_session):
        with pytest.raises(UnregisteredPermission) as exc:
            grants.grant(ALICE, "delete-universe")
        assert exc.value.handle == "delete-universe"
        assert _count(db_session) == 0

    @pytest.mark.parametrize(
        "actor, handle, scope",
        [
            (ALICE, "call-api", None),
            (ALICE, "call-api", POST_1),
            (ALICE, "edit-own-post", Reference("blog", "1")),
            (API_CLIENT, "edit-own-post", Reference("account", "3")),
        ],
    )
    def test_ineligible_actor_or_scope(self, grants, db_session, actor, handle, scope):
        with pytest.raises(IneligibleActorOrScope):
            grants.grant(actor, handle, scope)
        assert _count(db_session) == 0

    def test_eligible_restricted_grants(self, grants):
        grants.grant(API_CLIENT, "call-api")
        grants.grant(ALICE, "edit-own-post", POST_1)
        assert grants.has(API_CLIENT, "call-api")
        assert grants.has(ALICE, "edit-own-post", POST_1)


class TestScopeIsolation:
    """Grants apply to exactly one scope."""

    def test_scoped_grant_does_not_leak(self, grants):
        grants.grant(ALICE, "view-post", POST_1)
        assert grants.has(ALICE, "view-post", POST_1)
        assert not grants.has(ALICE, "view-post", POST_2)
        assert not grants.has(ALICE, "view-post")

    def test_unscoped_grant_does_not_cover_scopes(self, grants):
        grants.grant(ALICE, "view-post")
        assert grants.has(ALICE, "view-post")
        assert not grants.has(ALICE, "view-post", POST_1)

    def test_other_actor_unaffected(self, grants):
        grants.grant(ALICE, "view-post")
        assert not grants.has(Reference("user", "2"), "view-post")


class TestRevokeAndRead:
    def test_revoke_exact_scope(self, grants, db_session):
        grants.grant(ALICE, "view-post", POST_1)
        grants.grant(ALICE, "view-post", POST_2)

        assert grants.revoke(ALICE, "view-post", POST_1) == 1
        assert not grants.has(ALICE, "view-post", POST_1)
        assert grants.has(ALICE, "view-post", POST_2)

    def test_revoke_many(self, grants):
        grants.grant(ALICE, "view-post")
        grants.grant(ALICE, "edit-post")
        assert grants.revoke(ALICE, ["view-post", "edit-post", "publish-post"]) == 2
        assert grants.list_for(ALICE) == set()

    def test_revoke_nothing(self, grants):
        assert grants.revoke(ALICE, []) == 0
        assert grants.revoke(ALICE, "view-post") == 0

    def test_has_requires_every_handle(self, grants):
        grants.grant(ALICE, "view-post")
        assert grants.has(ALICE, ["view-post"])
        assert not grants.has(ALICE, ["view-post", "edit-post"])
        assert not grants.has(ALICE, [])

    def test_has_ignores_implication(self, grants):
        grants.grant(ALICE, "manage-posts")
        assert not grants.has(ALICE, "view-post")

    def test_list_for_and_grants_for(self, grants, db_session):
        create_grant(db_session, actor=ALICE, permission="view-post")
        create_grant(db_session, actor=ALICE, permission="edit-post", scope=POST_1)

        assert grants.list_for(ALICE) == {"view-post"}
        assert grants.list_for(ALICE, POST_1) == {"edit-post"}
        assert [g.permission for g in grants.grants_for(ALICE)] == ["view-post", "edit-post"]
