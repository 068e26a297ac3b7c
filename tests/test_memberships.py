"""Membership lifecycle tests."""

from unittest.mock import MagicMock

import pytest
import redis
from sqlalchemy.exc import IntegrityError

from meatmath.core.roles import Role, ActionClass, Decision
from meatmath.core.access_control import AccessControlService
from meatmath.core.tenant_store import SqlTenantStore
from meatmath.core.memberships import MembershipManager, check_can_manage
from meatmath.core.exceptions import (
    AccessDeniedError,
    MemberNotFoundError,
    MembershipConflictError,
    StoreUnavailableError,
)
from meatmath.models.membership import OrganizationMember
from meatmath.models.user import User


def _memberships(db, org_id, user_id):
    db.expire_all()
    return db.query(OrganizationMember).filter(
        OrganizationMember.organization_id == org_id,
        OrganizationMember.user_id == user_id,
    ).all()


class TestCreateOrganization:
    def test_creator_becomes_owner(self, db):
        manager = MembershipManager(db)
        org = manager.create_organization('alice', name='Smokehouse')

        rows = _memberships(db, org.id, 'alice')
        assert len(rows) == 1
        assert rows[0].role == 'owner'
        assert rows[0].is_active
        assert db.get(User, 'alice') is not None

    def test_default_settings(self, db):
        org = MembershipManager(db).create_organization('alice', name='Smokehouse')
        assert org.settings['currency'] == 'USD'
        assert org.settings['markupPercentage'] == 25

    def test_owner_can_immediately_admin_write(self, db):
        org = MembershipManager(db).create_organization('alice', name='Smokehouse')
        access = AccessControlService(SqlTenantStore(db))
        assert access.authorize('alice', org.id, ActionClass.ADMIN_WRITE) is Decision.ALLOW


class TestAddMember:
    def test_add_member(self, db, org1):
        member = MembershipManager(db).add_member(org1.id, 'bob', Role.EDITOR, actor_role=Role.ADMIN)
        assert member.role == 'editor'
        assert member.is_active
        assert member.joined_at is not None

    def test_duplicate_active_membership_rejected(self, db, org1, add_member):
        add_member(org1, 'bob', 'viewer')
        with pytest.raises(MembershipConflictError) as exc_info:
            MembershipManager(db).add_member(org1.id, 'bob', Role.EDITOR, actor_role=Role.ADMIN)
        assert exc_info.value.status_code == 409
        assert len(_memberships(db, org1.id, 'bob')) == 1

    def test_readding_deactivated_member_keeps_history(self, db, org1, add_member):
        add_member(org1, 'bob', 'editor', is_active=False)
        MembershipManager(db).add_member(org1.id, 'bob', Role.VIEWER, actor_role=Role.ADMIN)
        rows = _memberships(db, org1.id, 'bob')
        assert sorted((row.role, row.is_active) for row in rows) == [('editor', False), ('viewer', True)]

    def test_only_owner_may_grant_owner(self, db, org1):
        with pytest.raises(AccessDeniedError):
            MembershipManager(db).add_member(org1.id, 'bob', Role.OWNER, actor_role=Role.ADMIN)
        assert _memberships(db, org1.id, 'bob') == []

    def test_owner_may_grant_owner(self, db, org1):
        member = MembershipManager(db).add_member(org1.id, 'bob', Role.OWNER, actor_role=Role.OWNER)
        assert member.role == 'owner'


class TestChangeRole:
    def test_role_change_visible_to_next_check(self, db, org1, add_member):
        add_member(org1, 'bob', 'viewer')
        access = AccessControlService(SqlTenantStore(db))
        assert access.authorize('bob', org1.id, ActionClass.WRITE) is Decision.DENY

        MembershipManager(db).change_role(org1.id, 'bob', Role.EDITOR, actor_role=Role.ADMIN)
        assert access.authorize('bob', org1.id, ActionClass.WRITE) is Decision.ALLOW

    def test_downgrade_removes_admin_write(self, db, org1, add_member):
        add_member(org1, 'alice', 'owner')
        add_member(org1, 'bob', 'admin')
        MembershipManager(db).change_role(org1.id, 'bob', Role.VIEWER, actor_role=Role.OWNER)
        access = AccessControlService(SqlTenantStore(db))
        assert access.authorize('bob', org1.id, ActionClass.ADMIN_WRITE) is Decision.DENY

    def test_last_owner_cannot_be_demoted(self, db, org1, add_member):
        add_member(org1, 'alice', 'owner')
        with pytest.raises(MembershipConflictError):
            MembershipManager(db).change_role(org1.id, 'alice', Role.ADMIN, actor_role=Role.OWNER)
        assert _memberships(db, org1.id, 'alice')[0].role == 'owner'

    def test_owner_demoted_when_another_owner_remains(self, db, org1, add_member):
        add_member(org1, 'alice', 'owner')
        add_member(org1, 'carol', 'owner')
        member = MembershipManager(db).change_role(org1.id, 'alice', Role.ADMIN, actor_role=Role.OWNER)
        assert member.role == 'admin'

    def test_admin_cannot_change_owner(self, db, org1, add_member):
        add_member(org1, 'alice', 'owner')
        add_member(org1, 'carol', 'owner')
        with pytest.raises(AccessDeniedError):
            MembershipManager(db).change_role(org1.id, 'alice', Role.VIEWER, actor_role=Role.ADMIN)

    def test_inactive_membership_not_found(self, db, org1, add_member):
        add_member(org1, 'bob', 'viewer', is_active=False)
        with pytest.raises(MemberNotFoundError):
            MembershipManager(db).change_role(org1.id, 'bob', Role.EDITOR, actor_role=Role.ADMIN)


class TestDeactivate:
    def test_deactivation_is_soft(self, db, org1, add_member):
        add_member(org1, 'bob', 'editor')
        MembershipManager(db).deactivate(org1.id, 'bob', actor_role=Role.ADMIN)

        rows = _memberships(db, org1.id, 'bob')
        assert len(rows) == 1
        assert rows[0].is_active is False
        assert rows[0].role == 'editor'
        assert rows[0].deactivated_at is not None

    def test_deactivated_member_is_denied(self, db, org1, add_member):
        add_member(org1, 'bob', 'editor')
        access = AccessControlService(SqlTenantStore(db))
        assert access.authorize('bob', org1.id, ActionClass.WRITE) is Decision.ALLOW

        MembershipManager(db).deactivate(org1.id, 'bob', actor_role=Role.ADMIN)
        assert access.authorize('bob', org1.id, ActionClass.WRITE) is Decision.DENY
        assert access.authorize('bob', org1.id, ActionClass.READ) is Decision.DENY

    def test_last_owner_cannot_be_deactivated(self, db, org1, add_member):
        add_member(org1, 'alice', 'owner')
        with pytest.raises(MembershipConflictError):
            MembershipManager(db).deactivate(org1.id, 'alice', actor_role=Role.OWNER)

    def test_unknown_member(self, db, org1):
        with pytest.raises(MemberNotFoundError):
            MembershipManager(db).deactivate(org1.id, 'nobody', actor_role=Role.ADMIN)


class TestCacheInvalidation:
    def test_invalidated_before_and_after_commit(self, db, org1, add_member):
        add_member(org1, 'bob', 'admin')
        cache = MagicMock()
        MembershipManager(db, cache=cache).deactivate(org1.id, 'bob', actor_role=Role.OWNER)
        cache.begin_invalidation.assert_called_once_with('bob', org1.id)
        cache.finish_invalidation.assert_called_once_with('bob', org1.id)

    def test_failed_invalidation_aborts_change(self, db, org1, add_member):
        add_member(org1, 'bob', 'admin')
        cache = MagicMock()
        cache.begin_invalidation.side_effect = redis.ConnectionError('down')

        with pytest.raises(StoreUnavailableError):
            MembershipManager(db, cache=cache).change_role(org1.id, 'bob', Role.VIEWER, actor_role=Role.OWNER)

        assert _memberships(db, org1.id, 'bob')[0].role == 'admin'
        cache.finish_invalidation.assert_not_called()

    def test_post_commit_failure_keeps_change(self, db, org1, add_member):
        add_member(org1, 'bob', 'admin')
        cache = MagicMock()
        cache.finish_invalidation.side_effect = redis.ConnectionError('down')

        MembershipManager(db, cache=cache).change_role(org1.id, 'bob', Role.VIEWER, actor_role=Role.OWNER)

        assert _memberships(db, org1.id, 'bob')[0].role == 'viewer'

    def test_failed_commit_still_releases_pair(self, db, org1, add_member, monkeypatch):
        add_member(org1, 'bob', 'admin')
        cache = MagicMock()

        def failing_commit():
            raise IntegrityError('UPDATE organization_members', {}, Exception('conflict'))

        monkeypatch.setattr(db, 'commit', failing_commit)

        with pytest.raises(IntegrityError):
            MembershipManager(db, cache=cache).change_role(org1.id, 'bob', Role.VIEWER, actor_role=Role.OWNER)

        cache.finish_invalidation.assert_called_once_with('bob', org1.id)


def test_check_can_manage():
    check_can_manage(Role.ADMIN, Role.EDITOR, Role.VIEWER)
    check_can_manage(Role.OWNER, Role.OWNER, None)
    with pytest.raises(AccessDeniedError):
        check_can_manage(Role.ADMIN, None, Role.OWNER)
    with pytest.raises(AccessDeniedError):
        check_can_manage(None, Role.OWNER, Role.ADMIN)
