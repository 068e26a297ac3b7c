"""SQL tenant store tests."""

import uuid
from unittest.mock import MagicMock

from sqlalchemy.dialects import postgresql

from meatmath.core.access_control import MembershipRecord
from meatmath.core.tenant_store import SqlTenantStore
from meatmath.models.membership import OrganizationMember


def test_active_membership_found(db, org1, add_member):
    add_member(org1, 'alice', 'editor')
    record = SqlTenantStore(db).find_active_membership('alice', org1.id)
    assert record == MembershipRecord(role='editor', active=True)


def test_inactive_membership_not_found(db, org1, add_member):
    add_member(org1, 'alice', 'admin', is_active=False)
    assert SqlTenantStore(db).find_active_membership('alice', org1.id) is None


def test_membership_in_other_org_not_found(db, org1, org2, add_member):
    add_member(org1, 'alice', 'owner')
    assert SqlTenantStore(db).find_active_membership('alice', org2.id) is None


def test_membership_of_missing_organization_not_found(db):
    db.add(OrganizationMember(
        organization_id=str(uuid.uuid4()),
        user_id='alice',
        role='owner',
        is_active=True,
    ))
    db.commit()
    orphan = db.query(OrganizationMember).first()
    assert SqlTenantStore(db).find_active_membership('alice', orphan.organization_id) is None


def test_reactivated_after_deactivation(db, org1, add_member):
    add_member(org1, 'alice', 'admin', is_active=False)
    add_member(org1, 'alice', 'viewer')
    record = SqlTenantStore(db).find_active_membership('alice', org1.id)
    assert record.role == 'viewer'


def test_locking_store_reads_the_same_row(db, org1, add_member):
    add_member(org1, 'alice', 'viewer')
    record = SqlTenantStore(db, lock_rows=True).find_active_membership('alice', org1.id)
    assert record.role == 'viewer'
    db.rollback()


def test_list_active_memberships(db, org1, org2, add_member):
    add_member(org1, 'alice', 'viewer')
    add_member(org2, 'alice', 'admin', is_active=False)
    memberships = SqlTenantStore(db).list_active_memberships('alice')
    assert memberships == [(org1.id, MembershipRecord(role='viewer', active=True))]


def _compiled(db_mock):
    stmt = db_mock.execute.call_args[0][0]
    return str(stmt.compile(dialect=postgresql.dialect()))


def test_locking_store_locks_single_lookup():
    db = MagicMock()
    db.execute.return_value.first.return_value = None
    SqlTenantStore(db, lock_rows=True).find_active_membership('alice', str(uuid.uuid4()))
    assert 'FOR UPDATE OF organization_members' in _compiled(db)


def test_locking_store_locks_membership_listing():
    db = MagicMock()
    db.execute.return_value = []
    SqlTenantStore(db, lock_rows=True).list_active_memberships('alice')
    assert 'FOR UPDATE OF organization_members' in _compiled(db)


def test_plain_store_does_not_lock():
    db = MagicMock()
    db.execute.return_value = []
    SqlTenantStore(db).list_active_memberships('alice')
    assert 'FOR UPDATE' not in _compiled(db)


def test_locking_store_lists_memberships(db, org1, add_member):
    add_member(org1, 'alice', 'admin')
    memberships = SqlTenantStore(db, lock_rows=True).list_active_memberships('alice')
    assert memberships == [(org1.id, MembershipRecord(role='admin', active=True))]
    db.rollback()
