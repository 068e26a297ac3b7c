"""Customer endpoint tests: tenant isolation at the HTTP boundary."""

import uuid

import pytest

from meatmath.models.customer import Customer


@pytest.fixture
def customer1(db, org1):
    """Customer owned by organization 1."""
    customer = Customer(organization_id=org1.id, name='Hank Hill', email='hank@example.com')
    db.add(customer)
    db.commit()
    return customer


def _customer_count(db, org_id=None):
    db.expire_all()
    query = db.query(Customer)
    if org_id:
        query = query.filter(Customer.organization_id == org_id)
    return query.count()


class TestCreate:
    def test_editor_creates_customer(self, client, db, org1, add_member, auth_headers):
        add_member(org1, 'alice', 'editor')

        response = client.post('/api/v1/customers', headers=auth_headers('alice'), json={
            'organization_id': org1.id,
            'name': 'Peggy Hill',
        })

        assert response.status_code == 201
        data = response.json()
        assert data['organization_id'] == org1.id
        assert data['name'] == 'Peggy Hill'
        assert data['is_active'] is True
        assert _customer_count(db, org1.id) == 1

    @pytest.mark.parametrize('role', ['owner', 'admin', 'editor', 'viewer'])
    def test_create_in_foreign_org_rejected_before_write(self, client, db, org1, org2, add_member, auth_headers, role):
        add_member(org1, 'alice', role)

        response = client.post('/api/v1/customers', headers=auth_headers('alice'), json={
            'organization_id': org2.id,
            'name': 'Intruder',
        })

        assert response.status_code == 403
        assert response.json() == {'message': 'Access denied'}
        assert _customer_count(db) == 0

    def test_viewer_cannot_create(self, client, db, org1, add_member, auth_headers):
        add_member(org1, 'alice', 'viewer')

        response = client.post('/api/v1/customers', headers=auth_headers('alice'), json={
            'organization_id': org1.id,
            'name': 'Peggy Hill',
        })

        assert response.status_code == 403
        assert _customer_count(db) == 0

    def test_unknown_org_looks_like_no_membership(self, client, db, org1, add_member, auth_headers):
        add_member(org1, 'alice', 'owner')

        response = client.post('/api/v1/customers', headers=auth_headers('alice'), json={
            'organization_id': str(uuid.uuid4()),
            'name': 'Ghost',
        })

        assert response.status_code == 403

    def test_malformed_org_id(self, client, db, org1, add_member, auth_headers):
        add_member(org1, 'alice', 'owner')

        response = client.post('/api/v1/customers', headers=auth_headers('alice'), json={
            'organization_id': 'org-1',
            'name': 'Peggy Hill',
        })

        assert response.status_code == 400
        assert _customer_count(db) == 0

    def test_deactivated_editor_cannot_create(self, client, db, org1, add_member, auth_headers):
        add_member(org1, 'alice', 'editor', is_active=False)

        response = client.post('/api/v1/customers', headers=auth_headers('alice'), json={
            'organization_id': org1.id,
            'name': 'Peggy Hill',
        })

        assert response.status_code == 403


class TestReadById:
    def test_viewer_reads_own_org_customer(self, client, org1, customer1, add_member, auth_headers):
        add_member(org1, 'alice', 'viewer')

        response = client.get(f'/api/v1/customers/{customer1.id}', headers=auth_headers('alice'))

        assert response.status_code == 200
        assert response.json()['name'] == 'Hank Hill'

    def test_member_of_other_org_denied(self, client, org2, customer1, add_member, auth_headers):
        add_member(org2, 'mallory', 'owner')

        response = client.get(f'/api/v1/customers/{customer1.id}', headers=auth_headers('mallory'))

        assert response.status_code == 403
        assert response.json() == {'message': 'Access denied'}

    def test_not_found(self, client, org1, add_member, auth_headers):
        add_member(org1, 'alice', 'viewer')

        response = client.get(f'/api/v1/customers/{uuid.uuid4()}', headers=auth_headers('alice'))

        assert response.status_code == 404


class TestWriteById:
    def test_viewer_cannot_update(self, client, db, org1, customer1, add_member, auth_headers):
        add_member(org1, 'alice', 'viewer')

        response = client.put(
            f'/api/v1/customers/{customer1.id}',
            headers=auth_headers('alice'),
            json={'name': 'Renamed'}
        )

        assert response.status_code == 403
        db.expire_all()
        assert db.get(Customer, customer1.id).name == 'Hank Hill'

    def test_viewer_cannot_delete(self, client, db, org1, customer1, add_member, auth_headers):
        add_member(org1, 'alice', 'viewer')

        response = client.delete(f'/api/v1/customers/{customer1.id}', headers=auth_headers('alice'))

        assert response.status_code == 403
        assert _customer_count(db, org1.id) == 1

    def test_editor_updates(self, client, org1, customer1, add_member, auth_headers):
        add_member(org1, 'alice', 'editor')

        response = client.put(
            f'/api/v1/customers/{customer1.id}',
            headers=auth_headers('alice'),
            json={'name': 'Hank R. Hill', 'customer_type': 'business'}
        )

        assert response.status_code == 200
        assert response.json()['name'] == 'Hank R. Hill'
        assert response.json()['customer_type'] == 'business'

    def test_update_cannot_move_customer(self, client, db, org1, org2, customer1, add_member, auth_headers):
        add_member(org1, 'alice', 'owner')
        add_member(org2, 'alice', 'owner')

        response = client.put(
            f'/api/v1/customers/{customer1.id}',
            headers=auth_headers('alice'),
            json={'organization_id': org2.id}
        )

        assert response.status_code == 200
        assert response.json()['organization_id'] == org1.id

    def test_body_org_claim_ignored_for_existing_record(self, client, db, org1, org2, customer1, add_member, auth_headers):
        add_member(org2, 'mallory', 'owner')

        response = client.put(
            f'/api/v1/customers/{customer1.id}',
            headers=auth_headers('mallory'),
            json={'name': 'Pwned', 'organization_id': org2.id}
        )

        assert response.status_code == 403

    def test_delete_is_soft(self, client, db, org1, customer1, add_member, auth_headers):
        add_member(org1, 'alice', 'editor')

        response = client.delete(f'/api/v1/customers/{customer1.id}', headers=auth_headers('alice'))

        assert response.status_code == 204
        db.expire_all()
        assert db.get(Customer, customer1.id).is_active is False

        response = client.get(f'/api/v1/customers/{customer1.id}', headers=auth_headers('alice'))
        assert response.status_code == 404


class TestList:
    def test_lists_only_path_org(self, client, db, org1, org2, customer1, add_member, auth_headers):
        db.add(Customer(organization_id=org2.id, name='Dale Gribble'))
        db.commit()
        add_member(org1, 'alice', 'viewer')

        response = client.get(f'/api/v1/organizations/{org1.id}/customers', headers=auth_headers('alice'))

        assert response.status_code == 200
        data = response.json()
        assert data['total'] == 1
        assert [c['name'] for c in data['customers']] == ['Hank Hill']
        assert data['page'] == 1

    def test_non_member_cannot_list(self, client, org1, org2, customer1, add_member, auth_headers):
        add_member(org2, 'mallory', 'admin')

        response = client.get(f'/api/v1/organizations/{org1.id}/customers', headers=auth_headers('mallory'))

        assert response.status_code == 403

    def test_search(self, client, db, org1, customer1, add_member, auth_headers):
        db.add(Customer(organization_id=org1.id, name='Bill Dauterive'))
        db.commit()
        add_member(org1, 'alice', 'viewer')

        response = client.get(
            f'/api/v1/organizations/{org1.id}/customers',
            headers=auth_headers('alice'),
            params={'search': 'bill'}
        )

        assert response.json()['total'] == 1
