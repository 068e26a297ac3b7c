"""Redis membership cache tests (Redis client mocked)."""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
import redis

import meatmath.core.membership_cache as membership_cache
from meatmath.core.access_control import AccessControlService, MembershipRecord
from meatmath.core.membership_cache import RedisMembershipCache, VERSION_TTL_SECONDS, get_membership_cache
from meatmath.core.roles import ActionClass, Decision


ORG = '5b0e6f0e-8f6e-4a57-9d1c-3f0a3a0c2b11'
VERSION_KEY = f'membership:{ORG}:alice:version'
PENDING_KEY = f'membership:{ORG}:alice:pending'
ROLE_KEY = f'membership:{ORG}:alice:role'


class DictRedis:
    """mget and MULTI/EXEC pipelines over a dict, values kept as strings."""

    def __init__(self):
        self.data = {}
        self.down = False

    def mget(self, *keys):
        if self.down:
            raise redis.ConnectionError('down')
        return [self.data.get(key) for key in keys]

    def pipeline(self, transaction=True):
        return DictPipeline(self)


class DictPipeline:
    def __init__(self, server):
        self.server = server
        self.ops = []

    def incr(self, key):
        self.ops.append(('add', key, 1))

    def decr(self, key):
        self.ops.append(('add', key, -1))

    def delete(self, key):
        self.ops.append(('delete', key, None))

    def setex(self, key, ttl, value):
        self.ops.append(('set', key, str(value)))

    def expire(self, key, ttl):
        pass

    def execute(self):
        if self.server.down:
            raise redis.ConnectionError('down')
        data = self.server.data
        for op, key, arg in self.ops:
            if op == 'add':
                data[key] = str(int(data.get(key, 0)) + arg)
            elif op == 'delete':
                data.pop(key, None)
            else:
                data[key] = arg


class OneRowStore:
    """Tenant store holding a single membership row for any lookup."""

    def __init__(self, role):
        self.record = MembershipRecord(role=role, active=True)
        self.calls = 0

    def find_active_membership(self, principal, organization_id):
        self.calls += 1
        return self.record

    def list_active_memberships(self, principal):
        return []


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def cache(client):
    return RedisMembershipCache(client, ttl_seconds=30)


def test_lookup_hit_with_current_version(cache, client):
    client.mget.return_value = ['3', None, '3|admin']
    result = cache.lookup('alice', ORG)
    assert result.hit
    assert result.role == 'admin'
    assert result.version == 3
    client.mget.assert_called_once_with(VERSION_KEY, PENDING_KEY, ROLE_KEY)


def test_lookup_cached_no_membership(cache, client):
    client.mget.return_value = ['1', '0', '1|-']
    result = cache.lookup('alice', ORG)
    assert result.hit
    assert result.role is None


def test_entry_from_older_version_is_a_miss(cache, client):
    client.mget.return_value = ['4', None, '3|admin']
    result = cache.lookup('alice', ORG)
    assert not result.hit
    assert result.version == 4


def test_empty_cache_starts_at_version_zero(cache, client):
    client.mget.return_value = [None, None, None]
    result = cache.lookup('alice', ORG)
    assert not result.hit
    assert result.version == 0


def test_pending_change_makes_pair_uncacheable(cache, client):
    client.mget.return_value = ['5', '1', '5|admin']
    result = cache.lookup('alice', ORG)
    assert not result.hit
    assert result.version is None


def test_read_error_degrades_to_unusable_miss(cache, client):
    client.mget.side_effect = redis.ConnectionError('down')
    result = cache.lookup('alice', ORG)
    assert not result.hit
    assert result.version is None


def test_store_writes_versioned_entry_and_refreshes_version_key(cache, client):
    pipe = client.pipeline.return_value
    cache.store('alice', ORG, 2, 'editor')
    pipe.setex.assert_called_once_with(ROLE_KEY, 30, '2|editor')
    pipe.expire.assert_called_once_with(VERSION_KEY, VERSION_TTL_SECONDS)
    pipe.execute.assert_called_once()


def test_store_no_membership_marker(cache, client):
    cache.store('alice', ORG, 0, None)
    client.pipeline.return_value.setex.assert_called_once_with(ROLE_KEY, 30, '0|-')


def test_store_error_is_swallowed(cache, client):
    client.pipeline.return_value.execute.side_effect = redis.TimeoutError()
    cache.store('alice', ORG, 1, 'viewer')


def test_begin_invalidation_bumps_version_and_pending(cache, client):
    pipe = client.pipeline.return_value
    cache.begin_invalidation('alice', ORG)
    client.pipeline.assert_called_once_with(transaction=True)
    pipe.incr.assert_any_call(VERSION_KEY)
    pipe.incr.assert_any_call(PENDING_KEY)
    pipe.expire.assert_any_call(VERSION_KEY, VERSION_TTL_SECONDS)
    pipe.expire.assert_any_call(PENDING_KEY, VERSION_TTL_SECONDS)
    pipe.delete.assert_called_once_with(ROLE_KEY)
    pipe.execute.assert_called_once()


def test_finish_invalidation_releases_pending(cache, client):
    pipe = client.pipeline.return_value
    cache.finish_invalidation('alice', ORG)
    pipe.incr.assert_called_once_with(VERSION_KEY)
    pipe.decr.assert_called_once_with(PENDING_KEY)
    pipe.delete.assert_called_once_with(ROLE_KEY)


@pytest.mark.parametrize('method', ['begin_invalidation', 'finish_invalidation'])
def test_invalidation_errors_propagate(cache, client, method):
    client.pipeline.return_value.execute.side_effect = redis.ConnectionError('down')
    with pytest.raises(redis.RedisError):
        getattr(cache, method)('alice', ORG)


def test_counter_keys_outlive_entries(client):
    cache = RedisMembershipCache(client, ttl_seconds=VERSION_TTL_SECONDS * 2)
    assert cache.version_ttl_seconds == VERSION_TTL_SECONDS * 2


def test_ttl_must_be_positive(client):
    with pytest.raises(ValueError):
        RedisMembershipCache(client, ttl_seconds=0)


class TestChangeInterleaving:
    """A reader racing a deactivation, with the Redis double holding real state."""

    def test_reader_during_change_does_not_cache(self):
        server = DictRedis()
        cache = RedisMembershipCache(server, ttl_seconds=30)
        store = OneRowStore('admin')
        service = AccessControlService(store, cache=cache)

        cache.begin_invalidation('bob', ORG)
        assert service.authorize('bob', ORG, ActionClass.READ) is Decision.ALLOW

        assert f'membership:{ORG}:bob:role' not in server.data

    def test_lost_finish_never_serves_revoked_role(self):
        server = DictRedis()
        cache = RedisMembershipCache(server, ttl_seconds=30)
        store = OneRowStore('admin')
        service = AccessControlService(store, cache=cache)
        assert service.authorize('bob', ORG, ActionClass.READ) is Decision.ALLOW

        cache.begin_invalidation('bob', ORG)
        # Deactivation not committed yet, reader still sees the row
        assert service.authorize('bob', ORG, ActionClass.READ) is Decision.ALLOW
        store.record = None
        server.down = True
        with pytest.raises(redis.RedisError):
            cache.finish_invalidation('bob', ORG)
        server.down = False

        assert service.authorize('bob', ORG, ActionClass.READ) is Decision.DENY
        assert service.authorize('bob', ORG, ActionClass.READ) is Decision.DENY

    def test_caching_resumes_after_finish(self):
        server = DictRedis()
        cache = RedisMembershipCache(server, ttl_seconds=30)
        store = OneRowStore('editor')
        service = AccessControlService(store, cache=cache)

        cache.begin_invalidation('bob', ORG)
        cache.finish_invalidation('bob', ORG)
        service.resolve_role('bob', ORG)
        service.resolve_role('bob', ORG)

        assert store.calls == 1
        assert server.data[f'membership:{ORG}:bob:role'] == '2|editor'


def test_disabled_by_zero_ttl():
    settings = SimpleNamespace(MEMBERSHIP_CACHE_TTL_SECONDS=0, REDIS_URL='redis://localhost:6379/0')
    assert get_membership_cache(settings) is None


def test_enabled_cache_reuses_one_client(monkeypatch):
    created = []

    def fake_from_url(url, **kwargs):
        created.append(url)
        return MagicMock()

    monkeypatch.setattr(membership_cache, '_cache_client', None)
    monkeypatch.setattr(membership_cache.redis, 'from_url', fake_from_url)
    settings = SimpleNamespace(MEMBERSHIP_CACHE_TTL_SECONDS=15, REDIS_URL='redis://cache:6379/1')

    first = get_membership_cache(settings)
    second = get_membership_cache(settings)

    assert first.ttl_seconds == 15
    assert first.client is second.client
    assert created == ['redis://cache:6379/1']
