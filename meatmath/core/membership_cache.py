"""
Membership Cache

Optional Redis cache in front of the membership lookup, keyed by
(principal, organization_id).

A plain get/set cache can resurrect a revoked role: a reader fetches
"admin" from the database, the membership is deactivated and the key
deleted, then the reader writes "admin" back. To rule that out every
pair has a version counter. Entries are stored together with the version
that was current before the database read, and only count as a hit while
that version is still current. Invalidation bumps the counter, which
orphans every entry written before it, including ones still in flight.

A membership change is bracketed by begin_invalidation (before commit)
and finish_invalidation (after commit). Between the two the pair has a
non-zero pending count and is neither served from nor written to the
cache, since readers would still see the old row. If the finishing call
is lost the count stays up and the pair is read from the database until
the counter key expires.

Version and pending keys expire after VERSION_TTL_SECONDS without a
change or a cache write; that is always longer than the entry TTL, so no
entry outlives the counter it was stamped with.

Failure policy:
- lookup/store errors degrade to a cache miss (the database stays
  authoritative, so the worst case is an extra query)
- begin_invalidation errors propagate; a membership change must not
  commit if the cache could keep serving the old role
"""
from dataclasses import dataclass
from typing import Optional, Protocol

import redis

from meatmath.utils.logging import get_logger

logger = get_logger(__name__)

# Cached marker for "no active membership"
NO_MEMBERSHIP = "-"

VERSION_TTL_SECONDS = 7 * 24 * 3600


@dataclass(frozen=True)
class CacheLookup:
    """Result of a cache read. version is None when the cache must not be used."""
    version: Optional[int]
    hit: bool = False
    role: Optional[str] = None


class MembershipCache(Protocol):
    def lookup(self, principal: str, organization_id: str) -> CacheLookup: ...

    def store(self, principal: str, organization_id: str, version: int, role: Optional[str]) -> None: ...

    def begin_invalidation(self, principal: str, organization_id: str) -> None: ...

    def finish_invalidation(self, principal: str, organization_id: str) -> None: ...


class RedisMembershipCache:
    """Versioned (principal, organization) -> role cache in Redis."""

    def __init__(self, client: "redis.Redis", ttl_seconds: int, prefix: str = "membership"):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.client = client
        self.ttl_seconds = ttl_seconds
        self.prefix = prefix
        self.version_ttl_seconds = max(VERSION_TTL_SECONDS, ttl_seconds)

    def _keys(self, principal: str, organization_id: str) -> tuple[str, str, str]:
        base = f"{self.prefix}:{organization_id}:{principal}"
        return f"{base}:version", f"{base}:pending", f"{base}:role"

    def lookup(self, principal: str, organization_id: str) -> CacheLookup:
        version_key, pending_key, role_key = self._keys(principal, organization_id)
        try:
            raw_version, raw_pending, raw_entry = self.client.mget(version_key, pending_key, role_key)
        except redis.RedisError as e:
            logger.warning(f"Membership cache read failed: {e}")
            return CacheLookup(version=None)

        if raw_pending is not None and int(raw_pending) > 0:
            # Membership change in flight, or its completion never arrived
            return CacheLookup(version=None)

        version = int(raw_version) if raw_version is not None else 0
        if raw_entry is None:
            return CacheLookup(version=version)

        entry_version, _, role = str(raw_entry).partition("|")
        if entry_version != str(version):
            # Written before the last invalidation
            return CacheLookup(version=version)

        return CacheLookup(
            version=version,
            hit=True,
            role=None if role == NO_MEMBERSHIP else role,
        )

    def store(self, principal: str, organization_id: str, version: int, role: Optional[str]) -> None:
        version_key, _, role_key = self._keys(principal, organization_id)
        value = f"{version}|{role if role else NO_MEMBERSHIP}"
        try:
            pipe = self.client.pipeline(transaction=True)
            pipe.setex(role_key, self.ttl_seconds, value)
            pipe.expire(version_key, self.version_ttl_seconds)
            pipe.execute()
        except redis.RedisError as e:
            logger.warning(f"Membership cache write failed: {e}")

    def begin_invalidation(self, principal: str, organization_id: str) -> None:
        """Mark the pair as changing. Errors propagate."""
        version_key, pending_key, role_key = self._keys(principal, organization_id)
        pipe = self.client.pipeline(transaction=True)
        pipe.incr(version_key)
        pipe.expire(version_key, self.version_ttl_seconds)
        pipe.incr(pending_key)
        pipe.expire(pending_key, self.version_ttl_seconds)
        pipe.delete(role_key)
        pipe.execute()
        logger.debug(f"Membership cache invalidation started for {principal} in {organization_id}")

    def finish_invalidation(self, principal: str, organization_id: str) -> None:
        """Release the pair once the change is committed or rolled back."""
        version_key, pending_key, role_key = self._keys(principal, organization_id)
        pipe = self.client.pipeline(transaction=True)
        pipe.incr(version_key)
        pipe.expire(version_key, self.version_ttl_seconds)
        pipe.decr(pending_key)
        pipe.delete(role_key)
        pipe.execute()
        logger.debug(f"Membership cache invalidation finished for {principal} in {organization_id}")


_cache_client: Optional["redis.Redis"] = None


def get_membership_cache(settings) -> Optional[RedisMembershipCache]:
    """
    Build the cache from settings, or None when caching is disabled.

    The Redis client is created once per process; redis-py pools
    connections internally.
    """
    global _cache_client

    if settings.MEMBERSHIP_CACHE_TTL_SECONDS <= 0:
        return None

    if _cache_client is None:
        _cache_client = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
    return RedisMembershipCache(_cache_client, settings.MEMBERSHIP_CACHE_TTL_SECONDS)
