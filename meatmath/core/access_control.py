"""
Access Control Service

Answers one question for every protected request: may principal P perform
an operation of ActionClass A in organization O?

Guarantees:
- a principal with no active membership in O is denied, whatever it holds
  in any other organization
- an inactive membership is indistinguishable from no membership
- "organization does not exist" and "not a member" look the same to the
  caller
- fail closed: malformed identifiers are rejected before any store call,
  and any store failure is recorded as DENY and raised as
  StoreUnavailableError; no error path returns ALLOW
- for existing records the decision is made against the record's own
  organization_id, never an organization named by the client

The service keeps no mutable state of its own. The tenant store (and the
optional cache) are injected so tests and the write path can substitute
their own.
"""
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Protocol
import re
import uuid

from meatmath.core.roles import Role, ActionClass, Decision, role_allows
from meatmath.core.membership_cache import MembershipCache
from meatmath.core.exceptions import (
    AccessDeniedError,
    MalformedIdentifierError,
    StoreUnavailableError,
)
from meatmath.utils.logging import get_logger, log_security_event

logger = get_logger(__name__)

PRINCIPAL_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._:@|+-]{0,254}$")


@dataclass(frozen=True)
class MembershipRecord:
    """Role and active flag read together from one membership row."""
    role: str
    active: bool


class TenantStore(Protocol):
    """What the access control service needs from persistence."""

    def find_active_membership(self, principal: str, organization_id: str) -> Optional[MembershipRecord]:
        ...

    def list_active_memberships(self, principal: str) -> Iterable[tuple[str, MembershipRecord]]:
        ...


def validate_principal_id(principal: Any) -> str:
    """Return the principal id or raise MalformedIdentifierError."""
    if not isinstance(principal, str) or not PRINCIPAL_ID_PATTERN.fullmatch(principal):
        raise MalformedIdentifierError("principal id")
    return principal


def validate_organization_id(organization_id: Any) -> str:
    """Return the canonical (lower-case, hyphenated) organization id or raise."""
    if isinstance(organization_id, uuid.UUID):
        return str(organization_id)
    if not isinstance(organization_id, str):
        raise MalformedIdentifierError("organization id")
    try:
        return str(uuid.UUID(organization_id))
    except ValueError:
        raise MalformedIdentifierError("organization id")


class AccessControlService:
    """Organization-scoped role resolution and allow/deny decisions."""

    def __init__(self, store: TenantStore, cache: Optional[MembershipCache] = None):
        self.store = store
        self.cache = cache

    # ------------------------------------------------------------------
    # Role resolution
    # ------------------------------------------------------------------

    def resolve_role(self, principal: str, organization_id: str) -> Optional[Role]:
        """
        Resolve the principal's role in the organization.

        Returns None when there is no active membership, the organization
        does not exist, or the stored role is not a known Role. None is a
        normal outcome, not an error.

        Raises:
            MalformedIdentifierError: before touching the store
            StoreUnavailableError: when the lookup itself failed
        """
        principal = self._checked_principal(principal)
        organization_id = self._checked_organization(principal, organization_id)

        cached = self.cache.lookup(principal, organization_id) if self.cache else None
        if cached is not None and cached.hit:
            return Role.parse(cached.role) if cached.role else None

        record = self._find_membership(principal, organization_id)
        role = self._role_from_record(principal, organization_id, record)

        if cached is not None and cached.version is not None:
            self.cache.store(principal, organization_id, cached.version, role.value if role else None)

        return role

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    def authorize(self, principal: str, organization_id: str, action_class: ActionClass) -> Decision:
        """
        Decide whether principal may perform action_class in organization_id.

        Deny for unknown organizations, missing or inactive memberships and
        insufficient roles. Store failures are logged as a DENY decision and
        re-raised as StoreUnavailableError.
        """
        action_class = ActionClass(action_class)
        role = self.resolve_role(principal, organization_id)
        decision = Decision.ALLOW if role_allows(role, action_class) else Decision.DENY
        self._audit(principal, organization_id, action_class, role, decision)
        return decision

    def authorize_resource_owner(
        self,
        principal: str,
        resource_organization_id: Optional[str],
        action_class: ActionClass
    ) -> Decision:
        """
        Authorize against the organization that owns an existing record.

        The caller passes the organization_id read from the fetched record.
        A record with no owning organization is never accessible.
        """
        if resource_organization_id is None:
            self._audit(principal, None, ActionClass(action_class), None, Decision.DENY)
            return Decision.DENY
        return self.authorize(principal, resource_organization_id, action_class)

    def authorize_creation(
        self,
        principal: str,
        claimed_organization_id: str,
        action_class: ActionClass = ActionClass.WRITE
    ) -> Decision:
        """
        Authorize creating a record in the organization named by the client.

        At creation time no record exists yet, so the claimed organization
        is the only one there is; it gets the same membership check as any
        other before anything is written.
        """
        return self.authorize(principal, claimed_organization_id, action_class)

    def authorize_in_any_organization(self, principal: str, action_class: ActionClass) -> Decision:
        """
        Allow iff the principal holds a qualifying role in at least one
        organization. Used for global records (species) that no single
        organization owns.
        """
        principal = self._checked_principal(principal)
        action_class = ActionClass(action_class)

        try:
            memberships = list(self.store.list_active_memberships(principal))
        except StoreUnavailableError:
            self._audit_failure(principal, None, action_class)
            raise
        except Exception as e:
            self._audit_failure(principal, None, action_class, error=e)
            raise StoreUnavailableError() from e

        for organization_id, record in memberships:
            role = Role.parse(record.role) if record.active else None
            if role_allows(role, action_class):
                self._audit(principal, organization_id, action_class, role, Decision.ALLOW)
                return Decision.ALLOW

        self._audit(principal, None, action_class, None, Decision.DENY)
        return Decision.DENY

    # ------------------------------------------------------------------
    # Raising forms used by request handlers
    # ------------------------------------------------------------------

    def require(self, principal: str, organization_id: str, action_class: ActionClass) -> None:
        """Raise AccessDeniedError unless authorize() allows."""
        if not self.authorize(principal, organization_id, action_class):
            raise AccessDeniedError()

    def require_creation(self, principal: str, claimed_organization_id: str,
                         action_class: ActionClass = ActionClass.WRITE) -> None:
        if not self.authorize_creation(principal, claimed_organization_id, action_class):
            raise AccessDeniedError()

    def require_resource_owner(self, principal: str, resource: Any, action_class: ActionClass) -> None:
        """Raise AccessDeniedError unless the principal may act on this fetched record."""
        resource_organization_id = getattr(resource, "organization_id", None)
        if not self.authorize_resource_owner(principal, resource_organization_id, action_class):
            raise AccessDeniedError()

    def require_in_any_organization(self, principal: str, action_class: ActionClass) -> None:
        if not self.authorize_in_any_organization(principal, action_class):
            raise AccessDeniedError()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _checked_principal(self, principal: Any) -> str:
        try:
            return validate_principal_id(principal)
        except MalformedIdentifierError:
            log_security_event("malformed_identifier", {"field": "principal", "decision": "deny"}, logger)
            raise

    def _checked_organization(self, principal: str, organization_id: Any) -> str:
        try:
            return validate_organization_id(organization_id)
        except MalformedIdentifierError:
            log_security_event(
                "malformed_identifier",
                {"field": "organization_id", "user_id": principal, "decision": "deny"},
                logger
            )
            raise

    def _find_membership(self, principal: str, organization_id: str) -> Optional[MembershipRecord]:
        try:
            return self.store.find_active_membership(principal, organization_id)
        except StoreUnavailableError:
            self._audit_failure(principal, organization_id, None)
            raise
        except Exception as e:
            self._audit_failure(principal, organization_id, None, error=e)
            raise StoreUnavailableError() from e

    def _role_from_record(self, principal: str, organization_id: str,
                          record: Optional[MembershipRecord]) -> Optional[Role]:
        if record is None or not record.active:
            return None
        role = Role.parse(record.role)
        if role is None:
            logger.error(
                f"Unknown role {record.role!r} on membership; treating as no membership",
                extra={"user_id": principal, "tenant_id": organization_id}
            )
        return role

    def _audit(self, principal, organization_id, action_class, role, decision: Decision) -> None:
        if decision is Decision.ALLOW:
            logger.debug(
                f"Access allowed: {principal} {action_class.value} in {organization_id} as {role.value}",
                extra={"user_id": principal, "tenant_id": organization_id}
            )
            return
        log_security_event(
            "access_denied",
            {
                "user_id": principal,
                "tenant_id": organization_id,
                "action_class": action_class.value,
                "role": role.value if role else None,
                "decision": decision.value,
            },
            logger
        )

    def _audit_failure(self, principal, organization_id, action_class, error: Optional[Exception] = None) -> None:
        logger.error(
            f"Membership lookup failed; denying: {type(error).__name__ if error else 'StoreUnavailableError'}",
            exc_info=error is not None,
            extra={"user_id": principal, "tenant_id": organization_id}
        )
        log_security_event(
            "authorization_error",
            {
                "user_id": principal,
                "tenant_id": organization_id,
                "action_class": action_class.value if action_class else None,
                "decision": Decision.DENY.value,
            },
            logger
        )
