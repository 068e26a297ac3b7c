"""
Membership Management

Every change to who may do what in an organization goes through here:
creating an organization with its owner, inviting members, changing
roles and deactivating memberships.

Rules:
- role and is_active change in one UPDATE on the membership row; there is
  never a state where one field is written and the other is not
- memberships are deactivated, never deleted
- a second active membership for the same (organization, user) is refused
- only an owner may grant the owner role or change/deactivate an owner
- the last active owner cannot be demoted or deactivated
- the cached role for the pair is invalidated before the change commits
  (a failure aborts the change) and released after it commits or rolls
  back; the pair is not cached in between
"""
from datetime import datetime
from typing import Optional

import redis
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from meatmath.core.roles import Role, OWNER_GRANTING_ROLES
from meatmath.core.membership_cache import MembershipCache
from meatmath.core.exceptions import (
    AccessDeniedError,
    MemberNotFoundError,
    MembershipConflictError,
    StoreUnavailableError,
)
from meatmath.models.membership import OrganizationMember
from meatmath.models.organization import Organization
from meatmath.models.user import User
from meatmath.utils.logging import get_logger, log_security_event

logger = get_logger(__name__)


def check_can_manage(actor_role: Optional[Role], current_role: Optional[Role], new_role: Optional[Role]) -> None:
    """
    Owner-level changes need an owner.

    current_role is the target's role before the change (None for a new
    invitation); new_role is the role being granted (None for a
    deactivation).
    """
    touches_owner = Role.OWNER in (current_role, new_role)
    if touches_owner and actor_role not in OWNER_GRANTING_ROLES:
        raise AccessDeniedError()


class MembershipManager:
    """Membership lifecycle over one database session."""

    def __init__(self, db: Session, cache: Optional[MembershipCache] = None):
        self.db = db
        self.cache = cache

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_active_membership(self, organization_id: str, user_id: str, lock: bool = False) -> Optional[OrganizationMember]:
        stmt = select(OrganizationMember).where(
            OrganizationMember.organization_id == organization_id,
            OrganizationMember.user_id == user_id,
            OrganizationMember.is_active.is_(True),
        )
        if lock:
            stmt = stmt.with_for_update()
        return self.db.execute(stmt).scalars().first()

    def list_members(self, organization_id: str, include_inactive: bool = False) -> list[OrganizationMember]:
        stmt = select(OrganizationMember).where(OrganizationMember.organization_id == organization_id)
        if not include_inactive:
            stmt = stmt.where(OrganizationMember.is_active.is_(True))
        stmt = stmt.order_by(OrganizationMember.invited_at)
        return list(self.db.execute(stmt).scalars())

    def list_organizations_for(self, user_id: str) -> list[tuple[Organization, str]]:
        """Organizations where the user holds an active membership, with the role."""
        stmt = (
            select(Organization, OrganizationMember.role)
            .join(OrganizationMember, OrganizationMember.organization_id == Organization.id)
            .where(
                OrganizationMember.user_id == user_id,
                OrganizationMember.is_active.is_(True),
            )
            .order_by(Organization.name)
        )
        return [(row[0], row[1]) for row in self.db.execute(stmt)]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_organization(self, owner_id: str, **fields) -> Organization:
        """Create an organization and make its creator the owner, in one transaction."""
        self._ensure_user(owner_id)
        organization = Organization(**fields)
        self.db.add(organization)
        self.db.flush()

        now = datetime.utcnow()
        self.db.add(OrganizationMember(
            organization_id=organization.id,
            user_id=owner_id,
            role=Role.OWNER.value,
            invited_at=now,
            joined_at=now,
            is_active=True,
        ))
        self._commit(owner_id, organization.id)

        log_security_event(
            "membership_changed",
            {"change": "organization_created", "user_id": owner_id, "tenant_id": organization.id, "role": Role.OWNER.value},
            logger
        )
        return organization

    def add_member(self, organization_id: str, user_id: str, role: Role,
                   actor_role: Optional[Role] = None) -> OrganizationMember:
        """Invite a user into the organization with the given role."""
        role = Role(role)
        check_can_manage(actor_role, None, role)

        if self.get_active_membership(organization_id, user_id) is not None:
            raise MembershipConflictError("User is already an active member of this organization")

        self._ensure_user(user_id)
        now = datetime.utcnow()
        member = OrganizationMember(
            organization_id=organization_id,
            user_id=user_id,
            role=role.value,
            invited_at=now,
            joined_at=now,
            is_active=True,
        )
        self.db.add(member)
        try:
            self._commit(user_id, organization_id)
        except IntegrityError:
            # Lost a race with a concurrent invitation of the same user
            raise MembershipConflictError("User is already an active member of this organization")

        log_security_event(
            "membership_changed",
            {"change": "member_added", "user_id": user_id, "tenant_id": organization_id, "role": role.value},
            logger
        )
        return member

    def change_role(self, organization_id: str, user_id: str, new_role: Role,
                    actor_role: Optional[Role] = None) -> OrganizationMember:
        """Atomically change the role of an active membership."""
        new_role = Role(new_role)
        member = self.get_active_membership(organization_id, user_id, lock=True)
        if member is None:
            raise MemberNotFoundError(user_id)

        current_role = Role.parse(member.role)
        check_can_manage(actor_role, current_role, new_role)
        if current_role is Role.OWNER and new_role is not Role.OWNER:
            self._ensure_not_last_owner(organization_id)

        result = self.db.execute(
            update(OrganizationMember)
            .where(
                OrganizationMember.id == member.id,
                OrganizationMember.is_active.is_(True),
            )
            .values(role=new_role.value)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self.db.rollback()
            raise MemberNotFoundError(user_id)

        self._commit(user_id, organization_id)
        self.db.refresh(member)

        log_security_event(
            "membership_changed",
            {
                "change": "role_changed",
                "user_id": user_id,
                "tenant_id": organization_id,
                "role": new_role.value,
                "previous_role": current_role.value if current_role else member.role,
            },
            logger
        )
        return member

    def deactivate(self, organization_id: str, user_id: str,
                   actor_role: Optional[Role] = None) -> OrganizationMember:
        """Soft-deactivate a membership. The row is kept for audit history."""
        member = self.get_active_membership(organization_id, user_id, lock=True)
        if member is None:
            raise MemberNotFoundError(user_id)

        current_role = Role.parse(member.role)
        check_can_manage(actor_role, current_role, None)
        if current_role is Role.OWNER:
            self._ensure_not_last_owner(organization_id)

        result = self.db.execute(
            update(OrganizationMember)
            .where(
                OrganizationMember.id == member.id,
                OrganizationMember.is_active.is_(True),
            )
            .values(is_active=False, deactivated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self.db.rollback()
            raise MemberNotFoundError(user_id)

        self._commit(user_id, organization_id)
        self.db.refresh(member)

        log_security_event(
            "membership_changed",
            {"change": "member_deactivated", "user_id": user_id, "tenant_id": organization_id, "role": member.role},
            logger
        )
        return member

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _ensure_user(self, user_id: str) -> None:
        if self.db.get(User, user_id) is None:
            self.db.add(User(id=user_id))
            self.db.flush()

    def _ensure_not_last_owner(self, organization_id: str) -> None:
        owner_ids = self.db.execute(
            select(OrganizationMember.id)
            .where(
                OrganizationMember.organization_id == organization_id,
                OrganizationMember.role == Role.OWNER.value,
                OrganizationMember.is_active.is_(True),
            )
            .with_for_update()
        ).scalars().all()
        if len(owner_ids) <= 1:
            raise MembershipConflictError("An organization must keep at least one active owner")

    def _commit(self, user_id: str, organization_id: str) -> None:
        """Commit a membership change with cache invalidation on both sides."""
        if self.cache is not None:
            try:
                self.cache.begin_invalidation(user_id, organization_id)
            except redis.RedisError as e:
                self.db.rollback()
                logger.error(f"Membership cache invalidation failed, change aborted: {e}")
                raise StoreUnavailableError("Membership cache unavailable") from e

        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise
        finally:
            if self.cache is not None:
                self._finish_invalidation(user_id, organization_id)

    def _finish_invalidation(self, user_id: str, organization_id: str) -> None:
        try:
            self.cache.finish_invalidation(user_id, organization_id)
        except redis.RedisError as e:
            # The pair stays uncached until its counter key expires
            logger.error(f"Post-commit membership cache invalidation failed: {e}")
