"""
SQL Tenant Store

The persistence side of access control: membership lookups over
SQLAlchemy.

Each lookup is a single SELECT joining organization_members to
organizations, so role and is_active come from one row at one instant and
a membership pointing at a missing organization never resolves.

With lock_rows=True the membership rows are read FOR UPDATE inside the
caller's transaction. This covers both the single-organization lookup and
the any-organization listing used for global records. Write handlers use
this so that a concurrent deactivation or downgrade has to wait for the
business write to commit (or roll back) instead of slipping in between
check and write.
"""
from typing import Optional
from sqlalchemy import select
from sqlalchemy.orm import Session

from meatmath.core.access_control import MembershipRecord
from meatmath.models.membership import OrganizationMember
from meatmath.models.organization import Organization


class SqlTenantStore:
    """TenantStore backed by the request's SQLAlchemy session."""

    def __init__(self, db: Session, lock_rows: bool = False):
        self.db = db
        self.lock_rows = lock_rows

    def find_active_membership(self, principal: str, organization_id: str) -> Optional[MembershipRecord]:
        stmt = (
            select(OrganizationMember.role, OrganizationMember.is_active)
            .join(Organization, Organization.id == OrganizationMember.organization_id)
            .where(
                OrganizationMember.user_id == principal,
                OrganizationMember.organization_id == organization_id,
                OrganizationMember.is_active.is_(True),
            )
        )
        if self.lock_rows:
            stmt = stmt.with_for_update(of=OrganizationMember)

        row = self.db.execute(stmt).first()
        if row is None:
            return None
        return MembershipRecord(role=row.role, active=bool(row.is_active))

    def list_active_memberships(self, principal: str) -> list[tuple[str, MembershipRecord]]:
        stmt = (
            select(
                OrganizationMember.organization_id,
                OrganizationMember.role,
                OrganizationMember.is_active,
            )
            .join(Organization, Organization.id == OrganizationMember.organization_id)
            .where(
                OrganizationMember.user_id == principal,
                OrganizationMember.is_active.is_(True),
            )
            .order_by(OrganizationMember.organization_id)
        )
        if self.lock_rows:
            stmt = stmt.with_for_update(of=OrganizationMember)

        return [
            (row.organization_id, MembershipRecord(role=row.role, active=bool(row.is_active)))
            for row in self.db.execute(stmt)
        ]
