"""
Organization Membership Model

Binds one user to one organization with a role. This row is the only
source of privilege in the system.

Rules enforced here:
- at most one ACTIVE membership per (organization, user); enforced by a
  partial unique index on both PostgreSQL and SQLite
- memberships are never hard-deleted; deactivation sets is_active = False
  and keeps the row for the audit trail
- role and is_active live on the same row and are always changed by a
  single UPDATE (see meatmath.core.memberships)
"""
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Index, text
from sqlalchemy.orm import relationship
from datetime import datetime
from meatmath.database import Base
import uuid


class OrganizationMember(Base):
    __tablename__ = "organization_members"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    organization_id = Column(
        String(36),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    user_id = Column(
        String(255),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # owner, admin, editor, viewer (see meatmath.core.roles.Role)
    role = Column(String(50), nullable=False, default="viewer")

    invited_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    joined_at = Column(DateTime, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    deactivated_at = Column(DateTime, nullable=True)

    organization = relationship("Organization", back_populates="members")
    user = relationship("User", back_populates="memberships")

    __table_args__ = (
        Index(
            "uq_member_active_org_user",
            "organization_id",
            "user_id",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
        # The authorization lookup: one row per (user, organization)
        Index("idx_member_user_org_active", "user_id", "organization_id", "is_active"),
    )

    def __repr__(self):
        state = "active" if self.is_active else "inactive"
        return f"<OrganizationMember {self.user_id} in {self.organization_id} as {self.role} ({state})>"
