"""
User Model

Users are created by the identity provider, not by this service. A row is
upserted from verified token claims the first time a principal calls the
API so that memberships have something to reference.

A user carries no privilege by itself. All privilege comes from
OrganizationMember rows, one organization at a time.
"""
from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship
from datetime import datetime
from meatmath.database import Base


class User(Base):
    __tablename__ = "users"

    # Subject claim of the identity provider; opaque to us
    id = Column(String(255), primary_key=True)

    email = Column(String(255), unique=True, nullable=True, index=True)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    profile_image_url = Column(String(512), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    memberships = relationship("OrganizationMember", back_populates="user")

    def __repr__(self):
        return f"<User {self.id}>"
