"""
User model.

WHY: Users are the organization members who call the API. Their org_id
scopes every lookup, and their id is attributed in the audit log.
"""

import enum
from sqlalchemy import Column, String, Enum, ForeignKey, Boolean, Integer
from sqlalchemy.orm import relationship

from app.models.base import Base, TimestampMixin, PrimaryKeyMixin


class UserRole(str, enum.Enum):
    """
    User role enumeration.
    """

    ADMIN = "ADMIN"  # Organization administrator
    AGENT = "AGENT"  # Support agent working the inbox


class User(Base, PrimaryKeyMixin, TimestampMixin):
    """
    User model representing individuals who use the platform.
    """

    __tablename__ = "users"

    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)

    role = Column(Enum(UserRole, name="userrole"), nullable=False, default=UserRole.AGENT)

    # WHY: NOT NULL enforces that every user belongs to an organization
    org_id = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)

    is_active = Column(Boolean, default=True, nullable=False)

    organization = relationship("Organization", back_populates="users")

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
