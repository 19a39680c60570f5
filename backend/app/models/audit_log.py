"""
Audit Log Model.

WHAT: SQLAlchemy model for storing audit events.

WHY: Operators need a per-record history of who provisioned, retried or
cancelled a bot personality workflow. The same table records generic
data mutations.

HOW: Immutable append-only table with rich context fields.
Uses JSON for flexible storage of changes and metadata
(JSONB on PostgreSQL, JSON on SQLite).
"""

import enum
from sqlalchemy import Column, Integer, String, Enum, ForeignKey, Text, JSON
from sqlalchemy.orm import relationship

from app.models.base import Base, TimestampMixin, PrimaryKeyMixin


class AuditAction(str, enum.Enum):
    """
    Enumeration of auditable actions.
    """

    # Data mutation events
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"

    # Bot personality workflow events
    WORKFLOW_EXECUTED = "WORKFLOW_EXECUTED"
    WORKFLOW_RETRIED = "WORKFLOW_RETRIED"
    WORKFLOW_CANCELLED = "WORKFLOW_CANCELLED"


class AuditLog(Base, PrimaryKeyMixin, TimestampMixin):
    """
    Immutable audit log entry.

    Fields:
    - actor_user_id: Who performed the action (nullable for system jobs)
    - action: What type of event occurred (AuditAction enum)
    - resource_type: Category of affected resource (e.g., "bot_personality")
    - resource_id: Specific resource id; string so UUID ids fit
    - org_id: Organization context for multi-tenant filtering
    - changes: Before/after values for mutations
    - extra_data: Additional context
    - ip_address / user_agent: Request context
    """

    __tablename__ = "audit_logs"

    actor_user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    action = Column(Enum(AuditAction), nullable=False, index=True)

    resource_type = Column(String(100), nullable=False, index=True)
    resource_id = Column(String(64), nullable=True, index=True)

    org_id = Column(
        Integer,
        ForeignKey("organizations.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Example: {"status": {"before": "active", "after": "cancelled"}}
    changes = Column(JSON, nullable=True)

    # NOTE: Named 'extra_data' because 'metadata' is reserved by SQLAlchemy
    extra_data = Column(JSON, nullable=True)

    ip_address = Column(String(45), nullable=True)  # IPv6 max length
    user_agent = Column(Text, nullable=True)

    actor = relationship("User", foreign_keys=[actor_user_id])
    organization = relationship("Organization", foreign_keys=[org_id])

    def __repr__(self) -> str:
        return (
            f"<AuditLog(id={self.id}, action={self.action.value}, "
            f"actor_user_id={self.actor_user_id}, resource_type={self.resource_type})>"
        )
