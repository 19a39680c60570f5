"""
Messaging session model.

WHAT: A connected messaging channel (a WhatsApp number served through a
WAHA instance) belonging to one organization.

WHY: Bot personalities are bound to a session. The session also carries
the reference to the n8n workflow that handles its inbound messages, which
is how the provisioning workflow learns which automation to activate.
"""

from datetime import datetime
from enum import Enum
from typing import Optional, TYPE_CHECKING

from sqlalchemy import (
    Integer,
    String,
    Boolean,
    DateTime,
    ForeignKey,
    Enum as SQLEnum,
)
from sqlalchemy.orm import relationship, Mapped, mapped_column

from app.models.base import Base, TimestampMixin, generate_uuid

if TYPE_CHECKING:
    from app.models.organization import Organization
    from app.models.workflow import N8nWorkflow


class SessionStatus(str, Enum):
    """Connection lifecycle of a messaging session."""

    STARTING = "starting"
    SCAN_QR = "scan_qr"
    WORKING = "working"
    FAILED = "failed"
    STOPPED = "stopped"


class MessagingSession(Base, TimestampMixin):
    """
    Messaging channel session.

    A session without n8n_workflow_id has no automation attached and
    cannot host a bot personality.
    """

    __tablename__ = "messaging_sessions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    org_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("organizations.id"), nullable=False, index=True
    )

    session_name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone_number: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    status: Mapped[SessionStatus] = mapped_column(
        SQLEnum(SessionStatus), default=SessionStatus.STARTING, nullable=False
    )
    is_connected: Mapped[bool] = mapped_column(Boolean, default=False)
    last_seen_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Local n8n workflow record handling this session's messages
    n8n_workflow_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("n8n_workflows.id", ondelete="SET NULL"), nullable=True
    )

    # Relationships
    organization: Mapped["Organization"] = relationship(
        "Organization", back_populates="messaging_sessions"
    )
    n8n_workflow: Mapped[Optional["N8nWorkflow"]] = relationship("N8nWorkflow")

    def __repr__(self) -> str:
        return f"<MessagingSession(id={self.id}, org_id={self.org_id}, name='{self.session_name}')>"
