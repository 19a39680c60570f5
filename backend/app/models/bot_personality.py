"""
Bot personality model.

WHAT: A configured automated-response profile bound to one messaging
session and one knowledge base item.

WHY: The provisioning workflow creates the record in status CREATING,
flips it to ACTIVE once the internal status update runs, and stores the
system message it pushed to n8n. After provisioning the record is edited
by the personality settings screens like any other row.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional, TYPE_CHECKING

from sqlalchemy import (
    Integer,
    String,
    Text,
    Boolean,
    ForeignKey,
    Numeric,
    Enum as SQLEnum,
)
from sqlalchemy.orm import relationship, Mapped, mapped_column

from app.models.base import Base, TimestampMixin, generate_uuid

if TYPE_CHECKING:
    from app.models.organization import Organization
    from app.models.messaging_session import MessagingSession
    from app.models.knowledge_base import KnowledgeBaseItem
    from app.models.workflow import N8nWorkflow


class BotPersonalityStatus(str, Enum):
    """
    Bot personality lifecycle.

    Provisioning moves CREATING -> ACTIVE. CANCELLED is set by an operator;
    ERROR is reserved for records an operator marks as broken.
    """

    CREATING = "creating"
    ACTIVE = "active"
    CANCELLED = "cancelled"
    ERROR = "error"


class BotPersonality(Base, TimestampMixin):
    """
    Bot personality profile.
    """

    __tablename__ = "bot_personalities"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    org_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("organizations.id"), nullable=False, index=True
    )

    # Identity
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Behavior
    language: Mapped[str] = mapped_column(String(20), default="indonesia")
    formality_level: Mapped[str] = mapped_column(String(20), default="formal")
    response_delay_ms: Mapped[int] = mapped_column(Integer, default=1000)
    max_response_length: Mapped[int] = mapped_column(Integer, default=1000)
    confidence_threshold: Mapped[Decimal] = mapped_column(Numeric(3, 2), default=Decimal("0.75"))
    typing_indicator: Mapped[bool] = mapped_column(Boolean, default=True)
    enable_small_talk: Mapped[bool] = mapped_column(Boolean, default=True)
    learning_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False)
    system_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[BotPersonalityStatus] = mapped_column(
        SQLEnum(BotPersonalityStatus),
        default=BotPersonalityStatus.CREATING,
        nullable=False,
        index=True,
    )

    # Cross references
    messaging_session_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("messaging_sessions.id"), nullable=False, index=True
    )
    knowledge_base_item_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("knowledge_base_items.id"), nullable=False, index=True
    )
    n8n_workflow_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("n8n_workflows.id"), nullable=False
    )

    # Relationships
    organization: Mapped["Organization"] = relationship(
        "Organization", back_populates="bot_personalities"
    )
    messaging_session: Mapped["MessagingSession"] = relationship("MessagingSession")
    knowledge_base_item: Mapped["KnowledgeBaseItem"] = relationship("KnowledgeBaseItem")
    n8n_workflow: Mapped["N8nWorkflow"] = relationship("N8nWorkflow")

    def __repr__(self) -> str:
        return f"<BotPersonality(id={self.id}, code='{self.code}', status={self.status})>"
