"""
Organization model.

WHY: Organizations represent multi-tenant entities in the system.
Each organization owns its messaging sessions, knowledge base and bot
personalities, and every query is scoped by org_id.
"""

from sqlalchemy import Column, String, Text, JSON, Boolean
from sqlalchemy.orm import relationship

from app.models.base import Base, TimestampMixin, PrimaryKeyMixin


class Organization(Base, PrimaryKeyMixin, TimestampMixin):
    """
    Organization model representing a tenant in the multi-tenant system.

    Each organization has:
    - Basic info (name, description)
    - Settings (configurable per-org)
    - Relationships to users, sessions, knowledge items and bot personalities
    """

    __tablename__ = "organizations"

    name = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)

    # WHY: JSON allows flexible per-organization configuration
    # without schema changes (branding, feature flags, limits)
    settings = Column(JSON, nullable=False, default=dict, server_default="{}")

    # WHY: is_active allows soft-deletion while preserving history
    is_active = Column(Boolean, nullable=False, default=True)

    # Relationships
    users = relationship("User", back_populates="organization", lazy="dynamic")
    messaging_sessions = relationship(
        "MessagingSession", back_populates="organization", lazy="dynamic"
    )
    knowledge_base_items = relationship(
        "KnowledgeBaseItem", back_populates="organization", lazy="dynamic"
    )
    n8n_workflows = relationship("N8nWorkflow", back_populates="organization", lazy="dynamic")
    bot_personalities = relationship(
        "BotPersonality", back_populates="organization", lazy="dynamic"
    )

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, name={self.name})>"
