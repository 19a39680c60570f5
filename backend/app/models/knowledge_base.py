"""
Knowledge base models.

WHAT: Knowledge base items (articles, FAQ collections) and their
question/answer entries.

WHY: A bot personality is grounded in one knowledge base item. Its main
content plus the active Q&A entries are rendered into the system message
of the n8n AI Agent node.
"""

from enum import Enum
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import (
    Integer,
    String,
    Text,
    Boolean,
    ForeignKey,
    Enum as SQLEnum,
    JSON,
)
from sqlalchemy.orm import relationship, Mapped, mapped_column

from app.models.base import Base, TimestampMixin, generate_uuid

if TYPE_CHECKING:
    from app.models.organization import Organization


class KnowledgeItemStatus(str, Enum):
    """Editorial status of a knowledge base item."""

    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class KnowledgeBaseItem(Base, TimestampMixin):
    """
    Knowledge base content record.

    content may contain HTML from the rich-text editor; it is cleaned
    before being used as a system message.
    """

    __tablename__ = "knowledge_base_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    org_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("organizations.id"), nullable=False, index=True
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    language: Mapped[str] = mapped_column(String(20), default="indonesia")
    status: Mapped[KnowledgeItemStatus] = mapped_column(
        SQLEnum(KnowledgeItemStatus), default=KnowledgeItemStatus.PUBLISHED, nullable=False
    )

    # Relationships
    organization: Mapped["Organization"] = relationship(
        "Organization", back_populates="knowledge_base_items"
    )
    qa_items: Mapped[List["KnowledgeQaItem"]] = relationship(
        "KnowledgeQaItem",
        back_populates="knowledge_item",
        cascade="all, delete-orphan",
        order_by="KnowledgeQaItem.sort_order",
    )

    @property
    def active_qa_items(self) -> List["KnowledgeQaItem"]:
        """Active Q&A entries in display order (requires qa_items loaded)."""
        return [qa for qa in self.qa_items if qa.is_active]

    def __repr__(self) -> str:
        return f"<KnowledgeBaseItem(id={self.id}, org_id={self.org_id}, title='{self.title}')>"


class KnowledgeQaItem(Base, TimestampMixin):
    """
    A question/answer entry attached to a knowledge base item.
    """

    __tablename__ = "knowledge_qa_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    knowledge_item_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("knowledge_base_items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    question: Mapped[str] = mapped_column(Text, nullable=False)
    answer: Mapped[str] = mapped_column(Text, nullable=False)
    context: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    keywords: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)

    knowledge_item: Mapped["KnowledgeBaseItem"] = relationship(
        "KnowledgeBaseItem", back_populates="qa_items"
    )

    def __repr__(self) -> str:
        return f"<KnowledgeQaItem(id={self.id}, knowledge_item_id={self.knowledge_item_id})>"
