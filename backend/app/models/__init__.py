"""
Database models package.

WHY: Centralizing model imports ensures Alembic can discover all models
for migration generation and that every relationship target is registered
before the mappers are configured.
"""

from app.models.base import Base, TimestampMixin, PrimaryKeyMixin
from app.models.organization import Organization
from app.models.user import User, UserRole
from app.models.audit_log import AuditLog, AuditAction
from app.models.workflow import N8nWorkflow, N8nWorkflowStatus
from app.models.messaging_session import MessagingSession, SessionStatus
from app.models.knowledge_base import (
    KnowledgeBaseItem,
    KnowledgeQaItem,
    KnowledgeItemStatus,
)
from app.models.bot_personality import BotPersonality, BotPersonalityStatus

__all__ = [
    "Base",
    "TimestampMixin",
    "PrimaryKeyMixin",
    "Organization",
    "User",
    "UserRole",
    "AuditLog",
    "AuditAction",
    "N8nWorkflow",
    "N8nWorkflowStatus",
    "MessagingSession",
    "SessionStatus",
    "KnowledgeBaseItem",
    "KnowledgeQaItem",
    "KnowledgeItemStatus",
    "BotPersonality",
    "BotPersonalityStatus",
]
