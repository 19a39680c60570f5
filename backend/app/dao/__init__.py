"""
Data Access Objects package.

WHY: DAOs isolate SQLAlchemy queries from the workflow orchestration code.
"""

from app.dao.base import BaseDAO
from app.dao.audit_log import AuditLogDAO
from app.dao.bot_personality import BotPersonalityDAO
from app.dao.knowledge_base import KnowledgeBaseItemDAO
from app.dao.messaging_session import MessagingSessionDAO
from app.dao.n8n_workflow import N8nWorkflowDAO

__all__ = [
    "BaseDAO",
    "AuditLogDAO",
    "BotPersonalityDAO",
    "KnowledgeBaseItemDAO",
    "MessagingSessionDAO",
    "N8nWorkflowDAO",
]
