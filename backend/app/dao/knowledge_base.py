"""
Knowledge Base Data Access Object (DAO).

WHAT: Read access to knowledge base items and their Q&A entries.

WHY: The system message is derived from an item's content and its active
Q&A entries. AsyncSession cannot lazy-load relationships, so the entries
are eager-loaded here with selectinload.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.dao.base import BaseDAO
from app.models.knowledge_base import KnowledgeBaseItem


class KnowledgeBaseItemDAO(BaseDAO[KnowledgeBaseItem]):
    """
    Data Access Object for KnowledgeBaseItem model.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(KnowledgeBaseItem, session)

    async def get_with_qa_items(
        self, item_id: str, org_id: Optional[int] = None
    ) -> Optional[KnowledgeBaseItem]:
        """
        Fetch an item with its Q&A entries loaded.

        Args:
            item_id: Knowledge base item id
            org_id: Optional organization scope

        Returns:
            The item (qa_items populated, ordered by sort_order) or None
        """
        query = (
            select(KnowledgeBaseItem)
            .options(selectinload(KnowledgeBaseItem.qa_items))
            .where(KnowledgeBaseItem.id == item_id)
        )
        if org_id is not None:
            query = query.where(KnowledgeBaseItem.org_id == org_id)

        result = await self.session.execute(query)
        return result.scalar_one_or_none()
