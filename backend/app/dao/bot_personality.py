"""
Bot Personality Data Access Object (DAO).

WHAT: Database operations for the BotPersonality model.

WHY: The provisioning workflow creates, transitions and annotates bot
personality records from several independent sessions (Phase 1 transaction,
Phase 2 status update, Phase 3 system message write). Keeping those writes
in one DAO means each step reads the same way regardless of which session
it runs on.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.dao.base import BaseDAO
from app.models.bot_personality import BotPersonality, BotPersonalityStatus


class BotPersonalityDAO(BaseDAO[BotPersonality]):
    """
    Data Access Object for BotPersonality model.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(BotPersonality, session)

    async def get_scoped(
        self, personality_id: str, org_id: Optional[int] = None
    ) -> Optional[BotPersonality]:
        """
        Fetch a record, scoped to an organization when one is given.

        WHY: API callers are always org-scoped; retry jobs and the
        orchestrator's internal steps already hold a trusted id.
        """
        if org_id is None:
            return await self.get_by_id(personality_id)
        return await self.get_by_id_and_org(personality_id, org_id)

    async def update_status(
        self, personality_id: str, status: BotPersonalityStatus
    ) -> Optional[BotPersonality]:
        """
        Transition a record to a new lifecycle status.

        Returns:
            The updated record, or None if it no longer exists
        """
        return await self.update(personality_id, status=status)

    async def set_system_message(
        self, personality_id: str, system_message: str
    ) -> Optional[BotPersonality]:
        """Store the system message last pushed to the n8n workflow."""
        return await self.update(personality_id, system_message=system_message)
