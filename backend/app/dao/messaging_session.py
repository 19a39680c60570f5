"""
Messaging Session Data Access Object (DAO).

WHAT: Read access to messaging sessions for workflow provisioning.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.dao.base import BaseDAO
from app.models.messaging_session import MessagingSession


class MessagingSessionDAO(BaseDAO[MessagingSession]):
    """
    Data Access Object for MessagingSession model.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(MessagingSession, session)

    async def get_scoped(
        self, session_id: str, org_id: Optional[int] = None
    ) -> Optional[MessagingSession]:
        """
        Fetch a session by id, limited to one organization when org_id is set.

        WHY: A session id from another tenant must behave exactly like a
        missing one (A01: Broken Access Control).
        """
        if org_id is None:
            return await self.get_by_id(session_id)
        return await self.get_by_id_and_org(session_id, org_id)
