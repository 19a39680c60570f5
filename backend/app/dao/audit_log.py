"""
Audit Log Data Access Object (DAO).

WHAT: Data access layer for the workflow audit trail.

WHY: Provisioning, retrying and cancelling a bot personality are
operator-visible actions. The history endpoint reads them back per record,
so entries must be append-only:
- Tamper-proof logging (immutable records)
- Per-resource lookup, newest first

HOW: Plain DAO over AuditLog; update/delete are overridden to raise.
"""

from typing import Optional, List, Dict, Any
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.audit_log import AuditLog, AuditAction
from app.core.exceptions import AuditLogImmutableError


class AuditLogDAO:
    """
    Data Access Object for audit log operations.

    HOW: Uses SQLAlchemy async session for all operations.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        action: AuditAction,
        resource_type: str,
        actor_user_id: Optional[int] = None,
        resource_id: Optional[str] = None,
        org_id: Optional[int] = None,
        changes: Optional[Dict[str, Any]] = None,
        extra_data: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AuditLog:
        """
        Create a new audit log entry.

        Args:
            action: Type of event (from AuditAction enum)
            resource_type: Category of affected resource
            actor_user_id: User who performed the action (None for scheduler jobs)
            resource_id: Specific resource ID as a string
            org_id: Organization context for multi-tenant filtering
            changes: Before/after values for mutations
            extra_data: Additional context (phase results, retry phase)
            ip_address: Client IP address
            user_agent: Client browser/application info

        Returns:
            The created AuditLog entry
        """
        log = AuditLog(
            actor_user_id=actor_user_id,
            action=action,
            resource_type=resource_type,
            resource_id=str(resource_id) if resource_id is not None else None,
            org_id=org_id,
            changes=changes,
            extra_data=extra_data,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        self.session.add(log)
        await self.session.flush()
        await self.session.refresh(log)
        return log

    async def get_by_resource(
        self,
        resource_type: str,
        resource_id: str,
        org_id: Optional[int] = None,
        limit: int = 50,
    ) -> List[AuditLog]:
        """
        Retrieve the audit trail of one resource, newest first.

        WHY: Backs the workflow history endpoint. org_id is optional so
        system callers can read across tenants; API callers always pass it.

        Args:
            resource_type: Resource category (e.g., "bot_personality")
            resource_id: Resource id
            org_id: Optional organization filter
            limit: Maximum records to return

        Returns:
            List of AuditLog entries
        """
        query = select(AuditLog).where(
            AuditLog.resource_type == resource_type,
            AuditLog.resource_id == str(resource_id),
        )
        if org_id is not None:
            query = query.where(AuditLog.org_id == org_id)

        query = query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit)

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def update(self, log_id: int, **kwargs: Any) -> None:
        """
        Attempt to update an audit log (BLOCKED).

        Raises:
            AuditLogImmutableError: Always raised - updates not allowed
        """
        raise AuditLogImmutableError(
            "Audit logs are immutable and cannot be updated."
        )

    async def delete(self, log_id: int) -> None:
        """
        Attempt to delete an audit log (BLOCKED).

        Raises:
            AuditLogImmutableError: Always raised - deletions not allowed
        """
        raise AuditLogImmutableError(
            "Audit logs cannot be deleted."
        )
