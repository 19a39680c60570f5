"""
Audit logging service.

WHAT: Service layer for creating audit log entries with proper context.

WHY: Every operator action on a bot personality workflow (provision,
retry, cancel) leaves a trace that the history endpoint reads back.
This service provides:
- Automatic context extraction from request middleware
- Workflow-specific convenience methods
- Logging that never breaks the operation being audited

HOW: Uses the AuditLogDAO for persistence and RequestContext middleware
for automatic IP/user-agent capture.
"""

import logging
from typing import Optional, Dict, Any, List

from sqlalchemy.ext.asyncio import AsyncSession

from app.dao.audit_log import AuditLogDAO
from app.models.audit_log import AuditLog, AuditAction
from app.middleware.request_context import get_request_context


# Logger for audit service errors (not audit events themselves)
logger = logging.getLogger(__name__)

BOT_PERSONALITY_RESOURCE = "bot_personality"


class AuditService:
    """
    Service for creating audit log entries.

    HOW: Wraps AuditLogDAO with convenience methods and automatic
    context injection from the RequestContextMiddleware.

    Example:
        audit = AuditService(db)
        await audit.log_workflow_executed(user.id, user.org_id, outcome)
    """

    def __init__(self, session: AsyncSession):
        self.dao = AuditLogDAO(session)
        self._session = session

    def _get_context(self) -> tuple[Optional[str], Optional[str]]:
        """
        Get IP address and user agent from request context.

        Returns:
            Tuple of (ip_address, user_agent), both may be None
        """
        ctx = get_request_context()
        if ctx:
            return ctx.ip_address, ctx.user_agent
        return None, None

    async def log_event(
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
    ) -> Optional[AuditLog]:
        """
        Log a generic audit event.

        Returns:
            Created AuditLog or None if logging failed

        Note:
            This method never raises exceptions to prevent audit
            logging from breaking business operations. Errors are
            logged to the application logger instead.
        """
        try:
            if ip_address is None or user_agent is None:
                ctx_ip, ctx_ua = self._get_context()
                ip_address = ip_address or ctx_ip
                user_agent = user_agent or ctx_ua

            return await self.dao.create(
                actor_user_id=actor_user_id,
                action=action,
                resource_type=resource_type,
                resource_id=resource_id,
                org_id=org_id,
                changes=changes,
                extra_data=extra_data,
                ip_address=ip_address,
                user_agent=user_agent,
            )

        except Exception as e:
            logger.error(f"Failed to create audit log: {e}", exc_info=True)
            # A failed flush leaves the session unusable; clear it so the
            # request's commit does not turn a finished operation into a 500.
            try:
                await self._session.rollback()
            except Exception as rollback_error:
                logger.error(
                    "Failed to roll back after audit log failure",
                    extra={"error": str(rollback_error)},
                )
            return None

    # =========================================================================
    # Bot Personality Workflow Events
    # =========================================================================

    async def log_workflow_executed(
        self,
        user_id: Optional[int],
        org_id: Optional[int],
        outcome: Dict[str, Any],
    ) -> Optional[AuditLog]:
        """
        Record a provisioning run.

        extra_data keeps the references and per-phase success flags, not
        the full trace (the system message can be large).
        """
        phase2 = outcome.get("phase2") or {}
        phase3 = outcome.get("phase3") or {}
        return await self.log_event(
            action=AuditAction.WORKFLOW_EXECUTED,
            resource_type=BOT_PERSONALITY_RESOURCE,
            actor_user_id=user_id,
            resource_id=outcome.get("bot_personality_id"),
            org_id=org_id,
            extra_data={
                "messaging_session_id": outcome.get("session_reference"),
                "knowledge_base_item_id": outcome.get("knowledge_base_reference"),
                "n8n_workflow_id": outcome.get("external_workflow_reference"),
                "elapsed_ms": outcome.get("elapsed_ms"),
                "activation_success": (phase2.get("external_activation") or {}).get("success"),
                "status_update_success": (phase2.get("internal_status_update") or {}).get("success"),
                "n8n_configuration_success": (phase3.get("n8n_configuration_update") or {}).get("success"),
                "database_configuration_success": (phase3.get("database_configuration_update") or {}).get("success"),
            },
        )

    async def log_workflow_retried(
        self,
        user_id: Optional[int],
        org_id: Optional[int],
        bot_personality_id: str,
        retry_phase: str,
        result_personality_id: Optional[str] = None,
    ) -> Optional[AuditLog]:
        """Record a manual retry of one or all workflow phases."""
        extra_data: Dict[str, Any] = {"retry_phase": retry_phase}
        if result_personality_id and result_personality_id != bot_personality_id:
            extra_data["new_bot_personality_id"] = result_personality_id
        return await self.log_event(
            action=AuditAction.WORKFLOW_RETRIED,
            resource_type=BOT_PERSONALITY_RESOURCE,
            actor_user_id=user_id,
            resource_id=bot_personality_id,
            org_id=org_id,
            extra_data=extra_data,
        )

    async def log_workflow_cancelled(
        self,
        user_id: Optional[int],
        org_id: Optional[int],
        bot_personality_id: str,
        previous_status: str,
    ) -> Optional[AuditLog]:
        return await self.log_event(
            action=AuditAction.WORKFLOW_CANCELLED,
            resource_type=BOT_PERSONALITY_RESOURCE,
            actor_user_id=user_id,
            resource_id=bot_personality_id,
            org_id=org_id,
            changes={"status": {"before": previous_status, "after": "cancelled"}},
        )

    async def get_history(
        self,
        bot_personality_id: str,
        org_id: Optional[int] = None,
        limit: int = 50,
    ) -> List[AuditLog]:
        """Most recent audit entries for one bot personality, newest first."""
        return await self.dao.get_by_resource(
            BOT_PERSONALITY_RESOURCE, bot_personality_id, org_id=org_id, limit=limit
        )
