"""
N8n workflow gateway.

WHAT: The bot personality workflow's port onto n8n. Translates local
N8nWorkflow ids into n8n workflow ids, calls the n8n client and mirrors
activation results into the local cache.

WHY: The orchestrator treats every n8n failure as non-fatal and records it
in the phase trace. The gateway therefore never raises: every outcome,
including a missing local record or an unreachable n8n instance, comes
back as an OperationResult.

HOW: Each call opens its own session from the injected factory, so
activation can run concurrently with other workflow steps.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from app.core.exceptions import AppException
from app.dao.n8n_workflow import N8nWorkflowDAO
from app.services.n8n_client import N8nClient

logger = logging.getLogger(__name__)


@dataclass
class OperationResult:
    """
    Outcome of one workflow sub-step.

    success/message are always set; error carries the failure detail and
    data any payload worth keeping in the trace.
    """

    success: bool
    message: str
    error: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"success": self.success, "message": self.message}
        if self.error is not None:
            result["error"] = self.error
        result.update(self.data)
        return result


def is_activation_confirmed(response: Any) -> bool:
    """
    Decide whether an n8n activation response reports an active workflow.

    n8n versions differ: some return the workflow (`active`), some wrap it
    in `data`, some proxies answer `{"success": true}`.
    """
    if not isinstance(response, dict):
        return False
    if response.get("active") is True:
        return True
    data = response.get("data")
    if isinstance(data, dict) and data.get("active") is True:
        return True
    return response.get("success") is True


class N8nWorkflowGateway:
    """
    Activation and configuration operations on n8n workflows.
    """

    def __init__(self, client: N8nClient, session_factory: async_sessionmaker):
        self._client = client
        self._session_factory = session_factory

    async def _resolve_remote_id(self, workflow_ref: str) -> Optional[str]:
        async with self._session_factory() as session:
            workflow = await N8nWorkflowDAO(session).get_by_id(workflow_ref)
            return workflow.workflow_id if workflow else None

    async def activate(self, workflow_ref: str) -> OperationResult:
        """
        Activate the n8n workflow behind a local N8nWorkflow record.

        WHAT: Calls n8n, then marks the local record active (is_enabled)
        when n8n confirms, or error (disabled) when it does not.

        Args:
            workflow_ref: Local N8nWorkflow id

        Returns:
            OperationResult; never raises
        """
        try:
            remote_id = await self._resolve_remote_id(workflow_ref)
            if remote_id is None:
                logger.error(
                    "n8n workflow record not found for activation",
                    extra={"n8n_workflow_id": workflow_ref},
                )
                return OperationResult(
                    success=False,
                    message="Failed to activate N8N workflow",
                    error=f"N8N workflow with ID {workflow_ref} not found in database",
                )

            response = await self._client.activate_workflow(remote_id)
            activated = is_activation_confirmed(response)

            async with self._session_factory() as session:
                async with session.begin():
                    await N8nWorkflowDAO(session).mark_activation(workflow_ref, activated)

            if activated:
                logger.info(
                    "n8n workflow activated",
                    extra={"n8n_workflow_id": workflow_ref, "remote_workflow_id": remote_id},
                )
                return OperationResult(
                    success=True,
                    message="N8N workflow activated successfully",
                    data={"workflow_id": remote_id},
                )

            logger.error(
                "n8n did not confirm workflow activation",
                extra={"n8n_workflow_id": workflow_ref, "remote_workflow_id": remote_id},
            )
            return OperationResult(
                success=False,
                message="Failed to activate N8N workflow",
                error="Activation not confirmed by n8n",
                data={"workflow_id": remote_id},
            )

        except AppException as e:
            logger.error(
                "n8n workflow activation failed",
                extra={"n8n_workflow_id": workflow_ref, "error": e.message},
            )
            return OperationResult(
                success=False, message="Failed to activate N8N workflow", error=e.message
            )
        except Exception as e:
            logger.error(
                "n8n workflow activation failed",
                extra={"n8n_workflow_id": workflow_ref, "error": str(e)},
                exc_info=True,
            )
            return OperationResult(
                success=False, message="Failed to activate N8N workflow", error=str(e)
            )

    async def set_configuration(
        self, workflow_ref: str, configuration: Dict[str, Any]
    ) -> OperationResult:
        """
        Push configuration to the remote n8n workflow.

        Only system_message is understood; it replaces the AI Agent node's
        system message.

        Args:
            workflow_ref: Local N8nWorkflow id
            configuration: {"system_message": str}

        Returns:
            OperationResult; never raises
        """
        system_message = configuration.get("system_message")
        if system_message is None:
            return OperationResult(
                success=False,
                message="Failed to update N8N system message",
                error="No system_message in configuration",
            )

        try:
            remote_id = await self._resolve_remote_id(workflow_ref)
            if remote_id is None:
                return OperationResult(
                    success=False,
                    message="Failed to update N8N system message",
                    error=f"N8N workflow with ID {workflow_ref} not found in database",
                )

            await self._client.update_system_message(remote_id, system_message)
            return OperationResult(
                success=True,
                message="N8N system message updated successfully",
                data={"workflow_id": remote_id},
            )

        except AppException as e:
            logger.error(
                "Failed to update n8n system message",
                extra={"n8n_workflow_id": workflow_ref, "error": e.message},
            )
            return OperationResult(
                success=False, message="Failed to update N8N system message", error=e.message
            )
        except Exception as e:
            logger.error(
                "Failed to update n8n system message",
                extra={"n8n_workflow_id": workflow_ref, "error": str(e)},
                exc_info=True,
            )
            return OperationResult(
                success=False, message="Failed to update N8N system message", error=str(e)
            )
