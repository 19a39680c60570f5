"""
N8n Workflow Data Access Object (DAO).

WHAT: Database operations for the local N8nWorkflow cache.

WHY: The platform mirrors each n8n workflow it deploys. Two writes matter
to bot personality provisioning:
1. Activation status, so dashboards reflect what n8n reported
2. The AI Agent node's system message, so the local copy matches what
   was pushed to n8n even when the remote push failed

HOW: JSON columns are not mutation-tracked, so every write builds new
dict/list objects and assigns them back to the attribute.
"""

import copy
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.dao.base import BaseDAO
from app.models.workflow import N8nWorkflow, N8nWorkflowStatus
from app.services.system_message import clean_html


def _set_node_system_message(
    nodes: List[Dict[str, Any]], node_id: str, system_message: str
) -> bool:
    """Write systemMessage into the matching node in place. Returns True on a hit."""
    for node in nodes:
        if isinstance(node, dict) and node.get("id") == node_id:
            parameters = node.setdefault("parameters", {})
            options = parameters.setdefault("options", {})
            options["systemMessage"] = system_message
            return True
    return False


class N8nWorkflowDAO(BaseDAO[N8nWorkflow]):
    """
    Data Access Object for N8nWorkflow model.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(N8nWorkflow, session)

    async def mark_activation(self, workflow_ref: str, activated: bool) -> Optional[N8nWorkflow]:
        """
        Mirror an activation attempt's result onto the local record.

        Args:
            workflow_ref: Local N8nWorkflow id
            activated: Whether n8n reported the workflow as active

        Returns:
            Updated record, or None if it does not exist
        """
        if activated:
            return await self.update(
                workflow_ref, status=N8nWorkflowStatus.ACTIVE, is_enabled=True
            )
        return await self.update(
            workflow_ref, status=N8nWorkflowStatus.ERROR, is_enabled=False
        )

    async def update_configuration(
        self,
        workflow_ref: str,
        configuration: Dict[str, Any],
        node_id: Optional[str] = None,
    ) -> Optional[N8nWorkflow]:
        """
        Store pushed configuration in the local workflow cache.

        WHAT: When configuration carries a system_message, the HTML-cleaned
        text is written to the AI Agent node in both `nodes` and
        `workflow_data["nodes"]`. The configuration is then merged into
        `settings` with a `last_updated` timestamp.

        Args:
            workflow_ref: Local N8nWorkflow id
            configuration: Keys to merge, e.g. {"system_message": "..."}
            node_id: AI Agent node id (defaults to N8N_AI_AGENT_NODE_ID)

        Returns:
            Updated record, or None if it does not exist
        """
        workflow = await self.get_by_id(workflow_ref)
        if workflow is None:
            return None

        node_id = node_id or settings.N8N_AI_AGENT_NODE_ID
        nodes = copy.deepcopy(workflow.nodes or [])
        workflow_data = copy.deepcopy(workflow.workflow_data or {})

        if "system_message" in configuration:
            system_message = clean_html(configuration["system_message"] or "")
            _set_node_system_message(nodes, node_id, system_message)
            if isinstance(workflow_data.get("nodes"), list):
                _set_node_system_message(workflow_data["nodes"], node_id, system_message)

        updated_settings = dict(workflow.settings or {})
        updated_settings.update(configuration)
        updated_settings["last_updated"] = datetime.now(timezone.utc).isoformat()

        workflow.nodes = nodes
        workflow.workflow_data = workflow_data
        workflow.settings = updated_settings

        await self.session.flush()
        await self.session.refresh(workflow)
        return workflow
