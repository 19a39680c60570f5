"""
Unit tests for N8nWorkflowGateway.

WHAT: Activation and configuration calls against a mocked n8n client and
a real (SQLite) workflow table.

WHY: The orchestrator relies on the gateway never raising; every
failure must come back as an OperationResult.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from app.core.exceptions import N8nError
from app.dao.n8n_workflow import N8nWorkflowDAO
from app.models.workflow import N8nWorkflowStatus
from app.services.n8n_workflow_gateway import (
    N8nWorkflowGateway,
    OperationResult,
    is_activation_confirmed,
)


@pytest.fixture
def n8n_client():
    client = MagicMock()
    client.activate_workflow = AsyncMock(return_value={"id": "wf-remote-1", "active": True})
    client.update_system_message = AsyncMock(return_value={})
    return client


@pytest.fixture
def real_gateway(n8n_client, session_factory):
    return N8nWorkflowGateway(client=n8n_client, session_factory=session_factory)


async def _load(session_factory, workflow_id):
    async with session_factory() as session:
        return await N8nWorkflowDAO(session).get_by_id(workflow_id)


class TestActivationConfirmation:
    @pytest.mark.parametrize(
        "response, expected",
        [
            ({"active": True}, True),
            ({"data": {"active": True}}, True),
            ({"success": True}, True),
            ({"active": False}, False),
            ({}, False),
            (None, False),
            ("ok", False),
        ],
    )
    def test_is_activation_confirmed(self, response, expected):
        assert is_activation_confirmed(response) is expected


class TestOperationResult:
    def test_to_dict_merges_data(self):
        result = OperationResult(
            success=False, message="failed", error="boom", data={"retry_scheduled": True}
        )

        assert result.to_dict() == {
            "success": False,
            "message": "failed",
            "error": "boom",
            "retry_scheduled": True,
        }

    def test_to_dict_omits_missing_error(self):
        assert "error" not in OperationResult(success=True, message="ok").to_dict()


@pytest.mark.asyncio
class TestActivate:
    async def test_activates_and_marks_record(
        self, real_gateway, n8n_client, n8n_workflow, session_factory
    ):
        result = await real_gateway.activate(n8n_workflow.id)

        assert result.success is True
        assert result.data == {"workflow_id": "wf-remote-1"}
        n8n_client.activate_workflow.assert_awaited_once_with("wf-remote-1")

        workflow = await _load(session_factory, n8n_workflow.id)
        assert workflow.status == N8nWorkflowStatus.ACTIVE
        assert workflow.is_enabled is True

    async def test_unconfirmed_activation_marks_error(
        self, real_gateway, n8n_client, n8n_workflow, session_factory
    ):
        n8n_client.activate_workflow.return_value = {"active": False}

        result = await real_gateway.activate(n8n_workflow.id)

        assert result.success is False
        assert result.error == "Activation not confirmed by n8n"
        workflow = await _load(session_factory, n8n_workflow.id)
        assert workflow.status == N8nWorkflowStatus.ERROR
        assert workflow.is_enabled is False

    async def test_missing_record(self, real_gateway, n8n_client, db_engine):
        result = await real_gateway.activate("missing-id")

        assert result.success is False
        assert result.error == "N8N workflow with ID missing-id not found in database"
        n8n_client.activate_workflow.assert_not_called()

    async def test_n8n_error_is_captured(self, real_gateway, n8n_client, n8n_workflow):
        n8n_client.activate_workflow.side_effect = N8nError(message="n8n API error: boom")

        result = await real_gateway.activate(n8n_workflow.id)

        assert result.success is False
        assert result.error == "n8n API error: boom"

    async def test_unexpected_error_is_captured(self, real_gateway, n8n_client, n8n_workflow):
        n8n_client.activate_workflow.side_effect = RuntimeError("socket closed")

        result = await real_gateway.activate(n8n_workflow.id)

        assert result.success is False
        assert result.error == "socket closed"


@pytest.mark.asyncio
class TestSetConfiguration:
    async def test_pushes_system_message(self, real_gateway, n8n_client, n8n_workflow):
        result = await real_gateway.set_configuration(
            n8n_workflow.id, {"system_message": "Be helpful"}
        )

        assert result.success is True
        n8n_client.update_system_message.assert_awaited_once_with("wf-remote-1", "Be helpful")

    async def test_requires_system_message(self, real_gateway, n8n_client, n8n_workflow):
        result = await real_gateway.set_configuration(n8n_workflow.id, {})

        assert result.success is False
        n8n_client.update_system_message.assert_not_called()

    async def test_missing_record(self, real_gateway, db_engine):
        result = await real_gateway.set_configuration("missing-id", {"system_message": "X"})

        assert result.success is False
        assert "not found in database" in result.error

    async def test_n8n_error_is_captured(self, real_gateway, n8n_client, n8n_workflow):
        n8n_client.update_system_message.side_effect = N8nError(
            message="AI Agent node not found or has no systemMessage", status_code=404
        )

        result = await real_gateway.set_configuration(n8n_workflow.id, {"system_message": "X"})

        assert result.success is False
        assert result.error == "AI Agent node not found or has no systemMessage"
