"""
Audit Service Tests.

WHAT: Unit tests for the AuditService.

WHY: Workflow history is read back from the audit log. These tests ensure:
- Context is correctly captured from request middleware
- Workflow events carry the fields the history endpoint shows
- Errors in logging don't break business operations

HOW: Tests use mock sessions and a mocked DAO.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock
from sqlalchemy.ext.asyncio import AsyncSession

from app.services.audit import AuditService, BOT_PERSONALITY_RESOURCE
from app.models.audit_log import AuditLog, AuditAction
from app.middleware.request_context import RequestContext, _request_context


@pytest.fixture
def mock_session():
    return AsyncMock(spec=AsyncSession)


@pytest.fixture
def request_context():
    """Set up a request context for testing."""
    ctx = RequestContext(
        request_id="test-request-id",
        ip_address="192.168.1.100",
        user_agent="TestBrowser/1.0",
        path="/api/bot-personality-workflows",
        method="POST",
    )
    token = _request_context.set(ctx)
    yield ctx
    _request_context.reset(token)


@pytest.fixture
def service(mock_session):
    service = AuditService(mock_session)
    service.dao = AsyncMock()
    service.dao.create = AsyncMock(return_value=MagicMock(spec=AuditLog))
    return service


@pytest.fixture
def outcome():
    return {
        "success": True,
        "bot_personality_id": "bp-1",
        "session_reference": "ms-1",
        "knowledge_base_reference": "kb-1",
        "external_workflow_reference": "wf-1",
        "status": "active",
        "elapsed_ms": 12.5,
        "phase1": {"success": True},
        "phase2": {
            "success": False,
            "external_activation": {"success": False, "retry_scheduled": True},
            "internal_status_update": {"success": True},
        },
        "phase3": {
            "success": True,
            "n8n_configuration_update": {"success": True},
            "database_configuration_update": {"success": True},
        },
    }


@pytest.mark.asyncio
class TestAuditServiceLogEvent:
    """Tests for the generic log_event method."""

    async def test_log_event_captures_request_context(self, service, request_context):
        result = await service.log_event(
            action=AuditAction.CREATE,
            resource_type="bot_personality",
            actor_user_id=123,
        )

        assert result is not None
        call_kwargs = service.dao.create.call_args.kwargs
        assert call_kwargs["ip_address"] == "192.168.1.100"
        assert call_kwargs["user_agent"] == "TestBrowser/1.0"
        assert call_kwargs["actor_user_id"] == 123

    async def test_log_event_without_request_context(self, service):
        """Scheduler jobs and tests run outside any request."""
        await service.log_event(action=AuditAction.CREATE, resource_type="bot_personality")

        call_kwargs = service.dao.create.call_args.kwargs
        assert call_kwargs["ip_address"] is None
        assert call_kwargs["user_agent"] is None

    async def test_log_event_allows_ip_override(self, service, request_context):
        await service.log_event(
            action=AuditAction.CREATE,
            resource_type="bot_personality",
            ip_address="10.0.0.1",
        )

        assert service.dao.create.call_args.kwargs["ip_address"] == "10.0.0.1"

    async def test_log_event_handles_exception_gracefully(self, service):
        """
        WHY: Audit logging failures should NEVER break business operations.
        """
        service.dao.create = AsyncMock(side_effect=Exception("DB error"))

        result = await service.log_event(action=AuditAction.CREATE, resource_type="bot_personality")

        assert result is None

    async def test_log_event_rolls_back_session_on_failure(self, service, mock_session):
        service.dao.create = AsyncMock(side_effect=Exception("flush failed"))

        await service.log_event(action=AuditAction.CREATE, resource_type="bot_personality")

        mock_session.rollback.assert_awaited_once()


@pytest.mark.asyncio
class TestAuditServiceWorkflowEvents:
    """Tests for bot personality workflow event helpers."""

    async def test_log_workflow_executed(self, service, outcome):
        await service.log_workflow_executed(user_id=5, org_id=1, outcome=outcome)

        call_kwargs = service.dao.create.call_args.kwargs
        assert call_kwargs["action"] == AuditAction.WORKFLOW_EXECUTED
        assert call_kwargs["resource_type"] == BOT_PERSONALITY_RESOURCE
        assert call_kwargs["resource_id"] == "bp-1"
        assert call_kwargs["org_id"] == 1

        extra = call_kwargs["extra_data"]
        assert extra["messaging_session_id"] == "ms-1"
        assert extra["knowledge_base_item_id"] == "kb-1"
        assert extra["n8n_workflow_id"] == "wf-1"
        assert extra["activation_success"] is False
        assert extra["status_update_success"] is True
        assert extra["n8n_configuration_success"] is True
        assert "system_message" not in extra

    async def test_log_workflow_retried_records_new_record(self, service):
        await service.log_workflow_retried(
            user_id=5,
            org_id=1,
            bot_personality_id="bp-1",
            retry_phase="all",
            result_personality_id="bp-2",
        )

        call_kwargs = service.dao.create.call_args.kwargs
        assert call_kwargs["action"] == AuditAction.WORKFLOW_RETRIED
        assert call_kwargs["extra_data"] == {
            "retry_phase": "all",
            "new_bot_personality_id": "bp-2",
        }

    async def test_log_workflow_retried_same_record(self, service):
        await service.log_workflow_retried(
            user_id=5, org_id=1, bot_personality_id="bp-1", retry_phase="phase2"
        )

        assert service.dao.create.call_args.kwargs["extra_data"] == {"retry_phase": "phase2"}

    async def test_log_workflow_cancelled(self, service):
        await service.log_workflow_cancelled(
            user_id=5, org_id=1, bot_personality_id="bp-1", previous_status="active"
        )

        call_kwargs = service.dao.create.call_args.kwargs
        assert call_kwargs["action"] == AuditAction.WORKFLOW_CANCELLED
        assert call_kwargs["changes"] == {"status": {"before": "active", "after": "cancelled"}}

    async def test_get_history_reads_bot_personality_entries(self, service):
        service.dao.get_by_resource = AsyncMock(return_value=[])

        await service.get_history("bp-1", org_id=1, limit=10)

        service.dao.get_by_resource.assert_awaited_once_with(
            BOT_PERSONALITY_RESOURCE, "bp-1", org_id=1, limit=10
        )
