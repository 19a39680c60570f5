"""
Integration tests for the bot personality workflow API.

WHAT: Full request path through FastAPI: auth, org scoping, the workflow
service and the audit trail.

HOW: httpx AsyncClient over ASGITransport (see conftest); n8n and the
retry queue are mocked, the database is real SQLite.
"""

import uuid
from unittest.mock import patch

import pytest
from httpx import AsyncClient

from app.core.auth import create_access_token
from app.dao.audit_log import AuditLogDAO
from app.models.audit_log import AuditLog
from app.services.n8n_workflow_gateway import OperationResult
from tests.factories import (
    OrganizationFactory,
    UserFactory,
    MessagingSessionFactory,
)

BASE_URL = "/api/bot-personality-workflows"


@pytest.fixture
def execute_payload(messaging_session, knowledge_item):
    return {
        "messaging_session_id": messaging_session.id,
        "knowledge_base_item_id": knowledge_item.id,
    }


async def _provision(client: AsyncClient, auth_headers, payload) -> dict:
    response = await client.post(BASE_URL, json=payload, headers=auth_headers)
    assert response.status_code == 201, response.text
    return response.json()


async def _failing_audit_create(self, **kwargs):
    # resource_type is NOT NULL, so the flush fails inside the request session
    self.session.add(AuditLog(action=kwargs["action"], resource_type=None))
    await self.session.flush()


@pytest.mark.asyncio
class TestExecuteWorkflow:
    async def test_execute_returns_201(self, client: AsyncClient, auth_headers, execute_payload):
        response = await client.post(BASE_URL, json=execute_payload, headers=auth_headers)

        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        assert data["status"] == "active"
        assert data["session_reference"] == execute_payload["messaging_session_id"]
        assert data["phase2"]["external_activation"]["success"] is True
        assert data["phase3"]["system_message"].startswith("=== KNOWLEDGE BASE CONTENT ===")
        assert "X-Request-ID" in response.headers

    async def test_execute_with_activation_failure_still_201(
        self, client: AsyncClient, auth_headers, execute_payload, gateway, retry_queue
    ):
        gateway.activate.return_value = OperationResult(
            success=False, message="Failed to activate N8N workflow", error="n8n down"
        )

        response = await client.post(BASE_URL, json=execute_payload, headers=auth_headers)

        assert response.status_code == 201
        activation = response.json()["phase2"]["external_activation"]
        assert activation["success"] is False
        assert activation["retry_scheduled"] is True
        retry_queue.enqueue.assert_awaited_once()

    async def test_audit_failure_does_not_fail_request(
        self, client: AsyncClient, auth_headers, execute_payload
    ):
        with patch.object(AuditLogDAO, "create", _failing_audit_create):
            response = await client.post(BASE_URL, json=execute_payload, headers=auth_headers)

        assert response.status_code == 201, response.text
        personality_id = response.json()["bot_personality_id"]

        status_response = await client.get(f"{BASE_URL}/{personality_id}/status", headers=auth_headers)
        assert status_response.status_code == 200

    async def test_missing_reference_returns_400(self, client: AsyncClient, auth_headers, knowledge_item):
        response = await client.post(
            BASE_URL,
            json={"knowledge_base_item_id": knowledge_item.id},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["message"] == "messaging_session_id is required"

    async def test_malformed_reference_returns_400(self, client: AsyncClient, auth_headers, messaging_session):
        response = await client.post(
            BASE_URL,
            json={"messaging_session_id": messaging_session.id, "knowledge_base_item_id": "abc"},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid knowledge_base_item_id format"

    async def test_unknown_session_returns_404(self, client: AsyncClient, auth_headers, knowledge_item):
        response = await client.post(
            BASE_URL,
            json={
                "messaging_session_id": str(uuid.uuid4()),
                "knowledge_base_item_id": knowledge_item.id,
            },
            headers=auth_headers,
        )

        assert response.status_code == 404
        assert response.json()["error"] == "MessagingSessionNotFoundError"

    async def test_session_without_workflow_returns_422(
        self, client: AsyncClient, auth_headers, db_session, test_org, knowledge_item
    ):
        bare_session = await MessagingSessionFactory.create(db_session, org_id=test_org.id)

        response = await client.post(
            BASE_URL,
            json={
                "messaging_session_id": bare_session.id,
                "knowledge_base_item_id": knowledge_item.id,
            },
            headers=auth_headers,
        )

        assert response.status_code == 422

    async def test_other_organization_session_returns_404(
        self, client: AsyncClient, db_session, execute_payload
    ):
        other_org = await OrganizationFactory.create(db_session, name="Other Org")
        outsider = await UserFactory.create(db_session, org_id=other_org.id)
        token = create_access_token(
            {"user_id": outsider.id, "org_id": other_org.id, "role": outsider.role.value}
        )

        response = await client.post(
            BASE_URL, json=execute_payload, headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 404

    async def test_requires_authentication(self, client: AsyncClient, execute_payload):
        response = await client.post(BASE_URL, json=execute_payload)

        assert response.status_code in (401, 403)

    async def test_invalid_token_returns_401(self, client: AsyncClient, execute_payload):
        response = await client.post(
            BASE_URL, json=execute_payload, headers={"Authorization": "Bearer not-a-token"}
        )

        assert response.status_code == 401


@pytest.mark.asyncio
class TestWorkflowStatusEndpoint:
    async def test_get_status(self, client: AsyncClient, auth_headers, execute_payload, n8n_workflow):
        outcome = await _provision(client, auth_headers, execute_payload)

        response = await client.get(
            f"{BASE_URL}/{outcome['bot_personality_id']}/status", headers=auth_headers
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "active"
        assert data["n8n_workflow_id"] == n8n_workflow.id
        assert data["system_message_configured"] is True

    async def test_unknown_returns_404(self, client: AsyncClient, auth_headers):
        response = await client.get(f"{BASE_URL}/{uuid.uuid4()}/status", headers=auth_headers)

        assert response.status_code == 404


@pytest.mark.asyncio
class TestRetryEndpoint:
    async def test_retry_all(self, client: AsyncClient, auth_headers, execute_payload):
        outcome = await _provision(client, auth_headers, execute_payload)

        response = await client.post(
            f"{BASE_URL}/retry",
            json={"bot_personality_id": outcome["bot_personality_id"], "retry_phase": "all"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["retry_phase"] == "all"
        assert data["new_bot_personality_id"] not in (None, outcome["bot_personality_id"])

    async def test_retry_phase2(self, client: AsyncClient, auth_headers, execute_payload):
        outcome = await _provision(client, auth_headers, execute_payload)

        response = await client.post(
            f"{BASE_URL}/retry",
            json={"bot_personality_id": outcome["bot_personality_id"], "retry_phase": "phase2"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["new_bot_personality_id"] is None

    async def test_invalid_phase_returns_400(self, client: AsyncClient, auth_headers, execute_payload):
        outcome = await _provision(client, auth_headers, execute_payload)

        response = await client.post(
            f"{BASE_URL}/retry",
            json={"bot_personality_id": outcome["bot_personality_id"], "retry_phase": "phase9"},
            headers=auth_headers,
        )

        assert response.status_code == 400

    async def test_unknown_returns_404(self, client: AsyncClient, auth_headers):
        response = await client.post(
            f"{BASE_URL}/retry",
            json={"bot_personality_id": str(uuid.uuid4()), "retry_phase": "phase3"},
            headers=auth_headers,
        )

        assert response.status_code == 404


@pytest.mark.asyncio
class TestCancelEndpoint:
    async def test_cancel(self, client: AsyncClient, auth_headers, execute_payload):
        outcome = await _provision(client, auth_headers, execute_payload)

        response = await client.post(
            f"{BASE_URL}/{outcome['bot_personality_id']}/cancel", headers=auth_headers
        )

        assert response.status_code == 200
        assert response.json() == {
            "bot_personality_id": outcome["bot_personality_id"],
            "status": "cancelled",
            "previous_status": "active",
        }

    async def test_cancel_twice_returns_400(self, client: AsyncClient, auth_headers, execute_payload):
        outcome = await _provision(client, auth_headers, execute_payload)
        url = f"{BASE_URL}/{outcome['bot_personality_id']}/cancel"
        await client.post(url, headers=auth_headers)

        response = await client.post(url, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "InvalidStateTransitionError"

    async def test_unknown_returns_404(self, client: AsyncClient, auth_headers):
        response = await client.post(f"{BASE_URL}/{uuid.uuid4()}/cancel", headers=auth_headers)

        assert response.status_code == 404


@pytest.mark.asyncio
class TestHistoryEndpoint:
    async def test_history_records_actions(
        self, client: AsyncClient, auth_headers, execute_payload, test_user
    ):
        outcome = await _provision(client, auth_headers, execute_payload)
        personality_id = outcome["bot_personality_id"]
        await client.post(
            f"{BASE_URL}/retry",
            json={"bot_personality_id": personality_id, "retry_phase": "phase3"},
            headers=auth_headers,
        )
        await client.post(f"{BASE_URL}/{personality_id}/cancel", headers=auth_headers)

        response = await client.get(f"{BASE_URL}/{personality_id}/history", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["bot_personality_id"] == personality_id
        assert data["total_entries"] == 3
        assert [entry["action"] for entry in data["history"]] == [
            "WORKFLOW_CANCELLED",
            "WORKFLOW_RETRIED",
            "WORKFLOW_EXECUTED",
        ]
        assert all(entry["user_id"] == test_user.id for entry in data["history"])
        assert data["history"][1]["metadata"] == {"retry_phase": "phase3"}

    async def test_unknown_returns_404(self, client: AsyncClient, auth_headers):
        response = await client.get(f"{BASE_URL}/{uuid.uuid4()}/history", headers=auth_headers)

        assert response.status_code == 404


@pytest.mark.asyncio
class TestHealth:
    async def test_health_reports_scheduler(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "running" in data["scheduler"]
