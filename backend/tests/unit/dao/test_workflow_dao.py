"""
Unit tests for the bot personality workflow DAOs.

WHAT: Tests for N8nWorkflowDAO, BotPersonalityDAO, MessagingSessionDAO and
KnowledgeBaseItemDAO.

WHY: Verifies that:
1. Activation results are mirrored onto the local workflow record
2. Configuration pushes rewrite the AI Agent node in the local cache
3. Org-scoping is enforced for API lookups
4. Q&A entries load eagerly and in display order

HOW: Uses pytest-asyncio with a per-test SQLite database.
"""

import pytest

from app.dao.n8n_workflow import N8nWorkflowDAO
from app.dao.bot_personality import BotPersonalityDAO
from app.dao.messaging_session import MessagingSessionDAO
from app.dao.knowledge_base import KnowledgeBaseItemDAO
from app.models.workflow import N8nWorkflowStatus
from app.models.bot_personality import BotPersonalityStatus
from tests.factories import (
    AI_AGENT_NODE_ID,
    OrganizationFactory,
    N8nWorkflowFactory,
    KnowledgeBaseFactory,
    BotPersonalityFactory,
)


def _agent_message(nodes):
    for node in nodes:
        if node["id"] == AI_AGENT_NODE_ID:
            return node["parameters"]["options"]["systemMessage"]
    return None


@pytest.mark.asyncio
class TestN8nWorkflowDAO:
    async def test_mark_activation_success(self, db_session, n8n_workflow):
        dao = N8nWorkflowDAO(db_session)

        workflow = await dao.mark_activation(n8n_workflow.id, True)

        assert workflow.status == N8nWorkflowStatus.ACTIVE
        assert workflow.is_enabled is True

    async def test_mark_activation_failure(self, db_session, n8n_workflow):
        dao = N8nWorkflowDAO(db_session)

        workflow = await dao.mark_activation(n8n_workflow.id, False)

        assert workflow.status == N8nWorkflowStatus.ERROR
        assert workflow.is_enabled is False

    async def test_mark_activation_missing_record(self, db_session):
        dao = N8nWorkflowDAO(db_session)
        assert await dao.mark_activation("missing", True) is None

    async def test_update_configuration_rewrites_agent_node(self, db_session, n8n_workflow):
        dao = N8nWorkflowDAO(db_session)

        workflow = await dao.update_configuration(
            n8n_workflow.id, {"system_message": "<p>Hello&nbsp;there</p>"}
        )
        await db_session.commit()

        assert _agent_message(workflow.nodes) == "Hello there"
        assert _agent_message(workflow.workflow_data["nodes"]) == "Hello there"

    async def test_update_configuration_leaves_other_nodes(self, db_session, n8n_workflow):
        dao = N8nWorkflowDAO(db_session)

        workflow = await dao.update_configuration(n8n_workflow.id, {"system_message": "X"})

        trigger = next(node for node in workflow.nodes if node["id"] != AI_AGENT_NODE_ID)
        assert trigger["parameters"] == {}

    async def test_update_configuration_merges_settings(self, db_session, n8n_workflow):
        dao = N8nWorkflowDAO(db_session)

        workflow = await dao.update_configuration(n8n_workflow.id, {"system_message": "X"})

        assert workflow.settings["executionOrder"] == "v1"
        assert workflow.settings["system_message"] == "X"
        assert "last_updated" in workflow.settings

    async def test_update_configuration_without_workflow_data(self, db_session, test_org):
        workflow = await N8nWorkflowFactory.create(
            db_session, org_id=test_org.id, with_workflow_data=False
        )
        dao = N8nWorkflowDAO(db_session)

        updated = await dao.update_configuration(workflow.id, {"system_message": "X"})

        assert _agent_message(updated.nodes) == "X"
        assert updated.workflow_data == {}

    async def test_update_configuration_missing_record(self, db_session):
        dao = N8nWorkflowDAO(db_session)
        assert await dao.update_configuration("missing", {"system_message": "X"}) is None


@pytest.mark.asyncio
class TestBotPersonalityDAO:
    @pytest.fixture
    async def personality(self, db_session, test_org, messaging_session, knowledge_item, n8n_workflow):
        return await BotPersonalityFactory.create(
            db_session,
            org_id=test_org.id,
            messaging_session_id=messaging_session.id,
            knowledge_base_item_id=knowledge_item.id,
            n8n_workflow_id=n8n_workflow.id,
            status=BotPersonalityStatus.CREATING,
        )

    async def test_get_scoped_same_org(self, db_session, personality, test_org):
        dao = BotPersonalityDAO(db_session)
        found = await dao.get_scoped(personality.id, test_org.id)
        assert found.id == personality.id

    async def test_get_scoped_other_org(self, db_session, personality):
        other_org = await OrganizationFactory.create(db_session, name="Other Org")
        dao = BotPersonalityDAO(db_session)
        assert await dao.get_scoped(personality.id, other_org.id) is None

    async def test_get_scoped_unscoped(self, db_session, personality):
        dao = BotPersonalityDAO(db_session)
        assert (await dao.get_scoped(personality.id)).id == personality.id

    async def test_update_status(self, db_session, personality):
        dao = BotPersonalityDAO(db_session)

        updated = await dao.update_status(personality.id, BotPersonalityStatus.ACTIVE)

        assert updated.status == BotPersonalityStatus.ACTIVE

    async def test_update_status_missing_record(self, db_session):
        dao = BotPersonalityDAO(db_session)
        assert await dao.update_status("missing", BotPersonalityStatus.ACTIVE) is None

    async def test_set_system_message(self, db_session, personality):
        dao = BotPersonalityDAO(db_session)

        updated = await dao.set_system_message(personality.id, "Be helpful")

        assert updated.system_message == "Be helpful"


@pytest.mark.asyncio
class TestMessagingSessionDAO:
    async def test_get_scoped(self, db_session, messaging_session, test_org):
        dao = MessagingSessionDAO(db_session)

        assert (await dao.get_scoped(messaging_session.id, test_org.id)).id == messaging_session.id
        assert await dao.get_scoped(messaging_session.id, test_org.id + 1) is None


@pytest.mark.asyncio
class TestKnowledgeBaseItemDAO:
    async def test_get_with_qa_items_ordered(self, db_session, test_org):
        item = await KnowledgeBaseFactory.create(
            db_session,
            org_id=test_org.id,
            qa_items=[
                {"question": "Second?", "answer": "2", "sort_order": 2},
                {"question": "First?", "answer": "1", "sort_order": 1},
                {"question": "Hidden?", "answer": "0", "sort_order": 0, "is_active": False},
            ],
        )
        db_session.expunge_all()
        dao = KnowledgeBaseItemDAO(db_session)

        loaded = await dao.get_with_qa_items(item.id)

        assert [qa.question for qa in loaded.qa_items] == ["Hidden?", "First?", "Second?"]
        assert [qa.question for qa in loaded.active_qa_items] == ["First?", "Second?"]

    async def test_get_with_qa_items_org_scoped(self, db_session, knowledge_item, test_org):
        dao = KnowledgeBaseItemDAO(db_session)

        assert await dao.get_with_qa_items(knowledge_item.id, test_org.id + 1) is None

    async def test_get_with_qa_items_missing(self, db_session):
        dao = KnowledgeBaseItemDAO(db_session)
        assert await dao.get_with_qa_items("missing") is None
