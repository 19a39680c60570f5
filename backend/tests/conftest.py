"""
Pytest configuration and fixtures.

WHY: Fixtures provide reusable test setup/teardown logic, reducing
duplication and ensuring consistent test environments.

The workflow service opens several sessions concurrently, so each test
gets its own file-backed SQLite database rather than an in-memory one
(in-memory SQLite is private to a single connection).
"""

import os

# Settings are read at import time; these must be set before app imports.
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-jwt-signing")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./app_test.db")
os.environ.setdefault("SLACK_WEBHOOK_ENABLED", "false")

import pytest
import pytest_asyncio
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from httpx import AsyncClient, ASGITransport

from app.main import app
from app.models.base import Base
from app.db.session import get_db
from app.core.auth import create_access_token
from app.core.deps import get_session_factory, get_workflow_service
from app.services.bot_personality_workflow_service import BotPersonalityWorkflowService
from app.services.n8n_workflow_gateway import OperationResult

from tests.factories import (
    OrganizationFactory,
    UserFactory,
    N8nWorkflowFactory,
    MessagingSessionFactory,
    KnowledgeBaseFactory,
)


@pytest_asyncio.fixture(scope="function")
async def db_engine(tmp_path):
    """
    Create a test database engine.

    WHY: Function scope ensures each test gets a fresh database state.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker:
    """Session factory bound to the test engine, configured like AsyncSessionLocal."""
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """
    Session for seeding and asserting.

    Factories commit, so data is visible to the sessions the workflow
    service opens on its own.
    """
    async with session_factory() as session:
        yield session


# ============================================================================
# Collaborator doubles
# ============================================================================


@pytest.fixture
def gateway() -> MagicMock:
    """n8n gateway double; both operations succeed unless a test says otherwise."""
    mock = MagicMock()
    mock.activate = AsyncMock(
        return_value=OperationResult(success=True, message="N8N workflow activated successfully")
    )
    mock.set_configuration = AsyncMock(
        return_value=OperationResult(success=True, message="N8N system message updated successfully")
    )
    return mock


@pytest.fixture
def retry_queue() -> MagicMock:
    mock = MagicMock()
    mock.enqueue = AsyncMock(return_value="retry:activate_n8n_workflow:test:1")
    return mock


@pytest.fixture
def notifier() -> MagicMock:
    mock = MagicMock()
    mock.notify_workflow_completed = AsyncMock(return_value=True)
    return mock


@pytest.fixture
def workflow_service(session_factory, gateway, retry_queue, notifier) -> BotPersonalityWorkflowService:
    return BotPersonalityWorkflowService(
        session_factory=session_factory,
        gateway=gateway,
        retry_queue=retry_queue,
        notifier=notifier,
        retry_delay_seconds=300,
    )


# ============================================================================
# Seed data
# ============================================================================


@pytest_asyncio.fixture
async def test_org(db_session: AsyncSession):
    return await OrganizationFactory.create(db_session)


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession, test_org):
    return await UserFactory.create(db_session, org_id=test_org.id)


@pytest_asyncio.fixture
async def n8n_workflow(db_session: AsyncSession, test_org):
    return await N8nWorkflowFactory.create(db_session, org_id=test_org.id)


@pytest_asyncio.fixture
async def messaging_session(db_session: AsyncSession, test_org, n8n_workflow):
    return await MessagingSessionFactory.create(
        db_session, org_id=test_org.id, n8n_workflow_id=n8n_workflow.id
    )


@pytest_asyncio.fixture
async def knowledge_item(db_session: AsyncSession, test_org):
    return await KnowledgeBaseFactory.create(
        db_session,
        org_id=test_org.id,
        content="Hi",
        qa_items=[{"question": "Q?", "answer": "A.", "context": "", "keywords": []}],
    )


# ============================================================================
# HTTP client
# ============================================================================


@pytest.fixture
def auth_headers(test_user) -> dict:
    token = create_access_token(
        {"user_id": test_user.id, "org_id": test_user.org_id, "role": test_user.role.value}
    )
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def client(
    session_factory, workflow_service
) -> AsyncGenerator[AsyncClient, None]:
    """
    Create a test HTTP client.

    WHY: AsyncClient with ASGITransport exercises the full FastAPI stack
    without running a server. Lifespan events do not run, so the retry
    scheduler stays stopped.
    """

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_workflow_service] = lambda: workflow_service

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
