"""
FastAPI dependencies for authentication and service wiring.

WHY: Dependencies provide reusable authentication logic and construct
the workflow service with its collaborators, so route handlers stay thin
and tests can override any piece through app.dependency_overrides.
"""

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.auth import verify_token
from app.core.config import settings
from app.core.exceptions import (
    AuthenticationError,
    TokenExpiredError,
    TokenInvalidError,
)
from app.dao.base import BaseDAO
from app.db.session import AsyncSessionLocal, get_db
from app.models.user import User
from app.services.bot_personality_workflow_service import BotPersonalityWorkflowService
from app.services.n8n_client import create_n8n_client
from app.services.n8n_workflow_gateway import N8nWorkflowGateway
from app.services.scheduler import RetryQueue
from app.services.slack_service import SlackWorkflowNotifier


# HTTP Bearer token security scheme
# Format: "Authorization: Bearer <token>"
security = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Get current authenticated user from JWT token.

    WHY: This dependency:
    1. Extracts token from Authorization header
    2. Verifies token signature and expiration
    3. Fetches user from database
    4. Ensures user still exists and is active

    Raises:
        AuthenticationError: If token is invalid, expired, or user not found
    """
    token = credentials.credentials

    try:
        payload = verify_token(token)
    except (TokenExpiredError, TokenInvalidError) as e:
        raise AuthenticationError(
            message=str(e),
            status_code=e.status_code,
        )

    user_id = payload.get("user_id")
    if not user_id:
        raise AuthenticationError(
            message="Invalid token: missing user_id",
        )

    # WHY: User data in token might be stale; always fetch current data
    user = await BaseDAO(User, db).get_by_id(user_id)

    if not user:
        raise AuthenticationError(
            message="User not found",
            user_id=user_id,
        )

    if not user.is_active:
        raise AuthenticationError(
            message="User account is inactive",
            user_id=user_id,
        )

    return user


def get_session_factory() -> async_sessionmaker:
    """
    Session factory used by the workflow service.

    WHY: Phase 2 and Phase 3 run their sub-steps concurrently, and an
    AsyncSession cannot be shared between concurrent tasks. The service
    opens one short-lived session per step from this factory.
    """
    return AsyncSessionLocal


def get_workflow_service(
    session_factory: async_sessionmaker = Depends(get_session_factory),
) -> BotPersonalityWorkflowService:
    """
    Build the bot personality workflow service with its collaborators.

    Collaborators are resolved per request so overrides in tests and
    settings changes at runtime both take effect.
    """
    client = create_n8n_client(
        base_url=settings.N8N_BASE_URL,
        api_key=settings.N8N_API_KEY,
        timeout=settings.N8N_TIMEOUT_SECONDS,
    )
    notifier = SlackWorkflowNotifier() if settings.SLACK_WEBHOOK_ENABLED else None

    return BotPersonalityWorkflowService(
        session_factory=session_factory,
        gateway=N8nWorkflowGateway(client=client, session_factory=session_factory),
        retry_queue=RetryQueue(),
        notifier=notifier,
        retry_delay_seconds=settings.WORKFLOW_RETRY_DELAY_SECONDS,
    )
