"""
Bot personality workflow API endpoints.

WHAT: Provision a bot personality for a messaging session, and inspect,
retry or cancel the result.

WHY: Provisioning touches the database, n8n and the retry scheduler. The
route layer only scopes calls to the caller's organization, delegates to
BotPersonalityWorkflowService and writes the audit trail.

HOW: FastAPI router with:
- JWT bearer auth (get_current_user)
- Org-scoped lookups (multi-tenancy)
- Audit logging for mutations
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.deps import get_current_user, get_workflow_service
from app.db.session import get_db
from app.models.user import User
from app.schemas.bot_personality_workflow import (
    WorkflowExecuteRequest,
    WorkflowRetryRequest,
    WorkflowOutcomeResponse,
    WorkflowStatusResponse,
    WorkflowRetryResponse,
    WorkflowCancelResponse,
    WorkflowHistoryResponse,
    WorkflowHistoryEntry,
)
from app.services.audit import AuditService
from app.services.bot_personality_workflow_service import (
    BotPersonalityWorkflowService,
    WorkflowRequest,
)


router = APIRouter(prefix="/bot-personality-workflows", tags=["bot-personality-workflows"])


@router.post(
    "",
    response_model=WorkflowOutcomeResponse,
    status_code=status.HTTP_201_CREATED,
)
async def execute_workflow(
    payload: WorkflowExecuteRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    service: BotPersonalityWorkflowService = Depends(get_workflow_service),
) -> WorkflowOutcomeResponse:
    """
    Provision a bot personality.

    Returns 201 once the record exists, even when n8n activation or the
    configuration push failed; those show up in phase2/phase3.
    """
    outcome = await service.run_workflow(
        WorkflowRequest(
            messaging_session_id=payload.messaging_session_id,
            knowledge_base_item_id=payload.knowledge_base_item_id,
            org_id=current_user.org_id,
        )
    )
    outcome_dict = outcome.to_dict()

    await AuditService(db).log_workflow_executed(
        user_id=current_user.id,
        org_id=current_user.org_id,
        outcome=outcome_dict,
    )

    return WorkflowOutcomeResponse(**outcome_dict)


@router.get("/{bot_personality_id}/status", response_model=WorkflowStatusResponse)
async def get_workflow_status(
    bot_personality_id: str,
    current_user: User = Depends(get_current_user),
    service: BotPersonalityWorkflowService = Depends(get_workflow_service),
) -> WorkflowStatusResponse:
    """Current status and references of a bot personality."""
    view = await service.get_workflow_status(bot_personality_id, org_id=current_user.org_id)
    return WorkflowStatusResponse(**view.to_dict())


@router.post("/retry", response_model=WorkflowRetryResponse)
async def retry_workflow(
    payload: WorkflowRetryRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    service: BotPersonalityWorkflowService = Depends(get_workflow_service),
) -> WorkflowRetryResponse:
    """
    Re-run all or part of a workflow.

    retry_phase "all" provisions a new bot personality from the same
    references; "phase2" and "phase3" act on the existing record.
    """
    result = await service.retry_workflow(
        payload.bot_personality_id,
        phase=payload.retry_phase.value,
        org_id=current_user.org_id,
    )

    # Audit writes may roll back the request session, which expires current_user
    user_id, org_id = current_user.id, current_user.org_id
    audit = AuditService(db)
    new_id = result.get("new_bot_personality_id")
    if new_id:
        await audit.log_workflow_executed(
            user_id=user_id,
            org_id=org_id,
            outcome=result["result"],
        )
    await audit.log_workflow_retried(
        user_id=user_id,
        org_id=org_id,
        bot_personality_id=payload.bot_personality_id,
        retry_phase=payload.retry_phase.value,
        result_personality_id=new_id,
    )

    return WorkflowRetryResponse(**result)


@router.post("/{bot_personality_id}/cancel", response_model=WorkflowCancelResponse)
async def cancel_workflow(
    bot_personality_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    service: BotPersonalityWorkflowService = Depends(get_workflow_service),
) -> WorkflowCancelResponse:
    """Mark a bot personality as cancelled."""
    result = await service.cancel_workflow(bot_personality_id, org_id=current_user.org_id)

    await AuditService(db).log_workflow_cancelled(
        user_id=current_user.id,
        org_id=current_user.org_id,
        bot_personality_id=bot_personality_id,
        previous_status=result["previous_status"],
    )

    return WorkflowCancelResponse(**result)


@router.get("/{bot_personality_id}/history", response_model=WorkflowHistoryResponse)
async def get_workflow_history(
    bot_personality_id: str,
    current_user: User = Depends(get_current_user),
    service: BotPersonalityWorkflowService = Depends(get_workflow_service),
) -> WorkflowHistoryResponse:
    """Up to 50 most recent audit entries, newest first."""
    entries = await service.get_workflow_history(bot_personality_id, org_id=current_user.org_id)
    history = [WorkflowHistoryEntry(**entry) for entry in entries]
    return WorkflowHistoryResponse(
        bot_personality_id=bot_personality_id,
        history=history,
        total_entries=len(history),
    )
