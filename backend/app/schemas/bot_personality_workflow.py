"""
Pydantic schemas for bot personality workflow endpoints.

WHAT: Request/response contracts for provisioning, status, retry, cancel
and history.

WHY: Reference fields are optional at the schema level so that a missing
or malformed id reaches the workflow service, which reports it with a
field-specific ValidationError.

HOW: Uses Pydantic v2. Phase traces are free-form dicts; their shape is
owned by the workflow service.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from app.services.bot_personality_workflow_service import RetryPhase


# ============================================================================
# Requests
# ============================================================================


class WorkflowExecuteRequest(BaseModel):
    """Provision a bot personality for a messaging session."""

    messaging_session_id: Optional[str] = Field(
        None, description="Messaging session (UUID) the bot personality serves"
    )
    knowledge_base_item_id: Optional[str] = Field(
        None, description="Knowledge base item (UUID) grounding the bot"
    )


class WorkflowRetryRequest(BaseModel):
    bot_personality_id: str = Field(..., min_length=1)
    retry_phase: RetryPhase = Field(RetryPhase.ALL, description="all, phase2 or phase3")


# ============================================================================
# Responses
# ============================================================================


class WorkflowOutcomeResponse(BaseModel):
    """
    Result of a provisioning run.

    success is true whenever the record was created; check phase2/phase3
    for activation and configuration failures.
    """

    success: bool
    message: str
    bot_personality_id: str
    session_reference: str
    knowledge_base_reference: str
    external_workflow_reference: str
    status: str
    elapsed_ms: float
    phase1: Dict[str, Any]
    phase2: Dict[str, Any]
    phase3: Dict[str, Any]


class WorkflowStatusResponse(BaseModel):
    bot_personality_id: str
    status: str
    messaging_session_id: str
    knowledge_base_item_id: str
    n8n_workflow_id: str
    system_message_configured: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class WorkflowRetryResponse(BaseModel):
    bot_personality_id: str
    retry_phase: RetryPhase
    new_bot_personality_id: Optional[str] = None
    result: Dict[str, Any]


class WorkflowCancelResponse(BaseModel):
    bot_personality_id: str
    status: str
    previous_status: str


class WorkflowHistoryEntry(BaseModel):
    action: str
    user_id: Optional[int] = None
    created_at: Optional[datetime] = None
    changes: Optional[Dict[str, Any]] = None
    metadata: Optional[Dict[str, Any]] = None


class WorkflowHistoryResponse(BaseModel):
    bot_personality_id: str
    history: List[WorkflowHistoryEntry]
    total_entries: int
