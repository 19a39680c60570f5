"""
Bot personality provisioning workflow.

WHAT: Provisions a bot personality for a messaging session in three phases:

1. Initialize (atomic): resolve the session and knowledge base item, create
   the BotPersonality record in status CREATING.
2. Activate: activate the session's n8n workflow and flip the record to
   ACTIVE. Both steps always run; a failed activation schedules one
   delayed retry.
3. Synchronize: render the system message from the knowledge base item and
   push it to n8n and to the local workflow cache.

WHY: Only Phase 1 can fail the request. Once the record exists the
workflow reports success, and Phase 2/3 problems are visible only in the
per-phase trace. Callers that care about partial failure inspect the trace
or poll get_workflow_status.

HOW: Every database step opens its own session from the injected session
factory. Phase 2 and Phase 3 run their two steps with asyncio.gather, and
an AsyncSession cannot be shared between concurrent tasks.
"""

import asyncio
import logging
import re
import time
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Tuple

from sqlalchemy.ext.asyncio import async_sessionmaker

from app.core.exceptions import (
    BotPersonalityNotFoundError,
    DependencyError,
    InvalidStateTransitionError,
    KnowledgeBaseItemNotFoundError,
    MessagingSessionNotFoundError,
    NotFoundError,
    PersistenceWarning,
    ValidationError,
)
from app.dao.bot_personality import BotPersonalityDAO
from app.dao.knowledge_base import KnowledgeBaseItemDAO
from app.dao.messaging_session import MessagingSessionDAO
from app.dao.n8n_workflow import N8nWorkflowDAO
from app.models.bot_personality import BotPersonality, BotPersonalityStatus
from app.services.audit import AuditService
from app.services.n8n_workflow_gateway import OperationResult
from app.services.scheduler import ACTIVATE_N8N_WORKFLOW
from app.services.system_message import build_system_message

module_logger = logging.getLogger(__name__)

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)

DEFAULT_RETRY_DELAY_SECONDS = 300
HISTORY_LIMIT = 50

# Defaults applied to every auto-provisioned personality
PERSONALITY_DEFAULTS: Dict[str, Any] = {
    "name": "Auto-generated Bot Personality",
    "display_name": "Auto-generated Bot Personality",
    "description": "Automatically generated bot personality from workflow",
    "language": "indonesia",
    "formality_level": "formal",
    "response_delay_ms": 1000,
    "max_response_length": 1000,
    "confidence_threshold": Decimal("0.75"),
    "typing_indicator": True,
    "enable_small_talk": True,
    "learning_enabled": True,
    "is_default": False,
}


# ============================================================================
# Collaborator Ports
# ============================================================================


class WorkflowGateway(Protocol):
    async def activate(self, workflow_ref: str) -> OperationResult: ...

    async def set_configuration(
        self, workflow_ref: str, configuration: Dict[str, Any]
    ) -> OperationResult: ...


class TaskQueue(Protocol):
    async def enqueue(
        self, operation_name: str, target_reference: str, delay_seconds: Optional[int] = None
    ) -> str: ...


class WorkflowNotifier(Protocol):
    async def notify_workflow_completed(self, outcome: Dict[str, Any]) -> bool: ...


# ============================================================================
# Data Types
# ============================================================================


class RetryPhase(str, Enum):
    """Which part of the workflow to re-run."""

    ALL = "all"
    PHASE2 = "phase2"
    PHASE3 = "phase3"


@dataclass(frozen=True)
class WorkflowRequest:
    """
    Provisioning input.

    org_id limits lookups to one organization; None means unscoped
    (internal callers only).
    """

    messaging_session_id: Optional[str]
    knowledge_base_item_id: Optional[str]
    org_id: Optional[int] = None


@dataclass(frozen=True)
class QaEntry:
    question: str
    answer: str
    context: Optional[str] = None
    keywords: Optional[List[str]] = None


@dataclass(frozen=True)
class KnowledgeSnapshot:
    """Knowledge base data read in Phase 1 and rendered in Phase 3."""

    knowledge_base_item_id: str
    content: Optional[str]
    qa_items: Tuple[QaEntry, ...]

    @classmethod
    def from_item(cls, item) -> "KnowledgeSnapshot":
        return cls(
            knowledge_base_item_id=item.id,
            content=item.content,
            qa_items=tuple(
                QaEntry(
                    question=qa.question,
                    answer=qa.answer,
                    context=qa.context,
                    keywords=list(qa.keywords) if qa.keywords else None,
                )
                for qa in item.active_qa_items
            ),
        )


@dataclass
class PhaseResult:
    """
    Trace of one phase: named sub-step results plus phase-level data.

    Not persisted; returned to the caller and logged.
    """

    phase: str
    steps: Dict[str, OperationResult] = field(default_factory=dict)
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return all(step.success for step in self.steps.values())

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"success": self.success}
        result.update(self.data)
        for name, step in self.steps.items():
            result[name] = step.to_dict()
        return result


@dataclass
class WorkflowOutcome:
    success: bool
    message: str
    bot_personality_id: str
    session_reference: str
    knowledge_base_reference: str
    external_workflow_reference: str
    status: str
    elapsed_ms: float
    phase1: PhaseResult
    phase2: PhaseResult
    phase3: PhaseResult

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "bot_personality_id": self.bot_personality_id,
            "session_reference": self.session_reference,
            "knowledge_base_reference": self.knowledge_base_reference,
            "external_workflow_reference": self.external_workflow_reference,
            "status": self.status,
            "elapsed_ms": self.elapsed_ms,
            "phase1": self.phase1.to_dict(),
            "phase2": self.phase2.to_dict(),
            "phase3": self.phase3.to_dict(),
        }


@dataclass
class WorkflowStatusView:
    bot_personality_id: str
    status: str
    messaging_session_id: str
    knowledge_base_item_id: str
    n8n_workflow_id: str
    system_message_configured: bool
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    @classmethod
    def from_model(cls, personality: BotPersonality) -> "WorkflowStatusView":
        return cls(
            bot_personality_id=personality.id,
            status=personality.status.value,
            messaging_session_id=personality.messaging_session_id,
            knowledge_base_item_id=personality.knowledge_base_item_id,
            n8n_workflow_id=personality.n8n_workflow_id,
            system_message_configured=bool(personality.system_message),
            created_at=personality.created_at,
            updated_at=personality.updated_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bot_personality_id": self.bot_personality_id,
            "status": self.status,
            "messaging_session_id": self.messaging_session_id,
            "knowledge_base_item_id": self.knowledge_base_item_id,
            "n8n_workflow_id": self.n8n_workflow_id,
            "system_message_configured": self.system_message_configured,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass(frozen=True)
class _Provisioned:
    """Phase 1 output consumed by Phase 2 and Phase 3."""

    bot_personality_id: str
    org_id: int
    messaging_session_id: str
    n8n_workflow_id: str
    knowledge: KnowledgeSnapshot


# ============================================================================
# Service
# ============================================================================


class BotPersonalityWorkflowService:
    """
    Orchestrates bot personality provisioning and its follow-up operations.

    Collaborators are injected:
    - session_factory: async_sessionmaker used for every database step
    - gateway: activation / configuration port onto n8n
    - retry_queue: delayed retry of failed activations
    - notifier: optional; told about every completed run
    - logger: optional; defaults to this module's logger
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        gateway: WorkflowGateway,
        retry_queue: TaskQueue,
        notifier: Optional[WorkflowNotifier] = None,
        retry_delay_seconds: int = DEFAULT_RETRY_DELAY_SECONDS,
        logger: Optional[logging.Logger] = None,
    ):
        self._session_factory = session_factory
        self._gateway = gateway
        self._retry_queue = retry_queue
        self._notifier = notifier
        self._retry_delay_seconds = retry_delay_seconds
        self._logger = logger or module_logger

    # =========================================================================
    # Provisioning
    # =========================================================================

    async def run_workflow(self, request: WorkflowRequest) -> WorkflowOutcome:
        """
        Provision a bot personality.

        Returns:
            WorkflowOutcome with success=True whenever Phase 1 completed

        Raises:
            ValidationError: Missing or malformed reference, or a session
                with no n8n workflow attached (422)
            NotFoundError: Session or knowledge base item does not exist
            DependencyError: Phase 1 transaction failed for any other reason
        """
        started = time.perf_counter()
        self._validate_request(request)

        provisioned = await self._initialize(request)
        phase1 = PhaseResult(
            phase="phase1",
            data={
                "bot_personality_id": provisioned.bot_personality_id,
                "messaging_session_id": provisioned.messaging_session_id,
                "knowledge_base_item_id": provisioned.knowledge.knowledge_base_item_id,
                "n8n_workflow_id": provisioned.n8n_workflow_id,
                "status": BotPersonalityStatus.CREATING.value,
            },
        )

        phase2 = await self._activate(provisioned.bot_personality_id, provisioned.n8n_workflow_id)
        phase3 = await self._synchronize(
            provisioned.bot_personality_id, provisioned.n8n_workflow_id, provisioned.knowledge
        )

        status = (
            BotPersonalityStatus.ACTIVE
            if phase2.steps["internal_status_update"].success
            else BotPersonalityStatus.CREATING
        )
        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)

        outcome = WorkflowOutcome(
            success=True,
            message="Bot personality workflow completed",
            bot_personality_id=provisioned.bot_personality_id,
            session_reference=provisioned.messaging_session_id,
            knowledge_base_reference=provisioned.knowledge.knowledge_base_item_id,
            external_workflow_reference=provisioned.n8n_workflow_id,
            status=status.value,
            elapsed_ms=elapsed_ms,
            phase1=phase1,
            phase2=phase2,
            phase3=phase3,
        )

        self._logger.info(
            "Bot personality workflow completed",
            extra={
                "bot_personality_id": outcome.bot_personality_id,
                "status": outcome.status,
                "elapsed_ms": elapsed_ms,
                "phase2_success": phase2.success,
                "phase3_success": phase3.success,
            },
        )

        await self._notify(outcome)
        return outcome

    def _validate_request(self, request: WorkflowRequest) -> None:
        for field_name in ("messaging_session_id", "knowledge_base_item_id"):
            value = getattr(request, field_name)
            if value is None or not str(value).strip():
                self._logger.warning(
                    "Bot personality workflow rejected: missing reference",
                    extra={"field": field_name},
                )
                raise ValidationError(f"{field_name} is required", field=field_name)
            if not UUID_PATTERN.match(str(value).strip()):
                self._logger.warning(
                    "Bot personality workflow rejected: malformed reference",
                    extra={"field": field_name, "value": value},
                )
                raise ValidationError(f"Invalid {field_name} format", field=field_name)

    async def _initialize(self, request: WorkflowRequest) -> _Provisioned:
        """
        Phase 1: resolve references and create the record in one transaction.

        Any failure rolls back the transaction, so no partial record exists.
        """
        session_id = request.messaging_session_id.strip()
        knowledge_id = request.knowledge_base_item_id.strip()

        try:
            async with self._session_factory() as session:
                async with session.begin():
                    messaging_session = await MessagingSessionDAO(session).get_scoped(
                        session_id, request.org_id
                    )
                    if messaging_session is None:
                        raise MessagingSessionNotFoundError(
                            f"Messaging session {session_id} not found",
                            messaging_session_id=session_id,
                        )

                    knowledge_item = await KnowledgeBaseItemDAO(session).get_with_qa_items(
                        knowledge_id, request.org_id
                    )
                    if knowledge_item is None:
                        raise KnowledgeBaseItemNotFoundError(
                            f"Knowledge base item {knowledge_id} not found",
                            knowledge_base_item_id=knowledge_id,
                        )

                    if not messaging_session.n8n_workflow_id:
                        raise ValidationError(
                            "Messaging session has no n8n workflow attached",
                            status_code=422,
                            messaging_session_id=session_id,
                        )

                    personality = await BotPersonalityDAO(session).create(
                        org_id=messaging_session.org_id,
                        code=f"auto_bot_{messaging_session.id[:8]}",
                        status=BotPersonalityStatus.CREATING,
                        messaging_session_id=messaging_session.id,
                        knowledge_base_item_id=knowledge_item.id,
                        n8n_workflow_id=messaging_session.n8n_workflow_id,
                        **PERSONALITY_DEFAULTS,
                    )

                    provisioned = _Provisioned(
                        bot_personality_id=personality.id,
                        org_id=messaging_session.org_id,
                        messaging_session_id=messaging_session.id,
                        n8n_workflow_id=messaging_session.n8n_workflow_id,
                        knowledge=KnowledgeSnapshot.from_item(knowledge_item),
                    )

        except (ValidationError, NotFoundError) as e:
            self._logger.warning(
                "Bot personality workflow aborted in phase 1",
                extra={
                    "messaging_session_id": session_id,
                    "knowledge_base_item_id": knowledge_id,
                    "error": e.message,
                },
            )
            raise
        except Exception as e:
            self._logger.error(
                "Bot personality workflow transaction failed",
                extra={
                    "messaging_session_id": session_id,
                    "knowledge_base_item_id": knowledge_id,
                    "error": str(e),
                },
                exc_info=True,
            )
            raise DependencyError(
                "Bot personality workflow transaction failed",
                messaging_session_id=session_id,
                knowledge_base_item_id=knowledge_id,
            ) from e

        self._logger.info(
            "Bot personality created",
            extra={
                "bot_personality_id": provisioned.bot_personality_id,
                "messaging_session_id": provisioned.messaging_session_id,
                "knowledge_base_item_id": provisioned.knowledge.knowledge_base_item_id,
                "n8n_workflow_id": provisioned.n8n_workflow_id,
            },
        )
        return provisioned

    # =========================================================================
    # Phase 2: Activate
    # =========================================================================

    async def _activate(self, personality_id: str, workflow_ref: str) -> PhaseResult:
        activation, status_update = await asyncio.gather(
            self._activate_external(workflow_ref),
            self._update_internal_status(personality_id),
        )
        return PhaseResult(
            phase="phase2",
            steps={
                "external_activation": activation,
                "internal_status_update": status_update,
            },
        )

    async def _activate_external(self, workflow_ref: str) -> OperationResult:
        try:
            result = await self._gateway.activate(workflow_ref)
        except Exception as e:
            result = OperationResult(
                success=False, message="Failed to activate N8N workflow", error=str(e)
            )

        if result.success:
            return result

        self._logger.error(
            "n8n workflow activation failed",
            extra={"n8n_workflow_id": workflow_ref, "error": result.error},
        )

        try:
            job_id = await self._retry_queue.enqueue(
                ACTIVATE_N8N_WORKFLOW, workflow_ref, self._retry_delay_seconds
            )
        except Exception as e:
            self._logger.error(
                "Could not schedule n8n activation retry",
                extra={"n8n_workflow_id": workflow_ref, "error": str(e)},
            )
            result.data["retry_scheduled"] = False
            result.data["retry_error"] = str(e)
            return result

        self._logger.info(
            "n8n activation retry scheduled",
            extra={
                "n8n_workflow_id": workflow_ref,
                "retry_delay_seconds": self._retry_delay_seconds,
                "job_id": job_id,
            },
        )
        result.data["retry_scheduled"] = True
        result.data["retry_job_id"] = job_id
        return result

    async def _update_internal_status(self, personality_id: str) -> OperationResult:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    updated = await BotPersonalityDAO(session).update_status(
                        personality_id, BotPersonalityStatus.ACTIVE
                    )
                    if updated is None:
                        raise PersistenceWarning(
                            f"BotPersonality with ID {personality_id} not found",
                            bot_personality_id=personality_id,
                        )
        except Exception as e:
            error = e.message if isinstance(e, PersistenceWarning) else str(e)
            self._logger.error(
                "Failed to update bot personality status",
                extra={"bot_personality_id": personality_id, "error": error},
            )
            return OperationResult(
                success=False, message="Failed to update BotPersonality status", error=error
            )

        self._logger.info(
            "Bot personality status updated",
            extra={
                "bot_personality_id": personality_id,
                "from_status": BotPersonalityStatus.CREATING.value,
                "to_status": BotPersonalityStatus.ACTIVE.value,
            },
        )
        return OperationResult(
            success=True,
            message="BotPersonality status updated to active",
            data={"status": BotPersonalityStatus.ACTIVE.value},
        )

    # =========================================================================
    # Phase 3: Synchronize
    # =========================================================================

    async def _synchronize(
        self, personality_id: str, workflow_ref: str, knowledge: KnowledgeSnapshot
    ) -> PhaseResult:
        system_message = build_system_message(knowledge.content, knowledge.qa_items)

        remote, local = await asyncio.gather(
            self._push_remote_configuration(workflow_ref, system_message),
            self._push_local_configuration(workflow_ref, personality_id, system_message),
        )
        return PhaseResult(
            phase="phase3",
            steps={
                "n8n_configuration_update": remote,
                "database_configuration_update": local,
            },
            data={
                "system_message": system_message,
                "system_message_length": len(system_message),
            },
        )

    async def _push_remote_configuration(
        self, workflow_ref: str, system_message: str
    ) -> OperationResult:
        try:
            result = await self._gateway.set_configuration(
                workflow_ref, {"system_message": system_message}
            )
        except Exception as e:
            result = OperationResult(
                success=False, message="Failed to update N8N system message", error=str(e)
            )

        if not result.success:
            self._logger.error(
                "n8n configuration push failed",
                extra={"n8n_workflow_id": workflow_ref, "error": result.error},
            )
        return result

    async def _push_local_configuration(
        self, workflow_ref: str, personality_id: str, system_message: str
    ) -> OperationResult:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    workflow = await N8nWorkflowDAO(session).update_configuration(
                        workflow_ref, {"system_message": system_message}
                    )
                    if workflow is None:
                        raise PersistenceWarning(
                            f"N8N workflow with ID {workflow_ref} not found in database",
                            n8n_workflow_id=workflow_ref,
                        )
                    await BotPersonalityDAO(session).set_system_message(
                        personality_id, system_message
                    )
        except Exception as e:
            error = e.message if isinstance(e, PersistenceWarning) else str(e)
            self._logger.warning(
                "Local workflow configuration update failed",
                extra={"n8n_workflow_id": workflow_ref, "error": error},
            )
            return OperationResult(
                success=False,
                message="Failed to update database workflow configuration",
                error=error,
            )

        return OperationResult(
            success=True, message="Database workflow configuration updated successfully"
        )

    async def _notify(self, outcome: WorkflowOutcome) -> None:
        if self._notifier is None:
            return
        try:
            await self._notifier.notify_workflow_completed(outcome.to_dict())
        except Exception as e:
            self._logger.warning(
                "Workflow notification failed",
                extra={"bot_personality_id": outcome.bot_personality_id, "error": str(e)},
            )

    # =========================================================================
    # Queries and Follow-up Operations
    # =========================================================================

    async def _load_personality(
        self, personality_id: str, org_id: Optional[int]
    ) -> BotPersonality:
        async with self._session_factory() as session:
            personality = await BotPersonalityDAO(session).get_scoped(personality_id, org_id)
        if personality is None:
            raise BotPersonalityNotFoundError(
                f"BotPersonality with ID {personality_id} not found",
                bot_personality_id=personality_id,
            )
        return personality

    async def get_workflow_status(
        self, personality_id: str, org_id: Optional[int] = None
    ) -> WorkflowStatusView:
        """
        Read the current state of a provisioned bot personality.

        Raises:
            NotFoundError: Unknown id (or owned by another organization)
        """
        personality = await self._load_personality(personality_id, org_id)
        return WorkflowStatusView.from_model(personality)

    async def retry_workflow(
        self,
        personality_id: str,
        phase: str = RetryPhase.ALL.value,
        org_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Re-run all or part of the workflow for an existing record.

        - all: runs the whole workflow again with the record's references,
          which provisions a new record
        - phase2: activation and status update for this record
        - phase3: configuration synchronization for this record

        Raises:
            ValidationError: Unknown phase
            NotFoundError: Unknown id
            InvalidStateTransitionError: phase2/phase3 on a cancelled record
        """
        try:
            retry_phase = RetryPhase(phase)
        except ValueError:
            raise ValidationError(
                "Invalid retry phase",
                retry_phase=phase,
                allowed=[p.value for p in RetryPhase],
            )

        personality = await self._load_personality(personality_id, org_id)

        self._logger.info(
            "Retrying bot personality workflow",
            extra={"bot_personality_id": personality_id, "retry_phase": retry_phase.value},
        )

        if retry_phase is RetryPhase.ALL:
            outcome = await self.run_workflow(
                WorkflowRequest(
                    messaging_session_id=personality.messaging_session_id,
                    knowledge_base_item_id=personality.knowledge_base_item_id,
                    org_id=org_id,
                )
            )
            return {
                "bot_personality_id": personality_id,
                "retry_phase": retry_phase.value,
                "new_bot_personality_id": outcome.bot_personality_id,
                "result": outcome.to_dict(),
            }

        if personality.status == BotPersonalityStatus.CANCELLED:
            raise InvalidStateTransitionError(
                "Cannot retry a cancelled bot personality workflow",
                bot_personality_id=personality_id,
                retry_phase=retry_phase.value,
            )

        if retry_phase is RetryPhase.PHASE2:
            result = await self._activate(personality.id, personality.n8n_workflow_id)
        else:
            async with self._session_factory() as session:
                knowledge_item = await KnowledgeBaseItemDAO(session).get_with_qa_items(
                    personality.knowledge_base_item_id
                )
                if knowledge_item is None:
                    raise KnowledgeBaseItemNotFoundError(
                        f"Knowledge base item {personality.knowledge_base_item_id} not found",
                        knowledge_base_item_id=personality.knowledge_base_item_id,
                    )
                knowledge = KnowledgeSnapshot.from_item(knowledge_item)
            result = await self._synchronize(personality.id, personality.n8n_workflow_id, knowledge)

        return {
            "bot_personality_id": personality_id,
            "retry_phase": retry_phase.value,
            "result": result.to_dict(),
        }

    async def cancel_workflow(
        self, personality_id: str, org_id: Optional[int] = None
    ) -> Dict[str, Any]:
        """
        Mark a bot personality as cancelled.

        The n8n workflow is left as is; it belongs to the messaging session
        and may serve other personalities.

        Raises:
            NotFoundError: Unknown id
            InvalidStateTransitionError: Already cancelled
        """
        async with self._session_factory() as session:
            async with session.begin():
                dao = BotPersonalityDAO(session)
                personality = await dao.get_scoped(personality_id, org_id)
                if personality is None:
                    raise BotPersonalityNotFoundError(
                        f"BotPersonality with ID {personality_id} not found",
                        bot_personality_id=personality_id,
                    )
                previous_status = personality.status
                if previous_status == BotPersonalityStatus.CANCELLED:
                    raise InvalidStateTransitionError(
                        "Bot personality workflow is already cancelled",
                        bot_personality_id=personality_id,
                    )
                await dao.update_status(personality_id, BotPersonalityStatus.CANCELLED)

        self._logger.info(
            "Bot personality workflow cancelled",
            extra={
                "bot_personality_id": personality_id,
                "from_status": previous_status.value,
            },
        )
        return {
            "bot_personality_id": personality_id,
            "status": BotPersonalityStatus.CANCELLED.value,
            "previous_status": previous_status.value,
        }

    async def get_workflow_history(
        self, personality_id: str, org_id: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """
        Most recent audit entries for a bot personality, newest first.

        Raises:
            NotFoundError: Unknown id
        """
        await self._load_personality(personality_id, org_id)

        async with self._session_factory() as session:
            entries = await AuditService(session).get_history(
                personality_id, org_id=org_id, limit=HISTORY_LIMIT
            )
            return [
                {
                    "action": entry.action.value,
                    "user_id": entry.actor_user_id,
                    "created_at": entry.created_at,
                    "changes": entry.changes,
                    "metadata": entry.extra_data,
                }
                for entry in entries
            ]
