"""
Slack Webhook Integration Service.

WHAT: Sends messages to Slack channels via incoming webhooks.

WHY: Operators want to see bot personality provisioning results, and
especially partial failures (n8n activation pending retry, configuration
push failed), without polling the status endpoint.

HOW: Uses Slack's Incoming Webhooks API to post messages with Block Kit
formatting for rich, structured notifications.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from app.core.config import settings
from app.core.exceptions import SlackNotificationError

logger = logging.getLogger(__name__)


class SlackService:
    """
    Service for sending messages to Slack via webhooks.

    HOW: Uses httpx async client to POST messages to the webhook URL.
    Messages can be plain text or Block Kit formatted for rich display.

    Attributes:
        webhook_url: Slack Incoming Webhook URL
        enabled: Whether Slack notifications are enabled
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        enabled: Optional[bool] = None,
        timeout: float = 10.0,
    ):
        """
        Initialize SlackService.

        Args:
            webhook_url: Slack webhook URL (defaults to settings)
            enabled: Whether notifications are enabled (defaults to settings)
            timeout: HTTP request timeout in seconds
        """
        self.webhook_url = webhook_url or settings.SLACK_WEBHOOK_URL
        self.enabled = enabled if enabled is not None else settings.SLACK_WEBHOOK_ENABLED
        self.timeout = timeout

    async def send_message(
        self,
        text: str,
        blocks: Optional[List[Dict[str, Any]]] = None,
    ) -> bool:
        """
        Send a message to Slack.

        Args:
            text: Plain text message (also used as fallback for blocks)
            blocks: Optional Block Kit blocks for rich formatting

        Returns:
            True if message was sent, False if disabled or unconfigured

        Raises:
            SlackNotificationError: If the webhook call fails
        """
        if not self.enabled:
            logger.debug("Slack notifications disabled, skipping message")
            return False

        if not self.webhook_url:
            logger.warning("Slack webhook URL not configured")
            return False

        payload: Dict[str, Any] = {"text": text}

        if blocks:
            payload["blocks"] = blocks

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.webhook_url,
                    json=payload,
                )

                # Slack returns "ok" for successful messages
                if response.status_code == 200 and response.text == "ok":
                    logger.info("Slack message sent successfully")
                    return True

                logger.error(
                    f"Slack webhook returned error: {response.status_code} - {response.text}"
                )
                raise SlackNotificationError(
                    message="Slack webhook returned an error",
                    response_status=response.status_code,
                    response_text=response.text,
                )

        except httpx.TimeoutException as e:
            logger.error(f"Slack webhook timeout: {e}")
            raise SlackNotificationError(
                message="Slack webhook request timed out",
                timeout=self.timeout,
            ) from e

        except httpx.RequestError as e:
            logger.error(f"Slack webhook request error: {e}")
            raise SlackNotificationError(
                message="Failed to connect to Slack webhook",
                error=str(e),
            ) from e

    async def send_message_safe(
        self,
        text: str,
        blocks: Optional[List[Dict[str, Any]]] = None,
    ) -> bool:
        """
        Send a message to Slack without raising exceptions.

        WHY: Notification failures should not block main operations.

        Returns:
            True if message was sent successfully, False otherwise
        """
        try:
            return await self.send_message(text, blocks)
        except SlackNotificationError as e:
            logger.error(f"Failed to send Slack notification: {e.message}")
            return False
        except Exception as e:
            logger.error(f"Unexpected error sending Slack notification: {e}")
            return False


# ============================================================================
# Block Kit Builders
# ============================================================================


def build_header_block(text: str) -> Dict[str, Any]:
    """Header block; Slack caps header text at 150 chars."""
    return {
        "type": "header",
        "text": {
            "type": "plain_text",
            "text": text[:150],
            "emoji": True,
        },
    }


def build_section_block(text: str) -> Dict[str, Any]:
    """Markdown text section."""
    return {
        "type": "section",
        "text": {
            "type": "mrkdwn",
            "text": text,
        },
    }


def build_fields_block(fields: List[Dict[str, str]]) -> Dict[str, Any]:
    """
    Build a section block with only fields (no text).

    Args:
        fields: List of dicts with 'label' and 'value' keys
    """
    return {
        "type": "section",
        "fields": [
            {"type": "mrkdwn", "text": f"*{f['label']}:*\n{f['value']}"}
            for f in fields
        ],
    }


def build_context_block(text: str) -> Dict[str, Any]:
    return {
        "type": "context",
        "elements": [
            {"type": "mrkdwn", "text": text},
        ],
    }


# ============================================================================
# Bot Personality Workflow Message
# ============================================================================


def _step_label(step: Optional[Dict[str, Any]]) -> str:
    if not step:
        return "skipped"
    if step.get("success"):
        return "ok"
    if step.get("retry_scheduled"):
        return "failed (retry scheduled)"
    return "failed"


def build_bot_personality_workflow_message(
    outcome: Dict[str, Any],
) -> tuple[str, List[Dict[str, Any]]]:
    """
    Build Slack message for a finished bot personality workflow.

    WHAT: Summarizes identifiers and the result of each Phase 2/3 step.

    Args:
        outcome: WorkflowOutcome as a dict

    Returns:
        Tuple of (fallback text, Block Kit blocks)
    """
    phase2 = outcome.get("phase2") or {}
    phase3 = outcome.get("phase3") or {}
    steps = [
        phase2.get("external_activation"),
        phase2.get("internal_status_update"),
        phase3.get("n8n_configuration_update"),
        phase3.get("database_configuration_update"),
    ]
    degraded = any(step is not None and not step.get("success") for step in steps)

    personality_id = outcome.get("bot_personality_id")
    title = "Bot personality provisioned with warnings" if degraded else "Bot personality provisioned"
    text = f"{title}: {personality_id}"

    blocks = [
        build_header_block(title),
        build_fields_block([
            {"label": "Bot personality", "value": str(personality_id)},
            {"label": "Status", "value": str(outcome.get("status"))},
            {"label": "Session", "value": str(outcome.get("session_reference"))},
            {"label": "Knowledge item", "value": str(outcome.get("knowledge_base_reference"))},
        ]),
        build_section_block(
            "\n".join([
                f"*n8n activation:* {_step_label(steps[0])}",
                f"*Status update:* {_step_label(steps[1])}",
                f"*n8n configuration:* {_step_label(steps[2])}",
                f"*Local configuration:* {_step_label(steps[3])}",
            ])
        ),
        build_context_block(f"Completed in {outcome.get('elapsed_ms')} ms"),
    ]

    return text, blocks


class SlackWorkflowNotifier:
    """
    Outbound notification port for the bot personality workflow.

    Delivery is best effort: failures are logged and reported as False.
    """

    def __init__(self, slack_service: Optional[SlackService] = None):
        self._slack = slack_service or SlackService()

    async def notify_workflow_completed(self, outcome: Dict[str, Any]) -> bool:
        text, blocks = build_bot_personality_workflow_message(outcome)
        return await self._slack.send_message_safe(text, blocks)
