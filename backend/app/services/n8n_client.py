"""
N8n API client service for workflow automation.

WHAT: HTTP client for the n8n public REST API.

WHY: Bot personality provisioning needs four things from n8n:
1. Read a workflow definition
2. Write a modified definition back
3. Activate / deactivate a workflow
4. Replace the AI Agent node's system message

Security Considerations (OWASP):
- A05: API key sent only in the X-N8N-API-KEY header, never logged
- A10: SSRF prevention via URL validation

HOW: Uses httpx for async HTTP with an explicit timeout on every request.
All API errors wrapped in N8nError for consistent handling.
"""

import copy
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin, urlparse

import httpx

from app.core.config import settings
from app.core.exceptions import N8nError, ValidationError
from app.services.system_message import clean_html

logger = logging.getLogger(__name__)


# ============================================================================
# Constants
# ============================================================================

DEFAULT_TIMEOUT = 30.0

# Allowed URL schemes for SSRF prevention
ALLOWED_SCHEMES = {"http", "https"}

# Allowed ports for n8n connections
ALLOWED_PORTS = {80, 443, 5678}  # 5678 is default n8n port

# Fields the n8n API accepts on PUT /workflows/{id}
WORKFLOW_UPDATE_FIELDS = ("name", "nodes", "connections", "settings", "staticData")


# ============================================================================
# N8n API Client
# ============================================================================


class N8nClient:
    """
    Async HTTP client for n8n API.

    HOW: Opens a short-lived httpx.AsyncClient per request with:
    - X-N8N-API-KEY authentication
    - Bounded timeout and redirects disabled
    - Error wrapping in N8nError
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        """
        Initialize n8n client.

        Args:
            base_url: Base URL of n8n instance (e.g., https://n8n.example.com)
            api_key: n8n public API key
            timeout: Request timeout in seconds

        Raises:
            ValidationError: If base_url is invalid or poses SSRF risk
        """
        self._validate_base_url(base_url)
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout

    def _validate_base_url(self, url: str) -> None:
        """
        Validate base URL to prevent SSRF attacks.

        HOW: Validates scheme, host, and port against allowlists. Loopback
        stays allowed since n8n is commonly co-hosted with the API; cloud
        metadata endpoints are rejected outside DEBUG.

        Raises:
            ValidationError: If URL is invalid or poses SSRF risk
        """
        try:
            parsed = urlparse(url)
            port = parsed.port
        except ValueError as e:
            raise ValidationError(
                message="Invalid n8n URL format",
                url=url,
                error=str(e),
            )

        if parsed.scheme not in ALLOWED_SCHEMES:
            raise ValidationError(
                message=f"Invalid URL scheme. Must be one of: {sorted(ALLOWED_SCHEMES)}",
                url=url,
                scheme=parsed.scheme,
            )

        if not parsed.hostname:
            raise ValidationError(message="n8n URL has no host", url=url)

        if not settings.DEBUG:
            blocked_hosts = {
                "0.0.0.0",
                "169.254.169.254",  # AWS metadata
                "metadata.google.internal",  # GCP metadata
            }
            if parsed.hostname.lower() in blocked_hosts:
                raise ValidationError(
                    message="Cannot connect to metadata endpoints",
                    url=url,
                )

        if port and port not in ALLOWED_PORTS:
            raise ValidationError(
                message=f"Invalid port. Must be one of: {sorted(ALLOWED_PORTS)}",
                url=url,
                port=port,
            )

    def _get_headers(self) -> Dict[str, str]:
        return {
            "X-N8N-API-KEY": self._api_key,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def _request(
        self,
        method: str,
        endpoint: str,
        data: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Dict[str, Any]:
        """
        Make authenticated request to n8n API.

        HOW:
        1. Constructs full URL from base and endpoint
        2. Adds authentication headers
        3. Makes request with timeout
        4. Wraps errors in N8nError
        5. Parses and returns JSON response

        Raises:
            N8nError: If request fails or returns error status
        """
        url = urljoin(self._base_url + "/", endpoint.lstrip("/"))
        request_timeout = timeout or self._timeout

        try:
            async with httpx.AsyncClient(
                timeout=request_timeout,
                follow_redirects=False,  # Prevent redirect-based SSRF
            ) as client:
                response = await client.request(
                    method=method,
                    url=url,
                    headers=self._get_headers(),
                    json=data,
                )

                if response.status_code >= 400:
                    error_detail = self._parse_error_response(response)
                    raise N8nError(
                        message=f"n8n API error: {error_detail}",
                        status_code=response.status_code,
                        endpoint=endpoint,
                        method=method,
                    )

                if response.status_code == 204 or not response.content:
                    return {}

                return response.json()

        except httpx.TimeoutException:
            raise N8nError(
                message="n8n API request timed out",
                endpoint=endpoint,
                timeout=request_timeout,
            )
        except httpx.RequestError as e:
            raise N8nError(
                message=f"n8n API connection error: {str(e)}",
                endpoint=endpoint,
            )

    def _parse_error_response(self, response: httpx.Response) -> str:
        """Extract the most useful error text from an n8n error response."""
        try:
            data = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"

        if isinstance(data, dict):
            if "message" in data:
                return str(data["message"])
            if "error" in data:
                return str(data["error"])
        return str(data)

    # =========================================================================
    # Workflow Management
    # =========================================================================

    async def get_workflow(self, workflow_id: str) -> Dict[str, Any]:
        """
        Get a specific workflow by ID.

        Returns:
            Workflow object from n8n (unwrapped if nested under "data")
        """
        response = await self._request("GET", f"/api/v1/workflows/{workflow_id}")
        if "nodes" not in response and isinstance(response.get("data"), dict):
            return response["data"]
        return response

    async def update_workflow(
        self, workflow_id: str, workflow: Dict[str, Any]
    ) -> Dict[str, Any]:
        """
        Replace a workflow definition.

        WHY: n8n rejects PUT bodies that carry read-only fields (id, active,
        createdAt, tags, ...). The payload is reduced to the accepted fields.

        Args:
            workflow_id: n8n workflow ID
            workflow: Full or partial workflow definition

        Returns:
            Updated workflow object from n8n
        """
        return await self._request(
            "PUT",
            f"/api/v1/workflows/{workflow_id}",
            data=clean_workflow_payload(workflow),
        )

    async def activate_workflow(self, workflow_id: str) -> Dict[str, Any]:
        """
        Activate a workflow so its triggers start firing.

        Returns:
            Workflow object as reported by n8n after activation
        """
        return await self._request("POST", f"/api/v1/workflows/{workflow_id}/activate")

    async def deactivate_workflow(self, workflow_id: str) -> Dict[str, Any]:
        """Deactivate a workflow without deleting it."""
        return await self._request("POST", f"/api/v1/workflows/{workflow_id}/deactivate")

    async def update_system_message(
        self,
        workflow_id: str,
        system_message: str,
        node_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Replace the system message of the workflow's AI Agent node.

        HOW:
        1. GET the workflow
        2. Find the node by id that already has parameters.options.systemMessage
        3. Set the HTML-cleaned message
        4. PUT the cleaned definition back

        Args:
            workflow_id: n8n workflow ID
            system_message: New system message
            node_id: AI Agent node id (defaults to N8N_AI_AGENT_NODE_ID)

        Returns:
            Updated workflow object from n8n

        Raises:
            N8nError: 404 if the node is missing, or any API failure
        """
        target_node_id = node_id or settings.N8N_AI_AGENT_NODE_ID
        workflow = copy.deepcopy(await self.get_workflow(workflow_id))
        nodes: List[Dict[str, Any]] = workflow.get("nodes") or []

        node_updated = False
        for node in nodes:
            options = (node.get("parameters") or {}).get("options")
            if node.get("id") == target_node_id and isinstance(options, dict) and "systemMessage" in options:
                options["systemMessage"] = clean_html(system_message)
                node_updated = True
                break

        if not node_updated:
            raise N8nError(
                message="AI Agent node not found or has no systemMessage",
                status_code=404,
                workflow_id=workflow_id,
                node_id=target_node_id,
            )

        workflow["nodes"] = nodes
        result = await self.update_workflow(workflow_id, workflow)

        logger.info(
            "n8n system message updated",
            extra={
                "workflow_id": workflow_id,
                "node_id": target_node_id,
                "system_message_length": len(system_message),
            },
        )
        return result


def clean_workflow_payload(workflow: Dict[str, Any]) -> Dict[str, Any]:
    """
    Reduce a workflow definition to the fields n8n accepts on update.

    Missing fields get n8n's expected empty shapes, and every node gets a
    parameters object.
    """
    payload: Dict[str, Any] = {
        field: workflow[field] for field in WORKFLOW_UPDATE_FIELDS if workflow.get(field) is not None
    }
    payload.setdefault("name", "Untitled Workflow")
    payload.setdefault("nodes", [])
    payload["connections"] = payload.get("connections") or {}
    payload["settings"] = payload.get("settings") or {}
    payload["staticData"] = payload.get("staticData") or {}

    nodes = []
    for node in payload["nodes"]:
        node = dict(node)
        if not isinstance(node.get("parameters"), dict):
            node["parameters"] = {}
        nodes.append(node)
    payload["nodes"] = nodes

    return payload


# ============================================================================
# Factory Function
# ============================================================================


def create_n8n_client(
    base_url: str,
    api_key: str,
    timeout: float = DEFAULT_TIMEOUT,
) -> N8nClient:
    """
    Create an n8n client instance.

    Args:
        base_url: n8n instance URL
        api_key: n8n API key
        timeout: Request timeout

    Returns:
        Configured N8nClient instance
    """
    return N8nClient(
        base_url=base_url,
        api_key=api_key,
        timeout=timeout,
    )
