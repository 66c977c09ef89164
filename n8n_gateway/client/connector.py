# n8n_gateway/client/connector.py
from __future__ import annotations

import json
from typing import Any, TypeVar

import httpx
from mcp.server.fastmcp.utilities.logging import get_logger
from pydantic import BaseModel, SecretStr
from pydantic import ValidationError as PydanticValidationError

from n8n_gateway.shared._httpx_utils import N8nHttpClientFactory, create_n8n_http_client
from n8n_gateway.shared.exceptions import BackendError, ConnectivityError
from n8n_gateway.types import (
    N8nProject,
    N8nProjectList,
    N8nUser,
    N8nUserList,
    N8nWorkflow,
    N8nWorkflowList,
)

logger = get_logger(__name__)

API_PREFIX = "/api/v1"
LICENSE_MESSAGE = (
    "This operation requires an n8n Enterprise license with project management features enabled. "
    "Error: {message}"
)

ModelT = TypeVar("ModelT", bound=BaseModel)


def normalize_base_url(url: str) -> str:
    """Strip trailing slashes so `https://host/` and `https://host` are the same backend."""
    return url.strip().rstrip("/")


def _error_message(response: httpx.Response) -> str:
    """Extract a human-readable message from a failed backend response."""
    text = response.text
    try:
        body = json.loads(text)
    except ValueError:
        return text or response.reason_phrase or f"HTTP {response.status_code}"

    message = body.get("message") if isinstance(body, dict) else None
    if isinstance(message, str) and message:
        if "license" in message.lower():
            return LICENSE_MESSAGE.format(message=message)
        return message
    return text


class N8nConnector:
    """
    Authenticated client bound to exactly one n8n instance.

    - One method per REST operation the gateway exposes.
    - Non-2xx answers raise BackendError; transport failures raise ConnectivityError.
    - No retries and no caching: every call is a fresh round trip.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str | SecretStr,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        http_client_factory: N8nHttpClientFactory = create_n8n_http_client,
    ):
        self.base_url = normalize_base_url(base_url)
        self._api_key = api_key if isinstance(api_key, SecretStr) else SecretStr(api_key)
        self._timeout = httpx.Timeout(timeout) if timeout is not None else None
        self._transport = transport
        self._http_client_factory = http_client_factory

    def __repr__(self) -> str:
        return f"N8nConnector(base_url={self.base_url!r})"

    def url_for(self, endpoint: str) -> str:
        return f"{self.base_url}{API_PREFIX}{endpoint}"

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        body: Any | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Send one request and return the decoded JSON body ({} for 204)."""
        url = self.url_for(endpoint)
        content = json.dumps(body) if body is not None else None
        logger.debug("n8n request %s %s", method, url)

        try:
            async with self._http_client_factory(
                self._api_key.get_secret_value(),
                headers=headers,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.request(method, url, content=content)
        except (httpx.TransportError, httpx.InvalidURL) as e:
            detail = str(e) or e.__class__.__name__
            logger.warning("n8n unreachable for %s %s: %s", method, url, detail)
            raise ConnectivityError(detail) from e

        if not response.is_success:
            message = _error_message(response)
            logger.warning("n8n returned %s for %s %s: %s", response.status_code, method, url, message)
            raise BackendError(message, status_code=response.status_code)

        if response.status_code == 204 or not response.content:
            return {}

        try:
            return response.json()
        except ValueError as e:
            raise BackendError(
                f"Invalid JSON in response from {endpoint}", status_code=response.status_code
            ) from e

    async def _request_model(self, model: type[ModelT], method: str, endpoint: str, **kwargs: Any) -> ModelT:
        data = await self.request(method, endpoint, **kwargs)
        try:
            return model.model_validate(data)
        except PydanticValidationError as e:
            raise BackendError(
                f"Unexpected response shape from {endpoint}", status_code=None
            ) from e

    # ---- workflows --------------------------------------------------------

    async def list_workflows(self) -> N8nWorkflowList:
        return await self._request_model(N8nWorkflowList, "GET", "/workflows")

    async def get_workflow(self, workflow_id: str) -> N8nWorkflow:
        return await self._request_model(N8nWorkflow, "GET", f"/workflows/{workflow_id}")

    async def create_workflow(
        self,
        name: str,
        nodes: list[Any] | None = None,
        connections: dict[str, Any] | None = None,
    ) -> N8nWorkflow:
        body = {
            "name": name,
            "nodes": nodes if nodes is not None else [],
            "connections": connections if connections is not None else {},
            "settings": {
                "saveManualExecutions": True,
                "saveExecutionProgress": True,
            },
        }
        return await self._request_model(N8nWorkflow, "POST", "/workflows", body=body)

    async def update_workflow(self, workflow_id: str, workflow: dict[str, Any]) -> N8nWorkflow:
        return await self._request_model(N8nWorkflow, "PUT", f"/workflows/{workflow_id}", body=workflow)

    async def delete_workflow(self, workflow_id: str) -> N8nWorkflow:
        return await self._request_model(N8nWorkflow, "DELETE", f"/workflows/{workflow_id}")

    async def activate_workflow(self, workflow_id: str) -> N8nWorkflow:
        return await self._request_model(N8nWorkflow, "POST", f"/workflows/{workflow_id}/activate")

    async def deactivate_workflow(self, workflow_id: str) -> N8nWorkflow:
        return await self._request_model(N8nWorkflow, "POST", f"/workflows/{workflow_id}/deactivate")

    # ---- projects (enterprise license) ------------------------------------

    async def list_projects(self) -> N8nProjectList:
        return await self._request_model(N8nProjectList, "GET", "/projects")

    async def create_project(self, name: str) -> N8nProject:
        return await self._request_model(N8nProject, "POST", "/projects", body={"name": name})

    async def update_project(self, project_id: str, name: str) -> Any:
        return await self.request("PUT", f"/projects/{project_id}", body={"name": name})

    async def delete_project(self, project_id: str) -> Any:
        return await self.request("DELETE", f"/projects/{project_id}")

    # ---- users ------------------------------------------------------------

    async def list_users(self) -> N8nUserList:
        return await self._request_model(N8nUserList, "GET", "/users")

    async def create_users(self, users: list[dict[str, Any]]) -> Any:
        return await self.request("POST", "/users", body=users)

    async def get_user(self, id_or_email: str) -> N8nUser:
        return await self._request_model(N8nUser, "GET", f"/users/{id_or_email}")

    async def delete_user(self, id_or_email: str) -> Any:
        return await self.request("DELETE", f"/users/{id_or_email}")
