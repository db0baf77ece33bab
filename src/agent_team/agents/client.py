"""Async HTTP client for the Cursor Cloud Agents API."""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any
from urllib.parse import quote

import httpx

from agent_team import __version__
from agent_team.agents.errors import ApiError, NetworkError
from agent_team.agents.models import (
    Acknowledgement,
    Agent,
    AgentPage,
    ApiKeyInfo,
    Conversation,
    LaunchRequest,
    PromptImage,
    RepositoryInfo,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.cursor.com"
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_LIST_LIMIT = 20
MAX_LIST_LIMIT = 100
DEFAULT_USER_AGENT = f"agent-team/{__version__}"


class CloudAgentsClient:
    """Thin typed wrapper over the ``/v0`` endpoints.

    Every method performs exactly one request; retries are left to callers.
    Use as an async context manager so the connection pool is closed.
    """

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            auth=httpx.BasicAuth(api_key, ""),
            timeout=httpx.Timeout(timeout_seconds, connect=10.0),
            headers={"Accept": "application/json", "User-Agent": user_agent},
            transport=transport,
        )

    async def launch_agent(self, request: LaunchRequest) -> Agent:
        """Launch a new agent. Input is validated before anything is sent."""

        request.validate()
        payload = await self._request("POST", "/v0/agents", json_body=request.to_payload())
        return Agent.from_payload(_mapping(payload))

    async def list_agents(
        self,
        limit: int = DEFAULT_LIST_LIMIT,
        cursor: str | None = None,
    ) -> AgentPage:
        params: dict[str, str] = {"limit": str(max(1, min(limit, MAX_LIST_LIMIT)))}
        if cursor:
            params["cursor"] = cursor
        payload = _mapping(await self._request("GET", "/v0/agents", params=params))
        return AgentPage(
            agents=[
                Agent.from_payload(item)
                for item in payload.get("agents") or []
                if isinstance(item, dict)
            ],
            next_cursor=payload.get("nextCursor"),
        )

    async def get_agent(self, agent_id: str) -> Agent:
        payload = await self._request("GET", _agent_path(agent_id))
        return Agent.from_payload(_mapping(payload))

    async def get_conversation(self, agent_id: str) -> Conversation:
        payload = await self._request("GET", f"{_agent_path(agent_id)}/conversation")
        return Conversation.from_payload(agent_id, _mapping(payload))

    async def add_followup(
        self,
        agent_id: str,
        prompt_text: str,
        prompt_images: Sequence[PromptImage] = (),
    ) -> Acknowledgement:
        prompt: dict[str, Any] = {"text": prompt_text}
        if prompt_images:
            prompt["images"] = [image.to_payload() for image in prompt_images]
        payload = await self._request(
            "POST",
            f"{_agent_path(agent_id)}/followup",
            json_body={"prompt": prompt},
        )
        return Acknowledgement.from_payload(payload)

    async def stop_agent(self, agent_id: str) -> Acknowledgement:
        payload = await self._request("POST", f"{_agent_path(agent_id)}/stop")
        return Acknowledgement.from_payload(payload)

    async def delete_agent(self, agent_id: str) -> Acknowledgement:
        payload = await self._request("DELETE", _agent_path(agent_id))
        return Acknowledgement.from_payload(payload)

    async def get_api_key_info(self) -> ApiKeyInfo:
        payload = _mapping(await self._request("GET", "/v0/me"))
        return ApiKeyInfo(
            api_key_name=payload.get("apiKeyName"),
            created_at=payload.get("createdAt"),
            user_email=payload.get("userEmail"),
        )

    async def list_models(self) -> list[str]:
        payload = _mapping(await self._request("GET", "/v0/models"))
        return [str(model) for model in payload.get("models") or []]

    async def list_repositories(self) -> list[RepositoryInfo]:
        """List connected GitHub repositories.

        The remote endpoint is strictly rate limited (about one request per minute).
        """

        payload = _mapping(await self._request("GET", "/v0/repositories"))
        return [
            RepositoryInfo(
                owner=item.get("owner"),
                name=item.get("name"),
                repository=item.get("repository"),
            )
            for item in payload.get("repositories") or []
            if isinstance(item, dict)
        ]

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> CloudAgentsClient:
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> Any:
        logger.debug("%s %s", method, path)
        try:
            response = await self._client.request(method, path, params=params, json=json_body)
        except httpx.TimeoutException as exc:
            raise NetworkError(
                f"Network error calling {method} {path}: request timed out",
                method=method,
                path=path,
            ) from exc
        except httpx.HTTPError as exc:
            raise NetworkError(
                f"Network error calling {method} {path}: {exc}",
                method=method,
                path=path,
            ) from exc

        if response.status_code == httpx.codes.NO_CONTENT:
            return {}

        text = response.text
        try:
            data = json.loads(text) if text else None
        except json.JSONDecodeError:
            data = None

        if not response.is_success:
            raise ApiError(
                response.status_code,
                _error_detail(data, text, response.status_code),
                body=data,
            )
        if not text:
            return {}
        return data


def _agent_path(agent_id: str) -> str:
    return f"/v0/agents/{quote(agent_id, safe='')}"


def _error_detail(data: Any, text: str, status_code: int) -> str:
    if isinstance(data, dict):
        for key in ("message", "error"):
            value = data.get(key)
            if value:
                return str(value)
    return text or f"HTTP {status_code}"


def _mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}
