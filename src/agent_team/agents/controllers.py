"""Controllers for agent team CLI commands."""

from __future__ import annotations

import asyncio
import json
import time
from collections import Counter
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

import httpx

from agent_team.agents.client import CloudAgentsClient
from agent_team.agents.models import Acknowledgement, LaunchRequest, PromptImage
from agent_team.agents.poller import AgentPoller
from agent_team.agents.services import TeamService, TeamTask
from agent_team.config import Settings

T = TypeVar("T")


@dataclass(slots=True)
class LaunchCommand:
    """CLI input for a single agent launch."""

    repository: str
    prompt: str
    ref: str | None = None
    model: str | None = None
    auto_create_pr: bool | None = None
    skip_reviewer_request: bool | None = None
    open_as_cursor_github_app: bool | None = None
    branch_name: str | None = None
    webhook_url: str | None = None
    webhook_secret: str | None = None
    images_json: str | None = None


@dataclass(slots=True)
class TeamLaunchCommand:
    """CLI input for launching several agents on one repository."""

    repository: str
    tasks_json: str
    ref: str | None = None
    model: str | None = None
    auto_create_pr: bool | None = None
    webhook_url: str | None = None
    webhook_secret: str | None = None


@dataclass(slots=True)
class AgentCommand:
    """CLI input for operations addressing one agent."""

    agent_id: str


@dataclass(slots=True)
class TeamStatusCommand:
    ids_json: str


@dataclass(slots=True)
class FollowupCommand:
    agent_id: str
    prompt: str
    images_json: str | None = None


@dataclass(slots=True)
class ListAgentsCommand:
    limit: int
    cursor: str | None = None


@dataclass(slots=True)
class PollCommand:
    """CLI input for multi-agent polling; None falls back to settings."""

    ids_json: str
    interval_seconds: float | None = None
    timeout_seconds: float | None = None


@dataclass(slots=True)
class WaitCommand:
    agent_id: str
    interval_seconds: float | None = None
    timeout_seconds: float | None = None


class AgentTeamCliController:
    """Runs one API operation per CLI command and renders JSON output."""

    def __init__(
        self,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._transport = transport
        self._sleep = sleep
        self._clock = clock

    def launch(self, command: LaunchCommand) -> list[str]:
        request = LaunchRequest(
            prompt_text=command.prompt,
            repository=command.repository,
            prompt_images=_parse_images(command.images_json),
            ref=command.ref,
            model=command.model,
            auto_create_pr=command.auto_create_pr,
            skip_reviewer_request=command.skip_reviewer_request,
            open_as_cursor_github_app=command.open_as_cursor_github_app,
            branch_name=command.branch_name,
            webhook_url=command.webhook_url,
            webhook_secret=command.webhook_secret,
        )
        request.validate()
        agent = self._run(lambda client: client.launch_agent(request))
        return _render({"success": True, "agent": agent.to_output()})

    def launch_team(self, command: TeamLaunchCommand) -> list[str]:
        raw_tasks = _parse_json_list(
            command.tasks_json,
            option="--tasks",
            expected="a non-empty JSON array of {name, prompt} objects",
        )
        tasks = [TeamTask.from_payload(item) for item in raw_tasks]
        template = LaunchRequest(
            prompt_text="",
            repository=command.repository,
            ref=command.ref,
            model=command.model,
            auto_create_pr=command.auto_create_pr,
            webhook_url=command.webhook_url,
            webhook_secret=command.webhook_secret,
        )
        report = self._run(lambda client: TeamService(client).launch_team(template, tasks))
        return _render(report.to_output())

    def status(self, command: AgentCommand) -> list[str]:
        agent = self._run(lambda client: client.get_agent(command.agent_id))
        return _render(agent.to_output())

    def team_status(self, command: TeamStatusCommand) -> list[str]:
        agent_ids = _parse_agent_ids(command.ids_json)
        report = self._run(lambda client: TeamService(client).team_status(agent_ids))
        return _render(report.to_output())

    def conversation(self, command: AgentCommand) -> list[str]:
        conversation = self._run(lambda client: client.get_conversation(command.agent_id))
        return _render(conversation.to_output())

    def followup(self, command: FollowupCommand) -> list[str]:
        images = _parse_images(command.images_json)
        ack = self._run(
            lambda client: client.add_followup(command.agent_id, command.prompt, images),
        )
        return _render_ack(ack, command.agent_id)

    def stop(self, command: AgentCommand) -> list[str]:
        ack = self._run(lambda client: client.stop_agent(command.agent_id))
        return _render_ack(ack, command.agent_id)

    def delete(self, command: AgentCommand) -> list[str]:
        ack = self._run(lambda client: client.delete_agent(command.agent_id))
        return _render_ack(ack, command.agent_id)

    def list_agents(self, command: ListAgentsCommand) -> list[str]:
        page = self._run(lambda client: client.list_agents(command.limit, command.cursor))
        return _render(page.to_output())

    def models(self) -> list[str]:
        models = self._run(lambda client: client.list_models())
        return _render({"models": models})

    def repositories(self) -> list[str]:
        repositories = self._run(lambda client: client.list_repositories())
        return _render({"repositories": [repo.to_output() for repo in repositories]})

    def whoami(self) -> list[str]:
        info = self._run(lambda client: client.get_api_key_info())
        return _render(info.to_output())

    def poll(self, command: PollCommand) -> list[str]:
        agent_ids = _parse_agent_ids(command.ids_json)
        settings = Settings.from_env()
        interval = _or_default(command.interval_seconds, settings.poll.interval_seconds)
        timeout = _or_default(command.timeout_seconds, settings.poll.timeout_seconds)
        outcomes = self._run(
            lambda client: self._poller(client).wait_for_agents(
                agent_ids,
                interval_seconds=interval,
                timeout_seconds=timeout,
            ),
            settings=settings,
        )
        agents = []
        for outcome in outcomes:
            entry = outcome.to_output()
            entry.pop("createdAt", None)
            agents.append(entry)
        return _render(
            {
                "summary": dict(Counter(outcome.status_label for outcome in outcomes)),
                "agents": agents,
            },
        )

    def wait(self, command: WaitCommand) -> list[str]:
        settings = Settings.from_env()
        interval = _or_default(command.interval_seconds, settings.poll.interval_seconds)
        timeout = _or_default(command.timeout_seconds, settings.poll.timeout_seconds)
        agent = self._run(
            lambda client: self._poller(client).wait_for_agent(
                command.agent_id,
                interval_seconds=interval,
                timeout_seconds=timeout,
            ),
            settings=settings,
        )
        return _render(agent.to_output())

    def _poller(self, client: CloudAgentsClient) -> AgentPoller:
        return AgentPoller(client, sleep=self._sleep, clock=self._clock)

    def _run(
        self,
        operation: Callable[[CloudAgentsClient], Awaitable[T]],
        *,
        settings: Settings | None = None,
    ) -> T:
        settings = settings or Settings.from_env()
        api_key = settings.validate_for_api()

        async def _main() -> T:
            async with CloudAgentsClient(
                api_key=api_key,
                base_url=settings.api.base_url,
                timeout_seconds=settings.api.request_timeout_seconds,
                transport=self._transport,
            ) as client:
                return await operation(client)

        return asyncio.run(_main())


def _render(payload: Any) -> list[str]:
    return [json.dumps(payload, indent=2, ensure_ascii=False)]


def _render_ack(ack: Acknowledgement, agent_id: str) -> list[str]:
    return _render({"success": True, "id": ack.id or agent_id})


def _or_default(value: float | None, default: float) -> float:
    return default if value is None else value


def _parse_json_list(raw: str, *, option: str, expected: str) -> list[Any]:
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as error:
        raise ValueError(f"Invalid JSON for {option}: {error.msg}") from error
    if not isinstance(value, list) or not value:
        raise ValueError(f"{option} must be {expected}")
    return value


def _parse_agent_ids(raw: str) -> list[str]:
    values = _parse_json_list(
        raw,
        option="--ids",
        expected="a non-empty JSON array of agent ID strings",
    )
    if not all(isinstance(value, str) and value for value in values):
        raise ValueError("--ids must be a non-empty JSON array of agent ID strings")
    return values


def _parse_images(raw: str | None) -> tuple[PromptImage, ...]:
    if not raw:
        return ()
    values = _parse_json_list(
        raw,
        option="--images",
        expected="a JSON array of {data, dimension: {width, height}} objects",
    )
    if not all(isinstance(value, dict) for value in values):
        raise ValueError("--images entries must be objects")
    return tuple(PromptImage.from_payload(value) for value in values)
