"""Use-case services for launching and inspecting agent teams."""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from typing import Any

from agent_team.agents.client import CloudAgentsClient
from agent_team.agents.errors import CloudAgentError, LaunchValidationError
from agent_team.agents.models import Agent, LaunchRequest

logger = logging.getLogger(__name__)

UNNAMED_TASK = "unnamed"


@dataclass(slots=True, frozen=True)
class TeamTask:
    """One member task of a team launch."""

    prompt: str
    name: str = UNNAMED_TASK
    model: str | None = None
    branch: str | None = None

    @classmethod
    def from_payload(cls, payload: Any) -> TeamTask:
        if not isinstance(payload, dict):
            raise LaunchValidationError("Each task must be an object with a 'prompt' field")
        name = str(payload.get("name") or UNNAMED_TASK)
        prompt = payload.get("prompt")
        if not isinstance(prompt, str) or not prompt.strip():
            raise LaunchValidationError(f'Task "{name}" is missing a "prompt" field')
        return cls(
            prompt=prompt,
            name=name,
            model=payload.get("model"),
            branch=payload.get("branch"),
        )


@dataclass(slots=True)
class TeamLaunchEntry:
    """Outcome of launching one team task."""

    task_name: str
    agent: Agent | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.agent is not None

    def to_output(self) -> dict[str, Any]:
        if self.agent is None:
            return {"taskName": self.task_name, "success": False, "error": self.error}
        return {
            "taskName": self.task_name,
            "success": True,
            "id": self.agent.id,
            "name": self.agent.name,
            "status": self.agent.status_label,
            "branch": self.agent.branch_name,
            "url": self.agent.url,
        }


@dataclass(slots=True)
class TeamLaunchReport:
    entries: list[TeamLaunchEntry] = field(default_factory=list)

    @property
    def launched_ids(self) -> list[str]:
        return [entry.agent.id for entry in self.entries if entry.agent is not None]

    def to_output(self) -> dict[str, Any]:
        launched = sum(1 for entry in self.entries if entry.success)
        return {
            "summary": {
                "total": len(self.entries),
                "launched": launched,
                "failed": len(self.entries) - launched,
            },
            "agents": [entry.to_output() for entry in self.entries],
            "ids": self.launched_ids,
        }


@dataclass(slots=True)
class TeamStatusEntry:
    agent_id: str
    agent: Agent | None = None
    error: str | None = None

    @property
    def status_label(self) -> str:
        return self.agent.status_label if self.agent is not None else "ERROR"

    def to_output(self) -> dict[str, Any]:
        if self.agent is None:
            return {"id": self.agent_id, "status": "ERROR", "error": self.error}
        output = self.agent.to_output()
        output.pop("createdAt", None)
        return output


@dataclass(slots=True)
class TeamStatusReport:
    entries: list[TeamStatusEntry] = field(default_factory=list)

    def to_output(self) -> dict[str, Any]:
        return {
            "summary": dict(Counter(entry.status_label for entry in self.entries)),
            "agents": [entry.to_output() for entry in self.entries],
        }


class TeamService:
    """Fans out launches and status checks, isolating per-agent failures."""

    def __init__(self, client: CloudAgentsClient) -> None:
        self.client = client

    async def launch_team(
        self,
        template: LaunchRequest,
        tasks: Sequence[TeamTask],
    ) -> TeamLaunchReport:
        """Launch every task concurrently from a shared request template.

        All requests are validated first; one invalid task aborts the whole
        team before any agent is launched.
        """

        if not tasks:
            raise LaunchValidationError("A team needs at least one task")
        requests = [
            replace(
                template,
                prompt_text=task.prompt,
                model=task.model or template.model,
                branch_name=task.branch,
            )
            for task in tasks
        ]
        for request in requests:
            request.validate()

        outcomes = await asyncio.gather(
            *(self.client.launch_agent(request) for request in requests),
            return_exceptions=True,
        )
        report = TeamLaunchReport()
        for task, outcome in zip(tasks, outcomes, strict=True):
            if isinstance(outcome, Agent):
                report.entries.append(TeamLaunchEntry(task_name=task.name, agent=outcome))
            elif isinstance(outcome, CloudAgentError):
                logger.warning("Launching task %s failed: %s", task.name, outcome)
                report.entries.append(TeamLaunchEntry(task_name=task.name, error=outcome.message))
            else:
                raise outcome
        return report

    async def team_status(self, agent_ids: Sequence[str]) -> TeamStatusReport:
        outcomes = await asyncio.gather(
            *(self.client.get_agent(agent_id) for agent_id in agent_ids),
            return_exceptions=True,
        )
        report = TeamStatusReport()
        for agent_id, outcome in zip(agent_ids, outcomes, strict=True):
            if isinstance(outcome, Agent):
                report.entries.append(TeamStatusEntry(agent_id=agent_id, agent=outcome))
            elif isinstance(outcome, CloudAgentError):
                report.entries.append(TeamStatusEntry(agent_id=agent_id, error=outcome.message))
            else:
                raise outcome
        return report
