"""Domain models for remote cloud agents."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from agent_team.agents.errors import LaunchValidationError

UNKNOWN_STATUS_LABEL = "UNKNOWN"
MIN_WEBHOOK_SECRET_LENGTH = 32


class AgentStatus(str, Enum):
    """Remote agent lifecycle states."""

    CREATING = "CREATING"
    RUNNING = "RUNNING"
    FINISHED = "FINISHED"
    STOPPED = "STOPPED"
    FAILED = "FAILED"
    UNRECOGNIZED = "UNRECOGNIZED"

    @classmethod
    def parse(cls, value: object) -> AgentStatus:
        """Map a remote status label to a member, falling back to UNRECOGNIZED."""

        if isinstance(value, str):
            normalized = value.strip().upper()
            for member in cls:
                if member is not cls.UNRECOGNIZED and member.value == normalized:
                    return member
        return cls.UNRECOGNIZED

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES: frozenset[AgentStatus] = frozenset(
    {AgentStatus.FINISHED, AgentStatus.STOPPED, AgentStatus.FAILED},
)


@dataclass(slots=True)
class Agent:
    """Snapshot of one remote agent as last reported by the API."""

    id: str
    status: AgentStatus
    status_label: str
    name: str | None = None
    repository: str | None = None
    ref: str | None = None
    branch_name: str | None = None
    url: str | None = None
    pr_url: str | None = None
    summary: str | None = None
    created_at: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> Agent:
        source = _mapping(payload.get("source"))
        target = _mapping(payload.get("target"))
        raw_status = payload.get("status")
        return cls(
            id=str(payload.get("id", "")),
            status=AgentStatus.parse(raw_status),
            status_label=(
                str(raw_status) if raw_status is not None else AgentStatus.UNRECOGNIZED.value
            ),
            name=payload.get("name"),
            repository=source.get("repository"),
            ref=source.get("ref"),
            branch_name=target.get("branchName"),
            url=target.get("url"),
            pr_url=target.get("prUrl"),
            summary=payload.get("summary"),
            created_at=payload.get("createdAt"),
        )

    def to_output(self) -> dict[str, Any]:
        """Render the agent in the CLI JSON shape."""

        return {
            "id": self.id,
            "name": self.name,
            "status": self.status_label,
            "branch": self.branch_name,
            "url": self.url,
            "prUrl": self.pr_url,
            "summary": self.summary,
            "createdAt": self.created_at,
        }


@dataclass(slots=True, frozen=True)
class UnresolvedAgent:
    """Placeholder for an agent whose terminal state was never observed."""

    id: str

    @property
    def status_label(self) -> str:
        return UNKNOWN_STATUS_LABEL

    def to_output(self) -> dict[str, Any]:
        return {"id": self.id, "status": UNKNOWN_STATUS_LABEL}


PollOutcome = Agent | UnresolvedAgent


@dataclass(slots=True, frozen=True)
class PromptImage:
    """Base64-encoded image attached to a prompt."""

    data: str
    width: int
    height: int

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> PromptImage:
        dimension = _mapping(payload.get("dimension"))
        return cls(
            data=str(payload.get("data", "")),
            width=int(dimension.get("width", 0)),
            height=int(dimension.get("height", 0)),
        )

    def to_payload(self) -> dict[str, Any]:
        return {"data": self.data, "dimension": {"width": self.width, "height": self.height}}


@dataclass(slots=True)
class LaunchRequest:
    """Input payload for launching one cloud agent."""

    prompt_text: str
    repository: str
    prompt_images: tuple[PromptImage, ...] = ()
    ref: str | None = None
    model: str | None = None
    auto_create_pr: bool | None = None
    skip_reviewer_request: bool | None = None
    open_as_cursor_github_app: bool | None = None
    branch_name: str | None = None
    webhook_url: str | None = None
    webhook_secret: str | None = None

    def validate(self) -> None:
        """Raise LaunchValidationError for input the remote API would reject."""

        if not self.prompt_text.strip():
            raise LaunchValidationError("Prompt text must not be empty")
        if not self.repository.strip():
            raise LaunchValidationError("Repository must not be empty")
        if self.webhook_secret is not None:
            if not self.webhook_url:
                raise LaunchValidationError("Webhook secret requires a webhook URL")
            if len(self.webhook_secret) < MIN_WEBHOOK_SECRET_LENGTH:
                raise LaunchValidationError(
                    f"Webhook secret must be at least {MIN_WEBHOOK_SECRET_LENGTH} characters",
                )

    def to_payload(self) -> dict[str, Any]:
        prompt: dict[str, Any] = {"text": self.prompt_text}
        if self.prompt_images:
            prompt["images"] = [image.to_payload() for image in self.prompt_images]
        source: dict[str, Any] = {"repository": self.repository}
        if self.ref:
            source["ref"] = self.ref
        body: dict[str, Any] = {"prompt": prompt, "source": source}
        if self.model:
            body["model"] = self.model

        target: dict[str, Any] = {}
        if self.auto_create_pr is not None:
            target["autoCreatePr"] = self.auto_create_pr
        if self.open_as_cursor_github_app is not None:
            target["openAsCursorGithubApp"] = self.open_as_cursor_github_app
        if self.skip_reviewer_request is not None:
            target["skipReviewerRequest"] = self.skip_reviewer_request
        if self.branch_name:
            target["branchName"] = self.branch_name
        if target:
            body["target"] = target

        if self.webhook_url:
            webhook: dict[str, Any] = {"url": self.webhook_url}
            if self.webhook_secret:
                webhook["secret"] = self.webhook_secret
            body["webhook"] = webhook
        return body


@dataclass(slots=True)
class AgentPage:
    """One page of the agent listing."""

    agents: list[Agent]
    next_cursor: str | None = None

    def to_output(self) -> dict[str, Any]:
        output: dict[str, Any] = {"agents": [agent.to_output() for agent in self.agents]}
        if self.next_cursor:
            output["nextCursor"] = self.next_cursor
        return output


@dataclass(slots=True)
class ConversationMessage:
    id: str
    type: str
    text: str


@dataclass(slots=True)
class Conversation:
    """Ordered conversation transcript of one agent."""

    id: str
    messages: list[ConversationMessage] = field(default_factory=list)

    @classmethod
    def from_payload(cls, agent_id: str, payload: dict[str, Any]) -> Conversation:
        messages = [
            ConversationMessage(
                id=str(item.get("id", "")),
                type=str(item.get("type", "")),
                text=str(item.get("text", "")),
            )
            for item in payload.get("messages") or []
            if isinstance(item, dict)
        ]
        return cls(id=str(payload.get("id") or agent_id), messages=messages)

    def to_output(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "messages": [
                {"id": message.id, "type": message.type, "text": message.text}
                for message in self.messages
            ],
        }


@dataclass(slots=True, frozen=True)
class Acknowledgement:
    """Remote acknowledgement for follow-up, stop and delete calls."""

    id: str | None

    @classmethod
    def from_payload(cls, payload: Any) -> Acknowledgement:
        agent_id = _mapping(payload).get("id")
        return cls(id=str(agent_id) if agent_id is not None else None)


@dataclass(slots=True, frozen=True)
class ApiKeyInfo:
    api_key_name: str | None
    created_at: str | None
    user_email: str | None

    def to_output(self) -> dict[str, Any]:
        return {
            "apiKeyName": self.api_key_name,
            "createdAt": self.created_at,
            "userEmail": self.user_email,
        }


@dataclass(slots=True, frozen=True)
class RepositoryInfo:
    owner: str | None
    name: str | None
    repository: str | None

    def to_output(self) -> dict[str, Any]:
        return {"owner": self.owner, "name": self.name, "repository": self.repository}


def _mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}
