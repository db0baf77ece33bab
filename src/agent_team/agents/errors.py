"""Failure taxonomy for cloud agent operations."""

from __future__ import annotations

from typing import Any

_STATUS_GUIDANCE: dict[int, tuple[str, str]] = {
    401: ("Authentication failed", "Check CURSOR_API_KEY."),
    403: ("Forbidden", "Ensure the GitHub App is installed on this repo."),
    404: ("Not found", "Agent may have been deleted."),
    429: ("Rate limit exceeded", "Back off and retry."),
}


class CloudAgentError(Exception):
    """Base class for failures surfaced to CLI callers."""

    kind = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.message, "kind": self.kind}


class LaunchValidationError(CloudAgentError):
    """Launch input rejected locally, before any network call."""

    kind = "validation"


class NetworkError(CloudAgentError):
    """The remote service could not be reached."""

    kind = "network"

    def __init__(self, message: str, *, method: str, path: str) -> None:
        super().__init__(message)
        self.method = method
        self.path = path


class ApiError(CloudAgentError):
    """The remote service answered with a non-success status.

    ``detail`` keeps the message extracted from the response; ``message`` adds
    situational guidance for well-known status codes.
    """

    kind = "api"

    def __init__(self, status_code: int, detail: str, body: Any = None) -> None:
        super().__init__(_with_guidance(status_code, detail))
        self.status_code = status_code
        self.detail = detail
        self.body = body

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["status"] = self.status_code
        if self.body is not None:
            payload["body"] = self.body
        return payload


class PollTimeoutError(CloudAgentError):
    """A single-agent wait expired while the agent was still non-terminal."""

    kind = "timeout"

    def __init__(self, agent_id: str, timeout_seconds: float, last_status: str) -> None:
        super().__init__(
            f"Agent {agent_id} did not reach terminal state within {timeout_seconds:g}s. "
            f"Last status: {last_status}",
        )
        self.agent_id = agent_id
        self.timeout_seconds = timeout_seconds
        self.last_status = last_status

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["id"] = self.agent_id
        payload["lastStatus"] = self.last_status
        return payload


def _with_guidance(status_code: int, detail: str) -> str:
    guidance = _STATUS_GUIDANCE.get(status_code)
    if guidance is None:
        return detail
    prefix, hint = guidance
    return f"{prefix}: {detail}. {hint}"
