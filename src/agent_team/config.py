"""Runtime configuration for the agent team CLI."""

from __future__ import annotations

import math
import os
from dataclasses import dataclass, field
from urllib.parse import urlparse

from agent_team.agents.client import DEFAULT_BASE_URL, DEFAULT_TIMEOUT_SECONDS
from agent_team.agents.poller import DEFAULT_POLL_INTERVAL_SECONDS, DEFAULT_POLL_TIMEOUT_SECONDS

API_KEY_ENV = "CURSOR_API_KEY"
LOG_LEVEL_ENV = "AGENT_TEAM_LOG_LEVEL"


@dataclass(slots=True)
class ApiSettings:
    """Remote API connection settings."""

    api_key: str | None = None
    base_url: str = DEFAULT_BASE_URL
    request_timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS


@dataclass(slots=True)
class PollSettings:
    """Default interval and deadline for wait/poll commands."""

    interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
    timeout_seconds: float = DEFAULT_POLL_TIMEOUT_SECONDS


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    api: ApiSettings = field(default_factory=ApiSettings)
    poll: PollSettings = field(default_factory=PollSettings)

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment variables."""

        return cls(
            api=ApiSettings(
                api_key=os.getenv(API_KEY_ENV, "").strip() or None,
                base_url=os.getenv("AGENT_TEAM_BASE_URL", DEFAULT_BASE_URL).strip(),
                request_timeout_seconds=_env_float(
                    "AGENT_TEAM_REQUEST_TIMEOUT_SECONDS",
                    DEFAULT_TIMEOUT_SECONDS,
                ),
            ),
            poll=PollSettings(
                interval_seconds=_env_float(
                    "AGENT_TEAM_POLL_INTERVAL_SECONDS",
                    DEFAULT_POLL_INTERVAL_SECONDS,
                ),
                timeout_seconds=_env_float(
                    "AGENT_TEAM_POLL_TIMEOUT_SECONDS",
                    DEFAULT_POLL_TIMEOUT_SECONDS,
                ),
            ),
        )

    def validate_for_api(self) -> str:
        """Raise configuration error for unusable API settings, return the API key."""

        if not self.api.api_key:
            raise ValueError(
                f"{API_KEY_ENV} environment variable is not set. "
                "Get your key from: Cursor Dashboard -> Settings -> API Keys",
            )
        parsed = urlparse(self.api.base_url)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ValueError(
                "Invalid AGENT_TEAM_BASE_URL: "
                f"{self.api.base_url!r}. Expected an absolute URL with http:// or https:// scheme.",
            )
        request_timeout = self.api.request_timeout_seconds
        if not math.isfinite(request_timeout) or request_timeout <= 0:
            raise ValueError("AGENT_TEAM_REQUEST_TIMEOUT_SECONDS must be a finite number > 0.")
        if not math.isfinite(self.poll.interval_seconds) or self.poll.interval_seconds <= 0:
            raise ValueError("AGENT_TEAM_POLL_INTERVAL_SECONDS must be a finite number > 0.")
        if not math.isfinite(self.poll.timeout_seconds) or self.poll.timeout_seconds < 0:
            raise ValueError("AGENT_TEAM_POLL_TIMEOUT_SECONDS must be a finite number >= 0.")
        return self.api.api_key


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        number = float(value)
    except ValueError as error:
        raise ValueError(f"Invalid numeric value for {name}: {value!r}") from error
    if not math.isfinite(number):
        raise ValueError(f"Invalid numeric value for {name}: {value!r}")
    return number
