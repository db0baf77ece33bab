"""CLI entrypoint for agent-team."""

from __future__ import annotations

import json
import math
import os
from collections.abc import Callable

import rich_click as click

from agent_team import __version__
from agent_team.agents.controllers import (
    AgentCommand,
    AgentTeamCliController,
    FollowupCommand,
    LaunchCommand,
    ListAgentsCommand,
    PollCommand,
    TeamLaunchCommand,
    TeamStatusCommand,
    WaitCommand,
)
from agent_team.agents.errors import CloudAgentError
from agent_team.config import LOG_LEVEL_ENV
from agent_team.logging_config import configure_logging

click.rich_click.USE_MARKDOWN = True
AGENT_CONTROLLER = AgentTeamCliController()


def _require_finite(
    ctx: click.Context,
    param: click.Parameter,
    value: float | None,
) -> float | None:
    if value is not None and not math.isfinite(value):
        raise click.BadParameter("must be a finite number of seconds.")
    return value


_AGENT_ID_OPTION = click.option("--id", "agent_id", required=True, help="Agent id.")
_REPO_OPTION = click.option(
    "--repo",
    "repository",
    required=True,
    help="GitHub repository URL, for example https://github.com/org/repo.",
)
_REF_OPTION = click.option(
    "--ref",
    default=None,
    help="Git ref to start from. Defaults to the repository's primary branch.",
)
_MODEL_OPTION = click.option("--model", default=None, help="Model name. Omit for automatic.")
_AUTO_PR_OPTION = click.option(
    "--auto-pr/--no-auto-pr",
    "auto_create_pr",
    default=None,
    help="Open a pull request when the agent finishes.",
)
_WEBHOOK_URL_OPTION = click.option(
    "--webhook-url",
    default=None,
    help="Webhook URL notified on status changes.",
)
_WEBHOOK_SECRET_OPTION = click.option(
    "--webhook-secret",
    default=None,
    help="Webhook HMAC secret, at least 32 characters.",
)
_INTERVAL_OPTION = click.option(
    "--interval",
    "interval_seconds",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    callback=_require_finite,
    help="Seconds between status checks. Defaults to AGENT_TEAM_POLL_INTERVAL_SECONDS (30).",
)
_TIMEOUT_OPTION = click.option(
    "--timeout",
    "timeout_seconds",
    type=click.FloatRange(min=0),
    default=None,
    callback=_require_finite,
    help="Overall deadline in seconds. Defaults to AGENT_TEAM_POLL_TIMEOUT_SECONDS (1800).",
)


@click.group()
@click.version_option(version=__version__, prog_name="agent-team")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Log level for stderr diagnostics. Defaults to AGENT_TEAM_LOG_LEVEL or WARNING.",
)
def agent_team(log_level: str | None) -> None:
    """Launch, coordinate and monitor a team of Cursor cloud agents.

    Requires `CURSOR_API_KEY`. Every command prints JSON to stdout.
    """

    configure_logging(log_level or os.getenv(LOG_LEVEL_ENV, "WARNING"))


@agent_team.command("launch")
@_REPO_OPTION
@click.option("--prompt", required=True, help="Task description for the agent.")
@_REF_OPTION
@_MODEL_OPTION
@_AUTO_PR_OPTION
@click.option(
    "--skip-reviewer/--no-skip-reviewer",
    "skip_reviewer_request",
    default=None,
    help="Skip requesting a reviewer on the created pull request.",
)
@click.option(
    "--cursor-github-app/--no-cursor-github-app",
    "open_as_cursor_github_app",
    default=None,
    help="Open the pull request as the Cursor GitHub App.",
)
@click.option("--branch", "branch_name", default=None, help="Custom branch name.")
@_WEBHOOK_URL_OPTION
@_WEBHOOK_SECRET_OPTION
@click.option(
    "--images",
    "images_json",
    default=None,
    help="JSON array of prompt images: [{data, dimension: {width, height}}].",
)
def launch(  # noqa: PLR0913
    repository: str,
    prompt: str,
    ref: str | None,
    model: str | None,
    auto_create_pr: bool | None,
    skip_reviewer_request: bool | None,
    open_as_cursor_github_app: bool | None,
    branch_name: str | None,
    webhook_url: str | None,
    webhook_secret: str | None,
    images_json: str | None,
) -> None:
    """Launch a single cloud agent."""

    _emit_result(
        lambda: AGENT_CONTROLLER.launch(
            LaunchCommand(
                repository=repository,
                prompt=prompt,
                ref=ref,
                model=model,
                auto_create_pr=auto_create_pr,
                skip_reviewer_request=skip_reviewer_request,
                open_as_cursor_github_app=open_as_cursor_github_app,
                branch_name=branch_name,
                webhook_url=webhook_url,
                webhook_secret=webhook_secret,
                images_json=images_json,
            ),
        ),
    )


@agent_team.command("team")
@_REPO_OPTION
@click.option(
    "--tasks",
    "tasks_json",
    required=True,
    help='JSON array of tasks: [{"name", "prompt", "model"?, "branch"?}].',
)
@_REF_OPTION
@_MODEL_OPTION
@_AUTO_PR_OPTION
@_WEBHOOK_URL_OPTION
@_WEBHOOK_SECRET_OPTION
def team(  # noqa: PLR0913
    repository: str,
    tasks_json: str,
    ref: str | None,
    model: str | None,
    auto_create_pr: bool | None,
    webhook_url: str | None,
    webhook_secret: str | None,
) -> None:
    """Launch several agents in parallel on one repository."""

    _emit_result(
        lambda: AGENT_CONTROLLER.launch_team(
            TeamLaunchCommand(
                repository=repository,
                tasks_json=tasks_json,
                ref=ref,
                model=model,
                auto_create_pr=auto_create_pr,
                webhook_url=webhook_url,
                webhook_secret=webhook_secret,
            ),
        ),
    )


@agent_team.command("status")
@_AGENT_ID_OPTION
def status(agent_id: str) -> None:
    """Show the current status of one agent."""

    _emit_result(lambda: AGENT_CONTROLLER.status(AgentCommand(agent_id=agent_id)))


@agent_team.command("team-status")
@click.option("--ids", "ids_json", required=True, help="JSON array of agent ids.")
def team_status(ids_json: str) -> None:
    """Show a one-shot status snapshot of several agents."""

    _emit_result(lambda: AGENT_CONTROLLER.team_status(TeamStatusCommand(ids_json=ids_json)))


@agent_team.command("conversation")
@_AGENT_ID_OPTION
def conversation(agent_id: str) -> None:
    """Print the conversation history of one agent."""

    _emit_result(lambda: AGENT_CONTROLLER.conversation(AgentCommand(agent_id=agent_id)))


@agent_team.command("followup")
@_AGENT_ID_OPTION
@click.option("--prompt", required=True, help="Follow-up instruction.")
@click.option("--images", "images_json", default=None, help="JSON array of prompt images.")
def followup(agent_id: str, prompt: str, images_json: str | None) -> None:
    """Send a follow-up instruction to a running agent."""

    _emit_result(
        lambda: AGENT_CONTROLLER.followup(
            FollowupCommand(agent_id=agent_id, prompt=prompt, images_json=images_json),
        ),
    )


@agent_team.command("stop")
@_AGENT_ID_OPTION
def stop(agent_id: str) -> None:
    """Stop a running agent."""

    _emit_result(lambda: AGENT_CONTROLLER.stop(AgentCommand(agent_id=agent_id)))


@agent_team.command("delete")
@_AGENT_ID_OPTION
def delete(agent_id: str) -> None:
    """Delete an agent permanently."""

    _emit_result(lambda: AGENT_CONTROLLER.delete(AgentCommand(agent_id=agent_id)))


@agent_team.command("list")
@click.option(
    "--limit",
    type=click.IntRange(min=1, max=100),
    default=20,
    show_default=True,
    help="Max agents per page.",
)
@click.option("--cursor", default=None, help="Pagination cursor from a previous page.")
def list_agents(limit: int, cursor: str | None) -> None:
    """List recent agents."""

    _emit_result(
        lambda: AGENT_CONTROLLER.list_agents(ListAgentsCommand(limit=limit, cursor=cursor)),
    )


@agent_team.command("models")
def models() -> None:
    """List available models."""

    _emit_result(AGENT_CONTROLLER.models)


@agent_team.command("repos")
def repos() -> None:
    """List connected repositories (remote limit: about 1 request per minute)."""

    _emit_result(AGENT_CONTROLLER.repositories)


@agent_team.command("poll")
@click.option("--ids", "ids_json", required=True, help="JSON array of agent ids.")
@_INTERVAL_OPTION
@_TIMEOUT_OPTION
def poll(ids_json: str, interval_seconds: float | None, timeout_seconds: float | None) -> None:
    """Poll agents until all finish or the deadline passes.

    Agents still running at the deadline are reported with status `UNKNOWN`.
    """

    _emit_result(
        lambda: AGENT_CONTROLLER.poll(
            PollCommand(
                ids_json=ids_json,
                interval_seconds=interval_seconds,
                timeout_seconds=timeout_seconds,
            ),
        ),
    )


@agent_team.command("wait")
@_AGENT_ID_OPTION
@_INTERVAL_OPTION
@_TIMEOUT_OPTION
def wait(agent_id: str, interval_seconds: float | None, timeout_seconds: float | None) -> None:
    """Wait for one agent to finish; fails if the deadline passes first."""

    _emit_result(
        lambda: AGENT_CONTROLLER.wait(
            WaitCommand(
                agent_id=agent_id,
                interval_seconds=interval_seconds,
                timeout_seconds=timeout_seconds,
            ),
        ),
    )


@agent_team.command("whoami")
def whoami() -> None:
    """Show API key info."""

    _emit_result(AGENT_CONTROLLER.whoami)


def _emit_result(action: Callable[[], list[str]]) -> None:
    try:
        lines = action()
    except CloudAgentError as error:
        _fail(error.to_payload())
    except ValueError as error:
        _fail({"error": str(error), "kind": "input"})
    else:
        for line in lines:
            click.echo(line)


def _fail(payload: dict[str, object]) -> None:
    click.echo(json.dumps(payload, indent=2, ensure_ascii=False), err=True)
    raise SystemExit(1)


if __name__ == "__main__":  # pragma: no cover
    agent_team()
