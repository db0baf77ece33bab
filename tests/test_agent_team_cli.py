from __future__ import annotations

import json

import allure
import httpx
import pytest
from agent_fakes import FakeClock, RecordingTransport, agent_payload, json_response
from click.testing import CliRunner

from agent_team import main
from agent_team.agents.controllers import AgentTeamCliController

pytestmark = [
    allure.epic("Agent Teams"),
    allure.feature("CLI Commands"),
]


@pytest.fixture()
def cli(monkeypatch, api_env, restore_root_logger):
    """Install a controller backed by a scripted transport and a fake clock."""

    clock = FakeClock()
    routes: dict[tuple[str, str], list[httpx.Response]] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        queue = routes[(request.method, request.url.path)]
        return queue.pop(0) if len(queue) > 1 else queue[0]

    transport = RecordingTransport(handler)
    monkeypatch.setattr(
        main,
        "AGENT_CONTROLLER",
        AgentTeamCliController(transport=transport, sleep=clock.sleep, clock=clock),
    )

    def invoke(*args: str):
        return CliRunner().invoke(main.agent_team, ["--log-level", "ERROR", *args])

    invoke.routes = routes
    invoke.transport = transport
    invoke.clock = clock
    return invoke


def test_poll_reports_unknown_for_unresolved_agents(cli) -> None:
    cli.routes[("GET", "/v0/agents/A")] = [json_response(200, agent_payload("A", "FINISHED"))]
    cli.routes[("GET", "/v0/agents/B")] = [
        json_response(200, agent_payload("B", "RUNNING")),
        json_response(200, agent_payload("B", "FAILED")),
    ]
    cli.routes[("GET", "/v0/agents/C")] = [json_response(200, agent_payload("C", "RUNNING"))]

    result = cli("poll", "--ids", '["A", "B", "C"]', "--interval", "10", "--timeout", "15")

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["summary"] == {"FINISHED": 1, "FAILED": 1, "UNKNOWN": 1}
    assert [agent["id"] for agent in payload["agents"]] == ["A", "B", "C"]
    assert payload["agents"][2] == {"id": "C", "status": "UNKNOWN"}
    assert payload["agents"][0]["branch"] == "cursor/a"
    assert cli.clock.sleeps == [10, 10]


def test_poll_uses_interval_and_timeout_from_environment(cli, monkeypatch) -> None:
    monkeypatch.setenv("AGENT_TEAM_POLL_INTERVAL_SECONDS", "7")
    monkeypatch.setenv("AGENT_TEAM_POLL_TIMEOUT_SECONDS", "10")
    cli.routes[("GET", "/v0/agents/A")] = [json_response(200, agent_payload("A", "RUNNING"))]

    result = cli("poll", "--ids", '["A"]')

    assert result.exit_code == 0, result.output
    assert cli.clock.sleeps == [7, 7]


def test_poll_rejects_invalid_ids(cli) -> None:
    result = cli("poll", "--ids", "not-json")

    assert result.exit_code == 1
    assert "Invalid JSON for --ids" in result.output
    assert cli.transport.requests == []


def test_wait_returns_agent_finishing_on_final_check(cli) -> None:
    cli.routes[("GET", "/v0/agents/A")] = [
        json_response(200, agent_payload("A", "RUNNING")),
        json_response(200, agent_payload("A", "RUNNING")),
        json_response(200, agent_payload("A", "FINISHED")),
    ]

    result = cli("wait", "--id", "A", "--interval", "10", "--timeout", "15")

    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["status"] == "FINISHED"


def test_wait_timeout_is_reported_as_error_payload(cli) -> None:
    cli.routes[("GET", "/v0/agents/A")] = [json_response(200, agent_payload("A", "RUNNING"))]

    result = cli("wait", "--id", "A", "--interval", "10", "--timeout", "20")

    assert result.exit_code == 1
    payload = json.loads(result.output)
    assert payload["kind"] == "timeout"
    assert payload["lastStatus"] == "RUNNING"


@pytest.mark.parametrize(
    "option",
    [["--interval", "inf"], ["--interval", "nan"], ["--timeout", "inf"]],
)
def test_poll_rejects_non_finite_durations(cli, option: list[str]) -> None:
    result = cli("poll", "--ids", '["A"]', *option)

    assert result.exit_code == 2
    assert "finite" in result.output
    assert cli.transport.requests == []


def test_launch_with_short_webhook_secret_makes_no_request(cli) -> None:
    result = cli(
        "launch",
        "--repo",
        "https://github.com/acme/widgets",
        "--prompt",
        "Add a README",
        "--webhook-url",
        "https://hooks.example.com/agents",
        "--webhook-secret",
        "short",
    )

    assert result.exit_code == 1
    payload = json.loads(result.output)
    assert payload["kind"] == "validation"
    assert "at least 32 characters" in payload["error"]
    assert cli.transport.requests == []


def test_launch_prints_created_agent(cli) -> None:
    cli.routes[("POST", "/v0/agents")] = [json_response(201, agent_payload("bc-1", "CREATING"))]

    result = cli(
        "launch",
        "--repo",
        "https://github.com/acme/widgets",
        "--prompt",
        "Add a README",
        "--auto-pr",
        "--branch",
        "docs/readme",
    )

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["success"] is True
    assert payload["agent"]["id"] == "bc-1"
    sent = json.loads(cli.transport.requests[0].content)
    assert sent["target"]["autoCreatePr"] is True
    assert sent["target"]["branchName"] == "docs/readme"
    assert "ref" not in sent["source"]


def test_team_launch_summarizes_results(cli) -> None:
    cli.routes[("POST", "/v0/agents")] = [
        json_response(201, agent_payload("bc-1", "CREATING")),
        json_response(201, agent_payload("bc-2", "CREATING")),
    ]
    tasks = json.dumps([{"name": "docs", "prompt": "Docs"}, {"name": "tests", "prompt": "Tests"}])

    result = cli("team", "--repo", "https://github.com/acme/widgets", "--tasks", tasks)

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["summary"] == {"total": 2, "launched": 2, "failed": 0}
    assert sorted(payload["ids"]) == ["bc-1", "bc-2"]


def test_team_launch_rejects_task_without_prompt(cli) -> None:
    result = cli(
        "team",
        "--repo",
        "https://github.com/acme/widgets",
        "--tasks",
        '[{"name": "docs"}]',
    )

    assert result.exit_code == 1
    assert 'Task \\"docs\\" is missing' in result.output
    assert cli.transport.requests == []


def test_status_not_found_includes_guidance(cli) -> None:
    cli.routes[("GET", "/v0/agents/bc-404")] = [json_response(404, {"message": "no such agent"})]

    result = cli("status", "--id", "bc-404")

    assert result.exit_code == 1
    payload = json.loads(result.output)
    assert payload == {
        "error": "Not found: no such agent. Agent may have been deleted.",
        "kind": "api",
        "status": 404,
        "body": {"message": "no such agent"},
    }


def test_delete_no_content_echoes_requested_id(cli) -> None:
    cli.routes[("DELETE", "/v0/agents/bc-1")] = [httpx.Response(204)]

    result = cli("delete", "--id", "bc-1")

    assert result.exit_code == 0, result.output
    assert json.loads(result.output) == {"success": True, "id": "bc-1"}


def test_list_and_whoami(cli) -> None:
    cli.routes[("GET", "/v0/agents")] = [
        json_response(200, {"agents": [agent_payload("bc-1", "RUNNING")], "nextCursor": "c2"}),
    ]
    cli.routes[("GET", "/v0/me")] = [
        json_response(200, {"apiKeyName": "ci", "userEmail": "dev@example.com"}),
    ]

    listed = cli("list", "--limit", "5")
    whoami = cli("whoami")

    assert listed.exit_code == 0, listed.output
    assert json.loads(listed.output)["nextCursor"] == "c2"
    assert cli.transport.requests[0].url.params["limit"] == "5"
    assert whoami.exit_code == 0, whoami.output
    assert json.loads(whoami.output)["userEmail"] == "dev@example.com"


def test_missing_api_key_fails_without_request(cli, monkeypatch) -> None:
    monkeypatch.delenv("CURSOR_API_KEY", raising=False)

    result = cli("models")

    assert result.exit_code == 1
    assert "CURSOR_API_KEY environment variable is not set" in result.output
    assert cli.transport.requests == []
