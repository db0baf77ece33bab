from __future__ import annotations

import allure
import pytest

from agent_team.agents.errors import LaunchValidationError
from agent_team.agents.models import (
    TERMINAL_STATUSES,
    Agent,
    AgentStatus,
    LaunchRequest,
    UnresolvedAgent,
)

pytestmark = [
    allure.epic("Cloud Agents API"),
    allure.feature("Status Model"),
]


def test_terminal_set_is_closed() -> None:
    assert {AgentStatus.FINISHED, AgentStatus.STOPPED, AgentStatus.FAILED} == TERMINAL_STATUSES
    assert not AgentStatus.CREATING.is_terminal
    assert not AgentStatus.RUNNING.is_terminal
    assert not AgentStatus.UNRECOGNIZED.is_terminal


@pytest.mark.parametrize("label", ["EXPIRED", "", None, 42, "UNRECOGNIZED"])
def test_unknown_labels_fall_back_to_unrecognized(label: object) -> None:
    assert AgentStatus.parse(label) is AgentStatus.UNRECOGNIZED


def test_parse_tolerates_case_and_whitespace() -> None:
    assert AgentStatus.parse(" finished ") is AgentStatus.FINISHED


def test_agent_keeps_raw_status_label() -> None:
    agent = Agent.from_payload({"id": "bc-1", "status": "EXPIRED"})

    assert agent.status is AgentStatus.UNRECOGNIZED
    assert agent.status_label == "EXPIRED"
    assert not agent.is_terminal
    assert agent.to_output()["status"] == "EXPIRED"


def test_missing_remote_status_is_not_the_unresolved_placeholder() -> None:
    agent = Agent.from_payload({"id": "bc-1"})

    assert agent.status is AgentStatus.UNRECOGNIZED
    assert agent.status_label == "UNRECOGNIZED"
    assert agent.to_output()["status"] != UnresolvedAgent(id="bc-1").status_label


def test_unresolved_placeholder_is_not_a_remote_status() -> None:
    placeholder = UnresolvedAgent(id="bc-1")

    assert placeholder.status_label == "UNKNOWN"
    assert not isinstance(placeholder, Agent)
    assert AgentStatus.parse("UNKNOWN") is AgentStatus.UNRECOGNIZED


def test_launch_payload_omits_unset_options() -> None:
    request = LaunchRequest(prompt_text="Fix lint", repository="https://github.com/acme/widgets")

    assert request.to_payload() == {
        "prompt": {"text": "Fix lint"},
        "source": {"repository": "https://github.com/acme/widgets"},
    }


def test_launch_payload_sends_explicit_false_target_flags() -> None:
    request = LaunchRequest(
        prompt_text="Fix lint",
        repository="https://github.com/acme/widgets",
        auto_create_pr=False,
        skip_reviewer_request=True,
        open_as_cursor_github_app=False,
    )

    assert request.to_payload()["target"] == {
        "autoCreatePr": False,
        "openAsCursorGithubApp": False,
        "skipReviewerRequest": True,
    }


def test_webhook_secret_of_32_characters_is_accepted() -> None:
    request = LaunchRequest(
        prompt_text="Fix lint",
        repository="https://github.com/acme/widgets",
        webhook_url="https://hooks.example.com/agents",
        webhook_secret="k" * 32,
    )

    request.validate()
    assert request.to_payload()["webhook"]["secret"] == "k" * 32


def test_webhook_secret_without_url_is_rejected() -> None:
    request = LaunchRequest(
        prompt_text="Fix lint",
        repository="https://github.com/acme/widgets",
        webhook_secret="k" * 40,
    )

    with pytest.raises(LaunchValidationError, match="requires a webhook URL"):
        request.validate()


@pytest.mark.parametrize(
    ("prompt", "repository", "message"),
    [
        ("   ", "https://github.com/acme/widgets", "Prompt text"),
        ("Fix lint", "", "Repository"),
    ],
)
def test_launch_requires_prompt_and_repository(prompt: str, repository: str, message: str) -> None:
    with pytest.raises(LaunchValidationError, match=message):
        LaunchRequest(prompt_text=prompt, repository=repository).validate()
