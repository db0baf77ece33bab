"""Test doubles for the cloud agents API."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable

import httpx

from agent_team.agents.models import Agent

TEST_API_KEY = "key_test_123"


class FakeClock:
    """Monotonic clock that only advances when something sleeps on it."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class ScriptedFetcher:
    """Returns scripted outcomes per agent id; the last outcome repeats.

    An outcome is either a status label or an exception instance to raise.
    """

    def __init__(self, script: dict[str, list[str | Exception]]) -> None:
        self._script = {agent_id: list(outcomes) for agent_id, outcomes in script.items()}
        self.calls: list[str] = []

    async def get_agent(self, agent_id: str) -> Agent:
        self.calls.append(agent_id)
        outcomes = self._script[agent_id]
        outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return make_agent(agent_id, outcome)


def make_agent(agent_id: str, status: str, **extra: object) -> Agent:
    return Agent.from_payload(agent_payload(agent_id, status, **extra))


def agent_payload(agent_id: str, status: str, **extra: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "id": agent_id,
        "name": f"agent {agent_id}",
        "status": status,
        "source": {"repository": "https://github.com/acme/widgets", "ref": "main"},
        "target": {
            "branchName": f"cursor/{agent_id.lower()}",
            "url": f"https://cursor.com/agents?id={agent_id}",
        },
        "createdAt": "2026-10-19T10:00:00Z",
    }
    payload.update(extra)
    return payload


def json_response(status_code: int, payload: object) -> httpx.Response:
    return httpx.Response(
        status_code,
        content=json.dumps(payload).encode(),
        headers={"Content-Type": "application/json"},
    )


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.requests: list[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)


class InFlightFetcher:
    """Tracks how many fetches overlap; every fetch yields to the event loop once."""

    def __init__(self, status: str = "FINISHED") -> None:
        self._status = status
        self.in_flight = 0
        self.peak = 0

    async def get_agent(self, agent_id: str) -> Agent:
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(0)
        finally:
            self.in_flight -= 1
        return make_agent(agent_id, self._status)


def in_flight_handler(
    respond: Callable[[httpx.Request], httpx.Response],
) -> tuple[Callable[[httpx.Request], Awaitable[httpx.Response]], dict[str, int]]:
    """Async MockTransport handler that records the peak number of concurrent requests."""

    counters = {"in_flight": 0, "peak": 0}

    async def handler(request: httpx.Request) -> httpx.Response:
        counters["in_flight"] += 1
        counters["peak"] = max(counters["peak"], counters["in_flight"])
        try:
            await asyncio.sleep(0)
        finally:
            counters["in_flight"] -= 1
        return respond(request)

    return handler, counters
