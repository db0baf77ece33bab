"""Deadline-bounded polling of one or many remote agents."""

from __future__ import annotations

import asyncio
import logging
import math
import time
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Protocol

from agent_team.agents.errors import PollTimeoutError
from agent_team.agents.models import Agent, PollOutcome, UnresolvedAgent

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 30.0
DEFAULT_POLL_TIMEOUT_SECONDS = 1_800.0


class AgentFetcher(Protocol):
    """Anything that can fetch one agent snapshot by id."""

    async def get_agent(self, agent_id: str) -> Agent: ...


class AgentPoller:
    """Waits for agents to reach a terminal status.

    ``sleep`` and ``clock`` are injectable so tests can drive time; ``clock``
    must be monotonic.
    """

    def __init__(
        self,
        fetcher: AgentFetcher,
        *,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._fetcher = fetcher
        self._sleep = sleep
        self._clock = clock

    async def wait_for_agent(
        self,
        agent_id: str,
        *,
        interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        timeout_seconds: float = DEFAULT_POLL_TIMEOUT_SECONDS,
    ) -> Agent:
        """Poll one agent until terminal; fetch errors propagate.

        After the deadline one final fetch is made, so a status that turned
        terminal right at the boundary is still returned.
        """

        _check_durations(interval_seconds, timeout_seconds)
        deadline = self._clock() + timeout_seconds
        while self._clock() < deadline:
            agent = await self._fetcher.get_agent(agent_id)
            if agent.is_terminal:
                return agent
            logger.debug("Agent %s still %s", agent_id, agent.status_label)
            await self._sleep(interval_seconds)

        agent = await self._fetcher.get_agent(agent_id)
        if agent.is_terminal:
            return agent
        raise PollTimeoutError(agent_id, timeout_seconds, agent.status_label)

    async def wait_for_agents(
        self,
        agent_ids: Sequence[str],
        *,
        interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        timeout_seconds: float = DEFAULT_POLL_TIMEOUT_SECONDS,
        resolved: Mapping[str, Agent] | None = None,
    ) -> list[PollOutcome]:
        """Poll many agents until all are terminal or the deadline passes.

        Fetch failures of individual agents are logged and the agent stays
        pending for the next tick. The result has one entry per requested id,
        in request order; agents never seen terminal become ``UnresolvedAgent``.
        ``resolved`` seeds agents already known to be terminal.
        """

        _check_durations(interval_seconds, timeout_seconds)
        targets = list(dict.fromkeys(agent_ids))
        settled: dict[str, Agent] = {
            agent_id: agent
            for agent_id, agent in (resolved or {}).items()
            if agent_id in targets and agent.is_terminal
        }
        deadline = self._clock() + timeout_seconds

        tick = 0
        while self._clock() < deadline:
            pending = [agent_id for agent_id in targets if agent_id not in settled]
            if not pending:
                break
            tick += 1
            settled.update(await self._sweep(pending))
            logger.debug(
                "Poll tick %d: resolved=%d pending=%d",
                tick,
                len(settled),
                len(targets) - len(settled),
            )
            if len(settled) == len(targets):
                break
            await self._sleep(interval_seconds)

        still_pending = [agent_id for agent_id in targets if agent_id not in settled]
        if still_pending:
            settled.update(await self._sweep(still_pending))
            for agent_id in still_pending:
                if agent_id not in settled:
                    logger.info("Agent %s unresolved at deadline", agent_id)

        return [settled.get(agent_id) or UnresolvedAgent(id=agent_id) for agent_id in agent_ids]

    async def _sweep(self, pending: list[str]) -> dict[str, Agent]:
        outcomes = await asyncio.gather(
            *(self._fetcher.get_agent(agent_id) for agent_id in pending),
            return_exceptions=True,
        )
        terminal: dict[str, Agent] = {}
        for agent_id, outcome in zip(pending, outcomes, strict=True):
            if isinstance(outcome, Agent):
                if outcome.is_terminal:
                    terminal[agent_id] = outcome
            elif isinstance(outcome, Exception):
                logger.warning("Fetching agent %s failed, will retry: %s", agent_id, outcome)
            else:
                raise outcome
        return terminal


def _check_durations(interval_seconds: float, timeout_seconds: float) -> None:
    if not math.isfinite(interval_seconds) or interval_seconds <= 0:
        raise ValueError(f"Poll interval must be a finite number > 0, got {interval_seconds!r}")
    if not math.isfinite(timeout_seconds) or timeout_seconds < 0:
        raise ValueError(f"Poll timeout must be a finite number >= 0, got {timeout_seconds!r}")
