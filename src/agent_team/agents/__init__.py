"""Cloud agent client, poller, and team coordination.

Every remote agent is an opaque job owned by the remote service: this package
never schedules work itself, it only launches agents, observes their status
and reports on them. The one piece with real control logic is
``poller.AgentPoller.wait_for_agents``: it tracks many in-flight agents at once,
fetches the still-pending ones concurrently on every tick, and tolerates
per-agent fetch failures so one flaky agent never hides the state of the
others.
"""
