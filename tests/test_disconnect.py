import asyncio

import pytest

from stopplan.api.routes import plan as plan_route
from stopplan.api.routes.plan import ClientDisconnected, run_until_disconnect


class StubRequest:
    def __init__(self, disconnected: bool) -> None:
        self.disconnected = disconnected
        self.polls = 0

    async def is_disconnected(self) -> bool:
        self.polls += 1
        return self.disconnected


def test_disconnect_cancels_planning_task(monkeypatch) -> None:
    monkeypatch.setattr(plan_route, "DISCONNECT_POLL_SECONDS", 0.01)
    state = {"cancelled": False}

    async def slow_plan():
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            state["cancelled"] = True
            raise

    async def main():
        with pytest.raises(ClientDisconnected):
            await run_until_disconnect(StubRequest(disconnected=True), slow_plan())
        # Let the cancelled task unwind.
        await asyncio.sleep(0)

    asyncio.run(main())

    assert state["cancelled"]


def test_connected_client_gets_the_result(monkeypatch) -> None:
    monkeypatch.setattr(plan_route, "DISCONNECT_POLL_SECONDS", 0.01)
    request = StubRequest(disconnected=False)

    async def quick_plan():
        await asyncio.sleep(0.05)
        return "plan"

    assert asyncio.run(run_until_disconnect(request, quick_plan())) == "plan"
    assert request.polls >= 1
