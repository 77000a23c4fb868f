import asyncio

from tsetmc_excel.schemas.market import BatchResult, TickOutcome
from tsetmc_excel.services.scheduler.poller import Poller


class FakeOrchestrator:
    def __init__(self, duration: float = 0.0, fail: bool = False):
        self.duration = duration
        self.fail = fail
        self.ticks: list[int] = []
        self.finished: list[int] = []

    async def run_tick(self, tick: int = 0) -> BatchResult:
        self.ticks.append(tick)
        await asyncio.sleep(self.duration)
        if self.fail:
            raise RuntimeError("unexpected")
        self.finished.append(tick)
        return BatchResult(tick=tick, batch_id=tick, outcome=TickOutcome.COMMITTED)


async def _run_for(poller: Poller, seconds: float) -> None:
    stop_event = asyncio.Event()
    asyncio.get_running_loop().call_later(seconds, stop_event.set)
    await poller.run(stop_event)


def test_one_tick_per_interval():
    orchestrator = FakeOrchestrator()
    results = []
    poller = Poller(orchestrator, interval=0.05, on_result=results.append)

    asyncio.run(_run_for(poller, 0.22))

    assert 3 <= len(orchestrator.ticks) <= 6
    assert orchestrator.ticks == list(range(1, len(orchestrator.ticks) + 1))
    assert [r.tick for r in results] == orchestrator.finished


def test_busy_tick_causes_next_to_be_skipped():
    orchestrator = FakeOrchestrator(duration=0.12)
    poller = Poller(orchestrator, interval=0.05)

    asyncio.run(_run_for(poller, 0.3))

    assert poller.ticks_skipped >= 2
    assert poller.ticks_started == len(orchestrator.ticks)
    assert len(orchestrator.ticks) < 4


def test_stop_waits_for_running_tick():
    orchestrator = FakeOrchestrator(duration=0.2)
    poller = Poller(orchestrator, interval=5)

    asyncio.run(_run_for(poller, 0.02))

    assert orchestrator.ticks == [1]
    assert orchestrator.finished == [1]


def test_stop_before_start_runs_nothing():
    orchestrator = FakeOrchestrator()
    poller = Poller(orchestrator, interval=0.01)

    async def scenario():
        stop_event = asyncio.Event()
        stop_event.set()
        await poller.run(stop_event)

    asyncio.run(scenario())

    assert orchestrator.ticks == []


def test_failing_tick_does_not_stop_loop():
    orchestrator = FakeOrchestrator(fail=True)
    results = []
    poller = Poller(orchestrator, interval=0.03, on_result=results.append)

    asyncio.run(_run_for(poller, 0.15))

    assert len(orchestrator.ticks) >= 2
    assert results == []


def test_failing_result_callback_is_contained():
    orchestrator = FakeOrchestrator()

    def broken_callback(result):
        raise ValueError("callback failed")

    poller = Poller(orchestrator, interval=0.03, on_result=broken_callback)

    async def scenario():
        await _run_for(poller, 0.1)
        return poller._current

    last_task = asyncio.run(scenario())

    assert len(orchestrator.finished) >= 2
    assert last_task.exception() is None
    assert last_task.result() is None
