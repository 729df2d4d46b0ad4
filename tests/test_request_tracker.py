import asyncio
import time

from fakes import FakePage, FakeRequest
from replayer.request_tracker import RequestTracker


def test_counts_only_xhr_and_fetch_and_floors_at_zero():
    tracker = RequestTracker()
    page = FakePage()
    tracker.track("p1", page)

    page.emit("request", FakeRequest("xhr"))
    page.emit("request", FakeRequest("fetch"))
    page.emit("request", FakeRequest("image"))
    assert tracker.pending("p1") == 2

    page.emit("requestfinished", FakeRequest("xhr"))
    page.emit("requestfailed", FakeRequest("fetch"))
    page.emit("requestfinished", FakeRequest("fetch"))
    assert tracker.pending("p1") == 0


def test_forget_detaches_listeners():
    tracker = RequestTracker()
    page = FakePage()
    tracker.track("p1", page)

    tracker.forget("p1", page)
    page.emit("request", FakeRequest("xhr"))

    assert tracker.pending("p1") == 0
    assert page.handlers["request"] == []


def test_returns_after_idle_window():
    tracker = RequestTracker(poll_interval_ms=10)
    tracker.increment("p1")

    async def scenario():
        async def finish_later():
            await asyncio.sleep(0.1)
            tracker.decrement("p1")

        task = asyncio.create_task(finish_later())
        started = time.monotonic()
        idle = await tracker.wait_for_app_idle("p1", timeout_ms=1000, idle_window_ms=200)
        await task
        return idle, time.monotonic() - started

    idle, elapsed = asyncio.run(scenario())

    assert idle is True
    assert 0.3 <= elapsed < 0.9


def test_returns_at_timeout_while_requests_pending():
    tracker = RequestTracker(poll_interval_ms=10)
    tracker.increment("p1")

    started = time.monotonic()
    idle = asyncio.run(tracker.wait_for_app_idle("p1", timeout_ms=1000, idle_window_ms=200))
    elapsed = time.monotonic() - started

    assert idle is False
    assert 1.0 <= elapsed < 1.5
