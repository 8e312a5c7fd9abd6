import asyncio

from radio_metadata_parser.core.config import ConfigStore
from radio_metadata_parser.core.scheduler import RequestScheduler


def make_scheduler(config):
    fired = []
    scheduler = RequestScheduler(ConfigStore(config), lambda: fired.append(True))
    return scheduler, fired


def test_queue_request_fires_once():
    async def scenario():
        scheduler, fired = make_scheduler({"url": "http://example.test/"})
        task = scheduler.queue_request()
        assert task.delay == 0
        assert task.pending
        await asyncio.sleep(0.01)
        return task, fired

    task, fired = asyncio.run(scenario())
    assert fired == [True]
    assert task.fired
    assert not task.pending


def test_next_request_uses_given_delay():
    async def scenario():
        scheduler, _ = make_scheduler({"url": "http://example.test/"})
        loop = asyncio.get_running_loop()
        task = scheduler.queue_next_request(5, reason="metadata")
        remaining = task.when() - loop.time()
        scheduler.cancel()
        return task, remaining

    task, remaining = asyncio.run(scenario())
    assert task.delay == 5
    assert task.reason == "metadata"
    assert 4.9 < remaining <= 5
    assert task.cancelled


def test_next_request_is_gated_by_auto_update_and_keep_listen():
    async def scenario():
        results = []
        for config in ({"auto_update": False}, {"keep_listen": True}, {"auto_update": False, "keep_listen": True}):
            scheduler, _ = make_scheduler(config)
            results.append(scheduler.queue_next_request(5))
            results.append(scheduler.pending)
        return results

    assert asyncio.run(scenario()) == [None, []] * 3


def test_falsy_delay_falls_back_to_error_interval():
    async def scenario():
        scheduler, _ = make_scheduler({"error_interval": 42})
        task = scheduler.queue_next_request(0)
        scheduler.cancel()
        return task

    assert asyncio.run(scenario()).delay == 42


def test_retry_ignores_keep_listen():
    async def scenario():
        scheduler, _ = make_scheduler({"keep_listen": True, "auto_update": False, "error_interval": 9})
        task = scheduler.queue_retry()
        scheduler.cancel()
        return task

    task = asyncio.run(scenario())
    assert task.delay == 9
    assert task.reason == "error"


def test_cancel_stops_pending_tasks():
    async def scenario():
        scheduler, fired = make_scheduler({})
        scheduler.queue_request(0.01)
        scheduler.queue_request(0.02)
        cancelled = scheduler.cancel()
        await asyncio.sleep(0.05)
        return cancelled, fired, scheduler.pending

    cancelled, fired, pending = asyncio.run(scenario())
    assert cancelled == 2
    assert fired == []
    assert pending == []


def test_fired_tasks_are_not_retained():
    async def scenario():
        scheduler, fired = make_scheduler({})
        for _ in range(1000):
            scheduler.queue_request(0)
        await asyncio.sleep(0.05)
        return scheduler, fired

    scheduler, fired = asyncio.run(scenario())
    assert len(fired) == 1000
    assert scheduler._tasks == []
    assert scheduler.last.fired


def test_directly_cancelled_tasks_are_dropped_on_next_queue():
    async def scenario():
        scheduler, _ = make_scheduler({})
        first = scheduler.queue_request(100)
        first.cancel()
        second = scheduler.queue_request(100)
        tracked = list(scheduler._tasks)
        scheduler.cancel()
        return second, tracked

    second, tracked = asyncio.run(scenario())
    assert tracked == [second]
