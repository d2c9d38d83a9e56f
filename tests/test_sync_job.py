import pytest
from apscheduler.triggers.interval import IntervalTrigger

from smartsupply.core.config import Settings
from smartsupply.services.customer_cache import CustomerCache
from smartsupply.services.sync_job import (
    SYNC_JOB_ID,
    build_sync_scheduler,
    run_sync_check,
    should_sync,
)

from conftest import START_TIME

MAX_AGE = 300


@pytest.mark.parametrize(
    "last_sync, now, expected",
    [
        (None, START_TIME, True),
        (START_TIME, START_TIME, False),
        (START_TIME, START_TIME + MAX_AGE, False),
        (START_TIME, START_TIME + MAX_AGE + 1, True),
    ],
)
def test_should_sync(last_sync, now, expected):
    assert should_sync(last_sync, now, MAX_AGE) is expected


class TestRunSyncCheck:
    async def test_never_synced_triggers_sync(self, cache, directory_stub, clock):
        assert await run_sync_check(cache, MAX_AGE, clock) is True
        assert directory_stub.count("GET", "/customers") == 1
        assert len(cache.customers) == 3

    async def test_recent_sync_is_left_alone(self, cache, directory_stub, clock):
        await cache.sync_customers()
        clock.advance(60)

        assert await run_sync_check(cache, MAX_AGE, clock) is False
        assert directory_stub.count("GET", "/customers") == 1

    async def test_stale_cache_is_resynced(self, cache, directory_stub, clock):
        await cache.sync_customers()
        clock.advance(MAX_AGE + 1)

        assert await run_sync_check(cache, MAX_AGE, clock) is True
        assert directory_stub.count("GET", "/customers") == 2

    async def test_skipped_while_loading(self, directory, settings, directory_stub, clock):
        unstarted = CustomerCache(directory, None, settings, clock=clock)

        assert await run_sync_check(unstarted, MAX_AGE, clock) is False
        assert directory_stub.count("GET", "/customers") == 0

    async def test_failure_is_logged_not_raised(self, cache, directory_stub, clock, caplog):
        directory_stub.fail = True

        assert await run_sync_check(cache, MAX_AGE, clock) is False
        assert "Background customer sync failed" in caplog.text
        assert cache.customers == []


class TestScheduler:
    def test_single_interval_job(self):
        cache = object()
        settings = Settings(sync_check_interval_seconds=45, sync_max_age_seconds=120)

        scheduler = build_sync_scheduler(cache, settings)

        [job] = scheduler.get_jobs()
        assert job.id == SYNC_JOB_ID
        assert isinstance(job.trigger, IntervalTrigger)
        assert job.trigger.interval.total_seconds() == 45
        assert job.args == (cache, 120)
        assert scheduler.running is False
