"""Tests for the scheduler module."""

import pytest
from cinecdc.daemon.scheduler import (
    get_scheduler, start_scheduler, stop_scheduler,
    add_interval_job, remove_job, list_jobs,
)
import cinecdc.daemon.scheduler as sched_module


@pytest.fixture(autouse=True)
def reset_scheduler():
    """Reset the global scheduler between tests."""
    sched_module._scheduler = None
    yield
    if sched_module._scheduler and sched_module._scheduler.running:
        sched_module._scheduler.shutdown(wait=False)
    sched_module._scheduler = None


async def dummy(**kwargs):
    pass


class TestScheduler:
    @pytest.mark.asyncio
    async def test_start_stop(self):
        start_scheduler()
        assert get_scheduler().running
        stop_scheduler()

    @pytest.mark.asyncio
    async def test_add_interval_job(self):
        start_scheduler()
        add_interval_job("stage:ingest", dummy, seconds=60, kwargs={"name": "ingest"})
        jobs = list_jobs()
        assert len(jobs) == 1
        assert jobs[0]["id"] == "stage:ingest"
        assert jobs[0]["next_run"] is not None
        stop_scheduler()

    @pytest.mark.asyncio
    async def test_replace_existing(self):
        start_scheduler()
        add_interval_job("stage:ingest", dummy, seconds=60)
        add_interval_job("stage:ingest", dummy, seconds=10)
        jobs = list_jobs()
        assert len(jobs) == 1
        assert "0:00:10" in jobs[0]["trigger"]
        stop_scheduler()

    @pytest.mark.asyncio
    async def test_remove_job(self):
        start_scheduler()
        add_interval_job("removable", dummy, seconds=60)
        remove_job("removable")
        assert list_jobs() == []
        stop_scheduler()

    @pytest.mark.asyncio
    async def test_remove_nonexistent_job(self):
        start_scheduler()
        remove_job("nonexistent")  # Should not raise
        stop_scheduler()

    def test_invalid_interval(self):
        with pytest.raises(ValueError):
            add_interval_job("bad", dummy, seconds=0)


class TestPipelineSchedule:
    @pytest.mark.asyncio
    async def test_only_interval_stages_are_scheduled(self, pipeline):
        start_scheduler()
        await pipeline.schedule()
        assert [j["id"] for j in list_jobs()] == ["stage:ingest"]
        stop_scheduler()

    @pytest.mark.asyncio
    async def test_persisted_interval_wins(self, pipeline):
        await pipeline.set_interval("ingest", 5)
        pipeline.get("ingest").interval_seconds = 60

        start_scheduler()
        await pipeline.schedule()
        assert pipeline.get("ingest").interval_seconds == 5
        assert "0:00:05" in list_jobs()[0]["trigger"]
        stop_scheduler()
