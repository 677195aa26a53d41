"""Pipeline — the ordered stage chain and its control surface."""

from __future__ import annotations
import logging

from cinecdc.core import database
from cinecdc.core.config import CineSettings
from cinecdc.core.errors import UnknownStageError
from cinecdc.daemon.scheduler import add_interval_job, get_scheduler, list_jobs
from cinecdc.daemon.stages import RunOutcome, StageRunner
from cinecdc.repositories.stage_repo import StageRepository
from cinecdc.services.aggregation import AggregationStage
from cinecdc.services.enrichment import EnrichmentStage
from cinecdc.services.ingest import IngestStage
from cinecdc.transforms.rules import CategorizationRules

logger = logging.getLogger("cinecdc.pipeline")


def job_id(name: str) -> str:
    return f"stage:{name}"


class Pipeline:
    """ingest -> enrich -> aggregate.

    Downstream-triggered stages are evaluated after every run of a stage above
    them; each one runs only if its upstream output changed since it last
    consumed it (or a previous attempt failed and left it dirty).
    """

    def __init__(self, runners: list[StageRunner]):
        self.runners = runners
        self._by_name = {r.name: r for r in runners}

    @classmethod
    def from_settings(cls, settings: CineSettings) -> "Pipeline":
        rules = CategorizationRules.from_settings(settings.rules)
        stages = [
            (IngestStage(), None),
            (EnrichmentStage(rules), "ingest"),
            (AggregationStage(), "enrich"),
        ]
        runners = []
        for stage, upstream in stages:
            cfg = settings.stages[stage.name]
            runners.append(StageRunner(
                stage,
                upstream=upstream,
                trigger=cfg.trigger,
                interval_seconds=cfg.interval_seconds,
                timeout_seconds=cfg.timeout_seconds,
                batch_size=cfg.batch_size,
            ))
        return cls(runners)

    def get(self, name: str) -> StageRunner:
        runner = self._by_name.get(name)
        if runner is None:
            raise UnknownStageError(name)
        return runner

    async def tick(self, name: str, trigger: str = "scheduled", force: bool = False) -> list[RunOutcome]:
        """Run one stage, then every downstream-triggered stage below it."""
        runner = self.get(name)
        outcomes = []

        outcome = await runner.run(trigger=trigger, force=force)
        if outcome is not None:
            outcomes.append(outcome)

        for downstream in self.runners[self.runners.index(runner) + 1:]:
            if downstream.trigger != "downstream":
                continue
            outcome = await downstream.run(trigger="upstream")
            if outcome is not None:
                outcomes.append(outcome)
        return outcomes

    async def run_now(self, name: str) -> list[RunOutcome]:
        return await self.tick(name, trigger="manual", force=True)

    async def run_all(self) -> list[RunOutcome]:
        """One pass over the chain, head first."""
        return await self.tick(self.runners[0].name)

    # --- Control ---

    async def pause(self, name: str) -> dict:
        self.get(name)
        async with database.async_session_factory() as session:
            state = await StageRepository(session).get_or_create_state(name)
            state.paused = True
            await session.commit()
        logger.info(f"{name}: paused")
        return await self.describe(name)

    async def resume(self, name: str) -> dict:
        self.get(name)
        async with database.async_session_factory() as session:
            state = await StageRepository(session).get_or_create_state(name)
            if state.halted_reason:
                logger.warning(f"{name}: clearing halt ({state.halted_reason.splitlines()[0]})")
            state.paused = False
            state.halted_reason = None
            await session.commit()
        logger.info(f"{name}: resumed")
        return await self.describe(name)

    async def set_interval(self, name: str, seconds: int) -> dict:
        runner = self.get(name)
        if seconds <= 0:
            raise ValueError(f"Invalid interval: {seconds}s (must be positive)")

        async with database.async_session_factory() as session:
            state = await StageRepository(session).get_or_create_state(name)
            state.interval_seconds = seconds
            await session.commit()

        runner.interval_seconds = seconds
        if runner.trigger == "interval" and get_scheduler().running:
            add_interval_job(job_id(name), self.tick, seconds, kwargs={"name": name})
        return await self.describe(name)

    async def schedule(self) -> None:
        """Register interval jobs. A persisted interval overrides the configured one."""
        async with database.async_session_factory() as session:
            repo = StageRepository(session)
            for runner in self.runners:
                state = await repo.get_state(runner.name)
                if state is not None and state.interval_seconds:
                    runner.interval_seconds = state.interval_seconds

        for runner in self.runners:
            if runner.trigger != "interval":
                continue
            add_interval_job(
                job_id(runner.name), self.tick, runner.interval_seconds, kwargs={"name": runner.name}
            )

    # --- Observability ---

    async def describe(self, name: str) -> dict:
        runner = self.get(name)
        async with database.async_session_factory() as session:
            repo = StageRepository(session)
            state = await repo.get_state(name)
            upstream_state = await repo.get_state(runner.upstream) if runner.upstream else None

        jobs = {job["id"]: job for job in list_jobs()}
        upstream_version = upstream_state.output_version if upstream_state else 0
        consumed = state.consumed_version if state else 0
        return {
            "name": runner.name,
            "trigger": runner.trigger,
            "upstream": runner.upstream,
            "status": runner.status.value,
            "running": runner.running,
            "interval_seconds": runner.interval_seconds,
            "timeout_seconds": runner.timeout_seconds,
            "batch_size": runner.batch_size,
            "paused": state.paused if state else False,
            "halted_reason": state.halted_reason if state else None,
            "cursor": state.cursor if state else 0,
            "output_version": state.output_version if state else 0,
            "consumed_version": consumed,
            "dirty": runner.upstream is not None and upstream_version > consumed,
            "last_run_at": state.last_run_at if state else None,
            "last_outcome": state.last_outcome if state else None,
            "last_error": state.last_error if state else None,
            "last_rows_in": state.last_rows_in if state else 0,
            "last_rows_out": state.last_rows_out if state else 0,
            "consecutive_failures": state.consecutive_failures if state else 0,
            "next_run": jobs.get(job_id(name), {}).get("next_run"),
        }

    async def status(self) -> list[dict]:
        return [await self.describe(r.name) for r in self.runners]


_pipeline: Pipeline | None = None


def set_pipeline(pipeline: Pipeline | None):
    global _pipeline
    _pipeline = pipeline


def get_pipeline() -> Pipeline | None:
    return _pipeline
