"""Stage runner — executes one stage run and commits its output atomically."""

from __future__ import annotations
import asyncio
import logging
import traceback
from datetime import datetime

from cinecdc.core import database
from cinecdc.core.clock import utcnow
from cinecdc.core.errors import FatalConfigurationError, TransientStageError
from cinecdc.models.stage import StageStatus
from cinecdc.repositories.stage_repo import StageRepository
from cinecdc.services.base import Stage, StageContext, StageResult

logger = logging.getLogger("cinecdc.stages")


class RunOutcome:
    def __init__(self, stage_name: str, trigger: str):
        self.stage_name = stage_name
        self.trigger = trigger
        self.status: str = StageStatus.RUNNING.value
        self.started_at: datetime | None = None
        self.finished_at: datetime | None = None
        self.duration_ms: int | None = None
        self.result: StageResult | None = None
        self.error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == StageStatus.SUCCEEDED.value

    @property
    def changed(self) -> bool:
        return self.succeeded and self.result is not None and self.result.changed


class StageRunner:
    """State machine for one stage: IDLE -> RUNNING -> SUCCEEDED | FAILED -> IDLE.

    A failed run rolls back, so the last committed output and cursor stay in
    place and the same input is retried on the next tick. Downstream stages
    only run when the upstream output_version moved past what they consumed.
    """

    def __init__(
        self,
        stage: Stage,
        upstream: str | None = None,
        trigger: str = "interval",
        interval_seconds: int = 60,
        timeout_seconds: int = 300,
        batch_size: int = 1000,
    ):
        self.stage = stage
        self.name = stage.name
        self.upstream = upstream
        self.trigger = trigger
        self.interval_seconds = interval_seconds
        self.timeout_seconds = timeout_seconds
        self.batch_size = batch_size
        self.status = StageStatus.IDLE
        self.last_outcome: StageStatus | None = None
        self._lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._lock.locked()

    async def run(self, trigger: str = "scheduled", force: bool = False) -> RunOutcome | None:
        """Run the stage once. Returns None when the run was skipped."""
        if self._lock.locked():
            logger.debug(f"{self.name}: previous run still in progress, skipping")
            return None

        async with self._lock:
            try:
                return await self._run(trigger, force)
            finally:
                self.status = StageStatus.IDLE

    async def _run(self, trigger: str, force: bool) -> RunOutcome | None:
        outcome = RunOutcome(self.name, trigger)

        async with database.async_session_factory() as session:
            repo = StageRepository(session)
            state = await repo.get_or_create_state(self.name)

            if not force and (state.paused or state.halted_reason):
                logger.debug(f"{self.name}: paused or halted, skipping")
                return None

            upstream_version = 0
            if self.upstream is not None:
                upstream_state = await repo.get_state(self.upstream)
                upstream_version = upstream_state.output_version if upstream_state else 0
                dirty = upstream_version > state.consumed_version
                if self.trigger == "downstream" and not force and not dirty:
                    logger.debug(f"{self.name}: upstream unchanged, skipping")
                    return None

            cursor_before = state.cursor
            ctx = StageContext(
                cursor=state.cursor,
                version=state.output_version + 1,
                upstream_version=upstream_version,
                batch_size=self.batch_size,
                now=utcnow(),
            )
            await session.commit()

            self.status = StageStatus.RUNNING
            outcome.started_at = utcnow()
            try:
                result = await asyncio.wait_for(
                    self.stage.process(session, ctx),
                    timeout=self.timeout_seconds,
                )
                outcome.result = result
                outcome.status = StageStatus.SUCCEEDED.value
                self._finish(outcome)

                state.cursor = result.cursor
                if result.changed:
                    state.output_version = ctx.version
                if not result.has_more:
                    state.consumed_version = upstream_version
                state.last_outcome = outcome.status
                state.last_error = None
                state.consecutive_failures = 0
                self._record_counts(state, outcome)
                await repo.add_run(**self._run_fields(outcome, cursor_before))
                await session.commit()

            except FatalConfigurationError as e:
                await session.rollback()
                outcome.status = StageStatus.FAILED.value
                outcome.error = f"{type(e).__name__}: {e}"
                self._finish(outcome)
                logger.error(f"{self.name}: halted by configuration error: {e}")
                await self._record_failure(outcome, cursor_before, halt=True)

            except Exception as e:
                await session.rollback()
                if isinstance(e, asyncio.TimeoutError):
                    e = TransientStageError(f"timed out after {self.timeout_seconds}s")
                outcome.status = StageStatus.FAILED.value
                outcome.error = f"{type(e).__name__}: {e}\n{traceback.format_exc()}"
                self._finish(outcome)
                logger.error(f"{self.name}: run failed, will retry next tick: {type(e).__name__}: {e}")
                await self._record_failure(outcome, cursor_before, halt=False)

        self.status = StageStatus(outcome.status)
        self.last_outcome = self.status
        if outcome.succeeded:
            r = outcome.result
            logger.info(
                f"{self.name}: succeeded ({outcome.duration_ms}ms, in={r.rows_in}, out={r.rows_out})"
            )
        return outcome

    async def _record_failure(self, outcome: RunOutcome, cursor_before: int, halt: bool) -> None:
        async with database.async_session_factory() as session:
            repo = StageRepository(session)
            state = await repo.get_or_create_state(self.name)
            state.last_outcome = outcome.status
            state.last_error = outcome.error
            state.consecutive_failures += 1
            if halt:
                state.halted_reason = outcome.error
            self._record_counts(state, outcome)
            await repo.add_run(**self._run_fields(outcome, cursor_before))
            await session.commit()

    def _finish(self, outcome: RunOutcome) -> None:
        outcome.finished_at = utcnow()
        outcome.duration_ms = int((outcome.finished_at - outcome.started_at).total_seconds() * 1000)

    def _record_counts(self, state, outcome: RunOutcome) -> None:
        state.last_run_at = outcome.finished_at
        state.last_rows_in = outcome.result.rows_in if outcome.result else 0
        state.last_rows_out = outcome.result.rows_out if outcome.result else 0

    def _run_fields(self, outcome: RunOutcome, cursor_before: int) -> dict:
        return {
            "stage_name": self.name,
            "status": outcome.status,
            "trigger": outcome.trigger,
            "started_at": outcome.started_at,
            "finished_at": outcome.finished_at,
            "duration_ms": outcome.duration_ms,
            "rows_in": outcome.result.rows_in if outcome.result else 0,
            "rows_out": outcome.result.rows_out if outcome.result else 0,
            "cursor_before": cursor_before,
            "cursor_after": outcome.result.cursor if outcome.result else cursor_before,
            "error": outcome.error,
        }
