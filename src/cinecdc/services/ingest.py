"""Ingest stage — drains the capture log into the event store."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from cinecdc.services.base import StageContext, StageResult
from cinecdc.services.capture_log import CaptureLog
from cinecdc.services.event_store import EventStore


class IngestStage:
    name = "ingest"

    async def process(self, session: AsyncSession, ctx: StageContext) -> StageResult:
        changes, cursor = await CaptureLog(session).drain(ctx.cursor, limit=ctx.batch_size)
        events = await EventStore(session).append(changes)
        return StageResult(
            cursor=cursor,
            rows_in=len(changes),
            rows_out=len(events),
            changed=bool(events),
            has_more=len(changes) == ctx.batch_size,
        )
