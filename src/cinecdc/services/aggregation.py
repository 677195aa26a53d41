"""Aggregation stage — maintains per-movie insights, recomputing only affected movies."""

from __future__ import annotations
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from cinecdc.core.clock import utcnow
from cinecdc.repositories.enriched_repo import EnrichedRepository
from cinecdc.repositories.insight_repo import InsightRepository
from cinecdc.services.base import StageContext, StageResult
from cinecdc.transforms.metrics import compute_movie_insight

logger = logging.getLogger("cinecdc.stages.aggregate")


class AggregationStage:
    name = "aggregate"

    async def process(self, session: AsyncSession, ctx: StageContext) -> StageResult:
        enriched = EnrichedRepository(session)
        insights = InsightRepository(session)
        now = ctx.now or utcnow()

        # A refresh_version is written whole by one enrich commit, so no limit here
        changed = await enriched.list_refreshed_after(ctx.cursor)
        if not changed:
            return StageResult(cursor=ctx.cursor)

        affected: set[str] = set()
        for row in changed:
            membership = await insights.get_membership(row.booking_id)
            if membership is not None and membership.movie_id is not None:
                affected.add(membership.movie_id)
            if row.movie_id is not None:
                affected.add(row.movie_id)
            await insights.set_membership(row.booking_id, row.movie_id, row.refresh_version)

        written = removed = 0
        for movie_id in sorted(affected):
            rows = await enriched.list_by_movie(movie_id)
            if not rows:
                removed += await insights.delete(movie_id)
                continue
            fields = compute_movie_insight(movie_id, rows)
            fields.pop("movie_id")
            await insights.upsert(movie_id, **fields, refresh_version=ctx.version, refreshed_at=now)
            written += 1

        logger.debug(f"Recomputed {written} movie(s), removed {removed}")
        return StageResult(
            cursor=max(row.refresh_version for row in changed),
            rows_in=len(changed),
            rows_out=written + removed,
            changed=bool(affected),
            metadata={"movies": sorted(affected)},
        )
