"""Enrichment stage — maintains the current enriched row per booking."""

from __future__ import annotations
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from cinecdc.core.clock import utcnow
from cinecdc.models.booking import snapshot_of
from cinecdc.models.change import BookingCdcEvent
from cinecdc.models.enriched import EnrichedBooking
from cinecdc.repositories.enriched_repo import EnrichedRepository
from cinecdc.services.base import StageContext, StageResult
from cinecdc.services.event_store import EventStore
from cinecdc.transforms.rules import CategorizationRules, enrich

logger = logging.getLogger("cinecdc.stages.enrich")


def _version(row: BookingCdcEvent | EnrichedBooking) -> tuple:
    return (row.change_timestamp, row.source_seq)


def latest_per_booking(events: list[BookingCdcEvent]) -> dict[str, BookingCdcEvent]:
    """Last write wins by (change_timestamp, source_seq)."""
    latest: dict[str, BookingCdcEvent] = {}
    for event in events:
        current = latest.get(event.booking_id)
        if current is None or _version(event) > _version(current):
            latest[event.booking_id] = event
    return latest


class EnrichmentStage:
    """Incremental: only bookings with a newer event than their memo row are recomputed."""

    name = "enrich"

    def __init__(self, rules: CategorizationRules | None = None):
        self.rules = rules or CategorizationRules()

    async def process(self, session: AsyncSession, ctx: StageContext) -> StageResult:
        self.rules.check()
        now = ctx.now or utcnow()

        events = await EventStore(session).list_after(ctx.cursor, limit=ctx.batch_size)
        if not events:
            return StageResult(cursor=ctx.cursor)

        repo = EnrichedRepository(session)
        latest = latest_per_booking(events)
        memo = await repo.get_many(list(latest))

        recomputed = reused = invalid = 0
        for booking_id, event in latest.items():
            existing = memo.get(booking_id)
            if existing is not None and _version(existing) >= _version(event):
                reused += 1
                continue

            # Validity is relative to capture time
            derived = enrich(event, self.rules, now=event.change_timestamp)
            if not derived["is_valid_booking"]:
                invalid += 1
            await repo.upsert(
                existing,
                **snapshot_of(event),
                change_action=event.change_action,
                is_update=event.is_update,
                change_timestamp=event.change_timestamp,
                source_event_id=event.id,
                source_seq=event.source_seq,
                refresh_version=ctx.version,
                refreshed_at=now,
                **derived,
            )
            recomputed += 1

        if invalid:
            logger.info(f"{invalid} invalid booking(s) flagged")
        return StageResult(
            cursor=events[-1].id,
            rows_in=len(events),
            rows_out=recomputed,
            changed=recomputed > 0,
            has_more=len(events) == ctx.batch_size,
            metadata={"reused": reused},
        )
