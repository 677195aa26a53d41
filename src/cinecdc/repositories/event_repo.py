"""CDC event store repository."""

from datetime import datetime

from sqlalchemy import select, and_, or_
from sqlalchemy.ext.asyncio import AsyncSession

from cinecdc.models.change import BookingCdcEvent


class EventRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def add_all(self, events: list[BookingCdcEvent]) -> list[BookingCdcEvent]:
        self.session.add_all(events)
        await self.session.flush()
        return events

    async def existing_seqs(self, seqs: list[int]) -> set[int]:
        if not seqs:
            return set()
        result = await self.session.execute(
            select(BookingCdcEvent.source_seq).where(BookingCdcEvent.source_seq.in_(seqs))
        )
        return set(result.scalars().all())

    async def list_after(self, event_id: int, limit: int | None = None) -> list[BookingCdcEvent]:
        query = select(BookingCdcEvent).where(BookingCdcEvent.id > event_id).order_by(BookingCdcEvent.id)
        if limit is not None:
            query = query.limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def page_since(
        self,
        since: datetime | None,
        after: tuple[datetime, int] | None,
        limit: int,
    ) -> list[BookingCdcEvent]:
        """One keyset page ordered by (change_timestamp, id)."""
        query = select(BookingCdcEvent)
        if since is not None:
            query = query.where(BookingCdcEvent.change_timestamp > since)
        if after is not None:
            ts, last_id = after
            query = query.where(
                or_(
                    BookingCdcEvent.change_timestamp > ts,
                    and_(BookingCdcEvent.change_timestamp == ts, BookingCdcEvent.id > last_id),
                )
            )
        query = query.order_by(BookingCdcEvent.change_timestamp, BookingCdcEvent.id).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

