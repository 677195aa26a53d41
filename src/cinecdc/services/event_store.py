"""CDC event store — append-only bronze table fed from the capture log."""

from __future__ import annotations
from datetime import datetime
from typing import AsyncIterator, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from cinecdc.core.clock import utcnow
from cinecdc.models.booking import snapshot_of
from cinecdc.models.change import BookingCdcEvent, BookingChange, ChangeAction
from cinecdc.repositories.event_repo import EventRepository


class EventStore:
    """Persists drained changes with their change metadata.

    Rows are never updated or deleted. Appends do not commit; the caller's
    unit of work does.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.repo = EventRepository(session)

    async def append(self, changes: Sequence[BookingChange]) -> list[BookingCdcEvent]:
        """Store changes not seen before, in seq order. Returns the new events."""
        seen = await self.repo.existing_seqs([c.seq for c in changes])
        now = utcnow()
        events = []
        for change in sorted(changes, key=lambda c: c.seq):
            if change.seq in seen:
                continue
            seen.add(change.seq)
            events.append(
                BookingCdcEvent(
                    **snapshot_of(change),
                    source_seq=change.seq,
                    change_action=change.action,
                    is_update=change.action == ChangeAction.UPDATE.value,
                    change_timestamp=change.captured_at or now,
                    appended_at=now,
                )
            )
        if events:
            await self.repo.add_all(events)
        return events

    async def scan_since(
        self,
        timestamp: datetime | None = None,
        batch_size: int = 500,
    ) -> AsyncIterator[BookingCdcEvent]:
        """Events after timestamp ordered by change_timestamp, fetched a page at a time.

        Each call starts over from timestamp, so an interrupted scan is
        restarted by calling again with the last change_timestamp consumed.
        """
        after = None
        while True:
            page = await self.repo.page_since(timestamp, after, batch_size)
            for event in page:
                yield event
            if len(page) < batch_size:
                return
            last = page[-1]
            after = (last.change_timestamp, last.id)

    async def list_after(self, event_id: int, limit: int | None = None) -> list[BookingCdcEvent]:
        return await self.repo.list_after(event_id, limit=limit)
