"""Change capture log — applies source mutations and records them in order."""

from __future__ import annotations
import asyncio
import logging
import weakref
import zlib

from sqlalchemy.ext.asyncio import AsyncSession

from cinecdc.core.clock import as_naive_utc, utcnow
from cinecdc.core.errors import BookingConflictError, BookingNotFoundError
from cinecdc.models.booking import Booking, BookingStatus, snapshot_of
from cinecdc.models.change import BookingChange, ChangeAction
from cinecdc.repositories.booking_repo import BookingRepository, ChangeRepository
from cinecdc.schemas.booking import BookingMutation, MutationKind
from cinecdc.transforms.rules import derive_total_amount

logger = logging.getLogger("cinecdc.capture")

SOURCE_FIELDS = ("customer_id", "movie_id", "booking_date", "status", "ticket_count", "ticket_price")

# One writer per shard keeps per-booking capture order. The append lock makes
# seq assignment and commit a single step, so seqs become visible in order.
_locks: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, dict[int | str, asyncio.Lock]]" = (
    weakref.WeakKeyDictionary()
)
APPEND = "append"


def shard_for(booking_id: str, shards: int) -> int:
    return zlib.crc32(booking_id.encode("utf-8")) % max(shards, 1)


def _lock(key: int | str) -> asyncio.Lock:
    locks = _locks.setdefault(asyncio.get_running_loop(), {})
    lock = locks.get(key)
    if lock is None:
        lock = locks[key] = asyncio.Lock()
    return lock


def _normalize(changes: dict) -> dict:
    fields = {k: v for k, v in changes.items() if k in SOURCE_FIELDS}
    if "status" in fields and fields["status"] is not None:
        fields["status"] = BookingStatus(fields["status"]).value
    if "booking_date" in fields:
        fields["booking_date"] = as_naive_utc(fields["booking_date"])
    return fields


class CaptureLog:
    """Ordered log of row-level mutations to the bookings table.

    capture() commits the source mutation and its change record together.
    drain() is a pure read, so repeating it with the same cursor returns the
    same changes; consumers dedupe on seq.
    """

    def __init__(self, session: AsyncSession, shards: int = 8):
        self.session = session
        self.shards = shards
        self.bookings = BookingRepository(session)
        self.changes = ChangeRepository(session)

    async def capture(self, mutation: BookingMutation) -> BookingChange:
        async with _lock(shard_for(mutation.booking_id, self.shards)), _lock(APPEND):
            try:
                change = await self._apply(mutation)
                await self.session.commit()
            except Exception:
                await self.session.rollback()
                raise
        logger.debug(f"Captured {change.action} for {change.booking_id} at seq={change.seq}")
        return change

    async def _apply(self, mutation: BookingMutation) -> BookingChange:
        now = utcnow()
        existing = await self.bookings.get(mutation.booking_id)
        fields = _normalize(mutation.changes)
        reported_total = mutation.changes.get("total_amount")

        if mutation.kind == MutationKind.CREATE:
            if existing is not None:
                raise BookingConflictError(mutation.booking_id)
            fields.setdefault("status", BookingStatus.BOOKED.value)
            if fields.get("booking_date") is None:
                fields["booking_date"] = now
            booking = await self.bookings.add(
                booking_id=mutation.booking_id, created_at=now, updated_at=now, **fields
            )
            return await self._record(booking, ChangeAction.INSERT, reported_total, now)

        if existing is None:
            raise BookingNotFoundError(mutation.booking_id)

        if mutation.kind == MutationKind.UPDATE:
            booking = await self.bookings.update(existing, updated_at=now, **fields)
            return await self._record(booking, ChangeAction.UPDATE, reported_total, now)

        # Delete: the change carries the pre-delete row
        change = await self._record(existing, ChangeAction.DELETE, None, now)
        await self.bookings.delete(existing)
        return change

    async def _record(self, booking: Booking, action: ChangeAction, reported_total, now) -> BookingChange:
        snapshot = snapshot_of(booking)
        snapshot["total_amount"] = (
            reported_total
            if reported_total is not None
            else derive_total_amount(booking.ticket_count, booking.ticket_price)
        )
        return await self.changes.append(
            **snapshot,
            action=action.value,
            is_update=action == ChangeAction.UPDATE,
            captured_at=now,
        )

    async def drain(self, cursor: int = 0, limit: int | None = None) -> tuple[list[BookingChange], int]:
        """Changes after cursor in capture order, and the cursor to resume from."""
        changes = await self.changes.list_after(cursor, limit=limit)
        new_cursor = changes[-1].seq if changes else cursor
        return changes, new_cursor
