"""Source booking table and capture log — data access layer."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cinecdc.models.booking import Booking
from cinecdc.models.change import BookingChange


class BookingRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, booking_id: str) -> Booking | None:
        return await self.session.get(Booking, booking_id)

    async def add(self, **kwargs) -> Booking:
        booking = Booking(**kwargs)
        self.session.add(booking)
        await self.session.flush()
        return booking

    async def update(self, booking: Booking, **kwargs) -> Booking:
        for key, value in kwargs.items():
            setattr(booking, key, value)
        await self.session.flush()
        return booking

    async def delete(self, booking: Booking) -> None:
        await self.session.delete(booking)
        await self.session.flush()


class ChangeRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def append(self, **kwargs) -> BookingChange:
        change = BookingChange(**kwargs)
        self.session.add(change)
        await self.session.flush()
        return change

    async def list_after(self, cursor: int, limit: int | None = None) -> list[BookingChange]:
        query = select(BookingChange).where(BookingChange.seq > cursor).order_by(BookingChange.seq)
        if limit is not None:
            query = query.limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_for_booking(self, booking_id: str) -> list[BookingChange]:
        result = await self.session.execute(
            select(BookingChange)
            .where(BookingChange.booking_id == booking_id)
            .order_by(BookingChange.seq)
        )
        return list(result.scalars().all())
