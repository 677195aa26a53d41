"""Enriched booking repository."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cinecdc.models.enriched import EnrichedBooking


class EnrichedRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, booking_id: str) -> EnrichedBooking | None:
        return await self.session.get(EnrichedBooking, booking_id)

    async def get_many(self, booking_ids: list[str]) -> dict[str, EnrichedBooking]:
        if not booking_ids:
            return {}
        result = await self.session.execute(
            select(EnrichedBooking).where(EnrichedBooking.booking_id.in_(booking_ids))
        )
        return {row.booking_id: row for row in result.scalars().all()}

    async def upsert(self, existing: EnrichedBooking | None, **fields) -> EnrichedBooking:
        if existing is None:
            existing = EnrichedBooking(**fields)
            self.session.add(existing)
        else:
            for key, value in fields.items():
                setattr(existing, key, value)
        await self.session.flush()
        return existing

    async def list_by_movie(self, movie_id: str) -> list[EnrichedBooking]:
        result = await self.session.execute(
            select(EnrichedBooking)
            .where(EnrichedBooking.movie_id == movie_id)
            .order_by(EnrichedBooking.booking_id)
        )
        return list(result.scalars().all())

    async def list_refreshed_after(self, version: int, limit: int | None = None) -> list[EnrichedBooking]:
        query = (
            select(EnrichedBooking)
            .where(EnrichedBooking.refresh_version > version)
            .order_by(EnrichedBooking.refresh_version, EnrichedBooking.booking_id)
        )
        if limit is not None:
            query = query.limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())
