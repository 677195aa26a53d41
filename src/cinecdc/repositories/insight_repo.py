"""Movie insight and membership repository."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cinecdc.models.insight import InsightMembership, MovieInsight


class InsightRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, movie_id: str) -> MovieInsight | None:
        return await self.session.get(MovieInsight, movie_id)

    async def list_all(self) -> list[MovieInsight]:
        result = await self.session.execute(select(MovieInsight).order_by(MovieInsight.movie_id))
        return list(result.scalars().all())

    async def upsert(self, movie_id: str, **fields) -> MovieInsight:
        insight = await self.get(movie_id)
        if insight is None:
            insight = MovieInsight(movie_id=movie_id, **fields)
            self.session.add(insight)
        else:
            for key, value in fields.items():
                setattr(insight, key, value)
        await self.session.flush()
        return insight

    async def delete(self, movie_id: str) -> bool:
        insight = await self.get(movie_id)
        if insight is None:
            return False
        await self.session.delete(insight)
        await self.session.flush()
        return True

    async def get_membership(self, booking_id: str) -> InsightMembership | None:
        return await self.session.get(InsightMembership, booking_id)

    async def set_membership(self, booking_id: str, movie_id: str | None, version: int) -> InsightMembership:
        membership = await self.get_membership(booking_id)
        if membership is None:
            membership = InsightMembership(booking_id=booking_id, movie_id=movie_id, refresh_version=version)
            self.session.add(membership)
        else:
            membership.movie_id = movie_id
            membership.refresh_version = version
        await self.session.flush()
        return membership
