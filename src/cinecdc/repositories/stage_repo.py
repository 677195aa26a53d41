"""Stage state and run history repository."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cinecdc.models.stage import StageRun, StageState, StageStatus


class StageRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_state(self, name: str) -> StageState | None:
        return await self.session.get(StageState, name)

    async def get_or_create_state(self, name: str) -> StageState:
        state = await self.get_state(name)
        if state is None:
            state = StageState(
                name=name,
                cursor=0,
                output_version=0,
                consumed_version=0,
                paused=False,
                last_rows_in=0,
                last_rows_out=0,
                consecutive_failures=0,
            )
            self.session.add(state)
            await self.session.flush()
        return state

    async def add_run(self, **kwargs) -> StageRun:
        run = StageRun(**kwargs)
        self.session.add(run)
        await self.session.flush()
        return run

    async def list_runs(self, name: str, limit: int = 20) -> list[StageRun]:
        result = await self.session.execute(
            select(StageRun)
            .where(StageRun.stage_name == name)
            .order_by(StageRun.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def list_failures(self, limit: int = 20) -> list[StageRun]:
        result = await self.session.execute(
            select(StageRun)
            .where(StageRun.status == StageStatus.FAILED.value)
            .order_by(StageRun.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
