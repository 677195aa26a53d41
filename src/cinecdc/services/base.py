"""Stage protocol shared by the ingest, enrich and aggregate stages."""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession


@dataclass
class StageContext:
    """What a stage run may read: where it left off and the version it would publish."""
    cursor: int
    version: int
    upstream_version: int = 0
    batch_size: int = 1000
    now: datetime | None = None


@dataclass
class StageResult:
    cursor: int
    rows_in: int = 0
    rows_out: int = 0
    changed: bool = False
    has_more: bool = False  # input left over; the stage stays dirty
    metadata: dict = field(default_factory=dict)


class Stage(Protocol):
    """A pipeline stage. process() writes through session but never commits."""
    name: str

    async def process(self, session: AsyncSession, ctx: StageContext) -> StageResult: ...
