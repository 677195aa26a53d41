"""Pydantic schemas for stage control and run history."""

from datetime import datetime
from pydantic import BaseModel, Field


class StageResponse(BaseModel):
    name: str
    trigger: str
    upstream: str | None
    status: str
    running: bool
    interval_seconds: int
    timeout_seconds: int
    batch_size: int
    paused: bool
    halted_reason: str | None
    cursor: int
    output_version: int
    consumed_version: int
    dirty: bool
    last_run_at: datetime | None
    last_outcome: str | None
    last_error: str | None
    last_rows_in: int
    last_rows_out: int
    consecutive_failures: int
    next_run: str | None


class StageListResponse(BaseModel):
    stages: list[StageResponse]
    total: int


class IntervalUpdate(BaseModel):
    seconds: int = Field(gt=0)


class StageRunResponse(BaseModel):
    id: str
    stage_name: str
    status: str
    trigger: str
    started_at: datetime | None
    finished_at: datetime | None
    duration_ms: int | None
    rows_in: int
    rows_out: int
    cursor_before: int | None
    cursor_after: int | None
    error: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class StageRunListResponse(BaseModel):
    runs: list[StageRunResponse]
    total: int


class TriggerResponse(BaseModel):
    stage: str
    runs: list[dict]
