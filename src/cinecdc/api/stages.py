"""Stage control and observability endpoints."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from cinecdc.core.auth import verify_api_key
from cinecdc.core.database import get_session
from cinecdc.core.errors import UnknownStageError
from cinecdc.daemon.pipeline import Pipeline, get_pipeline
from cinecdc.repositories.stage_repo import StageRepository
from cinecdc.schemas.stage import (
    IntervalUpdate, StageListResponse, StageResponse,
    StageRunListResponse, TriggerResponse,
)

router = APIRouter(prefix="/stages", tags=["stages"])


def _pipeline() -> Pipeline:
    pipeline = get_pipeline()
    if pipeline is None:
        raise HTTPException(503, "Pipeline not initialized")
    return pipeline


def _known(pipeline: Pipeline, name: str):
    try:
        return pipeline.get(name)
    except UnknownStageError as e:
        raise HTTPException(404, str(e))


@router.get("", response_model=StageListResponse)
async def list_stages(_: str = Depends(verify_api_key)):
    stages = await _pipeline().status()
    return StageListResponse(stages=stages, total=len(stages))


@router.get("/failures", response_model=StageRunListResponse)
async def list_failures(
    limit: int = 20,
    session: AsyncSession = Depends(get_session),
    _: str = Depends(verify_api_key),
):
    """Recent failed runs across all stages."""
    runs = await StageRepository(session).list_failures(limit=limit)
    return StageRunListResponse(runs=runs, total=len(runs))


@router.get("/{name}", response_model=StageResponse)
async def get_stage(name: str, _: str = Depends(verify_api_key)):
    pipeline = _pipeline()
    _known(pipeline, name)
    return await pipeline.describe(name)


@router.post("/{name}/pause", response_model=StageResponse)
async def pause_stage(name: str, _: str = Depends(verify_api_key)):
    pipeline = _pipeline()
    _known(pipeline, name)
    return await pipeline.pause(name)


@router.post("/{name}/resume", response_model=StageResponse)
async def resume_stage(name: str, _: str = Depends(verify_api_key)):
    """Unpause a stage and clear a configuration halt."""
    pipeline = _pipeline()
    _known(pipeline, name)
    return await pipeline.resume(name)


@router.post("/{name}/run", response_model=TriggerResponse)
async def run_stage(name: str, _: str = Depends(verify_api_key)):
    """Run a stage now, ignoring pause and dirty checks, then its downstream stages."""
    pipeline = _pipeline()
    _known(pipeline, name)
    outcomes = await pipeline.run_now(name)
    return TriggerResponse(
        stage=name,
        runs=[
            {
                "stage": o.stage_name,
                "trigger": o.trigger,
                "status": o.status,
                "duration_ms": o.duration_ms,
                "rows_in": o.result.rows_in if o.result else 0,
                "rows_out": o.result.rows_out if o.result else 0,
                "error": o.error,
            }
            for o in outcomes
        ],
    )


@router.put("/{name}/interval", response_model=StageResponse)
async def set_stage_interval(
    name: str,
    data: IntervalUpdate,
    _: str = Depends(verify_api_key),
):
    pipeline = _pipeline()
    _known(pipeline, name)
    return await pipeline.set_interval(name, data.seconds)


@router.get("/{name}/runs", response_model=StageRunListResponse)
async def list_stage_runs(
    name: str,
    limit: int = 20,
    session: AsyncSession = Depends(get_session),
    _: str = Depends(verify_api_key),
):
    _known(_pipeline(), name)
    runs = await StageRepository(session).list_runs(name, limit=limit)
    return StageRunListResponse(runs=runs, total=len(runs))
