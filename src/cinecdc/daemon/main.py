"""cinecdc daemon — FastAPI app with the built-in stage scheduler."""

import logging
import uvicorn
from contextlib import asynccontextmanager
from fastapi import FastAPI

from cinecdc import __version__
from cinecdc.core.config import get_settings
from cinecdc.core.database import init_engine, create_tables, dispose_engine
from cinecdc.api.router import api_router
from cinecdc.daemon.pipeline import Pipeline, get_pipeline, set_pipeline
from cinecdc.daemon.scheduler import start_scheduler, stop_scheduler, list_jobs

logger = logging.getLogger("cinecdc")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown."""
    settings = get_settings()

    # Init database
    init_engine(settings.database_url)
    await create_tables()
    logger.info(f"Database initialized: {settings.database_url}")

    # Build the stage chain and register interval jobs
    pipeline = Pipeline.from_settings(settings)
    set_pipeline(pipeline)
    await pipeline.schedule()

    start_scheduler()

    yield

    # Shutdown
    stop_scheduler()
    set_pipeline(None)
    await dispose_engine()
    logger.info("cinecdc daemon stopped")


def create_app() -> FastAPI:
    app = FastAPI(
        title="cinecdc",
        description="Change data capture and incremental insights for movie bookings",
        version=__version__,
        lifespan=lifespan,
    )

    app.include_router(api_router)

    @app.get("/health")
    async def health():
        pipeline = get_pipeline()
        return {
            "status": "ok",
            "version": __version__,
            "scheduler_jobs": list_jobs(),
            "stages": [r.name for r in pipeline.runners] if pipeline else [],
        }

    return app


def main():
    """Entry point for `cinecdcd` command."""
    import sys

    settings = get_settings()

    # Configure logging
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper()),
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        datefmt="%H:%M:%S",
    )

    host = settings.host
    port = settings.port

    # Parse CLI args (simple, no dep on typer for daemon)
    args = sys.argv[1:]
    for i, arg in enumerate(args):
        if arg == "--port" and i + 1 < len(args):
            port = int(args[i + 1])
        if arg == "--host" and i + 1 < len(args):
            host = args[i + 1]

    logger.info(f"Starting cinecdc daemon v{__version__} on {host}:{port}")

    app = create_app()
    uvicorn.run(app, host=host, port=port, log_level=settings.log_level)


if __name__ == "__main__":
    main()
