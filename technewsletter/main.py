"""Application entry point"""

import os
import time
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv

# Load .env before anything reads the environment
try:
    load_dotenv()
except Exception as e:  # noqa: BLE001
    # logger is not configured yet
    print(f"Warning: Failed to load .env file: {e}. Continuing with environment variables...")

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from .config_loader import load_newsletter_config
from .infrastructure import SchedulerManager, setup_logging
from .infrastructure.scheduler import NEWSLETTER_JOB_ID
from .services.digest_store import DigestStore
from .services.pipeline import PipelineOrchestrator, build_orchestrator, schedule_newsletter


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the scheduler with the stored schedule, shut it down on exit."""
    setup_logging()
    logger.info("=" * 80)
    logger.info("Application starting, initializing logging and scheduler...")

    config = load_newsletter_config()
    scheduler_manager = SchedulerManager(timezone=config.timezone)
    scheduler_manager.create_scheduler()
    schedule_newsletter(
        scheduler_manager,
        app.state.orchestrator,
        config.cron_schedule,
        config.timezone,
    )

    job = scheduler_manager.get_job(NEWSLETTER_JOB_ID)
    if job is None:
        logger.error("[scheduler] Newsletter job was not added!")

    app.state.scheduler_manager = scheduler_manager
    scheduler_manager.start()

    yield

    scheduler_manager.shutdown(wait=False)
    app.state.scheduler_manager = None


def create_app(
    orchestrator: Optional[PipelineOrchestrator] = None,
    store: Optional[DigestStore] = None,
) -> FastAPI:
    """Create the FastAPI application."""
    app = FastAPI(
        title="Tech Newsletter API",
        description="Daily tech newsletter - collect, curate with an LLM, archive",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    store = store or DigestStore()
    app.state.store = store
    app.state.orchestrator = orchestrator or build_orchestrator(store=store)
    app.state.scheduler_manager = None
    app.state.started_at = time.monotonic()

    cors_origin = os.getenv("CORS_ORIGIN", "*")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[origin.strip() for origin in cors_origin.split(",")],
        allow_credentials=cors_origin != "*",
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from .presentation.routes import admin, api
    app.include_router(api.router, prefix="/api", tags=["api"])
    app.include_router(admin.router, prefix="/api/admin", tags=["admin"])

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "3002")))
