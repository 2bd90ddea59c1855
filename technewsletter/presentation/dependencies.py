"""Request-scoped access to the handles owned by the application"""

from typing import Optional

from fastapi import Request

from ..infrastructure.scheduler import SchedulerManager
from ..services.digest_store import DigestStore
from ..services.pipeline import PipelineOrchestrator


def get_store(request: Request) -> DigestStore:
    return request.app.state.store


def get_orchestrator(request: Request) -> PipelineOrchestrator:
    return request.app.state.orchestrator


def get_scheduler_manager(request: Request) -> Optional[SchedulerManager]:
    # Only present while the lifespan is running
    return getattr(request.app.state, "scheduler_manager", None)
