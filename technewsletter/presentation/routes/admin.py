"""Admin routes: login check and runtime schedule configuration"""
import os
import secrets
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from ...config_loader import is_valid_cron, load_newsletter_config, save_newsletter_config
from ...infrastructure.scheduler import SchedulerManager
from ...services.pipeline import PipelineOrchestrator, schedule_newsletter
from ..dependencies import get_orchestrator, get_scheduler_manager

router = APIRouter()

security = HTTPBasic()

CRON_EXAMPLE = "0 7 * * * (every day at 07:00)"


def _admin_credentials():
    return os.getenv("ADMIN_USER", "admin"), os.getenv("ADMIN_PASSWORD", "admin123")


def _require_admin(credentials: HTTPBasicCredentials = Depends(security)) -> str:
    """HTTP Basic check against ADMIN_USER / ADMIN_PASSWORD."""
    user, password = _admin_credentials()
    user_ok = secrets.compare_digest(credentials.username.encode("utf-8"), user.encode("utf-8"))
    password_ok = secrets.compare_digest(credentials.password.encode("utf-8"), password.encode("utf-8"))
    if not (user_ok and password_ok):
        raise HTTPException(
            status_code=401,
            detail={"error": "Unauthorized", "message": "Invalid credentials"},
            headers={"WWW-Authenticate": "Basic"},
        )
    return credentials.username


class ConfigUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    cron_schedule: Optional[str] = Field(default=None, alias="cronSchedule")
    timezone: Optional[str] = None
    send_email_on_generate: Optional[bool] = Field(default=None, alias="sendEmailOnGenerate")


@router.post("/login")
async def login(username: str = Depends(_require_admin)):
    logger.info(f"Admin login: {username}")
    return {
        "success": True,
        "message": "Login successful",
        "config": load_newsletter_config().to_dict(),
    }


@router.get("/config")
async def get_config(username: str = Depends(_require_admin)):
    return load_newsletter_config().to_dict()


@router.put("/config")
async def update_config(
    request: ConfigUpdateRequest,
    username: str = Depends(_require_admin),
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
    manager: Optional[SchedulerManager] = Depends(get_scheduler_manager),
):
    """
    Update the runtime config.

    A changed schedule or timezone replaces the live newsletter job.
    """
    if request.cron_schedule is not None and not is_valid_cron(request.cron_schedule):
        raise HTTPException(
            status_code=400,
            detail={
                "error": "Invalid cron expression",
                "message": f"Expected five fields (min hour day month weekday), e.g. {CRON_EXAMPLE}",
            },
        )

    if request.timezone is not None:
        try:
            ZoneInfo(request.timezone.strip())
        except (ZoneInfoNotFoundError, ValueError):
            raise HTTPException(
                status_code=400,
                detail={"error": "Invalid timezone", "message": f"Unknown timezone {request.timezone!r}"},
            )

    current = load_newsletter_config()
    updated = save_newsletter_config(
        cron_schedule=request.cron_schedule,
        timezone_name=request.timezone,
        send_email_on_generate=request.send_email_on_generate,
    )

    schedule_changed = (
        updated.cron_schedule != current.cron_schedule or updated.timezone != current.timezone
    )
    if schedule_changed:
        if manager is not None and manager.scheduler is not None:
            schedule_newsletter(manager, orchestrator, updated.cron_schedule, updated.timezone)
        else:
            logger.warning("[scheduler] Scheduler not running, new schedule applies on next start")

    return {
        "success": True,
        "message": "Configuration updated",
        "config": updated.to_dict(),
    }
