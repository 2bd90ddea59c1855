"""Public API routes: health, newsletter archive and on-demand generation"""
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request
from loguru import logger

from ...config_loader import load_newsletter_config
from ...domain.errors import NewsletterError
from ...services.digest_store import DigestStore, date_key
from ...services.pipeline import PipelineOrchestrator, PipelineState
from ..dependencies import get_orchestrator, get_store

router = APIRouter()


def _error(status_code: int, error: str, message: str) -> HTTPException:
    return HTTPException(status_code=status_code, detail={"error": error, "message": message})


@router.get("/health")
async def health(request: Request):
    """Liveness probe"""
    started_at = getattr(request.app.state, "started_at", time.monotonic())
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": round(time.monotonic() - started_at, 2),
    }


@router.get("/newsletters")
async def list_newsletters(store: DigestStore = Depends(get_store)):
    """Dates of all stored newsletters, most recent first"""
    try:
        dates = store.list_dates()
    except OSError as e:
        logger.error(f"[store] Failed to list newsletters: {e}")
        raise _error(500, "Failed to list newsletters", str(e))
    return {"newsletters": dates, "count": len(dates)}


@router.get("/newsletter/latest")
async def get_latest_newsletter(store: DigestStore = Depends(get_store)):
    try:
        record = store.latest()
    except NewsletterError as e:
        raise _error(500, "Failed to load newsletter", str(e))

    if record is None:
        raise _error(404, "No newsletters found", "Generate a newsletter first")
    return record.to_dict()


@router.get("/newsletter/{date}")
async def get_newsletter(date: str, store: DigestStore = Depends(get_store)):
    try:
        key = date_key(date)
    except ValueError as e:
        raise _error(400, "Invalid date", str(e))

    try:
        record = store.load(key)
    except NewsletterError as e:
        raise _error(500, "Failed to load newsletter", str(e))

    if record is None:
        raise _error(404, "Newsletter not found", f"No newsletter stored for {key}")
    return record.to_dict()


@router.post("/newsletter/generate")
async def generate_newsletter(orchestrator: PipelineOrchestrator = Depends(get_orchestrator)):
    """
    Run the pipeline now.

    Notifications are sent only when ``sendEmailOnGenerate`` is enabled in
    the runtime config.
    """
    config = load_newsletter_config()
    logger.info(f"[pipeline] Manual generation requested (notify={config.send_email_on_generate})")

    try:
        result = await orchestrator.run(notify=config.send_email_on_generate)
    except NewsletterError as e:
        raise _error(500, "Failed to generate newsletter", str(e))
    except Exception as e:  # noqa: BLE001
        logger.exception("[pipeline] Unexpected error during manual generation")
        raise _error(500, "Failed to generate newsletter", str(e))

    if result.state == PipelineState.SKIPPED:
        raise _error(409, "Generation already running", "Another newsletter run is in progress")
    if result.state == PipelineState.ABORTED:
        raise _error(404, "No new articles found", "No articles were published in the last 24 hours")

    return {
        "success": True,
        "message": f"Newsletter {result.date} generated successfully",
        "date": result.date,
        "notified": result.notified,
        "stats": result.stats.to_dict(),
        "data": result.digest.to_dict(),
    }
