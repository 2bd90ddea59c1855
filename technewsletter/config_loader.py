import json
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from apscheduler.triggers.cron import CronTrigger
from loguru import logger

from .domain.sources import DEFAULT_FEED_SOURCES, FeedSource


def _project_root() -> Path:
    # technewsletter/config_loader.py -> project_root
    return Path(__file__).resolve().parents[1]


def data_dir() -> Path:
    """Root directory for runtime state (config, newsletters, locks)."""
    override = os.getenv("NEWSLETTER_DATA_DIR")
    if override:
        return Path(override)
    return _project_root() / "data"


@dataclass
class NewsletterConfig:
    """
    Runtime configuration editable from the admin API.

    Stored as ``data/config.json`` with camelCase keys:
    {
      "cronSchedule": "0 7 * * *",
      "timezone": "America/Sao_Paulo",
      "sendEmailOnGenerate": false,
      "lastUpdated": null
    }
    """

    cron_schedule: str = "0 7 * * *"
    timezone: str = "America/Sao_Paulo"
    send_email_on_generate: bool = False
    last_updated: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cronSchedule": self.cron_schedule,
            "timezone": self.timezone,
            "sendEmailOnGenerate": self.send_email_on_generate,
            "lastUpdated": self.last_updated,
        }


def _default_config() -> NewsletterConfig:
    return NewsletterConfig(
        cron_schedule=os.getenv("CRON_SCHEDULE", NewsletterConfig.cron_schedule),
        timezone=os.getenv("TZ", NewsletterConfig.timezone),
    )


def _config_path() -> Path:
    return data_dir() / "config.json"


def _ensure_config(path: Path) -> None:
    if path.exists():
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(_default_config().to_dict(), f, ensure_ascii=False, indent=2)
    logger.info(f"Created default newsletter config at {path}")


def load_newsletter_config() -> NewsletterConfig:
    """
    Load the runtime config, creating it with defaults on first use.

    Stored keys override the defaults; an unreadable file falls back to defaults.
    """
    path = _config_path()
    default = _default_config()

    try:
        _ensure_config(path)
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError("config file must be a JSON object")
    except Exception as exc:  # noqa: BLE001
        logger.error(f"Failed to load newsletter config: {exc}, using defaults: {default}.")
        return default

    cron_raw = data.get("cronSchedule")
    cron_schedule = default.cron_schedule
    if isinstance(cron_raw, str) and cron_raw.strip():
        if is_valid_cron(cron_raw):
            cron_schedule = cron_raw.strip()
        else:
            logger.warning(f"Invalid cronSchedule {cron_raw!r} in config, fallback to {cron_schedule!r}.")

    tz_raw = data.get("timezone")
    return NewsletterConfig(
        cron_schedule=cron_schedule,
        timezone=tz_raw.strip() if isinstance(tz_raw, str) and tz_raw.strip() else default.timezone,
        send_email_on_generate=bool(data.get("sendEmailOnGenerate", default.send_email_on_generate)),
        last_updated=data.get("lastUpdated"),
    )


def save_newsletter_config(
    cron_schedule: Optional[str] = None,
    timezone_name: Optional[str] = None,
    send_email_on_generate: Optional[bool] = None,
) -> NewsletterConfig:
    """Merge the given (non-None) values over the current config and persist it."""
    current = load_newsletter_config()
    updated = NewsletterConfig(
        cron_schedule=cron_schedule.strip() if cron_schedule else current.cron_schedule,
        timezone=timezone_name.strip() if timezone_name else current.timezone,
        send_email_on_generate=(
            current.send_email_on_generate
            if send_email_on_generate is None
            else bool(send_email_on_generate)
        ),
        last_updated=datetime.now(timezone.utc).isoformat(),
    )

    path = _config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(updated.to_dict(), f, ensure_ascii=False, indent=2)
    logger.info(f"Newsletter config saved: {updated.to_dict()}")
    return updated


def is_valid_cron(expression: str) -> bool:
    """Accept exactly five cron fields (min hour dom month dow) that APScheduler can parse."""
    if not isinstance(expression, str):
        return False
    if len(expression.split()) != 5:
        return False
    try:
        CronTrigger.from_crontab(expression.strip())
    except ValueError:
        return False
    return True


def _feed_sources_path() -> Path:
    return data_dir() / "feed_sources.json"


def load_feed_sources() -> List[FeedSource]:
    """
    Load the feed source list.

    ``data/feed_sources.json`` replaces the built-in list when it holds a
    non-empty JSON array of {"name", "url", "category"} objects.
    """
    path = _feed_sources_path()
    if not path.exists():
        return list(DEFAULT_FEED_SOURCES)

    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, list):
            raise ValueError("feed sources file must be a JSON array")
        sources = [
            FeedSource(
                name=str(item["name"]).strip(),
                url=str(item["url"]).strip(),
                category=str(item.get("category", "")).strip(),
            )
            for item in data
        ]
    except Exception as exc:  # noqa: BLE001
        logger.error(f"Failed to load feed sources from {path}: {exc}, using built-in list.")
        return list(DEFAULT_FEED_SOURCES)

    if not sources:
        logger.warning(f"Feed sources file {path} is empty, using built-in list.")
        return list(DEFAULT_FEED_SOURCES)
    return sources
