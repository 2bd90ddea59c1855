"""Logging setup: loguru file sinks"""

import os
from pathlib import Path

from loguru import logger

# Prefixes that mark messages belonging to a pipeline run
RUN_LOG_PREFIXES = (
    "[pipeline]",
    "[scheduler]",
    "[collector]",
    "[curation]",
    "[store]",
    "[notify]",
)

DETAILED_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}"
RUN_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {message}"


def run_log_filter(record) -> bool:
    """Keep only messages emitted by a pipeline run."""
    message = record["message"]
    return any(prefix in message for prefix in RUN_LOG_PREFIXES)


# (file stem, minimum level, days kept, format, filter)
LOG_SINKS = (
    ("app", "INFO", 30, DETAILED_FORMAT, None),
    ("error", "ERROR", 90, DETAILED_FORMAT, None),
    ("pipeline", "INFO", 90, RUN_FORMAT, run_log_filter),
)


def _logs_dir() -> Path:
    override = os.getenv("NEWSLETTER_LOG_DIR")
    if override:
        return Path(override)
    # technewsletter/infrastructure/logging.py -> project_root/logs
    return Path(__file__).resolve().parent.parent.parent / "logs"


def setup_logging() -> Path:
    """
    Add one daily-rotated, zipped file sink per LOG_SINKS entry.

    The default stderr sink stays in place. Returns the log directory.
    """
    logs_dir = _logs_dir()
    logs_dir.mkdir(parents=True, exist_ok=True)

    for stem, level, days, fmt, record_filter in LOG_SINKS:
        logger.add(
            logs_dir / f"{stem}_{{time:YYYY-MM-DD}}.log",
            rotation="00:00",
            retention=f"{days} days",
            compression="zip",
            encoding="utf-8",
            level=level,
            format=fmt,
            filter=record_filter,
            enqueue=True,
        )

    logger.info(f"Logging configured, {len(LOG_SINKS)} file sinks in {logs_dir}")
    return logs_dir
