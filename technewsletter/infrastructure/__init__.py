"""Infrastructure layer: logging, file lock, scheduler, model client"""

from .file_lock import FileLock
from .llm import ModelClient
from .logging import setup_logging
from .scheduler import SchedulerManager

__all__ = ["FileLock", "ModelClient", "SchedulerManager", "setup_logging"]
