"""Pipeline orchestration: collect -> curate -> persist -> notify"""

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from loguru import logger

from ..domain.models import Digest, DigestStats
from ..infrastructure.file_lock import FileLock
from ..infrastructure.llm import ModelClient
from ..infrastructure.notifiers import Notifier, build_notifiers_from_env
from ..infrastructure.scheduler import SchedulerManager
from .collector import FeedCollector
from .curation import CurationEngine
from .digest_store import DigestStore, date_key


class PipelineState(str, Enum):
    IDLE = "idle"
    COLLECTING = "collecting"
    CURATING = "curating"
    PERSISTING = "persisting"
    NOTIFYING = "notifying"
    DONE = "done"
    ABORTED = "aborted"  # nothing collected
    FAILED = "failed"
    SKIPPED = "skipped"  # another run holds the run lock


@dataclass
class PipelineResult:
    state: PipelineState
    date: Optional[str] = None
    digest: Optional[Digest] = None
    stats: Optional[DigestStats] = None
    path: Optional[Path] = None
    raw_count: int = 0
    notified: Optional[bool] = None  # None when no notification was attempted
    elapsed: float = 0.0

    @property
    def completed(self) -> bool:
        return self.state == PipelineState.DONE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "date": self.date,
            "stats": self.stats.to_dict() if self.stats else None,
            "path": str(self.path) if self.path else None,
            "rawArticles": self.raw_count,
            "notified": self.notified,
            "elapsed": round(self.elapsed, 2),
        }


class PipelineOrchestrator:
    """
    Run one newsletter generation end to end.

    Steps run strictly in order. An empty collection ends the run as ABORTED
    without calling the model; any error while curating or persisting ends it
    as FAILED and is re-raised to the caller. Nothing is written to the store
    before a fully validated digest exists. Run state lives in each call, so one
    instance can serve every run of the process.
    """

    def __init__(
        self,
        collector: FeedCollector,
        engine: CurationEngine,
        store: DigestStore,
        notifiers: Sequence[Notifier] = (),
        run_lock: Optional[FileLock] = None,
    ):
        self.collector = collector
        self.engine = engine
        self.store = store
        self.notifiers = list(notifiers)
        self.run_lock = run_lock

    @staticmethod
    def _advance(current: PipelineState, new: PipelineState) -> PipelineState:
        logger.debug(f"[pipeline] {current.value} -> {new.value}")
        return new

    async def run(self, notify: bool = False) -> PipelineResult:
        if self.run_lock is not None and not self.run_lock.acquire():
            logger.warning("[pipeline] Another newsletter run is in progress, skipping this one")
            return PipelineResult(state=PipelineState.SKIPPED)

        try:
            return await self._run(notify)
        finally:
            if self.run_lock is not None:
                self.run_lock.release()

    async def _run(self, notify: bool) -> PipelineResult:
        start = time.monotonic()
        state = self._advance(PipelineState.IDLE, PipelineState.COLLECTING)
        logger.info("[pipeline] Starting newsletter generation")

        try:
            raw_articles = await self.collector.collect()
            if not raw_articles:
                state = self._advance(state, PipelineState.ABORTED)
                logger.warning("[pipeline] No new articles found, newsletter cancelled")
                return PipelineResult(
                    state=state,
                    digest=Digest.empty(),
                    elapsed=time.monotonic() - start,
                )

            state = self._advance(state, PipelineState.CURATING)
            digest = await self.engine.curate(raw_articles)

            state = self._advance(state, PipelineState.PERSISTING)
            now = datetime.now(timezone.utc)
            key = date_key(now)
            path = self.store.save(digest, raw_articles, date=now, generated_at=now)
        except Exception as e:
            logger.error(f"[pipeline] Run failed while {state.value}: {e}")
            self._advance(state, PipelineState.FAILED)
            raise

        notified = None
        if notify and self.notifiers:
            state = self._advance(state, PipelineState.NOTIFYING)
            notified = await self._notify(digest, key)

        state = self._advance(state, PipelineState.DONE)
        elapsed = time.monotonic() - start
        logger.info(f"[pipeline] Newsletter {key} completed in {elapsed:.2f}s")
        return PipelineResult(
            state=state,
            date=key,
            digest=digest,
            stats=DigestStats.from_digest(digest, len(raw_articles)),
            path=path,
            raw_count=len(raw_articles),
            notified=notified,
            elapsed=elapsed,
        )

    async def _notify(self, digest: Digest, key: str) -> bool:
        """Send the digest through every notifier; failures never undo the saved record."""
        delivered = True
        for notifier in self.notifiers:
            try:
                await notifier.notify(digest, key)
            except Exception as e:  # noqa: BLE001
                delivered = False
                logger.error(f"[notify] {notifier.name} notification failed for {key}: {e}")
        return delivered


async def run_scheduled_newsletter(orchestrator: PipelineOrchestrator) -> None:
    """Scheduler entry point: one attempt, never raises."""
    logger.info("[scheduler] Scheduled newsletter run triggered")
    try:
        result = await orchestrator.run(notify=True)
    except Exception:  # noqa: BLE001
        logger.exception("[scheduler] Scheduled newsletter run failed")
        return
    logger.info(f"[scheduler] Scheduled newsletter run finished: {result.state.value}")


def build_orchestrator(
    store: Optional[DigestStore] = None,
    run_lock: Optional[FileLock] = None,
) -> PipelineOrchestrator:
    """Wire the production collector, model client, store and notifiers."""
    return PipelineOrchestrator(
        collector=FeedCollector(),
        engine=CurationEngine(ModelClient()),
        store=store or DigestStore(),
        notifiers=build_notifiers_from_env(),
        run_lock=run_lock if run_lock is not None else FileLock(),
    )


def schedule_newsletter(
    manager: SchedulerManager,
    orchestrator: PipelineOrchestrator,
    cron: str,
    timezone_name: str,
) -> None:
    """(Re)point the manager's single newsletter job at `cron` in `timezone_name`."""
    manager.reconfigure(
        run_scheduled_newsletter,
        cron,
        timezone_name,
        args=[orchestrator],
        max_instances=1,
        coalesce=True,
    )
