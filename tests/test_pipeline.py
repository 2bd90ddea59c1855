"""Pipeline orchestration tests"""
import json
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from conftest import digest_dict
from technewsletter.domain.errors import CurationError, PersistenceError
from technewsletter.domain.sources import FeedSource
from technewsletter.infrastructure.file_lock import FileLock
from technewsletter.services.collector import FeedCollector
from technewsletter.services.curation import CurationEngine
from technewsletter.services.digest_store import DigestStore, date_key
from technewsletter.services.pipeline import (
    PipelineOrchestrator,
    PipelineState,
    run_scheduled_newsletter,
)
from test_collector import mock_client_factory, rss_document


class FakeCollector:
    def __init__(self, articles):
        self.articles = articles
        self.calls = 0

    async def collect(self, now=None):
        self.calls += 1
        return list(self.articles)


class RecordingNotifier:
    def __init__(self, name="recording", error=None):
        self.name = name
        self.error = error
        self.calls = []

    async def notify(self, digest, date):
        self.calls.append((digest, date))
        if self.error is not None:
            raise self.error


class EchoModel:
    """Puts every article it was shown into the trends bucket."""

    def __init__(self):
        self.urls = []

    async def generate(self, prompt):
        self.urls = [line[len("URL: "):] for line in prompt.splitlines() if line.startswith("URL: ")]
        trends = [
            {"title": "t", "url": url, "source": "A", "category": "trends", "relevance": 3, "summary": "s"}
            for url in self.urls
        ]
        return json.dumps(
            {
                "highlights": [],
                "categories": {"launches": [], "tutorials": [], "discussions": [], "trends": trends},
            }
        )


@pytest.fixture
def store(tmp_path):
    return DigestStore(tmp_path / "newsletters")


@pytest.fixture
def articles(make_raw):
    return [make_raw(i) for i in range(1, 4)]


class TestPipelineOrchestrator:
    @pytest.mark.asyncio
    async def test_successful_run(self, articles, store, stub_model):
        model = stub_model(response=digest_dict(articles))
        orchestrator = PipelineOrchestrator(FakeCollector(articles), CurationEngine(model), store)

        result = await orchestrator.run()

        assert result.state == PipelineState.DONE
        assert result.completed
        assert result.date == date_key()
        assert result.raw_count == 3
        assert result.stats.raw_articles == 3
        assert result.stats.curated_articles == 4
        assert result.notified is None
        assert store.list_dates() == [result.date]
        record = store.load(result.date)
        assert record.digest == result.digest
        assert len(record.raw) == 3

    @pytest.mark.asyncio
    async def test_no_articles_aborts_without_calling_model(self, store, stub_model):
        model = stub_model(response="unused")
        orchestrator = PipelineOrchestrator(FakeCollector([]), CurationEngine(model), store)

        result = await orchestrator.run(notify=True)

        assert result.state == PipelineState.ABORTED
        assert result.digest.is_empty
        assert model.prompts == []
        assert store.list_dates() == []

    @pytest.mark.asyncio
    async def test_curation_failure_propagates_and_saves_nothing(self, articles, store, stub_model):
        model = stub_model(response="not json at all")
        orchestrator = PipelineOrchestrator(FakeCollector(articles), CurationEngine(model), store)

        with pytest.raises(CurationError):
            await orchestrator.run()

        assert store.list_dates() == []

    @pytest.mark.asyncio
    async def test_failed_run_does_not_leak_into_next_run(self, articles, store, stub_model):
        orchestrator = PipelineOrchestrator(
            FakeCollector(articles), CurationEngine(stub_model(response="not json")), store
        )
        with pytest.raises(CurationError):
            await orchestrator.run()

        orchestrator.engine.model = stub_model(response=digest_dict(articles))
        result = await orchestrator.run()

        assert result.state == PipelineState.DONE
        assert not hasattr(orchestrator, "state")
        assert store.list_dates() == [result.date]

    @pytest.mark.asyncio
    async def test_persistence_failure_propagates(self, articles, stub_model):
        store = MagicMock()
        store.save.side_effect = PersistenceError("/tmp/x.json", "disk full")
        model = stub_model(response=digest_dict(articles))
        notifier = RecordingNotifier()
        orchestrator = PipelineOrchestrator(
            FakeCollector(articles), CurationEngine(model), store, notifiers=[notifier]
        )

        with pytest.raises(PersistenceError):
            await orchestrator.run(notify=True)

        assert notifier.calls == []

    @pytest.mark.asyncio
    async def test_notifies_after_saving(self, articles, store, stub_model):
        model = stub_model(response=digest_dict(articles))
        notifier = RecordingNotifier()
        orchestrator = PipelineOrchestrator(
            FakeCollector(articles), CurationEngine(model), store, notifiers=[notifier]
        )

        result = await orchestrator.run(notify=True)

        assert result.notified is True
        [(digest, date)] = notifier.calls
        assert date == result.date
        assert digest == result.digest

    @pytest.mark.asyncio
    async def test_notify_false_skips_notifiers(self, articles, store, stub_model):
        model = stub_model(response=digest_dict(articles))
        notifier = RecordingNotifier()
        orchestrator = PipelineOrchestrator(
            FakeCollector(articles), CurationEngine(model), store, notifiers=[notifier]
        )

        await orchestrator.run(notify=False)

        assert notifier.calls == []

    @pytest.mark.asyncio
    async def test_notifier_failure_keeps_record(self, articles, store, stub_model):
        model = stub_model(response=digest_dict(articles))
        failing = RecordingNotifier("email", error=ConnectionError("smtp down"))
        working = RecordingNotifier("webhook")
        orchestrator = PipelineOrchestrator(
            FakeCollector(articles), CurationEngine(model), store, notifiers=[failing, working]
        )

        result = await orchestrator.run(notify=True)

        assert result.state == PipelineState.DONE
        assert result.notified is False
        assert len(working.calls) == 1
        assert store.load(result.date) is not None

    @pytest.mark.asyncio
    async def test_busy_lock_skips_run(self, articles, store, stub_model, tmp_path):
        model = stub_model(response=digest_dict(articles))
        collector = FakeCollector(articles)
        orchestrator = PipelineOrchestrator(
            collector, CurationEngine(model), store, run_lock=FileLock(lock_dir=tmp_path)
        )

        holder = FileLock(lock_dir=tmp_path)
        assert holder.acquire()
        try:
            result = await orchestrator.run()
        finally:
            holder.release()

        assert result.state == PipelineState.SKIPPED
        assert collector.calls == 0
        assert store.list_dates() == []

    @pytest.mark.asyncio
    async def test_lock_released_after_failure(self, articles, store, stub_model, tmp_path):
        model = stub_model(error=RuntimeError("boom"))
        run_lock = FileLock(lock_dir=tmp_path)
        orchestrator = PipelineOrchestrator(
            FakeCollector(articles), CurationEngine(model), store, run_lock=run_lock
        )

        with pytest.raises(CurationError):
            await orchestrator.run()

        assert not run_lock.held
        other = FileLock(lock_dir=tmp_path)
        assert other.acquire()
        other.release()

    @pytest.mark.asyncio
    async def test_end_to_end_with_failing_source(self, store):
        now = datetime.now(timezone.utc)

        def items(prefix, count):
            return [
                (f"{prefix}{i}", f"https://example.com/{prefix}{i}", now - timedelta(hours=i))
                for i in range(1, count + 1)
            ]

        sources = [
            FeedSource(name="A", url="https://feeds.test/a", category="AI"),
            FeedSource(name="B", url="https://feeds.test/b", category="AI"),
            FeedSource(name="C", url="https://feeds.test/c", category="AI"),
        ]
        routes = {
            "https://feeds.test/a": rss_document(items("a", 4)),
            "https://feeds.test/b": 500,
            "https://feeds.test/c": rss_document(items("c", 4)),
        }
        collector = FeedCollector(sources=sources, client_factory=mock_client_factory(routes))
        model = EchoModel()
        orchestrator = PipelineOrchestrator(collector, CurationEngine(model), store)

        result = await orchestrator.run()

        assert result.state == PipelineState.DONE
        assert result.stats.raw_articles == 8
        assert result.stats.curated_articles == 8
        assert model.urls[0] == "https://example.com/a1"
        assert model.urls[-1] == "https://example.com/c4"
        assert [a.url for a in store.load(result.date).raw] == model.urls


class TestRunScheduledNewsletter:
    @pytest.mark.asyncio
    async def test_runs_with_notification(self):
        orchestrator = MagicMock()
        orchestrator.run = AsyncMock(return_value=MagicMock(state=PipelineState.DONE))

        await run_scheduled_newsletter(orchestrator)

        orchestrator.run.assert_awaited_once_with(notify=True)

    @pytest.mark.asyncio
    async def test_never_raises(self):
        orchestrator = MagicMock()
        orchestrator.run = AsyncMock(side_effect=CurationError("bad answer"))

        with patch("technewsletter.services.pipeline.logger") as mock_logger:
            await run_scheduled_newsletter(orchestrator)

        mock_logger.exception.assert_called_once()
