"""HTTP API tests"""
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from technewsletter.config_loader import load_newsletter_config, save_newsletter_config
from technewsletter.domain.errors import CurationError
from technewsletter.domain.models import Digest, DigestStats
from technewsletter.infrastructure.scheduler import SchedulerManager
from technewsletter.main import create_app
from technewsletter.services.digest_store import DigestStore
from technewsletter.services.pipeline import PipelineResult, PipelineState, schedule_newsletter

ADMIN = ("admin", "admin123")


@pytest.fixture
def store(tmp_path):
    return DigestStore(tmp_path / "newsletters")


@pytest.fixture
def orchestrator():
    mock = MagicMock()
    mock.run = AsyncMock()
    return mock


@pytest.fixture
def app(store, orchestrator):
    return create_app(orchestrator=orchestrator, store=store)


@pytest.fixture
def client(app):
    return TestClient(app)


class TestPublicApi:
    def test_health(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert "timestamp" in data
        assert data["uptime"] >= 0

    def test_list_newsletters(self, client, store, sample_digest):
        digest, raw = sample_digest
        for key in ("2025-01-01", "2025-01-03", "2025-01-02"):
            store.save(digest, raw, date=key)

        resp = client.get("/api/newsletters")

        assert resp.status_code == 200
        assert resp.json() == {"newsletters": ["2025-01-03", "2025-01-02", "2025-01-01"], "count": 3}

    def test_latest_without_records(self, client):
        resp = client.get("/api/newsletter/latest")
        assert resp.status_code == 404
        assert resp.json()["detail"]["error"] == "No newsletters found"

    def test_latest(self, client, store, sample_digest):
        digest, raw = sample_digest
        store.save(digest, raw, date="2025-01-01")
        store.save(digest, raw, date="2025-01-02")

        resp = client.get("/api/newsletter/latest")

        assert resp.status_code == 200
        data = resp.json()
        assert data["date"] == "2025-01-02"
        assert data["stats"]["rawArticles"] == 3
        assert len(data["digest"]["highlights"]) == 1

    def test_by_date(self, client, store, sample_digest):
        digest, raw = sample_digest
        store.save(digest, raw, date="2025-01-01")

        assert client.get("/api/newsletter/2025-01-01").json()["date"] == "2025-01-01"
        assert client.get("/api/newsletter/2025-01-05").status_code == 404
        assert client.get("/api/newsletter/2025-1-5").status_code == 400

    def test_corrupt_record_is_500(self, client, store):
        store.directory.mkdir(parents=True)
        (store.directory / "2025-01-01.json").write_text("{oops", encoding="utf-8")
        assert client.get("/api/newsletter/2025-01-01").status_code == 500


class TestGenerate:
    def test_success(self, client, orchestrator, sample_digest):
        digest, _ = sample_digest
        orchestrator.run.return_value = PipelineResult(
            state=PipelineState.DONE,
            date="2025-07-16",
            digest=digest,
            stats=DigestStats.from_digest(digest, 10),
            raw_count=10,
        )

        resp = client.post("/api/newsletter/generate")

        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        assert data["stats"]["rawArticles"] == 10
        assert data["stats"]["curatedArticles"] == 4
        assert set(data["data"]) == {"highlights", "categories"}
        orchestrator.run.assert_awaited_once_with(notify=False)

    def test_notify_follows_config(self, client, orchestrator, sample_digest):
        digest, _ = sample_digest
        save_newsletter_config(send_email_on_generate=True)
        orchestrator.run.return_value = PipelineResult(
            state=PipelineState.DONE,
            date="2025-07-16",
            digest=digest,
            stats=DigestStats.from_digest(digest, 3),
        )

        client.post("/api/newsletter/generate")

        orchestrator.run.assert_awaited_once_with(notify=True)

    def test_no_articles(self, client, orchestrator):
        orchestrator.run.return_value = PipelineResult(state=PipelineState.ABORTED, digest=Digest.empty())
        resp = client.post("/api/newsletter/generate")
        assert resp.status_code == 404
        assert resp.json()["detail"]["error"] == "No new articles found"

    def test_run_in_progress(self, client, orchestrator):
        orchestrator.run.return_value = PipelineResult(state=PipelineState.SKIPPED)
        assert client.post("/api/newsletter/generate").status_code == 409

    def test_curation_failure(self, client, orchestrator):
        orchestrator.run.side_effect = CurationError("response is not valid JSON")
        resp = client.post("/api/newsletter/generate")
        assert resp.status_code == 500
        assert resp.json()["detail"]["message"] == "response is not valid JSON"


class TestAdminApi:
    def test_requires_credentials(self, client):
        assert client.get("/api/admin/config").status_code == 401
        assert client.get("/api/admin/config", auth=("admin", "wrong")).status_code == 401

    def test_custom_credentials(self, client, monkeypatch):
        monkeypatch.setenv("ADMIN_USER", "editor")
        monkeypatch.setenv("ADMIN_PASSWORD", "s3cret")
        assert client.post("/api/admin/login", auth=ADMIN).status_code == 401
        resp = client.post("/api/admin/login", auth=("editor", "s3cret"))
        assert resp.status_code == 200
        assert resp.json()["success"] is True
        assert resp.json()["config"]["cronSchedule"] == "0 7 * * *"

    def test_get_config(self, client):
        resp = client.get("/api/admin/config", auth=ADMIN)
        assert resp.status_code == 200
        assert resp.json()["timezone"] == "America/Sao_Paulo"

    def test_invalid_cron(self, client):
        resp = client.put("/api/admin/config", auth=ADMIN, json={"cronSchedule": "every day"})
        assert resp.status_code == 400
        assert "0 7 * * *" in resp.json()["detail"]["message"]
        assert load_newsletter_config().cron_schedule == "0 7 * * *"

    def test_invalid_timezone(self, client):
        resp = client.put("/api/admin/config", auth=ADMIN, json={"timezone": "Mars/Olympus_Mons"})
        assert resp.status_code == 400

    def test_update_saves_without_scheduler(self, client):
        resp = client.put(
            "/api/admin/config",
            auth=ADMIN,
            json={"cronSchedule": "0 9 * * *", "sendEmailOnGenerate": True},
        )

        assert resp.status_code == 200
        config = resp.json()["config"]
        assert config["cronSchedule"] == "0 9 * * *"
        assert config["sendEmailOnGenerate"] is True
        assert config["lastUpdated"] is not None
        assert load_newsletter_config().cron_schedule == "0 9 * * *"

    def test_update_reconfigures_scheduler(self, app, client):
        manager = SchedulerManager(timezone="America/Sao_Paulo")
        manager.create_scheduler()
        schedule_newsletter(manager, MagicMock(), "0 7 * * *", "America/Sao_Paulo")
        app.state.scheduler_manager = manager

        resp = client.put(
            "/api/admin/config",
            auth=ADMIN,
            json={"cronSchedule": "15 8 * * *", "timezone": "UTC"},
        )

        assert resp.status_code == 200
        assert manager.cron == "15 8 * * *"
        assert manager.timezone == "UTC"
        assert manager.get_job() is not None

    def test_unchanged_schedule_leaves_scheduler_alone(self, app, client):
        manager = MagicMock()
        app.state.scheduler_manager = manager

        resp = client.put("/api/admin/config", auth=ADMIN, json={"sendEmailOnGenerate": True})

        assert resp.status_code == 200
        manager.reconfigure.assert_not_called()


class TestLifespan:
    def test_scheduler_started_with_stored_schedule(self, app):
        save_newsletter_config(cron_schedule="45 5 * * *", timezone_name="UTC")

        with TestClient(app):
            manager = app.state.scheduler_manager
            assert manager.running
            job = manager.get_job()
            assert job is not None
            assert manager.cron == "45 5 * * *"

        assert app.state.scheduler_manager is None
