"""Tests for /health and /ready observability endpoints."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

from fastapi import FastAPI
from fastapi.testclient import TestClient

from consulthive.drafting.service import AnthropicDrafter, UnavailableDrafter
from consulthive.health import register_health_routes
from consulthive.store.database import Database

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_app(services: dict | None = None) -> FastAPI:
    """Create a minimal FastAPI app with health routes and given services."""
    app = FastAPI()
    app.state.services = services or {}
    register_health_routes(app)
    return app


def _database(tmp_path: Path) -> Database:
    database = Database(tmp_path / "health.db")
    database.initialize()
    return database


# ---------------------------------------------------------------------------
# /health (liveness)
# ---------------------------------------------------------------------------


class TestHealthEndpoint:
    """GET /health liveness probe."""

    def test_health_returns_200(self) -> None:
        response = TestClient(_make_app()).get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


# ---------------------------------------------------------------------------
# /ready (readiness)
# ---------------------------------------------------------------------------


class TestReadyEndpoint:
    """GET /ready readiness probe."""

    def test_ready_when_database_answers(self, tmp_path: Path) -> None:
        app = _make_app({"database": _database(tmp_path), "drafter": UnavailableDrafter()})

        response = TestClient(app).get("/ready")

        assert response.status_code == 200
        assert response.json() == {
            "status": "ready",
            "checks": {"database": "ok"},
            "drafting": "disabled",
        }

    def test_drafting_reported_when_configured(self, tmp_path: Path) -> None:
        drafter = AnthropicDrafter(MagicMock())
        app = _make_app({"database": _database(tmp_path), "drafter": drafter})

        body = TestClient(app).get("/ready").json()

        assert body["drafting"] == "ok"

    def test_not_ready_without_database(self) -> None:
        response = TestClient(_make_app({})).get("/ready")

        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "not_ready"
        assert body["checks"]["database"] == "fail"

    def test_not_ready_when_database_unreachable(self, tmp_path: Path) -> None:
        # A directory cannot be opened as a database file
        app = _make_app({"database": Database(tmp_path)})

        response = TestClient(app).get("/ready")

        assert response.status_code == 503
