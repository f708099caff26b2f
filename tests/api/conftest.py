"""Fixtures for the HTTP layer tests."""

from __future__ import annotations

from typing import Any

import pytest
from fastapi.testclient import TestClient

from consulthive.app import create_app
from consulthive.config import Settings


@pytest.fixture
def http(settings: Settings, services: dict[str, Any]) -> TestClient:
    """TestClient for an app wired to the per-test services."""
    return TestClient(create_app(settings, services))
