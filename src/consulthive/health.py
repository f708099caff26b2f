"""Health and readiness endpoints for container orchestration.

- ``GET /health``: liveness.  Returns 200 while the process is up.
- ``GET /ready``: readiness.  Returns 200 only when the database answers;
  503 with per-check details otherwise.  Whether text generation is
  configured is reported but does not affect readiness.
"""

from __future__ import annotations

import asyncio
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from consulthive.drafting.service import AnthropicDrafter


def register_health_routes(app: FastAPI) -> None:
    """Register ``/health`` and ``/ready`` endpoints on *app*."""

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "healthy"}

    @app.get("/ready")
    async def ready(request: Request) -> JSONResponse:
        services: dict[str, Any] = request.app.state.services
        checks: dict[str, str] = {}

        database = services.get("database")
        if database is not None and await asyncio.to_thread(database.ping):
            checks["database"] = "ok"
        else:
            checks["database"] = "fail"

        all_ok = all(v == "ok" for v in checks.values())
        drafting = "ok" if isinstance(services.get("drafter"), AnthropicDrafter) else "disabled"
        return JSONResponse(
            content={
                "status": "ready" if all_ok else "not_ready",
                "checks": checks,
                "drafting": drafting,
            },
            status_code=200 if all_ok else 503,
        )
