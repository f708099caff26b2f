"""HTTP surface of the operation catalogue.

``POST /operations/{name}`` runs one operation with the JSON body as its
input.  The caller is identified by the ``X-User-Id`` header, set by the
identity layer in front of the engine after its own token exchange.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from consulthive.domain.models import Principal
from consulthive.operations.results import ErrorCode, OperationResult, fail
from consulthive.store.database import Database

logger = structlog.get_logger()

router = APIRouter()

# Business failures stay 200 with ``success: false``
HTTP_STATUS_BY_CODE: dict[ErrorCode, int] = {
    ErrorCode.INVALID_INPUT: 422,
    ErrorCode.UNAUTHORIZED: 401,
    ErrorCode.AUTH_FAILED: 401,
    ErrorCode.FORBIDDEN: 403,
    ErrorCode.UNKNOWN_OPERATION: 404,
    ErrorCode.INTERNAL_ERROR: 500,
}


def http_status(result: OperationResult[Any]) -> int:
    if result.success or result.code is None:
        return 200
    return HTTP_STATUS_BY_CODE.get(result.code, 200)


def to_response(result: OperationResult[Any]) -> JSONResponse:
    return JSONResponse(content=result.model_dump(mode="json"), status_code=http_status(result))


def resolve_principal(database: Database, user_id: str) -> Principal | None:
    """Look up the caller named by ``X-User-Id``; None when the id is unknown."""
    with database.transaction(immediate=False) as uow:
        user = uow.users.get(user_id)
    if user is None:
        return None
    return Principal(user_id=user.id, role=user.role)


@router.get("/operations")
async def list_operations(request: Request) -> dict[str, Any]:
    """Catalogue listing: names, access classes and input schemas."""
    catalogue = request.app.state.services["catalogue"]
    return {"operations": catalogue.describe()}


@router.post("/operations/{name}")
async def run_operation(name: str, request: Request) -> JSONResponse:
    """Execute a catalogue operation.

    Args:
        name: Operation name, e.g. ``request.create``.
        request: The incoming FastAPI request.

    Returns:
        The serialized ``OperationResult`` with a status code derived from
        its error code.
    """
    services = request.app.state.services
    catalogue = services["catalogue"]

    principal: Principal | None = None
    user_id = request.headers.get("X-User-Id")
    if user_id:
        principal = await asyncio.to_thread(resolve_principal, services["database"], user_id)
        if principal is None:
            logger.warning("Unknown caller", user_id=user_id, operation=name)
            return to_response(fail(ErrorCode.AUTH_FAILED))
        structlog.contextvars.bind_contextvars(user_id=principal.user_id)

    raw_body = await request.body()
    payload: Any = {}
    if raw_body.strip():
        try:
            payload = json.loads(raw_body)
        except json.JSONDecodeError:
            return to_response(fail(ErrorCode.INVALID_INPUT, "Body is not valid JSON"))
    if not isinstance(payload, dict):
        return to_response(fail(ErrorCode.INVALID_INPUT, "Body must be a JSON object"))

    result = await asyncio.to_thread(catalogue.execute, name, payload, principal)
    if not result.success:
        logger.info("Operation rejected", operation=name, code=result.code)
    return to_response(result)
