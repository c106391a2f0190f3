"""Stop planning endpoint."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable

from fastapi import APIRouter, Request, Response, status
from fastapi.responses import JSONResponse

from ...errors import describe_error
from ...schemas.plan import ErrorResponse, PlanRequest, PlanResponse, ValidationErrorResponse
from ...services import planner

logger = logging.getLogger(__name__)

router = APIRouter(tags=["plan"])

DISCONNECT_POLL_SECONDS = 0.5
CLIENT_CLOSED_REQUEST = 499


class ClientDisconnected(Exception):
    """The caller went away before the plan was ready."""


async def run_until_disconnect(request: Request, work: Awaitable[Any]) -> Any:
    """Await ``work`` and cancel it as soon as the client disconnects."""
    task = asyncio.ensure_future(work)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=DISCONNECT_POLL_SECONDS)
            if done:
                return task.result()
            if await request.is_disconnected():
                task.cancel()
                raise ClientDisconnected()
    finally:
        if not task.done():
            task.cancel()


@router.post(
    "/plan",
    response_model=PlanResponse,
    status_code=status.HTTP_200_OK,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ValidationErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    },
)
async def plan(payload: PlanRequest, request: Request) -> Any:
    bootstrap = request.app.state.fuel_bootstrap
    try:
        return await run_until_disconnect(request, planner.plan_stops(payload, bootstrap))
    except ClientDisconnected:
        logger.info("Client disconnected; plan cancelled")
        return Response(status_code=CLIENT_CLOSED_REQUEST)
    except Exception as exc:
        logger.exception(f"Error planning stops: {exc}")
        body = ErrorResponse(error=describe_error(exc), hint=planner.error_hint(exc))
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body.model_dump())
