"""
Error rendering.

Every error leaves the API as `{"error": "<code>"}`. Handlers raise
HTTPException with a snake_case detail; `handle_failures` turns domain
exceptions into the matching status and anything unexpected into a 500.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic.alias_generators import to_snake
from starlette.exceptions import HTTPException as StarletteHTTPException

from cuisineduo.chat.gifs import GiphyError
from cuisineduo.llm.audit import audit_ai_call
from cuisineduo.llm.client import AIResponseError
from cuisineduo.push.service import PushNotConfigured
from cuisineduo.recipes.translate import RecipeNotFound
from cuisineduo.swipe.models import InvalidTransition, SwipeSessionNotFound
from cuisineduo.web.context import RequestContext

logger = logging.getLogger(__name__)

# Domain exception -> (status, error code)
ERROR_CODES: dict[type[Exception], tuple[int, str]] = {
    SwipeSessionNotFound: (404, "session_not_found"),
    InvalidTransition: (409, "invalid_transition"),
    RecipeNotFound: (400, "no_recipe_data"),
    PushNotConfigured: (500, "push_not_configured"),
    GiphyError: (502, "gif_search_failed"),
    AIResponseError: (500, "ai_operation_failed"),
}

_STATUS_CODES = {
    404: "not_found",
    405: "method_not_allowed",
}

_MISSING_TYPES = {"missing", "string_too_short", "too_short"}


def error_response(status_code: int, code: str, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": code}, headers=headers)


def validation_code(errors: list[dict[str, Any]]) -> str:
    """`<field>_required` for absent/empty fields, `invalid_<field>` otherwise."""
    if not errors:
        return "invalid_request"
    first = errors[0]
    loc = [part for part in first.get("loc", ()) if isinstance(part, str) and part != "body"]
    if not loc:
        return "invalid_request"
    name = to_snake(loc[0])
    if first.get("type") in _MISSING_TYPES:
        return f"{name}_required"
    return f"invalid_{name}"


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        code = _STATUS_CODES.get(exc.status_code) if exc.detail in (None, "Not Found", "Method Not Allowed") else None
        return error_response(exc.status_code, code or str(exc.detail), getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return error_response(400, validation_code(exc.errors()))


@asynccontextmanager
async def handle_failures(operation: str, fallback: str = "ai_operation_failed") -> AsyncIterator[None]:
    """Map domain errors to their HTTP status; log anything else and answer 500 `fallback`."""
    try:
        yield
    except HTTPException:
        raise
    except Exception as e:
        for exc_type, (status_code, code) in ERROR_CODES.items():
            if isinstance(e, exc_type):
                if status_code >= 500:
                    logger.exception(f"{operation} failed")
                else:
                    logger.info(f"{operation}: {code} ({e})")
                raise HTTPException(status_code=status_code, detail=code) from e
        logger.exception(f"{operation} failed")
        raise HTTPException(status_code=500, detail=fallback) from e


async def run_audited(
    endpoint: str,
    ctx: RequestContext,
    payload: dict[str, Any],
    call: Callable[[], Awaitable[Any]],
    summarize: Callable[[Any], Any] | None = None,
) -> Any:
    """
    Run one handler under the audit trail, with errors mapped for the client.

    `summarize` shrinks the result before it is logged.
    """
    async with handle_failures(endpoint):
        async with audit_ai_call(
            endpoint,
            household_id=ctx.household_id,
            profile_id=ctx.profile_id,
            input=payload,
        ) as record:
            result = await call()
            record.output = summarize(result) if summarize else result
    return result
