"""
Consolidated action endpoints.

`/api/inventory-ai`, `/api/recipe-ai` and `/api/swipe-ai` take one JSON body
with an `action` key and route it to the same handler the per-feature
endpoint uses.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from fastapi import HTTPException
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from cuisineduo.web.context import RequestContext
from cuisineduo.web.schemas import ApiRequest


@dataclass(frozen=True)
class Action:
    request_model: type[ApiRequest]
    handler: Callable[[Any, RequestContext], Awaitable[Any]]


async def dispatch(body: dict[str, Any], actions: dict[str, Action], ctx: RequestContext) -> Any:
    action = actions.get(body.get("action") or "")
    if action is None:
        raise HTTPException(status_code=400, detail="invalid_action")

    try:
        request = action.request_model.model_validate(body)
    except ValidationError as e:
        raise RequestValidationError(e.errors()) from e

    return await action.handler(request, ctx)
