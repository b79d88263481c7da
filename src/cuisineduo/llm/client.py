"""
CuisineDuo - LLM Client.

All model traffic goes through here: chat (optionally with images, tools,
forced JSON or web search) and image generation. Every call is written to
the prompt log when enabled.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from openai import AsyncOpenAI

from cuisineduo.config import settings
from cuisineduo.llm.model_router import IMAGE_MODELS, get_model_config
from cuisineduo.llm.prompt_logger import log_prompt

logger = logging.getLogger(__name__)

# One client per API key (chat traffic and scan traffic may differ)
_clients: dict[str, AsyncOpenAI] = {}


class AIResponseError(Exception):
    """The model returned nothing usable."""


@dataclass
class ToolCall:
    """A function invocation requested by the model."""

    id: str
    name: str
    args: dict[str, Any] = field(default_factory=dict)


@dataclass
class LLMResult:
    """Text plus any tool calls from one chat completion."""

    text: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)
    model: str = ""


def get_raw_async_client(*, scan: bool = False) -> AsyncOpenAI:
    """
    Get the AsyncOpenAI client.

    Args:
        scan: Use the vision/scan key when one is configured
    """
    api_key = settings.scan_api_key if scan else settings.openai_api_key
    if api_key not in _clients:
        _clients[api_key] = AsyncOpenAI(api_key=api_key)
    return _clients[api_key]


def image_part(image_base64: str, mime_type: str = "image/jpeg") -> dict[str, Any]:
    """Build a vision content part from raw base64 (no data: prefix)."""
    return {
        "type": "image_url",
        "image_url": {"url": f"data:{mime_type};base64,{image_base64}"},
    }


def user_message(text: str, *images: dict[str, Any]) -> dict[str, Any]:
    """A user turn, multimodal when image parts are given."""
    if not images:
        return {"role": "user", "content": text}
    return {"role": "user", "content": [{"type": "text", "text": text}, *images]}


def _parse_tool_calls(raw_calls) -> list[ToolCall]:
    calls = []
    for raw in raw_calls or []:
        try:
            args = json.loads(raw.function.arguments or "{}")
        except json.JSONDecodeError:
            logger.warning(f"Tool call {raw.function.name} had invalid arguments")
            args = {}
        calls.append(ToolCall(id=raw.id, name=raw.function.name, args=args))
    return calls


async def call_llm_chat(
    *,
    messages: list[dict[str, Any]],
    node_name: str,
    system_prompt: str | None = None,
    complexity: str = "medium",
    max_tokens: int | None = None,
    temperature: float | None = None,
    json_mode: bool = False,
    tools: list[dict[str, Any]] | None = None,
    web_search: bool = False,
    scan: bool = False,
) -> LLMResult:
    """
    Make one chat completion.

    Args:
        messages: Ordered turns ({role, content}); content may be multimodal
        node_name: Handler name for logs (scan-receipt, chat-ai, ...)
        system_prompt: Optional system instruction
        complexity: Task complexity for model selection
        max_tokens: Override the routed max_tokens
        temperature: Override the routed temperature
        json_mode: Force a JSON object response
        tools: OpenAI function declarations
        web_search: Ground the answer with live web results
        scan: Route through the scan API key (vision traffic)

    Returns:
        LLMResult with text and parsed tool calls
    """
    has_images = any(isinstance(m.get("content"), list) for m in messages)
    config = get_model_config(complexity, vision=has_images, web_search=web_search)
    model = config.pop("model")

    if max_tokens is not None:
        config["max_tokens"] = max_tokens
    if temperature is not None and not web_search:
        config["temperature"] = temperature

    full_messages = list(messages)
    if system_prompt:
        full_messages.insert(0, {"role": "system", "content": system_prompt})

    api_kwargs: dict[str, Any] = {
        "model": model,
        "messages": full_messages,
        "store": False,
        **config,
    }
    if json_mode:
        api_kwargs["response_format"] = {"type": "json_object"}
    if tools:
        api_kwargs["tools"] = tools
    if web_search:
        api_kwargs["web_search_options"] = {}

    log_config = {k: v for k, v in api_kwargs.items() if k in ("temperature", "max_tokens", "response_format")}

    try:
        client = get_raw_async_client(scan=scan)
        completion = await client.chat.completions.create(**api_kwargs)
        message = completion.choices[0].message
        result = LLMResult(
            text=(message.content or "").strip(),
            tool_calls=_parse_tool_calls(getattr(message, "tool_calls", None)),
            model=model,
        )

        log_prompt(
            node=node_name,
            model=model,
            system_prompt=system_prompt,
            messages=messages,
            response=result.text or [c.__dict__ for c in result.tool_calls],
            config=log_config,
        )
        return result

    except Exception as e:
        log_prompt(
            node=node_name,
            model=model,
            system_prompt=system_prompt,
            messages=messages,
            error=str(e),
            config=log_config,
        )
        raise


async def generate_image(prompt: str, *, node_name: str = "generate-recipe-image") -> tuple[str, str]:
    """
    Generate an image, trying each image model in turn.

    Returns:
        (data URL, model name)

    Raises:
        AIResponseError: every model failed
    """
    client = get_raw_async_client()
    errors = []

    for model in IMAGE_MODELS:
        try:
            kwargs: dict[str, Any] = {"model": model, "prompt": prompt, "n": 1, "size": "1024x1024"}
            if model.startswith("dall-e"):
                kwargs["response_format"] = "b64_json"
            response = await client.images.generate(**kwargs)
            b64 = response.data[0].b64_json if response.data else None
            if not b64:
                raise AIResponseError("empty image payload")
            log_prompt(node=node_name, model=model, system_prompt=None,
                       messages=[{"role": "user", "content": prompt}], response="[image]")
            return f"data:image/png;base64,{b64}", model
        except Exception as e:
            logger.warning(f"Image model {model} failed: {e}")
            errors.append(f"{model}: {e}")

    log_prompt(node=node_name, model=",".join(IMAGE_MODELS), system_prompt=None,
               messages=[{"role": "user", "content": prompt}], error="; ".join(errors))
    raise AIResponseError("All image models failed")
