"""
GIF search through the Giphy API, plus AI-picked suggestions that match
the tone of the conversation.
"""

import asyncio
import logging
import re
from typing import Any

import httpx
from pydantic import BaseModel

from cuisineduo.config import settings
from cuisineduo.llm.client import call_llm_chat, user_message
from cuisineduo.models import ChatTurn

logger = logging.getLogger(__name__)

GIPHY_SEARCH_URL = "https://api.giphy.com/v1/gifs/search"
GIPHY_TRENDING_URL = "https://api.giphy.com/v1/gifs/trending"
SEARCH_LIMIT = 20
SUGGEST_PER_QUERY = 8
SUGGEST_MAX_QUERIES = 5
SUGGEST_MAX_RESULTS = 20
MAX_QUERY_LENGTH = 40
CONVERSATION_LIMIT = 15

SUGGEST_SYSTEM_PROMPTS = {
    "fr": (
        "Tu es un expert en GIFs et réactions visuelles. Génère des requêtes de recherche courtes "
        "(1 à 3 mots en anglais). Réponds uniquement avec les requêtes, une par ligne, sans numérotation."
    ),
    "en": (
        "You are a GIF and reaction expert. Write short search queries (1-3 English words). "
        "Reply with the queries only, one per line, no numbering or punctuation."
    ),
    "zh": "你是GIF和表情反应专家。生成简短的搜索词（1到3个英文单词）。只回复搜索词，每行一个，不要编号或标点。",
}

_NUMBERING = re.compile(r"^[\d\-.)*]+\s*")


class GiphyError(Exception):
    """Giphy is unreachable or answered with an error."""


class GifUsage(BaseModel):
    title: str
    count: int = 1


def giphy_lang(lang: str) -> str:
    return "zh-CN" if lang == "zh" else lang


def format_gif(gif: dict[str, Any]) -> dict[str, Any]:
    images = gif.get("images") or {}
    fixed = images.get("fixed_width") or {}
    small = images.get("fixed_width_small") or {}

    def dimension(value: Any) -> int:
        try:
            return int(value) or 200
        except (TypeError, ValueError):
            return 200

    return {
        "id": gif.get("id"),
        "title": gif.get("title") or "",
        "preview_url": small.get("url") or fixed.get("url"),
        "url": fixed.get("url"),
        "width": dimension(fixed.get("width")),
        "height": dimension(fixed.get("height")),
    }


def _api_key() -> str:
    if not settings.giphy_api_key:
        raise GiphyError("Giphy API key not configured")
    return settings.giphy_api_key


async def _giphy_get(client: httpx.AsyncClient, url: str, params: dict[str, Any]) -> list[dict[str, Any]]:
    response = await client.get(url, params={"api_key": _api_key(), "rating": "g", **params})
    response.raise_for_status()
    return response.json().get("data") or []


async def search_gifs(query: str | None = None, *, offset: int = 0, lang: str = "fr") -> dict[str, Any]:
    """
    Search Giphy, or list trending GIFs when the query is blank.

    Returns:
        {gifs, next_offset}
    """
    query = (query or "").strip()
    params: dict[str, Any] = {"limit": SEARCH_LIMIT, "offset": offset, "lang": giphy_lang(lang)}
    if query:
        params["q"] = query

    try:
        async with httpx.AsyncClient(timeout=15.0) as client:
            data = await _giphy_get(client, GIPHY_SEARCH_URL if query else GIPHY_TRENDING_URL, params)
    except httpx.HTTPError as e:
        raise GiphyError(f"Giphy search failed: {e}") from e

    return {"gifs": [format_gif(g) for g in data], "next_offset": offset + SEARCH_LIMIT}


def parse_queries(text: str) -> list[str]:
    queries = []
    for line in text.splitlines():
        query = _NUMBERING.sub("", line).strip()
        if query and len(query) < MAX_QUERY_LENGTH:
            queries.append(query)
    return queries[:SUGGEST_MAX_QUERIES]


def build_suggest_prompt(messages: list[ChatTurn], gif_history: list[GifUsage]) -> str:
    conversation = "\n".join(
        f"{'AI' if m.is_ai else 'User'}: {m.content}"
        for m in [m for m in messages if (m.content or "").strip()][:CONVERSATION_LIMIT]
    )
    favourites = ", ".join(f'"{g.title}" ({g.count}x)' for g in gif_history)
    return f"""Recent chat conversation:
{conversation or '(no recent conversation)'}

The user's favourite GIFs: {favourites or 'no history'}

From the tone and topic of the conversation and the user's GIF taste (style, characters, recurring themes),
write 4 short, relevant GIF search queries. Work favourite characters or styles (frog, cat, anime...) into
the queries when they fit the conversation."""


async def suggest_gifs(
    messages: list[ChatTurn] | None = None,
    *,
    gif_history: list[GifUsage] | None = None,
    lang: str = "fr",
) -> dict[str, Any]:
    """
    Returns:
        {gifs (deduplicated, at most 20), queries_used}
    """
    _api_key()
    result = await call_llm_chat(
        messages=[user_message(build_suggest_prompt(messages or [], gif_history or []))],
        system_prompt=SUGGEST_SYSTEM_PROMPTS.get(lang, SUGGEST_SYSTEM_PROMPTS["fr"]),
        node_name="gif-suggest",
        complexity="low",
    )
    queries = parse_queries(result.text)
    if not queries:
        return {"gifs": [], "queries_used": []}

    async with httpx.AsyncClient(timeout=15.0) as client:
        async def search(query: str) -> list[dict[str, Any]]:
            try:
                return await _giphy_get(
                    client,
                    GIPHY_SEARCH_URL,
                    {"q": query, "limit": SUGGEST_PER_QUERY, "lang": giphy_lang(lang)},
                )
            except httpx.HTTPError as e:
                logger.warning(f"Giphy search for {query!r} failed: {e}")
                return []

        results = await asyncio.gather(*(search(q) for q in queries))

    seen: set[str] = set()
    gifs = []
    for batch in results:
        for gif in batch:
            if gif.get("id") not in seen:
                seen.add(gif.get("id"))
                gifs.append(format_gif(gif))

    logger.debug(f"GIF suggestions: {len(gifs)} results for {queries}")
    return {"gifs": gifs[:SUGGEST_MAX_RESULTS], "queries_used": queries}
