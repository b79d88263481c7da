"""Miam replies in the household group chat."""

import logging
import re

from cuisineduo.llm.client import call_llm_chat, user_message
from cuisineduo.models import ChatTurn

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 20
MAX_OUTPUT_TOKENS = 500
TEMPERATURE = 0.7

SYSTEM_PROMPTS = {
    "fr": (
        "Tu es Miam, un assistant culinaire amical. Tu donnes des conseils de cuisine, des idées de recettes "
        "et tu aides à gérer le quotidien alimentaire. Réponds de façon concise et chaleureuse en français."
    ),
    "en": (
        "You are Miam, a friendly cooking assistant. You share cooking tips and recipe ideas and help with "
        "everyday food planning. Answer concisely and warmly in English."
    ),
    "zh": "你是Miam，一个友好的烹饪助手。你提供烹饪建议和食谱灵感，并帮助安排日常饮食。请用中文简洁而温暖地回复。",
}

_MENTION = re.compile(r"@miam", re.IGNORECASE)


def strip_mention(text: str | None) -> str:
    return _MENTION.sub("", text or "").strip()


def history_messages(history: list[ChatTurn] | None) -> list[dict[str, str]]:
    """Last HISTORY_LIMIT turns as chat messages; empty turns dropped."""
    messages = []
    for turn in (history or [])[-HISTORY_LIMIT:]:
        content = strip_mention(turn.content)
        if content:
            messages.append({"role": "assistant" if turn.is_ai else "user", "content": content})
    return messages


async def chat_reply(message: str, *, history: list[ChatTurn] | None = None, lang: str = "fr") -> str:
    messages = history_messages(history)
    messages.append(user_message(strip_mention(message)))

    result = await call_llm_chat(
        messages=messages,
        system_prompt=SYSTEM_PROMPTS.get(lang, SYSTEM_PROMPTS["fr"]),
        node_name="chat-ai",
        max_tokens=MAX_OUTPUT_TOKENS,
        temperature=TEMPERATURE,
    )
    return result.text
