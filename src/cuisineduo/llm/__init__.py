"""
CuisineDuo - LLM layer.

OpenAI chat, vision, web-search and image calls plus tolerant JSON parsing.
"""

from cuisineduo.llm.client import AIResponseError, LLMResult, ToolCall, call_llm_chat, generate_image, image_part, user_message
from cuisineduo.llm.parsing import parse_json, strip_code_fences

__all__ = [
    "AIResponseError",
    "LLMResult",
    "ToolCall",
    "call_llm_chat",
    "generate_image",
    "image_part",
    "parse_json",
    "strip_code_fences",
    "user_message",
]
