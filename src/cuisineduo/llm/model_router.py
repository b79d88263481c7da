"""
CuisineDuo - Model Router.

Selects the OpenAI model and sampling settings for a call.

Complexity levels:
- low: Transcription fixes, GIF queries, action routing → gpt-4.1-mini, cool
- medium: Chat replies, scan refinement, shopping lists → gpt-4.1-mini
- high: Recipe generation, swipe suggestions → gpt-4.1, more creative
"""

from typing import Literal, TypedDict


class ModelConfig(TypedDict, total=False):
    """Configuration for model calls."""

    model: str
    temperature: float
    max_tokens: int


MODEL_CONFIGS: dict[str, ModelConfig] = {
    "low": {
        "model": "gpt-4.1-mini",
        "temperature": 0.2,
        "max_tokens": 1024,
    },
    "medium": {
        "model": "gpt-4.1-mini",
        "temperature": 0.5,
        "max_tokens": 2048,
    },
    "high": {
        "model": "gpt-4.1",
        "temperature": 0.8,
        "max_tokens": 8192,
    },
}

DEFAULT_CONFIG: ModelConfig = {
    "model": "gpt-4.1-mini",
    "temperature": 0.5,
}

# Vision calls need a model that accepts image parts
VISION_MODEL = "gpt-4.1"

# Grounded calls (price checks, recipe research) use the search preview model.
# It rejects temperature, so configs for it carry only max_tokens.
SEARCH_MODEL = "gpt-4o-mini-search-preview"

# Image generation, tried in order until one succeeds
IMAGE_MODELS: tuple[str, ...] = ("gpt-image-1", "dall-e-3")


def get_model_config(
    complexity: Literal["low", "medium", "high"] | str,
    *,
    vision: bool = False,
    web_search: bool = False,
) -> ModelConfig:
    """
    Get model configuration for a call.

    Args:
        complexity: Task complexity level
        vision: Request includes an image part
        web_search: Request needs live web results

    Returns:
        A fresh config dict (safe to mutate)
    """
    config: ModelConfig = dict(MODEL_CONFIGS.get(complexity, DEFAULT_CONFIG))  # type: ignore[assignment]

    if web_search:
        return {"model": SEARCH_MODEL, "max_tokens": config.get("max_tokens", 2048)}
    if vision:
        config["model"] = VISION_MODEL

    return config
