"""Recipe illustrations."""

from typing import Any

from cuisineduo.llm.client import generate_image


def build_image_prompt(
    name: str,
    description: str | None = None,
    ingredients: list[Any] | None = None,
    style_hint: str | None = None,
) -> str:
    names = ", ".join(i.get("name", "") if isinstance(i, dict) else str(i) for i in ingredients or [])
    prompt = (
        f'A single appetizing food photo of a dish called "{name}". '
        f"Description: {description or 'A delicious dish'}. "
        f"Key ingredients: {names or 'various'}. "
    )
    if style_hint:
        prompt += f"Style: {style_hint}. "
    prompt += "Beautifully plated, natural lighting, top-down or 45-degree angle. No text in the image."
    return prompt


async def generate_recipe_image(
    name: str,
    *,
    description: str | None = None,
    ingredients: list[Any] | None = None,
    style_hint: str | None = None,
) -> dict[str, str]:
    """
    Returns:
        {image_url: data URL, model}

    Raises:
        AIResponseError: every image model failed
    """
    image_url, model = await generate_image(
        build_image_prompt(name, description, ingredients, style_hint),
        node_name="generate-recipe-image",
    )
    return {"image_url": image_url, "model": model}
