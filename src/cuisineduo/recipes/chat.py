"""
Recipe chat.

Miam answers questions about one recipe. When the user asks for a change
("replace the butter with oil", "scale to 6"), it answers with a JSON
modification instead, which the client shows for confirmation.
"""

import json
import logging
from typing import Any, Literal

from pydantic import BaseModel

from cuisineduo.llm.client import call_llm_chat, user_message
from cuisineduo.llm.parsing import parse_json_object, strip_code_fences
from cuisineduo.models import TasteProfile
from cuisineduo.prompts import TASTE_DIMENSIONS, format_taste_profiles

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 20


class RecipeChatTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str


MODIFICATION_INSTRUCTIONS = f"""
Detecting modifications:
1) Questions or conversation that change nothing ("how long does it take?", "can I freeze it?"): answer in plain text.
2) Change requests, recognised by action verbs (add, remove, replace, change, increase, reduce, double, adapt, convert, adjust):
   answer ONLY with raw JSON, no markdown:
   {{
     "response": "confirmation message",
     "updates": {{ ...only the changed fields... }},
     "summary": "short summary of the changes"
   }}
   Scalar fields: name, description, category, servings, prep_time, cook_time, difficulty.
   Array fields (return the COMPLETE array): equipment [{{name}}], ingredients [{{name, quantity, unit, optional}}],
   steps [{{instruction, duration}}], tips [{{text}}].
   Taste profile: _tasteParams {{{', '.join(TASTE_DIMENSIONS)}}}, each 1-5 or null, inferred from the dish.
When unsure between conversation and modification, return the modification JSON: the user can still cancel it."""


def _recipe_context(recipe: dict[str, Any] | None, taste_params: dict[str, Any] | None) -> str:
    if not recipe:
        return ""

    def minutes(value: Any) -> str:
        return f"{value} min" if value else "N/A"

    if taste_params:
        taste = ", ".join(f"{d}: {taste_params.get(d, 'unset')}/5" for d in TASTE_DIMENSIONS)
    else:
        taste = "unset"

    return f"""
The user is asking about this recipe:
- Name: {recipe.get('name')}
- Description: {recipe.get('description') or 'N/A'}
- Category: {recipe.get('category') or 'N/A'}
- Servings: {recipe.get('servings') or 'N/A'}
- Prep time: {minutes(recipe.get('prep_time'))}
- Cook time: {minutes(recipe.get('cook_time'))}
- Difficulty: {recipe.get('difficulty') or 'N/A'}
- Equipment: {json.dumps(recipe.get('equipment') or [], ensure_ascii=False)}
- Ingredients: {json.dumps(recipe.get('ingredients') or [], ensure_ascii=False)}
- Steps: {json.dumps(recipe.get('steps') or [], ensure_ascii=False)}
- Tips: {json.dumps(recipe.get('tips') or [], ensure_ascii=False)}
- Current taste profile: {taste}
"""


def _cooking_context(recipe: dict[str, Any] | None, current_step: int | None) -> str:
    """Extra instructions while the user is cooking (current_step is 0-based)."""
    if current_step is None:
        return ""
    steps = (recipe or {}).get("steps") or []
    step = next((s for s in steps if s.get("order") == current_step + 1), None)
    if step is None and 0 <= current_step < len(steps):
        step = steps[current_step]
    step_text = f': "{step.get("instruction")}"' if step else ""
    return f"""
The user is in COOKING MODE, currently on step {current_step + 1}{step_text}.
Answer VERY concisely (2-3 sentences). Be precise about temperatures, cooking times and food safety."""


def parse_modification(text: str) -> dict[str, Any] | None:
    """Return {response, updates, summary} if the reply is a modification."""
    parsed = parse_json_object(strip_code_fences(text))
    if parsed and isinstance(parsed.get("updates"), dict) and parsed.get("response"):
        return {
            "response": parsed["response"],
            "updates": parsed["updates"],
            "summary": parsed.get("summary") or "",
        }
    return None


async def recipe_chat(
    message: str,
    *,
    recipe: dict[str, Any] | None = None,
    history: list[RecipeChatTurn] | None = None,
    mode: str | None = None,
    current_step: int | None = None,
    taste_profiles: list[TasteProfile] | None = None,
    taste_params: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Answer a question about a recipe.

    Returns:
        {response} for conversation, {response, updates, summary} for edits
    """
    cooking = _cooking_context(recipe, current_step) if mode == "cooking" else ""
    taste = format_taste_profiles(taste_profiles, with_ratings=True)
    if taste:
        taste += "\nMention it when a suggestion clashes with someone's taste (e.g. someone who dislikes heat)."

    system_prompt = f"""You are Miam, an expert cooking assistant helping with one specific recipe.
{_recipe_context(recipe, taste_params)}{cooking}{taste}
Be concise, precise and warm. Reply in the user's language (French, English or Chinese).
You can suggest substitutions, variants and techniques, and answer anything about the recipe.
{MODIFICATION_INSTRUCTIONS}"""

    messages = [{"role": turn.role, "content": turn.content} for turn in (history or [])[-HISTORY_LIMIT:]]
    messages.append(user_message(message))

    result = await call_llm_chat(
        messages=messages,
        system_prompt=system_prompt,
        node_name="recipe-ai-chat",
        max_tokens=1000,
        temperature=0.7,
    )

    modification = parse_modification(result.text)
    if modification:
        return modification
    return {"response": result.text}
