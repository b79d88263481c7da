"""
Miam orchestrator.

Builds the system prompt from what the client tells us about the current
screen, replays the conversation (including earlier tool calls and their
results) and returns the actions the model chose.
"""

import json
import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from cuisineduo.llm.client import LLMResult, call_llm_chat, user_message
from cuisineduo.miam.tools import available_tools, tool_name

logger = logging.getLogger(__name__)

MAX_OUTPUT_TOKENS = 500
TEMPERATURE = 0.3
HISTORY_LIMIT = 20
INVENTORY_PREVIEW = 20
RECIPES_PREVIEW = 15

DEFAULT_ACTION_MESSAGES = {"fr": "C'est fait !", "en": "Done!", "zh": "完成！"}

PAGE_NAMES = {
    "home": "home/dashboard",
    "inventory": "food inventory",
    "recipes": "household recipes",
    "chat": "household chat",
}

# Taste profile keys that are not 1-5 scores
_TASTE_LIST_KEYS = {"banned_ingredients", "dietary_restrictions", "notes", "additional_notes"}


class MiamAction(BaseModel):
    name: str
    args: dict[str, Any] = Field(default_factory=dict)
    result: dict[str, Any] | None = None


class MiamTurn(BaseModel):
    """One past exchange; Miam turns may carry the actions they ran."""

    model_config = ConfigDict(extra="ignore")

    role: str
    content: str = ""
    actions: list[MiamAction] = Field(default_factory=list)

    @property
    def from_miam(self) -> bool:
        return self.role in ("miam", "model", "assistant")


class MiamContext(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    profile_name: str | None = Field(default=None, alias="profileName")
    household_members: list[dict[str, Any]] = Field(default_factory=list, alias="householdMembers")
    inventory_items: list[dict[str, Any]] = Field(default_factory=list, alias="inventoryItems")
    recipes: list[dict[str, Any]] = Field(default_factory=list)
    taste_profile: dict[str, Any] | None = Field(default=None, alias="tasteProfile")
    scan_review_items: dict[str, Any] | None = Field(default=None, alias="scanReviewItems")


# =============================================================================
# Prompt
# =============================================================================


def _with_brand(item: dict[str, Any]) -> str:
    name = item.get("name") or "?"
    return f"{name} ({item['brand']})" if item.get("brand") else name


def _preview(values: list[str], limit: int) -> str:
    text = ", ".join(values[:limit])
    return text + ("..." if len(values) > limit else "")


def context_sections(context: MiamContext) -> str:
    sections = []
    if context.household_members:
        names = ", ".join(m.get("display_name") or "?" for m in context.household_members)
        sections.append(f"- Household members: {names}")

    if context.inventory_items:
        items = [_with_brand(i) for i in context.inventory_items]
        sections.append(f"- Inventory ({len(items)} items): {_preview(items, INVENTORY_PREVIEW)}")

    if context.recipes:
        names = [r.get("name") or "?" for r in context.recipes]
        sections.append(f"- Household recipes ({len(names)}): {_preview(names, RECIPES_PREVIEW)}")

    if context.taste_profile:
        profile = context.taste_profile
        line = "- Taste profile: " + ", ".join(
            f"{k}: {v}/5" for k, v in profile.items() if v is not None and k not in _TASTE_LIST_KEYS
        )
        if profile.get("banned_ingredients"):
            line += f" | Banned: {', '.join(profile['banned_ingredients'])}"
        if profile.get("dietary_restrictions"):
            line += f" | Restrictions: {', '.join(profile['dietary_restrictions'])}"
        sections.append(line)

    review = context.scan_review_items
    if review and review.get("mode") == "scanReview":
        lines = []
        for i, item in enumerate(review.get("items") or []):
            price = f"{item['price']} EUR" if item.get("price") is not None else "unknown price"
            unchecked = "" if item.get("checked", True) else " (deselected)"
            lines.append(
                f"  [{i}] {_with_brand(item)}: {item.get('quantity')} {item.get('unit')}, {price}, "
                f"cat: {item.get('category')}{unchecked}"
            )
        sections.append(
            "\nSCAN REVIEW MODE: the user is checking scanned items. Use updateScanItem, removeScanItem "
            "and addScanItem to edit the list.\nScanned items:\n" + "\n".join(lines)
        )

    return "\n".join(sections)


_CATEGORY_GUIDE = """CATEGORY HINTS (use them for assumptions):
- dairy: yogurt, cheese, milk, butter, cream, eggs
- meat: chicken, beef, pork, lamb, veal, turkey, ham, sausage
- fish: salmon, tuna, cod, shrimp, mussels
- vegetables: tomato, carrot, leek, zucchini, salad, onion, garlic, broccoli, pepper
- fruits: apple, banana, orange, strawberry, grape, peach, pear
- grains: rice, pasta, flour, cereals, oats, lentils
- bakery: bread, baguette, brioche, croissant, cake, biscuits
- frozen: pizza, ice cream
- beverages: water, juice, soda, beer, wine, coffee, tea
- snacks: crisps, sweets, chocolate, nuts
- condiments: salt, sugar, oil, vinegar, sauce, mayonnaise, mustard, ketchup, spices
- other: everything else"""

_REPLY_LANGUAGE = {"fr": "French", "en": "English", "zh": "Chinese"}


def build_system_prompt(lang: str, current_page: str, context: MiamContext, tools: list[dict[str, Any]]) -> str:
    actions = "\n".join(f"- {tool_name(t)}: {t['function']['description']}" for t in tools)
    user = context.profile_name or "the user"
    language = _REPLY_LANGUAGE.get(lang, "French")

    return f"""You are Miam, CuisineDuo's smart cooking assistant.
You help {user} manage their food inventory, find recipe ideas and navigate the app.

CURRENT CONTEXT:
- Active page: {PAGE_NAMES.get(current_page, current_page)}
{context_sections(context)}

AVAILABLE ACTIONS:
{actions}

ABSOLUTE RULES:
1. ALWAYS act immediately through function calls. Never say you will do something without calling the matching function in the same message.
2. Never ask for confirmation before acting.
3. When details are missing (category, unit, quantity), make sensible assumptions right away: "yogurt" is dairy/piece, "milk" is dairy/l, "pasta" is grains/pack.
4. To remove an item, act directly. When delete and consume are both plausible, prefer consumeInventoryItem.
5. Keep the text reply to one sentence at most.

{_CATEGORY_GUIDE}

OTHER INSTRUCTIONS:
- If the user asks to go somewhere, use navigate.
- For openScanner use source="camera" unless the gallery is explicitly requested.
- Always reply in {language}."""


# =============================================================================
# History
# =============================================================================


def history_messages(history: list[MiamTurn] | None) -> list[dict[str, Any]]:
    """
    Replay past turns as chat messages.

    A Miam turn with actions becomes an assistant tool-call message, one
    tool result per call, then the text reply if there was one. Leading
    assistant turns are dropped so the replay starts with the user.
    """
    messages: list[dict[str, Any]] = []
    for t, turn in enumerate((history or [])[-HISTORY_LIMIT:]):
        if not turn.from_miam:
            if turn.content:
                messages.append(user_message(turn.content))
            continue

        if turn.actions:
            call_ids = [f"call_{t}_{i}" for i in range(len(turn.actions))]
            messages.append({
                "role": "assistant",
                "content": None,
                "tool_calls": [
                    {
                        "id": call_id,
                        "type": "function",
                        "function": {"name": action.name, "arguments": json.dumps(action.args, ensure_ascii=False)},
                    }
                    for call_id, action in zip(call_ids, turn.actions)
                ],
            })
            for call_id, action in zip(call_ids, turn.actions):
                messages.append({
                    "role": "tool",
                    "tool_call_id": call_id,
                    "content": json.dumps(action.result or {"success": True}, ensure_ascii=False),
                })
        if turn.content:
            messages.append({"role": "assistant", "content": turn.content})

    while messages and messages[0]["role"] != "user":
        messages.pop(0)
    return messages


# =============================================================================
# Run
# =============================================================================


def default_action_message(lang: str) -> str:
    return DEFAULT_ACTION_MESSAGES.get(lang, DEFAULT_ACTION_MESSAGES["fr"])


def build_reply(result: LLMResult, lang: str) -> tuple[str, list[dict[str, Any]]]:
    actions = [{"name": call.name, "args": call.args} for call in result.tool_calls]
    text = result.text.strip()
    if not text and actions:
        text = default_action_message(lang)
    return text, actions


async def run_orchestrator(
    message: str,
    *,
    lang: str = "fr",
    current_page: str = "home",
    client_actions: list[str] | None = None,
    history: list[MiamTurn] | None = None,
    context: MiamContext | None = None,
) -> dict[str, Any]:
    """
    Returns:
        {response, actions: [{name, args}], debug}
    """
    context = context or MiamContext()
    tools = available_tools(client_actions)
    system_prompt = build_system_prompt(lang, current_page, context, tools)
    messages = history_messages(history)
    messages.append(user_message(message))

    result = await call_llm_chat(
        messages=messages,
        system_prompt=system_prompt,
        node_name="miam-orchestrator",
        max_tokens=MAX_OUTPUT_TOKENS,
        temperature=TEMPERATURE,
        tools=tools,
    )
    response, actions = build_reply(result, lang)
    logger.info(f"Miam chose {len(actions)} action(s): {[a['name'] for a in actions]}")

    return {
        "response": response,
        "actions": actions,
        "debug": {
            "system_prompt": system_prompt,
            "tools": [tool_name(t) for t in tools],
            "conversation_history": messages[:-1],
            "model": result.model,
            "generation_config": {"max_tokens": MAX_OUTPUT_TOKENS, "temperature": TEMPERATURE},
            "user_message": message,
        },
    }
