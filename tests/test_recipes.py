"""
Tests for the recipe, shopping list and voice handlers.

Each handler is run with call_llm_chat patched where it is imported.
"""

import json
from unittest.mock import AsyncMock, patch

import pytest

from conftest import FakeSupabase, run

from cuisineduo.inventory.refine import ScanChatTurn, refine_scan
from cuisineduo.inventory.voice import correct_transcription
from cuisineduo.llm.client import AIResponseError, LLMResult
from cuisineduo.models import InventoryItem, TasteProfile
from cuisineduo.recipes.chat import parse_modification, recipe_chat
from cuisineduo.recipes.edit import edit_recipe
from cuisineduo.recipes.generation import generate_full_recipe
from cuisineduo.recipes.images import build_image_prompt
from cuisineduo.recipes.suggest import suggest_recipes
from cuisineduo.shopping.generate import generate_shopping_list


def _reply(payload) -> LLMResult:
    return LLMResult(text=payload if isinstance(payload, str) else json.dumps(payload))


class TestRecipeChat:
    """Tests for recipe_chat."""

    def test_plain_answer(self):
        mock_llm = AsyncMock(return_value=_reply("Use crème fraîche instead."))

        with patch("cuisineduo.recipes.chat.call_llm_chat", mock_llm):
            result = run(recipe_chat("Can I skip the cream?", recipe={"name": "Quiche"}))

        assert result == {"response": "Use crème fraîche instead."}

    def test_modification_detected(self):
        reply = {"response": "Made it vegetarian.", "updates": {"name": "Veggie quiche"}, "summary": "No bacon"}
        mock_llm = AsyncMock(return_value=_reply(f"```json\n{json.dumps(reply)}\n```"))

        with patch("cuisineduo.recipes.chat.call_llm_chat", mock_llm):
            result = run(recipe_chat("Make it vegetarian", recipe={"name": "Quiche"}))

        assert result == reply

    def test_cooking_mode_mentions_step(self):
        mock_llm = AsyncMock(return_value=_reply("Yes."))
        recipe = {"name": "Quiche", "steps": [{"instruction": "Blind-bake the crust"}, {"instruction": "Add filling"}]}

        with patch("cuisineduo.recipes.chat.call_llm_chat", mock_llm):
            run(recipe_chat("Done?", recipe=recipe, mode="cooking", current_step=1))

        assert "step 2" in mock_llm.await_args.kwargs["system_prompt"]

    def test_json_without_updates_is_conversation(self):
        assert parse_modification('{"response": "hi"}') is None
        assert parse_modification("just text") is None


class TestEditRecipe:
    """Tests for edit_recipe."""

    def test_updates(self):
        mock_llm = AsyncMock(return_value=_reply({"updates": {"servings": 6}, "summary": "6 servings"}))

        with patch("cuisineduo.recipes.edit.call_llm_chat", mock_llm):
            result = run(edit_recipe("for six people", recipe={"name": "Chili", "servings": 4}))

        assert result == {"updates": {"servings": 6}, "summary": "6 servings"}
        assert mock_llm.await_args.kwargs["json_mode"] is True

    def test_search_requested(self):
        mock_llm = AsyncMock(return_value=_reply({"search_needed": True, "search_reason": "authentic spices"}))

        with patch("cuisineduo.recipes.edit.call_llm_chat", mock_llm):
            result = run(edit_recipe("make it like in Sichuan"))

        assert result == {
            "search_needed": True,
            "search_query": "make it like in Sichuan",
            "search_reason": "authentic spices",
        }

    def test_search_context_never_asks_again(self):
        mock_llm = AsyncMock(return_value=_reply({"search_needed": True, "updates": {"cook_time": 90}}))

        with patch("cuisineduo.recipes.edit.call_llm_chat", mock_llm):
            result = run(edit_recipe("authentic timing", context="recipe-edit-search"))

        assert result["updates"] == {"cook_time": 90}
        assert mock_llm.await_args.kwargs["web_search"] is True

    def test_unparseable(self):
        with patch("cuisineduo.recipes.edit.call_llm_chat", AsyncMock(return_value=_reply("hmm"))):
            assert run(edit_recipe("whatever")) == {"updates": {}, "summary": ""}


class TestGenerateFullRecipe:
    def test_taste_params_clamped(self):
        recipe = {"name": "Curry", "taste_params": {"spiciness": 9, "sweetness": 0.4, "umami": "high"}}
        mock_llm = AsyncMock(return_value=_reply({"recipe": recipe}))

        with patch("cuisineduo.recipes.generation.call_llm_chat", mock_llm):
            result = run(generate_full_recipe(
                "Curry",
                taste_profiles=[TasteProfile(display_name="Alice", taste_profile={"spiciness": 1.5})],
            ))

        assert result["taste_params"]["spiciness"] == 5
        assert result["taste_params"]["sweetness"] == 1
        assert result["taste_params"]["umami"] is None
        assert len(result["taste_params"]) == 7
        assert "Alice" in mock_llm.await_args.kwargs["system_prompt"]

    def test_missing_recipe_raises(self):
        with patch("cuisineduo.recipes.generation.call_llm_chat", AsyncMock(return_value=_reply({"name": "x"}))):
            with pytest.raises(AIResponseError):
                run(generate_full_recipe("Curry"))


class TestSuggestRecipes:
    def test_current_language_copied_into_translations(self, sample_inventory):
        reply = {"recipes": [{
            "name": "Omelette",
            "ingredients": [{"name": "eggs", "quantity": 3}],
            "steps": [{"instruction": "Whisk"}],
            "translations": {"zh": {"name": "煎蛋卷"}},
        }]}
        mock_llm = AsyncMock(return_value=_reply(reply))
        inventory = [InventoryItem(**i) for i in sample_inventory]

        with patch("cuisineduo.recipes.suggest.call_llm_chat", mock_llm):
            [recipe] = run(suggest_recipes(inventory, lang="en"))

        assert recipe["translations"]["en"]["name"] == "Omelette"
        assert recipe["translations"]["en"]["ingredients"] == [{"name": "eggs"}]
        assert recipe["translations"]["zh"] == {"name": "煎蛋卷"}
        assert "Milk" in mock_llm.await_args.kwargs["messages"][0]["content"]

    def test_unparseable_raises(self, sample_inventory):
        with patch("cuisineduo.recipes.suggest.call_llm_chat", AsyncMock(return_value=_reply("no"))):
            with pytest.raises(AIResponseError):
                run(suggest_recipes([InventoryItem(**i) for i in sample_inventory]))


class TestImagePrompt:
    def test_ingredients_and_style(self):
        prompt = build_image_prompt("Pho", ingredients=[{"name": "beef"}, "noodles"], style_hint="rustic")

        assert "Key ingredients: beef, noodles" in prompt
        assert "Style: rustic" in prompt
        assert "A delicious dish" in prompt


class TestShoppingList:
    """Tests for generate_shopping_list."""

    def test_list_and_items_stored(self):
        db = FakeSupabase({"recipes": [
            {"id": "recipe-1", "name": "Crêpes", "servings": 4, "ingredients": [{"name": "flour", "quantity": 250, "unit": "g"}]},
        ]})
        reply = {"items": [
            {"name": "Flour", "quantity": 250, "unit": "g", "category": "grains", "recipe_name": "Crêpes"},
            {"name": "Milk", "quantity": 0.5, "unit": "L"},
            {"quantity": 3},
        ]}
        mock_llm = AsyncMock(return_value=_reply(reply))

        with patch("cuisineduo.shopping.generate.call_llm_chat", mock_llm):
            result = run(generate_shopping_list(
                db, household_id="house-1", created_by="alice", recipe_ids=["recipe-1"], list_name="Weekend",
            ))

        assert result["items_count"] == 2
        assert result["list"]["name"] == "Weekend"
        items = db.rows("shopping_list_items")
        assert [i["sort_order"] for i in items] == [0, 1]
        assert items[1]["category"] == "other"
        assert all(i["list_id"] == result["list"]["id"] for i in items)
        assert "flour: 250 g" in mock_llm.await_args.kwargs["messages"][0]["content"]

    def test_default_name(self):
        db = FakeSupabase()

        with patch("cuisineduo.shopping.generate.call_llm_chat", AsyncMock(return_value=_reply({"items": []}))):
            result = run(generate_shopping_list(db, household_id="house-1", lang="en"))

        assert result["list"]["name"].startswith("Groceries ")
        assert db.rows("shopping_list_items") == []


class TestVoice:
    """Tests for correct_transcription."""

    def test_chat(self):
        with patch("cuisineduo.inventory.voice.call_llm_chat", AsyncMock(return_value=_reply("On mange quoi ce soir ?"))):
            result = run(correct_transcription("on manque quoi ce soir", context="chat"))

        assert result == {"corrected": "On mange quoi ce soir ?"}

    def test_scan_correction_falls_back_to_items(self):
        items = [{"name": "Lait", "price": 1.2}]

        with patch("cuisineduo.inventory.voice.call_llm_chat", AsyncMock(return_value=_reply("garbled"))):
            result = run(correct_transcription("le lait c'est 1,30", context="scan-correction", items=items))

        assert result == {"items": items, "changes": ""}

    def test_inventory_update_filters_bad_updates(self):
        reply = {"updates": [{"item_id": "inv-1", "action": "consumed"}, {"action": "update"}], "summary": "milk done"}

        with patch("cuisineduo.inventory.voice.call_llm_chat", AsyncMock(return_value=_reply(reply))):
            result = run(correct_transcription("plus de lait", context="inventory-update", items=[{"item_id": "inv-1"}]))

        assert result == {"updates": [{"item_id": "inv-1", "action": "consumed"}], "summary": "milk done"}

    def test_inventory_update_asks_for_search(self):
        reply = {"search_needed": True, "search_query": "shelf life of kimchi"}

        with patch("cuisineduo.inventory.voice.call_llm_chat", AsyncMock(return_value=_reply(reply))):
            result = run(correct_transcription("kimchi expiry", context="inventory-update", items=[]))

        assert result["search_needed"] is True
        assert result["search_query"] == "shelf life of kimchi"


class TestRefineScan:
    def test_refined_items(self):
        reply = {"response": "Merged the two milks.", "items": [{"name": "Milk", "quantity": 2}], "duplicates": [0, "x"]}
        mock_llm = AsyncMock(return_value=_reply(reply))

        with patch("cuisineduo.inventory.refine.call_llm_chat", mock_llm):
            result = run(refine_scan(
                [{"name": "Milk"}, {"name": "Milk"}],
                message="merge duplicates",
                history=[ScanChatTurn(role="assistant", content="Here are your items.")],
            ))

        assert result == {"response": "Merged the two milks.", "items": [{"name": "Milk", "quantity": 2}], "duplicates": [0]}
        assert mock_llm.await_args.kwargs["messages"][0] == {"role": "assistant", "content": "Here are your items."}

    def test_unparseable_keeps_items(self):
        items = [{"name": "Milk"}]

        with patch("cuisineduo.inventory.refine.call_llm_chat", AsyncMock(return_value=_reply("Looks good!"))):
            result = run(refine_scan(items))

        assert result == {"response": "Looks good!", "items": items, "duplicates": []}
