"""Unit tests for the RecipeSession pipeline state machine.

Tests verify:
- Empty-ingredient guard (state unchanged, error status)
- Recipe → image happy path (end-to-end through GenerationClient with a fake Gemini)
- Image failure still ends READY without an image
- Recipe failure after retries ends FAILED
- Single in-flight generation and discarding of superseded results
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from culinary.models.models import PipelinePhase, SavedRecipe, StatusKind
from culinary.services.generation import GenerationClient
from culinary.session.session import (
    MSG_BUSY,
    MSG_DUPLICATE_INGREDIENT,
    MSG_EMPTY_INGREDIENTS,
    MSG_IMAGE_FAILED,
    MSG_IMAGE_GENERATED,
    MSG_IMAGE_UNDECODABLE,
    MSG_RECIPE_FAILED,
    MSG_RECIPE_LOADED,
    MSG_RECIPE_UNDECODABLE,
    RecipeSession,
)
from culinary.utils.exceptions import DecodeError, TransportError


@pytest.fixture
def stub_client(recipe_draft, generated_image):
    """GenerationClient stand-in with async fetch methods."""
    client = MagicMock(spec=GenerationClient)
    client.fetch_recipe = AsyncMock(return_value=recipe_draft)
    client.fetch_image = AsyncMock(return_value=generated_image)
    return client


@pytest.fixture
def session(stub_client, instant_invoker, notifications):
    return RecipeSession(client=stub_client, invoker=instant_invoker, notifications=notifications)


class TestIngredientOperations:
    def test_add_and_remove(self, session):
        assert session.add_ingredient(" Flour ") == "flour"
        assert session.remove_ingredient("flour") is True
        assert session.ingredients.items == ()

    def test_duplicate_becomes_status(self, session, notifications):
        session.add_ingredient("flour")
        assert session.add_ingredient("FLOUR") is None
        assert session.ingredients.items == ("flour",)
        assert notifications.current.text == MSG_DUPLICATE_INGREDIENT
        assert notifications.current.kind == StatusKind.ERROR

    def test_blank_input_no_status(self, session, notifications):
        assert session.add_ingredient("   ") is None
        assert notifications.current is None


class TestGenerateGuards:
    @pytest.mark.asyncio
    async def test_empty_ingredients(self, session, stub_client, notifications):
        """generate() without ingredients leaves state IDLE and shows an error."""
        state = await session.generate()

        assert state.phase == PipelinePhase.IDLE
        assert session.generation_id == 0
        stub_client.fetch_recipe.assert_not_called()
        assert notifications.current.text == MSG_EMPTY_INGREDIENTS
        assert notifications.current.kind == StatusKind.ERROR

    @pytest.mark.asyncio
    async def test_empty_ingredients_keeps_previous_result(self, session, notifications):
        session.add_ingredient("flour")
        await session.generate()
        session.remove_ingredient("flour")

        state = await session.generate()

        assert state.phase == PipelinePhase.READY
        assert notifications.current.text == MSG_EMPTY_INGREDIENTS


class TestGenerateHappyPath:
    @pytest.mark.asyncio
    async def test_end_to_end_with_fake_gemini(
        self, fake_genai_client, make_text_response, make_image_response, recipe_json, recipe_draft,
        instant_invoker, notifications,
    ):
        """flour + sugar → Victoria Sponge with an image and a success status."""
        fake_genai_client.models.generate_content.side_effect = [
            make_text_response(recipe_json),
            make_image_response(),
        ]
        session = RecipeSession(
            client=GenerationClient(client=fake_genai_client),
            invoker=instant_invoker,
            notifications=notifications,
        )
        session.add_ingredient("flour")
        session.add_ingredient("sugar")

        state = await session.generate()

        assert state.phase == PipelinePhase.READY
        assert state.recipe == recipe_draft
        assert state.image is not None
        assert notifications.current.text == MSG_IMAGE_GENERATED
        assert notifications.current.kind == StatusKind.SUCCESS
        assert not session.is_busy

    @pytest.mark.asyncio
    async def test_passes_ingredients_and_recipe_name(self, session, stub_client):
        session.add_ingredient("flour")
        session.add_ingredient("sugar")

        await session.generate()

        stub_client.fetch_recipe.assert_awaited_once_with(("flour", "sugar"))
        stub_client.fetch_image.assert_awaited_once_with("Victoria Sponge")

    @pytest.mark.asyncio
    async def test_intermediate_states(self, session, stub_client, recipe_draft, notifications):
        """FETCHING_RECIPE during the recipe call, FETCHING_IMAGE with the recipe during the image call."""
        seen = {}

        async def fetch_recipe(ingredients):
            seen["recipe_phase"] = session.state.phase
            seen["busy"] = session.is_busy
            return recipe_draft

        async def fetch_image(name):
            seen["image_phase"] = session.state.phase
            seen["image_recipe"] = session.state.recipe
            seen["status"] = notifications.current.text
            raise TransportError("down")

        stub_client.fetch_recipe.side_effect = fetch_recipe
        stub_client.fetch_image.side_effect = fetch_image
        session.add_ingredient("flour")

        await session.generate()

        assert seen["recipe_phase"] == PipelinePhase.FETCHING_RECIPE
        assert seen["busy"] is True
        assert seen["image_phase"] == PipelinePhase.FETCHING_IMAGE
        assert seen["image_recipe"] == recipe_draft
        assert seen["status"] == "Recipe generated! Now creating an image..."


class TestGenerateFailures:
    @pytest.mark.asyncio
    async def test_image_failure_still_ready(self, session, stub_client, recipe_draft, notifications):
        """Recipe success + image failure ends READY without image, not FAILED."""
        stub_client.fetch_image.side_effect = TransportError("down")
        session.add_ingredient("flour")

        state = await session.generate()

        assert state.phase == PipelinePhase.READY
        assert state.recipe == recipe_draft
        assert state.image is None
        assert stub_client.fetch_image.await_count == 5
        assert notifications.current.text == MSG_IMAGE_FAILED
        assert notifications.current.kind == StatusKind.ERROR

    @pytest.mark.asyncio
    async def test_image_decode_failure(self, session, stub_client, notifications):
        stub_client.fetch_image.side_effect = DecodeError("no image part")
        session.add_ingredient("flour")

        state = await session.generate()

        assert state.phase == PipelinePhase.READY
        assert state.image is None
        assert stub_client.fetch_image.await_count == 1
        assert notifications.current.text == MSG_IMAGE_UNDECODABLE

    @pytest.mark.asyncio
    async def test_recipe_transport_failure(self, session, stub_client, notifications, instant_sleep):
        """Transport errors are retried 5 times, then the session is FAILED."""
        stub_client.fetch_recipe.side_effect = TransportError("down")
        session.add_ingredient("flour")

        state = await session.generate()

        assert state.phase == PipelinePhase.FAILED
        assert state.reason == "down"
        assert stub_client.fetch_recipe.await_count == 5
        assert instant_sleep.await_count == 4
        stub_client.fetch_image.assert_not_called()
        assert notifications.current.text == MSG_RECIPE_FAILED

    @pytest.mark.asyncio
    async def test_recipe_decode_failure_not_retried(self, session, stub_client, notifications):
        stub_client.fetch_recipe.side_effect = DecodeError("not json")
        session.add_ingredient("flour")

        state = await session.generate()

        assert state.phase == PipelinePhase.FAILED
        assert stub_client.fetch_recipe.await_count == 1
        assert notifications.current.text == MSG_RECIPE_UNDECODABLE

    @pytest.mark.asyncio
    async def test_recovers_after_failure(self, session, stub_client, recipe_draft):
        stub_client.fetch_recipe.side_effect = [DecodeError("not json"), recipe_draft]
        session.add_ingredient("flour")

        assert (await session.generate()).phase == PipelinePhase.FAILED
        assert (await session.generate()).phase == PipelinePhase.READY
        assert session.generation_id == 2

    @pytest.mark.asyncio
    async def test_unexpected_error_becomes_failed(self, session, notifications):
        """Errors that are not GenerationErrors still resolve to FAILED."""
        session.invoker = MagicMock()
        session.invoker.invoke = AsyncMock(side_effect=RuntimeError("boom"))
        session.add_ingredient("flour")

        state = await session.generate()

        assert state.phase == PipelinePhase.FAILED
        assert state.reason == "boom"
        assert notifications.current.text == MSG_RECIPE_FAILED
        assert not session.is_busy


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_second_generate_while_busy_is_ignored(self, session, stub_client, recipe_draft, notifications):
        release = asyncio.Event()

        async def slow_recipe(ingredients):
            await release.wait()
            return recipe_draft

        stub_client.fetch_recipe.side_effect = slow_recipe
        session.add_ingredient("flour")

        first = asyncio.create_task(session.generate())
        await asyncio.sleep(0)
        assert session.is_busy

        state = await session.generate()
        assert state.phase == PipelinePhase.FETCHING_RECIPE
        assert notifications.current.text == MSG_BUSY

        release.set()
        final = await first

        assert final.phase == PipelinePhase.READY
        assert stub_client.fetch_recipe.await_count == 1
        assert session.generation_id == 1

    @pytest.mark.asyncio
    async def test_superseded_result_is_discarded(self, session, stub_client, recipe_draft, notifications):
        """Loading a saved recipe mid-flight wins over the late generation result."""
        release = asyncio.Event()

        async def slow_recipe(ingredients):
            await release.wait()
            return recipe_draft

        stub_client.fetch_recipe.side_effect = slow_recipe
        session.add_ingredient("flour")
        saved = SavedRecipe.create(1, recipe_draft.model_copy(update={"recipe_name": "Posset"}))

        task = asyncio.create_task(session.generate())
        await asyncio.sleep(0)
        session.show_saved(saved)

        release.set()
        await task

        assert session.state.phase == PipelinePhase.READY
        assert session.state.recipe.recipe_name == "Posset"
        stub_client.fetch_image.assert_not_called()
        assert notifications.current.text == MSG_RECIPE_LOADED
        assert not session.is_busy

    @pytest.mark.asyncio
    async def test_generate_allowed_after_superseding_hung_run(
        self, session, stub_client, recipe_draft, notifications
    ):
        """A hung request does not block a new generation once it is superseded."""
        release = asyncio.Event()
        later = recipe_draft.model_copy(update={"recipe_name": "Syllabub"})
        calls = []

        async def fetch_recipe(ingredients):
            calls.append(ingredients)
            if len(calls) == 1:
                await release.wait()
                return recipe_draft
            return later

        stub_client.fetch_recipe.side_effect = fetch_recipe
        session.add_ingredient("cream")

        hung = asyncio.create_task(session.generate())
        await asyncio.sleep(0)
        session.show_saved(SavedRecipe.create(1, recipe_draft))
        assert not session.is_busy

        state = await session.generate()

        assert state.phase == PipelinePhase.READY
        assert state.recipe.recipe_name == "Syllabub"
        assert notifications.current.text != MSG_BUSY

        release.set()
        await hung

        assert session.state.recipe.recipe_name == "Syllabub"
        assert not session.is_busy
        assert stub_client.fetch_image.await_count == 1


class TestShowSaved:
    def test_show_saved_sets_ready(self, session, recipe_draft, generated_image, notifications, stub_client):
        saved = SavedRecipe.create(5, recipe_draft, generated_image)

        state = session.show_saved(saved)

        assert state.phase == PipelinePhase.READY
        assert state.recipe == recipe_draft
        assert state.image == generated_image
        stub_client.fetch_recipe.assert_not_called()
        assert notifications.current.text == MSG_RECIPE_LOADED
