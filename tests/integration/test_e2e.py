"""End-to-end tests against the live Gemini API.

Run explicitly (they are outside the default testpaths):
    pytest tests/integration -m integration
"""

import pytest

from culinary.app import CulinaryTimeMachine
from culinary.models.models import PipelinePhase
from culinary.services.generation import GenerationClient
from culinary.utils.config import Config
from culinary.utils.logger import logger

pytestmark = pytest.mark.integration


@pytest.fixture
def live_config(tmp_path):
    config = Config()
    config.ARCHIVE_FILE = str(tmp_path / "recipes.json")
    config.validate()
    return config


@pytest.fixture
def client(live_config):
    return GenerationClient.from_config(live_config)


class TestGenerationClient:
    @pytest.mark.asyncio
    async def test_fetch_recipe(self, client):
        recipe = await client.fetch_recipe(("flour", "sugar", "eggs"))

        logger.info(f"Live recipe: {recipe.recipe_name} ({recipe.era})")
        assert recipe.recipe_name
        assert recipe.era
        assert recipe.ingredients
        assert recipe.instructions

    @pytest.mark.asyncio
    async def test_fetch_image(self, client):
        image = await client.fetch_image("Victoria Sponge")

        assert image.mime_type.startswith("image/")
        assert len(image.to_bytes()) > 0


class TestFullPipeline:
    @pytest.mark.asyncio
    async def test_generate_save_select(self, live_config):
        app = CulinaryTimeMachine.from_config(live_config)
        app.add("flour")
        app.add("butter")

        state = await app.generate()

        assert state.phase == PipelinePhase.READY
        assert state.recipe is not None
        if state.image is None:
            logger.warning(f"Image step did not produce an image: {app.status}")

        saved = app.save()
        assert saved is not None

        reloaded = CulinaryTimeMachine.from_config(live_config)
        assert reloaded.select(saved.id) == saved
        assert reloaded.state.recipe == state.recipe
