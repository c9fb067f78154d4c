"""Culinary Time Machine - composition root.

Wires the pipeline together from configuration:
- GenerationClient (Gemini recipe + image requests)
- ResilientInvoker (retry policy shared by both requests)
- NotificationCenter (status messages)
- RecipeSession (ingredients + pipeline state)
- RecipeArchive (saved recipes, loaded at startup)

CulinaryTimeMachine exposes the whole contract offered to a user interface:
add, remove, generate, save and select, plus the state to display.
"""

from typing import Optional

from culinary.archive.archive import RecipeArchive
from culinary.models.models import PipelineState, SavedRecipe, StatusKind, StatusMessage
from culinary.services.generation import GenerationClient
from culinary.session.notifications import NotificationCenter
from culinary.session.session import RecipeSession
from culinary.utils.exceptions import RecipeNotFoundError
from culinary.utils.logger import logger
from culinary.utils.retry import ResilientInvoker

MSG_RECIPE_SAVED = "Recipe saved!"
MSG_NOTHING_TO_SAVE = "Nothing to save!"
MSG_RECIPE_NOT_FOUND = "Saved recipe not found."


class CulinaryTimeMachine:
    """Owns one session and one archive; the composing layer passes both in."""

    def __init__(self, session: RecipeSession, archive: RecipeArchive, notifications: NotificationCenter) -> None:
        self.session = session
        self.archive = archive
        self.notifications = notifications

    @classmethod
    def from_config(cls, config, client: Optional[GenerationClient] = None) -> "CulinaryTimeMachine":
        """Build the application from Config and load the archive.

        Args:
            config: Application Config.
            client: Optional preconfigured GenerationClient (default: live Gemini client).
        """
        notifications = NotificationCenter(duration=config.STATUS_DURATION)
        session = RecipeSession(
            client=client or GenerationClient.from_config(config),
            invoker=ResilientInvoker.from_config(config),
            notifications=notifications,
        )
        archive = RecipeArchive.from_config(config)
        archive.load()
        logger.info(
            f"Culinary Time Machine ready (recipe model: {config.RECIPE_MODEL}, "
            f"image model: {config.IMAGE_MODEL}, saved recipes: {len(archive)})"
        )
        return cls(session=session, archive=archive, notifications=notifications)

    @property
    def state(self) -> PipelineState:
        return self.session.state

    @property
    def ingredients(self) -> tuple[str, ...]:
        return self.session.ingredients.items

    @property
    def status(self) -> Optional[StatusMessage]:
        return self.notifications.current

    @property
    def saved_recipes(self) -> tuple[SavedRecipe, ...]:
        return self.archive.recipes

    def add(self, text: str) -> Optional[str]:
        return self.session.add_ingredient(text)

    def remove(self, value: str) -> bool:
        return self.session.remove_ingredient(value)

    async def generate(self) -> PipelineState:
        return await self.session.generate()

    def save(self) -> Optional[SavedRecipe]:
        """Archive the recipe on display, with its image if there is one."""
        state = self.session.state
        if state.recipe is None:
            self.notifications.show(MSG_NOTHING_TO_SAVE, StatusKind.ERROR)
            return None

        saved = self.archive.save(state.recipe, state.image)
        self.notifications.show(MSG_RECIPE_SAVED, StatusKind.SUCCESS)
        return saved

    def select(self, recipe_id: int) -> Optional[SavedRecipe]:
        """Show a saved recipe in the session without regenerating it."""
        try:
            saved = self.archive.select(recipe_id)
        except RecipeNotFoundError as e:
            logger.warning(str(e))
            self.notifications.show(MSG_RECIPE_NOT_FOUND, StatusKind.ERROR)
            return None

        self.session.show_saved(saved)
        return saved
