"""Two-stage generation pipeline: recipe text, then recipe image.

RecipeSession owns the ingredient set and the PipelineState of one user
session. State transitions:

    IDLE / READY / FAILED --generate()--> FETCHING_RECIPE
    FETCHING_RECIPE --recipe decoded--> FETCHING_IMAGE
    FETCHING_RECIPE --error after retries--> FAILED
    FETCHING_IMAGE --image decoded or image error--> READY

The image is best-effort: a recipe without an image is still READY.
Only one generation runs at a time; generate() while busy is ignored.
Every run gets a generation id, and results from a superseded run are
dropped instead of overwriting newer state.
"""

from typing import Optional

from culinary.models.models import GeneratedImage, PipelineState, RecipeDraft, SavedRecipe, StatusKind
from culinary.services.generation import GenerationClient
from culinary.session.ingredients import IngredientSet
from culinary.session.notifications import NotificationCenter
from culinary.utils.exceptions import DecodeError, DuplicateIngredientError, EmptyIngredientsError
from culinary.utils.logger import PipelineLogAdapter, logger, pipeline_logger
from culinary.utils.retry import ResilientInvoker

MSG_EMPTY_INGREDIENTS = "Please add at least one ingredient to generate a recipe."
MSG_DUPLICATE_INGREDIENT = "Ingredient already added!"
MSG_BUSY = "A recipe is already being generated."
MSG_RECIPE_GENERATED = "Recipe generated! Now creating an image..."
MSG_RECIPE_UNDECODABLE = "Could not generate a recipe. Please try again."
MSG_RECIPE_FAILED = "Failed to connect to the server. Please try again."
MSG_IMAGE_GENERATED = "Image generated!"
MSG_IMAGE_UNDECODABLE = "Could not generate an image."
MSG_IMAGE_FAILED = "Failed to generate image."
MSG_RECIPE_LOADED = "Recipe loaded!"


class RecipeSession:
    """Session context for one user: ingredients, pipeline state and status.

    Collaborators are passed in, so the session can be driven with a fake
    GenerationClient and an instant-sleep ResilientInvoker.
    """

    def __init__(
        self,
        client: GenerationClient,
        invoker: ResilientInvoker,
        notifications: NotificationCenter,
        ingredients: Optional[IngredientSet] = None,
    ) -> None:
        self.client = client
        self.invoker = invoker
        self.notifications = notifications
        self.ingredients = ingredients if ingredients is not None else IngredientSet()
        self.state = PipelineState.idle()
        self.generation_id = 0
        self._busy = False

    @property
    def is_busy(self) -> bool:
        return self._busy

    def add_ingredient(self, text: str) -> Optional[str]:
        """Add an ingredient; duplicates become an error status, not an exception."""
        try:
            return self.ingredients.add(text)
        except DuplicateIngredientError as e:
            logger.debug(str(e))
            self.notifications.show(MSG_DUPLICATE_INGREDIENT, StatusKind.ERROR)
            return None

    def remove_ingredient(self, value: str) -> bool:
        return self.ingredients.remove(value)

    def _require_ingredients(self) -> tuple[str, ...]:
        if not self.ingredients:
            raise EmptyIngredientsError(MSG_EMPTY_INGREDIENTS)
        return self.ingredients.items

    def _is_current(self, generation_id: int) -> bool:
        return generation_id == self.generation_id

    def _set_state(self, generation_id: int, state: PipelineState) -> bool:
        """Apply state only if the run has not been superseded."""
        if not self._is_current(generation_id):
            pipeline_logger(generation_id).info(f"Discarding {state.phase.value} result of superseded generation")
            return False
        self.state = state
        return True

    async def generate(self) -> PipelineState:
        """Run the recipe step, then the image step.

        Never raises for pipeline failures: every outcome ends as a state
        plus a status message.

        Returns:
            PipelineState after the run (unchanged if the call was rejected).
        """
        if self._busy:
            logger.info("Generation already in flight, ignoring request")
            self.notifications.show(MSG_BUSY, StatusKind.INFO)
            return self.state

        try:
            ingredients = self._require_ingredients()
        except EmptyIngredientsError as e:
            self.notifications.show(str(e), StatusKind.ERROR)
            return self.state

        self._busy = True
        self.generation_id += 1
        generation_id = self.generation_id
        log = pipeline_logger(generation_id)
        try:
            recipe = await self._fetch_recipe(generation_id, ingredients, log)
            if recipe is not None:
                await self._fetch_image(generation_id, recipe, log)
        except Exception as e:
            log.error(f"Generation pipeline crashed: {e}", exc_info=True)
            if self._set_state(generation_id, PipelineState.failed(str(e))):
                self.notifications.show(MSG_RECIPE_FAILED, StatusKind.ERROR)
        finally:
            # A superseded run already gave up the busy flag in show_saved()
            if self._is_current(generation_id):
                self._busy = False

        return self.state

    async def _fetch_recipe(
        self, generation_id: int, ingredients: tuple[str, ...], log: PipelineLogAdapter
    ) -> Optional[RecipeDraft]:
        """Recipe stage. Returns the draft, or None once the session is FAILED."""
        self.notifications.clear()
        self._set_state(generation_id, PipelineState.fetching_recipe())
        log.info(f"Generating recipe for: {', '.join(ingredients)}")

        try:
            recipe = await self.invoker.invoke(
                lambda: self.client.fetch_recipe(ingredients),
                operation_name="Recipe request",
                log=log,
            )
        except Exception as e:
            log.error(f"Failed to generate recipe: {e}")
            if self._set_state(generation_id, PipelineState.failed(str(e))):
                message = MSG_RECIPE_UNDECODABLE if isinstance(e, DecodeError) else MSG_RECIPE_FAILED
                self.notifications.show(message, StatusKind.ERROR)
            return None

        if not self._set_state(generation_id, PipelineState.fetching_image(recipe)):
            return None
        self.notifications.show(MSG_RECIPE_GENERATED, StatusKind.SUCCESS)
        return recipe

    async def _fetch_image(self, generation_id: int, recipe: RecipeDraft, log: PipelineLogAdapter) -> None:
        """Image stage. Always ends READY; a failed image leaves it empty."""
        image: Optional[GeneratedImage] = None
        message, kind = MSG_IMAGE_GENERATED, StatusKind.SUCCESS

        try:
            image = await self.invoker.invoke(
                lambda: self.client.fetch_image(recipe.recipe_name),
                operation_name="Image request",
                log=log,
            )
        except Exception as e:
            log.warning(f"Failed to generate image: {e}")
            message = MSG_IMAGE_UNDECODABLE if isinstance(e, DecodeError) else MSG_IMAGE_FAILED
            kind = StatusKind.ERROR

        if self._set_state(generation_id, PipelineState.ready(recipe, image)):
            self.notifications.show(message, kind)

    def show_saved(self, saved: SavedRecipe) -> PipelineState:
        """Display an archived recipe without calling Gemini.

        Supersedes any generation still in flight: its late result is
        dropped and a new generate() may start right away.
        """
        self.generation_id += 1
        self._busy = False
        self.state = PipelineState.ready(saved.draft, saved.image)
        self.notifications.show(MSG_RECIPE_LOADED, StatusKind.SUCCESS)
        logger.info(f"Loaded saved recipe: {saved.recipe_name}", extra={"recipe_id": saved.id})
        return self.state
