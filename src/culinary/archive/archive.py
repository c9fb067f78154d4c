"""Durable local archive of saved recipes.

The archive is one JSON file holding one named record with every saved
recipe, oldest first:

    {"culinaryRecipes": [{"era": ..., "recipeName": ..., "id": 1718000000000, "imageUrl": "data:..."}]}

The file is read by load(), or on first use if load() was never called, and
rewritten in full on every save(). Read problems (missing, unreadable,
corrupt) degrade to an empty archive and write problems are logged; neither
is raised to the pipeline. A file that exists but could not be read is never
overwritten.
"""

import json
import os
import tempfile
import time
from pathlib import Path
from typing import Callable, Optional

from pydantic import ValidationError

from culinary.models.models import GeneratedImage, RecipeDraft, SavedRecipe
from culinary.utils.exceptions import RecipeNotFoundError, StorageError
from culinary.utils.logger import logger

DEFAULT_RECORD_KEY = "culinaryRecipes"


def _epoch_millis() -> int:
    return time.time_ns() // 1_000_000


class RecipeArchive:
    """Archive context: owns every SavedRecipe and its JSON file."""

    def __init__(
        self,
        path: str | Path,
        record_key: str = DEFAULT_RECORD_KEY,
        clock: Optional[Callable[[], int]] = None,
    ) -> None:
        """Initialize RecipeArchive.

        Args:
            path: Location of the archive JSON file.
            record_key: Name of the record inside the file.
            clock: Returns the current time in epoch milliseconds (used for ids).
        """
        self.path = Path(path)
        self.record_key = record_key
        self._clock = clock or _epoch_millis
        self._recipes: list[SavedRecipe] = []
        # Saved in this process but not yet on disk; merged into every later load
        self._unwritten: list[SavedRecipe] = []
        # True once the file content is known: read, missing, or corrupt
        self._loaded = False

    @classmethod
    def from_config(cls, config) -> "RecipeArchive":
        return cls(config.ARCHIVE_FILE, record_key=config.ARCHIVE_KEY)

    @property
    def recipes(self) -> tuple[SavedRecipe, ...]:
        self._ensure_loaded()
        return tuple(self._recipes)

    def __len__(self) -> int:
        self._ensure_loaded()
        return len(self._recipes)

    def _read_bytes(self) -> bytes:
        """Raw file content.

        Raises:
            StorageError: If the file exists but cannot be read.
        """
        try:
            return self.path.read_bytes()
        except OSError as e:
            raise StorageError(f"Cannot read {self.path}: {e}") from e

    def _parse(self, raw: bytes) -> list[SavedRecipe]:
        """Decode and validate archive content.

        Raises:
            StorageError: If the content is not a valid archive document.
        """
        try:
            document = json.loads(raw.decode("utf-8"))
        except UnicodeDecodeError as e:
            raise StorageError(f"{self.path} is not UTF-8 text: {e}") from e
        except json.JSONDecodeError as e:
            raise StorageError(f"{self.path} is not valid JSON: {e}") from e

        if document is None:
            return []
        # A bare list is the record itself, as exported from browser storage
        if isinstance(document, list):
            entries = document
        elif isinstance(document, dict):
            entries = document.get(self.record_key) or []
        else:
            raise StorageError(f"{self.path} must hold a JSON object, got {type(document).__name__}")

        if not isinstance(entries, list):
            raise StorageError(f"Record '{self.record_key}' must be a list, got {type(entries).__name__}")

        try:
            recipes = [SavedRecipe.model_validate(entry) for entry in entries]
        except ValidationError as e:
            raise StorageError(f"Invalid saved recipe in {self.path}: {e.error_count()} error(s)") from e

        return sorted(recipes, key=lambda recipe: recipe.id)

    def _write(self) -> None:
        """Rewrite the whole archive file atomically.

        Raises:
            StorageError: If the file cannot be written.
        """
        document = {
            self.record_key: [recipe.model_dump(mode="json", by_alias=True) for recipe in self._recipes]
        }
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=self.path.parent, prefix=f".{self.path.name}.", delete=False
            ) as tmp:
                tmp_name = tmp.name
                json.dump(document, tmp, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StorageError(f"Cannot write {self.path}: {e}") from e

    def load(self) -> list[SavedRecipe]:
        """Load saved recipes, oldest first.

        Returns:
            Saved recipes; an empty list if the file is missing, unreadable or corrupt.
        """
        stored: list[SavedRecipe] = []

        if not self.path.exists():
            logger.debug(f"No recipe archive at {self.path}, starting empty")
        else:
            try:
                raw = self._read_bytes()
            except StorageError as e:
                # Left unloaded: the next save() reads again instead of overwriting the file
                logger.warning(f"Failed to load recipes from archive: {e}")
                self._loaded = False
                self._recipes = list(self._unwritten)
                return []

            try:
                stored = self._parse(raw)
            except StorageError as e:
                logger.warning(f"Discarding corrupt recipe archive: {e}")

        self._loaded = True
        self._recipes = sorted(stored + self._unwritten, key=lambda recipe: recipe.id)
        logger.info(f"Loaded {len(stored)} saved recipe(s) from {self.path}")
        return list(self._recipes)

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.load()

    def _next_id(self) -> int:
        """Current epoch ms, bumped past the newest id so ids stay unique."""
        recipe_id = self._clock()
        if self._recipes and recipe_id <= self._recipes[-1].id:
            recipe_id = self._recipes[-1].id + 1
        return recipe_id

    def save(self, draft: RecipeDraft, image: Optional[GeneratedImage] = None) -> SavedRecipe:
        """Archive a recipe and its image.

        Entries already on disk are kept: an archive that was never loaded
        reads the file first. No de-duplication: saving the same draft twice
        creates two entries. A failed file write is logged; the entry is
        still kept in memory.
        """
        self._ensure_loaded()
        saved = SavedRecipe.create(self._next_id(), draft, image)
        self._recipes.append(saved)

        if not self._loaded:
            self._unwritten.append(saved)
            logger.error(
                f"Archive {self.path} could not be read; keeping recipe in memory only",
                extra={"recipe_id": saved.id},
            )
            return saved

        try:
            self._write()
        except StorageError as e:
            self._unwritten.append(saved)
            logger.error(f"Failed to persist saved recipe: {e}", extra={"recipe_id": saved.id})
        else:
            self._unwritten.clear()
            logger.info(f"Saved recipe: {saved.recipe_name}", extra={"recipe_id": saved.id})

        return saved

    def select(self, recipe_id: int) -> SavedRecipe:
        """Look up a saved recipe by id.

        Raises:
            RecipeNotFoundError: If no saved recipe has this id.
        """
        self._ensure_loaded()
        for recipe in self._recipes:
            if recipe.id == recipe_id:
                return recipe
        raise RecipeNotFoundError(recipe_id)
