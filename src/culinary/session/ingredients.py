"""Ordered, duplicate-free set of user ingredients."""

from typing import Iterator, Optional

from culinary.utils.exceptions import DuplicateIngredientError


def normalize_ingredient(text: str) -> str:
    """Trim and lowercase an ingredient name."""
    return (text or "").strip().lower()


class IngredientSet:
    """Ingredients in insertion (display) order.

    No two entries normalize to the same value. Created empty for each
    session and never persisted.
    """

    def __init__(self) -> None:
        self._items: list[str] = []

    def add(self, text: str) -> Optional[str]:
        """Normalize and append an ingredient.

        Args:
            text: Raw user input.

        Returns:
            The stored value, or None when the input is blank (silent no-op).

        Raises:
            DuplicateIngredientError: If the normalized value is already present.
        """
        value = normalize_ingredient(text)
        if not value:
            return None
        if value in self._items:
            raise DuplicateIngredientError(value)
        self._items.append(value)
        return value

    def remove(self, value: str) -> bool:
        """Remove an ingredient; returns False if it was not present."""
        normalized = normalize_ingredient(value)
        if normalized not in self._items:
            return False
        self._items.remove(normalized)
        return True

    def clear(self) -> None:
        self._items.clear()

    @property
    def items(self) -> tuple[str, ...]:
        return tuple(self._items)

    def as_prompt(self) -> str:
        """Comma-joined list as embedded in the recipe prompt."""
        return ", ".join(self._items)

    def __contains__(self, value: object) -> bool:
        return isinstance(value, str) and normalize_ingredient(value) in self._items

    def __iter__(self) -> Iterator[str]:
        return iter(tuple(self._items))

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"IngredientSet({self._items!r})"
