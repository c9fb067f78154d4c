"""Custom exception classes."""

from typing import Optional


class CulinaryError(Exception):
    """Base exception for Culinary Time Machine."""

    pass


class EmptyIngredientsError(CulinaryError):
    """Raised when a generation is requested without any ingredient."""

    def __init__(self, message: str = "Please add at least one ingredient to generate a recipe.") -> None:
        super().__init__(message)


class DuplicateIngredientError(CulinaryError):
    """Raised when an ingredient is already in the set."""

    def __init__(self, value: str) -> None:
        super().__init__(f"Ingredient already added: {value}")
        self.value = value


class GenerationError(CulinaryError):
    """Raised when a Gemini call fails.

    The ``retryable`` flag tells ResilientInvoker whether another attempt
    can help. It is set where the error is constructed.
    """

    def __init__(self, message: str, retryable: bool) -> None:
        super().__init__(message)
        self.retryable = retryable


class TransportError(GenerationError):
    """Raised on network failures and non-success HTTP statuses."""

    def __init__(self, message: str, status_code: Optional[int] = None, retryable: bool = True) -> None:
        super().__init__(message, retryable=retryable)
        self.status_code = status_code


class DecodeError(GenerationError):
    """Raised when a response does not carry the expected content."""

    def __init__(self, message: str) -> None:
        super().__init__(message, retryable=False)


class StorageError(CulinaryError):
    """Raised when the recipe archive cannot be read or written."""

    pass


class RecipeNotFoundError(CulinaryError, KeyError):
    """Raised when a saved recipe id is unknown."""

    def __init__(self, recipe_id: int) -> None:
        super().__init__(f"No saved recipe with id {recipe_id}")
        self.recipe_id = recipe_id

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return str(self.args[0])
