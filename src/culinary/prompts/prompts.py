"""Prompts and response schema for the historical recipe pipeline.

The recipe request asks Gemini for structured JSON constrained by
RECIPE_RESPONSE_SCHEMA (six fields in a fixed order). The image request asks
for a photograph of the dish by name.
"""

from typing import Iterable


# Field order of the structured recipe response
RECIPE_FIELD_ORDER = [
    "era",
    "recipeName",
    "description",
    "funFact",
    "ingredients",
    "instructions",
]

RECIPE_RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "era": {"type": "STRING"},
        "recipeName": {"type": "STRING"},
        "description": {"type": "STRING"},
        "funFact": {"type": "STRING"},
        "ingredients": {"type": "ARRAY", "items": {"type": "STRING"}},
        "instructions": {"type": "ARRAY", "items": {"type": "STRING"}},
    },
    "required": RECIPE_FIELD_ORDER,
    "propertyOrdering": RECIPE_FIELD_ORDER,
}


def get_recipe_prompt(ingredients: Iterable[str]) -> str:
    """Build the historical recipe prompt.

    Args:
        ingredients: Normalized ingredient names, in display order.

    Returns:
        str: Prompt embedding the comma-joined ingredient list.
    """
    ingredient_list = ", ".join(ingredients)
    return (
        "Generate a historical recipe based on the following ingredients. "
        "The recipe must include a culinary era, a recipe name, a brief description, "
        "a fun fact about the era or dish, a list of ingredients with quantities, "
        "and step-by-step instructions. The response should be a JSON object. "
        f"Ingredients: {ingredient_list}."
    )


def get_image_prompt(recipe_name: str) -> str:
    """Build the photograph prompt for a recipe."""
    return (
        f'A photograph of "{recipe_name}", a rustic and beautiful historical dish, '
        "food styling, detailed, high resolution, soft lighting."
    )
