"""Gemini requests for recipe text and recipe images.

GenerationClient makes exactly one generateContent round trip per call and
decodes the response into a domain value or raises a typed GenerationError:

- fetch_recipe(): structured JSON output constrained by RECIPE_RESPONSE_SCHEMA → RecipeDraft
- fetch_image(): mixed TEXT + IMAGE output → first inline image part → GeneratedImage

No retry logic here - callers wrap each call with ResilientInvoker. Errors are
tagged at construction: network failures, timeouts, 408/429 and 5xx are
retryable TransportErrors; other 4xx statuses are permanent; DecodeError
(bad or missing content) is never retried.
"""

import asyncio
import base64
import json
import re
from typing import Any, Iterable, Optional

import filetype
import httpx
from google import genai
from google.genai import errors, types
from pydantic import ValidationError

from culinary.models.models import GeneratedImage, RecipeDraft
from culinary.prompts.prompts import RECIPE_RESPONSE_SCHEMA, get_image_prompt, get_recipe_prompt
from culinary.utils.exceptions import DecodeError, TransportError
from culinary.utils.logger import logger

RETRYABLE_STATUS_CODES = frozenset({408, 429})


def is_retryable_status(status_code: Optional[int]) -> bool:
    """Transient HTTP statuses: unknown, 408, 429 and any 5xx."""
    if status_code is None:
        return True
    return status_code in RETRYABLE_STATUS_CODES or status_code >= 500


def parse_recipe_text(response_text: Optional[str]) -> RecipeDraft:
    """Decode the structured recipe payload.

    Tries a direct json.loads() first, then the first {...} block in the text,
    for responses that wrap the JSON object in explanatory text.

    Raises:
        DecodeError: If the text is empty, holds no JSON object, or misses a field.
    """
    if not response_text or not response_text.strip():
        raise DecodeError("Recipe response carried no text")

    try:
        parsed = json.loads(response_text)
    except json.JSONDecodeError:
        json_match = re.search(r"\{.*\}", response_text, re.DOTALL)
        if not json_match:
            raise DecodeError("Recipe response is not JSON")
        try:
            parsed = json.loads(json_match.group())
        except json.JSONDecodeError as e:
            raise DecodeError(f"Recipe response is not valid JSON: {e}") from e

    if not isinstance(parsed, dict):
        raise DecodeError(f"Recipe response must be a JSON object, got {type(parsed).__name__}")

    try:
        return RecipeDraft.model_validate(parsed)
    except ValidationError as e:
        raise DecodeError(f"Recipe response failed validation: {e.error_count()} error(s)") from e


def _response_parts(response: Any) -> list:
    """Content parts of the first candidate (empty list if missing)."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return []
    content = getattr(candidates[0], "content", None)
    return list(getattr(content, "parts", None) or [])


def extract_recipe_text(response: Any) -> Optional[str]:
    """Text of the first part of the first candidate."""
    parts = _response_parts(response)
    if not parts:
        return None
    return getattr(parts[0], "text", None)


def extract_inline_image(response: Any) -> Optional[GeneratedImage]:
    """First inline image among the first candidate's parts, or None."""
    for part in _response_parts(response):
        inline_data = getattr(part, "inline_data", None)
        if inline_data is None or not getattr(inline_data, "data", None):
            continue

        data = inline_data.data
        mime_type = getattr(inline_data, "mime_type", None)

        # The SDK decodes base64 into bytes; raw REST payloads are still base64 text
        if isinstance(data, (bytes, bytearray)):
            raw = bytes(data)
            encoded = base64.b64encode(raw).decode("ascii")
        else:
            encoded = str(data)
            raw = None

        if not mime_type and raw is not None:
            kind = filetype.guess(raw)
            mime_type = kind.mime if kind is not None else None

        return GeneratedImage(data=encoded, mime_type=mime_type or "image/png")

    return None


class GenerationClient:
    """Recipe and image requests against the Gemini API."""

    def __init__(
        self,
        api_key: str = "",
        recipe_model: str = "gemini-2.5-flash",
        image_model: str = "gemini-2.0-flash-preview-image-generation",
        client: Optional[genai.Client] = None,
    ) -> None:
        """Initialize GenerationClient.

        Args:
            api_key: Gemini API key, used when no client is given.
            recipe_model: Model for structured recipe output.
            image_model: Model supporting TEXT + IMAGE response modalities.
            client: Preconfigured genai.Client (tests pass a fake here).
        """
        self.api_key = api_key
        self.recipe_model = recipe_model
        self.image_model = image_model
        self._client = client

    def _get_client(self) -> genai.Client:
        """Create the Gemini client on first use.

        Raises:
            TransportError: If no API key is configured (not retryable).
        """
        if self._client is None:
            if not self.api_key:
                raise TransportError("GEMINI_API_KEY is required", retryable=False)
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    @classmethod
    def from_config(cls, config) -> "GenerationClient":
        """Build a live client from application Config."""
        return cls(
            api_key=config.GEMINI_API_KEY,
            recipe_model=config.RECIPE_MODEL,
            image_model=config.IMAGE_MODEL,
        )

    async def _generate(self, model: str, prompt: str, generation_config: types.GenerateContentConfig) -> Any:
        """Single generateContent call, with SDK errors mapped to TransportError."""
        client = self._get_client()
        try:
            # The SDK call is synchronous; run it off the event loop
            return await asyncio.to_thread(
                client.models.generate_content,
                model=model,
                contents=[types.Content(role="user", parts=[types.Part.from_text(text=prompt)])],
                config=generation_config,
            )
        except errors.APIError as e:
            status_code = getattr(e, "code", None)
            raise TransportError(
                f"Gemini API error {status_code}: {getattr(e, 'message', None) or e}",
                status_code=status_code,
                retryable=is_retryable_status(status_code),
            ) from e
        except (httpx.TransportError, ConnectionError, TimeoutError) as e:
            raise TransportError(f"Network error calling Gemini: {e}") from e

    async def fetch_recipe(self, ingredients: Iterable[str]) -> RecipeDraft:
        """Generate a historical recipe for the given ingredients.

        Args:
            ingredients: Normalized ingredient names, in display order.

        Returns:
            RecipeDraft decoded from the first candidate's text.

        Raises:
            TransportError: On network failure or non-success status.
            DecodeError: If the payload is absent or does not decode to a RecipeDraft.
        """
        ingredient_list = list(ingredients)
        logger.debug(f"Requesting recipe for {len(ingredient_list)} ingredient(s) from {self.recipe_model}")

        response = await self._generate(
            self.recipe_model,
            get_recipe_prompt(ingredient_list),
            types.GenerateContentConfig(
                response_mime_type="application/json",
                response_schema=RECIPE_RESPONSE_SCHEMA,
            ),
        )

        recipe = parse_recipe_text(extract_recipe_text(response))
        logger.info(f"Recipe decoded: {recipe.recipe_name} ({recipe.era})")
        return recipe

    async def fetch_image(self, recipe_name: str) -> GeneratedImage:
        """Generate a photograph of the named dish.

        Raises:
            TransportError: On network failure or non-success status.
            DecodeError: If no part of the response carries inline image data.
        """
        logger.debug(f"Requesting image for '{recipe_name}' from {self.image_model}")

        response = await self._generate(
            self.image_model,
            get_image_prompt(recipe_name),
            types.GenerateContentConfig(response_modalities=["TEXT", "IMAGE"]),
        )

        image = extract_inline_image(response)
        if image is None:
            raise DecodeError("Image response carried no inline image data")

        logger.info(f"Image decoded for '{recipe_name}' ({image.mime_type}, {len(image.data) / 1024:.1f} KB base64)")
        return image
