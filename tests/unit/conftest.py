"""Shared fixtures for offline unit tests.

Gemini responses are modelled with SimpleNamespace objects shaped like
google.genai response types (candidates → content → parts → text / inline_data).
"""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from culinary.models.models import GeneratedImage, RecipeDraft
from culinary.session.notifications import NotificationCenter
from culinary.utils.retry import ResilientInvoker

PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06\x00\x00\x00"

VICTORIA_SPONGE = {
    "era": "Victorian",
    "recipeName": "Victoria Sponge",
    "description": "A light sponge cake named after Queen Victoria.",
    "funFact": "The Queen enjoyed a slice with her afternoon tea.",
    "ingredients": ["2 cups flour", "1 cup sugar"],
    "instructions": ["Mix", "Bake"],
}


def text_response(text):
    """Gemini-like response whose first candidate has one text part."""
    part = SimpleNamespace(text=text, inline_data=None)
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=[part]))])


def image_response(data=PNG_BYTES, mime_type="image/png", with_text=True):
    """Gemini-like response with an optional text part followed by an inline image."""
    parts = []
    if with_text:
        parts.append(SimpleNamespace(text="Here is your dish.", inline_data=None))
    parts.append(SimpleNamespace(text=None, inline_data=SimpleNamespace(data=data, mime_type=mime_type)))
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=parts))])


@pytest.fixture
def recipe_payload():
    return dict(VICTORIA_SPONGE)


@pytest.fixture
def recipe_draft():
    return RecipeDraft.model_validate(VICTORIA_SPONGE)


@pytest.fixture
def generated_image():
    return GeneratedImage.from_bytes(PNG_BYTES)


@pytest.fixture
def fake_genai_client():
    """MagicMock standing in for genai.Client (client.models.generate_content)."""
    return MagicMock()


@pytest.fixture
def instant_sleep():
    return AsyncMock()


@pytest.fixture
def instant_invoker(instant_sleep):
    """Default retry policy (5 attempts, 1s doubling) without real waiting."""
    return ResilientInvoker(sleep=instant_sleep)


@pytest.fixture
def fake_clock():
    """Mutable monotonic clock: advance with clock.now += seconds."""

    class Clock:
        now = 100.0

        def __call__(self):
            return self.now

    return Clock()


@pytest.fixture
def notifications(fake_clock):
    return NotificationCenter(duration=3.0, clock=fake_clock)


@pytest.fixture
def recipe_json():
    return json.dumps(VICTORIA_SPONGE)


@pytest.fixture
def make_text_response():
    return text_response


@pytest.fixture
def make_image_response():
    return image_response


@pytest.fixture
def png_bytes():
    return PNG_BYTES
