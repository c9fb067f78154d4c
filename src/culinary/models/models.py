"""Data models and schemas for the historical recipe pipeline.

Defines Pydantic models for generated content, archive entries and pipeline state.
All models use Pydantic v2. Field aliases keep the camelCase wire names used by
the structured Gemini response and by the archive file (recipeName, funFact, imageUrl).
"""

import base64
import re
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Annotated

from pydantic import BaseModel, Field, field_validator, ConfigDict


_DATA_URL_PATTERN = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<data>.+)$", re.DOTALL)


class RecipeDraft(BaseModel):
    """Structured result of a recipe request.

    All six fields must be present and non-null. A response that decodes only
    partially fails validation as a whole; there is no partial draft.
    """

    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    era: Annotated[str, Field(description="Culinary era the recipe comes from")]
    recipe_name: Annotated[
        str, Field(alias="recipeName", min_length=1, description="Name of the dish, also used for the image prompt")
    ]
    description: Annotated[str, Field(description="Brief description of the dish")]
    fun_fact: Annotated[str, Field(alias="funFact", description="Fun fact about the era or the dish")]
    ingredients: Annotated[List[str], Field(description="Recipe ingredients with quantities, in order")]
    instructions: Annotated[List[str], Field(description="Sequential preparation steps")]


class GeneratedImage(BaseModel):
    """Base64-encoded raster image produced for a recipe."""

    model_config = ConfigDict(frozen=True)

    data: Annotated[str, Field(min_length=1, description="Base64-encoded image bytes")]
    mime_type: Annotated[str, Field("image/png", description="MIME type of the decoded bytes")]

    @property
    def data_url(self) -> str:
        """Image as a data URL (data:image/png;base64,...)."""
        return f"data:{self.mime_type};base64,{self.data}"

    def to_bytes(self) -> bytes:
        """Decode the base64 payload."""
        return base64.b64decode(self.data)

    @classmethod
    def from_bytes(cls, raw: bytes, mime_type: str = "image/png") -> "GeneratedImage":
        return cls(data=base64.b64encode(raw).decode("ascii"), mime_type=mime_type)

    @classmethod
    def from_data_url(cls, data_url: str) -> "GeneratedImage":
        """Parse a data URL back into an image.

        Raises:
            ValueError: If data_url is not a base64 data URL.
        """
        match = _DATA_URL_PATTERN.match(data_url or "")
        if not match:
            raise ValueError("Image must be a base64 data URL (data:<mime>;base64,<data>)")
        return cls(data=match.group("data"), mime_type=match.group("mime"))


class SavedRecipe(RecipeDraft):
    """Archived recipe: the draft fields plus creation id and optional image.

    Stored flat, as ``{...recipe, "id": <epoch ms>, "imageUrl": <data URL or null>}``.
    Never mutated after creation.
    """

    model_config = ConfigDict(frozen=True)

    id: Annotated[int, Field(ge=0, description="Creation timestamp in epoch milliseconds, unique in the archive")]
    image_url: Annotated[
        Optional[str], Field(None, alias="imageUrl", description="Generated image as a data URL, if any")
    ]

    @field_validator("image_url")
    @classmethod
    def validate_image_url(cls, v: Optional[str]) -> Optional[str]:
        """Only base64 data URLs (or nothing) are accepted."""
        if v is None:
            return v
        GeneratedImage.from_data_url(v)
        return v

    @property
    def created_at(self) -> datetime:
        return datetime.fromtimestamp(self.id / 1000, tz=timezone.utc)

    @property
    def draft(self) -> RecipeDraft:
        """The recipe without archive metadata."""
        return RecipeDraft.model_validate(self.model_dump(include=set(RecipeDraft.model_fields)))

    @property
    def image(self) -> Optional[GeneratedImage]:
        if self.image_url is None:
            return None
        return GeneratedImage.from_data_url(self.image_url)

    @classmethod
    def create(cls, recipe_id: int, draft: RecipeDraft, image: Optional[GeneratedImage] = None) -> "SavedRecipe":
        return cls(
            id=recipe_id,
            image_url=image.data_url if image else None,
            **draft.model_dump(),
        )


class PipelinePhase(str, Enum):
    """Phase of a RecipeSession."""

    IDLE = "idle"
    FETCHING_RECIPE = "fetching_recipe"
    FETCHING_IMAGE = "fetching_image"
    READY = "ready"
    FAILED = "failed"


class PipelineState(BaseModel):
    """Current phase of the session with the data that phase carries.

    Build instances with the phase factories; exactly one phase holds at a time.
    FETCHING_IMAGE already carries the recipe so it can be shown while the
    image is being generated.
    """

    model_config = ConfigDict(frozen=True)

    phase: PipelinePhase
    recipe: Optional[RecipeDraft] = None
    image: Optional[GeneratedImage] = None
    reason: Optional[str] = None

    @classmethod
    def idle(cls) -> "PipelineState":
        return cls(phase=PipelinePhase.IDLE)

    @classmethod
    def fetching_recipe(cls) -> "PipelineState":
        return cls(phase=PipelinePhase.FETCHING_RECIPE)

    @classmethod
    def fetching_image(cls, recipe: RecipeDraft) -> "PipelineState":
        return cls(phase=PipelinePhase.FETCHING_IMAGE, recipe=recipe)

    @classmethod
    def ready(cls, recipe: RecipeDraft, image: Optional[GeneratedImage] = None) -> "PipelineState":
        return cls(phase=PipelinePhase.READY, recipe=recipe, image=image)

    @classmethod
    def failed(cls, reason: str) -> "PipelineState":
        return cls(phase=PipelinePhase.FAILED, reason=reason)

    @property
    def is_loading(self) -> bool:
        return self.phase in (PipelinePhase.FETCHING_RECIPE, PipelinePhase.FETCHING_IMAGE)


class StatusKind(str, Enum):
    """Kind of a user-facing status message."""

    INFO = "info"
    ERROR = "error"
    SUCCESS = "success"


class StatusMessage(BaseModel):
    """Transient user-facing status message."""

    model_config = ConfigDict(frozen=True)

    text: Annotated[str, Field(min_length=1)]
    kind: StatusKind = StatusKind.INFO
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
