"""Core data models for garment photo generation."""

import logging
from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4
from typing import Annotated, Optional, Dict, Any, List, Union, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    field_validator,
    model_validator,
)

logger = logging.getLogger(__name__)


ASSET_ID_PREFIXES = {"GENERATE": "gen", "UPLOAD": "up"}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DisplayMode(str, Enum):
    """How the garment is presented in the generated photo."""
    MODEL = "MODEL"
    PRODUCT = "PRODUCT"


class QualityTier(str, Enum):
    """Output resolution tiers offered to sellers."""
    STANDARD = "1K"
    HIGH = "2K"
    ULTRA = "4K"

    @property
    def is_high_fidelity(self) -> bool:
        """Whether this tier is served by the high-fidelity model."""
        return self in (QualityTier.HIGH, QualityTier.ULTRA)

    @property
    def quota_cost(self) -> int:
        """Quota units charged for one generation at this tier."""
        return {
            QualityTier.STANDARD: 1,
            QualityTier.HIGH: 2,
            QualityTier.ULTRA: 5,
        }[self]


class _GenerationBase(BaseModel):
    """Fields shared by both display modes.

    Attributes:
        style: Visual style label (e.g. "可爱风")
        quality: Output quality tier
        aspect_ratio: Output aspect ratio such as "3:4"
        scene: Optional scene; empty lets the model decide
        custom_prompt: Optional free text appended to the prompt
        garment_images: Garment reference images (data URLs or remote references)
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", protected_namespaces=())

    style: str = ""
    quality: QualityTier
    aspect_ratio: str = Field(default="3:4", alias="aspectRatio")
    scene: str = ""
    custom_prompt: str = Field(default="", alias="customPrompt")
    garment_images: List[str] = Field(default_factory=list, alias="baseImages")

    @field_validator(
        "style", "scene", "custom_prompt", mode="before", check_fields=False
    )
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class ModelDisplayRequest(_GenerationBase):
    """Generation request for a garment worn by a model.

    Demographic filters describe the model only when no reference image is
    given. A reference image wins: demographics supplied alongside it are
    cleared so the prompt never contradicts the photo.
    """

    type: Literal["MODEL"] = "MODEL"
    gender: str = ""
    age_group: str = Field(default="", alias="ageGroup")
    ethnicity: str = ""
    pose: str = ""
    composition: str = ""
    model_image: Optional[str] = Field(default=None, alias="modelImage")

    @field_validator(
        "gender", "age_group", "ethnicity", "pose", "composition", mode="before"
    )
    @classmethod
    def _demographics_none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @model_validator(mode="after")
    def _drop_demographics_with_reference(self) -> "ModelDisplayRequest":
        if self.model_image and (self.gender or self.age_group or self.ethnicity):
            logger.warning(
                "Model reference image supplied with demographic filters; "
                "ignoring gender/age/ethnicity"
            )
            self.gender = ""
            self.age_group = ""
            self.ethnicity = ""
        return self

    @property
    def display_mode(self) -> DisplayMode:
        return DisplayMode.MODEL


class ProductDisplayRequest(_GenerationBase):
    """Generation request for a still-life (flat-lay / hanging) product shot."""

    type: Literal["PRODUCT"] = "PRODUCT"
    product_form: str = Field(default="", alias="productForm")
    product_focus: str = Field(default="", alias="productFocus")
    product_background: str = Field(default="", alias="productBackground")

    @field_validator(
        "product_form", "product_focus", "product_background", mode="before"
    )
    @classmethod
    def _product_none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @property
    def display_mode(self) -> DisplayMode:
        return DisplayMode.PRODUCT


GenerationParameters = Annotated[
    Union[ModelDisplayRequest, ProductDisplayRequest],
    Field(discriminator="type"),
]

_parameters_adapter: TypeAdapter = TypeAdapter(GenerationParameters)


def parse_generation_parameters(data: Dict[str, Any]) -> Union[ModelDisplayRequest, ProductDisplayRequest]:
    """Parse a loose parameter dictionary into the matching request model.

    Fields that belong to the other display mode are dropped.

    Args:
        data: Raw parameters; ``type`` selects the display mode

    Returns:
        A ModelDisplayRequest or ProductDisplayRequest

    Raises:
        pydantic.ValidationError: If the type or quality tier is invalid
    """
    return _parameters_adapter.validate_python(data)


class PromptTemplateSet(BaseModel):
    """Admin-configurable prompt templates with ``{{name}}`` placeholders.

    A field left as None is treated as missing; the prompt builder then leaves
    the matching placeholder untouched.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", protected_namespaces=())

    main_prompt: Optional[str] = Field(default=None, alias="mainPrompt")
    model_mode_prompt: Optional[str] = Field(default=None, alias="modelModePrompt")
    product_mode_prompt: Optional[str] = Field(default=None, alias="productModePrompt")
    scene_guidance: Optional[str] = Field(default=None, alias="sceneGuidance")
    quality_guidance: Optional[str] = Field(default=None, alias="qualityGuidance")
    additional_guidance: Optional[str] = Field(default=None, alias="additionalGuidance")


class GenerationResult(BaseModel):
    """Outcome of a single successful generation.

    Attributes:
        url: Generated image as a ``data:image/png;base64,...`` URL
        model_used: Identifier of the API model that produced the image
    """

    model_config = ConfigDict(protected_namespaces=())

    url: str
    model_used: str


class GeneratedAsset(BaseModel):
    """A stored image in a user's asset collection.

    When no id is given one is generated from the asset type, the creation
    time in milliseconds and a random suffix, e.g. ``gen-1718000000000-1a2b3c4d``.
    """

    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    id: str = ""
    url: str
    type: Literal["UPLOAD", "GENERATE"] = "GENERATE"
    display_type: Optional[DisplayMode] = Field(default=None, alias="displayType")
    date: str = Field(default_factory=lambda: _utcnow().date().isoformat())
    created_at: datetime = Field(default_factory=_utcnow, alias="createdAt")
    tags: List[str] = Field(default_factory=list)
    thumbnail: Optional[str] = None
    model_name: Optional[str] = Field(default=None, alias="modelName")

    @model_validator(mode="after")
    def _assign_id(self) -> "GeneratedAsset":
        if not self.id:
            millis = int(self.created_at.timestamp() * 1000)
            self.id = f"{ASSET_ID_PREFIXES[self.type]}-{millis}-{uuid4().hex[:8]}"
        return self


class ModelRef(BaseModel):
    """Reference to the model photo a preset should reuse."""

    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    type: Literal["library", "custom"]
    model_id: Optional[str] = Field(default=None, alias="modelId")
    image_url: Optional[str] = Field(default=None, alias="imageUrl")


class PresetConfig(BaseModel):
    """Generation settings captured in a saved preset."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", protected_namespaces=())

    type: DisplayMode
    style: str = ""
    quality: QualityTier = QualityTier.STANDARD
    aspect_ratio: str = Field(default="3:4", alias="aspectRatio")
    scene: Optional[str] = None

    gender: Optional[str] = None
    age_group: Optional[str] = Field(default=None, alias="ageGroup")
    ethnicity: Optional[str] = None
    pose: Optional[str] = None
    composition: Optional[str] = None

    product_form: Optional[str] = Field(default=None, alias="productForm")
    product_focus: Optional[str] = Field(default=None, alias="productFocus")
    product_background: Optional[str] = Field(default=None, alias="productBackground")

    custom_prompt: Optional[str] = Field(default=None, alias="customPrompt")
    model_ref: Optional[ModelRef] = Field(default=None, alias="modelRef")


class Preset(BaseModel):
    """A saved, reusable bundle of generation settings."""

    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    id: str
    name: str
    description: Optional[str] = None
    user_id: str = Field(alias="userId")
    created_at: datetime = Field(default_factory=_utcnow, alias="createdAt")
    updated_at: datetime = Field(default_factory=_utcnow, alias="updatedAt")
    use_count: int = Field(default=0, ge=0, alias="useCount")
    config: PresetConfig
    preview_image: Optional[str] = Field(default=None, alias="previewImage")

    @field_validator("created_at", "updated_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def to_generation_parameters(
        self,
        garment_images: Optional[List[str]] = None,
        model_image: Optional[str] = None,
    ) -> Union[ModelDisplayRequest, ProductDisplayRequest]:
        """Turn this preset into a generation request.

        Args:
            garment_images: Garment images for the new generation
            model_image: Resolved model reference image, if any. A custom
                model reference stored on the preset is used when omitted.

        Returns:
            Request model for the preset's display mode
        """
        data = self.config.model_dump(mode="json", exclude={"model_ref"})
        data["garment_images"] = list(garment_images or [])
        if self.config.type == DisplayMode.MODEL:
            if model_image is None and self.config.model_ref is not None:
                model_image = self.config.model_ref.image_url
            data["model_image"] = model_image
        return parse_generation_parameters(data)


class ModelEntry(BaseModel):
    """An entry in the model-photo library."""

    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    id: str
    url: str
    gender: str
    age_group: str = Field(alias="ageGroup")
    ethnicity: str
    name: Optional[str] = None
    uploaded_by: str = Field(default="SYSTEM", alias="uploadedBy")
    uploaded_at: datetime = Field(default_factory=_utcnow, alias="uploadedAt")
    status: Literal["ACTIVE", "INACTIVE"] = "ACTIVE"


class TemplateMatch(BaseModel):
    """A preset paired with its recommendation score.

    Attributes:
        preset: The scored preset
        score: Integer score in [0, 100]
        reasons: Human-readable reasons behind the score
    """

    preset: Preset
    score: int = Field(ge=0, le=100)
    reasons: List[str] = Field(default_factory=list)
