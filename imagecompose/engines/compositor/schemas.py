from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from PIL import Image
from pydantic import BaseModel, ConfigDict, Field

from imagecompose.core.config import settings


class CompositionMode(str, Enum):
    DETECT_WHITE_REGION = "detect_white_region"
    FILL_ENTIRE_BACKGROUND = "fill_entire_background"


class HorizontalAlignment(str, Enum):
    START = "start"
    CENTER = "center"
    END = "end"


class VerticalAlignment(str, Enum):
    TOP = "top"
    CENTER = "center"
    BOTTOM = "bottom"


class OutputFormat(str, Enum):
    PNG = "png"
    JPEG = "jpeg"
    WEBP = "webp"

    @property
    def mime_type(self) -> str:
        return f"image/{self.value}"


class ResizeOption(str, Enum):
    """How the crop service resizes a trimmed image."""
    NONE = "none"
    IGNORE_ASPECT_RATIO = "ignore"      # exact target, stretched
    MAXIMUM_AREA = "max"                # fit inside, letterboxed to target
    MINIMUM_AREA = "min"                # cover target, centre-cropped
    ONLY_IF_LARGER = "only_larger"
    ONLY_IF_SMALLER = "only_smaller"


# =============================================================================
# Geometry Value Types
# =============================================================================

@dataclass(frozen=True)
class RasterImage:
    """Decoded image. Transforms always return a new instance."""
    image: Image.Image
    format: Optional[str] = None

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    @property
    def channel_count(self) -> int:
        return len(self.image.getbands())

    @property
    def has_alpha(self) -> bool:
        return "A" in self.image.getbands()


@dataclass(frozen=True)
class Rect:
    """Placement rectangle in background pixel coordinates."""
    x: int
    y: int
    width: int
    height: int

    @property
    def area(self) -> int:
        return self.width * self.height

    @property
    def is_degenerate(self) -> bool:
        return self.width <= 0 or self.height <= 0


@dataclass(frozen=True)
class RotationPlan:
    """Chosen rotation and its post-trim, post-scale footprint."""
    angle_degrees: int
    width: int
    height: int
    image: RasterImage

    @property
    def area(self) -> int:
        return self.width * self.height


@dataclass(frozen=True)
class PlacementResult:
    scaled_width: int
    scaled_height: int
    offset_x: int
    offset_y: int


# =============================================================================
# Configuration DTOs
# =============================================================================

class CompositionConfig(BaseModel):
    """Immutable per-item compose configuration."""
    model_config = ConfigDict(frozen=True)

    background_property: str = Field(default_factory=lambda: settings.COMPOSE_BACKGROUND_PROPERTY)
    product_property: str = Field(default_factory=lambda: settings.COMPOSE_PRODUCT_PROPERTY)
    output_property: str = Field(default_factory=lambda: settings.COMPOSE_OUTPUT_PROPERTY)
    padding: int = Field(default_factory=lambda: settings.COMPOSE_DEFAULT_PADDING, ge=0)
    mode: CompositionMode = Field(
        default_factory=lambda: CompositionMode(settings.COMPOSE_DEFAULT_MODE)
    )
    horizontal_alignment: HorizontalAlignment = Field(
        default_factory=lambda: HorizontalAlignment(settings.COMPOSE_DEFAULT_HORIZONTAL_ALIGNMENT)
    )
    vertical_alignment: VerticalAlignment = Field(
        default_factory=lambda: VerticalAlignment(settings.COMPOSE_DEFAULT_VERTICAL_ALIGNMENT),
        description="Also the white-region preference in detect_white_region mode"
    )
    manual_rotation_degrees: int = Field(
        default=0,
        description="Forced clockwise rotation; 0 leaves automatic rotation on"
    )
    output_format: OutputFormat = Field(
        default_factory=lambda: OutputFormat(settings.COMPOSE_OUTPUT_FORMAT)
    )


class CropConfig(BaseModel):
    """Immutable per-item crop configuration."""
    model_config = ConfigDict(frozen=True)

    binary_property: str = Field(default_factory=lambda: settings.CROP_BINARY_PROPERTY)
    output_property: str = Field(default_factory=lambda: settings.CROP_OUTPUT_PROPERTY)
    resize_option: ResizeOption = ResizeOption.NONE
    target_width: int = Field(default_factory=lambda: settings.CROP_DEFAULT_TARGET_WIDTH, gt=0)
    target_height: int = Field(default_factory=lambda: settings.CROP_DEFAULT_TARGET_HEIGHT, gt=0)


# =============================================================================
# Item DTOs
# =============================================================================

class BinaryPayload(BaseModel):
    """A base64-encoded file attached to an item."""
    data: str = Field(..., description="Base64 encoded file content")
    mime_type: Optional[str] = Field(None, description="e.g. image/png")
    file_name: Optional[str] = None


class WorkItem(BaseModel):
    """One unit of work: plain data fields plus named binary attachments."""
    data: Dict[str, Any] = Field(default_factory=dict)
    binary: Dict[str, BinaryPayload] = Field(default_factory=dict)


class ComposeItem(WorkItem):
    config: Optional[CompositionConfig] = Field(None, description="Overrides the batch config")


class CropItem(WorkItem):
    config: Optional[CropConfig] = Field(None, description="Overrides the batch config")


class ItemResult(BaseModel):
    """Output item: input fields mirrored plus outcome markers."""
    data: Dict[str, Any] = Field(default_factory=dict)
    binary: Dict[str, BinaryPayload] = Field(default_factory=dict)
    success: bool = True
    error: Optional[str] = Field(None, description="Human-readable failure reason")
    error_type: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)


class ComposeBatchRequest(BaseModel):
    config: CompositionConfig = Field(default_factory=CompositionConfig)
    items: List[ComposeItem] = Field(..., min_length=1)
    max_concurrent: int = Field(default_factory=lambda: settings.MAX_CONCURRENT_ITEMS, ge=1, le=16)


class CropBatchRequest(BaseModel):
    config: CropConfig = Field(default_factory=CropConfig)
    items: List[CropItem] = Field(..., min_length=1)
    max_concurrent: int = Field(default_factory=lambda: settings.MAX_CONCURRENT_ITEMS, ge=1, le=16)


class BatchResponse(BaseModel):
    results: List[ItemResult] = Field(default_factory=list)
    success_count: int = 0
    failure_count: int = 0
    total_processing_time_ms: int = 0
