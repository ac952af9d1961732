"""YAML schema validation and config loading.

Provides centralized validation for seed synthesis configuration using pydantic:
    - Seed config (seed.v1.yaml): canvas, typography ratios, raster quality,
      post-processing (blur / grayscale), glyph bolding, system font faces and
      the boundary feature
    - Seed specification (seed_spec.v1.yaml): tagged union over the six seed
      modalities, each carrying only its own parameters

All modules load configs through these validators so that bad values fail fast
with actionable messages (offending keys, expected ranges).

Units:
    - Geometry: canvas pixels
    - Angles: degrees (converted to radians at the raster boundary)
    - Colors: 8-bit RGBA

Usage:
    from src.utils import validators

    cfg = validators.load_seed_config("configs/seed.v1.yaml")
    spec = validators.load_seed_spec("configs/seeds/text.yaml")
"""

from enum import Enum
from pathlib import Path
from typing import Annotated, Any, Dict, Literal, Optional, Union

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator


# ============================================================================
# SEED SPECIFICATION (tagged union)
# ============================================================================

class SeedModality(str, Enum):
    """How the initial pattern is generated."""
    CIRCLE = "circle"
    SQUARE = "square"
    TEXT = "text"
    IMAGE = "image"
    DRAWING = "drawing"
    EMPTY = "empty"


# Numeric tags used by older parameter files
LEGACY_MODALITY_TAGS = {
    0: SeedModality.CIRCLE.value,
    1: SeedModality.SQUARE.value,
    2: SeedModality.TEXT.value,
    3: SeedModality.IMAGE.value,
    4: SeedModality.EMPTY.value,
    5: SeedModality.DRAWING.value,
}


class ImageFit(str, Enum):
    """How an uploaded image is sized onto the canvas."""
    NONE = "none"
    SCALE = "scale"
    STRETCH = "stretch"


LEGACY_FIT_TAGS = {
    0: ImageFit.NONE.value,
    1: ImageFit.SCALE.value,
    2: ImageFit.STRETCH.value,
}


class CircleSeed(BaseModel):
    """Filled disc centred on the canvas."""
    modality: Literal["circle"] = "circle"
    radius: float = Field(100.0, gt=0.0, description="Radius in px")


class SquareSeed(BaseModel):
    """Filled rectangle centred on the canvas, rotated about the centre."""
    modality: Literal["square"] = "square"
    width: float = Field(200.0, gt=0.0, description="Width in px")
    height: float = Field(200.0, gt=0.0, description="Height in px")
    rotation: float = Field(0.0, description="Rotation in degrees")


class TextSeed(BaseModel):
    """Multi-line text stacked on the typography baseline."""
    modality: Literal["text"] = "text"
    value: str = Field("A", description="Text; line breaks split lines")
    size: float = Field(200.0, gt=0.0, description="Font size in px")
    rotation: float = Field(0.0, description="Rotation in degrees")
    boldness: float = Field(0.0, ge=0.0, le=3.0, description="Synthetic bold amount")
    use_custom_font: bool = Field(False, description="Render with the loaded custom font")


class ImageSeed(BaseModel):
    """Uploaded raster image (path, encoded bytes, PIL image or RGBA array)."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    modality: Literal["image"] = "image"
    source: Optional[Any] = Field(None, description="Image source; None means nothing uploaded")
    scale: float = Field(1.0, gt=0.0)
    rotation: float = Field(0.0, description="Rotation in degrees")
    fit: ImageFit = Field(ImageFit.SCALE)

    @field_validator('fit', mode='before')
    @classmethod
    def map_legacy_fit(cls, v: Any) -> Any:
        if isinstance(v, int) and not isinstance(v, bool):
            if v not in LEGACY_FIT_TAGS:
                raise ValueError(f"Unknown image fit tag {v}, expected one of {sorted(LEGACY_FIT_TAGS)}")
            return LEGACY_FIT_TAGS[v]
        return v


class DrawingSeed(BaseModel):
    """Hand-drawn RGBA raster supplied by the drawing editor."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    modality: Literal["drawing"] = "drawing"
    pixels: Optional[np.ndarray] = Field(None, description="(H, W, 4) uint8 RGBA")

    @field_validator('pixels')
    @classmethod
    def validate_pixels(cls, v: Optional[np.ndarray]) -> Optional[np.ndarray]:
        if v is None:
            return v
        return validate_rgba(v, "Drawing pixels")


class EmptySeed(BaseModel):
    """Blank field: no seed anywhere."""
    modality: Literal["empty"] = "empty"


SeedSpecification = Annotated[
    Union[CircleSeed, SquareSeed, TextSeed, ImageSeed, DrawingSeed, EmptySeed],
    Field(discriminator="modality"),
]

_seed_adapter = TypeAdapter(SeedSpecification)


def _normalize_modality_tag(data: Any) -> Any:
    if isinstance(data, dict) and 'modality' in data:
        tag = data['modality']
        if isinstance(tag, int) and not isinstance(tag, bool):
            if tag not in LEGACY_MODALITY_TAGS:
                raise ValueError(
                    f"Unknown modality tag {tag}, expected one of {sorted(LEGACY_MODALITY_TAGS)}"
                )
            data = {**data, 'modality': LEGACY_MODALITY_TAGS[tag]}
    return data


def parse_seed_spec(data: Union[Dict[str, Any], BaseModel]) -> BaseModel:
    """Validate a seed specification dict (string or legacy numeric modality)."""
    if isinstance(data, BaseModel):
        return data
    return _seed_adapter.validate_python(_normalize_modality_tag(data))


class SeedSpecFileV1(BaseModel):
    """Seed specification file (seed_spec.v1.yaml)."""
    model_config = ConfigDict(populate_by_name=True)

    schema_version: str = Field("seed_spec.v1", alias="schema")
    seed: SeedSpecification

    @model_validator(mode='before')
    @classmethod
    def normalize_seed(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get('seed'), dict):
            data = {**data, 'seed': _normalize_modality_tag(data['seed'])}
        return data

    @field_validator('schema_version')
    @classmethod
    def validate_schema(cls, v: str) -> str:
        if v != "seed_spec.v1":
            raise ValueError(f"Expected schema 'seed_spec.v1', got '{v}'")
        return v


# ============================================================================
# SEED CONFIG V1
# ============================================================================

class CanvasConfig(BaseModel):
    """Simulation grid size in pixels."""
    width: int = Field(512, ge=1, le=8192)
    height: int = Field(512, ge=1, le=8192)


class TypographyConfig(BaseModel):
    """Line height and guideline positions as fractions of canvas height."""
    line_height: float = Field(1.2, gt=0.0, le=10.0, description="Multiple of font size")
    ascender_ratio: float = Field(0.25, ge=0.0, le=1.0)
    cap_height_ratio: float = Field(0.3, ge=0.0, le=1.0)
    x_height_ratio: float = Field(0.45, ge=0.0, le=1.0)
    baseline_ratio: float = Field(0.7, ge=0.0, le=1.0)
    descender_ratio: float = Field(0.8, ge=0.0, le=1.0)

    @model_validator(mode='after')
    def validate_order(self) -> 'TypographyConfig':
        """Guidelines must run top to bottom."""
        ordered = [
            self.ascender_ratio,
            self.cap_height_ratio,
            self.x_height_ratio,
            self.baseline_ratio,
            self.descender_ratio,
        ]
        if ordered != sorted(ordered):
            raise ValueError(
                "Typography ratios must satisfy ascender <= cap_height <= x_height "
                f"<= baseline <= descender, got {ordered}"
            )
        return self


class RasterConfig(BaseModel):
    """Rasterization quality."""
    antialias: bool = Field(True)
    curve_tolerance_px: float = Field(0.25, gt=0.0, le=5.0, description="Max Bézier flattening error")


class AcceleratedBlurConfig(BaseModel):
    """Accelerated (torch) Gaussian blur."""
    enabled: bool = Field(True)
    device: str = Field("cuda", description="torch device used for the accelerated path")


class PostProcessConfig(BaseModel):
    """Blur and concentration mapping."""
    blur_radius: float = Field(0.0, ge=0.0, le=100.0, description="Blur radius in px; 0 disables")
    use_grayscale: bool = Field(False, description="Map brightness instead of the binary green test")
    accelerated_blur: AcceleratedBlurConfig = Field(default_factory=AcceleratedBlurConfig)


class GlyphConfig(BaseModel):
    """Custom-font bolding via stroke outlining."""
    bold_stroke_factor: float = Field(0.1, ge=0.0, le=1.0, description="Stroke width = size * factor * boldness")
    miter_limit: float = Field(2.0, ge=1.0, le=20.0)


class SystemFontConfig(BaseModel):
    """Fallback font used when no custom font is requested or loaded.

    ``faces`` maps CSS-style weights (400..900) to font files. Missing weights
    are emboldened synthetically from the closest lighter face.
    """
    path: Optional[str] = Field(None, description="Regular face; None uses PIL's bundled font")
    faces: Dict[int, str] = Field(default_factory=dict)

    @field_validator('faces')
    @classmethod
    def validate_weights(cls, v: Dict[int, str]) -> Dict[int, str]:
        for weight in v:
            if not 100 <= weight <= 900:
                raise ValueError(f"Font weight must be in [100, 900], got {weight}")
        return v


class FontsConfig(BaseModel):
    """Custom font loaded at startup (optional)."""
    custom_font_path: Optional[str] = Field(None)


class BoundaryConfig(BaseModel):
    """Boundary (constraint) mask derivation."""
    enabled: bool = Field(False)
    mode: str = Field("hard")
    padding: int = Field(0, ge=0, le=512, description="Dilation of the open region (px)")
    erosion: int = Field(0, ge=0, le=512, description="Erosion of the open region (px)")
    blur_radius: float = Field(0.0, ge=0.0, le=100.0)
    invert: bool = Field(False)
    soft_falloff: float = Field(0.3, ge=0.0, le=1.0, description="Falloff uniform used in soft mode")

    @field_validator('mode')
    @classmethod
    def validate_mode(cls, v: str) -> str:
        # 'hard' and 'soft' are built in; custom processors may define more
        if not v.strip():
            raise ValueError("mode must be a non-empty name, e.g. 'hard' or 'soft'")
        return v.strip()


class SeedConfigV1(BaseModel):
    """Seed synthesis configuration (seed.v1.yaml schema)."""
    model_config = ConfigDict(populate_by_name=True)

    schema_version: str = Field("seed.v1", alias="schema")
    canvas: CanvasConfig = Field(default_factory=CanvasConfig)
    typography: TypographyConfig = Field(default_factory=TypographyConfig)
    raster: RasterConfig = Field(default_factory=RasterConfig)
    postprocess: PostProcessConfig = Field(default_factory=PostProcessConfig)
    glyphs: GlyphConfig = Field(default_factory=GlyphConfig)
    system_font: SystemFontConfig = Field(default_factory=SystemFontConfig)
    fonts: FontsConfig = Field(default_factory=FontsConfig)
    boundary: BoundaryConfig = Field(default_factory=BoundaryConfig)

    @field_validator('schema_version')
    @classmethod
    def validate_schema(cls, v: str) -> str:
        if v != "seed.v1":
            raise ValueError(f"schema must be 'seed.v1', got {v}")
        return v


# ============================================================================
# ARRAY VALIDATION
# ============================================================================

def validate_rgba(pixels: Any, name: str = "RGBA buffer") -> np.ndarray:
    """Check that ``pixels`` is an (H, W, 4) uint8 array.

    Raises
    ------
    TypeError
        If not a uint8 numpy array
    ValueError
        If the shape is not (H, W, 4)
    """
    if not isinstance(pixels, np.ndarray):
        raise TypeError(f"{name} must be a numpy array, got {type(pixels).__name__}")
    if pixels.dtype != np.uint8:
        raise TypeError(f"{name} must be uint8, got {pixels.dtype}")
    if pixels.ndim != 3 or pixels.shape[2] != 4:
        raise ValueError(f"{name} must have shape (H, W, 4), got {pixels.shape}")
    return pixels


# ============================================================================
# PUBLIC API
# ============================================================================

def load_seed_config(path: Union[str, Path]) -> SeedConfigV1:
    """Load and validate seed config from YAML.

    Raises
    ------
    FileNotFoundError
        If path doesn't exist
    ValueError
        If validation fails (with actionable error message)
    """
    from . import fs

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Seed config not found: {path}")

    data = fs.load_yaml(path)
    try:
        return SeedConfigV1(**data)
    except Exception as e:
        raise ValueError(f"Seed config validation failed at {path}: {e}") from e


def load_seed_spec(path: Union[str, Path]) -> BaseModel:
    """Load and validate a seed specification file; returns the seed variant.

    Relative image sources are resolved against the spec file's directory.
    """
    from . import fs

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Seed spec not found: {path}")

    data = fs.load_yaml(path)
    try:
        spec = SeedSpecFileV1(**data).seed
    except Exception as e:
        raise ValueError(f"Seed spec validation failed at {path}: {e}") from e

    if isinstance(spec, ImageSeed) and isinstance(spec.source, str) and not spec.source.startswith('data:'):
        source = Path(spec.source)
        if not source.is_absolute():
            spec = spec.model_copy(update={'source': str(path.parent / source)})
    return spec
