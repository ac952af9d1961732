"""Per-call synthesis state.

Every synthesis call gets its own SynthesisContext: a fresh white raster with
an identity transform, plus the shared read-only collaborators (config,
custom font library, glyph renderer, system font).
"""

from dataclasses import dataclass, field
from typing import Optional

from src.utils.validators import SeedConfigV1

from .fonts import FontLibrary
from .glyphs import GlyphPathRenderer
from .raster import RasterSurface
from .typography import SystemFont


@dataclass
class SynthesisContext:
    config: SeedConfigV1
    surface: RasterSurface
    fonts: FontLibrary = field(default_factory=FontLibrary)
    glyphs: Optional[GlyphPathRenderer] = None
    system_font: Optional[SystemFont] = None

    def __post_init__(self):
        if self.glyphs is None:
            self.glyphs = GlyphPathRenderer(
                bold_stroke_factor=self.config.glyphs.bold_stroke_factor,
                miter_limit=self.config.glyphs.miter_limit,
            )
        if self.system_font is None:
            self.system_font = SystemFont(self.config.system_font)

    @classmethod
    def create(
        cls,
        config: SeedConfigV1,
        fonts: Optional[FontLibrary] = None,
        glyphs: Optional[GlyphPathRenderer] = None,
        system_font: Optional[SystemFont] = None
    ) -> 'SynthesisContext':
        surface = RasterSurface(
            config.canvas.width,
            config.canvas.height,
            antialias=config.raster.antialias,
            curve_tolerance_px=config.raster.curve_tolerance_px,
        )
        return cls(
            config=config,
            surface=surface,
            fonts=fonts if fonts is not None else FontLibrary(),
            glyphs=glyphs,
            system_font=system_font,
        )

    @property
    def width(self) -> int:
        return self.surface.width

    @property
    def height(self) -> int:
        return self.surface.height

    @property
    def centre(self):
        return self.surface.width / 2.0, self.surface.height / 2.0
