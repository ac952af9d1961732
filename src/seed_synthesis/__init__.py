"""Seed synthesis: seed specification → concentration field.

Modules:
    raster        RasterSurface and Path2D (2D drawing-context semantics)
    fonts         Custom fonts via fontTools
    glyphs        GlyphPathRenderer (custom-font text)
    typography    Guidelines, line layout, system font
    images        Image decode and placement
    transformers  One drawing routine per seed modality
    postprocess   Blur and concentration mapping
    field         ConcentrationField packing
    pipeline      SeedSynthesizer, SeedPipeline
"""

from .errors import ImageLoadError, MissingImageSourceError, SeedSynthesisError
from .field import ConcentrationField, FieldAssembler
from .fonts import FontLibrary, LoadedFont
from .glyphs import GlyphPathRenderer
from .pipeline import SeedOutcome, SeedPipeline, SeedSynthesizer, SynthesisResult
from .raster import Path2D, RasterSurface

__all__ = [
    'ConcentrationField',
    'FieldAssembler',
    'FontLibrary',
    'GlyphPathRenderer',
    'ImageLoadError',
    'LoadedFont',
    'MissingImageSourceError',
    'Path2D',
    'RasterSurface',
    'SeedOutcome',
    'SeedPipeline',
    'SeedSynthesisError',
    'SeedSynthesizer',
    'SynthesisResult',
]
