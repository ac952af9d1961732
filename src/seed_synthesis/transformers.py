"""Seed modalities → raster content.

Each transformer draws one SeedSpecification variant onto the context's
fresh white surface in black, in canvas pixel space with the centre at
(W/2, H/2). Rotations pivot with translate → rotate → translate and the
transform is reset afterwards.

Only the image modality awaits (decode in a worker thread); use
``rasterize_seed`` to dispatch any variant.
"""

import logging
import math
from typing import Callable, Dict, Type

import numpy as np
from PIL import Image, ImageDraw

from src.utils import color as color_utils, geometry
from src.utils.validators import (
    CircleSeed,
    DrawingSeed,
    EmptySeed,
    ImageSeed,
    SquareSeed,
    TextSeed,
)

from .context import SynthesisContext
from .errors import MissingImageSourceError
from .images import compute_image_placement, image_transform, load_image_rgba
from .typography import font_weight_for_boldness, line_baselines, split_lines, typography_metrics

logger = logging.getLogger(__name__)

INK = color_utils.BLACK


def draw_circle(ctx: SynthesisContext, seed: CircleSeed) -> None:
    cx, cy = ctx.centre
    ctx.surface.fill_circle(cx, cy, seed.radius, INK)


def draw_square(ctx: SynthesisContext, seed: SquareSeed) -> None:
    cx, cy = ctx.centre
    surface = ctx.surface
    surface.set_transform(geometry.rotation_about(cx, cy, math.radians(seed.rotation)))
    surface.fill_rect(cx - seed.width / 2.0, cy - seed.height / 2.0, seed.width, seed.height, INK)
    surface.reset_transform()


def _draw_system_text(ctx: SynthesisContext, lines, baselines, x: float, seed: TextSeed) -> None:
    weight = font_weight_for_boldness(seed.boldness)
    font, stroke = ctx.system_font.load(seed.size, weight)

    layer = Image.new('L', (ctx.width, ctx.height), 0)
    draw = ImageDraw.Draw(layer)
    for line, y in zip(lines, baselines):
        if not line:
            continue
        draw.text(
            (x, y),
            line,
            fill=255,
            font=font,
            anchor='ms',
            stroke_width=stroke,
            stroke_fill=255,
        )
    ctx.surface.draw_coverage(np.asarray(layer, dtype=np.uint8), INK)


def draw_text(ctx: SynthesisContext, seed: TextSeed) -> None:
    """Stack lines upwards from the baseline, rotated about the canvas centre."""
    cx, cy = ctx.centre
    surface = ctx.surface
    lines = split_lines(seed.value)
    line_height = seed.size * ctx.config.typography.line_height
    baseline = typography_metrics(ctx.height, ctx.config.typography)['baseline']
    baselines = line_baselines(len(lines), baseline, line_height)

    use_custom = seed.use_custom_font and ctx.fonts.has_font()
    if seed.use_custom_font and not use_custom:
        logger.warning("Custom font requested but none is loaded; using system font")

    surface.set_transform(geometry.rotation_about(cx, cy, math.radians(seed.rotation)))
    try:
        if use_custom:
            fallback = []
            for line, y in zip(lines, baselines):
                drawn = ctx.glyphs.draw_text_with_font(
                    surface, ctx.fonts.font, line, cx, y, seed.size, seed.boldness
                )
                if not drawn:
                    fallback.append((line, y))
            if fallback:
                logger.warning(f"Glyph rendering failed for {len(fallback)} line(s); using system font")
                _draw_system_text(ctx, [l for l, _ in fallback], [y for _, y in fallback], cx, seed)
        else:
            _draw_system_text(ctx, lines, baselines, cx, seed)
    finally:
        surface.reset_transform()


def draw_image(ctx: SynthesisContext, seed: ImageSeed, rgba: np.ndarray) -> None:
    """Place a decoded image according to fit, scale and rotation."""
    surface = ctx.surface
    ih, iw = rgba.shape[:2]
    x, y, w, h = compute_image_placement(seed.fit, ctx.width, ctx.height, iw, ih, seed.scale)
    surface.set_transform(image_transform(ctx.width, ctx.height, seed.scale, seed.rotation))
    try:
        surface.draw_image(rgba, x, y, w, h)
    finally:
        surface.reset_transform()


def draw_drawing(ctx: SynthesisContext, seed: DrawingSeed) -> None:
    if seed.pixels is None:
        logger.warning("No custom drawing data available; keeping blank canvas")
        return
    if seed.pixels.shape[:2] != (ctx.height, ctx.width):
        logger.warning(
            f"Drawing size {seed.pixels.shape[1]}×{seed.pixels.shape[0]} differs from canvas "
            f"{ctx.width}×{ctx.height}; copying the overlapping region"
        )
    ctx.surface.put_pixels(seed.pixels, 0, 0)


def draw_empty(ctx: SynthesisContext, seed: EmptySeed) -> None:
    ctx.surface.clear(color_utils.WHITE)


TRANSFORMERS: Dict[Type, Callable[[SynthesisContext, object], None]] = {
    CircleSeed: draw_circle,
    SquareSeed: draw_square,
    TextSeed: draw_text,
    DrawingSeed: draw_drawing,
    EmptySeed: draw_empty,
}


async def rasterize_seed(ctx: SynthesisContext, seed) -> None:
    """Draw any seed variant onto ``ctx.surface``.

    Raises
    ------
    MissingImageSourceError
        Image modality without a source
    ImageLoadError
        Image source could not be decoded
    TypeError
        Unknown seed type
    """
    if isinstance(seed, ImageSeed):
        if seed.source is None:
            raise MissingImageSourceError()
        rgba = await load_image_rgba(seed.source)
        draw_image(ctx, seed, rgba)
        return

    transformer = TRANSFORMERS.get(type(seed))
    if transformer is None:
        raise TypeError(f"No transformer for seed type {type(seed).__name__}")
    transformer(ctx, seed)
