"""Custom-font text rendering via glyph outlines.

The font's outline commands are replayed onto a RasterSurface path, filled,
and optionally stroked to fake a heavier weight. Any failure returns False so
the caller can fall back to the system font.
"""

import logging
from typing import Iterable, Optional

from src.utils import color as color_utils

from .fonts import LoadedFont, PathCommand
from .raster import Color, Path2D, RasterSurface

logger = logging.getLogger(__name__)


def commands_to_path(commands: Iterable[PathCommand]) -> Path2D:
    """Translate font path commands into a surface path."""
    path = Path2D()
    for cmd in commands:
        op = cmd[0]
        if op == 'M':
            path.move_to(cmd[1], cmd[2])
        elif op == 'L':
            path.line_to(cmd[1], cmd[2])
        elif op == 'C':
            path.bezier_curve_to(*cmd[1:7])
        elif op == 'Q':
            path.quadratic_curve_to(*cmd[1:5])
        elif op == 'Z':
            path.close_path()
        else:
            raise ValueError(f"Unsupported glyph path command: {op}")
    return path


class GlyphPathRenderer:
    """Fill (and optionally embolden) text outlines from a loaded font.

    Parameters
    ----------
    bold_stroke_factor : float
        Stroke width = size × factor × boldness, default 0.1
    miter_limit : float
        Mitre limit for the bolding stroke, default 2
    color : Color
        Fill and stroke color, default opaque black
    """

    def __init__(
        self,
        bold_stroke_factor: float = 0.1,
        miter_limit: float = 2.0,
        color: Color = color_utils.BLACK
    ):
        self.bold_stroke_factor = bold_stroke_factor
        self.miter_limit = miter_limit
        self.color = color

    def draw_text_with_font(
        self,
        surface: RasterSurface,
        font: Optional[LoadedFont],
        text: str,
        x: float,
        y: float,
        font_size: float,
        boldness: float = 0.0
    ) -> bool:
        """Draw ``text`` horizontally centred on ``x`` with its baseline at ``y``.

        Returns
        -------
        bool
            True if drawn, False when no font is loaded or the outline fails
        """
        if font is None:
            logger.warning("No custom font loaded, using fallback")
            return False

        try:
            advance = font.advance_width(text, font_size)
            adjusted_x = x - advance / 2.0
            path = commands_to_path(font.get_path(text, adjusted_x, y, font_size))

            surface.fill_path(path, self.color)
            if boldness > 0:
                surface.stroke_path(
                    path,
                    width=font_size * self.bold_stroke_factor * boldness,
                    color=self.color,
                    miter_limit=self.miter_limit,
                )
            return True
        except Exception as e:
            logger.error(f"Error drawing text with font: {e}", exc_info=True)
            return False
