"""Custom font loading and metrics (fontTools).

A LoadedFont wraps a parsed TrueType/OpenType font and exposes the small
contract the glyph renderer needs:
    - advance_width(text, size): horizontal advance in px
    - get_path(text, x, y, size): outline commands M/L/C/Q/Z in canvas space
      (y-down, baseline at ``y``)

FontLibrary holds at most one custom font for the process and reports font,
glyph and text metrics for the UI.

Command tuples:
    ('M', x, y) | ('L', x, y) | ('C', x1, y1, x2, y2, x, y)
    | ('Q', x1, y1, x, y) | ('Z',)

Kerning (GPOS/kern) is not applied; glyphs advance by hmtx widths only.
"""

import io
import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from fontTools.pens.basePen import BasePen
from fontTools.pens.boundsPen import BoundsPen
from fontTools.pens.transformPen import TransformPen
from fontTools.ttLib import TTFont

from src.utils import fs

logger = logging.getLogger(__name__)

PathCommand = Tuple


class CommandPen(BasePen):
    """Record pen callbacks as path command tuples.

    BasePen resolves TrueType implied on-curve points and composite glyphs,
    so only one-segment callbacks reach this pen.
    """

    def __init__(self, glyphSet=None):
        super().__init__(glyphSet)
        self.commands: List[PathCommand] = []

    def _moveTo(self, pt):
        self.commands.append(('M', pt[0], pt[1]))

    def _lineTo(self, pt):
        self.commands.append(('L', pt[0], pt[1]))

    def _curveToOne(self, pt1, pt2, pt3):
        self.commands.append(('C', pt1[0], pt1[1], pt2[0], pt2[1], pt3[0], pt3[1]))

    def _qCurveToOne(self, pt1, pt2):
        self.commands.append(('Q', pt1[0], pt1[1], pt2[0], pt2[1]))

    def _closePath(self):
        self.commands.append(('Z',))

    def _endPath(self):
        pass


class LoadedFont:
    """Parsed font plus cached tables."""

    def __init__(self, tt: TTFont):
        self.tt = tt
        self.units_per_em = int(tt['head'].unitsPerEm)
        hhea = tt['hhea']
        self.ascender = int(hhea.ascent)
        self.descender = int(hhea.descent)
        self._glyph_set = tt.getGlyphSet()
        self._cmap = tt.getBestCmap() or {}
        self._hmtx = tt['hmtx']

    @classmethod
    def from_bytes(cls, data: bytes) -> 'LoadedFont':
        return cls(TTFont(io.BytesIO(data)))

    @property
    def full_name(self) -> str:
        name = self.tt['name'].getDebugName(4) if 'name' in self.tt else None
        return name or "Unknown Font"

    def scale_for(self, size: float) -> float:
        return float(size) / self.units_per_em

    def glyph_name(self, char: str) -> str:
        return self._cmap.get(ord(char), '.notdef')

    def advance_width(self, text: str, size: float) -> float:
        scale = self.scale_for(size)
        return sum(self._hmtx[self.glyph_name(c)][0] for c in text) * scale

    def _draw(self, text: str, x: float, y: float, size: float, pen) -> None:
        scale = self.scale_for(size)
        cursor = float(x)
        for char in text:
            name = self.glyph_name(char)
            # Font units are y-up; flip onto the y-down canvas at the baseline
            tpen = TransformPen(pen, (scale, 0, 0, -scale, cursor, y))
            self._glyph_set[name].draw(tpen)
            cursor += self._hmtx[name][0] * scale

    def get_path(self, text: str, x: float, y: float, size: float) -> List[PathCommand]:
        """Outline commands for ``text`` starting at (x, y) on the baseline."""
        pen = CommandPen(self._glyph_set)
        self._draw(text, x, y, size, pen)
        return pen.commands

    def path_bounds(self, text: str, x: float, y: float, size: float) -> Optional[Tuple[float, float, float, float]]:
        """Exact (x_min, y_min, x_max, y_max) of the outline, None if empty."""
        pen = BoundsPen(self._glyph_set)
        self._draw(text, x, y, size, pen)
        return pen.bounds

    def glyph_bounds(self, char: str) -> Optional[Tuple[float, float, float, float]]:
        """Glyph bounds in font units (y-up)."""
        pen = BoundsPen(self._glyph_set)
        self._glyph_set[self.glyph_name(char)].draw(pen)
        return pen.bounds

    def left_side_bearing(self, char: str) -> int:
        return int(self._hmtx[self.glyph_name(char)][1])


class FontLibrary:
    """Process-wide holder for the optional custom font."""

    def __init__(self):
        self.font: Optional[LoadedFont] = None

    @classmethod
    def from_path(cls, path: Optional[Union[str, Path]]) -> 'FontLibrary':
        library = cls()
        if path:
            library.load_font_from_path(path)
        return library

    def load_font_from_bytes(self, data: bytes) -> LoadedFont:
        """Parse and install a font; the previous font stays on failure.

        Raises
        ------
        ValueError
            If the data is not a readable font
        """
        try:
            font = LoadedFont.from_bytes(data)
        except Exception as e:
            raise ValueError(f"Failed to parse font ({len(data)} bytes): {e}") from e

        self.font = font
        logger.info(
            f"Font loaded: {font.full_name} "
            f"(unitsPerEm={font.units_per_em}, ascender={font.ascender}, descender={font.descender})"
        )
        return font

    def load_font_from_path(self, path: Union[str, Path]) -> LoadedFont:
        return self.load_font_from_bytes(fs.read_bytes(path))

    def has_font(self) -> bool:
        return self.font is not None

    def clear(self) -> None:
        self.font = None
        logger.info("Custom font cleared")

    @property
    def font_name(self) -> Optional[str]:
        if self.font is None:
            return None
        return self.font.full_name

    def font_metrics(self, size: float) -> Optional[Dict[str, float]]:
        """Ascender/descender in px at ``size``, plus unitsPerEm and scale."""
        if self.font is None:
            return None
        scale = self.font.scale_for(size)
        return {
            'ascender': self.font.ascender * scale,
            'descender': self.font.descender * scale,
            'units_per_em': self.font.units_per_em,
            'scale': scale,
        }

    def glyph_metrics(self, char: str, size: float) -> Optional[Dict]:
        """Advance, left side bearing and bbox (y-up) of one glyph in px."""
        if self.font is None or not char:
            return None
        scale = self.font.scale_for(size)
        bounds = self.font.glyph_bounds(char[0]) or (0, 0, 0, 0)
        return {
            'advance_width': self.font.advance_width(char[0], size),
            'left_side_bearing': self.font.left_side_bearing(char[0]) * scale,
            'bbox': {
                'x1': bounds[0] * scale,
                'y1': bounds[1] * scale,
                'x2': bounds[2] * scale,
                'y2': bounds[3] * scale,
            },
        }

    def measure_text(self, text: str, size: float) -> Optional[Dict[str, float]]:
        """Outline extent of ``text`` laid out at the origin.

        ``width`` and ``height`` are the outline bounding box; ``ascent`` and
        ``descent`` are the parts above and below the baseline, never negative.
        Returns None when no font is loaded or the outline cannot be built.
        """
        if self.font is None:
            return None
        try:
            bounds = self.font.path_bounds(text, 0.0, 0.0, size)
        except Exception as e:
            logger.warning(f"Failed to measure custom font text {text!r}: {e}")
            return None
        x1, y1, x2, y2 = bounds if bounds is not None else (0.0, 0.0, 0.0, 0.0)
        # Canvas space is y-down: the outline rises above the baseline at y < 0
        return {
            'width': x2 - x1,
            'ascent': max(0.0, -y1),
            'descent': max(0.0, y2),
            'height': y2 - y1,
        }
