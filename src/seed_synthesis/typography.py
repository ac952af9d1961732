"""Typography guidelines, line layout and the system (fallback) font.

Guideline positions are fractions of the canvas height; text lines stack
upwards from the baseline so the last line always sits on it.

System font resolution:
    - boldness → CSS-style weight (400, 500, 600, 800, 900)
    - ``system_font.faces`` maps weights to font files; the heaviest face not
      heavier than the requested weight is used
    - when that face is lighter than requested, PIL's stroke_width adds the
      missing weight synthetically
    - with nothing configured, PIL's bundled scalable font is used
"""

import logging
import re
from typing import Dict, List, Tuple

from PIL import ImageFont

from src.utils.validators import SystemFontConfig, TypographyConfig

logger = logging.getLogger(__name__)

# Synthetic emboldening: stroke px per 100 weight units, per px of font size
SYNTHETIC_BOLD_PER_100 = 0.01

REGULAR_WEIGHT = 400

_LINE_BREAK = re.compile(r'\r?\n')


def typography_metrics(canvas_height: float, typography: TypographyConfig) -> Dict[str, float]:
    """Guideline y positions in px for a canvas of ``canvas_height``."""
    return {
        'ascender': canvas_height * typography.ascender_ratio,
        'cap_height': canvas_height * typography.cap_height_ratio,
        'x_height': canvas_height * typography.x_height_ratio,
        'baseline': canvas_height * typography.baseline_ratio,
        'descender': canvas_height * typography.descender_ratio,
    }


def font_weight_for_boldness(boldness: float) -> int:
    """Map the boldness control (0..3) to a font weight."""
    if boldness > 2.5:
        return 900
    if boldness > 1.5:
        return 800
    if boldness > 0.5:
        return 600
    if boldness > 0:
        return 500
    return REGULAR_WEIGHT


def split_lines(value: str) -> List[str]:
    """Split on LF or CRLF; an empty value renders as "A"."""
    if not value:
        return ["A"]
    return _LINE_BREAK.split(value)


def line_baselines(n_lines: int, baseline: float, line_height: float) -> List[float]:
    """y of each line so that the last one sits on ``baseline``."""
    return [baseline - (n_lines - 1 - i) * line_height for i in range(n_lines)]


class SystemFont:
    """Resolve PIL fonts for a size and weight."""

    def __init__(self, cfg: SystemFontConfig):
        self.cfg = cfg
        self._faces: Dict[int, str] = dict(cfg.faces)
        if cfg.path and REGULAR_WEIGHT not in self._faces:
            self._faces[REGULAR_WEIGHT] = cfg.path
        self._cache: Dict[Tuple[str, int], ImageFont.FreeTypeFont] = {}

    def _face_for(self, weight: int) -> Tuple[str, int]:
        lighter = [w for w in self._faces if w <= weight]
        if lighter:
            w = max(lighter)
        else:
            w = min(self._faces)
        return self._faces[w], w

    def load(self, size: float, weight: int = REGULAR_WEIGHT) -> Tuple[ImageFont.FreeTypeFont, int]:
        """Font object and synthetic stroke width in px for (size, weight)."""
        px = max(1, int(round(size)))
        if self._faces:
            path, face_weight = self._face_for(weight)
            key = (path, px)
            if key not in self._cache:
                try:
                    self._cache[key] = ImageFont.truetype(path, px)
                except OSError as e:
                    raise ValueError(f"Cannot open system font face {path}: {e}") from e
            font = self._cache[key]
        else:
            face_weight = REGULAR_WEIGHT
            key = ('<default>', px)
            if key not in self._cache:
                self._cache[key] = ImageFont.load_default(size=px)
            font = self._cache[key]

        missing = max(0, weight - face_weight)
        stroke = int(round(size * SYNTHETIC_BOLD_PER_100 * missing / 100.0))
        return font, stroke
