"""Shared fixtures.

The test font is built in memory with fontTools' FontBuilder so glyph tests
never depend on fonts installed on the machine. Units per em = 1000:

    glyph   advance   outline (font units, y-up)
    I       600       rect x 200..400, y 0..700
    A       600       triangle (100,0) (300,700) (500,0)
    O       600       rect x 100..500, y 0..700 with a hole x 200..400, y 200..500
    D       600       line + two quadratic curves, x 100..500, y 0..700
    -       600       rect x 100..500, y 300..400 (clear of the baseline)
    space   300       empty
"""

import io

import pytest
from fontTools.fontBuilder import FontBuilder
from fontTools.pens.ttGlyphPen import TTGlyphPen

from src.seed_synthesis.fonts import FontLibrary
from src.utils.validators import SeedConfigV1


def _rect(pen, x0, y0, x1, y1, clockwise=True):
    if clockwise:
        pts = [(x0, y0), (x0, y1), (x1, y1), (x1, y0)]
    else:
        pts = [(x0, y0), (x1, y0), (x1, y1), (x0, y1)]
    pen.moveTo(pts[0])
    for pt in pts[1:]:
        pen.lineTo(pt)
    pen.closePath()


def _build_font_bytes() -> bytes:
    glyphs = {}

    glyphs['.notdef'] = TTGlyphPen(None).glyph()
    glyphs['space'] = TTGlyphPen(None).glyph()

    pen = TTGlyphPen(None)
    _rect(pen, 200, 0, 400, 700)
    glyphs['I'] = pen.glyph()

    pen = TTGlyphPen(None)
    pen.moveTo((100, 0))
    pen.lineTo((300, 700))
    pen.lineTo((500, 0))
    pen.closePath()
    glyphs['A'] = pen.glyph()

    pen = TTGlyphPen(None)
    _rect(pen, 100, 0, 500, 700)
    _rect(pen, 200, 200, 400, 500, clockwise=False)
    glyphs['O'] = pen.glyph()

    pen = TTGlyphPen(None)
    pen.moveTo((100, 0))
    pen.lineTo((100, 700))
    pen.qCurveTo((500, 700), (500, 350))
    pen.qCurveTo((500, 0), (300, 0))
    pen.closePath()
    glyphs['D'] = pen.glyph()

    pen = TTGlyphPen(None)
    _rect(pen, 100, 300, 500, 400)
    glyphs['hyphen'] = pen.glyph()

    order = ['.notdef', 'space', 'I', 'A', 'O', 'D', 'hyphen']
    fb = FontBuilder(1000, isTTF=True)
    fb.setupGlyphOrder(order)
    fb.setupCharacterMap({ord(' '): 'space', ord('I'): 'I', ord('A'): 'A', ord('O'): 'O', ord('D'): 'D', ord('-'): 'hyphen'})
    fb.setupGlyf(glyphs)
    fb.setupHorizontalMetrics({
        '.notdef': (500, 0),
        'space': (300, 0),
        'I': (600, 200),
        'A': (600, 100),
        'O': (600, 100),
        'D': (600, 100),
        'hyphen': (600, 100),
    })
    fb.setupHorizontalHeader(ascent=800, descent=-200)
    fb.setupNameTable({
        'familyName': 'SeedTest',
        'styleName': 'Regular',
        'fullName': 'SeedTest Regular',
        'psName': 'SeedTest-Regular',
    })
    fb.setupOS2(sTypoAscender=800, sTypoDescender=-200, usWinAscent=800, usWinDescent=200)
    fb.setupPost()

    buf = io.BytesIO()
    fb.save(buf)
    return buf.getvalue()


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture(scope='session')
def font_bytes():
    """Serialized test TrueType font."""
    return _build_font_bytes()


@pytest.fixture
def font_library(font_bytes):
    """FontLibrary with the test font loaded."""
    library = FontLibrary()
    library.load_font_from_bytes(font_bytes)
    return library


@pytest.fixture
def font_file(tmp_path, font_bytes):
    """Test font written to disk."""
    path = tmp_path / 'seedtest.ttf'
    path.write_bytes(font_bytes)
    return path


def _make_config(width=200, height=200, **sections):
    """SeedConfigV1 for tests: small canvas, software blur only."""
    data = {
        'canvas': {'width': width, 'height': height},
        'postprocess': {'accelerated_blur': {'enabled': False, 'device': 'cpu'}},
    }
    for key, value in sections.items():
        if key in data and isinstance(value, dict):
            data[key] = {**data[key], **value}
        else:
            data[key] = value
    return SeedConfigV1(**data)


@pytest.fixture
def config():
    """200×200 config with default settings and software blur."""
    return _make_config()


@pytest.fixture
def make_config():
    """Factory: make_config(width, height, **sections) -> SeedConfigV1."""
    return _make_config
