"""Tests for typography guidelines, line layout and the system font."""

import pytest
from PIL import ImageFont

from src.seed_synthesis.typography import (
    REGULAR_WEIGHT,
    SystemFont,
    font_weight_for_boldness,
    line_baselines,
    split_lines,
    typography_metrics,
)
from src.utils.validators import SystemFontConfig, TypographyConfig


def test_typography_metrics_default_ratios():
    metrics = typography_metrics(100, TypographyConfig())
    assert metrics['ascender'] == pytest.approx(25.0)
    assert metrics['cap_height'] == pytest.approx(30.0)
    assert metrics['x_height'] == pytest.approx(45.0)
    assert metrics['baseline'] == pytest.approx(70.0)
    assert metrics['descender'] == pytest.approx(80.0)


def test_typography_metrics_scale_with_height():
    metrics = typography_metrics(512, TypographyConfig(baseline_ratio=0.5, descender_ratio=0.9))
    assert metrics['baseline'] == pytest.approx(256.0)


@pytest.mark.parametrize("boldness,weight", [
    (0.0, 400),
    (0.25, 500),
    (0.5, 500),
    (1.0, 600),
    (1.5, 600),
    (2.0, 800),
    (2.5, 800),
    (3.0, 900),
])
def test_font_weight_for_boldness(boldness, weight):
    assert font_weight_for_boldness(boldness) == weight


def test_split_lines():
    assert split_lines("RD") == ["RD"]
    assert split_lines("RD\nSEED") == ["RD", "SEED"]
    assert split_lines("a\r\nb\nc") == ["a", "b", "c"]


def test_split_lines_keeps_blank_lines():
    assert split_lines("a\n\nb") == ["a", "", "b"]


def test_split_lines_empty_renders_placeholder():
    assert split_lines("") == ["A"]


def test_line_baselines_stack_upwards():
    """The last line sits on the baseline; earlier lines step up."""
    assert line_baselines(1, 70.0, 24.0) == [70.0]
    assert line_baselines(3, 140.0, 60.0) == [20.0, 80.0, 140.0]


def test_system_font_default_face():
    """With nothing configured the bundled font is used without bolding."""
    system = SystemFont(SystemFontConfig())
    font, stroke = system.load(40)
    assert isinstance(font, (ImageFont.FreeTypeFont, ImageFont.ImageFont))
    assert stroke == 0


def test_system_font_synthetic_bold():
    """Weight missing from the faces becomes a PIL stroke."""
    system = SystemFont(SystemFontConfig())
    _, stroke = system.load(100, 900)
    # 100 px × 0.01 × (900 - 400) / 100
    assert stroke == 5


def test_system_font_is_cached():
    system = SystemFont(SystemFontConfig())
    first, _ = system.load(30)
    second, _ = system.load(30.2)
    assert first is second


def test_system_font_face_selection(font_file):
    """The heaviest face not heavier than the request wins."""
    system = SystemFont(SystemFontConfig(faces={400: str(font_file), 700: str(font_file)}))
    assert system._face_for(REGULAR_WEIGHT) == (str(font_file), 400)
    assert system._face_for(800) == (str(font_file), 700)
    assert system._face_for(300) == (str(font_file), 400)

    _, stroke = system.load(100, 800)
    assert stroke == 1


def test_system_font_missing_face():
    system = SystemFont(SystemFontConfig(path='/nonexistent/regular.ttf'))
    with pytest.raises(ValueError, match="Cannot open system font face"):
        system.load(20)
