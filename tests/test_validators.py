"""Test YAML schema validation and config loading.

Tests for src.utils.validators:
    - Load the shipped seed config and seed specification YAMLs
    - Reject invalid values with the offending key in the message
    - Legacy numeric modality and fit tags
    - Relative image sources resolve against the spec file

Run:
    pytest tests/test_validators.py -v
"""

from pathlib import Path

import numpy as np
import pytest
import yaml
from pydantic import ValidationError

from src.utils import validators
from src.utils.validators import (
    CircleSeed,
    DrawingSeed,
    EmptySeed,
    ImageFit,
    ImageSeed,
    SeedConfigV1,
    SquareSeed,
    TextSeed,
)

CONFIGS = Path(__file__).resolve().parent.parent / 'configs'


# ============================================================================
# TEST SUITE 1: Seed config
# ============================================================================

def test_load_shipped_config():
    cfg = validators.load_seed_config(CONFIGS / 'seed.v1.yaml')
    assert isinstance(cfg, SeedConfigV1)
    assert cfg.typography.baseline_ratio == pytest.approx(0.7)
    assert cfg.boundary.mode in ('hard', 'soft')


def test_defaults():
    cfg = SeedConfigV1()
    assert (cfg.canvas.width, cfg.canvas.height) == (512, 512)
    assert cfg.postprocess.blur_radius == 0.0
    assert cfg.glyphs.bold_stroke_factor == pytest.approx(0.1)
    assert cfg.boundary.soft_falloff == pytest.approx(0.3)
    assert cfg.boundary.enabled is False


def test_config_wrong_schema():
    with pytest.raises(ValidationError, match="seed.v1"):
        SeedConfigV1(schema='seed.v2')


def test_config_out_of_range(tmp_path):
    path = tmp_path / 'seed.yaml'
    path.write_text(yaml.safe_dump({'schema': 'seed.v1', 'canvas': {'width': 0}}))
    with pytest.raises(ValueError, match="width"):
        validators.load_seed_config(path)


def test_config_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        validators.load_seed_config(tmp_path / 'nope.yaml')


def test_typography_order_enforced():
    with pytest.raises(ValidationError, match="Typography ratios"):
        validators.TypographyConfig(baseline_ratio=0.2)


def test_system_font_weight_range():
    with pytest.raises(ValidationError, match="Font weight"):
        validators.SystemFontConfig(faces={1000: 'heavy.ttf'})


# ============================================================================
# TEST SUITE 2: Seed specifications
# ============================================================================

@pytest.mark.parametrize("name,cls", [
    ('circle.yaml', CircleSeed),
    ('square.yaml', SquareSeed),
    ('text.yaml', TextSeed),
    ('image.yaml', ImageSeed),
])
def test_load_shipped_specs(name, cls):
    assert isinstance(validators.load_seed_spec(CONFIGS / 'seeds' / name), cls)


def test_text_spec_line_break():
    spec = validators.load_seed_spec(CONFIGS / 'seeds' / 'text.yaml')
    assert spec.value == "RD\nSEED"


def test_image_source_resolved_relative_to_spec():
    spec = validators.load_seed_spec(CONFIGS / 'seeds' / 'image.yaml')
    assert Path(spec.source) == CONFIGS / 'seeds' / 'seed.png'


def test_data_url_source_untouched(tmp_path):
    path = tmp_path / 'spec.yaml'
    path.write_text(yaml.safe_dump({
        'schema': 'seed_spec.v1',
        'seed': {'modality': 'image', 'source': 'data:image/png;base64,AAAA'},
    }))
    assert validators.load_seed_spec(path).source == 'data:image/png;base64,AAAA'


def test_spec_legacy_tag_in_file(tmp_path):
    path = tmp_path / 'spec.yaml'
    path.write_text(yaml.safe_dump({'schema': 'seed_spec.v1', 'seed': {'modality': 4}}))
    assert isinstance(validators.load_seed_spec(path), EmptySeed)


def test_spec_wrong_schema(tmp_path):
    path = tmp_path / 'spec.yaml'
    path.write_text(yaml.safe_dump({'schema': 'seed.v1', 'seed': {'modality': 'circle'}}))
    with pytest.raises(ValueError, match="seed_spec.v1"):
        validators.load_seed_spec(path)


@pytest.mark.parametrize("tag,cls", [
    (0, CircleSeed),
    (1, SquareSeed),
    (2, TextSeed),
    (3, ImageSeed),
    (4, EmptySeed),
    (5, DrawingSeed),
])
def test_legacy_modality_tags(tag, cls):
    assert isinstance(validators.parse_seed_spec({'modality': tag}), cls)


def test_unknown_legacy_tag():
    with pytest.raises(ValueError, match="Unknown modality tag 9"):
        validators.parse_seed_spec({'modality': 9})


def test_unknown_modality():
    with pytest.raises(ValidationError):
        validators.parse_seed_spec({'modality': 'hexagon'})


def test_legacy_fit_tags():
    assert ImageSeed(fit=0).fit == ImageFit.NONE
    assert ImageSeed(fit=2).fit == ImageFit.STRETCH
    assert ImageSeed().fit == ImageFit.SCALE
    with pytest.raises(ValidationError):
        ImageSeed(fit=7)


def test_variants_carry_only_their_fields():
    with pytest.raises(ValidationError):
        CircleSeed(radius=0)
    with pytest.raises(ValidationError):
        TextSeed(boldness=4.0)
    assert not hasattr(CircleSeed(), 'boldness')


def test_parse_passes_models_through():
    seed = SquareSeed(rotation=45)
    assert validators.parse_seed_spec(seed) is seed


# ============================================================================
# TEST SUITE 3: Arrays
# ============================================================================

def test_validate_rgba():
    ok = np.zeros((2, 3, 4), dtype=np.uint8)
    assert validators.validate_rgba(ok) is ok
    with pytest.raises(TypeError):
        validators.validate_rgba(ok.astype(np.float32))
    with pytest.raises(TypeError):
        validators.validate_rgba([[0, 0, 0, 0]])
    with pytest.raises(ValueError):
        validators.validate_rgba(np.zeros((2, 3, 3), dtype=np.uint8))


def test_drawing_seed_validates_pixels():
    with pytest.raises(ValidationError):
        DrawingSeed(pixels=np.zeros((2, 2), dtype=np.uint8))
