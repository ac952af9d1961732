"""End-to-end tests for SeedSynthesizer and SeedPipeline.

Test Suites:
    1. Every modality produces a full field
    2. Post-processing and boundary wiring
    3. Reseed outcomes (errors, supersession)
"""

import asyncio
import math

import numpy as np
import pytest
import torch

from src.render_targets import SolverState
from src.seed_synthesis import (
    MissingImageSourceError,
    SeedPipeline,
    SeedSynthesizer,
)
from src.utils.logging_config import current_context
from src.utils.validators import CircleSeed

N = 200 * 200


def synth(synthesizer, spec, overlay=None):
    return asyncio.run(synthesizer.synthesize(spec, overlay))


@pytest.fixture
def synthesizer(config, font_library):
    return SeedSynthesizer(config, fonts=font_library)


# ============================================================================
# TEST SUITE 1: Modalities
# ============================================================================

@pytest.mark.parametrize("spec", [
    {'modality': 'circle', 'radius': 40},
    {'modality': 'square', 'width': 80, 'height': 50, 'rotation': 20},
    {'modality': 'text', 'value': 'RD\nSEED', 'size': 40},
    {'modality': 'text', 'value': 'IO', 'size': 60, 'use_custom_font': True, 'boldness': 1.0},
    {'modality': 'image', 'source': np.zeros((10, 10, 4), dtype=np.uint8) + np.uint8(255)},
    {'modality': 'drawing', 'pixels': np.full((200, 200, 4), 255, dtype=np.uint8)},
    {'modality': 'drawing'},
    {'modality': 'empty'},
])
def test_every_modality_fills_field(synthesizer, spec):
    result = synth(synthesizer, spec)
    assert len(result.field) == N * 4
    texture = result.field.as_texture()
    assert np.all(texture[..., 0] == 1.0)
    assert np.all(texture[..., 2:] == 0.0)
    assert texture[..., 1].min() >= 0.0
    assert texture[..., 1].max() <= 0.5
    assert result.modality == spec['modality']


def test_circle_seeds_binary(synthesizer):
    result = synth(synthesizer, {'modality': 'circle', 'radius': 40})
    seed = result.field.seed_channel()
    assert set(np.unique(seed).tolist()) == {0.0, 0.5}
    assert seed[100, 100] == 0.5
    assert seed[0, 0] == 0.0
    assert not result.grayscale
    assert result.blur_strategy == 'none'


def test_circle_seed_count(make_config):
    """100×100 field, radius 20: seeded pixels ≈ πr² within one perimeter."""
    synthesizer = SeedSynthesizer(make_config(100, 100))
    result = synth(synthesizer, {'modality': 'circle', 'radius': 20})
    seeded = np.count_nonzero(result.field.seed_channel() == 0.5)
    assert abs(seeded - math.pi * 20 ** 2) <= 2 * math.pi * 20


def test_empty_has_no_seed(synthesizer):
    result = synth(synthesizer, {'modality': 'empty'})
    assert np.all(result.field.seed_channel() == 0.0)


def test_legacy_numeric_tag(synthesizer):
    result = synth(synthesizer, {'modality': 0, 'radius': 30})
    assert result.modality == 'circle'


def test_model_instances_accepted(synthesizer):
    result = synth(synthesizer, CircleSeed(radius=20))
    assert result.field.seed_channel().sum() > 0


def test_custom_font_from_config(make_config, font_file):
    synthesizer = SeedSynthesizer(make_config(fonts={'custom_font_path': str(font_file)}))
    assert synthesizer.fonts.font_name == 'SeedTest Regular'


def test_logging_context_cleared(synthesizer):
    synth(synthesizer, {'modality': 'empty'})
    assert 'modality' not in current_context()


# ============================================================================
# TEST SUITE 2: Post-processing and boundary
# ============================================================================

def test_blur_switches_to_grayscale(make_config):
    synthesizer = SeedSynthesizer(make_config(postprocess={'blur_radius': 2.0}))
    result = synth(synthesizer, {'modality': 'square', 'width': 60, 'height': 60})
    assert result.grayscale
    assert result.blur_strategy == 'software'
    seed = result.field.seed_channel()
    partial = (seed > 0.0) & (seed < 0.5)
    assert partial.any()


def test_boundary_disabled_by_default(synthesizer):
    result = synth(synthesizer, {'modality': 'circle'})
    assert result.boundary_mask is None
    assert result.enable_boundary is False
    assert result.falloff == 0.0


def test_boundary_from_seed(make_config):
    synthesizer = SeedSynthesizer(make_config(boundary={'enabled': True, 'mode': 'soft'}))
    result = synth(synthesizer, {'modality': 'circle', 'radius': 40})
    assert result.enable_boundary
    assert result.falloff == pytest.approx(0.3)
    assert len(result.boundary_mask) == N
    grid = result.boundary_mask.as_grid()
    assert grid[100, 100] == 1.0
    assert grid[0, 0] == 0.0


def test_boundary_overlay_wins(make_config):
    synthesizer = SeedSynthesizer(make_config(boundary={'enabled': True}))
    overlay = np.zeros((200, 200, 4), dtype=np.uint8)
    overlay[:100] = (0, 0, 0, 255)
    result = synth(synthesizer, {'modality': 'circle'}, overlay)
    assert result.boundary_mask.source == 'overlay'
    grid = result.boundary_mask.as_grid()
    assert np.all(grid[:100] == 0.0)
    assert np.all(grid[100:] == 1.0)


def test_drawing_without_boundary_overlay_warns(make_config, caplog):
    """A hand-drawn seed with no drawn boundary falls back to the computed mask."""
    synthesizer = SeedSynthesizer(make_config(boundary={'enabled': True}))
    pixels = np.full((200, 200, 4), 255, dtype=np.uint8)
    pixels[50:150, 50:150, :3] = 0
    result = synth(synthesizer, {'modality': 'drawing', 'pixels': pixels})

    assert "No custom drawn boundary" in caplog.text
    assert result.boundary_mask.source == 'computed'
    assert result.boundary_mask.as_grid()[100, 100] == 1.0


def test_missing_overlay_is_quiet_for_other_modalities(make_config, caplog):
    synthesizer = SeedSynthesizer(make_config(boundary={'enabled': True}))
    synth(synthesizer, {'modality': 'circle'})
    synth(synthesizer, {'modality': 'drawing'}, np.zeros((200, 200, 4), dtype=np.uint8))
    assert "No custom drawn boundary" not in caplog.text


# ============================================================================
# TEST SUITE 3: Reseed outcomes
# ============================================================================

def test_reseed_applies_to_state(synthesizer):
    pipeline = SeedPipeline(synthesizer)
    state = SolverState.create(200, 200)
    state.iterations = 50
    outcome = asyncio.run(pipeline.reseed({'modality': 'circle', 'radius': 40}, state))

    assert outcome.ok
    expected = torch.from_numpy(outcome.result.field.as_texture())
    assert torch.equal(state.render_targets[0], expected)
    assert torch.equal(state.render_targets[1], expected)
    assert state.iterations == 0


def test_missing_image_leaves_state_untouched(synthesizer, caplog):
    pipeline = SeedPipeline(synthesizer)
    state = SolverState.create(200, 200)
    state.iterations = 7
    outcome = asyncio.run(pipeline.reseed({'modality': 'image'}, state))

    assert not outcome.ok
    assert isinstance(outcome.error, MissingImageSourceError)
    assert str(outcome.error) == "Please upload an image first"
    assert state.iterations == 7
    assert torch.all(state.render_targets[0] == 0.0)
    assert "Seed synthesis failed" in caplog.text


def test_invalid_spec_raises(synthesizer):
    pipeline = SeedPipeline(synthesizer)
    state = SolverState.create(200, 200)
    with pytest.raises(ValueError):
        asyncio.run(pipeline.reseed({'modality': 'circle', 'radius': -1}, state))


def test_newest_request_wins(synthesizer):
    """A reseed issued while another is pending supersedes it."""
    pipeline = SeedPipeline(synthesizer)
    state = SolverState.create(200, 200)

    async def run():
        return await asyncio.gather(
            pipeline.reseed({'modality': 'circle', 'radius': 40}, state),
            pipeline.reseed({'modality': 'empty'}, state),
        )

    first, second = asyncio.run(run())
    assert first.superseded
    assert first.result is None
    assert second.ok
    assert second.result.modality == 'empty'
    assert torch.all(state.render_targets[0][..., 1] == 0.0)


def test_cancel_pending(synthesizer):
    async def run():
        task = synthesizer.submit({'modality': 'circle'})
        await synthesizer.cancel_pending()
        return task

    task = asyncio.run(run())
    assert task.cancelled()
    assert not synthesizer.was_superseded(task)


def test_disable_boundary(make_config):
    pipeline = SeedPipeline(SeedSynthesizer(make_config(boundary={'enabled': True})))
    state = SolverState.create(200, 200)
    asyncio.run(pipeline.reseed({'modality': 'circle'}, state))
    assert state.simulation_uniforms['enableBoundary'] is True
    pipeline.disable_boundary(state)
    assert state.simulation_uniforms['enableBoundary'] is False
