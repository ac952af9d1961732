#!/usr/bin/env python3
"""Seed preview tool.

Runs the seed synthesis pipeline headlessly for one seed specification and
writes what the solver would be started with.

Usage:
    # Seed from a spec file
    python scripts/seed_preview.py --seed configs/seeds/text.yaml --output_dir outputs/seed

    # Inline seed, custom config, boundary overlay
    python scripts/seed_preview.py --modality circle --config configs/seed.v1.yaml \
        --boundary_overlay overlay.png --output_dir outputs/seed

Outputs:
    - <prefix>_seed.png: seed channel (channel 1 / 0.5), black = no seed
    - <prefix>_raster.png: post-processed RGBA raster
    - <prefix>_boundary.png: boundary mask (only when boundary is enabled)
    - <prefix>_manifest.yaml: modality, size, grayscale, blur, boundary stats
"""

import argparse
import asyncio
import logging
import sys
import time
from pathlib import Path

import numpy as np

sys.path.insert(0, str(Path(__file__).parent.parent))

from src.boundary.mask_generator import sample_stats
from src.render_targets import SolverState
from src.seed_synthesis import SeedPipeline, SeedSynthesizer
from src.seed_synthesis.images import decode_image_rgba
from src.utils import fs, logging_config, validators


def parse_args():
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Preview a reaction-diffusion seed",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    input_group = parser.add_mutually_exclusive_group(required=True)
    input_group.add_argument(
        '--seed',
        type=str,
        help='Path to a seed_spec.v1 YAML file'
    )
    input_group.add_argument(
        '--modality',
        type=str,
        choices=[m.value for m in validators.SeedModality],
        help='Inline seed with default parameters'
    )

    parser.add_argument(
        '--config',
        type=str,
        default='configs/seed.v1.yaml',
        help='Seed config, default: configs/seed.v1.yaml'
    )
    parser.add_argument(
        '--boundary_overlay',
        type=str,
        default=None,
        help='RGBA image used as the boundary overlay (black = wall, transparent = open)'
    )
    parser.add_argument(
        '--device',
        type=str,
        default='cpu',
        help='torch device for the render targets, default: cpu'
    )
    parser.add_argument(
        '--output_dir',
        type=str,
        default='outputs/seed_preview',
        help='Output directory, default: outputs/seed_preview'
    )
    parser.add_argument(
        '--prefix',
        type=str,
        default='seed',
        help='Output filename prefix, default: seed'
    )
    parser.add_argument(
        '--json_logs',
        action='store_true',
        help='Emit JSON log lines'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable debug logging'
    )

    return parser.parse_args()


def main():
    """Main entry point."""
    args = parse_args()

    log_level = "DEBUG" if args.verbose else "INFO"
    logging_config.setup_logging(log_level=log_level, json=args.json_logs, context={'app': 'seed_preview'})
    logging_config.install_excepthook()
    logger = logging.getLogger(__name__)

    config = validators.load_seed_config(args.config)
    if args.seed:
        seed = validators.load_seed_spec(args.seed)
        logger.info(f"Loaded seed from: {args.seed}")
    else:
        seed = validators.parse_seed_spec({'modality': args.modality})
        logger.info(f"Inline seed: {args.modality}")

    overlay = None
    if args.boundary_overlay:
        overlay = decode_image_rgba(args.boundary_overlay)
        logger.info(f"Boundary overlay: {args.boundary_overlay}")

    output_dir = fs.ensure_dir(args.output_dir)
    prefix = args.prefix

    pipeline = SeedPipeline(SeedSynthesizer(config))
    state = SolverState.create(config.canvas.width, config.canvas.height, device=args.device)

    start_time = time.time()
    outcome = asyncio.run(pipeline.reseed(seed, state, boundary_overlay=overlay))
    elapsed = time.time() - start_time

    if not outcome.ok:
        logger.error(f"No seed produced: {outcome.error}")
        return 1

    result = outcome.result
    logger.info(f"Synthesis completed in {elapsed:.3f}s")

    seed_path = output_dir / f'{prefix}_seed.png'
    seed_channel = result.field.seed_channel()
    fs.atomic_save_image(np.clip(seed_channel / 0.5, 0.0, 1.0), seed_path)
    logger.info(f"Saved seed channel: {seed_path}")

    raster_path = output_dir / f'{prefix}_raster.png'
    fs.atomic_save_image(result.raster, raster_path)
    logger.info(f"Saved raster: {raster_path}")

    mask_path = output_dir / f'{prefix}_boundary.png'
    boundary = None
    if result.enable_boundary:
        fs.atomic_save_image(result.boundary_mask.as_grid(), mask_path)
        logger.info(f"Saved boundary mask: {mask_path}")
        boundary = {
            'source': result.boundary_mask.source,
            'falloff': result.falloff,
            'open_fraction': float(result.boundary_mask.data.mean()),
            'sample': sample_stats(result.boundary_mask.data),
        }
    elif fs.safe_remove(mask_path):
        logger.info(f"Removed stale boundary mask: {mask_path}")

    manifest = {
        'modality': result.modality,
        'canvas': {'width': result.field.width, 'height': result.field.height},
        'grayscale': result.grayscale,
        'blur': {'radius': config.postprocess.blur_radius, 'strategy': result.blur_strategy},
        'seeded_fraction': float(np.count_nonzero(seed_channel > 0) / seed_channel.size),
        'boundary': boundary,
        'elapsed_s': round(elapsed, 4),
    }
    manifest_path = output_dir / f'{prefix}_manifest.yaml'
    fs.atomic_yaml_dump(manifest, manifest_path)
    logger.info(f"Saved manifest: {manifest_path}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
