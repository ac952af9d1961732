"""Computed boundary masks from raster content.

The open region (1.0) is the dark content of the seed raster: pixels with
mean RGB < 128 and alpha >= 128. Walls (0.0) are everything else.

Processing order:
    1. padding  → binary dilation with a disk of radius ``padding``
    2. erosion  → binary erosion with a disk of radius ``erosion``
    3. blur     → Gaussian smoothing, sigma = ``blur_radius``
    4. mode     → 'hard' re-binarises at 0.5; 'soft' and any other mode keep
                   continuous values
    5. invert   → 1 − mask
"""

import logging

import numpy as np
from scipy import ndimage
from skimage.morphology import disk

from src.utils import color as color_utils
from src.utils.validators import BoundaryConfig

logger = logging.getLogger(__name__)

DARK_THRESHOLD = 128.0
OPAQUE_THRESHOLD = 128


def open_region(pixels: np.ndarray) -> np.ndarray:
    """Boolean (H, W): dark, opaque raster content."""
    dark = color_utils.brightness_mean(pixels) < DARK_THRESHOLD
    return dark & (pixels[..., 3] >= OPAQUE_THRESHOLD)


def create_boundary_mask(pixels: np.ndarray, cfg: BoundaryConfig) -> np.ndarray:
    """Derive a [0, 1] float32 (H, W) mask, raster order, 1 = open."""
    region = open_region(pixels)

    if cfg.padding > 0:
        region = ndimage.binary_dilation(region, structure=disk(cfg.padding))
    if cfg.erosion > 0:
        region = ndimage.binary_erosion(region, structure=disk(cfg.erosion), border_value=0)

    mask = region.astype(np.float32)
    if cfg.blur_radius > 0:
        mask = ndimage.gaussian_filter(mask, sigma=cfg.blur_radius, mode='nearest')

    if cfg.mode == 'hard':
        mask = (mask >= 0.5).astype(np.float32)
    else:
        mask = np.clip(mask, 0.0, 1.0).astype(np.float32)

    if cfg.invert:
        mask = 1.0 - mask

    logger.debug(
        f"Computed boundary mask: mode={cfg.mode}, padding={cfg.padding}, erosion={cfg.erosion}, "
        f"blur={cfg.blur_radius}, invert={cfg.invert}, open={float(mask.mean()):.3f}"
    )
    return mask.astype(np.float32)
