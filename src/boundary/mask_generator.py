"""Boundary mask derivation.

A user-authored overlay always wins; otherwise the mask is computed from the
post-processed seed raster by a boundary processor
``(rgba, BoundaryConfig) -> float32 (H, W)``.

Overlay rule (per pixel):
    alpha < 128            → 1.0 (erased, open)
    luma(R, G, B) < 128    → 0.0 (ink, wall)
    otherwise              → 1.0 (open)

Masks are stored flat in raster order; ``texture()`` is the vertically
flipped view uploaded to the solver.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import numpy as np

from src.utils import color as color_utils, validators
from src.utils.validators import BoundaryConfig

from .processor import create_boundary_mask

logger = logging.getLogger(__name__)

BoundaryProcessor = Callable[[np.ndarray, BoundaryConfig], np.ndarray]

OVERLAY_ALPHA_THRESHOLD = 128
OVERLAY_LUMA_THRESHOLD = 128.0
SAMPLE_SIZE = 1000


@dataclass
class BoundaryMask:
    width: int
    height: int
    data: np.ndarray
    source: str = 'computed'

    def __post_init__(self):
        expected = self.width * self.height
        if self.data.dtype != np.float32 or self.data.ndim != 1 or self.data.size != expected:
            raise ValueError(
                f"Boundary mask must be flat float32 of length {expected}, "
                f"got {self.data.dtype} {self.data.shape}"
            )

    def __len__(self) -> int:
        return self.data.size

    def as_grid(self) -> np.ndarray:
        """(H, W) view in raster order."""
        return self.data.reshape(self.height, self.width)

    def texture(self) -> np.ndarray:
        """(H, W) copy in texture order (bottom row first)."""
        return np.ascontiguousarray(np.flipud(self.as_grid()))


def mask_from_overlay(overlay: np.ndarray) -> np.ndarray:
    """Apply the overlay rule to an RGBA overlay; float32 (H, W)."""
    overlay = validators.validate_rgba(overlay, "Boundary overlay")
    luma = color_utils.luminance_rec601(overlay)
    mask = np.where(luma < OVERLAY_LUMA_THRESHOLD, 0.0, 1.0)
    mask = np.where(overlay[..., 3] < OVERLAY_ALPHA_THRESHOLD, 1.0, mask)
    return mask.astype(np.float32)


def sample_stats(data: np.ndarray, n: int = SAMPLE_SIZE) -> Dict[str, float]:
    """Counts and range over the first ``n`` mask values."""
    sample = data[:n]
    if sample.size == 0:
        return {'non_zero': 0, 'ones': 0, 'min': 0.0, 'max': 0.0}
    return {
        'non_zero': int(np.count_nonzero(sample > 0)),
        'ones': int(np.count_nonzero(sample >= 1.0)),
        'min': float(sample.min()),
        'max': float(sample.max()),
    }


class BoundaryMaskGenerator:
    """Build BoundaryMask values from overlays or raster content.

    Parameters
    ----------
    cfg : BoundaryConfig
        Mode, morphology and falloff settings
    processor : callable, optional
        Computed-mask collaborator; defaults to ``create_boundary_mask``
    """

    def __init__(self, cfg: BoundaryConfig, processor: Optional[BoundaryProcessor] = None):
        self.cfg = cfg
        self.processor = processor or create_boundary_mask

    @property
    def falloff(self) -> float:
        return self.cfg.soft_falloff if self.cfg.mode == 'soft' else 0.0

    def generate(self, pixels: np.ndarray, overlay: Optional[np.ndarray] = None) -> BoundaryMask:
        """Mask for a post-processed (H, W, 4) raster.

        An overlay whose size differs from the raster is ignored with a
        warning and the computed mask is used instead.
        """
        h, w = pixels.shape[:2]
        grid = None
        source = 'computed'

        if overlay is not None:
            if overlay.shape[:2] != (h, w):
                logger.warning(
                    f"Boundary overlay {overlay.shape[1]}×{overlay.shape[0]} does not match "
                    f"canvas {w}×{h}; computing mask from the seed instead"
                )
            else:
                grid = mask_from_overlay(overlay)
                source = 'overlay'
                logger.info("Using custom drawn boundary mask (black=wall, transparent=open)")

        if grid is None:
            grid = np.asarray(self.processor(pixels, self.cfg), dtype=np.float32)
            if grid.shape != (h, w):
                raise ValueError(f"Boundary processor returned {grid.shape}, expected {(h, w)}")

        mask = BoundaryMask(width=w, height=h, data=grid.ravel().copy(), source=source)
        logger.debug(f"Boundary mask sample (first {SAMPLE_SIZE} pixels): {sample_stats(mask.data)}")
        logger.info(f"Boundary mask generated: mode={self.cfg.mode}, size={w}x{h}, source={source}")
        return mask
