"""Boundary (constraint) masks for the reaction-diffusion solver.

1.0 marks open space where the pattern may grow; 0.0 marks walls.
"""

from .mask_generator import BoundaryMask, BoundaryMaskGenerator, mask_from_overlay
from .processor import create_boundary_mask

__all__ = [
    'BoundaryMask',
    'BoundaryMaskGenerator',
    'create_boundary_mask',
    'mask_from_overlay',
]
