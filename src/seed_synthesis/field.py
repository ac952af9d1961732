"""Concentration field packing.

The field is a flat float32 buffer of width × height × 4 in texture order,
i.e. row 0 of the buffer is the bottom row of the raster. Channel layout:
    0 → 1.0 (substrate)
    1 → seed concentration
    2, 3 → 0.0
"""

from dataclasses import dataclass

import numpy as np


@dataclass
class ConcentrationField:
    width: int
    height: int
    data: np.ndarray

    def __post_init__(self):
        expected = self.width * self.height * 4
        if self.data.dtype != np.float32 or self.data.ndim != 1 or self.data.size != expected:
            raise ValueError(
                f"Field must be flat float32 of length {expected}, "
                f"got {self.data.dtype} {self.data.shape}"
            )

    def __len__(self) -> int:
        return self.data.size

    def as_texture(self) -> np.ndarray:
        """(H, W, 4) view in texture order (bottom row first)."""
        return self.data.reshape(self.height, self.width, 4)

    def as_grid(self) -> np.ndarray:
        """(H, W, 4) copy in raster order (top row first)."""
        return np.flipud(self.as_texture()).copy()

    def seed_channel(self) -> np.ndarray:
        """Channel 1 in raster order, (H, W)."""
        return self.as_grid()[..., 1]


class FieldAssembler:
    """Pack a seed channel into the canonical 4-channel field."""

    def assemble(self, seed: np.ndarray) -> ConcentrationField:
        if seed.ndim != 2:
            raise ValueError(f"Seed channel must be (H, W), got {seed.shape}")
        h, w = seed.shape
        grid = np.zeros((h, w, 4), dtype=np.float32)
        grid[..., 0] = 1.0
        grid[..., 1] = seed
        data = np.ascontiguousarray(np.flipud(grid)).ravel()
        return ConcentrationField(width=w, height=h, data=data)
