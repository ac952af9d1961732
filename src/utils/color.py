"""Color helpers for 8-bit RGBA rasters.

Provides:
    - Mean-RGB brightness (concentration mapping in grayscale mode)
    - Rec. 601 luma (boundary overlays)
    - Source-over compositing of coverage masks and RGBA layers
    - CSS-style color parsing for fill colors

All inputs are uint8 RGBA arrays of shape (H, W, 4) unless noted; outputs are
float32 in the same 0..255 scale as the input.
"""

from typing import Optional, Tuple, Union

import numpy as np
from PIL import ImageColor


WHITE = (255, 255, 255, 255)
BLACK = (0, 0, 0, 255)

REC601 = (0.299, 0.587, 0.114)


def brightness_mean(rgba: np.ndarray) -> np.ndarray:
    """Unweighted mean of R, G, B, shape (H, W), float32 in [0, 255]."""
    rgb = rgba[..., :3].astype(np.float32)
    return (rgb[..., 0] + rgb[..., 1] + rgb[..., 2]) / 3.0


def luminance_rec601(rgba: np.ndarray) -> np.ndarray:
    """Rec. 601 luma 0.299 R + 0.587 G + 0.114 B, shape (H, W), float32."""
    rgb = rgba[..., :3].astype(np.float32)
    return REC601[0] * rgb[..., 0] + REC601[1] * rgb[..., 1] + REC601[2] * rgb[..., 2]


def parse_color(color: Union[str, Tuple[int, ...]]) -> Tuple[int, int, int, int]:
    """Parse '#000', 'black', (r, g, b) or (r, g, b, a) to an RGBA tuple."""
    if isinstance(color, str):
        rgba = ImageColor.getcolor(color, "RGBA")
        return tuple(int(c) for c in rgba)
    if len(color) == 3:
        return (int(color[0]), int(color[1]), int(color[2]), 255)
    if len(color) == 4:
        return tuple(int(c) for c in color)
    raise ValueError(f"Color must have 3 or 4 components, got {color}")


def composite_coverage(
    pixels: np.ndarray,
    coverage: np.ndarray,
    color: Tuple[int, int, int, int]
) -> np.ndarray:
    """Source-over a solid color through an 8-bit coverage mask, in place.

    Parameters
    ----------
    pixels : np.ndarray
        Destination (H, W, 4) uint8 RGBA, modified in place
    coverage : np.ndarray
        (H, W) uint8 coverage, 255 = fully covered
    color : tuple
        Source RGBA

    Returns
    -------
    np.ndarray
        ``pixels``

    Notes
    -----
    Fully covered pixels receive the exact source color (no rounding drift),
    which keeps the binary green == 0 test stable for opaque black fills.
    """
    alpha = coverage.astype(np.uint32) * int(color[3]) // 255
    src = np.zeros((4,), dtype=np.uint32)
    src[:] = color
    src_layer = np.broadcast_to(src, pixels.shape)
    return composite_rgba(pixels, src_layer, alpha.astype(np.uint8))


def composite_rgba(
    pixels: np.ndarray,
    layer: np.ndarray,
    alpha: Optional[np.ndarray] = None
) -> np.ndarray:
    """Source-over an RGBA layer onto ``pixels`` in place.

    Parameters
    ----------
    pixels : np.ndarray
        Destination (H, W, 4) uint8
    layer : np.ndarray
        Source (H, W, 4), uint8 or broadcastable
    alpha : np.ndarray, optional
        (H, W) uint8 source alpha; defaults to the layer's own alpha channel
    """
    if alpha is None:
        alpha = layer[..., 3]
    a = alpha.astype(np.uint32)[..., np.newaxis]
    if not a.any():
        return pixels

    dst = pixels.astype(np.uint32)
    src = np.asarray(layer).astype(np.uint32)

    out_a = a + dst[..., 3:4] * (255 - a) // 255
    # Premultiplied over, un-premultiplied by the resulting alpha
    num = src[..., :3] * a * 255 + dst[..., :3] * dst[..., 3:4] * (255 - a)
    denom = np.maximum(out_a * 255, 1)
    rgb = (num + denom // 2) // denom

    pixels[..., :3] = np.where(out_a > 0, rgb, 0).astype(np.uint8)
    pixels[..., 3:4] = out_a.astype(np.uint8)
    return pixels
