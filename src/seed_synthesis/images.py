"""Image seed decoding and placement.

Sources accepted by ``decode_image_rgba``:
    - (H, W, 4) uint8 numpy arrays (used as-is)
    - PIL images
    - encoded bytes (PNG, JPEG, ...)
    - ``data:image/...;base64,`` URLs
    - filesystem paths (str or Path)

Decoding runs in a worker thread (``load_image_rgba``), which is the only
await point of a synthesis call.

Placement follows the fit mode, in canvas pixels:
    none    → native size × scale, top-left at centre − native/2
    scale   → largest uniform fit (ratio = min(W/iw, H/ih)), centred
    stretch → the whole canvas
and the rotation/scale pivot is (W/2 · scale, H/2 · scale).
"""

import asyncio
import base64
import io
import logging
import math
from pathlib import Path
from typing import Any, Tuple

import numpy as np
from PIL import Image

from src.utils import geometry
from src.utils.validators import ImageFit

from .errors import ImageLoadError

logger = logging.getLogger(__name__)


def _open_source(source: Any) -> Image.Image:
    if isinstance(source, Image.Image):
        return source
    if isinstance(source, (bytes, bytearray, memoryview)):
        return Image.open(io.BytesIO(bytes(source)))
    if isinstance(source, str) and source.startswith('data:'):
        header, _, payload = source.partition(',')
        if ';base64' not in header:
            raise ValueError(f"Unsupported data URL encoding: {header}")
        return Image.open(io.BytesIO(base64.b64decode(payload)))
    if isinstance(source, (str, Path)):
        path = Path(source)
        if not path.exists():
            raise FileNotFoundError(f"Image not found: {path}")
        return Image.open(path)
    raise TypeError(f"Unsupported image source type: {type(source).__name__}")


def decode_image_rgba(source: Any) -> np.ndarray:
    """Decode ``source`` to an (H, W, 4) uint8 array.

    Raises
    ------
    ImageLoadError
        If the source cannot be read or decoded
    """
    if isinstance(source, np.ndarray):
        if source.dtype != np.uint8 or source.ndim != 3 or source.shape[2] != 4:
            raise ImageLoadError(
                f"Image array must be (H, W, 4) uint8, got {source.shape} {source.dtype}"
            )
        return source

    try:
        img = _open_source(source)
        img.load()
        rgba = np.asarray(img.convert('RGBA'), dtype=np.uint8)
    except Exception as e:
        raise ImageLoadError(f"Failed to load image: {e}") from e

    if rgba.shape[0] == 0 or rgba.shape[1] == 0:
        raise ImageLoadError(f"Image has no pixels: {rgba.shape}")
    return np.ascontiguousarray(rgba)


async def load_image_rgba(source: Any) -> np.ndarray:
    """Decode off the event loop."""
    rgba = await asyncio.to_thread(decode_image_rgba, source)
    logger.debug(f"Image decoded: {rgba.shape[1]}×{rgba.shape[0]}")
    return rgba


def compute_image_placement(
    fit: ImageFit,
    canvas_w: float,
    canvas_h: float,
    image_w: float,
    image_h: float,
    scale: float = 1.0
) -> Tuple[float, float, float, float]:
    """Destination rect (x, y, w, h) of the image in user space.

    Raises
    ------
    ValueError
        For an unknown fit mode
    """
    fit = ImageFit(fit)
    if fit == ImageFit.NONE:
        x = canvas_w / 2.0 - image_w / 2.0
        y = canvas_h / 2.0 - image_h / 2.0
        return x, y, image_w * scale, image_h * scale
    if fit == ImageFit.SCALE:
        ratio = min(canvas_w / image_w, canvas_h / image_h)
        w = image_w * ratio
        h = image_h * ratio
        return (canvas_w - w) / 2.0, (canvas_h - h) / 2.0, w, h
    if fit == ImageFit.STRETCH:
        return 0.0, 0.0, float(canvas_w), float(canvas_h)
    raise ValueError(f"Unknown image fit: {fit}")


def image_transform(canvas_w: float, canvas_h: float, scale: float, rotation_deg: float) -> np.ndarray:
    """Rotation about the scaled-centre pivot (W/2 · scale, H/2 · scale)."""
    return geometry.rotation_about(
        canvas_w / 2.0 * scale,
        canvas_h / 2.0 * scale,
        math.radians(rotation_deg),
    )
