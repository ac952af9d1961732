"""Blur and concentration mapping of the seed raster.

Blur strategies (only when blur_radius > 0):
    - accelerated: separable Gaussian (sigma = radius) with torch on the
      configured device; replicate padding
    - software: box blur, r = ceil(radius), kernel 2r+1, clamped-edge
      sampling, each RGBA channel averaged independently, rounded to uint8

The accelerated path is feature-detected once; when the device is missing the
software path is used silently (debug log only).

Concentration mapping (per pixel):
    grayscale = use_grayscale or blur_radius > 0
    grayscale → seed = (1 − mean(R, G, B) / 255) · 0.5
    binary    → seed = 0.5 if G == 0 else 0.0
"""

import logging
import math
from typing import Optional, Tuple

import numpy as np
import torch
import torch.nn.functional as F

from src.utils import color as color_utils, torch_utils
from src.utils.validators import PostProcessConfig

logger = logging.getLogger(__name__)

SEED_CONCENTRATION = 0.5


def box_blur(pixels: np.ndarray, radius: float) -> np.ndarray:
    """Software box blur with clamped edges.

    Parameters
    ----------
    pixels : np.ndarray
        (H, W, 4) uint8
    radius : float
        Blur radius in px; r = ceil(radius)

    Returns
    -------
    np.ndarray
        Blurred (H, W, 4) uint8 (round half to even)
    """
    r = int(math.ceil(radius))
    if r <= 0:
        return pixels.copy()
    h, w = pixels.shape[:2]
    k = 2 * r + 1

    padded = np.pad(pixels.astype(np.float64), ((r, r), (r, r), (0, 0)), mode='edge')
    # Integral image with a leading zero row/column
    integral = np.zeros((h + 2 * r + 1, w + 2 * r + 1, pixels.shape[2]), dtype=np.float64)
    integral[1:, 1:] = padded.cumsum(axis=0).cumsum(axis=1)

    window = (
        integral[k:k + h, k:k + w]
        - integral[0:h, k:k + w]
        - integral[k:k + h, 0:w]
        + integral[0:h, 0:w]
    )
    return np.clip(np.rint(window / (k * k)), 0, 255).astype(np.uint8)


def _gaussian_kernel_1d(sigma: float, device: torch.device) -> torch.Tensor:
    half = max(1, int(math.ceil(3.0 * sigma)))
    x = torch.arange(-half, half + 1, dtype=torch.float32, device=device)
    kernel = torch.exp(-0.5 * (x / sigma) ** 2)
    return kernel / kernel.sum()


class AcceleratedBlur:
    """Gaussian blur on a torch device.

    Parameters
    ----------
    device : str
        Preferred device string, e.g. "cuda", "cuda:1", "mps" or "cpu"
    enabled : bool
        False forces the software path
    """

    def __init__(self, device: str = "cuda", enabled: bool = True):
        self.preferred = device
        self.device = torch_utils.resolve_device(device) if enabled else None
        if enabled and self.device is None:
            logger.debug(f"Accelerated blur unavailable on '{device}', software blur will be used")

    @property
    def available(self) -> bool:
        return self.device is not None

    @torch.no_grad()
    def apply(self, pixels: np.ndarray, radius: float) -> np.ndarray:
        """Blur (H, W, 4) uint8 with sigma = radius; returns uint8."""
        if self.device is None:
            raise RuntimeError(f"Accelerated blur device '{self.preferred}' is not available")
        if radius <= 0:
            return pixels.copy()

        x = torch_utils.to_tensor_hwc(pixels, self.device)          # (H, W, C)
        x = x.permute(2, 0, 1).unsqueeze(0)                          # (1, C, H, W)
        channels = x.shape[1]

        kernel = _gaussian_kernel_1d(float(radius), self.device)
        half = (kernel.numel() - 1) // 2
        kx = kernel.view(1, 1, 1, -1).repeat(channels, 1, 1, 1)
        ky = kernel.view(1, 1, -1, 1).repeat(channels, 1, 1, 1)

        x = F.pad(x, (half, half, 0, 0), mode='replicate')
        x = F.conv2d(x, kx, groups=channels)
        x = F.pad(x, (0, 0, half, half), mode='replicate')
        x = F.conv2d(x, ky, groups=channels)

        out = x.squeeze(0).permute(1, 2, 0)
        out = torch.round(out).clamp_(0, 255).to(torch.uint8)
        return torch_utils.to_numpy_hwc(out)


def resolve_grayscale(use_grayscale: bool, blur_radius: float) -> bool:
    """Blurred rasters always use the continuous mapping."""
    return bool(use_grayscale or blur_radius > 0)


def concentration_channel(pixels: np.ndarray, grayscale: bool) -> np.ndarray:
    """Seed concentration (channel 1) from RGBA, float32 (H, W), raster order."""
    if grayscale:
        mean = color_utils.brightness_mean(pixels)
        return ((1.0 - mean / 255.0) * SEED_CONCENTRATION).astype(np.float32)
    return np.where(pixels[..., 1] == 0, SEED_CONCENTRATION, 0.0).astype(np.float32)


class PostProcessor:
    """Blur (optional) then map the raster to the seed channel."""

    def __init__(self, cfg: PostProcessConfig, accelerated: Optional[AcceleratedBlur] = None):
        self.cfg = cfg
        if accelerated is None and cfg.accelerated_blur.enabled:
            accelerated = AcceleratedBlur(cfg.accelerated_blur.device)
        self.accelerated = accelerated

    @property
    def grayscale(self) -> bool:
        return resolve_grayscale(self.cfg.use_grayscale, self.cfg.blur_radius)

    def blur(self, pixels: np.ndarray) -> Tuple[np.ndarray, str]:
        """Blurred copy of ``pixels`` and the strategy name used."""
        radius = self.cfg.blur_radius
        if radius <= 0:
            return pixels, 'none'
        if self.accelerated is not None and self.accelerated.available:
            return self.accelerated.apply(pixels, radius), 'accelerated'
        logger.debug(f"Software box blur, radius={radius}")
        return box_blur(pixels, radius), 'software'

    def process(self, pixels: np.ndarray) -> Tuple[np.ndarray, np.ndarray, str]:
        """Returns (post-processed RGBA, seed channel, blur strategy)."""
        blurred, strategy = self.blur(pixels)
        return blurred, concentration_channel(blurred, self.grayscale), strategy
