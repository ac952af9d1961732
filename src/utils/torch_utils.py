"""PyTorch ergonomics: device detection and numpy ↔ tensor transfer.

Provides:
    - device_available(): feature detection for an accelerator string
      ("cuda", "cuda:1", "mps", "cpu")
    - resolve_device(): torch.device for a preferred accelerator, or None
    - to_tensor_hwc() / to_numpy_hwc(): (H, W, C) buffers across the boundary

The accelerated blur and the render targets use these helpers; nothing in
this module initializes CUDA eagerly.
"""

import logging
from typing import Optional

import numpy as np
import torch

logger = logging.getLogger(__name__)


def device_available(device: str) -> bool:
    """True when ``device`` can be used in this process."""
    kind = device.split(':', 1)[0].lower()
    if kind == 'cpu':
        return True
    if kind == 'cuda':
        if not torch.cuda.is_available():
            return False
        if ':' in device:
            index = int(device.split(':', 1)[1])
            return index < torch.cuda.device_count()
        return True
    if kind == 'mps':
        mps = getattr(torch.backends, 'mps', None)
        return bool(mps is not None and mps.is_available())
    return False


def resolve_device(preferred: str) -> Optional[torch.device]:
    """Return ``torch.device(preferred)`` if available, else None."""
    try:
        if device_available(preferred):
            return torch.device(preferred)
    except ValueError:
        logger.warning(f"Unrecognized device string '{preferred}'")
    return None


def to_tensor_hwc(array: np.ndarray, device: torch.device, dtype=torch.float32) -> torch.Tensor:
    """Copy an (H, W, C) numpy array to ``device`` as ``dtype``."""
    return torch.from_numpy(np.ascontiguousarray(array)).to(device=device, dtype=dtype)


def to_numpy_hwc(tensor: torch.Tensor) -> np.ndarray:
    """Detach and copy a tensor back to host memory."""
    return tensor.detach().cpu().numpy()
