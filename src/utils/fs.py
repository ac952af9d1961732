"""Atomic filesystem operations for previews, manifests and YAML configs.

Provides:
    - Atomic writes: tmp file → fsync → rename (no partial reads by viewers)
    - Image saving from numpy/torch buffers via PIL
    - YAML load/dump (PyYAML safe loader)
    - Directory creation with exist_ok semantics

All paths use pathlib.Path.

Usage:
    from src.utils import fs
    cfg = fs.load_yaml("configs/seed.v1.yaml")
    fs.atomic_save_image(seed_u8, out_dir / "seed.png")
    fs.atomic_yaml_dump(manifest, out_dir / "manifest.yaml")

Note: named `fs` rather than `io` to avoid shadowing the stdlib module.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import numpy as np
import torch
import yaml
from PIL import Image


def ensure_dir(p: Union[str, Path]) -> Path:
    """Create directory (and parents) if needed and return it as a Path."""
    p = Path(p)
    p.mkdir(parents=True, exist_ok=True)
    return p


def atomic_write_bytes(
    path: Union[str, Path],
    data: bytes,
    tmp_suffix: str = ".tmp"
) -> None:
    """Write bytes to file atomically (tmp → fsync → rename).

    Parameters
    ----------
    path : Union[str, Path]
        Target file path
    data : bytes
        Data to write
    tmp_suffix : str
        Temporary file suffix, default ".tmp"
    """
    path = Path(path)
    ensure_dir(path.parent)
    tmp_path = path.with_suffix(path.suffix + tmp_suffix)

    try:
        with open(tmp_path, 'wb') as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        tmp_path.replace(path)
    except Exception as e:
        if tmp_path.exists():
            tmp_path.unlink()
        raise RuntimeError(f"Failed to write {path} atomically: {e}") from e


def to_uint8_image(img: Union[np.ndarray, torch.Tensor]) -> np.ndarray:
    """Convert an image buffer to a numpy uint8 array PIL can save.

    Parameters
    ----------
    img : Union[np.ndarray, torch.Tensor]
        - numpy: (H, W), (H, W, 3) or (H, W, 4); float in [0,1] or uint8
        - torch: (C, H, W) or (H, W); float in [0,1] or uint8

    Returns
    -------
    np.ndarray
        uint8 array, (H, W) or (H, W, C)
    """
    if isinstance(img, torch.Tensor):
        img = img.detach().cpu()
        if img.ndim == 3 and img.shape[0] in (1, 3, 4):
            img = img.permute(1, 2, 0)
        img = img.numpy()

    img = np.asarray(img)
    if img.dtype != np.uint8:
        if np.issubdtype(img.dtype, np.floating):
            img = np.rint(np.clip(img, 0.0, 1.0) * 255.0)
        img = np.clip(img, 0, 255).astype(np.uint8)

    if img.ndim == 3 and img.shape[2] == 1:
        img = img[:, :, 0]
    return img


def atomic_save_image(
    img: Union[np.ndarray, torch.Tensor],
    path: Union[str, Path],
    pil_kwargs: Optional[Dict[str, Any]] = None
) -> None:
    """Save an image atomically; the extension selects the format."""
    path = Path(path)
    ensure_dir(path.parent)
    pil_img = Image.fromarray(to_uint8_image(img))

    # Keep the real extension last so PIL can infer the format
    tmp_path = path.with_name(path.stem + ".tmp" + path.suffix)
    try:
        pil_img.save(tmp_path, **(pil_kwargs or {}))
        tmp_path.replace(path)
    except Exception as e:
        if tmp_path.exists():
            tmp_path.unlink()
        raise RuntimeError(f"Failed to save image {path} atomically: {e}") from e


def atomic_yaml_dump(obj: Any, path: Union[str, Path]) -> None:
    """Serialize ``obj`` with yaml.safe_dump and write it atomically."""
    yaml_str = yaml.safe_dump(
        obj,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True
    )
    atomic_write_bytes(path, yaml_str.encode('utf-8'))


def load_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    """Load a YAML file safely.

    Raises
    ------
    FileNotFoundError
        If file doesn't exist
    yaml.YAMLError
        If YAML parsing fails
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"YAML file not found: {path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise yaml.YAMLError(f"Failed to parse YAML file {path}: {e}") from e
    return data if data is not None else {}


def read_bytes(path: Union[str, Path]) -> bytes:
    """Read a whole binary file (font files, uploaded images)."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    return path.read_bytes()


def safe_remove(path: Union[str, Path]) -> bool:
    """Remove a file if it exists; returns True when something was removed."""
    path = Path(path)
    if path.exists():
        path.unlink()
        return True
    return False
