"""Cross-cutting utilities (lowest dependency layer).

This package provides shared primitives for:
    - Config validation and the seed tagged union (validators)
    - Affine transforms and Bézier flattening (geometry)
    - RGBA brightness, luma and compositing (color)
    - Atomic I/O and YAML (fs)
    - Torch device detection (torch_utils)
    - Unified logging (logging_config)

No module in utils/ may import from upper layers (seed_synthesis, boundary,
render_targets).

Convenience imports:
    from src.utils import fs, geometry, color, validators
    from src.utils.logging_config import setup_logging, get_logger
"""

from . import color
from . import fs
from . import geometry
from . import logging_config
from . import torch_utils
from . import validators

from .logging_config import get_logger, push_context, setup_logging

__all__ = [
    # Modules
    'color',
    'fs',
    'geometry',
    'logging_config',
    'torch_utils',
    'validators',
    # Direct exports
    'setup_logging',
    'get_logger',
    'push_context',
]
