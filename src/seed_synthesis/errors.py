"""Exceptions raised by seed synthesis.

Callers that drive the solver (SeedPipeline) catch ``SeedSynthesisError`` and
report it in a SeedOutcome; everything else (config validation, bad array
shapes) surfaces as ValueError/TypeError.
"""


class SeedSynthesisError(Exception):
    """Base class for recoverable synthesis failures."""


class MissingImageSourceError(SeedSynthesisError):
    """Image modality selected but no image has been provided."""

    def __init__(self, message: str = "Please upload an image first"):
        super().__init__(message)


class ImageLoadError(SeedSynthesisError):
    """The image source could not be read or decoded."""
