"""
Exception hierarchy for the face extraction pipeline.

Failure scopes:
    - ConfigError is fatal at startup; the run never begins.
    - DecodeError, ModelError and WriteError are per-image. The batch
      aggregator records them and moves on to the next image.
    - DegenerateCropError is per-detection. Only that detection is skipped.

Nothing in this package retries; every failure is terminal for its own
unit of work only.
"""


class FaceExtractorError(Exception):
    """Base class for all errors raised by this package."""


class ConfigError(FaceExtractorError, ValueError):
    """Invalid configuration value (e.g. a min bound greater than its max)."""


class DecodeError(FaceExtractorError):
    """An image file could not be read or decoded."""

    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"{message}: {path}")
        self.path = path


class ModelError(FaceExtractorError):
    """The face detector failed to run on an image."""


class WriteError(FaceExtractorError):
    """A face crop could not be written to disk."""

    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"{message}: {path}")
        self.path = path


class DegenerateCropError(FaceExtractorError):
    """The clipped crop rectangle has no area."""
