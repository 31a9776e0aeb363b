"""
Detection data transfer objects.

This module defines the fixed-shape records that flow through the
extraction pipeline:

    BoundingBox     → axis-aligned box in source-image pixels (x, y, w, h)
    RawDetection    → one detector hit: a box plus a confidence score
    ImageDimensions → width/height of a decoded source image
    CropRectangle   → padded, bounds-clipped region to write out

All of them are frozen containers with no behavior beyond data access.
Whatever shape the underlying detector returns is normalized into these
types by the detector adapter, so the filter and crop code never sees
partial or malformed records.

Non-goals:
    - No rendering logic.
    - No file I/O.
    - No acceptance or padding logic (see quality_filter and crop).
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class BoundingBox:
    """Axis-aligned bounding box in absolute pixel coordinates.

    Attributes:
        x: Left edge (inclusive).
        y: Top edge (inclusive).
        width: Box width in pixels.
        height: Box height in pixels.
    """

    x: int
    y: int
    width: int
    height: int

    @property
    def area(self) -> int:
        """Box area in pixels."""
        return self.width * self.height

    def to_dict(self) -> dict:
        """Return a plain dict suitable for JSON serialization."""
        return {
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
        }


@dataclass(frozen=True, slots=True)
class RawDetection:
    """A single detected face with bounding box and confidence score.

    The confidence scale depends on the detector backend: the Haar
    cascade reports open-ended level weights, the SSD network reports
    probabilities in [0.0, 1.0].
    """

    bbox: BoundingBox
    confidence: float

    def to_dict(self) -> dict:
        """Return a plain dict suitable for JSON serialization."""
        return {
            **self.bbox.to_dict(),
            "confidence": round(self.confidence, 4),
        }


@dataclass(frozen=True, slots=True)
class ImageDimensions:
    """Width and height of a decoded source image, in pixels."""

    width: int
    height: int

    @property
    def area(self) -> int:
        return self.width * self.height

    @classmethod
    def of(cls, pixels) -> "ImageDimensions":
        """Read dimensions from an (H, W[, C]) numpy array."""
        h, w = pixels.shape[:2]
        return cls(width=int(w), height=int(h))


@dataclass(frozen=True, slots=True)
class CropRectangle:
    """Region of the source image written out as a face crop.

    Always lies within [0, image_width) x [0, image_height).
    """

    x: int
    y: int
    width: int
    height: int

    @property
    def x2(self) -> int:
        """Exclusive right edge."""
        return self.x + self.width

    @property
    def y2(self) -> int:
        """Exclusive bottom edge."""
        return self.y + self.height

    def to_dict(self) -> dict:
        return {
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
        }
