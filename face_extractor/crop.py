"""
Crop geometry for accepted faces.

Responsibility:
    Expand a face bounding box by a padding fraction on every side and
    clip the result to the source image, producing the region that is
    written out as a face crop.

Geometry:
    pad_x = box.width * padding_fraction
    pad_y = box.height * padding_fraction

    Fractional edges round outward (left/top floor, right/bottom ceil).
    Each edge is then clipped to the image on its own, so a box near the
    border loses padding only on that side; the opposite edge never moves.

Non-goals:
    - No pixel access or file writing.
    - No aspect-ratio squaring or resizing of the crop.
"""

import math

from face_extractor.detection import BoundingBox, CropRectangle, ImageDimensions
from face_extractor.errors import DegenerateCropError

DEFAULT_PADDING_FRACTION = 0.2

# Decimal places kept before rounding edges outward; absorbs float noise
# such as 30 * 0.1 == 3.0000000000000004.
_EDGE_PRECISION = 6


def _snap(value: float) -> float:
    return round(value, _EDGE_PRECISION)


def compute_crop(
    box: BoundingBox,
    image_dims: ImageDimensions,
    padding_fraction: float = DEFAULT_PADDING_FRACTION,
) -> CropRectangle:
    """Compute the padded, bounds-clipped crop rectangle for a face.

    Args:
        box: Face bounding box in source-image pixels.
        image_dims: Dimensions of the source image.
        padding_fraction: Padding on each side as a fraction of the box
                          width (horizontal) and height (vertical).

    Returns:
        A CropRectangle fully contained in [0, width) x [0, height).

    Raises:
        DegenerateCropError: If the clipped rectangle has no area.
    """
    pad_x = box.width * padding_fraction
    pad_y = box.height * padding_fraction

    left = math.floor(_snap(box.x - pad_x))
    top = math.floor(_snap(box.y - pad_y))
    right = math.ceil(_snap(box.x + box.width + pad_x))
    bottom = math.ceil(_snap(box.y + box.height + pad_y))

    # Clip each edge independently
    left = max(0, left)
    top = max(0, top)
    right = min(image_dims.width, right)
    bottom = min(image_dims.height, bottom)

    width = right - left
    height = bottom - top
    if width <= 0 or height <= 0:
        raise DegenerateCropError(
            f"Crop for box {box} is empty after clipping to "
            f"{image_dims.width}x{image_dims.height} image "
            f"(got {width}x{height})."
        )

    return CropRectangle(x=left, y=top, width=width, height=height)
