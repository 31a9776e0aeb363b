"""
Tests for the crop geometry calculator.
"""

import pytest

from face_extractor.crop import compute_crop
from face_extractor.detection import BoundingBox, CropRectangle, ImageDimensions
from face_extractor.errors import DegenerateCropError

IMAGE = ImageDimensions(width=400, height=400)


def test_padding_inside_bounds():
    crop = compute_crop(BoundingBox(100, 100, 80, 80), IMAGE, 0.2)
    assert crop == CropRectangle(x=84, y=84, width=112, height=112)


def test_default_padding_is_twenty_percent():
    assert compute_crop(BoundingBox(100, 100, 80, 80), IMAGE) == CropRectangle(84, 84, 112, 112)


def test_zero_padding_is_identity():
    crop = compute_crop(BoundingBox(10, 20, 50, 60), IMAGE, 0.0)
    assert crop == CropRectangle(x=10, y=20, width=50, height=60)


def test_clipping_at_top_left_keeps_far_edges():
    """Box at the origin loses padding only on the clipped sides."""
    crop = compute_crop(BoundingBox(0, 0, 100, 100), IMAGE, 0.2)
    # Unclipped right/bottom edge would be 0 + 100 + 20 = 120
    assert crop == CropRectangle(x=0, y=0, width=120, height=120)


def test_clipping_at_bottom_right_keeps_origin():
    crop = compute_crop(BoundingBox(300, 320, 100, 80), IMAGE, 0.2)
    # Origin 300 - 20 = 280, 320 - 16 = 304; far edges clipped to 400
    assert crop == CropRectangle(x=280, y=304, width=120, height=96)


def test_fractional_padding_rounds_outward():
    crop = compute_crop(BoundingBox(100, 100, 30, 30), IMAGE, 0.1)
    # pad = 3.0 (float noise must not add a pixel)
    assert crop == CropRectangle(x=97, y=97, width=36, height=36)

    crop = compute_crop(BoundingBox(100, 100, 25, 25), IMAGE, 0.1)
    # pad = 2.5 → left floor(97.5)=97, right ceil(127.5)=128
    assert crop == CropRectangle(x=97, y=97, width=31, height=31)


@pytest.mark.parametrize("box", [
    BoundingBox(0, 0, 400, 400),
    BoundingBox(390, 390, 10, 10),
    BoundingBox(0, 350, 60, 50),
    BoundingBox(123, 7, 211, 377),
])
@pytest.mark.parametrize("padding", [0.0, 0.2, 0.5, 2.0])
def test_crop_always_within_image(box, padding):
    crop = compute_crop(box, IMAGE, padding)
    assert crop.x >= 0 and crop.y >= 0
    assert crop.x2 <= IMAGE.width and crop.y2 <= IMAGE.height
    assert crop.width > 0 and crop.height > 0


def test_zero_size_image_is_degenerate():
    with pytest.raises(DegenerateCropError):
        compute_crop(BoundingBox(0, 0, 10, 10), ImageDimensions(0, 0), 0.2)


def test_box_outside_image_is_degenerate():
    with pytest.raises(DegenerateCropError):
        compute_crop(BoundingBox(500, 500, 10, 10), IMAGE, 0.0)


def test_compute_crop_is_pure():
    box = BoundingBox(37, 41, 77, 91)
    assert compute_crop(box, IMAGE, 0.25) == compute_crop(box, IMAGE, 0.25)
