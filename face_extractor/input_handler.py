"""
Input handling for the face extraction pipeline.

Responsibility:
    Enumerate candidate image files under a source directory (or a
    single image file) and decode them into BGR frames.

Non-goals:
    - No detection, cropping, or output writing.
    - No retry on unreadable files.
    - No video or webcam sources.

Robustness:
    - Validates the source at initialization time.
    - Decode failures raise DecodeError for the caller to record and
      skip; one bad file never stops the listing.
"""

import logging
from pathlib import Path
from typing import Iterator, List, Tuple, Union

import cv2
import numpy as np

from face_extractor.detection import ImageDimensions
from face_extractor.errors import DecodeError

logger = logging.getLogger(__name__)

# Image extensions recognized by this handler
_IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".bmp", ".tiff", ".tif", ".webp"}


def is_image_file(path: Path) -> bool:
    """Return True if path is a regular file with a recognized extension."""
    return path.is_file() and path.suffix.lower() in _IMAGE_EXTENSIONS


def list_images(source: Union[str, Path], recursive: bool = True) -> List[str]:
    """List candidate image files, in sorted order.

    Args:
        source: Directory to scan, or a single image file.
        recursive: Also scan subdirectories.

    Returns:
        Sorted list of image file paths (possibly empty).

    Raises:
        FileNotFoundError: If source does not exist.
        ValueError: If source is a file without a recognized extension.
    """
    root = Path(source)

    if root.is_file():
        if root.suffix.lower() not in _IMAGE_EXTENSIONS:
            raise ValueError(
                f"Unrecognized file extension: '{root.suffix}' for source '{root}'. "
                f"Supported images: {sorted(_IMAGE_EXTENSIONS)}."
            )
        return [str(root)]

    if not root.is_dir():
        raise FileNotFoundError(
            f"Input source not found: '{root}'. "
            f"Provide a valid directory or image file."
        )

    candidates = root.rglob("*") if recursive else root.iterdir()
    return sorted(str(p) for p in candidates if is_image_file(p))


def decode_image(path: Union[str, Path]) -> Tuple[np.ndarray, ImageDimensions]:
    """Read and decode an image file into a BGR frame.

    np.fromfile + cv2.imdecode is used instead of cv2.imread so that
    non-ASCII paths decode on every platform.

    Args:
        path: Image file path.

    Returns:
        Tuple of (BGR frame with shape (H, W, 3), ImageDimensions).

    Raises:
        DecodeError: If the file cannot be read or is not a decodable image.
    """
    path = str(path)
    try:
        buf = np.fromfile(path, dtype=np.uint8)
    except OSError as e:
        raise DecodeError(path, f"Cannot read file ({e.strerror or e})") from e

    if buf.size == 0:
        raise DecodeError(path, "Empty file")

    try:
        frame = cv2.imdecode(buf, cv2.IMREAD_COLOR)
    except cv2.error as e:
        raise DecodeError(path, f"OpenCV decode failed ({e})") from e

    if frame is None or frame.size == 0:
        raise DecodeError(path, "Corrupt or unsupported image")

    return frame, ImageDimensions.of(frame)


class InputHandler:
    """Ordered listing of candidate images under a source.

    Usage:
        handler = InputHandler(source="path/to/images")
        for path in handler:
            frame, dims = decode_image(path)

    The listing is taken once at construction; files added later are
    not picked up.
    """

    def __init__(self, source: Union[str, Path], recursive: bool = True) -> None:
        """Initialize the input handler and validate the source.

        Raises:
            FileNotFoundError: If the source does not exist.
            ValueError: If the source is a file of an unsupported type.
        """
        self._source = str(source)
        self._paths = list_images(source, recursive=recursive)

        if not self._paths:
            logger.warning(
                "No image files found in: '%s'. Supported extensions: %s.",
                self._source, sorted(_IMAGE_EXTENSIONS),
            )
        logger.info(
            "InputHandler initialized: %d images in %s (recursive=%s)",
            len(self._paths), self._source, recursive,
        )

    @property
    def paths(self) -> List[str]:
        return list(self._paths)

    def __len__(self) -> int:
        return len(self._paths)

    def __iter__(self) -> Iterator[str]:
        return iter(self._paths)
