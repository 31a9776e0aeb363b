"""
Postprocessing for the face detectors.

Responsibility:
    Normalize whatever each detector returns into fixed-shape
    RawDetection records: coordinate un-normalization, boundary
    clamping, dropping zero-size boxes and noise rows.

    Acceptance thresholds are NOT applied here; every surviving hit
    is handed to the quality filter.

Non-goals:
    - No drawing, saving, or display logic.
    - No model loading or inference.

Hard-coded:
    - SSD output tensor layout: [1, 1, N, 7] where each row is
      [batch_id, class_id, confidence, x1, y1, x2, y2] with
      coordinates normalized to [0, 1].
    - Cascade output: parallel arrays of (x, y, w, h) rects and level
      weights from detectMultiScale3(outputRejectLevels=True).
"""

from typing import List, Sequence

import numpy as np

from face_extractor.detection import BoundingBox, RawDetection


def _clamped_box(
    x1: int, y1: int, x2: int, y2: int, frame_width: int, frame_height: int
) -> BoundingBox:
    """Clamp corner coordinates to the frame and convert to (x, y, w, h)."""
    x1 = max(0, min(x1, frame_width))
    y1 = max(0, min(y1, frame_height))
    x2 = max(0, min(x2, frame_width))
    y2 = max(0, min(y2, frame_height))
    return BoundingBox(x=x1, y=y1, width=x2 - x1, height=y2 - y1)


def _by_confidence(detections: List[RawDetection]) -> List[RawDetection]:
    # Stable sort: ties keep detector order
    return sorted(detections, key=lambda d: d.confidence, reverse=True)


def postprocess(
    network_output: np.ndarray,
    frame_width: int,
    frame_height: int,
    score_floor: float,
) -> List[RawDetection]:
    """Parse raw SSD output into a list of RawDetection objects.

    Args:
        network_output: Raw output from net.forward(), expected shape
                        (1, 1, N, 7).
        frame_width: Original frame width in pixels (for coordinate mapping).
        frame_height: Original frame height in pixels (for coordinate mapping).
        score_floor: Rows scoring below this are network noise and dropped.

    Returns:
        List of RawDetection objects, sorted by confidence (descending).
        Empty list if nothing clears the floor.
    """
    detections: List[RawDetection] = []

    # SSD output shape: (1, 1, num_detections, 7)
    # Each detection: [batch_id, class_id, confidence, x1, y1, x2, y2]
    raw = network_output[0, 0]  # Shape: (N, 7)

    for i in range(raw.shape[0]):
        confidence = float(raw[i, 2])

        if confidence < score_floor:
            continue

        # Un-normalize coordinates from [0, 1] to absolute pixels
        box = _clamped_box(
            int(raw[i, 3] * frame_width),
            int(raw[i, 4] * frame_height),
            int(raw[i, 5] * frame_width),
            int(raw[i, 6] * frame_height),
            frame_width,
            frame_height,
        )

        # Skip degenerate boxes
        if box.width <= 0 or box.height <= 0:
            continue

        detections.append(RawDetection(bbox=box, confidence=confidence))

    return _by_confidence(detections)


def postprocess_cascade(
    rects: Sequence,
    level_weights: Sequence,
    frame_width: int,
    frame_height: int,
) -> List[RawDetection]:
    """Convert cascade rects and level weights into RawDetection objects.

    Args:
        rects: (x, y, w, h) rectangles from detectMultiScale3.
        level_weights: One score per rectangle.
        frame_width: Frame width in pixels.
        frame_height: Frame height in pixels.

    Returns:
        List of RawDetection objects, sorted by confidence (descending).
    """
    detections: List[RawDetection] = []

    weights = np.asarray(level_weights, dtype=np.float64).reshape(-1)
    for (x, y, w, h), score in zip(rects, weights):
        x, y, w, h = int(x), int(y), int(w), int(h)
        box = _clamped_box(x, y, x + w, y + h, frame_width, frame_height)
        if box.width <= 0 or box.height <= 0:
            continue
        detections.append(RawDetection(bbox=box, confidence=float(score)))

    return _by_confidence(detections)
