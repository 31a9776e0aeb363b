"""
Quality filtering for detected faces.

Responsibility:
    Decide whether a single raw detection is good enough to be cropped
    and saved. Rules are applied in a fixed order and the first failing
    rule determines the rejection reason:

        1. confidence >= confidence_threshold        → LOW_CONFIDENCE
        2. width and height >= min_face_size         → TOO_SMALL
        3. box area / image area within bounds       → AREA_OUT_OF_RANGE
        4. width / height within aspect bounds       → ASPECT_RATIO_OUT_OF_RANGE

    All bounds are inclusive.

Non-goals:
    - No detection, cropping, or I/O.
    - No cross-detection logic (e.g. preferring the largest face).

The filter is pure: the same inputs always yield the same decision.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from face_extractor.config import FilterConfig
from face_extractor.detection import ImageDimensions, RawDetection


class RejectReason(str, Enum):
    """Why a detection was rejected."""

    LOW_CONFIDENCE = "low_confidence"
    TOO_SMALL = "too_small"
    AREA_OUT_OF_RANGE = "area_out_of_range"
    ASPECT_RATIO_OUT_OF_RANGE = "aspect_ratio_out_of_range"


@dataclass(frozen=True, slots=True)
class FilterDecision:
    """Outcome of evaluating one detection.

    Attributes:
        accepted: True if every rule passed.
        reason: The first failing rule, or None when accepted.
    """

    accepted: bool
    reason: Optional[RejectReason] = None

    @classmethod
    def accept(cls) -> "FilterDecision":
        return cls(accepted=True)

    @classmethod
    def reject(cls, reason: RejectReason) -> "FilterDecision":
        return cls(accepted=False, reason=reason)


def evaluate(
    detection: RawDetection,
    image_dims: ImageDimensions,
    config: FilterConfig,
) -> FilterDecision:
    """Evaluate a detection against the acceptance criteria.

    Args:
        detection: Raw detector output for one face.
        image_dims: Dimensions of the image the detection came from.
        config: Acceptance criteria.

    Returns:
        FilterDecision.accept() if all rules pass, otherwise a rejection
        carrying the first failing rule.
    """
    box = detection.bbox

    # Negated so a NaN score counts as low confidence
    if not (detection.confidence >= config.confidence_threshold):
        return FilterDecision.reject(RejectReason.LOW_CONFIDENCE)

    if box.width < config.min_face_size or box.height < config.min_face_size:
        return FilterDecision.reject(RejectReason.TOO_SMALL)

    # A zero-area image cannot hold a face of any fraction.
    image_area = image_dims.area
    if image_area <= 0:
        return FilterDecision.reject(RejectReason.AREA_OUT_OF_RANGE)

    area_fraction = box.area / image_area
    if not (config.min_area_fraction <= area_fraction <= config.max_area_fraction):
        return FilterDecision.reject(RejectReason.AREA_OUT_OF_RANGE)

    # Only reachable with min_face_size == 0 and a flat box.
    if box.height <= 0:
        return FilterDecision.reject(RejectReason.ASPECT_RATIO_OUT_OF_RANGE)

    aspect_ratio = box.width / box.height
    if not (config.min_aspect_ratio <= aspect_ratio <= config.max_aspect_ratio):
        return FilterDecision.reject(RejectReason.ASPECT_RATIO_OUT_OF_RANGE)

    return FilterDecision.accept()


class QualityFilter:
    """Acceptance criteria bound to a fixed FilterConfig.

    Usage:
        qf = QualityFilter(config.filter)
        decision = qf.evaluate(detection, ImageDimensions.of(frame))
        if not decision.accepted:
            logger.debug("Rejected: %s", decision.reason.value)
    """

    def __init__(self, config: FilterConfig) -> None:
        self._config = config

    @property
    def config(self) -> FilterConfig:
        """Return the active criteria (read-only)."""
        return self._config

    def evaluate(
        self,
        detection: RawDetection,
        image_dims: ImageDimensions,
    ) -> FilterDecision:
        return evaluate(detection, image_dims, self._config)
