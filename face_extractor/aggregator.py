"""
Batch aggregation for the face extraction pipeline.

Responsibility:
    Drive the per-image pipeline (decode → detect → filter → crop → save)
    sequentially over an ordered list of image paths, keep run-wide
    statistics, and stop the whole run as soon as the target number of
    faces has been saved.

State machine:
    Running → per image {Decoding → Filtering → Cropping → Saving}
            → Running | Halted (TARGET_REACHED) | Completed (LIST_EXHAUSTED)

    The per-image step returns an ImageStatus; the outer loop inspects it
    after every image. The target is checked after every saved face, so
    the remaining detections of the current image are never evaluated
    once it is reached.

Failure handling (no retries anywhere):
    - DecodeError / ModelError → image skipped (images_skipped).
    - WriteError → rest of the image abandoned (images_errored).
    - DegenerateCropError → only that detection skipped (crops_degenerate).

Counting convention:
    images_processed counts images that were decoded and walked to the
    end of their detections, or to the face that reached the target.
    images_attempted = images_processed + images_skipped + images_errored.

Every accepted face counts toward the target individually, so a single
image with many faces can consume most of the remaining quota.

Non-goals:
    - No parallelism. Each image is fully handled before the next.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, List, Optional, Tuple

import numpy as np

from face_extractor.config import FilterConfig
from face_extractor.crop import DEFAULT_PADDING_FRACTION, compute_crop
from face_extractor.detection import ImageDimensions
from face_extractor.errors import (
    DecodeError,
    DegenerateCropError,
    ModelError,
    WriteError,
)
from face_extractor.input_handler import decode_image
from face_extractor.quality_filter import RejectReason, evaluate

logger = logging.getLogger(__name__)

Decoder = Callable[[str], Tuple[np.ndarray, ImageDimensions]]


class RunOutcome(str, Enum):
    """How a run ended."""

    TARGET_REACHED = "target_reached"
    LIST_EXHAUSTED = "list_exhausted"


class ImageStatus(Enum):
    """Signal returned by the per-image step to the batch loop."""

    CONTINUE = "continue"
    HALT = "halt"


@dataclass
class RunStats:
    """Run-wide counters, owned by a single BatchAggregator.run() call."""

    images_processed: int = 0
    images_skipped: int = 0
    images_errored: int = 0
    faces_accepted: int = 0
    faces_rejected: int = 0
    crops_degenerate: int = 0
    rejections: Counter = field(default_factory=Counter)
    errors: List[Tuple[str, str]] = field(default_factory=list)
    outcome: Optional[RunOutcome] = None

    @property
    def images_attempted(self) -> int:
        return self.images_processed + self.images_skipped + self.images_errored

    def record_error(self, path: str, error: Exception) -> None:
        self.errors.append((path, str(error)))

    def record_rejection(self, reason: RejectReason) -> None:
        self.faces_rejected += 1
        self.rejections[reason] += 1

    def to_dict(self) -> dict:
        """Return a plain dict suitable for JSON serialization."""
        return {
            "outcome": self.outcome.value if self.outcome else None,
            "images_attempted": self.images_attempted,
            "images_processed": self.images_processed,
            "images_skipped": self.images_skipped,
            "images_errored": self.images_errored,
            "faces_accepted": self.faces_accepted,
            "faces_rejected": self.faces_rejected,
            "crops_degenerate": self.crops_degenerate,
            "rejections": {r.value: n for r, n in sorted(
                self.rejections.items(), key=lambda item: item[0].value
            )},
            "errors": [{"path": p, "error": e} for p, e in self.errors],
        }


class BatchAggregator:
    """Sequential batch driver with a run-wide face target.

    Collaborators are injected so the stopping and accounting policy can
    be exercised without OpenCV models or real files:

        detector: object with detect(frame) -> list[RawDetection]
        writer:   object with save(frame, crop, source, confidence, index)
        decoder:  callable path -> (frame, ImageDimensions)

    Usage:
        aggregator = BatchAggregator(
            detector=Detector(config),
            writer=OutputHandler(config.output),
            filter_config=config.filter,
            target_faces=config.output.target_faces,
            padding_fraction=config.crop.padding_fraction,
        )
        stats = aggregator.run(input_handler)
    """

    def __init__(
        self,
        detector,
        writer,
        filter_config: FilterConfig,
        target_faces: int,
        padding_fraction: float = DEFAULT_PADDING_FRACTION,
        decoder: Decoder = decode_image,
        progress_interval: int = 25,
    ) -> None:
        if target_faces <= 0:
            raise ValueError(f"target_faces must be positive, got {target_faces}.")

        self._detector = detector
        self._writer = writer
        self._filter_config = filter_config
        self._target_faces = target_faces
        self._padding_fraction = padding_fraction
        self._decode = decoder
        self._progress_interval = progress_interval

    @property
    def target_faces(self) -> int:
        return self._target_faces

    def run(self, paths: Iterable[str]) -> RunStats:
        """Process images in order until the list ends or the target is hit.

        Always returns a RunStats, even if every image failed.
        """
        stats = RunStats()
        paths = list(paths)
        total = len(paths)
        logger.info("Starting batch: %d images, target %d faces.", total, self._target_faces)

        for position, path in enumerate(paths, start=1):
            logger.debug("[%d/%d] Processing: %s", position, total, path)
            status = self.process_image(path, stats)

            if status is ImageStatus.HALT:
                stats.outcome = RunOutcome.TARGET_REACHED
                logger.info(
                    "Target reached! Extracted %d faces after %d/%d images.",
                    stats.faces_accepted, position, total,
                )
                break

            if position % self._progress_interval == 0:
                logger.info(
                    "Processed %d/%d images, %d faces so far...",
                    position, total, stats.faces_accepted,
                )
        else:
            stats.outcome = RunOutcome.LIST_EXHAUSTED

        log_summary(stats)
        return stats

    def process_image(self, path: str, stats: RunStats) -> ImageStatus:
        """Run one image through decode → detect → filter → crop → save.

        Args:
            path: Image file path.
            stats: Run statistics, updated in place.

        Returns:
            ImageStatus.HALT once the target has been reached,
            ImageStatus.CONTINUE otherwise.
        """
        try:
            frame, dims = self._decode(path)
        except DecodeError as e:
            logger.warning("Skipping unreadable image: %s", e)
            stats.images_skipped += 1
            stats.record_error(path, e)
            return ImageStatus.CONTINUE

        try:
            detections = self._detector.detect(frame)
        except ModelError as e:
            logger.warning("Skipping image, detector failed on %s: %s", path, e)
            stats.images_skipped += 1
            stats.record_error(path, e)
            return ImageStatus.CONTINUE

        extracted = 0
        for detection in detections:
            decision = evaluate(detection, dims, self._filter_config)
            if not decision.accepted:
                logger.debug(
                    "Rejected %s (confidence=%.2f) in %s: %s",
                    detection.bbox, detection.confidence, path, decision.reason.value,
                )
                stats.record_rejection(decision.reason)
                continue

            try:
                crop = compute_crop(detection.bbox, dims, self._padding_fraction)
            except DegenerateCropError as e:
                logger.warning("Skipping detection in %s: %s", path, e)
                stats.crops_degenerate += 1
                continue

            try:
                self._writer.save(
                    frame, crop, path, detection.confidence, stats.faces_accepted + 1
                )
            except WriteError as e:
                logger.warning("Abandoning image after write failure: %s", e)
                stats.images_errored += 1
                stats.record_error(path, e)
                return ImageStatus.CONTINUE

            stats.faces_accepted += 1
            extracted += 1

            if stats.faces_accepted >= self._target_faces:
                stats.images_processed += 1
                return ImageStatus.HALT

        stats.images_processed += 1
        if extracted:
            logger.info("Extracted %d faces from %s", extracted, path)
        return ImageStatus.CONTINUE


def log_summary(stats: RunStats) -> None:
    """Log the final run summary."""
    logger.info(
        "Processing complete (%s). Images processed: %d, skipped: %d, errored: %d. "
        "Faces extracted: %d, rejected: %d, degenerate crops: %d.",
        stats.outcome.value if stats.outcome else "unknown",
        stats.images_processed,
        stats.images_skipped,
        stats.images_errored,
        stats.faces_accepted,
        stats.faces_rejected,
        stats.crops_degenerate,
    )
    for reason, count in sorted(stats.rejections.items(), key=lambda item: item[0].value):
        logger.info("  rejected as %s: %d", reason.value, count)
