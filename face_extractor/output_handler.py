"""
Output handling for the face extraction pipeline.

Responsibility:
    Write face crops to the output directory and, on finalize, export
    a manifest of everything written (JSON and/or CSV).

Naming:
    {source_stem}_{index:04d}_{confidence*100:.0f}.jpg
    where index is the 1-based global face number of the run, so names
    never collide across source images.

Non-goals:
    - No detection or filtering logic.
    - No input acquisition.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Set

import cv2
import numpy as np

from face_extractor.config import OutputConfig, manifest_formats
from face_extractor.detection import CropRectangle
from face_extractor.errors import WriteError
from face_extractor.serializer import save_csv, save_json

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SavedCrop:
    """Record of one face crop written to disk."""

    index: int
    source: str
    output: str
    crop: CropRectangle
    confidence: float

    def to_dict(self) -> dict:
        """Return a flat dict suitable for JSON/CSV serialization."""
        return {
            "index": self.index,
            "source": self.source,
            "output": self.output,
            **self.crop.to_dict(),
            "confidence": round(self.confidence, 4),
        }


def crop_filename(source: str, index: int, confidence: float) -> str:
    """Build the output file name for the index-th face taken from source."""
    stem = Path(source).stem or "unknown"
    return f"{stem}_{index:04d}_{confidence * 100:.0f}.jpg"


class OutputHandler:
    """Writes face crops and the run manifest.

    Usage:
        handler = OutputHandler(config.output)
        saved = handler.save(frame, crop, source_path, confidence, index)
        ...
        handler.finalize(summary)  # Write manifest(s), if configured
    """

    def __init__(self, config: OutputConfig) -> None:
        """Initialize the output handler and create the output directory.

        Args:
            config: Output configuration (save path, JPEG quality, manifest).

        Raises:
            OSError: If the output directory cannot be created.
        """
        self._config = config
        self._save_path = Path(config.save_path)
        self._manifests: Set[str] = manifest_formats(config)
        self._saved: List[SavedCrop] = []

        self._save_path.mkdir(parents=True, exist_ok=True)

        logger.info(
            "OutputHandler initialized: save_path=%s, manifest=%s",
            self._save_path, sorted(self._manifests) or "none",
        )

    @property
    def save_path(self) -> Path:
        return self._save_path

    @property
    def saved(self) -> List[SavedCrop]:
        """Crops written so far, in write order."""
        return list(self._saved)

    def save(
        self,
        frame: np.ndarray,
        crop: CropRectangle,
        source: str,
        confidence: float,
        index: int,
    ) -> SavedCrop:
        """Encode the cropped region as JPEG and write it.

        Args:
            frame: Full BGR source frame.
            crop: Region to write; must lie inside the frame.
            source: Path of the source image (used for naming).
            confidence: Detector score of the face (used for naming).
            index: 1-based global face number.

        Returns:
            SavedCrop describing the written file.

        Raises:
            WriteError: If encoding or writing fails.
        """
        output_file = self._save_path / crop_filename(source, index, confidence)
        region = frame[crop.y:crop.y2, crop.x:crop.x2]

        try:
            ok, buf = cv2.imencode(
                ".jpg", region, [cv2.IMWRITE_JPEG_QUALITY, self._config.jpeg_quality]
            )
        except cv2.error as e:
            raise WriteError(str(output_file), f"JPEG encode failed ({e})") from e
        if not ok:
            raise WriteError(str(output_file), "JPEG encode failed")

        try:
            buf.tofile(str(output_file))
        except OSError as e:
            raise WriteError(str(output_file), f"Cannot write file ({e.strerror or e})") from e

        saved = SavedCrop(
            index=index,
            source=source,
            output=str(output_file),
            crop=crop,
            confidence=confidence,
        )
        self._saved.append(saved)
        logger.debug("Saved face %d to %s", index, output_file)
        return saved

    def finalize(self, summary: Optional[dict] = None) -> None:
        """Write configured manifest(s).

        Must be called after the run has finished.

        Args:
            summary: Run statistics to embed in the JSON manifest.
        """
        if "json" in self._manifests:
            save_json(self._saved, str(self._save_path / "manifest.json"), summary)

        if "csv" in self._manifests:
            save_csv(self._saved, str(self._save_path / "manifest.csv"))

        logger.info("OutputHandler finalized (%d crops written).", len(self._saved))
