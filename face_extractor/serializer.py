"""
Manifest serialization for the face extraction pipeline.

Responsibility:
    Export the list of written face crops to structured file formats
    (JSON, CSV) for downstream dataset tooling.

Non-goals:
    - No image writing, detection, or filtering logic.
    - No streaming output; complete files are written on finalize.
"""

import csv
import json
import logging
from pathlib import Path
from typing import Optional, Sequence

logger = logging.getLogger(__name__)

CSV_FIELDS = ["index", "source", "output", "x", "y", "width", "height", "confidence"]


def save_json(
    saved_crops: Sequence,
    output_path: str,
    summary: Optional[dict] = None,
) -> None:
    """Export all saved crops to a JSON file.

    Output schema:
        {
            "faces": [
                {"index": 1, "source": ..., "output": ...,
                 "x": ..., "y": ..., "width": ..., "height": ...,
                 "confidence": ...}
            ],
            "total_faces": N,
            "summary": {...}          # run statistics, when given
        }

    Args:
        saved_crops: SavedCrop records in write order.
        output_path: Path to the output JSON file.
        summary: Optional run statistics to embed.

    Raises:
        OSError: If the output path is not writable.
    """
    _ensure_parent_dir(output_path)

    payload = {
        "faces": [s.to_dict() for s in saved_crops],
        "total_faces": len(saved_crops),
    }
    if summary is not None:
        payload["summary"] = summary

    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)

    logger.info("JSON manifest saved: %s (%d faces)", output_path, len(saved_crops))


def save_csv(saved_crops: Sequence, output_path: str) -> None:
    """Export all saved crops to a CSV file.

    Columns: index, source, output, x, y, width, height, confidence

    Raises:
        OSError: If the output path is not writable.
    """
    _ensure_parent_dir(output_path)

    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=CSV_FIELDS)
        writer.writeheader()
        for saved in saved_crops:
            writer.writerow(saved.to_dict())

    logger.info("CSV manifest saved: %s (%d rows)", output_path, len(saved_crops))


def _ensure_parent_dir(path: str) -> None:
    """Create parent directories if they don't exist."""
    parent = Path(path).parent
    parent.mkdir(parents=True, exist_ok=True)
