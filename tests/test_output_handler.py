"""
Tests for the output handling and manifest serialization modules.
"""

import csv
import json

import cv2
import numpy as np
import pytest

from face_extractor.config import OutputConfig
from face_extractor.detection import CropRectangle
from face_extractor.errors import WriteError
from face_extractor.output_handler import OutputHandler, crop_filename


def _frame(width=200, height=100):
    frame = np.zeros((height, width, 3), dtype=np.uint8)
    frame[:, :, 2] = 255
    return frame


def test_crop_filename():
    assert crop_filename("/data/images/party.jpg", 7, 3.456) == "party_0007_346.jpg"
    assert crop_filename("photo.png", 12345, 0.5) == "photo_12345_50.jpg"


def test_save_writes_cropped_region(tmp_path):
    handler = OutputHandler(OutputConfig(save_path=str(tmp_path / "faces")))
    crop = CropRectangle(x=10, y=20, width=40, height=30)

    saved = handler.save(_frame(), crop, "src/party.jpg", 2.5, 1)

    assert saved.output.endswith("party_0001_250.jpg")
    written = cv2.imread(saved.output)
    assert written is not None
    assert written.shape == (30, 40, 3)
    assert handler.saved == [saved]


def test_output_directory_is_created(tmp_path):
    target = tmp_path / "a" / "b"
    handler = OutputHandler(OutputConfig(save_path=str(target)))
    assert target.is_dir()
    assert handler.save_path == target


def test_write_failure_raises_write_error(tmp_path):
    handler = OutputHandler(OutputConfig(save_path=str(tmp_path / "faces")))
    # Replace the output directory with a regular file so writes fail
    (tmp_path / "faces").rmdir()
    (tmp_path / "faces").write_text("blocking file")

    with pytest.raises(WriteError):
        handler.save(_frame(), CropRectangle(0, 0, 10, 10), "a.jpg", 3.0, 1)
    assert handler.saved == []


def test_finalize_writes_manifests(tmp_path):
    handler = OutputHandler(OutputConfig(save_path=str(tmp_path), manifest="json,csv"))
    handler.save(_frame(), CropRectangle(0, 0, 10, 10), "a.jpg", 3.0, 1)
    handler.save(_frame(), CropRectangle(5, 5, 20, 20), "b.jpg", 4.0, 2)

    handler.finalize({"faces_accepted": 2})

    payload = json.loads((tmp_path / "manifest.json").read_text(encoding="utf-8"))
    assert payload["total_faces"] == 2
    assert payload["summary"] == {"faces_accepted": 2}
    assert payload["faces"][1]["source"] == "b.jpg"
    assert payload["faces"][1]["width"] == 20

    with open(tmp_path / "manifest.csv", newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert [r["index"] for r in rows] == ["1", "2"]
    assert rows[0]["confidence"] == "3.0"


def test_finalize_without_manifest(tmp_path):
    handler = OutputHandler(OutputConfig(save_path=str(tmp_path)))
    handler.finalize({})
    assert not (tmp_path / "manifest.json").exists()
    assert not (tmp_path / "manifest.csv").exists()
