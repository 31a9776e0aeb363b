"""
End-to-end tests for the command-line interface.
"""

import json

import cv2
import numpy as np

from face_extractor import cli
from face_extractor.detection import BoundingBox, RawDetection


class _OneFaceDetector:
    """Reports a single centered 80x80 face on every image."""

    def __init__(self, config):
        self.config = config

    def detect(self, frame):
        return [RawDetection(bbox=BoundingBox(100, 100, 80, 80), confidence=3.0)]


def _make_inputs(root, count=5, corrupt=1):
    root.mkdir()
    for i in range(count - corrupt):
        cv2.imwrite(str(root / f"img{i}.png"), np.zeros((400, 400, 3), dtype=np.uint8))
    for i in range(corrupt):
        (root / f"broken{i}.jpg").write_bytes(b"not an image")
    return root


def test_parse_args_defaults_are_none():
    args = cli.parse_args([])
    overrides = cli.build_overrides(args)
    assert all(v is None for section in overrides.values() for v in section.values())


def test_run_with_fake_detector(tmp_path, monkeypatch):
    monkeypatch.setattr(cli, "Detector", _OneFaceDetector)
    images = _make_inputs(tmp_path / "images")
    faces = tmp_path / "faces"

    code = cli.main([
        "--input", str(images),
        "--output", str(faces),
        "--target-faces", "100",
        "--manifest", "json",
    ])

    assert code == 0
    payload = json.loads((faces / "manifest.json").read_text(encoding="utf-8"))
    summary = payload["summary"]
    assert summary["outcome"] == "list_exhausted"
    assert summary["images_skipped"] == 1
    assert summary["images_processed"] == 4
    assert summary["faces_accepted"] == 4
    assert len(list(faces.glob("*.jpg"))) == 4

    crop = cv2.imread(payload["faces"][0]["output"])
    assert crop.shape[:2] == (112, 112)


def test_run_stops_at_target(tmp_path, monkeypatch):
    monkeypatch.setattr(cli, "Detector", _OneFaceDetector)
    images = _make_inputs(tmp_path / "images", corrupt=0)
    faces = tmp_path / "faces"

    code = cli.main(["-i", str(images), "-o", str(faces), "--target-faces", "2"])

    assert code == 0
    assert len(list(faces.glob("*.jpg"))) == 2


def test_run_with_bundled_cascade(tmp_path):
    """Blank images yield no faces but the run still completes."""
    images = _make_inputs(tmp_path / "images", count=2, corrupt=0)

    code = cli.main(["--input", str(images), "--output", str(tmp_path / "faces")])

    assert code == 0


def test_invalid_config_exits_nonzero(tmp_path):
    code = cli.main(["--input", str(tmp_path), "--min-area", "0.5", "--max-area", "0.1"])
    assert code == 1


def test_missing_input_exits_nonzero(tmp_path):
    code = cli.main(["--input", str(tmp_path / "missing"), "--output", str(tmp_path / "out")])
    assert code == 1


def test_nan_padding_exits_nonzero(tmp_path):
    images = _make_inputs(tmp_path / "images", count=1, corrupt=0)
    code = cli.main(["-i", str(images), "-o", str(tmp_path / "faces"), "--padding", "nan"])
    assert code == 1


def test_empty_yaml_section_with_cli_override(tmp_path, monkeypatch):
    monkeypatch.setattr(cli, "Detector", _OneFaceDetector)
    images = _make_inputs(tmp_path / "images", count=1, corrupt=0)
    config = tmp_path / "config.yaml"
    config.write_text("filter:\ncrop:\n", encoding="utf-8")

    code = cli.main([
        "--config", str(config),
        "-i", str(images), "-o", str(tmp_path / "faces"),
        "--threshold", "3.0",
    ])

    assert code == 0


def test_manifest_write_failure_still_completes(tmp_path, monkeypatch):
    monkeypatch.setattr(cli, "Detector", _OneFaceDetector)
    images = _make_inputs(tmp_path / "images", count=2, corrupt=0)
    faces = tmp_path / "faces"

    def _fail(self, summary=None):
        raise OSError("disk full")

    monkeypatch.setattr(cli.OutputHandler, "finalize", _fail)

    code = cli.main(["-i", str(images), "-o", str(faces), "--manifest", "json"])

    assert code == 0
    assert len(list(faces.glob("*.jpg"))) == 2
