"""
Tests for the configuration module.
"""

import pytest

from face_extractor.config import (
    AppConfig,
    CropConfig,
    FilterConfig,
    ModelConfig,
    OutputConfig,
    _validate,
    load_config,
    manifest_formats,
)
from face_extractor.errors import ConfigError


def test_load_defaults():
    """Test loading configuration without any file."""
    config = load_config(None)
    assert isinstance(config, AppConfig)
    assert config.model.detector == "haar"
    assert config.filter.confidence_threshold == 2.0
    assert config.filter.min_face_size == 40
    assert config.filter.min_area_fraction == 0.02
    assert config.filter.max_area_fraction == 0.40
    assert config.filter.min_aspect_ratio == 0.5
    assert config.filter.max_aspect_ratio == 2.0
    assert config.crop.padding_fraction == 0.2
    assert config.output.target_faces == 5000


def test_validation_failure():
    """Test fail-fast validation."""
    # Invalid backend
    bad_config = AppConfig(model=ModelConfig(backend="invalid"))
    with pytest.raises(ConfigError, match="backend"):
        _validate(bad_config)

    # Invalid detector
    bad_config = AppConfig(model=ModelConfig(detector="mtcnn"))
    with pytest.raises(ConfigError, match="detector"):
        _validate(bad_config)

    # Area bounds inverted
    bad_config = AppConfig(
        filter=FilterConfig(min_area_fraction=0.5, max_area_fraction=0.1)
    )
    with pytest.raises(ConfigError, match="min_area_fraction"):
        _validate(bad_config)

    # Aspect bounds inverted
    bad_config = AppConfig(
        filter=FilterConfig(min_aspect_ratio=2.5, max_aspect_ratio=2.0)
    )
    with pytest.raises(ConfigError, match="min_aspect_ratio"):
        _validate(bad_config)

    # Negative padding
    bad_config = AppConfig(crop=CropConfig(padding_fraction=-0.1))
    with pytest.raises(ConfigError, match="padding_fraction"):
        _validate(bad_config)

    # Non-positive target
    bad_config = AppConfig(output=OutputConfig(target_faces=0))
    with pytest.raises(ConfigError, match="target_faces"):
        _validate(bad_config)


def test_config_error_is_value_error():
    """ConfigError stays catchable as ValueError."""
    with pytest.raises(ValueError):
        _validate(AppConfig(output=OutputConfig(manifest="xml")))


def test_env_override(monkeypatch):
    """Test environment variable overrides."""
    monkeypatch.setenv("FACE_EXTRACT_FILTER_CONFIDENCE_THRESHOLD", "0.9")
    monkeypatch.setenv("FACE_EXTRACT_MODEL_DETECTOR", "dnn")
    monkeypatch.setenv("FACE_EXTRACT_INPUT_RECURSIVE", "false")

    config = load_config(None)

    assert config.filter.confidence_threshold == 0.9
    assert config.model.detector == "dnn"
    assert config.input.recursive is False


def test_overrides_beat_env(monkeypatch):
    """Explicit overrides take precedence; None values are ignored."""
    monkeypatch.setenv("FACE_EXTRACT_OUTPUT_TARGET_FACES", "10")

    config = load_config(
        None,
        overrides={
            "output": {"target_faces": 3, "save_path": None},
            "filter": {"min_face_size": 24},
        },
    )

    assert config.output.target_faces == 3
    assert config.output.save_path == "./faces"
    assert config.filter.min_face_size == 24


def test_yaml_file(tmp_path):
    """Test loading a YAML file with partial sections."""
    path = tmp_path / "config.yaml"
    path.write_text(
        "filter:\n"
        "  confidence_threshold: 3.5\n"
        "  min_face_size: 64\n"
        "crop:\n"
        "  padding_fraction: 0.1\n"
        "output:\n"
        "  manifest: json,csv\n",
        encoding="utf-8",
    )

    config = load_config(str(path))

    assert config.filter.confidence_threshold == 3.5
    assert config.filter.min_face_size == 64
    assert config.filter.max_aspect_ratio == 2.0
    assert config.crop.padding_fraction == 0.1
    assert manifest_formats(config.output) == {"json", "csv"}


def test_yaml_unknown_key(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("filter:\n  min_face: 10\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="min_face"):
        load_config(str(path))


def test_yaml_bad_value(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("output:\n  target_faces: lots\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="target_faces"):
        load_config(str(path))


def test_missing_config_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "nope.yaml"))


def test_manifest_none():
    assert manifest_formats(OutputConfig()) == set()


@pytest.mark.parametrize("field_name", [
    "min_area_fraction",
    "max_area_fraction",
    "confidence_threshold",
    "min_aspect_ratio",
    "max_aspect_ratio",
])
@pytest.mark.parametrize("value", [float("nan"), float("inf")])
def test_non_finite_filter_values_rejected(field_name, value):
    with pytest.raises(ConfigError, match=field_name):
        load_config(None, overrides={"filter": {field_name: value}})


@pytest.mark.parametrize("value", [float("nan"), float("inf")])
def test_non_finite_padding_rejected(value):
    with pytest.raises(ConfigError, match="padding_fraction"):
        load_config(None, overrides={"crop": {"padding_fraction": value}})


def test_yaml_nan_padding_rejected(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("crop:\n  padding_fraction: .nan\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="padding_fraction"):
        load_config(str(path))


def test_empty_yaml_section_accepts_overrides(tmp_path, monkeypatch):
    """A section with every key commented out loads as null."""
    path = tmp_path / "config.yaml"
    path.write_text("filter:\n  # min_face_size: 64\ncrop:\n", encoding="utf-8")
    monkeypatch.setenv("FACE_EXTRACT_CROP_PADDING_FRACTION", "0.3")

    config = load_config(str(path), overrides={"filter": {"confidence_threshold": 3.0}})

    assert config.filter.confidence_threshold == 3.0
    assert config.filter.min_face_size == 40
    assert config.crop.padding_fraction == 0.3


def test_scalar_yaml_section_with_override_rejected(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("filter: strict\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="filter"):
        load_config(str(path), overrides={"filter": {"confidence_threshold": 3.0}})


def test_dnn_detector_needs_probability_threshold():
    with pytest.raises(ConfigError, match="confidence_threshold"):
        load_config(None, overrides={"model": {"detector": "dnn"}})

    config = load_config(
        None,
        overrides={"model": {"detector": "dnn"}, "filter": {"confidence_threshold": 0.6}},
    )
    assert config.filter.confidence_threshold == 0.6
