"""
Configuration management for the face extraction pipeline.

Provides a layered configuration system with the following precedence
(highest to lowest):

    CLI arguments > Environment variables > YAML config file > Defaults

Design constraints:
    - The system MUST run with zero configuration (safe defaults only).
    - Missing or invalid values fail early and loudly with ConfigError.
    - No detection logic, I/O, or model loading belongs here.

Non-goals:
    - No dynamic reloading.
    - No database-backed or remote configuration.
"""

import logging
import math
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from face_extractor.errors import ConfigError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Project root resolution
# ---------------------------------------------------------------------------
# Resolved relative to this file's location: face_extractor/config.py → repo root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent


def get_project_root() -> Path:
    """Return the resolved project root directory."""
    return _PROJECT_ROOT


# ---------------------------------------------------------------------------
# Configuration dataclasses
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ModelConfig:
    """Face detector configuration.

    Attributes:
        detector: Detector family, 'haar' (OpenCV cascade, bundled with
                  opencv-python) or 'dnn' (SSD-ResNet10 Caffe model).
        backend: Compute backend for the DNN detector, 'cpu' or 'cuda'.
        cascade_path: Path to a Haar cascade XML. None means OpenCV's
                      bundled frontal-face cascade.
        haar_scale_factor: Image pyramid step for the cascade.
        haar_min_neighbors: Neighbor hits required to keep a cascade hit.
        prototxt_path: Path to the .prototxt network definition (relative to project root).
        weights_path: Path to the .caffemodel weights file (relative to project root).
        input_size: Spatial dimensions (width, height) for the DNN input blob.
        mean_values: Per-channel mean subtraction values (BGR order).
        scale_factor: Pixel value scale factor applied during blob creation.
        score_floor: SSD rows scoring below this are noise and never
                     reported as detections.
    """

    detector: str = "haar"
    backend: str = "cpu"
    cascade_path: Optional[str] = None
    haar_scale_factor: float = 1.1
    haar_min_neighbors: int = 3
    prototxt_path: str = "models/deploy.prototxt"
    weights_path: str = "models/res10_300x300_ssd_iter_140000.caffemodel"
    input_size: Tuple[int, int] = (300, 300)
    mean_values: Tuple[float, float, float] = (104.0, 177.0, 123.0)
    scale_factor: float = 1.0
    score_floor: float = 0.1


@dataclass(frozen=True)
class FilterConfig:
    """Acceptance criteria for a detected face.

    Attributes:
        min_face_size: Minimum box width AND height in pixels.
        min_area_fraction: Minimum box area as a fraction of image area.
        max_area_fraction: Maximum box area as a fraction of image area.
        confidence_threshold: Minimum detector score. The default suits
                              the cascade detector's open score scale; use
                              a value in [0, 1] with the 'dnn' detector.
        min_aspect_ratio: Minimum width / height of the box.
        max_aspect_ratio: Maximum width / height of the box.
    """

    min_face_size: int = 40
    min_area_fraction: float = 0.02
    max_area_fraction: float = 0.40
    confidence_threshold: float = 2.0
    min_aspect_ratio: float = 0.5
    max_aspect_ratio: float = 2.0


@dataclass(frozen=True)
class CropConfig:
    """Crop geometry.

    Attributes:
        padding_fraction: Context added on each side, as a fraction of the
                          box width (horizontally) and height (vertically).
    """

    padding_fraction: float = 0.2


@dataclass(frozen=True)
class InputConfig:
    """Input source configuration.

    Attributes:
        source: Directory of images (or a single image file).
        recursive: Walk subdirectories of the source directory.
    """

    source: str = "./images"
    recursive: bool = True


@dataclass(frozen=True)
class OutputConfig:
    """Output behavior configuration.

    Attributes:
        save_path: Directory where face crops are written.
        target_faces: Stop the run once this many faces have been saved.
        jpeg_quality: JPEG quality for written crops (1 - 100).
        manifest: Manifest format(s), comma-separated: 'none', 'json', 'csv'.
    """

    save_path: str = "./faces"
    target_faces: int = 5000
    jpeg_quality: int = 95
    manifest: str = "none"


@dataclass(frozen=True)
class LoggingConfig:
    """Logging behavior.

    Attributes:
        level: Root log level name.
        progress_interval: Log a progress line every N images.
    """

    level: str = "INFO"
    progress_interval: int = 25


@dataclass(frozen=True)
class AppConfig:
    """Top-level application configuration.

    Aggregates all sub-configurations into a single, frozen object.
    """

    model: ModelConfig = field(default_factory=ModelConfig)
    filter: FilterConfig = field(default_factory=FilterConfig)
    crop: CropConfig = field(default_factory=CropConfig)
    input: InputConfig = field(default_factory=InputConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

_VALID_DETECTORS = {"haar", "dnn"}
_VALID_BACKENDS = {"cpu", "cuda"}
_VALID_MANIFESTS = {"none", "json", "csv"}
_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def manifest_formats(config: OutputConfig) -> set:
    """Return the set of manifest formats to write ('none' excluded)."""
    formats = set(m.strip() for m in config.manifest.split(","))
    return formats - {"none", ""}


_FILTER_FLOATS = (
    "min_area_fraction",
    "max_area_fraction",
    "confidence_threshold",
    "min_aspect_ratio",
    "max_aspect_ratio",
)


def _validate_filter(config: FilterConfig) -> None:
    """Validate acceptance criteria. Raises ConfigError on invalid state."""

    # NaN slips through every ordered comparison below
    for name in _FILTER_FLOATS:
        value = getattr(config, name)
        if not math.isfinite(value):
            raise ConfigError(f"filter.{name} must be a finite number, got {value}.")

    if config.min_face_size < 0:
        raise ConfigError(
            f"filter.min_face_size must be non-negative, "
            f"got {config.min_face_size}."
        )

    if config.confidence_threshold < 0:
        raise ConfigError(
            f"filter.confidence_threshold must be non-negative, "
            f"got {config.confidence_threshold}."
        )

    for name in ("min_area_fraction", "max_area_fraction"):
        value = getattr(config, name)
        if not (0.0 <= value <= 1.0):
            raise ConfigError(
                f"filter.{name} must be in [0.0, 1.0], got {value}."
            )

    if config.min_area_fraction > config.max_area_fraction:
        raise ConfigError(
            f"filter.min_area_fraction ({config.min_area_fraction}) must not "
            f"exceed filter.max_area_fraction ({config.max_area_fraction})."
        )

    if config.min_aspect_ratio <= 0:
        raise ConfigError(
            f"filter.min_aspect_ratio must be positive, "
            f"got {config.min_aspect_ratio}."
        )

    if config.min_aspect_ratio > config.max_aspect_ratio:
        raise ConfigError(
            f"filter.min_aspect_ratio ({config.min_aspect_ratio}) must not "
            f"exceed filter.max_aspect_ratio ({config.max_aspect_ratio})."
        )


def _validate(config: AppConfig) -> None:
    """Validate configuration values. Raises ConfigError on invalid state."""

    if config.model.detector not in _VALID_DETECTORS:
        raise ConfigError(
            f"Invalid model.detector: '{config.model.detector}'. "
            f"Must be one of {_VALID_DETECTORS}."
        )

    if config.model.backend not in _VALID_BACKENDS:
        raise ConfigError(
            f"Invalid model.backend: '{config.model.backend}'. "
            f"Must be one of {_VALID_BACKENDS}."
        )

    if config.model.haar_scale_factor <= 1.0:
        raise ConfigError(
            f"model.haar_scale_factor must be greater than 1.0, "
            f"got {config.model.haar_scale_factor}."
        )

    if config.model.haar_min_neighbors < 0:
        raise ConfigError(
            f"model.haar_min_neighbors must be non-negative, "
            f"got {config.model.haar_min_neighbors}."
        )

    if len(config.model.input_size) != 2:
        raise ConfigError(
            f"model.input_size must be a (width, height) tuple, "
            f"got {config.model.input_size}."
        )

    if any(d <= 0 for d in config.model.input_size):
        raise ConfigError(
            f"model.input_size dimensions must be positive, "
            f"got {config.model.input_size}."
        )

    if config.model.scale_factor <= 0:
        raise ConfigError(
            f"model.scale_factor must be positive, "
            f"got {config.model.scale_factor}."
        )

    if not (0.0 <= config.model.score_floor <= 1.0):
        raise ConfigError(
            f"model.score_floor must be in [0.0, 1.0], "
            f"got {config.model.score_floor}."
        )

    _validate_filter(config.filter)

    # SSD scores are probabilities; a higher threshold rejects every face.
    if config.model.detector == "dnn" and config.filter.confidence_threshold > 1.0:
        raise ConfigError(
            f"filter.confidence_threshold must be in [0.0, 1.0] with the 'dnn' "
            f"detector, got {config.filter.confidence_threshold}."
        )

    if not math.isfinite(config.crop.padding_fraction):
        raise ConfigError(
            f"crop.padding_fraction must be a finite number, "
            f"got {config.crop.padding_fraction}."
        )

    if config.crop.padding_fraction < 0:
        raise ConfigError(
            f"crop.padding_fraction must be non-negative, "
            f"got {config.crop.padding_fraction}."
        )

    if config.output.target_faces <= 0:
        raise ConfigError(
            f"output.target_faces must be positive, "
            f"got {config.output.target_faces}."
        )

    if not (1 <= config.output.jpeg_quality <= 100):
        raise ConfigError(
            f"output.jpeg_quality must be in [1, 100], "
            f"got {config.output.jpeg_quality}."
        )

    # Validate each manifest format in comma-separated list
    formats = set(m.strip() for m in config.output.manifest.split(","))
    invalid_formats = formats - _VALID_MANIFESTS
    if invalid_formats:
        raise ConfigError(
            f"Invalid output.manifest format(s): {invalid_formats}. "
            f"Valid formats: {_VALID_MANIFESTS}. "
            f"Use comma-separated values for multiple formats."
        )

    if config.logging.level not in _VALID_LOG_LEVELS:
        raise ConfigError(
            f"Invalid logging.level: '{config.logging.level}'. "
            f"Must be one of {_VALID_LOG_LEVELS}."
        )

    if config.logging.progress_interval <= 0:
        raise ConfigError(
            f"logging.progress_interval must be positive, "
            f"got {config.logging.progress_interval}."
        )


# ---------------------------------------------------------------------------
# YAML loading
# ---------------------------------------------------------------------------

def _parse_tuple(value, expected_len: int, cast_type=float):
    """Convert a list from YAML into a tuple of the expected type and length."""
    if isinstance(value, (list, tuple)):
        if len(value) != expected_len:
            raise ConfigError(
                f"Expected {expected_len} values, got {len(value)}: {value}"
            )
        return tuple(cast_type(v) for v in value)
    return value


def _parse_bool(value) -> bool:
    """Accept YAML booleans as well as env-style strings ('true', '0', ...)."""
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off"):
            return False
        raise ConfigError(f"Expected a boolean, got '{value}'.")
    return bool(value)


# Per-section field casts; keys absent from the raw dict keep their defaults.
_FIELD_CASTS: Dict[str, Dict[str, Any]] = {
    "model": {
        "detector": lambda v: str(v).lower(),
        "backend": lambda v: str(v).lower(),
        "cascade_path": lambda v: str(v) if v is not None else None,
        "haar_scale_factor": float,
        "haar_min_neighbors": int,
        "prototxt_path": str,
        "weights_path": str,
        "input_size": lambda v: _parse_tuple(v, 2, int),
        "mean_values": lambda v: _parse_tuple(v, 3, float),
        "scale_factor": float,
        "score_floor": float,
    },
    "filter": {
        "min_face_size": int,
        "min_area_fraction": float,
        "max_area_fraction": float,
        "confidence_threshold": float,
        "min_aspect_ratio": float,
        "max_aspect_ratio": float,
    },
    "crop": {
        "padding_fraction": float,
    },
    "input": {
        "source": str,
        "recursive": _parse_bool,
    },
    "output": {
        "save_path": str,
        "target_faces": int,
        "jpeg_quality": int,
        "manifest": lambda v: str(v).lower(),
    },
    "logging": {
        "level": lambda v: str(v).upper(),
        "progress_interval": int,
    },
}

_SECTION_TYPES = {
    "model": ModelConfig,
    "filter": FilterConfig,
    "crop": CropConfig,
    "input": InputConfig,
    "output": OutputConfig,
    "logging": LoggingConfig,
}


def _build_section(section: str, raw: dict):
    """Build one typed sub-config from a raw YAML dict."""
    if not isinstance(raw, dict):
        raise ConfigError(
            f"Config section '{section}' must be a mapping, got {type(raw).__name__}."
        )

    casts = _FIELD_CASTS[section]
    unknown = set(raw) - set(casts)
    if unknown:
        raise ConfigError(
            f"Unknown key(s) in config section '{section}': {sorted(unknown)}."
        )

    kwargs = {}
    for key, value in raw.items():
        try:
            kwargs[key] = casts[key](value)
        except ConfigError:
            raise
        except (TypeError, ValueError) as e:
            raise ConfigError(
                f"Invalid value for {section}.{key}: {value!r} ({e})"
            ) from e
    return _SECTION_TYPES[section](**kwargs)


# ---------------------------------------------------------------------------
# Environment variable overrides
# ---------------------------------------------------------------------------

_ENV_PREFIX = "FACE_EXTRACT_"


def _section(raw: dict, section: str) -> dict:
    """Return raw[section] as a mutable dict; an empty YAML section is None."""
    values = raw.get(section) or {}
    if not isinstance(values, dict):
        raise ConfigError(
            f"Config section '{section}' must be a mapping, got {type(values).__name__}."
        )
    raw[section] = values
    return values


def _apply_env_overrides(raw: dict) -> dict:
    """Apply environment variable overrides to the raw config dict.

    Environment variables follow the pattern:
        FACE_EXTRACT_MODEL_DETECTOR=dnn
        FACE_EXTRACT_FILTER_CONFIDENCE_THRESHOLD=0.7

    The variable name maps to the nested config key by replacing
    underscores after the section name with dots.
    """
    env_map = {
        f"{_ENV_PREFIX}MODEL_DETECTOR": ("model", "detector"),
        f"{_ENV_PREFIX}MODEL_BACKEND": ("model", "backend"),
        f"{_ENV_PREFIX}MODEL_CASCADE_PATH": ("model", "cascade_path"),
        f"{_ENV_PREFIX}FILTER_MIN_FACE_SIZE": ("filter", "min_face_size"),
        f"{_ENV_PREFIX}FILTER_CONFIDENCE_THRESHOLD": ("filter", "confidence_threshold"),
        f"{_ENV_PREFIX}CROP_PADDING_FRACTION": ("crop", "padding_fraction"),
        f"{_ENV_PREFIX}INPUT_SOURCE": ("input", "source"),
        f"{_ENV_PREFIX}INPUT_RECURSIVE": ("input", "recursive"),
        f"{_ENV_PREFIX}OUTPUT_SAVE_PATH": ("output", "save_path"),
        f"{_ENV_PREFIX}OUTPUT_TARGET_FACES": ("output", "target_faces"),
        f"{_ENV_PREFIX}OUTPUT_MANIFEST": ("output", "manifest"),
        f"{_ENV_PREFIX}LOGGING_LEVEL": ("logging", "level"),
    }

    for env_var, (section, key) in env_map.items():
        value = os.environ.get(env_var)
        if value is not None:
            _section(raw, section)[key] = value
            logger.debug("Config override from env: %s=%s", env_var, value)

    return raw


def _apply_overrides(raw: dict, overrides: Dict[str, Dict[str, Any]]) -> dict:
    """Merge explicit (CLI) overrides into the raw config dict.

    None values mean "not given" and leave the lower layers untouched.
    """
    for section, values in overrides.items():
        for key, value in values.items():
            if value is not None:
                _section(raw, section)[key] = value
    return raw


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------

def load_config(
    config_path: Optional[str] = None,
    overrides: Optional[Dict[str, Dict[str, Any]]] = None,
) -> AppConfig:
    """Load and validate application configuration.

    Precedence (highest → lowest):
        Explicit overrides > Environment variables > YAML file > Hard-coded defaults

    Args:
        config_path: Path to a YAML configuration file. If None,
                     the system runs entirely on defaults (safe for
                     programmatic usage).
        overrides: Nested {section: {key: value}} mapping, typically built
                   from CLI arguments. None values are ignored.

    Returns:
        A validated, frozen AppConfig instance.

    Raises:
        FileNotFoundError: If config_path is provided but does not exist.
        ConfigError: If any configuration value is invalid.
        yaml.YAMLError: If the YAML file is malformed.
    """
    raw: dict = {}

    # --- Layer 1: YAML file ---
    if config_path is not None:
        resolved = Path(config_path)
        if not resolved.is_absolute() and not resolved.is_file():
            resolved = _PROJECT_ROOT / resolved

        if not resolved.is_file():
            raise FileNotFoundError(
                f"Configuration file not found: {resolved}. "
                f"Provide a valid path or omit to use defaults."
            )

        logger.info("Loading config from: %s", resolved)
        with open(resolved, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

        if not isinstance(raw, dict):
            raise ConfigError(
                f"Configuration file must contain a mapping at top level: {resolved}"
            )

        unknown = set(raw) - set(_SECTION_TYPES)
        if unknown:
            raise ConfigError(f"Unknown config section(s): {sorted(unknown)}.")

    # --- Layer 2: Environment variable overrides ---
    raw = _apply_env_overrides(raw)

    # --- Layer 3: Explicit overrides ---
    if overrides:
        raw = _apply_overrides(raw, overrides)

    # --- Build typed configs ---
    config = AppConfig(
        **{
            section: _build_section(section, raw.get(section) or {})
            for section in _SECTION_TYPES
        }
    )

    # --- Validate ---
    _validate(config)

    logger.debug("Configuration loaded: %s", config)
    return config
