"""
Face Extractor: batch face-crop dataset generator built on OpenCV.

Public API:
    - Detector: Detection adapter returning RawDetection records.
    - evaluate / QualityFilter: Acceptance criteria for one detection.
    - compute_crop: Padded, bounds-clipped crop rectangle.
    - BatchAggregator / RunStats: Sequential batch driver with a face target.
    - load_config / AppConfig: Layered configuration.

Usage:
    from face_extractor import BatchAggregator, Detector, load_config

    config = load_config()
    detector = Detector(config)
"""

from face_extractor.aggregator import BatchAggregator, RunOutcome, RunStats
from face_extractor.config import AppConfig, FilterConfig, load_config
from face_extractor.crop import compute_crop
from face_extractor.detection import (
    BoundingBox,
    CropRectangle,
    ImageDimensions,
    RawDetection,
)
from face_extractor.detector import Detector
from face_extractor.errors import (
    ConfigError,
    DecodeError,
    DegenerateCropError,
    FaceExtractorError,
    ModelError,
    WriteError,
)
from face_extractor.quality_filter import (
    FilterDecision,
    QualityFilter,
    RejectReason,
    evaluate,
)

__version__ = "0.1.0"

__all__ = [
    "AppConfig",
    "BatchAggregator",
    "BoundingBox",
    "ConfigError",
    "CropRectangle",
    "DecodeError",
    "DegenerateCropError",
    "Detector",
    "FaceExtractorError",
    "FilterConfig",
    "FilterDecision",
    "ImageDimensions",
    "ModelError",
    "QualityFilter",
    "RawDetection",
    "RejectReason",
    "RunOutcome",
    "RunStats",
    "WriteError",
    "compute_crop",
    "evaluate",
    "load_config",
]
