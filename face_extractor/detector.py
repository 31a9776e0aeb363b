"""
Detector: the detection adapter of the face extraction pipeline.

This module wraps OpenCV's face detectors behind one interface and
normalizes their output into fixed-shape RawDetection records.

Public contract:
    Detector.detect(frame: np.ndarray) -> list[RawDetection]

Constraints:
    - Input must be a BGR numpy array (as returned by OpenCV).
    - Returns an empty list (never raises) when no faces are found.
    - Any failure inside OpenCV is raised as ModelError.
    - Thread-safety is not guaranteed (single-threaded design).

Non-goals:
    - No file reading or output writing.
    - No acceptance thresholds (see quality_filter).
    - No tracking or temporal state.
"""

import logging
from typing import List, Optional

import cv2
import numpy as np

from face_extractor.config import AppConfig, load_config
from face_extractor.detection import RawDetection
from face_extractor.errors import ModelError
from face_extractor.model_loader import load_model
from face_extractor.preprocessor import preprocess, to_grayscale
from face_extractor.postprocessor import postprocess, postprocess_cascade

logger = logging.getLogger(__name__)


class Detector:
    """Face detector backed by an OpenCV Haar cascade or SSD network.

    Usage:
        detector = Detector()                      # Haar cascade, safe defaults
        detector = Detector(config=my_config)       # Custom config
        detections = detector.detect(frame)         # BGR numpy array

    The constructor loads the model once. Subsequent detect() calls
    reuse it; there is no per-frame setup cost beyond preprocessing
    and inference.
    """

    def __init__(self, config: Optional[AppConfig] = None) -> None:
        """Initialize the detector and load the model.

        Args:
            config: Application configuration. If None, safe defaults
                    are used (no config file required).

        Raises:
            FileNotFoundError: If model files are missing.
            RuntimeError: If the model cannot be loaded or the requested
                          backend is unavailable.
        """
        if config is None:
            config = load_config()

        self._config = config
        self._model = load_model(config.model)

        logger.info(
            "Detector initialized (detector=%s, backend=%s)",
            config.model.detector,
            config.model.backend,
        )

    def detect(self, frame: np.ndarray) -> List[RawDetection]:
        """Detect faces in a single BGR frame.

        Args:
            frame: A BGR image as a numpy array with shape (H, W, 3)
                   and dtype uint8. This is the standard format returned
                   by cv2.imread().

        Returns:
            A list of RawDetection objects, sorted by confidence
            (descending). Returns an empty list if no faces are detected.

        Raises:
            TypeError: If frame is not a numpy ndarray.
            ValueError: If frame has incorrect shape or is empty.
            ModelError: If the underlying detector fails to run.
        """
        self._validate_frame(frame)

        try:
            if self._config.model.detector == "haar":
                return self._detect_cascade(frame)
            return self._detect_dnn(frame)
        except cv2.error as e:
            raise ModelError(f"{self._config.model.detector} detector failed: {e}") from e

    def _detect_cascade(self, frame: np.ndarray) -> List[RawDetection]:
        gray = to_grayscale(frame)
        min_size = max(1, self._config.filter.min_face_size)

        rects, _reject_levels, level_weights = self._model.detectMultiScale3(
            gray,
            scaleFactor=self._config.model.haar_scale_factor,
            minNeighbors=self._config.model.haar_min_neighbors,
            minSize=(min_size, min_size),
            outputRejectLevels=True,
        )

        h, w = frame.shape[:2]
        return postprocess_cascade(rects, level_weights, frame_width=w, frame_height=h)

    def _detect_dnn(self, frame: np.ndarray) -> List[RawDetection]:
        # Preprocess: frame → blob
        blob = preprocess(frame, self._config.model)

        # Inference
        self._model.setInput(blob)
        output = self._model.forward()

        # Postprocess: raw output → RawDetection list
        h, w = frame.shape[:2]
        return postprocess(
            network_output=output,
            frame_width=w,
            frame_height=h,
            score_floor=self._config.model.score_floor,
        )

    @property
    def config(self) -> AppConfig:
        """Return the active configuration (read-only)."""
        return self._config

    @staticmethod
    def _validate_frame(frame: np.ndarray) -> None:
        """Validate that the input frame meets the API contract.

        Raises:
            TypeError: If frame is not a numpy ndarray.
            ValueError: If frame is empty or has wrong dimensions.
        """
        if not isinstance(frame, np.ndarray):
            raise TypeError(
                f"Expected frame to be a numpy ndarray, "
                f"got {type(frame).__name__}. "
                f"Use cv2.imread() to obtain frames."
            )

        if frame.size == 0:
            raise ValueError(
                "Frame is empty (zero size). "
                "Ensure the image was decoded successfully."
            )

        if frame.ndim != 3:
            raise ValueError(
                f"Expected a 3-dimensional frame (H, W, C), "
                f"got {frame.ndim} dimensions with shape {frame.shape}. "
                f"Grayscale images must be converted to BGR first."
            )

        if frame.shape[2] != 3:
            raise ValueError(
                f"Expected 3 channels (BGR), got {frame.shape[2]} channels. "
                f"Input must be a BGR image as returned by OpenCV."
            )
