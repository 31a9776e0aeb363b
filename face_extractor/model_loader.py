"""
Model loading for the face extraction pipeline.

Responsibility:
    Load the configured face detector from disk and return a
    ready-to-infer OpenCV object:
        - 'haar' → cv2.CascadeClassifier
        - 'dnn'  → cv2.dnn.Net (SSD-ResNet10, Caffe format)

Non-goals:
    - No preprocessing, inference, or frame-level logic.
    - No automatic model downloading.
    - No fallback to alternative models.

Failure behavior:
    - Missing model files raise FileNotFoundError with the exact
      missing path and expected location.
    - Unloadable files or an incompatible backend raise RuntimeError.
"""

import logging
from pathlib import Path
from typing import Union

import cv2

from face_extractor.config import ModelConfig, get_project_root

logger = logging.getLogger(__name__)

# Bundled with opencv-python under cv2.data.haarcascades
_DEFAULT_CASCADE = "haarcascade_frontalface_default.xml"


def _resolve(path_str: str) -> Path:
    """Resolve a relative model path against the project root."""
    path = Path(path_str)
    if not path.is_absolute():
        path = get_project_root() / path
    return path


def load_cascade(config: ModelConfig) -> cv2.CascadeClassifier:
    """Load the Haar cascade face detector.

    Args:
        config: ModelConfig with an optional cascade_path.

    Returns:
        A non-empty cv2.CascadeClassifier.

    Raises:
        FileNotFoundError: If the cascade XML does not exist.
        RuntimeError: If OpenCV cannot parse the cascade.
    """
    if config.cascade_path is None:
        cascade = Path(cv2.data.haarcascades) / _DEFAULT_CASCADE
    else:
        cascade = _resolve(config.cascade_path)

    if not cascade.is_file():
        raise FileNotFoundError(
            f"Haar cascade not found.\n"
            f"  Expected: {cascade}\n"
            f"  Provide the file or update 'model.cascade_path' in your config."
        )

    logger.info("Loading Haar cascade: %s", cascade)
    classifier = cv2.CascadeClassifier(str(cascade))
    if classifier.empty():
        raise RuntimeError(
            f"Failed to load Haar cascade (corrupt file or wrong format): {cascade}"
        )

    logger.info("Cascade loaded successfully.")
    return classifier


def load_dnn_model(config: ModelConfig) -> cv2.dnn.Net:
    """Load and configure the SSD face detection model.

    Args:
        config: ModelConfig containing file paths and backend preference.

    Returns:
        A configured cv2.dnn.Net ready for inference.

    Raises:
        FileNotFoundError: If prototxt or weights file does not exist.
        RuntimeError: If the requested backend is unavailable.
    """
    prototxt = _resolve(config.prototxt_path)
    weights = _resolve(config.weights_path)

    # Validate file existence, fail fast with actionable messages
    if not prototxt.is_file():
        raise FileNotFoundError(
            f"Model prototxt not found.\n"
            f"  Expected: {prototxt}\n"
            f"  Provide the file or update 'model.prototxt_path' in your config."
        )

    if not weights.is_file():
        raise FileNotFoundError(
            f"Model weights not found.\n"
            f"  Expected: {weights}\n"
            f"  Download the weights file and place it at the path above,\n"
            f"  or update 'model.weights_path' in your config."
        )

    logger.info("Loading model: prototxt=%s, weights=%s", prototxt, weights)
    try:
        net = cv2.dnn.readNetFromCaffe(str(prototxt), str(weights))
    except cv2.error as e:
        raise RuntimeError(f"Failed to parse Caffe model: {e}") from e

    # Configure backend and target
    if config.backend == "cuda":
        logger.info("Setting CUDA backend and target.")
        try:
            net.setPreferableBackend(cv2.dnn.DNN_BACKEND_CUDA)
            net.setPreferableTarget(cv2.dnn.DNN_TARGET_CUDA)
        except cv2.error as e:
            raise RuntimeError(
                f"Failed to set CUDA backend. Ensure OpenCV was built with "
                f"CUDA support (opencv-contrib-python or custom build).\n"
                f"  OpenCV error: {e}"
            ) from e
    else:
        logger.info("Using CPU backend.")
        net.setPreferableBackend(cv2.dnn.DNN_BACKEND_OPENCV)
        net.setPreferableTarget(cv2.dnn.DNN_TARGET_CPU)

    logger.info("Model loaded successfully.")
    return net


def load_model(config: ModelConfig) -> Union[cv2.CascadeClassifier, cv2.dnn.Net]:
    """Load whichever detector config.detector names."""
    if config.detector == "haar":
        return load_cascade(config)
    return load_dnn_model(config)
