"""
Preprocessing for the face detectors.

Responsibility:
    Convert a raw BGR frame (numpy array) into what each detector
    consumes:
        - 'dnn'  → 4D input blob via cv2.dnn.blobFromImage
        - 'haar' → single-channel grayscale image

Non-goals:
    - No frame acquisition or I/O.
    - No inference or coordinate mapping.
    - No model-awareness beyond the blob parameters.

Hard-coded:
    - Channel order is BGR (mandated by the Caffe model).
    - swapRB is False (input is already BGR from OpenCV).
"""

import numpy as np
import cv2

from face_extractor.config import ModelConfig


def _check_frame(frame: np.ndarray) -> None:
    if frame is None or frame.size == 0:
        raise ValueError(
            "Cannot preprocess an empty frame. "
            "Ensure the image was decoded successfully."
        )


def preprocess(frame: np.ndarray, config: ModelConfig) -> np.ndarray:
    """Convert a raw BGR frame into a DNN input blob.

    Args:
        frame: Input image as a BGR numpy array (H, W, 3).
        config: ModelConfig providing input_size, scale_factor, and mean_values.

    Returns:
        A 4D numpy array of shape (1, 3, H, W) with dtype float32,
        ready to be passed to net.setInput().

    Raises:
        ValueError: If the frame is empty or has unexpected dimensions.
    """
    _check_frame(frame)

    blob = cv2.dnn.blobFromImage(
        image=frame,
        scalefactor=config.scale_factor,
        size=config.input_size,
        mean=config.mean_values,
        swapRB=False,   # Hard-coded: input is BGR, model expects BGR
        crop=False,
    )

    return blob


def to_grayscale(frame: np.ndarray) -> np.ndarray:
    """Convert a BGR frame to the 8-bit grayscale image a cascade scans.

    Raises:
        ValueError: If the frame is empty.
    """
    _check_frame(frame)
    return cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
