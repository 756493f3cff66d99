"""
Preprocessing for the face detection pipeline.

Responsibility:
    Convert a raw BGR frame (numpy array) into the normalized float
    tensor the face model expects.

Non-goals:
    - No frame acquisition or I/O.
    - No inference or decoding.

Hard-coded:
    - Channel order is RGB (the model was trained on RGB input).
    - Pixel values are mapped from [0, 255] to [-1, 1].
    - The whole frame is resized without letterboxing, so normalized
      model coordinates map directly onto the frame.
"""

import cv2
import numpy as np

from face_detection.config import ModelConfig

_PIXEL_SCALE = 2.0 / 255.0


def preprocess(frame: np.ndarray, config: ModelConfig) -> np.ndarray:
    """Convert a raw BGR frame into a model input tensor.

    Args:
        frame: Input image as a BGR numpy array (H, W, 3).
        config: ModelConfig providing input_size and data_layout.

    Returns:
        A float32 array shaped (1, H, W, 3) for 'nhwc' or
        (1, 3, H, W) for 'nchw', with values in [-1, 1].

    Raises:
        ValueError: If the frame is empty or None.
    """
    if frame is None or frame.size == 0:
        raise ValueError(
            "Cannot preprocess an empty frame. "
            "Ensure the input source is providing valid frames."
        )

    rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
    resized = cv2.resize(rgb, tuple(config.input_size), interpolation=cv2.INTER_LINEAR)

    tensor = resized.astype(np.float32) * _PIXEL_SCALE - 1.0
    if config.data_layout == "nchw":
        tensor = tensor.transpose(2, 0, 1)

    return np.ascontiguousarray(tensor[np.newaxis, ...], dtype=np.float32)
