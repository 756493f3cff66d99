"""
Model loading for the face detection system.

Responsibility:
    Load the face model from disk and return a ready-to-infer
    cv2.dnn.Net object running on the CPU.

Non-goals:
    - No preprocessing, inference, or decoding.
    - No automatic model downloading.
    - No GPU/TPU execution.

Failure behavior:
    - A missing model file raises FileNotFoundError with the exact
      missing path and expected location.
"""

import logging
from pathlib import Path

import cv2

from face_detection.config import ModelConfig, get_project_root

logger = logging.getLogger(__name__)


def resolve_model_path(config: ModelConfig) -> Path:
    """Resolve model_path against the project root when relative."""
    path = Path(config.model_path)
    if not path.is_absolute():
        path = get_project_root() / path
    return path


def load_model(config: ModelConfig) -> cv2.dnn.Net:
    """Load the face detection model.

    .tflite files are read with the TFLite importer; any other format
    is left to cv2.dnn.readNet to detect from its extension.

    Args:
        config: ModelConfig containing the model path.

    Returns:
        A cv2.dnn.Net ready for inference.

    Raises:
        FileNotFoundError: If the model file does not exist.
    """
    model_path = resolve_model_path(config)

    if not model_path.is_file():
        raise FileNotFoundError(
            f"Face detection model not found.\n"
            f"  Expected: {model_path}\n"
            f"  Download the short-range face model and place it at the path above,\n"
            f"  or update 'model.model_path' in your config."
        )

    logger.info("Loading model: %s", model_path)
    if model_path.suffix.lower() == ".tflite":
        net = cv2.dnn.readNetFromTFLite(str(model_path))
    else:
        net = cv2.dnn.readNet(str(model_path))

    net.setPreferableBackend(cv2.dnn.DNN_BACKEND_OPENCV)
    net.setPreferableTarget(cv2.dnn.DNN_TARGET_CPU)

    logger.info("Model loaded successfully.")
    return net
