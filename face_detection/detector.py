"""
FaceDetector — end-to-end face detection over the decoding primitives.

Public contract:
    FaceDetector.detect(frame: np.ndarray) -> list[Detection]
    FaceDetector.decode_outputs(regressors, scores) -> list[Detection]

Pipeline per call:
    frame → preprocess → inference → (regressors, scores)
          → activate scores → decode against cached anchors → sort

Constraints:
    - Input frames must be BGR numpy arrays (as returned by OpenCV).
    - Anchors are generated once in the constructor and never mutated,
      so decode_outputs() can be called concurrently with separate buffers.
    - detect() shares one cv2.dnn.Net and is not thread-safe.

Non-goals:
    - No file reading, camera access, or I/O of any kind.
    - No visualization or output writing.
    - No tracking or temporal state.
    - No non-maximum suppression (see selection for what best() means).
"""

import logging
from typing import List, Optional, Sequence, Tuple, Union

import cv2
import numpy as np

from face_detection.activation import activate
from face_detection.anchors import Anchor, anchors_to_array, generate_anchors
from face_detection.config import AppConfig, load_config, validate_config
from face_detection.decoder import REGRESSION_STRIDE, decode
from face_detection.detection import Detection
from face_detection.model_loader import load_model
from face_detection.preprocessor import preprocess
from face_detection.selection import best, sort_by_score

logger = logging.getLogger(__name__)


def split_outputs(outputs: Sequence[np.ndarray]) -> Tuple[np.ndarray, np.ndarray]:
    """Identify the regressor and score buffers among raw network outputs.

    Output order differs between importers, so the buffers are matched by
    size: the regressor buffer is a multiple of 16 long and holds at least
    16 floats for every score. An exact 16:1 pair is preferred; otherwise
    the mismatch is left to decode(), which truncates to the shorter one.

    Returns:
        (regressors, scores) as flat float32 arrays.

    Raises:
        RuntimeError: If no pair of outputs has the expected sizes.
    """
    flat = [np.asarray(o, dtype=np.float32).reshape(-1) for o in outputs]
    pairs = [
        (reg, scores)
        for reg in flat
        for scores in flat
        if scores is not reg
        and scores.size > 0
        and reg.size % REGRESSION_STRIDE == 0
        and reg.size >= REGRESSION_STRIDE * scores.size
    ]
    for reg, scores in pairs:
        if reg.size == REGRESSION_STRIDE * scores.size:
            return reg, scores
    if pairs:
        reg, scores = pairs[0]
        logger.warning(
            "Regressor output (%d floats) does not match score output (%d); "
            "decoding will truncate.", reg.size, scores.size,
        )
        return reg, scores
    raise RuntimeError(
        f"Could not find regressor and score outputs among network outputs "
        f"with sizes {[o.size for o in flat]}. Expected one output whose size is "
        f"a multiple of 16 and at least 16x the size of another."
    )


class FaceDetector:
    """Face detector for single-shot face models with anchor decoding.

    Usage:
        detector = FaceDetector()                  # Uses safe defaults
        detector = FaceDetector(config=my_config)  # Custom config
        detections = detector.detect(frame)        # BGR numpy array

    The constructor generates anchors and loads the model once.
    Subsequent calls reuse both.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        net: Optional[cv2.dnn.Net] = None,
    ) -> None:
        """Initialize the detector.

        Args:
            config: Application configuration. If None, safe defaults
                    are used (no config file required).
            net: A network that is already loaded. If None, the model
                 is loaded from config.model.

        Raises:
            FileNotFoundError: If the model file is missing.
            ValueError: If configuration values are invalid, including
                        AnchorGeometryError for bad anchor options.
        """
        if config is None:
            config = load_config()
        else:
            validate_config(config)

        self._config = config
        self._anchors: Tuple[Anchor, ...] = tuple(generate_anchors(config.anchors))
        self._anchor_array = anchors_to_array(self._anchors)
        self._anchor_array.setflags(write=False)
        self._net = net if net is not None else load_model(config.model)

        logger.info(
            "FaceDetector initialized (anchors=%d, activation=%s, score_threshold=%.2f)",
            len(self._anchors),
            config.detection.activation,
            config.detection.score_threshold,
        )

    def decode_outputs(
        self,
        regressors: Union[Sequence[float], np.ndarray],
        scores: Union[Sequence[float], np.ndarray],
    ) -> List[Detection]:
        """Activate raw scores and decode raw regressions.

        The caller's buffers are not modified; activation runs on a copy.

        Args:
            regressors: Flat regression buffer, 16 floats per anchor.
            scores: Raw score logits, one per anchor.

        Returns:
            Detections above the score threshold, in anchor-index order.

        Raises:
            DecodeError: If the model emits more rows than there are anchors.
            NonFiniteScoreError: If activation yields a NaN score.
        """
        detection_config = self._config.detection
        activated = np.array(scores, dtype=np.float32).reshape(-1)
        activate(detection_config.activation, activated)

        scale = detection_config.regression_scale
        return decode(
            self._anchor_array,
            regressors,
            activated,
            detection_config.score_threshold,
            x_scale=scale,
            y_scale=scale,
            w_scale=scale,
            h_scale=scale,
        )

    def detect(self, frame: np.ndarray) -> List[Detection]:
        """Detect faces in a single BGR frame.

        Args:
            frame: A BGR image as a numpy array with shape (H, W, 3)
                   and dtype uint8.

        Returns:
            A list of Detection objects in normalized coordinates,
            sorted by score (descending). Empty if no face qualifies.

        Raises:
            TypeError: If frame is not a numpy ndarray.
            ValueError: If frame has incorrect shape or is empty.
        """
        self._validate_frame(frame)

        tensor = preprocess(frame, self._config.model)

        self._net.setInput(tensor)
        outputs = self._net.forward(self._net.getUnconnectedOutLayersNames())
        regressors, scores = split_outputs(outputs)

        detections = self.decode_outputs(regressors, scores)
        sort_by_score(detections, descending=True)
        return detections

    def detect_best(self, frame: np.ndarray) -> Optional[Detection]:
        """Return the highest-scoring face in frame, or None."""
        return best(self.detect(frame))

    @property
    def config(self) -> AppConfig:
        """Return the active configuration (read-only)."""
        return self._config

    @property
    def anchors(self) -> Tuple[Anchor, ...]:
        """Return the cached anchors, in model output order."""
        return self._anchors

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
                "Ensure the input source is providing valid frames."
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
