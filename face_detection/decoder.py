"""
Decoding of raw face model output into Detection objects.

Responsibility:
    Apply per-anchor regression offsets to the anchor grid, producing a
    face box and six landmarks for every anchor whose activated score is
    strictly above the threshold.

Hard-coded:
    - Regression row layout, 16 floats per anchor:
      [x_center, y_center, w, h, then 6 landmark (x, y) pairs].
    - Offsets are expressed in model input pixels and are divided by
      the per-axis scale (the square input size the model was trained on).

Buffer policy:
    The number of decoded anchors is min(len(regressors) // 16, len(scores)).
    A mismatch between the two buffers truncates silently to the shorter
    one; it is not treated as an error.

Non-goals:
    - No score activation (see activation).
    - No sorting or suppression (see selection).
"""

import logging
from typing import List, Sequence, Union

import numpy as np

from face_detection.anchors import Anchor, anchors_to_array
from face_detection.detection import BoundingBox, Detection, Point
from face_detection.errors import DecodeError, NonFiniteScoreError

logger = logging.getLogger(__name__)

REGRESSION_STRIDE = 16
NUM_LANDMARKS = 6


def _as_flat_buffer(values, name: str) -> np.ndarray:
    """Flatten a numeric buffer, rejecting ragged or non-numeric input."""
    try:
        array = np.asarray(values)
    except ValueError as e:
        raise DecodeError(f"Malformed {name} buffer: {e}") from e
    if not np.issubdtype(array.dtype, np.number) or np.issubdtype(array.dtype, np.complexfloating):
        raise DecodeError(
            f"{name.capitalize()} buffer must hold real numbers, got dtype {array.dtype}."
        )
    return array.reshape(-1)


def decode(
    anchors: Union[Sequence[Anchor], np.ndarray],
    regressors: Union[Sequence[float], np.ndarray],
    scores: Union[Sequence[float], np.ndarray],
    score_threshold: float,
    x_scale: float = 128.0,
    y_scale: float = 128.0,
    w_scale: float = 128.0,
    h_scale: float = 128.0,
) -> List[Detection]:
    """Decode raw regressions into detections above a score threshold.

    Args:
        anchors: Anchor sequence, or its (N, 4) array form from
                 anchors_to_array(). Must cover every decoded index.
        regressors: Flat regression buffer, 16 floats per anchor.
        scores: Activated scores, one per anchor. Read only.
        score_threshold: Detections need score > score_threshold.
        x_scale, y_scale, w_scale, h_scale: Per-axis offset scales.

    Returns:
        Detections in anchor-index order.

    Raises:
        DecodeError: If fewer anchors than decoded rows are supplied, or a
                     buffer is ragged or not numeric.
        NonFiniteScoreError: If any decoded score is NaN.
    """
    regressors = _as_flat_buffer(regressors, "regressor")
    scores = _as_flat_buffer(scores, "score")

    count = min(regressors.size // REGRESSION_STRIDE, scores.size)
    if regressors.size != REGRESSION_STRIDE * scores.size:
        logger.debug(
            "Regressor/score length mismatch (%d vs %d), decoding %d anchors",
            regressors.size, scores.size, count,
        )

    if isinstance(anchors, np.ndarray):
        anchor_array = anchors
    else:
        anchor_array = anchors_to_array(anchors)
    if anchor_array.shape[0] < count:
        raise DecodeError(
            f"Model output has {count} rows but only {anchor_array.shape[0]} anchors "
            f"were supplied. Check that the anchor geometry matches the model."
        )

    scores = scores[:count]
    if np.isnan(scores).any():
        raise NonFiniteScoreError(
            f"Score buffer contains NaN at indices {np.flatnonzero(np.isnan(scores)).tolist()[:10]}."
        )

    indices = np.flatnonzero(scores > score_threshold)
    if indices.size == 0:
        return []

    rows = regressors[: count * REGRESSION_STRIDE].reshape(count, REGRESSION_STRIDE)[indices]
    rows = rows.astype(np.float64)
    anchor_rows = anchor_array[indices]
    ax, ay, aw, ah = (anchor_rows[:, k] for k in range(4))

    x_center = rows[:, 0] / x_scale * aw + ax
    y_center = rows[:, 1] / y_scale * ah + ay
    w = rows[:, 2] / w_scale * aw
    h = rows[:, 3] / h_scale * ah

    # (M, 6) each: landmark x and y coordinates.
    lm_x = rows[:, 4::2] / x_scale * aw[:, None] + ax[:, None]
    lm_y = rows[:, 5::2] / y_scale * ah[:, None] + ay[:, None]

    detections: List[Detection] = []
    for m, index in enumerate(indices):
        points = [Point(float(lm_x[m, k]), float(lm_y[m, k])) for k in range(NUM_LANDMARKS)]
        detections.append(Detection(
            box=BoundingBox(
                x_min=float(x_center[m] - w[m] / 2),
                y_min=float(y_center[m] - h[m] / 2),
                width=float(w[m]),
                height=float(h[m]),
            ),
            left_eye=points[0],
            right_eye=points[1],
            nose_tip=points[2],
            mouth_center=points[3],
            left_eye_tragion=points[4],
            right_eye_tragion=points[5],
            score=float(scores[index]),
        ))

    return detections
