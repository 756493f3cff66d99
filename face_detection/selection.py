"""
Score ordering over detections.

Detections are ordered by score alone; ties keep no defined order
beyond what Python's stable sort gives. NaN scores have no position in
that order and are rejected with NonFiniteScoreError.

Note:
    best() and top_k() pick the highest-scoring candidates. This is
    not non-maximum suppression: overlapping detections of the same
    face are neither merged nor removed.
"""

import math
from typing import List, Optional, Sequence

from face_detection.detection import Detection
from face_detection.errors import NonFiniteScoreError


def _score_key(detection: Detection) -> float:
    if math.isnan(detection.score):
        raise NonFiniteScoreError(
            f"Cannot order a detection with a NaN score: {detection.box}."
        )
    return detection.score


def sort_by_score(detections: List[Detection], descending: bool = False) -> None:
    """Sort detections in place by score, ascending unless descending=True."""
    # Validate up front so a NaN never leaves the list half sorted.
    for detection in detections:
        _score_key(detection)
    detections.sort(key=_score_key, reverse=descending)


def best(detections: Sequence[Detection]) -> Optional[Detection]:
    """Return the highest-scoring detection, or None for an empty input."""
    result = None
    # >= keeps the last of equal scores, the element an ascending
    # sort would leave at the end.
    for detection in detections:
        score = _score_key(detection)
        if result is None or score >= result.score:
            result = detection
    return result


def top_k(detections: Sequence[Detection], k: int) -> List[Detection]:
    """Return the k highest-scoring detections, highest first."""
    if k <= 0:
        return []
    ranked = list(detections)
    sort_by_score(ranked, descending=True)
    return ranked[:k]
