"""
Shared fixtures for the test suite.
"""

import os

import pytest

from face_detection.detection import BoundingBox, Detection, Point


def make_detection(score: float, x_min: float = 0.1, y_min: float = 0.1) -> Detection:
    """Build a Detection with a fixed box and landmarks and the given score."""
    point = Point(0.5, 0.5)
    return Detection(
        box=BoundingBox(x_min=x_min, y_min=y_min, width=0.2, height=0.2),
        left_eye=point,
        right_eye=point,
        nose_tip=point,
        mouth_center=point,
        left_eye_tragion=point,
        right_eye_tragion=point,
        score=score,
    )


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch):
    """Keep FACE_DETECT_* variables from the host out of the tests."""
    for name in list(os.environ):
        if name.startswith("FACE_DETECT_"):
            monkeypatch.delenv(name)
