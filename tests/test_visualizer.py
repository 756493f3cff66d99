"""
Tests for the visualization module.
"""

import numpy as np

from conftest import make_detection
from face_detection.config import VisualizationConfig
from face_detection.visualizer import box_to_pixels, draw_detections


def test_draw_returns_annotated_copy():
    """The input frame is left untouched."""
    frame = np.zeros((100, 100, 3), dtype=np.uint8)
    annotated = draw_detections(frame, [make_detection(0.9)], VisualizationConfig())

    assert annotated.shape == frame.shape
    assert not frame.any()
    assert annotated.any()


def test_box_to_pixels_scales_and_clamps():
    """Normalized boxes map to pixels and stay inside the frame."""
    det = make_detection(0.9, x_min=0.1, y_min=0.2)
    assert box_to_pixels(det, 100, 50) == (10, 10, 30, 20)

    outside = make_detection(0.9, x_min=-0.5, y_min=0.95)
    x1, y1, x2, y2 = box_to_pixels(outside, 100, 100)
    assert x1 == 0 and y2 == 99
