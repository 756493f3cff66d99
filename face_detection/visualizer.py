"""
Visualization for the face detection pipeline.

Responsibility:
    Draw face boxes, landmarks and optional score labels onto a frame.
    This is a pure rendering module — it produces an annotated copy
    of the frame and performs no I/O.

Detections carry normalized coordinates; they are mapped to pixels of
the frame being drawn on and clamped to its bounds.

Non-goals:
    - No file writing, window management, or display logic beyond show_frame.
    - No detection or model logic.
"""

from typing import List, Tuple

import cv2
import numpy as np

from face_detection.config import VisualizationConfig
from face_detection.detection import Detection

# Hard-coded rendering constants (cosmetic internals, not user-facing)
_FONT = cv2.FONT_HERSHEY_SIMPLEX
_FONT_SCALE = 0.5
_FONT_THICKNESS = 1
_LABEL_PADDING = 4
_LANDMARK_RADIUS = 2


def box_to_pixels(detection: Detection, frame_width: int, frame_height: int) -> Tuple[int, int, int, int]:
    """Map a normalized detection box to clamped (x1, y1, x2, y2) pixels."""
    box = detection.box
    x1 = int(box.x_min * frame_width)
    y1 = int(box.y_min * frame_height)
    x2 = int(box.x_max * frame_width)
    y2 = int(box.y_max * frame_height)

    x1 = max(0, min(x1, frame_width - 1))
    y1 = max(0, min(y1, frame_height - 1))
    x2 = max(0, min(x2, frame_width - 1))
    y2 = max(0, min(y2, frame_height - 1))
    return x1, y1, x2, y2


def draw_detections(
    frame: np.ndarray,
    detections: List[Detection],
    config: VisualizationConfig,
) -> np.ndarray:
    """Draw face boxes, landmarks and score labels onto a frame.

    Args:
        frame: Input BGR image (not modified — a copy is returned).
        detections: List of Detection objects to render.
        config: Visualization parameters (colors, thickness, labels).

    Returns:
        A new BGR numpy array with detections drawn.
    """
    annotated = frame.copy()
    h, w = annotated.shape[:2]

    for det in detections:
        x1, y1, x2, y2 = box_to_pixels(det, w, h)
        cv2.rectangle(
            annotated,
            (x1, y1),
            (x2, y2),
            color=config.box_color,
            thickness=config.thickness,
        )

        if config.show_landmarks:
            for point in det.landmarks.values():
                cv2.circle(
                    annotated,
                    point.to_pixels(w, h),
                    _LANDMARK_RADIUS,
                    color=config.landmark_color,
                    thickness=cv2.FILLED,
                )

        if config.show_confidence:
            label = f"{det.score:.2f}"
            (text_w, text_h), _ = cv2.getTextSize(
                label, _FONT, _FONT_SCALE, _FONT_THICKNESS
            )

            # Above the box, or below it when too close to the top edge
            label_y = y1 - _LABEL_PADDING
            if label_y - text_h - _LABEL_PADDING < 0:
                label_y = y2 + text_h + _LABEL_PADDING

            cv2.rectangle(
                annotated,
                (x1, label_y - text_h - _LABEL_PADDING),
                (x1 + text_w + _LABEL_PADDING, label_y + _LABEL_PADDING),
                color=config.box_color,
                thickness=cv2.FILLED,
            )
            cv2.putText(
                annotated,
                label,
                (x1 + _LABEL_PADDING // 2, label_y),
                _FONT,
                _FONT_SCALE,
                (255, 255, 255),
                _FONT_THICKNESS,
                cv2.LINE_AA,
            )

    return annotated


def show_frame(
    frame: np.ndarray,
    detections: List[Detection],
    config: VisualizationConfig,
    wait_ms: int = 0,
) -> int:
    """Show annotated frame in a window and return key press.

    Returns:
        The key code pressed during waitKey, or -1 if no key.
    """
    annotated = draw_detections(frame, detections, config)
    cv2.imshow("Face Detection", annotated)
    return cv2.waitKey(wait_ms) & 0xFF
