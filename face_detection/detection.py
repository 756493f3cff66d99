"""
Detection data transfer objects.

This module defines the Detection dataclass, the single output type of
the decoder, together with the small value types it is built from.
Detections are frozen: they are created once per qualifying anchor and
never mutated afterwards.

All coordinates are normalized to [0, 1] relative to the model input,
which maps directly onto the original frame since the whole frame is
resized to the input.

Non-goals:
    - No rendering logic.
    - No file I/O.
"""

from dataclasses import dataclass
from typing import Dict, Tuple

# Landmark field names in the order the model emits them.
LANDMARK_NAMES: Tuple[str, ...] = (
    "left_eye",
    "right_eye",
    "nose_tip",
    "mouth_center",
    "left_eye_tragion",
    "right_eye_tragion",
)


@dataclass(frozen=True, slots=True)
class Point:
    """A 2-D point in normalized image coordinates."""

    x: float
    y: float

    def to_pixels(self, frame_width: int, frame_height: int) -> Tuple[int, int]:
        return int(self.x * frame_width), int(self.y * frame_height)


@dataclass(frozen=True, slots=True)
class BoundingBox:
    """Axis-aligned box given by its top-left corner and size."""

    x_min: float
    y_min: float
    width: float
    height: float

    @property
    def x_max(self) -> float:
        return self.x_min + self.width

    @property
    def y_max(self) -> float:
        return self.y_min + self.height

    @property
    def area(self) -> float:
        return self.width * self.height


@dataclass(frozen=True, slots=True)
class Detection:
    """A single detected face.

    Attributes:
        box: Face bounding box (normalized).
        left_eye, right_eye, nose_tip, mouth_center,
        left_eye_tragion, right_eye_tragion: Facial landmarks (normalized).
        score: Activated confidence in [0.0, 1.0].
    """

    box: BoundingBox
    left_eye: Point
    right_eye: Point
    nose_tip: Point
    mouth_center: Point
    left_eye_tragion: Point
    right_eye_tragion: Point
    score: float

    @property
    def landmarks(self) -> Dict[str, Point]:
        """Landmarks keyed by name, in model output order."""
        return {name: getattr(self, name) for name in LANDMARK_NAMES}

    def to_dict(self) -> dict:
        """Return a plain dict suitable for JSON serialization."""
        return {
            "box": {
                "x_min": self.box.x_min,
                "y_min": self.box.y_min,
                "width": self.box.width,
                "height": self.box.height,
            },
            "landmarks": {
                name: {"x": point.x, "y": point.y}
                for name, point in self.landmarks.items()
            },
            "score": round(self.score, 4),
        }
