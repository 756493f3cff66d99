"""
Face Detection — anchor-based face detection post-processing.

Public API:
    - FaceDetector: End-to-end detector (preprocess, inference, decode).
    - Detection, BoundingBox, Point: Decoded result types.
    - Anchor, AnchorGeneratorOptions, generate_anchors: Anchor grid.
    - Activation, activate: In-place score activation.
    - decode: Raw regressions + scores → detections.
    - sort_by_score, best, top_k: Score ordering (not NMS).
    - FaceDetectionError and subclasses.

Usage:
    from face_detection import FaceDetector

    detector = FaceDetector()
    detections = detector.detect(frame)
"""

from face_detection.activation import Activation, activate
from face_detection.anchors import Anchor, AnchorGeneratorOptions, generate_anchors
from face_detection.decoder import decode
from face_detection.detection import BoundingBox, Detection, Point
from face_detection.detector import FaceDetector
from face_detection.errors import (
    AnchorGeometryError,
    DecodeError,
    FaceDetectionError,
    NonFiniteScoreError,
)
from face_detection.selection import best, sort_by_score, top_k

__all__ = [
    "Activation",
    "Anchor",
    "AnchorGeneratorOptions",
    "AnchorGeometryError",
    "BoundingBox",
    "DecodeError",
    "Detection",
    "FaceDetectionError",
    "FaceDetector",
    "NonFiniteScoreError",
    "Point",
    "activate",
    "best",
    "decode",
    "generate_anchors",
    "sort_by_score",
    "top_k",
]
