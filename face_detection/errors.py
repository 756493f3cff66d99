"""
Exception types raised by the face detection post-processing pipeline.

All errors derive from FaceDetectionError so callers can catch the whole
family at once. The geometry and decode errors also subclass ValueError,
since each one reports a bad input value rather than a runtime fault.
"""


class FaceDetectionError(Exception):
    """Base class for all errors raised by this package."""


class AnchorGeometryError(FaceDetectionError, ValueError):
    """Anchor generator options describe an inconsistent feature-map layout."""


class DecodeError(FaceDetectionError, ValueError):
    """Raw model output cannot be decoded against the supplied anchors."""


class NonFiniteScoreError(FaceDetectionError, ValueError):
    """A confidence score is NaN and therefore has no place in a score order."""
