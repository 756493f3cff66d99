"""
Tests for the detector module.
"""

from pathlib import Path

import numpy as np
import pytest

from face_detection import detector as detector_module
from face_detection.config import AppConfig, DetectionConfig, ModelConfig
from face_detection.detector import FaceDetector, split_outputs
from face_detection.errors import DecodeError

NUM_ANCHORS = 896

# Skip integration tests if the model file is missing
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_MODEL_EXISTS = (_PROJECT_ROOT / "models/face_detection_short_range.tflite").exists()


class FakeNet:
    """Stands in for cv2.dnn.Net, returning canned outputs."""

    def __init__(self, regressors: np.ndarray, scores: np.ndarray) -> None:
        self.regressors = regressors
        self.scores = scores
        self.inputs = []

    def setInput(self, blob):
        self.inputs.append(blob)

    def getUnconnectedOutLayersNames(self):
        return ("scores", "regressors")

    def forward(self, names):
        # Scores first, to check outputs are matched by size not position.
        return (
            self.scores.reshape(1, -1, 1),
            self.regressors.reshape(1, -1, 16),
        )


def make_outputs(hot=None):
    """Zero regressions and strongly negative logits except at `hot` indices."""
    regressors = np.zeros(NUM_ANCHORS * 16, dtype=np.float32)
    scores = np.full(NUM_ANCHORS, -10.0, dtype=np.float32)
    for index, logit in (hot or {}).items():
        scores[index] = logit
    return regressors, scores


def test_detect_with_fake_net():
    """Detections come back sorted by score, highest first."""
    regressors, scores = make_outputs({0: 5.0, 600: 3.0})
    net = FakeNet(regressors, scores)
    detector = FaceDetector(net=net)

    detections = detector.detect(np.zeros((480, 640, 3), dtype=np.uint8))

    assert len(detections) == 2
    assert detections[0].score > detections[1].score
    assert detections[0].score == pytest.approx(1.0 / (1.0 + np.exp(-5.0)), abs=1e-6)
    # Zero offsets put the box on the first anchor's center.
    assert detections[0].box.x_min == pytest.approx(0.5 / 16)
    assert detections[0].box.y_min == pytest.approx(0.5 / 16)
    assert net.inputs[0].shape == (1, 128, 128, 3)


def test_detect_best():
    """detect_best returns the top detection, or None."""
    regressors, scores = make_outputs({10: 2.0, 20: 4.0})
    detector = FaceDetector(net=FakeNet(regressors, scores))
    frame = np.zeros((64, 64, 3), dtype=np.uint8)

    top = detector.detect_best(frame)
    assert top is not None
    assert top.score == pytest.approx(1.0 / (1.0 + np.exp(-4.0)), abs=1e-6)

    empty = FaceDetector(net=FakeNet(*make_outputs()))
    assert empty.detect_best(frame) is None


def test_decode_outputs_softmax():
    """Softmax over all anchors singles out one dominant logit."""
    config = AppConfig(detection=DetectionConfig(activation="softmax", score_threshold=0.5))
    regressors, scores = make_outputs()
    scores[:] = 0.0
    scores[42] = 20.0

    detector = FaceDetector(config=config, net=FakeNet(regressors, scores))
    detections = detector.decode_outputs(regressors, scores)

    assert len(detections) == 1
    assert detections[0].score > 0.99


def test_decode_outputs_leaves_buffers_untouched():
    """Activation runs on a copy of the caller's score buffer."""
    regressors, scores = make_outputs({3: 1.0})
    before = scores.copy()
    detector = FaceDetector(net=FakeNet(regressors, scores))

    detector.decode_outputs(regressors, scores)

    np.testing.assert_array_equal(scores, before)


def test_anchors_cached_and_read_only():
    """Anchors are generated once and shared across calls."""
    detector = FaceDetector(net=FakeNet(*make_outputs()))
    assert len(detector.anchors) == NUM_ANCHORS
    assert isinstance(detector.anchors, tuple)
    assert detector.anchors is detector.anchors


def test_more_rows_than_anchors():
    """A model emitting more rows than anchors is a decode error."""
    detector = FaceDetector(net=FakeNet(*make_outputs()))
    with pytest.raises(DecodeError):
        detector.decode_outputs(np.zeros(16 * 900), np.zeros(900))


def test_model_loaded_from_config(monkeypatch):
    """Without a net, the model loader is called with the model config."""
    calls = []

    def fake_load_model(model_config):
        calls.append(model_config)
        return FakeNet(*make_outputs())

    monkeypatch.setattr(detector_module, "load_model", fake_load_model)
    FaceDetector()

    assert calls == [ModelConfig()]


def test_missing_model_file():
    """A missing model file is reported with FileNotFoundError."""
    config = AppConfig(model=ModelConfig(model_path="/nonexistent/face.tflite"))
    with pytest.raises(FileNotFoundError, match="face.tflite"):
        FaceDetector(config=config)


def test_invalid_config_rejected():
    """Explicit configs are validated too."""
    config = AppConfig(detection=DetectionConfig(score_threshold=-1.0))
    with pytest.raises(ValueError):
        FaceDetector(config=config, net=FakeNet(*make_outputs()))


def test_detector_input_validation():
    """Test strict input validation."""
    detector = FaceDetector(net=FakeNet(*make_outputs()))

    with pytest.raises(TypeError):
        detector.detect("not a frame")

    with pytest.raises(ValueError):
        detector.detect(np.array([]))

    gray = np.zeros((100, 100), dtype=np.uint8)
    with pytest.raises(ValueError, match="3-dimensional"):
        detector.detect(gray)

    bgra = np.zeros((100, 100, 4), dtype=np.uint8)
    with pytest.raises(ValueError, match="3 channels"):
        detector.detect(bgra)


def test_split_outputs():
    """Regressors are told apart from scores by size."""
    reg = np.zeros((1, 4, 16))
    scores = np.ones((1, 4, 1))

    got_reg, got_scores = split_outputs([scores, reg])
    assert got_reg.shape == (64,)
    assert got_scores.shape == (4,)

    with pytest.raises(RuntimeError):
        split_outputs([np.zeros(10), np.zeros(3)])


def test_split_outputs_allows_mismatched_lengths():
    """A regressor buffer longer than 16x the scores is accepted for truncation."""
    got_reg, got_scores = split_outputs([np.zeros(16 * 5), np.zeros(3)])
    assert got_reg.size == 80
    assert got_scores.size == 3

    # An exact 16:1 pair wins over a looser match.
    got_reg, got_scores = split_outputs([np.zeros(2), np.zeros(64), np.zeros(4)])
    assert (got_reg.size, got_scores.size) == (64, 4)


def test_detect_truncates_mismatched_outputs():
    """detect() decodes only the rows both buffers cover."""
    config = AppConfig(detection=DetectionConfig(score_threshold=0.5))
    net = FakeNet(np.zeros(16 * 5, dtype=np.float32), np.full(3, 10.0, dtype=np.float32))
    detector = FaceDetector(config, net=net)

    detections = detector.detect(np.zeros((64, 64, 3), dtype=np.uint8))
    assert len(detections) == 3


@pytest.mark.skipif(not _MODEL_EXISTS, reason="Model file not found")
def test_detector_integration_smoke():
    """Smoke test: detector initializes and runs on a dummy frame."""
    detector = FaceDetector()
    frame = np.zeros((480, 640, 3), dtype=np.uint8)

    detections = detector.detect(frame)
    assert isinstance(detections, list)
