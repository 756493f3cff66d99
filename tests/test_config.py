"""
Tests for the configuration module.
"""

import dataclasses

import pytest

from face_detection.anchors import generate_anchors
from face_detection.config import (
    AppConfig,
    DetectionConfig,
    ModelConfig,
    OutputConfig,
    get_project_root,
    load_config,
    validate_config,
)
from face_detection.errors import AnchorGeometryError


def test_load_defaults():
    """Test loading configuration without any file."""
    config = load_config(None)
    assert isinstance(config, AppConfig)
    assert config.detection.activation == "sigmoid"
    assert config.detection.score_threshold == 0.5
    assert config.detection.regression_scale == 128.0
    assert config.model.input_size == (128, 128)


def test_default_anchor_geometry_matches_model():
    """The default anchors line up with the model's 896 output rows."""
    config = load_config(None)
    assert len(generate_anchors(config.anchors)) == 896


def test_validation_failure():
    """Test fail-fast validation."""
    bad_config = AppConfig(detection=DetectionConfig(score_threshold=1.5))
    with pytest.raises(ValueError, match="score_threshold"):
        validate_config(bad_config)

    bad_config = AppConfig(detection=DetectionConfig(activation="relu"))
    with pytest.raises(ValueError, match="activation"):
        validate_config(bad_config)

    bad_config = AppConfig(detection=DetectionConfig(regression_scale=0.0))
    with pytest.raises(ValueError, match="regression_scale"):
        validate_config(bad_config)

    bad_config = AppConfig(model=ModelConfig(data_layout="chw"))
    with pytest.raises(ValueError, match="data_layout"):
        validate_config(bad_config)

    bad_config = AppConfig(output=OutputConfig(mode="print,save_video"))
    with pytest.raises(ValueError, match="output.mode"):
        validate_config(bad_config)


def test_validation_checks_anchor_geometry():
    """Inconsistent anchor options fail at config validation time."""
    config = AppConfig()
    bad = dataclasses.replace(config, anchors=dataclasses.replace(config.anchors, num_layers=2))
    with pytest.raises(AnchorGeometryError):
        validate_config(bad)


def test_env_override(monkeypatch):
    """Test environment variable overrides."""
    monkeypatch.setenv("FACE_DETECT_DETECTION_SCORE_THRESHOLD", "0.9")
    monkeypatch.setenv("FACE_DETECT_DETECTION_ACTIVATION", "softmax")
    monkeypatch.setenv("FACE_DETECT_MODEL_PATH", "/tmp/model.tflite")

    config = load_config(None)

    assert config.detection.score_threshold == 0.9
    assert config.detection.activation == "softmax"
    assert config.model.model_path == "/tmp/model.tflite"


def test_yaml_file(tmp_path):
    """YAML values override the defaults, anchors included."""
    config_file = tmp_path / "config.yaml"
    config_file.write_text(
        "detection:\n"
        "  score_threshold: 0.75\n"
        "  activation: softmax\n"
        "model:\n"
        "  input_size: [256, 256]\n"
        "  data_layout: nchw\n"
        "anchors:\n"
        "  input_size_width: 256\n"
        "  input_size_height: 256\n"
        "  num_layers: 2\n"
        "  strides: [16, 32]\n"
        "  fixed_anchor_size: false\n"
        "output:\n"
        "  mode: print,save_csv\n",
        encoding="utf-8",
    )

    config = load_config(str(config_file))

    assert config.detection.score_threshold == 0.75
    assert config.detection.activation == "softmax"
    assert config.model.input_size == (256, 256)
    assert config.model.data_layout == "nchw"
    assert config.anchors.strides == (16, 32)
    assert config.anchors.fixed_anchor_size is False
    # Untouched anchor fields keep their defaults.
    assert config.anchors.min_scale == 0.1484375
    assert len(generate_anchors(config.anchors)) == 16 * 16 * 2 + 8 * 8 * 2


def test_env_beats_yaml(tmp_path, monkeypatch):
    """Environment variables take precedence over the YAML file."""
    config_file = tmp_path / "config.yaml"
    config_file.write_text("detection:\n  score_threshold: 0.75\n", encoding="utf-8")
    monkeypatch.setenv("FACE_DETECT_DETECTION_SCORE_THRESHOLD", "0.25")

    assert load_config(str(config_file)).detection.score_threshold == 0.25


def test_unknown_anchor_option(tmp_path):
    """Misspelled anchor keys are reported rather than ignored."""
    config_file = tmp_path / "config.yaml"
    config_file.write_text("anchors:\n  stride: [8]\n", encoding="utf-8")

    with pytest.raises(ValueError, match="stride"):
        load_config(str(config_file))


def test_missing_file():
    """A config path that does not exist fails loudly."""
    with pytest.raises(FileNotFoundError):
        load_config("/nonexistent/config.yaml")


@pytest.mark.parametrize(
    "content",
    [
        "model: [unclosed\n",
        "detection: 0.5\n",
        "- model\n- detection\n",
    ],
)
def test_malformed_yaml_rejected(tmp_path, content):
    """Unparseable files and non-mapping sections raise ValueError."""
    config_file = tmp_path / "config.yaml"
    config_file.write_text(content, encoding="utf-8")

    with pytest.raises(ValueError):
        load_config(str(config_file))


@pytest.mark.skipif(
    not (get_project_root() / "config.yaml").is_file(),
    reason="Example config.yaml not found",
)
def test_repository_config_loads():
    """The example config.yaml at the repository root is valid."""
    config = load_config("config.yaml")
    assert len(generate_anchors(config.anchors)) == 896
