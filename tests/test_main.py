"""
Tests for the CLI entrypoint.
"""

import pytest

from face_detection.config import AppConfig
from main import apply_cli_overrides, main, parse_args


def test_cli_overrides_applied():
    """CLI arguments replace config values without mutating the original."""
    config = AppConfig()
    args = parse_args([
        "--source", "faces/",
        "--threshold", "0.8",
        "--activation", "softmax",
        "--output-mode", "print,save_json",
        "--output-path", "results/",
    ])

    updated = apply_cli_overrides(config, args)

    assert updated.input.source == "faces/"
    assert updated.detection.score_threshold == 0.8
    assert updated.detection.activation == "softmax"
    assert updated.output.mode == "print,save_json"
    assert updated.output.save_path == "results/"
    assert config.detection.score_threshold == 0.5


def test_cli_overrides_validated():
    """Out-of-range CLI values are rejected."""
    args = parse_args(["--threshold", "2.0"])
    with pytest.raises(ValueError):
        apply_cli_overrides(AppConfig(), args)


def test_main_reports_missing_model(tmp_path):
    """A missing model file makes main() exit with status 1."""
    config_file = tmp_path / "config.yaml"
    config_file.write_text(
        f"model:\n  model_path: {tmp_path / 'missing.tflite'}\n", encoding="utf-8"
    )
    assert main(["--config", str(config_file), "--source", str(tmp_path)]) == 1


def test_main_reports_malformed_config(tmp_path):
    """An unparseable config file makes main() exit with status 1."""
    config_file = tmp_path / "config.yaml"
    config_file.write_text("model: [unclosed\n", encoding="utf-8")
    assert main(["--config", str(config_file), "--source", str(tmp_path)]) == 1
