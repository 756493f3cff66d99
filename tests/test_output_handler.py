"""
Tests for the output handler.
"""

import json

import numpy as np

from conftest import make_detection
from face_detection.config import AppConfig, OutputConfig
from face_detection.output_handler import OutputHandler


def test_print_and_json(tmp_path, capsys):
    """Detections are printed per image and written to JSON on finalize."""
    config = AppConfig(output=OutputConfig(mode="print,save_json", save_path=str(tmp_path)))
    handler = OutputHandler(config)
    frame = np.zeros((10, 10, 3), dtype=np.uint8)

    assert handler.process_frame(0, "a.jpg", frame, [make_detection(0.9)])
    handler.finalize()

    assert "a.jpg: 1 face(s)" in capsys.readouterr().out
    payload = json.loads((tmp_path / "detections.json").read_text(encoding="utf-8"))
    assert payload["frames"][0]["source"] == "a.jpg"


def test_save_image(tmp_path):
    """save_image writes one annotated file per image."""
    config = AppConfig(output=OutputConfig(mode="save_image", save_path=str(tmp_path)))
    handler = OutputHandler(config)

    handler.process_frame(3, "a.jpg", np.zeros((10, 10, 3), dtype=np.uint8), [])
    handler.finalize()

    assert (tmp_path / "frame_000003.jpg").is_file()
