"""
Output handling for the face detection pipeline.

Responsibility:
    Route detection results to configured output sinks: stdout, a
    display window, annotated images, JSON, or CSV. Multiple modes can
    be active at once.

Non-goals:
    - No detection logic.
    - No input acquisition.
"""

import logging
from pathlib import Path
from typing import Dict, List, Set

import cv2
import numpy as np

from face_detection.config import AppConfig, get_project_root
from face_detection.detection import Detection
from face_detection.serializer import save_csv, save_json
from face_detection.visualizer import draw_detections, show_frame

logger = logging.getLogger(__name__)


def format_detection(det: Detection) -> str:
    """One-line human readable summary of a detection."""
    box = det.box
    return (
        f"score={det.score:.4f} "
        f"box=(x_min={box.x_min:.4f}, y_min={box.y_min:.4f}, "
        f"w={box.width:.4f}, h={box.height:.4f}) "
        f"nose=({det.nose_tip.x:.4f}, {det.nose_tip.y:.4f})"
    )


class OutputHandler:
    """Routes detection results to configured output sinks.

    Modes (comma-separated in config.output.mode):
        - 'print': Log a summary line per detection to stdout.
        - 'display': Show annotated images in an OpenCV window.
        - 'save_image': Write annotated images to save_path.
        - 'save_json': Accumulate detections, write JSON on finalize.
        - 'save_csv': Accumulate detections, write CSV on finalize.

    Usage:
        handler = OutputHandler(config)
        handler.process_frame(frame_id, source, frame, detections)
        ...
        handler.finalize()
    """

    def __init__(self, config: AppConfig) -> None:
        self._config = config
        self._modes: Set[str] = set(m.strip() for m in config.output.mode.split(","))

        self._detections_buffer: Dict[int, List[Detection]] = {}
        self._sources: Dict[int, str] = {}

        save_path = Path(config.output.save_path)
        if not save_path.is_absolute():
            save_path = get_project_root() / save_path
        self._save_path = save_path

        if self._modes & {"save_image", "save_json", "save_csv"}:
            self._save_path.mkdir(parents=True, exist_ok=True)

        logger.info("OutputHandler initialized: modes=%s, save_path=%s",
                    self._modes, self._save_path)

    @property
    def save_path(self) -> Path:
        return self._save_path

    def process_frame(
        self,
        frame_id: int,
        source: str,
        frame: np.ndarray,
        detections: List[Detection],
    ) -> bool:
        """Process a single image's detections through the output sinks.

        Returns:
            True to continue processing, False if the user asked to stop
            (pressed 'q' or ESC in display mode).
        """
        should_continue = True

        if "print" in self._modes:
            print(f"[{frame_id}] {source}: {len(detections)} face(s)")
            for det in detections:
                print(f"    {format_detection(det)}")

        if "display" in self._modes:
            key = show_frame(frame, detections, self._config.visualization)
            if key == ord("q") or key == 27:
                logger.info("Quit signal received (key press).")
                should_continue = False

        if "save_image" in self._modes:
            annotated = draw_detections(frame, detections, self._config.visualization)
            output_file = self._save_path / f"frame_{frame_id:06d}.jpg"
            cv2.imwrite(str(output_file), annotated)
            logger.debug("Saved frame %d to %s", frame_id, output_file)

        if "save_json" in self._modes or "save_csv" in self._modes:
            self._detections_buffer[frame_id] = detections
            self._sources[frame_id] = source

        return should_continue

    def finalize(self) -> None:
        """Flush buffered output and release resources.

        Must be called after all images have been processed.
        """
        if "save_json" in self._modes and self._detections_buffer:
            save_json(self._detections_buffer, str(self._save_path / "detections.json"),
                      self._sources)

        if "save_csv" in self._modes and self._detections_buffer:
            save_csv(self._detections_buffer, str(self._save_path / "detections.csv"),
                     self._sources)

        if "display" in self._modes:
            cv2.destroyAllWindows()

        self._detections_buffer.clear()
        self._sources.clear()
        logger.info("OutputHandler finalized.")
