"""
Serialization for the face detection pipeline.

Responsibility:
    Export detection results to structured file formats (JSON, CSV)
    for downstream consumption or offline analysis.

Non-goals:
    - No rendering, display, or detection logic.
    - No streaming output — writes complete files on finalize.
"""

import csv
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

from face_detection.detection import LANDMARK_NAMES, Detection

logger = logging.getLogger(__name__)

CSV_FIELDNAMES = (
    ["frame_id", "source", "x_min", "y_min", "width", "height", "score"]
    + [f"{name}_{axis}" for name in LANDMARK_NAMES for axis in ("x", "y")]
)


def save_json(
    detections_by_frame: Dict[int, List[Detection]],
    output_path: str,
    sources: Optional[Dict[int, str]] = None,
) -> None:
    """Export all detections to a JSON file.

    Output schema:
        {
            "frames": [
                {
                    "frame_id": 0,
                    "source": "images/a.jpg",
                    "detections": [
                        {"box": {...}, "landmarks": {...}, "score": ...}
                    ]
                }
            ],
            "total_frames": N,
            "total_detections": M
        }

    Args:
        detections_by_frame: Mapping of frame_id → list of Detection objects.
        output_path: Path to the output JSON file.
        sources: Optional mapping of frame_id → input file name.

    Raises:
        OSError: If the output path is not writable.
    """
    _ensure_parent_dir(output_path)
    sources = sources or {}

    frames = []
    total_detections = 0

    for frame_id in sorted(detections_by_frame.keys()):
        dets = detections_by_frame[frame_id]
        total_detections += len(dets)
        frames.append({
            "frame_id": frame_id,
            "source": sources.get(frame_id),
            "detections": [d.to_dict() for d in dets],
        })

    payload = {
        "frames": frames,
        "total_frames": len(frames),
        "total_detections": total_detections,
    }

    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)

    logger.info(
        "JSON output saved: %s (%d frames, %d detections)",
        output_path, len(frames), total_detections,
    )


def _csv_row(frame_id: int, source: str, det: Detection) -> dict:
    row = {
        "frame_id": frame_id,
        "source": source,
        "x_min": det.box.x_min,
        "y_min": det.box.y_min,
        "width": det.box.width,
        "height": det.box.height,
        "score": round(det.score, 4),
    }
    for name, point in det.landmarks.items():
        row[f"{name}_x"] = point.x
        row[f"{name}_y"] = point.y
    return row


def save_csv(
    detections_by_frame: Dict[int, List[Detection]],
    output_path: str,
    sources: Optional[Dict[int, str]] = None,
) -> None:
    """Export all detections to a CSV file, one row per detection.

    Columns: frame_id, source, box fields, score, then x/y per landmark.

    Raises:
        OSError: If the output path is not writable.
    """
    _ensure_parent_dir(output_path)
    sources = sources or {}

    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=CSV_FIELDNAMES)
        writer.writeheader()

        total = 0
        for frame_id in sorted(detections_by_frame.keys()):
            for det in detections_by_frame[frame_id]:
                writer.writerow(_csv_row(frame_id, sources.get(frame_id, ""), det))
                total += 1

    logger.info("CSV output saved: %s (%d rows)", output_path, total)


def _ensure_parent_dir(path: str) -> None:
    """Create parent directories if they don't exist."""
    parent = Path(path).parent
    parent.mkdir(parents=True, exist_ok=True)
