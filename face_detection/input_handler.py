"""
Input handling for the face detection pipeline.

Responsibility:
    Load still images from a single file or a directory of files and
    yield them one at a time as (frame_id, path, frame) tuples.

Non-goals:
    - No detection, drawing, or output writing.
    - No video or webcam streams (no temporal processing).
    - No implicit fallback between source types.

Robustness:
    - Validates the source at initialization time.
    - Logs and skips unreadable images (never crashes the pipeline).
"""

import logging
from pathlib import Path
from typing import Iterator, List, Tuple

import cv2
import numpy as np

logger = logging.getLogger(__name__)

# Image extensions recognized by this handler
IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".bmp", ".tiff", ".tif", ".webp"}


class InputHandler:
    """Iterator over images from a file or directory.

    Usage:
        handler = InputHandler(source="path/to/images/")
        for frame_id, path, frame in handler:
            ...

    Unreadable images are logged and skipped; their frame_id is not reused.
    """

    def __init__(self, source: str) -> None:
        """Initialize the input handler and validate the source.

        Args:
            source: Path to an image file or a directory of images.

        Raises:
            FileNotFoundError: If the source does not exist.
            ValueError: If the file type is unsupported or the directory
                        contains no images.
        """
        path = Path(str(source).strip())

        if path.is_file():
            if path.suffix.lower() not in IMAGE_EXTENSIONS:
                raise ValueError(
                    f"Unrecognized file extension: '{path.suffix}' for source '{path}'. "
                    f"Supported images: {sorted(IMAGE_EXTENSIONS)}."
                )
            self._paths: List[Path] = [path]
        elif path.is_dir():
            self._paths = sorted(
                p for p in path.iterdir()
                if p.is_file() and p.suffix.lower() in IMAGE_EXTENSIONS
            )
            if not self._paths:
                raise ValueError(
                    f"No image files found in directory: '{path}'. "
                    f"Supported extensions: {sorted(IMAGE_EXTENSIONS)}."
                )
            logger.info("Found %d images in directory: %s", len(self._paths), path)
        else:
            raise FileNotFoundError(
                f"Input source not found: '{path}'. "
                f"Provide a valid image file or directory."
            )

    def __len__(self) -> int:
        return len(self._paths)

    def __iter__(self) -> Iterator[Tuple[int, str, np.ndarray]]:
        for frame_id, path in enumerate(self._paths):
            frame = cv2.imread(str(path))
            if frame is None:
                logger.warning(
                    "Skipping unreadable image (frame_id=%d): %s", frame_id, path
                )
                continue
            yield frame_id, str(path), frame
