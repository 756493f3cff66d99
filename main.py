"""
Face Detection CLI Entrypoint.

Responsibility:
    Parse command-line arguments, configure the application, wire together
    the detector and I/O handlers, and run the processing loop.

Usage:
    python main.py --source images/
    python main.py --source face.jpg --best
    python main.py --source images/ --output-mode print,save_json
    python main.py --config config.yaml --activation softmax --threshold 0.9

This module is the executable entry point. It should not be imported
by other modules.
"""

import argparse
import dataclasses
import logging
import sys
import time

# Configure logging before importing local modules
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("main")

from face_detection.config import AppConfig, load_config, validate_config
from face_detection.detector import FaceDetector
from face_detection.errors import FaceDetectionError
from face_detection.input_handler import InputHandler
from face_detection.output_handler import OutputHandler
from face_detection.selection import best


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Face Detection System — CLI",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--source",
        type=str,
        help="Input source: path to an image file or a directory of images.",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to YAML configuration file.",
    )
    parser.add_argument(
        "--threshold",
        type=float,
        help="Score threshold (0.0 - 1.0). Overrides config.",
    )
    parser.add_argument(
        "--activation",
        type=str,
        choices=["sigmoid", "softmax"],
        help="Score activation matching the model. Overrides config.",
    )
    parser.add_argument(
        "--output-mode",
        type=str,
        help="Output mode(s), comma-separated: "
             "print, display, save_image, save_json, save_csv. Overrides config.",
    )
    parser.add_argument(
        "--output-path",
        type=str,
        help="Directory for output artifacts. Overrides config.",
    )
    parser.add_argument(
        "--best",
        action="store_true",
        help="Keep only the highest-scoring face per image (not NMS).",
    )

    return parser.parse_args(argv)


def apply_cli_overrides(config: AppConfig, args: argparse.Namespace) -> AppConfig:
    """Return a copy of config with CLI arguments applied and validated."""
    if args.source is not None:
        config = dataclasses.replace(
            config, input=dataclasses.replace(config.input, source=args.source))

    detection_overrides = {}
    if args.threshold is not None:
        detection_overrides["score_threshold"] = args.threshold
    if args.activation is not None:
        detection_overrides["activation"] = args.activation
    if detection_overrides:
        config = dataclasses.replace(
            config, detection=dataclasses.replace(config.detection, **detection_overrides))

    output_overrides = {}
    if args.output_mode is not None:
        output_overrides["mode"] = args.output_mode.lower()
    if args.output_path is not None:
        output_overrides["save_path"] = args.output_path
    if output_overrides:
        config = dataclasses.replace(
            config, output=dataclasses.replace(config.output, **output_overrides))

    validate_config(config)
    return config


def main(argv=None) -> int:
    """Main execution loop."""
    args = parse_args(argv)

    # 1. Load Configuration (CLI args > ENV > YAML > Defaults)
    try:
        config = apply_cli_overrides(load_config(args.config), args)
        logger.info("Configuration active for this run.")
    except (OSError, ValueError) as e:
        logger.error("Configuration error: %s", e)
        return 1

    # 2. Initialize Components
    try:
        detector = FaceDetector(config)
        input_handler = InputHandler(source=config.input.source)
        output_handler = OutputHandler(config)
    except (FileNotFoundError, ValueError, RuntimeError) as e:
        logger.error("Initialization failed: %s", e)
        return 1

    # 3. Processing Loop
    image_count = 0
    face_count = 0
    start_time = time.perf_counter()

    try:
        for frame_id, source, frame in input_handler:
            image_count += 1

            detections = detector.detect(frame)
            if args.best:
                top = best(detections)
                detections = [top] if top is not None else []
            face_count += len(detections)

            if not output_handler.process_frame(frame_id, source, frame, detections):
                logger.info("Stopping loop per user request.")
                break

    except KeyboardInterrupt:
        logger.info("Interrupted by user.")
    except (FaceDetectionError, RuntimeError) as e:
        logger.error("Runtime error during processing: %s", e)
        return 1
    finally:
        output_handler.finalize()
        elapsed = time.perf_counter() - start_time
        logger.info(
            "Processing finished. Images: %d. Faces: %d. Elapsed: %.2fs.",
            image_count, face_count, elapsed,
        )

    return 0


if __name__ == "__main__":
    sys.exit(main())
