"""
Configuration management for the face detection system.

Provides a layered configuration system with the following precedence
(highest to lowest):

    CLI arguments > Environment variables > YAML config file > Defaults

Design constraints:
    - The system MUST run with zero configuration (safe defaults only).
    - Missing or invalid values fail early and loudly.
    - No detection logic, I/O, or model loading belongs here.

Defaults describe the short-range face model: 128x128 input, 896 anchors
over strides [8, 16, 16, 16].

Non-goals:
    - No dynamic reloading.
    - No database-backed or remote configuration.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

import yaml

from face_detection.activation import Activation
from face_detection.anchors import AnchorGeneratorOptions, validate_options

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Project root resolution
# ---------------------------------------------------------------------------
# Resolved relative to this file's location: face_detection/config.py → repo root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent


def get_project_root() -> Path:
    """Return the resolved project root directory."""
    return _PROJECT_ROOT


# ---------------------------------------------------------------------------
# Configuration dataclasses
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ModelConfig:
    """Model-related configuration.

    Attributes:
        model_path: Path to the model file (relative to project root).
        input_size: Spatial dimensions (width, height) of the model input.
        data_layout: Input tensor layout, 'nhwc' or 'nchw'.
    """

    model_path: str = "models/face_detection_short_range.tflite"
    input_size: Tuple[int, int] = (128, 128)
    data_layout: str = "nhwc"


@dataclass(frozen=True)
class DetectionConfig:
    """Score activation and decoding parameters.

    Attributes:
        score_threshold: Activated score a detection must exceed.
        activation: 'sigmoid' or 'softmax', matching the model's training.
        regression_scale: Divisor for regression offsets; the square
                          input size the model was trained on.
    """

    score_threshold: float = 0.5
    activation: str = Activation.SIGMOID.value
    regression_scale: float = 128.0


def default_anchor_options() -> AnchorGeneratorOptions:
    """Anchor geometry of the short-range face model."""
    return AnchorGeneratorOptions(
        input_size_width=128,
        input_size_height=128,
        min_scale=0.1484375,
        max_scale=0.75,
        num_layers=4,
        anchor_offset_x=0.5,
        anchor_offset_y=0.5,
        strides=(8, 16, 16, 16),
        aspect_ratios=(1.0,),
        fixed_anchor_size=True,
        interpolated_scale_aspect_ratio=1.0,
        reduce_boxes_in_lowest_layer=False,
    )


@dataclass(frozen=True)
class InputConfig:
    """Input source configuration.

    Attributes:
        source: Image file or directory of images.
    """

    source: str = "images/"


@dataclass(frozen=True)
class OutputConfig:
    """Output behavior configuration.

    Attributes:
        mode: Output mode(s). Supports multiple comma-separated values:
              'print', 'display', 'save_image', 'save_json', 'save_csv'.
              Example: "print,save_json"
        save_path: Directory where output artifacts are written.
    """

    mode: str = "print"
    save_path: str = "output/"


@dataclass(frozen=True)
class VisualizationConfig:
    """Visualization rendering parameters.

    Attributes:
        box_color: BGR color tuple for bounding boxes.
        landmark_color: BGR color tuple for landmark dots.
        thickness: Line thickness in pixels.
        show_confidence: Whether to render the score label.
        show_landmarks: Whether to render the six landmarks.
    """

    box_color: Tuple[int, int, int] = (0, 0, 255)
    landmark_color: Tuple[int, int, int] = (0, 255, 0)
    thickness: int = 2
    show_confidence: bool = True
    show_landmarks: bool = True


@dataclass(frozen=True)
class AppConfig:
    """Top-level application configuration.

    Aggregates all sub-configurations into a single, frozen object.
    """

    model: ModelConfig = field(default_factory=ModelConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    anchors: AnchorGeneratorOptions = field(default_factory=default_anchor_options)
    input: InputConfig = field(default_factory=InputConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    visualization: VisualizationConfig = field(default_factory=VisualizationConfig)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

_VALID_LAYOUTS = {"nhwc", "nchw"}
_VALID_ACTIVATIONS = {a.value for a in Activation}
_VALID_OUTPUT_MODES = {"print", "display", "save_image", "save_json", "save_csv"}


def validate_config(config: AppConfig) -> None:
    """Validate configuration values. Raises ValueError on invalid state."""

    if config.model.data_layout not in _VALID_LAYOUTS:
        raise ValueError(
            f"Invalid model.data_layout: '{config.model.data_layout}'. "
            f"Must be one of {_VALID_LAYOUTS}."
        )

    if len(config.model.input_size) != 2 or any(d <= 0 for d in config.model.input_size):
        raise ValueError(
            f"model.input_size must be a positive (width, height) tuple, "
            f"got {config.model.input_size}."
        )

    if config.detection.activation not in _VALID_ACTIVATIONS:
        raise ValueError(
            f"Invalid detection.activation: '{config.detection.activation}'. "
            f"Must be one of {_VALID_ACTIVATIONS}."
        )

    if not (0.0 <= config.detection.score_threshold <= 1.0):
        raise ValueError(
            f"detection.score_threshold must be in [0.0, 1.0], "
            f"got {config.detection.score_threshold}."
        )

    if config.detection.regression_scale <= 0:
        raise ValueError(
            f"detection.regression_scale must be positive, "
            f"got {config.detection.regression_scale}."
        )

    modes = set(m.strip() for m in config.output.mode.split(","))
    invalid_modes = modes - _VALID_OUTPUT_MODES
    if invalid_modes:
        raise ValueError(
            f"Invalid output.mode(s): {invalid_modes}. "
            f"Valid modes: {_VALID_OUTPUT_MODES}. "
            f"Use comma-separated values for multiple outputs."
        )

    # AnchorGeometryError is a ValueError, so callers see one error family.
    validate_options(config.anchors)


# ---------------------------------------------------------------------------
# YAML loading
# ---------------------------------------------------------------------------

def _parse_tuple(value, expected_len: int, cast_type=float):
    """Convert a list from YAML into a tuple of the expected type and length."""
    if isinstance(value, (list, tuple)):
        if len(value) != expected_len:
            raise ValueError(
                f"Expected {expected_len} values, got {len(value)}: {value}"
            )
        return tuple(cast_type(v) for v in value)
    return value


def _parse_list(value, cast_type=float) -> tuple:
    """Convert a YAML list, or a comma-separated string from env, to a tuple."""
    if isinstance(value, str):
        value = [v for v in value.split(",") if v.strip()]
    return tuple(cast_type(v) for v in value)


def _parse_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _build_model_config(raw: dict) -> ModelConfig:
    """Build ModelConfig from a raw YAML dict."""
    kwargs = {}
    if "model_path" in raw:
        kwargs["model_path"] = str(raw["model_path"])
    if "input_size" in raw:
        kwargs["input_size"] = _parse_tuple(raw["input_size"], 2, int)
    if "data_layout" in raw:
        kwargs["data_layout"] = str(raw["data_layout"]).lower()
    return ModelConfig(**kwargs)


def _build_detection_config(raw: dict) -> DetectionConfig:
    """Build DetectionConfig from a raw YAML dict."""
    kwargs = {}
    if "score_threshold" in raw:
        kwargs["score_threshold"] = float(raw["score_threshold"])
    if "activation" in raw:
        kwargs["activation"] = str(raw["activation"]).lower()
    if "regression_scale" in raw:
        kwargs["regression_scale"] = float(raw["regression_scale"])
    return DetectionConfig(**kwargs)


_ANCHOR_FIELD_TYPES = {
    "input_size_width": int,
    "input_size_height": int,
    "min_scale": float,
    "max_scale": float,
    "num_layers": int,
    "anchor_offset_x": float,
    "anchor_offset_y": float,
    "interpolated_scale_aspect_ratio": float,
    "min_level": int,
    "max_level": int,
    "anchor_scale": float,
    "scales_per_octave": int,
}
_ANCHOR_LIST_TYPES = {
    "feature_map_width": int,
    "feature_map_height": int,
    "strides": int,
    "aspect_ratios": float,
}
_ANCHOR_FLAGS = (
    "reduce_boxes_in_lowest_layer",
    "fixed_anchor_size",
    "multiscale_anchor_generation",
    "normalize_coordinates",
)


def _build_anchor_options(raw: dict) -> AnchorGeneratorOptions:
    """Build AnchorGeneratorOptions from a raw YAML dict over the defaults."""
    unknown = set(raw) - set(_ANCHOR_FIELD_TYPES) - set(_ANCHOR_LIST_TYPES) - set(_ANCHOR_FLAGS)
    if unknown:
        raise ValueError(f"Unknown anchors option(s): {sorted(unknown)}.")

    defaults = default_anchor_options()
    kwargs = {
        name: getattr(defaults, name)
        for name in (*_ANCHOR_FIELD_TYPES, *_ANCHOR_LIST_TYPES, *_ANCHOR_FLAGS)
    }
    for name, cast_type in _ANCHOR_FIELD_TYPES.items():
        if name in raw:
            kwargs[name] = cast_type(raw[name])
    for name, cast_type in _ANCHOR_LIST_TYPES.items():
        if name in raw:
            kwargs[name] = _parse_list(raw[name] or (), cast_type)
    for name in _ANCHOR_FLAGS:
        if name in raw:
            kwargs[name] = _parse_bool(raw[name])
    return AnchorGeneratorOptions(**kwargs)


def _build_input_config(raw: dict) -> InputConfig:
    """Build InputConfig from a raw YAML dict."""
    kwargs = {}
    if "source" in raw:
        kwargs["source"] = str(raw["source"])
    return InputConfig(**kwargs)


def _build_output_config(raw: dict) -> OutputConfig:
    """Build OutputConfig from a raw YAML dict."""
    kwargs = {}
    if "mode" in raw:
        kwargs["mode"] = str(raw["mode"]).lower()
    if "save_path" in raw:
        kwargs["save_path"] = str(raw["save_path"])
    return OutputConfig(**kwargs)


def _build_visualization_config(raw: dict) -> VisualizationConfig:
    """Build VisualizationConfig from a raw YAML dict."""
    kwargs = {}
    if "box_color" in raw:
        kwargs["box_color"] = _parse_tuple(raw["box_color"], 3, int)
    if "landmark_color" in raw:
        kwargs["landmark_color"] = _parse_tuple(raw["landmark_color"], 3, int)
    if "thickness" in raw:
        kwargs["thickness"] = int(raw["thickness"])
    if "show_confidence" in raw:
        kwargs["show_confidence"] = _parse_bool(raw["show_confidence"])
    if "show_landmarks" in raw:
        kwargs["show_landmarks"] = _parse_bool(raw["show_landmarks"])
    return VisualizationConfig(**kwargs)


# ---------------------------------------------------------------------------
# Environment variable overrides
# ---------------------------------------------------------------------------

_ENV_PREFIX = "FACE_DETECT_"


def _apply_env_overrides(raw: dict) -> dict:
    """Apply environment variable overrides to the raw config dict.

    Environment variables follow the pattern:
        FACE_DETECT_DETECTION_ACTIVATION=softmax
        FACE_DETECT_DETECTION_SCORE_THRESHOLD=0.7
    """
    env_map = {
        f"{_ENV_PREFIX}MODEL_PATH": ("model", "model_path"),
        f"{_ENV_PREFIX}MODEL_DATA_LAYOUT": ("model", "data_layout"),
        f"{_ENV_PREFIX}DETECTION_SCORE_THRESHOLD": ("detection", "score_threshold"),
        f"{_ENV_PREFIX}DETECTION_ACTIVATION": ("detection", "activation"),
        f"{_ENV_PREFIX}DETECTION_REGRESSION_SCALE": ("detection", "regression_scale"),
        f"{_ENV_PREFIX}INPUT_SOURCE": ("input", "source"),
        f"{_ENV_PREFIX}OUTPUT_MODE": ("output", "mode"),
        f"{_ENV_PREFIX}OUTPUT_SAVE_PATH": ("output", "save_path"),
    }

    for env_var, (section, key) in env_map.items():
        value = os.environ.get(env_var)
        if value is not None:
            section_raw = raw.get(section)
            if not isinstance(section_raw, dict):
                section_raw = raw[section] = {}
            section_raw[key] = value
            logger.debug("Config override from env: %s=%s", env_var, value)

    return raw


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------

def load_config(config_path: Optional[str] = None) -> AppConfig:
    """Load and validate application configuration.

    Precedence (highest → lowest):
        Environment variables > YAML file > Hard-coded defaults

    Args:
        config_path: Path to a YAML configuration file. If None,
                     the system runs entirely on defaults (safe for
                     programmatic usage).

    Returns:
        A validated, frozen AppConfig instance.

    Raises:
        FileNotFoundError: If config_path is provided but does not exist.
        ValueError: If any configuration value is invalid, or the YAML file
                    is malformed or not a mapping of sections.
    """
    raw: dict = {}

    # --- Layer 1: YAML file ---
    if config_path is not None:
        resolved = Path(config_path)
        if not resolved.is_absolute():
            resolved = _PROJECT_ROOT / resolved

        if not resolved.is_file():
            raise FileNotFoundError(
                f"Configuration file not found: {resolved}. "
                f"Provide a valid path or omit to use defaults."
            )

        logger.info("Loading config from: %s", resolved)
        with open(resolved, "r", encoding="utf-8") as f:
            try:
                raw = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ValueError(f"Malformed YAML in {resolved}: {e}") from e

        if not isinstance(raw, dict):
            raise ValueError(
                f"Configuration file {resolved} must contain a mapping of sections, "
                f"got {type(raw).__name__}."
            )
        for section, value in raw.items():
            if value is not None and not isinstance(value, dict):
                raise ValueError(
                    f"Configuration section '{section}' must be a mapping, "
                    f"got {type(value).__name__}: {value!r}."
                )

    # --- Layer 2: Environment variable overrides ---
    raw = _apply_env_overrides(raw)

    # --- Build typed configs ---
    config = AppConfig(
        model=_build_model_config(raw.get("model") or {}),
        detection=_build_detection_config(raw.get("detection") or {}),
        anchors=_build_anchor_options(raw.get("anchors") or {}),
        input=_build_input_config(raw.get("input") or {}),
        output=_build_output_config(raw.get("output") or {}),
        visualization=_build_visualization_config(raw.get("visualization") or {}),
    )

    # --- Validate ---
    validate_config(config)

    logger.debug("Configuration loaded: %s", config)
    return config
