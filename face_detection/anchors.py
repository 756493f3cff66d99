"""
SSD anchor generation.

Responsibility:
    Produce the fixed grid of reference boxes ("anchors") that a
    single-shot detector regresses against. Anchor index i must line up
    with row i of the model's regression output and entry i of its score
    output, so the emission order below is part of the contract.

Two mutually exclusive strategies:
    - SSD layers: layers sharing a stride are merged into one grid whose
      cells carry every (aspect_ratio, scale) shape of the merged layers.
    - Multiscale pyramid: one grid per pyramid level, with octave scales
      and aspect ratios combined per cell.

Non-goals:
    - No decoding of model output (see decoder).
    - No I/O.

All anchor coordinates are normalized to [0, 1] of the input image,
except multiscale anchors generated with normalize_coordinates=False.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from face_detection.errors import AnchorGeometryError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Anchor:
    """Reference box in normalized image coordinates."""

    x_center: float
    y_center: float
    w: float
    h: float


@dataclass(frozen=True)
class AnchorGeneratorOptions:
    """Geometry of the detector's output feature maps.

    Attributes:
        input_size_width: Model input width in pixels.
        input_size_height: Model input height in pixels.
        min_scale: Anchor scale of the first layer.
        max_scale: Anchor scale of the last layer.
        num_layers: Number of output feature maps.
        anchor_offset_x: Cell center offset, as a fraction of the stride.
        anchor_offset_y: Cell center offset, as a fraction of the stride.
        feature_map_width: Optional explicit grid width per layer.
        feature_map_height: Optional explicit grid height per layer.
        strides: Downsampling factor per layer.
        aspect_ratios: Aspect ratios placed at every cell.
        reduce_boxes_in_lowest_layer: Use three fixed boxes on layer 0.
        interpolated_scale_aspect_ratio: Aspect ratio of the extra anchor
            whose scale sits between this layer and the next. 0 disables it.
        fixed_anchor_size: Force every anchor to w = h = 1.0.
        multiscale_anchor_generation: Use the feature-pyramid strategy.
        min_level: Lowest pyramid level (multiscale only).
        max_level: Highest pyramid level (multiscale only).
        anchor_scale: Anchor size relative to the level stride (multiscale only).
        scales_per_octave: Intermediate scales per octave (multiscale only).
        normalize_coordinates: Normalize multiscale anchors to [0, 1].
        fixed_anchors: Precomputed anchors. When set, every other field
            is ignored and these are returned as-is.
    """

    input_size_width: int
    input_size_height: int
    min_scale: float
    max_scale: float
    num_layers: int
    anchor_offset_x: float = 0.5
    anchor_offset_y: float = 0.5
    feature_map_width: Tuple[int, ...] = ()
    feature_map_height: Tuple[int, ...] = ()
    strides: Tuple[int, ...] = ()
    aspect_ratios: Tuple[float, ...] = ()
    reduce_boxes_in_lowest_layer: bool = False
    interpolated_scale_aspect_ratio: float = 1.0
    fixed_anchor_size: bool = False
    multiscale_anchor_generation: bool = False
    min_level: int = 3
    max_level: int = 7
    anchor_scale: float = 4.0
    scales_per_octave: int = 2
    normalize_coordinates: bool = True
    fixed_anchors: Optional[Tuple[Anchor, ...]] = None

    def __post_init__(self) -> None:
        # Accept any sequence from callers but store tuples so the
        # options stay immutable once built.
        for name in ("feature_map_width", "feature_map_height", "strides", "aspect_ratios"):
            object.__setattr__(self, name, tuple(getattr(self, name)))
        if self.fixed_anchors is not None:
            object.__setattr__(self, "fixed_anchors", tuple(self.fixed_anchors))


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def validate_options(options: AnchorGeneratorOptions) -> None:
    """Check that the options describe a consistent layer layout.

    Raises:
        AnchorGeometryError: On any inconsistency that would otherwise
            produce a wrong anchor count.
    """
    if options.fixed_anchors is not None:
        return

    fm_w, fm_h = options.feature_map_width, options.feature_map_height
    if len(fm_w) != len(fm_h):
        raise AnchorGeometryError(
            f"feature_map_width and feature_map_height must have the same length, "
            f"got {len(fm_w)} and {len(fm_h)}."
        )
    if any(d <= 0 for d in fm_w + fm_h):
        raise AnchorGeometryError(
            f"Feature map dimensions must be positive, got "
            f"width={list(fm_w)}, height={list(fm_h)}."
        )
    if any(s <= 0 for s in options.strides):
        raise AnchorGeometryError(f"strides must be positive, got {list(options.strides)}.")
    if any(r <= 0 for r in options.aspect_ratios):
        raise AnchorGeometryError(
            f"aspect_ratios must be positive, got {list(options.aspect_ratios)}."
        )

    if options.multiscale_anchor_generation:
        num_levels = options.max_level - options.min_level + 1
        if num_levels < 1:
            raise AnchorGeometryError(
                f"max_level ({options.max_level}) must not be below "
                f"min_level ({options.min_level})."
            )
        if options.scales_per_octave < 1:
            raise AnchorGeometryError(
                f"scales_per_octave must be at least 1, got {options.scales_per_octave}."
            )
        sized_layers = len(fm_h) if fm_h else len(options.strides)
        if sized_layers < num_levels:
            raise AnchorGeometryError(
                f"Multiscale generation over {num_levels} levels needs a feature map "
                f"size or stride per level, got {sized_layers}."
            )
    else:
        if options.num_layers < 1:
            raise AnchorGeometryError(
                f"num_layers must be at least 1, got {options.num_layers}."
            )
        # Layer grouping walks the stride list, so it is required even
        # when explicit feature map sizes are given.
        if len(options.strides) != options.num_layers:
            raise AnchorGeometryError(
                f"Expected one stride per layer ({options.num_layers}), "
                f"got {len(options.strides)}: {list(options.strides)}."
            )
        if fm_h and len(fm_h) != options.num_layers:
            raise AnchorGeometryError(
                f"Expected one feature map size per layer ({options.num_layers}), "
                f"got {len(fm_h)}."
            )

    needs_input_size = not fm_h or (
        options.multiscale_anchor_generation and options.normalize_coordinates
    )
    if needs_input_size and (options.input_size_width <= 0 or options.input_size_height <= 0):
        raise AnchorGeometryError(
            f"Input size must be positive, got "
            f"{options.input_size_width}x{options.input_size_height}."
        )


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------

def _calculate_scale(min_scale: float, max_scale: float, stride_index: int, num_strides: int) -> float:
    if num_strides == 1:
        return min_scale
    return min_scale + (max_scale - min_scale) * stride_index / (num_strides - 1)


def _feature_map_size(options: AnchorGeneratorOptions, layer_id: int) -> Tuple[int, int]:
    """Return (height, width) of the grid for one layer."""
    if options.feature_map_height:
        return options.feature_map_height[layer_id], options.feature_map_width[layer_id]
    stride = options.strides[layer_id]
    return (
        math.ceil(options.input_size_height / stride),
        math.ceil(options.input_size_width / stride),
    )


def _layer_shapes(options: AnchorGeneratorOptions, first: int, last: int) -> List[Tuple[float, float]]:
    """Collect (width, height) shapes for the stride run [first, last)."""
    num_strides = len(options.strides)
    aspect_ratios: List[float] = []
    scales: List[float] = []

    for index in range(first, last):
        scale = _calculate_scale(options.min_scale, options.max_scale, index, num_strides)

        if index == 0 and options.reduce_boxes_in_lowest_layer:
            aspect_ratios.extend((1.0, 2.0, 0.5))
            scales.extend((0.1, scale, scale))
            continue

        for aspect_ratio in options.aspect_ratios:
            aspect_ratios.append(aspect_ratio)
            scales.append(scale)

        if options.interpolated_scale_aspect_ratio > 0.0:
            if index == num_strides - 1:
                scale_next = 1.0
            else:
                scale_next = _calculate_scale(
                    options.min_scale, options.max_scale, index + 1, num_strides
                )
            aspect_ratios.append(options.interpolated_scale_aspect_ratio)
            scales.append(math.sqrt(scale * scale_next))

    shapes = []
    for aspect_ratio, scale in zip(aspect_ratios, scales):
        ratio_sqrt = math.sqrt(aspect_ratio)
        shapes.append((scale * ratio_sqrt, scale / ratio_sqrt))
    return shapes


def _generate_ssd_anchors(options: AnchorGeneratorOptions) -> List[Anchor]:
    anchors: List[Anchor] = []

    layer_id = 0
    while layer_id < options.num_layers:
        last_same_stride_layer = layer_id
        while (
            last_same_stride_layer < len(options.strides)
            and options.strides[last_same_stride_layer] == options.strides[layer_id]
        ):
            last_same_stride_layer += 1

        shapes = _layer_shapes(options, layer_id, last_same_stride_layer)
        fm_height, fm_width = _feature_map_size(options, layer_id)

        for y in range(fm_height):
            y_center = (y + options.anchor_offset_y) / fm_height
            for x in range(fm_width):
                x_center = (x + options.anchor_offset_x) / fm_width
                for width, height in shapes:
                    if options.fixed_anchor_size:
                        anchors.append(Anchor(x_center, y_center, 1.0, 1.0))
                    else:
                        anchors.append(Anchor(x_center, y_center, width, height))

        layer_id = last_same_stride_layer

    return anchors


def _generate_multiscale_anchors(options: AnchorGeneratorOptions) -> List[Anchor]:
    anchors: List[Anchor] = []
    octave_scales = [
        2.0 ** (k / options.scales_per_octave) for k in range(options.scales_per_octave)
    ]

    for index, level in enumerate(range(options.min_level, options.max_level + 1)):
        level_stride = 2 ** level
        base_size = level_stride * options.anchor_scale
        fm_height, fm_width = _feature_map_size(options, index)

        for y in range(fm_height):
            for x in range(fm_width):
                for aspect_ratio in options.aspect_ratios:
                    ratio_sqrt = math.sqrt(aspect_ratio)
                    for scale in octave_scales:
                        x_center = (x + options.anchor_offset_x) * level_stride
                        y_center = (y + options.anchor_offset_y) * level_stride
                        w = scale * base_size * ratio_sqrt
                        h = scale * base_size / ratio_sqrt
                        if options.normalize_coordinates:
                            x_center /= options.input_size_width
                            w /= options.input_size_width
                            y_center /= options.input_size_height
                            h /= options.input_size_height
                        anchors.append(Anchor(x_center, y_center, w, h))

    return anchors


def generate_anchors(options: AnchorGeneratorOptions) -> List[Anchor]:
    """Generate the ordered anchor list for a detector geometry.

    Args:
        options: Feature map geometry of the paired model.

    Returns:
        Anchors in model output order. If options.fixed_anchors is set,
        those anchors are returned unchanged.

    Raises:
        AnchorGeometryError: If the options are inconsistent.
    """
    if options.fixed_anchors is not None:
        return list(options.fixed_anchors)

    validate_options(options)

    if options.multiscale_anchor_generation:
        anchors = _generate_multiscale_anchors(options)
    else:
        anchors = _generate_ssd_anchors(options)

    logger.debug("Generated %d anchors", len(anchors))
    return anchors


def anchors_to_array(anchors: Sequence[Anchor]) -> np.ndarray:
    """Stack anchors into an (N, 4) float64 array of [x_center, y_center, w, h]."""
    if not anchors:
        return np.zeros((0, 4), dtype=np.float64)
    return np.array(
        [(a.x_center, a.y_center, a.w, a.h) for a in anchors],
        dtype=np.float64,
    )
