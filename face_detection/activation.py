"""
Score activation for raw confidence logits.

Both activations work in place on a mutable float buffer and return
None; the mutation is the result. Which one to use depends on how the
paired model was trained, and is chosen once per detector configuration.

Softmax is taken over the whole buffer as a single group, matching the
single-class confidence output of the face model.
"""

from enum import Enum
from typing import MutableSequence, Union

import numpy as np

from face_detection.errors import DecodeError

ScoreBuffer = Union[np.ndarray, MutableSequence[float]]


class Activation(str, Enum):
    SIGMOID = "sigmoid"
    SOFTMAX = "softmax"


def _check_float_array(scores: np.ndarray) -> None:
    if not np.issubdtype(scores.dtype, np.floating):
        raise TypeError(
            f"In-place activation needs a floating point array, got dtype {scores.dtype}."
        )


def sigmoid_(scores: ScoreBuffer) -> None:
    """Apply 1 / (1 + exp(-x)) to every element of scores, in place."""
    if isinstance(scores, np.ndarray):
        _check_float_array(scores)
        # exp(-x) overflowing to inf for very negative x yields the
        # correct limit of 0.0.
        with np.errstate(over="ignore"):
            np.negative(scores, out=scores)
            np.exp(scores, out=scores)
            scores += 1.0
            np.reciprocal(scores, out=scores)
        return

    values = np.asarray(scores, dtype=np.float64)
    sigmoid_(values)
    scores[:] = values.tolist()


def softmax_(scores: ScoreBuffer) -> None:
    """Apply exp(x_i) / sum(exp(x_j)) over the whole buffer, in place."""
    if isinstance(scores, np.ndarray):
        _check_float_array(scores)
        if scores.size == 0:
            return
        # Shifting by the max leaves the result unchanged and keeps exp()
        # from overflowing on large logits.
        scores -= np.max(scores)
        np.exp(scores, out=scores)
        scores /= np.sum(scores)
        return

    values = np.asarray(scores, dtype=np.float64)
    softmax_(values)
    scores[:] = values.tolist()


def activate(kind: Union[Activation, str], scores: ScoreBuffer) -> None:
    """Apply the activation named by kind to scores, in place.

    Raises:
        DecodeError: If kind is not a known activation.
    """
    try:
        kind = Activation(kind)
    except ValueError:
        raise DecodeError(
            f"Unknown score activation: '{kind}'. "
            f"Must be one of {[a.value for a in Activation]}."
        ) from None

    if kind is Activation.SIGMOID:
        sigmoid_(scores)
    else:
        softmax_(scores)
