"""
income_engine/normalizer.py
---------------------------
Scale raw score vectors onto a common 0-100 range.

Both functions accept any sequence of numbers (or ``None``) and return a
float numpy array of the same length.
"""

from __future__ import annotations

import numpy as np

from income_engine.config import NEUTRAL_SCORE


def _as_float_array(values) -> np.ndarray:
    return np.array(
        [np.nan if v is None else v for v in values],
        dtype=float,
    )


def scale_0_to_100(values) -> np.ndarray:
    """
    Min-max scale *values* to ``[0, 100]``.

    Edge cases
    ----------
    * Empty input → empty array
    * All identical → ``50`` for every entry (neutral, no penalisation)
    """
    arr = _as_float_array(values)
    if arr.size == 0:
        return arr

    min_v = arr.min()
    max_v = arr.max()

    if max_v == min_v:
        return np.full(arr.shape, NEUTRAL_SCORE)

    scaled = (arr - min_v) / (max_v - min_v) * 100.0
    return np.clip(scaled, 0.0, 100.0)


def scale_safe(values) -> np.ndarray:
    """
    Like :func:`scale_0_to_100` but tolerant of missing values.

    Non-finite entries (``None``, NaN, ±inf) are filled with the minimum
    finite value present, so a gap never scores above real data.  When no
    finite value exists at all every entry is ``50``.
    """
    arr = _as_float_array(values)
    if arr.size == 0:
        return arr

    finite = np.isfinite(arr)
    if not finite.any():
        return np.full(arr.shape, NEUTRAL_SCORE)

    filled = np.where(finite, arr, arr[finite].min())
    return scale_0_to_100(filled)
