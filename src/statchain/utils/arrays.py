"""Helpers for normalising samples fed to accumulator chains."""

from __future__ import annotations

from typing import Any

import numpy as np


def _as_sample(value: Any) -> int | float | np.ndarray:
    """Return a sample as a Python number or a numeric array.

    Parameters
    ----------
    value
        A Python number, numpy scalar, sequence or array.

    Returns
    -------
    int | float | np.ndarray
        A Python number for zero-dimensional input, otherwise an array keeping
        the input's element dtype.

    Raises
    ------
    TypeError
        If the sample is not numeric.
    """
    arr = np.asarray(value)
    if arr.dtype.kind not in "biuf":
        raise TypeError(f"Samples must be numeric, got dtype {arr.dtype}")
    if arr.ndim == 0:
        return arr.item()
    return arr


def _sample_shape(value: Any) -> tuple[int, ...]:
    """Return the shape of a sample, ``()`` for scalars."""
    return tuple(np.shape(value))


def _element_dtype(value: Any) -> np.dtype:
    """Return the element dtype of a sample.

    Python integers map to int64, other Python numbers to float64 and booleans
    are promoted to int64.
    """
    dtype = value.dtype if isinstance(value, (np.ndarray, np.generic)) else np.asarray(value).dtype
    if dtype.kind == "b":
        return np.dtype(np.int64)
    if dtype.kind in "iuf":
        return dtype
    return np.dtype(np.float64)


def _extreme(dtype: np.dtype, *, lowest: bool) -> float | int:
    """Return the smallest or largest representable value for ``dtype``.

    Floating dtypes use infinities so that any finite sample replaces them.
    """
    if dtype.kind == "f":
        return -np.inf if lowest else np.inf
    if dtype.kind in "iu":
        info = np.iinfo(dtype)
        return int(info.min) if lowest else int(info.max)
    raise TypeError(f"Unsupported sample dtype for extrema: {dtype}")


def _readonly(value: np.ndarray) -> np.ndarray:
    """Return a read-only view of ``value``."""
    view = value.view()
    view.flags.writeable = False
    return view
