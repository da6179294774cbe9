"""Input compatibility layer for pandas and optional Polars inputs.

All public API functions accept NumPy arrays.  This module adds
transparent support for pandas ``Series`` / ``DataFrame`` and Polars
``Series`` / ``DataFrame`` / ``LazyFrame`` objects: they are converted
to ``float64`` NumPy arrays at the boundary so that the regression
kernels only ever see plain arrays.

Polars is **not** a required dependency.  If it is not installed, the
converter simply handles NumPy and pandas objects.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, TypeAlias

import numpy as np
import pandas as pd

from .exceptions import DimensionMismatch

if TYPE_CHECKING:
    import polars as pl

    ArrayLikeInput: TypeAlias = (
        np.ndarray | pd.Series | pd.DataFrame | pl.Series | pl.DataFrame | pl.LazyFrame
    )
else:
    ArrayLikeInput: TypeAlias = Any

# Polars is optional.
try:
    import polars as pl

    _HAS_POLARS = True
except ImportError:
    _HAS_POLARS = False


def _to_numpy(obj: ArrayLikeInput, *, name: str = "input") -> np.ndarray:
    """Convert *obj* to a ``float64`` :class:`numpy.ndarray`.

    Accepted types:
        * ``numpy.ndarray`` and anything ``np.asarray`` understands.
        * ``pandas.Series`` / ``pandas.DataFrame`` — via ``.to_numpy()``.
        * ``polars.Series`` / ``polars.DataFrame`` — via ``.to_numpy()``.
        * ``polars.LazyFrame`` — collected then converted.

    Args:
        obj: Array-like input.
        name: Label used in error messages (e.g. ``"X"`` or ``"trc"``).

    Returns:
        A ``float64`` NumPy array.

    Raises:
        TypeError: If *obj* cannot be interpreted as a numeric array.
    """
    if isinstance(obj, (pd.Series, pd.DataFrame)):
        return obj.to_numpy(dtype=np.float64)

    if _HAS_POLARS:
        if isinstance(obj, pl.LazyFrame):
            return obj.collect().to_numpy().astype(np.float64)
        if isinstance(obj, (pl.DataFrame, pl.Series)):
            return obj.to_numpy().astype(np.float64)

    try:
        return np.asarray(obj, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise TypeError(
            f"'{name}' must be numeric array-like, got {type(obj).__name__}."
        ) from exc


def _as_matrix(obj: ArrayLikeInput, *, name: str = "input") -> np.ndarray:
    """Convert *obj* to a 2-D ``(N, P)`` array.

    A 1-D input of length N is treated as a single column.

    Raises:
        DimensionMismatch: If *obj* has more than two dimensions.
    """
    arr = _to_numpy(obj, name=name)
    if arr.ndim == 1:
        return arr[:, np.newaxis]
    if arr.ndim != 2:
        raise DimensionMismatch(
            f"'{name}' must be 1-D or 2-D, got an array with shape {arr.shape}."
        )
    return arr


def _as_vector(obj: ArrayLikeInput, *, name: str = "input") -> np.ndarray:
    """Convert *obj* to a 1-D ``(N,)`` array.

    A 2-D input with a single column (or row) is flattened.

    Raises:
        DimensionMismatch: If *obj* cannot be read as a single vector.
    """
    arr = _to_numpy(obj, name=name)
    if arr.ndim == 2 and 1 in arr.shape:
        return arr.ravel()
    if arr.ndim != 1:
        raise DimensionMismatch(
            f"'{name}' must be a vector, got an array with shape {arr.shape}."
        )
    return arr
