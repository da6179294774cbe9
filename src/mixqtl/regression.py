"""Batched no-intercept least squares from sufficient statistics.

Two regressors solve many independent problems in one vectorised pass:

* :func:`batch_univariate_ols` — ``y_k = x_p · β + ε`` for every
  response column *k* of ``Y`` and every variant column *p* of ``X``.
* :func:`batch_bivariate_ols` — ``y_k = x1_p · β₁ + x2_p · β₂ + ε``,
  pairing column *p* of ``X1`` with column *p* of ``X2``.

Closed form
-----------
Neither regressor materialises residuals.  With the cross-products
``S_xx = Σx²``, ``S_xy = Σxy``, ``S_yy = Σy²`` the univariate solution
is::

    β̂   = S_xy / S_xx
    RSS = S_yy − 2 β̂ S_xy + β̂² S_xx
    σ̂²  = RSS / (n − 1)
    se  = σ̂ / √S_xx

and the bivariate one solves the 2 × 2 normal equations by Cramer's
rule with ``Δ = |S11·S22 − S12²|``::

    β̂₁ = (S22·T1 − S12·T2) / Δ        se₁ = σ̂ √(S22 / Δ)
    β̂₂ = (S11·T2 − S12·T1) / Δ        se₂ = σ̂ √(S11 / Δ)
    σ̂² = RSS / (n − 2)

Sample sizes
------------
``n`` is supplied by the caller rather than read off ``Y`` because the
rows handed in may be zero-padded or weighted.  Its layout is
``(K, P)``: the last axis must match the variant axis of ``X``.
A ``(1, P)`` row, a ``(P,)`` vector, or a scalar is broadcast.

Degenerate columns
------------------
A zero-variance predictor (``S_xx == 0``), a collinear pair
(``Δ == 0``), or too few observations (``n <= 1`` / ``n <= 2``) makes
the closed form undefined.  The batch still completes: affected entries
are ``NaN`` and a single :class:`~mixqtl.exceptions.DegenerateColumnWarning`
reports how many there were.  Callers that know which columns are
degenerate (see :mod:`mixqtl.preprocess`) should drop them beforehand.
"""

from __future__ import annotations

import logging
import warnings

import numpy as np

from ._backends import resolve_backend
from ._compat import ArrayLikeInput, _as_matrix
from ._results import BivariateFit, UnivariateFit
from .exceptions import (
    DegenerateColumnWarning,
    DimensionMismatch,
    find_stack_level,
)

logger = logging.getLogger(__name__)


def _broadcast_sample_size(
    n: ArrayLikeInput | float, n_responses: int, n_variants: int
) -> np.ndarray:
    """Broadcast *n* to ``(K, P)``.

    Raises:
        DimensionMismatch: If the column count of *n* differs from the
            number of variants, or its rows cannot broadcast to K.
    """
    n_arr = np.asarray(n, dtype=np.float64)
    if n_arr.ndim == 0:
        return np.full((n_responses, n_variants), float(n_arr))
    if n_arr.ndim > 2 or n_arr.shape[-1] != n_variants:
        raise DimensionMismatch(
            f"Sample-size matrix has shape {n_arr.shape}; its number of "
            f"columns must equal the number of variants ({n_variants})."
        )
    if n_arr.ndim == 2 and n_arr.shape[0] not in (1, n_responses):
        raise DimensionMismatch(
            f"Sample-size matrix has {n_arr.shape[0]} rows; expected 1 or "
            f"the number of responses ({n_responses})."
        )
    return np.broadcast_to(n_arr, (n_responses, n_variants))


def _mask_non_finite(
    *arrays: np.ndarray, stacklevel: int | None = None
) -> tuple[np.ndarray, ...]:
    """Replace ``±inf`` with ``NaN`` and warn once if anything was invalid.

    A (k, p) entry is treated as invalid in every returned array as soon
    as any of the arrays is non-finite there, so an estimate is never
    reported without its standard error.  The warning is attributed to
    the first caller outside the package unless *stacklevel* is given.
    """
    invalid = np.zeros(arrays[0].shape, dtype=bool)
    for arr in arrays:
        invalid |= ~np.isfinite(arr)

    n_invalid = int(invalid.sum())
    if n_invalid == 0:
        return arrays

    logger.debug("%d of %d fits were degenerate", n_invalid, invalid.size)
    warnings.warn(
        f"{n_invalid} of {invalid.size} (response, variant) fits are "
        "degenerate (zero predictor variance, collinear predictors, or "
        "too few observations); their estimates are NaN.",
        DegenerateColumnWarning,
        stacklevel=find_stack_level() if stacklevel is None else stacklevel,
    )
    return tuple(np.where(invalid, np.nan, arr) for arr in arrays)


def batch_univariate_ols(
    Y: ArrayLikeInput,
    X: ArrayLikeInput,
    n: ArrayLikeInput | float,
    *,
    backend: str | None = None,
    n_jobs: int = 1,
) -> UnivariateFit:
    """Fit ``y_k = x_p · β + ε`` (no intercept) for every (k, p) pair.

    Args:
        Y: Responses ``(N, K)``; a 1-D array is one response.
        X: Predictors ``(N, P)``; a 1-D array is one variant.
        n: Sample sizes ``(K, P)``, ``(1, P)``, ``(P,)``, or scalar.
        backend: ``"numpy"``, ``"jax"``, or ``None`` for the configured
            default.
        n_jobs: Number of threads the NumPy backend uses to split the
            variant columns.  ``-1`` means all cores.

    Returns:
        :class:`~mixqtl._results.UnivariateFit` with ``(K, P)`` arrays.

    Raises:
        DimensionMismatch: If ``Y`` and ``X`` differ in row count or
            ``n`` does not have one column per variant.
    """
    Y_arr = _as_matrix(Y, name="Y")
    X_arr = _as_matrix(X, name="X")
    if Y_arr.shape[0] != X_arr.shape[0]:
        raise DimensionMismatch(
            f"Y has {Y_arr.shape[0]} rows but X has {X_arr.shape[0]}."
        )
    n_mat = _broadcast_sample_size(n, Y_arr.shape[1], X_arr.shape[1])

    kernels = resolve_backend(backend)
    beta_hat, beta_se = kernels.batch_univariate(Y_arr, X_arr, n_mat, n_jobs=n_jobs)
    beta_hat, beta_se = _mask_non_finite(beta_hat, beta_se)
    return UnivariateFit(beta_hat=beta_hat, beta_se=beta_se)


def batch_bivariate_ols(
    Y: ArrayLikeInput,
    X1: ArrayLikeInput,
    X2: ArrayLikeInput,
    n: ArrayLikeInput | float,
    *,
    backend: str | None = None,
    n_jobs: int = 1,
) -> BivariateFit:
    """Fit ``y_k = x1_p · β₁ + x2_p · β₂ + ε`` (no intercept) per (k, p).

    Column *p* of ``X1`` is paired with column *p* of ``X2``.  Passing a
    column of ones as ``X2`` gives simple regression with an intercept,
    with ``β₁`` the slope.

    Args:
        Y: Responses ``(N, K)``; a 1-D array is one response.
        X1: First predictors ``(N, P)``.
        X2: Second predictors ``(N, P)``.
        n: Sample sizes ``(K, P)``, ``(1, P)``, ``(P,)``, or scalar.
        backend: ``"numpy"``, ``"jax"``, or ``None`` for the configured
            default.
        n_jobs: Number of threads the NumPy backend uses to split the
            variant columns.

    Returns:
        :class:`~mixqtl._results.BivariateFit` with ``(K, P)`` arrays.

    Raises:
        DimensionMismatch: If ``Y``, ``X1`` and ``X2`` differ in row
            count, ``X1`` and ``X2`` differ in column count, or ``n``
            does not have one column per variant.
    """
    Y_arr = _as_matrix(Y, name="Y")
    X1_arr = _as_matrix(X1, name="X1")
    X2_arr = _as_matrix(X2, name="X2")
    if not Y_arr.shape[0] == X1_arr.shape[0] == X2_arr.shape[0]:
        raise DimensionMismatch(
            f"Row counts disagree: Y has {Y_arr.shape[0]}, X1 has "
            f"{X1_arr.shape[0]}, X2 has {X2_arr.shape[0]}."
        )
    if X1_arr.shape[1] != X2_arr.shape[1]:
        raise DimensionMismatch(
            f"X1 has {X1_arr.shape[1]} columns but X2 has {X2_arr.shape[1]}."
        )
    n_mat = _broadcast_sample_size(n, Y_arr.shape[1], X1_arr.shape[1])

    kernels = resolve_backend(backend)
    out = kernels.batch_bivariate(Y_arr, X1_arr, X2_arr, n_mat, n_jobs=n_jobs)
    beta1_hat, beta1_se, beta2_hat, beta2_se = _mask_non_finite(*out)
    return BivariateFit(
        beta1_hat=beta1_hat,
        beta1_se=beta1_se,
        beta2_hat=beta2_hat,
        beta2_se=beta2_se,
    )
