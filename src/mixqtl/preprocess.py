"""Turn raw read counts into regression-ready trc and asc problems.

Two preprocessors share one shape: transform the counts into a
log-ratio response, drop observations that fail the count filters,
drop variant columns that are monomorphic among the surviving rows,
regress, and scatter the estimates back to the original variant order.

Total read count (trc)
----------------------
The response is ``log(trc / 2 / lib_size) − cov``, the per-haplotype
expression on the log scale with the covariate offset removed.  It is
regressed on the mean haplotype dosage ``(h1 + h2) / 2`` *with* an
intercept, via :func:`~mixqtl.regression.batch_bivariate_ols` whose
second predictor is a column of ones.

Allele-specific count (asc)
---------------------------
The response is ``log(asc1 / asc2)``, regressed without intercept on
the haplotype contrast ``h1 − h2`` by weighted least squares.  The
variance of a log count ratio is approximately ``1/asc1 + 1/asc2``, so
the precision weight is its reciprocal::

    w = asc1 · asc2 / (asc1 + asc2)

Weights are capped at ``min(w) · min(weight_cap, ⌊N / 10⌋)`` so that
no single deeply-sequenced sample dominates, with a tighter cap for
small samples.  Weighting is applied by scaling the response and every
design column by ``√w``.

Alignment
---------
Both functions return ``(1, P)`` arrays whatever is filtered: a column
dropped as monomorphic, or every column when fewer than three
observations survive, is ``NaN`` at its original index.
"""

from __future__ import annotations

import logging

import numpy as np

from ._compat import ArrayLikeInput, _as_matrix, _as_vector
from ._config import (
    DEFAULT_ASC_CAP,
    DEFAULT_ASC_CUTOFF,
    DEFAULT_TRC_CUTOFF,
    DEFAULT_WEIGHT_CAP,
)
from ._results import QTLFit
from .exceptions import DimensionMismatch
from .regression import batch_bivariate_ols, batch_univariate_ols

logger = logging.getLogger(__name__)

_MIN_SAMPLE_SIZE = 3


def monomorphic_columns(x: np.ndarray) -> np.ndarray:
    """Boolean ``(P,)`` mask of columns whose values are all identical.

    Equivalent to a zero sample variance, but computed as
    ``max == min`` so that round-off in the mean cannot hide a constant
    column.  An input with no rows counts every column as monomorphic.
    """
    if x.shape[0] == 0:
        return np.ones(x.shape[1], dtype=bool)
    return np.ptp(x, axis=0) == 0


def harmonic_sum(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """``a·b / (a + b)``, i.e. ``1 / (1/a + 1/b)``."""
    return a * b / (a + b)


def cap_weights(weights: np.ndarray, weight_cap: float) -> np.ndarray:
    """Clip *weights* to ``min(weights) · min(weight_cap, ⌊N / 10⌋)``.

    With fewer than ten weights the effective cap is zero and every
    weight is clipped to zero.

    Args:
        weights: Positive precision weights ``(N,)``.
        weight_cap: Largest allowed ratio to the smallest weight.

    Returns:
        A new array; *weights* is not modified.
    """
    effective_cap = min(weight_cap, np.floor(weights.shape[0] / 10))
    cutoff = weights.min() * effective_cap
    return np.minimum(weights, cutoff)


def _empty_fit(n_variants: int, sample_size: int, monomorphic: np.ndarray) -> QTLFit:
    return QTLFit(
        beta_hat=np.full((1, n_variants), np.nan),
        beta_se=np.full((1, n_variants), np.nan),
        sample_size=sample_size,
        monomorphic=monomorphic,
    )


def _check_non_negative(**params: float) -> None:
    for name, value in params.items():
        if value < 0:
            raise ValueError(f"'{name}' must be non-negative, got {value}.")


def _check_rows(n_obs: int, **arrays: np.ndarray) -> None:
    for name, arr in arrays.items():
        if arr.shape[0] != n_obs:
            raise DimensionMismatch(
                f"'{name}' has {arr.shape[0]} observations; expected {n_obs}."
            )


def _gate(sample_size: int, keep_cols: np.ndarray, label: str) -> bool:
    """Whether enough rows and columns survive to run the regression."""
    logger.debug(
        "%s: %d of %d variants monomorphic after filtering",
        label,
        int((~keep_cols).sum()),
        keep_cols.size,
    )
    if sample_size < _MIN_SAMPLE_SIZE:
        logger.debug(
            "%s: only %d observations after filtering; skipping regression",
            label,
            sample_size,
        )
        return False
    if not keep_cols.any():
        logger.debug("%s: every variant is monomorphic; skipping regression", label)
        return False
    return True


def trc_regression(
    trc: ArrayLikeInput,
    lib_size: ArrayLikeInput,
    x: ArrayLikeInput,
    cov: ArrayLikeInput,
    trc_cutoff: float = DEFAULT_TRC_CUTOFF,
    *,
    backend: str | None = None,
    n_jobs: int = 1,
) -> QTLFit:
    """Total-read-count QTL regression for many variants at once.

    Args:
        trc: Total read count per sample ``(N,)``.
        lib_size: Library size per sample ``(N,)``.
        x: Genotype ``(N, P)`` as mean haplotype dosage,
            ``(h1 + h2) / 2``.  A 1-D array is one variant.
        cov: Covariate offset on the ``log(trc / 2)`` scale ``(N,)``.
        trc_cutoff: Samples with ``trc`` below this are dropped.
        backend: Compute backend, see :func:`~mixqtl.set_backend`.
        n_jobs: Threads for the NumPy backend's column split.

    Returns:
        :class:`~mixqtl._results.QTLFit`; ``beta_hat`` is the estimated
        log allelic fold change per variant.

    Raises:
        DimensionMismatch: If the inputs disagree on N.
        ValueError: If *trc_cutoff* is negative.
    """
    _check_non_negative(trc_cutoff=trc_cutoff)
    trc_in = _as_vector(trc, name="trc")
    lib = _as_vector(lib_size, name="lib_size")
    offset = _as_vector(cov, name="cov")
    geno = _as_matrix(x, name="x")
    _check_rows(trc_in.shape[0], lib_size=lib, cov=offset, x=geno)

    with np.errstate(divide="ignore", invalid="ignore"):
        response = np.log(trc_in / 2 / lib) - offset

    keep_rows = np.isfinite(response) & (trc_in >= trc_cutoff)
    response = response[keep_rows]
    geno = geno[keep_rows]
    sample_size = int(keep_rows.sum())
    logger.debug(
        "trc: kept %d of %d observations (trc_cutoff=%s)",
        sample_size,
        trc_in.shape[0],
        trc_cutoff,
    )

    mono = monomorphic_columns(geno)
    keep_cols = ~mono
    fit = _empty_fit(geno.shape[1], sample_size, mono)
    if not _gate(sample_size, keep_cols, "trc"):
        return fit

    x_kept = geno[:, keep_cols]
    intercept = np.ones_like(x_kept)
    out = batch_bivariate_ols(
        response,
        x_kept,
        intercept,
        sample_size,
        backend=backend,
        n_jobs=n_jobs,
    )
    fit.beta_hat[:, keep_cols] = out.beta1_hat
    fit.beta_se[:, keep_cols] = out.beta1_se
    return fit


def asc_regression(
    asc1: ArrayLikeInput,
    asc2: ArrayLikeInput,
    x: ArrayLikeInput,
    asc_cutoff: float = DEFAULT_ASC_CUTOFF,
    weight_cap: float = DEFAULT_WEIGHT_CAP,
    asc_cap: float = DEFAULT_ASC_CAP,
    *,
    backend: str | None = None,
    n_jobs: int = 1,
) -> QTLFit:
    """Allele-specific-count QTL regression for many variants at once.

    Args:
        asc1: Allele-specific read count of haplotype 1 ``(N,)``.
        asc2: Allele-specific read count of haplotype 2 ``(N,)``.
        x: Genotype contrast ``(N, P)``, ``h1 − h2``.  A 1-D array is
            one variant.
        asc_cutoff: Samples with either count below this are dropped.
        weight_cap: Largest allowed ratio between the biggest and the
            smallest precision weight (further limited to ``⌊N / 10⌋``).
        asc_cap: Samples with either count above this are dropped.
        backend: Compute backend, see :func:`~mixqtl.set_backend`.
        n_jobs: Threads for the NumPy backend's column split.

    Returns:
        :class:`~mixqtl._results.QTLFit`; ``beta_hat`` is the estimated
        log allelic fold change per variant.

    Raises:
        DimensionMismatch: If the inputs disagree on N.
        ValueError: If a cutoff or cap is negative.
    """
    _check_non_negative(asc_cutoff=asc_cutoff, weight_cap=weight_cap, asc_cap=asc_cap)
    a1 = _as_vector(asc1, name="asc1")
    a2 = _as_vector(asc2, name="asc2")
    geno = _as_matrix(x, name="x")
    _check_rows(a1.shape[0], asc2=a2, x=geno)

    keep_rows = (
        (a1 >= asc_cutoff) & (a2 >= asc_cutoff) & (a1 <= asc_cap) & (a2 <= asc_cap)
    )
    a1 = a1[keep_rows]
    a2 = a2[keep_rows]
    geno = geno[keep_rows]
    sample_size = int(keep_rows.sum())
    logger.debug(
        "asc: kept %d of %d observations (asc_cutoff=%s, asc_cap=%s)",
        sample_size,
        keep_rows.shape[0],
        asc_cutoff,
        asc_cap,
    )

    mono = monomorphic_columns(geno)
    keep_cols = ~mono
    fit = _empty_fit(geno.shape[1], sample_size, mono)
    if not _gate(sample_size, keep_cols, "asc"):
        return fit

    if sample_size < 10:
        logger.debug(
            "asc: %d observations gives a zero weight cap; estimates will be NaN",
            sample_size,
        )
    response = np.log(a1 / a2)
    weights = cap_weights(harmonic_sum(a1, a2), weight_cap)
    root_w = np.sqrt(weights)

    out = batch_univariate_ols(
        response * root_w,
        geno[:, keep_cols] * root_w[:, np.newaxis],
        sample_size,
        backend=backend,
        n_jobs=n_jobs,
    )
    fit.beta_hat[:, keep_cols] = out.beta_hat
    fit.beta_se[:, keep_cols] = out.beta_se
    return fit
