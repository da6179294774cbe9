"""Combine trc and asc estimates by inverse-variance meta-analysis.

The trc and asc regressions estimate the same quantity, the log
allelic fold change, from independent parts of the data (total counts
versus the allelic split of the heterozygous reads).  Each is
summarised as a :class:`~mixqtl._results.TestBundle`; when both rest
on at least ``n_cutoff`` observations they are also pooled with
weights ``w = 1 / se²``::

    β̂_meta  = (w_trc·β̂_trc + w_asc·β̂_asc) / (w_trc + w_asc)
    se_meta = √(1 / (w_trc + w_asc))

The pooled statistic is always referred to the standard normal.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import numpy as np

from ._config import DEFAULT_N_CUTOFF
from ._results import MetaAnalysisResult, QTLFit, TestBundle
from .exceptions import DimensionMismatch
from .pvalues import StatType, stat_type_for, two_sided_p_values

logger = logging.getLogger(__name__)


def _unpack(
    fit: QTLFit | Mapping[str, Any], label: str
) -> tuple[np.ndarray, np.ndarray, int]:
    """Pull ``(beta_hat, beta_se, sample_size)`` out of a fit or mapping."""
    try:
        bhat = np.asarray(fit["beta_hat"], dtype=np.float64).ravel()
        se = np.asarray(fit["beta_se"], dtype=np.float64).ravel()
        sample_size = int(fit["sample_size"])
    except KeyError as exc:
        raise ValueError(f"'{label}' is missing the field {exc.args[0]!r}.") from None
    if bhat.shape != se.shape:
        raise DimensionMismatch(
            f"'{label}' has {bhat.size} estimates but {se.size} standard errors."
        )
    return bhat, se, sample_size


def _bundle(
    bhat: np.ndarray, se: np.ndarray, stat_type: StatType, method: str
) -> TestBundle:
    with np.errstate(divide="ignore", invalid="ignore"):
        stat = bhat / se
    return TestBundle(
        pval=two_sided_p_values(stat, stat_type),
        stat=stat,
        stat_type=stat_type,
        bhat=bhat,
        se=se,
        method=method,  # type: ignore[arg-type]
    )


def inverse_variance_combine(
    bhat: list[np.ndarray], se: list[np.ndarray]
) -> tuple[np.ndarray, np.ndarray]:
    """Fixed-effect combination of independent estimates.

    Args:
        bhat: Estimates, one ``(P,)`` array per study.
        se: Matching standard errors.

    Returns:
        ``(bhat_meta, se_meta)``, each ``(P,)``.  Both are ``NaN``
        wherever any input estimate or standard error is non-finite, or
        a standard error is zero.
    """
    with np.errstate(divide="ignore", invalid="ignore"):
        weights = [1.0 / s**2 for s in se]
        total = np.sum(weights, axis=0)
        weighted = [w * b for w, b in zip(weights, bhat, strict=True)]
        bhat_meta = np.sum(weighted, axis=0) / total
        se_meta = np.sqrt(1.0 / total)

    invalid = ~(np.isfinite(bhat_meta) & np.isfinite(se_meta))
    for arr in (*bhat, *se):
        invalid |= ~np.isfinite(arr)
    for s in se:
        invalid |= s == 0
    return np.where(invalid, np.nan, bhat_meta), np.where(invalid, np.nan, se_meta)


def meta_analyze(
    trc: QTLFit | Mapping[str, Any],
    asc: QTLFit | Mapping[str, Any],
    n_cutoff: int = DEFAULT_N_CUTOFF,
) -> MetaAnalysisResult:
    """Per-method tests and their inverse-variance meta-analysis.

    Args:
        trc: Output of :func:`~mixqtl.preprocess.trc_regression`, or any
            mapping with ``beta_hat``, ``beta_se`` and ``sample_size``.
        asc: Output of :func:`~mixqtl.preprocess.asc_regression`, same
            variants in the same order.
        n_cutoff: Minimum sample size for a method to use the normal
            reference distribution and to enter the meta-analysis.

    Returns:
        :class:`~mixqtl._results.MetaAnalysisResult` whose ``meta`` is
        ``None`` unless both sample sizes are at least *n_cutoff*.

    Raises:
        DimensionMismatch: If trc and asc cover different numbers of
            variants.
        ValueError: If *n_cutoff* is less than 1 or an input lacks a
            required field.
    """
    if n_cutoff < 1:
        raise ValueError(f"n_cutoff must be at least 1, got {n_cutoff}.")

    trc_bhat, trc_se, trc_n = _unpack(trc, "trc")
    asc_bhat, asc_se, asc_n = _unpack(asc, "asc")
    if trc_bhat.shape != asc_bhat.shape:
        raise DimensionMismatch(
            f"trc covers {trc_bhat.size} variants but asc covers {asc_bhat.size}."
        )

    trc_bundle = _bundle(trc_bhat, trc_se, stat_type_for(trc_n, n_cutoff), "trc")
    asc_bundle = _bundle(asc_bhat, asc_se, stat_type_for(asc_n, n_cutoff), "asc")

    meta_bundle: TestBundle | None = None
    if trc_n >= n_cutoff and asc_n >= n_cutoff:
        bhat, se = inverse_variance_combine([trc_bhat, asc_bhat], [trc_se, asc_se])
        meta_bundle = _bundle(bhat, se, "z", "meta")
    else:
        logger.debug(
            "meta-analysis skipped: trc n=%d, asc n=%d, n_cutoff=%d",
            trc_n,
            asc_n,
            n_cutoff,
        )

    return MetaAnalysisResult(
        trc=trc_bundle, asc=asc_bundle, meta=meta_bundle, n_cutoff=n_cutoff
    )
