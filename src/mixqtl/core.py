"""End-to-end mixQTL nominal pass for one gene and many variants.

mixQTL estimates the allelic fold change of each cis variant twice,
from two nearly independent views of the same RNA-seq library:

1. **trcQTL** — total read count against the mean haplotype dosage
   ``(h1 + h2) / 2``, see :func:`~mixqtl.preprocess.trc_regression`.
2. **ascQTL** — the allelic read split against the haplotype contrast
   ``h1 − h2``, see :func:`~mixqtl.preprocess.asc_regression`.

:func:`mixqtl` derives both genotype encodings from phased haplotype
dosages, runs the two regressions, and pools them with
:func:`~mixqtl.meta.meta_analyze`.
"""

from __future__ import annotations

from ._compat import ArrayLikeInput, _as_matrix
from ._config import (
    DEFAULT_ASC_CAP,
    DEFAULT_ASC_CUTOFF,
    DEFAULT_N_CUTOFF,
    DEFAULT_TRC_CUTOFF,
    DEFAULT_WEIGHT_CAP,
)
from ._results import MixQTLResult
from .exceptions import DimensionMismatch
from .meta import meta_analyze
from .preprocess import asc_regression, trc_regression


def mixqtl(
    geno1: ArrayLikeInput,
    geno2: ArrayLikeInput,
    y1: ArrayLikeInput,
    y2: ArrayLikeInput,
    ytotal: ArrayLikeInput,
    lib_size: ArrayLikeInput,
    cov_offset: ArrayLikeInput,
    trc_cutoff: float = DEFAULT_TRC_CUTOFF,
    asc_cutoff: float = DEFAULT_ASC_CUTOFF,
    weight_cap: float = DEFAULT_WEIGHT_CAP,
    asc_cap: float = DEFAULT_ASC_CAP,
    n_cutoff: int = DEFAULT_N_CUTOFF,
    *,
    backend: str | None = None,
    n_jobs: int = 1,
) -> MixQTLResult:
    """Run trcQTL, ascQTL and their meta-analysis for many variants.

    Args:
        geno1: Haplotype-1 dosage ``(N, P)``.
        geno2: Haplotype-2 dosage ``(N, P)``.
        y1: Allele-specific read count of haplotype 1 ``(N,)``.
        y2: Allele-specific read count of haplotype 2 ``(N,)``.
        ytotal: Total read count ``(N,)``.
        lib_size: Library size ``(N,)``.
        cov_offset: Covariate offset on the ``log(trc / 2)`` scale ``(N,)``.
        trc_cutoff: See :func:`~mixqtl.preprocess.trc_regression`.
        asc_cutoff: See :func:`~mixqtl.preprocess.asc_regression`.
        weight_cap: See :func:`~mixqtl.preprocess.asc_regression`.
        asc_cap: See :func:`~mixqtl.preprocess.asc_regression`.
        n_cutoff: See :func:`~mixqtl.meta.meta_analyze`.
        backend: Compute backend, see :func:`~mixqtl.set_backend`.
        n_jobs: Threads for the NumPy backend's column split.

    Returns:
        :class:`~mixqtl._results.MixQTLResult`.

    Raises:
        DimensionMismatch: If the haplotype matrices differ in shape or
            any input disagrees on N.
    """
    h1 = _as_matrix(geno1, name="geno1")
    h2 = _as_matrix(geno2, name="geno2")
    if h1.shape != h2.shape:
        raise DimensionMismatch(
            f"geno1 has shape {h1.shape} but geno2 has shape {h2.shape}."
        )

    trc_fit = trc_regression(
        ytotal,
        lib_size,
        (h1 + h2) / 2,
        cov_offset,
        trc_cutoff,
        backend=backend,
        n_jobs=n_jobs,
    )
    asc_fit = asc_regression(
        y1,
        y2,
        h1 - h2,
        asc_cutoff,
        weight_cap,
        asc_cap,
        backend=backend,
        n_jobs=n_jobs,
    )
    return MixQTLResult(
        trc_fit=trc_fit,
        asc_fit=asc_fit,
        meta=meta_analyze(trc_fit, asc_fit, n_cutoff),
    )
