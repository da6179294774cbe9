"""mixqtl — batched trcQTL / ascQTL regression and meta-analysis.

Estimates the allelic fold change of many genetic variants at once from
total read counts and from allele-specific read counts, using closed-form
least squares on cross-product sufficient statistics, then pools the
two estimates by inverse-variance meta-analysis.  Kernels run on NumPy
(optionally split across threads) or, when installed, JIT-compiled JAX.

Public API:
    .. autosummary::
        mixqtl
        trc_regression
        asc_regression
        meta_analyze
        batch_univariate_ols
        batch_bivariate_ols
        generate_permutation_indices
        two_sided_p_values
        print_results_table
        get_backend
        set_backend
        DimensionMismatch
        DegenerateColumnWarning
        UnivariateFit
        BivariateFit
        QTLFit
        TestBundle
        MetaAnalysisResult
        MixQTLResult
"""

from ._config import get_backend, set_backend
from ._results import (
    BivariateFit,
    MetaAnalysisResult,
    MixQTLResult,
    QTLFit,
    TestBundle,
    UnivariateFit,
)
from .core import mixqtl
from .display import print_results_table
from .exceptions import DegenerateColumnWarning, DimensionMismatch
from .meta import meta_analyze
from .permutations import generate_permutation_indices
from .preprocess import asc_regression, trc_regression
from .pvalues import two_sided_p_values
from .regression import batch_bivariate_ols, batch_univariate_ols

__all__ = [
    "BivariateFit",
    "DegenerateColumnWarning",
    "DimensionMismatch",
    "MetaAnalysisResult",
    "MixQTLResult",
    "QTLFit",
    "TestBundle",
    "UnivariateFit",
    "asc_regression",
    "batch_bivariate_ols",
    "batch_univariate_ols",
    "generate_permutation_indices",
    "get_backend",
    "meta_analyze",
    "mixqtl",
    "print_results_table",
    "set_backend",
    "trc_regression",
    "two_sided_p_values",
]

__version__ = "0.1.0"
