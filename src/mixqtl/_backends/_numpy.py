"""NumPy backend (always available).

Sufficient statistics
~~~~~~~~~~~~~~~~~~~~~
Every kernel reduces the observation axis exactly once per cross-product
and never materialises residuals.  For predictors ``X (N, P)`` and
responses ``Y (N, K)``:

* ``Σ x²`` per variant column is a diagonal-only reduction,
  ``np.einsum("ij,ij->j", X, X)`` → ``(P,)``, rather than the full
  ``X'X`` Gram matrix (which would cost O(N·P²)).
* ``Σ x·y`` for every (k, p) pair is the single BLAS-3 product
  ``Y.T @ X`` → ``(K, P)``.
* ``Σ y²`` per response is ``np.einsum("ik,ik->k", Y, Y)`` → ``(K,)``.

Everything else is elementwise broadcasting over the ``(K, P)`` grid.

Parallelism
~~~~~~~~~~~
Variant columns are independent.  When ``n_jobs != 1`` the P columns
are split into contiguous chunks and solved with
``joblib.Parallel(prefer="threads")``; the BLAS product releases the
GIL, so threads overlap without serialising the inputs.  Chunks are
concatenated back in column order, so the result is identical to the
sequential path.

Floating-point warnings
~~~~~~~~~~~~~~~~~~~~~~~
Degenerate columns (``Σ x² == 0``, a singular 2 × 2 system, or
``n <= dof``) produce ``inf`` / ``nan``.  NumPy's divide / invalid
warnings are suppressed inside the kernels; the caller turns the
non-finite values into ``NaN`` and reports them once.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import numpy as np
from joblib import Parallel, delayed, effective_n_jobs


def _univariate_kernel(
    Y: np.ndarray, X: np.ndarray, n: np.ndarray
) -> tuple[np.ndarray, np.ndarray]:
    with np.errstate(divide="ignore", invalid="ignore"):
        S_xx = np.einsum("ij,ij->j", X, X)  # (P,)
        S_xy = Y.T @ X  # (K, P)
        S_yy = np.einsum("ik,ik->k", Y, Y)[:, np.newaxis]  # (K, 1)

        beta_hat = S_xy / S_xx
        # RSS = Σ (y - x b)²  expanded in terms of the cross-products.
        rss = S_yy - 2.0 * beta_hat * S_xy + beta_hat**2 * S_xx
        # Round-off can leave a perfect fit a hair below zero.
        rss = np.maximum(rss, 0.0)
        sigma_hat = np.sqrt(rss / (n - 1))
        beta_se = sigma_hat / np.sqrt(S_xx)
    return beta_hat, beta_se


def _bivariate_kernel(
    Y: np.ndarray, X1: np.ndarray, X2: np.ndarray, n: np.ndarray
) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    with np.errstate(divide="ignore", invalid="ignore"):
        T1 = Y.T @ X1  # (K, P)
        T2 = Y.T @ X2  # (K, P)
        S11 = np.einsum("ij,ij->j", X1, X1)  # (P,)
        S12 = np.einsum("ij,ij->j", X1, X2)
        S22 = np.einsum("ij,ij->j", X2, X2)
        S_yy = np.einsum("ik,ik->k", Y, Y)[:, np.newaxis]  # (K, 1)

        # Cramer's rule on the 2 × 2 normal equations.  The absolute
        # value keeps round-off from flipping the determinant's sign.
        delta = np.abs(S11 * S22 - S12 * S12)
        beta1_hat = (S22 * T1 - S12 * T2) / delta
        beta2_hat = (S11 * T2 - S12 * T1) / delta

        rss = (
            S_yy
            - 2.0 * beta1_hat * T1
            - 2.0 * beta2_hat * T2
            + 2.0 * beta1_hat * beta2_hat * S12
            + beta1_hat**2 * S11
            + beta2_hat**2 * S22
        )
        rss = np.maximum(rss, 0.0)
        sigma_hat = np.sqrt(rss / (n - 2))

        beta1_se = sigma_hat * np.sqrt(S22 / delta)
        beta2_se = sigma_hat * np.sqrt(S11 / delta)
    return beta1_hat, beta1_se, beta2_hat, beta2_se


def _column_chunks(n_cols: int, n_jobs: int) -> list[np.ndarray]:
    """Split ``range(n_cols)`` into at most ``effective_n_jobs`` chunks."""
    n_chunks = max(1, min(n_cols, effective_n_jobs(n_jobs)))
    return [c for c in np.array_split(np.arange(n_cols), n_chunks) if c.size]


def _map_columns(
    kernel: Callable[..., tuple[np.ndarray, ...]],
    Y: np.ndarray,
    predictors: tuple[np.ndarray, ...],
    n: np.ndarray,
    n_jobs: int,
) -> tuple[np.ndarray, ...]:
    """Run *kernel* over column chunks and reassemble along axis 1."""
    n_cols = predictors[0].shape[1]
    if n_jobs == 1 or n_cols < 2:
        return kernel(Y, *predictors, n)

    chunks = _column_chunks(n_cols, n_jobs)
    parts = Parallel(n_jobs=n_jobs, prefer="threads")(
        delayed(kernel)(Y, *(X[:, idx] for X in predictors), n[:, idx])
        for idx in chunks
    )
    return tuple(np.concatenate(arrs, axis=1) for arrs in zip(*parts, strict=True))


@dataclass(frozen=True)
class NumpyBackend:
    """NumPy compute backend.

    The class is a frozen dataclass with no instance state — it
    exists solely to namespace the kernels behind the
    :class:`BackendProtocol` interface, and is safe to cache in the
    module-level ``_BACKEND_CACHE`` singleton.
    """

    @property
    def name(self) -> str:
        return "numpy"

    @property
    def is_available(self) -> bool:  # noqa: PLR6301
        return True

    def batch_univariate(
        self,
        Y: np.ndarray,
        X: np.ndarray,
        n: np.ndarray,
        **kwargs: Any,
    ) -> tuple[np.ndarray, np.ndarray]:
        """Batched no-intercept simple regression.

        Args:
            Y: Responses ``(N, K)``.
            X: Predictors ``(N, P)``.
            n: Sample sizes ``(K, P)``.
            **kwargs: ``n_jobs`` (default 1).

        Returns:
            ``(beta_hat, beta_se)``, each ``(K, P)``.
        """
        n_jobs: int = kwargs.pop("n_jobs", 1)
        beta_hat, beta_se = _map_columns(_univariate_kernel, Y, (X,), n, n_jobs)
        return beta_hat, beta_se

    def batch_bivariate(
        self,
        Y: np.ndarray,
        X1: np.ndarray,
        X2: np.ndarray,
        n: np.ndarray,
        **kwargs: Any,
    ) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """Batched no-intercept two-predictor regression.

        Args:
            Y: Responses ``(N, K)``.
            X1: First predictors ``(N, P)``.
            X2: Second predictors ``(N, P)``.
            n: Sample sizes ``(K, P)``.
            **kwargs: ``n_jobs`` (default 1).

        Returns:
            ``(beta1_hat, beta1_se, beta2_hat, beta2_se)``, each ``(K, P)``.
        """
        n_jobs: int = kwargs.pop("n_jobs", 1)
        b1, s1, b2, s2 = _map_columns(_bivariate_kernel, Y, (X1, X2), n, n_jobs)
        return b1, s1, b2, s2
