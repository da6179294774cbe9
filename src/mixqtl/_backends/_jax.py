"""JAX-accelerated backend for the batched regression kernels.

The closed-form algebra is the same as :mod:`._numpy`; here it is
JIT-compiled to XLA so that the elementwise work over the ``(K, P)``
grid is fused into a handful of kernels, and runs on GPU / TPU when
one is present.

NumPy ↔ JAX boundary convention
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
All public methods accept NumPy arrays and return NumPy arrays.

* **Inbound:** ``jnp.asarray(X, dtype=jnp.float64)``.  The float64 cast
  is explicit because JAX defaults to float32; the cross-product
  expansion of the residual sum of squares loses too many digits in
  single precision when ``Σ y²`` is large relative to the RSS.
* **Outbound:** ``np.asarray(result)`` — zero-copy on CPU, a
  device-to-host transfer on GPU.

Degenerate columns produce ``inf`` / ``nan`` exactly as in the NumPy
backend (XLA never raises on division by zero).

Graceful degradation
~~~~~~~~~~~~~~~~~~~~
If JAX is not installed, :class:`JaxBackend` can still be instantiated
but ``is_available`` returns ``False`` and
:func:`~mixqtl._backends.resolve_backend` raises ``ImportError`` when
this backend is explicitly requested.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np

try:
    import jax

    # Enable 64-bit floating point before any array creation.
    jax.config.update("jax_enable_x64", True)

    import jax.numpy as jnp
    from jax import jit

    _CAN_IMPORT_JAX = True
except ImportError:
    _CAN_IMPORT_JAX = False


if _CAN_IMPORT_JAX:

    @jit
    def _univariate_kernel(
        Y: jax.Array, X: jax.Array, n: jax.Array
    ) -> tuple[jax.Array, jax.Array]:
        S_xx = jnp.einsum("ij,ij->j", X, X)
        S_xy = Y.T @ X
        S_yy = jnp.einsum("ik,ik->k", Y, Y)[:, None]

        beta_hat = S_xy / S_xx
        rss = S_yy - 2.0 * beta_hat * S_xy + beta_hat**2 * S_xx
        rss = jnp.maximum(rss, 0.0)
        sigma_hat = jnp.sqrt(rss / (n - 1))
        return beta_hat, sigma_hat / jnp.sqrt(S_xx)

    @jit
    def _bivariate_kernel(
        Y: jax.Array, X1: jax.Array, X2: jax.Array, n: jax.Array
    ) -> tuple[jax.Array, jax.Array, jax.Array, jax.Array]:
        T1 = Y.T @ X1
        T2 = Y.T @ X2
        S11 = jnp.einsum("ij,ij->j", X1, X1)
        S12 = jnp.einsum("ij,ij->j", X1, X2)
        S22 = jnp.einsum("ij,ij->j", X2, X2)
        S_yy = jnp.einsum("ik,ik->k", Y, Y)[:, None]

        delta = jnp.abs(S11 * S22 - S12 * S12)
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
        rss = jnp.maximum(rss, 0.0)
        sigma_hat = jnp.sqrt(rss / (n - 2))
        return (
            beta1_hat,
            sigma_hat * jnp.sqrt(S22 / delta),
            beta2_hat,
            sigma_hat * jnp.sqrt(S11 / delta),
        )


def _to_jax(*arrays: np.ndarray) -> tuple[Any, ...]:
    return tuple(jnp.asarray(a, dtype=jnp.float64) for a in arrays)


@dataclass(frozen=True)
class JaxBackend:
    """JAX compute backend.

    ``n_jobs`` is accepted for interface compatibility and ignored —
    XLA already parallelises the fused kernels across cores.
    """

    @property
    def name(self) -> str:
        return "jax"

    @property
    def is_available(self) -> bool:  # noqa: PLR6301
        return _CAN_IMPORT_JAX

    def batch_univariate(
        self,
        Y: np.ndarray,
        X: np.ndarray,
        n: np.ndarray,
        **kwargs: Any,
    ) -> tuple[np.ndarray, np.ndarray]:
        """Batched no-intercept simple regression (JIT-compiled).

        Returns:
            ``(beta_hat, beta_se)``, each ``(K, P)``.
        """
        beta_hat, beta_se = _univariate_kernel(*_to_jax(Y, X, n))
        return np.asarray(beta_hat), np.asarray(beta_se)

    def batch_bivariate(
        self,
        Y: np.ndarray,
        X1: np.ndarray,
        X2: np.ndarray,
        n: np.ndarray,
        **kwargs: Any,
    ) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """Batched no-intercept two-predictor regression (JIT-compiled).

        Returns:
            ``(beta1_hat, beta1_se, beta2_hat, beta2_se)``, each ``(K, P)``.
        """
        out = _bivariate_kernel(*_to_jax(Y, X1, X2, n))
        b1, s1, b2, s2 = (np.asarray(a) for a in out)
        return b1, s1, b2, s2
