"""Compute backends for the batched regression kernels.

A backend turns validated ``float64`` arrays into ``(K, P)`` estimate
arrays for many independent no-intercept least-squares problems, one per
(response, variant) pair, using only cross-product sufficient statistics.
:mod:`mixqtl.regression` checks shapes and then asks
:func:`resolve_backend` for the kernels to run.

Kernel contract
~~~~~~~~~~~~~~~
* ``Y``: responses ``(N, K)``
* ``X``, ``X1``, ``X2``: predictors ``(N, P)``
* ``n``: sample sizes, already broadcast to ``(K, P)``

Kernels return raw ``inf`` / ``nan`` for degenerate columns; masking and
warning happen in the caller.

Selection
~~~~~~~~~
With no explicit name the policy of :func:`~mixqtl.get_backend` applies.
Asking for ``"jax"`` by name when JAX cannot be imported is an
:class:`ImportError`; only the policy default may fall back to NumPy.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

import numpy as np

from .._config import get_backend

logger = logging.getLogger(__name__)

# ------------------------------------------------------------------ #
# BackendProtocol
# ------------------------------------------------------------------ #


@runtime_checkable
class BackendProtocol(Protocol):
    """What :mod:`mixqtl.regression` needs from a compute backend."""

    @property
    def name(self) -> str: ...

    @property
    def is_available(self) -> bool: ...

    def batch_univariate(
        self,
        Y: np.ndarray,
        X: np.ndarray,
        n: np.ndarray,
        **kwargs: Any,
    ) -> tuple[np.ndarray, np.ndarray]:
        """``(beta_hat, beta_se)`` of ``y_k = x_p * b + e`` per (k, p).

        ``kwargs`` carries backend options such as ``n_jobs``.
        """
        ...

    def batch_bivariate(
        self,
        Y: np.ndarray,
        X1: np.ndarray,
        X2: np.ndarray,
        n: np.ndarray,
        **kwargs: Any,
    ) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """``(beta1_hat, beta1_se, beta2_hat, beta2_se)`` of
        ``y_k = x1_p * b1 + x2_p * b2 + e`` per (k, p).
        """
        ...


# ------------------------------------------------------------------ #
# Backend resolution
# ------------------------------------------------------------------ #


def _make_numpy() -> BackendProtocol:
    from ._numpy import NumpyBackend

    return NumpyBackend()


def _make_jax() -> BackendProtocol:
    from ._jax import JaxBackend

    return JaxBackend()


_FACTORIES: dict[str, Callable[[], BackendProtocol]] = {
    "numpy": _make_numpy,
    "jax": _make_jax,
}

_BACKEND_CACHE: dict[str, BackendProtocol] = {}


def resolve_backend(name: str | None = None) -> BackendProtocol:
    """Backend instance for *name*, or for the configured policy.

    Instances are created once and reused.

    Args:
        name: ``"numpy"``, ``"jax"`` (case-insensitive), or ``None``.

    Returns:
        An object satisfying :class:`BackendProtocol`.

    Raises:
        ImportError: If ``"jax"`` is named but JAX cannot be imported.
        ValueError: If *name* is not a known backend.
    """
    explicit = name is not None
    key = (name if explicit else get_backend()).strip().lower()

    backend = _BACKEND_CACHE.get(key)
    if backend is None:
        factory = _FACTORIES.get(key)
        if factory is None:
            raise ValueError(
                f"Unknown backend {name!r}.  Choose 'numpy' or 'jax'."
            )
        backend = factory()

    if not backend.is_available:
        if explicit:
            raise ImportError(
                f"Backend {key!r} was explicitly requested but its "
                "dependencies are not installed.  Install JAX "
                "(`pip install mixqtl[jax]`) or use set_backend('numpy')."
            )
        logger.debug("Backend %r unavailable; falling back to 'numpy'", key)
        return resolve_backend("numpy")

    if key not in _BACKEND_CACHE:
        logger.debug("Resolved compute backend %r", key)
        _BACKEND_CACHE[key] = backend
    return backend
