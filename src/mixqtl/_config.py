"""Package-wide settings: the compute backend and the filter defaults.

The regressors run on NumPy or, when it is installed, on JIT-compiled
JAX.  Which one is used is decided at call time, first match wins:

1. A name passed to :func:`set_backend` (``"auto"`` clears it).
2. The ``MIXQTL_BACKEND`` environment variable.
3. ``"jax"`` when the ``jax`` package can be found, else ``"numpy"``.

Names are case-insensitive.  A single call can still bypass the policy
with ``backend="numpy"`` / ``backend="jax"``.

Examples:
    From the shell, for a whole pipeline run::

        MIXQTL_BACKEND=numpy python run_nominal_pass.py

    From Python::

        import mixqtl
        mixqtl.set_backend("numpy")
        ...
        mixqtl.set_backend("auto")
"""

from __future__ import annotations

import importlib.util
import os

_ENV_VAR = "MIXQTL_BACKEND"
_CONCRETE_BACKENDS = ("jax", "numpy")
_VALID_BACKENDS = {*_CONCRETE_BACKENDS, "auto"}

# None until set_backend() is called.
_backend_override: str | None = None

# ------------------------------------------------------------------ #
# Filtering / inference defaults
# ------------------------------------------------------------------ #

DEFAULT_TRC_CUTOFF: float = 20
"""Observations with total read count below this are dropped."""

DEFAULT_ASC_CUTOFF: float = 5
"""Observations with either allele-specific count below this are dropped."""

DEFAULT_WEIGHT_CAP: float = 100
"""Maximum fold difference between the largest and smallest asc weight."""

DEFAULT_ASC_CAP: float = 5000
"""Observations with either allele-specific count above this are dropped."""

DEFAULT_N_CUTOFF: int = 15
"""Sample size at which statistics switch from t(1) to standard normal."""


def _jax_is_available() -> bool:
    return importlib.util.find_spec("jax") is not None


def _from_environment() -> str | None:
    value = os.environ.get(_ENV_VAR, "").strip().lower()
    return value if value in _CONCRETE_BACKENDS else None


def get_backend() -> str:
    """Name of the backend the next regression call will use.

    Unrecognised ``MIXQTL_BACKEND`` values are ignored.

    Returns:
        ``"jax"`` or ``"numpy"``.
    """
    if _backend_override in _CONCRETE_BACKENDS:
        return _backend_override  # type: ignore[return-value]
    env = _from_environment()
    if env is not None:
        return env
    return "jax" if _jax_is_available() else "numpy"


def set_backend(name: str) -> None:
    """Pin the backend for subsequent calls.

    Args:
        name: ``"jax"``, ``"numpy"`` or ``"auto"``.  ``"auto"`` drops
            the pin and falls back to the environment / auto-detection.

    Raises:
        ValueError: If *name* is not one of those.
    """
    global _backend_override
    key = name.strip().lower()
    if key not in _VALID_BACKENDS:
        raise ValueError(
            f"Unknown backend '{name}'. Choose from: {sorted(_VALID_BACKENDS)}"
        )
    _backend_override = None if key == "auto" else key
