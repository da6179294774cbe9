"""Two-sided p-values for per-variant Wald statistics.

Every statistic here has the form ``stat = β̂ / se(β̂)``.  Which
reference distribution it is compared against depends on how many
observations went into the fit:

Large samples (``z``)
---------------------
With ``N >= n_cutoff`` the estimate is treated as asymptotically
normal and::

    p = 2 · (1 − Φ(|stat|)) = 2 · Φ̄(|stat|)

The survival function ``Φ̄`` is evaluated directly (``scipy.stats.norm.sf``)
rather than as ``1 − Φ``, which underflows to zero once
``|stat| ≳ 8.3``.

Small samples (``t``)
---------------------
Below the cutoff the standard error itself is too noisy for the normal
approximation.  The statistic is compared against a Student-t with a
single degree of freedom (a Cauchy distribution), whose heavy tails give
deliberately conservative p-values::

    p = 2 · T̄₁(|stat|)
"""

from __future__ import annotations

from typing import Literal

import numpy as np
from scipy import stats

StatType = Literal["z", "t"]

_T_DOF = 1


def stat_type_for(sample_size: int, n_cutoff: int) -> StatType:
    """``"z"`` when ``sample_size >= n_cutoff``, otherwise ``"t"``."""
    return "z" if sample_size >= n_cutoff else "t"


def two_sided_p_values(stat: np.ndarray, stat_type: StatType) -> np.ndarray:
    """Two-sided p-values for *stat* under the named reference distribution.

    ``NaN`` statistics give ``NaN`` p-values.

    Args:
        stat: Test statistics, any shape.
        stat_type: ``"z"`` for the standard normal, ``"t"`` for
            Student-t with one degree of freedom.

    Returns:
        Array of p-values with the same shape as *stat*.

    Raises:
        ValueError: If *stat_type* is not ``"z"`` or ``"t"``.
    """
    abs_stat = np.abs(np.asarray(stat, dtype=np.float64))
    if stat_type == "z":
        return 2.0 * stats.norm.sf(abs_stat)
    if stat_type == "t":
        return 2.0 * stats.t.sf(abs_stat, df=_T_DOF)
    raise ValueError(f"Unknown stat_type '{stat_type}'. Choose 'z' or 't'.")


def format_p_value(
    p: float,
    precision: int = 3,
    p_value_threshold_one: float = 0.05,
    p_value_threshold_two: float = 0.01,
) -> str:
    """Format *p* with a significance marker: ``(**)``, ``(*)``, or ``(ns)``.

    ``NaN`` is rendered as ``"N/A"``.  Values that would round to zero
    are shown in scientific notation.
    """
    if np.isnan(p):
        return "N/A"
    if 0 < p < 10 ** (-precision):
        val = f"{p:.{max(precision - 2, 1)}e}"
    else:
        val = f"{np.round(p, precision):.{precision}f}"
    if p < p_value_threshold_two:
        return f"{val} (**)"
    elif p < p_value_threshold_one:
        return f"{val} (*)"
    return f"{val} (ns)"
