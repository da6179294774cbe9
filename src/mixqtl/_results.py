"""Typed result objects for batched QTL regressions and meta-analysis.

Frozen dataclasses that provide:

* **Attribute access** — ``fit.beta_hat``, ``result.meta``, etc.
* **Dict-like access** — ``result["meta"]``, ``result.get("key")``,
  ``"key" in result`` for consumers that prefer bracket syntax.
* **Serialisation** — ``.to_dict()`` returns a plain ``dict[str, Any]``
  with all NumPy types converted to native Python.

Result hierarchy, leaf-first:

* :class:`UnivariateFit` / :class:`BivariateFit` — raw ``(K, P)``
  estimates from :mod:`mixqtl.regression`.
* :class:`QTLFit` — one preprocessor call (trc or asc): ``(1, P)``
  estimates aligned to the input variant order plus the filtered
  sample size.
* :class:`TestBundle` — per-method statistic and p-value for every
  variant.
* :class:`MetaAnalysisResult` — the ``trc`` / ``asc`` / ``meta``
  bundles; ``meta`` is ``None`` when the sample-size gate failed.
* :class:`MixQTLResult` — both preprocessor fits plus the meta-analysis.

All types are frozen (immutable after construction) and compare by
identity, since their fields are NumPy arrays.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, ClassVar, Literal

import numpy as np
import pandas as pd

StatType = Literal["z", "t"]
Method = Literal["trc", "asc", "meta"]

# ------------------------------------------------------------------ #
# Serialisation helper
# ------------------------------------------------------------------ #


def _numpy_to_python(obj: Any) -> Any:
    """Recursively convert NumPy scalars/arrays to Python-native types.

    Handles nested result objects, dicts, lists, np.ndarray,
    np.integer, and np.floating so that :meth:`to_dict` returns a fully
    JSON-serialisable structure.
    """
    if isinstance(obj, _DictAccessMixin):
        return obj.to_dict()
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, (np.integer, np.bool_)):
        return int(obj)
    if isinstance(obj, np.floating):
        return float(obj)
    if isinstance(obj, dict):
        return {k: _numpy_to_python(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        converted = [_numpy_to_python(item) for item in obj]
        return type(obj)(converted)
    return obj


# ------------------------------------------------------------------ #
# Dict-compatibility mixin
# ------------------------------------------------------------------ #


class _DictAccessMixin:
    """Dict-like access convenience for result dataclasses.

    Supports three access patterns:

    1. ``result["key"]``     — raises ``KeyError`` on miss
    2. ``result.get(key, d)`` — returns *d* on miss (default ``None``)
    3. ``"key" in result``   — membership test

    Subclasses may override ``_EXCLUDE_FROM_DICT`` to keep bulky or
    derived fields out of :meth:`to_dict`.
    """

    _EXCLUDE_FROM_DICT: ClassVar[frozenset[str]] = frozenset()

    def __getitem__(self, key: str) -> Any:
        """Attribute lookup via bracket syntax."""
        try:
            return getattr(self, key)
        except AttributeError:
            raise KeyError(key) from None

    def get(self, key: str, default: Any = None) -> Any:
        """Attribute lookup with a fallback default."""
        return getattr(self, key, default)

    def __contains__(self, key: object) -> bool:
        """Membership test: ``"key" in result``."""
        if not isinstance(key, str):
            return False
        return key in {f.name for f in fields(self)}  # type: ignore[arg-type]

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dictionary of Python-native values."""
        result: dict[str, Any] = {}
        for f in fields(self):  # type: ignore[arg-type]
            if f.name in self._EXCLUDE_FROM_DICT:
                continue
            result[f.name] = _numpy_to_python(getattr(self, f.name))
        return result


# ------------------------------------------------------------------ #
# Regression outputs
# ------------------------------------------------------------------ #


@dataclass(frozen=True, eq=False)
class UnivariateFit(_DictAccessMixin):
    """Output of :func:`~mixqtl.regression.batch_univariate_ols`."""

    beta_hat: np.ndarray
    """Estimated slopes ``(K, P)``."""

    beta_se: np.ndarray
    """Standard errors of ``beta_hat`` ``(K, P)``."""


@dataclass(frozen=True, eq=False)
class BivariateFit(_DictAccessMixin):
    """Output of :func:`~mixqtl.regression.batch_bivariate_ols`."""

    beta1_hat: np.ndarray
    """Estimated coefficient of the first predictor ``(K, P)``."""

    beta1_se: np.ndarray
    """Standard errors of ``beta1_hat`` ``(K, P)``."""

    beta2_hat: np.ndarray
    """Estimated coefficient of the second predictor ``(K, P)``."""

    beta2_se: np.ndarray
    """Standard errors of ``beta2_hat`` ``(K, P)``."""


@dataclass(frozen=True, eq=False)
class QTLFit(_DictAccessMixin):
    """Output of one trc or asc preprocessor call.

    ``beta_hat`` and ``beta_se`` keep one column per input variant, in
    input order.  Columns that were monomorphic after filtering, or all
    columns when the sample-size gate failed, are ``NaN``.
    """

    beta_hat: np.ndarray
    """Estimated log allelic fold change ``(1, P)``."""

    beta_se: np.ndarray
    """Standard errors of ``beta_hat`` ``(1, P)``."""

    sample_size: int
    """Number of observations that survived filtering."""

    monomorphic: np.ndarray
    """Boolean ``(P,)``: the column had no variation after filtering."""

    @property
    def n_variants(self) -> int:
        return int(self.beta_hat.shape[1])


# ------------------------------------------------------------------ #
# Meta-analysis outputs
# ------------------------------------------------------------------ #


@dataclass(frozen=True, eq=False)
class TestBundle(_DictAccessMixin):
    """Per-variant test statistic for one method (trc, asc, or meta)."""

    __test__: ClassVar[bool] = False  # not a pytest test class

    pval: np.ndarray
    """Two-sided p-values ``(P,)``."""

    stat: np.ndarray
    """Test statistics ``bhat / se`` ``(P,)``."""

    stat_type: StatType
    """``"z"`` (standard normal) or ``"t"`` (Student-t, 1 df)."""

    bhat: np.ndarray
    """Effect-size estimates ``(P,)``."""

    se: np.ndarray
    """Standard errors ``(P,)``."""

    method: Method
    """``"trc"``, ``"asc"``, or ``"meta"``."""

    def to_frame(self) -> pd.DataFrame:
        """One row per variant with ``bhat``, ``se``, ``stat``, ``pval``."""
        return pd.DataFrame(
            {
                "bhat": self.bhat,
                "se": self.se,
                "stat": self.stat,
                "pval": self.pval,
                "stat_type": self.stat_type,
                "method": self.method,
            }
        )


@dataclass(frozen=True, eq=False)
class MetaAnalysisResult(_DictAccessMixin):
    """Mapping from method name to its :class:`TestBundle`.

    ``meta`` is ``None`` when either method's sample size was below
    the ``n_cutoff`` used for the analysis.
    """

    trc: TestBundle
    asc: TestBundle
    meta: TestBundle | None
    n_cutoff: int

    _METHODS: ClassVar[tuple[str, ...]] = ("trc", "asc", "meta")

    def bundles(self) -> dict[str, TestBundle]:
        """The bundles that are present, keyed by method name."""
        return {m: b for m in self._METHODS if (b := getattr(self, m)) is not None}

    def to_frame(self, variant_ids: list[str] | None = None) -> pd.DataFrame:
        """Wide table with one row per variant.

        Columns are ``{method}_{field}`` for ``bhat``, ``se``, ``stat``,
        ``pval``.  When the meta bundle is absent its columns are
        present and entirely ``NaN``.

        Args:
            variant_ids: Optional row labels, one per variant.

        Raises:
            ValueError: If *variant_ids* has the wrong length.
        """
        n_variants = self.trc.bhat.shape[0]
        if variant_ids is not None and len(variant_ids) != n_variants:
            raise ValueError(
                f"Expected {n_variants} variant ids, got {len(variant_ids)}."
            )
        columns: dict[str, Any] = {}
        for method in self._METHODS:
            bundle = getattr(self, method)
            for name in ("bhat", "se", "stat", "pval"):
                columns[f"{method}_{name}"] = (
                    getattr(bundle, name)
                    if bundle is not None
                    else np.full(n_variants, np.nan)
                )
        frame = pd.DataFrame(columns, index=variant_ids)
        frame.index.name = "variant"
        return frame


@dataclass(frozen=True, eq=False)
class MixQTLResult(_DictAccessMixin):
    """Output of :func:`~mixqtl.core.mixqtl`."""

    trc_fit: QTLFit
    asc_fit: QTLFit
    meta: MetaAnalysisResult

    def to_frame(self, variant_ids: list[str] | None = None) -> pd.DataFrame:
        """Meta-analysis table plus the two filtered sample sizes."""
        frame = self.meta.to_frame(variant_ids)
        frame["trc_sample_size"] = self.trc_fit.sample_size
        frame["asc_sample_size"] = self.asc_fit.sample_size
        return frame


__all__ = [
    "BivariateFit",
    "MetaAnalysisResult",
    "MixQTLResult",
    "QTLFit",
    "TestBundle",
    "UnivariateFit",
]
