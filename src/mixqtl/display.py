"""Formatted ASCII table display for mixQTL results.

The table mirrors the statsmodels summary style: a header panel with
the sample sizes and reference distributions of each method, then one
row per variant with the trc, asc and meta estimates and their
p-values side by side, so that disagreement between the two views of
the data is easy to spot.
"""

from __future__ import annotations

import textwrap

import numpy as np

from ._results import MetaAnalysisResult, MixQTLResult, TestBundle
from .pvalues import format_p_value

_WIDTH = 80


def _truncate(name: str, max_len: int) -> str:
    """Truncate *name* to *max_len*, appending ``'...'`` if needed."""
    if len(name) <= max_len:
        return name
    return name[: max_len - 3] + "..."


def _fmt_coef(val: float) -> str:
    if np.isnan(val):
        return "N/A"
    return f"{val:.4f}"


def _wrap(text: str, width: int = _WIDTH, indent: int = 2) -> str:
    """Word-wrap *text*, indenting only the continuation lines."""
    return textwrap.fill(text, width=width, subsequent_indent=" " * indent)


def print_results_table(
    result: MetaAnalysisResult | MixQTLResult,
    *,
    variant_ids: list[str] | None = None,
    title: str = "mixQTL Results",
    precision: int = 3,
) -> None:
    """Print per-variant trc / asc / meta results as an 80-column table.

    Args:
        result: Output of :func:`~mixqtl.meta.meta_analyze` or
            :func:`~mixqtl.core.mixqtl`.
        variant_ids: Row labels; defaults to ``0..P-1``.
        title: Title for the output table.
        precision: Decimal places for p-values.

    Raises:
        ValueError: If *variant_ids* has the wrong length.
    """
    meta = result.meta if isinstance(result, MixQTLResult) else result
    n_variants = meta.trc.bhat.shape[0]
    if variant_ids is None:
        variant_ids = [str(i) for i in range(n_variants)]
    elif len(variant_ids) != n_variants:
        raise ValueError(f"Expected {n_variants} variant ids, got {len(variant_ids)}.")

    print("=" * _WIDTH)
    for line in textwrap.wrap(title, width=_WIDTH - 2):
        print(f"{line:^{_WIDTH}}")
    print("=" * _WIDTH)

    col1 = 40
    col2 = 40
    if isinstance(result, MixQTLResult):
        print(
            f"{'trc samples:':<16}{result.trc_fit.sample_size:<{col1 - 16}}"
            f"{'asc samples:':>{col2 - 11}} {result.asc_fit.sample_size:>10}"
        )
    print(
        f"{'trc stat:':<16}{meta.trc.stat_type:<{col1 - 16}}"
        f"{'asc stat:':>{col2 - 11}} {meta.asc.stat_type:>10}"
    )
    meta_type = meta.meta.stat_type if meta.meta is not None else "N/A"
    print(
        f"{'meta stat:':<16}{meta_type:<{col1 - 16}}"
        f"{'n_cutoff:':>{col2 - 11}} {meta.n_cutoff:>10}"
    )
    print("-" * _WIDTH)

    # Variant (14) + three groups of Coef (9) and P (13) = 80.
    fc = 14
    header = f"{'Variant':<{fc}}"
    for method in ("trc", "asc", "meta"):
        header += f"{method:>9}{'P>|' + method + '|':>13}"
    print(header)
    print("-" * _WIDTH)

    bundles: list[TestBundle | None] = [meta.trc, meta.asc, meta.meta]
    for i, vid in enumerate(variant_ids):
        row = f"{_truncate(vid, fc - 1):<{fc}}"
        for bundle in bundles:
            if bundle is None:
                row += f"{'N/A':>9}{'N/A':>13}"
                continue
            p_str = format_p_value(float(bundle.pval[i]), precision)
            row += f"{_fmt_coef(float(bundle.bhat[i])):>9}{p_str:>13}"
        print(row)

    notes: list[str] = []
    if meta.meta is None:
        notes.append(
            f"Meta-analysis skipped: both methods need at least "
            f"{meta.n_cutoff} observations."
        )
    if "t" in (meta.trc.stat_type, meta.asc.stat_type):
        notes.append(
            "Methods below n_cutoff use a Student-t reference with 1 degree "
            "of freedom."
        )
    if notes:
        print("-" * _WIDTH)
        print("Notes")
        print("-" * _WIDTH)
        for note in notes:
            print(_wrap(f"  [!] {note}", indent=6))

    print("=" * _WIDTH)
    print("(**) p < 0.01   (*) p < 0.05   (ns) p >= 0.05")
    print()
