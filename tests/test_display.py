"""Tests for the results table printer."""

import numpy as np
import pytest

from mixqtl._results import QTLFit
from mixqtl.display import _fmt_coef, _truncate, print_results_table
from mixqtl.meta import meta_analyze


def _fit(bhat, se, sample_size):
    return QTLFit(
        beta_hat=np.array([bhat], dtype=float),
        beta_se=np.array([se], dtype=float),
        sample_size=sample_size,
        monomorphic=np.zeros(len(bhat), dtype=bool),
    )


class TestHelpers:
    def test_truncate_short_name(self):
        assert _truncate("rs123", 13) == "rs123"

    def test_truncate_long_name(self):
        out = _truncate("chr1_123456789_A_G_b38", 13)
        assert len(out) == 13
        assert out.endswith("...")

    def test_fmt_coef(self):
        assert _fmt_coef(0.12345) == "0.1235"
        assert _fmt_coef(float("nan")) == "N/A"


class TestPrintResultsTable:
    def test_prints_all_variants(self, capsys):
        trc = _fit([0.5, 0.0], [0.1, 0.2], sample_size=50)
        asc = _fit([0.4, 0.1], [0.1, 0.1], sample_size=40)
        print_results_table(meta_analyze(trc, asc), variant_ids=["rs1", "rs2"])
        out = capsys.readouterr().out
        assert "mixQTL Results" in out
        assert "rs1" in out
        assert "rs2" in out
        assert "P>|meta|" in out
        assert "Notes" not in out

    def test_lines_fit_width(self, capsys):
        trc = _fit([0.5, np.nan], [0.1, np.nan], sample_size=5)
        asc = _fit([0.4, 0.1], [0.1, 0.1], sample_size=40)
        print_results_table(
            meta_analyze(trc, asc), variant_ids=["a_very_long_variant_name", "rs2"]
        )
        out = capsys.readouterr().out
        assert all(len(line) <= 80 for line in out.splitlines())

    def test_skipped_meta_note(self, capsys):
        trc = _fit([0.5], [0.1], sample_size=5)
        asc = _fit([0.4], [0.1], sample_size=40)
        print_results_table(meta_analyze(trc, asc))
        out = capsys.readouterr().out
        assert "Meta-analysis skipped" in out
        assert "Student-t" in out
        assert "N/A" in out

    def test_accepts_mixqtl_result(self, capsys):
        from mixqtl._results import MixQTLResult

        trc = _fit([0.5], [0.1], sample_size=50)
        asc = _fit([0.4], [0.1], sample_size=40)
        result = MixQTLResult(trc_fit=trc, asc_fit=asc, meta=meta_analyze(trc, asc))
        print_results_table(result, title="Gene ENSG0001")
        out = capsys.readouterr().out
        assert "Gene ENSG0001" in out
        assert "trc samples:" in out
        assert "50" in out

    def test_wrong_number_of_ids(self):
        trc = _fit([0.5], [0.1], sample_size=50)
        with pytest.raises(ValueError, match="variant ids"):
            print_results_table(meta_analyze(trc, trc), variant_ids=["a", "b"])
