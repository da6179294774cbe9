"""Tests for the batched univariate and bivariate least-squares regressors."""

import numpy as np
import pandas as pd
import pytest
import statsmodels.api as sm

from mixqtl.exceptions import DegenerateColumnWarning, DimensionMismatch
from mixqtl.regression import batch_bivariate_ols, batch_univariate_ols


@pytest.fixture
def problem():
    """Three responses, five variants, 60 observations."""
    rng = np.random.default_rng(42)
    n_obs = 60
    X = rng.standard_normal((n_obs, 5))
    Y = np.column_stack(
        [
            0.8 * X[:, 0] + rng.standard_normal(n_obs),
            -0.5 * X[:, 2] + rng.standard_normal(n_obs),
            rng.standard_normal(n_obs),
        ]
    )
    return Y, X


def _scalar_univariate(y, x):
    """Textbook single-predictor fit without intercept."""
    s_xx = np.sum(x**2)
    beta = np.sum(x * y) / s_xx
    resid = y - beta * x
    sigma2 = np.sum(resid**2) / (y.shape[0] - 1)
    return beta, np.sqrt(sigma2 / s_xx)


class TestBatchUnivariate:
    def test_output_shape(self, problem):
        Y, X = problem
        fit = batch_univariate_ols(Y, X, Y.shape[0])
        assert fit.beta_hat.shape == (3, 5)
        assert fit.beta_se.shape == (3, 5)

    def test_matches_per_pair_fit(self, problem):
        Y, X = problem
        fit = batch_univariate_ols(Y, X, Y.shape[0], backend="numpy")
        for k in range(Y.shape[1]):
            for p in range(X.shape[1]):
                beta, se = _scalar_univariate(Y[:, k], X[:, p])
                assert fit.beta_hat[k, p] == pytest.approx(beta, rel=1e-10)
                assert fit.beta_se[k, p] == pytest.approx(se, rel=1e-10)

    def test_matches_statsmodels(self, problem):
        Y, X = problem
        fit = batch_univariate_ols(Y, X, Y.shape[0])
        for k in range(Y.shape[1]):
            for p in range(X.shape[1]):
                ref = sm.OLS(Y[:, k], X[:, p]).fit()
                np.testing.assert_allclose(fit.beta_hat[k, p], ref.params[0], rtol=1e-8)
                np.testing.assert_allclose(fit.beta_se[k, p], ref.bse[0], rtol=1e-8)

    def test_recovers_true_effect(self, problem):
        Y, X = problem
        fit = batch_univariate_ols(Y, X, Y.shape[0])
        assert abs(fit.beta_hat[0, 0] - 0.8) < 4 * fit.beta_se[0, 0]

    def test_idempotent(self, problem):
        Y, X = problem
        a = batch_univariate_ols(Y, X, Y.shape[0])
        b = batch_univariate_ols(Y, X, Y.shape[0])
        np.testing.assert_array_equal(a.beta_hat, b.beta_hat)
        np.testing.assert_array_equal(a.beta_se, b.beta_se)

    def test_inputs_not_modified(self, problem):
        Y, X = problem
        Y_copy, X_copy = Y.copy(), X.copy()
        batch_univariate_ols(Y, X, Y.shape[0])
        np.testing.assert_array_equal(Y, Y_copy)
        np.testing.assert_array_equal(X, X_copy)

    def test_one_dimensional_inputs(self):
        x = np.array([1.0, 2.0, 3.0, 4.0])
        y = 2.0 * x
        fit = batch_univariate_ols(y, x, 4)
        assert fit.beta_hat.shape == (1, 1)
        assert fit.beta_hat[0, 0] == pytest.approx(2.0)
        assert fit.beta_se[0, 0] == pytest.approx(0.0, abs=1e-6)

    def test_pandas_inputs(self, problem):
        Y, X = problem
        fit_pd = batch_univariate_ols(pd.DataFrame(Y), pd.DataFrame(X), Y.shape[0])
        fit_np = batch_univariate_ols(Y, X, Y.shape[0])
        np.testing.assert_allclose(fit_pd.beta_hat, fit_np.beta_hat)

    def test_result_supports_dict_access(self, problem):
        Y, X = problem
        fit = batch_univariate_ols(Y, X, Y.shape[0])
        assert fit["beta_hat"] is fit.beta_hat
        assert "beta_se" in fit


class TestSampleSizeLayout:
    def test_broadcast_forms_agree(self, problem):
        Y, X = problem
        n_obs = Y.shape[0]
        full = batch_univariate_ols(Y, X, np.full((3, 5), n_obs))
        for n in (n_obs, np.full(5, n_obs), np.full((1, 5), n_obs)):
            fit = batch_univariate_ols(Y, X, n)
            np.testing.assert_allclose(fit.beta_se, full.beta_se)

    def test_sample_size_scales_se_only(self, problem):
        Y, X = problem
        n = np.full((3, 5), Y.shape[0], dtype=float)
        n[1, 3] = 31.0
        fit = batch_univariate_ols(Y, X, n)
        ref = batch_univariate_ols(Y, X, Y.shape[0])
        np.testing.assert_allclose(fit.beta_hat, ref.beta_hat)
        expected = ref.beta_se[1, 3] * np.sqrt((Y.shape[0] - 1) / 30.0)
        assert fit.beta_se[1, 3] == pytest.approx(expected)

    def test_wrong_column_count(self, problem):
        Y, X = problem
        with pytest.raises(DimensionMismatch, match="number of variants"):
            batch_univariate_ols(Y, X, np.full((3, 4), 60))

    def test_wrong_row_count(self, problem):
        Y, X = problem
        with pytest.raises(DimensionMismatch, match="rows"):
            batch_univariate_ols(Y, X, np.full((2, 5), 60))


class TestUnivariateValidation:
    def test_row_mismatch(self, problem):
        Y, X = problem
        with pytest.raises(DimensionMismatch, match="rows"):
            batch_univariate_ols(Y[:-1], X, 59)

    def test_unknown_backend(self, problem):
        Y, X = problem
        with pytest.raises(ValueError, match="Unknown backend"):
            batch_univariate_ols(Y, X, 60, backend="tensorflow")


class TestDegenerateColumns:
    def test_zero_predictor_is_nan(self, problem):
        Y, X = problem
        X = X.copy()
        X[:, 1] = 0.0
        with pytest.warns(DegenerateColumnWarning, match="3 of 15"):
            fit = batch_univariate_ols(Y, X, Y.shape[0])
        assert np.isnan(fit.beta_hat[:, 1]).all()
        assert np.isnan(fit.beta_se[:, 1]).all()
        # Other columns unaffected.
        assert np.isfinite(np.delete(fit.beta_hat, 1, axis=1)).all()

    def test_sample_size_one_masks_estimate_too(self, problem):
        Y, X = problem
        n = np.full((3, 5), Y.shape[0], dtype=float)
        n[0, 0] = 1.0
        with pytest.warns(DegenerateColumnWarning):
            fit = batch_univariate_ols(Y, X, n)
        assert np.isnan(fit.beta_hat[0, 0])
        assert np.isnan(fit.beta_se[0, 0])
        assert np.isfinite(fit.beta_hat[0, 1])

    def test_no_infinities_returned(self, problem):
        Y, X = problem
        X = X.copy()
        X[:, 4] = 0.0
        with pytest.warns(DegenerateColumnWarning):
            fit = batch_univariate_ols(Y, X, 0)
        assert not np.isinf(fit.beta_hat).any()
        assert not np.isinf(fit.beta_se).any()

    def test_singular_pair_is_nan(self, problem):
        Y, X = problem
        with pytest.warns(DegenerateColumnWarning):
            fit = batch_bivariate_ols(Y, X, np.zeros_like(X), Y.shape[0])
        assert np.isnan(fit.beta1_hat).all()
        assert np.isnan(fit.beta2_se).all()

    def test_warning_points_at_caller(self, problem):
        Y, X = problem
        X = X.copy()
        X[:, 0] = 0.0
        with pytest.warns(DegenerateColumnWarning) as record:
            batch_univariate_ols(Y, X, Y.shape[0])
        assert record[0].filename == __file__


class TestBatchBivariate:
    def test_output_shape(self, problem):
        Y, X = problem
        rng = np.random.default_rng(0)
        X2 = rng.standard_normal(X.shape)
        fit = batch_bivariate_ols(Y, X, X2, Y.shape[0])
        for arr in (fit.beta1_hat, fit.beta1_se, fit.beta2_hat, fit.beta2_se):
            assert arr.shape == (3, 5)

    def test_matches_statsmodels(self, problem):
        Y, X = problem
        rng = np.random.default_rng(1)
        X2 = rng.standard_normal(X.shape)
        fit = batch_bivariate_ols(Y, X, X2, Y.shape[0])
        for k in range(Y.shape[1]):
            for p in range(X.shape[1]):
                design = np.column_stack([X[:, p], X2[:, p]])
                ref = sm.OLS(Y[:, k], design).fit()
                np.testing.assert_allclose(
                    [fit.beta1_hat[k, p], fit.beta2_hat[k, p]], ref.params, rtol=1e-8
                )
                np.testing.assert_allclose(
                    [fit.beta1_se[k, p], fit.beta2_se[k, p]], ref.bse, rtol=1e-8
                )

    def test_intercept_column_gives_simple_regression(self, problem):
        Y, X = problem
        y = Y[:, 0] + 3.0
        fit = batch_bivariate_ols(y, X, np.ones_like(X), Y.shape[0])
        for p in range(X.shape[1]):
            ref = sm.OLS(y, sm.add_constant(X[:, p])).fit()
            assert fit.beta1_hat[0, p] == pytest.approx(ref.params[1], rel=1e-8)
            assert fit.beta1_se[0, p] == pytest.approx(ref.bse[1], rel=1e-8)
            assert fit.beta2_hat[0, p] == pytest.approx(ref.params[0], rel=1e-8)

    def test_orthogonal_second_predictor_reduces_to_univariate(self, problem):
        Y, X = problem
        y, x1 = Y[:, 0], X[:, 0]
        rng = np.random.default_rng(7)
        z = rng.standard_normal(y.shape[0])
        basis, _ = np.linalg.qr(np.column_stack([x1, y]))
        x2 = 1e-3 * (z - basis @ (basis.T @ z))

        n_obs = y.shape[0]
        bi = batch_bivariate_ols(y, x1, x2, n_obs)
        uni = batch_univariate_ols(y, x1, n_obs)
        assert bi.beta1_hat[0, 0] == pytest.approx(uni.beta_hat[0, 0], rel=1e-8)
        assert bi.beta2_hat[0, 0] == pytest.approx(0.0, abs=1e-6)
        # Same RSS, one fewer residual degree of freedom.
        ratio = np.sqrt((n_obs - 1) / (n_obs - 2))
        assert bi.beta1_se[0, 0] == pytest.approx(uni.beta_se[0, 0] * ratio, rel=1e-6)

    def test_column_mismatch(self, problem):
        Y, X = problem
        with pytest.raises(DimensionMismatch, match="columns"):
            batch_bivariate_ols(Y, X, X[:, :3], 60)

    def test_sample_size_column_mismatch(self, problem):
        Y, X = problem
        with pytest.raises(DimensionMismatch, match="number of variants"):
            batch_bivariate_ols(Y, X, np.ones_like(X), np.full((3, 4), 60))

    def test_idempotent(self, problem):
        Y, X = problem
        X2 = np.ones_like(X)
        a = batch_bivariate_ols(Y, X, X2, Y.shape[0])
        b = batch_bivariate_ols(Y, X, X2, Y.shape[0])
        for name in ("beta1_hat", "beta1_se", "beta2_hat", "beta2_se"):
            np.testing.assert_array_equal(a[name], b[name])

    def test_row_mismatch(self, problem):
        Y, X = problem
        with pytest.raises(DimensionMismatch, match="Row counts"):
            batch_bivariate_ols(Y, X, X[:-1], 60)


class TestParallelColumns:
    """Splitting columns across threads must not change any result."""

    def test_univariate_n_jobs(self, problem):
        Y, X = problem
        serial = batch_univariate_ols(Y, X, 60, backend="numpy", n_jobs=1)
        threaded = batch_univariate_ols(Y, X, 60, backend="numpy", n_jobs=2)
        np.testing.assert_allclose(serial.beta_hat, threaded.beta_hat, rtol=1e-12)
        np.testing.assert_allclose(serial.beta_se, threaded.beta_se, rtol=1e-12)

    def test_bivariate_n_jobs(self, problem):
        Y, X = problem
        X2 = np.ones_like(X)
        serial = batch_bivariate_ols(Y, X, X2, 60, backend="numpy", n_jobs=1)
        threaded = batch_bivariate_ols(Y, X, X2, 60, backend="numpy", n_jobs=3)
        np.testing.assert_allclose(serial.beta1_hat, threaded.beta1_hat, rtol=1e-12)
        np.testing.assert_allclose(serial.beta2_se, threaded.beta2_se, rtol=1e-12)

    def test_all_cores(self, problem):
        Y, X = problem
        serial = batch_univariate_ols(Y, X, 60, backend="numpy")
        threaded = batch_univariate_ols(Y, X, 60, backend="numpy", n_jobs=-1)
        np.testing.assert_allclose(serial.beta_hat, threaded.beta_hat, rtol=1e-12)
