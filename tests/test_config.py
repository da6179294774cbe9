"""Tests for the backend configuration system."""

import importlib.util
import os

import pytest

from mixqtl._backends import BackendProtocol, resolve_backend
from mixqtl._config import (
    DEFAULT_ASC_CAP,
    DEFAULT_ASC_CUTOFF,
    DEFAULT_N_CUTOFF,
    DEFAULT_TRC_CUTOFF,
    DEFAULT_WEIGHT_CAP,
    get_backend,
    set_backend,
)

_HAS_JAX = importlib.util.find_spec("jax") is not None
_AUTO = "jax" if _HAS_JAX else "numpy"


def _reset():
    import mixqtl._config as _cfg

    _cfg._backend_override = None
    os.environ.pop("MIXQTL_BACKEND", None)


class TestGetBackend:
    """Tests for get_backend() resolution order."""

    def setup_method(self):
        _reset()

    def teardown_method(self):
        _reset()

    def test_auto_detects_installed_backend(self):
        assert get_backend() == _AUTO

    def test_env_var_overrides_auto(self):
        os.environ["MIXQTL_BACKEND"] = "numpy"
        assert get_backend() == "numpy"

    def test_env_var_jax(self):
        os.environ["MIXQTL_BACKEND"] = "jax"
        assert get_backend() == "jax"

    def test_env_var_case_insensitive(self):
        os.environ["MIXQTL_BACKEND"] = "NumPy"
        assert get_backend() == "numpy"

    def test_unrecognised_env_var_ignored(self):
        os.environ["MIXQTL_BACKEND"] = "cupy"
        assert get_backend() == _AUTO

    def test_programmatic_override_wins_over_env(self):
        os.environ["MIXQTL_BACKEND"] = "numpy"
        set_backend("jax")
        assert get_backend() == "jax"

    def test_auto_restores_default(self):
        set_backend("numpy")
        assert get_backend() == "numpy"
        set_backend("auto")
        assert get_backend() == _AUTO


class TestSetBackend:
    """Tests for set_backend() validation."""

    def setup_method(self):
        _reset()

    def teardown_method(self):
        _reset()

    def test_accepts_valid_names(self):
        for name in ("jax", "numpy", "auto"):
            set_backend(name)

    def test_case_insensitive(self):
        set_backend("NUMPY")
        assert get_backend() == "numpy"

    def test_rejects_invalid_name(self):
        with pytest.raises(ValueError, match="Unknown backend"):
            set_backend("tensorflow")


class TestResolveBackend:
    def setup_method(self):
        _reset()

    def teardown_method(self):
        _reset()

    def test_numpy_by_name(self):
        backend = resolve_backend("numpy")
        assert backend.name == "numpy"
        assert backend.is_available
        assert isinstance(backend, BackendProtocol)

    def test_instances_are_cached(self):
        assert resolve_backend("numpy") is resolve_backend("NumPy")

    def test_policy_default(self):
        set_backend("numpy")
        assert resolve_backend().name == "numpy"

    def test_unknown_name_raises(self):
        with pytest.raises(ValueError, match="Unknown backend"):
            resolve_backend("tensorflow")

    @pytest.mark.skipif(_HAS_JAX, reason="JAX is installed")
    def test_explicit_jax_without_jax_raises(self):
        with pytest.raises(ImportError, match="explicitly requested"):
            resolve_backend("jax")


class TestDefaults:
    def test_filter_defaults(self):
        assert DEFAULT_TRC_CUTOFF == 20
        assert DEFAULT_ASC_CUTOFF == 5
        assert DEFAULT_WEIGHT_CAP == 100
        assert DEFAULT_ASC_CAP == 5000
        assert DEFAULT_N_CUTOFF == 15
