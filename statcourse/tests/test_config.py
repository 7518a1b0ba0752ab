import pytest

from statcourse.core import config


def test_defaults_without_environment():
    assert config.default_seed() is None
    assert config.default_n_boot() == config.DEFAULT_BOOTSTRAP_ITERATIONS
    assert config.data_cache() is False


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("1", True), ("true", True), ("off", False), ("/tmp/rdata", "/tmp/rdata")],
)
def test_data_cache_values(monkeypatch, raw, expected):
    monkeypatch.setenv("STATCOURSE_DATA_CACHE", raw)
    config.clear_cache()
    assert config.data_cache() == expected


def test_invalid_integers_ignored(monkeypatch):
    monkeypatch.setenv("STATCOURSE_SEED", "abc")
    monkeypatch.setenv("STATCOURSE_N_BOOT", "1")
    config.clear_cache()
    assert config.default_seed() is None
    assert config.default_n_boot() == config.DEFAULT_BOOTSTRAP_ITERATIONS


def test_values_are_cached(monkeypatch):
    monkeypatch.setenv("STATCOURSE_SEED", "5")
    config.clear_cache()
    assert config.default_seed() == 5
    monkeypatch.setenv("STATCOURSE_SEED", "6")
    assert config.default_seed() == 5
    config.clear_cache()
    assert config.default_seed() == 6
