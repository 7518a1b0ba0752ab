from __future__ import annotations

import sys
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest


def pytest_configure() -> None:
    """Ensure the repository root is on sys.path.

    The tests live inside the package, so pytest may choose the package
    directory as its rootdir. Importing the top-level package `statcourse`
    then fails unless the parent directory is on `sys.path`.
    """

    repo_root = Path(__file__).resolve().parents[2]
    repo_root_str = str(repo_root)
    if repo_root_str not in sys.path:
        sys.path.insert(0, repo_root_str)


@pytest.fixture
def rng():
    return np.random.default_rng(12345)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Keep environment-driven defaults out of the tests."""
    from statcourse.core import config

    for name in ("STATCOURSE_SEED", "STATCOURSE_N_BOOT", "STATCOURSE_DATA_CACHE"):
        monkeypatch.delenv(name, raising=False)
    config.clear_cache()
    yield
    config.clear_cache()


@pytest.fixture(autouse=True)
def _close_figures():
    yield
    import matplotlib.pyplot as plt

    plt.close("all")
