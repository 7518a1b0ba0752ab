"""Environment-driven defaults.

Explicit function arguments always take precedence over these values.
"""
from __future__ import annotations

import logging
import os
from functools import lru_cache

_LOGGER = logging.getLogger(__name__)

DEFAULT_BOOTSTRAP_ITERATIONS: int = 1000


def _env_str(name: str) -> str:
    return str(os.environ.get(name, "")).strip()


def _env_int(name: str) -> int | None:
    raw = _env_str(name)
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        _LOGGER.debug("Ignoring non-integer %s=%r", name, raw)
        return None


@lru_cache(maxsize=1)
def default_seed() -> int | None:
    """Seed used when a bootstrap configuration does not supply one."""
    return _env_int("STATCOURSE_SEED")


@lru_cache(maxsize=1)
def default_n_boot() -> int:
    """Number of bootstrap replications used by default."""
    n = _env_int("STATCOURSE_N_BOOT")
    if n is None or n < 2:
        return DEFAULT_BOOTSTRAP_ITERATIONS
    return n


@lru_cache(maxsize=1)
def data_cache() -> bool | str:
    """Cache setting forwarded to ``statsmodels.datasets.get_rdataset``.

    ``False`` disables caching, ``True`` uses the statsmodels default
    location, any other value is taken as a directory.
    """
    raw = _env_str("STATCOURSE_DATA_CACHE")
    if raw.lower() in {"", "0", "false", "no", "off"}:
        return False
    if raw.lower() in {"1", "true", "yes", "on"}:
        return True
    return raw


def clear_cache() -> None:
    """Forget cached environment lookups (used by tests)."""
    default_seed.cache_clear()
    default_n_boot.cache_clear()
    data_cache.cache_clear()
