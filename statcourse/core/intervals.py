"""Intervals from a sample of bootstrap replicates.

The shortest interval is the narrowest window of consecutive order statistics
that holds at least the requested share of the sample. Equal-tailed
percentile intervals are provided for comparison.
"""

from __future__ import annotations

from math import ceil
from typing import TYPE_CHECKING

import numpy as np
import pandas as pd

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray

__all__ = [
    "ci_level_to_alpha",
    "normalize_ci_level",
    "percentile_interval",
    "quantile_type1",
    "shortest_interval",
    "shortest_intervals",
]


def normalize_ci_level(level: float | None, *, default: float = 0.95) -> float:
    """Normalize confidence level to a probability (0, 1)."""
    if not (0.0 < float(default) < 1.0):
        raise ValueError("default confidence level must lie in (0, 1)")
    if level is None:
        coerced = float(default)
    else:
        coerced = float(level)
        # Accept percentage-style inputs (e.g., 90 for 90%)
        if coerced > 1.0:
            coerced /= 100.0
    if not (0.0 < coerced < 1.0):
        raise ValueError("ci_level must be in (0, 1); supply e.g. 0.95 or 95")
    return coerced


def ci_level_to_alpha(level: float | None, *, default: float = 0.95) -> float:
    """Return the corresponding tail probability ``alpha`` for a confidence level."""
    return 1.0 - normalize_ci_level(level, default=default)


def _check_level(level: float) -> float:
    lev = float(level)
    if not (0.0 < lev < 1.0):
        msg = f"level = {level!r} should be strictly between 0 and 1."
        raise ValueError(msg)
    return lev


def _as_sample(sample: ArrayLike) -> NDArray[np.float64]:
    arr = np.asarray(sample, dtype=np.float64)
    if arr.ndim != 1:
        msg = (
            f"sample must be one-dimensional; got shape {arr.shape}. "
            "Use shortest_intervals for a (replicates x parameters) table."
        )
        raise ValueError(msg)
    if not np.all(np.isfinite(arr)):
        raise ValueError("sample contains NaN/Inf; drop non-finite draws first.")
    return arr


def shortest_interval(sample: ArrayLike, level: float = 0.95) -> tuple[float, float]:
    """Return the shortest interval holding ``level`` of the sample.

    The sample is sorted on a working copy and every window of
    ``k = ceil(level * n)`` consecutive order statistics is scanned. The
    window with the smallest span wins; ties go to the leftmost window.

    Parameters
    ----------
    sample : array-like, shape (n,)
        Finite values, typically bootstrap replicates of one parameter.
    level : float, default 0.95
        Coverage, strictly between 0 and 1.

    Returns
    -------
    (lower, upper) : tuple of float
        Both are elements of ``sample``.

    Raises
    ------
    ValueError
        If ``level`` is outside (0, 1) or the window size ``k`` is not
        strictly between 1 and ``n``.

    Examples
    --------
    >>> shortest_interval([1, 2, 3, 4, 5, 100], 0.5)
    (1.0, 3.0)
    """
    lev = _check_level(level)
    arr = _as_sample(sample)
    n = int(arr.size)
    k = int(ceil(lev * n))
    if not (1 < k < n):
        msg = (
            f"level = {level!r} with sample length n = {n} gives a window of "
            f"k = {k} points; k must satisfy 1 < k < n."
        )
        raise ValueError(msg)
    sv = np.sort(arr)
    widths = sv[k - 1 :] - sv[: n - k + 1]
    i = int(np.argmin(widths))  # first minimum
    return float(sv[i]), float(sv[i + k - 1])


def shortest_intervals(
    draws: pd.DataFrame | ArrayLike, level: float = 0.95,
) -> pd.DataFrame:
    """Column-wise :func:`shortest_interval` for a (replicates x parameters) table."""
    if isinstance(draws, pd.DataFrame):
        frame = draws
    else:
        arr = np.asarray(draws, dtype=np.float64)
        if arr.ndim == 1:
            arr = arr.reshape(-1, 1)
        frame = pd.DataFrame(arr, columns=[f"p{j}" for j in range(arr.shape[1])])
    rows = {col: shortest_interval(frame[col].to_numpy(), level) for col in frame.columns}
    return pd.DataFrame.from_dict(rows, orient="index", columns=["lower", "upper"])


def quantile_type1(x: ArrayLike, q: float) -> float:
    """Compute R type-1 quantile (inverse of empirical distribution function)."""
    xa = np.asarray(x, dtype=np.float64).reshape(-1)
    xa = xa[np.isfinite(xa)]
    if xa.size == 0:
        return float("nan")
    xa = np.sort(xa)
    n = xa.size
    k = int(np.ceil(float(n) * float(q)))
    k = max(1, min(k, n))
    return float(xa[k - 1])


def percentile_interval(sample: ArrayLike, level: float = 0.95) -> tuple[float, float]:
    """Equal-tailed interval from type-1 quantiles."""
    lev = _check_level(level)
    arr = _as_sample(sample)
    if arr.size < 2:
        raise ValueError(f"percentile_interval requires at least 2 values; got n={arr.size}.")
    tail = 0.5 * (1.0 - lev)
    return quantile_type1(arr, tail), quantile_type1(arr, 1.0 - tail)
