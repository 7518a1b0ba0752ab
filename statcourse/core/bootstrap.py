"""Parametric bootstrap.

New responses are simulated from a fitted model, the model is refitted to
each of them, and the replicate parameter vectors are collected. Models
participate through three methods: ``simulate(rng)``, ``refit(y)`` and
``bootstrap_params()``.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

import numpy as np
import pandas as pd
from statsmodels.tools.sm_exceptions import ConvergenceWarning

from . import config
from . import intervals as iv

if TYPE_CHECKING:
    from numpy.typing import NDArray

__all__ = [
    "BootConfig",
    "BootstrapResult",
    "bootstrap_se",
    "parametric_bootstrap",
]

_LOGGER = logging.getLogger(__name__)

# Errors a refit may raise on a degenerate simulated response.
REFIT_ERRORS: tuple[type[Exception], ...] = (
    np.linalg.LinAlgError,
    ValueError,
    RuntimeError,
    FloatingPointError,
)


class SupportsBootstrap(Protocol):
    def simulate(self, rng: np.random.Generator) -> NDArray[np.float64]: ...

    def refit(self, y: NDArray[np.float64]) -> pd.Series: ...

    def bootstrap_params(self) -> pd.Series: ...


# ---------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class BootConfig:
    """Parametric bootstrap configuration.

    Notes
    -----
    - ``n_boot`` defaults to ``STATCOURSE_N_BOOT`` or 1000.
    - ``seed`` defaults to ``STATCOURSE_SEED``; ``None`` means fresh entropy.
    - ``on_error="skip"`` drops replicates whose refit raises a numerical
      error and counts them; ``"raise"`` lets the error propagate.
    """

    n_boot: int = field(default_factory=config.default_n_boot)
    seed: int | None = field(default_factory=config.default_seed)
    level: float = 0.95
    on_error: str = "raise"

    def __post_init__(self) -> None:
        if int(self.n_boot) != self.n_boot or int(self.n_boot) < 2:
            raise ValueError(f"n_boot must be an integer >= 2; got {self.n_boot!r}.")
        if not (0.0 < float(self.level) < 1.0):
            raise ValueError(f"level must lie strictly in (0, 1); got {self.level!r}.")
        if self.on_error not in {"raise", "skip"}:
            raise ValueError(f"on_error must be 'raise' or 'skip'; got {self.on_error!r}.")

    def make_rng(self) -> np.random.Generator:
        """Return a generator seeded from ``seed``."""
        return np.random.default_rng(self.seed)


# ---------------------------------------------------------------------
# Summaries of replicate draws
# ---------------------------------------------------------------------
def bootstrap_se(beta_star: NDArray[np.float64]) -> NDArray[np.float64]:
    """Compute bootstrap standard errors from bootstrap draws.

    This function is intentionally strict:

    - Requires at least 2 bootstrap draws.
    - Rejects any non-finite (NaN/Inf) values.
    - Uses ddof=1 (unbiased sample standard deviation).

    Parameters
    ----------
    beta_star : (K, B) array
        Bootstrap draws of coefficients/statistics.

    Returns
    -------
    se : (K,) array
        Bootstrap standard errors.

    """
    arr = np.asarray(beta_star, dtype=np.float64)
    if arr.ndim == 1:
        arr = arr.reshape(1, -1)
    if arr.ndim != 2:
        raise ValueError("beta_star must be a 2-D array of shape (K, B).")
    _K, B = arr.shape
    if B < 2:
        raise ValueError(f"bootstrap_se requires at least 2 draws; got B={B}.")
    if not np.isfinite(arr).all():
        bad = np.argwhere(~np.isfinite(arr))
        head = bad[:10].tolist()
        raise ValueError(
            "Non-finite bootstrap draws detected (showing up to 10 [k,b] indices): "
            f"{head}.",
        )
    return np.std(arr, axis=1, ddof=1).astype(np.float64)


@dataclass
class BootstrapResult:
    """Replicate parameter vectors from a parametric bootstrap."""

    draws: pd.DataFrame
    estimate: pd.Series
    config: BootConfig
    n_failed: int = 0
    n_warned: int = 0

    def __repr__(self) -> str:  # pragma: no cover - convenience only
        return (
            f"BootstrapResult(B={len(self.draws)}, k={self.draws.shape[1]}, "
            f"failed={self.n_failed}, warned={self.n_warned})"
        )

    @property
    def n_boot(self) -> int:
        return int(self.draws.shape[0])

    def se(self) -> pd.Series:
        return pd.Series(bootstrap_se(self.draws.to_numpy().T), index=self.draws.columns)

    def shortest_intervals(self, level: float | None = None) -> pd.DataFrame:
        lev = self.config.level if level is None else level
        return iv.shortest_intervals(self.draws, lev)

    def percentile_intervals(self, level: float | None = None) -> pd.DataFrame:
        lev = self.config.level if level is None else level
        rows = {
            col: iv.percentile_interval(self.draws[col].to_numpy(), lev)
            for col in self.draws.columns
        }
        return pd.DataFrame.from_dict(rows, orient="index", columns=["lower", "upper"])

    def summary(self, level: float | None = None) -> pd.DataFrame:
        """Estimate, bootstrap SE and shortest interval per parameter."""
        out = pd.DataFrame({"estimate": self.estimate, "se": self.se()})
        return out.join(self.shortest_intervals(level))


# ---------------------------------------------------------------------
# Driver
# ---------------------------------------------------------------------
def parametric_bootstrap(
    model: SupportsBootstrap,
    boot: BootConfig | None = None,
    *,
    n_boot: int | None = None,
    seed: int | None = None,
) -> BootstrapResult:
    """Simulate-and-refit bootstrap of a fitted model.

    ``n_boot`` / ``seed`` override the corresponding ``boot`` fields.
    """
    cfg = boot if boot is not None else BootConfig()
    overrides: dict[str, Any] = {}
    if n_boot is not None:
        overrides["n_boot"] = n_boot
    if seed is not None:
        overrides["seed"] = seed
    if overrides:
        cfg = BootConfig(
            n_boot=overrides.get("n_boot", cfg.n_boot),
            seed=overrides.get("seed", cfg.seed),
            level=cfg.level,
            on_error=cfg.on_error,
        )

    estimate = model.bootstrap_params()
    rng = cfg.make_rng()
    rows: list[NDArray[np.float64]] = []
    n_failed = 0
    n_warned = 0
    for b in range(int(cfg.n_boot)):
        y_star = model.simulate(rng)
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            try:
                est = model.refit(y_star)
            except REFIT_ERRORS as exc:
                if cfg.on_error == "raise":
                    raise
                n_failed += 1
                _LOGGER.debug("Bootstrap replicate %d failed: %s", b, exc)
                continue
        conv = [w for w in caught if issubclass(w.category, ConvergenceWarning)]
        if conv:
            n_warned += 1
        for w in caught:
            if w not in conv:
                _LOGGER.debug("Replicate %d warning: %s", b, w.message)
        rows.append(est.reindex(estimate.index).to_numpy(dtype=np.float64))

    if len(rows) < 2:
        msg = f"Only {len(rows)} of {cfg.n_boot} bootstrap refits succeeded."
        raise RuntimeError(msg)
    if n_failed:
        warnings.warn(
            f"{n_failed} of {cfg.n_boot} bootstrap refits failed and were skipped.",
            RuntimeWarning,
            stacklevel=2,
        )
    _LOGGER.debug(
        "Parametric bootstrap: B=%d kept, %d failed, %d with convergence warnings",
        len(rows), n_failed, n_warned,
    )
    draws = pd.DataFrame(np.vstack(rows), columns=estimate.index)
    return BootstrapResult(
        draws=draws,
        estimate=estimate,
        config=cfg,
        n_failed=n_failed,
        n_warned=n_warned,
    )
