"""Nonlinear regression.

Least-squares fits of ``y = f(x, theta) + e`` through
``scipy.optimize.curve_fit``, with a small registry of self-starting model
functions (Michaelis-Menten, logistic, asymptotic regression, exponential
decay) that compute their own starting values from the data.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

import numpy as np
import pandas as pd
from scipy.optimize import OptimizeWarning, curve_fit

from .base import BaseModel, FitResult, check_reserved_names

if TYPE_CHECKING:
    from collections.abc import Sequence

    from numpy.typing import ArrayLike, NDArray

__all__ = ["SELF_STARTING_MODELS", "NonlinearModel", "SelfStartingModel"]

_LOGGER = logging.getLogger(__name__)


# ---------------------------------------------------------------------
# Model functions and starting values
# ---------------------------------------------------------------------
def michaelis_menten(x, Vm, K):
    return Vm * x / (K + x)


def logistic(x, Asym, xmid, scal):
    return Asym / (1.0 + np.exp((xmid - x) / scal))


def asymptotic(x, Asym, R0, lrc):
    return Asym + (R0 - Asym) * np.exp(-np.exp(lrc) * x)


def exponential_decay(x, A, k):
    return A * np.exp(-k * x)


def _linear_fit(u: NDArray[np.float64], v: NDArray[np.float64]) -> tuple[float, float]:
    """Intercept and slope of the least-squares line of v on u."""
    slope, intercept = np.polyfit(u, v, 1)
    return float(intercept), float(slope)


def _init_michaelis_menten(x, y):
    # Lineweaver-Burk: 1/y = 1/Vm + (K/Vm) (1/x)
    ok = (x > 0) & (y > 0)
    if ok.sum() < 2:
        raise ValueError("Michaelis-Menten starting values need positive x and y.")
    a, b = _linear_fit(1.0 / x[ok], 1.0 / y[ok])
    if a <= 0:
        Vm = float(np.max(y)) * 1.05
        K = float(np.median(x))
        return [Vm, K]
    return [1.0 / a, b / a]


def _init_logistic(x, y):
    Asym = float(np.max(y)) * 1.05
    p = np.clip(y / Asym, 1e-3, 1.0 - 1e-3)
    a, b = _linear_fit(x, np.log(p / (1.0 - p)))
    if b == 0:
        return [Asym, float(np.median(x)), float(np.std(x)) or 1.0]
    scal = 1.0 / b
    return [Asym, -a * scal, scal]


def _init_asymptotic(x, y):
    order = np.argsort(x)
    xs, ys = x[order], y[order]
    rising = ys[-1] >= ys[0]
    spread = float(np.ptp(ys)) or 1.0
    Asym = ys[-1] + (0.05 * spread if rising else -0.05 * spread)
    R0 = float(ys[0])
    dist = np.abs(Asym - ys)
    ok = dist > 0
    if ok.sum() < 2:
        return [float(Asym), R0, 0.0]
    _, slope = _linear_fit(xs[ok], np.log(dist[ok]))
    rate = -slope if slope < 0 else 1.0 / (float(np.ptp(xs)) or 1.0)
    return [float(Asym), R0, float(np.log(rate))]


def _init_exponential_decay(x, y):
    ok = y > 0
    if ok.sum() < 2:
        raise ValueError("Exponential decay starting values need positive y.")
    a, b = _linear_fit(x[ok], np.log(y[ok]))
    return [float(np.exp(a)), float(-b)]


@dataclass(frozen=True)
class SelfStartingModel:
    """Model function with parameter names and a starting-value routine."""

    func: Callable[..., Any]
    param_names: tuple[str, ...]
    initial: Callable[[NDArray[np.float64], NDArray[np.float64]], Sequence[float]]
    formula: str


SELF_STARTING_MODELS: dict[str, SelfStartingModel] = {
    "michaelis_menten": SelfStartingModel(
        michaelis_menten, ("Vm", "K"), _init_michaelis_menten, "Vm * x / (K + x)",
    ),
    "logistic": SelfStartingModel(
        logistic, ("Asym", "xmid", "scal"), _init_logistic,
        "Asym / (1 + exp((xmid - x) / scal))",
    ),
    "asymptotic": SelfStartingModel(
        asymptotic, ("Asym", "R0", "lrc"), _init_asymptotic,
        "Asym + (R0 - Asym) * exp(-exp(lrc) * x)",
    ),
    "exponential_decay": SelfStartingModel(
        exponential_decay, ("A", "k"), _init_exponential_decay, "A * exp(-k * x)",
    ),
}


# ---------------------------------------------------------------------
# Estimator
# ---------------------------------------------------------------------
class NonlinearModel(BaseModel):
    """Nonlinear least squares, ``y = func(x, *theta) + e``.

    Parameters
    ----------
    func : callable
        ``func(x, *theta)`` returning fitted means, vectorized over ``x``.
    x, y : array-like
        Covariate and response. ``x`` may be 2-D when ``func`` expects it.
    p0 : sequence of float
        Starting values.
    param_names : sequence of str, optional
        Names for ``theta``; defaults to ``theta0, theta1, ...``.
    """

    def __init__(  # noqa: PLR0913
        self,
        func: Callable[..., Any],
        x: ArrayLike,
        y: ArrayLike,
        p0: Sequence[float],
        param_names: Sequence[str] | None = None,
        *,
        max_nfev: int | None = None,
    ) -> None:
        super().__init__()
        x_arr = np.asarray(x, dtype=np.float64)
        y_arr = np.asarray(y, dtype=np.float64).reshape(-1)
        if x_arr.shape[0] != y_arr.shape[0]:
            raise ValueError("x and y must have the same number of observations.")
        if not (np.all(np.isfinite(x_arr)) and np.all(np.isfinite(y_arr))):
            raise ValueError("Input contains NA/NaN/Inf; please drop/clean rows first.")
        p0_arr = np.asarray(p0, dtype=np.float64).reshape(-1)
        names = (
            [str(n) for n in param_names]
            if param_names is not None
            else [f"theta{j}" for j in range(p0_arr.size)]
        )
        if len(names) != p0_arr.size:
            raise ValueError(f"{len(names)} parameter names for {p0_arr.size} starting values.")
        check_reserved_names(names, ("sigma",), model="NonlinearModel")
        if y_arr.size <= p0_arr.size:
            raise ValueError(
                f"Need more observations ({y_arr.size}) than parameters ({p0_arr.size}).",
            )
        self.func = func
        self.x = x_arr
        self.y = y_arr
        self.p0 = p0_arr
        self._param_names = names
        self.max_nfev = max_nfev
        self.model_name: str | None = None
        self.formula: str | None = None

    @classmethod
    def from_data(  # noqa: PLR0913
        cls,
        data: pd.DataFrame,
        *,
        x: str,
        y: str,
        model: str = "michaelis_menten",
        p0: Sequence[float] | None = None,
    ) -> NonlinearModel:
        """Build a self-starting model from two columns of ``data``."""
        key = str(model).lower().strip()
        if key not in SELF_STARTING_MODELS:
            msg = f"Unknown model {model!r}. Allowed: {sorted(SELF_STARTING_MODELS)}"
            raise ValueError(msg)
        for col in (x, y):
            if col not in data.columns:
                raise KeyError(f"Column '{col}' not found in data.")
        frame = data[[x, y]].dropna()
        xv = frame[x].to_numpy(dtype=np.float64)
        yv = frame[y].to_numpy(dtype=np.float64)
        entry = SELF_STARTING_MODELS[key]
        start = list(entry.initial(xv, yv)) if p0 is None else list(p0)
        _LOGGER.debug("Starting values for %s: %s", key, start)
        obj = cls(entry.func, xv, yv, start, entry.param_names)
        obj.model_name = key
        obj.formula = f"{y} ~ {entry.formula}"
        return obj

    # ------------------------------------------------------------------
    def _curve_fit(self, y: NDArray[np.float64], p0: NDArray[np.float64]):
        kwargs: dict[str, Any] = {}
        if self.max_nfev is not None:
            kwargs["maxfev"] = int(self.max_nfev)
        with warnings.catch_warnings():
            warnings.simplefilter("error", OptimizeWarning)
            try:
                theta, pcov = curve_fit(self.func, self.x, y, p0=p0, **kwargs)
            except OptimizeWarning as exc:
                msg = f"Covariance of the estimates could not be computed: {exc}"
                raise RuntimeError(msg) from exc
        return np.asarray(theta, dtype=np.float64), np.asarray(pcov, dtype=np.float64)

    def _sigma(self, y: NDArray[np.float64], theta: NDArray[np.float64]) -> tuple[float, float]:
        resid = y - np.asarray(self.func(self.x, *theta), dtype=np.float64)
        rss = float(resid @ resid)
        df = y.size - theta.size
        return rss, float(np.sqrt(rss / df))

    def fit(self) -> FitResult:
        """Fit by nonlinear least squares (Levenberg-Marquardt)."""
        theta, pcov = self._curve_fit(self.y, self.p0)
        fitted = np.asarray(self.func(self.x, *theta), dtype=np.float64)
        rss, sigma = self._sigma(self.y, theta)
        n, p = self.y.size, theta.size
        se = np.sqrt(np.diag(pcov))
        if not np.all(np.isfinite(se)):
            raise RuntimeError("Non-finite standard errors; the model may be over-parameterized.")
        loglik = -0.5 * n * (np.log(2.0 * np.pi * rss / n) + 1.0)
        self._results = FitResult(
            params=pd.Series(theta, index=self._param_names),
            se=pd.Series(se, index=self._param_names),
            n_obs=int(n),
            model_info={
                "Estimator": "NonlinearModel",
                "model": self.model_name,
                "formula": self.formula,
                "dist": "t",
                "df_resid": float(n - p),
                "sigma": sigma,
                "rss": rss,
                "loglik": float(loglik),
                "aic": float(-2.0 * loglik + 2.0 * (p + 1)),
                "n_params": int(p),
            },
            extra={
                "fitted": fitted,
                "resid": self.y - fitted,
                "vcov": pcov,
                "p0": self.p0.copy(),
            },
        )
        return self._results

    def predict(self, x: ArrayLike | None = None) -> NDArray[np.float64]:
        x_arr = self.x if x is None else np.asarray(x, dtype=np.float64)
        return np.asarray(self.func(x_arr, *self.params.to_numpy()), dtype=np.float64)

    # -- parametric bootstrap hooks -----------------------------------
    def simulate(self, rng: np.random.Generator) -> NDArray[np.float64]:
        res = self.results
        mu = np.asarray(res.extra["fitted"], dtype=np.float64)
        return mu + res.model_info["sigma"] * rng.standard_normal(mu.shape[0])

    def refit(self, y: NDArray[np.float64]) -> pd.Series:
        y_arr = np.asarray(y, dtype=np.float64)
        theta, _ = self._curve_fit(y_arr, self.params.to_numpy())
        _, sigma = self._sigma(y_arr, theta)
        out = pd.Series(theta, index=self._param_names)
        out["sigma"] = sigma
        return out

    def bootstrap_params(self) -> pd.Series:
        out = self.params.copy()
        out["sigma"] = self.results.model_info["sigma"]
        return out
