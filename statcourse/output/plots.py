"""Plot utilities.

Coefficient and diagnostic plots for fitted models, fitted curves for
nonlinear regressions, caterpillar plots of random effects, bootstrap
densities with their shortest intervals, and Gauss-Hermite rules.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from scipy import stats

from statcourse.core.intervals import normalize_ci_level, shortest_interval
from statcourse.core.quadrature import gauss_hermite_normal
from statcourse.estimators.base import BaseModel, FitResult

if TYPE_CHECKING:
    from collections.abc import Sequence

    from statcourse.core.bootstrap import BootstrapResult

__all__ = [
    "bootstrap_density_plot",
    "caterpillar_plot",
    "coef_plot",
    "fitted_curve_plot",
    "qq_plot",
    "quadrature_plot",
    "residual_plot",
]


def _fit_of(obj: FitResult | BaseModel) -> FitResult:
    return obj.results if isinstance(obj, BaseModel) else obj


def _resid_and_fitted(obj: FitResult | BaseModel) -> tuple[np.ndarray, np.ndarray]:
    res = _fit_of(obj)
    extra = res.extra or {}
    fitted = extra.get("fitted")
    resid = extra.get("resid")
    if resid is None:
        resid = extra.get("resid_deviance")
    if fitted is None or resid is None:
        raise ValueError("Result does not carry fitted values and residuals.")
    return np.asarray(fitted, dtype=np.float64), np.asarray(resid, dtype=np.float64)


def coef_plot(  # noqa: PLR0913
    result: FitResult | BaseModel,
    *,
    level: float = 0.95,
    params: Sequence[str] | None = None,
    intervals: pd.DataFrame | None = None,
    show_zero: bool = True,
    ax: plt.Axes | None = None,
):
    """Dot-and-whisker plot of estimates.

    Wald intervals at ``level`` by default; pass ``intervals`` (a frame with
    ``lower``/``upper`` columns, e.g. from a bootstrap) to draw those instead.
    """
    res = _fit_of(result)
    est = res.params if params is None else res.params.loc[list(params)]
    ci = res.conf_int(level) if intervals is None else intervals
    ci = ci.reindex(est.index)
    ax = ax or plt.gca()
    y = np.arange(len(est))
    ax.errorbar(
        est.to_numpy(),
        y,
        xerr=np.vstack([est - ci["lower"], ci["upper"] - est]),
        fmt="o",
        capsize=3,
        zorder=3,
    )
    if show_zero:
        ax.axvline(0.0, color="0.6", lw=1, ls="--")
    ax.set_yticks(y)
    ax.set_yticklabels([str(n) for n in est.index])
    ax.invert_yaxis()
    ax.set_xlabel("Estimate")
    return ax


def residual_plot(result: FitResult | BaseModel, *, ax: plt.Axes | None = None, lowess: bool = True):
    """Residuals against fitted values, with an optional lowess smooth."""
    fitted, resid = _resid_and_fitted(result)
    ax = ax or plt.gca()
    ax.scatter(fitted, resid, s=12, alpha=0.7)
    ax.axhline(0.0, color="0.6", lw=1, ls="--")
    if lowess and fitted.size > 3:
        from statsmodels.nonparametric.smoothers_lowess import lowess as _lowess

        sm_fit = _lowess(resid, fitted)
        ax.plot(sm_fit[:, 0], sm_fit[:, 1], color="C3", lw=1.5)
    ax.set_xlabel("Fitted values")
    ax.set_ylabel("Residuals")
    return ax


def qq_plot(
    data: FitResult | BaseModel | np.ndarray | pd.Series,
    *,
    ax: plt.Axes | None = None,
):
    """Normal quantile-quantile plot of residuals (or of any sample)."""
    if isinstance(data, (FitResult, BaseModel)):
        _, sample = _resid_and_fitted(data)
    else:
        sample = np.asarray(data, dtype=np.float64).reshape(-1)
    (osm, osr), (slope, intercept, _) = stats.probplot(sample, dist="norm")
    ax = ax or plt.gca()
    ax.scatter(osm, osr, s=12, alpha=0.7)
    ax.plot(osm, intercept + slope * osm, color="C3", lw=1)
    ax.set_xlabel("Theoretical quantiles")
    ax.set_ylabel("Sample quantiles")
    return ax


def fitted_curve_plot(  # noqa: PLR0913
    model: Any,
    *,
    n_points: int = 200,
    groups: np.ndarray | pd.Series | None = None,
    xlabel: str = "x",
    ylabel: str = "y",
    ax: plt.Axes | None = None,
):
    """Data with the fitted curve of a one-covariate model.

    ``model`` must be fitted and expose ``x``, ``y`` and ``predict(x)``
    (e.g. :class:`~statcourse.estimators.nonlinear.NonlinearModel`).
    """
    x = np.asarray(model.x, dtype=np.float64).reshape(-1)
    y = np.asarray(model.y, dtype=np.float64).reshape(-1)
    ax = ax or plt.gca()
    if groups is None:
        ax.scatter(x, y, s=16, zorder=3)
    else:
        g = np.asarray(groups)
        for lev in pd.unique(g):
            mask = g == lev
            ax.scatter(x[mask], y[mask], s=16, zorder=3, label=str(lev))
        ax.legend(frameon=False)
    grid = np.linspace(float(np.min(x)), float(np.max(x)), int(n_points))
    ax.plot(grid, model.predict(grid), color="C3", lw=1.5)
    ax.set_xlabel(xlabel)
    ax.set_ylabel(ylabel)
    if getattr(model, "formula", None):
        ax.set_title(model.formula)
    return ax


def caterpillar_plot(  # noqa: PLR0913
    effects: pd.DataFrame,
    se: pd.DataFrame | None = None,
    *,
    column: str | None = None,
    level: float = 0.95,
    sort: bool = True,
    ax: plt.Axes | None = None,
):
    """Conditional modes of one random effect with normal-theory intervals.

    ``effects``/``se`` are one entry of
    :meth:`~statcourse.estimators.mixed.LinearMixedModel.random_effects` and
    ``random_effects_se``.
    """
    col = effects.columns[0] if column is None else column
    est = effects[col].astype(np.float64)
    half = None
    if se is not None:
        z = float(stats.norm.ppf(0.5 + normalize_ci_level(level) / 2.0))
        half = z * se[col].reindex(est.index).astype(np.float64)
    if sort:
        order = np.argsort(est.to_numpy())
        est = est.iloc[order]
        if half is not None:
            half = half.iloc[order]
    ax = ax or plt.gca()
    y = np.arange(len(est))
    ax.errorbar(
        est.to_numpy(),
        y,
        xerr=None if half is None else half.to_numpy(),
        fmt="o",
        capsize=2,
        zorder=3,
    )
    ax.axvline(0.0, color="0.6", lw=1, ls="--")
    ax.set_yticks(y)
    ax.set_yticklabels([str(i) for i in est.index])
    ax.set_xlabel(str(col))
    ax.set_ylabel(str(effects.index.name or ""))
    return ax


def bootstrap_density_plot(  # noqa: PLR0913
    boot: BootstrapResult,
    param: str,
    *,
    level: float | None = None,
    bins: int = 40,
    show_estimate: bool = True,
    ax: plt.Axes | None = None,
):
    """Histogram of bootstrap draws for ``param`` with its shortest interval shaded."""
    if param not in boot.draws.columns:
        raise KeyError(f"Parameter '{param}' not found in bootstrap draws.")
    draws = boot.draws[param].to_numpy(dtype=np.float64)
    lev = normalize_ci_level(boot.config.level if level is None else level)
    lo, hi = shortest_interval(draws, lev)
    ax = ax or plt.gca()
    ax.hist(draws, bins=bins, density=True, color="C0", alpha=0.6)
    ax.axvspan(lo, hi, color="C1", alpha=0.2, label=f"{100 * lev:g}% shortest interval")
    if show_estimate:
        ax.axvline(float(boot.estimate[param]), color="C3", lw=1.5, label="estimate")
    ax.set_xlabel(param)
    ax.set_ylabel("Density")
    ax.legend(frameon=False)
    return ax


def quadrature_plot(
    k: int = 9,
    f: Callable[[np.ndarray], np.ndarray] | None = None,
    *,
    ax: plt.Axes | None = None,
):
    """Nodes and weights of the ``k``-point normal Gauss-Hermite rule.

    With ``f`` the integrand ``f(z) * phi(z)`` is drawn as well.
    """
    rule = gauss_hermite_normal(k)
    ax = ax or plt.gca()
    ax.vlines(rule.z, 0.0, rule.w, color="C0", lw=2)
    ax.scatter(rule.z, rule.w, color="C0", zorder=3, label=f"{k}-point rule")
    span = max(4.0, float(np.max(np.abs(rule.z))) + 0.5)
    grid = np.linspace(-span, span, 400)
    ax.plot(grid, stats.norm.pdf(grid), color="0.5", lw=1, label="standard normal")
    if f is not None:
        ax.plot(grid, f(grid) * stats.norm.pdf(grid), color="C3", lw=1.5, label="f(z) phi(z)")
    ax.set_xlabel("z")
    ax.set_ylabel("weight")
    ax.legend(frameon=False)
    return ax
