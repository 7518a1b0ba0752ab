"""Linear model fitted by ordinary least squares.

This module wraps statsmodels OLS in the common model interface, with
formula support, prediction, nested-model F tests and parametric bootstrap
hooks.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Union

import numpy as np
import pandas as pd
import statsmodels.api as sm
from numpy.typing import NDArray
from statsmodels.stats.anova import anova_lm

from statcourse.utils.formula import FormulaParser

from .base import BaseModel, FitResult, check_reserved_names

if TYPE_CHECKING:
    from collections.abc import Sequence


ArrayLike = Union[pd.Series, np.ndarray]
MatrixLike = Union[pd.DataFrame, np.ndarray]

_LOGGER = logging.getLogger(__name__)


def _design_with_names(
    X: MatrixLike, var_names: Sequence[str] | None, add_const: bool,
) -> tuple[NDArray[np.float64], list[str]]:
    if var_names is None and isinstance(X, pd.DataFrame):
        var_names = [str(c) for c in X.columns]
    X_arr = np.asarray(X, dtype=np.float64)
    if X_arr.ndim == 1:
        X_arr = X_arr.reshape(-1, 1)
    names = (
        list(var_names)
        if var_names is not None
        else [f"x{i}" for i in range(X_arr.shape[1])]
    )
    if len(names) != X_arr.shape[1]:
        raise ValueError(
            f"var_names has {len(names)} entries but X has {X_arr.shape[1]} columns.",
        )
    if add_const:
        if "Intercept" in names:
            raise ValueError("Column name 'Intercept' is reserved for the added constant.")
        X_arr = np.column_stack([np.ones(X_arr.shape[0]), X_arr])
        names = ["Intercept", *names]
    return np.ascontiguousarray(X_arr), names


class LinearModel(BaseModel):
    """Linear regression ``y = X b + e``, ``e ~ N(0, sigma^2 I)``.

    Parameters
    ----------
    y : array-like, shape (n,)
        Response.
    X : array-like, shape (n, p)
        Covariates. Can be numpy array or pandas DataFrame.
    add_const : bool, default=True
        Prepend an ``Intercept`` column.
    var_names : Sequence[str], optional
        Names for the columns of X. Defaults to DataFrame columns or
        ``['x0', 'x1', ...]``.

    Examples
    --------
    >>> from statcourse.sim.montecarlo import simulate_linear_data
    >>> df = simulate_linear_data(n_obs=50, seed=1)
    >>> res = LinearModel.from_formula("y ~ x1 + x2", df).fit()
    >>> list(res.params.index)
    ['Intercept', 'x1', 'x2']
    """

    def __init__(
        self,
        y: ArrayLike,
        X: MatrixLike,
        *,
        add_const: bool = True,
        var_names: Sequence[str] | None = None,
    ) -> None:
        super().__init__()
        y_arr = np.asarray(y, dtype=np.float64).reshape(-1)
        X_arr, names = _design_with_names(X, var_names, add_const)
        check_reserved_names(names, ("sigma",), model="LinearModel")
        if X_arr.shape[0] != y_arr.shape[0]:
            raise ValueError(
                f"X has {X_arr.shape[0]} rows but y has {y_arr.shape[0]} observations.",
            )
        if not (np.all(np.isfinite(y_arr)) and np.all(np.isfinite(X_arr))):
            raise ValueError("Input contains NA/NaN/Inf; please drop/clean rows first.")
        self.y = y_arr
        self.X = X_arr
        self._var_names = names
        self.formula: str | None = None
        self._design_info: Any = None
        self._sm_result: Any = None

    @classmethod
    def from_formula(cls, formula: str, data: pd.DataFrame) -> LinearModel:
        """Build a linear model from a patsy formula such as ``"y ~ x + C(g)"``."""
        parsed = FormulaParser(data).parse(formula)
        if parsed["random_terms"]:
            raise ValueError(
                "Random-effects terms are not allowed here; use LinearMixedModel.",
            )
        model = cls(parsed["y"], parsed["X"], add_const=False, var_names=parsed["var_names"])
        model.formula = formula
        model._design_info = parsed["design_info"]
        n_dropped = int(data.shape[0] - parsed["X"].shape[0])
        if n_dropped:
            _LOGGER.debug("Dropped %d rows with missing values for %r", n_dropped, formula)
        return model

    # ------------------------------------------------------------------
    def _ols(self, y: NDArray[np.float64]):
        return sm.OLS(y, self.X).fit()

    def fit(self) -> FitResult:
        """Fit by least squares (statsmodels OLS, pivoted QR/pinv internally)."""
        res = self._ols(self.y)
        self._sm_result = res
        n, p = self.X.shape
        sigma = float(np.sqrt(res.scale))
        self._results = FitResult(
            params=pd.Series(np.asarray(res.params), index=self._var_names),
            se=pd.Series(np.asarray(res.bse), index=self._var_names),
            n_obs=int(n),
            model_info={
                "Estimator": "LinearModel",
                "formula": self.formula,
                "dist": "t",
                "df_resid": float(res.df_resid),
                "sigma": sigma,
                "r_squared": float(res.rsquared),
                "adj_r_squared": float(res.rsquared_adj),
                "loglik": float(res.llf),
                "aic": float(res.aic),
                "bic": float(res.bic),
                "rank": int(np.linalg.matrix_rank(self.X)),
                "n_params": int(p),
            },
            extra={
                "fitted": np.asarray(res.fittedvalues),
                "resid": np.asarray(res.resid),
                "sm_result": res,
            },
        )
        return self._results

    # ------------------------------------------------------------------
    def predict(self, data: pd.DataFrame | MatrixLike | None = None) -> NDArray[np.float64]:
        """Fitted means for the estimation sample or for new covariates.

        Formula models accept a DataFrame with the original variables; array
        models accept a design matrix with the same columns as ``X``.
        """
        beta = self.params.to_numpy()
        if data is None:
            return self.X @ beta
        if self._design_info is not None and isinstance(data, pd.DataFrame):
            X_new = FormulaParser.build_matrix(self._design_info, data)
        else:
            X_new = np.asarray(data, dtype=np.float64)
            if X_new.ndim == 1:
                X_new = X_new.reshape(1, -1)
        if X_new.shape[1] != beta.shape[0]:
            raise ValueError(
                f"New design has {X_new.shape[1]} columns; model has {beta.shape[0]}.",
            )
        return X_new @ beta

    def anova(self, other: LinearModel) -> pd.DataFrame:
        """F test of nested linear models; ``self`` is the smaller model.

        Returns the statsmodels ANOVA table (one row per model).
        """
        if not isinstance(other, LinearModel):
            raise TypeError("anova compares two LinearModel objects.")
        small, large = self.results, other.results
        if small.n_obs != large.n_obs:
            raise ValueError("Models were fitted to different numbers of observations.")
        if small.model_info["df_resid"] < large.model_info["df_resid"]:
            raise ValueError("The first model must be nested in (smaller than) the second.")
        return anova_lm(small.extra["sm_result"], large.extra["sm_result"])

    # -- parametric bootstrap hooks -----------------------------------
    def simulate(self, rng: np.random.Generator) -> NDArray[np.float64]:
        res = self.results
        mu = np.asarray(res.extra["fitted"], dtype=np.float64)
        return mu + res.model_info["sigma"] * rng.standard_normal(mu.shape[0])

    def refit(self, y: NDArray[np.float64]) -> pd.Series:
        res = self._ols(np.asarray(y, dtype=np.float64))
        out = pd.Series(np.asarray(res.params), index=self._var_names)
        out["sigma"] = float(np.sqrt(res.scale))
        return out

    def bootstrap_params(self) -> pd.Series:
        out = self.params.copy()
        out["sigma"] = self.results.model_info["sigma"]
        return out
