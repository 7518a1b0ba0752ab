"""Generalized linear models.

Thin wrapper around statsmodels GLM (iteratively reweighted least squares)
with name-based family/link selection, response simulation from the fitted
family, and analysis-of-deviance tests for nested models.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import numpy as np
import pandas as pd
import statsmodels.api as sm
from scipy import stats

from statcourse.utils.formula import FormulaParser

from .base import BaseModel, FitResult, check_reserved_names
from .linear import ArrayLike, MatrixLike, _design_with_names

if TYPE_CHECKING:
    from collections.abc import Sequence

    from numpy.typing import NDArray

__all__ = ["FAMILIES", "LINKS", "GeneralizedLinearModel", "make_family"]

_LOGGER = logging.getLogger(__name__)

_L = sm.families.links

LINKS: dict[str, Any] = {
    "identity": _L.Identity,
    "log": _L.Log,
    "logit": _L.Logit,
    "probit": _L.Probit,
    "cloglog": _L.CLogLog,
    "inverse": _L.InversePower,
    "inverse_squared": _L.InverseSquared,
    "sqrt": _L.Sqrt,
}

# family name -> (statsmodels class, canonical link, dispersion estimated)
FAMILIES: dict[str, tuple[Any, str, bool]] = {
    "gaussian": (sm.families.Gaussian, "identity", True),
    "binomial": (sm.families.Binomial, "logit", False),
    "poisson": (sm.families.Poisson, "log", False),
    "gamma": (sm.families.Gamma, "inverse", True),
    "inverse_gaussian": (sm.families.InverseGaussian, "inverse_squared", True),
}


def make_family(family: str, link: str | None = None):
    """Return a statsmodels family instance from family and link names."""
    fam_key = str(family).lower().strip()
    if fam_key not in FAMILIES:
        msg = f"Unknown family {family!r}. Allowed: {sorted(FAMILIES)}"
        raise ValueError(msg)
    fam_cls, canonical, _ = FAMILIES[fam_key]
    link_key = canonical if link is None else str(link).lower().strip()
    if link_key not in LINKS:
        msg = f"Unknown link {link!r}. Allowed: {sorted(LINKS)}"
        raise ValueError(msg)
    return fam_cls(link=LINKS[link_key]())


class GeneralizedLinearModel(BaseModel):
    """GLM with mean ``g^{-1}(X b)`` and response distribution ``family``.

    Parameters
    ----------
    y : array-like, shape (n,)
        Response. For ``binomial`` either 0/1 outcomes or proportions with
        ``trials`` giving the number of trials per row.
    X : array-like, shape (n, p)
        Covariates.
    family, link : str
        Family name in :data:`FAMILIES` and link name in :data:`LINKS`;
        ``link=None`` selects the canonical link.
    trials : array-like, optional
        Binomial trials per observation (prior weights).
    """

    def __init__(  # noqa: PLR0913
        self,
        y: ArrayLike,
        X: MatrixLike,
        *,
        family: str = "gaussian",
        link: str | None = None,
        trials: ArrayLike | None = None,
        add_const: bool = True,
        var_names: Sequence[str] | None = None,
    ) -> None:
        super().__init__()
        self.family_name = str(family).lower().strip()
        self.sm_family = make_family(family, link)
        self.link_name = (
            FAMILIES[self.family_name][1] if link is None else str(link).lower().strip()
        )
        y_arr = np.asarray(y, dtype=np.float64).reshape(-1)
        X_arr, names = _design_with_names(X, var_names, add_const)
        check_reserved_names(
            names,
            ("dispersion",) if FAMILIES[self.family_name][2] else (),
            model="GeneralizedLinearModel",
        )
        if X_arr.shape[0] != y_arr.shape[0]:
            raise ValueError(
                f"X has {X_arr.shape[0]} rows but y has {y_arr.shape[0]} observations.",
            )
        if not (np.all(np.isfinite(y_arr)) and np.all(np.isfinite(X_arr))):
            raise ValueError("Input contains NA/NaN/Inf; please drop/clean rows first.")
        if trials is not None:
            if self.family_name != "binomial":
                raise ValueError("trials is only meaningful for the binomial family.")
            trials_arr = np.asarray(trials, dtype=np.float64).reshape(-1)
            if trials_arr.shape != y_arr.shape or np.any(trials_arr <= 0):
                raise ValueError("trials must be positive and have one entry per observation.")
            if not np.all(trials_arr == np.rint(trials_arr)):
                raise ValueError("trials must be whole numbers of Bernoulli trials.")
        else:
            trials_arr = None
        self._check_response(y_arr)
        self.y = y_arr
        self.X = X_arr
        self.trials = trials_arr
        self._var_names = names
        self.formula: str | None = None
        self._design_info: Any = None

    def _check_response(self, y: NDArray[np.float64]) -> None:
        fam = self.family_name
        if fam == "binomial" and (np.any(y < 0) or np.any(y > 1)):
            raise ValueError("binomial responses must be 0/1 or proportions in [0, 1].")
        if fam == "poisson" and np.any(y < 0):
            raise ValueError("poisson responses must be non-negative counts.")
        if fam in {"gamma", "inverse_gaussian"} and np.any(y <= 0):
            raise ValueError(f"{fam} responses must be strictly positive.")

    @classmethod
    def from_formula(  # noqa: PLR0913
        cls,
        formula: str,
        data: pd.DataFrame,
        *,
        family: str = "gaussian",
        link: str | None = None,
        trials: str | None = None,
    ) -> GeneralizedLinearModel:
        """Build a GLM from a formula; ``trials`` names a column of ``data``."""
        parsed = FormulaParser(data).parse(formula)
        if parsed["random_terms"]:
            raise ValueError("Random-effects terms are not supported for GLMs.")
        trials_arr = None
        if trials is not None:
            if trials not in data.columns:
                raise KeyError(f"trials column '{trials}' not found in data.")
            trials_arr = data.loc[parsed["row_index_used"], trials].to_numpy(dtype=np.float64)
        model = cls(
            parsed["y"],
            parsed["X"],
            family=family,
            link=link,
            trials=trials_arr,
            add_const=False,
            var_names=parsed["var_names"],
        )
        model.formula = formula
        model._design_info = parsed["design_info"]
        return model

    # ------------------------------------------------------------------
    @property
    def dispersion_estimated(self) -> bool:
        return FAMILIES[self.family_name][2]

    def _glm(self, y: NDArray[np.float64]):
        return sm.GLM(y, self.X, family=self.sm_family, var_weights=self.trials).fit()

    def fit(self) -> FitResult:
        """Fit by IRLS (statsmodels GLM)."""
        res = self._glm(self.y)
        self._sm_result = res
        n, p = self.X.shape
        llf = float(res.llf)
        self._results = FitResult(
            params=pd.Series(np.asarray(res.params), index=self._var_names),
            se=pd.Series(np.asarray(res.bse), index=self._var_names),
            n_obs=int(n),
            model_info={
                "Estimator": "GeneralizedLinearModel",
                "formula": self.formula,
                "family": self.family_name,
                "link": self.link_name,
                "dist": "normal",
                "df_resid": float(res.df_resid),
                "deviance": float(res.deviance),
                "null_deviance": float(res.null_deviance),
                "dispersion": float(res.scale),
                "loglik": llf,
                "aic": float(res.aic),
                "bic": float(-2.0 * llf + np.log(n) * (p + int(self.dispersion_estimated))),
                "n_params": int(p),
                "converged": bool(getattr(res, "converged", True)),
            },
            extra={
                "fitted": np.asarray(res.fittedvalues),
                "linear_predictor": self.X @ np.asarray(res.params),
                "resid_deviance": np.asarray(res.resid_deviance),
                "resid_pearson": np.asarray(res.resid_pearson),
                "sm_result": res,
            },
        )
        return self._results

    def predict(
        self,
        data: pd.DataFrame | MatrixLike | None = None,
        *,
        which: str = "response",
    ) -> NDArray[np.float64]:
        """Predictions on the ``"response"`` (mean) or ``"link"`` scale."""
        if which not in {"response", "link"}:
            raise ValueError("which must be 'response' or 'link'.")
        beta = self.params.to_numpy()
        if data is None:
            X_new = self.X
        elif self._design_info is not None and isinstance(data, pd.DataFrame):
            X_new = FormulaParser.build_matrix(self._design_info, data)
        else:
            X_new = np.asarray(data, dtype=np.float64)
            if X_new.ndim == 1:
                X_new = X_new.reshape(1, -1)
        if X_new.shape[1] != beta.shape[0]:
            raise ValueError(
                f"New design has {X_new.shape[1]} columns; model has {beta.shape[0]}.",
            )
        eta = X_new @ beta
        if which == "link":
            return eta
        return np.asarray(self.sm_family.link.inverse(eta), dtype=np.float64)

    def deviance_test(self, other: GeneralizedLinearModel) -> pd.DataFrame:
        """Analysis of deviance for nested GLMs; ``self`` is the smaller model.

        Chi-square test for fixed-dispersion families, F test otherwise.
        """
        if not isinstance(other, GeneralizedLinearModel):
            raise TypeError("deviance_test compares two GeneralizedLinearModel objects.")
        if other.family_name != self.family_name:
            raise ValueError("Both models must use the same family.")
        small, large = self.results.model_info, other.results.model_info
        if self.n_obs != other.n_obs:
            raise ValueError("Models were fitted to different numbers of observations.")
        df_diff = small["df_resid"] - large["df_resid"]
        if df_diff <= 0:
            raise ValueError("The first model must be nested in (smaller than) the second.")
        dev_diff = small["deviance"] - large["deviance"]
        table = pd.DataFrame(
            {
                "df_resid": [small["df_resid"], large["df_resid"]],
                "deviance": [small["deviance"], large["deviance"]],
                "df_diff": [np.nan, df_diff],
                "dev_diff": [np.nan, dev_diff],
            },
        )
        if self.dispersion_estimated:
            F = (dev_diff / df_diff) / large["dispersion"]
            table["F"] = [np.nan, F]
            table["Pr(>F)"] = [np.nan, float(stats.f.sf(F, df_diff, large["df_resid"]))]
        else:
            table["Pr(>Chi)"] = [np.nan, float(stats.chi2.sf(dev_diff, df_diff))]
        return table

    # -- parametric bootstrap hooks -----------------------------------
    def simulate(self, rng: np.random.Generator) -> NDArray[np.float64]:
        """Draw a response from the fitted family at the fitted means."""
        res = self.results
        mu = np.asarray(res.extra["fitted"], dtype=np.float64)
        phi = float(res.model_info["dispersion"])
        fam = self.family_name
        if fam == "gaussian":
            return mu + np.sqrt(phi) * rng.standard_normal(mu.shape[0])
        if fam == "binomial":
            if self.trials is None:
                return rng.binomial(1, mu).astype(np.float64)
            return rng.binomial(self.trials.astype(np.int64), mu) / self.trials
        if fam == "poisson":
            return rng.poisson(mu).astype(np.float64)
        if fam == "gamma":
            shape = 1.0 / phi
            return rng.gamma(shape, mu / shape)
        # inverse Gaussian with shape parameter lambda = 1 / phi
        return rng.wald(mu, 1.0 / phi)

    def refit(self, y: NDArray[np.float64]) -> pd.Series:
        res = self._glm(np.asarray(y, dtype=np.float64))
        out = pd.Series(np.asarray(res.params), index=self._var_names)
        if self.dispersion_estimated:
            out["dispersion"] = float(res.scale)
        return out

    def bootstrap_params(self) -> pd.Series:
        out = self.params.copy()
        if self.dispersion_estimated:
            out["dispersion"] = self.results.model_info["dispersion"]
        return out
