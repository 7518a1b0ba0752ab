"""Linear mixed-effects models.

Wraps statsmodels MixedLM behind lme4-style formulas:

- ``y ~ x + (1 | g)``          random intercept
- ``y ~ x + (1 + x | g)``      correlated random intercept and slope
- ``y ~ 1 + (1 | a) + (1 | b)``  crossed random intercepts

A single grouping factor maps onto MixedLM's ``groups``/``exog_re``. Several
intercept-only factors are fitted as independent variance components over one
all-encompassing group.
"""

from __future__ import annotations

import logging
import warnings
from typing import TYPE_CHECKING, Any

import numpy as np
import pandas as pd
import patsy
import statsmodels.api as sm
from statsmodels.regression.mixed_linear_model import VCSpec
from statsmodels.tools.sm_exceptions import ConvergenceWarning

from statcourse.utils.formula import FormulaParser

from .base import BaseModel, FitResult, check_reserved_names

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from statcourse.utils.formula import RandomTerm

__all__ = ["LinearMixedModel"]

_LOGGER = logging.getLogger(__name__)


def _re_design(term: RandomTerm, frame: pd.DataFrame) -> tuple[NDArray[np.float64], list[str]]:
    if term.intercept_only:
        return np.ones((frame.shape[0], 1)), ["Intercept"]
    try:
        Z = patsy.dmatrix(
            term.re_formula, frame, NA_action=patsy.NAAction(on_NA="raise"),
            return_type="dataframe",
        )
    except patsy.PatsyError as exc:
        msg = f"Unable to build random-effects design for {term.expr!r}: {exc}"
        raise ValueError(msg) from exc
    return Z.to_numpy(dtype=np.float64), list(Z.columns)


class LinearMixedModel(BaseModel):
    """Linear mixed model fitted by REML (default) or maximum likelihood.

    Parameters
    ----------
    formula : str
        Fixed effects plus lme4-style ``(expr | group)`` terms.
    data : pandas.DataFrame
        Rows with missing values in any used variable are dropped.
    reml : bool, default=True
        Use restricted maximum likelihood.

    Notes
    -----
    ``params``/``se`` are the fixed effects. Variance parameters are reported
    as standard deviations by :meth:`variance_components`, with the residual
    standard deviation under ``sigma``.
    """

    def __init__(self, formula: str, data: pd.DataFrame, *, reml: bool = True) -> None:
        super().__init__()
        parsed = FormulaParser(data).parse(formula)
        terms: list[RandomTerm] = parsed["random_terms"]
        if not terms:
            raise ValueError(
                "No random-effects term found; add e.g. '(1 | group)' or use LinearModel.",
            )
        groups = [t.group for t in terms]
        if len(set(groups)) != len(groups):
            raise ValueError(
                "Each grouping factor may appear in only one random-effects term; "
                "combine them as '(1 + x | g)'.",
            )
        if len(terms) > 1 and not all(t.intercept_only for t in terms):
            raise ValueError(
                "Several grouping factors are supported only with intercept-only "
                "terms such as '(1 | a) + (1 | b)'.",
            )
        check_reserved_names(parsed["var_names"], ("sigma",), model="LinearMixedModel")
        self.formula = formula
        self.reml = bool(reml)
        self.frame = data.loc[parsed["row_index_used"]]
        self.y = parsed["y"]
        self.X = parsed["X"]
        self._var_names = parsed["var_names"]
        self.terms = terms
        self.crossed = len(terms) > 1

        self._group_codes: dict[str, NDArray[np.int64]] = {}
        self._group_levels: dict[str, pd.Index] = {}
        for g in groups:
            codes, levels = pd.factorize(self.frame[g], sort=True)
            self._group_codes[g] = codes.astype(np.int64)
            self._group_levels[g] = pd.Index(levels, name=g)

        if self.crossed:
            # one all-encompassing group; each factor is a block of indicators
            self.Z = np.empty((self.y.size, 0))
            self._re_names = []
            self._exog_vc = VCSpec(
                list(groups),
                [[[f"{g}[{lv}]" for lv in self._group_levels[g]]] for g in groups],
                [[np.eye(len(self._group_levels[g]))[self._group_codes[g]]] for g in groups],
            )
        else:
            self.Z, self._re_names = _re_design(terms[0], self.frame)
            self._exog_vc = None
        _LOGGER.debug(
            "Mixed model %r: n=%d, groups=%s, crossed=%s",
            formula, self.y.size,
            {g: len(lv) for g, lv in self._group_levels.items()}, self.crossed,
        )

    @classmethod
    def from_formula(
        cls, formula: str, data: pd.DataFrame, *, reml: bool = True,
    ) -> LinearMixedModel:
        return cls(formula, data, reml=reml)

    # ------------------------------------------------------------------
    def _mixedlm(self, y: NDArray[np.float64]):
        if self.crossed:
            return sm.MixedLM(
                y, self.X, groups=np.zeros(y.shape[0], dtype=np.int64),
                exog_re=self.Z, exog_vc=self._exog_vc,
            )
        g = self.terms[0].group
        return sm.MixedLM(y, self.X, groups=self._group_codes[g], exog_re=self.Z)

    def _fit_sm(self, y: NDArray[np.float64], reml: bool):
        return self._mixedlm(y).fit(reml=reml)

    def _vc_values(self, res: Any) -> pd.Series:
        """Variance parameters as standard deviations (and correlations)."""
        out: dict[str, float] = {}
        if self.crossed:
            names = list(res.model.exog_vc.names)
            vcomp = np.asarray(res.vcomp, dtype=np.float64)
            by_name = dict(zip(names, vcomp))
            for t in self.terms:
                out[f"sd(Intercept|{t.group})"] = float(np.sqrt(max(by_name[t.group], 0.0)))
        else:
            g = self.terms[0].group
            cov = np.asarray(res.cov_re, dtype=np.float64)
            sds = np.sqrt(np.clip(np.diag(cov), 0.0, None))
            for i, nm in enumerate(self._re_names):
                out[f"sd({nm}|{g})"] = float(sds[i])
            for i in range(len(self._re_names)):
                for j in range(i + 1, len(self._re_names)):
                    denom = sds[i] * sds[j]
                    # degenerate (zero-variance) fits report zero correlation
                    rho = float(cov[i, j] / denom) if denom > 0 else 0.0
                    out[f"cor({self._re_names[i]},{self._re_names[j]}|{g})"] = rho
        out["sigma"] = float(np.sqrt(res.scale))
        return pd.Series(out)

    def fit(self, *, reml: bool | None = None) -> FitResult:
        """Fit with statsmodels MixedLM; convergence problems are warned, not raised."""
        use_reml = self.reml if reml is None else bool(reml)
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            res = self._fit_sm(self.y, use_reml)
        converged = bool(getattr(res, "converged", True))
        for w in caught:
            if issubclass(w.category, ConvergenceWarning):
                converged = False
            warnings.warn(w.message, w.category, stacklevel=2)
        self.reml = use_reml
        self._sm_result = res

        k_fe = self.X.shape[1]
        fe = np.asarray(res.fe_params, dtype=np.float64)
        bse = np.asarray(res.bse_fe, dtype=np.float64)
        vc = self._vc_values(res)
        n_cov = vc.size  # variance parameters incl. sigma
        llf = float(res.llf)
        aic = float("nan") if use_reml else -2.0 * llf + 2.0 * (k_fe + n_cov)
        fitted = np.asarray(res.fittedvalues, dtype=np.float64)
        self._results = FitResult(
            params=pd.Series(fe, index=self._var_names),
            se=pd.Series(bse, index=self._var_names),
            n_obs=int(self.y.size),
            model_info={
                "Estimator": "LinearMixedModel",
                "formula": self.formula,
                "dist": "normal",
                "reml": use_reml,
                "loglik": llf,
                "aic": aic,
                "sigma": float(vc["sigma"]),
                "converged": converged,
                "n_groups": {g: len(lv) for g, lv in self._group_levels.items()},
                "n_params": int(k_fe),
            },
            extra={
                "variance_components": vc,
                "fitted": fitted,
                "resid": self.y - fitted,
                "sm_result": res,
            },
        )
        return self._results

    # ------------------------------------------------------------------
    def variance_components(self) -> pd.Series:
        """Random-effect standard deviations, correlations and ``sigma``."""
        return self.results.extra["variance_components"].copy()

    def _blocks(self, values_by_group: dict[Any, Any], diag: bool) -> dict[str, pd.DataFrame]:
        res = self.results.extra["sm_result"]
        if self.crossed:
            key = next(iter(values_by_group))
            vals = np.asarray(values_by_group[key], dtype=np.float64)
            vec = np.sqrt(np.clip(np.diag(vals), 0.0, None)) if diag else vals.reshape(-1)
            out: dict[str, pd.DataFrame] = {}
            start = 0
            for name in res.model.exog_vc.names:
                levels = self._group_levels[name]
                stop = start + len(levels)
                out[name] = pd.DataFrame({"Intercept": vec[start:stop]}, index=levels)
                start = stop
            return {t.group: out[t.group] for t in self.terms}
        g = self.terms[0].group
        q = len(self._re_names)
        rows = []
        for code in range(len(self._group_levels[g])):
            vals = np.asarray(values_by_group[code], dtype=np.float64)
            vec = np.sqrt(np.clip(np.diag(vals), 0.0, None)) if diag else vals.reshape(-1)
            rows.append(vec[:q])
        return {g: pd.DataFrame(rows, index=self._group_levels[g], columns=self._re_names)}

    def random_effects(self) -> dict[str, pd.DataFrame]:
        """Conditional modes (BLUPs) per grouping factor, one row per level."""
        return self._blocks(self.results.extra["sm_result"].random_effects, diag=False)

    def random_effects_se(self) -> dict[str, pd.DataFrame]:
        """Conditional standard deviations matching :meth:`random_effects`."""
        return self._blocks(self.results.extra["sm_result"].random_effects_cov, diag=True)

    # -- parametric bootstrap hooks -----------------------------------
    def simulate(self, rng: np.random.Generator) -> NDArray[np.float64]:
        """Draw new random effects and residuals around the fixed-effects fit."""
        res = self.results
        sm_res = res.extra["sm_result"]
        y_star = self.X @ res.params.to_numpy()
        if self.crossed:
            vc = res.extra["variance_components"]
            for t in self.terms:
                sd = float(vc[f"sd(Intercept|{t.group})"])
                b = rng.normal(0.0, sd, size=len(self._group_levels[t.group]))
                y_star = y_star + b[self._group_codes[t.group]]
        else:
            g = self.terms[0].group
            cov = np.asarray(sm_res.cov_re, dtype=np.float64)
            b = rng.multivariate_normal(
                np.zeros(cov.shape[0]), cov, size=len(self._group_levels[g]), method="eigh",
            )
            y_star = y_star + np.sum(self.Z * b[self._group_codes[g]], axis=1)
        return y_star + res.model_info["sigma"] * rng.standard_normal(y_star.shape[0])

    def refit(self, y: NDArray[np.float64]) -> pd.Series:
        sm_res = self._fit_sm(np.asarray(y, dtype=np.float64), self.reml)
        fe = pd.Series(np.asarray(sm_res.fe_params, dtype=np.float64), index=self._var_names)
        return pd.concat([fe, self._vc_values(sm_res)])

    def bootstrap_params(self) -> pd.Series:
        return pd.concat([self.params, self.variance_components()])
