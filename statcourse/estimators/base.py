"""Base classes and result container.

This module defines the abstract base model shared by the linear, generalized
linear, nonlinear and mixed-effects wrappers, and the standardized result
container they return.
"""

# statcourse/estimators/base.py
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import numpy as np
import pandas as pd
from scipy import stats

from statcourse.core import bootstrap as bt
from statcourse.core.intervals import ci_level_to_alpha, normalize_ci_level

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from numpy.typing import NDArray

__all__ = [
    "BaseModel",
    "FitResult",
    "check_reserved_names",
    "ci_level_to_alpha",
    "normalize_ci_level",
]


def check_reserved_names(names: Sequence[str], reserved: Iterable[str], *, model: str) -> None:
    """Reject parameter names that the bootstrap layout appends after the coefficients."""
    clash = sorted({str(n) for n in names} & set(reserved))
    if clash:
        msg = (
            f"{model} reserves the parameter name(s) {clash} for its bootstrap "
            "layout; rename the covariate or parameter."
        )
        raise ValueError(msg)


# ---------------------------------------------------------------------
# Results container, estimator-agnostic
# ---------------------------------------------------------------------
@dataclass
class FitResult:
    """Container for fitted-model results.

    Stores parameter estimates, standard errors and model-level statistics.
    ``model_info`` holds scalars used by summary tables (``Estimator``,
    ``loglik``, ``aic``, ``df_resid``...); ``extra`` holds arrays and library
    objects (fitted values, residuals, the statsmodels result).
    """

    params: pd.Series
    se: pd.Series | None = None
    n_obs: int | None = None
    model_info: dict[str, Any] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)

    def __repr__(self) -> str:  # pragma: no cover - convenience only
        est = self.model_info.get("Estimator", "?")
        return f"FitResult({est}, k={len(self.params)}, n={self.n_obs})"

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Check that ``se`` is aligned with ``params`` and finite."""
        if not isinstance(self.params, pd.Series):
            raise ValueError("params must be a pandas Series.")
        if self.se is not None:
            if not isinstance(self.se, pd.Series):
                raise ValueError("se must be a pandas Series aligned to params.")
            if not self.se.index.equals(self.params.index):
                raise ValueError("se index must exactly match params index and order.")
            if not np.all(np.isfinite(self.se.values)):
                raise ValueError("se contains non-finite values.")

    @property
    def tvalues(self) -> pd.Series:
        if self.se is None:
            raise ValueError("Standard errors are unavailable for this fit.")
        with np.errstate(divide="ignore", invalid="ignore"):
            return self.params / self.se

    def _reference_dist(self):
        df = self.model_info.get("df_resid")
        if self.model_info.get("dist") == "t" and df is not None and df > 0:
            return stats.t(df)
        return stats.norm()

    def pvalues(self) -> pd.Series:
        """Two-sided p-values of the Wald statistics."""
        dist = self._reference_dist()
        return pd.Series(2.0 * dist.sf(np.abs(self.tvalues.to_numpy())), index=self.params.index)

    def conf_int(self, level: float | None = 0.95) -> pd.DataFrame:
        """Wald intervals ``estimate ± q * se``.

        Student t with ``df_resid`` degrees of freedom when the model reports
        ``dist="t"``, standard normal otherwise. ``level`` may be given as a
        proportion (0.95) or a percentage (95).
        """
        alpha = ci_level_to_alpha(level)
        if self.se is None:
            raise ValueError("Standard errors are unavailable for this fit.")
        q = float(self._reference_dist().ppf(1.0 - alpha / 2.0))
        half = q * self.se
        return pd.DataFrame({"lower": self.params - half, "upper": self.params + half})


# ---------------------------------------------------------------------
# Abstract model
# ---------------------------------------------------------------------
class BaseModel(ABC):
    """Abstract base class for all `statcourse` models.

    Principles
    ----------
    1) Fitting is delegated to statsmodels / scipy; wrappers only shape the
       inputs and collect the outputs into a :class:`FitResult`.
    2) Every model can simulate a response from its fitted state and refit
       itself to a new response, which is all the parametric bootstrap needs.
    """

    def __init__(self) -> None:
        self._results: FitResult | None = None

    @abstractmethod
    def fit(self, *args: Any, **kwargs: Any) -> FitResult:  # pragma: no cover - abstract
        """Fit the model and return FitResult (abstract)."""
        ...

    @abstractmethod
    def simulate(self, rng: np.random.Generator) -> NDArray[np.float64]:  # pragma: no cover
        """Draw a response vector from the fitted model."""
        ...

    @abstractmethod
    def refit(self, y: NDArray[np.float64]) -> pd.Series:  # pragma: no cover
        """Refit to response ``y`` and return the bootstrap parameter vector."""
        ...

    @abstractmethod
    def bootstrap_params(self) -> pd.Series:  # pragma: no cover
        """Parameter vector of the original fit, in bootstrap layout."""
        ...

    def bootstrap(
        self,
        boot: bt.BootConfig | None = None,
        *,
        n_boot: int | None = None,
        seed: int | None = None,
    ) -> bt.BootstrapResult:
        """Run a parametric bootstrap of the fitted model."""
        _ = self.results
        return bt.parametric_bootstrap(self, boot, n_boot=n_boot, seed=seed)

    # -- convenience accessors ----------------------------------------
    @property
    def is_fitted(self) -> bool:
        return self._results is not None

    @property
    def results(self) -> FitResult:
        if self._results is None:
            msg = "Model has not been fitted yet. Call .fit() first."
            raise RuntimeError(msg)
        return self._results

    @property
    def params(self) -> pd.Series:
        return self.results.params

    @property
    def se(self) -> pd.Series | None:
        return self.results.se

    @property
    def n_obs(self) -> int | None:
        return self.results.n_obs
