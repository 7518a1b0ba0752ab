"""Simulated teaching data.

Each generator takes a ``seed`` and returns a DataFrame whose true
parameters are documented in the docstring, so that fits can be checked
against known values.
"""

from __future__ import annotations

import numpy as np
import pandas as pd
from scipy.special import expit

__all__ = [
    "simulate_crossed_data",
    "simulate_linear_data",
    "simulate_logistic_data",
    "simulate_michaelis_menten_data",
    "simulate_poisson_data",
    "simulate_sleepstudy_data",
]


def simulate_linear_data(
    n_obs: int = 100, *, beta=(1.0, 2.0, -1.0), sigma: float = 1.0, seed: int | None = 42,
) -> pd.DataFrame:
    """``y = b0 + b1 x1 + b2 x2 + e`` with ``x1, x2 ~ U(0, 1)``, ``e ~ N(0, sigma^2)``."""
    rng = np.random.default_rng(seed)
    b = np.asarray(beta, dtype=np.float64)
    if b.size != 3:
        raise ValueError("beta must have three entries (intercept, x1, x2).")
    x1 = rng.random(n_obs)
    x2 = rng.random(n_obs)
    y = b[0] + b[1] * x1 + b[2] * x2 + sigma * rng.standard_normal(n_obs)
    return pd.DataFrame({"y": y, "x1": x1, "x2": x2})


def simulate_logistic_data(
    n_obs: int = 200, *, beta=(-0.5, 1.5), seed: int | None = 123,
) -> pd.DataFrame:
    """Binary ``y`` with ``P(y = 1) = expit(b0 + b1 x)``, ``x ~ N(0, 1)``."""
    rng = np.random.default_rng(seed)
    x = rng.standard_normal(n_obs)
    p = expit(beta[0] + beta[1] * x)
    y = rng.binomial(1, p)
    return pd.DataFrame({"y": y.astype(np.int64), "x": x})


def simulate_poisson_data(
    n_obs: int = 200, *, beta=(0.5, 0.8), seed: int | None = 321,
) -> pd.DataFrame:
    """Counts ``y ~ Poisson(exp(b0 + b1 x))``, ``x ~ U(0, 2)``."""
    rng = np.random.default_rng(seed)
    x = 2.0 * rng.random(n_obs)
    y = rng.poisson(np.exp(beta[0] + beta[1] * x))
    return pd.DataFrame({"y": y.astype(np.int64), "x": x})


def simulate_michaelis_menten_data(
    *,
    conc=(0.02, 0.06, 0.11, 0.22, 0.56, 1.10),
    n_rep: int = 2,
    Vm: float = 210.0,
    K: float = 0.065,
    sigma: float = 10.0,
    seed: int | None = 456,
) -> pd.DataFrame:
    """Enzyme kinetics ``rate = Vm conc / (K + conc) + e`` on a Puromycin-like design."""
    rng = np.random.default_rng(seed)
    x = np.repeat(np.asarray(conc, dtype=np.float64), int(n_rep))
    rate = Vm * x / (K + x) + sigma * rng.standard_normal(x.size)
    return pd.DataFrame({"conc": x, "rate": rate})


def simulate_sleepstudy_data(  # noqa: PLR0913
    n_subjects: int = 18,
    n_days: int = 10,
    *,
    beta=(251.4, 10.5),
    sd_intercept: float = 24.7,
    sd_slope: float = 5.9,
    corr: float = 0.07,
    sigma: float = 25.6,
    seed: int | None = 789,
) -> pd.DataFrame:
    """Reaction times with subject-specific intercepts and slopes over days.

    Defaults follow the REML fit of ``Reaction ~ Days + (Days | Subject)`` to
    the classic sleep-deprivation study.
    """
    rng = np.random.default_rng(seed)
    cov = np.array(
        [
            [sd_intercept**2, corr * sd_intercept * sd_slope],
            [corr * sd_intercept * sd_slope, sd_slope**2],
        ],
    )
    b = rng.multivariate_normal(np.zeros(2), cov, size=n_subjects)
    subj = np.repeat(np.arange(n_subjects), n_days)
    days = np.tile(np.arange(n_days, dtype=np.float64), n_subjects)
    reaction = (
        beta[0] + b[subj, 0]
        + (beta[1] + b[subj, 1]) * days
        + sigma * rng.standard_normal(subj.size)
    )
    return pd.DataFrame(
        {
            "Reaction": reaction,
            "Days": days,
            "Subject": pd.Categorical([f"S{s + 1:02d}" for s in subj]),
        },
    )


def simulate_crossed_data(  # noqa: PLR0913
    n_a: int = 24,
    n_b: int = 6,
    n_rep: int = 1,
    *,
    mu: float = 22.97,
    sd_a: float = 0.85,
    sd_b: float = 1.77,
    sigma: float = 0.55,
    seed: int | None = 101,
) -> pd.DataFrame:
    """Fully crossed design ``y = mu + a_i + b_j + e`` (Penicillin-like defaults)."""
    rng = np.random.default_rng(seed)
    a_eff = sd_a * rng.standard_normal(n_a)
    b_eff = sd_b * rng.standard_normal(n_b)
    ia = np.repeat(np.arange(n_a), n_b * n_rep)
    ib = np.tile(np.repeat(np.arange(n_b), n_rep), n_a)
    y = mu + a_eff[ia] + b_eff[ib] + sigma * rng.standard_normal(ia.size)
    return pd.DataFrame(
        {
            "y": y,
            "plate": pd.Categorical([f"p{i + 1:02d}" for i in ia]),
            "sample": pd.Categorical([chr(ord("A") + j) for j in ib]),
        },
    )
