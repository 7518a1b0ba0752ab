"""Gauss-Hermite quadrature rules.

Nodes and weights come from numpy.polynomial; this module only rescales them
so that a rule integrates against the standard normal density.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import TYPE_CHECKING, Callable

import numpy as np
from numpy.polynomial import hermite, hermite_e
from scipy.special import expit

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray

__all__ = [
    "GHNormRule",
    "gauss_hermite",
    "gauss_hermite_normal",
    "logistic_normal_mean",
    "normal_expectation",
]

_LOGGER = logging.getLogger(__name__)

_SQRT_2PI = float(np.sqrt(2.0 * np.pi))


def _check_order(k: int) -> int:
    if isinstance(k, bool) or int(k) != k or int(k) < 1:
        msg = f"quadrature order k must be a positive integer; got {k!r}."
        raise ValueError(msg)
    return int(k)


def gauss_hermite(k: int) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Nodes and weights for integrals against ``exp(-x**2)``."""
    k = _check_order(k)
    x, w = hermite.hermgauss(k)
    return x.astype(np.float64), w.astype(np.float64)


@dataclass(frozen=True)
class GHNormRule:
    """Gauss-Hermite rule for the standard normal density.

    ``sum(w * f(z))`` approximates ``E[f(Z)]`` with ``Z ~ N(0, 1)`` and is
    exact for polynomials of degree up to ``2k - 1``.
    """

    z: NDArray[np.float64]
    w: NDArray[np.float64]

    def __len__(self) -> int:
        return int(self.z.size)

    def expect(
        self,
        f: Callable[[NDArray[np.float64]], ArrayLike],
        mu: float = 0.0,
        sigma: float = 1.0,
    ) -> float:
        """Approximate ``E[f(X)]`` for ``X ~ N(mu, sigma**2)``."""
        if not np.isfinite(sigma) or sigma < 0:
            raise ValueError(f"sigma must be finite and non-negative; got {sigma!r}.")
        vals = np.asarray(f(mu + sigma * self.z), dtype=np.float64)
        if vals.shape != self.z.shape:
            raise ValueError("f must map the node vector to a vector of the same length.")
        return float(np.dot(self.w, vals))


@lru_cache(maxsize=64)
def _ghnorm_cached(k: int) -> GHNormRule:
    z, w = hermite_e.hermegauss(k)
    w = w / _SQRT_2PI
    z.setflags(write=False)
    w.setflags(write=False)
    _LOGGER.debug("Built %d-point Gauss-Hermite rule (sum w = %.15g)", k, float(w.sum()))
    return GHNormRule(z=z, w=w)


def gauss_hermite_normal(k: int) -> GHNormRule:
    """Return the cached ``k``-point rule for the standard normal."""
    return _ghnorm_cached(_check_order(k))


def normal_expectation(
    f: Callable[[NDArray[np.float64]], ArrayLike],
    mu: float = 0.0,
    sigma: float = 1.0,
    k: int = 9,
) -> float:
    """Approximate ``E[f(X)]``, ``X ~ N(mu, sigma**2)``, with ``k`` nodes."""
    return gauss_hermite_normal(k).expect(f, mu=mu, sigma=sigma)


def logistic_normal_mean(
    eta: ArrayLike, sigma: float, k: int = 15,
) -> NDArray[np.float64]:
    """Marginal mean ``E[expit(eta + sigma * Z)]`` of a random-intercept logit.

    Vectorized over ``eta``; returns an array shaped like ``eta``.
    """
    if not np.isfinite(sigma) or sigma < 0:
        raise ValueError(f"sigma must be finite and non-negative; got {sigma!r}.")
    rule = gauss_hermite_normal(k)
    eta_arr = np.asarray(eta, dtype=np.float64)
    vals = expit(eta_arr[..., np.newaxis] + float(sigma) * rule.z)
    return np.asarray(vals @ rule.w, dtype=np.float64)
