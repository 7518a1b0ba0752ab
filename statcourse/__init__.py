"""statcourse: statistical modelling course material.

Linear, generalized linear, nonlinear and linear mixed-effects models with a
common interface, parametric bootstrap with shortest coverage intervals,
Gauss-Hermite quadrature, bundled datasets, tables and plots.
"""
from __future__ import annotations

from importlib import import_module
from typing import Any

__version__ = "0.1.0"

__all__ = [
    "BaseModel",
    "BootConfig",
    "BootstrapResult",
    "FitResult",
    "GeneralizedLinearModel",
    "LinearMixedModel",
    "LinearModel",
    "NonlinearModel",
    "coef_table",
    "gauss_hermite_normal",
    "load_dataset",
    "load_rdataset",
    "modelsummary",
    "parametric_bootstrap",
    "shortest_interval",
    "shortest_intervals",
]

_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "BaseModel": ("statcourse.estimators.base", "BaseModel"),
    "FitResult": ("statcourse.estimators.base", "FitResult"),
    "LinearModel": ("statcourse.estimators.linear", "LinearModel"),
    "GeneralizedLinearModel": ("statcourse.estimators.glm", "GeneralizedLinearModel"),
    "NonlinearModel": ("statcourse.estimators.nonlinear", "NonlinearModel"),
    "LinearMixedModel": ("statcourse.estimators.mixed", "LinearMixedModel"),
    "BootConfig": ("statcourse.core.bootstrap", "BootConfig"),
    "BootstrapResult": ("statcourse.core.bootstrap", "BootstrapResult"),
    "parametric_bootstrap": ("statcourse.core.bootstrap", "parametric_bootstrap"),
    "shortest_interval": ("statcourse.core.intervals", "shortest_interval"),
    "shortest_intervals": ("statcourse.core.intervals", "shortest_intervals"),
    "gauss_hermite_normal": ("statcourse.core.quadrature", "gauss_hermite_normal"),
    "load_dataset": ("statcourse.datasets.loaders", "load_dataset"),
    "load_rdataset": ("statcourse.datasets.loaders", "load_rdataset"),
    "coef_table": ("statcourse.output.summary", "coef_table"),
    "modelsummary": ("statcourse.output.summary", "modelsummary"),
}


def __getattr__(name: str) -> Any:
    """Lazily import public models and utilities on first access."""
    if name in _LAZY_IMPORTS:
        module_name, attr_name = _LAZY_IMPORTS[name]
        module = import_module(module_name)
        attr = getattr(module, attr_name)
        globals()[name] = attr
        return attr
    raise AttributeError(f"module 'statcourse' has no attribute '{name}'")


def __dir__() -> list[str]:
    """Ensure dir() exposes lazily imported names."""
    return sorted(set(globals()) | set(__all__))
