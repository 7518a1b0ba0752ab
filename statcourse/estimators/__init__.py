"""Model exports with lazy loading.

Public model classes and the result container. Uses lazy imports to avoid
circular dependencies.
"""
from __future__ import annotations

from importlib import import_module
from typing import Any

__all__ = [
    "BaseModel",
    "FitResult",
    "GeneralizedLinearModel",
    "LinearMixedModel",
    "LinearModel",
    "NonlinearModel",
]

_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "BaseModel": ("statcourse.estimators.base", "BaseModel"),
    "FitResult": ("statcourse.estimators.base", "FitResult"),
    "LinearModel": ("statcourse.estimators.linear", "LinearModel"),
    "GeneralizedLinearModel": ("statcourse.estimators.glm", "GeneralizedLinearModel"),
    "NonlinearModel": ("statcourse.estimators.nonlinear", "NonlinearModel"),
    "LinearMixedModel": ("statcourse.estimators.mixed", "LinearMixedModel"),
}


def __getattr__(name: str) -> Any:
    """Lazily import model classes and shared containers."""
    if name in _LAZY_IMPORTS:
        module_name, attr_name = _LAZY_IMPORTS[name]
        module = import_module(module_name)
        attr = getattr(module, attr_name)
        globals()[name] = attr
        return attr
    raise AttributeError(f"module 'statcourse.estimators' has no attribute '{name}'")


def __dir__() -> list[str]:
    """Expose lazily loaded attributes to ``dir()``."""
    return sorted(set(globals()) | set(__all__))
