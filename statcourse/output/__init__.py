# statcourse/output/__init__.py
"""Tables and figures for fitted models and bootstrap results."""
from .plots import (
    bootstrap_density_plot,
    caterpillar_plot,
    coef_plot,
    fitted_curve_plot,
    qq_plot,
    quadrature_plot,
    residual_plot,
)
from .summary import bootstrap_table, coef_table, modelsummary

__all__ = [
    "bootstrap_density_plot",
    "bootstrap_table",
    "caterpillar_plot",
    "coef_plot",
    "coef_table",
    "fitted_curve_plot",
    "modelsummary",
    "qq_plot",
    "quadrature_plot",
    "residual_plot",
]
