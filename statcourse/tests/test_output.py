import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import pytest

from statcourse.datasets import load_dataset
from statcourse.estimators.glm import GeneralizedLinearModel
from statcourse.estimators.linear import LinearModel
from statcourse.estimators.mixed import LinearMixedModel
from statcourse.estimators.nonlinear import NonlinearModel
from statcourse.output import (
    bootstrap_density_plot,
    bootstrap_table,
    caterpillar_plot,
    coef_plot,
    coef_table,
    fitted_curve_plot,
    modelsummary,
    qq_plot,
    quadrature_plot,
    residual_plot,
)
from statcourse.sim.montecarlo import simulate_linear_data, simulate_poisson_data
from statcourse.utils.helpers import filter_and_order_params, pretty_term


@pytest.fixture
def lm():
    model = LinearModel.from_formula("y ~ x1 + x2", simulate_linear_data(n_obs=80, seed=1))
    model.fit()
    return model


# ---------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------

def test_coef_table_columns(lm):
    tab = coef_table(lm)
    assert list(tab.columns) == ["estimate", "std_error", "t", "p_value", "lower", "upper"]
    assert list(tab.index) == ["Intercept", "x1", "x2"]
    assert (tab["lower"] < tab["estimate"]).all()

    pois = GeneralizedLinearModel.from_formula(
        "y ~ x", simulate_poisson_data(n_obs=50, seed=2), family="poisson",
    )
    assert "z" in coef_table(pois.fit()).columns


def test_modelsummary_side_by_side(lm):
    other = LinearModel.from_formula("y ~ x1", simulate_linear_data(n_obs=80, seed=1)).fit()
    text = modelsummary([lm, other], model_names=["full", "reduced"])
    assert "full" in text and "reduced" in text
    assert "Log-lik." in text and "AIC" in text
    assert "80" in text
    assert f"{lm.params['x1']:.3f}" in text
    assert f"({lm.se['x1']:.3f})" in text


def test_modelsummary_selection_and_latex(lm):
    text = modelsummary([lm], params=["x2"], output="latex")
    assert "\\begin{tabular}" in text
    assert "x1" not in text
    with pytest.raises(ValueError, match="not found"):
        modelsummary([lm], params=["x9"])
    with pytest.raises(ValueError, match="output"):
        modelsummary([lm], output="html")
    with pytest.raises(ValueError, match="model names"):
        modelsummary([lm], model_names=["a", "b"])


def test_modelsummary_rejects_unfitted():
    model = LinearModel(np.arange(5.0), np.arange(5.0))
    with pytest.raises(RuntimeError):
        modelsummary([model])


def test_bootstrap_table(lm):
    boot = lm.bootstrap(n_boot=50, seed=4)
    text = bootstrap_table(boot, level=90)
    assert "90% lower" in text
    assert "B = 50" in text
    assert "sigma" in text


def test_helpers():
    assert pretty_term("C(Batch)[T.B]") == "Batch: B"
    assert pretty_term("state[T.untreated]") == "state: untreated"
    assert pretty_term("Days") == "Days"
    assert filter_and_order_params(["b", "a", "b"], sort="alpha") == ["a", "b"]
    assert filter_and_order_params(["b", "a"], exclude=["^a$"]) == ["b"]


# ---------------------------------------------------------------------
# Plots (Agg backend set in conftest)
# ---------------------------------------------------------------------

def test_model_plots_return_axes(lm):
    fig, axes = plt.subplots(1, 3)
    assert coef_plot(lm, ax=axes[0]) is axes[0]
    assert residual_plot(lm, ax=axes[1]) is axes[1]
    assert qq_plot(lm, ax=axes[2]) is axes[2]
    assert len(axes[0].get_yticklabels()) == 3


def test_coef_plot_with_bootstrap_intervals(lm):
    boot = lm.bootstrap(n_boot=50, seed=3)
    ax = coef_plot(lm, intervals=boot.shortest_intervals())
    assert ax.get_xlabel() == "Estimate"


def test_fitted_curve_and_caterpillar():
    puro = load_dataset("puromycin")
    treated = puro[puro["state"] == "treated"]
    nls = NonlinearModel.from_data(treated, x="conc", y="rate")
    nls.fit()
    ax = fitted_curve_plot(nls, xlabel="conc", ylabel="rate")
    assert len(ax.lines) == 1
    assert ax.get_title() == nls.formula

    lmm = LinearMixedModel.from_formula("Yield ~ 1 + (1 | Batch)", load_dataset("dyestuff"))
    lmm.fit()
    _, ax2 = plt.subplots()
    out = caterpillar_plot(lmm.random_effects()["Batch"], lmm.random_effects_se()["Batch"], ax=ax2)
    assert out is ax2
    assert len(out.get_yticklabels()) == 6


def test_bootstrap_density_and_quadrature(lm):
    boot = lm.bootstrap(n_boot=60, seed=8)
    ax = bootstrap_density_plot(boot, "x1")
    assert ax.get_xlabel() == "x1"
    with pytest.raises(KeyError):
        bootstrap_density_plot(boot, "nope")
    _, ax2 = plt.subplots()
    assert quadrature_plot(5, f=np.cos, ax=ax2) is ax2


def test_qq_plot_on_plain_sample(rng):
    ax = qq_plot(pd.Series(rng.standard_normal(40)))
    assert ax.get_ylabel() == "Sample quantiles"
