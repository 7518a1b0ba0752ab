import numpy as np
import pandas as pd
import pytest
import statsmodels.formula.api as smf

from statcourse.estimators.linear import LinearModel
from statcourse.sim.montecarlo import simulate_linear_data


@pytest.fixture
def df():
    return simulate_linear_data(n_obs=200, beta=(1.0, 2.0, -1.0), sigma=0.5, seed=42)


def test_recovers_true_coefficients(df):
    res = LinearModel.from_formula("y ~ x1 + x2", df).fit()
    assert list(res.params.index) == ["Intercept", "x1", "x2"]
    np.testing.assert_allclose(res.params.to_numpy(), [1.0, 2.0, -1.0], atol=0.3)
    assert res.model_info["sigma"] == pytest.approx(0.5, rel=0.15)
    assert res.model_info["df_resid"] == 197
    assert res.n_obs == 200


def test_matches_statsmodels_formula_api(df):
    ours = LinearModel.from_formula("y ~ x1 + x2", df).fit()
    ref = smf.ols("y ~ x1 + x2", df).fit()
    np.testing.assert_allclose(ours.params.to_numpy(), ref.params.to_numpy())
    np.testing.assert_allclose(ours.se.to_numpy(), ref.bse.to_numpy())
    np.testing.assert_allclose(ours.pvalues().to_numpy(), ref.pvalues.to_numpy())
    np.testing.assert_allclose(
        ours.conf_int(0.9).to_numpy(), ref.conf_int(0.1).to_numpy(),
    )
    assert ours.model_info["aic"] == pytest.approx(ref.aic)


def test_array_interface_adds_intercept(df):
    model = LinearModel(df["y"], df[["x1", "x2"]])
    res = model.fit()
    assert list(res.params.index) == ["Intercept", "x1", "x2"]
    formula_res = LinearModel.from_formula("y ~ x1 + x2", df).fit()
    np.testing.assert_allclose(res.params.to_numpy(), formula_res.params.to_numpy())


def test_predict_new_data(df):
    model = LinearModel.from_formula("y ~ x1 + x2", df)
    model.fit()
    new = pd.DataFrame({"x1": [0.0, 1.0], "x2": [0.0, 0.0]})
    pred = model.predict(new)
    b = model.params
    np.testing.assert_allclose(pred, [b["Intercept"], b["Intercept"] + b["x1"]])
    np.testing.assert_allclose(model.predict(), model.results.extra["fitted"])


def test_categorical_predictor_names():
    df = pd.DataFrame(
        {"y": [1.0, 2.0, 3.0, 4.0, 5.0, 7.0], "g": ["a", "a", "b", "b", "c", "c"]},
    )
    res = LinearModel.from_formula("y ~ C(g)", df).fit()
    assert list(res.params.index) == ["Intercept", "C(g)[T.b]", "C(g)[T.c]"]


def test_anova_nested(df):
    small = LinearModel.from_formula("y ~ x1", df)
    large = LinearModel.from_formula("y ~ x1 + x2", df)
    small.fit()
    large.fit()
    table = small.anova(large)
    assert table.shape[0] == 2
    assert table["Pr(>F)"].iloc[1] < 1e-6
    with pytest.raises(ValueError, match="nested"):
        large.anova(small)


def test_missing_rows_dropped(df):
    df = df.copy()
    df.loc[df.index[:5], "x1"] = np.nan
    res = LinearModel.from_formula("y ~ x1 + x2", df).fit()
    assert res.n_obs == 195


def test_input_validation():
    with pytest.raises(ValueError, match="rows"):
        LinearModel(np.ones(5), np.ones((4, 2)))
    with pytest.raises(ValueError, match="NaN"):
        LinearModel(np.array([1.0, np.nan, 2.0]), np.ones((3, 1)))
    df = pd.DataFrame({"y": [1.0, 2.0], "x": [0.0, 1.0], "g": ["a", "b"]})
    with pytest.raises(ValueError, match="LinearMixedModel"):
        LinearModel.from_formula("y ~ x + (1 | g)", df)


def test_unfitted_access_raises():
    model = LinearModel(np.arange(5.0), np.arange(5.0))
    assert not model.is_fitted
    with pytest.raises(RuntimeError, match="fit"):
        _ = model.params


def test_bootstrap_layout_and_se(df):
    model = LinearModel.from_formula("y ~ x1 + x2", df)
    res = model.fit()
    boot = model.bootstrap(n_boot=400, seed=2)
    assert list(boot.draws.columns) == ["Intercept", "x1", "x2", "sigma"]
    se = boot.se()
    np.testing.assert_allclose(se[["Intercept", "x1", "x2"]].to_numpy(), res.se.to_numpy(), rtol=0.2)
    ci = boot.shortest_intervals()
    assert (ci["lower"] < boot.estimate).all()
    assert (ci["upper"] > boot.estimate).all()


def test_covariate_named_sigma_rejected(df):
    renamed = df.rename(columns={"x1": "sigma"})
    with pytest.raises(ValueError, match="sigma"):
        LinearModel.from_formula("y ~ sigma + x2", renamed)
    with pytest.raises(ValueError, match="reserves"):
        LinearModel(renamed["y"], renamed[["sigma"]])
