import numpy as np
import pandas as pd
import pytest
import statsmodels.api as sm
import statsmodels.formula.api as smf

from statcourse.estimators.glm import FAMILIES, LINKS, GeneralizedLinearModel, make_family
from statcourse.sim.montecarlo import simulate_logistic_data, simulate_poisson_data


@pytest.fixture
def logit_df():
    return simulate_logistic_data(n_obs=500, beta=(-0.5, 1.5), seed=123)


@pytest.fixture
def pois_df():
    return simulate_poisson_data(n_obs=300, beta=(0.5, 0.8), seed=321)


def test_logistic_regression_matches_statsmodels(logit_df):
    ours = GeneralizedLinearModel.from_formula("y ~ x", logit_df, family="binomial").fit()
    ref = smf.glm("y ~ x", logit_df, family=sm.families.Binomial()).fit()
    np.testing.assert_allclose(ours.params.to_numpy(), ref.params.to_numpy(), rtol=1e-8)
    np.testing.assert_allclose(ours.se.to_numpy(), ref.bse.to_numpy(), rtol=1e-8)
    assert ours.model_info["deviance"] == pytest.approx(ref.deviance)
    assert ours.model_info["link"] == "logit"
    assert ours.model_info["dist"] == "normal"


def test_poisson_recovers_truth(pois_df):
    res = GeneralizedLinearModel.from_formula("y ~ x", pois_df, family="poisson").fit()
    np.testing.assert_allclose(res.params.to_numpy(), [0.5, 0.8], atol=0.2)
    assert res.model_info["dispersion"] == pytest.approx(1.0)
    assert res.model_info["converged"] is True


def test_probit_link(logit_df):
    model = GeneralizedLinearModel.from_formula("y ~ x", logit_df, family="binomial", link="probit")
    res = model.fit()
    assert res.model_info["link"] == "probit"
    logit = GeneralizedLinearModel.from_formula("y ~ x", logit_df, family="binomial").fit()
    # probit slopes are roughly logit slopes / 1.6
    assert res.params["x"] == pytest.approx(logit.params["x"] / 1.6, rel=0.15)


def test_predict_scales(pois_df):
    model = GeneralizedLinearModel.from_formula("y ~ x", pois_df, family="poisson")
    model.fit()
    new = pd.DataFrame({"x": [0.0, 1.0]})
    eta = model.predict(new, which="link")
    mu = model.predict(new)
    np.testing.assert_allclose(mu, np.exp(eta))
    b = model.params
    np.testing.assert_allclose(eta, [b["Intercept"], b["Intercept"] + b["x"]])
    with pytest.raises(ValueError, match="which"):
        model.predict(new, which="probability")


def test_binomial_with_trials():
    df = pd.DataFrame(
        {
            "dose": [0.0, 1.0, 2.0, 3.0, 4.0],
            "dead": [1, 4, 9, 13, 18],
            "n": [20, 20, 20, 20, 20],
        },
    )
    df["prop"] = df["dead"] / df["n"]
    ours = GeneralizedLinearModel.from_formula(
        "prop ~ dose", df, family="binomial", trials="n",
    ).fit()
    endog = np.column_stack([df["dead"], df["n"] - df["dead"]])
    ref = sm.GLM(endog, sm.add_constant(df["dose"]), family=sm.families.Binomial()).fit()
    np.testing.assert_allclose(ours.params.to_numpy(), ref.params.to_numpy(), rtol=1e-6)
    np.testing.assert_allclose(ours.se.to_numpy(), ref.bse.to_numpy(), rtol=1e-6)


def test_deviance_test_chi_square(pois_df):
    null = GeneralizedLinearModel.from_formula("y ~ 1", pois_df, family="poisson")
    full = GeneralizedLinearModel.from_formula("y ~ x", pois_df, family="poisson")
    null.fit()
    full.fit()
    table = null.deviance_test(full)
    assert "Pr(>Chi)" in table.columns
    assert table["df_diff"].iloc[1] == 1
    assert table["Pr(>Chi)"].iloc[1] < 1e-6


def test_deviance_test_f_for_gamma(rng):
    x = rng.random(200)
    mu = np.exp(1.0 + 0.5 * x)
    df = pd.DataFrame({"y": rng.gamma(5.0, mu / 5.0), "x": x})
    small = GeneralizedLinearModel.from_formula("y ~ 1", df, family="gamma", link="log")
    large = GeneralizedLinearModel.from_formula("y ~ x", df, family="gamma", link="log")
    small.fit()
    large.fit()
    table = small.deviance_test(large)
    assert {"F", "Pr(>F)"} <= set(table.columns)


def test_family_and_link_validation(logit_df):
    with pytest.raises(ValueError, match="Unknown family"):
        make_family("negative_binomial")
    with pytest.raises(ValueError, match="Unknown link"):
        make_family("poisson", "tanh")
    with pytest.raises(ValueError, match="binomial responses"):
        GeneralizedLinearModel(np.array([0.0, 2.0, 1.0]), np.arange(3.0), family="binomial")
    with pytest.raises(ValueError, match="trials"):
        GeneralizedLinearModel(
            np.array([1.0, 2.0, 3.0]), np.arange(3.0), family="poisson", trials=np.ones(3),
        )
    assert set(FAMILIES) == {"gaussian", "binomial", "poisson", "gamma", "inverse_gaussian"}
    assert "cloglog" in LINKS


def test_simulate_respects_family_support(pois_df, logit_df, rng):
    pois = GeneralizedLinearModel.from_formula("y ~ x", pois_df, family="poisson")
    pois.fit()
    y_star = pois.simulate(rng)
    assert y_star.shape == (pois_df.shape[0],)
    assert np.all(y_star >= 0)
    assert np.allclose(y_star, np.round(y_star))

    logit = GeneralizedLinearModel.from_formula("y ~ x", logit_df, family="binomial")
    logit.fit()
    assert set(np.unique(logit.simulate(rng))) <= {0.0, 1.0}


def test_bootstrap_gamma_includes_dispersion(rng):
    x = rng.random(150)
    df = pd.DataFrame({"y": rng.gamma(4.0, np.exp(0.5 + x) / 4.0), "x": x})
    model = GeneralizedLinearModel.from_formula("y ~ x", df, family="gamma", link="log")
    res = model.fit()
    boot = model.bootstrap(n_boot=200, seed=9)
    assert list(boot.draws.columns) == ["Intercept", "x", "dispersion"]
    np.testing.assert_allclose(
        boot.se()[["Intercept", "x"]].to_numpy(), res.se.to_numpy(), rtol=0.3,
    )


def test_dispersion_name_reserved_only_when_estimated(pois_df):
    renamed = pois_df.rename(columns={"x": "dispersion"})
    with pytest.raises(ValueError, match="dispersion"):
        GeneralizedLinearModel.from_formula("y ~ dispersion", renamed, family="gaussian")
    model = GeneralizedLinearModel.from_formula("y ~ dispersion", renamed, family="poisson")
    model.fit()
    assert list(model.bootstrap_params().index) == ["Intercept", "dispersion"]


def test_trials_must_be_whole_numbers():
    with pytest.raises(ValueError, match="whole numbers"):
        GeneralizedLinearModel(
            np.array([0.5, 0.25, 0.5, 0.75]),
            np.arange(4.0),
            family="binomial",
            trials=[2.0, 4.5, 2.0, 4.0],
        )


def test_simulated_proportions_with_trials(rng):
    n = np.array([3, 7, 10, 4, 12, 8])
    dead = np.array([0, 2, 4, 2, 9, 7])
    model = GeneralizedLinearModel(dead / n, np.arange(6.0), family="binomial", trials=n)
    model.fit()
    for _ in range(20):
        y_star = model.simulate(rng)
        assert np.all((y_star >= 0.0) & (y_star <= 1.0))
        np.testing.assert_allclose(y_star * n, np.rint(y_star * n), atol=1e-9)
