import numpy as np
import pytest
from scipy import integrate
from scipy.special import expit

from statcourse.core.quadrature import (
    GHNormRule,
    gauss_hermite,
    gauss_hermite_normal,
    logistic_normal_mean,
    normal_expectation,
)


@pytest.mark.parametrize("k", [1, 2, 5, 9, 20])
def test_weights_sum_to_one(k):
    rule = gauss_hermite_normal(k)
    assert isinstance(rule, GHNormRule)
    assert len(rule) == k
    assert rule.w.sum() == pytest.approx(1.0, rel=1e-12)


def test_normal_moments_exact():
    rule = gauss_hermite_normal(5)
    assert rule.expect(lambda z: z) == pytest.approx(0.0, abs=1e-12)
    assert rule.expect(lambda z: z**2) == pytest.approx(1.0, rel=1e-12)
    assert rule.expect(lambda z: z**4) == pytest.approx(3.0, rel=1e-12)
    # degree 2k - 1 = 9 is still exact
    assert rule.expect(lambda z: z**8) == pytest.approx(105.0, rel=1e-10)


def test_location_scale():
    val = normal_expectation(lambda x: x**2, mu=2.0, sigma=3.0, k=3)
    assert val == pytest.approx(4.0 + 9.0)


def test_nodes_symmetric_and_read_only():
    rule = gauss_hermite_normal(6)
    np.testing.assert_allclose(rule.z, -rule.z[::-1], atol=1e-12)
    with pytest.raises(ValueError):
        rule.z[0] = 0.0


def test_rule_is_cached():
    assert gauss_hermite_normal(7) is gauss_hermite_normal(7)


def test_physicists_rule_integrates_exp_minus_x2():
    x, w = gauss_hermite(10)
    assert w.sum() == pytest.approx(np.sqrt(np.pi))
    assert np.dot(w, x**2) == pytest.approx(np.sqrt(np.pi) / 2.0)


@pytest.mark.parametrize("k", [0, -3, 2.5])
def test_invalid_order_rejected(k):
    with pytest.raises(ValueError):
        gauss_hermite_normal(k)


def test_negative_sigma_rejected():
    with pytest.raises(ValueError, match="sigma"):
        normal_expectation(np.cos, sigma=-1.0)


def test_logistic_normal_mean_matches_numerical_integral():
    eta, sigma = 0.7, 1.5

    def integrand(z):
        return expit(eta + sigma * z) * np.exp(-0.5 * z * z) / np.sqrt(2.0 * np.pi)

    ref, _ = integrate.quad(integrand, -np.inf, np.inf)
    assert float(logistic_normal_mean(eta, sigma, k=25)) == pytest.approx(ref, abs=1e-6)


def test_logistic_normal_mean_vectorized_and_attenuated():
    eta = np.array([-2.0, 0.0, 2.0])
    out = logistic_normal_mean(eta, 2.0)
    assert out.shape == eta.shape
    assert out[1] == pytest.approx(0.5)
    # marginal probabilities are pulled towards 1/2
    assert out[0] > expit(-2.0)
    assert out[2] < expit(2.0)
    np.testing.assert_allclose(logistic_normal_mean(eta, 0.0), expit(eta))
