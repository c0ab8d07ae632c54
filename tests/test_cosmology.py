import jax
import jax.numpy as jnp
import numpy as np
import pytest

from neuralpotentials import datasets
from neuralpotentials.constants import H0
from neuralpotentials.cosmology import FriedmannModel, QuintessenceModel, distance_modulus
from neuralpotentials.networks import MLP


def lambda_cdm(key):
    network = jax.tree_util.tree_map(jnp.zeros_like, MLP(key, (1, 8, 1), (jnp.tanh, jnp.tanh)))
    return FriedmannModel(0.3, 0.7, H0, -1.0, network)


def test_distance_modulus_of_ten_parsec():
    assert float(distance_modulus(0.0, 1e-5)) == pytest.approx(0.0, abs=1e-12)


def test_friedmann_reduces_to_lambda_cdm(key):
    z = jnp.linspace(0.05, 2.0, 15)
    model = lambda_cdm(key)
    expected = datasets.synthetic_distance_moduli(z, omega_m=0.3, sigma=0.0)

    np.testing.assert_allclose(model.predict(z), expected["my"], atol=1e-4)
    np.testing.assert_allclose(model.equation_of_state(z), -1.0)


def test_friedmann_hubble_rate(key):
    z = jnp.array([0.0, 0.5, 1.0])
    hubble = lambda_cdm(key).solve(z)[:, 2]
    np.testing.assert_allclose(hubble, H0 * jnp.sqrt(0.3 * (1 + z) ** 3 + 0.7), rtol=1e-5)


def test_friedmann_init_ranges(key):
    model = FriedmannModel.init(key)
    assert 0.2 <= float(model.omega_m0) <= 0.4
    assert 0.6 <= float(model.omega_de0) <= 0.8
    assert -1.2 <= float(model.w0) <= -0.8


def test_friedmann_prediction_is_differentiable(key):
    z = jnp.linspace(0.1, 1.0, 5)
    grads = jax.grad(lambda m: jnp.sum(m.predict(z)))(lambda_cdm(key))
    assert np.isfinite(float(grads.omega_m0))
    assert float(grads.hubble0) < 0.0


def test_quintessence_equation_of_state(key):
    model = QuintessenceModel.init(key)
    z = jnp.linspace(0.0, 1.5, 20)
    w = model.equation_of_state(z)

    # the field starts at rest
    assert float(w[0]) == pytest.approx(-1.0)
    assert np.isfinite(w).all()
    assert (np.abs(w) <= 1.0 + 1e-12).all()
    assert np.isfinite(model.predict(z[1:])).all()
