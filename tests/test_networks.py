import jax
import jax.numpy as jnp
import numpy as np
import pytest
from scipy.integrate import quad

from neuralpotentials.networks import MLP, integrate_network, kepler_network, oscillator_network, potential_curve


def test_networks_map_scalars_to_scalars(key):
    for net in (kepler_network(key), oscillator_network(key)):
        assert net(jnp.array(0.3)).shape == ()
        assert jax.vmap(net)(jnp.linspace(0.0, 1.0, 7)).shape == (7,)


def test_mlp_needs_one_activation_per_layer(key):
    with pytest.raises(ValueError):
        MLP(key, (1, 8, 1), (jnp.tanh,))


def test_integrate_network_matches_quadrature(key):
    net = kepler_network(key)
    expected, _ = quad(lambda u: float(net(jnp.array(u))), 0.1, 2.5)
    assert float(integrate_network(net, 0.1, 2.5)) == pytest.approx(expected, rel=1e-4)


def test_integrate_polynomial_exactly():
    assert float(integrate_network(lambda x: 3 * x**2 - 1, -1.0, 2.0)) == pytest.approx(6.0)


def test_potential_curve_vanishes_at_origin(key):
    net = oscillator_network(key)
    grid = jnp.array([0.0, 0.5, -0.5])
    curve = potential_curve(net, grid, scale=2.0)

    assert float(curve[0]) == pytest.approx(0.0, abs=1e-12)
    assert float(curve[1]) == pytest.approx(2.0 * float(integrate_network(net, 0.0, 0.5)))
    np.testing.assert_allclose(curve[2], -2.0 * integrate_network(net, -0.5, 0.0))
