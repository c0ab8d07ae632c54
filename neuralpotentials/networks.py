"""Small scalar-to-scalar networks standing in for unknown forces and potentials."""

import equinox as eqx
import jax
import jax.numpy as jnp
import numpy as np


def rbf(x):
    """Radial basis activation."""
    return jnp.sqrt(1.0 + 0.25 * x**2)


def identity(x):
    return x


class MLP(eqx.Module):
    layers: list
    activations: tuple = eqx.field(static=True)

    def __init__(self, key, widths=(1, 8, 8, 1), activations=(jax.nn.celu, rbf, identity)):
        if len(activations) != len(widths) - 1:
            raise ValueError(f"{len(widths) - 1} layers need as many activations, got {len(activations)}")
        keys = jax.random.split(key, len(widths) - 1)
        self.layers = [
            eqx.nn.Linear(n_in, n_out, key=k)
            for n_in, n_out, k in zip(widths[:-1], widths[1:], keys)
        ]
        self.activations = tuple(activations)

    def __call__(self, x):
        h = jnp.reshape(x, (1,))
        for layer, activation in zip(self.layers, self.activations):
            h = activation(layer(h))
        return h[0]


def kepler_network(key):
    """Gradient of the orbital potential: 1 -> 8 (celu) -> 8 (rbf) -> 1."""
    return MLP(key, (1, 8, 8, 1), (jax.nn.celu, rbf, identity))


def oscillator_network(key):
    """Gradient of the oscillator potential: 1 -> 16 (relu) -> 16 (relu) -> 1."""
    return MLP(key, (1, 16, 16, 1), (jax.nn.relu, jax.nn.relu, identity))


# Gauss-Legendre nodes and weights on [-1, 1]
_NODES, _WEIGHTS = np.polynomial.legendre.leggauss(32)


def integrate_network(net, a, b):
    """Integrate a scalar network from a to b."""
    half = 0.5 * (b - a)
    x = 0.5 * (b + a) + half * jnp.asarray(_NODES)
    return half * jnp.sum(jnp.asarray(_WEIGHTS) * jax.vmap(net)(x))


def potential_curve(net, grid, scale=1.0):
    """Potential scale * int_0^u net for every u on the grid."""
    grid = jnp.asarray(grid)
    return scale * jax.vmap(lambda u: integrate_network(net, 0.0, u))(grid)
