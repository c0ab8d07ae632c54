"""One-dimensional oscillator x'' = -N(x) with a neural potential gradient N."""

import equinox as eqx
import jax
import jax.numpy as jnp

from neuralpotentials.networks import oscillator_network, potential_curve
from neuralpotentials.odes import solve_at


class NeuralOscillator(eqx.Module):
    u0: jax.Array
    network: eqx.Module

    def __init__(self, u0, network):
        self.u0 = jnp.asarray(u0, dtype=float)
        self.network = network

    @classmethod
    def init(cls, key):
        k_u0, k_net = jax.random.split(key)
        u0 = jax.random.uniform(k_u0, (2,)) + jnp.array([2.5, 0.0])
        return cls(u0, oscillator_network(k_net))

    def rhs(self, t, y, args):
        x, v = y[0], y[1]
        return jnp.stack([v, -self.network(x)])

    def solve(self, t):
        t = jnp.asarray(t)
        return solve_at(self.rhs, self.u0, t, jnp.min(t), jnp.max(t))

    def predict(self, t):
        """Displacement x(t)."""
        return self.solve(t)[:, 0]

    def potential(self, grid):
        return potential_curve(self.network, grid)


def wshape_potential(x, p):
    """Double-well potential p0*x^4 - p1*x^2."""
    return p[0] * x**4 - p[1] * x**2
