"""
Kepler orbit with a neural potential.

In terms of U = 1/r and the polar angle theta in the orbital plane, the
orbit obeys U'' = G * N(U) - U, where N is a network standing in for the
gradient of mu/L^2 * V(1/U). The fit parameters are the initial conditions
(U(0), U'(0)), the three rotation angles that place the orbital plane on the
sky (stored in units of pi), and the network weights.
"""

import equinox as eqx
import jax
import jax.numpy as jnp

from neuralpotentials import sagittarius
from neuralpotentials.constants import G, c
from neuralpotentials.networks import kepler_network, potential_curve
from neuralpotentials.odes import solve_at
from neuralpotentials.training import scale_gradient

PHI_SPAN = (0.0, 10 * jnp.pi)


class NeuralKepler(eqx.Module):
    u0: jax.Array
    angles: jax.Array
    network: eqx.Module

    def __init__(self, u0, angles, network):
        self.u0 = jnp.asarray(u0, dtype=float)
        self.angles = jnp.asarray(angles, dtype=float)
        self.network = network

    @classmethod
    def init(cls, key):
        """Random restart of the parameters."""
        k_u0, k_angles, k_net = jax.random.split(key, 3)
        r = jax.random.uniform(k_u0, (2,))
        a = jax.random.uniform(k_angles, (3,))
        u0 = jnp.array([1.0, 0.0]) + jnp.array([1.0, 0.2]) * r
        angles = jnp.array([0.1, 0.1, 0.1]) + jnp.array([0.4, 1.9, 1.9]) * a
        return cls(u0, angles, kepler_network(k_net))

    def rhs(self, theta, y, args):
        U, dU = y[0], y[1]
        return jnp.stack([dU, G * self.network(U) - U])

    def solve(self, theta):
        """U and U' at the anomalies theta, in any order."""
        return solve_at(self.rhs, self.u0, theta, *PHI_SPAN)

    def sky_angles(self, boost=None):
        """Rotation angles in radians; boost scales the gradient of the periapsis angle."""
        angles = self.angles
        if boost is not None:
            angles = angles.at[2].set(scale_gradient(angles[2], boost))
        return angles * jnp.pi

    def predict(self, star_r, star_phi, prograde=True, boost=1e12):
        """
        Predicted sky positions at the observed angles.

        The observations are deprojected into the orbital plane with the
        current angles, the orbit is solved at the recovered anomalies and
        projected back onto the sky. Returns (r, phi, s, theta).
        """
        angles = self.sky_angles(boost)
        s, theta = sagittarius.inverse_transform(angles, star_r, star_phi, prograde)
        theta = sagittarius.unwrap_anomaly(theta)
        U = self.solve(theta)[:, 0]
        r, phi = sagittarius.transform(angles, 1.0 / U, theta, prograde)
        return r, phi, s, theta

    def trajectory(self, star_r, star_phi, prograde=True, n=300):
        """Sky positions on n evenly spaced anomalies spanning the observations."""
        angles = self.sky_angles()
        _, theta = sagittarius.inverse_transform(angles, star_r, star_phi, prograde)
        theta = sagittarius.unwrap_anomaly(theta)
        grid = jnp.linspace(jnp.min(theta), jnp.max(theta), n)
        U = self.solve(grid)[:, 0]
        r, phi = sagittarius.transform(angles, 1.0 / U, grid, prograde)
        return r, phi, grid

    def potential(self, grid):
        """mu/L^2 * V on the U grid, V(0) = 0."""
        return potential_curve(self.network, grid, scale=G)

    def reported_angles(self, prograde=True):
        """(inclination, node, periapsis) in degrees, folded into their canonical ranges."""
        phase = 0.0 if prograde else 0.5
        inclination, node, periapsis = self.angles
        return 180.0 * jnp.stack([
            jnp.mod(inclination, 0.5) + phase,
            jnp.mod(node, 1.0),
            jnp.mod(periapsis, 2.0),
        ])


def binet_potential(u, M, h):
    """Newtonian potential with the leading relativistic correction, G*M*(u/h^2 + u^3/c^2)."""
    u = jnp.asarray(u)
    return G * M * (u / h**2 + u**3 / c**2)
