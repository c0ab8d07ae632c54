"""
Expansion histories of flat universes, integrated in redshift.

Distances are in Mpc and the Hubble rate in 1/Gyr, so that c = 306.4 Mpc/Gyr
and H0 ~ 0.069/Gyr. Both models fit the distance modulus of standard candles.
"""

import equinox as eqx
import jax
import jax.numpy as jnp

from neuralpotentials.constants import C_COSMO, H0
from neuralpotentials.networks import MLP
from neuralpotentials.odes import solve_at


def distance_modulus(z, d_L):
    # +25 instead of -5 because distances are measured in Mpc
    return 5.0 * jnp.log10(jnp.abs((1.0 + z) * d_L)) + 25.0


class FriedmannModel(eqx.Module):
    """
    Matter plus dark energy with equation of state w(z) = w0 + N(z).

    State: [Omega_m(z), Omega_DE(z), H, d_C], densities in units of today's
    critical density.
    """
    omega_m0: jax.Array
    omega_de0: jax.Array
    hubble0: jax.Array
    w0: jax.Array
    eos_network: eqx.Module

    def __init__(self, omega_m0, omega_de0, hubble0, w0, eos_network):
        self.omega_m0 = jnp.asarray(omega_m0, dtype=float)
        self.omega_de0 = jnp.asarray(omega_de0, dtype=float)
        self.hubble0 = jnp.asarray(hubble0, dtype=float)
        self.w0 = jnp.asarray(w0, dtype=float)
        self.eos_network = eos_network

    @classmethod
    def init(cls, key):
        k_params, k_net = jax.random.split(key)
        r = jax.random.uniform(k_params, (4,))
        return cls(
            omega_m0=0.2 + 0.2 * r[0],
            omega_de0=0.6 + 0.2 * r[1],
            hubble0=H0 * (0.9 + 0.2 * r[2]),
            w0=-1.2 + 0.4 * r[3],
            eos_network=MLP(k_net, (1, 8, 1), (jnp.tanh, jnp.tanh)),
        )

    def equation_of_state(self, z):
        z = jnp.asarray(z)
        return self.w0 + jax.vmap(self.eos_network)(jnp.atleast_1d(z)).reshape(z.shape)

    def rhs(self, z, y, args):
        omega_m, omega_de, H, _ = y
        w = self.w0 + self.eos_network(z)
        opz = 1.0 + z
        dH = 1.5 * H * (omega_m + (1.0 + w) * omega_de) / (opz * (omega_m + omega_de))
        return jnp.stack([
            3.0 * omega_m / opz,
            3.0 * (1.0 + w) * omega_de / opz,
            dH,
            C_COSMO / H,
        ])

    def solve(self, z):
        z = jnp.asarray(z)
        y0 = jnp.stack([self.omega_m0, self.omega_de0, self.hubble0, jnp.array(0.0)])
        return solve_at(self.rhs, y0, z, 0.0, jnp.max(z))

    def predict(self, z):
        """Distance modulus at the redshifts z."""
        return distance_modulus(z, self.solve(z)[:, 3])


class QuintessenceModel(eqx.Module):
    """
    Matter plus a scalar field phi with potential V(phi) = H0^2 p1 exp(-p2 phi) phi^2.

    Units with 8 pi G = 1. The Klein-Gordon equation and the Raychaudhuri
    equation are rewritten in redshift; the state is [H, phi, dphi/dz, d_C].
    """
    hubble0: jax.Array
    phi0: jax.Array
    dphi0: jax.Array
    omega_m: jax.Array
    potential_params: jax.Array

    def __init__(self, hubble0, phi0, dphi0, omega_m, potential_params):
        self.hubble0 = jnp.asarray(hubble0, dtype=float)
        self.phi0 = jnp.asarray(phi0, dtype=float)
        self.dphi0 = jnp.asarray(dphi0, dtype=float)
        self.omega_m = jnp.asarray(omega_m, dtype=float)
        self.potential_params = jnp.asarray(potential_params, dtype=float)

    @classmethod
    def init(cls, key):
        r = jax.random.uniform(key, (3,))
        return cls(
            hubble0=H0,
            phi0=0.5 + r[0],
            dphi0=0.0,
            omega_m=0.3,
            potential_params=0.25 + 0.75 * r[1:],
        )

    def potential(self, phi):
        p = self.potential_params
        return H0**2 * p[0] * jnp.exp(-p[1] * phi) * phi**2

    def rhs(self, z, y, args):
        H, phi, dphi, _ = y
        opz = 1.0 + z
        rho_m = 3.0 * self.hubble0**2 * self.omega_m * opz**3
        kinetic = (opz * H * dphi) ** 2  # (dphi/dt)^2
        dH = (rho_m + kinetic) / (2.0 * opz * H)
        dV = jax.grad(self.potential)(phi)
        ddphi = (2.0 * H - opz * dH) * dphi / (opz * H) - dV / (opz * H) ** 2
        return jnp.stack([dH, dphi, ddphi, C_COSMO / H])

    def solve(self, z):
        z = jnp.asarray(z)
        y0 = jnp.stack([self.hubble0, self.phi0, self.dphi0, jnp.array(0.0)])
        return solve_at(self.rhs, y0, z, 0.0, jnp.max(z))

    def predict(self, z):
        """Distance modulus at the redshifts z."""
        return distance_modulus(z, self.solve(z)[:, 3])

    def field(self, z):
        return self.solve(z)[:, 1]

    def equation_of_state(self, z):
        """w = (K - V) / (K + V) with K the kinetic energy of the field."""
        z = jnp.asarray(z)
        ys = self.solve(z)
        kinetic = 0.5 * ((1.0 + z) * ys[:, 0] * ys[:, 2]) ** 2
        V = jax.vmap(self.potential)(ys[:, 1])
        return (kinetic - V) / (kinetic + V)
