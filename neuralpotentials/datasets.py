"""Synthetic and tabulated datasets for the fits."""

import jax
import jax.numpy as jnp
import numpy as np
import pandas as pd

from neuralpotentials.constants import C_COSMO, H0
from neuralpotentials.cosmology import distance_modulus
from neuralpotentials.odes import solve_at

MODULI_COLUMNS = ["z", "my", "me"]


def kepler_problem(dV, u0, p, phi):
    """
    Orbit of a test mass for the potential gradient dV(U, p).

    Integrates the Binet equation U'' = dV(U, p) - U in the polar angle
    together with Kepler's second law t' = p[1] / U^2, where U = 1/r,
    p = (M, 1/(v0 * r0)) and u0 = (U, U', t) at phi = 0.
    """
    p = jnp.asarray(p)

    def rhs(phi, y, args):
        U, dU, _ = y
        return jnp.stack([dU, dV(U, p) - U, p[1] / U**2])

    phi = jnp.asarray(phi)
    ys = solve_at(rhs, jnp.asarray(u0, dtype=float), phi, 0.0, float(jnp.max(phi)))
    return pd.DataFrame({
        "phi": np.asarray(phi),
        "r": 1.0 / np.asarray(ys[:, 0]),
        "t": np.asarray(ys[:, 2]),
    })


def potential_problem_1d(V, u0, p, t, addnoise=False, sigma=0.01, key=None):
    """Motion x'' = -V'(x, p) sampled at times t, returned as rows [t, x, v]."""
    dV = jax.grad(V)
    p = jnp.asarray(p)

    def rhs(t, y, args):
        x, v = y
        return jnp.stack([v, -dV(x, p)])

    t = jnp.asarray(t)
    ys = solve_at(rhs, jnp.asarray(u0, dtype=float), t, float(t[0]), float(t[-1]))
    if addnoise:
        key = jax.random.PRNGKey(0) if key is None else key
        ys = ys + sigma * jax.random.normal(key, ys.shape)
    return jnp.stack([t, ys[:, 0], ys[:, 1]])


def synthetic_distance_moduli(z, omega_m=0.3, hubble=H0, sigma=0.1, key=None):
    """Distance moduli of a flat LambdaCDM universe with Gaussian scatter."""
    z = jnp.sort(jnp.asarray(z, dtype=float))

    def rhs(z, d, args):
        return C_COSMO / (hubble * jnp.sqrt(omega_m * (1 + z) ** 3 + 1.0 - omega_m))

    d_C = solve_at(rhs, jnp.array(0.0), z, 0.0, float(z[-1]))
    mu = distance_modulus(z, d_C)
    key = jax.random.PRNGKey(0) if key is None else key
    mu = mu + sigma * jax.random.normal(key, mu.shape)
    return pd.DataFrame({
        "z": np.asarray(z),
        "my": np.asarray(mu),
        "me": np.full(z.shape, sigma),
    })


def load_distance_moduli(*paths):
    """Read whitespace-separated (z, my, me) tables, e.g. supernovae and gamma-ray bursts."""
    tables = []
    for path in paths:
        table = pd.read_csv(path, sep=r"\s+")
        missing = [col for col in MODULI_COLUMNS if col not in table.columns]
        if missing:
            raise ValueError(f"{path}: missing columns {missing}")
        tables.append(table[MODULI_COLUMNS])
    data = pd.concat(tables, ignore_index=True).drop_duplicates()
    return data.sort_values("z", kind="mergesort").reset_index(drop=True)


def average_duplicates(data):
    """Average the moduli measured at the same redshift; errors add in quadrature."""
    grouped = data.groupby("z", sort=True)
    return pd.DataFrame({
        "my": grouped["my"].mean(),
        "me": grouped["me"].apply(lambda me: np.sqrt(np.sum(me**2)) / len(me)),
    }).reset_index()
