"""
Observation tables of stars orbiting Sagittarius A* and the geometry that
links the orbital plane of a star to the plane of the sky.

Angles are given as (inclination, longitude of the ascending node, argument
of the periapsis). A point in the orbital plane at polar coordinates
(r, theta) is rotated by Rz(Omega) @ Rx(iota) @ Rz(omega) and projected onto
the sky, where it has polar coordinates (R, phi).
"""

import jax.numpy as jnp
import numpy as np
import pandas as pd

from neuralpotentials.constants import MAS_PER_RAD

STAR_COLUMNS = ["star", "t", "RA", "RA_err", "DEC", "DEC_err"]
ELEMENT_COLUMNS = ["star", "a", "e", "i", "Omega", "omega", "Tp", "P"]


# -------------------------------
# Loading
# -------------------------------

def _check_columns(data, required, path):
    missing = [col for col in required if col not in data.columns]
    if missing:
        raise ValueError(f"{path}: missing columns {missing}")


def load_star(path, star, timestamps=True):
    """Read the astrometric observations of one star (RA/DEC in mas)."""
    data = pd.read_csv(path)
    _check_columns(data, STAR_COLUMNS, path)

    rows = data[data["star"] == star].drop(columns="star").reset_index(drop=True)
    if rows.empty:
        raise ValueError(f"{path}: no observations of star {star!r}")
    if not timestamps:
        rows = rows.drop(columns="t")
    return rows


def load_orbital_elements(path, star):
    """Read the published orbital elements of one star (angles in degrees)."""
    data = pd.read_csv(path)
    _check_columns(data, ELEMENT_COLUMNS, path)

    rows = data[data["star"] == star]
    if rows.empty:
        raise ValueError(f"{path}: no orbital elements for star {star!r}")
    return rows.iloc[0].drop(labels="star")


# -------------------------------
# Orbit tables
# -------------------------------

def orbit_table(r, phi, t=None, x_err=None, y_err=None):
    """Build an orbit table from polar sky coordinates in mpc."""
    r = np.asarray(r, dtype=float)
    phi = np.asarray(phi, dtype=float)
    if r.shape != phi.shape:
        raise ValueError(f"r and phi differ in shape: {r.shape} vs {phi.shape}")

    table = pd.DataFrame({
        "r": r,
        "phi": np.mod(phi, 2 * np.pi),
        "x": r * np.cos(phi),
        "y": r * np.sin(phi),
        "x_err": np.ones_like(r) if x_err is None else np.asarray(x_err, dtype=float),
        "y_err": np.ones_like(r) if y_err is None else np.asarray(y_err, dtype=float),
    })
    if t is not None:
        table["t"] = np.asarray(t, dtype=float)
    return table


def orbit(data, distance):
    """Convert RA/DEC observations in mas into physical sky coordinates in mpc."""
    scale = distance / MAS_PER_RAD  # mpc per mas
    x = scale * data["RA"].to_numpy(dtype=float)
    y = scale * data["DEC"].to_numpy(dtype=float)
    return orbit_table(
        np.hypot(x, y),
        np.arctan2(y, x),
        t=data["t"].to_numpy(dtype=float) if "t" in data.columns else None,
        x_err=scale * data["RA_err"].to_numpy(dtype=float),
        y_err=scale * data["DEC_err"].to_numpy(dtype=float),
    )


def order_observations(table):
    """Sort an orbit table by epoch."""
    return table.sort_values("t", kind="mergesort").reset_index(drop=True)


def is_prograde(phi):
    """True if the time-ordered sky angles run counter-clockwise."""
    return bool(np.sum(np.diff(np.unwrap(np.asarray(phi, dtype=float)))) > 0.0)


# -------------------------------
# Geometry
# -------------------------------

def transform(angles, r, theta, prograde=True):
    """Rotate orbital-plane coordinates (r, theta) onto the sky, returning (R, phi)."""
    inclination, node, periapsis = angles[0], angles[1], angles[2]
    theta = theta if prograde else -theta

    x = r * jnp.cos(theta)
    y = r * jnp.sin(theta)

    a = x * jnp.cos(periapsis) - y * jnp.sin(periapsis)
    b = (x * jnp.sin(periapsis) + y * jnp.cos(periapsis)) * jnp.cos(inclination)

    X = a * jnp.cos(node) - b * jnp.sin(node)
    Y = a * jnp.sin(node) + b * jnp.cos(node)
    return jnp.sqrt(X**2 + Y**2), jnp.mod(jnp.arctan2(Y, X), 2 * jnp.pi)


def inverse_transform(angles, R, phi, prograde=True):
    """Deproject sky coordinates (R, phi) onto the orbital plane, returning (r, theta)."""
    inclination, node, periapsis = angles[0], angles[1], angles[2]

    X = R * jnp.cos(phi)
    Y = R * jnp.sin(phi)

    # singular for edge-on orbits, cos(inclination) == 0
    a = X * jnp.cos(node) + Y * jnp.sin(node)
    b = (Y * jnp.cos(node) - X * jnp.sin(node)) / jnp.cos(inclination)

    x = a * jnp.cos(periapsis) + b * jnp.sin(periapsis)
    y = b * jnp.cos(periapsis) - a * jnp.sin(periapsis)

    theta = jnp.arctan2(y, x)
    theta = theta if prograde else -theta
    return jnp.sqrt(x**2 + y**2), jnp.mod(theta, 2 * jnp.pi)


def unwrap_anomaly(theta):
    """Unwrap time-ordered anomalies into a continuous angle starting in [0, 2pi)."""
    theta = jnp.unwrap(theta)
    return theta - 2 * jnp.pi * jnp.floor(theta[0] / (2 * jnp.pi))


def align_angles(phi, reference):
    """Unwrap a sky-angle track onto the branch whose first value lies within pi of reference."""
    phi = np.unwrap(np.asarray(phi, dtype=float))
    return phi - 2 * np.pi * np.round((phi[0] - reference) / (2 * np.pi))


def convert_to_angles(r, phi, distance):
    """Convert physical sky coordinates in mpc to (RA, DEC) in mas."""
    scale = MAS_PER_RAD / distance
    return scale * r * jnp.cos(phi), scale * r * jnp.sin(phi)


def as_arrays(table, columns=("r", "phi", "x", "y", "x_err", "y_err")):
    """Turn the columns of an orbit table into a dict of jax arrays (a pytree)."""
    return {col: jnp.asarray(table[col].to_numpy(dtype=float)) for col in columns}


def chi2(r, phi, star):
    """Chi-squared of predicted polar sky positions against an orbit table or its arrays."""
    x = r * jnp.cos(phi)
    y = r * jnp.sin(phi)
    return jnp.sum(((x - jnp.asarray(star["x"])) / jnp.asarray(star["x_err"])) ** 2
                   + ((y - jnp.asarray(star["y"])) / jnp.asarray(star["y_err"])) ** 2)
