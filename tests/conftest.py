from pathlib import Path

import jax
import numpy as np
import pandas as pd
import pytest

from neuralpotentials import sagittarius
from neuralpotentials.constants import D_SGR_A


@pytest.fixture
def repo_root():
    return Path(__file__).resolve().parents[1]


@pytest.fixture
def key():
    return jax.random.PRNGKey(42)


def ellipse(n=40, p=1.5, e=0.6, angles=(0.7, 1.1, 2.3), prograde=True):
    """Sky positions of a Keplerian ellipse, time ordered along the anomaly."""
    theta = np.linspace(0.2, 2 * np.pi - 0.2, n)
    r = p / (1.0 + e * np.cos(theta))
    R, phi = sagittarius.transform(np.asarray(angles), r, theta, prograde)
    return np.asarray(R), np.asarray(phi), theta


@pytest.fixture
def star_csv(tmp_path):
    """Astrometric table with two stars; S2 follows an ellipse on the sky."""
    R, phi, theta = ellipse()
    ra, dec = sagittarius.convert_to_angles(R, phi, D_SGR_A)
    s2 = pd.DataFrame({
        "star": "S2",
        "t": 2000.0 + theta,
        "RA": np.asarray(ra),
        "RA_err": 0.5,
        "DEC": np.asarray(dec),
        "DEC_err": 0.5,
    })
    other = pd.DataFrame({
        "star": ["S38"] * 3,
        "t": [2001.0, 2002.0, 2003.0],
        "RA": [10.0, 11.0, 12.0],
        "RA_err": [1.0] * 3,
        "DEC": [5.0, 4.0, 3.0],
        "DEC_err": [1.0] * 3,
    })
    path = tmp_path / "stars.csv"
    pd.concat([s2, other]).sample(frac=1.0, random_state=0).to_csv(path, index=False)
    return path
