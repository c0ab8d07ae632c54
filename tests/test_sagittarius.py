import jax.numpy as jnp
import numpy as np
import pandas as pd
import pytest

from neuralpotentials import bootstrap, sagittarius
from neuralpotentials.constants import D_SGR_A

from conftest import ellipse


def random_angles(seed):
    """Inclination away from edge-on, node and periapsis anywhere in (-3pi, 3pi)."""
    rng = np.random.default_rng(seed)
    inclination = rng.choice([-1.0, 1.0]) * rng.uniform(0.05, np.pi / 2 - 0.05) + rng.choice([0.0, np.pi])
    return jnp.array([inclination, *rng.uniform(-3 * np.pi, 3 * np.pi, 2)])


ANGLES = [
    jnp.array([0.6, 1.2, 2.0]),
    jnp.array([2.5, 7.0, 6.9]),
    jnp.array([-0.4, -1.3, 8.0]),
    jnp.array([2.0, -2.5, -7.5]),
    *(random_angles(seed) for seed in range(6)),
]


@pytest.mark.parametrize("angles", ANGLES)
@pytest.mark.parametrize("prograde", [True, False])
def test_inverse_transform_undoes_transform(angles, prograde):
    r = jnp.linspace(0.5, 3.0, 25)
    theta = jnp.linspace(0.1, 6.0, 25)

    R, phi = sagittarius.transform(angles, r, theta, prograde)
    r_back, theta_back = sagittarius.inverse_transform(angles, R, phi, prograde)

    np.testing.assert_allclose(r_back, r, rtol=1e-10)
    np.testing.assert_allclose(theta_back, theta, atol=1e-10)


def test_face_on_orbit_is_a_rotation():
    r = jnp.array([1.0, 2.0])
    theta = jnp.array([0.0, 1.0])
    R, phi = sagittarius.transform(jnp.array([0.0, 0.3, 0.4]), r, theta)

    np.testing.assert_allclose(R, r)
    np.testing.assert_allclose(phi, theta + 0.7)


def test_is_prograde():
    phi = np.mod(np.linspace(0.0, 4 * np.pi, 50), 2 * np.pi)
    assert sagittarius.is_prograde(phi)
    assert not sagittarius.is_prograde(phi[::-1])


def test_unwrap_anomaly_starts_in_first_turn():
    theta = jnp.linspace(5.0, 15.0, 50)
    unwrapped = sagittarius.unwrap_anomaly(jnp.mod(theta, 2 * jnp.pi))
    np.testing.assert_allclose(unwrapped, theta, atol=1e-12)


def test_load_star_selects_rows(star_csv):
    data = sagittarius.load_star(star_csv, "S38")
    assert list(data.columns) == ["t", "RA", "RA_err", "DEC", "DEC_err"]
    assert len(data) == 3

    no_time = sagittarius.load_star(star_csv, "S38", timestamps=False)
    assert "t" not in no_time.columns


def test_load_star_errors(star_csv, tmp_path):
    with pytest.raises(ValueError, match="no observations"):
        sagittarius.load_star(star_csv, "S99")

    broken = tmp_path / "broken.csv"
    pd.read_csv(star_csv).drop(columns="DEC_err").to_csv(broken, index=False)
    with pytest.raises(ValueError, match="DEC_err"):
        sagittarius.load_star(broken, "S2")


def test_load_orbital_elements(tmp_path):
    path = tmp_path / "elements.csv"
    pd.DataFrame({
        "star": ["S2"], "a": [125.0], "e": [0.88], "i": [134.0],
        "Omega": [228.0], "omega": [66.0], "Tp": [2018.4], "P": [16.05],
    }).to_csv(path, index=False)

    elements = sagittarius.load_orbital_elements(path, "S2")
    assert elements["e"] == pytest.approx(0.88)
    with pytest.raises(ValueError):
        sagittarius.load_orbital_elements(path, "S1")


def test_orbit_round_trips_through_angles(star_csv):
    data = sagittarius.load_star(star_csv, "S2")
    star = sagittarius.orbit(data, D_SGR_A)

    ra, dec = sagittarius.convert_to_angles(jnp.asarray(star["r"]), jnp.asarray(star["phi"]), D_SGR_A)
    np.testing.assert_allclose(ra, data["RA"], rtol=1e-10, atol=1e-10)
    np.testing.assert_allclose(dec, data["DEC"], rtol=1e-10, atol=1e-10)
    assert (star["phi"] >= 0).all() and (star["phi"] < 2 * np.pi).all()


def test_order_observations_sorts_by_epoch(star_csv):
    star = sagittarius.order_observations(sagittarius.orbit(sagittarius.load_star(star_csv, "S2"), D_SGR_A))
    assert star["t"].is_monotonic_increasing
    assert sagittarius.is_prograde(star["phi"])


def test_orbit_table_rejects_mismatched_shapes():
    with pytest.raises(ValueError):
        sagittarius.orbit_table(np.ones(3), np.ones(4))


def test_chi2_accepts_table_or_arrays():
    R, phi, _ = ellipse(n=10)
    star = sagittarius.orbit_table(R, phi)

    assert float(sagittarius.chi2(jnp.asarray(R), jnp.asarray(phi), star)) == pytest.approx(0.0, abs=1e-20)

    shifted = jnp.asarray(R) + 0.1
    from_table = sagittarius.chi2(shifted, jnp.asarray(phi), star)
    from_arrays = sagittarius.chi2(shifted, jnp.asarray(phi), sagittarius.as_arrays(star))
    assert float(from_table) == pytest.approx(float(from_arrays))
    assert float(from_table) == pytest.approx(10 * 0.1**2)


def test_align_angles_puts_tracks_on_one_branch():
    track = np.linspace(0.0, 1.0, 20)
    below = np.mod(track - 0.01, 2 * np.pi)
    above = np.mod(track + 0.01, 2 * np.pi)

    aligned = [sagittarius.align_angles(phi, reference=0.0) for phi in (below, above)]
    np.testing.assert_allclose(aligned[0], track - 0.01, atol=1e-12)
    np.testing.assert_allclose(aligned[1], track + 0.01, atol=1e-12)

    stats = bootstrap.calculate_statistics(aligned, size=20)
    assert abs(stats.mean[0]) < 0.1
    assert stats.upper[0] - stats.lower[0] < 0.1


def test_align_angles_follows_the_reference():
    phi = np.mod(np.linspace(3.0, 4.0, 5), 2 * np.pi)
    aligned = sagittarius.align_angles(phi, reference=3.0 + 4 * np.pi)
    np.testing.assert_allclose(aligned, np.linspace(3.0, 4.0, 5) + 4 * np.pi)
