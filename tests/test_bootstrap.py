import jax
import numpy as np
import pytest

from neuralpotentials import bootstrap


def fit_even(rep, key):
    if rep % 2:
        return None
    return {"value": float(jax.random.uniform(key)), "curve": np.full(3, rep, dtype=float)}


def test_run_bootstrap_keeps_accepted_rows_in_order():
    table = bootstrap.run_bootstrap(fit_even, 8, columns=("value", "curve"), seed=3, workers=4)

    assert list(table.columns) == ["rep", "value", "curve"]
    assert table["rep"].tolist() == [2, 4, 6, 8]


def test_run_bootstrap_does_not_depend_on_workers():
    serial = bootstrap.run_bootstrap(fit_even, 6, columns=("value",), seed=1, workers=1)
    threaded = bootstrap.run_bootstrap(fit_even, 6, columns=("value",), seed=1, workers=3)
    assert serial["value"].tolist() == threaded["value"].tolist()


def test_run_bootstrap_all_rejected():
    table = bootstrap.run_bootstrap(lambda rep, key: None, 3, columns=("value",))
    assert table.empty
    assert list(table.columns) == ["rep", "value"]

    stats = bootstrap.calculate_statistics(table["value"], size=5)
    assert stats.mean.shape == (5,)
    assert np.isnan(stats.lower).all() and np.isnan(stats.upper).all()


def test_run_bootstrap_rejects_no_repetitions():
    with pytest.raises(ValueError):
        bootstrap.run_bootstrap(fit_even, 0, columns=("value",))


def test_run_bootstrap_propagates_errors():
    def broken(rep, key):
        raise RuntimeError("solver exploded")

    with pytest.raises(RuntimeError, match="solver exploded"):
        bootstrap.run_bootstrap(broken, 2, columns=("value",))


def test_calculate_statistics():
    samples = [np.array([1.0, 2.0]), np.array([3.0, 4.0]), np.array([5.0, 6.0])]
    stats = bootstrap.calculate_statistics(samples, size=2)

    np.testing.assert_allclose(stats.mean, [3.0, 4.0])
    np.testing.assert_allclose(stats.std, [2.0, 2.0])
    assert (stats.lower <= stats.mean).all() and (stats.mean <= stats.upper).all()
    assert (stats.lower >= [1.0, 2.0]).all() and (stats.upper <= [5.0, 6.0]).all()


def test_calculate_statistics_single_sample():
    stats = bootstrap.calculate_statistics([np.array([1.0, 2.0])])
    np.testing.assert_allclose(stats.std, [0.0, 0.0])
    np.testing.assert_allclose(stats.lower, stats.upper)


@pytest.mark.parametrize("kwargs", [
    {"samples": [], "size": None},
    {"samples": [np.ones(3)], "size": 4},
    {"samples": [np.ones(3)], "level": 1.0},
    {"samples": [np.ones(3)], "level": 0.0},
])
def test_calculate_statistics_errors(kwargs):
    with pytest.raises(ValueError):
        bootstrap.calculate_statistics(**kwargs)


def test_resample_indices(key):
    idx = bootstrap.resample_indices(key, 50)
    assert idx.shape == (50,)
    assert (np.diff(idx) >= 0).all()
    assert idx.min() >= 0 and idx.max() < 50
