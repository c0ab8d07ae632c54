"""Repeated independent fits on a thread pool and their summary statistics."""

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import NamedTuple

import jax
import numpy as np
import pandas as pd


class Statistics(NamedTuple):
    mean: np.ndarray
    std: np.ndarray
    lower: np.ndarray
    upper: np.ndarray


def run_bootstrap(fit_once, repetitions, *, columns, seed=0, workers=None):
    """
    Call fit_once(rep, key) for rep = 1..repetitions on a thread pool.

    fit_once returns a dict with the given columns for an accepted fit and
    None for a rejected one. Every repetition draws its own key from the
    seed, so the table does not depend on the order the threads finish in.
    Returns the accepted rows ordered by repetition.
    """
    if repetitions <= 0:
        raise ValueError(f"repetitions must be positive, got {repetitions}")

    keys = jax.random.split(jax.random.PRNGKey(seed), repetitions)
    rows = []
    lock = threading.Lock()

    def work(rep):
        print(f"Starting repetition {rep} at thread {threading.current_thread().name}")
        row = fit_once(rep, keys[rep - 1])
        if row is not None:
            print("Writing results...")
            with lock:
                rows.append({"rep": rep, **{col: row[col] for col in columns}})
        print(f"Repetition {rep} is done!")

    print("Beginning Bootstrap...")
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(work, rep) for rep in range(1, repetitions + 1)]
        for future in futures:
            future.result()
    print(f"Bootstrap complete! ({len(rows)}/{repetitions} accepted)")

    table = pd.DataFrame(rows, columns=["rep", *columns])
    return table.sort_values("rep").reset_index(drop=True)


def resample_indices(key, n):
    """Sorted bootstrap indices, drawn with replacement."""
    return np.sort(np.asarray(jax.random.randint(key, (n,), 0, n)))


def calculate_statistics(samples, size=None, level=0.95):
    """
    Mean, standard deviation and percentile confidence bounds over samples.

    samples is a sequence of equal-length arrays, one per accepted fit. With
    no samples the result is NaN arrays of length size.
    """
    if not 0.0 < level < 1.0:
        raise ValueError(f"level must lie in (0, 1), got {level}")

    samples = [np.asarray(s, dtype=float) for s in samples]
    if not samples:
        if size is None:
            raise ValueError("size is required when there are no samples")
        nan = np.full(size, np.nan)
        return Statistics(nan, nan.copy(), nan.copy(), nan.copy())

    stacked = np.stack(samples)
    if size is not None and stacked.shape[1] != size:
        raise ValueError(f"samples have length {stacked.shape[1]}, expected {size}")

    mean = stacked.mean(axis=0)
    std = stacked.std(axis=0, ddof=1) if len(samples) > 1 else np.zeros_like(mean)
    lower, upper = np.percentile(stacked, [50.0 * (1.0 - level), 50.0 * (1.0 + level)], axis=0)
    return Statistics(mean, std, lower, upper)
