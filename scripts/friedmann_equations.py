"""
Friedmann equations with a neural dark-energy equation of state, fitted to
the distance moduli of supernovae and gamma-ray bursts.

The expansion history of a flat universe with matter and dark energy is
integrated in redshift; the equation of state of the dark energy is
w(z) = w0 + N(z) with a small network N. Without data files a synthetic
LambdaCDM sample is used. Every repetition restarts from random parameters
and can additionally resample the data with replacement (--resample).
"""

import argparse
from pathlib import Path

import jax
import jax.numpy as jnp
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from neuralpotentials import bootstrap, datasets, plotting
from neuralpotentials.cosmology import FriedmannModel
from neuralpotentials.training import fit

# -------------------------------
# 0) Config
# -------------------------------

# Synthetic sample
z_min, z_max = 0.02, 2.0
num_synthetic = 120
true_omega_m = 0.3
noise_std = 0.15

# Bootstrap
REPETITIONS = 64
MAXITERS = 3000
LEARNING_RATE = 1e-3
ACCEPT_BELOW = 2.0  # reduced chi-squared

num_plot = 200


def loss_fn(model, z, mu, err):
    """Reduced chi-squared of the distance moduli."""
    pred = model.predict(z)
    return jnp.mean(((pred - mu) / err) ** 2), pred


def make_fit_once(data, z_plot, maxiters, resample):
    z = jnp.asarray(data["z"].to_numpy())
    mu = jnp.asarray(data["my"].to_numpy())
    err = jnp.asarray(data["me"].to_numpy())

    def fit_once(rep, key):
        k_init, k_resample = jax.random.split(key)
        args = (z, mu, err)
        if resample:
            idx = bootstrap.resample_indices(k_resample, len(z))
            args = (z[idx], mu[idx], err[idx])

        model = FriedmannModel.init(k_init)
        result = fit(model, loss_fn, args, learning_rate=LEARNING_RATE, maxiters=maxiters)
        print(f"Repetition {rep}: loss={result.loss:.4e} after {result.iterations} iterations")
        if not result.loss < ACCEPT_BELOW:
            return None

        best = result.model
        return {
            "params": np.array([float(best.omega_m0), float(best.omega_de0), float(best.hubble0), float(best.w0)]),
            "mu": np.asarray(best.predict(z_plot)),
            "w": np.asarray(best.equation_of_state(z_plot)),
            "loss": result.loss,
        }

    return fit_once


def main(argv=None):
    parser = argparse.ArgumentParser(description="Friedmann fit with a neural dark-energy equation of state.")
    parser.add_argument("--data", type=Path, nargs="*", default=[],
                        help="Whitespace-separated files with columns z my me (default: synthetic sample).")
    parser.add_argument("--resample", action="store_true", help="Resample the data in every repetition.")
    parser.add_argument("--repetitions", type=int, default=REPETITIONS)
    parser.add_argument("--maxiters", type=int, default=MAXITERS)
    parser.add_argument("--workers", type=int, default=None, help="Bootstrap threads (default: executor default).")
    parser.add_argument("--seed", type=int, default=0)
    parser.add_argument("--outdir", type=Path, default=Path("outputs"))
    args = parser.parse_args(argv)

    plotting.set_theme()

    # --------------------------------
    # 1) Data
    # --------------------------------
    if args.data:
        data = datasets.load_distance_moduli(*args.data)
    else:
        data = datasets.synthetic_distance_moduli(
            np.linspace(z_min, z_max, num_synthetic), omega_m=true_omega_m,
            sigma=noise_std, key=jax.random.PRNGKey(args.seed),
        )
    print(f"{len(data)} distance moduli between z={data['z'].min():.3f} and z={data['z'].max():.3f}")
    z_plot = np.linspace(data["z"].min(), data["z"].max(), num_plot)

    # --------------------------------
    # 2) Bootstrap
    # --------------------------------
    table = bootstrap.run_bootstrap(
        make_fit_once(data, jnp.asarray(z_plot), args.maxiters, args.resample),
        args.repetitions,
        columns=("params", "mu", "w", "loss"),
        seed=args.seed + 1,
        workers=args.workers,
    )

    params = bootstrap.calculate_statistics(table["params"], size=4)
    mu = bootstrap.calculate_statistics(table["mu"], size=num_plot)
    w = bootstrap.calculate_statistics(table["w"], size=num_plot)

    names = ["omega_m0", "omega_de0", "H0", "w0"]
    for name, value, err in zip(names, params.mean, params.std):
        print(f"{name} = {value:.4f} ± {err:.4f}")

    args.outdir.mkdir(parents=True, exist_ok=True)
    pd.DataFrame(
        {"mean": params.mean, "std": params.std, "lower": params.lower, "upper": params.upper},
        index=names,
    ).to_csv(args.outdir / "friedmann_parameters.csv", index_label="parameter")

    # --------------------------------
    # 3) Plots
    # --------------------------------
    fig, (ax_mu, ax_w) = plt.subplots(2, 1, figsize=(12, 12), sharex=True)

    ax_mu.errorbar(data["z"], data["my"], yerr=data["me"], fmt="o", markersize=3,
                   color=plotting.INDIGO, alpha=0.6, label="data")
    plotting.plot_band(ax_mu, z_plot, mu, label="fit")
    ax_mu.set_title("Redshift-Magnitude Data")
    ax_mu.set_ylabel(r"distance modulus $\mu$")
    ax_mu.legend(loc="lower right")

    plotting.plot_band(ax_w, z_plot, w, label="neural equation of state")
    ax_w.axhline(-1.0, color=plotting.GREY, linestyle="--", label="cosmological constant")
    ax_w.set_title("Equation of State")
    ax_w.set_xlabel("redshift $z$")
    ax_w.set_ylabel("$w(z)$")
    ax_w.legend(loc="lower right")

    plotting.save_figure(fig, args.outdir / "FriedmannEquations.pdf")


if __name__ == "__main__":
    main()
