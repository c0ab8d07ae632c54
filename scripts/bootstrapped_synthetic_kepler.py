"""
Bootstrapped neural Kepler problem on a synthetic star.

A relativistic orbit around a 4.35e6 M_sun black hole is generated in its
orbital plane, rotated onto the sky and fitted with a neural Kepler model.
Each repetition learns the initial conditions, the three rotation angles and
the network standing in for the gradient of the potential. Fits that end
above the acceptance threshold are dropped; the rest give confidence bands of
the trajectory and of the potential.
"""

import argparse
from pathlib import Path

import jax
import jax.numpy as jnp
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from neuralpotentials import bootstrap, datasets, plotting, sagittarius
from neuralpotentials.constants import G, c
from neuralpotentials.kepler import NeuralKepler, binet_potential
from neuralpotentials.training import fit

# -------------------------------
# 0) Config
# -------------------------------

# Synthetic orbit
phi0_span = (0.01, 2 * np.pi - 0.01)
num_samples = 144
r0 = 0.5  # periapsis in mpc
M = 4.35  # mass of the central black hole in 10^6 M_sun
true_v0 = 1.2 * np.sqrt(G * M / r0)  # velocity at the periapsis in mpc/yr
true_u0 = [1.0 / r0, 0.0, 0.0]
true_p = [M, 1.0 / (true_v0 * r0)]
true_angles = np.deg2rad([50.0, 100.0, 65.0])

# Bootstrap
REPETITIONS = 1024
MAXITERS = 3000
LEARNING_RATE = 0.01
STOP_BELOW = 0.025
ACCEPT_BELOW = 0.5

u_grid = np.arange(0.1, 2.1 + 0.005, 0.01)


def V0(U, p):
    return G * p[0] * (p[1] ** 2 * U + U**3 / c**2)


dV0 = jax.grad(V0)


def loss_fn(model, star, prograde):
    """Chi-squared of the projected orbit."""
    r, phi, _, _ = model.predict(star["r"], star["phi"], prograde)
    return sagittarius.chi2(r, phi, star), (r, phi)


def make_star():
    """Generate the synthetic orbit and rotate it onto the sky."""
    data = datasets.kepler_problem(dV0, true_u0, true_p, np.linspace(*phi0_span, num_samples))

    angles = true_angles.copy()
    prograde = True
    if angles[0] > np.pi / 2:
        angles[0] -= np.pi / 2
        prograde = False
    r, phi = sagittarius.transform(angles, data["r"].to_numpy(), data["phi"].to_numpy(), prograde)

    star = sagittarius.orbit_table(np.asarray(r), np.asarray(phi), t=data["t"].to_numpy())
    return sagittarius.order_observations(star)


def make_fit_once(star, prograde, maxiters):
    arrays = sagittarius.as_arrays(star)
    reference = float(star["phi"].iloc[0])

    def fit_once(rep, key):
        model = NeuralKepler.init(key)
        result = fit(
            model, loss_fn, (arrays, prograde),
            learning_rate=LEARNING_RATE, maxiters=maxiters, stop_below=STOP_BELOW,
        )
        print(f"Repetition {rep}: loss={result.loss:.4e} after {result.iterations} iterations")
        if not result.loss < ACCEPT_BELOW:
            return None

        best = result.model
        r, phi, _, _ = best.predict(arrays["r"], arrays["phi"], prograde)
        return {
            "params": np.concatenate([np.asarray(best.u0), np.asarray(best.reported_angles(prograde))]),
            "r": np.asarray(r),
            "phi": sagittarius.align_angles(phi, reference),
            "potential": np.asarray(best.potential(jnp.asarray(u_grid))),
            "loss": result.loss,
        }

    return fit_once


def main(argv=None):
    parser = argparse.ArgumentParser(description="Bootstrapped neural Kepler fit of a synthetic star.")
    parser.add_argument("--repetitions", type=int, default=REPETITIONS)
    parser.add_argument("--maxiters", type=int, default=MAXITERS)
    parser.add_argument("--workers", type=int, default=None, help="Bootstrap threads (default: executor default).")
    parser.add_argument("--seed", type=int, default=0)
    parser.add_argument("--outdir", type=Path, default=Path("outputs"))
    args = parser.parse_args(argv)

    plotting.set_theme()

    # --------------------------------
    # 1) Synthetic star
    # --------------------------------
    print(f"True velocity at the periapsis: {true_v0:.4f} mpc/yr")
    star = make_star()
    prograde = sagittarius.is_prograde(star["phi"])
    print("isprograde:", prograde)

    # --------------------------------
    # 2) Bootstrap
    # --------------------------------
    table = bootstrap.run_bootstrap(
        make_fit_once(star, prograde, args.maxiters),
        args.repetitions,
        columns=("params", "r", "phi", "potential", "loss"),
        seed=args.seed,
        workers=args.workers,
    )

    params = bootstrap.calculate_statistics(table["params"], size=5)
    radius = bootstrap.calculate_statistics(table["r"], size=len(star))
    angle = bootstrap.calculate_statistics(table["phi"], size=len(star))
    potential = bootstrap.calculate_statistics(table["potential"], size=len(u_grid))

    print("Parameters: ")
    print(f"Initial Conditions: {params.mean[:2]} ± {params.std[:2]}")
    print(f"Angles: {params.mean[2:]} ± {params.std[2:]}")

    args.outdir.mkdir(parents=True, exist_ok=True)
    pd.DataFrame(
        {"mean": params.mean, "std": params.std, "lower": params.lower, "upper": params.upper},
        index=["U0", "dU0", "inclination", "node", "periapsis"],
    ).to_csv(args.outdir / "synthetic_kepler_parameters.csv", index_label="parameter")

    # --------------------------------
    # 3) Plots
    # --------------------------------
    fig, ax = plt.subplots(figsize=(12, 12))
    plotting.plot_orbit_band(ax, angle.mean, radius, label="Prediction of the trajectory")
    ax.scatter(star["x"], star["y"], color=plotting.INDIGO, label="Synthetic data")
    ax.set_title("Trajectory of a Star")
    ax.set_xlabel("x coordinate [mpc]")
    ax.set_ylabel("y coordinate [mpc]")
    ax.set_aspect("equal")
    ax.legend(loc="upper right")
    plotting.save_figure(fig, args.outdir / "BootstrappedSyntheticNeuralKepler.pdf")

    fig, ax = plt.subplots(figsize=(12, 12))
    ax.plot(u_grid, binet_potential(u_grid, M, 1.0 / true_p[1]), color=plotting.INDIGO,
            label="Potential used for data generation")
    plotting.plot_band(ax, u_grid, potential, label="Prediction of the neural network")
    ax.set_xlabel(r"$u$ coordinate [mpc$^{-1}$]")
    ax.set_ylabel(r"Potential $\frac{\mu}{L_z^2}V(1/u)$")
    ax.legend(loc="lower right")
    plotting.save_figure(fig, args.outdir / "BootstrappedSyntheticNeuralKeplerPotential.pdf")


if __name__ == "__main__":
    main()
