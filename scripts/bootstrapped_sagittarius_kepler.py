"""
Bootstrapped neural Kepler problem on the star S2 orbiting Sagittarius A*.

Astrometric positions (RA/DEC in mas) are converted to physical sky
coordinates at the distance of Sgr A*. Each repetition fits the initial
conditions, the orientation of the orbital plane and a network for the
gradient of the potential to the observed radii. Accepted fits are
reconstructed on a fine grid of anomalies to give a confidence region of the
sky trajectory and a confidence band of the potential.
"""

import argparse
from pathlib import Path

import jax.numpy as jnp
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from neuralpotentials import bootstrap, plotting, sagittarius
from neuralpotentials.constants import D_SGR_A
from neuralpotentials.kepler import NeuralKepler, binet_potential
from neuralpotentials.training import fit

# -------------------------------
# 0) Config
# -------------------------------

STAR = "S2"
DATA_PATH = Path("data") / "SagittariusData.csv"

# Bootstrap
REPETITIONS = 1024
MAXITERS = 5000
LEARNING_RATE = 0.01
STOP_BELOW = 3.2
ACCEPT_BELOW = 15.0

u_grid = np.arange(0.1, 9.1 + 0.005, 0.01)
num_trajectory = 300

# GRAVITY Collaboration values for the expected potential
M_sgr = 4.08
v0_sgr = 7.481
r0_sgr = 0.5915


def loss_fn(model, star, prograde):
    """Squared misfit of the projected radii."""
    r, phi, _, _ = model.predict(star["r"], star["phi"], prograde)
    return jnp.sum((r - star["r"]) ** 2), (r, phi)


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
        r, phi, _ = best.trajectory(arrays["r"], arrays["phi"], prograde, n=num_trajectory)
        ra, dec = sagittarius.convert_to_angles(r, phi, D_SGR_A)
        return {
            "params": np.concatenate([np.asarray(best.u0), np.asarray(best.reported_angles(prograde))]),
            "R": np.hypot(np.asarray(ra), np.asarray(dec)),
            "phi": sagittarius.align_angles(np.arctan2(np.asarray(dec), np.asarray(ra)), reference),
            "potential": np.asarray(best.potential(jnp.asarray(u_grid))),
            "loss": result.loss,
        }

    return fit_once


def main(argv=None):
    parser = argparse.ArgumentParser(description="Bootstrapped neural Kepler fit of the S2 orbit.")
    parser.add_argument("--data", type=Path, default=DATA_PATH, help="CSV with star,t,RA,RA_err,DEC,DEC_err.")
    parser.add_argument("--elements", type=Path, default=None, help="Optional CSV of published orbital elements.")
    parser.add_argument("--star", default=STAR)
    parser.add_argument("--repetitions", type=int, default=REPETITIONS)
    parser.add_argument("--maxiters", type=int, default=MAXITERS)
    parser.add_argument("--workers", type=int, default=None, help="Bootstrap threads (default: executor default).")
    parser.add_argument("--seed", type=int, default=0)
    parser.add_argument("--outdir", type=Path, default=Path("outputs"))
    args = parser.parse_args(argv)

    plotting.set_theme()

    # --------------------------------
    # 1) Observations
    # --------------------------------
    observations = sagittarius.load_star(args.data, args.star, timestamps=True)
    star = sagittarius.order_observations(sagittarius.orbit(observations, D_SGR_A))
    observations = observations.sort_values("t", kind="mergesort").reset_index(drop=True)

    prograde = sagittarius.is_prograde(star["phi"])
    print("isprograde:", prograde)

    # --------------------------------
    # 2) Bootstrap
    # --------------------------------
    table = bootstrap.run_bootstrap(
        make_fit_once(star, prograde, args.maxiters),
        args.repetitions,
        columns=("params", "R", "phi", "potential", "loss"),
        seed=args.seed,
        workers=args.workers,
    )

    params = bootstrap.calculate_statistics(table["params"], size=5)
    radius = bootstrap.calculate_statistics(table["R"], size=num_trajectory)
    angle = bootstrap.calculate_statistics(table["phi"], size=num_trajectory)
    potential = bootstrap.calculate_statistics(table["potential"], size=len(u_grid))

    print("Parameters: ")
    print(f"Initial Conditions: {params.mean[:2]} ± {params.std[:2]}")
    print(f"Angles: {params.mean[2:]} ± {params.std[2:]}")

    if args.elements is not None:
        elements = sagittarius.load_orbital_elements(args.elements, args.star)
        for name, value, err in zip(("i", "Omega", "omega"), params.mean[2:], params.std[2:]):
            print(f"{name}: fitted {value:.2f} ± {err:.2f} deg, published {float(elements[name]):.2f} deg")

    args.outdir.mkdir(parents=True, exist_ok=True)
    pd.DataFrame(
        {"mean": params.mean, "std": params.std, "lower": params.lower, "upper": params.upper},
        index=["U0", "dU0", "inclination", "node", "periapsis"],
    ).to_csv(args.outdir / "sagittarius_kepler_parameters.csv", index_label="parameter")

    # --------------------------------
    # 3) Plots
    # --------------------------------
    fig, ax = plt.subplots(figsize=(12, 12))
    plotting.plot_orbit_band(ax, angle.mean, radius, label="Prediction of the trajectory")
    ax.errorbar(
        observations["RA"], observations["DEC"],
        xerr=observations["RA_err"], yerr=observations["DEC_err"],
        fmt="o", color=plotting.INDIGO, capsize=5, label=f"{args.star} data",
    )
    ax.set_title(f"Angular Trajectory of the Star {args.star}")
    ax.set_xlabel("Right ascension [mas]")
    ax.set_ylabel("Declination [mas]")
    ax.set_aspect("equal")
    ax.invert_xaxis()  # east to the left
    ax.legend(loc="lower left")
    plotting.save_figure(fig, args.outdir / "BootstrappedSagittariusKepler.pdf")

    fig, ax = plt.subplots(figsize=(12, 12))
    ax.plot(u_grid, binet_potential(u_grid, M_sgr, r0_sgr * v0_sgr), color=plotting.INDIGO,
            label="Expected potential from GR")
    plotting.plot_band(ax, u_grid, potential, label="Prediction of the neural network")
    ax.set_xlabel(r"$u$ coordinate [mpc$^{-1}$]")
    ax.set_ylabel(r"Potential $\frac{\mu}{L_z^2}V(1/u)$")
    ax.legend(loc="lower right")
    plotting.save_figure(fig, args.outdir / "BootstrappedSagittariusNeuralKeplerPotential.pdf")


if __name__ == "__main__":
    main()
