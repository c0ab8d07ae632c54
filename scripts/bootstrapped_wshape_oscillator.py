"""
Bootstrapped neural oscillator: recover a W-shaped (double-well) potential
from a noisy trajectory.

The data follow x'' = -V'(x) with V(x) = 0.25 x^4 - 2 x^2. The fit replaces
V' by a small network and learns it, together with the initial conditions,
by differentiating through the ODE solve. Every repetition starts from a
fresh random initialization; the spread over repetitions gives the
confidence bands of the trajectory and of the potential.
"""

import argparse
from pathlib import Path

import jax
import jax.numpy as jnp
import matplotlib.pyplot as plt
import numpy as np

from neuralpotentials import bootstrap, datasets, plotting
from neuralpotentials.oscillator import NeuralOscillator, wshape_potential
from neuralpotentials.training import fit

# -------------------------------
# 0) Config
# -------------------------------

# Synthetic data
t_span = (0.0, 10.0)
num_samples = 384
true_u0 = [3.0, 0.0]
true_p = [0.25, 2.0]
noise_std = 0.01

# Bootstrap
REPETITIONS = 256
MAXITERS = 1500
LEARNING_RATE = 0.01

# Potential is evaluated on [-x(0), x(0)]
x_step = 0.01


def loss_fn(model, t, x):
    """Squared displacement misfit."""
    pred = model.predict(t)
    return jnp.sum((pred - x) ** 2), pred


def make_fit_once(t, x, x_grid, maxiters):
    def fit_once(rep, key):
        model = NeuralOscillator.init(key)
        result = fit(model, loss_fn, (t, x), learning_rate=LEARNING_RATE, maxiters=maxiters)
        print(f"Repetition {rep}: loss={result.loss:.4e} after {result.iterations} iterations")
        if not np.isfinite(result.loss):
            return None

        best = result.model
        return {
            "params": np.asarray(best.u0),
            "trajectory": np.asarray(best.predict(t)),
            "potential": np.asarray(best.potential(x_grid)),
            "loss": result.loss,
        }

    return fit_once


def main(argv=None):
    parser = argparse.ArgumentParser(description="Bootstrapped neural fit of a W-shaped oscillator potential.")
    parser.add_argument("--repetitions", type=int, default=REPETITIONS)
    parser.add_argument("--maxiters", type=int, default=MAXITERS)
    parser.add_argument("--workers", type=int, default=None, help="Bootstrap threads (default: executor default).")
    parser.add_argument("--seed", type=int, default=0)
    parser.add_argument("--outdir", type=Path, default=Path("outputs"))
    args = parser.parse_args(argv)

    plotting.set_theme()

    # --------------------------------
    # 1) Synthetic data
    # --------------------------------
    t = jnp.linspace(t_span[0], t_span[1], num_samples)
    data = datasets.potential_problem_1d(
        wshape_potential, true_u0, true_p, t,
        addnoise=True, sigma=noise_std, key=jax.random.PRNGKey(args.seed),
    )
    x_grid = np.arange(-true_u0[0], true_u0[0] + 0.5 * x_step, x_step)
    true_potential = wshape_potential(x_grid, true_p)

    # --------------------------------
    # 2) Bootstrap
    # --------------------------------
    table = bootstrap.run_bootstrap(
        make_fit_once(t, data[1], jnp.asarray(x_grid), args.maxiters),
        args.repetitions,
        columns=("params", "trajectory", "potential", "loss"),
        seed=args.seed + 1,
        workers=args.workers,
    )

    params = bootstrap.calculate_statistics(table["params"], size=2)
    trajectory = bootstrap.calculate_statistics(table["trajectory"], size=num_samples)
    potential = bootstrap.calculate_statistics(table["potential"], size=len(x_grid))

    print("Initial conditions: ")
    print(f"x(0) = {params.mean[0]:.4f} ± {params.std[0]:.4f}")
    print(f"v(0) = {params.mean[1]:.4f} ± {params.std[1]:.4f}")

    args.outdir.mkdir(parents=True, exist_ok=True)
    summary = table[["rep", "loss"]].copy()
    summary["x0"] = [p[0] for p in table["params"]]
    summary["v0"] = [p[1] for p in table["params"]]
    summary.to_csv(args.outdir / "wshape_oscillator_results.csv", index=False)

    # --------------------------------
    # 3) Plots
    # --------------------------------
    fig, (ax_traj, ax_pot) = plt.subplots(2, 1, figsize=(12, 12))

    ax_traj.scatter(np.asarray(data[0]), np.asarray(data[1]), marker="+", color=plotting.INDIGO, label="Oscillator data")
    plotting.plot_band(ax_traj, np.asarray(t), trajectory, label="Prediction using neural potential")
    ax_traj.set_title("Trajectory")
    ax_traj.set_xlabel("Time $t$")
    ax_traj.set_ylabel("Displacement $x(t)$")
    ax_traj.set_ylim(-7.5, 5.0)
    ax_traj.legend(loc="lower right")

    ax_pot.plot(x_grid, true_potential, color=plotting.INDIGO, label="Potential used for data generation")
    plotting.plot_band(ax_pot, x_grid, potential, label="Prediction of the potential")
    ax_pot.set_title("Potential")
    ax_pot.set_xlabel("Displacement $x$")
    ax_pot.set_ylabel("Potential $V(x)$")
    ax_pot.set_xlim(-true_u0[0], true_u0[0])
    ax_pot.set_ylim(-8.5, 8.5)
    ax_pot.legend(loc="lower right")

    plotting.save_figure(fig, args.outdir / f"{args.repetitions}_sample_wshape_oscillator.pdf")


if __name__ == "__main__":
    main()
