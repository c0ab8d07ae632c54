"""
Quintessence: a scalar field with potential V(phi) = H0^2 p1 exp(-p2 phi) phi^2
as dark energy, fitted to distance moduli.

Moduli measured at the same redshift are averaged first. The fit learns the
initial value of the field and the two potential parameters and reports the
resulting distance moduli, equation of state and potential.
"""

import argparse
from pathlib import Path

import jax
import jax.numpy as jnp
import matplotlib.pyplot as plt
import numpy as np

from neuralpotentials import datasets, plotting
from neuralpotentials.cosmology import QuintessenceModel
from neuralpotentials.training import fit

# -------------------------------
# 0) Config
# -------------------------------

# Synthetic sample
z_min, z_max = 0.02, 2.0
num_synthetic = 120
true_omega_m = 0.3
noise_std = 0.15

MAXITERS = 2000
LEARNING_RATE = 1e-3
print_every = 100

num_plot = 200


def loss_fn(model, z, mu, err):
    """Reduced chi-squared of the distance moduli."""
    pred = model.predict(z)
    return jnp.mean(((pred - mu) / err) ** 2), pred


def main(argv=None):
    parser = argparse.ArgumentParser(description="Quintessence fit to distance moduli.")
    parser.add_argument("--data", type=Path, nargs="*", default=[],
                        help="Whitespace-separated files with columns z my me (default: synthetic sample).")
    parser.add_argument("--maxiters", type=int, default=MAXITERS)
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
    data = datasets.average_duplicates(data)
    print(f"{len(data)} distinct redshifts between z={data['z'].min():.3f} and z={data['z'].max():.3f}")

    z = jnp.asarray(data["z"].to_numpy())
    mu = jnp.asarray(data["my"].to_numpy())
    err = jnp.asarray(data["me"].to_numpy())

    # --------------------------------
    # 2) Fit
    # --------------------------------
    model = QuintessenceModel.init(jax.random.PRNGKey(args.seed + 1))
    print(f"Training started for {args.maxiters} epochs...")
    result = fit(model, loss_fn, (z, mu, err), learning_rate=LEARNING_RATE,
                 maxiters=args.maxiters, print_every=print_every)
    print("Training finished!")

    best = result.model
    print(f"Best loss: {result.loss:.6e} after {result.iterations} iterations")
    print(f"phi(0) = {float(best.phi0):.4f}, dphi/dz(0) = {float(best.dphi0):.4f}")
    print(f"Potential parameters: {np.asarray(best.potential_params)}")

    # --------------------------------
    # 3) Plots
    # --------------------------------
    z_plot = jnp.linspace(float(z.min()), float(z.max()), num_plot)
    phi_plot = best.field(z_plot)
    phi_grid = jnp.linspace(float(phi_plot.min()), float(phi_plot.max()), num_plot)

    fig, (ax_mu, ax_w, ax_V) = plt.subplots(3, 1, figsize=(12, 18))

    ax_mu.errorbar(data["z"], data["my"], yerr=data["me"], fmt="o", markersize=3,
                   color=plotting.INDIGO, alpha=0.6, label="averaged data")
    ax_mu.plot(np.asarray(z_plot), np.asarray(best.predict(z_plot)), color=plotting.ROSE, label="quintessence fit")
    ax_mu.set_title("Redshift-Magnitude Data")
    ax_mu.set_xlabel("redshift $z$")
    ax_mu.set_ylabel(r"distance modulus $\mu$")
    ax_mu.legend(loc="lower right")

    ax_w.plot(np.asarray(z_plot), np.asarray(best.equation_of_state(z_plot)), color=plotting.ROSE)
    ax_w.axhline(-1.0, color=plotting.GREY, linestyle="--", label="cosmological constant")
    ax_w.set_title("Equation of State")
    ax_w.set_xlabel("redshift $z$")
    ax_w.set_ylabel("$w(z)$")
    ax_w.legend(loc="upper left")

    ax_V.plot(np.asarray(phi_grid), np.asarray(jax.vmap(best.potential)(phi_grid)), color=plotting.ROSE)
    ax_V.set_title("Potential of the Field")
    ax_V.set_xlabel(r"field $\phi$")
    ax_V.set_ylabel(r"$V(\phi)$")

    plotting.save_figure(fig, args.outdir / "Quintessence.pdf")


if __name__ == "__main__":
    main()
