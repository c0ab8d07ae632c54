"""
Single neural Kepler fit of the S2 orbit with live progress.

Same model as the bootstrapped script, but fitted once against the inverse
radii, with a callback that reports the current initial conditions, angles
and angular misfit and records a frame of the orbit and of the learned
potential gradient. The frames are written out as a GIF.
"""

import argparse
from pathlib import Path

import jax
import jax.numpy as jnp
import matplotlib.pyplot as plt
import numpy as np

from neuralpotentials import plotting, sagittarius
from neuralpotentials.constants import D_SGR_A, G
from neuralpotentials.kepler import NeuralKepler
from neuralpotentials.training import fit

# -------------------------------
# 0) Config
# -------------------------------

STAR = "S2"
DATA_PATH = Path("data") / "SagittariusData.csv"

MAXITERS = 150000
LEARNING_RATE = 0.01
print_every = 100
frame_every = 500

# radii at which the learned potential gradient is drawn
R_plot = np.linspace(0.3, 11.5, 100)


def loss_fn(model, star, prograde):
    """Squared misfit of the inverse radii."""
    r, phi, _, _ = model.predict(star["r"], star["phi"], prograde)
    return jnp.sum((1.0 / r - 1.0 / star["r"]) ** 2), (r, phi)


def orbit_frame(model, star, pred, iteration):
    """Orbit and learned potential gradient at one iteration."""
    r, phi = np.asarray(pred[0]), np.asarray(pred[1])
    fig, (ax_orbit, ax_pot) = plt.subplots(2, 1, figsize=(16, 12))

    ax_orbit.plot(r * np.cos(phi), r * np.sin(phi), color=plotting.ROSE, label="fit using neural network")
    ax_orbit.scatter(star["x"], star["y"], color=plotting.INDIGO, label="observed data")
    ax_orbit.scatter([star["x"][0]], [star["y"][0]], color=plotting.GREY, label="initial point")
    ax_orbit.set_xlabel("x coordinate [mpc]")
    ax_orbit.set_ylabel("y coordinate [mpc]")
    ax_orbit.set_title(f"Position of the test mass | Epoch {iteration}")
    ax_orbit.legend(loc="lower right")

    dV = G * jax.vmap(model.network)(jnp.asarray(1.0 / R_plot))
    ax_pot.plot(1.0 / R_plot, np.asarray(dV), color=plotting.ROSE)
    ax_pot.set_xlabel(r"$u$ coordinate [mpc$^{-1}$]")
    ax_pot.set_ylabel(r"$G\,N(u)$")
    return plotting.figure_to_image(fig)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Single neural Kepler fit of the S2 orbit with a training GIF.")
    parser.add_argument("--data", type=Path, default=DATA_PATH, help="CSV with star,t,RA,RA_err,DEC,DEC_err.")
    parser.add_argument("--star", default=STAR)
    parser.add_argument("--maxiters", type=int, default=MAXITERS)
    parser.add_argument("--frame-every", type=int, default=frame_every)
    parser.add_argument("--seed", type=int, default=0)
    parser.add_argument("--outdir", type=Path, default=Path("outputs"))
    args = parser.parse_args(argv)

    plotting.set_theme(scale=1.5)

    star = sagittarius.order_observations(
        sagittarius.orbit(sagittarius.load_star(args.data, args.star), D_SGR_A)
    )
    arrays = sagittarius.as_arrays(star)
    prograde = sagittarius.is_prograde(star["phi"])
    print("isprograde:", prograde)

    model = NeuralKepler.init(jax.random.PRNGKey(args.seed))
    frames = []

    def callback(i, model, loss, pred):
        if i % print_every == 0:
            angular = float(jnp.sum((arrays["phi"] - pred[1]) ** 2))
            print(f"Epoch: {i} | Loss: {loss:.6e} | Initial conditions: {np.asarray(model.u0)} | "
                  f"Rotation angles: {np.asarray(model.angles)} | Angular fit: {angular:.4e}")
        if i % args.frame_every == 0:
            frames.append(orbit_frame(model, star, pred, i))
        return False

    print(f"Training started for {args.maxiters} epochs...")
    result = fit(model, loss_fn, (arrays, prograde), learning_rate=LEARNING_RATE,
                 maxiters=args.maxiters, callback=callback)
    print("Training finished!")
    print(f"Best loss: {result.loss:.6e} after {result.iterations} iterations")
    print(f"Angles: {np.asarray(result.model.reported_angles(prograde))}")

    best = result.model
    _, pred = loss_fn(best, arrays, prograde)
    frames.append(orbit_frame(best, star, pred, result.iterations))
    plotting.save_gif(frames, args.outdir / "sagittarius_neural_kepler.gif", fps=10)


if __name__ == "__main__":
    main()
