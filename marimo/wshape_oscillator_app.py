# /// script
# [tool.marimo.runtime]
# auto_instantiate = false
# on_cell_change = "lazy"
# ///

import marimo

__generated_with = "0.19.7"
app = marimo.App(app_title="Neural Potentials - W-shaped Oscillator")


@app.cell(hide_code=True)
def _(mo):
    mo.md(r"""
    # Neural Potentials
    ## Recovering a Double-Well Potential from a Noisy Trajectory

    A particle moves in the potential $V(x) = p_1 x^4 - p_2 x^2$:

    $$\ddot{x} = -V'(x)$$

    The fit keeps the structure of Newton's equation and only replaces the force by a network,
    $\ddot{x} = -N_\theta(x)$. Integrating the learned force gives the potential back:

    $$V_\theta(x) = \int_0^x N_\theta(\xi)\, d\xi$$

    | Black-box Neural ODE | Neural potential |
    |----------------------|------------------|
    | Learns the full vector field | Learns **one scalar function** |
    | No physical interpretation | Potential can be **read off** |
    | Needs many trajectories | Works from **one** noisy trajectory |

    Repeating the fit from independent random starts (the bootstrap) gives confidence bands.
    """)
    return


@app.cell(hide_code=True)
def _():
    import marimo as mo
    import jax
    import jax.numpy as jnp
    import matplotlib.pyplot as plt
    import numpy as np

    from neuralpotentials import bootstrap, datasets, plotting
    from neuralpotentials.oscillator import NeuralOscillator, wshape_potential
    from neuralpotentials.training import fit
    return (
        NeuralOscillator,
        bootstrap,
        datasets,
        fit,
        jax,
        jnp,
        mo,
        np,
        plotting,
        plt,
        wshape_potential,
    )


@app.cell(hide_code=True)
def _(mo):
    mo.md(r"""
    ---
    ## 1. Settings

    The data are generated with $x(0) = 3$, $\dot{x}(0) = 0$ and Gaussian noise on the samples.
    Each repetition runs Nadam through the ODE solver from a fresh initialization.
    """)
    return


@app.cell
def _(mo):
    # Data generation
    samples_slider = mo.ui.slider(64, 512, value=384, step=64, label="Samples")
    noise_slider = mo.ui.slider(0.0, 0.1, value=0.01, step=0.005, label="Observation noise")
    p1_slider = mo.ui.slider(0.1, 0.5, value=0.25, step=0.05, label="Quartic coefficient p₁")
    p2_slider = mo.ui.slider(1.0, 3.0, value=2.0, step=0.25, label="Quadratic coefficient p₂")

    # Bootstrap
    repetitions_slider = mo.ui.slider(2, 64, value=8, step=2, label="Repetitions")
    iters_dropdown = mo.ui.dropdown({"250": 250, "500": 500, "1000": 1000, "1500": 1500},
                                    value="500", label="Iterations per fit")
    lr_dropdown = mo.ui.dropdown({"1e-3": 1e-3, "5e-3": 5e-3, "1e-2": 1e-2},
                                 value="1e-2", label="Learning rate")
    seed_slider = mo.ui.slider(0, 9999, value=0, step=1, label="Random seed")
    return (
        iters_dropdown,
        lr_dropdown,
        noise_slider,
        p1_slider,
        p2_slider,
        repetitions_slider,
        samples_slider,
        seed_slider,
    )


@app.cell
def _(
    iters_dropdown,
    lr_dropdown,
    mo,
    noise_slider,
    p1_slider,
    p2_slider,
    repetitions_slider,
    samples_slider,
    seed_slider,
):
    control_panel = mo.vstack([
        mo.md("#### Data Generation"),
        samples_slider, noise_slider, p1_slider, p2_slider,
        mo.md("#### Bootstrap"),
        repetitions_slider, iters_dropdown, lr_dropdown, seed_slider,
    ])

    run_button = mo.ui.run_button(label="▶ Run Bootstrap")

    mo.vstack([run_button, control_panel])
    return (run_button,)


@app.cell
def _(
    NeuralOscillator,
    bootstrap,
    datasets,
    fit,
    iters_dropdown,
    jax,
    jnp,
    lr_dropdown,
    mo,
    noise_slider,
    np,
    p1_slider,
    p2_slider,
    repetitions_slider,
    run_button,
    samples_slider,
    seed_slider,
    wshape_potential,
):
    mo.stop(not run_button.value, mo.md("_Click **▶ Run Bootstrap** to begin_"))

    true_u0 = [3.0, 0.0]
    true_p = [p1_slider.value, p2_slider.value]
    t = jnp.linspace(0.0, 10.0, samples_slider.value)
    data = datasets.potential_problem_1d(
        wshape_potential, true_u0, true_p, t,
        addnoise=True, sigma=noise_slider.value, key=jax.random.PRNGKey(seed_slider.value),
    )
    x_grid = np.arange(-true_u0[0], true_u0[0] + 0.005, 0.01)

    def loss_fn(model, t, x):
        pred = model.predict(t)
        return jnp.sum((pred - x) ** 2), pred

    def fit_once(rep, key):
        result = fit(NeuralOscillator.init(key), loss_fn, (t, data[1]),
                     learning_rate=lr_dropdown.value, maxiters=iters_dropdown.value)
        if not np.isfinite(result.loss):
            return None
        return {
            "trajectory": np.asarray(result.model.predict(t)),
            "potential": np.asarray(result.model.potential(jnp.asarray(x_grid))),
            "loss": result.loss,
        }

    table = bootstrap.run_bootstrap(
        fit_once, repetitions_slider.value,
        columns=("trajectory", "potential", "loss"), seed=seed_slider.value + 1,
    )
    trajectory = bootstrap.calculate_statistics(table["trajectory"], size=len(t))
    potential = bootstrap.calculate_statistics(table["potential"], size=len(x_grid))
    return data, potential, t, table, trajectory, true_p, x_grid


@app.cell(hide_code=True)
def _(mo):
    mo.md(r"""
    ---
    ## 2. Trajectory and Potential

    Shaded regions are the 95% percentile bands over the accepted repetitions.
    """)
    return


@app.cell
def _(
    data,
    np,
    plotting,
    plt,
    potential,
    t,
    trajectory,
    true_p,
    wshape_potential,
    x_grid,
):
    plotting.set_theme(scale=1.0)
    fig, (ax_traj, ax_pot) = plt.subplots(1, 2, figsize=(14, 5))

    ax_traj.scatter(np.asarray(data[0]), np.asarray(data[1]), marker="+", color=plotting.INDIGO, label="data")
    plotting.plot_band(ax_traj, np.asarray(t), trajectory, label="neural potential")
    ax_traj.set_xlabel("Time $t$")
    ax_traj.set_ylabel("Displacement $x(t)$")
    ax_traj.legend(loc="lower right")

    ax_pot.plot(x_grid, wshape_potential(x_grid, true_p), color=plotting.INDIGO, label="true")
    plotting.plot_band(ax_pot, x_grid, potential, label="learned")
    ax_pot.set_xlabel("Displacement $x$")
    ax_pot.set_ylabel("Potential $V(x)$")
    ax_pot.legend(loc="lower right")

    fig.tight_layout()
    fig
    return


@app.cell(hide_code=True)
def _(mo, table):
    mo.ui.table(
        [{"repetition": int(rep), "loss": f"{loss:.4e}"} for rep, loss in zip(table["rep"], table["loss"])],
        label=f"Accepted fits ({len(table)})",
    )
    return


if __name__ == "__main__":
    app.run()
