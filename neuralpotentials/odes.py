"""Thin wrapper around diffrax for solving at arbitrary save points."""

import diffrax
import jax.numpy as jnp


def solve_at(rhs, y0, ts, t0, t1, args=None, rtol=1e-6, atol=1e-8, max_steps=16384):
    """
    Solve dy/dt = rhs(t, y, args) from t0 and return y at every entry of ts.

    ts does not need to be sorted: the save points are sorted (and clipped to
    [t0, t1]) for the solver and the solution is returned in the order of ts.
    Failed solves are not raised; they yield non-finite values that the
    caller's loss picks up.
    """
    ts = jnp.asarray(ts)
    order = jnp.argsort(ts)
    saveat = jnp.clip(ts[order], t0, t1)

    sol = diffrax.diffeqsolve(
        diffrax.ODETerm(rhs),
        diffrax.Tsit5(),
        t0=t0,
        t1=t1,
        dt0=None,
        y0=jnp.asarray(y0),
        args=args,
        stepsize_controller=diffrax.PIDController(rtol=rtol, atol=atol),
        saveat=diffrax.SaveAt(ts=saveat),
        max_steps=max_steps,
        throw=False,
    )
    return sol.ys[jnp.argsort(order)]
