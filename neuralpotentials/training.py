"""Gradient descent through the ODE solve with Optax."""

import functools
import math
from typing import NamedTuple

import equinox as eqx
import jax
import optax


@functools.partial(jax.custom_vjp, nondiff_argnums=(1,))
def scale_gradient(x, factor):
    """Identity on the forward pass, multiplies the gradient by factor on the backward pass."""
    return x


def _scale_gradient_fwd(x, factor):
    return x, None


def _scale_gradient_bwd(factor, _, g):
    return (g * factor,)


scale_gradient.defvjp(_scale_gradient_fwd, _scale_gradient_bwd)


class FitResult(NamedTuple):
    model: eqx.Module
    loss: float
    losses: list
    iterations: int
    converged: bool


@functools.lru_cache(maxsize=None)
def make_optimizer(learning_rate):
    # cached so that repeated fits share one compiled train_step
    return optax.nadam(learning_rate)


@eqx.filter_jit
def train_step(model, opt_state, optimizer, loss_fn, args):
    """Single training step; returns the loss and aux of the model before the update."""
    (loss, aux), grads = eqx.filter_value_and_grad(loss_fn, has_aux=True)(model, *args)
    updates, opt_state = optimizer.update(grads, opt_state, eqx.filter(model, eqx.is_array))
    model = eqx.apply_updates(model, updates)
    return model, opt_state, loss, aux


def fit(model, loss_fn, args=(), *, learning_rate=0.01, maxiters=1000, stop_below=None,
        callback=None, print_every=None):
    """
    Minimize loss_fn(model, *args) -> (loss, aux) over the arrays of model.

    Stops early once the loss drops below stop_below, when callback(iteration,
    model, loss, aux) returns True, or when the loss stops being finite. The
    returned model is the one with the lowest loss seen.
    """
    optimizer = make_optimizer(learning_rate)
    opt_state = optimizer.init(eqx.filter(model, eqx.is_array))

    best_model, best_loss = model, math.inf
    losses = []
    converged = False

    for iteration in range(1, maxiters + 1):
        updated, opt_state, loss, aux = train_step(model, opt_state, optimizer, loss_fn, tuple(args))
        loss = float(loss)
        losses.append(loss)

        if not math.isfinite(loss):
            print(f"Epoch [{iteration}/{maxiters}] Loss={loss} | stopping, loss is not finite")
            break
        if loss < best_loss:
            best_model, best_loss = model, loss
        if print_every and iteration % print_every == 0:
            print(f"Epoch [{iteration}/{maxiters}] Loss={loss:.6e}")
        if stop_below is not None and loss < stop_below:
            converged = True
            break
        if callback is not None and callback(iteration, model, loss, aux):
            converged = True
            break
        model = updated

    return FitResult(best_model, best_loss, losses, len(losses), converged)
