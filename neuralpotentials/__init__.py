"""
Neural potentials: fit physical ODE models whose right-hand side contains a
small learned network, by gradient descent through the ODE solve.
"""

import jax

jax.config.update("jax_enable_x64", True)

__version__ = "0.1.0"
