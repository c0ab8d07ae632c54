"""Plot helpers: the house theme, confidence bands, PDF and GIF output."""

import io
from pathlib import Path

import imageio
import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
from PIL import Image

ROSE = "#cc6677"
INDIGO = "#332288"
GREY = "#555555"


def set_theme(scale=2.0):
    """Muted grid theme with font sizes scaled up for full-page figures."""
    plt.rcParams.update({
        "figure.figsize": (12, 12),
        "axes.grid": True,
        "grid.alpha": 0.3,
        "axes.spines.top": False,
        "axes.spines.right": False,
        "axes.prop_cycle": matplotlib.cycler(color=[INDIGO, ROSE, "#117733", "#88ccee", "#ddcc77"]),
        "font.size": 10 * scale,
        "axes.titlesize": 12 * scale,
        "axes.labelsize": 10 * scale,
        "legend.fontsize": 8 * scale,
        "xtick.labelsize": 8 * scale,
        "ytick.labelsize": 8 * scale,
        "lines.linewidth": 2.0,
    })


def plot_band(ax, x, stats, color=ROSE, label=None, alpha=0.5):
    """Mean curve with its confidence ribbon."""
    ax.plot(x, stats.mean, color=color, label=label)
    ax.fill_between(x, stats.lower, stats.upper, color=color, alpha=alpha, linewidth=0)


def plot_orbit_band(ax, phi, stats, color=ROSE, label=None, alpha=0.5):
    """Mean orbit with the region between the lower and upper radius filled."""
    phi = np.asarray(phi)
    ax.plot(stats.mean * np.cos(phi), stats.mean * np.sin(phi), color=color, label=label)

    # polygon: upper ring forwards, lower ring backwards
    x = np.concatenate([stats.upper * np.cos(phi), (stats.lower * np.cos(phi))[::-1]])
    y = np.concatenate([stats.upper * np.sin(phi), (stats.lower * np.sin(phi))[::-1]])
    ax.fill(x, y, color=color, alpha=alpha, linewidth=0)


def save_figure(fig, path):
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, bbox_inches="tight")
    plt.close(fig)
    print(f"Figure saved as {path}")


def figure_to_image(fig):
    """Render a figure into a PIL image and close it."""
    buf = io.BytesIO()
    fig.savefig(buf, format="png")
    buf.seek(0)
    img = Image.open(buf)
    img.load()
    plt.close(fig)
    return img


def save_gif(frames, path, fps=10):
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    imageio.mimsave(path, [np.asarray(frame) for frame in frames], duration=1000.0 / fps, loop=0)
    print(f"GIF saved as {path}")
