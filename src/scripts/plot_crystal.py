# src/scripts/plot_crystal.py
import argparse
import sys
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.patches import Polygon

SRC = Path(__file__).resolve().parents[1]
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from snow_sim import utils  # noqa: E402
from snow_sim.contours import extract_contours, hex_centers, write_svg  # noqa: E402


def format_title(snap):
    """Short title with the model, tick and a few key parameters."""
    parts = [f"Model={snap.model}", f"tick={snap.tick}", f"ice={snap.ice_count()}"]
    for name in ("alpha", "beta", "gamma", "rho", "kappa", "mu"):
        if name in snap.parameters:
            parts.append(f"{name}={snap.parameters[name]:g}")
    return ", ".join(parts)


def plot_field(snap, field="ice", ax=None, cmap="Blues_r", marker_size=None):
    """
    Scatter the chosen field on the hexagonal layout. Ice cells are drawn
    with their mass; everything else with the requested vapor field.
    """
    if ax is None:
        _, ax = plt.subplots(figsize=(8, 8))
    x, y = hex_centers(snap.size)
    values = {
        "ice": np.where(snap.frozen, snap.ice, np.nan),
        "diffusive": snap.diffusive,
        "boundary": snap.boundary_mass,
        "state": snap.state.astype(float),
    }[field]
    if marker_size is None:
        marker_size = max(0.5, (400.0 / snap.size) ** 2)
    ax.scatter(x.ravel(), y.ravel(), c=values.ravel(), s=marker_size, marker="h", cmap=cmap, linewidths=0)
    ax.set_aspect("equal")
    ax.axis("off")
    return ax


def plot_outline(snap, ax=None, color="black"):
    """Fill the crystal outline traced from the frozen cells."""
    if ax is None:
        _, ax = plt.subplots(figsize=(8, 8))
    for contour in extract_contours(snap.frozen):
        ax.add_patch(Polygon(contour, closed=True, facecolor=color, edgecolor="none"))
    x, y = hex_centers(snap.size)
    ax.set_xlim(x.min() - 1, x.max() + 1)
    ax.set_ylim(y.min() - 1, y.max() + 1)
    ax.set_aspect("equal")
    ax.axis("off")
    return ax


def main():
    parser = argparse.ArgumentParser(description="Plot a saved snow crystal snapshot")
    parser.add_argument("snapshot", help="Path to a .npz snapshot from run_sim.py")
    parser.add_argument(
        "--field",
        choices=["ice", "diffusive", "boundary", "state", "outline"],
        default="ice",
        help="Field to colour cells by, or the traced outline (default: ice)",
    )
    parser.add_argument("--out", default=None, help="Image path (defaults to next to the snapshot)")
    parser.add_argument("--svg", default=None, help="Also write the crystal outline as SVG")
    parser.add_argument("--show", action="store_true", help="Open an interactive window")
    args = parser.parse_args()

    snap = utils.load_snapshot(args.snapshot)

    fig, ax = plt.subplots(figsize=(8, 8))
    if args.field == "outline":
        plot_outline(snap, ax=ax)
    else:
        plot_field(snap, args.field, ax=ax)
    ax.set_title(format_title(snap), fontsize=9)
    out = args.out or str(Path(args.snapshot).with_suffix(f".{args.field}.png"))
    fig.savefig(out, dpi=200, bbox_inches="tight")
    print(f"Saved {out}")

    if args.svg:
        write_svg(args.svg, snap.frozen)
        print(f"Saved outline {args.svg}")

    if args.show:
        plt.show()
    plt.close(fig)
    return 0


if __name__ == "__main__":
    sys.exit(main())
