"""Outline extraction for the frozen region of a hexagonal lattice."""

from __future__ import annotations

import math
import os
from pathlib import Path
from typing import Dict, List, Set, Tuple

import numpy as np

Point = Tuple[float, float]

# Hexagon corners around a cell centre, in doubled/tripled integer units so
# that neighbouring cells share exact corner coordinates.
_CORNERS = ((1, 1), (0, 2), (-1, 1), (-1, -1), (0, -2), (1, -1))


def hex_centers(size: int, scale: float = 1.0) -> Tuple[np.ndarray, np.ndarray]:
    """Cartesian centres of every cell, as two (size, size) arrays."""
    i, j = np.meshgrid(np.arange(size), np.arange(size), indexing="ij")
    x = (i + 0.5 * j) * scale
    y = j * (math.sqrt(3.0) / 2.0) * scale
    return x, y


def extract_contours(frozen: np.ndarray, scale: float = 1.0) -> List[List[Point]]:
    """
    Trace the closed outlines of the ``True`` cells in ``frozen``.

    Every frozen cell contributes its six directed edges; an edge shared by
    two frozen cells appears once in each direction and cancels. What is left
    is chained into closed polygons (first point repeated at the end).
    """
    frozen = np.asarray(frozen, dtype=bool)
    edges: Set[Tuple[Tuple[int, int], Tuple[int, int]]] = set()
    for i, j in np.argwhere(frozen):
        ci = 2 * int(i) + int(j)
        cj = 3 * int(j)
        for k, (di, dj) in enumerate(_CORNERS):
            ni, nj = _CORNERS[(k + 1) % 6]
            start = (ci + di, cj + dj)
            end = (ci + ni, cj + nj)
            if (end, start) in edges:
                edges.discard((end, start))
            else:
                edges.add((start, end))

    # on a hexagonal tiling every outline corner has exactly one outgoing edge
    segments: Dict[Tuple[int, int], Tuple[int, int]] = dict(sorted(edges))
    contours = []
    while segments:
        start = next(iter(segments))
        contour = [start]
        current = start
        while current in segments:
            nxt = segments.pop(current)
            contour.append(nxt)
            current = nxt
        contours.append(contour)

    y_scale = scale / 2.0 / math.sqrt(3.0)
    return [[(scale * x / 2.0, y_scale * y) for x, y in contour] for contour in contours]


def write_svg(
    path: str | os.PathLike[str], frozen: np.ndarray, scale: float = 1.0, fill: str = "black"
) -> None:
    """Write the outline of ``frozen`` as one filled SVG path."""
    frozen = np.asarray(frozen, dtype=bool)
    size = frozen.shape[0]
    width = 1.5 * size * scale
    height = math.sqrt(3.0) / 2.0 * size * scale

    data = []
    for contour in extract_contours(frozen, scale):
        (x0, y0), rest = contour[0], contour[1:-1]
        data.append(f"M{x0:.4f},{height - y0:.4f}")
        data.extend(f"L{x:.4f},{height - y:.4f}" for x, y in rest)
        data.append("Z")

    # evenodd keeps enclosed vapor pockets as holes
    svg = (
        f'<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 {width:.4f} {height:.4f}" '
        f'width="{width:.4f}" height="{height:.4f}">\n'
        f'<path fill="{fill}" fill-rule="evenodd" d="{" ".join(data)}"/>\n'
        "</svg>\n"
    )
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(svg)


__all__ = ["extract_contours", "hex_centers", "write_svg"]
