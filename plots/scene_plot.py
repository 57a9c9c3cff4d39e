"""Scene and ray tree plotting helpers."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Mapping, Optional, Sequence, Tuple
import warnings

import matplotlib.pyplot as plt
from matplotlib.collections import LineCollection
import numpy as np

from optics_core.geometry import Surface
from optics_core.tracer import RayTree, Segment

GRID_PITCH = 20.0
MAX_GRID_LINES = 200


def _save(fig: plt.Figure, outdir: str, name: str) -> str:
    Path(outdir).mkdir(parents=True, exist_ok=True)
    png = Path(outdir) / f"{name}.png"
    pdf = Path(outdir) / f"{name}.pdf"
    fig.savefig(png, dpi=150, bbox_inches="tight")
    try:
        fig.savefig(pdf, bbox_inches="tight")
    except PermissionError:
        warnings.warn(
            f"Could not write '{pdf}' (permission denied). Saved PNG only.",
            RuntimeWarning,
            stacklevel=2,
        )
    plt.close(fig)
    return str(png)


def segment_arrays(segments: Sequence[Segment]) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """(K,2,2) line coordinates, medium index and intensity per segment."""

    lines = np.array([[s.start, s.end] for s in segments], dtype=float).reshape(-1, 2, 2)
    index = np.array([s.medium_index for s in segments], dtype=float)
    intensity = np.array([s.intensity for s in segments], dtype=float)
    return lines, index, intensity


def scene_bounds(surfaces: Iterable[Surface], lines: np.ndarray, margin: float = GRID_PITCH) -> Tuple[float, float, float, float]:
    pts = [s.p1 for s in surfaces] + [s.p2 for s in surfaces]
    if lines.size:
        pts.extend(lines.reshape(-1, 2))
    if not pts:
        return 0.0, 1.0, 0.0, 1.0
    arr = np.asarray(pts, dtype=float)
    lo = arr.min(axis=0) - margin
    hi = arr.max(axis=0) + margin
    return float(lo[0]), float(hi[0]), float(lo[1]), float(hi[1])


def draw_grid(ax: plt.Axes, bounds: Tuple[float, float, float, float], pitch: float = GRID_PITCH) -> None:
    x0, x1, y0, y1 = bounds
    while max(x1 - x0, y1 - y0) / pitch > MAX_GRID_LINES:
        pitch *= 5.0
    for x in np.arange(np.floor(x0 / pitch) * pitch, x1 + pitch, pitch):
        ax.axvline(x, color="0.5", lw=0.3, zorder=0)
    for y in np.arange(np.floor(y0 / pitch) * pitch, y1 + pitch, pitch):
        ax.axhline(y, color="0.5", lw=0.3, zorder=0)


def draw_surfaces(ax: plt.Axes, surfaces: Iterable[Surface]) -> None:
    for s in surfaces:
        color = "0.2" if s.opaque else "tab:blue"
        ax.plot([s.p1[0], s.p2[0]], [s.p1[1], s.p2[1]], color=color, lw=2.0, zorder=2)


def plot_trees(
    surfaces: Sequence[Surface],
    trees: Mapping[str, RayTree],
    outdir: str,
    name: str = "rays",
    grid_pitch: Optional[float] = GRID_PITCH,
    bounds: Optional[Tuple[float, float, float, float]] = None,
) -> str:
    """Draw surfaces and every tree's segments colored by medium index."""

    segs = [seg for tree in trees.values() for seg in tree.segments()]
    lines, index, intensity = segment_arrays(segs)
    bounds = bounds or scene_bounds(surfaces, lines)

    fig, ax = plt.subplots(figsize=(8, 6))
    if grid_pitch:
        draw_grid(ax, bounds, grid_pitch)
    draw_surfaces(ax, surfaces)
    if len(segs):
        lc = LineCollection(lines, cmap="viridis", linewidths=0.3 + 1.2 * intensity, zorder=3)
        lc.set_array(index)
        ax.add_collection(lc)
        fig.colorbar(lc, ax=ax, label="medium index")
    ax.set_xlim(bounds[0], bounds[1])
    ax.set_ylim(bounds[2], bounds[3])
    ax.set_aspect("equal")
    ax.set_title(f"{name}: {len(trees)} source(s), {len(segs)} segment(s)")
    return _save(fig, outdir, name)


def plot_depth_hist(trees: Mapping[str, RayTree], outdir: str, name: str = "depth") -> str:
    fig, ax = plt.subplots()
    depths = [len(c.branches) for tree in trees.values() for c in tree.chains]
    ax.hist(depths, bins=max(1, max(depths, default=0) + 1))
    ax.set_xlabel("branches per chain")
    ax.set_title("chain depth")
    return _save(fig, outdir, name)
