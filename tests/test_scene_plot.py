from pathlib import Path

import numpy as np

from optics_core.geometry import Surface
from optics_core.scene import Scene
from optics_core.sources import BeamSource
from optics_core.tracer import TraceConfig, build_tree
from plots.scene_plot import plot_depth_hist, plot_trees, scene_bounds, segment_arrays


def test_plot_trees_writes_png(tmp_path: Path):
    surfaces = [Surface(np.array([500.0, 600.0]), np.array([500.0, 700.0]), index=1.5)]
    src = BeamSource("b0", np.array([200.0, 650.0]), np.array([1.0, 0.0]), waist=40.0)
    tree = build_tree(src, Scene.from_lists(surfaces, [src]), TraceConfig(escape_length=300.0))
    out = plot_trees(surfaces, {"b0": tree}, str(tmp_path))
    assert Path(out).exists()
    assert Path(plot_depth_hist({"b0": tree}, str(tmp_path))).exists()

    lines, index, intensity = segment_arrays(tree.segments())
    assert lines.shape == (len(tree.segments()), 2, 2)
    x0, x1, y0, y1 = scene_bounds(surfaces, lines)
    assert x0 < 200.0 and x1 > 800.0
    assert y0 < 600.0 and y1 > 700.0


def test_plot_with_no_segments(tmp_path: Path):
    out = plot_trees([], {}, str(tmp_path), name="empty", grid_pitch=None)
    assert Path(out).exists()
