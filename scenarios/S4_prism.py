"""Triangular prism dispersing nothing but bending a beam twice."""

from __future__ import annotations

import numpy as np

from optics_core.geometry import Surface
from scenarios.common import default_source, run_store


def build_scene(index: float = 1.5, apex=(500.0, 800.0), base_half: float = 120.0, base_y: float = 550.0):
    a = np.array(apex, dtype=float)
    left = np.array([a[0] - base_half, base_y])
    right = np.array([a[0] + base_half, base_y])
    return [
        Surface(left, a, index=index, surface_id="face_in"),
        Surface(a, right, index=1.0, surface_id="face_out"),
        Surface(right, left, index=1.0, absorption=1.0, surface_id="base"),
    ]


def build_sweep_params():
    return [{"case_id": f"s4_n{n:g}", "index": n, "rays_per_unit": 0.2} for n in (1.3, 1.5, 1.7)]


def run_case(params):
    src = default_source("beam0", position=(200.0, 640.0), direction=(1.0, 0.0))
    return run_store(build_scene(params["index"]), [src], params)
