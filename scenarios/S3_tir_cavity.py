"""Two facing low-index walls that trap a 45 degree beam by total internal reflection."""

from __future__ import annotations

import numpy as np

from optics_core.geometry import Surface
from scenarios.common import default_source, run_store


def build_scene(gap: float = 100.0, length: float = 5000.0, index: float = 0.5):
    return [
        Surface(np.array([0.0, 0.0]), np.array([length, 0.0]), index=index, surface_id="floor"),
        Surface(np.array([0.0, gap]), np.array([length, gap]), index=index, surface_id="ceiling"),
    ]


def build_sources(gap: float = 100.0):
    d = np.array([1.0, 1.0]) / np.sqrt(2.0)
    return [default_source("trapped", position=(10.0, gap / 2.0), direction=d, waist=1.0)]


def build_sweep_params():
    return [
        {"case_id": "s3_depth8", "max_depth": 8, "rays_per_unit": 1.0, "escape_length": 200.0},
        {"case_id": "s3_depth32", "max_depth": 32, "rays_per_unit": 1.0, "escape_length": 200.0},
    ]


def run_case(params):
    return run_store(build_scene(), build_sources(), params)
