"""Parallel-sided glass slab crossed by an oblique beam."""

from __future__ import annotations

import numpy as np

from optics_core.geometry import Surface
from scenarios.common import default_source, run_store


def build_scene(index: float = 1.5, thickness: float = 100.0, reflectance: float = 0.04):
    return [
        Surface(np.array([500.0, 300.0]), np.array([500.0, 1100.0]), index=index, reflectance=reflectance, surface_id="entry"),
        Surface(np.array([500.0 + thickness, 300.0]), np.array([500.0 + thickness, 1100.0]), index=1.0, reflectance=reflectance, surface_id="exit"),
    ]


def build_sources(angle_deg: float = 20.0):
    a = np.deg2rad(angle_deg)
    return [default_source("oblique", position=(200.0, 600.0), direction=(np.cos(a), np.sin(a)))]


def build_sweep_params():
    return [
        {"case_id": "s2_a20", "angle_deg": 20.0, "index": 1.5, "rays_per_unit": 0.2},
        {"case_id": "s2_a40", "angle_deg": 40.0, "index": 1.5, "rays_per_unit": 0.2},
    ]


def run_case(params):
    return run_store(build_scene(params["index"]), build_sources(params["angle_deg"]), params)
