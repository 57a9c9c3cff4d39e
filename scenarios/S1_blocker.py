"""Tilted fully absorbing blocker in front of a refracting wall."""

from __future__ import annotations

import numpy as np

from optics_core.geometry import Surface
from scenarios.common import default_source, run_store


def build_scene(tilt_deg: float = 0.0):
    c = np.array([400.0, 650.0])
    half = 60.0 * np.array([np.sin(np.deg2rad(tilt_deg)), np.cos(np.deg2rad(tilt_deg))])
    return [
        Surface(c - half, c + half, index=1.0, absorption=1.0, surface_id="blocker"),
        Surface(np.array([500.0, 600.0]), np.array([500.0, 700.0]), index=1.5, surface_id="wall"),
    ]


def build_sweep_params():
    return [{"case_id": f"s1_tilt{t:g}", "tilt_deg": t, "rays_per_unit": 0.2} for t in (0.0, 30.0, 60.0)]


def run_case(params):
    return run_store(build_scene(params["tilt_deg"]), [default_source()], params)
