"""One refracting wall hit head-on, plus a beam fired away from it."""

from __future__ import annotations

import numpy as np

from optics_core.geometry import Surface
from scenarios.common import default_source, run_store


def build_scene(index: float = 1.5):
    return [Surface(np.array([500.0, 600.0]), np.array([500.0, 700.0]), index=index, surface_id="wall")]


def build_sources():
    return [
        default_source("forward", direction=(1.0, 0.0)),
        default_source("backward", direction=(-1.0, 0.0)),
    ]


def build_sweep_params():
    return [
        {"case_id": "s0_n1.5", "index": 1.5, "rays_per_unit": 0.2},
        {"case_id": "s0_n1.33", "index": 1.33, "rays_per_unit": 0.2},
    ]


def run_case(params):
    return run_store(build_scene(params["index"]), build_sources(), params)
