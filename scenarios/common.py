"""Common scenario helpers."""

from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, Tuple

import numpy as np

from optics_core.geometry import Surface
from optics_core.scene import Scene
from optics_core.sources import BeamSource
from optics_core.store import TreeStore
from optics_core.tracer import RayTree, TraceConfig

CONFIG_KEYS = ("t_epsilon", "max_depth", "rays_per_unit", "tir_policy", "escape_length")


def make_config(params: Mapping[str, Any]) -> TraceConfig:
    return TraceConfig(**{k: params[k] for k in CONFIG_KEYS if k in params})


def default_source(source_id: str = "beam0", position=(200.0, 650.0), direction=(1.0, 0.0), waist: float = 40.0) -> BeamSource:
    return BeamSource(source_id, np.array(position, dtype=float), np.array(direction, dtype=float), waist=waist)


def run_store(surfaces: Iterable[Surface], sources: Iterable[BeamSource], params: Mapping[str, Any]) -> Tuple[Scene, Dict[str, RayTree]]:
    store = TreeStore(surfaces, config=make_config(params))
    for src in sources:
        store.source_changed(src)
    return store.scene, store.trees()
