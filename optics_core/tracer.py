"""Nearest-hit search and per-source ray tree construction.

Example:
    >>> import numpy as np
    >>> from optics_core.geometry import Surface
    >>> from optics_core.scene import Scene
    >>> from optics_core.sources import BeamSource
    >>> from optics_core.tracer import TraceConfig, build_tree
    >>> wall = Surface(np.array([500.0, 600.0]), np.array([500.0, 700.0]), index=1.5)
    >>> src = BeamSource("b0", np.array([200.0, 650.0]), np.array([1.0, 0.0]), waist=1.0)
    >>> tree = build_tree(src, Scene.from_lists([wall], [src]), TraceConfig(rays_per_unit=1.0))
    >>> tree.ray_count, tree.chains[0].termination.value
    (2, 'escaped')
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import math
from typing import List, Optional, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

from optics_core.geometry import PARALLEL_EPS, Surface, intersect
from optics_core.interaction import TIR_POLICIES, Outcome, interact
from optics_core.rays import Ray
from optics_core.scene import Scene
from optics_core.sources import BeamSource

Vector = NDArray[np.float64]


@dataclass(frozen=True)
class TraceConfig:
    """Propagation settings; t_epsilon and escape_length are in scene units."""

    t_epsilon: float = 0.1
    max_depth: int = 64
    rays_per_unit: float = 0.2
    parallel_eps: float = PARALLEL_EPS
    tie_tolerance: float = 1e-9
    tir_policy: str = "reflect"  # "reflect" | "terminate"
    escape_length: float = 2000.0

    def __post_init__(self) -> None:
        if self.t_epsilon < 0.0:
            raise ValueError("t_epsilon must be >= 0")
        if self.max_depth < 0:
            raise ValueError("max_depth must be >= 0")
        if self.rays_per_unit <= 0.0:
            raise ValueError("rays_per_unit must be > 0")
        if self.tir_policy not in TIR_POLICIES:
            raise ValueError(f"tir_policy must be one of {TIR_POLICIES}")
        if self.escape_length <= 0.0:
            raise ValueError("escape_length must be > 0")


class Termination(str, Enum):
    ESCAPED = "escaped"
    ABSORBED = "absorbed"
    TIR = "tir"
    TRUNCATED = "truncated"


@dataclass
class Segment:
    start: Vector
    end: Vector
    medium_index: float
    wavelength: float
    intensity: float
    chain_index: int = 0
    depth: int = 0

    @property
    def length(self) -> float:
        return float(np.linalg.norm(self.end - self.start))


@dataclass
class RayChain:
    """Linear chain grown from one root ray.

    hit_points[i] is where rays[i] ended on a surface. Escaped and truncated
    chains have one hit point fewer than rays; their last ray is left open.
    """

    root: Ray
    branches: List[Ray] = field(default_factory=list)
    hit_points: List[Vector] = field(default_factory=list)
    termination: Termination = Termination.ESCAPED

    @property
    def rays(self) -> List[Ray]:
        return [self.root] + self.branches

    @property
    def truncated(self) -> bool:
        return self.termination is Termination.TRUNCATED

    def segments(self, escape_length: float, chain_index: int = 0) -> List[Segment]:
        out: List[Segment] = []
        for depth, ray in enumerate(self.rays):
            end = self.hit_points[depth] if depth < len(self.hit_points) else ray.at(escape_length)
            out.append(Segment(ray.p.copy(), np.asarray(end, dtype=float).copy(), ray.medium_index, ray.wavelength, ray.intensity, chain_index, depth))
        return out


@dataclass
class RayTree:
    source_id: str
    chains: List[RayChain]
    escape_length: float = 2000.0

    @property
    def root(self) -> Optional[Ray]:
        return self.chains[0].root if self.chains else None

    @property
    def truncated(self) -> bool:
        return any(c.truncated for c in self.chains)

    @property
    def ray_count(self) -> int:
        return sum(len(c.branches) + 1 for c in self.chains)

    def segments(self) -> List[Segment]:
        out: List[Segment] = []
        for i, chain in enumerate(self.chains):
            out.extend(chain.segments(self.escape_length, chain_index=i))
        return out


def nearest_hit(ray: Ray, surfaces: Sequence[Surface], config: TraceConfig = TraceConfig()) -> Optional[Tuple[int, float]]:
    """(surface index, t) of the closest hit beyond t_epsilon, or None.

    Hits within tie_tolerance of the best keep the first-declared surface.
    """

    best: Optional[Tuple[int, float]] = None
    for i, surface in enumerate(surfaces):
        t = intersect(ray, surface, eps=config.parallel_eps)
        if not math.isfinite(t) or t <= config.t_epsilon:
            continue
        if best is None or t < best[1] - config.tie_tolerance:
            best = (i, t)
    return best


def trace_ray(root: Ray, surfaces: Sequence[Surface], config: TraceConfig = TraceConfig()) -> RayChain:
    """Follow one root ray until it escapes, terminates or hits max_depth.

    At most max_depth nearest-hit searches are made; the ray spawned by the
    last allowed bounce is not searched and the chain is marked truncated.
    """

    chain = RayChain(root=root)
    current = root
    while True:
        if len(chain.hit_points) >= config.max_depth:
            chain.termination = Termination.TRUNCATED
            return chain
        hit = nearest_hit(current, surfaces, config)
        if hit is None:
            chain.termination = Termination.ESCAPED
            return chain
        idx, t = hit
        event = interact(current, surfaces[idx], t, tir_policy=config.tir_policy)
        chain.hit_points.append(event.point)
        if event.child is None:
            chain.termination = Termination.TIR if event.outcome is Outcome.TIR else Termination.ABSORBED
            return chain
        chain.branches.append(event.child)
        current = event.child


def build_tree(source: BeamSource, scene: Scene, config: TraceConfig = TraceConfig()) -> RayTree:
    """Trace every sampled root ray of `source` through the scene surfaces."""

    surfaces = scene.surfaces
    chains = [trace_ray(root, surfaces, config) for root in source.emit(config.rays_per_unit)]
    return RayTree(source_id=source.source_id, chains=chains, escape_length=config.escape_length)
