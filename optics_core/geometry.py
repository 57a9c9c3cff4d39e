"""2D segment surfaces and the ray/segment intersection kernel.

Example:
    >>> import numpy as np
    >>> from optics_core.geometry import Surface, intersect
    >>> from optics_core.rays import Ray
    >>> wall = Surface(p1=np.array([500.0, 600.0]), p2=np.array([500.0, 700.0]), index=1.5)
    >>> intersect(Ray(np.array([200.0, 650.0]), np.array([1.0, 0.0])), wall)
    300.0
"""

from __future__ import annotations

from dataclasses import dataclass, field
import math
from typing import TYPE_CHECKING, Tuple

import numpy as np
from numpy.typing import NDArray

if TYPE_CHECKING:
    from optics_core.rays import Ray

Vector = NDArray[np.float64]

PARALLEL_EPS = 1e-6


def as_vec(v) -> Vector:
    """Owned float copy of a 2D point or direction."""

    return np.array(v, dtype=float).reshape(2)


def frozen_vec(v) -> Vector:
    out = as_vec(v)
    out.setflags(write=False)
    return out


def normalize(v: Vector) -> Vector:
    vv = np.asarray(v, dtype=float)
    n = np.linalg.norm(vv)
    if n == 0:
        raise ValueError("Cannot normalize zero vector")
    return vv / n


def perp(v: Vector) -> Vector:
    """Rotate a 2D vector by +90 degrees."""

    return np.array([-v[1], v[0]], dtype=float)


def cross2(a: Vector, b: Vector) -> float:
    return float(a[0] * b[1] - a[1] * b[0])


def rotate(v: Vector, angle_rad: float) -> Vector:
    c = math.cos(angle_rad)
    s = math.sin(angle_rad)
    return np.array([c * v[0] - s * v[1], s * v[0] + c * v[1]], dtype=float)


@dataclass(frozen=True, eq=False)
class Surface:
    """Finite oriented segment [p1, p2] with optical properties.

    index: refractive index of the medium beyond the surface.
    reflectance, absorption: fractions in [0, 1]; absorption == 1 is opaque.
    The normal is the tangent rotated by +90 degrees and is never flipped here.
    """

    p1: Vector
    p2: Vector
    index: float = 1.0
    reflectance: float = 0.0
    absorption: float = 0.0
    surface_id: str = "surface"
    dp: Vector = field(init=False, repr=False, compare=False)
    normal: Vector = field(init=False, repr=False, compare=False)
    length: float = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        p1 = frozen_vec(self.p1)
        p2 = frozen_vec(self.p2)
        dp = frozen_vec(p2 - p1)
        length = float(np.linalg.norm(dp))
        if not length > 0.0:
            raise ValueError(f"Surface '{self.surface_id}' has zero length")
        if not self.index > 0.0:
            raise ValueError(f"Surface '{self.surface_id}' index must be > 0, got {self.index}")
        for name in ("reflectance", "absorption"):
            value = float(getattr(self, name))
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"Surface '{self.surface_id}' {name} must lie in [0, 1], got {value}")
        # frozen dataclass: derived fields are set once here
        object.__setattr__(self, "p1", p1)
        object.__setattr__(self, "p2", p2)
        object.__setattr__(self, "dp", dp)
        object.__setattr__(self, "length", length)
        object.__setattr__(self, "normal", frozen_vec(perp(dp) / length))

    @property
    def opaque(self) -> bool:
        return self.absorption >= 1.0

    def point_at(self, s: float) -> Vector:
        return self.p1 + s * self.dp


def intersect_params(ray: "Ray", surface: Surface, eps: float = PARALLEL_EPS) -> Tuple[float, float]:
    """Return (t, s) for ray.p + t*ray.l == surface.p1 + s*surface.dp.

    Near-parallel pairs return (inf, inf) instead of dividing by ~0.
    """

    v1 = ray.p - surface.p1
    v2 = surface.dp
    v3 = perp(ray.l)
    denom = float(np.dot(v2, v3))
    if abs(denom) < eps:
        return math.inf, math.inf
    t = cross2(v2, v1) / denom
    s = float(np.dot(v1, v3)) / denom
    return t, s


def intersect(ray: "Ray", surface: Surface, eps: float = PARALLEL_EPS) -> float:
    """Ray parameter of the crossing with the finite segment, or inf."""

    t, s = intersect_params(ray, surface, eps=eps)
    if not math.isfinite(t):
        return math.inf
    if t >= 0.0 and 0.0 <= s <= 1.0:
        return t
    return math.inf


def facing_normal(surface: Surface, direction: Vector) -> Vector:
    """Surface normal oriented against the incoming direction (n . l <= 0)."""

    n = surface.normal
    if float(np.dot(n, direction)) > 0.0:
        return -n
    return n.copy()
