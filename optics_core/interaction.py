"""Surface interaction: absorption, 2D Snell refraction and total internal reflection.

Example:
    >>> import numpy as np
    >>> from optics_core.geometry import Surface
    >>> from optics_core.interaction import Outcome, interact
    >>> from optics_core.rays import Ray
    >>> wall = Surface(np.array([500.0, 600.0]), np.array([500.0, 700.0]), index=1.5)
    >>> ev = interact(Ray(np.array([200.0, 650.0]), np.array([1.0, 0.0])), wall, 300.0)
    >>> ev.outcome is Outcome.REFRACTED, ev.child.medium_index
    (True, 1.5)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import math
from typing import Optional

import numpy as np
from numpy.typing import NDArray

from optics_core.geometry import Surface, cross2, facing_normal, perp, rotate
from optics_core.rays import Ray, reflect

Vector = NDArray[np.float64]

TIR_POLICIES = ("reflect", "terminate")


class Outcome(str, Enum):
    REFRACTED = "refracted"
    REFLECTED = "reflected"  # total internal reflection, "reflect" policy
    ABSORBED = "absorbed"
    TIR = "tir"  # total internal reflection, "terminate" policy


@dataclass
class Interaction:
    point: Vector
    normal: Vector
    outcome: Outcome
    incidence_angle: float
    child: Optional[Ray] = None

    @property
    def terminal(self) -> bool:
        return self.child is None


def incidence_sine(direction: Vector, normal: Vector) -> float:
    """|sin| of the angle between the incoming direction and the normal."""

    return float(min(1.0, abs(np.dot(perp(normal), direction))))


def refract(direction: Vector, normal: Vector, n1: float, n2: float) -> Optional[Vector]:
    """Refracted unit direction, or None on total internal reflection.

    normal must face the incoming ray. The transmitted direction is the
    reversed normal rotated by the refraction angle toward the side the
    incoming ray leans to, so the result does not depend on the frame.
    Grazing output (|sin| == 1) counts as total internal reflection.
    """

    sin_t = incidence_sine(direction, normal) * (n1 / n2)
    if sin_t >= 1.0:
        return None
    inward = -normal
    side = cross2(inward, direction)
    angle = math.asin(sin_t)
    if side < 0.0:
        angle = -angle
    out = rotate(inward, angle)
    return out / np.linalg.norm(out)


def interact(ray: Ray, surface: Surface, t: float, tir_policy: str = "reflect") -> Interaction:
    """Resolve the hit of `ray` on `surface` at ray parameter `t`."""

    if tir_policy not in TIR_POLICIES:
        raise ValueError(f"tir_policy must be one of {TIR_POLICIES}, got '{tir_policy}'")

    hit = ray.at(t)
    n = facing_normal(surface, ray.l)
    theta_i = math.asin(incidence_sine(ray.l, n))

    if surface.opaque:
        return Interaction(hit, n, Outcome.ABSORBED, theta_i)

    intensity = ray.intensity * (1.0 - surface.reflectance) * (1.0 - surface.absorption)
    direction = refract(ray.l, n, ray.medium_index, surface.index)
    if direction is not None:
        child = ray.spawn(hit, direction, medium_index=surface.index, intensity=intensity)
        return Interaction(hit, n, Outcome.REFRACTED, theta_i, child)

    if tir_policy == "terminate":
        return Interaction(hit, n, Outcome.TIR, theta_i)
    # nothing is transmitted: the reflected ray stays in the incident medium
    reflected = reflect(ray.l, n)
    child = ray.spawn(hit, reflected, medium_index=ray.medium_index, intensity=ray.intensity * (1.0 - surface.absorption))
    return Interaction(hit, n, Outcome.REFLECTED, theta_i, child)
