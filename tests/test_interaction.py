import math

import numpy as np
import pytest

from optics_core.geometry import Surface, intersect, rotate
from optics_core.interaction import Outcome, incidence_sine, interact, refract
from optics_core.rays import Ray


def _wall(**kwargs) -> Surface:
    props = {"index": 1.5}
    props.update(kwargs)
    return Surface(np.array([500.0, 600.0]), np.array([500.0, 700.0]), surface_id="wall", **props)


def _angle_to_normal(direction: np.ndarray, normal: np.ndarray) -> float:
    u = direction / np.linalg.norm(direction)
    n = normal / np.linalg.norm(normal)
    return float(np.arccos(np.clip(abs(np.dot(u, n)), 0.0, 1.0)))


def _hit(ray: Ray, surface: Surface):
    return interact(ray, surface, intersect(ray, surface))


def test_head_on_refraction_updates_medium_index():
    ray = Ray(np.array([200.0, 650.0]), np.array([1.0, 0.0]), medium_index=1.0)
    ev = _hit(ray, _wall())
    assert ev.outcome is Outcome.REFRACTED
    assert np.allclose(ev.point, [500.0, 650.0])
    assert ev.child is not None
    assert np.allclose(ev.child.p, [500.0, 650.0])
    assert np.allclose(ev.child.l, [1.0, 0.0])
    assert ev.child.medium_index == 1.5


def test_oblique_refraction_bends_toward_normal_and_obeys_snell():
    d = np.array([np.cos(np.deg2rad(30.0)), np.sin(np.deg2rad(30.0))])
    ray = Ray(np.array([400.0, 620.0]), d, medium_index=1.0)
    wall = _wall()
    ev = _hit(ray, wall)
    theta_i = _angle_to_normal(ray.l, wall.normal)
    theta_t = _angle_to_normal(ev.child.l, wall.normal)
    assert np.isclose(ev.incidence_angle, theta_i)
    assert theta_t < theta_i
    assert np.isclose(1.0 * np.sin(theta_i), 1.5 * np.sin(theta_t), atol=1e-9)
    # continues forward and keeps the tangential direction
    assert ev.child.l[0] > 0.0 and ev.child.l[1] > 0.0


def test_refraction_into_lower_index_bends_away_from_normal():
    d = np.array([np.cos(np.deg2rad(20.0)), -np.sin(np.deg2rad(20.0))])
    ray = Ray(np.array([200.0, 750.0]), d, medium_index=1.5)
    ev = _hit(ray, _wall(index=1.0))
    assert ev.outcome is Outcome.REFRACTED
    assert _angle_to_normal(ev.child.l, np.array([1.0, 0.0])) > np.deg2rad(20.0)
    assert ev.child.l[1] < 0.0


@pytest.mark.parametrize("angle_deg", [0.0, 25.0, -50.0, 80.0])
def test_absorbing_surface_terminates_at_any_angle(angle_deg):
    a = np.deg2rad(angle_deg)
    ray = Ray(np.array([200.0, 650.0]) - 300.0 * np.array([0.0, np.tan(a)]), np.array([np.cos(a), np.sin(a)]))
    ev = _hit(ray, _wall(absorption=1.0, reflectance=0.5))
    assert ev.outcome is Outcome.ABSORBED
    assert ev.terminal
    assert ev.child is None


def test_total_internal_reflection_reflect_policy():
    d = np.array([np.cos(np.deg2rad(60.0)), np.sin(np.deg2rad(60.0))])
    ray = Ray(np.array([450.0, 600.0]), d, medium_index=1.5, intensity=0.8)
    wall = _wall(index=1.0)
    ev = interact(ray, wall, intersect(ray, wall), tir_policy="reflect")
    assert ev.outcome is Outcome.REFLECTED
    assert np.allclose(ev.child.l, [-d[0], d[1]])
    assert ev.child.medium_index == 1.5
    assert ev.child.intensity <= ray.intensity


def test_total_internal_reflection_terminate_policy():
    d = np.array([np.cos(np.deg2rad(60.0)), np.sin(np.deg2rad(60.0))])
    ray = Ray(np.array([450.0, 600.0]), d, medium_index=1.5)
    wall = _wall(index=1.0)
    ev = interact(ray, wall, intersect(ray, wall), tir_policy="terminate")
    assert ev.outcome is Outcome.TIR
    assert ev.child is None


def test_unknown_tir_policy_rejected():
    ray = Ray(np.array([200.0, 650.0]), np.array([1.0, 0.0]))
    with pytest.raises(ValueError):
        interact(ray, _wall(), 300.0, tir_policy="bounce")


def test_grazing_refraction_counts_as_tir():
    d = np.array([np.cos(np.deg2rad(30.0)), np.sin(np.deg2rad(30.0))])
    normal = np.array([-1.0, 0.0])
    s = incidence_sine(d, normal)
    # n2 chosen so the refracted sine is exactly one
    assert refract(d, normal, 1.0, s) is None
    assert refract(d, normal, 1.0, s * 1.001) is not None


def test_intensity_never_increases():
    ray = Ray(np.array([200.0, 650.0]), np.array([1.0, 0.0]), intensity=0.7)
    for kwargs in ({}, {"reflectance": 0.3}, {"absorption": 0.4}, {"reflectance": 1.0}):
        ev = _hit(ray, _wall(**kwargs))
        assert ev.child.intensity <= ray.intensity
    assert np.isclose(_hit(ray, _wall(reflectance=0.3)).child.intensity, 0.7 * 0.7)


@pytest.mark.parametrize("phi_deg", [0.0, 37.0, 90.0, 181.0, 300.0])
def test_refraction_is_frame_independent(phi_deg):
    phi = np.deg2rad(phi_deg)
    d = np.array([np.cos(np.deg2rad(35.0)), np.sin(np.deg2rad(35.0))])
    base_ray = Ray(np.array([400.0, 610.0]), d)
    base = _hit(base_ray, _wall())

    wall = Surface(rotate(np.array([500.0, 600.0]), phi), rotate(np.array([500.0, 700.0]), phi), index=1.5)
    ray = Ray(rotate(base_ray.p, phi), rotate(d, phi))
    ev = _hit(ray, wall)
    assert np.allclose(ev.child.l, rotate(base.child.l, phi), atol=1e-9)
    assert np.allclose(ev.point, rotate(base.point, phi), atol=1e-6)


def test_child_direction_is_unit_length():
    rng = np.random.default_rng(3)
    wall = _wall()
    for _ in range(200):
        a = rng.uniform(-1.2, 1.2)
        ray = Ray(np.array([200.0, 650.0 - 300.0 * math.tan(a) * 0.1]), np.array([math.cos(a), math.sin(a)]), medium_index=rng.uniform(1.0, 2.0))
        t = intersect(ray, wall)
        if not math.isfinite(t):
            continue
        ev = interact(ray, wall, t)
        if ev.child is not None:
            assert abs(np.linalg.norm(ev.child.l) - 1.0) < 1e-5
