"""Ray tree summaries and invariant checks."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Mapping

import numpy as np

from optics_core.tracer import RayTree


def chain_lengths(tree: RayTree) -> np.ndarray:
    return np.array([len(c.branches) for c in tree.chains], dtype=int)


def termination_counts(tree: RayTree) -> Dict[str, int]:
    out: Dict[str, int] = {}
    for chain in tree.chains:
        out[chain.termination.value] = out.get(chain.termination.value, 0) + 1
    return out


def tree_summary(tree: RayTree, include_escape: bool = False) -> Dict[str, Any]:
    """Counts, path lengths and final intensities of one tree.

    Escaped and truncated rays have no surface end, so their drawn length is
    left out of the path totals unless include_escape is set.
    """

    segs = tree.segments()
    geo = 0.0
    opl = 0.0
    for chain_idx, chain in enumerate(tree.chains):
        chain_segs = chain.segments(tree.escape_length, chain_index=chain_idx)
        if not include_escape:
            chain_segs = chain_segs[: len(chain.hit_points)]
        for seg in chain_segs:
            geo += seg.length
            opl += seg.length * seg.medium_index
    final_intensity = np.array([c.rays[-1].intensity for c in tree.chains], dtype=float)
    depth = chain_lengths(tree)
    return {
        "source_id": tree.source_id,
        "chains": len(tree.chains),
        "rays": tree.ray_count,
        "segments": len(segs),
        "max_depth": int(depth.max()) if depth.size else 0,
        "truncated": tree.truncated,
        "terminations": termination_counts(tree),
        "geometric_length": geo,
        "optical_path_length": opl,
        "final_intensity_min": float(final_intensity.min()) if final_intensity.size else float("nan"),
        "final_intensity_max": float(final_intensity.max()) if final_intensity.size else float("nan"),
    }


def check_energy_monotonic(tree: RayTree) -> List[str]:
    """Return one message per chain whose intensity ever increases."""

    problems: List[str] = []
    for i, chain in enumerate(tree.chains):
        vals = [r.intensity for r in chain.rays]
        for k in range(1, len(vals)):
            if vals[k] > vals[k - 1] + 1e-12:
                problems.append(f"{tree.source_id}: chain {i} intensity rises at depth {k} ({vals[k-1]:.6f}->{vals[k]:.6f})")
                break
    return problems


def check_unit_directions(tree: RayTree, tol: float = 1e-5) -> List[str]:
    problems: List[str] = []
    for i, chain in enumerate(tree.chains):
        for depth, ray in enumerate(chain.rays):
            norm = float(np.linalg.norm(ray.l))
            if abs(norm - 1.0) > tol:
                problems.append(f"{tree.source_id}: chain {i} depth {depth} |l|={norm:.8f}")
    return problems


def trees_match(a: RayTree, b: RayTree, atol: float = 1e-6) -> bool:
    """Geometric equality: same branch counts and hit points within atol."""

    if len(a.chains) != len(b.chains):
        return False
    for ca, cb in zip(a.chains, b.chains):
        if len(ca.branches) != len(cb.branches) or len(ca.hit_points) != len(cb.hit_points):
            return False
        if ca.termination is not cb.termination:
            return False
        for ha, hb in zip(ca.hit_points, cb.hit_points):
            if not np.allclose(ha, hb, atol=atol):
                return False
    return True


def save_stats_json(path: str, stats: Mapping[str, Any]) -> None:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(stats, f, indent=2)
