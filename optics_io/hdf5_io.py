"""HDF5 schema for ray tree segment exports.

The schema stores multiple scenes, each with its surfaces and one tree per
source, flattened to drawable segments.

Structure:
    /
      meta                         (attrs: created_at, units, generator)
      scenes/{scene_id}/
          params_json              (scalar utf-8 JSON)
          surfaces/
              endpoints            (S,2,2)
              index                (S,)
              reflectance          (S,)
              absorption           (S,)
              surface_id           (S,) variable-length UTF-8
          trees/{source_id}/       (attrs: truncated, ray_count)
              segments/
                  start            (K,2)
                  end              (K,2)
                  medium_index     (K,)
                  wavelength       (K,)
                  intensity        (K,)
                  chain_index      (K,) int32
                  depth            (K,) int32
              chains/
                  termination      (C,) variable-length UTF-8

Example:
    >>> import numpy as np
    >>> from optics_core.geometry import Surface
    >>> from optics_core.scene import Scene
    >>> from optics_core.sources import BeamSource
    >>> from optics_core.tracer import build_tree
    >>> src = BeamSource("b0", np.zeros(2), np.array([1.0, 0.0]), waist=5.0)
    >>> scene = Scene.from_lists([Surface(np.array([3.0, -4.0]), np.array([3.0, 4.0]), index=1.5)], [src])
    >>> payload = {"demo": SceneData(params={}, scene=scene, trees={"b0": build_tree(src, scene)})}
    >>> save_trees_hdf5("/tmp/trees_example.h5", payload)
    >>> loaded, meta = load_trees_hdf5("/tmp/trees_example.h5")
    >>> list(loaded["demo"].trees)
    ['b0']
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
import json
from typing import Any, Dict, List, Mapping, Optional

import h5py
import numpy as np

from optics_core.scene import Scene
from optics_core.tracer import RayTree


@dataclass
class SceneData:
    params: Dict[str, Any]
    scene: Optional[Scene] = None
    trees: Dict[str, RayTree] = field(default_factory=dict)


@dataclass
class SegmentTable:
    """Flat segment arrays for one tree, as read back from disk."""

    start: np.ndarray
    end: np.ndarray
    medium_index: np.ndarray
    wavelength: np.ndarray
    intensity: np.ndarray
    chain_index: np.ndarray
    depth: np.ndarray
    terminations: List[str]
    truncated: bool
    ray_count: int

    def __len__(self) -> int:
        return int(self.start.shape[0])


@dataclass
class LoadedScene:
    params: Dict[str, Any]
    surfaces: Dict[str, np.ndarray]
    trees: Dict[str, SegmentTable]


@dataclass
class Hdf5Meta:
    created_at: str
    units: str
    generator: str


def _json_default(obj: Any) -> Any:
    if isinstance(obj, (np.integer, np.floating)):
        return obj.item()
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    raise TypeError(f"Unsupported JSON type: {type(obj)}")


def _decode(s: Any) -> str:
    return s.decode() if isinstance(s, bytes) else str(s)


def _write_strings(g: h5py.Group, name: str, values: List[str]) -> None:
    dset = g.create_dataset(name, shape=(len(values),), dtype=h5py.string_dtype(encoding="utf-8"))
    if values:
        dset[:] = values


def tree_to_table(tree: RayTree) -> SegmentTable:
    segs = tree.segments()
    return SegmentTable(
        start=np.array([s.start for s in segs], dtype=np.float64).reshape(-1, 2),
        end=np.array([s.end for s in segs], dtype=np.float64).reshape(-1, 2),
        medium_index=np.array([s.medium_index for s in segs], dtype=np.float64),
        wavelength=np.array([s.wavelength for s in segs], dtype=np.float64),
        intensity=np.array([s.intensity for s in segs], dtype=np.float64),
        chain_index=np.array([s.chain_index for s in segs], dtype=np.int32),
        depth=np.array([s.depth for s in segs], dtype=np.int32),
        terminations=[c.termination.value for c in tree.chains],
        truncated=tree.truncated,
        ray_count=tree.ray_count,
    )


def _write_surfaces(g: h5py.Group, scene: Optional[Scene]) -> None:
    surfaces = scene.surfaces if scene is not None else ()
    g.create_dataset("endpoints", data=np.array([[s.p1, s.p2] for s in surfaces], dtype=np.float64).reshape(-1, 2, 2))
    g.create_dataset("index", data=np.array([s.index for s in surfaces], dtype=np.float64))
    g.create_dataset("reflectance", data=np.array([s.reflectance for s in surfaces], dtype=np.float64))
    g.create_dataset("absorption", data=np.array([s.absorption for s in surfaces], dtype=np.float64))
    _write_strings(g, "surface_id", [s.surface_id for s in surfaces])


def save_trees_hdf5(
    filepath: str,
    scenes: Mapping[str, SceneData | Mapping[str, Any]],
    units: str = "scene",
    generator: str = "beams",
) -> None:
    """Save ray trees to HDF5 using a fixed schema contract."""

    with h5py.File(filepath, "w") as h5:
        meta = h5.create_group("meta")
        meta.attrs["created_at"] = datetime.now(timezone.utc).isoformat()
        meta.attrs["units"] = units
        meta.attrs["generator"] = generator

        g_scenes = h5.create_group("scenes")
        for scene_id, data in scenes.items():
            data_obj = data if isinstance(data, SceneData) else SceneData(params=dict(data["params"]), scene=data.get("scene"), trees=dict(data["trees"]))
            g_scene = g_scenes.create_group(str(scene_id))
            g_scene.create_dataset("params_json", data=json.dumps(data_obj.params, default=_json_default))
            _write_surfaces(g_scene.create_group("surfaces"), data_obj.scene)

            g_trees = g_scene.create_group("trees")
            for source_id, tree in data_obj.trees.items():
                table = tree_to_table(tree)
                g_tree = g_trees.create_group(str(source_id))
                g_tree.attrs["truncated"] = bool(table.truncated)
                g_tree.attrs["ray_count"] = int(table.ray_count)
                g_seg = g_tree.create_group("segments")
                g_seg.create_dataset("start", data=table.start)
                g_seg.create_dataset("end", data=table.end)
                g_seg.create_dataset("medium_index", data=table.medium_index)
                g_seg.create_dataset("wavelength", data=table.wavelength)
                g_seg.create_dataset("intensity", data=table.intensity)
                g_seg.create_dataset("chain_index", data=table.chain_index)
                g_seg.create_dataset("depth", data=table.depth)
                _write_strings(g_tree.create_group("chains"), "termination", table.terminations)


def load_trees_hdf5(filepath: str) -> tuple[Dict[str, LoadedScene], Hdf5Meta]:
    """Load tree exports back as flat segment tables."""

    out: Dict[str, LoadedScene] = {}
    with h5py.File(filepath, "r") as h5:
        meta = Hdf5Meta(
            created_at=str(h5["meta"].attrs.get("created_at", "")),
            units=str(h5["meta"].attrs.get("units", "scene")),
            generator=str(h5["meta"].attrs.get("generator", "")),
        )
        for scene_id, g_scene in h5["scenes"].items():
            params = json.loads(_decode(g_scene["params_json"][()]))
            g_surf = g_scene["surfaces"]
            surfaces = {
                "endpoints": np.asarray(g_surf["endpoints"][()], dtype=np.float64),
                "index": np.asarray(g_surf["index"][()], dtype=np.float64),
                "reflectance": np.asarray(g_surf["reflectance"][()], dtype=np.float64),
                "absorption": np.asarray(g_surf["absorption"][()], dtype=np.float64),
                "surface_id": np.asarray([_decode(s) for s in g_surf["surface_id"][()]], dtype=object),
            }
            trees: Dict[str, SegmentTable] = {}
            for source_id, g_tree in g_scene["trees"].items():
                g_seg = g_tree["segments"]
                trees[source_id] = SegmentTable(
                    start=np.asarray(g_seg["start"][()], dtype=np.float64),
                    end=np.asarray(g_seg["end"][()], dtype=np.float64),
                    medium_index=np.asarray(g_seg["medium_index"][()], dtype=np.float64),
                    wavelength=np.asarray(g_seg["wavelength"][()], dtype=np.float64),
                    intensity=np.asarray(g_seg["intensity"][()], dtype=np.float64),
                    chain_index=np.asarray(g_seg["chain_index"][()], dtype=np.int32),
                    depth=np.asarray(g_seg["depth"][()], dtype=np.int32),
                    terminations=[_decode(s) for s in g_tree["chains"]["termination"][()]],
                    truncated=bool(g_tree.attrs.get("truncated", False)),
                    ray_count=int(g_tree.attrs.get("ray_count", 0)),
                )
            out[scene_id] = LoadedScene(params=params, surfaces=surfaces, trees=trees)
    return out, meta
