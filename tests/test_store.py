import logging

import numpy as np
import pytest

from analysis.tree_stats import trees_match
from optics_core.geometry import Surface
from optics_core.sources import BeamSource
from optics_core import store as store_module
from optics_core.store import TreeStore
from optics_core.tracer import TraceConfig


def _wall(x: float = 500.0, index: float = 1.5) -> Surface:
    return Surface(np.array([x, 0.0]), np.array([x, 1000.0]), index=index)


def _source(source_id: str, y: float) -> BeamSource:
    return BeamSource(source_id, np.array([100.0, y]), np.array([1.0, 0.0]), waist=20.0)


def _store(**kwargs) -> TreeStore:
    store = TreeStore([_wall()], **kwargs)
    store.source_changed(_source("a", 200.0))
    store.source_changed(_source("b", 500.0))
    return store


def test_new_source_gets_a_tree():
    store = _store()
    assert sorted(store.source_ids()) == ["a", "b"]
    assert store.tree("a").source_id == "a"
    assert len(store.segments("b")) == store.tree("b").ray_count


def test_source_change_rebuilds_only_that_source():
    store = _store()
    tree_a = store.tree("a")
    tree_b = store.tree("b")
    moved = store.scene.sources["b"].replace(position=np.array([100.0, 800.0]))
    store.source_changed(moved)
    assert store.tree("a") is tree_a
    assert store.tree("b") is not tree_b
    assert np.isclose(store.tree("b").chains[0].hit_points[0][1], 790.0)


def test_surface_change_rebuilds_every_tree():
    store = _store()
    before = store.trees()
    store.surfaces_changed([_wall(300.0, index=1.2)])
    after = store.trees()
    assert set(after) == {"a", "b"}
    for sid in after:
        assert after[sid] is not before[sid]
        assert np.isclose(after[sid].chains[0].hit_points[0][0], 300.0)
        assert after[sid].chains[0].branches[0].medium_index == 1.2


def test_removed_source_drops_its_tree():
    store = _store()
    store.remove_source("a")
    assert store.source_ids() == ["b"]
    with pytest.raises(KeyError):
        store.tree("a")


def test_unknown_source_raises_key_error():
    with pytest.raises(KeyError):
        TreeStore().tree("missing")


def test_parallel_rebuild_matches_sequential():
    store = TreeStore([_wall(), _wall(700.0, index=1.0)], max_workers=4)
    for i in range(6):
        store.source_changed(_source(f"s{i}", 100.0 + 120.0 * i))
    sequential = {sid: t for sid, t in store.trees().items()}
    rebuilt = store.rebuild_all()
    assert set(rebuilt) == set(sequential)
    for sid, tree in rebuilt.items():
        assert trees_match(tree, sequential[sid])
        assert store.tree(sid) is tree


def test_truncated_tree_is_logged(caplog):
    cavity = [
        Surface(np.array([0.0, 0.0]), np.array([1e5, 0.0]), index=0.5),
        Surface(np.array([0.0, 100.0]), np.array([1e5, 100.0]), index=0.5),
    ]
    store = TreeStore(cavity, config=TraceConfig(max_depth=4, rays_per_unit=1.0))
    src = BeamSource("trapped", np.array([10.0, 50.0]), np.array([1.0, 1.0]), waist=1.0)
    with caplog.at_level(logging.WARNING, logger="optics_core.store"):
        tree = store.source_changed(src)
    assert tree.truncated
    assert len(tree.chains[0].branches) == 4
    assert any("truncated" in rec.getMessage() for rec in caplog.records)


def test_store_tree_matches_stored_source_after_caller_edits_array():
    store = TreeStore([_wall()])
    pos = np.array([100.0, 200.0])
    src = BeamSource("a", pos, np.array([1.0, 0.0]), waist=1.0)
    store.source_changed(src)
    pos[1] = 800.0
    assert np.allclose(store.scene.sources["a"].position, [100.0, 200.0])
    assert np.isclose(store.tree("a").chains[0].hit_points[0][1], 200.0)


def test_stale_source_build_is_dropped(monkeypatch):
    store = TreeStore([_wall()])
    first = _source("a", 200.0)
    newer = _source("a", 700.0)
    real = store_module.build_tree
    nested = []

    def build_then_replace(source, scene, config):
        tree = real(source, scene, config)
        if not nested:
            nested.append(None)
            nested.append(store.source_changed(newer))
        return tree

    monkeypatch.setattr(store_module, "build_tree", build_then_replace)
    stale = store.source_changed(first)
    assert store.scene.sources["a"] is newer
    assert store.tree("a") is nested[1]
    assert store.tree("a") is not stale
    assert np.isclose(store.tree("a").chains[0].hit_points[0][1], 690.0)


def test_source_build_dropped_when_surfaces_change_meanwhile(monkeypatch):
    store = TreeStore([_wall()])
    real = store_module.build_tree
    rebuilt = []

    def build_then_move_wall(source, scene, config):
        tree = real(source, scene, config)
        if not rebuilt:
            rebuilt.append(None)
            rebuilt.append(store.surfaces_changed([_wall(300.0, index=1.2)]))
        return tree

    monkeypatch.setattr(store_module, "build_tree", build_then_move_wall)
    stale = store.source_changed(_source("a", 200.0))
    installed = store.tree("a")
    assert installed is not stale
    assert installed is rebuilt[1]["a"]
    assert np.isclose(installed.chains[0].hit_points[0][0], 300.0)
    assert np.isclose(stale.chains[0].hit_points[0][0], 500.0)
