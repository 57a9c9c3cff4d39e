"""Per-source ray tree store with change-driven invalidation.

A source change rebuilds only that source's tree; a surface-set change
rebuilds every tree. Trees are built against a Scene snapshot and swapped in
whole, so readers never see a mix of old and new chains for one source.

Example:
    >>> import numpy as np
    >>> from optics_core.geometry import Surface
    >>> from optics_core.sources import BeamSource
    >>> from optics_core.store import TreeStore
    >>> store = TreeStore([Surface(np.array([5.0, -1.0]), np.array([5.0, 1.0]), index=1.5)])
    >>> tree = store.source_changed(BeamSource("b0", np.zeros(2), np.array([1.0, 0.0])))
    >>> store.source_ids()
    ['b0']
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
import logging
import threading
from typing import Dict, Iterable, List, Optional

from optics_core.geometry import Surface
from optics_core.scene import Scene
from optics_core.sources import BeamSource
from optics_core.tracer import RayTree, Segment, TraceConfig, build_tree

logger = logging.getLogger(__name__)


class TreeStore:
    """Ray trees keyed by source id, rebuilt on scene change notifications."""

    def __init__(
        self,
        surfaces: Iterable[Surface] = (),
        config: Optional[TraceConfig] = None,
        max_workers: Optional[int] = None,
    ) -> None:
        self.config = config or TraceConfig()
        self.max_workers = max_workers
        self._scene = Scene(tuple(surfaces))
        self._trees: Dict[str, RayTree] = {}
        self._lock = threading.Lock()
        # serializes scene mutations against in-flight rebuilds
        self._barrier = threading.RLock()

    @property
    def scene(self) -> Scene:
        return self._scene

    def source_ids(self) -> List[str]:
        return list(self._scene.sources)

    def tree(self, source_id: str) -> RayTree:
        with self._lock:
            return self._trees[source_id]

    def trees(self) -> Dict[str, RayTree]:
        with self._lock:
            return dict(self._trees)

    def segments(self, source_id: str) -> List[Segment]:
        return self.tree(source_id).segments()

    def _install(self, tree: RayTree) -> None:
        with self._lock:
            self._trees[tree.source_id] = tree
        if tree.truncated:
            n = sum(1 for c in tree.chains if c.truncated)
            logger.warning("tree '%s' truncated at max_depth=%d in %d chain(s)", tree.source_id, self.config.max_depth, n)

    def source_changed(self, source: BeamSource) -> RayTree:
        """New source or parameter change: rebuild that source only."""

        with self._barrier:
            self._scene = self._scene.with_source(source)
            snapshot = self._scene
        logger.debug("rebuilding tree for source '%s'", source.source_id)
        tree = build_tree(source, snapshot, self.config)
        with self._barrier:
            # a newer source or surface change may have landed meanwhile
            current = self._scene
            if current.sources.get(source.source_id) is source and current.surfaces is snapshot.surfaces:
                self._install(tree)
        return tree

    def remove_source(self, source_id: str) -> None:
        """Drop a source together with its tree."""

        with self._barrier:
            self._scene = self._scene.without_source(source_id)
            with self._lock:
                self._trees.pop(source_id, None)
        logger.debug("removed source '%s'", source_id)

    def surfaces_changed(self, surfaces: Iterable[Surface]) -> Dict[str, RayTree]:
        """Replace the surface set; every tree is invalidated and rebuilt."""

        with self._barrier:
            self._scene = self._scene.with_surfaces(surfaces)
            logger.info("surface set changed (%d surfaces), rebuilding %d tree(s)", len(self._scene.surfaces), len(self._scene.sources))
            return self.rebuild_all()

    def rebuild_all(self, max_workers: Optional[int] = None) -> Dict[str, RayTree]:
        """Rebuild all trees in parallel against one scene snapshot.

        Runs sequentially with a single worker or a single source.
        """

        with self._barrier:
            snapshot = self._scene
            sources = list(snapshot.sources.values())
            workers = max_workers or self.max_workers
            if workers == 1 or len(sources) <= 1:
                built = [build_tree(src, snapshot, self.config) for src in sources]
            else:
                with ThreadPoolExecutor(max_workers=workers) as pool:
                    built = list(pool.map(lambda src: build_tree(src, snapshot, self.config), sources))
            for tree in built:
                self._install(tree)
            return {t.source_id: t for t in built}
