"""Immutable scene snapshot: ordered surfaces plus active sources keyed by id."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping, Tuple

from optics_core.geometry import Surface
from optics_core.sources import BeamSource


@dataclass(frozen=True, eq=False)
class Scene:
    surfaces: Tuple[Surface, ...] = ()
    sources: Mapping[str, BeamSource] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "surfaces", tuple(self.surfaces))
        object.__setattr__(self, "sources", MappingProxyType(dict(self.sources)))

    @classmethod
    def from_lists(cls, surfaces: Iterable[Surface], sources: Iterable[BeamSource] = ()) -> "Scene":
        by_id = {}
        for src in sources:
            if src.source_id in by_id:
                raise ValueError(f"Duplicate source id '{src.source_id}'")
            by_id[src.source_id] = src
        return cls(tuple(surfaces), by_id)

    def with_surfaces(self, surfaces: Iterable[Surface]) -> "Scene":
        return Scene(tuple(surfaces), self.sources)

    def with_source(self, source: BeamSource) -> "Scene":
        sources = dict(self.sources)
        sources[source.source_id] = source
        return Scene(self.surfaces, sources)

    def without_source(self, source_id: str) -> "Scene":
        sources = dict(self.sources)
        del sources[source_id]
        return Scene(self.surfaces, sources)
