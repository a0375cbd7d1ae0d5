"""Dependency graph over artifact ``blocked_by`` relationships."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field

from .events import is_direct_child
from .store import ArtifactRecord, ArtifactStore


@dataclass
class _GraphIndex:
    nodes: dict[str, ArtifactRecord] = field(default_factory=dict)
    reverse_edges: dict[str, set[str]] = field(
        default_factory=lambda: defaultdict(set)
    )  # artifact -> what it blocks
    order: list[str] = field(default_factory=list)


class DependencyGraphService:
    """
    Lookups over the artifact dependency graph.

    The index is built from the store on first use and kept until
    ``clear_cache()``; call it after the store was mutated outside this
    service.
    """

    def __init__(self, store: ArtifactStore):
        self.store = store
        self._index: _GraphIndex | None = None

    def clear_cache(self) -> None:
        self._index = None
        clear = getattr(self.store, "clear_cache", None)
        if callable(clear):
            clear()

    def _graph(self) -> _GraphIndex:
        if self._index is not None:
            return self._index

        index = _GraphIndex()
        for record in self.store.find_artifacts():
            index.nodes[record.id] = record
            index.order.append(record.id)

        for record in index.nodes.values():
            for dep in record.blocked_by:
                index.reverse_edges[dep].add(record.id)

        self._index = index
        return index

    def get(self, artifact_id: str) -> ArtifactRecord | None:
        return self._graph().nodes.get(artifact_id)

    def all_artifacts(self) -> list[ArtifactRecord]:
        graph = self._graph()
        return [graph.nodes[i] for i in graph.order]

    def get_dependencies(self, artifact_id: str) -> list[ArtifactRecord]:
        """Artifacts listed in ``artifact_id``'s blocked_by, in declared order."""
        graph = self._graph()
        record = graph.nodes.get(artifact_id)
        if record is None:
            return []
        return [graph.nodes[d] for d in record.blocked_by if d in graph.nodes]

    def get_blocked_artifacts(self, artifact_id: str) -> list[ArtifactRecord]:
        """Artifacts whose blocked_by lists ``artifact_id``, in store order."""
        graph = self._graph()
        dependents = graph.reverse_edges.get(artifact_id, set())
        return [graph.nodes[i] for i in graph.order if i in dependents]

    def get_children(self, artifact_id: str) -> list[ArtifactRecord]:
        """Direct structural children by id shape. Linear scan over all artifacts."""
        return [r for r in self.all_artifacts() if is_direct_child(artifact_id, r.id)]
