"""Dependency graph utilities."""

from __future__ import annotations

import heapq
from typing import TYPE_CHECKING

from stackwright.engine.errors import CyclicDependencyError

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping


class DependencyGraph:
    """A directed graph where nodes depend on other nodes.

    An edge ``a -> b`` in ``dependencies`` (``b`` listed under ``a``) means
    ``b`` must be created before ``a`` and destroyed after it.
    """

    def __init__(
        self,
        nodes: Iterable[str],
        dependencies: Mapping[str, Iterable[str]],
        priorities: Mapping[str, int] | None = None,
    ) -> None:
        self._nodes = list(dict.fromkeys(nodes))
        node_set = set(self._nodes)
        # Default tie-break is the order nodes were given in.
        self._priorities = {n: i for i, n in enumerate(self._nodes)}
        if priorities:
            self._priorities.update({n: p for n, p in priorities.items() if n in node_set})
        # node -> filtered deps within graph
        self._deps: dict[str, set[str]] = {}
        for node in self._nodes:
            deps = set(dependencies.get(node, []))
            self._deps[node] = {d for d in deps if d in node_set and d != node}

    def dependencies_of(self, node: str) -> set[str]:
        return set(self._deps[node])

    def dependents(self) -> dict[str, set[str]]:
        """Reverse adjacency: node -> nodes that depend on it."""
        out: dict[str, set[str]] = {n: set() for n in self._nodes}
        for node, deps in self._deps.items():
            for dep in deps:
                out[dep].add(node)
        return out

    def topological_order(self) -> list[str]:
        """Return deterministic topo order (priority, then name tie-break)."""
        indegree: dict[str, int] = {n: len(self._deps[n]) for n in self._nodes}
        dependents = self.dependents()

        ready: list[tuple[int, str]] = [
            (self._priorities[n], n) for n, deg in indegree.items() if deg == 0
        ]
        heapq.heapify(ready)

        order: list[str] = []
        while ready:
            _, node = heapq.heappop(ready)
            order.append(node)
            for child in sorted(dependents[node]):
                indegree[child] -= 1
                if indegree[child] == 0:
                    heapq.heappush(ready, (self._priorities[child], child))

        if len(order) != len(self._nodes):
            remaining = {n for n in self._nodes if n not in set(order)}
            raise CyclicDependencyError(self._find_cycle(remaining))

        return order

    def reverse_topological_order(self) -> list[str]:
        order = self.topological_order()
        order.reverse()
        return order

    def _find_cycle(self, candidates: set[str]) -> list[str]:
        """Walk dependency edges among *candidates* until a node repeats."""
        start = min(candidates, key=lambda n: self._priorities[n])
        path: list[str] = []
        position: dict[str, int] = {}
        node = start
        while node not in position:
            position[node] = len(path)
            path.append(node)
            # Every node left over by Kahn's algorithm has a dependency that
            # is also left over.
            node = min(
                (d for d in self._deps[node] if d in candidates),
                key=lambda n: self._priorities[n],
            )
        cycle = path[position[node] :]
        return [*cycle, node]
