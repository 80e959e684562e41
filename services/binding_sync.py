"""
Property binding reconciliation.

Bindings mirror one node's config value into another node's config. The
synchronizer resolves them to a fixed point after each command: bindings
are applied in dependency order, repeated until a pass changes nothing,
and bounded by a pass cap. Bindings that take part in a cycle are
reported and left untouched.
"""

import logging
from collections import deque
from dataclasses import dataclass, field

from models.graph_store import GraphStore
from models.node_config import Value

logger = logging.getLogger(__name__)

# A property of a node: (node_id, key)
PropRef = tuple[str, str]

# DFS colours
_WHITE, _GRAY, _BLACK = 0, 1, 2


def coerce_bound_value(value: Value, percentage: bool) -> Value:
    """
    Translate a source value for a bound target property.

    Booleans become 100/0 for percentage targets and 1/0 otherwise;
    fractions in [0, 1] are scaled to percent for percentage targets.
    Everything else passes through. The store then coerces the result to
    the target field's declared type.
    """
    if isinstance(value, bool):
        if percentage:
            return 100 if value else 0
        return 1 if value else 0
    if isinstance(value, (int, float)) and percentage and 0 <= value <= 1:
        return value * 100
    return value


@dataclass
class SyncReport:
    """Outcome of one reconciliation run."""
    updated: list[PropRef] = field(default_factory=list)
    skipped: list[PropRef] = field(default_factory=list)
    cycles: list[list[PropRef]] = field(default_factory=list)
    passes: int = 0
    converged: bool = True

    @property
    def changed(self) -> bool:
        return bool(self.updated)


def binding_edges(store: GraphStore) -> list[tuple[PropRef, PropRef]]:
    """All (source property, target property) edges of the binding graph."""
    edges = []
    for node in store.nodes.values():
        for key, binding in node.bound_props.items():
            edges.append(((binding.source_node_id, binding.source_key), (node.id, key)))
    return edges


def _adjacency(edges: list[tuple[PropRef, PropRef]]) -> dict[PropRef, list[PropRef]]:
    graph: dict[PropRef, list[PropRef]] = {}
    for source, target in edges:
        graph.setdefault(source, []).append(target)
        graph.setdefault(target, [])
    return graph


def find_cycles(graph: dict[PropRef, list[PropRef]]) -> list[list[PropRef]]:
    """
    Cycles found by an iterative three-colour DFS, one per back edge.

    Each cycle is listed in edge order starting at the vertex the back
    edge returns to.
    """
    colour = {v: _WHITE for v in graph}
    cycles = []
    for root in graph:
        if colour[root] != _WHITE:
            continue
        colour[root] = _GRAY
        path = [root]
        stack = [iter(graph[root])]
        while stack:
            advanced = False
            for nxt in stack[-1]:
                if colour[nxt] == _WHITE:
                    colour[nxt] = _GRAY
                    path.append(nxt)
                    stack.append(iter(graph[nxt]))
                    advanced = True
                    break
                if colour[nxt] == _GRAY:
                    cycles.append(path[path.index(nxt):])
            if not advanced:
                colour[path.pop()] = _BLACK
                stack.pop()
    return cycles


def cyclic_vertices(graph: dict[PropRef, list[PropRef]]) -> set[PropRef]:
    """Vertices that can reach themselves."""
    result = set()
    for start in graph:
        visited = set()
        pending = list(graph[start])
        while pending:
            v = pending.pop()
            if v == start:
                result.add(start)
                break
            if v in visited:
                continue
            visited.add(v)
            pending.extend(graph[v])
    return result


def topological_order(graph: dict[PropRef, list[PropRef]]) -> list[PropRef]:
    """Kahn ordering; vertices left on a cycle are omitted."""
    indegree = {v: 0 for v in graph}
    for targets in graph.values():
        for t in targets:
            indegree[t] += 1
    queue = deque(v for v, d in indegree.items() if d == 0)
    order = []
    while queue:
        v = queue.popleft()
        order.append(v)
        for t in graph[v]:
            indegree[t] -= 1
            if indegree[t] == 0:
                queue.append(t)
    return order


class PropertyBindingSynchronizer:
    """Bounded fixed-point resolver for property bindings."""

    def __init__(self, max_passes: int = 8):
        self.max_passes = max(1, max_passes)

    def reconcile(self, store: GraphStore) -> SyncReport:
        """
        Write every bound source value into its target property.

        Values are only written when they differ, so a second call on an
        unchanged store updates nothing.
        """
        report = SyncReport()
        edges = binding_edges(store)
        if not edges:
            return report

        graph = _adjacency(edges)
        report.cycles = find_cycles(graph)
        cyclic = cyclic_vertices(graph)
        if cyclic:
            logger.warning(f"Binding cycle detected, skipping: "
                           f"{sorted(cyclic)}")
            report.skipped.extend(sorted(cyclic))

        # Edges into cyclic targets are dropped, which leaves a DAG
        acyclic = _adjacency([(s, t) for s, t in edges if t not in cyclic])
        incoming = {t: s for s, t in edges if t not in cyclic}
        order = [v for v in topological_order(acyclic) if v in incoming]

        report.converged = False
        for _ in range(self.max_passes):
            report.passes += 1
            changed = False
            for target in order:
                if target in report.skipped:
                    continue
                if self._apply(store, incoming[target], target, report):
                    changed = True
            if not changed:
                report.converged = True
                break

        if not report.converged:
            logger.warning(f"Binding reconciliation did not settle after {report.passes} passes")
        elif report.updated:
            logger.debug(f"Reconciled {len(report.updated)} bound properties "
                         f"in {report.passes} passes")
        return report

    def _apply(self, store: GraphStore, source: PropRef, target: PropRef,
               report: SyncReport) -> bool:
        source_id, source_key = source
        target_id, key = target
        source_node = store.get_node(source_id)
        target_node = store.get_node(target_id)
        if source_node is None or target_node is None:
            logger.warning(f"Skipping binding {source} -> {target}: node missing")
            report.skipped.append(target)
            return False

        try:
            raw = source_node.config.get_property(source_key)
            value = coerce_bound_value(raw, target_node.config.is_percentage(key))
            changed = store.update_config(target_id, key, value)
        except (KeyError, ValueError) as e:
            logger.warning(f"Skipping binding {source} -> {target}: {e}")
            report.skipped.append(target)
            return False

        if changed and target not in report.updated:
            report.updated.append(target)
        return changed
