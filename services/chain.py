"""
Chain traversal and node colouring.

Both walk the connection graph, which may contain cycles, with an
explicit visited set.
"""

from collections import deque
from dataclasses import dataclass, field
from typing import Optional, Sequence

from models.graph import NodeKind
from models.graph_store import GraphStore


@dataclass
class ChainHighlight:
    """Nodes and connections reachable from the primary selection."""
    node_ids: set[str] = field(default_factory=set)
    connection_ids: set[str] = field(default_factory=set)

    def __bool__(self) -> bool:
        return bool(self.node_ids)


def active_chain(store: GraphStore, primary_id: Optional[str] = None) -> ChainHighlight:
    """
    Collect everything connected to a node, upstream and downstream.

    Defaults to the store's primary selection. Returns an empty highlight
    when nothing is selected.
    """
    start = primary_id if primary_id is not None else store.primary_selection
    result = ChainHighlight()
    if start is None or start not in store.nodes:
        return result

    result.node_ids.add(start)
    for upstream in (True, False):
        visited = {start}
        stack = [start]
        while stack:
            current = stack.pop()
            edges = store.incoming(current) if upstream else store.outgoing(current)
            for conn in edges:
                result.connection_ids.add(conn.id)
                neighbour = conn.source_node_id if upstream else conn.target_node_id
                if neighbour not in visited:
                    visited.add(neighbour)
                    result.node_ids.add(neighbour)
                    stack.append(neighbour)
    return result


def node_colors(store: GraphStore, palette: Sequence[str],
                root_kind: NodeKind = NodeKind.PICKER) -> dict[str, str]:
    """
    Assign each root a palette colour and flood it downstream.

    Roots take colours in node order, cycling through the palette. A node
    reached from several roots keeps the colour of the first one.
    """
    colors: dict[str, str] = {}
    if not palette:
        return colors

    roots = [n for n in store.nodes.values() if n.kind == root_kind]
    for index, root in enumerate(roots):
        color = palette[index % len(palette)]
        if root.id in colors:
            continue
        colors[root.id] = color
        queue = deque([root.id])
        visited = {root.id}
        while queue:
            current = queue.popleft()
            for conn in store.outgoing(current):
                target = conn.target_node_id
                if target in visited:
                    continue
                visited.add(target)
                colors.setdefault(target, color)
                queue.append(target)
    return colors
