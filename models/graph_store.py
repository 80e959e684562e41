"""
Canonical mutable graph state.

GraphStore owns the nodes, connections and property bindings of the
document together with the viewport and the selection. Every mutation
goes through a named operation and is announced with a Qt signal once
the store is consistent again, so listeners never observe a partially
updated graph.
"""

import copy
import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from PyQt6.QtCore import QObject, pyqtSignal

from .graph import (
    Node, Connection, Binding, NodeKind, ConnectionKind,
    Position, Dimensions, Viewport, new_id,
)
from .node_config import Value

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GraphFrame:
    """Read-only copy of the store handed to the renderer once per frame."""
    nodes: tuple[Node, ...]
    connections: tuple[Connection, ...]
    viewport: Viewport
    selection: tuple[str, ...]


class GraphStore(QObject):
    """
    The single owner of the edited graph.

    Rejected routine mutations (self-loops, duplicate wires, bindings to
    missing nodes) return a failure indicator and emit nothing. Mutating
    a node id that does not exist raises KeyError.
    """

    # Signals
    nodeAdded = pyqtSignal(object)          # Node
    nodesRemoved = pyqtSignal(list)         # node ids
    nodeChanged = pyqtSignal(str)           # node_id
    connectionAdded = pyqtSignal(object)    # Connection
    connectionRemoved = pyqtSignal(str)     # connection_id
    selectionChanged = pyqtSignal()
    viewportChanged = pyqtSignal(object)    # Viewport
    graphReset = pyqtSignal()

    def __init__(self, zoom_min: float = 0.2, zoom_max: float = 3.0, parent=None):
        super().__init__(parent)
        self.zoom_min = zoom_min
        self.zoom_max = zoom_max
        self.nodes: dict[str, Node] = {}
        self.connections: dict[str, Connection] = {}
        self.viewport = Viewport()
        # Insertion ordered; the last key is the primary selection
        self._selection: dict[str, None] = {}

    # ---- Queries -----------------------------------------------------------

    def get_node(self, node_id: str) -> Optional[Node]:
        """Get a node by ID."""
        return self.nodes.get(node_id)

    def get_connection(self, connection_id: str) -> Optional[Connection]:
        """Get a connection by ID."""
        return self.connections.get(connection_id)

    def has_connection(self, source_id: str, target_id: str) -> bool:
        """Check for any connection on the ordered (source, target) pair."""
        return any(
            c.source_node_id == source_id and c.target_node_id == target_id
            for c in self.connections.values()
        )

    def incoming(self, node_id: str) -> list[Connection]:
        return [c for c in self.connections.values() if c.target_node_id == node_id]

    def outgoing(self, node_id: str) -> list[Connection]:
        return [c for c in self.connections.values() if c.source_node_id == node_id]

    def connections_for(self, node_id: str) -> list[Connection]:
        return [c for c in self.connections.values() if c.touches(node_id)]

    def new_node_id(self) -> str:
        node_id = new_id("n")
        while node_id in self.nodes:
            node_id = new_id("n")
        return node_id

    def new_connection_id(self) -> str:
        connection_id = new_id("c")
        while connection_id in self.connections:
            connection_id = new_id("c")
        return connection_id

    def _require_node(self, node_id: str) -> Node:
        node = self.nodes.get(node_id)
        if node is None:
            raise KeyError(f"Node not found: {node_id}")
        return node

    # ---- Nodes -------------------------------------------------------------

    def add_node(self, kind: NodeKind, position: Position, label: str = "") -> Node:
        """Create a node with a fresh id and the default config for its kind."""
        node = Node(
            id=self.new_node_id(),
            kind=kind,
            label=label,
            position=Position(position.x, position.y),
        )
        self.nodes[node.id] = node
        self.nodeAdded.emit(node)
        return node

    def insert_node(self, node: Node) -> Node:
        """Add a fully built node (paste, duplicate, load)."""
        if node.id in self.nodes:
            raise ValueError(f"Duplicate node id: {node.id}")
        self.nodes[node.id] = node
        self.nodeAdded.emit(node)
        return node

    def insert_nodes(self, nodes: Iterable[Node]) -> list[Node]:
        nodes = list(nodes)
        ids = [n.id for n in nodes]
        clash = [nid for nid in ids if nid in self.nodes]
        if clash or len(set(ids)) != len(ids):
            raise ValueError(f"Duplicate node id(s): {clash or ids}")
        for node in nodes:
            self.nodes[node.id] = node
        for node in nodes:
            self.nodeAdded.emit(node)
        return nodes

    def remove_nodes(self, node_ids: Iterable[str]) -> list[Node]:
        """
        Remove nodes together with every connection touching them and
        every binding that reads from them.

        Bindings on surviving nodes that referenced a removed node are
        dropped and their original value restored.
        """
        doomed = [nid for nid in dict.fromkeys(node_ids) if nid in self.nodes]
        if not doomed:
            return []
        doomed_set = set(doomed)

        removed_connections = [
            cid for cid, c in self.connections.items()
            if c.source_node_id in doomed_set or c.target_node_id in doomed_set
        ]
        for cid in removed_connections:
            del self.connections[cid]

        changed = []
        for node in self.nodes.values():
            if node.id in doomed_set:
                continue
            for key in [k for k, b in node.bound_props.items() if b.source_node_id in doomed_set]:
                self._drop_binding(node, key)
                if node.id not in changed:
                    changed.append(node.id)

        removed = [self.nodes.pop(nid) for nid in doomed]
        selection_changed = self._prune_selection()

        for cid in removed_connections:
            self.connectionRemoved.emit(cid)
        self.nodesRemoved.emit(doomed)
        for nid in changed:
            self.nodeChanged.emit(nid)
        if selection_changed:
            self.selectionChanged.emit()

        logger.debug(f"Removed {len(removed)} node(s), {len(removed_connections)} connection(s)")
        return removed

    def update_config(self, node_id: str, key: str, value: Value) -> bool:
        """
        Set a config value. Returns True if the stored value changed.

        Raises:
            KeyError: unknown node id or property key
            ValueError: value cannot be stored in the property's type
        """
        node = self._require_node(node_id)
        old = node.config.get_property(key)
        new = node.config.coerce(key, value)
        if old == new and type(old) is type(new):
            return False
        node.config.set_property(key, new)
        self.nodeChanged.emit(node_id)
        return True

    def set_label(self, node_id: str, label: str):
        node = self._require_node(node_id)
        if node.label != label:
            node.label = label
            self.nodeChanged.emit(node_id)

    def set_position(self, node_id: str, position: Position):
        node = self._require_node(node_id)
        if (node.position.x, node.position.y) == (position.x, position.y):
            return
        node.position.x = position.x
        node.position.y = position.y
        self.nodeChanged.emit(node_id)

    def set_dimensions(self, node_id: str, width: float, height: float,
                       position: Optional[Position] = None):
        """Resize a node, optionally moving its top-left corner."""
        node = self._require_node(node_id)
        if node.dimensions is None:
            node.dimensions = Dimensions(width, height)
        else:
            node.dimensions.width = width
            node.dimensions.height = height
        if position is not None:
            node.position.x = position.x
            node.position.y = position.y
        self.nodeChanged.emit(node_id)

    def toggle_collapsed(self, node_id: str) -> bool:
        """Flip the collapsed flag and return the new state."""
        node = self._require_node(node_id)
        node.collapsed = not node.collapsed
        self.nodeChanged.emit(node_id)
        return node.collapsed

    # ---- Connections -------------------------------------------------------

    def add_connection(self, connection: Connection) -> bool:
        """
        Insert a connection.

        Self-loops, unknown endpoints and a second connection on an
        existing (source, target) pair are rejected, whatever the kind.
        """
        source_id, target_id = connection.pair
        if source_id == target_id:
            logger.debug(f"Rejected self-loop on {source_id}")
            return False
        if source_id not in self.nodes or target_id not in self.nodes:
            logger.debug(f"Rejected connection with unknown endpoint: {source_id} -> {target_id}")
            return False
        if connection.id in self.connections:
            return False
        if self.has_connection(source_id, target_id):
            logger.debug(f"Rejected duplicate connection {source_id} -> {target_id}")
            return False

        self.connections[connection.id] = connection
        self.connectionAdded.emit(connection)
        return True

    def connect(self, source_id: str, target_id: str,
                kind: ConnectionKind = ConnectionKind.DIRECT) -> Optional[Connection]:
        """Create and insert a connection; None if rejected."""
        connection = Connection(
            id=self.new_connection_id(),
            source_node_id=source_id,
            target_node_id=target_id,
            kind=kind,
        )
        if not self.add_connection(connection):
            return None
        return connection

    def remove_connection(self, connection_id: str) -> Optional[Connection]:
        """
        Remove a connection.

        When a physical wire goes away while bindings still read across
        the same pair, a REMOTE connection takes its place.
        """
        connection = self.connections.pop(connection_id, None)
        if connection is None:
            return None

        replacement = None
        if connection.kind != ConnectionKind.REMOTE and self.bindings_from(*connection.pair):
            replacement = self._ensure_remote(*connection.pair)

        self.connectionRemoved.emit(connection_id)
        if replacement is not None:
            self.connectionAdded.emit(replacement)
        return connection

    # ---- Bindings ----------------------------------------------------------

    def bind_property(self, target_id: str, key: str, source_id: str, source_key: str) -> bool:
        """
        Mirror source.config[source_key] into target.config[key].

        A REMOTE connection visualizes the binding when the pair is not
        already wired. Re-binding a bound key replaces the binding but
        keeps the value captured by the first one.
        """
        target = self.nodes.get(target_id)
        source = self.nodes.get(source_id)
        if target is None or source is None:
            logger.debug(f"Rejected binding to missing node: {source_id} -> {target_id}")
            return False
        if target_id == source_id:
            logger.debug(f"Rejected binding of {target_id} onto itself")
            return False
        if not target.config.has_property(key) or not source.config.has_property(source_key):
            logger.debug(f"Rejected binding of unknown property {source_key} -> {key}")
            return False

        previous = target.bound_props.get(key)
        if previous is not None:
            original = previous.original_value
        else:
            original = target.config.get_property(key)
        target.bound_props[key] = Binding(source_id, source_key, original)

        removed = None
        if previous is not None and previous.source_node_id != source_id:
            removed = self._release_remote(target, previous.source_node_id)
        added = self._ensure_remote(source_id, target_id)

        if removed is not None:
            self.connectionRemoved.emit(removed.id)
        if added is not None:
            self.connectionAdded.emit(added)
        self.nodeChanged.emit(target_id)
        return True

    def unbind_property(self, target_id: str, key: str) -> bool:
        """Remove a binding, restoring the target's original value."""
        target = self.nodes.get(target_id)
        if target is None or key not in target.bound_props:
            return False
        binding = self._drop_binding(target, key)
        removed = self._release_remote(target, binding.source_node_id)
        if removed is not None:
            self.connectionRemoved.emit(removed.id)
        self.nodeChanged.emit(target_id)
        return True

    def bindings_from(self, source_id: str, target_id: Optional[str] = None) -> list[tuple[str, str]]:
        """List (target_id, key) of bindings reading from a source node."""
        result = []
        for node in self.nodes.values():
            if target_id is not None and node.id != target_id:
                continue
            for key, binding in node.bound_props.items():
                if binding.source_node_id == source_id:
                    result.append((node.id, key))
        return result

    def _drop_binding(self, target: Node, key: str) -> Binding:
        binding = target.bound_props.pop(key)
        if binding.original_value is not None:
            target.config.set_property(key, binding.original_value)
        return binding

    def _ensure_remote(self, source_id: str, target_id: str) -> Optional[Connection]:
        if self.has_connection(source_id, target_id):
            return None
        connection = Connection(
            id=self.new_connection_id(),
            source_node_id=source_id,
            target_node_id=target_id,
            kind=ConnectionKind.REMOTE,
        )
        self.connections[connection.id] = connection
        return connection

    def _release_remote(self, target: Node, source_id: str) -> Optional[Connection]:
        """Drop the REMOTE wire source -> target once no binding needs it."""
        if any(b.source_node_id == source_id for b in target.bound_props.values()):
            return None
        for cid, c in self.connections.items():
            if c.kind == ConnectionKind.REMOTE and c.pair == (source_id, target.id):
                return self.connections.pop(cid)
        return None

    # ---- Selection ---------------------------------------------------------

    @property
    def selection(self) -> list[str]:
        return list(self._selection)

    @property
    def primary_selection(self) -> Optional[str]:
        """The most recently selected node id."""
        if not self._selection:
            return None
        return next(reversed(self._selection))

    def is_selected(self, node_id: str) -> bool:
        return node_id in self._selection

    def set_selection(self, node_ids: Iterable[str]):
        selection = {nid: None for nid in node_ids if nid in self.nodes}
        if list(selection) == list(self._selection):
            return
        self._selection = selection
        self.selectionChanged.emit()

    def add_to_selection(self, node_id: str):
        if node_id in self.nodes:
            # Re-adding moves the id to the primary slot
            self._selection.pop(node_id, None)
            self._selection[node_id] = None
            self.selectionChanged.emit()

    def remove_from_selection(self, node_id: str):
        if node_id in self._selection:
            del self._selection[node_id]
            self.selectionChanged.emit()

    def clear_selection(self):
        if self._selection:
            self._selection.clear()
            self.selectionChanged.emit()

    def select_all(self):
        self.set_selection(self.nodes.keys())

    def _prune_selection(self) -> bool:
        stale = [nid for nid in self._selection if nid not in self.nodes]
        for nid in stale:
            del self._selection[nid]
        return bool(stale)

    # ---- Viewport ----------------------------------------------------------

    def set_viewport(self, viewport: Viewport):
        """Replace the viewport, clamping zoom to the configured range."""
        zoom = min(max(viewport.zoom, self.zoom_min), self.zoom_max)
        self.viewport = Viewport(viewport.x, viewport.y, zoom)
        self.viewportChanged.emit(self.viewport)

    # ---- Whole-document state ----------------------------------------------

    def snapshot(self) -> dict:
        """Plain-data copy of the document (nodes and connections only)."""
        return {
            "nodes": [node.to_dict() for node in self.nodes.values()],
            "connections": [c.to_dict() for c in self.connections.values()],
        }

    def restore(self, snapshot: dict):
        """Replace nodes and connections with a snapshot; clears selection."""
        nodes = [Node.from_dict(n) for n in snapshot.get("nodes", [])]
        connections = [Connection.from_dict(c) for c in snapshot.get("connections", [])]
        self.nodes = {n.id: n for n in nodes}
        self.connections = {c.id: c for c in connections}
        self._selection.clear()
        self.graphReset.emit()

    def clear(self):
        """Remove all nodes and connections."""
        self.restore({"nodes": [], "connections": []})

    def frame(self) -> GraphFrame:
        """Read-only snapshot for rendering."""
        return GraphFrame(
            nodes=tuple(copy.deepcopy(list(self.nodes.values()))),
            connections=tuple(copy.deepcopy(list(self.connections.values()))),
            viewport=Viewport(self.viewport.x, self.viewport.y, self.viewport.zoom),
            selection=tuple(self._selection),
        )
