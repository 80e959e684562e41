"""
Graph editor command layer.

GraphEditor is the single entry point the UI uses to change the document.
Each command mutates the store, reconciles property bindings and, when the
command completes an edit, records a history entry.
"""

import copy
import logging
from pathlib import Path
from typing import Iterable, Optional

from PyQt6.QtCore import QPointF

from models.graph import (
    Node, Connection, NodeKind, ConnectionKind, PortDirection, Position, Viewport,
)
from models.graph_store import GraphStore, GraphFrame
from models.node_config import Value
from services.settings_manager import EditorSettings
from services.history import HistoryManager
from services.binding_sync import PropertyBindingSynchronizer, SyncReport
from services.connection_router import ConnectionRouter, WirePath
from services.chain import ChainHighlight, active_chain, node_colors
from services.project_manager import ProjectManager, clipboard_payload
from services import geometry

logger = logging.getLogger(__name__)


# World-unit offsets used when placing derived nodes
DUPLICATE_OFFSET = 50.0
PICKER_STAGGER = 50.0
CONNECTED_NODE_OFFSET = 300.0
PASTE_OFFSET = 100.0
COPY_SUFFIX = " (Copy)"


class GraphEditor:
    """
    Command API over a GraphStore.

    Owns the store, the undo history, the binding synchronizer, the
    clipboard and the teleport buffer. The editor is not a QObject;
    listeners subscribe to the store's signals.
    """

    def __init__(self, settings: Optional[EditorSettings] = None,
                 store: Optional[GraphStore] = None):
        self.settings = settings or EditorSettings()
        canvas = self.settings.canvas
        self.store = store or GraphStore(canvas.zoom_min, canvas.zoom_max)
        self.synchronizer = PropertyBindingSynchronizer(self.settings.sync.max_passes)
        self.router = ConnectionRouter(self.settings.node, self.settings.wire)
        self.project = ProjectManager()

        self.screen_width = canvas.screen_width
        self.screen_height = canvas.screen_height

        self._clipboard: list[dict] = []
        self._clipboard_connections: list[dict] = []
        self._teleport: Optional[tuple[str, str]] = None

        # Entry 0 must already be reconciled
        self.last_sync: SyncReport = self.synchronizer.reconcile(self.store)
        self.history = HistoryManager(self.store, self.settings.history.max_entries)

    # ---- Internal ----------------------------------------------------------

    def _settle(self, commit: bool = True) -> SyncReport:
        """Reconcile bindings, then record an undo step if requested."""
        self.last_sync = self.synchronizer.reconcile(self.store)
        if commit:
            self.history.commit()
        return self.last_sync

    def screen_to_world(self, sx: float, sy: float) -> QPointF:
        return geometry.screen_to_world(self.store.viewport, sx, sy)

    def screen_center_world(self) -> QPointF:
        return self.screen_to_world(self.screen_width / 2, self.screen_height / 2)

    # ---- Nodes -------------------------------------------------------------

    def add_node(self, kind: NodeKind, position: Optional[Position] = None,
                 label: Optional[str] = None) -> Node:
        """
        Add a node of the given kind.

        Without a position the node is centred on the visible area.
        """
        if position is None:
            center = self.screen_center_world()
            layout = self.settings.node
            position = Position(center.x() - layout.width / 2,
                                center.y() - layout.default_height / 2)
        node = self.store.add_node(kind, position, label or "")
        logger.debug(f"Added {kind.name} node {node.id}")
        self._settle()
        return node

    def add_nodes(self, counts: dict[NodeKind, int]) -> list[Node]:
        """Batch-add nodes, staggered diagonally from the top-left of the view."""
        start = self.screen_to_world(100, 100)
        added = []
        for kind, count in counts.items():
            for _ in range(count):
                offset = len(added) * PICKER_STAGGER
                added.append(self.store.add_node(
                    kind, Position(start.x() + offset, start.y() + offset)))
        if added:
            self._settle()
        return added

    def add_connected_node(self, node_id: str, direction: PortDirection,
                           kind: NodeKind) -> Optional[Node]:
        """
        Create a node next to a port and wire it in.

        From an output the new node goes to the right and must have an
        input; from an input it goes to the left and must have an output.
        """
        anchor = self.store.get_node(node_id)
        if anchor is None or not anchor.has_port(direction):
            return None

        probe = Node(kind=kind)
        if direction == PortDirection.OUTPUT:
            if not probe.has_input:
                return None
            x = anchor.position.x + CONNECTED_NODE_OFFSET
        else:
            if not probe.has_output:
                return None
            x = anchor.position.x - CONNECTED_NODE_OFFSET

        node = self.store.add_node(kind, Position(x, anchor.position.y))
        if direction == PortDirection.OUTPUT:
            self.store.connect(anchor.id, node.id, ConnectionKind.DIRECT)
        else:
            self.store.connect(node.id, anchor.id, ConnectionKind.DIRECT)
        self._settle()
        return node

    def remove_nodes(self, node_ids: Iterable[str]) -> list[Node]:
        removed = self.store.remove_nodes(node_ids)
        if removed:
            if self._teleport and self._teleport[0] not in self.store.nodes:
                self._teleport = None
            self._settle()
        return removed

    def remove_selected(self) -> list[Node]:
        return self.remove_nodes(self.store.selection)

    def set_label(self, node_id: str, label: str):
        self.store.set_label(node_id, label)
        self._settle()

    def toggle_collapsed(self, node_id: str) -> bool:
        collapsed = self.store.toggle_collapsed(node_id)
        self._settle()
        return collapsed

    def update_config(self, node_id: str, key: str, value: Value,
                      commit: bool = False) -> bool:
        """
        Edit a config value.

        Continuous edits (slider drags, typing) leave commit False and the
        caller finishes with commit_edit().
        """
        changed = self.store.update_config(node_id, key, value)
        self._settle(commit)
        return changed

    def commit_edit(self) -> bool:
        """Close an edit: reconcile and record an undo step if anything changed."""
        self.last_sync = self.synchronizer.reconcile(self.store)
        return self.history.commit()

    def duplicate_nodes(self, node_ids: Iterable[str], commit: bool = True) -> list[Node]:
        """
        Copy nodes next to the originals.

        Duplicates keep their bindings and receive a copy of every
        connection that feeds the original. The duplicates become the
        selection.
        """
        originals = [self.store.get_node(nid) for nid in node_ids]
        originals = [n for n in originals if n is not None]
        if not originals:
            return []

        clones = []
        id_map = {}
        for node in originals:
            data = node.to_dict()
            data["id"] = self.store.new_node_id()
            data["label"] = node.label + COPY_SUFFIX
            data["position"] = {"x": node.position.x + DUPLICATE_OFFSET,
                                "y": node.position.y + DUPLICATE_OFFSET}
            clone = Node.from_dict(data)
            id_map[node.id] = clone.id
            clones.append(clone)
        self.store.insert_nodes(clones)

        for node in originals:
            for conn in self.store.incoming(node.id):
                self.store.add_connection(Connection(
                    id=self.store.new_connection_id(),
                    source_node_id=conn.source_node_id,
                    target_node_id=id_map[node.id],
                    kind=conn.kind,
                ))

        self.store.set_selection(id_map.values())
        self._settle(commit)
        return clones

    def clone_node(self, source_id: str, position: Optional[Position] = None,
                   commit: bool = True) -> Optional[Node]:
        """Create a CLONE instance of a node, wired from its output."""
        source = self.store.get_node(source_id)
        if source is None or not source.has_output:
            return None
        if position is None:
            position = Position(source.position.x + CONNECTED_NODE_OFFSET, source.position.y)

        clone = self.store.add_node(NodeKind.CLONE, position)
        self.store.update_config(clone.id, "source_id", source_id)
        self.store.connect(source_id, clone.id, ConnectionKind.DIRECT)
        self.store.set_selection([clone.id])
        self._settle(commit)
        return clone

    # ---- Connections -------------------------------------------------------

    def connect(self, source_id: str, target_id: str,
                kind: ConnectionKind = ConnectionKind.DIRECT) -> Optional[Connection]:
        """
        Wire source output to target input.

        Returns the new connection, or None when rejected (self-loop,
        duplicate pair, missing node or a node without the needed port).
        REMOTE connections are not attached to ports.
        """
        source = self.store.get_node(source_id)
        target = self.store.get_node(target_id)
        if source is None or target is None:
            return None
        if kind != ConnectionKind.REMOTE and not (source.has_output and target.has_input):
            logger.debug(f"Rejected connection {source_id} -> {target_id}: incompatible ports")
            return None

        connection = self.store.connect(source_id, target_id, kind)
        if connection is not None:
            self._settle()
        return connection

    def disconnect(self, connection_id: str) -> bool:
        """Remove a connection; a REMOTE one takes its bindings with it."""
        connection = self.store.get_connection(connection_id)
        if connection is None:
            return False

        if connection.kind == ConnectionKind.REMOTE:
            for target_id, key in self.store.bindings_from(connection.source_node_id,
                                                           connection.target_node_id):
                self.store.unbind_property(target_id, key)
        # Unbinding may already have released it
        self.store.remove_connection(connection_id)
        self._settle()
        return True

    def connections_at_port(self, node_id: str, direction: PortDirection) -> list[Connection]:
        """Wires attached to a port (REMOTE bindings are not port wires)."""
        if direction == PortDirection.OUTPUT:
            wires = self.store.outgoing(node_id)
        else:
            wires = self.store.incoming(node_id)
        return [c for c in wires if c.kind != ConnectionKind.REMOTE]

    def disconnect_port(self, node_id: str, direction: PortDirection) -> int:
        """Remove every wire on a port. Returns the number removed."""
        wires = self.connections_at_port(node_id, direction)
        for conn in wires:
            self.store.remove_connection(conn.id)
        if wires:
            self._settle()
        return len(wires)

    # ---- Bindings ----------------------------------------------------------

    def bind_property(self, target_id: str, key: str, source_id: str, source_key: str) -> bool:
        if not self.store.bind_property(target_id, key, source_id, source_key):
            return False
        logger.debug(f"Bound {target_id}.{key} <- {source_id}.{source_key}")
        self._settle()
        return True

    def unbind_property(self, target_id: str, key: str) -> bool:
        if not self.store.unbind_property(target_id, key):
            return False
        self._settle()
        return True

    @property
    def teleport_source(self) -> Optional[tuple[str, str]]:
        """The (node_id, key) waiting to be received, if any."""
        return self._teleport

    def begin_teleport(self, node_id: str, key: str) -> bool:
        """Remember a property to send to the next receiving node."""
        node = self.store.get_node(node_id)
        if node is None or not node.config.has_property(key):
            return False
        self._teleport = (node_id, key)
        return True

    def complete_teleport(self, node_id: str, key: str) -> bool:
        """Bind node_id.key to the remembered property."""
        if self._teleport is None:
            return False
        source_id, source_key = self._teleport
        if not self.bind_property(node_id, key, source_id, source_key):
            return False
        self._teleport = None
        return True

    def cancel_teleport(self):
        self._teleport = None

    # ---- History -----------------------------------------------------------

    def undo(self) -> bool:
        if not self.history.undo():
            return False
        self._settle(commit=False)
        return True

    def redo(self) -> bool:
        if not self.history.redo():
            return False
        self._settle(commit=False)
        return True

    # ---- Clipboard ---------------------------------------------------------

    @property
    def clipboard(self) -> list[dict]:
        return copy.deepcopy(self._clipboard)

    def copy_selection(self) -> int:
        """Copy the selected nodes and the wires between them."""
        selected = [n for n in self.store.nodes.values() if self.store.is_selected(n.id)]
        if not selected:
            return 0
        ids = {n.id for n in selected}
        self._clipboard = clipboard_payload(selected)
        self._clipboard_connections = [
            c.to_dict() for c in self.store.connections.values()
            if c.source_node_id in ids and c.target_node_id in ids
            and c.kind != ConnectionKind.REMOTE
        ]
        return len(selected)

    def paste_clipboard(self, at_world_pos: Optional[Position] = None) -> list[Node]:
        """
        Paste the clipboard as new nodes.

        The top-left of the pasted group lands on at_world_pos, or slightly
        up and left of the screen centre. Pasted nodes never carry
        bindings and become the selection.
        """
        if not self._clipboard:
            return []

        min_x = min(d["position"]["x"] for d in self._clipboard)
        min_y = min(d["position"]["y"] for d in self._clipboard)
        if at_world_pos is not None:
            dx = at_world_pos.x - min_x
            dy = at_world_pos.y - min_y
        else:
            center = self.screen_center_world()
            dx = center.x() - min_x - PASTE_OFFSET
            dy = center.y() - min_y - PASTE_OFFSET

        id_map = {}
        pasted = []
        for data in copy.deepcopy(self._clipboard):
            new_id = self.store.new_node_id()
            id_map[data["id"]] = new_id
            data["id"] = new_id
            data["label"] = data["label"] + COPY_SUFFIX
            data["position"] = {"x": data["position"]["x"] + dx,
                                "y": data["position"]["y"] + dy}
            data["bound_props"] = {}
            pasted.append(Node.from_dict(data))
        self.store.insert_nodes(pasted)

        for conn in self._clipboard_connections:
            self.store.connect(id_map[conn["source_node_id"]],
                               id_map[conn["target_node_id"]],
                               ConnectionKind[conn["kind"]])

        self.store.set_selection(id_map.values())
        self._settle()
        logger.debug(f"Pasted {len(pasted)} node(s)")
        return pasted

    # ---- Selection ---------------------------------------------------------

    def select(self, node_ids: Iterable[str]):
        self.store.set_selection(node_ids)

    def select_all(self):
        self.store.select_all()

    def clear_selection(self):
        self.store.clear_selection()

    # ---- Viewport ----------------------------------------------------------

    def set_screen_size(self, width: float, height: float):
        self.screen_width = width
        self.screen_height = height

    def fit_view(self, node_ids: Optional[Iterable[str]] = None) -> bool:
        """
        Frame the given nodes (all nodes when None or empty).

        Returns False when there is nothing to frame.
        """
        ids = list(node_ids) if node_ids is not None else []
        if ids:
            targets = [self.store.nodes[nid] for nid in ids if nid in self.store.nodes]
        else:
            targets = list(self.store.nodes.values())

        canvas = self.settings.canvas
        viewport = geometry.fit_view(
            [geometry.node_rect(n, self.settings.node) for n in targets],
            self.screen_width, self.screen_height,
            canvas.focus_padding, canvas.zoom_min, canvas.zoom_max,
        )
        if viewport is None:
            return False
        self.store.set_viewport(viewport)
        return True

    def reset_view(self):
        self.store.set_viewport(Viewport())

    def pan_by(self, dx: float, dy: float):
        self.store.set_viewport(geometry.pan(self.store.viewport, dx, dy))

    def zoom_at(self, zoom: float, sx: float, sy: float):
        """Zoom to an absolute level keeping screen point (sx, sy) fixed."""
        canvas = self.settings.canvas
        self.store.set_viewport(geometry.zoom_about_point(
            self.store.viewport, zoom, sx, sy, canvas.zoom_min, canvas.zoom_max))

    # ---- Read API ----------------------------------------------------------

    def frame(self) -> GraphFrame:
        return self.store.frame()

    def active_chain(self) -> ChainHighlight:
        return active_chain(self.store)

    def node_colors(self) -> dict[str, str]:
        return node_colors(self.store, self.settings.palette)

    def route(self, connection: Connection) -> Optional[WirePath]:
        source = self.store.get_node(connection.source_node_id)
        target = self.store.get_node(connection.target_node_id)
        if source is None or target is None:
            return None
        return self.router.route(connection, source, target, self.store.viewport.zoom)

    def routes(self) -> list[WirePath]:
        paths = [self.route(c) for c in self.store.connections.values()]
        return [p for p in paths if p is not None]

    # ---- Documents ---------------------------------------------------------

    def new_document(self):
        self.store.clear()
        self._teleport = None
        self._settle(commit=False)
        self.history.clear()

    def load_document(self, snapshot: dict):
        """Replace the document; history restarts from the loaded state."""
        self.store.restore(snapshot)
        self._teleport = None
        self._settle(commit=False)
        self.history.clear()

    def open_document(self, filepath: Path) -> bool:
        snapshot = self.project.load(filepath)
        if snapshot is None:
            return False
        self.load_document(snapshot)
        return True

    def save_document(self, filepath: Path) -> bool:
        return self.project.save(self.store, filepath)
