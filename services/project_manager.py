"""
Project manager for saving and loading node graphs.

Documents are JSON files holding the plain-data form of the store's
nodes and connections. Transient state (viewport, selection, gestures,
history) is never written.
"""

import json
import logging
from pathlib import Path
from typing import Iterable, Optional

from models.graph import Node, Connection
from models.graph_store import GraphStore

logger = logging.getLogger(__name__)


GRAPH_FORMAT = "aninode-graph"


def serialize_graph(store: GraphStore) -> dict:
    """Convert the store's document to a JSON-serializable dictionary."""
    data = {"format": GRAPH_FORMAT}
    data.update(store.snapshot())
    return data


def deserialize_graph(data: dict) -> dict:
    """
    Validate a serialized document and return a snapshot for
    GraphStore.restore().

    Connections with missing endpoints, self-loops or a repeated
    (source, target) pair are dropped, as are bindings that read from a
    node not in the document.

    Raises:
        ValueError: if the data is not a graph document
    """
    if not isinstance(data, dict):
        raise ValueError("Graph document must be a JSON object")
    fmt = data.get("format", GRAPH_FORMAT)
    if fmt != GRAPH_FORMAT:
        raise ValueError(f"Unsupported document format: {fmt}")

    try:
        nodes = [Node.from_dict(n) for n in data.get("nodes", [])]
        connections = [Connection.from_dict(c) for c in data.get("connections", [])]
    except (KeyError, TypeError, AttributeError) as e:
        raise ValueError(f"Malformed graph document: {e}") from e

    node_ids = set()
    for node in nodes:
        if node.id in node_ids:
            raise ValueError(f"Duplicate node id: {node.id}")
        node_ids.add(node.id)

    for node in nodes:
        for key in [k for k, b in node.bound_props.items() if b.source_node_id not in node_ids]:
            logger.warning(f"Dropping binding {node.id}.{key}: source node missing")
            del node.bound_props[key]

    kept = []
    pairs = set()
    connection_ids = set()
    for conn in connections:
        if (conn.source_node_id not in node_ids or conn.target_node_id not in node_ids
                or conn.source_node_id == conn.target_node_id
                or conn.pair in pairs or conn.id in connection_ids):
            logger.warning(f"Dropping invalid connection {conn.id}")
            continue
        pairs.add(conn.pair)
        connection_ids.add(conn.id)
        kept.append(conn)

    return {
        "nodes": [n.to_dict() for n in nodes],
        "connections": [c.to_dict() for c in kept],
    }


def clipboard_payload(nodes: Iterable[Node]) -> list[dict]:
    """Node snapshots for the clipboard, with bindings stripped."""
    payload = []
    for node in nodes:
        data = node.to_dict()
        data["bound_props"] = {}
        payload.append(data)
    return payload


class ProjectManager:
    """
    Handles saving and loading graph documents.

    File format:
        {"format": "aninode-graph", "nodes": [...], "connections": [...]}
    """

    def __init__(self):
        self._current_file: Optional[Path] = None

    @property
    def current_file(self) -> Optional[Path]:
        """Get the current document file path."""
        return self._current_file

    @property
    def has_file(self) -> bool:
        """Check if a file is currently open."""
        return self._current_file is not None

    def save(self, store: GraphStore, filepath: Path) -> bool:
        """
        Save the store's document to a JSON file.

        Returns:
            True if successful, False otherwise
        """
        filepath = Path(filepath)
        try:
            with open(filepath, 'w', encoding='utf-8') as f:
                json.dump(serialize_graph(store), f, indent=2, ensure_ascii=False)
        except OSError as e:
            logger.error(f"Error saving graph: {e}")
            return False

        self._current_file = filepath
        logger.info(f"Saved {len(store.nodes)} nodes to {filepath}")
        return True

    def load(self, filepath: Path) -> Optional[dict]:
        """
        Read a graph document.

        Returns:
            A snapshot for GraphStore.restore() if successful, None otherwise
        """
        filepath = Path(filepath)
        try:
            with open(filepath, 'r', encoding='utf-8') as f:
                data = json.load(f)
            snapshot = deserialize_graph(data)
        except (OSError, ValueError) as e:
            logger.error(f"Error loading graph: {e}")
            return None

        self._current_file = filepath
        return snapshot

    def load_into(self, store: GraphStore, filepath: Path) -> bool:
        """Load a document file and replace the store's contents with it."""
        snapshot = self.load(filepath)
        if snapshot is None:
            return False
        store.restore(snapshot)
        logger.info(f"Loaded {len(store.nodes)} nodes from {filepath}")
        return True
