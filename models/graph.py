"""
Graph editor data models.

These models represent the document edited on the canvas: typed nodes,
the connections wiring them together and the property bindings
("teleportation") that mirror one node's config value into another.
The GraphStore owns their lifetimes; everything here is plain data.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional
import uuid

from .node_config import (
    Value,
    NodeConfig,
    PickerConfig,
    OscillatorConfig,
    TransformConfig,
    LogicConfig,
    OutputConfig,
    SliderConfig,
    NumberConfig,
    BooleanConfig,
    CloneConfig,
)


def new_id(prefix: str) -> str:
    """Generate a short unique identifier."""
    return f"{prefix}_{str(uuid.uuid4())[:8]}"


class NodeKind(Enum):
    """
    Node variants available in the editor.

    The kind determines the node's config record and port layout.
    """
    PICKER = auto()       # Asset source, root of a coloured chain
    OSCILLATOR = auto()   # LFO generator
    TRANSFORM = auto()    # Modifier
    LOGIC = auto()        # Conditional modifier
    OUTPUT = auto()       # Sink
    SLIDER = auto()       # Scalar controls
    NUMBER = auto()
    BOOLEAN = auto()
    CLONE = auto()        # Instance of another node


class ConnectionKind(Enum):
    """
    Wire types between nodes.

    - DIRECT: single value from source to target (bezier curve)
    - SEQUENCED: ordered step flow (orthogonal path)
    - STREAMING: live, continuously changing values (dashed curve)
    - CONDITIONAL: logic/control signals (orthogonal path, distinct stroke)
    - REMOTE: property binding drawn as an arrow between node edges
    - COLLECTION: list/array data (double "pipe" curve)
    """
    DIRECT = auto()
    SEQUENCED = auto()
    STREAMING = auto()
    CONDITIONAL = auto()
    REMOTE = auto()
    COLLECTION = auto()


class PortDirection(Enum):
    INPUT = auto()
    OUTPUT = auto()


# Config record per node kind
NODE_CONFIG_TYPES = {
    NodeKind.PICKER: PickerConfig,
    NodeKind.OSCILLATOR: OscillatorConfig,
    NodeKind.TRANSFORM: TransformConfig,
    NodeKind.LOGIC: LogicConfig,
    NodeKind.OUTPUT: OutputConfig,
    NodeKind.SLIDER: SliderConfig,
    NodeKind.NUMBER: NumberConfig,
    NodeKind.BOOLEAN: BooleanConfig,
    NodeKind.CLONE: CloneConfig,
}

# Port layout per node kind: (has_input, has_output)
NODE_PORTS = {
    NodeKind.PICKER: (False, True),
    NodeKind.OSCILLATOR: (False, True),
    NodeKind.TRANSFORM: (True, True),
    NodeKind.LOGIC: (True, True),
    NodeKind.OUTPUT: (True, False),
    NodeKind.SLIDER: (False, True),
    NodeKind.NUMBER: (False, True),
    NodeKind.BOOLEAN: (False, True),
    NodeKind.CLONE: (True, True),
}

# Display label per node kind
NODE_KIND_LABELS = {
    NodeKind.PICKER: "PICKER",
    NodeKind.OSCILLATOR: "LFO",
    NodeKind.TRANSFORM: "MODIFIER",
    NodeKind.LOGIC: "LOGIC",
    NodeKind.OUTPUT: "OUTPUT",
    NodeKind.SLIDER: "SLIDER",
    NodeKind.NUMBER: "VALUE",
    NodeKind.BOOLEAN: "SWITCH",
    NodeKind.CLONE: "INSTANCE",
}

# Semantics of each wire type
CONNECTION_RULES = {
    ConnectionKind.DIRECT: {
        "name": "Single Parameter",
        "description": "One value flows from source to target",
        "data_type": "single",
    },
    ConnectionKind.SEQUENCED: {
        "name": "Sequence",
        "description": "Ordered step-by-step flow",
        "data_type": "single",
    },
    ConnectionKind.STREAMING: {
        "name": "Dynamic / Live",
        "description": "Real-time streaming values",
        "data_type": "stream",
    },
    ConnectionKind.CONDITIONAL: {
        "name": "Logic / Control",
        "description": "Conditional or boolean signals",
        "data_type": "boolean",
    },
    ConnectionKind.REMOTE: {
        "name": "Telepathic / Wireless",
        "description": "Remote property binding without physical connection",
        "data_type": "any",
    },
    ConnectionKind.COLLECTION: {
        "name": "List / Array",
        "description": "Multiple values as a collection",
        "data_type": "list",
    },
}


def suggest_connection_kind(data_type: str, is_remote: bool = False) -> ConnectionKind:
    """Pick a wire type from the characteristics of the source data."""
    if is_remote:
        return ConnectionKind.REMOTE
    if data_type == "list":
        return ConnectionKind.COLLECTION
    if data_type == "stream":
        return ConnectionKind.STREAMING
    if data_type == "boolean":
        return ConnectionKind.CONDITIONAL
    return ConnectionKind.DIRECT


def default_config(kind: NodeKind) -> NodeConfig:
    """Create the default config record for a node kind."""
    return NODE_CONFIG_TYPES[kind]()


@dataclass
class Position:
    """2D position in world coordinates."""
    x: float = 0.0
    y: float = 0.0

    def to_tuple(self) -> tuple[float, float]:
        return (self.x, self.y)


@dataclass
class Dimensions:
    width: float = 256.0
    height: float = 128.0


@dataclass
class Viewport:
    """
    World-to-screen transform: screen = world * zoom + (x, y).
    """
    x: float = 0.0
    y: float = 0.0
    zoom: float = 1.0


@dataclass
class Binding:
    """
    A property teleported from another node.

    Stored under the target node's bound_props[key]. original_value is the
    target's own value at bind time, restored when the binding goes away.
    """
    source_node_id: str
    source_key: str
    original_value: Value

    def to_dict(self) -> dict:
        return {
            "source_node_id": self.source_node_id,
            "source_key": self.source_key,
            "original_value": self.original_value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Binding":
        return cls(
            source_node_id=data["source_node_id"],
            source_key=data["source_key"],
            original_value=data.get("original_value"),
        )


@dataclass
class Node:
    """
    A node on the canvas.

    Attributes:
        id: Unique identifier
        kind: Node variant (selects config record and ports)
        label: Display name
        position: Top-left corner in world coordinates
        collapsed: Whether the body is folded away
        dimensions: Explicit size, None for the default layout size
        config: Typed config record for the kind
        bound_props: Bindings keyed by the bound (target) property
    """
    id: str = field(default_factory=lambda: new_id("n"))
    kind: NodeKind = NodeKind.NUMBER
    label: str = ""
    position: Position = field(default_factory=Position)
    collapsed: bool = False
    dimensions: Optional[Dimensions] = None
    config: Optional[NodeConfig] = None
    bound_props: dict[str, Binding] = field(default_factory=dict)

    def __post_init__(self):
        if self.config is None:
            self.config = default_config(self.kind)
        if not self.label:
            self.label = f"New {NODE_KIND_LABELS[self.kind]}"

    @property
    def has_input(self) -> bool:
        return NODE_PORTS[self.kind][0]

    @property
    def has_output(self) -> bool:
        return NODE_PORTS[self.kind][1]

    def has_port(self, direction: PortDirection) -> bool:
        if direction == PortDirection.INPUT:
            return self.has_input
        return self.has_output

    def is_bound(self, key: str) -> bool:
        return key in self.bound_props

    def to_dict(self) -> dict:
        """Serialize to plain data."""
        return {
            "id": self.id,
            "kind": self.kind.name,
            "label": self.label,
            "position": {"x": self.position.x, "y": self.position.y},
            "collapsed": self.collapsed,
            "dimensions": (
                {"width": self.dimensions.width, "height": self.dimensions.height}
                if self.dimensions else None
            ),
            "config": self.config.to_dict(),
            "bound_props": {
                key: binding.to_dict() for key, binding in self.bound_props.items()
            },
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Node":
        """Create from plain data."""
        kind = NodeKind[data["kind"]]
        dims = data.get("dimensions")
        pos = data.get("position", {})
        return cls(
            id=data["id"],
            kind=kind,
            label=data.get("label", ""),
            position=Position(pos.get("x", 0.0), pos.get("y", 0.0)),
            collapsed=data.get("collapsed", False),
            dimensions=Dimensions(dims["width"], dims["height"]) if dims else None,
            config=NODE_CONFIG_TYPES[kind].from_dict(data.get("config", {})),
            bound_props={
                key: Binding.from_dict(b)
                for key, b in data.get("bound_props", {}).items()
            },
        )


@dataclass
class Connection:
    """
    A wire from a source node's output to a target node's input.

    REMOTE connections are not attached to ports; they visualize
    property bindings.
    """
    id: str = field(default_factory=lambda: new_id("c"))
    source_node_id: str = ""
    target_node_id: str = ""
    kind: ConnectionKind = ConnectionKind.DIRECT

    @property
    def pair(self) -> tuple[str, str]:
        return (self.source_node_id, self.target_node_id)

    def touches(self, node_id: str) -> bool:
        return node_id in (self.source_node_id, self.target_node_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "source_node_id": self.source_node_id,
            "target_node_id": self.target_node_id,
            "kind": self.kind.name,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Connection":
        return cls(
            id=data["id"],
            source_node_id=data["source_node_id"],
            target_node_id=data["target_node_id"],
            kind=ConnectionKind[data.get("kind", "DIRECT")],
        )
