"""
Models package.

This package contains the data model of the graph editor:
- Node kinds and their typed config records (NodeKind, NodeConfig, ...)
- Graph elements (Node, Connection, Binding, Viewport)
- The canonical mutable store (GraphStore, GraphFrame)
"""

from .node_config import (
    Value,
    coerce_value,
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

from .graph import (
    new_id,
    NodeKind,
    ConnectionKind,
    PortDirection,
    NODE_CONFIG_TYPES,
    NODE_PORTS,
    NODE_KIND_LABELS,
    CONNECTION_RULES,
    suggest_connection_kind,
    default_config,
    Position,
    Dimensions,
    Viewport,
    Binding,
    Node,
    Connection,
)

from .graph_store import GraphStore, GraphFrame

__all__ = [
    # Configs
    'Value',
    'coerce_value',
    'NodeConfig',
    'PickerConfig',
    'OscillatorConfig',
    'TransformConfig',
    'LogicConfig',
    'OutputConfig',
    'SliderConfig',
    'NumberConfig',
    'BooleanConfig',
    'CloneConfig',
    # Graph
    'new_id',
    'NodeKind',
    'ConnectionKind',
    'PortDirection',
    'NODE_CONFIG_TYPES',
    'NODE_PORTS',
    'NODE_KIND_LABELS',
    'CONNECTION_RULES',
    'suggest_connection_kind',
    'default_config',
    'Position',
    'Dimensions',
    'Viewport',
    'Binding',
    'Node',
    'Connection',
    # Store
    'GraphStore',
    'GraphFrame',
]
