"""
Unit tests for graph model classes.

Tests:
- Node kinds, default configs and port layout
- Typed config records and string-keyed property access
- Value coercion
- Node/Connection plain-data conversion
- Connection kind suggestion
"""

import pytest
from models.graph import (
    Node, Connection, Binding, NodeKind, ConnectionKind, PortDirection,
    Position, Dimensions, NODE_CONFIG_TYPES, CONNECTION_RULES,
    suggest_connection_kind, default_config,
)
from models.node_config import (
    coerce_value, SliderConfig, TransformConfig, OutputConfig,
    BooleanConfig, NumberConfig, PickerConfig,
)


class TestNode:
    """Tests for Node class."""

    def test_default_label_and_config(self):
        """A new node gets its kind's config record and a default label."""
        node = Node(kind=NodeKind.OSCILLATOR)
        assert node.label == "New LFO"
        assert node.config.frequency == 1.0
        assert node.config.enabled is True
        assert node.id.startswith("n_")

    def test_every_kind_has_config(self):
        for kind in NodeKind:
            assert isinstance(default_config(kind), NODE_CONFIG_TYPES[kind])

    def test_port_layout(self):
        """Producers have only outputs, sinks only inputs."""
        picker = Node(kind=NodeKind.PICKER)
        output = Node(kind=NodeKind.OUTPUT)
        transform = Node(kind=NodeKind.TRANSFORM)

        assert picker.has_output and not picker.has_input
        assert output.has_input and not output.has_output
        assert transform.has_port(PortDirection.INPUT)
        assert transform.has_port(PortDirection.OUTPUT)

    def test_explicit_label_kept(self):
        node = Node(kind=NodeKind.SLIDER, label="Gain")
        assert node.label == "Gain"

    def test_to_dict_from_dict(self):
        """A node survives conversion to plain data."""
        node = Node(
            id="n1",
            kind=NodeKind.TRANSFORM,
            label="Mod",
            position=Position(10, 20),
            collapsed=True,
            dimensions=Dimensions(300, 150),
        )
        node.config.scale = 42.0
        node.bound_props["scale"] = Binding("n0", "value", 100.0)

        data = node.to_dict()
        assert data["kind"] == "TRANSFORM"
        assert data["bound_props"]["scale"]["source_node_id"] == "n0"

        restored = Node.from_dict(data)
        assert restored == node

    def test_from_dict_defaults(self):
        node = Node.from_dict({"id": "x", "kind": "NUMBER"})
        assert node.position == Position(0, 0)
        assert node.dimensions is None
        assert node.config.value == 50.0
        assert node.bound_props == {}

    def test_from_dict_unknown_kind(self):
        with pytest.raises(KeyError):
            Node.from_dict({"id": "x", "kind": "SPLINE"})


class TestConnection:
    """Tests for Connection class."""

    def test_pair_and_touches(self):
        conn = Connection(id="c1", source_node_id="a", target_node_id="b")
        assert conn.pair == ("a", "b")
        assert conn.touches("a")
        assert conn.touches("b")
        assert not conn.touches("c")
        assert conn.kind == ConnectionKind.DIRECT

    def test_to_dict_from_dict(self):
        conn = Connection(id="c1", source_node_id="a", target_node_id="b",
                          kind=ConnectionKind.STREAMING)
        assert Connection.from_dict(conn.to_dict()) == conn

    def test_rules_cover_all_kinds(self):
        for kind in ConnectionKind:
            assert "data_type" in CONNECTION_RULES[kind]

    def test_suggest_connection_kind(self):
        assert suggest_connection_kind("list") == ConnectionKind.COLLECTION
        assert suggest_connection_kind("stream") == ConnectionKind.STREAMING
        assert suggest_connection_kind("boolean") == ConnectionKind.CONDITIONAL
        assert suggest_connection_kind("single") == ConnectionKind.DIRECT
        assert suggest_connection_kind("list", is_remote=True) == ConnectionKind.REMOTE


class TestNodeConfig:
    """Tests for typed config records."""

    def test_keys_and_access(self):
        config = OutputConfig()
        assert config.keys() == ["value", "enabled"]
        assert config.get_property("enabled") is True
        assert config.has_property("value")
        assert not config.has_property("scale")

    def test_unknown_key(self):
        with pytest.raises(KeyError):
            NumberConfig().get_property("missing")
        with pytest.raises(KeyError):
            NumberConfig().set_property("missing", 1)

    def test_set_property_coerces(self):
        config = OutputConfig()
        assert config.set_property("value", "12.5") == 12.5
        assert config.set_property("enabled", 0) is False
        assert config.value == 12.5
        assert config.enabled is False

    def test_set_property_rejects(self):
        with pytest.raises(ValueError):
            NumberConfig().set_property("value", "loud")

    def test_percentage_targets(self):
        """Sliders topping out at 100 and transform scale are percentages."""
        assert SliderConfig().is_percentage("value")
        assert not SliderConfig(max=10.0).is_percentage("value")
        assert TransformConfig().is_percentage("scale")
        assert not TransformConfig().is_percentage("rotation")
        assert not BooleanConfig().is_percentage("value")

    def test_from_dict_ignores_unknown(self):
        config = PickerConfig.from_dict({"src": "a.png", "legacy": 3})
        assert config.src == "a.png"


class TestCoerceValue:
    """Tests for coerce_value."""

    def test_to_bool(self):
        assert coerce_value(1, bool) is True
        assert coerce_value(0.0, bool) is False
        assert coerce_value("on", bool) is True
        assert coerce_value("false", bool) is False

    def test_to_float(self):
        assert coerce_value(True, float) == 1.0
        assert coerce_value(3, float) == 3.0
        assert coerce_value(" 2.5 ", float) == 2.5

    def test_to_str(self):
        assert coerce_value(True, str) == "true"
        assert coerce_value(4.0, str) == "4.0"

    def test_invalid(self):
        with pytest.raises(ValueError):
            coerce_value("maybe", bool)
        with pytest.raises(ValueError):
            coerce_value("abc", float)
