"""
Unit tests for ConnectionRouter.
"""

import pytest
from PyQt6.QtCore import QPointF

from models.graph import Node, Connection, NodeKind, ConnectionKind, PortDirection, Position
from services.connection_router import ConnectionRouter


@pytest.fixture
def router():
    return ConnectionRouter()


def make_pair(tx=300.0, ty=0.0):
    source = Node(kind=NodeKind.PICKER, position=Position(0, 0))
    target = Node(kind=NodeKind.OUTPUT, position=Position(tx, ty))
    return source, target


def wire(source, target, kind):
    return Connection(source_node_id=source.id, target_node_id=target.id, kind=kind)


class TestAnchors:
    """Tests for port anchors."""

    def test_output_right_of_node(self, router):
        source, _ = make_pair()
        anchor = router.output_anchor(source)
        assert (anchor.x(), anchor.y()) == (272, 40)

    def test_input_left_of_node(self, router):
        _, target = make_pair()
        anchor = router.port_anchor(target, PortDirection.INPUT)
        assert (anchor.x(), anchor.y()) == (284, 40)

    @pytest.mark.parametrize("zoom,expected", [(1.0, 2.0), (0.2, 6.0), (3.0, 1.5), (0.5, 4.0)])
    def test_stroke_width(self, router, zoom, expected):
        assert router.stroke_width(zoom) == pytest.approx(expected)


class TestRoutes:
    """Tests for per-kind wire shapes."""

    def test_direct_is_bezier(self, router):
        source, target = make_pair()
        path = router.route(wire(source, target, ConnectionKind.DIRECT), source, target)
        assert path.d == "M 272 40 C 372 40 184 40 284 40"
        assert path.dash is None
        assert path.stroke_width == 2.0
        assert path.kind == ConnectionKind.DIRECT

    def test_connection_id_carried(self, router):
        source, target = make_pair()
        conn = wire(source, target, ConnectionKind.DIRECT)
        assert router.route(conn, source, target).connection_id == conn.id

    def test_streaming_dashed(self, router):
        source, target = make_pair()
        path = router.route(wire(source, target, ConnectionKind.STREAMING), source, target, zoom=2.0)
        assert path.dash == (5.0, 5.0)
        assert path.d.startswith("M 272 40 C")

    def test_collection_double_pipe(self, router):
        source, target = make_pair()
        path = router.route(wire(source, target, ConnectionKind.COLLECTION), source, target)
        assert path.inner_stroke_width == 2.0
        assert path.stroke_width == 6.0

    def test_sequenced_orthogonal(self, router):
        source, target = make_pair(600, 200)
        path = router.route(wire(source, target, ConnectionKind.SEQUENCED), source, target)
        assert path.d == "M 272 40 L 428 40 L 428 240 L 584 240"
        assert path.role == "default"

    def test_conditional_heavier(self, router):
        source, target = make_pair(600, 200)
        path = router.route(wire(source, target, ConnectionKind.CONDITIONAL), source, target)
        assert path.d == "M 272 40 L 428 40 L 428 240 L 584 240"
        assert path.role == "conditional"
        assert path.stroke_width == pytest.approx(3.0)

    def test_remote_between_edges(self, router):
        """Remote wires run centre to centre, clipped at each rectangle."""
        source, target = make_pair(600, 0)
        path = router.route(wire(source, target, ConnectionKind.REMOTE), source, target)
        assert path.d == "M 261 64 L 595 64"
        assert path.marker_end == "arrow"
        assert path.role == "remote"
        assert path.dash == (5.0, 5.0)
        assert path.stroke_width == pytest.approx(1.5)

    def test_remote_stroke_floor(self, router):
        source, target = make_pair(600, 0)
        path = router.route(wire(source, target, ConnectionKind.REMOTE), source, target, zoom=3.0)
        assert path.stroke_width == 1.0

    def test_temp_wire(self, router):
        source, _ = make_pair()
        path = router.route_temp_wire(source, PortDirection.OUTPUT, QPointF(400, 100.5), zoom=2.0)
        assert path.d == "M 272 40 L 400 100.5"
        assert path.dash == (5.0, 5.0)
        assert path.stroke_width == 1.0
        assert path.kind is None
        assert path.role == "temp"
