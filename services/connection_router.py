"""
Connection routing.

Turns a connection and its two endpoint nodes into an SVG-style path
description plus stroke parameters. Stateless; the renderer calls it for
every wire on every frame.
"""

from dataclasses import dataclass, field
from typing import Optional

from PyQt6.QtCore import QPointF

from models.graph import Node, Connection, ConnectionKind, PortDirection
from .geometry import clamp, node_rect, ray_box_intersection
from .settings_manager import NodeLayout, WireSettings


def _fmt(value: float) -> str:
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


def _pt(point: QPointF) -> str:
    return f"{_fmt(point.x())} {_fmt(point.y())}"


@dataclass
class WirePath:
    """
    Drawable description of one wire.

    Attributes:
        d: SVG path data
        points: Anchor and control points in path order
        stroke_width: Stroke width in world units (already zoom-compensated)
        dash: (dash, gap) pattern or None for a solid stroke
        marker_end: End marker name ("arrow") or None
        inner_stroke_width: Width of the inner stroke for double pipes
        role: Stroke role for colour lookup ("default", "conditional", "remote", "temp")
    """
    kind: Optional[ConnectionKind]
    d: str
    points: list[QPointF] = field(default_factory=list)
    stroke_width: float = 2.0
    dash: Optional[tuple[float, float]] = None
    marker_end: Optional[str] = None
    inner_stroke_width: Optional[float] = None
    role: str = "default"
    connection_id: str = ""


class ConnectionRouter:
    """Computes wire paths between node ports or node edges."""

    def __init__(self, layout: Optional[NodeLayout] = None, wire: Optional[WireSettings] = None):
        self.layout = layout or NodeLayout()
        self.wire = wire or WireSettings()

    # ---- Anchors -----------------------------------------------------------

    def output_anchor(self, node: Node) -> QPointF:
        rect = node_rect(node, self.layout)
        return QPointF(rect.right() + self.layout.port_offset_x,
                       rect.top() + self.layout.port_offset_y)

    def input_anchor(self, node: Node) -> QPointF:
        rect = node_rect(node, self.layout)
        return QPointF(rect.left() - self.layout.port_offset_x,
                       rect.top() + self.layout.port_offset_y)

    def port_anchor(self, node: Node, direction: PortDirection) -> QPointF:
        if direction == PortDirection.OUTPUT:
            return self.output_anchor(node)
        return self.input_anchor(node)

    def stroke_width(self, zoom: float) -> float:
        """Stroke that keeps a roughly constant on-screen weight."""
        return clamp(self.wire.base_stroke / zoom, self.wire.stroke_min, self.wire.stroke_max)

    # ---- Routing -----------------------------------------------------------

    def route(self, connection: Connection, source: Node, target: Node,
              zoom: float = 1.0) -> WirePath:
        """Path for a connection between its source and target nodes."""
        kind = connection.kind
        if kind == ConnectionKind.REMOTE:
            path = self._remote(source, target, zoom)
        elif kind in (ConnectionKind.SEQUENCED, ConnectionKind.CONDITIONAL):
            path = self._orthogonal(self.output_anchor(source), self.input_anchor(target), zoom)
            if kind == ConnectionKind.CONDITIONAL:
                path.role = "conditional"
                path.stroke_width = clamp(path.stroke_width * 1.5,
                                          self.wire.stroke_min, self.wire.stroke_max)
        else:
            path = self._bezier(self.output_anchor(source), self.input_anchor(target), zoom)
            if kind == ConnectionKind.STREAMING:
                dash = self.wire.dotted_dash / zoom
                path.dash = (dash, dash)
            elif kind == ConnectionKind.COLLECTION:
                path.inner_stroke_width = path.stroke_width
                path.stroke_width = path.stroke_width * 3

        path.kind = kind
        path.connection_id = connection.id
        return path

    def route_temp_wire(self, node: Node, direction: PortDirection, end: QPointF,
                        zoom: float = 1.0) -> WirePath:
        """Straight dashed line from a port to the pointer while wiring."""
        start = self.port_anchor(node, direction)
        gap = self.wire.dash_gap
        return WirePath(
            kind=None,
            d=f"M {_pt(start)} L {_pt(end)}",
            points=[start, QPointF(end)],
            stroke_width=self.wire.base_stroke / zoom,
            dash=(gap, gap),
            role="temp",
        )

    def _bezier(self, start: QPointF, end: QPointF, zoom: float) -> WirePath:
        offset = self.wire.control_point_offset
        c1 = QPointF(start.x() + offset, start.y())
        c2 = QPointF(end.x() - offset, end.y())
        return WirePath(
            kind=None,
            d=f"M {_pt(start)} C {_pt(c1)} {_pt(c2)} {_pt(end)}",
            points=[start, c1, c2, end],
            stroke_width=self.stroke_width(zoom),
        )

    def _orthogonal(self, start: QPointF, end: QPointF, zoom: float) -> WirePath:
        mid_x = start.x() + (end.x() - start.x()) / 2
        p1 = QPointF(mid_x, start.y())
        p2 = QPointF(mid_x, end.y())
        return WirePath(
            kind=None,
            d=f"M {_pt(start)} L {_pt(p1)} L {_pt(p2)} L {_pt(end)}",
            points=[start, p1, p2, end],
            stroke_width=self.stroke_width(zoom),
        )

    def _remote(self, source: Node, target: Node, zoom: float) -> WirePath:
        """Arrow between the facing edges of the two node rectangles."""
        s_rect = node_rect(source, self.layout)
        t_rect = node_rect(target, self.layout)
        sc = s_rect.center()
        tc = t_rect.center()
        margin = self.wire.arrow_margin / zoom

        end = ray_box_intersection(sc.x(), sc.y(), tc.x(), tc.y(),
                                   t_rect.width(), t_rect.height(), margin)
        start = ray_box_intersection(tc.x(), tc.y(), sc.x(), sc.y(),
                                     s_rect.width(), s_rect.height(), margin)
        dash = self.wire.dash_gap / zoom
        return WirePath(
            kind=None,
            d=f"M {_pt(start)} L {_pt(end)}",
            points=[start, end],
            stroke_width=max(self.wire.remote_stroke_min, self.wire.remote_stroke / zoom),
            dash=(dash, dash),
            marker_end="arrow",
            role="remote",
        )
