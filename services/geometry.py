"""
Canvas geometry.

Pure functions for the viewport transform, zoom about a fixed screen
point, fit-to-view, grid snapping and the ray/box intersection used to
end remote wires at a node's edge.
"""

import math
from typing import Iterable, Optional

from PyQt6.QtCore import QPointF, QRectF

from models.graph import Node, Position, Viewport
from .settings_manager import NodeLayout

# Below this a ray component is treated as zero
_EPSILON = 0.001


def clamp(value: float, lo: float, hi: float) -> float:
    return min(max(value, lo), hi)


def distance(x1: float, y1: float, x2: float, y2: float) -> float:
    return math.hypot(x2 - x1, y2 - y1)


def screen_to_world(viewport: Viewport, sx: float, sy: float) -> QPointF:
    return QPointF((sx - viewport.x) / viewport.zoom, (sy - viewport.y) / viewport.zoom)


def world_to_screen(viewport: Viewport, wx: float, wy: float) -> QPointF:
    return QPointF(wx * viewport.zoom + viewport.x, wy * viewport.zoom + viewport.y)


def pan(viewport: Viewport, dx: float, dy: float) -> Viewport:
    """Translate the viewport by a screen-space delta."""
    return Viewport(viewport.x + dx, viewport.y + dy, viewport.zoom)


def zoom_about_point(viewport: Viewport, zoom: float, ax: float, ay: float,
                     zoom_min: float = 0.2, zoom_max: float = 3.0) -> Viewport:
    """
    Change zoom while keeping the world point under screen (ax, ay) fixed.

    x' = ax - worldX * zoom', y' = ay - worldY * zoom'
    """
    new_zoom = clamp(zoom, zoom_min, zoom_max)
    anchor = screen_to_world(viewport, ax, ay)
    return Viewport(
        ax - anchor.x() * new_zoom,
        ay - anchor.y() * new_zoom,
        new_zoom,
    )


def snap(value: float, grid: float) -> float:
    """Round to the nearest multiple of grid (halves round up)."""
    if grid <= 0:
        return value
    return math.floor(value / grid + 0.5) * grid


def snap_position(position: Position, grid: float) -> Position:
    return Position(snap(position.x, grid), snap(position.y, grid))


def node_size(node: Node, layout: NodeLayout) -> tuple[float, float]:
    if node.dimensions is not None:
        return (node.dimensions.width, node.dimensions.height)
    return (layout.width, layout.default_height)


def node_rect(node: Node, layout: NodeLayout) -> QRectF:
    """World-space rectangle covered by a node."""
    width, height = node_size(node, layout)
    return QRectF(node.position.x, node.position.y, width, height)


def bounding_rect(rects: Iterable[QRectF]) -> Optional[QRectF]:
    result = None
    for rect in rects:
        result = QRectF(rect) if result is None else result.united(rect)
    return result


def fit_view(rects: Iterable[QRectF], screen_width: float, screen_height: float,
             padding: float = 100.0, zoom_min: float = 0.2,
             zoom_max: float = 3.0) -> Optional[Viewport]:
    """
    Viewport that centres the bounding box of rects on screen.

    Returns None when there is nothing to fit.
    """
    box = bounding_rect(rects)
    if box is None:
        return None

    width = max(box.width(), _EPSILON)
    height = max(box.height(), _EPSILON)
    zoom_x = (screen_width - padding * 2) / width
    zoom_y = (screen_height - padding * 2) / height
    zoom = clamp(min(zoom_x, zoom_y), zoom_min, zoom_max)

    center = box.center()
    return Viewport(
        screen_width / 2 - center.x() * zoom,
        screen_height / 2 - center.y() * zoom,
        zoom,
    )


def ray_box_intersection(x1: float, y1: float, x2: float, y2: float,
                         box_width: float, box_height: float,
                         margin: float = 0.0) -> QPointF:
    """
    Point where the ray from (x1, y1) towards the box centred on (x2, y2)
    enters the box, pushed outward by margin along the crossed axis.

    The vertical and horizontal edges are tried in turn; an axis whose
    component is (near) zero is skipped, so vertical and horizontal rays
    never divide by zero. A zero-length ray returns the centre.
    """
    dx = x2 - x1
    dy = y2 - y1
    half_w = box_width / 2
    half_h = box_height / 2

    if abs(dx) > _EPSILON:
        sign_x = 1.0 if dx > 0 else -1.0
        ix = sign_x * half_w
        iy = dy / dx * ix
        if abs(iy) <= half_h:
            return QPointF(x2 - (ix + sign_x * margin), y2 - iy)

    if abs(dy) > _EPSILON:
        sign_y = 1.0 if dy > 0 else -1.0
        iy = sign_y * half_h
        ix = dx / dy * iy
        if abs(ix) <= half_w:
            return QPointF(x2 - ix, y2 - (iy + sign_y * margin))

    return QPointF(x2, y2)
