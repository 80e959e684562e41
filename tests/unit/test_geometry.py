"""
Unit tests for canvas geometry.

Tests:
- Screen/world mapping and zoom about a fixed point
- Grid snapping
- Fit-to-view
- Ray/box intersection, including vertical and horizontal rays
"""

import pytest
from PyQt6.QtCore import QRectF

from models.graph import Node, NodeKind, Position, Dimensions, Viewport
from services import geometry
from services.settings_manager import NodeLayout


class TestTransforms:
    """Tests for viewport transforms."""

    def test_screen_to_world(self):
        viewport = Viewport(100, 50, 2.0)
        world = geometry.screen_to_world(viewport, 300, 250)
        assert (world.x(), world.y()) == (100, 100)

    def test_world_to_screen_inverse(self):
        viewport = Viewport(-30, 12, 0.5)
        world = geometry.screen_to_world(viewport, 640, 480)
        screen = geometry.world_to_screen(viewport, world.x(), world.y())
        assert screen.x() == pytest.approx(640)
        assert screen.y() == pytest.approx(480)

    def test_pan(self):
        assert geometry.pan(Viewport(1, 2, 1.5), 10, -5) == Viewport(11, -3, 1.5)

    def test_zoom_keeps_anchor_fixed(self):
        """The world point under the anchor stays under it."""
        viewport = Viewport(40, -20, 1.0)
        before = geometry.screen_to_world(viewport, 400, 300)
        zoomed = geometry.zoom_about_point(viewport, 2.5, 400, 300)
        after = geometry.screen_to_world(zoomed, 400, 300)
        assert zoomed.zoom == 2.5
        assert after.x() == pytest.approx(before.x())
        assert after.y() == pytest.approx(before.y())

    def test_zoom_clamped(self):
        assert geometry.zoom_about_point(Viewport(), 10, 0, 0).zoom == 3.0
        assert geometry.zoom_about_point(Viewport(), 0.01, 0, 0).zoom == 0.2


class TestSnap:
    """Tests for grid snapping."""

    @pytest.mark.parametrize("value,expected", [
        (0, 0), (9.9, 0), (10, 20), (29, 20), (31, 40), (-9, 0), (-11, -20),
    ])
    def test_snap(self, value, expected):
        assert geometry.snap(value, 20) == expected

    @pytest.mark.parametrize("value", [-57.3, -10, 0, 3.2, 19.99, 123.45, 1000.1])
    def test_snap_idempotent(self, value):
        once = geometry.snap(value, 20)
        assert geometry.snap(once, 20) == once

    def test_snap_position(self):
        assert geometry.snap_position(Position(33, 47), 20) == Position(40, 40)

    def test_zero_grid(self):
        assert geometry.snap(12.3, 0) == 12.3


class TestNodeRects:
    """Tests for node rectangles and fit-to-view."""

    def test_default_size(self):
        node = Node(kind=NodeKind.NUMBER, position=Position(10, 20))
        rect = geometry.node_rect(node, NodeLayout())
        assert (rect.x(), rect.y(), rect.width(), rect.height()) == (10, 20, 256, 128)

    def test_explicit_dimensions(self):
        node = Node(kind=NodeKind.NUMBER, dimensions=Dimensions(300, 200))
        assert geometry.node_size(node, NodeLayout()) == (300, 200)

    def test_bounding_rect(self):
        box = geometry.bounding_rect([QRectF(0, 0, 10, 10), QRectF(20, -5, 10, 10)])
        assert (box.left(), box.top(), box.right(), box.bottom()) == (0, -5, 30, 10)
        assert geometry.bounding_rect([]) is None

    def test_fit_view_centres_box(self):
        rects = [QRectF(0, 0, 256, 128), QRectF(300, 0, 256, 128)]
        viewport = geometry.fit_view(rects, 1280, 800, padding=100)

        # (1280 - 200) / 556 is the binding constraint
        assert viewport.zoom == pytest.approx(1080 / 556)
        center = geometry.world_to_screen(viewport, 278, 64)
        assert center.x() == pytest.approx(640)
        assert center.y() == pytest.approx(400)

    def test_fit_view_clamps_zoom(self):
        viewport = geometry.fit_view([QRectF(0, 0, 10, 10)], 1280, 800)
        assert viewport.zoom == 3.0

    def test_fit_view_empty(self):
        assert geometry.fit_view([], 1280, 800) is None


class TestRayBoxIntersection:
    """Tests for ray_box_intersection on a 256x128 box at the origin."""

    W, H, M = 256.0, 128.0, 5.0

    def test_from_above(self):
        point = geometry.ray_box_intersection(0, -500, 0, 0, self.W, self.H, self.M)
        assert point.x() == pytest.approx(0)
        assert point.y() == pytest.approx(-self.H / 2 - self.M)

    def test_from_below(self):
        point = geometry.ray_box_intersection(0, 500, 0, 0, self.W, self.H, self.M)
        assert point.y() == pytest.approx(self.H / 2 + self.M)

    def test_from_left(self):
        point = geometry.ray_box_intersection(-900, 0, 0, 0, self.W, self.H, self.M)
        assert point.x() == pytest.approx(-self.W / 2 - self.M)
        assert point.y() == pytest.approx(0)

    def test_near_vertical(self):
        point = geometry.ray_box_intersection(1e-6, -500, 0, 0, self.W, self.H, self.M)
        assert point.y() == pytest.approx(-self.H / 2 - self.M)

    @pytest.mark.parametrize("sx,sy", [(-500, -500), (500, -500), (500, 500), (-500, 500)])
    def test_diagonal_stays_on_edge(self, sx, sy):
        """A 45 degree ray ends within the box expanded by the margin."""
        point = geometry.ray_box_intersection(sx, sy, 0, 0, self.W, self.H, self.M)
        assert abs(point.x()) <= self.W / 2 + self.M
        assert abs(point.y()) <= self.H / 2 + self.M
        # The wide box is entered through a horizontal edge
        assert abs(point.y()) == pytest.approx(self.H / 2 + self.M)
        assert abs(point.x()) == pytest.approx(self.H / 2)

    def test_zero_length_ray(self):
        point = geometry.ray_box_intersection(7, 8, 7, 8, self.W, self.H, self.M)
        assert (point.x(), point.y()) == (7, 8)

    def test_offset_box(self):
        point = geometry.ray_box_intersection(100, -1000, 100, 200, self.W, self.H, 0)
        assert (point.x(), point.y()) == pytest.approx((100, 200 - self.H / 2))
