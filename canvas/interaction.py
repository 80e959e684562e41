"""
Pointer interaction state machine.

InteractionController turns a stream of pointer, wheel, pinch and key
events into editor commands. Exactly one gesture (pan, node drag, wire
drag, resize) is active at a time; a hot wire outlives its gesture and
waits for a click on a compatible port.

Events carry screen coordinates. The renderer may attach what was under
the pointer as a HitTarget; otherwise the controller hit-tests the node
rectangles itself.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional

from PyQt6.QtCore import QObject, QPointF, Qt, pyqtSignal

from models.graph import Connection, ConnectionKind, PortDirection, Position, Viewport
from services import geometry
from services.connection_router import WirePath
from .editor import GraphEditor

logger = logging.getLogger(__name__)


# Hit radius around a port anchor, in screen pixels
PORT_HIT_RADIUS = 12.0
# Square corner hit box of the resize handles, in world units
RESIZE_HANDLE_SIZE = 20.0


class InteractionState(Enum):
    IDLE = auto()
    PANNING = auto()
    NODE_DRAGGING = auto()
    WIRE_DRAGGING = auto()
    RESIZING = auto()


class HitKind(Enum):
    CANVAS = auto()
    NODE = auto()
    PORT = auto()
    RESIZE_HANDLE = auto()
    CONNECTION = auto()


class ResizeCorner(Enum):
    NW = "nw"
    NE = "ne"
    SW = "sw"
    SE = "se"


@dataclass
class HitTarget:
    """What lies under the pointer."""
    kind: HitKind = HitKind.CANVAS
    node_id: Optional[str] = None
    direction: Optional[PortDirection] = None
    corner: Optional[ResizeCorner] = None
    connection_id: Optional[str] = None


@dataclass
class PointerEvent:
    """A pointer press, move or release in screen coordinates."""
    x: float
    y: float
    modifiers: Qt.KeyboardModifier = Qt.KeyboardModifier.NoModifier
    target: Optional[HitTarget] = None

    def has(self, modifier: Qt.KeyboardModifier) -> bool:
        return bool(self.modifiers & modifier)

    @property
    def shift(self) -> bool:
        return self.has(Qt.KeyboardModifier.ShiftModifier)

    @property
    def alt(self) -> bool:
        return self.has(Qt.KeyboardModifier.AltModifier)

    @property
    def ctrl(self) -> bool:
        return self.has(Qt.KeyboardModifier.ControlModifier)


@dataclass
class DragState:
    node_ids: list[str]
    start_positions: dict[str, Position]
    pointer_start: QPointF


@dataclass
class WireState:
    node_id: str
    direction: PortDirection
    hot: bool
    end: QPointF                    # world coordinates


@dataclass
class ResizeState:
    node_id: str
    corner: ResizeCorner
    start_width: float
    start_height: float
    start_position: Position
    pointer_start: QPointF
    aspect_ratio: float


@dataclass
class PanState:
    pointer_start: QPointF
    viewport_start: Viewport


@dataclass
class PendingConnection:
    """A completed wire waiting for its kind to be chosen."""
    source_id: str
    target_id: str
    screen_pos: QPointF = field(default_factory=QPointF)


class InteractionController(QObject):
    """
    Gesture interpreter for one pointer stream.

    Signals:
        stateChanged(InteractionState): a gesture started or ended
        connectionProposed(source_id, target_id): a wire was completed and
            awaits confirm_connection() or cancel_connection()
        wireChanged(): the temporary wire appeared, moved or went away
    """

    stateChanged = pyqtSignal(object)
    connectionProposed = pyqtSignal(str, str)
    wireChanged = pyqtSignal()

    def __init__(self, editor: GraphEditor, parent=None):
        super().__init__(parent)
        self.editor = editor
        self.store = editor.store
        self._state = InteractionState.IDLE
        self._drag: Optional[DragState] = None
        self._wire: Optional[WireState] = None
        self._resize: Optional[ResizeState] = None
        self._pan: Optional[PanState] = None
        self._pending: Optional[PendingConnection] = None
        self._pinch_distance: Optional[float] = None

    # ---- State -------------------------------------------------------------

    @property
    def state(self) -> InteractionState:
        return self._state

    @property
    def drag(self) -> Optional[DragState]:
        return self._drag

    @property
    def wire(self) -> Optional[WireState]:
        return self._wire

    @property
    def resize(self) -> Optional[ResizeState]:
        return self._resize

    @property
    def pending_connection(self) -> Optional[PendingConnection]:
        return self._pending

    def _set_state(self, state: InteractionState):
        if state != self._state:
            logger.debug(f"Interaction {self._state.name} -> {state.name}")
            self._state = state
            self.stateChanged.emit(state)

    def _set_wire(self, wire: Optional[WireState]):
        self._wire = wire
        self.wireChanged.emit()

    # ---- Hit testing -------------------------------------------------------

    def hit_test(self, sx: float, sy: float) -> HitTarget:
        """Find the port, resize handle or node body under a screen point."""
        world = self.editor.screen_to_world(sx, sy)
        zoom = self.store.viewport.zoom
        router = self.editor.router
        layout = self.editor.settings.node
        # Topmost node is the last one added
        nodes = list(reversed(list(self.store.nodes.values())))

        port_radius = PORT_HIT_RADIUS / zoom
        for node in nodes:
            for direction in (PortDirection.OUTPUT, PortDirection.INPUT):
                if not node.has_port(direction):
                    continue
                anchor = router.port_anchor(node, direction)
                if geometry.distance(anchor.x(), anchor.y(), world.x(), world.y()) <= port_radius:
                    return HitTarget(HitKind.PORT, node.id, direction=direction)

        for node in nodes:
            rect = geometry.node_rect(node, layout)
            if not rect.contains(world):
                continue
            corner = self._corner_at(rect, world)
            if corner is not None:
                return HitTarget(HitKind.RESIZE_HANDLE, node.id, corner=corner)
            return HitTarget(HitKind.NODE, node.id)

        return HitTarget()

    @staticmethod
    def _corner_at(rect, point: QPointF) -> Optional[ResizeCorner]:
        near_left = point.x() - rect.left() <= RESIZE_HANDLE_SIZE
        near_right = rect.right() - point.x() <= RESIZE_HANDLE_SIZE
        near_top = point.y() - rect.top() <= RESIZE_HANDLE_SIZE
        near_bottom = rect.bottom() - point.y() <= RESIZE_HANDLE_SIZE
        if near_top and near_left:
            return ResizeCorner.NW
        if near_top and near_right:
            return ResizeCorner.NE
        if near_bottom and near_left:
            return ResizeCorner.SW
        if near_bottom and near_right:
            return ResizeCorner.SE
        return None

    def _target(self, event: PointerEvent) -> HitTarget:
        return event.target if event.target is not None else self.hit_test(event.x, event.y)

    # ---- Pointer events ----------------------------------------------------

    def pointer_down(self, event: PointerEvent):
        if self._state != InteractionState.IDLE:
            return
        target = self._target(event)

        if self._wire is not None and self._wire.hot and target.kind == HitKind.PORT:
            self._complete_wire(target, event)
            return

        if target.kind == HitKind.PORT:
            self._begin_wire(event, target)
        elif target.kind == HitKind.RESIZE_HANDLE:
            self._begin_resize(event, target)
        elif target.kind == HitKind.NODE:
            self._begin_node_drag(event, target)
        elif target.kind == HitKind.CONNECTION and event.alt:
            self.editor.disconnect(target.connection_id)
        else:
            self._pan = PanState(QPointF(event.x, event.y), Viewport(
                self.store.viewport.x, self.store.viewport.y, self.store.viewport.zoom))
            self._set_state(InteractionState.PANNING)

    def pointer_move(self, event: PointerEvent):
        if self._state == InteractionState.PANNING:
            start = self._pan.viewport_start
            self.store.set_viewport(Viewport(
                start.x + event.x - self._pan.pointer_start.x(),
                start.y + event.y - self._pan.pointer_start.y(),
                self.store.viewport.zoom,
            ))
        elif self._state == InteractionState.NODE_DRAGGING:
            self._move_nodes(event)
        elif self._state == InteractionState.RESIZING:
            self._resize_node(event)

        if self._wire is not None:
            if self._wire.node_id not in self.store.nodes:
                logger.debug("Wired node was removed, dropping the wire")
                self._drop_stale_wire()
                return
            self._wire.end = self.editor.screen_to_world(event.x, event.y)
            self.wireChanged.emit()

    def _drop_stale_wire(self):
        self._set_wire(None)
        if self._state == InteractionState.WIRE_DRAGGING:
            self._set_state(InteractionState.IDLE)

    def pointer_up(self, event: PointerEvent):
        state = self._state
        if state == InteractionState.PANNING:
            start = self._pan.pointer_start
            moved = geometry.distance(start.x(), start.y(), event.x, event.y)
            if moved < self.editor.settings.canvas.click_threshold:
                self.store.clear_selection()
            self._pan = None
        elif state == InteractionState.NODE_DRAGGING:
            self._finish_node_drag()
        elif state == InteractionState.RESIZING:
            self._resize = None
            self.editor.commit_edit()
        elif state == InteractionState.WIRE_DRAGGING:
            target = self._target(event)
            if target.kind == HitKind.PORT:
                self._complete_wire(target, event)
            elif self._wire is not None and not self._wire.hot:
                self._set_wire(None)
        self._set_state(InteractionState.IDLE)

    # ---- Node dragging -----------------------------------------------------

    def _begin_node_drag(self, event: PointerEvent, target: HitTarget):
        node_id = target.node_id
        if node_id not in self.store.nodes:
            return

        if event.shift:
            if self.store.is_selected(node_id):
                self.store.remove_from_selection(node_id)
            else:
                self.store.add_to_selection(node_id)
        elif not self.store.is_selected(node_id):
            self.store.set_selection([node_id])

        node_ids = self.store.selection
        if event.alt and node_ids:
            clones = self.editor.duplicate_nodes(node_ids, commit=False)
            node_ids = [c.id for c in clones]
        self._start_drag(node_ids, event)

    def _start_drag(self, node_ids: list[str], event: PointerEvent):
        if not node_ids:
            return
        self._drag = DragState(
            node_ids=list(node_ids),
            start_positions={
                nid: Position(self.store.nodes[nid].position.x, self.store.nodes[nid].position.y)
                for nid in node_ids
            },
            pointer_start=QPointF(event.x, event.y),
        )
        self._set_state(InteractionState.NODE_DRAGGING)

    def _move_nodes(self, event: PointerEvent):
        zoom = self.store.viewport.zoom
        dx = (event.x - self._drag.pointer_start.x()) / zoom
        dy = (event.y - self._drag.pointer_start.y()) / zoom
        alive = 0
        for nid in self._drag.node_ids:
            if nid not in self.store.nodes:
                continue
            alive += 1
            start = self._drag.start_positions[nid]
            self.store.set_position(nid, Position(start.x + dx, start.y + dy))
        if not alive:
            logger.debug("Dragged nodes were removed, ending drag")
            self._drag = None
            self._set_state(InteractionState.IDLE)

    def _finish_node_drag(self):
        grid = self.editor.settings.canvas.snap_size
        for nid in self._drag.node_ids:
            node = self.store.get_node(nid)
            if node is not None:
                self.store.set_position(nid, geometry.snap_position(node.position, grid))
        self._drag = None
        self.editor.commit_edit()

    # ---- Resizing ----------------------------------------------------------

    def _begin_resize(self, event: PointerEvent, target: HitTarget):
        node = self.store.get_node(target.node_id)
        if node is None:
            return
        width, height = geometry.node_size(node, self.editor.settings.node)
        self._resize = ResizeState(
            node_id=node.id,
            corner=target.corner or ResizeCorner.SE,
            start_width=width,
            start_height=height,
            start_position=Position(node.position.x, node.position.y),
            pointer_start=QPointF(event.x, event.y),
            aspect_ratio=width / height,
        )
        self._set_state(InteractionState.RESIZING)

    def _resize_node(self, event: PointerEvent):
        rs = self._resize
        if rs.node_id not in self.store.nodes:
            logger.debug("Resized node was removed, ending resize")
            self._resize = None
            self._set_state(InteractionState.IDLE)
            return

        dx = (event.x - rs.pointer_start.x()) / self.store.viewport.zoom
        if rs.corner in (ResizeCorner.SE, ResizeCorner.NE):
            factor = (rs.start_width + dx) / rs.start_width
        else:
            factor = (rs.start_width - dx) / rs.start_width

        width = rs.start_width * factor
        height = rs.start_height * factor
        layout = self.editor.settings.node
        if width < layout.min_width:
            width = layout.min_width
            height = width / rs.aspect_ratio
        if height < layout.min_height:
            height = layout.min_height
            width = height * rs.aspect_ratio

        x, y = rs.start_position.x, rs.start_position.y
        if event.alt:
            x -= (width - rs.start_width) / 2
            y -= (height - rs.start_height) / 2
        else:
            if rs.corner in (ResizeCorner.SW, ResizeCorner.NW):
                x += rs.start_width - width
            if rs.corner in (ResizeCorner.NE, ResizeCorner.NW):
                y += rs.start_height - height

        self.store.set_dimensions(rs.node_id, width, height, Position(x, y))

    # ---- Wiring ------------------------------------------------------------

    def _begin_wire(self, event: PointerEvent, target: HitTarget):
        node = self.store.get_node(target.node_id)
        if node is None:
            return

        if event.ctrl and event.alt and target.direction == PortDirection.OUTPUT:
            world = self.editor.screen_to_world(event.x, event.y)
            layout = self.editor.settings.node
            clone = self.editor.clone_node(
                node.id,
                Position(world.x() - layout.width / 2, world.y() - layout.default_height / 2),
                commit=False,
            )
            if clone is not None:
                self._start_drag([clone.id], event)
            return

        self._set_wire(WireState(
            node_id=node.id,
            direction=target.direction,
            hot=event.shift,
            end=self.editor.screen_to_world(event.x, event.y),
        ))
        self._set_state(InteractionState.WIRE_DRAGGING)

    def _complete_wire(self, target: HitTarget, event: PointerEvent):
        """
        Try to finish the wire on a port.

        Same node or same direction: a cold wire is dropped, a hot wire
        stays. An already wired pair drops the wire. Otherwise the pair is
        proposed and the wire is done.
        """
        wire = self._wire
        if wire is None:
            return
        if wire.node_id not in self.store.nodes:
            self._drop_stale_wire()
            return
        if target.node_id not in self.store.nodes:
            return
        if target.node_id == wire.node_id or target.direction == wire.direction:
            if not wire.hot:
                self._set_wire(None)
            return

        if wire.direction == PortDirection.OUTPUT:
            source_id, target_id = wire.node_id, target.node_id
        else:
            source_id, target_id = target.node_id, wire.node_id

        self._set_wire(None)
        if self.store.has_connection(source_id, target_id):
            logger.debug(f"Wire {source_id} -> {target_id} already exists")
            return

        self._pending = PendingConnection(source_id, target_id, QPointF(event.x, event.y))
        self.connectionProposed.emit(source_id, target_id)

    def confirm_connection(self, kind: ConnectionKind = ConnectionKind.DIRECT) -> Optional[Connection]:
        """Insert the proposed connection with the chosen kind."""
        pending = self._pending
        if pending is None:
            return None
        self._pending = None
        return self.editor.connect(pending.source_id, pending.target_id, kind)

    def cancel_connection(self):
        self._pending = None

    def temp_wire_path(self) -> Optional[WirePath]:
        if self._wire is None:
            return None
        node = self.store.get_node(self._wire.node_id)
        if node is None:
            return None
        return self.editor.router.route_temp_wire(
            node, self._wire.direction, self._wire.end, self.store.viewport.zoom)

    # ---- Wheel and pinch ---------------------------------------------------

    def wheel(self, x: float, y: float, delta_y: float, delta_x: float = 0.0,
              modifiers: Qt.KeyboardModifier = Qt.KeyboardModifier.NoModifier):
        """Shift-wheel pans; plain wheel zooms about the pointer."""
        if modifiers & Qt.KeyboardModifier.ShiftModifier:
            self.editor.pan_by(-delta_y, -delta_x)
            return
        step = -delta_y * self.editor.settings.canvas.zoom_sensitivity
        self.editor.zoom_at(self.store.viewport.zoom + step, x, y)

    def pinch_begin(self, distance: float):
        self._pinch_distance = distance

    def pinch_update(self, cx: float, cy: float, distance: float):
        if self._pinch_distance is None:
            return
        step = (distance - self._pinch_distance) * self.editor.settings.canvas.pinch_sensitivity
        self.editor.zoom_at(self.store.viewport.zoom + step, cx, cy)
        self._pinch_distance = distance

    def pinch_end(self):
        self._pinch_distance = None

    # ---- Keyboard ----------------------------------------------------------

    def key_press(self, key: Qt.Key,
                  modifiers: Qt.KeyboardModifier = Qt.KeyboardModifier.NoModifier) -> bool:
        """Handle the keys the engine owns. Returns True if consumed."""
        if key == Qt.Key.Key_Escape:
            self.escape()
            return True
        if key in (Qt.Key.Key_Delete, Qt.Key.Key_Backspace):
            if self._state != InteractionState.IDLE:
                return False
            return bool(self.editor.remove_selected())
        return False

    def escape(self):
        """
        Return to idle: finish any drag or resize, drop the wire, the
        proposal and the teleport buffer, and clear the selection.
        """
        if self._state == InteractionState.NODE_DRAGGING and self._drag is not None:
            self._finish_node_drag()
        elif self._state == InteractionState.RESIZING and self._resize is not None:
            self._resize = None
            self.editor.commit_edit()
        self._drag = None
        self._pan = None
        if self._wire is not None:
            self._set_wire(None)
        self._set_state(InteractionState.IDLE)

        self.store.clear_selection()
        self._pending = None
        self.editor.cancel_teleport()
