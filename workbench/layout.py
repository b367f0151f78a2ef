"""Port layout engine.

A component keeps one :class:`PortInfo` per catalog port definition and a
flat, ordered list of :class:`PortHandle` objects, the connectable ends that
are drawn.  :class:`PortLayout` reconciles the handles of every dynamic port
with its requested count, places the handles on the left and right edges and
implements the drag protocol used while a component is in moving-ports mode.
"""
import logging
import math
from enum import IntEnum
from typing import Dict, List, Optional

from PyQt6.QtCore import QPointF, QRectF

from workbench import config
from workbench.errors import IntegrityError
from workbench.properties import ItemProperties, READ_ONLY, READ_WRITE, split_dynamic_name, instance_name

logger = logging.getLogger(__name__)

PORT_PROPERTY_NAME = "Name"
PORT_PROPERTY_GENERIC_NAME = "Generic Name"
PORT_PROPERTY_ORIGINAL_NAME = "Original Port Name"
PORT_PROPERTY_DESCRIPTION = "Description"
PORT_PROPERTY_TYPE = "Port Type"
PORT_PROPERTY_CONTROLLING = "Component Controlling Property"
PORT_PROPERTY_COMMENT = "Comment"
PORT_PROPERTY_LATENCY = "Latency"

PORT_TYPE_STATIC = "Static"
PORT_TYPE_DYNAMIC = "Dynamic"


class Side(IntEnum):
    LEFT = 0
    RIGHT = 1

    def other(self) -> "Side":
        return Side.RIGHT if self == Side.LEFT else Side.LEFT


class PortInfo:
    """Runtime state of one port definition on one component."""

    def __init__(self, name: str = "", description: str = "",
                 valid_events: Optional[List[str]] = None,
                 side: Side = Side.LEFT, sequence: int = 0):
        self.original_name = name
        self.description = description
        self.valid_events = list(valid_events or [])
        self.name, self.dynamic, self.controlling_param = split_dynamic_name(name)
        self.configured = not self.dynamic
        self.configured_name = self.name if not self.dynamic else config.UNCONFIGURED_PORT_PREFIX + self.name
        self.requested = 0
        self.realized = 0
        self.side = side
        self.sequence = sequence
        self.latencies: List[str] = []
        self.comments: List[str] = []
        self.handles: List["PortHandle"] = []

    def latency(self, ordinal: int) -> str:
        return self.latencies[ordinal] if ordinal < len(self.latencies) else "0"

    def set_latency(self, ordinal: int, value: str):
        while len(self.latencies) <= ordinal:
            self.latencies.append("0")
        self.latencies[ordinal] = value

    def comment(self, ordinal: int) -> str:
        return self.comments[ordinal] if ordinal < len(self.comments) else ""

    def set_comment(self, ordinal: int, value: str):
        while len(self.comments) <= ordinal:
            self.comments.append("")
        self.comments[ordinal] = value


class PortHandle:
    """One connectable end of a port drawn on a component edge.

    Positions are in component-local coordinates; ``scene_connection_point``
    maps the wire attachment point into the scene.
    """

    def __init__(self, info: PortInfo, component):
        self.info = info
        self.component = component
        self.ordinal = 0
        self.configured = not info.dynamic
        self.configured_name = info.name
        self.start_point = QPointF(0, 0)
        self.connection_point = QPointF(10, 10)
        self.initial_point = QPointF(self.connection_point)
        self.connected_wire = None
        self.connected_end = None
        self.selected = False
        self.z = 0.0

        self.properties = ItemProperties(self)
        self.properties.add_property(PORT_PROPERTY_NAME, self.configured_name, "Port Name", READ_ONLY)
        if info.dynamic:
            self.properties.add_property(PORT_PROPERTY_GENERIC_NAME, info.name, "Generic Port Name", READ_ONLY)
            self.properties.add_property(PORT_PROPERTY_ORIGINAL_NAME, info.original_name, "Original Port Name", READ_ONLY)
        self.properties.add_property(PORT_PROPERTY_DESCRIPTION, info.description, "Port Description", READ_ONLY)
        if info.dynamic:
            self.properties.add_property(PORT_PROPERTY_TYPE, PORT_TYPE_DYNAMIC, "Port Type", READ_ONLY)
            self.properties.add_property(PORT_PROPERTY_CONTROLLING, info.controlling_param,
                                         "Component Parameter Controlling this Dynamic Port", READ_ONLY)
        else:
            self.properties.add_property(PORT_PROPERTY_TYPE, PORT_TYPE_STATIC, "Port Type", READ_ONLY)
        self.properties.add_property(PORT_PROPERTY_COMMENT, "", "Comment on this Port", READ_WRITE)
        self.properties.add_property(PORT_PROPERTY_LATENCY, "0", "The Latency for this Port", READ_WRITE)

        self.set_configured(self.configured, 0)

    def __repr__(self):
        return f"PortHandle({self.configured_name!r}, side={self.side.name}, ordinal={self.ordinal})"

    @property
    def side(self) -> Side:
        return self.info.side

    @property
    def sequence(self) -> int:
        return self.info.sequence

    @property
    def dynamic(self) -> bool:
        return self.info.dynamic

    def set_configured(self, configured: bool, ordinal: int):
        self.configured = configured
        if configured:
            self.ordinal = ordinal
            self.configured_name = instance_name(self.info.name, ordinal)
        else:
            self.ordinal = 0
            self.configured_name = config.UNCONFIGURED_PORT_PREFIX + self.info.name
        self.properties.set_value(PORT_PROPERTY_NAME, self.configured_name, callback=False)
        self.properties.set_value(PORT_PROPERTY_COMMENT, self.info.comment(self.ordinal), callback=False)
        self.properties.set_value(PORT_PROPERTY_LATENCY, self.info.latency(self.ordinal), callback=False)

    def set_position(self, edge_x: float, edge_y: float, update_initial_point: bool = True):
        self.start_point = QPointF(edge_x, edge_y)
        if self.side == Side.LEFT:
            self.connection_point = QPointF(edge_x - config.PORT_LINE_LENGTH, edge_y)
        else:
            self.connection_point = QPointF(edge_x + config.PORT_LINE_LENGTH, edge_y)
        if update_initial_point:
            self.initial_point = QPointF(self.connection_point)

    @property
    def scene_connection_point(self) -> QPointF:
        return self.component.pos + self.connection_point

    def scene_rect(self) -> QRectF:
        r = config.PORT_HIT_RADIUS
        c = self.scene_connection_point
        return QRectF(c.x() - r, c.y() - r, 2 * r, 2 * r)

    def contains(self, point: QPointF) -> bool:
        c = self.scene_connection_point
        return math.hypot(point.x() - c.x(), point.y() - c.y()) <= config.PORT_HIT_RADIUS

    def latency(self) -> str:
        return self.info.latency(self.ordinal)

    def comment(self) -> str:
        return self.info.comment(self.ordinal)

    def is_connected(self) -> bool:
        return self.connected_wire is not None

    def disconnect_from_wire(self, move_x_offset: float = 0):
        if self.connected_wire is not None:
            self.connected_wire.disconnect_port(self, move_x_offset)

    def property_changed(self, name: str, value: str):
        if name == PORT_PROPERTY_LATENCY:
            self.info.set_latency(self.ordinal, value)
        elif name == PORT_PROPERTY_COMMENT:
            self.info.set_comment(self.ordinal, value)
        self.component.set_modified()


class PortLayout:
    """Keeps a component's handles consistent with its port infos."""

    def __init__(self, component):
        self.component = component
        self.handles: List[PortHandle] = []
        self.left: List[PortHandle] = []
        self.right: List[PortHandle] = []
        self.height = config.COMPONENT_PORT_Y_OFFSET
        self._updating = False

    @property
    def infos(self) -> List[PortInfo]:
        return self.component.port_infos

    @staticmethod
    def assign_initial_sides(infos: List[PortInfo]):
        n_left = math.ceil(len(infos) / 2)
        left_seq = right_seq = 1
        for i, info in enumerate(infos):
            if i < n_left:
                info.side, info.sequence = Side.LEFT, left_seq
                left_seq += 1
            else:
                info.side, info.sequence = Side.RIGHT, right_seq
                right_seq += 1

    def rect(self) -> QRectF:
        return QRectF(config.COMPONENT_LEFT_X, config.COMPONENT_TOP_Y,
                      config.COMPONENT_WIDTH, self.height)

    def create_initial(self):
        """One handle per port info, placed by its side and sequence."""
        self.handles.clear()
        self.left.clear()
        self.right.clear()
        n_left = sum(1 for i in self.infos if i.side == Side.LEFT)
        self._set_box(n_left, len(self.infos) - n_left)
        for info in self.infos:
            handle = PortHandle(info, self.component)
            info.handles = [handle]
            info.realized = 0 if info.dynamic else 1
            x = config.COMPONENT_LEFT_X if info.side == Side.LEFT else config.COMPONENT_RIGHT_X
            handle.set_position(x, config.COMPONENT_PORT_Y_OFFSET * info.sequence)
            self.handles.append(handle)
            (self.left if info.side == Side.LEFT else self.right).append(handle)

    def _set_box(self, n_left: int, n_right: int):
        spacing = config.COMPONENT_PORT_Y_OFFSET
        self.height = max(n_left, n_right) * spacing + spacing

    def update(self):
        """Reconcile dynamic ports then recompute every handle position."""
        if self._updating:
            logger.error("port layout re-entered for %s", self.component.unique_name)
            raise IntegrityError("PORT LAYOUT UPDATE RE-ENTERED")
        self._updating = True
        try:
            self._reconcile()
            self._place()
        finally:
            self._updating = False
        self.component.refresh_attached_wires()

    def _reconcile(self):
        self.handles.clear()
        for info in self.infos:
            if not info.dynamic:
                self.handles.extend(info.handles)
                continue

            requested = info.requested
            created = info.realized
            if requested > created and requested > 1:
                if created == 0:
                    created = 1
                while requested > created:
                    handle = PortHandle(info, self.component)
                    handle.set_position(0, 0)
                    info.handles.append(handle)
                    created += 1

            offset = -config.PORT_DISCONNECT_MOVE_OFFSET if info.side == Side.LEFT \
                else config.PORT_DISCONNECT_MOVE_OFFSET
            if requested < created:
                keep = max(requested, 1)
                for handle in reversed(info.handles[keep:]):
                    handle.disconnect_from_wire(offset)
                    handle.selected = False
                del info.handles[keep:]

            info.realized = requested
            info.configured = requested >= 1
            if not info.configured:
                # the placeholder of an unconfigured port cannot hold a wire
                info.handles[0].disconnect_from_wire(offset)
            for ordinal, handle in enumerate(info.handles):
                handle.set_configured(info.configured, ordinal)
            info.configured_name = info.handles[0].configured_name
            self.handles.extend(info.handles)
        logger.debug("%s reconciled to %d handles", self.component.unique_name, len(self.handles))

    def _place(self):
        # Walk each side in sequence order; a configured dynamic port takes
        # one physical slot per realized handle.
        slots: Dict[int, int] = {}
        for side in (Side.LEFT, Side.RIGHT):
            physical = 1
            for info in sorted((i for i in self.infos if i.side == side),
                               key=lambda i: i.sequence):
                for handle in info.handles:
                    slots[id(handle)] = physical
                    physical += 1

        self.left = [h for h in self.handles if h.side == Side.LEFT]
        self.right = [h for h in self.handles if h.side == Side.RIGHT]
        self._set_box(len(self.left), len(self.right))

        for handle in self.handles:
            x = config.COMPONENT_LEFT_X if handle.side == Side.LEFT else config.COMPONENT_RIGHT_X
            handle.set_position(x, config.COMPONENT_PORT_Y_OFFSET * slots[id(handle)])

    def side_handles(self, side: Side) -> List[PortHandle]:
        return self.left if side == Side.LEFT else self.right

    def move_port(self, handle: PortHandle, new_pos: QPointF) -> bool:
        """Apply a drag of ``handle`` to ``new_pos`` (component coordinates).

        Returns True when the side or sequence changed and the layout was
        redrawn, False when the handle was only moved to the clamped point.
        """
        if not self.component.moving_ports:
            return False

        x, y = new_pos.x(), new_pos.y()
        current_side = handle.side
        current_seq = handle.sequence
        swap_sides = False

        if x <= 0:
            x = config.COMPONENT_LEFT_X
            swap_sides = current_side == Side.RIGHT
        else:
            x = config.COMPONENT_RIGHT_X
            swap_sides = current_side == Side.LEFT
        if y < config.COMPONENT_TOP_Y:
            y = config.COMPONENT_TOP_Y + 1
        if y > self.height:
            y = self.height - 1

        changed = False
        if swap_sides:
            self._reorder(handle, current_side, True, current_seq, 0)
            changed = True
        elif abs(handle.initial_point.y() - y) > config.COMPONENT_PORT_Y_OFFSET:
            if handle.initial_point.y() <= y:
                new_seq = current_seq + 1
            else:
                new_seq = current_seq - 1
            self._reorder(handle, current_side, False, current_seq, new_seq)
            changed = True

        if changed:
            logger.debug("port %s moved to %s #%d", handle.configured_name,
                         handle.side.name, handle.sequence)
            self.update()
        else:
            handle.set_position(x, y, update_initial_point=False)
            self.component.refresh_attached_wires()
        return changed

    def _reorder(self, handle: PortHandle, side: Side, swap_sides: bool, current_seq: int, new_seq: int):
        infos_on_side = [i for i in self.infos if i.side == side]
        if not swap_sides:
            for info in infos_on_side:
                if info is not handle.info and info.sequence == new_seq:
                    info.sequence = current_seq
                    handle.info.sequence = new_seq
                    break
            return

        highest = 0
        for info in sorted(infos_on_side, key=lambda i: i.sequence):
            if info.sequence > current_seq and info.sequence > highest:
                highest = info.sequence
                info.sequence -= 1

        new_side = side.other()
        highest = max((i.sequence for i in self.infos if i.side == new_side), default=0)
        handle.info.sequence = highest + 1
        handle.info.side = new_side
