import logging
import math
from enum import Enum, IntEnum
from typing import Dict, List, Optional

from PyQt6.QtCore import Qt, QPointF, QRectF, QLineF

from workbench import config
from workbench.catalog import ComponentType, ComponentCategory, category_name, category_prefix, component_key
from workbench.layout import PortInfo, PortHandle, PortLayout
from workbench.properties import ItemProperties, READ_ONLY, READ_WRITE, to_int

logger = logging.getLogger(__name__)

COMPONENT_PROPERTY_USERNAME = "User Name"
COMPONENT_PROPERTY_UNIQUENAME = "Unique Name"
COMPONENT_PROPERTY_COMPNAME = "Component Name"
COMPONENT_PROPERTY_PARENTELEM = "Element Name"
COMPONENT_PROPERTY_DESCRIPTION = "Description"
COMPONENT_PROPERTY_TYPE = "Type"
COMPONENT_PROPERTY_INDEX = "Index"
COMPONENT_PROPERTY_COMMENT = "Comment"
COMPONENT_PROPERTY_RANK = "Rank"
COMPONENT_PROPERTY_WEIGHT = "Weight"

WIRE_PROPERTY_INDEX = "Index"
WIRE_PROPERTY_COMMENT = "Comment"

PEN_STYLE_SELECTED = Qt.PenStyle.DashLine.value
PEN_STYLE_DESELECTED = Qt.PenStyle.SolidLine.value


def point_to_segment_distance(p: QPointF, a: QPointF, b: QPointF) -> float:
    ax, ay = a.x(), a.y()
    bx, by = b.x(), b.y()
    px, py = p.x(), p.y()
    vx = bx - ax
    vy = by - ay
    vlen2 = vx * vx + vy * vy
    if vlen2 == 0:
        return math.hypot(px - ax, py - ay)
    t = ((px - ax) * vx + (py - ay) * vy) / vlen2
    t = max(0.0, min(1.0, t))
    return math.hypot(px - (ax + t * vx), py - (ay + t * vy))


class ItemCounters:
    """Session-wide index allocation; indices are never handed out twice."""

    def __init__(self):
        self.wire_index = 0
        self.component_index_by_key: Dict[str, int] = {}

    def next_wire_index(self) -> int:
        self.wire_index += 1
        return self.wire_index

    def next_component_index(self, key: str) -> int:
        index = self.component_index_by_key.get(key, 0)
        self.component_index_by_key[key] = index + 1
        return index


class ComponentInstance:
    """A placed component with its ports and configuration properties."""

    def __init__(self):
        self.category = ComponentCategory.UNCATEGORIZED
        self.index = 0
        self.element_name = ""
        self.user_name = ""
        self.unique_name = ""
        self.name = ""
        self.description = ""
        self.type_name = ""
        self.allowed_instances = -1
        self.fill_color = config.DEFAULT_COMPONENT_FILL
        self.display_name = ""
        self.display_type_name = ""
        self.pos = QPointF(0, 0)
        self.z = config.COMPONENT_Z
        self.selected = False
        self.moving_ports = False
        self.scene = None
        self.port_infos: List[PortInfo] = []
        self.layout = PortLayout(self)
        self.properties = ItemProperties(self)

    @staticmethod
    def from_type(ctype: ComponentType, index: int, pos: QPointF,
                  fill_color: str = config.DEFAULT_COMPONENT_FILL) -> "ComponentInstance":
        comp = ComponentInstance()
        comp.category = ctype.category
        comp.index = index
        comp.element_name = ctype.element_name
        comp.user_name = ctype.name
        comp.name = ctype.name
        comp.description = ctype.description
        comp.type_name = category_name(ctype.category)
        comp.allowed_instances = ctype.allowed_instances
        comp.fill_color = fill_color
        comp.pos = QPointF(pos)
        comp.create_display_name()

        comp.port_infos = [PortInfo(p.name, p.description, p.valid_events) for p in ctype.ports]
        PortLayout.assign_initial_sides(comp.port_infos)

        props = comp.properties
        if comp.category != ComponentCategory.STARTUP_CONFIGURATION:
            props.add_property(COMPONENT_PROPERTY_USERNAME, comp.user_name, "User Assigned Name", READ_WRITE)
            props.add_property(COMPONENT_PROPERTY_UNIQUENAME, comp.unique_name, "Unique Name For Component", READ_ONLY)
            props.add_property(COMPONENT_PROPERTY_PARENTELEM, comp.element_name, "Parent Element Name", READ_ONLY)
            props.add_property(COMPONENT_PROPERTY_COMPNAME, comp.name, "Base Component Name", READ_ONLY)
            props.add_property(COMPONENT_PROPERTY_INDEX, str(comp.index), "Component Index", READ_ONLY)
            props.add_property(COMPONENT_PROPERTY_TYPE, comp.type_name, "Type of Component", READ_ONLY)
            props.add_property(COMPONENT_PROPERTY_DESCRIPTION, comp.description, "Component Description", READ_ONLY)
            props.add_property(COMPONENT_PROPERTY_COMMENT, "", "Comment on this Component", READ_WRITE)
            props.add_property(COMPONENT_PROPERTY_RANK, "", "Rank of Component (int)", READ_WRITE)
            props.add_property(COMPONENT_PROPERTY_WEIGHT, "", "Weight of Component (float)", READ_WRITE)
        else:
            props.add_property(COMPONENT_PROPERTY_COMPNAME, comp.name, "Component Name", READ_ONLY)
            props.add_property(COMPONENT_PROPERTY_COMMENT, "", "Comment on this Component", READ_WRITE)
        for param in ctype.params:
            props.add_property(param.name, param.default_value, param.description)

        comp.build_ports()
        return comp

    def __repr__(self):
        return f"ComponentInstance({self.unique_name!r})"

    @property
    def key(self) -> str:
        return component_key(self.element_name, self.name)

    @property
    def handles(self) -> List[PortHandle]:
        return list(self.layout.handles)

    def build_ports(self):
        """Create the handles from the port infos and run a full layout."""
        for info in self.port_infos:
            info.realized = 0
        self.layout.create_initial()
        self.layout.update()

    def create_display_name(self):
        if self.name == self.user_name:
            display = f"{self.element_name}.{self.user_name}"
        else:
            display = self.user_name
        if self.category == ComponentCategory.STARTUP_CONFIGURATION:
            display = self.name
        self.user_name = display
        self.display_name = display
        self.display_type_name = category_prefix(self.category)
        self.unique_name = f"{self.element_name}.{self.name}.{self.index}"

    @property
    def display_label(self) -> str:
        if self.moving_ports:
            return self.display_name + "\n" + config.MOVING_PORTS_BANNER
        return self.display_name

    def set_index(self, index: int):
        self.index = index
        self.create_display_name()
        self.properties.set_value(COMPONENT_PROPERTY_INDEX, str(index), callback=False)
        self.properties.set_value(COMPONENT_PROPERTY_UNIQUENAME, self.unique_name, callback=False)

    def rect(self) -> QRectF:
        return self.layout.rect()

    def scene_rect(self) -> QRectF:
        return self.rect().translated(self.pos)

    def contains(self, point: QPointF) -> bool:
        return self.scene_rect().contains(point)

    def set_pos(self, pos: QPointF):
        self.pos = QPointF(pos)
        self.refresh_attached_wires()
        self.set_modified()

    def set_fill_color(self, color: str):
        self.fill_color = color
        self.set_modified()

    def set_moving_ports(self, flag: bool):
        self.moving_ports = flag
        self.layout.update()

    def refresh_attached_wires(self):
        for handle in self.layout.handles:
            wire = handle.connected_wire
            if wire is None:
                continue
            if handle.connected_end == WireEnd.START:
                wire.update_start_point(handle.scene_connection_point)
            else:
                wire.update_end_point(handle.scene_connection_point)

    def disconnect_all_ports(self):
        for handle in self.layout.handles:
            handle.disconnect_from_wire()

    def set_modified(self):
        if self.scene is not None:
            self.scene.notify_modified()

    def property_changed(self, name: str, value: str):
        if name == COMPONENT_PROPERTY_USERNAME:
            self.user_name = value
            self.create_display_name()

        update = False
        for info in self.port_infos:
            if info.controlling_param and info.controlling_param == name:
                info.requested = max(0, to_int(value))
                update = True
        if update:
            self.layout.update()
            self.dynamic_properties_changed(self.properties)
        self.set_modified()

    def dynamic_properties_changed(self, properties):
        if self.scene is not None:
            self.scene.notify_properties_refresh(properties)


class WireEnd(Enum):
    START = "start"
    END = "end"


class ConnectedState(IntEnum):
    NONE = 0
    START = 1
    END = 2
    FULL = 3


class Wire:
    """Three orthogonal segments joining two points, each end optionally bound to a port."""

    def __init__(self, index: int, start: QPointF, end: QPointF):
        self.index = index
        self.pos = QPointF(0, 0)
        self.z = config.WIRE_SELECTED_Z
        self.start = QPointF(start)
        self.end = QPointF(end)
        self.middle_start = QPointF(start)
        self.middle_end = QPointF(end)
        self.middle_x = start.x()
        self.auto_route = True
        self.color = config.WIRE_COLOR_DISCONNECTED
        self.pen_style = PEN_STYLE_SELECTED
        self.connected_state = ConnectedState.NONE
        self.wire_selected = True
        self.scene = None
        self.start_port: Optional[PortHandle] = None
        self.end_port: Optional[PortHandle] = None
        self.properties = ItemProperties(self)
        self.properties.add_property(WIRE_PROPERTY_INDEX, str(index), "Wire Index", READ_ONLY)
        self.properties.add_property(WIRE_PROPERTY_COMMENT, "", "Comment on this Wire", READ_WRITE)

    def __repr__(self):
        return f"Wire(#{self.index}, {self.connected_state.name})"

    @property
    def length(self) -> float:
        return QLineF(self.start, self.end).length()

    def set_index(self, index: int):
        self.index = index
        self.properties.set_value(WIRE_PROPERTY_INDEX, str(index), callback=False)

    def port_at(self, end: WireEnd) -> Optional[PortHandle]:
        return self.start_port if end == WireEnd.START else self.end_port

    def point_at(self, end: WireEnd) -> QPointF:
        return self.start if end == WireEnd.START else self.end

    def update_start_point(self, point: QPointF, resolve_end: bool = True):
        self.start = QPointF(point)
        self._update_point_positions(resolve_end)

    def update_end_point(self, point: QPointF):
        self.end = QPointF(point)
        self._update_point_positions()

    def update_point(self, end: WireEnd, point: QPointF):
        if end == WireEnd.START:
            self.update_start_point(point)
        else:
            self.update_end_point(point)

    def _find_port(self, point: QPointF, end: WireEnd,
                   exclude: Optional[PortHandle] = None) -> Optional[PortHandle]:
        """Configured free port under ``point``; never the one held by the other end."""
        found = None
        if self.scene is None:
            return None
        other = self.end_port if end == WireEnd.START else self.start_port
        for handle in self.scene.ports_at(point):
            if handle is exclude or handle is other:
                continue
            if handle.connected_wire is None or (handle.connected_wire is self and handle.connected_end == end):
                if handle.configured:
                    found = handle
        return found

    def _update_point_positions(self, resolve_end: bool = True):
        start_found = self._find_port(self.start, WireEnd.START)
        if start_found is not None:
            self.start = start_found.scene_connection_point
        end_found = None
        if resolve_end:
            end_found = self._find_port(self.end, WireEnd.END, exclude=start_found)
            if end_found is not None:
                self.end = end_found.scene_connection_point

        if self.start_port is not None and self.wire_selected and start_found is None:
            self._unbind(WireEnd.START)
        if resolve_end and self.end_port is not None and self.wire_selected and end_found is None:
            self._unbind(WireEnd.END)

        if self.start_port is None and start_found is not None:
            self._bind(WireEnd.START, start_found)
        if self.end_port is None and end_found is not None:
            self._bind(WireEnd.END, end_found)

        self._update_connection_state()
        self._update_segments()

    def _bind(self, end: WireEnd, handle: PortHandle):
        handle.connected_wire = self
        handle.connected_end = end
        if end == WireEnd.START:
            self.start_port = handle
        else:
            self.end_port = handle

    def _unbind(self, end: WireEnd):
        handle = self.port_at(end)
        if handle is not None:
            handle.connected_wire = None
            handle.connected_end = None
        if end == WireEnd.START:
            self.start_port = None
        else:
            self.end_port = None

    def _update_connection_state(self):
        if self.start_port is not None and self.end_port is not None:
            self.connected_state = ConnectedState.FULL
        elif self.start_port is not None:
            self.connected_state = ConnectedState.START
        elif self.end_port is not None:
            self.connected_state = ConnectedState.END
        else:
            self.connected_state = ConnectedState.NONE
        if self.connected_state == ConnectedState.FULL:
            self.color = config.WIRE_COLOR_FULL_CONNECTED
        else:
            self.color = config.WIRE_COLOR_DISCONNECTED

    def _update_segments(self, middle_offset: float = 0.0):
        if self.auto_route:
            self.middle_x = self.start.x() + (self.end.x() - self.start.x()) / 2
        x = self.middle_x + middle_offset
        self.middle_start = QPointF(x, self.start.y())
        self.middle_end = QPointF(x, self.end.y())
        if self.scene is not None:
            self.scene.notify_modified()

    def drag_middle(self, dx: float):
        """Shift the vertical segment by ``dx``; the wire switches to manual routing."""
        self.auto_route = False
        self._update_segments(dx)

    def finish_middle_drag(self):
        self.middle_x = self.middle_start.x()

    def segments(self) -> List[QLineF]:
        return [QLineF(self.start, self.middle_start),
                QLineF(self.middle_start, self.middle_end),
                QLineF(self.middle_end, self.end)]

    def segment_at(self, point: QPointF, tolerance: float = config.WIRE_HIT_TOLERANCE) -> int:
        for i, seg in enumerate(self.segments()):
            if point_to_segment_distance(point, seg.p1(), seg.p2()) <= tolerance:
                return i
        return -1

    def bounding_rect(self) -> QRectF:
        xs = [self.start.x(), self.middle_start.x(), self.end.x()]
        ys = [self.start.y(), self.end.y()]
        return QRectF(QPointF(min(xs), min(ys)), QPointF(max(xs), max(ys)))

    def handle_visible(self, end: WireEnd) -> bool:
        return self.port_at(end) is None or self.wire_selected

    def handle_rect(self, end: WireEnd) -> QRectF:
        p = self.point_at(end)
        h = config.WIRE_HANDLE_HALF_SIZE
        return QRectF(p.x() - h, p.y() - h, 2 * h, 2 * h)

    @property
    def selected(self) -> bool:
        return self.wire_selected

    @selected.setter
    def selected(self, flag: bool):
        self.set_wire_selected(flag)

    def set_wire_selected(self, flag: bool):
        self.wire_selected = flag
        if flag:
            self.pen_style = PEN_STYLE_SELECTED
            self.z = config.WIRE_SELECTED_Z
        else:
            self.pen_style = PEN_STYLE_DESELECTED
            self.z = config.WIRE_DESELECTED_Z

    def disconnect_port(self, handle: PortHandle, move_x_offset: float = 0):
        if handle is self.start_port:
            self._unbind(WireEnd.START)
            self._update_connection_state()
            if move_x_offset:
                self.update_start_point(self.start + QPointF(move_x_offset, 0))
        if handle is self.end_port:
            self._unbind(WireEnd.END)
            self._update_connection_state()
            if move_x_offset:
                self.update_end_point(self.end + QPointF(move_x_offset, 0))

    def disconnect_all_ports(self):
        self._unbind(WireEnd.START)
        self._unbind(WireEnd.END)
        self._update_connection_state()

    def set_paste_position(self, offset: float):
        self.middle_x += offset
        self.update_start_point(self.start + QPointF(offset, offset))
        self.update_end_point(self.end + QPointF(offset, offset))

    def property_changed(self, name: str, value: str):
        if self.scene is not None:
            self.scene.notify_modified()


class TextNote:
    def __init__(self, pos: QPointF, text: str = "",
                 font: str = config.DEFAULT_TEXT_FONT, color: str = config.DEFAULT_TEXT_COLOR):
        self.pos = QPointF(pos)
        self.z = config.TEXT_Z
        self.text = text
        self.font = font
        self.color = color
        self.selected = False
        self.scene = None
        # set by a view that measured the rendered text
        self.size: Optional[QRectF] = None

    def __repr__(self):
        return f"TextNote({self.text!r})"

    def rect(self) -> QRectF:
        if self.size is not None:
            return QRectF(self.size)
        lines = self.text.split("\n") if self.text else [""]
        width = 8 * max(len(line) for line in lines) + 8
        height = 20 * len(lines)
        return QRectF(0, 0, width, height)

    def scene_rect(self) -> QRectF:
        return self.rect().translated(self.pos)

    def contains(self, point: QPointF) -> bool:
        return self.scene_rect().contains(point)

    def set_text(self, text: str):
        self.text = text
        if self.scene is not None:
            self.scene.notify_modified()

    def set_pos(self, pos: QPointF):
        self.pos = QPointF(pos)
        if self.scene is not None:
            self.scene.notify_modified()

    def set_color(self, color: str):
        self.color = color
        if self.scene is not None:
            self.scene.notify_modified()

    def set_font(self, font: str):
        self.font = font
        if self.scene is not None:
            self.scene.notify_modified()

    def lost_focus(self):
        if not self.text:
            self.set_text(config.EMPTY_TEXT_STRING)
