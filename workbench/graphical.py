import itertools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from PyQt6.QtCore import Qt, QPointF, QRectF

from workbench.data import ComponentInstance, Wire, TextNote, WireEnd
from workbench.layout import PortHandle

logger = logging.getLogger(__name__)


class SceneListener:
    """Receives scene notifications; every hook is a no-op by default.

    The property grid, the main window and the dirty-flag tracking are
    listeners.  Notifications fire synchronously in the order the scene
    emits them.
    """

    def item_selected(self, item):
        pass

    def properties_selected(self, properties):
        pass

    def properties_refresh(self, properties):
        pass

    def modified(self):
        pass

    def component_added(self, component):
        pass

    def text_added(self, text):
        pass

    def wire_initial_placement(self, wire):
        pass

    def wire_final_placement(self, wire):
        pass

    def warning(self, title: str, message: str):
        pass

    def drag_and_drop_finished(self):
        pass

    def mode_changed(self, mode):
        pass


class HitKind(Enum):
    WIRE_HANDLE = 1
    COMPONENT = 2
    WIRE_SEGMENT = 3
    WIRE = 4
    PORT = 5
    TEXT = 6


@dataclass
class Hit:
    kind: HitKind
    item: object
    end: Optional[WireEnd] = None
    segment: int = -1

    @property
    def properties(self):
        if self.kind == HitKind.TEXT:
            return None
        return self.item.properties


class Scene:
    """Owns the live components, wires and text notes of one page."""

    def __init__(self):
        self.components: List[ComponentInstance] = []
        self.wires: List[Wire] = []
        self.texts: List[TextNote] = []
        self.listeners: List[SceneListener] = []
        # raised by a running undo command
        self.executing = False
        self.__stack: Dict[int, int] = {}
        self.__counter = itertools.count()

    def add_listener(self, listener: SceneListener):
        self.listeners.append(listener)

    def emit(self, event: str, *args):
        for listener in list(self.listeners):
            getattr(listener, event)(*args)

    def notify_modified(self):
        # changes made by a running command are tracked by the undo stack
        if not self.executing:
            self.emit("modified")

    def notify_properties_refresh(self, properties):
        self.emit("properties_refresh", properties)

    def report_selected(self, item, properties):
        self.emit("item_selected", item)
        self.emit("properties_selected", properties)

    # membership

    def _attach(self, item):
        item.scene = self
        self.__stack[id(item)] = next(self.__counter)

    def _detach(self, item):
        item.scene = None
        item.selected = False
        self.__stack.pop(id(item), None)

    def add_component(self, component: ComponentInstance, select_single: bool = True):
        self.components.append(component)
        self._attach(component)
        if select_single:
            self.select_single(component)
        self.report_selected(component, component.properties)
        self.emit("component_added", component)
        logger.debug("component %s added", component.unique_name)

    def remove_component(self, component: ComponentInstance):
        component.disconnect_all_ports()
        if component.moving_ports:
            component.set_moving_ports(False)
        for handle in component.handles:
            handle.selected = False
        self.components.remove(component)
        self._detach(component)
        self.report_selected(None, None)
        logger.debug("component %s removed", component.unique_name)

    def add_wire(self, wire: Wire, update_both_points: bool = True):
        self.wires.append(wire)
        self._attach(wire)
        self.emit("wire_initial_placement", wire)
        wire.update_start_point(wire.start, resolve_end=update_both_points)
        if update_both_points:
            wire.update_end_point(wire.end)

    def remove_wire(self, wire: Wire):
        wire.disconnect_all_ports()
        self.wires.remove(wire)
        self._detach(wire)
        self.report_selected(None, None)

    def add_text(self, text: TextNote, select_single: bool = True):
        self.texts.append(text)
        self._attach(text)
        if select_single:
            self.select_single(text)
        self.report_selected(None, None)
        self.emit("text_added", text)

    def remove_text(self, text: TextNote):
        self.texts.remove(text)
        self._detach(text)
        self.report_selected(None, None)

    def contains_item(self, item) -> bool:
        return id(item) in self.__stack

    # ordering and lookup

    def _sort_key(self, item):
        return item.z, self.__stack.get(id(item), 0)

    def _descending(self, items):
        return sorted(items, key=self._sort_key, reverse=True)

    def items(self) -> list:
        """All top-level items, topmost first."""
        return self._descending(self.components + self.wires + self.texts)

    def is_empty(self) -> bool:
        return not (self.components or self.wires or self.texts)

    def ports_at(self, point: QPointF) -> List[PortHandle]:
        found = []
        for component in self.components:
            for handle in component.handles:
                if handle.contains(point):
                    found.append(handle)
        return found

    def live_count(self, key: str) -> int:
        return sum(1 for c in self.components if c.key == key)

    def hit_test(self, point: QPointF, button=Qt.MouseButton.LeftButton) -> Optional[Hit]:
        """Return the entity under ``point`` by kind priority, topmost first within a kind.

        Wire handles, wire segments, ports and text are only hit with the
        left button; components are hit with either button.
        """
        left = button == Qt.MouseButton.LeftButton
        wires = self._descending(self.wires)
        components = self._descending(self.components)

        if left:
            for wire in wires:
                for end in (WireEnd.START, WireEnd.END):
                    if wire.handle_visible(end) and wire.handle_rect(end).contains(point):
                        return Hit(HitKind.WIRE_HANDLE, wire, end=end)
        for component in components:
            if component.contains(point):
                return Hit(HitKind.COMPONENT, component)
        if not left:
            return None
        for wire in wires:
            segment = wire.segment_at(point)
            if segment >= 0:
                return Hit(HitKind.WIRE_SEGMENT, wire, segment=segment)
        for component in components:
            for handle in component.handles:
                if handle.contains(point):
                    return Hit(HitKind.PORT, handle)
        for text in self._descending(self.texts):
            if text.contains(point):
                return Hit(HitKind.TEXT, text)
        return None

    def hits_in_rect(self, rect: QRectF) -> List[Hit]:
        """Entities fully contained by ``rect``, topmost first."""
        hits = []
        for item in self.items():
            if isinstance(item, ComponentInstance):
                if rect.contains(item.scene_rect()):
                    hits.append(Hit(HitKind.COMPONENT, item))
                for handle in item.handles:
                    if rect.contains(handle.scene_rect()):
                        hits.append(Hit(HitKind.PORT, handle))
            elif isinstance(item, Wire):
                if rect.contains(item.bounding_rect()):
                    hits.append(Hit(HitKind.WIRE, item))
            elif isinstance(item, TextNote):
                if rect.contains(item.scene_rect()):
                    hits.append(Hit(HitKind.TEXT, item))
        return hits

    # selection

    def selected_items(self) -> list:
        return [item for item in self.items() if item.selected]

    def selected_components(self) -> List[ComponentInstance]:
        return [c for c in self.components if c.selected]

    def selected_wires(self) -> List[Wire]:
        return [w for w in self.wires if w.selected]

    def selected_texts(self) -> List[TextNote]:
        return [t for t in self.texts if t.selected]

    def selected_handles(self) -> List[PortHandle]:
        return [h for c in self.components for h in c.handles if h.selected]

    def clear_selection(self):
        for item in self.components + self.wires + self.texts:
            item.selected = False
        for handle in self.selected_handles():
            handle.selected = False

    def select_single(self, item):
        self.clear_selection()
        if item is not None:
            item.selected = True

    def select_all(self):
        for item in self.items():
            item.selected = True

    def set_nothing_selected(self):
        self.clear_selection()
        self.report_selected(None, None)

    def select_hits(self, hits: List[Hit]):
        """Select every hit; report the first component, port or wire to the listeners."""
        reported = False
        for hit in hits:
            hit.item.selected = True
            if not reported and hit.kind in (HitKind.COMPONENT, HitKind.PORT,
                                             HitKind.WIRE_SEGMENT, HitKind.WIRE):
                self.report_selected(hit.item, hit.properties)
                reported = True

    # bulk updates

    def refresh_all_wire_positions(self):
        for wire in self.items():
            if isinstance(wire, Wire):
                wire.update_start_point(wire.start)
                wire.update_end_point(wire.end)

    def set_component_fill_color(self, color: str):
        for component in self.selected_components():
            component.set_fill_color(color)

    def set_text_color(self, color: str):
        for text in self.selected_texts():
            text.set_color(color)

    def set_text_font(self, font: str):
        for text in self.selected_texts():
            text.set_font(font)


@dataclass
class PageView:
    """View state of a page as the window last showed it."""
    scene_rect: QRectF = None
    center: QPointF = None
    zoom: float = 100.0

    def __post_init__(self):
        if self.scene_rect is None:
            self.scene_rect = QRectF(-2500, -2500, 5000, 5000)
        if self.center is None:
            self.center = QPointF(0, 0)


class Page:
    def __init__(self, name: str, scene: Optional[Scene] = None, view: Optional[PageView] = None):
        self.name = name
        self.scene = scene if scene is not None else Scene()
        self.view = view if view is not None else PageView()

    def __repr__(self):
        return f"Page({self.name!r})"
