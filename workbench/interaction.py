"""Pointer-driven state machine for a document's current page.

The window forwards scene-coordinate pointer events to
:class:`SceneInteraction`; everything here runs synchronously and leaves
the document consistent before returning.
"""
import logging
from enum import Enum
from typing import Dict, Optional

from PyQt6.QtCore import Qt, QPointF, QRectF

from workbench.catalog import ComponentType
from workbench.commands import AddWireCommand, AddTextCommand
from workbench.data import ComponentInstance, Wire, TextNote, WireEnd
from workbench.errors import CreationLimitError, IntegrityError, IllegalModeError
from workbench.graphical import Hit, HitKind
from workbench.layout import PortHandle

logger = logging.getLogger(__name__)

LEFT_BUTTON = Qt.MouseButton.LeftButton


class SceneMode(Enum):
    DO_NOTHING = 0
    SELECT_MOVE = 1
    ADD_COMPONENT = 2
    ADD_WIRE = 3
    ADD_TEXT = 4
    MOVE_WIRE_HANDLE = 5
    RUBBER_BAND_SELECT = 6


ADD_MODES = (SceneMode.ADD_COMPONENT, SceneMode.ADD_WIRE, SceneMode.ADD_TEXT)


class SceneInteraction:
    def __init__(self, document):
        self.document = document
        self.mode = SceneMode.SELECT_MOVE
        self.component_type: Optional[ComponentType] = None

        self.press_pos: Optional[QPointF] = None
        self.delay_active = False
        self.rubber_band: Optional[QRectF] = None

        self.wire: Optional[Wire] = None
        self.wire_command: Optional[AddWireCommand] = None
        self.wire_end: Optional[WireEnd] = None
        self.middle_wire: Optional[Wire] = None
        self.port: Optional[PortHandle] = None
        self.drag_origins: Dict[int, QPointF] = {}
        self.drag_items = []

    @property
    def scene(self):
        return self.document.scene

    @property
    def preferences(self):
        return self.document.preferences

    def set_mode(self, mode: SceneMode):
        if not isinstance(mode, SceneMode):
            logger.error("illegal mode %r", mode)
            raise IllegalModeError(mode)
        if mode == SceneMode.ADD_COMPONENT and self.component_type is None:
            mode = SceneMode.DO_NOTHING
        if mode != self.mode:
            logger.debug("mode %s -> %s", self.mode.name, mode.name)
        self.mode = mode
        self.scene.emit("mode_changed", mode)

    def set_component_type(self, ctype: Optional[ComponentType]):
        """Choose the catalog entry placed by ADD_COMPONENT; None disables placing."""
        self.component_type = ctype
        if ctype is None and self.mode == SceneMode.ADD_COMPONENT:
            self.set_mode(SceneMode.DO_NOTHING)

    def _return_to_select(self, preference: bool):
        if preference:
            self.set_mode(SceneMode.SELECT_MOVE)

    # pointer events

    def press(self, point: QPointF, button=LEFT_BUTTON):
        if self.mode in ADD_MODES and button != LEFT_BUTTON:
            return
        self.press_pos = QPointF(point)
        self.delay_active = True

        if self.mode == SceneMode.DO_NOTHING:
            return
        elif self.mode == SceneMode.SELECT_MOVE:
            self._press_select(point, button)
        elif self.mode == SceneMode.ADD_COMPONENT:
            self._place_component(point)
        elif self.mode == SceneMode.ADD_WIRE:
            self._start_wire(point)
        elif self.mode == SceneMode.ADD_TEXT:
            self._place_text(point)
        elif self.mode in (SceneMode.MOVE_WIRE_HANDLE, SceneMode.RUBBER_BAND_SELECT):
            # a press while a drag is still open restarts from select mode
            self.mode = SceneMode.SELECT_MOVE
            self._press_select(point, button)
        else:
            logger.error("illegal mode %r", self.mode)
            raise IllegalModeError(self.mode)

    def move(self, point: QPointF):
        if self.mode == SceneMode.ADD_WIRE:
            if self.wire is not None:
                self.wire.update_end_point(point)
        elif self.mode == SceneMode.MOVE_WIRE_HANDLE:
            self.wire.update_point(self.wire_end, point)
        elif self.mode == SceneMode.RUBBER_BAND_SELECT:
            self.rubber_band = QRectF(self.press_pos, point).normalized()
        elif self.mode == SceneMode.SELECT_MOVE:
            self._drag(point)

    def release(self, point: QPointF, button=LEFT_BUTTON):
        if self.mode == SceneMode.ADD_WIRE:
            if self.wire is not None:
                self.wire.update_end_point(point)
            self._finish_wire()
        elif self.mode == SceneMode.MOVE_WIRE_HANDLE:
            self.wire.update_point(self.wire_end, point)
            self.scene.emit("wire_final_placement", self.wire)
            self.wire = None
            self.wire_end = None
            self.mode = SceneMode.SELECT_MOVE
        elif self.mode == SceneMode.RUBBER_BAND_SELECT:
            rect = QRectF(self.press_pos, point).normalized()
            self.scene.clear_selection()
            self.scene.select_hits(self.scene.hits_in_rect(rect))
            self.rubber_band = None
            self.mode = SceneMode.SELECT_MOVE
        elif self.mode == SceneMode.SELECT_MOVE:
            if self.middle_wire is not None:
                self.middle_wire.finish_middle_drag()
        self._end_drag()

    def _end_drag(self):
        self.press_pos = None
        self.delay_active = False
        self.middle_wire = None
        self.port = None
        self.drag_items = []
        self.drag_origins.clear()

    def _past_delay(self, point: QPointF) -> bool:
        if not self.delay_active:
            return True
        if (point - self.press_pos).manhattanLength() <= self.preferences.move_delay_pixels:
            return False
        self.delay_active = False
        return True

    # select/move

    def _press_select(self, point: QPointF, button):
        self.scene.report_selected(None, None)
        hit = self.scene.hit_test(point, button)
        if hit is None:
            if button == LEFT_BUTTON:
                self.scene.clear_selection()
                self.rubber_band = QRectF(point, point)
                self.mode = SceneMode.RUBBER_BAND_SELECT
            return

        if hit.kind == HitKind.WIRE_HANDLE:
            self._press_wire_handle(hit)
        elif hit.kind == HitKind.COMPONENT:
            component = hit.item
            if not component.selected:
                self.scene.select_single(component)
            self.scene.report_selected(component, component.properties)
            if button == LEFT_BUTTON:
                self._begin_group_drag()
        elif hit.kind in (HitKind.WIRE_SEGMENT, HitKind.WIRE):
            wire = hit.item
            self.scene.select_single(wire)
            self.scene.report_selected(wire, wire.properties)
            if hit.segment == 1:
                self.middle_wire = wire
        elif hit.kind == HitKind.PORT:
            handle = hit.item
            self.scene.clear_selection()
            handle.selected = True
            self.scene.report_selected(handle, handle.properties)
            if handle.component.moving_ports:
                self.port = handle
        elif hit.kind == HitKind.TEXT:
            if not hit.item.selected:
                self.scene.select_single(hit.item)
            self._begin_group_drag()

    def _press_wire_handle(self, hit: Hit):
        wire = hit.item
        if not isinstance(wire, Wire) or not self.scene.contains_item(wire):
            logger.error("wire handle without a wire at press")
            raise IntegrityError("WIRE HANDLE CANNOT FIND WIRE")
        self.scene.select_single(wire)
        self.scene.report_selected(wire, wire.properties)
        self.wire = wire
        self.wire_end = hit.end
        self.mode = SceneMode.MOVE_WIRE_HANDLE

    def _begin_group_drag(self):
        self.drag_items = self.scene.selected_components() + self.scene.selected_texts()
        self.drag_origins = {id(item): QPointF(item.pos) for item in self.drag_items}

    def _drag(self, point: QPointF):
        if self.press_pos is None or not self._past_delay(point):
            return
        delta = point - self.press_pos

        if self.port is not None:
            component = self.port.component
            self.document.move_port(self.port, point - component.pos)
            return
        if self.middle_wire is not None:
            self.middle_wire.drag_middle(delta.x())
            return
        for item in self.drag_items:
            target = self.drag_origins[id(item)] + delta
            if isinstance(item, ComponentInstance):
                item.set_pos(self.preferences.snap(target))
            else:
                item.set_pos(target)

    # placement

    def _place_component(self, point: QPointF):
        if self.component_type is None:
            return
        self.place_component(self.component_type, point)
        self._return_to_select(self.preferences.return_to_select_after_component)

    def place_component(self, ctype: ComponentType, point: QPointF) -> Optional[ComponentInstance]:
        """Place ``ctype`` at ``point``; a refused placement warns and returns None."""
        try:
            return self.document.create_component(ctype, self.preferences.snap(point))
        except CreationLimitError as e:
            logger.warning("placement refused: %s", e)
            self.scene.emit("warning", "Creation Limit", str(e))
            return None

    def drop_component(self, ctype: ComponentType, point: QPointF) -> Optional[ComponentInstance]:
        component = self.place_component(ctype, point)
        self.scene.emit("drag_and_drop_finished")
        return component

    def _start_wire(self, point: QPointF):
        start = self.preferences.snap(point)
        wire = Wire(self.document.counters.next_wire_index(), start, start)
        command = AddWireCommand(self.scene, wire)
        self.document.undo_stack.push(command)
        wire.set_wire_selected(True)
        self.wire = wire
        self.wire_command = command

    def _finish_wire(self):
        wire, command = self.wire, self.wire_command
        self.wire = None
        self.wire_command = None
        if wire is None:
            return
        wire.set_wire_selected(False)
        self.scene.emit("wire_final_placement", wire)
        prefs = self.preferences
        if prefs.auto_delete_short_wires and wire.length <= prefs.short_wire_length:
            logger.debug("wire #%d too short (%.1f), discarded", wire.index, wire.length)
            command.discard()
            self.document.undo_stack.undo()
        self._return_to_select(prefs.return_to_select_after_wire)

    def _place_text(self, point: QPointF):
        note = TextNote(point)
        self.document.undo_stack.push(AddTextCommand(self.scene, note))
        self._return_to_select(self.preferences.return_to_select_after_text)

    # keyboard and focus

    def escape(self):
        """Leave moving-ports mode and abandon any rubber band."""
        if self.document.moving_ports_component is not None:
            self.document.set_moving_ports(self.document.moving_ports_component, False)
        if self.mode == SceneMode.RUBBER_BAND_SELECT:
            self.rubber_band = None
            self.mode = SceneMode.SELECT_MOVE
        self._end_drag()

    def text_lost_focus(self, note: TextNote):
        note.lost_focus()
