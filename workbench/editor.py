import logging
from typing import List, Optional

from PyQt6.QtCore import QPointF
from PyQt6.QtGui import QUndoStack

from workbench.catalog import Catalog, ComponentType
from workbench.commands import AddComponentCommand, AddWireCommand, AddTextCommand, DeleteSelectionCommand
from workbench.config import Preferences
from workbench.data import ComponentInstance, ItemCounters, TextNote
from workbench.errors import CreationLimitError
from workbench.graphical import Page, Scene, SceneListener
from workbench.layout import PortHandle
from workbench import serializer

logger = logging.getLogger(__name__)


class Document(SceneListener):
    """One open project: pages, catalog, index counters and the undo stack.

    The document listens to every page's scene to track direct (non-undoable)
    edits.  External listeners added with ``add_listener`` are attached to
    all current and future pages.
    """

    def __init__(self, catalog: Optional[Catalog] = None, preferences: Optional[Preferences] = None):
        self.catalog = catalog if catalog is not None else Catalog()
        self.preferences = preferences if preferences is not None else Preferences()
        self.counters = ItemCounters()
        self.undo_stack = QUndoStack()
        self.pages: List[Page] = []
        self.current_index = 0
        self.listeners: List[SceneListener] = []
        self.filename: Optional[str] = None
        self.notice = ""
        self.clipboard: Optional[bytes] = None
        self.moving_ports_component: Optional[ComponentInstance] = None
        self._modified = False
        self.new_page()
        self._modified = False

    # listeners and the dirty flag

    def add_listener(self, listener: SceneListener):
        self.listeners.append(listener)
        for page in self.pages:
            page.scene.add_listener(listener)

    def _attach(self, page: Page):
        page.scene.add_listener(self)
        for listener in self.listeners:
            page.scene.add_listener(listener)

    def modified(self):
        self._modified = True

    @property
    def is_modified(self) -> bool:
        return self._modified or not self.undo_stack.isClean()

    def set_modified(self):
        self._modified = True

    def mark_saved(self):
        self.undo_stack.setClean()
        self._modified = False

    # pages

    @property
    def current_page(self) -> Page:
        return self.pages[self.current_index]

    @property
    def scene(self) -> Scene:
        return self.current_page.scene

    def page_names(self) -> List[str]:
        return [page.name for page in self.pages]

    def _unique_page_name(self) -> str:
        n = len(self.pages) + 1
        names = set(self.page_names())
        while f"Page {n}" in names:
            n += 1
        return f"Page {n}"

    def new_page(self, name: Optional[str] = None) -> Page:
        page = Page(name or self._unique_page_name())
        self._attach(page)
        self.pages.append(page)
        self.current_index = len(self.pages) - 1
        self.set_modified()
        logger.info("new page %r", page.name)
        return page

    def rename_page(self, index: int, name: str):
        old = self.pages[index].name
        self.pages[index].name = name
        self.set_modified()
        logger.info("page %r renamed to %r", old, name)

    def delete_page(self, index: int) -> bool:
        """Delete a page; the last remaining page cannot be deleted."""
        if len(self.pages) <= 1:
            logger.warning("cannot delete the last page")
            return False
        page = self.pages.pop(index)
        if self.moving_ports_component is not None and self.moving_ports_component.scene is page.scene:
            self.moving_ports_component = None
        # commands may refer to entities of the deleted page
        self.undo_stack.clear()
        if index < self.current_index:
            self.current_index -= 1
        self.current_index = min(self.current_index, len(self.pages) - 1)
        self.set_modified()
        logger.info("page %r deleted", page.name)
        return True

    def set_current_page(self, index: int):
        if not 0 <= index < len(self.pages):
            raise IndexError(f"no page {index}")
        self.current_index = index

    # creation

    def live_instance_count(self, key: str) -> int:
        return sum(page.scene.live_count(key) for page in self.pages)

    def check_creation_limit(self, ctype: ComponentType):
        limit = ctype.allowed_instances
        if limit >= 0 and self.live_instance_count(ctype.key) >= limit:
            raise CreationLimitError(ctype.name, limit)

    def create_component(self, ctype: ComponentType, pos: QPointF) -> ComponentInstance:
        """Place a new instance of ``ctype`` on the current page through the undo stack."""
        self.check_creation_limit(ctype)
        index = self.counters.next_component_index(ctype.key)
        component = ComponentInstance.from_type(ctype, index, pos)
        self.undo_stack.push(AddComponentCommand(self.scene, component))
        return component

    def add_text(self, pos: QPointF, text: str = "") -> TextNote:
        note = TextNote(pos, text)
        self.undo_stack.push(AddTextCommand(self.scene, note))
        return note

    def delete_selection(self) -> bool:
        scene = self.scene
        if not (scene.selected_items() or scene.selected_handles()):
            return False
        self.undo_stack.push(DeleteSelectionCommand(scene))
        return True

    def undo(self) -> bool:
        if not self.undo_stack.canUndo():
            return False
        self.undo_stack.undo()
        return True

    def redo(self) -> bool:
        if not self.undo_stack.canRedo():
            return False
        self.undo_stack.redo()
        return True

    # selection and editing

    def select_all(self):
        self.scene.select_all()

    def select_none(self):
        self.scene.set_nothing_selected()

    def properties_of(self, item):
        """Rows shown by the property grid for ``item``."""
        return item.properties.rows()

    def set_property(self, item, name: str, value: str):
        prop = item.properties.get(name)
        if prop is None or prop.read_only:
            logger.warning("property %r of %r is not writable", name, item)
            return
        item.properties.set_value(name, value)

    def set_moving_ports(self, component: ComponentInstance, flag: bool):
        """Switch moving-ports mode; at most one component is in it at a time."""
        current = self.moving_ports_component
        if flag and current is not None and current is not component:
            current.set_moving_ports(False)
        component.set_moving_ports(flag)
        self.moving_ports_component = component if flag else None
        logger.debug("%s moving ports %s", component.unique_name, "on" if flag else "off")

    def move_port(self, handle: PortHandle, local_pos: QPointF) -> bool:
        changed = handle.component.layout.move_port(handle, local_pos)
        if changed:
            handle.component.set_modified()
        return changed

    def set_component_fill_color(self, color: str):
        self.scene.set_component_fill_color(color)

    def set_text_color(self, color: str):
        self.scene.set_text_color(color)

    def set_text_font(self, font: str):
        self.scene.set_text_font(font)

    # clipboard

    def copy(self) -> bool:
        scene = self.scene
        texts = scene.selected_texts()
        components = scene.selected_components()
        wires = scene.selected_wires()
        if not (texts or components or wires):
            return False
        self.clipboard = serializer.dump_selection(texts, components, wires)
        return True

    def paste(self) -> int:
        """Add a copy of the clipboard to the current page; returns how many entities were pasted."""
        if not self.clipboard:
            return 0
        contents = serializer.load_selection(self.clipboard)
        offset = self.preferences.paste_offset
        scene = self.scene
        scene.clear_selection()
        pasted = 0

        for note in contents.texts:
            note.pos = note.pos + QPointF(offset, offset)
            self.undo_stack.push(AddTextCommand(scene, note, paste=True))
            pasted += 1
        for component in contents.components:
            try:
                self._check_paste_limit(component)
            except CreationLimitError as e:
                logger.warning("paste refused: %s", e)
                scene.emit("warning", "Creation Limit", str(e))
                continue
            component.set_index(self.counters.next_component_index(component.key))
            component.pos = component.pos + QPointF(offset, offset)
            self.undo_stack.push(AddComponentCommand(scene, component, paste=True))
            pasted += 1
        for wire in contents.wires:
            wire.set_index(self.counters.next_wire_index())
            wire.set_paste_position(offset)
            self.undo_stack.push(AddWireCommand(scene, wire, paste=True))
            pasted += 1
        logger.debug("pasted %d item(s)", pasted)
        return pasted

    def _check_paste_limit(self, component: ComponentInstance):
        limit = component.allowed_instances
        if limit >= 0 and self.live_instance_count(component.key) >= limit:
            raise CreationLimitError(component.name, limit)

    # files

    def to_bytes(self) -> bytes:
        return serializer.dumps(self.catalog, self.counters, self.pages)

    def save(self, filename: Optional[str] = None):
        filename = filename or self.filename
        serializer.save_project(filename, self.catalog, self.counters, self.pages)
        self.filename = filename
        self.notice = ""
        self.mark_saved()

    def load(self, filename: str):
        """Replace the document with a project file; on any error nothing changes."""
        contents = serializer.load_project(filename)
        self._replace(contents)
        self.filename = filename

    def load_bytes(self, data: bytes, source: str = ""):
        self._replace(serializer.loads(data, source))

    def _replace(self, contents: serializer.ProjectContents):
        if self.moving_ports_component is not None:
            self.set_moving_ports(self.moving_ports_component, False)
        for page in self.pages:
            page.scene.listeners.clear()
        self.catalog = contents.catalog
        self.counters = contents.counters
        self.pages = contents.pages
        for page in self.pages:
            self._attach(page)
        self.current_index = 0
        self.undo_stack.clear()
        self.notice = contents.notice
        self._modified = False
