import logging
from typing import List, Optional

from PyQt6.QtGui import QUndoCommand

from workbench.data import ComponentInstance, Wire, TextNote
from workbench.graphical import Scene

logger = logging.getLogger(__name__)


class SceneCommand(QUndoCommand):
    """Base for commands acting on one scene.

    The scene's ``executing`` flag is raised while ``apply``/``revert`` run,
    so direct edits can be told apart from command-driven ones.
    """

    def __init__(self, scene: Scene, text: str = ""):
        super().__init__(text)
        self.scene = scene

    def _run(self, action):
        self.scene.executing = True
        try:
            action()
        finally:
            self.scene.executing = False

    def redo(self):
        self._run(self.apply)
        logger.debug("redo %r", self.text())

    def undo(self):
        self._run(self.revert)
        logger.debug("undo %r", self.text())

    def apply(self):
        raise NotImplementedError

    def revert(self):
        raise NotImplementedError


def _verb(paste: bool) -> str:
    return "Paste" if paste else "Add"


class AddComponentCommand(SceneCommand):
    def __init__(self, scene: Scene, component: ComponentInstance, paste: bool = False):
        super().__init__(scene, f"{_verb(paste)} Component ({component.display_name})")
        self.component = component
        self.paste = paste

    def apply(self):
        self.scene.add_component(self.component, select_single=not self.paste)
        if self.paste:
            self.component.selected = True

    def revert(self):
        self.scene.remove_component(self.component)


class AddWireCommand(SceneCommand):
    """Adds a wire.  The first run of a wire being drawn binds only its start point.

    After ``discard()`` the next undo removes the wire and the stack drops
    the command, leaving nothing to redo.
    """

    def __init__(self, scene: Scene, wire: Wire, paste: bool = False):
        super().__init__(scene, f"{_verb(paste)} Wire #{wire.index}")
        self.wire = wire
        self.paste = paste
        self.first_run = True
        self.discarded = False

    def apply(self):
        update_both = self.paste or not self.first_run
        self.first_run = False
        self.scene.add_wire(self.wire, update_both_points=update_both)
        if self.paste:
            self.wire.set_wire_selected(True)
        else:
            self.scene.select_single(self.wire)

    def revert(self):
        self.scene.remove_wire(self.wire)
        if self.discarded:
            self.setObsolete(True)

    def discard(self):
        self.discarded = True


class AddTextCommand(SceneCommand):
    def __init__(self, scene: Scene, text: TextNote, paste: bool = False):
        if text.text:
            label = f'{_verb(paste)} Text "{text.text}"'
        else:
            label = f"{_verb(paste)} Text"
        super().__init__(scene, label)
        self.note = text
        self.paste = paste

    def apply(self):
        self.scene.add_text(self.note, select_single=not self.paste)
        if self.paste:
            self.note.selected = True

    def revert(self):
        self.scene.remove_text(self.note)


class DeleteSelectionCommand(SceneCommand):
    """Removes everything selected when the command first ran.

    A selected port handle stands for the wire attached to it.  The
    snapshot is taken once, so a redo after later selection changes
    removes the same entities again.
    """

    def __init__(self, scene: Scene):
        super().__init__(scene, "Delete")
        self.wires: Optional[List[Wire]] = None
        self.components: List[ComponentInstance] = []
        self.texts: List[TextNote] = []

    def _snapshot(self):
        wires = self.scene.selected_wires()
        for handle in self.scene.selected_handles():
            wire = handle.connected_wire
            if wire is not None and wire not in wires:
                wires.append(wire)
        self.wires = wires
        self.components = self.scene.selected_components()
        self.texts = self.scene.selected_texts()
        count = len(self.wires) + len(self.components) + len(self.texts)
        self.setText(f"Delete {count} Item" if count == 1 else f"Delete {count} Items")

    def apply(self):
        if self.wires is None:
            self._snapshot()
        for wire in self.wires:
            self.scene.remove_wire(wire)
        for component in self.components:
            self.scene.remove_component(component)
        for note in self.texts:
            self.scene.remove_text(note)

    def revert(self):
        for wire in self.wires:
            self.scene.add_wire(wire)
            wire.set_wire_selected(False)
        for component in self.components:
            self.scene.add_component(component, select_single=False)
        for note in self.texts:
            self.scene.add_text(note, select_single=False)
        self.scene.refresh_all_wire_positions()
