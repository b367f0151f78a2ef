from PyQt6.QtCore import QPointF
from PyQt6.QtGui import QUndoCommand, QUndoStack

from workbench.commands import (AddComponentCommand, AddWireCommand,
                                AddTextCommand, DeleteSelectionCommand)
from workbench.data import Wire, TextNote, ConnectedState


class Counter(QUndoCommand):
    def __init__(self, log, name):
        super().__init__(name)
        self.log = log
        self.dropped = False

    def redo(self):
        self.log.append("+" + self.text())

    def undo(self):
        self.log.append("-" + self.text())
        if self.dropped:
            self.setObsolete(True)


def connect(document, a, b):
    wire = Wire(document.counters.next_wire_index(), a.scene_connection_point, b.scene_connection_point)
    document.undo_stack.push(AddWireCommand(document.scene, wire, paste=True))
    return wire


# push выполняет команду и отрезает ветку redo
def test_push_truncates_redo():
    log = []
    stack = QUndoStack()
    stack.push(Counter(log, "a"))
    stack.push(Counter(log, "b"))
    stack.undo()
    assert stack.canRedo()
    assert stack.redoText() == "b" and stack.undoText() == "a"
    stack.push(Counter(log, "c"))
    assert not stack.canRedo()
    assert log == ["+a", "+b", "-b", "+c"]
    assert [stack.text(i) for i in range(stack.count())] == ["a", "c"]


# Метка чистого состояния и ее потеря после отрезания
def test_clean_index():
    stack = QUndoStack()
    stack.push(Counter([], "a"))
    stack.setClean()
    assert stack.isClean()
    stack.undo()
    assert not stack.isClean()
    stack.push(Counter([], "b"))
    assert not stack.isClean()
    stack.undo()
    assert not stack.isClean()


# Устаревшая после undo команда удаляется и не оставляет redo
def test_obsolete_command_is_dropped_on_undo():
    log = []
    stack = QUndoStack()
    stack.push(Counter(log, "a"))
    command = Counter(log, "b")
    stack.push(command)
    command.dropped = True
    stack.undo()
    assert log == ["+a", "+b", "-b"]
    assert stack.count() == 1
    assert not stack.canRedo() and stack.undoText() == "a"


# undo/redo добавления компонента возвращает тот же объект
def test_add_component_undo_redo_identity(document, place):
    cpu = place("cpu")
    assert document.scene.components == [cpu]
    assert cpu.selected
    document.undo()
    assert document.scene.components == []
    assert cpu.scene is None
    document.redo()
    assert document.scene.components == [cpu]
    assert cpu.scene is document.scene
    assert [h.configured_name for h in cpu.handles] == ["clock", "data", "irq"]


# Метки команд: Add, Paste и текст
def test_command_labels(document, place):
    cpu = place("cpu")
    assert document.undo_stack.undoText() == f"Add Component ({cpu.display_name})"
    wire = Wire(7, QPointF(0, 0), QPointF(50, 0))
    assert AddWireCommand(document.scene, wire).text() == "Add Wire #7"
    assert AddWireCommand(document.scene, wire, paste=True).text() == "Paste Wire #7"
    assert AddTextCommand(document.scene, TextNote(QPointF(0, 0), "hi")).text() == 'Add Text "hi"'
    assert AddTextCommand(document.scene, TextNote(QPointF(0, 0))).text() == "Add Text"
    assert AddComponentCommand(document.scene, cpu, paste=True).text().startswith("Paste Component")


# Удаление выделения запоминает набор один раз
def test_delete_snapshot_is_not_resampled(document, place):
    a = place("cpu")
    b = place("cpu", 400, 0)
    document.scene.select_single(a)
    document.delete_selection()
    assert document.undo_stack.undoText() == "Delete 1 Item"
    assert document.scene.components == [b]

    document.undo()
    assert a in document.scene.components
    document.scene.select_single(b)
    document.redo()
    assert a not in document.scene.components
    assert b in document.scene.components


# Удаление компонента отключает провода, undo подключает снова
def test_delete_component_detaches_and_undo_rebinds(document, place):
    cpu = place("cpu")
    other = place("cpu", 400, 0)
    wire = connect(document, cpu.port_infos[2].handles[0], other.port_infos[0].handles[0])
    assert wire.connected_state == ConnectedState.FULL

    document.scene.select_single(cpu)
    document.delete_selection()
    assert wire in document.scene.wires
    assert wire.start_port is None
    assert all(h.connected_wire is None for h in cpu.handles)

    document.undo()
    assert wire.connected_state == ConnectedState.FULL
    assert wire.start_port is cpu.port_infos[2].handles[0]


# Выбранный порт удаляет свой провод
def test_selected_port_stands_for_its_wire(document, place):
    cpu = place("cpu")
    other = place("cpu", 400, 0)
    irq = cpu.port_infos[2].handles[0]
    wire = connect(document, irq, other.port_infos[0].handles[0])
    document.scene.clear_selection()
    irq.selected = True

    document.delete_selection()
    assert document.scene.wires == []
    assert irq.connected_wire is None
    assert len(document.scene.components) == 2
    document.undo()
    assert document.scene.wires == [wire]
    assert irq.connected_wire is wire


# undo удаления, затем redo - то же состояние, что после первого выполнения
def test_delete_undo_redo_idempotent(document, place):
    cpu = place("cpu")
    note = document.add_text(QPointF(0, 200), "hello")
    document.select_all()
    command = DeleteSelectionCommand(document.scene)
    document.undo_stack.push(command)
    assert command.text() == "Delete 2 Items"
    assert document.scene.is_empty()
    document.undo()
    document.redo()
    assert document.scene.is_empty()
    document.undo()
    assert document.scene.components == [cpu] and document.scene.texts == [note]


# Правки команд не делают документ "грязным" сами по себе после undo к точке сохранения
def test_dirty_flag_follows_clean_index(document, place):
    assert not document.is_modified
    place("cpu")
    assert document.is_modified
    document.undo()
    assert not document.is_modified
    document.redo()
    document.mark_saved()
    assert not document.is_modified
    document.set_property(document.scene.components[0], "Comment", "x")
    assert document.is_modified
