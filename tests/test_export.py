from PyQt6.QtCore import QPointF

from workbench.commands import AddWireCommand
from workbench.data import Wire
from workbench.export import ExportTraversal


def add_wire(document, start, end):
    wire = Wire(document.counters.next_wire_index(), start, end)
    document.undo_stack.push(AddWireCommand(document.scene, wire, paste=True))
    return wire


# Обход: компоненты с экспортируемыми свойствами и полностью подключенные провода
def test_export_traversal(document, place):
    router = place("router")
    cpu = place("cpu", 400, 0)
    document.set_property(router, "count", "2")
    out1 = router.port_infos[1].handles[1]
    document.set_property(out1, "Latency", "7")
    clock = cpu.port_infos[0].handles[0]
    wire = add_wire(document, out1.scene_connection_point, clock.scene_connection_point)
    document.set_property(wire, "Comment", "uplink")

    traversal = ExportTraversal(document)
    components = traversal.components()
    assert [c.unique_name for c in components] == ["core.router.0", "core.cpu.0"]
    props = dict(components[0].properties)
    assert props["count"] == "2" and props["latency0"] == "1ns"
    assert [p.name for p in components[0].ports] == ["in", "out0", "out1", "ctl"]

    [exported] = traversal.wires()
    assert exported.index == wire.index
    assert exported.comment == "uplink"
    assert (exported.start.component, exported.start.name, exported.start.latency) == \
        ("core.router.0", "out1", "7")
    assert (exported.end.component, exported.end.name) == ("core.cpu.0", "clock")


# Неподключенные порты и наполовину подключенные провода
def test_export_warnings_inputs(document, place):
    router = place("router")
    cpu = place("cpu", 400, 0)
    irq = cpu.port_infos[2].handles[0]
    dangling = add_wire(document, irq.scene_connection_point, QPointF(800, 300))

    traversal = ExportTraversal(document)
    assert traversal.wires() == []
    assert traversal.partial_wires() == [dangling]
    names = [(p.component, p.name) for p in traversal.unconnected_ports()]
    assert ("core.cpu.0", "irq") not in names
    assert ("core.router.0", "in") in names
    # placeholder ненастроенного порта не экспортируется
    assert not any(name.startswith("UNCONFIGURED") for _, name in names)
