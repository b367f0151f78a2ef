from dataclasses import dataclass, field
from typing import List, Tuple

from workbench.data import ComponentInstance, Wire, ConnectedState, WIRE_PROPERTY_COMMENT
from workbench.layout import PortHandle


@dataclass
class ExportPort:
    component: str
    name: str
    latency: str
    comment: str = ""


@dataclass
class ExportComponent:
    unique_name: str
    display_name: str
    element_name: str
    component_name: str
    category: str
    properties: List[Tuple[str, str]] = field(default_factory=list)
    ports: List[ExportPort] = field(default_factory=list)


@dataclass
class ExportWire:
    index: int
    comment: str
    start: ExportPort
    end: ExportPort


def _port(handle: PortHandle) -> ExportPort:
    return ExportPort(component=handle.component.unique_name, name=handle.configured_name,
                      latency=handle.latency(), comment=handle.comment())


class ExportTraversal:
    """Read-only view of a document for code generators.

    Only configured ports are reported; the placeholder of an unconfigured
    dynamic port is never exported.
    """

    def __init__(self, document):
        self.document = document

    def _components(self) -> List[ComponentInstance]:
        return [c for page in self.document.pages for c in page.scene.components]

    def _wires(self) -> List[Wire]:
        return [w for page in self.document.pages for w in page.scene.wires]

    def components(self) -> List[ExportComponent]:
        result = []
        for comp in self._components():
            result.append(ExportComponent(
                unique_name=comp.unique_name,
                display_name=comp.display_name,
                element_name=comp.element_name,
                component_name=comp.name,
                category=comp.type_name,
                properties=[(p.name, p.value) for p in comp.properties if p.exportable],
                ports=[_port(h) for h in comp.handles if h.configured]))
        return result

    def wires(self) -> List[ExportWire]:
        """Fully connected wires, by wire index."""
        result = []
        for wire in sorted(self._wires(), key=lambda w: w.index):
            if wire.connected_state != ConnectedState.FULL:
                continue
            result.append(ExportWire(index=wire.index,
                                     comment=wire.properties.value(WIRE_PROPERTY_COMMENT),
                                     start=_port(wire.start_port), end=_port(wire.end_port)))
        return result

    def unconnected_ports(self) -> List[ExportPort]:
        return [_port(h) for c in self._components() for h in c.handles
                if h.configured and not h.is_connected()]

    def partial_wires(self) -> List[Wire]:
        return [w for w in self._wires() if w.connected_state != ConnectedState.FULL]
