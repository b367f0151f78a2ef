import pytest
from PyQt6.QtCore import QPointF

from workbench.catalog import Catalog, Element, ComponentType, ComponentCategory, ParamDef, PortDef, EventType
from workbench.config import Preferences
from workbench.editor import Document
from workbench.graphical import SceneListener
from workbench.interaction import SceneInteraction


class Recorder(SceneListener):
    def __init__(self):
        self.warnings = []
        self.selected = []
        self.refreshed = []
        self.modified_count = 0
        self.drops = 0
        self.modes = []

    def warning(self, title, message):
        self.warnings.append((title, message))

    def properties_selected(self, properties):
        self.selected.append(properties)

    def properties_refresh(self, properties):
        self.refreshed.append(properties)

    def modified(self):
        self.modified_count += 1

    def drag_and_drop_finished(self):
        self.drops += 1

    def mode_changed(self, mode):
        self.modes.append(mode)


def make_catalog():
    cpu = ComponentType("core", "cpu", "Processor core", ComponentCategory.PROCESSOR,
                        params=[ParamDef("frequency", "Clock frequency", "1GHz")],
                        ports=[PortDef("clock", "Clock input", ["tick"]),
                               PortDef("data", "Data bus", ["read", "write"]),
                               PortDef("irq", "Interrupt line", ["irq"])])
    router = ComponentType("core", "router", "Packet router", ComponentCategory.NETWORK,
                           params=[ParamDef("count", "Number of outputs", "0"),
                                   ParamDef("latency%(count)d", "Output latency", "1ns")],
                           ports=[PortDef("in", "Input", ["packet"]),
                                  PortDef("out%(count)d", "Output", ["packet"]),
                                  PortDef("ctl", "Control", [])])
    memory = ComponentType("core", "memory", "Memory bank", ComponentCategory.MEMORY,
                           allowed_instances=2,
                           ports=[PortDef("addr", "Address"), PortDef("data", "Data")])
    boot = ComponentType("core", "boot", "Startup configuration",
                         ComponentCategory.STARTUP_CONFIGURATION, allowed_instances=1,
                         params=[ParamDef("seed", "Random seed", "7")])
    element = Element("core", "Core element", components=[cpu, router, memory, boot],
                      events=[EventType("core", "packet", "A routed packet")])
    return Catalog([element])


@pytest.fixture
def catalog():
    return make_catalog()


@pytest.fixture
def document(catalog):
    return Document(catalog, Preferences())


@pytest.fixture
def recorder(document):
    rec = Recorder()
    document.add_listener(rec)
    return rec


@pytest.fixture
def interaction(document):
    return SceneInteraction(document)


@pytest.fixture
def place(document, catalog):
    """Place a catalog component on the current page: place("cpu", x, y)."""
    def _place(name, x=0, y=0):
        return document.create_component(catalog.find_component("core", name), QPointF(x, y))
    return _place
