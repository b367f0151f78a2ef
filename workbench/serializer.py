"""Binary project files and clipboard buffers.

A project file is ``md5(payload) + payload``.  The payload is a big-endian
QDataStream starting with the magic number and the format version.  Format
200 stores named pages; format 100 stores a single scene and is upgraded
to one page when it is read.
"""
import hashlib
import logging
import os
from dataclasses import dataclass, field
from typing import List, Tuple

from PyQt6.QtCore import QByteArray, QDataStream, QIODevice, QPointF, QRectF

from workbench.catalog import (Catalog, Element, ComponentType, ModuleType, EventType,
                               ParamDef, PortDef, ComponentCategory)
from workbench.data import ComponentInstance, Wire, TextNote, ConnectedState, ItemCounters
from workbench.errors import (ChecksumError, BadMagicError, VersionTooOldError,
                              VersionTooNewError, TruncatedFileError)
from workbench.graphical import Page, PageView, Scene
from workbench.layout import PortInfo, Side
from workbench.properties import ItemProperties, ItemProperty

logger = logging.getLogger(__name__)

MAGIC_NUMBER = 0xCD4234DF
FORMAT_VERSION_1_0 = 100
FORMAT_VERSION_2_0 = 200
OLDEST_SUPPORTED_VERSION = FORMAT_VERSION_1_0
CURRENT_VERSION = FORMAT_VERSION_2_0
CHECKSUM_SIZE = 16

UPGRADE_NOTICE = ("This project file was created by an older version of the editor; "
                  "it will be upgraded to the current format on next save")


@dataclass
class ProjectContents:
    """Everything read from a project file, not yet attached to a document."""
    catalog: Catalog
    counters: ItemCounters
    pages: List[Page]
    version: int = CURRENT_VERSION
    notice: str = ""

    @property
    def upgraded(self) -> bool:
        return self.version < CURRENT_VERSION


@dataclass
class ClipboardContents:
    texts: List[TextNote] = field(default_factory=list)
    components: List[ComponentInstance] = field(default_factory=list)
    wires: List[Wire] = field(default_factory=list)


def _writer() -> Tuple[QByteArray, QDataStream]:
    buffer = QByteArray()
    stream = QDataStream(buffer, QIODevice.OpenModeFlag.WriteOnly)
    stream.setVersion(QDataStream.Version.Qt_6_0)
    return buffer, stream


def _reader(data: bytes) -> QDataStream:
    stream = QDataStream(QByteArray(data))
    stream.setVersion(QDataStream.Version.Qt_6_0)
    return stream


class StreamWriter:
    def __init__(self, stream: QDataStream, version: int = CURRENT_VERSION):
        self.stream = stream
        self.version = version

    def point(self, p: QPointF):
        self.stream.writeDouble(p.x())
        self.stream.writeDouble(p.y())

    def properties(self, props: ItemProperties):
        s = self.stream
        s.writeInt32(len(props))
        for prop in props:
            s.writeQString(prop.name)
            s.writeQString(prop.original_name)
            s.writeQString(prop.value)
            s.writeQString(prop.default_value)
            s.writeQString(prop.description)
            s.writeBool(prop.read_only)
            if self.version >= FORMAT_VERSION_2_0:
                s.writeBool(prop.protected)
            s.writeBool(prop.exportable)
            s.writeBool(prop.dynamic)
            s.writeQString(prop.controlling_property)
            s.writeInt32(prop.num_instances)

    def params(self, params: List[ParamDef]):
        for param in params:
            self.stream.writeQString(param.name)
            self.stream.writeQString(param.description)
            self.stream.writeQString(param.default_value)

    def catalog(self, catalog: Catalog):
        s = self.stream
        s.writeInt32(len(catalog.elements))
        for element in catalog.elements:
            s.writeQString(element.name)
            s.writeQString(element.description)
            s.writeInt32(len(element.components))
            s.writeInt32(len(element.modules))
            s.writeInt32(len(element.events))
            for comp in element.components:
                s.writeQString(comp.element_name)
                s.writeQString(comp.name)
                s.writeQString(comp.description)
                s.writeInt32(int(comp.category))
                s.writeInt32(comp.allowed_instances)
                s.writeInt32(len(comp.params))
                s.writeInt32(len(comp.ports))
                self.params(comp.params)
                for port in comp.ports:
                    s.writeQString(port.name)
                    s.writeQString(port.description)
                    s.writeQStringList(port.valid_events)
            for module in element.modules:
                s.writeQString(module.element_name)
                s.writeQString(module.name)
                s.writeQString(module.description)
                s.writeInt32(len(module.params))
                self.params(module.params)
            for event in element.events:
                s.writeQString(event.element_name)
                s.writeQString(event.name)
                s.writeQString(event.description)

    def counters(self, counters: ItemCounters):
        self.stream.writeInt32(counters.wire_index)
        keys = sorted(counters.component_index_by_key)
        self.stream.writeInt32(len(keys))
        for key in keys:
            self.stream.writeQString(key)
            self.stream.writeInt32(counters.component_index_by_key[key])

    def text(self, note: TextNote):
        self.point(note.pos)
        self.stream.writeDouble(note.z)
        self.stream.writeQString(note.text)
        self.stream.writeQString(note.color)
        self.stream.writeQString(note.font)

    def port_info(self, info: PortInfo):
        s = self.stream
        s.writeQString(info.configured_name)
        s.writeQString(info.name)
        s.writeQString(info.original_name)
        s.writeQString(info.description)
        s.writeQStringList(info.valid_events)
        s.writeQString(info.controlling_param)
        s.writeBool(info.configured)
        s.writeBool(info.dynamic)
        s.writeInt32(info.requested)
        s.writeInt32(int(info.side))
        s.writeInt32(info.sequence)
        s.writeQStringList(info.latencies)
        s.writeQStringList(info.comments)

    def component(self, comp: ComponentInstance):
        s = self.stream
        self.point(comp.pos)
        s.writeDouble(comp.z)
        s.writeInt32(int(comp.category))
        s.writeInt32(comp.index)
        s.writeQString(comp.element_name)
        s.writeQString(comp.user_name)
        s.writeQString(comp.unique_name)
        s.writeQString(comp.name)
        s.writeQString(comp.description)
        s.writeQString(comp.type_name)
        s.writeInt32(comp.allowed_instances)
        s.writeQString(comp.fill_color)
        s.writeInt32(len(comp.port_infos))
        for info in comp.port_infos:
            self.port_info(info)
        self.properties(comp.properties)

    def wire(self, wire: Wire):
        s = self.stream
        self.point(wire.pos)
        s.writeDouble(wire.z)
        s.writeInt32(wire.index)
        self.point(wire.start)
        self.point(wire.end)
        self.point(wire.middle_start)
        self.point(wire.middle_end)
        s.writeDouble(wire.middle_x)
        s.writeBool(wire.auto_route)
        s.writeQString(wire.color)
        s.writeInt32(wire.pen_style)
        s.writeInt32(int(wire.connected_state))
        self.properties(wire.properties)

    def entities(self, texts, components, wires):
        self.stream.writeInt32(len(texts))
        self.stream.writeInt32(len(components))
        self.stream.writeInt32(len(wires))
        for note in texts:
            self.text(note)
        for comp in components:
            self.component(comp)
        for wire in wires:
            self.wire(wire)

    def view(self, view: PageView):
        r = view.scene_rect
        for value in (r.x(), r.y(), r.width(), r.height()):
            self.stream.writeDouble(value)
        self.point(view.center)
        self.stream.writeDouble(view.zoom)


class StreamReader:
    def __init__(self, stream: QDataStream, version: int = CURRENT_VERSION):
        self.stream = stream
        self.version = version

    def check(self, what: str):
        if self.stream.status() != QDataStream.Status.Ok:
            logger.error("stream ended while reading %s", what)
            raise TruncatedFileError(what)

    def point(self) -> QPointF:
        x = self.stream.readDouble()
        y = self.stream.readDouble()
        return QPointF(x, y)

    def count(self, what: str) -> int:
        value = self.stream.readInt32()
        self.check(what)
        if value < 0:
            raise TruncatedFileError(what)
        return value

    def properties(self, owner) -> ItemProperties:
        s = self.stream
        props = ItemProperties(owner)
        for _ in range(self.count("property count")):
            prop = ItemProperty(name=s.readQString(), original_name=s.readQString())
            prop.value = s.readQString()
            prop.default_value = s.readQString()
            prop.description = s.readQString()
            prop.read_only = s.readBool()
            if self.version >= FORMAT_VERSION_2_0:
                prop.protected = s.readBool()
            prop.exportable = s.readBool()
            prop.dynamic = s.readBool()
            prop.controlling_property = s.readQString()
            prop.num_instances = s.readInt32()
            self.check("property")
            props.append(prop)
        return props

    def params(self, count: int) -> List[ParamDef]:
        s = self.stream
        params = []
        for _ in range(count):
            params.append(ParamDef(name=s.readQString(), description=s.readQString(),
                                   default_value=s.readQString()))
        return params

    def catalog(self) -> Catalog:
        s = self.stream
        catalog = Catalog()
        for _ in range(self.count("element count")):
            element = Element(name=s.readQString(), description=s.readQString())
            n_components = self.count("component type count")
            n_modules = self.count("module type count")
            n_events = self.count("event type count")
            for _ in range(n_components):
                element_name = s.readQString()
                name = s.readQString()
                description = s.readQString()
                category = s.readInt32()
                allowed = s.readInt32()
                n_params = self.count("parameter count")
                n_ports = self.count("port count")
                params = self.params(n_params)
                ports = [PortDef(name=s.readQString(), description=s.readQString(),
                                 valid_events=list(s.readQStringList()))
                         for _ in range(n_ports)]
                element.components.append(ComponentType(
                    element_name=element_name, name=name, description=description,
                    category=_category(category), allowed_instances=allowed,
                    params=params, ports=ports))
            for _ in range(n_modules):
                element_name = s.readQString()
                name = s.readQString()
                description = s.readQString()
                params = self.params(self.count("parameter count"))
                element.modules.append(ModuleType(element_name=element_name, name=name,
                                                  description=description, params=params))
            for _ in range(n_events):
                element.events.append(EventType(element_name=s.readQString(), name=s.readQString(),
                                                description=s.readQString()))
            self.check("element")
            catalog.elements.append(element)
        return catalog

    def counters(self) -> ItemCounters:
        counters = ItemCounters()
        counters.wire_index = self.stream.readInt32()
        for _ in range(self.count("index key count")):
            key = self.stream.readQString()
            counters.component_index_by_key[key] = self.stream.readInt32()
        self.check("index data")
        return counters

    def text(self) -> TextNote:
        pos = self.point()
        z = self.stream.readDouble()
        note = TextNote(pos, self.stream.readQString())
        note.z = z
        note.color = self.stream.readQString()
        note.font = self.stream.readQString()
        self.check("text")
        return note

    def port_info(self) -> PortInfo:
        s = self.stream
        info = PortInfo()
        info.configured_name = s.readQString()
        info.name = s.readQString()
        info.original_name = s.readQString()
        info.description = s.readQString()
        info.valid_events = list(s.readQStringList())
        info.controlling_param = s.readQString()
        info.configured = s.readBool()
        info.dynamic = s.readBool()
        info.requested = s.readInt32()
        info.side = Side.RIGHT if s.readInt32() == Side.RIGHT else Side.LEFT
        info.sequence = s.readInt32()
        info.latencies = list(s.readQStringList())
        info.comments = list(s.readQStringList())
        self.check("port")
        return info

    def component(self) -> ComponentInstance:
        s = self.stream
        comp = ComponentInstance()
        comp.pos = self.point()
        comp.z = s.readDouble()
        comp.category = _category(s.readInt32())
        comp.index = s.readInt32()
        comp.element_name = s.readQString()
        comp.user_name = s.readQString()
        comp.unique_name = s.readQString()
        comp.name = s.readQString()
        comp.description = s.readQString()
        comp.type_name = s.readQString()
        comp.allowed_instances = s.readInt32()
        comp.fill_color = s.readQString()
        self.check("component")
        comp.port_infos = [self.port_info() for _ in range(self.count("port count"))]
        comp.properties = self.properties(comp)
        comp.create_display_name()
        comp.build_ports()
        return comp

    def wire(self) -> Wire:
        s = self.stream
        pos = self.point()
        s.readDouble()
        index = s.readInt32()
        wire = Wire(index, self.point(), self.point())
        wire.pos = pos
        wire.middle_start = self.point()
        wire.middle_end = self.point()
        wire.middle_x = s.readDouble()
        wire.auto_route = s.readBool()
        wire.color = s.readQString()
        wire.pen_style = s.readInt32()
        wire.connected_state = ConnectedState(s.readInt32() & 3)
        self.check("wire")
        wire.properties = self.properties(wire)
        # loaded wires start deselected, which also fixes their z
        wire.set_wire_selected(False)
        return wire

    def entities(self, counters_inline: bool = False):
        counts = [self.count("text count"), self.count("component count"), self.count("wire count")]
        counters = self.counters() if counters_inline else None
        texts = [self.text() for _ in range(counts[0])]
        components = [self.component() for _ in range(counts[1])]
        wires = [self.wire() for _ in range(counts[2])]
        return texts, components, wires, counters

    def view(self) -> PageView:
        values = [self.stream.readDouble() for _ in range(4)]
        center = self.point()
        zoom = self.stream.readDouble()
        self.check("page view")
        return PageView(QRectF(*values), center, zoom)


def _category(value: int) -> ComponentCategory:
    try:
        return ComponentCategory(value)
    except ValueError:
        return ComponentCategory.UNCATEGORIZED


def build_scene(texts, components, wires) -> Scene:
    """Attach freshly read entities to a new scene and bind wires to their ports."""
    scene = Scene()
    for note in texts:
        scene.add_text(note, select_single=False)
    for comp in components:
        scene.add_component(comp, select_single=False)
    for wire in wires:
        scene.add_wire(wire)
        wire.set_wire_selected(False)
    scene.refresh_all_wire_positions()
    scene.clear_selection()
    return scene


def dumps(catalog: Catalog, counters: ItemCounters, pages: List[Page],
          version: int = CURRENT_VERSION) -> bytes:
    """Serialize a whole project; ``version`` 100 writes the single-scene format of the first page."""
    buffer, stream = _writer()
    stream.writeUInt32(MAGIC_NUMBER)
    stream.writeInt32(version)
    writer = StreamWriter(stream, version)
    writer.catalog(catalog)
    if version >= FORMAT_VERSION_2_0:
        writer.counters(counters)
        stream.writeQStringList([page.name for page in pages])
        for page in pages:
            scene = page.scene
            writer.entities(scene.texts, scene.components, scene.wires)
            writer.view(page.view)
    else:
        scene = pages[0].scene
        stream.writeInt32(len(scene.texts))
        stream.writeInt32(len(scene.components))
        stream.writeInt32(len(scene.wires))
        writer.counters(counters)
        for note in scene.texts:
            writer.text(note)
        for comp in scene.components:
            writer.component(comp)
        for wire in scene.wires:
            writer.wire(wire)
    payload = buffer.data()
    return hashlib.md5(payload).digest() + payload


def loads(data: bytes, source: str = "") -> ProjectContents:
    """Parse a project file image.  Raises a FileFormatError subclass on any defect."""
    if len(data) < CHECKSUM_SIZE:
        raise TruncatedFileError("checksum")
    checksum, payload = data[:CHECKSUM_SIZE], data[CHECKSUM_SIZE:]
    if hashlib.md5(payload).digest() != checksum:
        logger.error("checksum mismatch in %s", source or "project data")
        raise ChecksumError(source)

    stream = _reader(payload)
    magic = stream.readUInt32()
    version = stream.readInt32()
    if stream.status() != QDataStream.Status.Ok:
        raise TruncatedFileError("header")
    if magic != MAGIC_NUMBER:
        raise BadMagicError(magic, source)
    if version < OLDEST_SUPPORTED_VERSION:
        raise VersionTooOldError(version, CURRENT_VERSION, source)
    if version > CURRENT_VERSION:
        raise VersionTooNewError(version, CURRENT_VERSION, source)

    reader = StreamReader(stream, version)
    catalog = reader.catalog()
    pages = []
    if version >= FORMAT_VERSION_2_0:
        counters = reader.counters()
        names = list(stream.readQStringList())
        reader.check("page names")
        for name in names:
            texts, components, wires, _ = reader.entities()
            pages.append(Page(name, build_scene(texts, components, wires), reader.view()))
        notice = ""
    else:
        texts, components, wires, counters = reader.entities(counters_inline=True)
        basename = os.path.basename(source) if source else "Untitled"
        pages.append(Page(f"Project - {basename}", build_scene(texts, components, wires)))
        notice = UPGRADE_NOTICE
        logger.warning("%s uses format %d; it will be upgraded on save", source or "project", version)
    return ProjectContents(catalog, counters, pages, version, notice)


def save_project(filename: str, catalog: Catalog, counters: ItemCounters, pages: List[Page]):
    data = dumps(catalog, counters, pages)
    with open(filename, "wb") as f:
        f.write(data)
    logger.info("saved %s (%d bytes)", filename, len(data))


def load_project(filename: str) -> ProjectContents:
    with open(filename, "rb") as f:
        data = f.read()
    contents = loads(data, filename)
    logger.info("loaded %s: format %d, %d page(s)", filename, contents.version, len(contents.pages))
    return contents


def dump_selection(texts, components, wires) -> bytes:
    """Serialize entities for the clipboard: the three counts then each entity."""
    buffer, stream = _writer()
    StreamWriter(stream).entities(texts, components, wires)
    return buffer.data()


def load_selection(data: bytes) -> ClipboardContents:
    reader = StreamReader(_reader(data))
    texts, components, wires, _ = reader.entities()
    return ClipboardContents(texts, components, wires)
