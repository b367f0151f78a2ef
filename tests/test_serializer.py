import hashlib
import struct

import pytest
from PyQt6.QtCore import QPointF

from workbench import serializer
from workbench.data import ConnectedState, Wire
from workbench.commands import AddWireCommand
from workbench.editor import Document
from workbench.errors import (ChecksumError, BadMagicError, VersionTooOldError,
                              VersionTooNewError, TruncatedFileError)
from workbench.layout import Side


def build_project(document, place):
    router = place("router")
    cpu = place("cpu", 400, 0)
    document.set_property(router, "count", "2")
    document.set_property(router, "latency1", "3ns")
    out1 = router.port_infos[1].handles[1]
    document.set_property(out1, "Latency", "4")
    clock = cpu.port_infos[0].handles[0]
    wire = Wire(document.counters.next_wire_index(), out1.scene_connection_point, clock.scene_connection_point)
    document.undo_stack.push(AddWireCommand(document.scene, wire, paste=True))
    document.set_property(wire, "Comment", "main link")
    document.add_text(QPointF(0, 200), "hello")
    document.set_moving_ports(cpu, True)
    document.move_port(cpu.port_infos[0].handles[0], QPointF(60, 20))
    document.set_moving_ports(cpu, False)
    document.new_page("Second")
    place("memory", 40, 40)
    document.current_page.view.zoom = 150.0
    return router, cpu, wire


def reload(document):
    other = Document()
    other.load_bytes(document.to_bytes())
    return other


# Сохранение и загрузка сохраняют ключи, порты, провода и тексты
def test_round_trip(document, place):
    router, cpu, wire = build_project(document, place)
    loaded = reload(document)

    assert loaded.page_names() == ["Page 1", "Second"]
    scene = loaded.pages[0].scene
    assert [c.unique_name for c in scene.components] == ["core.router.0", "core.cpu.0"]
    assert [c.index for c in scene.components] == [0, 0]
    lrouter, lcpu = scene.components
    assert [(i.side, i.sequence) for i in lcpu.port_infos] == \
        [(i.side, i.sequence) for i in cpu.port_infos]
    assert lcpu.port_infos[0].side == Side.RIGHT
    assert [h.configured_name for h in lrouter.handles] == [h.configured_name for h in router.handles]
    assert lrouter.properties.value("latency1") == "3ns"
    assert lrouter.port_infos[1].latency(1) == "4"

    [lwire] = scene.wires
    assert lwire.index == wire.index
    assert lwire.start == wire.start and lwire.end == wire.end
    assert lwire.connected_state == ConnectedState.FULL
    assert lwire.start_port is lrouter.port_infos[1].handles[1]
    assert lwire.properties.value("Comment") == "main link"
    assert [t.text for t in scene.texts] == ["hello"]

    assert loaded.pages[1].view.zoom == 150.0
    assert loaded.catalog.find_component("core", "router") is not None
    assert not loaded.is_modified


# Счетчики индексов продолжаются после загрузки
def test_counters_persist(document, place):
    build_project(document, place)
    loaded = reload(document)
    assert loaded.counters.wire_index == document.counters.wire_index
    assert loaded.counters.next_component_index("core.cpu") == 1
    assert loaded.counters.next_wire_index() == document.counters.wire_index + 1


# Испорченный байт - ошибка контрольной суммы, открытый документ не меняется
def test_checksum_corruption(document, place):
    build_project(document, place)
    data = bytearray(document.to_bytes())
    data[40] ^= 0xFF

    target = Document()
    target.new_page("Keep")
    with pytest.raises(ChecksumError) as e:
        target.load_bytes(bytes(data))
    assert "Checksum is incorrect" in str(e.value)
    assert target.page_names() == ["Page 1", "Keep"]


# Слишком новая и слишком старая версии отличаются сообщением
def test_version_errors(document):
    too_new = serializer.dumps(document.catalog, document.counters, document.pages, version=300)
    with pytest.raises(VersionTooNewError) as e:
        serializer.loads(too_new)
    assert "too NEW" in str(e.value) and e.value.version == 300

    too_old = serializer.dumps(document.catalog, document.counters, document.pages, version=50)
    with pytest.raises(VersionTooOldError) as e:
        serializer.loads(too_old)
    assert "too OLD" in str(e.value) and e.value.expected == serializer.CURRENT_VERSION


# Неверное магическое число
def test_bad_magic():
    payload = struct.pack(">Ii", 0x12345678, serializer.CURRENT_VERSION)
    with pytest.raises(BadMagicError):
        serializer.loads(hashlib.md5(payload).digest() + payload)


# Обрезанные данные с верной контрольной суммой
def test_truncated_payload(document, place):
    build_project(document, place)
    payload = document.to_bytes()[serializer.CHECKSUM_SIZE:][:30]
    with pytest.raises(TruncatedFileError):
        serializer.loads(hashlib.md5(payload).digest() + payload)
    with pytest.raises(TruncatedFileError):
        serializer.loads(b"short")


# Файл версии 1.0 загружается в одну страницу с уведомлением об обновлении
def test_version_1_0_upgrade(document, place):
    router, cpu, wire = build_project(document, place)
    data = serializer.dumps(document.catalog, document.counters, document.pages[:1],
                            version=serializer.FORMAT_VERSION_1_0)
    contents = serializer.loads(data, "/projects/old.wbp")
    assert contents.upgraded
    assert contents.notice == serializer.UPGRADE_NOTICE
    assert [p.name for p in contents.pages] == ["Project - old.wbp"]
    scene = contents.pages[0].scene
    assert len(scene.components) == 2
    assert scene.wires[0].connected_state == ConnectedState.FULL
    assert contents.counters.wire_index == document.counters.wire_index
    assert all(not p.protected for c in scene.components for p in c.properties)


# Сохранение в файл и открытие
def test_save_and_load_file(document, place, tmp_path):
    build_project(document, place)
    path = tmp_path / "design.wbp"
    document.save(str(path))
    assert not document.is_modified
    assert path.read_bytes()[:16] == hashlib.md5(path.read_bytes()[16:]).digest()

    opened = Document()
    opened.load(str(path))
    assert opened.filename == str(path)
    assert len(opened.pages) == 2
    assert opened.notice == ""
