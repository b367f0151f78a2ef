from PyQt6.QtCore import QPointF

from workbench.commands import AddWireCommand
from workbench.data import Wire, ConnectedState
from workbench.catalog import ComponentCategory, ComponentType, ParamDef, PortDef
from workbench.config import Preferences


# Новый компонент: уникальное имя, отображаемое имя и свойства
def test_component_identity(place):
    cpu = place("cpu")
    second = place("cpu", 400, 0)
    assert cpu.unique_name == "core.cpu.0" and second.unique_name == "core.cpu.1"
    assert cpu.display_name == "core.cpu"
    assert cpu.display_type_name == "[PROC] "
    assert [r.name for r in cpu.properties.rows()][:10] == [
        "User Name", "Unique Name", "Element Name", "Component Name", "Index",
        "Type", "Description", "Comment", "Rank", "Weight"]
    assert cpu.properties.value("frequency") == "1GHz"


# Компонент стартовой конфигурации показывает имя компонента
def test_startup_configuration_component(place):
    boot = place("boot")
    assert boot.category == ComponentCategory.STARTUP_CONFIGURATION
    assert boot.display_name == "boot"
    assert [r.name for r in boot.properties.rows()] == ["Component Name", "Comment", "seed"]


# Изменение имени пользователя меняет отображаемое имя
def test_rename_user_name(document, place):
    cpu = place("cpu")
    document.set_property(cpu, "User Name", "main_cpu")
    assert cpu.display_name == "main_cpu"
    assert cpu.unique_name == "core.cpu.0"
    document.set_property(cpu, "Unique Name", "hacked")
    assert cpu.properties.value("Unique Name") == "core.cpu.0"


# Индексы не переиспользуются даже после undo
def test_indices_never_reused(document, place):
    place("cpu")
    document.undo()
    again = place("cpu")
    assert again.index == 1


# Режим перемещения портов включен только у одного компонента
def test_moving_ports_one_at_a_time(document, place):
    a = place("cpu")
    b = place("cpu", 400, 0)
    document.set_moving_ports(a, True)
    assert "MOVING PORTS" in a.display_label
    document.set_moving_ports(b, True)
    assert not a.moving_ports and b.moving_ports
    assert document.moving_ports_component is b


# Страницы: создание, переименование, удаление; последнюю удалить нельзя
def test_pages(document, place):
    assert document.page_names() == ["Page 1"]
    document.new_page()
    document.rename_page(1, "IO")
    assert document.page_names() == ["Page 1", "IO"]
    assert document.current_page.name == "IO"
    document.set_current_page(0)
    assert document.delete_page(0)
    assert document.page_names() == ["IO"]
    assert document.current_index == 0
    assert not document.delete_page(0)
    assert document.page_names() == ["IO"]


# Слушатели подключаются и к новым страницам
def test_listeners_follow_new_pages(document, recorder, catalog, interaction):
    document.new_page()
    interaction.place_component(catalog.find_component("core", "boot"), QPointF(0, 0))
    assert interaction.place_component(catalog.find_component("core", "boot"), QPointF(0, 0)) is None
    assert len(recorder.warnings) == 1


# Копирование и вставка: смещение, новые индексы, выделение и соединение
def test_copy_paste(document, place):
    a = place("cpu")
    b = place("cpu", 400, 0)
    wire = Wire(document.counters.next_wire_index(), a.port_infos[2].handles[0].scene_connection_point,
                b.port_infos[0].handles[0].scene_connection_point)
    document.undo_stack.push(AddWireCommand(document.scene, wire, paste=True))
    document.select_all()
    assert document.copy()

    assert document.paste() == 3
    scene = document.scene
    assert len(scene.components) == 4 and len(scene.wires) == 2
    pa, pb = scene.components[2:]
    assert pa.unique_name == "core.cpu.2" and pb.unique_name == "core.cpu.3"
    assert pa.pos == QPointF(20, 20)
    pwire = scene.wires[1]
    assert pwire.index == 2
    assert pwire.connected_state == ConnectedState.FULL
    assert pwire.start_port is pa.port_infos[2].handles[0]
    assert pa.selected and pb.selected and pwire.selected
    assert not a.selected
    assert document.undo_stack.undoText() == "Paste Wire #2"


# Вставка соблюдает лимит экземпляров
def test_paste_respects_limit(document, place, recorder):
    place("boot")
    document.select_all()
    document.copy()
    assert document.paste() == 0
    assert len(document.scene.components) == 1
    assert recorder.warnings


# Выбрать все и снять выделение
def test_select_all_and_none(document, place):
    cpu = place("cpu")
    note = document.add_text(QPointF(0, 200), "x")
    document.select_all()
    assert cpu.selected and note.selected
    document.select_none()
    assert not cpu.selected and not note.selected
    assert not document.delete_selection()


# Цвет и шрифт меняются без undo, но делают документ измененным
def test_color_and_font(document, place):
    cpu = place("cpu")
    note = document.add_text(QPointF(0, 200), "x")
    document.mark_saved()
    document.select_all()
    document.set_component_fill_color("#112233")
    document.set_text_color("#ff0000")
    document.set_text_font("Mono,9")
    assert cpu.fill_color == "#112233"
    assert note.color == "#ff0000" and note.font == "Mono,9"
    assert document.undo_stack.count() == 2
    assert document.is_modified


# Обновление свойств сообщается при росте динамических свойств
def test_properties_refresh_on_dynamic_change(document, recorder, place):
    router = place("router")
    document.set_property(router, "count", "2")
    assert recorder.refreshed[-1] is router.properties


# Настройки: неизвестные ключи игнорируются, привязка к сетке отключается
def test_preferences():
    prefs = Preferences.from_dict({"grid_size": 10, "paste_offset": 5, "unknown": 1})
    assert prefs.grid_size == 10 and prefs.paste_offset == 5
    assert Preferences.from_dict(prefs.to_dict()) == prefs
    assert prefs.snap(QPointF(14, -15)) == QPointF(10, -20)
    prefs.snap_to_grid = False
    assert prefs.snap(QPointF(14.5, 3)) == QPointF(14.5, 3)


# Параметр, управляющий только портами, тоже обновляет список свойств
def test_properties_refresh_on_port_count_change(document, recorder):
    ctype = ComponentType("core", "switch", "Switch", ComponentCategory.NETWORK,
                          params=[ParamDef("lanes", "Number of lanes", "0")],
                          ports=[PortDef("lane%(lanes)d", "Lane")])
    switch = document.create_component(ctype, QPointF(0, 0))
    recorder.refreshed.clear()
    document.set_property(switch, "lanes", "2")
    assert len(switch.port_infos[0].handles) == 2
    assert recorder.refreshed == [switch.properties]
