from workbench.properties import ItemProperties, split_dynamic_name, instance_name, to_int, READ_ONLY


class Owner:
    def __init__(self):
        self.changes = []
        self.refreshes = 0

    def property_changed(self, name, value):
        self.changes.append((name, value))

    def dynamic_properties_changed(self, properties):
        self.refreshes += 1


# Разбор шаблонов имен портов и параметров
def test_split_dynamic_name():
    assert split_dynamic_name("clock") == ("clock", False, "")
    assert split_dynamic_name("port%d") == ("port%d", True, "")
    assert split_dynamic_name("out%(count)d") == ("out%d", True, "count")
    assert split_dynamic_name("lane%(n)d_rx") == ("lane%d_rx", True, "n")
    assert split_dynamic_name("bad%(count") == ("bad%(count", False, "")
    assert instance_name("lane%d_rx", 3) == "lane3_rx"


# Преобразование к int как у строки Qt: мусор дает 0
def test_to_int():
    assert to_int("12") == 12
    assert to_int(" 4 ") == 4
    assert to_int("abc") == 0
    assert to_int("") == 0


# Дубликаты не добавляются, строки для таблицы свойств
def test_add_property_and_rows():
    props = ItemProperties()
    props.add_property("Index", "3", "Component Index", READ_ONLY)
    props.add_property("Index", "9")
    props.add_property("Comment", "", "Comment", exportable=False)
    assert len(props) == 2
    assert props.rows()[0] == ("Index", "3", "Component Index", True, True)
    assert props.get("Comment").exportable is False
    assert props.value("missing") == ""


# Динамическое свойство растет после первой строки и сжимается с конца
def test_dynamic_property_grow_and_shrink():
    owner = Owner()
    props = ItemProperties(owner)
    props.add_property("count", "0")
    props.add_property("lat%(count)d", "1ns", "Latency")
    props.add_property("tail", "x")

    props.set_value("count", "3")
    assert [p.name for p in props] == ["count", "lat0", "lat1", "lat2", "tail"]
    assert all(p.num_instances == 3 for p in props if p.original_name == "lat%d")
    assert owner.changes == [("count", "3")]
    assert owner.refreshes == 1

    props.set_value("lat2", "5ns")
    props.set_value("count", "1")
    assert [p.name for p in props] == ["count", "lat0", "tail"]

    props.set_value("count", "0")
    assert [p.name for p in props] == ["count", "lat%d", "tail"]
    assert owner.refreshes == 3


# Без callback владелец не уведомляется
def test_set_value_without_callback():
    owner = Owner()
    props = ItemProperties(owner)
    props.add_property("count", "0")
    props.add_property("lat%(count)d", "1ns")
    props.set_value("count", "2", callback=False)
    assert owner.changes == []
    assert owner.refreshes == 0
    assert [p.name for p in props] == ["count", "lat0", "lat1"]
