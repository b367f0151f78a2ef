from workbench.catalog import Catalog, ComponentCategory, category_name, category_prefix


# Поиск типов компонентов и ключ "элемент.компонент"
def test_find_component(catalog):
    router = catalog.find_component("core", "router")
    assert router.key == "core.router"
    assert router.category_name == "Network"
    assert catalog.find_component("core", "missing") is None
    assert catalog.find_component("nope", "router") is None
    assert set(catalog.components_by_key()) == {"core.cpu", "core.router", "core.memory", "core.boot"}


# Неизвестная категория дает имя и префикс ошибки
def test_category_fallbacks():
    assert category_name(ComponentCategory.MEMORY) == "Memory"
    assert category_prefix(ComponentCategory.STARTUP_CONFIGURATION) == "[CFG] "
    assert category_name(42) == "ERROR - UNDEFINED"
    assert category_prefix(-1) == "[ERROR] + "


# Каталог сохраняется в JSON и читается обратно
def test_json_save_load(catalog, tmp_path):
    path = tmp_path / "catalog.json"
    catalog.save_json(str(path))
    loaded = Catalog.load_json(str(path))
    assert loaded == catalog
    router = loaded.find_component("core", "router")
    assert router.element_name == "core"
    assert [p.name for p in router.ports] == ["in", "out%(count)d", "ctl"]
