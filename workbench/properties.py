import logging
from dataclasses import dataclass
from typing import List, NamedTuple, Optional, Tuple

logger = logging.getLogger(__name__)

READ_ONLY = True
READ_WRITE = False


def split_dynamic_name(name: str) -> Tuple[str, bool, str]:
    """Classify a catalog port or parameter name.

    Returns ``(generic_name, is_dynamic, controlling_param)``.  A name with
    ``%d`` is dynamic with no controlling parameter; ``%(param)d`` is dynamic
    and controlled by ``param``, the generic name keeping a bare ``%d``.
    Anything else, including a malformed ``%(`` template, is static.
    """
    if "%d" not in name and "%(" not in name:
        return name, False, ""
    if "%d" in name:
        return name, True, ""
    i1 = name.find("%(")
    i2 = name.find(")d", i1)
    if i1 >= 0 and i2 > i1:
        controlling = name[i1 + 2:i2]
        return name[:i1 + 1] + name[i2 + 1:], True, controlling
    return name, False, ""


def instance_name(generic_name: str, ordinal: int) -> str:
    return generic_name.replace("%d", str(ordinal))


class PropertyRow(NamedTuple):
    name: str
    value: str
    description: str
    read_only: bool
    exportable: bool


@dataclass
class ItemProperty:
    name: str
    original_name: str
    value: str = ""
    default_value: str = ""
    description: str = ""
    read_only: bool = False
    protected: bool = False
    exportable: bool = True
    dynamic: bool = False
    controlling_property: str = ""
    num_instances: int = 0

    def row(self) -> PropertyRow:
        return PropertyRow(self.name, self.value, self.description,
                           self.read_only, self.exportable)


class ItemProperties:
    """Ordered key/value set attached to a component, port handle or wire.

    ``owner`` is notified through ``property_changed(name, value)`` when a
    value is written with callbacks on, and through
    ``dynamic_properties_changed(properties)`` after a dynamic property grew
    or shrank.  Both hooks are optional.
    """

    def __init__(self, owner=None):
        self.owner = owner
        self.__items: List[ItemProperty] = []

    def __len__(self):
        return len(self.__items)

    def __iter__(self):
        return iter(self.__items)

    def __contains__(self, name):
        return self.index_of(name) >= 0

    def add_property(self, name: str, value: str = "", description: str = "",
                     read_only: bool = READ_WRITE, protected: bool = False,
                     exportable: bool = True):
        generic, dynamic, controlling = split_dynamic_name(name)
        if generic in self:
            return
        self.__items.append(ItemProperty(
            name=generic, original_name=generic, value=value,
            default_value=value, description=description,
            read_only=read_only, protected=protected, exportable=exportable,
            dynamic=dynamic, controlling_property=controlling))

    def append(self, prop: ItemProperty):
        """Append an already built property; used when loading from a stream."""
        self.__items.append(prop)

    def index_of(self, name: str) -> int:
        for i, prop in enumerate(self.__items):
            if prop.name == name:
                return i
        return -1

    def get(self, name: str) -> Optional[ItemProperty]:
        index = self.index_of(name)
        return self.__items[index] if index >= 0 else None

    def value(self, name: str) -> str:
        prop = self.get(name)
        return prop.value if prop is not None else ""

    def set_value(self, name: str, value: str, callback: bool = True):
        prop = self.get(name)
        if prop is None:
            return
        prop.value = value
        self.property_changed(name, value, callback)

    def rows(self) -> List[PropertyRow]:
        return [p.row() for p in self.__items]

    def property_changed(self, name: str, value: str, callback: bool):
        if callback and self.owner is not None:
            self.owner.property_changed(name, value)
        self.__check_dynamic_property_changed(name, value, callback)

    def __check_dynamic_property_changed(self, name: str, value: str, callback: bool):
        processed = set()
        for prop in list(self.__items):
            if prop.original_name in processed:
                continue
            processed.add(prop.original_name)
            if prop.dynamic and prop.controlling_property == name:
                self.adjust_dynamic_property(prop.name, to_int(value), callback)

    def adjust_dynamic_property(self, name: str, count: int, callback: bool = True):
        """Grow or shrink the instances of dynamic property ``name`` to ``count``."""
        count = max(count, 0)
        start = self.index_of(name)
        if start < 0:
            return
        current = self.__items[start]
        current_count = current.num_instances
        original = current.original_name
        adjusted = False

        if count > current_count:
            for x in range(current_count, count):
                new_name = instance_name(original, x)
                if x == 0:
                    current.name = new_name
                else:
                    self.__items.insert(start + x, ItemProperty(
                        name=new_name, original_name=original,
                        value=current.default_value,
                        default_value=current.default_value,
                        description=current.description,
                        read_only=current.read_only,
                        protected=current.protected,
                        exportable=current.exportable, dynamic=True,
                        controlling_property=current.controlling_property))
                adjusted = True

        if count < current_count:
            for x in range(current_count - 1, max(count, 0) - 1, -1):
                index = self.index_of(instance_name(original, x))
                if index < 0:
                    continue
                if x == 0:
                    self.__items[index].name = original
                else:
                    del self.__items[index]
                adjusted = True

        if adjusted:
            for prop in self.__items:
                if prop.original_name == original:
                    prop.num_instances = count
            logger.debug("dynamic property %s now has %d instances", original, count)
            hook = getattr(self.owner, "dynamic_properties_changed", None)
            if callback and hook is not None:
                hook(self)


def to_int(value: str) -> int:
    """Integer conversion that, like a Qt string, yields 0 for junk."""
    try:
        return int(str(value).strip())
    except ValueError:
        return 0
