import json
from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Dict, Optional


class ComponentCategory(IntEnum):
    UNCATEGORIZED = 0
    PROCESSOR = 1
    MEMORY = 2
    NETWORK = 3
    SYSTEM = 4
    STARTUP_CONFIGURATION = 5


CATEGORY_NAMES = {
    ComponentCategory.UNCATEGORIZED: "Uncategorized",
    ComponentCategory.PROCESSOR: "Processor",
    ComponentCategory.MEMORY: "Memory",
    ComponentCategory.NETWORK: "Network",
    ComponentCategory.SYSTEM: "System",
    ComponentCategory.STARTUP_CONFIGURATION: "Startup Configuration",
}

CATEGORY_DISPLAY_PREFIXES = {
    ComponentCategory.UNCATEGORIZED: "[UNCAT] ",
    ComponentCategory.PROCESSOR: "[PROC] ",
    ComponentCategory.MEMORY: "[MEM] ",
    ComponentCategory.NETWORK: "[NET] ",
    ComponentCategory.SYSTEM: "[SYS] ",
    ComponentCategory.STARTUP_CONFIGURATION: "[CFG] ",
}

UNDEFINED_CATEGORY_NAME = "ERROR - UNDEFINED"
UNDEFINED_CATEGORY_PREFIX = "[ERROR] + "


def category_name(category: int) -> str:
    try:
        return CATEGORY_NAMES[ComponentCategory(category)]
    except ValueError:
        return UNDEFINED_CATEGORY_NAME


def category_prefix(category: int) -> str:
    try:
        return CATEGORY_DISPLAY_PREFIXES[ComponentCategory(category)]
    except ValueError:
        return UNDEFINED_CATEGORY_PREFIX


def component_key(element_name: str, component_name: str) -> str:
    return f"{element_name}.{component_name}"


@dataclass
class ParamDef:
    name: str
    description: str = ""
    default_value: str = ""

    def to_dict(self):
        return {"name": self.name, "description": self.description,
                "default": self.default_value}

    @staticmethod
    def from_dict(d):
        return ParamDef(name=d["name"], description=d.get("description", ""),
                        default_value=str(d.get("default", "")))


@dataclass
class PortDef:
    name: str
    description: str = ""
    valid_events: List[str] = field(default_factory=list)

    def to_dict(self):
        return {"name": self.name, "description": self.description,
                "valid_events": list(self.valid_events)}

    @staticmethod
    def from_dict(d):
        return PortDef(name=d["name"], description=d.get("description", ""),
                       valid_events=list(d.get("valid_events", [])))


@dataclass
class ComponentType:
    element_name: str
    name: str
    description: str = ""
    category: ComponentCategory = ComponentCategory.UNCATEGORIZED
    allowed_instances: int = -1
    params: List[ParamDef] = field(default_factory=list)
    ports: List[PortDef] = field(default_factory=list)

    @property
    def key(self) -> str:
        return component_key(self.element_name, self.name)

    @property
    def category_name(self) -> str:
        return category_name(self.category)

    def to_dict(self):
        return {"name": self.name, "description": self.description,
                "category": int(self.category),
                "allowed_instances": self.allowed_instances,
                "params": [p.to_dict() for p in self.params],
                "ports": [p.to_dict() for p in self.ports]}

    @staticmethod
    def from_dict(d, element_name: str):
        return ComponentType(
            element_name=element_name,
            name=d["name"],
            description=d.get("description", ""),
            category=ComponentCategory(d.get("category", 0)),
            allowed_instances=d.get("allowed_instances", -1),
            params=[ParamDef.from_dict(p) for p in d.get("params", [])],
            ports=[PortDef.from_dict(p) for p in d.get("ports", [])])


@dataclass
class ModuleType:
    element_name: str
    name: str
    description: str = ""
    params: List[ParamDef] = field(default_factory=list)

    def to_dict(self):
        return {"name": self.name, "description": self.description,
                "params": [p.to_dict() for p in self.params]}

    @staticmethod
    def from_dict(d, element_name: str):
        return ModuleType(element_name=element_name, name=d["name"],
                          description=d.get("description", ""),
                          params=[ParamDef.from_dict(p) for p in d.get("params", [])])


@dataclass
class EventType:
    element_name: str
    name: str
    description: str = ""

    def to_dict(self):
        return {"name": self.name, "description": self.description}

    @staticmethod
    def from_dict(d, element_name: str):
        return EventType(element_name=element_name, name=d["name"],
                         description=d.get("description", ""))


@dataclass
class Element:
    name: str
    description: str = ""
    components: List[ComponentType] = field(default_factory=list)
    modules: List[ModuleType] = field(default_factory=list)
    events: List[EventType] = field(default_factory=list)

    def find_component(self, name: str) -> Optional[ComponentType]:
        for comp in self.components:
            if comp.name == name:
                return comp
        return None

    def to_dict(self):
        return {"name": self.name, "description": self.description,
                "components": [c.to_dict() for c in self.components],
                "modules": [m.to_dict() for m in self.modules],
                "events": [e.to_dict() for e in self.events]}

    @staticmethod
    def from_dict(d):
        name = d["name"]
        return Element(
            name=name,
            description=d.get("description", ""),
            components=[ComponentType.from_dict(c, name) for c in d.get("components", [])],
            modules=[ModuleType.from_dict(m, name) for m in d.get("modules", [])],
            events=[EventType.from_dict(e, name) for e in d.get("events", [])])


@dataclass
class Catalog:
    """Read-only tree of element definitions the editor places components from.

    The editor never mutates a catalog; components copy what they need
    from a ComponentType when they are created.
    """
    elements: List[Element] = field(default_factory=list)

    def find_element(self, name: str) -> Optional[Element]:
        for element in self.elements:
            if element.name == name:
                return element
        return None

    def find_component(self, element_name: str, component_name: str) -> Optional[ComponentType]:
        element = self.find_element(element_name)
        if element is None:
            return None
        return element.find_component(component_name)

    def all_components(self) -> List[ComponentType]:
        return [c for e in self.elements for c in e.components]

    def components_by_key(self) -> Dict[str, ComponentType]:
        return {c.key: c for c in self.all_components()}

    def to_dict(self):
        return {"elements": [e.to_dict() for e in self.elements]}

    @staticmethod
    def from_dict(d):
        return Catalog(elements=[Element.from_dict(e) for e in d.get("elements", [])])

    def save_json(self, filename: str):
        with open(filename, "w", encoding="utf8") as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)

    @staticmethod
    def load_json(filename: str) -> "Catalog":
        with open(filename, "r", encoding="utf8") as f:
            return Catalog.from_dict(json.load(f))
