"""Centralized flow component registry.

This module is the single source of truth for the closed set of component
types a flow screen may contain, and for how each type appears on the wire.
"""

from __future__ import annotations

from copy import deepcopy
from enum import Enum
from typing import Any, Dict, List, Optional, TypedDict, Union

from flow_service.core.exceptions import UnknownComponentType


class ComponentType(str, Enum):
    """Closed enumeration of editor component types."""

    TEXT_INPUT = "text_input"
    DATE_PICKER = "date_picker"
    CALENDAR_PICKER = "calendar_picker"
    TIME_PICKER = "time_picker"
    SELECT = "select"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    CHIPS_SELECTOR = "chips_selector"
    IMAGE = "image"
    IMAGE_CAROUSEL = "image_carousel"
    PHOTO_PICKER = "photo_picker"
    DOCUMENT_PICKER = "document_picker"
    EMBEDDED_LINK = "embedded_link"
    OPT_IN = "opt_in"
    IF = "if"
    SWITCH = "switch"
    NAVIGATION_LIST = "navigation_list"
    RICH_TEXT = "rich_text"


class ComponentDefinition(TypedDict, total=False):
    """Full definition for a flow component."""

    type: ComponentType
    wire_type: str
    category: str
    identifier_key: str
    title_key: str
    action_key: Optional[str]
    default_title: str


CONTROL_COMPONENT_TYPES = frozenset({ComponentType.IF, ComponentType.SWITCH})

# Wire types the screen itself renders (heading, body, footer).
SCREEN_CHROME_TYPES = ("TextHeading", "TextBody", "Footer")


COMPONENT_DEFINITIONS: Dict[ComponentType, ComponentDefinition] = {
    ComponentType.TEXT_INPUT: {
        "wire_type": "TextInput",
        "category": "input",
        "identifier_key": "name",
        "title_key": "label",
        "action_key": None,
        "default_title": "Text Input",
    },
    ComponentType.DATE_PICKER: {
        "wire_type": "DatePicker",
        "category": "date",
        "identifier_key": "name",
        "title_key": "label",
        "action_key": "on-select-action",
        "default_title": "Date Picker",
    },
    ComponentType.CALENDAR_PICKER: {
        "wire_type": "CalendarPicker",
        "category": "date",
        "identifier_key": "name",
        "title_key": "label",
        "action_key": "on-select-action",
        "default_title": "Calendar Picker",
    },
    ComponentType.TIME_PICKER: {
        "wire_type": "TimePicker",
        "category": "date",
        "identifier_key": "name",
        "title_key": "label",
        "action_key": "on-select-action",
        "default_title": "Time Picker",
    },
    ComponentType.SELECT: {
        "wire_type": "Dropdown",
        "category": "selection",
        "identifier_key": "name",
        "title_key": "label",
        "action_key": "on-select-action",
        "default_title": "Select",
    },
    ComponentType.CHECKBOX: {
        "wire_type": "CheckboxGroup",
        "category": "selection",
        "identifier_key": "name",
        "title_key": "label",
        "action_key": "on-select-action",
        "default_title": "Checkbox Group",
    },
    ComponentType.RADIO: {
        "wire_type": "RadioButtonsGroup",
        "category": "selection",
        "identifier_key": "name",
        "title_key": "label",
        "action_key": "on-select-action",
        "default_title": "Radio Group",
    },
    ComponentType.CHIPS_SELECTOR: {
        "wire_type": "ChipsSelector",
        "category": "selection",
        "identifier_key": "name",
        "title_key": "label",
        "action_key": "on-select-action",
        "default_title": "Chips Selector",
    },
    ComponentType.IMAGE: {
        "wire_type": "Image",
        "category": "media",
        "identifier_key": "id",
        "title_key": "label",
        "action_key": None,
        "default_title": "Image",
    },
    ComponentType.IMAGE_CAROUSEL: {
        "wire_type": "ImageCarousel",
        "category": "media",
        "identifier_key": "id",
        "title_key": "label",
        "action_key": None,
        "default_title": "Image Carousel",
    },
    ComponentType.PHOTO_PICKER: {
        "wire_type": "PhotoPicker",
        "category": "upload",
        "identifier_key": "name",
        "title_key": "label",
        "action_key": None,
        "default_title": "Photo Picker",
    },
    ComponentType.DOCUMENT_PICKER: {
        "wire_type": "DocumentPicker",
        "category": "upload",
        "identifier_key": "name",
        "title_key": "label",
        "action_key": None,
        "default_title": "Document Picker",
    },
    ComponentType.EMBEDDED_LINK: {
        "wire_type": "EmbeddedLink",
        "category": "link",
        "identifier_key": "id",
        "title_key": "text",
        "action_key": "on-click-action",
        "default_title": "Click here",
    },
    ComponentType.OPT_IN: {
        "wire_type": "OptIn",
        "category": "link",
        "identifier_key": "name",
        "title_key": "label",
        "action_key": "on-click-action",
        "default_title": "I agree to the terms",
    },
    ComponentType.IF: {
        "wire_type": "If",
        "category": "control",
        "identifier_key": "id",
        "title_key": "label",
        "action_key": None,
        "default_title": "If",
    },
    ComponentType.SWITCH: {
        "wire_type": "Switch",
        "category": "control",
        "identifier_key": "id",
        "title_key": "label",
        "action_key": None,
        "default_title": "Switch",
    },
    ComponentType.NAVIGATION_LIST: {
        "wire_type": "NavigationList",
        "category": "container",
        "identifier_key": "id",
        "title_key": "label",
        "action_key": None,
        "default_title": "Navigation List",
    },
    ComponentType.RICH_TEXT: {
        "wire_type": "RichText",
        "category": "display",
        "identifier_key": "id",
        "title_key": "label",
        "action_key": None,
        "default_title": "Rich Text",
    },
}

for _component_type, _definition in COMPONENT_DEFINITIONS.items():
    _definition["type"] = _component_type

_missing_definitions = [t.value for t in ComponentType if t not in COMPONENT_DEFINITIONS]
if _missing_definitions:
    raise RuntimeError(f"Component catalog is missing definitions for: {_missing_definitions}")


def _build_wire_type_index() -> Dict[str, ComponentType]:
    return {definition["wire_type"]: component_type for component_type, definition in COMPONENT_DEFINITIONS.items()}


_WIRE_TYPE_INDEX = _build_wire_type_index()


def normalize_component_type(component_type: Union[str, ComponentType]) -> ComponentType:
    """Resolve an editor type name to `ComponentType`; never falls back."""
    if isinstance(component_type, ComponentType):
        return component_type
    if isinstance(component_type, str):
        try:
            return ComponentType(component_type.strip().lower())
        except ValueError:
            pass
    raise UnknownComponentType(component_type)


def component_type_from_wire(wire_type: Any) -> ComponentType:
    if isinstance(wire_type, str) and wire_type in _WIRE_TYPE_INDEX:
        return _WIRE_TYPE_INDEX[wire_type]
    raise UnknownComponentType(wire_type)


def is_known_wire_type(wire_type: Any) -> bool:
    return isinstance(wire_type, str) and (wire_type in _WIRE_TYPE_INDEX or wire_type in SCREEN_CHROME_TYPES)


def get_component_definition(component_type: Union[str, ComponentType]) -> ComponentDefinition:
    return COMPONENT_DEFINITIONS[normalize_component_type(component_type)]


def get_available_components() -> List[str]:
    return [component_type.value for component_type in ComponentType]


def get_wire_type(component_type: Union[str, ComponentType]) -> str:
    return get_component_definition(component_type)["wire_type"]


def get_identifier_key(component_type: Union[str, ComponentType]) -> str:
    return get_component_definition(component_type)["identifier_key"]


def get_title_key(component_type: Union[str, ComponentType]) -> str:
    return get_component_definition(component_type)["title_key"]


def get_default_title(component_type: Union[str, ComponentType]) -> str:
    return get_component_definition(component_type)["default_title"]


def is_control_component(component_type: Union[str, ComponentType]) -> bool:
    return normalize_component_type(component_type) in CONTROL_COMPONENT_TYPES


def is_input_component(component_type: Union[str, ComponentType]) -> bool:
    return get_component_definition(component_type)["identifier_key"] == "name"


def get_component_property_schema(component_type: Union[str, ComponentType]):
    """Return the pydantic properties model registered for a type."""
    from .core import COMPONENT_PROPERTY_SCHEMAS

    canonical = normalize_component_type(component_type)
    return COMPONENT_PROPERTY_SCHEMAS[canonical]


def get_component_default_properties(component_type: Union[str, ComponentType]) -> Dict[str, Any]:
    """Baseline properties of a type, keyed the way they appear on the wire."""
    schema_class = get_component_property_schema(component_type)
    return schema_class().model_dump(mode="json", by_alias=True, exclude_none=True)


def export_component_catalog() -> Dict[str, Any]:
    components = {}
    for component_type, definition in COMPONENT_DEFINITIONS.items():
        entry = deepcopy(dict(definition))
        entry["type"] = component_type.value
        entry["control"] = component_type in CONTROL_COMPONENT_TYPES
        entry["default_properties"] = get_component_default_properties(component_type)
        components[component_type.value] = entry
    return {
        "components": components,
        "wire_types": {wire_type: component_type.value for wire_type, component_type in _WIRE_TYPE_INDEX.items()},
        "control_components": sorted(t.value for t in CONTROL_COMPONENT_TYPES),
        "screen_chrome": list(SCREEN_CHROME_TYPES),
    }
