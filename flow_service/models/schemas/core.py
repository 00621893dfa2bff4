"""
Core type definitions shared by all component property schemas.
"""
from copy import deepcopy
from typing import Any, Dict, List, Literal, Optional, Type
from pydantic import BaseModel, ConfigDict, Field, model_serializer, model_validator

from .component_catalog import ComponentType


ActionName = Literal["navigate", "complete", "data_exchange", "update_data", "open_url"]

ACTION_NAMES = ("navigate", "complete", "data_exchange", "update_data", "open_url")


class FlowAction(BaseModel):
    """
    Action fired by a footer, link, navigation item or selection component.

    On the wire a navigate action points at its target by screen id:
    {"name": "navigate", "next": {"type": "screen", "name": "<screen id>"}, "payload": {}}
    """
    name: ActionName
    next_screen: Optional[str] = Field(default=None, description="Target screen id (navigate only)")
    payload: Dict[str, Any] = Field(default_factory=dict)
    url: Optional[str] = Field(default=None, description="Target URL (open_url only)")

    @model_validator(mode='before')
    @classmethod
    def accept_wire_shape(cls, data: Any) -> Any:
        if isinstance(data, dict) and "next" in data:
            data = dict(data)
            next_value = data.pop("next")
            if isinstance(next_value, dict):
                data.setdefault("next_screen", next_value.get("name"))
            elif isinstance(next_value, str):
                data.setdefault("next_screen", next_value)
        return data

    @model_validator(mode='after')
    def drop_fields_unused_by_action(self) -> 'FlowAction':
        if self.name != "navigate":
            self.next_screen = None
        if self.name == "open_url":
            self.url = self.url or ""
            self.payload = {}
        else:
            self.url = None
        return self

    @model_serializer
    def to_wire(self) -> Dict[str, Any]:
        wire: Dict[str, Any] = {"name": self.name}
        if self.name == "navigate" and self.next_screen is not None:
            wire["next"] = {"type": "screen", "name": self.next_screen}
        if self.name == "open_url":
            wire["url"] = self.url
        else:
            wire["payload"] = deepcopy(self.payload)
        return wire

    @property
    def is_navigation(self) -> bool:
        return self.name == "navigate"

    @property
    def completes_flow(self) -> bool:
        return self.name == "complete"


class Footer(BaseModel):
    """Screen or branch footer button"""
    label: str
    action: FlowAction = Field(default_factory=lambda: FlowAction(name="complete"))


class DataSourceOption(BaseModel):
    """One entry of an inline data-source array"""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    description: Optional[str] = None
    enabled: Optional[bool] = None


class BaseComponentProperties(BaseModel):
    """Common properties for all components"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    visible: Optional[bool] = None

    def iter_actions(self) -> List[FlowAction]:
        """Actions held directly by this component"""
        actions = []
        for field_name in type(self).model_fields:
            value = getattr(self, field_name)
            if isinstance(value, FlowAction):
                actions.append(value)
        return actions

    def branch_footers(self) -> List[Footer]:
        return []

    def branch_members(self) -> List[str]:
        return []

    def referenced_components(self) -> List[str]:
        return []


# Component property type mapping
COMPONENT_PROPERTY_SCHEMAS: Dict[ComponentType, Type[BaseComponentProperties]] = {}


def register_component_schema(component_type: ComponentType, schema_class: Type[BaseComponentProperties]):
    """Register a component property schema"""
    COMPONENT_PROPERTY_SCHEMAS[component_type] = schema_class
