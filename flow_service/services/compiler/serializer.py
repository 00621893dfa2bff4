"""
Flow Serializer - Flow document → platform flow JSON.

Output is deterministic: keys are emitted in a fixed order and components
in stored order, so serializing the same document twice gives identical
JSON text.
"""
import json
from copy import deepcopy
from typing import Any, Callable, Dict, List, Union

from flow_service.config import settings
from flow_service.core.exceptions import MalformedDocument
from flow_service.models.schemas.component_catalog import ComponentType
from flow_service.models.schemas.components import (
    ConditionalBranch,
    FlowComponent,
    IfProperties,
    SwitchCase,
    SwitchProperties,
)
from flow_service.models.schemas.core import Footer
from flow_service.models.schemas.flow import Flow, Screen
from flow_service.utils.logging import get_logger, trace_sync

logger = get_logger(__name__)

LAYOUT_TYPE = "SingleColumnLayout"

ComponentIndex = Dict[str, FlowComponent]


class FlowSerializer:
    """
    Converts a Flow into the platform's declarative JSON.

    Layout children per screen:
    1. TextHeading (screen heading, when set)
    2. TextBody (screen body, when set)
    3. Components in stored order; `if`/`switch` nest their branch members
    4. Footer (when set)
    """

    def __init__(self):
        self._encoders: Dict[ComponentType, Callable[[FlowComponent, ComponentIndex], Dict[str, Any]]] = {
            ComponentType.TEXT_INPUT: self._encode_leaf,
            ComponentType.DATE_PICKER: self._encode_leaf,
            ComponentType.CALENDAR_PICKER: self._encode_leaf,
            ComponentType.TIME_PICKER: self._encode_leaf,
            ComponentType.SELECT: self._encode_leaf,
            ComponentType.CHECKBOX: self._encode_leaf,
            ComponentType.RADIO: self._encode_leaf,
            ComponentType.CHIPS_SELECTOR: self._encode_leaf,
            ComponentType.IMAGE: self._encode_leaf,
            ComponentType.IMAGE_CAROUSEL: self._encode_leaf,
            ComponentType.PHOTO_PICKER: self._encode_leaf,
            ComponentType.DOCUMENT_PICKER: self._encode_leaf,
            ComponentType.EMBEDDED_LINK: self._encode_leaf,
            ComponentType.OPT_IN: self._encode_leaf,
            ComponentType.IF: self._encode_if,
            ComponentType.SWITCH: self._encode_switch,
            ComponentType.NAVIGATION_LIST: self._encode_leaf,
            ComponentType.RICH_TEXT: self._encode_leaf,
        }
        missing = [t.value for t in ComponentType if t not in self._encoders]
        if missing:
            raise RuntimeError(f"No serializer registered for: {missing}")

    @trace_sync("flow.serialize")
    def serialize(self, flow: Flow) -> Dict[str, Any]:
        """
        Serialize a flow document.

        Raises:
            MalformedDocument: the document breaks a structural invariant
        """
        problems = flow.check_invariants()
        if problems:
            logger.warning(
                "flow.serialize.rejected",
                extra={"flow_name": flow.name, "problems": problems}
            )
            raise MalformedDocument(problems)

        wire: Dict[str, Any] = {"version": settings.flow_json_version}

        if any(screen.uses_data_exchange for screen in flow.screens):
            wire["data_api_version"] = settings.data_api_version
            wire["routing_model"] = self.routing_model(flow)

        wire["name"] = flow.name
        wire["categories"] = list(flow.categories)
        wire["screens"] = [self._encode_screen(screen) for screen in flow.screens]

        logger.info(
            "flow.serialize.completed",
            extra={"flow_name": flow.name, "screens": len(flow.screens)}
        )
        return wire

    def serialize_to_string(self, flow: Flow, indent: int = 2) -> str:
        return json.dumps(self.serialize(flow), ensure_ascii=False, indent=indent)

    def routing_model(self, flow: Flow) -> Dict[str, List[str]]:
        """Screen id → ordered, unique screens it can navigate to"""
        routes: Dict[str, List[str]] = {}
        for screen in flow.screens:
            targets: List[str] = []
            for _, target in screen.navigation_references():
                if target != screen.id and target not in targets:
                    targets.append(target)
            routes[screen.id] = targets
        return routes

    # ========================================================================
    # SCREENS
    # ========================================================================

    def _encode_screen(self, screen: Screen) -> Dict[str, Any]:
        index = screen.component_index
        children: List[Dict[str, Any]] = []

        if screen.heading is not None:
            children.append({"type": "TextHeading", "text": screen.heading})
        if screen.body is not None:
            children.append({"type": "TextBody", "text": screen.body})

        for component in screen.top_level_components():
            children.append(self._encode_component(component, index))

        if screen.footer is not None:
            children.append(self._encode_footer(screen.footer))

        wire: Dict[str, Any] = {
            "id": screen.id,
            "title": screen.title,
            "layout": {"type": LAYOUT_TYPE, "children": children},
        }
        if screen.is_terminal:
            wire["terminal"] = True
        if screen.data:
            wire["data"] = deepcopy(screen.data)
        return wire

    def _encode_footer(self, footer: Footer) -> Dict[str, Any]:
        return {
            "type": "Footer",
            "label": footer.label,
            "on-click-action": footer.action.model_dump(mode="json"),
        }

    # ========================================================================
    # COMPONENTS
    # ========================================================================

    def _encode_component(self, component: FlowComponent, index: ComponentIndex) -> Dict[str, Any]:
        return self._encoders[component.type](component, index)

    def _component_header(self, component: FlowComponent) -> Dict[str, Any]:
        definition = component.definition
        return {
            "type": definition["wire_type"],
            definition["identifier_key"]: component.id,
            definition["title_key"]: component.title,
        }

    def _encode_leaf(self, component: FlowComponent, index: ComponentIndex) -> Dict[str, Any]:
        wire = self._component_header(component)
        wire.update(
            component.properties.model_dump(mode="json", by_alias=True, exclude_none=True)
        )
        return wire

    def _encode_branch(self, branch: Union[ConditionalBranch, SwitchCase], index: ComponentIndex) -> List[Dict[str, Any]]:
        children = [self._encode_component(index[member_id], index) for member_id in branch.components]
        if branch.footer is not None:
            children.append(self._encode_footer(branch.footer))
        return children

    def _encode_if(self, component: FlowComponent, index: ComponentIndex) -> Dict[str, Any]:
        properties: IfProperties = component.properties
        wire = self._component_header(component)
        if properties.visible is not None:
            wire["visible"] = properties.visible
        wire["condition"] = properties.condition.to_expression()
        wire["then"] = self._encode_branch(properties.then_branch, index)
        if not _is_empty_branch(properties.else_branch):
            wire["else"] = self._encode_branch(properties.else_branch, index)
        return wire

    def _encode_switch(self, component: FlowComponent, index: ComponentIndex) -> Dict[str, Any]:
        properties: SwitchProperties = component.properties
        wire = self._component_header(component)
        if properties.visible is not None:
            wire["visible"] = properties.visible
        wire["value"] = "" if properties.subject is None else "${form.%s}" % properties.subject
        wire["cases"] = {
            case.value: self._encode_branch(case, index)
            for case in properties.cases
        }
        return wire


def _is_empty_branch(branch: ConditionalBranch) -> bool:
    return not branch.components and branch.footer is None


# Global instance
flow_serializer = FlowSerializer()


def serialize_flow(flow: Flow) -> Dict[str, Any]:
    return flow_serializer.serialize(flow)


def flow_to_json(flow: Flow, indent: int = 2) -> str:
    return flow_serializer.serialize_to_string(flow, indent=indent)
