"""
Flow Deserializer - platform flow JSON → Flow document.

Inverse of the serializer: screen chrome is lifted back into screen fields
and `if`/`switch` branches are flattened into the screen's component list
(control first, then its members in pre-order) with branch membership kept
as component ids.
"""
import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ValidationError

from flow_service.config import settings
from flow_service.core.exceptions import MalformedDocument, MalformedJson
from flow_service.models.schemas.component_catalog import (
    ComponentType,
    SCREEN_CHROME_TYPES,
    component_type_from_wire,
    get_component_definition,
    get_component_property_schema,
    get_default_title,
)
from flow_service.models.schemas.components import (
    Condition,
    ConditionalBranch,
    FORM_REFERENCE,
    FlowComponent,
    IfProperties,
    SwitchCase,
    SwitchProperties,
)
from flow_service.models.schemas.core import FlowAction, Footer
from flow_service.models.schemas.flow import Flow, Screen
from flow_service.services.compiler.default_factory import default_factory
from flow_service.utils.logging import get_logger, trace_sync

logger = get_logger(__name__)

WireJson = Union[Dict[str, Any], str, bytes]


@dataclass
class _ScreenContext:
    """Components decoded so far for one screen, in pre-order"""
    screen_id: str
    components: List[Optional[FlowComponent]] = field(default_factory=list)
    reserved_ids: List[str] = field(default_factory=list)

    def existing(self) -> List[Any]:
        decoded = [component for component in self.components if component is not None]
        return decoded + [{"id": component_id} for component_id in self.reserved_ids]


def _describe_validation_error(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in detail['loc']) or 'value'}: {detail['msg']}"
        for detail in error.errors()
    )


def _known_property_keys(schema_class: type) -> set:
    keys = set()
    for name, field_info in schema_class.model_fields.items():
        keys.add(name)
        if field_info.alias:
            keys.add(field_info.alias)
    return keys


class FlowDeserializer:
    """Rebuilds a Flow from platform flow JSON"""

    def __init__(self):
        self._decoders: Dict[ComponentType, Callable[[ComponentType, Dict[str, Any], _ScreenContext], str]] = {
            ComponentType.TEXT_INPUT: self._decode_leaf,
            ComponentType.DATE_PICKER: self._decode_leaf,
            ComponentType.CALENDAR_PICKER: self._decode_leaf,
            ComponentType.TIME_PICKER: self._decode_leaf,
            ComponentType.SELECT: self._decode_leaf,
            ComponentType.CHECKBOX: self._decode_leaf,
            ComponentType.RADIO: self._decode_leaf,
            ComponentType.CHIPS_SELECTOR: self._decode_leaf,
            ComponentType.IMAGE: self._decode_leaf,
            ComponentType.IMAGE_CAROUSEL: self._decode_leaf,
            ComponentType.PHOTO_PICKER: self._decode_leaf,
            ComponentType.DOCUMENT_PICKER: self._decode_leaf,
            ComponentType.EMBEDDED_LINK: self._decode_leaf,
            ComponentType.OPT_IN: self._decode_leaf,
            ComponentType.IF: self._decode_if,
            ComponentType.SWITCH: self._decode_switch,
            ComponentType.NAVIGATION_LIST: self._decode_leaf,
            ComponentType.RICH_TEXT: self._decode_leaf,
        }
        missing = [t.value for t in ComponentType if t not in self._decoders]
        if missing:
            raise RuntimeError(f"No deserializer registered for: {missing}")

    @trace_sync("flow.deserialize")
    def deserialize(self, data: WireJson, fallback_name: Optional[str] = None) -> Flow:
        """
        Rebuild a flow document.

        Args:
            data: Flow JSON as dict or string
            fallback_name: Used when the JSON has no top-level name

        Raises:
            MalformedJson: string input is not valid JSON
            MalformedDocument: JSON structure cannot form a flow
            UnknownComponentType: a component type outside the catalog
        """
        document = self.load(data)

        screens_data = document.get("screens", [])
        if not isinstance(screens_data, list):
            raise MalformedDocument(["flow: 'screens' must be a list"])

        screens = [self._decode_screen(raw, position) for position, raw in enumerate(screens_data)]

        name = document.get("name")
        if not isinstance(name, str) or not name:
            name = fallback_name or ""

        try:
            flow = Flow(
                name=name,
                categories=document.get("categories") or [],
                screens=screens,
            )
        except ValidationError as e:
            raise MalformedDocument([f"flow: {_describe_validation_error(e)}"])

        logger.info(
            "flow.deserialize.completed",
            extra={"flow_name": flow.name, "screens": len(flow.screens)}
        )
        return flow

    def load(self, data: WireJson) -> Dict[str, Any]:
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        if isinstance(data, str):
            try:
                data = json.loads(data)
            except json.JSONDecodeError as e:
                logger.error(
                    "flow.deserialize.parse_failed",
                    extra={"line": e.lineno, "column": e.colno},
                    exc_info=e
                )
                raise MalformedJson(
                    f"Flow JSON could not be parsed: {e.msg} (line {e.lineno}, column {e.colno})",
                    details={"line": e.lineno, "column": e.colno},
                )
        if not isinstance(data, dict):
            raise MalformedDocument(["flow: document must be a JSON object"])
        return data

    # ========================================================================
    # SCREENS
    # ========================================================================

    def _decode_screen(self, raw: Any, position: int) -> Screen:
        if not isinstance(raw, dict):
            raise MalformedDocument([f"screen[{position}]: must be an object"])

        screen_id = raw.get("id")
        if not isinstance(screen_id, str) or not screen_id:
            raise MalformedDocument([f"screen[{position}]: missing required field 'id'"])

        layout = raw.get("layout") or {}
        children = layout.get("children", []) if isinstance(layout, dict) else None
        if not isinstance(children, list):
            raise MalformedDocument([f"screen {screen_id}: layout.children must be a list"])

        start, end = 0, len(children)
        heading = body = None
        if start < end and self._child_type(children[start]) == "TextHeading":
            heading = children[start].get("text", "")
            start += 1
        if start < end and self._child_type(children[start]) == "TextBody":
            body = children[start].get("text", "")
            start += 1

        footer = None
        if end > start and self._child_type(children[end - 1]) == "Footer":
            footer = self._decode_footer(children[end - 1], screen_id)
            end -= 1

        context = _ScreenContext(screen_id=screen_id)
        self._decode_children(children[start:end], context)

        data = raw.get("data") or {}
        if not isinstance(data, dict):
            raise MalformedDocument([f"screen {screen_id}: 'data' must be an object"])

        try:
            screen = Screen(
                id=screen_id,
                title=raw.get("title") or "",
                heading=heading,
                body=body,
                components=context.components,
                footer=footer,
                data=data,
            )
        except ValidationError as e:
            raise MalformedDocument([f"screen {screen_id}: {_describe_validation_error(e)}"])

        problems = screen.structural_problems()
        if problems:
            raise MalformedDocument(problems)
        return screen

    def _child_type(self, child: Any) -> Optional[str]:
        return child.get("type") if isinstance(child, dict) else None

    def _decode_footer(self, child: Dict[str, Any], screen_id: str) -> Footer:
        try:
            return Footer(
                label=child.get("label") or settings.default_footer_label,
                action=FlowAction.model_validate(child.get("on-click-action") or {"name": "complete"}),
            )
        except ValidationError as e:
            raise MalformedDocument([f"screen {screen_id}: footer {_describe_validation_error(e)}"])

    def _split_branch(self, children: Any, context: _ScreenContext, label: str) -> Tuple[List[str], Optional[Footer]]:
        if not isinstance(children, list):
            raise MalformedDocument([f"screen {context.screen_id}: {label} must be a list"])
        footer = None
        if children and self._child_type(children[-1]) == "Footer":
            footer = self._decode_footer(children[-1], context.screen_id)
            children = children[:-1]
        return self._decode_children(children, context), footer

    def _decode_children(self, children: List[Any], context: _ScreenContext) -> List[str]:
        component_ids = []
        for child in children:
            if not isinstance(child, dict):
                raise MalformedDocument([f"screen {context.screen_id}: layout children must be objects"])
            wire_type = child.get("type")
            if wire_type in SCREEN_CHROME_TYPES:
                raise MalformedDocument(
                    [f"screen {context.screen_id}: {wire_type} is only supported as screen heading, body or footer"]
                )
            component_type = component_type_from_wire(wire_type)
            component_ids.append(self._decoders[component_type](component_type, child, context))
        return component_ids

    # ========================================================================
    # COMPONENTS
    # ========================================================================

    def _identity(self, component_type: ComponentType, child: Dict[str, Any], context: _ScreenContext) -> Tuple[str, str]:
        definition = get_component_definition(component_type)
        component_id = child.get(definition["identifier_key"]) or child.get("id") or child.get("name")
        title = child.get(definition["title_key"])

        if not component_id:
            generated = default_factory.default_component(component_type, context.existing())
            component_id = generated.id
            if title is None:
                title = generated.title
        if title is None:
            title = get_default_title(component_type)
        return str(component_id), str(title)

    def _store(self, context: _ScreenContext, slot: int, component_type: ComponentType,
               component_id: str, title: str, properties: BaseModel) -> str:
        try:
            context.components[slot] = FlowComponent(
                id=component_id,
                type=component_type,
                title=title,
                properties=properties,
            )
        except ValidationError as e:
            raise MalformedDocument(
                [f"screen {context.screen_id}: component '{component_id}' {_describe_validation_error(e)}"]
            )
        return component_id

    def _validate_properties(self, schema_class: type, raw: Dict[str, Any],
                             context: _ScreenContext, component_id: str) -> BaseModel:
        try:
            return schema_class.model_validate(raw)
        except ValidationError as e:
            raise MalformedDocument(
                [f"screen {context.screen_id}: component '{component_id}' has invalid properties: "
                 f"{_describe_validation_error(e)}"]
            )

    def _decode_leaf(self, component_type: ComponentType, child: Dict[str, Any], context: _ScreenContext) -> str:
        definition = get_component_definition(component_type)
        component_id, title = self._identity(component_type, child, context)

        structural = {"type", "id", "name", definition["title_key"]}
        raw_properties = {key: value for key, value in child.items() if key not in structural}

        schema_class = get_component_property_schema(component_type)
        dropped = sorted(set(raw_properties) - _known_property_keys(schema_class))
        if dropped:
            logger.warning(
                "flow.deserialize.unknown_properties",
                extra={
                    "screen_id": context.screen_id,
                    "component_id": component_id,
                    "properties": dropped
                }
            )

        properties = self._validate_properties(schema_class, raw_properties, context, component_id)

        context.components.append(None)
        return self._store(context, len(context.components) - 1, component_type, component_id, title, properties)

    def _decode_if(self, component_type: ComponentType, child: Dict[str, Any], context: _ScreenContext) -> str:
        component_id, title = self._identity(component_type, child, context)
        slot = len(context.components)
        context.components.append(None)
        context.reserved_ids.append(component_id)

        try:
            condition = Condition.from_expression(child.get("condition") or "")
        except ValueError as e:
            raise MalformedDocument([f"screen {context.screen_id}: component '{component_id}' {e}"])

        then_ids, then_footer = self._split_branch(child.get("then") or [], context, f"'{component_id}'.then")
        else_ids, else_footer = self._split_branch(child.get("else") or [], context, f"'{component_id}'.else")

        properties = self._validate_properties(
            IfProperties,
            {
                "visible": child.get("visible"),
                "condition": condition,
                "then_branch": ConditionalBranch(components=then_ids, footer=then_footer),
                "else_branch": ConditionalBranch(components=else_ids, footer=else_footer),
            },
            context,
            component_id,
        )
        context.reserved_ids.remove(component_id)
        return self._store(context, slot, component_type, component_id, title, properties)

    def _decode_switch(self, component_type: ComponentType, child: Dict[str, Any], context: _ScreenContext) -> str:
        component_id, title = self._identity(component_type, child, context)
        slot = len(context.components)
        context.components.append(None)
        context.reserved_ids.append(component_id)

        value = (child.get("value") or "").strip()
        subject = None
        if value:
            match = FORM_REFERENCE.fullmatch(value)
            if not match:
                raise MalformedDocument(
                    [f"screen {context.screen_id}: component '{component_id}' has unsupported switch value {value!r}"]
                )
            subject = match.group(1)

        raw_cases = child.get("cases") or {}
        if not isinstance(raw_cases, dict):
            raise MalformedDocument([f"screen {context.screen_id}: component '{component_id}' cases must be an object"])

        cases = []
        for case_value, case_children in raw_cases.items():
            member_ids, footer = self._split_branch(
                case_children, context, f"'{component_id}'.cases.{case_value}"
            )
            cases.append(SwitchCase(value=str(case_value), components=member_ids, footer=footer))

        properties = self._validate_properties(
            SwitchProperties,
            {"visible": child.get("visible"), "subject": subject, "cases": cases},
            context,
            component_id,
        )
        context.reserved_ids.remove(component_id)
        return self._store(context, slot, component_type, component_id, title, properties)


# Global instance
flow_deserializer = FlowDeserializer()


def deserialize_flow(data: WireJson, fallback_name: Optional[str] = None) -> Flow:
    return flow_deserializer.deserialize(data, fallback_name=fallback_name)
