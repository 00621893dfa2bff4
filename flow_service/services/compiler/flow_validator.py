"""
Flow Validator - checks platform flow JSON before it is saved.

Validation never raises on bad input. Every problem found is reported at
once so the editor can show them together; errors come in pass order
(document, screens, component ids, navigation, control references,
component types, reachability).
"""
import json
import re
from collections import deque
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple, Union

from flow_service.config import FLOW_CATEGORIES
from flow_service.core.exceptions import ValidationFailed
from flow_service.models.schemas.component_catalog import (
    SCREEN_CHROME_TYPES,
    component_type_from_wire,
    get_identifier_key,
    is_known_wire_type,
)
from flow_service.models.schemas.components import Condition, DATA_SOURCE_REFERENCE, FORM_REFERENCE
from flow_service.models.schemas.validation import (
    ValidationReport,
    duplicate_component_message,
    duplicate_screen_message,
    screen_prefix,
    unknown_component_message,
    unknown_screen_message,
)
from flow_service.utils.logging import get_logger, log_context

logger = get_logger(__name__)

SCREEN_ID_PATTERN = re.compile(r"^[A-Za-z_]+$")
LAYOUT_TYPE = "SingleColumnLayout"
ACTION_KEYS = ("on-click-action", "on-select-action")
MAX_CAROUSEL_IMAGES = 3
PHOTO_SOURCES = ("camera_gallery", "camera", "gallery")
SELECT_ACTIONS = ("update_data", "data_exchange")

# Wire rules per component type, on top of the property schemas:
# keys that must be present and non-empty, keys the platform rejects,
# and the action names allowed in `on-select-action`.
COMPONENT_RULES: Dict[str, Dict[str, Tuple[str, ...]]] = {
    "TextInput": {
        "required": ("name", "label"),
        "forbidden": ("id", "placeholder", "on-click-action"),
    },
    "DatePicker": {
        "required": ("name", "label"),
        "forbidden": ("id", "placeholder", "on-click-action"),
        "select_actions": SELECT_ACTIONS,
    },
    "CalendarPicker": {
        "required": ("name", "label"),
        "forbidden": ("id", "placeholder", "on-click-action"),
        "select_actions": SELECT_ACTIONS,
    },
    "TimePicker": {
        "required": ("name", "label"),
        "forbidden": ("id", "placeholder", "on-click-action"),
        "select_actions": SELECT_ACTIONS,
    },
    "Dropdown": {
        "required": ("name", "label", "data-source"),
        "forbidden": ("id", "options", "on-click-action"),
        "select_actions": SELECT_ACTIONS,
    },
    "CheckboxGroup": {
        "required": ("name", "label", "data-source"),
        "forbidden": ("id", "options", "on-click-action"),
        "select_actions": SELECT_ACTIONS,
    },
    "RadioButtonsGroup": {
        "required": ("name", "label", "data-source"),
        "forbidden": ("id", "options", "on-click-action"),
        "select_actions": SELECT_ACTIONS,
    },
    "ChipsSelector": {
        "required": ("name", "label", "data-source"),
        "forbidden": ("id", "options", "on-click-action"),
        "select_actions": SELECT_ACTIONS + ("navigate",),
    },
    "Image": {"required": ("src",)},
    "ImageCarousel": {"required": ("images",)},
    "PhotoPicker": {
        "required": ("name", "label"),
        "forbidden": ("id", "on-click-action", "on-select-action"),
    },
    "DocumentPicker": {
        "required": ("name", "label"),
        "forbidden": ("id", "on-click-action", "on-select-action"),
    },
    "EmbeddedLink": {"required": ("text", "on-click-action")},
    "OptIn": {"required": ("name", "label", "on-click-action")},
    "NavigationList": {"required": ("id", "items")},
    "RichText": {"required": ("text",)},
}

WireJson = Union[Dict[str, Any], str, bytes]


def _children(node: Dict[str, Any]) -> Iterator[Dict[str, Any]]:
    """Direct nested children of a control component, in wire order"""
    for key in ("then", "else"):
        branch = node.get(key)
        if isinstance(branch, list):
            for child in branch:
                if isinstance(child, dict):
                    yield child
    cases = node.get("cases")
    if isinstance(cases, dict):
        for branch in cases.values():
            if isinstance(branch, list):
                for child in branch:
                    if isinstance(child, dict):
                        yield child


def walk_children(children: Any) -> Iterator[Dict[str, Any]]:
    """Every layout child of a screen, nested branch members included"""
    if not isinstance(children, list):
        return
    for child in children:
        if not isinstance(child, dict):
            continue
        yield child
        yield from walk_children(list(_children(child)))


def _component_id(child: Dict[str, Any]) -> Optional[str]:
    wire_type = child.get("type")
    if is_known_wire_type(wire_type) and wire_type not in SCREEN_CHROME_TYPES:
        value = child.get(get_identifier_key(component_type_from_wire(wire_type)))
        if value:
            return str(value)
    value = child.get("id") or child.get("name")
    return str(value) if value else None


def _source_label(child: Dict[str, Any]) -> str:
    if child.get("type") == "Footer":
        return "footer"
    component_id = _component_id(child)
    if component_id:
        return f"component '{component_id}'"
    return f"{child.get('type', 'component')} component"


def _child_actions(child: Dict[str, Any]) -> Iterator[Dict[str, Any]]:
    for key in ACTION_KEYS:
        action = child.get(key)
        if isinstance(action, dict):
            yield action
    items = child.get("items")
    if child.get("type") == "NavigationList" and isinstance(items, list):
        for item in items:
            if isinstance(item, dict) and isinstance(item.get("on-click-action"), dict):
                yield item["on-click-action"]


def _navigation_target(action: Dict[str, Any]) -> Optional[str]:
    target = action.get("next")
    if isinstance(target, dict):
        target = target.get("name")
    return target if isinstance(target, str) and target else None


class FlowValidator:
    """
    Validates flow JSON against the structural rules of the platform.

    Usage:
        report = flow_validator.validate(wire_json)
        if not report.valid:
            show(report.errors)
    """

    def validate(self, wire_json: WireJson) -> ValidationReport:
        report = ValidationReport()
        document = self._load(wire_json, report)

        if document is not None:
            flow_name = document.get("name") if isinstance(document.get("name"), str) else None
            with log_context(flow_id=flow_name):
                screens = self._check_document(document, report)
                self._check_screens(screens, report)
                self._check_component_ids(screens, report)
                self._check_navigation(screens, report)
                self._check_control_references(screens, report)
                self._check_component_types(screens, report)
                self._check_reachability(screens, report)

        report.valid = not report.errors
        logger.info(
            "flow.validate.completed",
            extra={
                "valid": report.valid,
                "errors": len(report.errors),
                "warnings": len(report.warnings)
            }
        )
        return report

    def ensure_valid(self, wire_json: WireJson) -> ValidationReport:
        """
        Validate and raise when the flow has errors.

        Raises:
            ValidationFailed: carrying every error and warning
        """
        report = self.validate(wire_json)
        if not report.valid:
            raise ValidationFailed(report.errors, report.warnings)
        return report

    def _load(self, wire_json: WireJson, report: ValidationReport) -> Optional[Dict[str, Any]]:
        if isinstance(wire_json, bytes):
            wire_json = wire_json.decode("utf-8", errors="replace")
        if isinstance(wire_json, str):
            try:
                wire_json = json.loads(wire_json)
            except json.JSONDecodeError as e:
                report.errors.append(f"flow: invalid JSON ({e.msg} at line {e.lineno}, column {e.colno})")
                return None
        if not isinstance(wire_json, dict):
            report.errors.append("flow: document must be a JSON object")
            return None
        return wire_json

    # ========================================================================
    # PASS 1-2: DOCUMENT AND SCREENS
    # ========================================================================

    def _check_document(self, document: Dict[str, Any], report: ValidationReport) -> List[Tuple[int, Dict[str, Any]]]:
        name = document.get("name")
        if not isinstance(name, str) or not name.strip():
            report.errors.append("flow: missing required field 'name'")

        screens = document.get("screens")
        if not isinstance(screens, list) or not screens:
            report.errors.append("flow: at least one screen is required")
            screens = screens if isinstance(screens, list) else []

        version = document.get("version")
        if version is None or version == "":
            report.errors.append("flow: missing required field 'version'")
        elif not isinstance(version, str):
            report.errors.append("flow: 'version' must be a string")

        categories = document.get("categories")
        if isinstance(categories, list):
            for category in categories:
                if str(category).upper() not in FLOW_CATEGORIES:
                    report.warnings.append(f"flow: unknown category '{category}'")
        elif categories is not None:
            report.errors.append("flow: 'categories' must be a list")

        valid_screens = []
        for position, screen in enumerate(screens):
            if isinstance(screen, dict):
                valid_screens.append((position, screen))
            else:
                report.errors.append(f"screen[{position}]: must be an object")
        return valid_screens

    def _check_screens(self, screens: List[Tuple[int, Dict[str, Any]]], report: ValidationReport) -> None:
        seen: Set[str] = set()
        for position, screen in screens:
            screen_id = screen.get("id")
            prefix = screen_prefix(screen_id if isinstance(screen_id, str) else None, position)

            if not isinstance(screen_id, str) or not screen_id:
                report.errors.append(f"{prefix}: missing required field 'id'")
            else:
                if screen_id in seen:
                    report.errors.append(duplicate_screen_message(screen_id))
                seen.add(screen_id)
                if not SCREEN_ID_PATTERN.match(screen_id):
                    report.warnings.append(f"{prefix}: id should contain only letters and underscores")

            title = screen.get("title")
            if not isinstance(title, str) or not title.strip():
                report.errors.append(f"{prefix}: missing required field 'title'")

            layout = screen.get("layout")
            if isinstance(layout, dict) and layout.get("type") != LAYOUT_TYPE:
                report.errors.append(f"{prefix}: layout.type must be '{LAYOUT_TYPE}'")
            if not isinstance(layout, dict) or not isinstance(layout.get("children"), list):
                report.errors.append(f"{prefix}: layout.children must be a list")

    # ========================================================================
    # PASS 3-5: IDENTIFIERS AND REFERENCES
    # ========================================================================

    def _layout_children(self, screen: Dict[str, Any]) -> List[Any]:
        layout = screen.get("layout")
        if isinstance(layout, dict) and isinstance(layout.get("children"), list):
            return layout["children"]
        return []

    def _screen_ids(self, screens: List[Tuple[int, Dict[str, Any]]]) -> Set[str]:
        return {screen["id"] for _, screen in screens if isinstance(screen.get("id"), str) and screen["id"]}

    def _check_component_ids(self, screens: List[Tuple[int, Dict[str, Any]]], report: ValidationReport) -> None:
        for position, screen in screens:
            seen: Set[str] = set()
            for child in walk_children(self._layout_children(screen)):
                component_id = _component_id(child)
                if component_id is None:
                    continue
                if component_id in seen:
                    report.errors.append(duplicate_component_message(self._prefix_id(screen, position), component_id))
                seen.add(component_id)

    def _prefix_id(self, screen: Dict[str, Any], position: int) -> str:
        """Screen id for messages; positional "[n]" when the screen has none"""
        screen_id = screen.get("id")
        return screen_id if isinstance(screen_id, str) and screen_id else f"[{position}]"

    def _check_navigation(self, screens: List[Tuple[int, Dict[str, Any]]], report: ValidationReport) -> None:
        known = self._screen_ids(screens)
        for position, screen in screens:
            screen_id = self._prefix_id(screen, position)
            for child in walk_children(self._layout_children(screen)):
                for action in _child_actions(child):
                    if action.get("name") != "navigate":
                        continue
                    target = _navigation_target(action)
                    if target is None:
                        report.errors.append(
                            f"{screen_prefix(screen_id)}: {_source_label(child)} navigates without a target screen"
                        )
                    elif target not in known:
                        report.errors.append(unknown_screen_message(screen_id, _source_label(child), target))

    def _check_control_references(self, screens: List[Tuple[int, Dict[str, Any]]], report: ValidationReport) -> None:
        for position, screen in screens:
            screen_id = self._prefix_id(screen, position)
            children = list(walk_children(self._layout_children(screen)))
            component_ids = {_component_id(child) for child in children} - {None}

            for child in children:
                wire_type = child.get("type")
                if wire_type == "If":
                    expression = child.get("condition")
                    expression = expression.strip() if isinstance(expression, str) else ""
                    if not expression:
                        report.errors.append(
                            f"{screen_prefix(screen_id)}: {_source_label(child)} has no condition"
                        )
                        continue
                    try:
                        condition = Condition.from_expression(expression)
                    except ValueError:
                        report.errors.append(
                            f"{screen_prefix(screen_id)}: {_source_label(child)} has unsupported condition "
                            f"{expression!r}"
                        )
                        continue
                    if condition.subject not in component_ids:
                        report.errors.append(unknown_component_message(screen_id, "if", condition.subject))
                elif wire_type == "Switch":
                    value = child.get("value")
                    value = value.strip() if isinstance(value, str) else ""
                    if not value:
                        report.errors.append(
                            f"{screen_prefix(screen_id)}: {_source_label(child)} has no switch value"
                        )
                        continue
                    match = FORM_REFERENCE.fullmatch(value)
                    if not match:
                        report.errors.append(
                            f"{screen_prefix(screen_id)}: {_source_label(child)} has unsupported switch value "
                            f"{value!r}"
                        )
                    elif match.group(1) not in component_ids:
                        report.errors.append(unknown_component_message(screen_id, "switch", match.group(1)))

            declared = screen.get("data") if isinstance(screen.get("data"), dict) else {}
            for child in children:
                for value in child.values():
                    if not isinstance(value, str):
                        continue
                    match = DATA_SOURCE_REFERENCE.match(value)
                    if match and match.group(1) not in declared:
                        report.errors.append(
                            f"{screen_prefix(screen_id)}: {_source_label(child)} uses undeclared data source "
                            f"'{match.group(1)}'"
                        )

    # ========================================================================
    # PASS 6: COMPONENT TYPES
    # ========================================================================

    def _check_component_types(self, screens: List[Tuple[int, Dict[str, Any]]], report: ValidationReport) -> None:
        for position, screen in screens:
            prefix = screen_prefix(self._prefix_id(screen, position))
            photo_pickers = document_pickers = 0
            has_text_body = False

            for child in walk_children(self._layout_children(screen)):
                wire_type = child.get("type")
                if wire_type == "TextBody":
                    has_text_body = True
                if wire_type in SCREEN_CHROME_TYPES:
                    continue
                if not is_known_wire_type(wire_type):
                    report.errors.append(f"{prefix}: unknown component type '{wire_type}'")
                    continue

                self._check_component_rules(child, COMPONENT_RULES.get(wire_type, {}), prefix, report)

                if wire_type == "PhotoPicker":
                    photo_pickers += 1
                    self._check_upload_range(child, "min-uploaded-photos", "max-uploaded-photos", prefix, report)
                    photo_source = child.get("photo-source")
                    if photo_source is not None and photo_source not in PHOTO_SOURCES:
                        report.errors.append(
                            f"{prefix}: {_source_label(child)} has invalid photo-source '{photo_source}'"
                        )
                elif wire_type == "DocumentPicker":
                    document_pickers += 1
                    self._check_upload_range(child, "min-uploaded-documents", "max-uploaded-documents", prefix, report)
                elif wire_type == "ImageCarousel":
                    images = child.get("images")
                    if not isinstance(images, list) or not 1 <= len(images) <= MAX_CAROUSEL_IMAGES:
                        report.errors.append(
                            f"{prefix}: {_source_label(child)} must have between 1 and {MAX_CAROUSEL_IMAGES} images"
                        )

            if photo_pickers > 1:
                report.errors.append(f"{prefix}: only one PhotoPicker is allowed per screen")
            if document_pickers > 1:
                report.errors.append(f"{prefix}: only one DocumentPicker is allowed per screen")
            if photo_pickers and document_pickers:
                report.errors.append(f"{prefix}: PhotoPicker and DocumentPicker cannot share a screen")
            if not has_text_body:
                report.warnings.append(f"{prefix}: has no TextBody")

    def _check_component_rules(self, child: Dict[str, Any], rules: Dict[str, Tuple[str, ...]],
                               prefix: str, report: ValidationReport) -> None:
        label = _source_label(child)
        for key in rules.get("required", ()):
            if child.get(key) is None or child.get(key) == "":
                report.errors.append(f"{prefix}: {label} is missing required field '{key}'")
        for key in rules.get("forbidden", ()):
            if key in child:
                report.errors.append(f"{prefix}: {label} must not carry '{key}'")

        allowed = rules.get("select_actions")
        action = child.get("on-select-action")
        if allowed and isinstance(action, dict) and action.get("name") not in allowed:
            report.errors.append(
                f"{prefix}: {label} on-select-action '{action.get('name')}' is not one of {', '.join(allowed)}"
            )

    def _check_upload_range(self, child: Dict[str, Any], min_key: str, max_key: str,
                            prefix: str, report: ValidationReport) -> None:
        minimum, maximum = child.get(min_key), child.get(max_key)
        if isinstance(minimum, int) and isinstance(maximum, int) and minimum > maximum:
            report.errors.append(f"{prefix}: {_source_label(child)} has {min_key} greater than {max_key}")

    # ========================================================================
    # PASS 7: REACHABILITY
    # ========================================================================

    def _check_reachability(self, screens: List[Tuple[int, Dict[str, Any]]], report: ValidationReport) -> None:
        edges: Dict[str, List[str]] = {}
        terminal: Set[str] = set()

        for _, screen in screens:
            screen_id = screen.get("id")
            if not isinstance(screen_id, str) or not screen_id or screen_id in edges:
                continue
            targets: List[str] = []
            is_terminal = screen.get("terminal") is True
            for child in walk_children(self._layout_children(screen)):
                for action in _child_actions(child):
                    if action.get("name") == "complete":
                        is_terminal = True
                    target = _navigation_target(action) if action.get("name") == "navigate" else None
                    if target and target not in targets:
                        targets.append(target)
            edges[screen_id] = targets
            if is_terminal:
                terminal.add(screen_id)

        if not edges:
            return

        inbound = {target for source, targets in edges.items() for target in targets if target != source}
        entries = [screen_id for screen_id in edges if screen_id not in inbound]
        if not entries:
            report.errors.append("flow: no entry screen (every screen is navigated to from another screen)")
            return

        reached: Set[str] = set(entries)
        queue = deque(entries)
        while queue:
            current = queue.popleft()
            for target in edges.get(current, []):
                if target in edges and target not in reached:
                    reached.add(target)
                    queue.append(target)

        if not reached & terminal:
            report.errors.append("flow: no terminal screen is reachable from an entry screen")

        for screen_id in edges:
            if screen_id not in reached:
                report.warnings.append(f"{screen_prefix(screen_id)}: unreachable from any entry screen")


# Global instance
flow_validator = FlowValidator()


def validate_flow_json(wire_json: WireJson) -> ValidationReport:
    return flow_validator.validate(wire_json)
