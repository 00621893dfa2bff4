"""
Unit tests for the flow validator.
"""
import json

import pytest

from flow_service.core.exceptions import ValidationFailed
from flow_service.services.compiler import flow_validator, serialize_flow, validate_flow_json


def _navigate(target):
    return {"name": "navigate", "next": {"type": "screen", "name": target}, "payload": {}}


def _screen(screen_id, children, **fields):
    screen = {
        "id": screen_id,
        "title": screen_id.title(),
        "layout": {"type": "SingleColumnLayout", "children": children},
    }
    screen.update(fields)
    return screen


def _flow(*screens):
    return {"version": "7.3", "name": "Lead form", "categories": ["LEAD_GENERATION"], "screens": list(screens)}


class TestScenarios:

    def test_single_screen_with_submit_is_valid(self, scenario_a_wire):
        assert validate_flow_json(scenario_a_wire).to_dict() == {"valid": True, "errors": []}

    def test_unknown_if_subject(self, scenario_b_wire):
        assert validate_flow_json(scenario_b_wire).to_dict() == {
            "valid": False,
            "errors": ["screen S1: if-component references unknown component 'field_x'"],
        }

    def test_serialized_document_is_valid(self, lead_flow):
        report = validate_flow_json(serialize_flow(lead_flow))

        assert report.valid
        assert report.errors == []
        assert report.warnings == ["screen details: has no TextBody"]

    def test_accepts_json_text(self, scenario_a_wire):
        assert validate_flow_json(json.dumps(scenario_a_wire)).valid


class TestDocumentAndScreens:

    def test_never_raises_on_garbage(self):
        report = validate_flow_json("{nope")

        assert not report.valid
        assert report.errors[0].startswith("flow: invalid JSON")

    def test_non_object(self):
        assert validate_flow_json([1, 2]).errors == ["flow: document must be a JSON object"]

    def test_missing_name_and_screens(self):
        report = validate_flow_json({"version": "7.3"})

        assert report.errors == [
            "flow: missing required field 'name'",
            "flow: at least one screen is required",
        ]

    def test_screen_fields(self, complete_footer_wire):
        wire = _flow(
            {"layout": {"children": [complete_footer_wire]}},
            {"id": "second", "title": "", "layout": {}},
        )

        errors = validate_flow_json(wire).errors

        assert "screen[0]: missing required field 'id'" in errors
        assert "screen[0]: missing required field 'title'" in errors
        assert "screen second: missing required field 'title'" in errors
        assert "screen second: layout.children must be a list" in errors

    def test_version_is_required(self, scenario_a_wire):
        del scenario_a_wire["version"]
        assert validate_flow_json(scenario_a_wire).errors == ["flow: missing required field 'version'"]

    def test_version_must_be_a_string(self, scenario_a_wire):
        scenario_a_wire["version"] = 7.3
        assert validate_flow_json(scenario_a_wire).errors == ["flow: 'version' must be a string"]

    def test_categories_must_be_a_list(self, scenario_a_wire):
        scenario_a_wire["categories"] = "SURVEY"
        assert validate_flow_json(scenario_a_wire).errors == ["flow: 'categories' must be a list"]

    def test_layout_type(self, complete_footer_wire):
        wire = _flow(_screen("start", [complete_footer_wire]))
        wire["screens"][0]["layout"]["type"] = "TwoColumnLayout"

        assert validate_flow_json(wire).errors == ["screen start: layout.type must be 'SingleColumnLayout'"]

    def test_duplicate_screen_ids(self, complete_footer_wire):
        wire = _flow(_screen("start", [complete_footer_wire]), _screen("start", [complete_footer_wire]))

        assert "screen start: duplicate screen id 'start'" in validate_flow_json(wire).errors

    def test_errors_come_in_pass_order(self, complete_footer_wire):
        wire = _flow(_screen("start", [
            {"type": "TextInput", "name": "a", "label": "A"},
            {"type": "Hologram", "id": "h"},
            {"type": "If", "id": "if_1", "condition": "${form.ghost}", "then": [
                {"type": "TextInput", "name": "a", "label": "Again"},
            ]},
            {"type": "Footer", "label": "Go", "on-click-action": _navigate("nowhere")},
        ]))
        wire["name"] = ""

        assert validate_flow_json(wire).errors == [
            "flow: missing required field 'name'",
            "screen start: duplicate component id 'a'",
            "screen start: footer navigates to unknown screen 'nowhere'",
            "screen start: if-component references unknown component 'ghost'",
            "screen start: unknown component type 'Hologram'",
            "flow: no terminal screen is reachable from an entry screen",
        ]


class TestReferences:

    def test_dangling_navigation_names_the_screen(self, complete_footer_wire):
        wire = _flow(
            _screen("start", [{"type": "Footer", "label": "Next", "on-click-action": _navigate("missing_screen")}]),
            _screen("done", [complete_footer_wire]),
        )

        report = validate_flow_json(wire)

        assert not report.valid
        assert any("missing_screen" in error for error in report.errors)

    def test_navigation_from_branch_and_list_items(self, complete_footer_wire):
        wire = _flow(_screen("start", [
            {"type": "TextInput", "name": "a", "label": "A"},
            {"type": "Switch", "id": "s", "value": "${form.a}", "cases": {
                "x": [{"type": "Footer", "label": "X", "on-click-action": _navigate("lost")}],
            }},
            {"type": "NavigationList", "id": "menu", "items": [
                {"id": "one", "main-content": {"title": "One"}, "on-click-action": _navigate("gone")},
            ]},
            complete_footer_wire,
        ]))

        errors = validate_flow_json(wire).errors

        assert "screen start: footer navigates to unknown screen 'lost'" in errors
        assert "screen start: component 'menu' navigates to unknown screen 'gone'" in errors

    def test_navigate_without_target(self):
        wire = _flow(_screen("start", [{"type": "Footer", "label": "Next", "on-click-action": {"name": "navigate"}}]))

        assert "screen start: footer navigates without a target screen" in validate_flow_json(wire).errors

    def test_switch_subject(self, complete_footer_wire):
        wire = _flow(_screen("start", [
            {"type": "Switch", "id": "s", "value": "${form.plan}", "cases": {}},
            complete_footer_wire,
        ]))

        assert validate_flow_json(wire).errors == ["screen start: switch-component references unknown component 'plan'"]

    def test_unreadable_condition_is_named(self, complete_footer_wire):
        wire = _flow(_screen("start", [
            {"type": "TextInput", "name": "first_name", "label": "First name"},
            {"type": "If", "id": "if_1", "condition": "${form.first-name} == 'x'", "then": []},
            complete_footer_wire,
        ]))

        assert validate_flow_json(wire).errors == [
            "screen start: component 'if_1' has unsupported condition \"${form.first-name} == 'x'\""
        ]

    def test_empty_condition(self, complete_footer_wire):
        wire = _flow(_screen("start", [
            {"type": "If", "id": "if_1", "condition": "", "then": []},
            complete_footer_wire,
        ]))

        assert validate_flow_json(wire).errors == ["screen start: component 'if_1' has no condition"]

    def test_literal_referring_to_a_field_is_not_a_subject(self, complete_footer_wire):
        wire = _flow(_screen("start", [
            {"type": "TextInput", "name": "a", "label": "A"},
            {"type": "If", "id": "if_1", "condition": "${form.a} == '${form.ghost}'", "then": []},
            complete_footer_wire,
        ]))

        assert validate_flow_json(wire).errors == []

    def test_multi_line_literal_is_accepted(self, complete_footer_wire):
        wire = _flow(_screen("start", [
            {"type": "TextInput", "name": "a", "label": "A"},
            {"type": "If", "id": "if_1", "condition": "${form.a} == 'line1\nline2'", "then": []},
            complete_footer_wire,
        ]))

        assert validate_flow_json(wire).errors == []

    def test_unreadable_switch_value(self, complete_footer_wire):
        wire = _flow(_screen("start", [
            {"type": "Switch", "id": "s", "value": "${form.plan-type}", "cases": {}},
            complete_footer_wire,
        ]))

        assert validate_flow_json(wire).errors == [
            "screen start: component 's' has unsupported switch value '${form.plan-type}'"
        ]

    def test_data_source_must_be_declared(self, complete_footer_wire):
        dropdown = {"type": "Dropdown", "name": "plan", "label": "Plan", "data-source": "${data.plans}"}

        undeclared = _flow(_screen("start", [dropdown, complete_footer_wire]))
        declared = _flow(_screen("start", [dropdown, complete_footer_wire],
                                 data={"plans": {"type": "array", "__example__": []}}))

        assert validate_flow_json(undeclared).errors == [
            "screen start: component 'plan' uses undeclared data source 'plans'"
        ]
        assert validate_flow_json(declared).valid


class TestComponentRules:

    def test_one_photo_picker_per_screen(self, complete_footer_wire):
        wire = _flow(_screen("start", [
            {"type": "PhotoPicker", "name": "p1", "label": "P1"},
            {"type": "PhotoPicker", "name": "p2", "label": "P2"},
            {"type": "DocumentPicker", "name": "d1", "label": "D1"},
            complete_footer_wire,
        ]))

        errors = validate_flow_json(wire).errors

        assert "screen start: only one PhotoPicker is allowed per screen" in errors
        assert "screen start: PhotoPicker and DocumentPicker cannot share a screen" in errors

    def test_upload_range(self, complete_footer_wire):
        wire = _flow(_screen("start", [
            {"type": "DocumentPicker", "name": "d1", "label": "D1",
             "min-uploaded-documents": 5, "max-uploaded-documents": 2},
            complete_footer_wire,
        ]))

        assert validate_flow_json(wire).errors == [
            "screen start: component 'd1' has min-uploaded-documents greater than max-uploaded-documents"
        ]

    def test_invalid_photo_source(self, complete_footer_wire):
        wire = _flow(_screen("start", [
            {"type": "PhotoPicker", "name": "p1", "label": "P1", "photo-source": "scanner"},
            complete_footer_wire,
        ]))

        assert validate_flow_json(wire).errors == ["screen start: component 'p1' has invalid photo-source 'scanner'"]

    @pytest.mark.parametrize("wire_type", ["Dropdown", "CheckboxGroup", "RadioButtonsGroup", "ChipsSelector"])
    def test_selection_needs_name_and_data_source(self, complete_footer_wire, wire_type):
        wire = _flow(_screen("start", [{"type": wire_type, "label": "Pick"}, complete_footer_wire]))

        assert validate_flow_json(wire).errors == [
            f"screen start: {wire_type} component is missing required field 'name'",
            f"screen start: {wire_type} component is missing required field 'data-source'",
        ]

    def test_input_must_not_carry_id_or_placeholder(self, complete_footer_wire):
        wire = _flow(_screen("start", [
            {"type": "TextInput", "name": "a", "id": "a", "label": "A", "placeholder": "Type here"},
            {"type": "DatePicker", "name": "d", "label": "D", "placeholder": "Pick"},
            complete_footer_wire,
        ]))

        assert validate_flow_json(wire).errors == [
            "screen start: component 'a' must not carry 'id'",
            "screen start: component 'a' must not carry 'placeholder'",
            "screen start: component 'd' must not carry 'placeholder'",
        ]

    def test_on_select_action_names(self, complete_footer_wire):
        wire = _flow(_screen("start", [
            {"type": "Dropdown", "name": "plan", "label": "Plan", "data-source": [],
             "on-select-action": {"name": "complete", "payload": {}}},
            {"type": "RadioButtonsGroup", "name": "size", "label": "Size", "data-source": [],
             "on-select-action": {"name": "update_data", "payload": {}}},
            complete_footer_wire,
        ]))

        assert validate_flow_json(wire).errors == [
            "screen start: component 'plan' on-select-action 'complete' is not one of update_data, data_exchange"
        ]

    def test_chips_selector_may_navigate(self, complete_footer_wire):
        wire = _flow(_screen("start", [
            {"type": "ChipsSelector", "name": "tags", "label": "Tags", "data-source": [],
             "on-select-action": _navigate("start")},
            complete_footer_wire,
        ]))

        assert validate_flow_json(wire).valid

    def test_image_needs_src(self, complete_footer_wire):
        wire = _flow(_screen("start", [{"type": "Image", "id": "logo", "src": ""}, complete_footer_wire]))

        assert validate_flow_json(wire).errors == ["screen start: component 'logo' is missing required field 'src'"]

    def test_carousel_image_count(self, complete_footer_wire):
        images = [{"src": "a", "alt-text": "a"}] * 4
        wire = _flow(_screen("start", [
            {"type": "ImageCarousel", "id": "c", "images": images},
            complete_footer_wire,
        ]))

        assert validate_flow_json(wire).errors == ["screen start: component 'c' must have between 1 and 3 images"]


class TestReachability:

    def test_no_entry_screen(self):
        wire = _flow(
            _screen("a", [{"type": "Footer", "label": "B", "on-click-action": _navigate("b")}]),
            _screen("b", [{"type": "Footer", "label": "A", "on-click-action": _navigate("a")}], terminal=True),
        )

        assert "flow: no entry screen (every screen is navigated to from another screen)" in validate_flow_json(wire).errors

    def test_terminal_must_be_reachable(self, complete_footer_wire):
        wire = _flow(
            _screen("start", [{"type": "Footer", "label": "Next", "on-click-action": _navigate("middle")}]),
            _screen("middle", [{"type": "Footer", "label": "Again", "on-click-action": _navigate("middle")}]),
        )

        assert validate_flow_json(wire).errors == ["flow: no terminal screen is reachable from an entry screen"]

    def test_terminal_flag_counts(self):
        wire = _flow(_screen("start", [], terminal=True))
        assert validate_flow_json(wire).valid


class TestWarnings:

    def test_warnings_do_not_invalidate(self, scenario_a_wire):
        scenario_a_wire["categories"] = ["MARKETING"]
        scenario_a_wire["screens"][0]["id"] = "WELCOME_1"

        report = validate_flow_json(scenario_a_wire)

        assert report.valid
        assert report.warnings == [
            "flow: unknown category 'MARKETING'",
            "screen WELCOME_1: id should contain only letters and underscores",
            "screen WELCOME_1: has no TextBody",
        ]

    def test_text_body_inside_a_branch_counts(self, scenario_b_wire):
        assert "screen S1: has no TextBody" not in validate_flow_json(scenario_b_wire).warnings


class TestEnsureValid:

    def test_raises_with_full_report(self, scenario_b_wire):
        with pytest.raises(ValidationFailed) as exc_info:
            flow_validator.ensure_valid(scenario_b_wire)

        assert exc_info.value.errors == ["screen S1: if-component references unknown component 'field_x'"]
        assert exc_info.value.warnings == ["screen S1: id should contain only letters and underscores"]

    def test_returns_report_when_valid(self, scenario_a_wire):
        assert flow_validator.ensure_valid(scenario_a_wire).valid
