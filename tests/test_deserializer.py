"""
Unit tests for the flow deserializer.

Tests cover:
- Round trip with the serializer
- Screen chrome and control branch reconstruction
- Defaults for missing ids and titles
- Error taxonomy for unreadable input
"""
import pytest

from flow_service.core.exceptions import MalformedDocument, MalformedJson, UnknownComponentType
from flow_service.models.schemas import (
    ComponentType,
    Condition,
    Flow,
    FlowAction,
    FlowComponent,
    Footer,
    Screen,
)
from flow_service.services.compiler import deserialize_flow, flow_to_json, serialize_flow


class TestRoundTrip:

    def test_document_survives_round_trip(self, lead_flow):
        assert deserialize_flow(serialize_flow(lead_flow)) == lead_flow

    def test_round_trip_through_json_text(self, lead_flow):
        assert deserialize_flow(flow_to_json(lead_flow)) == lead_flow

    def test_wire_is_stable_after_round_trip(self, lead_flow):
        wire = serialize_flow(lead_flow)
        assert serialize_flow(deserialize_flow(wire)) == wire

    @pytest.mark.parametrize("component_type", list(ComponentType), ids=lambda t: t.value)
    def test_every_type_with_populated_properties(self, component_type):
        flow = _single_component_flow(component_type, POPULATED_PROPERTIES[component_type])

        rebuilt = deserialize_flow(serialize_flow(flow))

        assert rebuilt == flow
        assert rebuilt.screens[0].components[1].properties == flow.screens[0].components[1].properties

    @pytest.mark.parametrize("value", [
        "line1\nline2",
        "it's",
        "back\\slash",
        "ends with \\",
        "  padded  ",
        "${form.other}",
        "== 3",
        "",
        "42",
        True,
        0,
        -2.5,
    ])
    def test_condition_literals(self, value):
        flow = _single_component_flow(
            ComponentType.IF,
            {"condition": {"subject": "subject_1", "operator": "!=", "value": value}},
        )

        rebuilt = deserialize_flow(serialize_flow(flow))

        assert rebuilt == flow
        assert rebuilt.screens[0].get_component("if_1").properties.condition.value == value


POPULATED_PROPERTIES = {
    ComponentType.TEXT_INPUT: {
        "input-type": "email", "required": True, "helper-text": "We never share it",
        "min-chars": 3, "max-chars": 80, "error-message": "Invalid email",
    },
    ComponentType.DATE_PICKER: {
        "min-date": "2024-01-01", "max-date": "2024-12-31", "unavailable-dates": ["2024-06-01"],
        "on-select-action": {"name": "update_data", "payload": {"day": "${form.date_picker_1}"}},
    },
    ComponentType.CALENDAR_PICKER: {"mode": "range", "min-date": "2024-01-01", "description": "Stay"},
    ComponentType.TIME_PICKER: {
        "required": True,
        "on-select-action": {"name": "data_exchange", "payload": {"slot": "morning"}},
    },
    ComponentType.SELECT: {
        "data-source": [{"id": "a", "title": "A"}, {"id": "b", "title": "B", "enabled": False}],
        "on-select-action": {"name": "update_data", "payload": {}},
    },
    ComponentType.CHECKBOX: {
        "data-source": "${data.toppings}", "min-selected-items": 1, "max-selected-items": 2,
    },
    ComponentType.RADIO: {
        "data-source": [{"id": "email", "title": "Email", "description": "Slow"}],
        "required": True, "description": "Pick one",
    },
    ComponentType.CHIPS_SELECTOR: {
        "data-source": [{"id": "x", "title": "X"}, {"id": "y", "title": "Y"}],
        "max-selected-items": 3,
        "on-select-action": {"name": "navigate", "next": {"type": "screen", "name": "main"}, "payload": {}},
    },
    ComponentType.IMAGE: {
        "src": "https://example.com/a.png", "width": 200, "height": 100,
        "scale-type": "cover", "aspect-ratio": 1.5, "alt-text": "Logo",
    },
    ComponentType.IMAGE_CAROUSEL: {
        "images": [{"src": "a.png", "alt-text": "A"}, {"src": "b.png", "alt-text": "B"}],
        "aspect-ratio": "16:9", "scale-type": "cover",
    },
    ComponentType.PHOTO_PICKER: {
        "description": "Receipt", "photo-source": "camera", "max-file-size-kb": 1024,
        "min-uploaded-photos": 1, "max-uploaded-photos": 3, "enabled": False, "error-message": "Required",
    },
    ComponentType.DOCUMENT_PICKER: {
        "description": "Contract", "max-uploaded-documents": 2, "allowed-mime-types": ["application/pdf"],
    },
    ComponentType.EMBEDDED_LINK: {
        "on-click-action": {"name": "navigate", "next": {"type": "screen", "name": "main"}, "payload": {"from": "link"}},
    },
    ComponentType.OPT_IN: {
        "required": True, "on-click-action": {"name": "open_url", "url": "https://example.com/privacy"},
    },
    ComponentType.IF: {
        "condition": {"subject": "subject_1", "operator": ">=", "value": 3},
        "then": {"footer": {"label": "Go", "action": {"name": "complete"}}},
        "else": {"footer": {"label": "Back", "action": {"name": "navigate", "next_screen": "main"}}},
    },
    ComponentType.SWITCH: {
        "subject": "subject_1",
        "cases": [
            {"value": "a", "footer": {"label": "Done", "action": {"name": "complete"}}},
            {"value": "b"},
        ],
    },
    ComponentType.NAVIGATION_LIST: {
        "description": "Menu",
        "items": [
            {
                "id": "one",
                "main-content": {"title": "One", "description": "First"},
                "on-click-action": {"name": "navigate", "next": {"type": "screen", "name": "main"}, "payload": {}},
            },
            {"id": "two", "main-content": {"title": "Two", "metadata": "2"}},
        ],
    },
    ComponentType.RICH_TEXT: {"text": ["# Title", "Body with *bold* text"]},
}


def _single_component_flow(component_type, properties):
    """One screen: a text input used as condition subject, then the component under test"""
    subject = FlowComponent(id="subject_1", type="text_input", title="Subject")
    component = FlowComponent(
        id=f"{component_type.value}_1",
        type=component_type,
        title=f"{component_type.value} title",
        properties=properties,
    )
    screen = Screen(
        id="main",
        title="Main",
        components=[subject, component],
        footer=Footer(label="Submit", action=FlowAction(name="complete")),
        data={"toppings": {"type": "array", "__example__": []}},
    )
    return Flow(name="Every component", categories=["SURVEY"], screens=[screen])


class TestReconstruction:

    def test_chrome_becomes_screen_fields(self, lead_flow):
        welcome = deserialize_flow(serialize_flow(lead_flow)).screens[0]

        assert welcome.heading == "Welcome"
        assert welcome.body == "Tell us about you"
        assert welcome.footer.action.next_screen == "details"
        assert [component.id for component in welcome.components] == ["name_1"]

    def test_branches_are_flattened_in_pre_order(self, lead_flow):
        details = deserialize_flow(serialize_flow(lead_flow)).screens[1]

        assert [component.id for component in details.components] == [
            "email_1", "plan_1", "if_1", "rich_text_1", "opt_in_1", "switch_1", "image_1",
        ]
        if_component = details.get_component("if_1")
        assert if_component.properties.condition == Condition(subject="email_1", operator="!=", value="")
        assert if_component.properties.then_branch.footer.label == "Finish"

    def test_missing_ids_and_titles_get_defaults(self, screen_wire, complete_footer_wire):
        wire = screen_wire([
            {"type": "TextInput", "label": "Email"},
            {"type": "TextInput"},
            {"type": "Image", "id": "logo", "src": "https://example.com/logo.png"},
            complete_footer_wire,
        ])

        components = deserialize_flow(wire).screens[0].components

        assert [(c.id, c.title) for c in components] == [
            ("text_input_1", "Email"),
            ("text_input_2", "Text Input 2"),
            ("logo", "Image"),
        ]

    def test_generated_ids_skip_nested_members(self, screen_wire):
        wire = screen_wire([
            {"type": "If", "condition": "${form.text_input_1}", "then": [{"type": "TextInput"}]},
            {"type": "TextInput"},
        ])

        components = deserialize_flow(wire).screens[0].components

        assert [c.id for c in components] == ["if_1", "text_input_1", "text_input_2"]
        assert components[0].properties.then_branch.components == ["text_input_1"]

    def test_unknown_properties_are_dropped(self, screen_wire):
        wire = screen_wire([{"type": "TextInput", "name": "a", "label": "A", "sparkle": True}])

        component = deserialize_flow(wire).screens[0].components[0]

        assert component.type is ComponentType.TEXT_INPUT
        assert "sparkle" not in serialize_flow(deserialize_flow(wire))["screens"][0]["layout"]["children"][0]

    def test_derived_keys_are_not_stored(self, screen_wire, complete_footer_wire):
        wire = screen_wire([complete_footer_wire], terminal=False)
        wire["routing_model"] = {"WELCOME": ["elsewhere"]}

        rebuilt = serialize_flow(deserialize_flow(wire))

        assert rebuilt["screens"][0]["terminal"] is True
        assert "routing_model" not in rebuilt

    def test_name_falls_back(self, screen_wire):
        wire = screen_wire([])
        del wire["name"]

        assert deserialize_flow(wire, fallback_name="Stored name").name == "Stored name"
        assert deserialize_flow(wire).name == ""

    def test_wire_name_wins(self, screen_wire):
        assert deserialize_flow(screen_wire([]), fallback_name="Stored name").name == "Lead form"

    def test_missing_categories_default(self, screen_wire):
        wire = screen_wire([])
        del wire["categories"]

        assert deserialize_flow(wire).categories == ["LEAD_GENERATION"]


class TestErrors:

    def test_unparseable_string(self):
        with pytest.raises(MalformedJson):
            deserialize_flow('{"screens": [')

    def test_non_object_document(self):
        with pytest.raises(MalformedDocument):
            deserialize_flow("[1, 2, 3]")

    def test_screens_must_be_a_list(self):
        with pytest.raises(MalformedDocument):
            deserialize_flow({"name": "x", "screens": {"id": "a"}})

    def test_screen_without_id(self, screen_wire):
        wire = screen_wire([])
        del wire["screens"][0]["id"]

        with pytest.raises(MalformedDocument) as exc_info:
            deserialize_flow(wire)
        assert exc_info.value.problems == ["screen[0]: missing required field 'id'"]

    def test_unknown_component_type(self, screen_wire):
        with pytest.raises(UnknownComponentType) as exc_info:
            deserialize_flow(screen_wire([{"type": "Carousel3D", "id": "c"}]))
        assert exc_info.value.component_type == "Carousel3D"

    def test_misplaced_heading(self, screen_wire):
        wire = screen_wire([
            {"type": "TextInput", "name": "a", "label": "A"},
            {"type": "TextHeading", "text": "Late heading"},
        ])

        with pytest.raises(MalformedDocument):
            deserialize_flow(wire)

    def test_unsupported_condition(self, screen_wire):
        wire = screen_wire([{"type": "If", "id": "if_1", "condition": "${data.flag}", "then": []}])

        with pytest.raises(MalformedDocument):
            deserialize_flow(wire)

    def test_duplicate_component_ids(self, screen_wire):
        wire = screen_wire([
            {"type": "TextInput", "name": "a", "label": "A"},
            {"type": "Switch", "id": "s", "value": "${form.a}", "cases": {"x": [{"type": "Image", "id": "a"}]}},
        ])

        with pytest.raises(MalformedDocument) as exc_info:
            deserialize_flow(wire)
        assert "screen WELCOME: duplicate component id 'a'" in exc_info.value.problems

    def test_component_id_outside_reference_alphabet(self, screen_wire):
        wire = screen_wire([{"type": "TextInput", "name": "first-name", "label": "First name"}])

        with pytest.raises(MalformedDocument) as exc_info:
            deserialize_flow(wire)
        assert "first-name" in exc_info.value.problems[0]

    def test_condition_subject_outside_reference_alphabet(self, screen_wire):
        wire = screen_wire([
            {"type": "If", "id": "if_1", "condition": "${form.first-name} == 'x'", "then": []},
        ])

        with pytest.raises(MalformedDocument):
            deserialize_flow(wire)

    @pytest.mark.parametrize("categories", [5, {"a": 1}, 2.5])
    def test_categories_must_be_a_list(self, screen_wire, categories):
        wire = screen_wire([])
        wire["categories"] = categories

        with pytest.raises(MalformedDocument) as exc_info:
            deserialize_flow(wire)
        assert exc_info.value.problems[0].startswith("flow: ")
