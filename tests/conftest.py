"""
Shared fixtures for flow compiler tests.
"""
import pytest

from flow_service.models.schemas import (
    Condition,
    ConditionalBranch,
    DataSourceOption,
    Flow,
    FlowAction,
    FlowComponent,
    Footer,
    IfProperties,
    ImageProperties,
    OptInProperties,
    RichTextProperties,
    Screen,
    SelectProperties,
    SwitchCase,
    SwitchProperties,
    TextInputProperties,
)


def text_input(component_id: str, title: str = "Name", required: bool = True) -> FlowComponent:
    return FlowComponent(
        id=component_id,
        type="text_input",
        title=title,
        properties=TextInputProperties(required=required),
    )


def complete_footer(label: str = "Submit") -> Footer:
    return Footer(label=label, action=FlowAction(name="complete"))


def navigate_footer(target: str, label: str = "Continue") -> Footer:
    return Footer(
        label=label,
        action=FlowAction(name="navigate", next_screen=target, payload={"name": "${form.name_1}"}),
    )


def build_lead_flow() -> Flow:
    """Two screens: a welcome form navigating to a details screen with controls"""
    welcome = Screen(
        id="welcome",
        title="Welcome",
        heading="Welcome",
        body="Tell us about you",
        components=[text_input("name_1")],
        footer=navigate_footer("details"),
    )

    details = Screen(
        id="details",
        title="Details",
        components=[
            text_input("email_1", title="Email", required=False),
            FlowComponent(
                id="plan_1",
                type="select",
                title="Plan",
                properties=SelectProperties(
                    options=[
                        DataSourceOption(id="basic", title="Basic"),
                        DataSourceOption(id="pro", title="Pro", description="Everything"),
                    ]
                ),
            ),
            FlowComponent(
                id="if_1",
                type="if",
                title="Has email",
                properties=IfProperties(
                    condition=Condition(subject="email_1", operator="!=", value=""),
                    then_branch=ConditionalBranch(
                        components=["rich_text_1"],
                        footer=complete_footer("Finish"),
                    ),
                    else_branch=ConditionalBranch(components=["opt_in_1"]),
                ),
            ),
            FlowComponent(
                id="rich_text_1",
                type="rich_text",
                title="Thanks",
                properties=RichTextProperties(text=["We will write to you."]),
            ),
            FlowComponent(
                id="opt_in_1",
                type="opt_in",
                title="Contact me by phone",
                properties=OptInProperties(required=False),
            ),
            FlowComponent(
                id="switch_1",
                type="switch",
                title="Plan details",
                properties=SwitchProperties(
                    subject="plan_1",
                    cases=[
                        SwitchCase(value="basic", components=["image_1"]),
                        SwitchCase(value="pro"),
                    ],
                ),
            ),
            FlowComponent(
                id="image_1",
                type="image",
                title="Basic plan",
                properties=ImageProperties(src="https://example.com/basic.png", height=120),
            ),
        ],
        footer=complete_footer(),
    )

    return Flow(name="Lead form", categories=["lead_generation"], screens=[welcome, details])


def single_screen_wire(children, screen_id: str = "WELCOME", **screen_fields):
    """Minimal valid-shaped flow JSON around one screen's layout children"""
    screen = {
        "id": screen_id,
        "title": "Welcome",
        "layout": {"type": "SingleColumnLayout", "children": children},
    }
    screen.update(screen_fields)
    return {
        "version": "7.3",
        "name": "Lead form",
        "categories": ["LEAD_GENERATION"],
        "screens": [screen],
    }


COMPLETE_FOOTER_WIRE = {
    "type": "Footer",
    "label": "Submit",
    "on-click-action": {"name": "complete", "payload": {}},
}


@pytest.fixture
def lead_flow() -> Flow:
    return build_lead_flow()


@pytest.fixture
def scenario_a_wire():
    return single_screen_wire([
        {"type": "TextInput", "name": "name_1", "label": "Name", "required": True},
        COMPLETE_FOOTER_WIRE,
    ], terminal=True)


@pytest.fixture
def scenario_b_wire():
    return single_screen_wire([
        {
            "type": "If",
            "id": "if_1",
            "label": "If",
            "condition": "${form.field_x} == 'yes'",
            "then": [{"type": "TextBody", "text": "Matched"}],
        },
        COMPLETE_FOOTER_WIRE,
    ], screen_id="S1")


@pytest.fixture
def screen_wire():
    return single_screen_wire


@pytest.fixture
def complete_footer_wire():
    return dict(COMPLETE_FOOTER_WIRE)
