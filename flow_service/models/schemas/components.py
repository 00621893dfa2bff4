"""
Component property schemas and the flow component model.

Property fields use snake_case names and carry their wire (kebab-case)
spelling as alias, so `model_dump(by_alias=True)` yields the wire shape.
"""
import json
import re
from typing import Any, Dict, List, Literal, Optional, Union
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SerializeAsAny,
    field_validator,
    model_validator,
)

from .component_catalog import (
    ComponentDefinition,
    ComponentType,
    CONTROL_COMPONENT_TYPES,
    get_component_definition,
    get_component_property_schema,
    normalize_component_type,
)
from .core import (
    BaseComponentProperties,
    COMPONENT_PROPERTY_SCHEMAS,
    DataSourceOption,
    FlowAction,
    Footer,
    register_component_schema,
)

DATA_SOURCE_REFERENCE = re.compile(r"^\$\{data\.([A-Za-z0-9_]+)\}$")

# Component ids are referenced as `${form.<id>}` in conditions and switch values.
COMPONENT_ID_PATTERN = r"^[A-Za-z0-9_]+$"


# ============================================================================
# INPUTS
# ============================================================================

class InputComponentProperties(BaseComponentProperties):
    """Properties shared by form inputs"""
    required: bool = False
    enabled: Optional[bool] = None
    description: Optional[str] = None
    error_message: Optional[str] = Field(default=None, alias="error-message")


class TextInputProperties(InputComponentProperties):
    """TextInput-specific properties"""
    input_type: Literal["text", "number", "email", "password", "passcode", "phone"] = Field(
        default="text",
        alias="input-type"
    )
    helper_text: Optional[str] = Field(default=None, alias="helper-text")
    pattern: Optional[str] = None
    min_chars: Optional[int] = Field(default=None, alias="min-chars", ge=0)
    max_chars: Optional[int] = Field(default=None, alias="max-chars", ge=1)


class DatePickerProperties(InputComponentProperties):
    """DatePicker-specific properties"""
    min_date: Optional[str] = Field(default=None, alias="min-date")
    max_date: Optional[str] = Field(default=None, alias="max-date")
    unavailable_dates: Optional[List[str]] = Field(default=None, alias="unavailable-dates")
    on_select_action: Optional[FlowAction] = Field(default=None, alias="on-select-action")


class CalendarPickerProperties(DatePickerProperties):
    """CalendarPicker-specific properties"""
    mode: Literal["single", "range"] = "single"


class TimePickerProperties(InputComponentProperties):
    """TimePicker-specific properties"""
    on_select_action: Optional[FlowAction] = Field(default=None, alias="on-select-action")


# ============================================================================
# SELECTIONS
# ============================================================================

class SelectionProperties(InputComponentProperties):
    """
    Shared shape of option-based components.

    `options` is either an inline array or a `${data.<name>}` reference to a
    data source declared on the screen.
    """
    options: Union[List[DataSourceOption], str] = Field(default_factory=list, alias="data-source")
    on_select_action: Optional[FlowAction] = Field(default=None, alias="on-select-action")

    @field_validator('options')
    @classmethod
    def validate_data_source_reference(cls, v):
        if isinstance(v, str) and not DATA_SOURCE_REFERENCE.match(v):
            raise ValueError(f"Invalid data-source reference: {v}. Expected ${{data.<name>}}")
        return v

    @property
    def data_source_name(self) -> Optional[str]:
        if isinstance(self.options, str):
            return DATA_SOURCE_REFERENCE.match(self.options).group(1)
        return None


class SelectProperties(SelectionProperties):
    """Dropdown properties"""


class CheckboxProperties(SelectionProperties):
    """CheckboxGroup properties"""
    min_selected_items: Optional[int] = Field(default=None, alias="min-selected-items", ge=0)
    max_selected_items: Optional[int] = Field(default=None, alias="max-selected-items", ge=1)


class RadioProperties(SelectionProperties):
    """RadioButtonsGroup properties"""


class ChipsSelectorProperties(SelectionProperties):
    """ChipsSelector properties"""
    min_selected_items: Optional[int] = Field(default=None, alias="min-selected-items", ge=0)
    max_selected_items: int = Field(default=2, alias="max-selected-items", ge=1)


# ============================================================================
# MEDIA & UPLOADS
# ============================================================================

class ImageProperties(BaseComponentProperties):
    """Image properties"""
    src: str = ""
    width: Optional[int] = Field(default=None, gt=0)
    height: Optional[int] = Field(default=None, gt=0)
    scale_type: Optional[Literal["cover", "contain"]] = Field(default=None, alias="scale-type")
    aspect_ratio: Optional[float] = Field(default=None, alias="aspect-ratio", gt=0)
    alt_text: Optional[str] = Field(default=None, alias="alt-text")


class CarouselImage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    src: str = ""
    alt_text: str = Field(default="", alias="alt-text")


class ImageCarouselProperties(BaseComponentProperties):
    """ImageCarousel properties (1 to 3 images on the platform)"""
    images: List[CarouselImage] = Field(
        default_factory=lambda: [CarouselImage(alt_text="Image 1")]
    )
    aspect_ratio: str = Field(default="4:3", alias="aspect-ratio")
    scale_type: Literal["cover", "contain"] = Field(default="contain", alias="scale-type")


class PhotoPickerProperties(BaseComponentProperties):
    """PhotoPicker properties"""
    description: Optional[str] = None
    photo_source: Literal["camera_gallery", "camera", "gallery"] = Field(
        default="camera_gallery",
        alias="photo-source"
    )
    max_file_size_kb: int = Field(default=25600, alias="max-file-size-kb", gt=0)
    min_uploaded_photos: int = Field(default=0, alias="min-uploaded-photos", ge=0)
    max_uploaded_photos: int = Field(default=30, alias="max-uploaded-photos", ge=1)
    enabled: bool = True
    error_message: Optional[str] = Field(default=None, alias="error-message")


class DocumentPickerProperties(BaseComponentProperties):
    """DocumentPicker properties"""
    description: Optional[str] = None
    max_file_size_kb: int = Field(default=25600, alias="max-file-size-kb", gt=0)
    min_uploaded_documents: int = Field(default=0, alias="min-uploaded-documents", ge=0)
    max_uploaded_documents: int = Field(default=30, alias="max-uploaded-documents", ge=1)
    allowed_mime_types: List[str] = Field(
        default_factory=lambda: ["application/pdf", "image/jpeg", "image/png"],
        alias="allowed-mime-types"
    )
    enabled: bool = True
    error_message: Optional[str] = Field(default=None, alias="error-message")


# ============================================================================
# LINKS & DISPLAY
# ============================================================================

class EmbeddedLinkProperties(BaseComponentProperties):
    """EmbeddedLink properties; the component title is the link text"""
    on_click_action: FlowAction = Field(
        default_factory=lambda: FlowAction(name="open_url", url="https://example.com"),
        alias="on-click-action"
    )


class OptInProperties(BaseComponentProperties):
    """OptIn properties"""
    required: bool = False
    on_click_action: FlowAction = Field(
        default_factory=lambda: FlowAction(name="open_url", url="https://example.com/terms"),
        alias="on-click-action"
    )


class RichTextProperties(BaseComponentProperties):
    """RichText properties; markdown lines"""
    text: List[str] = Field(default_factory=lambda: ["Rich text content"])

    @field_validator('text', mode='before')
    @classmethod
    def split_single_string(cls, v):
        if isinstance(v, str):
            return [v]
        return v


class NavigationItemContent(BaseModel):
    title: str
    description: Optional[str] = None
    metadata: Optional[str] = None


class NavigationItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    main_content: NavigationItemContent = Field(alias="main-content")
    on_click_action: Optional[FlowAction] = Field(default=None, alias="on-click-action")


class NavigationListProperties(BaseComponentProperties):
    """NavigationList properties; each item may navigate to a screen"""
    description: Optional[str] = None
    items: List[NavigationItem] = Field(default_factory=list)

    def iter_actions(self) -> List[FlowAction]:
        return [item.on_click_action for item in self.items if item.on_click_action is not None]


# ============================================================================
# CONTROL COMPONENTS
# ============================================================================

ConditionOperator = Literal["==", "!=", ">", ">=", "<", "<="]

_CONDITION_PATTERN = re.compile(
    r"^\$\{form\.([A-Za-z0-9_]+)\}\s*(?:(==|!=|>=|<=|>|<)\s*(.+))?$",
    re.DOTALL
)
FORM_REFERENCE = re.compile(r"\$\{form\.([A-Za-z0-9_]+)\}")


class Condition(BaseModel):
    """
    Branch condition of an `if` component.

    `subject` is the id of a component on the same screen. An empty condition
    has no subject. Without a value the condition tests the subject's truthiness.
    """
    subject: Optional[str] = Field(default=None, pattern=COMPONENT_ID_PATTERN)
    operator: ConditionOperator = "=="
    value: Optional[Union[bool, int, float, str]] = None

    @model_validator(mode='after')
    def reset_incomplete_condition(self) -> 'Condition':
        if self.subject is None:
            self.value = None
        if self.value is None:
            self.operator = "=="
        return self

    @property
    def is_empty(self) -> bool:
        return self.subject is None

    def to_expression(self) -> str:
        if self.subject is None:
            return ""
        expression = "${form.%s}" % self.subject
        if self.value is None:
            return expression
        return f"{expression} {self.operator} {_format_literal(self.value)}"

    @classmethod
    def from_expression(cls, expression: str) -> 'Condition':
        expression = (expression or "").strip()
        if not expression:
            return cls()
        match = _CONDITION_PATTERN.match(expression)
        if not match:
            raise ValueError(f"Unsupported condition expression: {expression}")
        subject, operator, literal = match.groups()
        if operator is None:
            return cls(subject=subject)
        return cls(subject=subject, operator=operator, value=_parse_literal(literal.strip()))


def _format_literal(value: Union[bool, int, float, str]) -> str:
    if isinstance(value, str):
        escaped = value.replace("\\", "\\\\").replace("'", "\\'")
        return f"'{escaped}'"
    return json.dumps(value)


def _parse_literal(literal: str) -> Union[bool, int, float, str]:
    if len(literal) >= 2 and literal[0] == literal[-1] == "'":
        return re.sub(r"\\(.)", r"\1", literal[1:-1], flags=re.DOTALL)
    try:
        value = json.loads(literal)
    except json.JSONDecodeError:
        raise ValueError(f"Unsupported literal in condition: {literal}")
    if isinstance(value, (bool, int, float, str)):
        return value
    raise ValueError(f"Unsupported literal in condition: {literal}")


class ConditionalBranch(BaseModel):
    """Member component ids of one branch, plus the branch footer"""
    components: List[str] = Field(default_factory=list)
    footer: Optional[Footer] = None


class IfProperties(BaseComponentProperties):
    """If properties"""
    condition: Condition = Field(default_factory=Condition)
    then_branch: ConditionalBranch = Field(default_factory=ConditionalBranch, alias="then")
    else_branch: ConditionalBranch = Field(default_factory=ConditionalBranch, alias="else")

    def branches(self) -> List[ConditionalBranch]:
        return [self.then_branch, self.else_branch]

    def iter_actions(self) -> List[FlowAction]:
        return [footer.action for footer in self.branch_footers()]

    def branch_footers(self) -> List[Footer]:
        return [branch.footer for branch in self.branches() if branch.footer is not None]

    def branch_members(self) -> List[str]:
        return [member for branch in self.branches() for member in branch.components]

    def referenced_components(self) -> List[str]:
        return [] if self.condition.is_empty else [self.condition.subject]


class SwitchCase(BaseModel):
    value: str
    components: List[str] = Field(default_factory=list)
    footer: Optional[Footer] = None


class SwitchProperties(BaseComponentProperties):
    """Switch properties; cases are evaluated in order"""
    subject: Optional[str] = Field(default=None, pattern=COMPONENT_ID_PATTERN)
    cases: List[SwitchCase] = Field(default_factory=list)

    @field_validator('cases')
    @classmethod
    def validate_unique_case_values(cls, v: List[SwitchCase]) -> List[SwitchCase]:
        seen = set()
        for case in v:
            if case.value in seen:
                raise ValueError(f"Duplicate switch case value: {case.value}")
            seen.add(case.value)
        return v

    def branches(self) -> List[SwitchCase]:
        return list(self.cases)

    def iter_actions(self) -> List[FlowAction]:
        return [footer.action for footer in self.branch_footers()]

    def branch_footers(self) -> List[Footer]:
        return [case.footer for case in self.cases if case.footer is not None]

    def branch_members(self) -> List[str]:
        return [member for case in self.cases for member in case.components]

    def referenced_components(self) -> List[str]:
        return [] if self.subject is None else [self.subject]


# Register component schemas
register_component_schema(ComponentType.TEXT_INPUT, TextInputProperties)
register_component_schema(ComponentType.DATE_PICKER, DatePickerProperties)
register_component_schema(ComponentType.CALENDAR_PICKER, CalendarPickerProperties)
register_component_schema(ComponentType.TIME_PICKER, TimePickerProperties)
register_component_schema(ComponentType.SELECT, SelectProperties)
register_component_schema(ComponentType.CHECKBOX, CheckboxProperties)
register_component_schema(ComponentType.RADIO, RadioProperties)
register_component_schema(ComponentType.CHIPS_SELECTOR, ChipsSelectorProperties)
register_component_schema(ComponentType.IMAGE, ImageProperties)
register_component_schema(ComponentType.IMAGE_CAROUSEL, ImageCarouselProperties)
register_component_schema(ComponentType.PHOTO_PICKER, PhotoPickerProperties)
register_component_schema(ComponentType.DOCUMENT_PICKER, DocumentPickerProperties)
register_component_schema(ComponentType.EMBEDDED_LINK, EmbeddedLinkProperties)
register_component_schema(ComponentType.OPT_IN, OptInProperties)
register_component_schema(ComponentType.IF, IfProperties)
register_component_schema(ComponentType.SWITCH, SwitchProperties)
register_component_schema(ComponentType.NAVIGATION_LIST, NavigationListProperties)
register_component_schema(ComponentType.RICH_TEXT, RichTextProperties)

_unregistered = [t.value for t in ComponentType if t not in COMPONENT_PROPERTY_SCHEMAS]
if _unregistered:
    raise RuntimeError(f"No property schema registered for: {_unregistered}")


class FlowComponent(BaseModel):
    """A single component on a screen"""
    id: str = Field(
        ...,
        frozen=True,
        min_length=1,
        pattern=COMPONENT_ID_PATTERN,
        description="Unique within the owning screen; letters, digits and underscores"
    )
    type: ComponentType
    title: str = ""
    properties: SerializeAsAny[BaseComponentProperties] = Field(default_factory=BaseComponentProperties)

    @model_validator(mode='before')
    @classmethod
    def build_typed_properties(cls, data: Any) -> Any:
        """Validate properties against the schema registered for the type"""
        if not isinstance(data, dict):
            return data

        data = dict(data)
        component_type = normalize_component_type(data.get("type"))
        data["type"] = component_type

        schema_class = get_component_property_schema(component_type)
        properties = data.get("properties")

        if properties is None:
            data["properties"] = schema_class()
        elif isinstance(properties, schema_class):
            pass
        elif isinstance(properties, BaseModel):
            data["properties"] = schema_class.model_validate(properties.model_dump(by_alias=True))
        else:
            data["properties"] = schema_class.model_validate(properties)

        return data

    @property
    def definition(self) -> ComponentDefinition:
        return get_component_definition(self.type)

    @property
    def is_control(self) -> bool:
        return self.type in CONTROL_COMPONENT_TYPES

    def iter_actions(self) -> List[FlowAction]:
        return self.properties.iter_actions()

    def navigation_targets(self) -> List[str]:
        return [
            action.next_screen
            for action in self.iter_actions()
            if action.is_navigation and action.next_screen
        ]

    def branch_members(self) -> List[str]:
        return self.properties.branch_members()

    def referenced_components(self) -> List[str]:
        return self.properties.referenced_components()
