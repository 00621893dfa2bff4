"""
Unified schema system for the flow compiler.

This module provides the component catalog, the flow document model and
the request envelopes used by the compiler services.
"""

from .component_catalog import (
    ComponentType,
    ComponentDefinition,
    COMPONENT_DEFINITIONS,
    CONTROL_COMPONENT_TYPES,
    SCREEN_CHROME_TYPES,
    component_type_from_wire,
    export_component_catalog,
    get_available_components,
    get_component_default_properties,
    get_component_definition,
    get_component_property_schema,
    get_default_title,
    get_identifier_key,
    get_title_key,
    get_wire_type,
    is_control_component,
    is_input_component,
    is_known_wire_type,
    normalize_component_type,
)

from .core import (
    ACTION_NAMES,
    BaseComponentProperties,
    COMPONENT_PROPERTY_SCHEMAS,
    DataSourceOption,
    FlowAction,
    Footer,
)

from .components import (
    CarouselImage,
    CalendarPickerProperties,
    ChipsSelectorProperties,
    CheckboxProperties,
    Condition,
    ConditionalBranch,
    DatePickerProperties,
    DocumentPickerProperties,
    EmbeddedLinkProperties,
    FlowComponent,
    FORM_REFERENCE,
    DATA_SOURCE_REFERENCE,
    COMPONENT_ID_PATTERN,
    IfProperties,
    ImageCarouselProperties,
    ImageProperties,
    NavigationItem,
    NavigationItemContent,
    NavigationListProperties,
    OptInProperties,
    PhotoPickerProperties,
    RadioProperties,
    RichTextProperties,
    SelectProperties,
    SelectionProperties,
    SwitchCase,
    SwitchProperties,
    TextInputProperties,
    TimePickerProperties,
)

from .flow import (
    Flow,
    Screen,
    canonical_component_order,
)

from .requests import (
    FlowCreateRequest,
    FlowLinkState,
    FlowRecord,
    FlowUpdateRequest,
)

from .validation import ValidationReport

__all__ = [
    # Catalog
    'ComponentType',
    'ComponentDefinition',
    'COMPONENT_DEFINITIONS',
    'CONTROL_COMPONENT_TYPES',
    'SCREEN_CHROME_TYPES',
    'component_type_from_wire',
    'export_component_catalog',
    'get_available_components',
    'get_component_default_properties',
    'get_component_definition',
    'get_component_property_schema',
    'get_default_title',
    'get_identifier_key',
    'get_title_key',
    'get_wire_type',
    'is_control_component',
    'is_input_component',
    'is_known_wire_type',
    'normalize_component_type',

    # Core types
    'ACTION_NAMES',
    'BaseComponentProperties',
    'COMPONENT_PROPERTY_SCHEMAS',
    'DataSourceOption',
    'FlowAction',
    'Footer',

    # Components
    'CarouselImage',
    'CalendarPickerProperties',
    'ChipsSelectorProperties',
    'CheckboxProperties',
    'Condition',
    'ConditionalBranch',
    'DatePickerProperties',
    'DocumentPickerProperties',
    'EmbeddedLinkProperties',
    'FlowComponent',
    'FORM_REFERENCE',
    'DATA_SOURCE_REFERENCE',
    'COMPONENT_ID_PATTERN',
    'IfProperties',
    'ImageCarouselProperties',
    'ImageProperties',
    'NavigationItem',
    'NavigationItemContent',
    'NavigationListProperties',
    'OptInProperties',
    'PhotoPickerProperties',
    'RadioProperties',
    'RichTextProperties',
    'SelectProperties',
    'SelectionProperties',
    'SwitchCase',
    'SwitchProperties',
    'TextInputProperties',
    'TimePickerProperties',

    # Document
    'Flow',
    'Screen',
    'canonical_component_order',

    # Requests
    'FlowCreateRequest',
    'FlowLinkState',
    'FlowRecord',
    'FlowUpdateRequest',

    # Validation
    'ValidationReport',
]
