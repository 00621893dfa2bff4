"""
Flow compiler services.

Default factory, serializer, deserializer, validator and request builder
for platform flow JSON.
"""

from .default_factory import (
    DefaultFactory,
    default_factory,
    default_component,
    default_screen,
)
from .serializer import FlowSerializer, flow_serializer, flow_to_json, serialize_flow
from .deserializer import FlowDeserializer, flow_deserializer, deserialize_flow
from .flow_validator import FlowValidator, flow_validator, validate_flow_json
from .request_builder import (
    FlowRequestBuilder,
    flow_request_builder,
    build_create_request,
    build_save_request,
    build_update_request,
)

__all__ = [
    "DefaultFactory",
    "default_factory",
    "default_component",
    "default_screen",
    "FlowSerializer",
    "flow_serializer",
    "flow_to_json",
    "serialize_flow",
    "FlowDeserializer",
    "flow_deserializer",
    "deserialize_flow",
    "FlowValidator",
    "flow_validator",
    "validate_flow_json",
    "FlowRequestBuilder",
    "flow_request_builder",
    "build_create_request",
    "build_save_request",
    "build_update_request",
]
