"""
Request Builder - wraps flow JSON into create/update bodies for the
external flow platform.

The platform takes `name` and `categories` at creation only; update bodies
carry nothing but the flow JSON.
"""
import json
from typing import Any, Dict, List, Optional, Union

from flow_service.config import settings
from flow_service.core.exceptions import (
    ImmutableFieldChanged,
    MalformedDocument,
    MalformedJson,
    ValidationFailed,
)
from flow_service.models.schemas.flow import Flow
from flow_service.models.schemas.requests import (
    FlowCreateRequest,
    FlowLinkState,
    FlowRecord,
    FlowUpdateRequest,
)
from flow_service.services.compiler.flow_validator import flow_validator
from flow_service.services.compiler.serializer import flow_serializer
from flow_service.utils.logging import get_logger

logger = get_logger(__name__)

# Keys the platform fixes at creation time
CREATION_ONLY_KEYS = ("name", "categories")

WireJson = Union[Dict[str, Any], str]
FlowRequest = Union[FlowCreateRequest, FlowUpdateRequest]


def _normalize_categories(categories: Any) -> List[str]:
    if isinstance(categories, str):
        categories = [categories]
    elif categories is not None and not isinstance(categories, (list, tuple, set)):
        raise MalformedDocument([f"flow: categories must be a list of strings, got {type(categories).__name__}"])
    return [str(category).strip().upper() for category in (categories or []) if str(category).strip()]


class FlowRequestBuilder:
    """Builds request bodies for the transport layer"""

    def _load(self, wire_json: WireJson) -> Dict[str, Any]:
        if isinstance(wire_json, str):
            try:
                wire_json = json.loads(wire_json)
            except json.JSONDecodeError as e:
                raise MalformedJson(f"Flow JSON could not be parsed: {e.msg}")
        if not isinstance(wire_json, dict):
            raise MalformedDocument(["flow: document must be a JSON object"])
        return wire_json

    def _flow_json(self, wire: Dict[str, Any]) -> str:
        body = {key: value for key, value in wire.items() if key not in CREATION_ONLY_KEYS}
        return json.dumps(body, ensure_ascii=False)

    def build_create_request(
        self,
        name: str,
        categories: Optional[List[str]],
        wire_json: WireJson
    ) -> FlowCreateRequest:
        """
        Body for creating a flow on the platform.

        Raises:
            MalformedDocument: empty name
        """
        name = (name or "").strip()
        if not name:
            raise MalformedDocument(["flow: name must not be empty"])

        categories = _normalize_categories(categories) or [settings.default_flow_category]
        request = FlowCreateRequest(
            name=name,
            categories=categories,
            flow_json=self._flow_json(self._load(wire_json)),
        )

        logger.info(
            "request.create.built",
            extra={"flow_name": name, "categories": categories}
        )
        return request

    def build_update_request(
        self,
        wire_json: WireJson,
        record: Optional[FlowRecord] = None,
        categories: Optional[List[str]] = None
    ) -> FlowUpdateRequest:
        """
        Body for updating a flow that already exists on the platform.

        Raises:
            ImmutableFieldChanged: categories differ from the linked record
        """
        wire = self._load(wire_json)

        if record is not None:
            current = _normalize_categories(record.categories)
            for requested in (categories, wire.get("categories")):
                if not requested:
                    continue
                requested = _normalize_categories(requested)
                if current and sorted(requested) != sorted(current):
                    logger.warning(
                        "request.update.rejected",
                        extra={
                            "record_id": record.id,
                            "current": current,
                            "requested": requested
                        }
                    )
                    raise ImmutableFieldChanged("categories", current, requested)

        request = FlowUpdateRequest(flow_json=self._flow_json(wire))
        logger.info(
            "request.update.built",
            extra={"record_id": record.id if record else None}
        )
        return request

    def build_save_request(self, record: FlowRecord, flow: Flow) -> FlowRequest:
        """
        Serialize, validate and wrap a flow for saving.

        Local drafts get a create body, linked records an update body.

        Raises:
            MalformedDocument: the document breaks a structural invariant
            ValidationFailed: the serialized flow has validation errors
        """
        wire = flow_serializer.serialize(flow)
        report = flow_validator.validate(wire)
        if not report.valid:
            raise ValidationFailed(report.errors, report.warnings)

        if record.state == FlowLinkState.LINKED:
            return self.build_update_request(wire, record=record)
        return self.build_create_request(flow.name, flow.categories, wire)


# Global instance
flow_request_builder = FlowRequestBuilder()


def build_create_request(name: str, categories: Optional[List[str]], wire_json: WireJson) -> FlowCreateRequest:
    return flow_request_builder.build_create_request(name, categories, wire_json)


def build_update_request(
    wire_json: WireJson,
    record: Optional[FlowRecord] = None,
    categories: Optional[List[str]] = None
) -> FlowUpdateRequest:
    return flow_request_builder.build_update_request(wire_json, record=record, categories=categories)


def build_save_request(record: FlowRecord, flow: Flow) -> FlowRequest:
    return flow_request_builder.build_save_request(record, flow)
