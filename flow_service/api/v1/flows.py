"""
Flow compiler API endpoints.

POST /api/v1/flows/serialize         - Flow document → flow JSON
POST /api/v1/flows/deserialize       - flow JSON → Flow document
POST /api/v1/flows/validate          - Validation report for flow JSON
POST /api/v1/flows/requests/create   - Create body for the flow platform
POST /api/v1/flows/requests/update   - Update body for the flow platform
"""
from fastapi import APIRouter
from pydantic import BaseModel, Field, ValidationError
from typing import Any, Dict, List, Optional, Union

from flow_service.core.exceptions import MalformedDocument
from flow_service.models.schemas.flow import Flow
from flow_service.models.schemas.requests import FlowRecord
from flow_service.services.compiler import (
    build_create_request,
    build_update_request,
    deserialize_flow,
    serialize_flow,
    validate_flow_json,
)
from flow_service.utils.logging import get_logger

router = APIRouter()
logger = get_logger(__name__)

FlowJsonBody = Union[Dict[str, Any], str]


# ============================================================================
# REQUEST MODELS
# ============================================================================

class DeserializeRequest(BaseModel):
    """Stored flow JSON to load into the editor"""
    flow_json: FlowJsonBody
    fallback_name: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "flow_json": "{\"version\": \"7.3\", \"screens\": []}",
                "fallback_name": "Lead form"
            }
        }


class ValidateRequest(BaseModel):
    flow_json: FlowJsonBody


class CreateRequestBody(BaseModel):
    """Inputs of a create request"""
    name: str
    categories: List[str] = Field(default_factory=list)
    flow_json: FlowJsonBody


class UpdateRequestBody(BaseModel):
    """Inputs of an update request; `record` is the linked form record"""
    flow_json: FlowJsonBody
    record: Optional[FlowRecord] = None
    categories: Optional[List[str]] = None


def _document_from_body(document: Dict[str, Any]) -> Flow:
    try:
        return Flow.model_validate(document)
    except ValidationError as e:
        raise MalformedDocument([
            f"{'.'.join(str(part) for part in error['loc']) or 'flow'}: {error['msg']}"
            for error in e.errors()
        ])


# ============================================================================
# ENDPOINTS
# ============================================================================

@router.post(
    "/flows/serialize",
    tags=["Flows"],
    summary="Serialize a flow document",
    description="Converts an editor flow document into platform flow JSON."
)
async def serialize(document: Dict[str, Any]) -> Dict[str, Any]:
    return serialize_flow(_document_from_body(document))


@router.post(
    "/flows/deserialize",
    tags=["Flows"],
    summary="Deserialize flow JSON",
    description="Rebuilds the editor flow document from stored platform flow JSON."
)
async def deserialize(request: DeserializeRequest) -> Dict[str, Any]:
    flow = deserialize_flow(request.flow_json, fallback_name=request.fallback_name)
    return flow.model_dump(mode="json", by_alias=True)


@router.post(
    "/flows/validate",
    tags=["Flows"],
    summary="Validate flow JSON",
    description="Reports every validation error at once. Always answers 200."
)
async def validate(request: ValidateRequest) -> Dict[str, Any]:
    report = validate_flow_json(request.flow_json)
    if not report.valid:
        logger.info(
            "api.flows.validation_errors",
            extra={"errors": len(report.errors)}
        )
    return report.model_dump()


@router.post(
    "/flows/requests/create",
    tags=["Flows"],
    summary="Build a create request",
    description="Body for creating the flow on the platform; name and categories are fixed from here on."
)
async def create_request(request: CreateRequestBody) -> Dict[str, Any]:
    return build_create_request(request.name, request.categories, request.flow_json).model_dump()


@router.post(
    "/flows/requests/update",
    tags=["Flows"],
    summary="Build an update request",
    description="Body for updating an existing flow. Never carries categories."
)
async def update_request(request: UpdateRequestBody) -> Dict[str, Any]:
    return build_update_request(
        request.flow_json,
        record=request.record,
        categories=request.categories
    ).model_dump()
