"""Component catalog and default factory API endpoints."""
from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional

from flow_service.core.exceptions import UnknownComponentType
from flow_service.models.schemas.component_catalog import export_component_catalog as export_component_catalog_payload
from flow_service.services.compiler.default_factory import default_factory
from flow_service.utils.logging import get_logger

router = APIRouter()
logger = get_logger(__name__)


class DefaultComponentRequest(BaseModel):
    """Components already on the screen, used to pick a free id"""
    existing_components: List[Dict[str, Any]] = Field(default_factory=list)

    class Config:
        json_schema_extra = {
            "example": {
                "existing_components": [{"id": "select_1", "type": "select"}]
            }
        }


class ComponentNotFound(UnknownComponentType):
    """Unknown component type addressed through the URL path"""


@router.get(
    "/components",
    tags=["Components"],
    summary="Get full component catalog",
    description="Returns every component type with its wire name, keys and default properties."
)
async def get_component_catalog() -> Dict[str, Any]:
    return export_component_catalog_payload()


@router.get(
    "/components/export",
    tags=["Components"],
    summary="Export component catalog as JSON",
    description="Downloads the full component catalog as a JSON file."
)
async def export_component_catalog() -> JSONResponse:
    response = JSONResponse(
        content=export_component_catalog_payload()
    )
    response.headers["Content-Disposition"] = 'attachment; filename="component_catalog.json"'
    return response


@router.post(
    "/components/{component_type}/default",
    tags=["Components"],
    summary="Create a default component",
    description="New component of the given type with a collision-free id and placeholder title."
)
async def create_default_component(
    component_type: str,
    request: Optional[DefaultComponentRequest] = None
) -> Dict[str, Any]:
    existing = request.existing_components if request else []
    try:
        component = default_factory.default_component(component_type, existing)
    except UnknownComponentType:
        logger.warning(
            "api.components.unknown_type",
            extra={"component_type": component_type}
        )
        raise ComponentNotFound(component_type)
    return component.model_dump(mode="json", by_alias=True)


@router.get(
    "/screens/default",
    tags=["Components"],
    summary="Create a default screen",
    description="Empty screen with a fresh id, placeholder title and a submit footer."
)
async def create_default_screen() -> Dict[str, Any]:
    return default_factory.default_screen().model_dump(mode="json", by_alias=True)
