"""
Request envelopes for the external flow platform and the host's form record.
"""
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field


class FlowLinkState(str, Enum):
    """Where a flow document stands with respect to the external platform"""
    LOCAL_DRAFT = "local_draft"
    LINKED = "linked"


class FlowCreateRequest(BaseModel):
    """Body for creating a flow; categories are fixed from here on"""
    name: str = Field(..., min_length=1)
    categories: List[str] = Field(..., min_length=1)
    flow_json: str = Field(..., description="Serialized flow JSON without name/categories")


class FlowUpdateRequest(BaseModel):
    """Body for updating an existing flow's JSON"""
    flow_json: str = Field(..., description="Serialized flow JSON without name/categories")


class FlowRecord(BaseModel):
    """
    Generic form record the host stores the flow on.

    `flow_json` is opaque to the host. `external_flow_id` is assigned by the
    external platform once the create request succeeded.
    """
    id: Optional[str] = None
    name: str = ""
    description: Optional[str] = None
    form_type: str = "meta_flow"
    flow_json: Optional[str] = None
    categories: List[str] = Field(default_factory=list)
    external_flow_id: Optional[str] = None

    @property
    def state(self) -> FlowLinkState:
        if self.external_flow_id:
            return FlowLinkState.LINKED
        return FlowLinkState.LOCAL_DRAFT

    def link(self, external_flow_id: str) -> 'FlowRecord':
        """Copy of this record linked to an external flow id"""
        if not external_flow_id:
            raise ValueError("external_flow_id must not be empty")
        return self.model_copy(update={"external_flow_id": external_flow_id})
