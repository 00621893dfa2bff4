"""
Validation report model and diagnostic message helpers.

Messages name the offending screen and component so the editor can show
them to the user as they are.
"""
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class ValidationReport(BaseModel):
    """Outcome of validating a flow; `valid` depends on errors only"""
    valid: bool = True
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"valid": self.valid, "errors": list(self.errors)}

    class Config:
        json_schema_extra = {
            "example": {
                "valid": False,
                "errors": ["screen S1: if-component references unknown component 'field_x'"],
                "warnings": [],
            }
        }


def screen_prefix(screen_id: Optional[str], index: Optional[int] = None) -> str:
    if screen_id and screen_id.startswith("["):
        return f"screen{screen_id}"
    if screen_id:
        return f"screen {screen_id}"
    return f"screen[{index}]"


def unknown_screen_message(screen_id: str, source: str, target: str) -> str:
    return f"{screen_prefix(screen_id)}: {source} navigates to unknown screen '{target}'"


def unknown_component_message(screen_id: str, control_kind: str, component_id: str) -> str:
    return f"{screen_prefix(screen_id)}: {control_kind}-component references unknown component '{component_id}'"


def duplicate_component_message(screen_id: str, component_id: str) -> str:
    return f"{screen_prefix(screen_id)}: duplicate component id '{component_id}'"


def duplicate_screen_message(screen_id: str) -> str:
    return f"{screen_prefix(screen_id)}: duplicate screen id '{screen_id}'"


def missing_branch_member_message(screen_id: str, control_id: str, member_id: str) -> str:
    return f"{screen_prefix(screen_id)}: component '{control_id}' branch references unknown component '{member_id}'"


def shared_branch_member_message(screen_id: str, member_id: str) -> str:
    return f"{screen_prefix(screen_id)}: component '{member_id}' belongs to more than one branch"


def branch_cycle_message(screen_id: str, control_id: str) -> str:
    return f"{screen_prefix(screen_id)}: component '{control_id}' contains itself through its branches"
