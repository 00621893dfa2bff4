"""
Error taxonomy for the flow document compiler.

Factory, serializer and deserializer raise these fail-fast errors.
Validation never raises; `ValidationFailed` only wraps a finished report
when a caller explicitly asks for a valid document.
"""
from typing import Any, Dict, List, Optional


# ============================================================================
# EXCEPTIONS
# ============================================================================

class FlowCompilerError(Exception):
    """Base exception for flow compiler errors"""

    error_code = "flow_compiler_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class MalformedJson(FlowCompilerError):
    """Raised when stored flow JSON cannot be parsed"""

    error_code = "malformed_json"


class MalformedDocument(FlowCompilerError):
    """Raised when a document breaks the structural invariants"""

    error_code = "malformed_document"

    def __init__(self, problems: List[str], message: Optional[str] = None):
        self.problems = list(problems)
        super().__init__(
            message or "Flow document is malformed: " + "; ".join(self.problems),
            details={"problems": self.problems},
        )


class UnknownComponentType(FlowCompilerError):
    """Raised for a component type outside the closed catalog"""

    error_code = "unknown_component_type"

    def __init__(self, component_type: Any):
        self.component_type = component_type
        super().__init__(
            f"Unknown component type: {component_type!r}",
            details={"component_type": str(component_type)},
        )


class ImmutableFieldChanged(FlowCompilerError):
    """Raised when a field fixed at creation time is changed"""

    error_code = "immutable_field_changed"

    def __init__(self, field: str, current: Any, requested: Any):
        self.field = field
        self.current = current
        self.requested = requested
        super().__init__(
            f"'{field}' cannot be changed after the flow is created "
            f"(current: {current!r}, requested: {requested!r})",
            details={"field": field, "current": current, "requested": requested},
        )


class ValidationFailed(FlowCompilerError):
    """Raised when a caller requires a valid flow and validation found errors"""

    error_code = "validation_failed"

    def __init__(self, errors: List[str], warnings: Optional[List[str]] = None):
        self.errors = list(errors)
        self.warnings = list(warnings or [])
        super().__init__(
            f"Flow validation failed with {len(self.errors)} error(s)",
            details={"errors": self.errors, "warnings": self.warnings},
        )
