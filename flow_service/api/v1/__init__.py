"""
API v1 endpoints.
"""

from .health import router as health_router
from .components import router as components_router
from .flows import router as flows_router

__all__ = ["health_router", "components_router", "flows_router"]
