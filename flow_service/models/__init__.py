"""
Models package - flow document schemas.
"""

from .schemas import (
    ComponentType,
    FlowAction,
    Footer,
    FlowComponent,
    Screen,
    Flow,
    FlowRecord,
    FlowCreateRequest,
    FlowUpdateRequest,
    ValidationReport,
)

__all__ = [
    'ComponentType',
    'FlowAction',
    'Footer',
    'FlowComponent',
    'Screen',
    'Flow',
    'FlowRecord',
    'FlowCreateRequest',
    'FlowUpdateRequest',
    'ValidationReport',
]
