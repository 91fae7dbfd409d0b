"""Pipeline construction and state control."""
from .backend import (
    ElementHandle,
    PipelineBackend,
    PipelineHandle,
    PipelineState,
    PropertyInfo,
    ValidationMonitor,
)
from .driver import ScenarioPhase, PipelineDriver

__all__ = [
    "ElementHandle",
    "PipelineBackend",
    "PipelineDriver",
    "PipelineHandle",
    "PipelineState",
    "PropertyInfo",
    "ScenarioPhase",
    "ValidationMonitor",
]
