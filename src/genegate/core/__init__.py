"""Settings and workflow loading."""

from .config import (
    GeneGateSettings,
    WorkflowDefinition,
    WorkflowLoadError,
    clear_workflow_cache,
    load_settings,
    load_workflow,
)

__all__ = [
    "GeneGateSettings",
    "WorkflowDefinition",
    "WorkflowLoadError",
    "clear_workflow_cache",
    "load_settings",
    "load_workflow",
]
