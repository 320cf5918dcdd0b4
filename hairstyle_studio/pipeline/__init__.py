"""Workflow orchestration."""

from .hairstyle_pipeline import HairstylePipeline
from .workflow_state import TRANSITIONS, WorkflowState

__all__ = ["HairstylePipeline", "WorkflowState", "TRANSITIONS"]
