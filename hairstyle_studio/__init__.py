"""Hairstyle Studio: preview new hairstyles on a photo from every angle."""

from .config import PipelineConfig, load_config
from .pipeline import HairstylePipeline, WorkflowState

__version__ = "1.0.0"

__all__ = [
    "HairstylePipeline",
    "PipelineConfig",
    "WorkflowState",
    "load_config",
]
