"""Data models for the hairstyle pipeline."""

from .image import EncodedImage, SourcePhoto
from .style import StyleIdea, StyleCandidate
from .workflow import (
    REMAINING_VIEWS,
    VIEW_ORDER,
    ErrorDescriptor,
    ViewLabel,
    ViewResult,
    WorkflowSnapshot,
    WorkflowStage,
    sort_views,
)

__all__ = [
    "EncodedImage",
    "SourcePhoto",
    "StyleIdea",
    "StyleCandidate",
    "ErrorDescriptor",
    "ViewLabel",
    "ViewResult",
    "WorkflowSnapshot",
    "WorkflowStage",
    "VIEW_ORDER",
    "REMAINING_VIEWS",
    "sort_views",
]
