"""Workflow stage, view and published-state models."""

from enum import Enum
from typing import Iterable

from pydantic import BaseModel, ConfigDict, Field

from .image import EncodedImage
from .style import StyleCandidate


class WorkflowStage(str, Enum):
    """Stages of the photo-to-hairstyles workflow."""

    IDLE = "idle"
    ANALYZING_AND_SUGGESTING = "analyzing_and_suggesting"
    AWAITING_SELECTION = "awaiting_selection"
    RENDERING_VIEWS = "rendering_views"
    COMPLETE = "complete"


class ViewLabel(str, Enum):
    """Viewing angles rendered for the selected hairstyle."""

    FRONT = "Front"
    BACK = "Back"
    LEFT_SIDE = "Left Side"
    RIGHT_SIDE = "Right Side"


# Presentation order of the finished view set
VIEW_ORDER: tuple[ViewLabel, ...] = (
    ViewLabel.FRONT,
    ViewLabel.BACK,
    ViewLabel.LEFT_SIDE,
    ViewLabel.RIGHT_SIDE,
)
VIEW_PRIORITY: dict[ViewLabel, int] = {label: index for index, label in enumerate(VIEW_ORDER)}

# Views rendered after selection; Front comes from the candidate preview
REMAINING_VIEWS: tuple[ViewLabel, ...] = VIEW_ORDER[1:]


class ViewResult(BaseModel):
    """One rendered angle of the selected hairstyle."""

    model_config = ConfigDict(frozen=True)

    view: ViewLabel
    image: EncodedImage


def sort_views(views: Iterable[ViewResult]) -> tuple[ViewResult, ...]:
    """Order views by the fixed label priority, ignoring arrival order."""
    return tuple(sorted(views, key=lambda result: VIEW_PRIORITY[result.view]))


class ErrorDescriptor(BaseModel):
    """Human-readable description of the last failure."""

    model_config = ConfigDict(frozen=True)

    kind: str = Field(description="Exception class name, e.g. 'UpstreamError'")
    message: str

    @classmethod
    def from_exception(cls, exc: BaseException, fallback: str) -> "ErrorDescriptor":
        return cls(kind=type(exc).__name__, message=str(exc) or fallback)


class WorkflowSnapshot(BaseModel):
    """Immutable view of the workflow, replaced wholesale on every update."""

    model_config = ConfigDict(frozen=True)

    run_id: int = 0
    stage: WorkflowStage = WorkflowStage.IDLE
    busy: bool = False
    progress_label: str = ""
    error: ErrorDescriptor | None = None

    # Results of the current run
    feature_summary: str | None = None
    candidates: tuple[StyleCandidate, ...] = ()
    selected: StyleCandidate | None = None
    canonical_description: str | None = None
    views: tuple[ViewResult, ...] = ()

    def candidate_named(self, name: str) -> StyleCandidate | None:
        """Look up a candidate of this run by its name."""
        for candidate in self.candidates:
            if candidate.name == name:
                return candidate
        return None
