"""Exception hierarchy for the hairstyle workflow."""


class HairstyleStudioError(RuntimeError):
    """Base exception for every error raised by this package."""


class CodecError(HairstyleStudioError):
    """Raised when input bytes cannot be read as image data."""


class UpstreamError(HairstyleStudioError):
    """Raised when a call to the generative model fails.

    Covers transport errors, non-2xx responses, timeouts and empty responses.
    """


class InsufficientResultsError(UpstreamError):
    """Raised when the model returns fewer style suggestions than requested.

    Attributes:
        requested: Number of suggestions asked for.
        received: Number of distinct, usable suggestions returned.
    """

    def __init__(self, message: str, requested: int = 0, received: int = 0):
        super().__init__(message)
        self.requested = requested
        self.received = received


class NoImageProducedError(UpstreamError):
    """Raised when a render response carries no image payload.

    Attributes:
        finish_reason: The candidate finish reason reported by the model, if any.
    """

    def __init__(self, message: str, finish_reason: str | None = None):
        super().__init__(message)
        self.finish_reason = finish_reason


class WorkflowError(HairstyleStudioError):
    """Base class for inbound calls that are illegal in the current state."""


class InvalidTransitionError(WorkflowError):
    """Raised when an operation would move the workflow along an edge it does not have."""


class UnknownCandidateError(WorkflowError):
    """Raised when a selected candidate does not belong to the current run."""


class MissingPhotoError(WorkflowError):
    """Raised when a workflow is started without a source photo."""
