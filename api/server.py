"""FastAPI server for Hairstyle Studio.

Exposes the workflow to a browser front end:
- photo: Base64 data URL of the user's photo
- select: name of the chosen hairstyle candidate
- state: polled to observe progress and results
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from hairstyle_studio import __version__
from hairstyle_studio.config import PipelineConfig
from hairstyle_studio.exceptions import HairstyleStudioError
from hairstyle_studio.logging_utils import setup_logging
from hairstyle_studio.models import WorkflowSnapshot
from hairstyle_studio.pipeline import HairstylePipeline
from hairstyle_studio.utils import image_codec


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    if _pipeline is not None:
        await _pipeline.close()


app = FastAPI(
    title="Hairstyle Studio API",
    description="Preview AI-suggested hairstyles on your photo from four angles",
    version=__version__,
    lifespan=lifespan,
)

# Enable CORS for the browser front end
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class PhotoRequest(BaseModel):
    """Request body carrying a photo."""
    photo: str  # Base64 data URL (or bare base64)


class StartRequest(BaseModel):
    """Request body for starting a workflow."""
    photo: str | None = None  # Falls back to the uploaded photo


class SelectRequest(BaseModel):
    """Request body for choosing a hairstyle."""
    name: str


class CandidateOut(BaseModel):
    name: str
    description: str
    image_url: str


class ViewOut(BaseModel):
    view: str
    image_url: str


class ErrorOut(BaseModel):
    kind: str
    message: str


class WorkflowStateOut(BaseModel):
    """Published workflow state with images as data URLs."""
    run_id: int
    stage: str
    busy: bool
    progress_label: str
    error: ErrorOut | None = None
    candidates: list[CandidateOut]
    selected: CandidateOut | None = None
    views: list[ViewOut]

    @classmethod
    def from_snapshot(cls, snapshot: WorkflowSnapshot) -> "WorkflowStateOut":
        def candidate_out(candidate) -> CandidateOut:
            return CandidateOut(
                name=candidate.name,
                description=candidate.description,
                image_url=image_codec.decode(candidate.preview_image),
            )

        return cls(
            run_id=snapshot.run_id,
            stage=snapshot.stage.value,
            busy=snapshot.busy,
            progress_label=snapshot.progress_label,
            error=ErrorOut(**snapshot.error.model_dump()) if snapshot.error else None,
            candidates=[candidate_out(c) for c in snapshot.candidates],
            selected=candidate_out(snapshot.selected) if snapshot.selected else None,
            views=[
                ViewOut(view=v.view.value, image_url=image_codec.decode(v.image))
                for v in snapshot.views
            ],
        )


class WorkflowResponse(BaseModel):
    """Response for every workflow action."""
    success: bool
    error: str | None = None
    state: WorkflowStateOut


# Initialize pipeline (will be done on first request)
_pipeline: HairstylePipeline | None = None


def get_pipeline() -> HairstylePipeline:
    """Get or create the pipeline instance."""
    global _pipeline
    if _pipeline is None:
        config = PipelineConfig()  # Loads from .env automatically via pydantic-settings
        setup_logging(config.log_level)
        _pipeline = HairstylePipeline(config)
    return _pipeline


def _respond(pipeline: HairstylePipeline, error: Exception | None = None) -> WorkflowResponse:
    return WorkflowResponse(
        success=error is None,
        error=str(error) if error else None,
        state=WorkflowStateOut.from_snapshot(pipeline.snapshot),
    )


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "Hairstyle Studio API", "version": __version__}


@app.get("/health")
async def health():
    """Detailed health check."""
    pipeline = get_pipeline()
    gemini_ok = await pipeline.client.check_connection()

    return {
        "status": "ok" if gemini_ok else "degraded",
        "gemini": "connected" if gemini_ok else "disconnected",
    }


@app.get("/api/workflow", response_model=WorkflowStateOut)
async def get_workflow():
    """Current workflow state."""
    return WorkflowStateOut.from_snapshot(get_pipeline().snapshot)


@app.post("/api/workflow/photo", response_model=WorkflowResponse)
async def upload_photo(request: PhotoRequest):
    """Upload a new photo, discarding the current run.

    A rejected upload still discards the previous photo and results.
    """
    pipeline = get_pipeline()
    try:
        raw = image_codec.data_uri_bytes(request.photo)
    except HairstyleStudioError as e:
        pipeline.reset_workflow()
        return _respond(pipeline, e)

    try:
        pipeline.upload_photo(raw)
    except HairstyleStudioError as e:
        return _respond(pipeline, e)
    return _respond(pipeline)


@app.post("/api/workflow/start", response_model=WorkflowResponse)
async def start_workflow(request: StartRequest):
    """Analyze the photo and generate hairstyle candidates."""
    pipeline = get_pipeline()
    try:
        photo = None
        if request.photo:
            photo = image_codec.data_uri_bytes(request.photo)
        pipeline.start_workflow(photo)
    except HairstyleStudioError as e:
        return _respond(pipeline, e)
    return _respond(pipeline)


@app.post("/api/workflow/select", response_model=WorkflowResponse)
async def select_candidate(request: SelectRequest):
    """Choose a candidate and render its remaining views."""
    pipeline = get_pipeline()
    try:
        pipeline.select_candidate(request.name)
    except HairstyleStudioError as e:
        return _respond(pipeline, e)
    return _respond(pipeline)


@app.post("/api/workflow/back", response_model=WorkflowResponse)
async def go_back():
    """Return from the finished views to the candidate list."""
    pipeline = get_pipeline()
    try:
        pipeline.go_back()
    except HairstyleStudioError as e:
        return _respond(pipeline, e)
    return _respond(pipeline)


@app.post("/api/workflow/reset", response_model=WorkflowResponse)
async def reset_workflow():
    """Discard the photo and all results."""
    pipeline = get_pipeline()
    pipeline.reset_workflow()
    return _respond(pipeline)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
