"""Photo-to-hairstyles pipeline."""

import asyncio
import logging
from typing import Any, Awaitable, Coroutine, Iterable, TypeVar

from ..agents import build_front_view_prompt, build_view_prompt
from ..config import PipelineConfig
from ..exceptions import (
    InsufficientResultsError,
    InvalidTransitionError,
    MissingPhotoError,
    NoImageProducedError,
    UnknownCandidateError,
    UpstreamError,
)
from ..models import (
    REMAINING_VIEWS,
    ErrorDescriptor,
    SourcePhoto,
    StyleCandidate,
    StyleIdea,
    ViewLabel,
    ViewResult,
    WorkflowSnapshot,
    WorkflowStage,
    sort_views,
)
from ..services import GeminiClient
from ..utils import image_codec
from .workflow_state import WorkflowState

logger = logging.getLogger(__name__)

T = TypeVar("T")

ANALYZING_LABEL = "Analyzing your facial features..."
SUGGESTING_LABEL = "Dreaming up some new looks..."
PREVIEWING_LABEL = "Generating style previews..."
DESCRIBING_LABEL = "Ensuring style consistency..."
RENDERING_VIEWS_LABEL = "Generating remaining views..."

SUGGESTION_FALLBACK_ERROR = "An unknown error occurred."
VIEWS_FALLBACK_ERROR = "An error occurred generating views."


class HairstylePipeline:
    """Drives the photo-to-hairstyles workflow.

    Flow:
    1. Analyze facial features of the source photo
    2. Suggest named hairstyles from that analysis
    3. Render a front-view preview per suggestion (in parallel)
    4. Caller selects one candidate; its preview becomes the Front view
    5. Re-describe the hairstyle as actually rendered
    6. Render Back / Left Side / Right Side (in parallel), then sort

    Inbound operations return at once; progress and results are published to
    ``self.state`` and read from its snapshots. Only this class changes the
    workflow stage.
    """

    def __init__(
        self,
        config: PipelineConfig,
        client: GeminiClient | None = None,
        state: WorkflowState | None = None,
    ):
        self.config = config

        # Initialize services
        self.client = client or GeminiClient(
            api_key=config.gemini_api_key,
            config=config.gemini,
        )
        self.state = state or WorkflowState()

        self._photo: SourcePhoto | None = None
        self._task: asyncio.Task | None = None
        self._background: set[asyncio.Task] = set()

    @property
    def snapshot(self) -> WorkflowSnapshot:
        return self.state.snapshot

    @property
    def photo(self) -> SourcePhoto | None:
        return self._photo

    # ------------------------------------------------------------------
    # Inbound operations
    # ------------------------------------------------------------------

    def upload_photo(self, raw: bytes) -> SourcePhoto:
        """Replace the source photo, discarding the whole current run.

        Raises:
            CodecError: If ``raw`` is not a readable image. The workflow is
                still reset and no photo is held.
        """
        self.reset_workflow()
        self._photo = image_codec.capture_photo(raw)
        logger.info("Photo uploaded (%s, %d bytes)", self._photo.payload.mime_type, len(raw))
        return self._photo

    def start_workflow(self, photo: SourcePhoto | bytes | None = None) -> asyncio.Task:
        """Start analysis, suggestion and preview rendering for a photo.

        Args:
            photo: Raw image bytes or a captured photo. Defaults to the photo
                given to :meth:`upload_photo`.

        Returns:
            The background task running the stages.

        Raises:
            InvalidTransitionError: If the workflow is not idle.
            MissingPhotoError: If no photo is given or uploaded.
            CodecError: If ``photo`` bytes are not a readable image.
        """
        loop = asyncio.get_running_loop()
        if self.state.stage is not WorkflowStage.IDLE:
            raise InvalidTransitionError(
                f"Cannot start a new workflow while {self.state.stage.value}; reset first."
            )

        if photo is None:
            source = self._photo
        elif isinstance(photo, SourcePhoto):
            source = photo
        else:
            source = image_codec.capture_photo(photo)
        if source is None:
            raise MissingPhotoError("Please upload an image first.")

        self._photo = source
        run_id = self.state.begin_run()
        self.state.publish(
            run_id,
            stage=WorkflowStage.ANALYZING_AND_SUGGESTING,
            busy=True,
            progress_label=ANALYZING_LABEL,
        )

        logger.info("=" * 60)
        logger.info("Hairstyle run %s started", run_id)
        logger.info("=" * 60)
        return self._spawn(loop, self._suggest(run_id, source))

    def select_candidate(self, candidate: StyleCandidate | str) -> asyncio.Task:
        """Commit to one candidate and render its remaining views.

        The Front view is published immediately from the candidate's preview.

        Raises:
            InvalidTransitionError: If the workflow is not awaiting a selection.
            UnknownCandidateError: If the candidate is not from the current run.
        """
        loop = asyncio.get_running_loop()
        snapshot = self.state.snapshot
        if snapshot.stage is not WorkflowStage.AWAITING_SELECTION:
            raise InvalidTransitionError(
                f"Cannot select a hairstyle while {snapshot.stage.value}."
            )

        name = candidate if isinstance(candidate, str) else candidate.name
        chosen = snapshot.candidate_named(name)
        if chosen is None or (isinstance(candidate, StyleCandidate) and candidate != chosen):
            raise UnknownCandidateError(f"'{name}' is not a candidate of the current run.")
        if self._photo is None:
            raise MissingPhotoError("The source photo for this run is no longer available.")

        front = ViewResult(view=ViewLabel.FRONT, image=chosen.preview_image)
        self.state.publish(
            snapshot.run_id,
            stage=WorkflowStage.RENDERING_VIEWS,
            busy=True,
            progress_label=DESCRIBING_LABEL,
            error=None,
            selected=chosen,
            canonical_description=None,
            views=(front,),
        )
        logger.info("Selected hairstyle '%s' (run %s)", chosen.name, snapshot.run_id)
        return self._spawn(loop, self._render_views(snapshot.run_id, chosen, front, self._photo))

    def go_back(self) -> None:
        """Return from a finished view set to the candidate list."""
        snapshot = self.state.snapshot
        if snapshot.stage is not WorkflowStage.COMPLETE:
            raise InvalidTransitionError(f"Cannot go back while {snapshot.stage.value}.")

        self.state.publish(
            snapshot.run_id,
            stage=WorkflowStage.AWAITING_SELECTION,
            progress_label="",
            error=None,
            selected=None,
            canonical_description=None,
            views=(),
        )

    def reset_workflow(self) -> None:
        """Discard the photo and every result; in-flight work is abandoned."""
        stale = self._task is not None and not self._task.done()
        self._photo = None
        self._task = None
        run_id = self.state.begin_run()
        if stale:
            logger.info("Workflow reset to run %s; results of the in-flight run will be dropped", run_id)
        else:
            logger.debug("Workflow reset to run %s", run_id)

    async def wait(self) -> WorkflowSnapshot:
        """Wait for the current background task, then return the snapshot."""
        if self._task is not None:
            await self._task
        return self.state.snapshot

    async def close(self):
        """Close the generation client."""
        await self.client.close()

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _suggest(self, run_id: int, photo: SourcePhoto) -> None:
        """Stages 1-3: analyze, suggest, render previews."""
        try:
            # Step 1: Analyze facial features
            logger.info("Analyzing facial features...")
            summary = await self._call(
                self.client.analyze_features(photo.payload), "analyze_features"
            )
            if not self._still_current(run_id):
                return
            self.state.publish(run_id, feature_summary=summary, progress_label=SUGGESTING_LABEL)
            logger.info("Features: %s", summary[:80])

            # Step 2: Suggest hairstyles
            count = self.config.suggestion_count
            ideas = await self._call(
                self.client.suggest_styles(summary, count), "suggest_styles"
            )
            if len(ideas) < count:
                raise InsufficientResultsError(
                    f"Expected {count} hairstyle suggestions but received {len(ideas)}.",
                    requested=count,
                    received=len(ideas),
                )
            ideas = ideas[:count]
            if not self._still_current(run_id):
                return
            self.state.publish(run_id, progress_label=PREVIEWING_LABEL)
            logger.info("Suggested: %s", ", ".join(idea.name for idea in ideas))

            # Step 3: Render all previews, publish only once every one succeeded
            candidates = await self._fan_out(
                self._render_preview(idea, photo) for idea in ideas
            )
            published = self.state.publish(
                run_id,
                stage=WorkflowStage.AWAITING_SELECTION,
                busy=False,
                progress_label="",
                error=None,
                candidates=tuple(candidates),
            )
            if published:
                logger.info("%d previews ready (run %s)", len(candidates), run_id)

        except Exception as e:
            self._fail(
                run_id,
                e,
                stage=WorkflowStage.IDLE,
                fallback=SUGGESTION_FALLBACK_ERROR,
                feature_summary=None,
                candidates=(),
            )

    async def _render_views(
        self,
        run_id: int,
        candidate: StyleCandidate,
        front: ViewResult,
        photo: SourcePhoto,
    ) -> None:
        """Stages 4-5: re-describe the chosen preview, render the other angles."""
        try:
            # Step 4: Describe the hairstyle as rendered
            logger.info("Describing rendered hairstyle '%s'...", candidate.name)
            description = await self._call(
                self.client.describe_image(candidate.preview_image), "describe_image"
            )
            if not self._still_current(run_id):
                return
            self.state.publish(
                run_id,
                canonical_description=description,
                progress_label=RENDERING_VIEWS_LABEL,
            )

            # Step 5: Render remaining views in parallel
            remaining = await self._fan_out(
                self._render_view(view, description, photo) for view in REMAINING_VIEWS
            )

            # Merge with the seeded Front view; arrival order must not matter
            views = sort_views([front, *remaining])
            published = self.state.publish(
                run_id,
                stage=WorkflowStage.COMPLETE,
                busy=False,
                progress_label="",
                error=None,
                views=views,
            )
            if published:
                logger.info("All views ready for '%s' (run %s)", candidate.name, run_id)

        except Exception as e:
            self._fail(
                run_id,
                e,
                stage=WorkflowStage.AWAITING_SELECTION,
                fallback=VIEWS_FALLBACK_ERROR,
                selected=None,
                canonical_description=None,
                views=(),
            )

    async def _render_preview(self, idea: StyleIdea, photo: SourcePhoto) -> StyleCandidate:
        prompt = build_front_view_prompt(idea.description)
        image = await self._call(
            self.client.render_image(prompt, photo.payload), f"render_preview[{idea.name}]"
        )
        return StyleCandidate.from_idea(idea, image)

    async def _render_view(
        self,
        view: ViewLabel,
        description: str,
        photo: SourcePhoto,
    ) -> ViewResult:
        prompt = build_view_prompt(view, description)
        image = await self._call(
            self.client.render_image(prompt, photo.payload), f"render_view[{view.value}]"
        )
        return ViewResult(view=view, image=image)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _spawn(self, loop: asyncio.AbstractEventLoop, coro: Coroutine[Any, Any, None]) -> asyncio.Task:
        task = loop.create_task(coro)
        self._task = task
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def _call(self, awaitable: Awaitable[T], context: str) -> T:
        """Await one generation call with the configured timeout."""
        timeout = self.config.call_timeout_seconds
        try:
            return await asyncio.wait_for(awaitable, timeout=timeout)
        except asyncio.TimeoutError as e:
            raise UpstreamError(f"{context} timed out after {timeout:g}s.") from e

    async def _fan_out(self, coros: Iterable[Awaitable[T]]) -> list[T]:
        """Run calls concurrently and wait for all of them.

        If any call fails, the unfinished siblings are cancelled and the
        first error is raised; no partial result list is returned.
        """
        tasks = [asyncio.ensure_future(coro) for coro in coros]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                if not task.done():
                    task.cancel()
            raise

    def _still_current(self, run_id: int) -> bool:
        if self.state.is_current(run_id):
            return True
        logger.info("Run %s was superseded; stopping", run_id)
        return False

    def _fail(
        self,
        run_id: int,
        error: Exception,
        stage: WorkflowStage,
        fallback: str,
        **cleared: Any,
    ) -> None:
        """Publish a failure transition and log the error by its kind."""
        if not self.state.is_current(run_id):
            logger.info("Ignoring %s from superseded run %s: %s", type(error).__name__, run_id, error)
            return

        if isinstance(error, (InsufficientResultsError, NoImageProducedError)):
            logger.warning("Generation contract violation (%s): %s", type(error).__name__, error)
        elif isinstance(error, UpstreamError):
            logger.error("Generation call failed: %s", error)
        else:
            logger.exception("Unexpected error in hairstyle run %s", run_id)

        self.state.publish(
            run_id,
            stage=stage,
            busy=False,
            progress_label="",
            error=ErrorDescriptor.from_exception(error, fallback),
            **cleared,
        )
