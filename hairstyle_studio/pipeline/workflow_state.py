"""Single-writer holder for the published workflow state."""

import logging
from typing import Any, Callable

from ..exceptions import InvalidTransitionError
from ..models import WorkflowSnapshot, WorkflowStage

logger = logging.getLogger(__name__)

Listener = Callable[[WorkflowSnapshot], None]

# Legal stage edges; resets to IDLE go through begin_run() instead
TRANSITIONS: dict[WorkflowStage, frozenset[WorkflowStage]] = {
    WorkflowStage.IDLE: frozenset({WorkflowStage.ANALYZING_AND_SUGGESTING}),
    WorkflowStage.ANALYZING_AND_SUGGESTING: frozenset(
        {WorkflowStage.AWAITING_SELECTION, WorkflowStage.IDLE}
    ),
    WorkflowStage.AWAITING_SELECTION: frozenset({WorkflowStage.RENDERING_VIEWS}),
    WorkflowStage.RENDERING_VIEWS: frozenset(
        {WorkflowStage.COMPLETE, WorkflowStage.AWAITING_SELECTION}
    ),
    WorkflowStage.COMPLETE: frozenset({WorkflowStage.AWAITING_SELECTION}),
}


class WorkflowState:
    """Holds the current snapshot and the id of the run allowed to write it.

    Every write names the run it belongs to. Writes from a run that has since
    been superseded by a reset are dropped, so late results of an abandoned
    run never leak into the current one.
    """

    def __init__(self):
        self._snapshot = WorkflowSnapshot()
        self._listeners: list[Listener] = []

    @property
    def snapshot(self) -> WorkflowSnapshot:
        return self._snapshot

    @property
    def run_id(self) -> int:
        return self._snapshot.run_id

    @property
    def stage(self) -> WorkflowStage:
        return self._snapshot.stage

    def is_current(self, run_id: int) -> bool:
        return run_id == self._snapshot.run_id

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with every new snapshot. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def begin_run(self) -> int:
        """Discard every result and return to IDLE under a fresh run id."""
        self._replace(WorkflowSnapshot(run_id=self._snapshot.run_id + 1))
        return self._snapshot.run_id

    def publish(self, run_id: int, **changes: Any) -> bool:
        """Apply ``changes`` atomically if ``run_id`` is still current.

        Returns:
            True if applied, False if the write came from a stale run.

        Raises:
            InvalidTransitionError: If ``changes`` moves the stage along an
                edge the workflow does not have.
        """
        if not self.is_current(run_id):
            logger.debug(
                "Dropping write from stale run %s (current run is %s)", run_id, self.run_id
            )
            return False

        new_stage = changes.get("stage")
        if new_stage is not None and new_stage != self._snapshot.stage:
            if new_stage not in TRANSITIONS[self._snapshot.stage]:
                raise InvalidTransitionError(
                    f"Cannot move from {self._snapshot.stage.value} to {new_stage.value}"
                )

        self._replace(self._snapshot.model_copy(update=changes))
        return True

    def _replace(self, snapshot: WorkflowSnapshot) -> None:
        self._snapshot = snapshot
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Workflow state listener failed")
