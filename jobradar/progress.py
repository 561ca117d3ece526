"""Pipeline stage tracking.

Stages only move forward; ``error`` can be entered from any non-terminal
stage. Each transition is forwarded to a :class:`ProgressReporter`, the
seam a status-polling UI (or the CLI spinner) hangs off.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Protocol

logger = logging.getLogger(__name__)


class PipelineStage(str, Enum):
    QUEUED = "queued"
    FETCHING = "fetching"
    FILTERING = "filtering"
    SCORING = "scoring"
    PERSISTING = "persisting"
    COMPLETED = "completed"
    ERROR = "error"


_ORDER = [
    PipelineStage.QUEUED,
    PipelineStage.FETCHING,
    PipelineStage.FILTERING,
    PipelineStage.SCORING,
    PipelineStage.PERSISTING,
    PipelineStage.COMPLETED,
]
TERMINAL_STAGES = frozenset({PipelineStage.COMPLETED, PipelineStage.ERROR})


class InvalidTransitionError(ValueError):
    """A stage transition that would move backwards or leave a terminal stage."""


class ProgressReporter(Protocol):
    def report(self, stage: PipelineStage, message: str | None = None) -> None:
        """Receive one stage transition. *message* is set for ``error`` only."""
        ...


class LoggingProgressReporter:
    """Reporter that only writes transitions to the log."""

    def report(self, stage: PipelineStage, message: str | None = None) -> None:
        if stage is PipelineStage.ERROR:
            logger.error("Pipeline failed: %s", message)
        else:
            logger.info("Pipeline stage: %s", stage.value)


class ProgressTracker:
    """Owns the current stage of one run and enforces forward-only transitions."""

    def __init__(self, reporter: ProgressReporter | None = None) -> None:
        self.stage = PipelineStage.QUEUED
        self.error_message: str | None = None
        self._reporter = reporter or LoggingProgressReporter()

    @property
    def is_terminal(self) -> bool:
        return self.stage in TERMINAL_STAGES

    def advance(self, stage: PipelineStage) -> None:
        """Move forward to *stage*. Skipping intermediate stages is allowed.

        Raises:
            InvalidTransitionError: If *stage* is not after the current stage,
                the run is already terminal, or *stage* is ``error``.
        """
        if stage is PipelineStage.ERROR:
            raise InvalidTransitionError("Use fail() to enter the error stage")
        if self.is_terminal:
            raise InvalidTransitionError(f"Run already ended in {self.stage.value}")
        if _ORDER.index(stage) <= _ORDER.index(self.stage):
            raise InvalidTransitionError(f"Cannot move from {self.stage.value} to {stage.value}")
        # Report first: a reporter failure leaves the run in its previous stage.
        self._reporter.report(stage)
        self.stage = stage

    def complete(self) -> None:
        self.advance(PipelineStage.COMPLETED)

    def fail(self, message: str) -> None:
        """Enter the terminal ``error`` stage with a human-readable *message*."""
        if self.is_terminal:
            raise InvalidTransitionError(f"Run already ended in {self.stage.value}")
        self.stage = PipelineStage.ERROR
        self.error_message = message
        self._reporter.report(PipelineStage.ERROR, message)
