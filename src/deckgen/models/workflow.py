"""
Generation workflow state and the progress channel that reports it
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import AsyncIterator, List, Optional

from ..core.exceptions import ErrorKind

logger = logging.getLogger(__name__)


class WorkflowStage(Enum):
    """Pipeline stages that can fail and be retried"""
    IMPORTING_CONTENT = "importing_content"
    ANALYZING_CONTENT = "analyzing_content"
    GENERATING_SLIDES = "generating_slides"
    GENERATING_IMAGES = "generating_images"


STAGE_ORDER = [
    WorkflowStage.IMPORTING_CONTENT,
    WorkflowStage.ANALYZING_CONTENT,
    WorkflowStage.GENERATING_SLIDES,
    WorkflowStage.GENERATING_IMAGES,
]


class WorkflowStatus(Enum):
    NOT_STARTED = "not_started"
    IMPORTING_CONTENT = "importing_content"
    ANALYZING_CONTENT = "analyzing_content"
    GENERATING_SLIDES = "generating_slides"
    GENERATING_IMAGES = "generating_images"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class WorkflowState:
    """Snapshot of a generation run; transient, never persisted"""
    status: WorkflowStatus
    completed: int = 0
    total: int = 0
    progress: float = 0.0
    failed_stage: Optional[WorkflowStage] = None
    error_kind: Optional[ErrorKind] = None

    @classmethod
    def not_started(cls) -> 'WorkflowState':
        return cls(WorkflowStatus.NOT_STARTED)

    @classmethod
    def importing_content(cls) -> 'WorkflowState':
        return cls(WorkflowStatus.IMPORTING_CONTENT)

    @classmethod
    def analyzing_content(cls, progress: float = 0.0) -> 'WorkflowState':
        return cls(WorkflowStatus.ANALYZING_CONTENT, progress=progress)

    @classmethod
    def generating_slides(cls, completed: int, total: int) -> 'WorkflowState':
        return cls(WorkflowStatus.GENERATING_SLIDES, completed=completed, total=total)

    @classmethod
    def generating_images(cls, completed: int, total: int) -> 'WorkflowState':
        return cls(WorkflowStatus.GENERATING_IMAGES, completed=completed, total=total)

    @classmethod
    def ready(cls) -> 'WorkflowState':
        return cls(WorkflowStatus.READY)

    @classmethod
    def failed(cls, stage: WorkflowStage, error_kind: ErrorKind) -> 'WorkflowState':
        return cls(WorkflowStatus.FAILED, failed_stage=stage, error_kind=error_kind)

    @property
    def is_terminal(self) -> bool:
        return self.status in (WorkflowStatus.READY, WorkflowStatus.FAILED)

    @property
    def stage(self) -> Optional[WorkflowStage]:
        """The pipeline stage this state belongs to, if any"""
        if self.status == WorkflowStatus.FAILED:
            return self.failed_stage
        try:
            return WorkflowStage(self.status.value)
        except ValueError:
            return None

    def describe(self) -> str:
        if self.status in (WorkflowStatus.GENERATING_SLIDES, WorkflowStatus.GENERATING_IMAGES):
            return f"{self.status.value} ({self.completed}/{self.total})"
        if self.status == WorkflowStatus.ANALYZING_CONTENT:
            return f"{self.status.value} ({self.progress:.0%})"
        if self.status == WorkflowStatus.FAILED:
            stage = self.failed_stage.value if self.failed_stage else "unknown"
            kind = self.error_kind.value if self.error_kind else "unknown"
            return f"failed at {stage} ({kind})"
        return self.status.value


@dataclass(frozen=True)
class ProgressEvent:
    state: WorkflowState
    message: str = ""
    timestamp: datetime = field(default_factory=datetime.now)


class ProgressChannel:
    """Async stream of progress events for one generation run.

    Within a stage, ``completed`` never goes backwards: an event that would
    lower it is dropped. The stream ends after a terminal state.
    """

    def __init__(self, maxsize: int = 0):
        self._queue: "asyncio.Queue[Optional[ProgressEvent]]" = asyncio.Queue(maxsize)
        self._history: List[ProgressEvent] = []
        self._last_stage: Optional[WorkflowStatus] = None
        self._last_completed = -1
        self._last_progress = -1.0
        self._closed = False

    @property
    def history(self) -> List[ProgressEvent]:
        return list(self._history)

    @property
    def closed(self) -> bool:
        return self._closed

    def reopen(self):
        """Accept events again, for a retried run"""
        self._closed = False

    def publish(self, state: WorkflowState, message: str = "") -> bool:
        """Queue an event; returns False when it was dropped"""
        if self._closed:
            logger.debug(f"Progress channel closed, dropping {state.describe()}")
            return False

        if state.status == self._last_stage:
            if state.completed < self._last_completed or state.progress < self._last_progress:
                logger.debug(f"Dropping regressive progress event {state.describe()}")
                return False
        self._last_stage = state.status
        self._last_completed = state.completed
        self._last_progress = state.progress

        event = ProgressEvent(state=state, message=message)
        self._history.append(event)
        self._queue.put_nowait(event)
        if state.is_terminal:
            self.close()
        return True

    def close(self):
        if not self._closed:
            self._closed = True
            # A retried run starts each stage fresh
            self._last_stage = None
            self._last_completed = -1
            self._last_progress = -1.0
            self._queue.put_nowait(None)

    def __aiter__(self) -> AsyncIterator[ProgressEvent]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[ProgressEvent]:
        while True:
            event = await self._queue.get()
            if event is None:
                return
            yield event
