"""
Generation orchestrator: drives the pipeline stage state machine

NotStarted -> ImportingContent -> AnalyzingContent -> GeneratingSlides(i, n)
-> GeneratingImages(i, n) -> Ready, with any stage able to move to
Failed(stage, kind). Executing a failed run again restarts at the failed
stage and reuses every key point, slide and image already produced.
"""

import asyncio
import copy
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

from ..core.config import AppConfig
from ..core.exceptions import (
    ConfigurationError, DeckGenException, ErrorKind, GenerationCancelledError, ProjectStorageError,
    RunInProgressError, StageFailedError, ValidationError
)
from ..models.project import KeyPoint, Project, Slide, SourceFile
from ..models.workflow import (
    STAGE_ORDER, ProgressChannel, WorkflowStage, WorkflowState, WorkflowStatus
)
from .content_filter import ContentFilter
from .design import SlideDesigner
from .generation_client import GenerationClient, ImagePayload
from .interfaces import DocumentIngestor
from .project_store import ProjectStore
from .stages import ContentAnalysisStage, ImageStage, SlideContentStage

logger = logging.getLogger(__name__)


@dataclass
class GenerationRun:
    """One generation attempt for a project, with everything it has produced so far"""
    project: Project
    text: Optional[str] = None
    source_paths: List[Path] = field(default_factory=list)
    state: WorkflowState = field(default_factory=WorkflowState.not_started)
    key_points: List[KeyPoint] = field(default_factory=list)
    slide_count: Optional[int] = None
    slides: Dict[int, Slide] = field(default_factory=dict)
    images: Dict[int, ImagePayload] = field(default_factory=dict)
    error: Optional[BaseException] = None
    progress: ProgressChannel = field(default_factory=ProgressChannel)
    cancel_event: asyncio.Event = field(default_factory=asyncio.Event)

    @property
    def project_id(self) -> str:
        return self.project.id

    def cancel(self):
        """Stop dispatching new sub-operations; in-flight ones finish"""
        self.cancel_event.set()

    @property
    def is_cancelled(self) -> bool:
        return self.cancel_event.is_set()


class GenerationOrchestrator:
    """Sequences the pipeline stages for a project and owns its progress reporting"""

    def __init__(self, client: GenerationClient, store: ProjectStore, app_config: AppConfig,
                 ingestor: Optional[DocumentIngestor] = None,
                 designer: Optional[SlideDesigner] = None,
                 content_filter: Optional[ContentFilter] = None):
        if client is None:
            raise ConfigurationError("GenerationOrchestrator requires a GenerationClient")
        if store is None:
            raise ConfigurationError("GenerationOrchestrator requires a ProjectStore")
        self.client = client
        self.store = store
        self.config = app_config
        self.ingestor = ingestor
        self.analysis_stage = ContentAnalysisStage.from_config(client, app_config)
        self.slide_stage = SlideContentStage(client, designer, app_config.max_concurrency)
        self.image_stage = ImageStage(client, app_config.max_concurrency, content_filter)
        self._runs: Dict[str, GenerationRun] = {}

    def create_run(self, project: Project, text: Optional[str] = None,
                   source_paths: Optional[List[Union[str, Path]]] = None) -> GenerationRun:
        """Prepare a run on a working copy of ``project``"""
        if text is None and not source_paths:
            raise ValidationError("A generation run needs document text or source files")
        if self.store.is_generating(project.id):
            raise RunInProgressError(project.id)
        run = GenerationRun(
            project=copy.deepcopy(project),
            text=text,
            source_paths=[Path(path) for path in (source_paths or [])]
        )
        self._runs[project.id] = run
        return run

    def get_run(self, project_id: str) -> Optional[GenerationRun]:
        return self._runs.get(project_id)

    def cancel(self, project_id: str) -> bool:
        run = self._runs.get(project_id)
        if run is None or run.state.is_terminal:
            return False
        run.cancel()
        logger.info(f"Cancellation requested for project {project_id}")
        return True

    async def generate(self, project: Project, text: Optional[str] = None,
                       source_paths: Optional[List[Union[str, Path]]] = None) -> GenerationRun:
        run = self.create_run(project, text, source_paths)
        return await self.execute(run)

    async def execute(self, run: GenerationRun) -> GenerationRun:
        """Run (or resume) a generation run until it is Ready or Failed.

        Raises RunInProgressError when the project already has an active run;
        every other failure is recorded on the run rather than raised.
        """
        self.store.begin_generation(run.project_id)
        try:
            if run.state.status == WorkflowStatus.READY:
                return run
            if run.state.status == WorkflowStatus.FAILED:
                start = run.state.failed_stage
                logger.info(f"Resuming project {run.project_id} at {start.value}")
                run.cancel_event.clear()
                run.progress.reopen()
            else:
                start = WorkflowStage.IMPORTING_CONTENT
            run.error = None

            current = start
            try:
                for stage in STAGE_ORDER[STAGE_ORDER.index(start):]:
                    current = stage
                    if run.is_cancelled:
                        raise StageFailedError(stage, ErrorKind.CANCELLED,
                                               cause=GenerationCancelledError("Cancelled between stages"))
                    await self._run_stage(run, stage)
            except StageFailedError as e:
                self._fail(run, e.stage, e.kind, e.cause or e)
            except DeckGenException as e:
                self._fail(run, current, e.kind, e)
            except Exception as e:
                logger.exception(f"Unexpected error during {current.value}")
                self._fail(run, current, ErrorKind.FATAL, e)
            else:
                self._set_state(run, WorkflowState.ready(), "Presentation ready")
            return run
        finally:
            self.store.end_generation(run.project_id)

    async def _run_stage(self, run: GenerationRun, stage: WorkflowStage):
        if stage == WorkflowStage.IMPORTING_CONTENT:
            await self._import_content(run)
        elif stage == WorkflowStage.ANALYZING_CONTENT:
            await self._analyze_content(run)
        elif stage == WorkflowStage.GENERATING_SLIDES:
            await self._generate_slides(run)
        else:
            await self._generate_images(run)

    def _set_state(self, run: GenerationRun, state: WorkflowState, message: str = ""):
        if state.status != run.state.status:
            logger.info(f"Project {run.project_id}: {state.describe()}")
        run.state = state
        run.progress.publish(state, message)

    def _fail(self, run: GenerationRun, stage: WorkflowStage, kind: ErrorKind, error: BaseException):
        run.error = error
        if kind == ErrorKind.CANCELLED:
            logger.info(f"Project {run.project_id} cancelled during {stage.value}")
        else:
            logger.error(f"Project {run.project_id} failed during {stage.value} ({kind.value}): {error}")
        self._set_state(run, WorkflowState.failed(stage, kind), str(error))

    async def _import_content(self, run: GenerationRun):
        self._set_state(run, WorkflowState.importing_content(), "Importing content")
        if not run.source_paths:
            return
        if self.ingestor is None:
            raise ConfigurationError("No document ingestor configured for source files")

        texts = []
        sources = []
        for path in run.source_paths:
            texts.append(await self.ingestor.extract_text(path))
            sources.append(SourceFile.from_path(path))
        if run.text:
            texts.insert(0, run.text)
        run.text = "\n\n".join(text for text in texts if text)
        run.project.source_files.extend(sources)
        # Imported once; a resumed run must not import again
        run.source_paths = []

    async def _analyze_content(self, run: GenerationRun):
        self._set_state(run, WorkflowState.analyzing_content(0.0), "Analyzing content")
        if run.key_points:
            logger.info(f"Reusing {len(run.key_points)} key points from the previous attempt")
        else:
            result = await self.analysis_stage.run(run.text or "", run.project.audience)
            run.key_points = result.key_points
            run.slide_count = result.suggested_slide_count
        run.project.key_points = list(run.key_points)
        self._set_state(run, WorkflowState.analyzing_content(1.0),
                        f"Found {len(run.key_points)} key points")

    async def _generate_slides(self, run: GenerationRun):
        total = len(run.key_points)

        def _progress(completed: int, total: int):
            self._set_state(run, WorkflowState.generating_slides(completed, total))

        try:
            slides = await self.slide_stage.run(
                run.key_points, run.project.audience,
                completed=run.slides, cancel_event=run.cancel_event, on_progress=_progress
            )
        except StageFailedError as e:
            run.slides = dict(e.partial)
            raise
        run.slides = {slide.slide_number: slide for slide in slides}
        run.project.slides = slides
        logger.info(f"Generated {total} slides for project {run.project_id}")

    async def _generate_images(self, run: GenerationRun):
        slides = run.project.slides

        def _progress(completed: int, total: int):
            self._set_state(run, WorkflowState.generating_images(completed, total))

        try:
            pairs = await self.image_stage.run(
                slides, run.project.audience,
                completed=run.images, cancel_event=run.cancel_event, on_progress=_progress
            )
        except StageFailedError as e:
            run.images = dict(e.partial)
            raise
        run.images = dict(pairs)

        by_number = {slide.slide_number: slide for slide in slides}
        written = []
        try:
            for ordinal, payload in pairs:
                image = await self.store.save_image(payload.data, payload.prompt, payload.source_url,
                                                    payload.format)
                written.append((ordinal, image))
            for ordinal, image in written:
                by_number[ordinal].image_data = image
            await self.store.save(run.project)
        except ProjectStorageError:
            # Bytes stay on the run for the next attempt
            for ordinal, image in written:
                by_number[ordinal].image_data = None
                await self.store.delete_image(image)
            raise
        run.images = {}
