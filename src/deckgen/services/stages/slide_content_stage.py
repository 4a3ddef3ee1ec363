"""
Slide content stage: one slide per key point, generated concurrently
"""

import asyncio
import logging
from typing import Callable, Dict, List, Optional

from ...ai.retry import classify_error
from ...core.exceptions import ErrorKind, GenerationCancelledError, StageFailedError
from ...models.project import Audience, KeyPoint, Slide
from ...models.workflow import WorkflowStage
from ..design import SlideDesigner
from ..generation_client import GenerationClient
from .base import run_bounded

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


class SlideContentStage:
    """Writes one slide per key point, at most ``max_concurrency`` requests at a time.

    Slide numbers are the key point ordinals; every slide gets the
    audience's design spec from the SlideDesigner.
    """

    def __init__(self, client: GenerationClient, designer: Optional[SlideDesigner] = None,
                 max_concurrency: int = 4):
        self.client = client
        self.designer = designer or SlideDesigner()
        self.max_concurrency = max_concurrency

    async def run(self, key_points: List[KeyPoint], audience: Audience,
                  completed: Optional[Dict[int, Slide]] = None,
                  cancel_event: Optional[asyncio.Event] = None,
                  on_progress: Optional[ProgressCallback] = None) -> List[Slide]:
        """Generate slides for every key point not already in ``completed``.

        Returns slides ordered by ordinal. On failure raises StageFailedError
        whose ``partial`` holds every slide finished so far, including the
        ones passed in.
        """
        total = len(key_points)
        slides: Dict[int, Slide] = dict(completed or {})
        pending = [(point.order, point) for point in key_points if point.order not in slides]
        design_spec = self.designer.design_spec_for(audience)

        if slides:
            logger.info(f"Resuming slide generation: {len(slides)}/{total} already done")

        async def _generate(point: KeyPoint) -> Slide:
            content = await self.client.generate_slide_content(point, audience, point.order, total)
            return Slide(
                slide_number=point.order,
                title=content.title,
                content=content.body,
                design_spec=design_spec,
                image_prompt=content.image_prompt,
                notes=content.notes
            )

        def _on_result(ordinal: int, slide: Slide):
            slides[ordinal] = slide
            if on_progress is not None:
                on_progress(len(slides), total)

        if on_progress is not None:
            on_progress(len(slides), total)

        outcome = await run_bounded(pending, _generate, self.max_concurrency, cancel_event, _on_result)

        if outcome.error is not None:
            raise StageFailedError(WorkflowStage.GENERATING_SLIDES, classify_error(outcome.error),
                                   partial=slides, cause=outcome.error)
        if outcome.cancelled:
            cause = GenerationCancelledError(f"Cancelled with {len(slides)} slides generated")
            raise StageFailedError(WorkflowStage.GENERATING_SLIDES, ErrorKind.CANCELLED, partial=slides,
                                   cause=cause)

        return [slides[ordinal] for ordinal in sorted(slides)]
